"""
Authentication gate for the Storefront API
Resolves the opaque API key of a request to a user record

The key is read, in order, from:
    Authorization: Bearer <key>
    X-Storefront-Token header
    ?token= query parameter
    the API key cookie set at login

Every router is included with authenticate_request as a dependency; it
rejects requests without a valid key unless the endpoint was marked with
@allow_anonymous.
"""
import logging
from typing import Callable, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from storefront.core.config import settings
from storefront.core.errors import AuthenticationError, AuthorizationError
from storefront.domain.order import Order
from storefront.domain.user import User
from storefront.repositories.user_repository import UserRepository

logger = logging.getLogger(__name__)

# Security scheme for bearer tokens
security = HTTPBearer(auto_error=False)

TOKEN_HEADER = "X-Storefront-Token"
ANONYMOUS_ATTRIBUTE = "allow_anonymous"


def allow_anonymous(endpoint: Callable) -> Callable:
    """
    Mark an endpoint as public: requests without an API key reach it with
    no current user.

    Usage:
        @router.get("/")
        @allow_anonymous
        async def list_products(...):
    """
    setattr(endpoint, ANONYMOUS_ATTRIBUTE, True)
    return endpoint


def is_anonymous_endpoint(request: Request) -> bool:
    endpoint = request.scope.get("endpoint")
    return bool(endpoint is not None and getattr(endpoint, ANONYMOUS_ATTRIBUTE, False))


def extract_api_key(request: Request, credentials: Optional[HTTPAuthorizationCredentials] = None) -> Optional[str]:
    if credentials and credentials.credentials:
        return credentials.credentials
    return (
        request.headers.get(TOKEN_HEADER)
        or request.query_params.get("token")
        or request.cookies.get(settings.API_KEY_COOKIE)
        or None
    )


async def authenticate_request(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[User]:
    """
    Router-level dependency resolving the request's user.

    Returns:
        The user owning the API key, or None on a public endpoint without one

    Raises:
        AuthenticationError: protected endpoint and no key, or an unknown key
    """
    api_key = extract_api_key(request, credentials)
    public = is_anonymous_endpoint(request)

    if not api_key:
        if public:
            return None
        raise AuthenticationError("You must specify an API key.")

    user = UserRepository().find_by_api_key(api_key)
    if user is None:
        if public:
            return None
        logger.info(f"Rejected unknown API key on {request.method} {request.url.path}")
        raise AuthenticationError("The API key you provided is invalid.")
    return user


async def get_current_user(user: Optional[User] = Depends(authenticate_request)) -> User:
    """
    Dependency for endpoints that need a signed-in user.

    Usage:
        @router.get("/profile")
        async def profile(user: User = Depends(get_current_user)):
    """
    if user is None:
        raise AuthenticationError("You must specify an API key.")
    return user


def authorize_order(order: Order, user: Optional[User]):
    """Admins may access any order, everyone else only their own"""
    if user is None:
        raise AuthenticationError("You must specify an API key.")
    if user.is_admin or (order.user_id is not None and order.user_id == user.id):
        return
    raise AuthorizationError("You are not authorized to access this order")
