"""
Authentication API endpoints
- Login / registration issue the API key (body and HTTP-only cookie)
- Logout rotates the key
"""
from fastapi import APIRouter, Depends, Response, status

from storefront.core.auth import allow_anonymous, get_current_user
from storefront.core.config import settings
from storefront.domain.user import User, LoginRequest, RegisterRequest
from storefront.services.auth_service import AuthService

router = APIRouter()


def set_api_key_cookie(response: Response, api_key: str):
    response.set_cookie(
        key=settings.API_KEY_COOKIE,
        value=api_key,
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite="lax",
    )


def session_payload(user: User, message: str) -> dict:
    return {
        "success": True,
        "user": {"id": user.id, "email": user.email},
        "api_key": user.api_key,
        "message": message,
    }


@router.post("/login")
@allow_anonymous
async def login(credentials: LoginRequest, response: Response):
    """Exchange email and password for the user's API key"""
    user = AuthService().login(credentials.email, credentials.password)
    set_api_key_cookie(response, user.api_key)
    return session_payload(user, "Login successful")


@router.post("/register", status_code=status.HTTP_201_CREATED)
@allow_anonymous
async def register(request: RegisterRequest, response: Response):
    """
    Create a customer account

    Returns 422 with {"errors": [...]} when the email is taken or the
    password is too short or unconfirmed.
    """
    user = AuthService().register(request)
    set_api_key_cookie(response, user.api_key)
    return session_payload(user, "Registration successful")


@router.post("/logout")
async def logout(response: Response, user: User = Depends(get_current_user)):
    AuthService().logout(user)
    response.delete_cookie(settings.API_KEY_COOKIE)
    return {"success": True, "message": "Logged out"}
