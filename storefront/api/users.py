"""
Users API Endpoints
- /profile: the signed-in user with orders, addresses and spending
- /addresses: address book
- /users/{id}: show / update (own account, or any account for admins)
"""
from fastapi import APIRouter, Depends, status
from pydantic import BaseModel

from storefront.core.auth import get_current_user
from storefront.core.errors import AuthorizationError, NotFoundError, ValidationFailed
from storefront.domain.order import Address, AddressAttributes
from storefront.domain.user import User, UserUpdate, PHONE_PATTERN
from storefront.repositories.order_repository import OrderRepository
from storefront.repositories.user_repository import UserRepository
from storefront.services.auth_service import generate_phone_code

router = APIRouter()


class AddressRequest(BaseModel):
    address: AddressAttributes
    default: bool = False
    default_billing: bool = True


class UserUpdateRequest(BaseModel):
    user: UserUpdate


def user_payload(user: User) -> dict:
    data = user.to_dict()
    data['orders'] = [order.to_dict(include=set()) for order in OrderRepository().find_for_user(user.id)]
    data['addresses'] = [entry.to_dict() for entry in UserRepository().find_addresses(user.id)]
    return data


def find_accessible_user(user_id: int, current_user: User) -> User:
    if current_user.id != user_id and not current_user.is_admin:
        raise AuthorizationError()
    user = UserRepository().find_by_id(user_id)
    if not user:
        raise NotFoundError("User not found")
    return user


@router.get("/profile")
async def profile(user: User = Depends(get_current_user)):
    stats = UserRepository().order_stats(user.id)
    return {
        "user": user_payload(user),
        "orders_count": stats['orders_count'],
        "total_spent": stats['total_spent'],
    }


@router.get("/addresses")
async def list_addresses(user: User = Depends(get_current_user)):
    return [entry.to_dict() for entry in UserRepository().find_addresses(user.id)]


@router.post("/addresses", status_code=status.HTTP_201_CREATED)
async def create_address(request: AddressRequest, user: User = Depends(get_current_user)):
    """Save an address in the user's address book"""
    address = Address(**request.address.model_dump())
    errors = address.validation_errors("Address")
    if errors:
        raise ValidationFailed(errors)

    entry = UserRepository().add_address(
        user.id, address, default=request.default, default_billing=request.default_billing
    )
    return entry.to_dict()


@router.get("/users/{user_id}")
async def get_user(user_id: int, current_user: User = Depends(get_current_user)):
    return user_payload(find_accessible_user(user_id, current_user))


@router.put("/users/{user_id}")
async def update_user(user_id: int, request: UserUpdateRequest, current_user: User = Depends(get_current_user)):
    """
    Update name, email or phone number

    A new phone number must be verified again.
    """
    user = find_accessible_user(user_id, current_user)
    changes = request.user.model_dump(exclude_unset=True)
    repo = UserRepository()

    errors = []
    email = changes.get('email')
    if email and repo.email_taken(str(email), exclude_user_id=user.id):
        errors.append("Email has already been taken")
    phone_number = changes.get('phone_number')
    if phone_number and not PHONE_PATTERN.match(phone_number):
        errors.append("Phone number must be a valid phone number")
    if errors:
        raise ValidationFailed(errors)

    if 'phone_number' in changes and changes['phone_number'] != user.phone_number:
        user.phone_verified = False
        user.phone_verification_token = generate_phone_code() if changes['phone_number'] else None
        user.phone_verification_sent_at = None

    for field, value in changes.items():
        if field == 'email':
            if value is None:
                continue
            value = str(value)
        setattr(user, field, value)

    repo.update(user)
    return user_payload(user)
