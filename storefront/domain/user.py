"""
User Domain Models

Identity, credentials (hashed password + opaque API key) and the
email/phone verification state.
"""
import re
from pydantic import BaseModel, Field, ConfigDict, EmailStr
from typing import Optional, List
from datetime import datetime, timedelta, timezone

from storefront.domain.order import Address

PHONE_PATTERN = re.compile(r"^\+?[1-9]\d{1,14}$")


class User(BaseModel):
    """
    User domain model

    Fields:
        api_key: Opaque credential; valid until rotated (logout rotates it)
        roles: Role names, e.g. ["customer"] or ["admin"]
        confirmed_at: Set once the email confirmation token was accepted
        phone_verified: Set once the SMS code was accepted
    """

    id: int = Field(..., description="User ID")
    email: str = Field(..., description="Login email")
    encrypted_password: Optional[str] = Field(None, description="Password hash", repr=False)
    api_key: Optional[str] = Field(None, description="Opaque API key", repr=False)
    firstname: Optional[str] = None
    lastname: Optional[str] = None
    phone_number: Optional[str] = None
    roles: List[str] = Field(default_factory=list)

    confirmation_token: Optional[str] = Field(None, repr=False)
    confirmation_sent_at: Optional[datetime] = None
    confirmed_at: Optional[datetime] = None
    phone_verified: bool = False
    phone_verification_token: Optional[str] = Field(None, repr=False)
    phone_verification_sent_at: Optional[datetime] = None
    reset_password_token: Optional[str] = Field(None, repr=False)
    reset_password_sent_at: Optional[datetime] = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @property
    def is_admin(self) -> bool:
        return 'admin' in self.roles

    @property
    def email_confirmed(self) -> bool:
        return self.confirmed_at is not None

    @property
    def fully_verified(self) -> bool:
        """
        Email and phone both present: the email must be confirmed.
        Only a phone number: the phone must be verified.
        Otherwise: the email must be confirmed.
        """
        if self.email and self.phone_number:
            return self.email_confirmed
        if self.phone_number:
            return self.phone_verified
        return self.email_confirmed

    def can_resend_phone_verification(self, interval_seconds: int, now: Optional[datetime] = None) -> bool:
        if self.phone_verification_sent_at is None:
            return True
        now = now or datetime.now(timezone.utc)
        sent_at = self.phone_verification_sent_at
        if sent_at.tzinfo is None:
            sent_at = sent_at.replace(tzinfo=timezone.utc)
        return sent_at < now - timedelta(seconds=interval_seconds)

    def to_dict(self) -> dict:
        """Public representation (no secrets)"""
        data = self.model_dump(include={
            'id', 'email', 'firstname', 'lastname', 'phone_number', 'roles',
            'confirmed_at', 'phone_verified', 'created_at', 'updated_at',
        })
        data['email_confirmed'] = self.email_confirmed
        data['fully_verified'] = self.fully_verified
        return data


class UserAddress(BaseModel):
    """Address book entry"""

    address: Address
    default: bool = False
    default_billing: bool = False

    def to_dict(self) -> dict:
        data = self.address.model_dump()
        data['user_address'] = {
            'default_billing': self.default_billing,
            'default_shipping': self.default,
        }
        return data


# Request schemas

class RegisterRequest(BaseModel):
    email: EmailStr
    password: str
    password_confirmation: Optional[str] = None
    phone_number: Optional[str] = None


class LoginRequest(BaseModel):
    email: str
    password: str


class UserUpdate(BaseModel):
    email: Optional[EmailStr] = None
    firstname: Optional[str] = None
    lastname: Optional[str] = None
    phone_number: Optional[str] = None
