"""
Authentication Service
Registration, login and logout with opaque API keys

Passwords are hashed with bcrypt through passlib. The API key is a random
token stored on the user row; it stays valid until logout rotates it.
"""
import logging
import secrets
from datetime import datetime, timezone
from typing import List, Optional

from passlib.context import CryptContext

from storefront.core.config import settings
from storefront.core.errors import AuthenticationError, ValidationFailed
from storefront.domain.user import User, RegisterRequest, PHONE_PATTERN
from storefront.repositories.user_repository import UserRepository
from storefront.services.notification_service import Notifier, notifier as default_notifier

logger = logging.getLogger(__name__)

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

CUSTOMER_ROLE = "customer"


def generate_api_key() -> str:
    return secrets.token_hex(24)


def generate_token() -> str:
    """URL-safe token for confirmation and password reset links"""
    return secrets.token_urlsafe(20)


def generate_phone_code() -> str:
    """Six digit SMS code"""
    return f"{secrets.randbelow(10 ** 6):06d}"


def password_errors(password: Optional[str], confirmation: Optional[str]) -> List[str]:
    errors = []
    if not password or len(password) < settings.MIN_PASSWORD_LENGTH:
        errors.append(f"Password is too short (minimum is {settings.MIN_PASSWORD_LENGTH} characters)")
    if confirmation is not None and confirmation != password:
        errors.append("Password confirmation doesn't match Password")
    return errors


class AuthService:

    def __init__(self, repository: Optional[UserRepository] = None, notifier: Optional[Notifier] = None):
        self.repository = repository or UserRepository()
        self.notifier = notifier or default_notifier

    def register(self, request: RegisterRequest) -> User:
        """
        Create a customer account

        The new user gets an API key, the customer role and an email
        confirmation token; a phone verification code is prepared when a
        phone number was given.

        Raises:
            ValidationFailed: email taken, weak password or malformed phone number
        """
        email = str(request.email).strip()
        errors = []
        if self.repository.email_taken(email):
            errors.append("Email has already been taken")
        errors.extend(password_errors(request.password, request.password_confirmation))
        if request.phone_number and not PHONE_PATTERN.match(request.phone_number):
            errors.append("Phone number must be a valid phone number")
        if errors:
            raise ValidationFailed(errors)

        now = datetime.now(timezone.utc)
        values = {
            'email': email,
            'encrypted_password': pwd_context.hash(request.password),
            'api_key': generate_api_key(),
            'confirmation_token': generate_token(),
            'confirmation_sent_at': now,
        }
        if request.phone_number:
            values['phone_number'] = request.phone_number
            values['phone_verification_token'] = generate_phone_code()

        user = self.repository.create(values, role_name=CUSTOMER_ROLE)
        self.notifier.send_confirmation_instructions(user)
        logger.info(f"User {user.id} registered")
        return user

    def authenticate(self, email: str, password: str) -> Optional[User]:
        user = self.repository.find_by_email(email)
        if not user or not user.encrypted_password:
            return None
        if not pwd_context.verify(password, user.encrypted_password):
            return None
        return user

    def login(self, email: str, password: str) -> User:
        """
        Check credentials and make sure the user has an API key and a role

        Raises:
            AuthenticationError: unknown email or wrong password
        """
        user = self.authenticate(email, password)
        if not user:
            logger.info(f"Failed login for {email}")
            raise AuthenticationError("Invalid email or password")

        if not user.api_key:
            user.api_key = generate_api_key()
            user = self.repository.update(user)

        if not user.roles:
            self.repository.add_role(user.id, CUSTOMER_ROLE)
            user.roles = [CUSTOMER_ROLE]

        logger.info(f"User {user.id} logged in")
        return user

    def logout(self, user: User) -> User:
        """Rotate the API key so the current one stops working"""
        user.api_key = generate_api_key()
        self.repository.update(user)
        logger.info(f"User {user.id} logged out, API key rotated")
        return user
