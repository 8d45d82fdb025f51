"""
Verification Service
Email confirmation tokens and phone verification codes
"""
import logging
from datetime import datetime, timezone
from typing import Optional, Tuple

from storefront.core.config import settings
from storefront.core.errors import NotFoundError, ValidationFailed, ThrottledError
from storefront.domain.user import User
from storefront.repositories.user_repository import UserRepository
from storefront.services.auth_service import generate_phone_code, generate_token
from storefront.services.notification_service import Notifier, notifier as default_notifier

logger = logging.getLogger(__name__)


class VerificationService:
    """
    Confirms emails and phone numbers

    Phone codes can only be resent once per PHONE_RESEND_INTERVAL_SECONDS.
    """

    def __init__(
        self,
        repository: Optional[UserRepository] = None,
        notifier: Optional[Notifier] = None,
        resend_interval: Optional[int] = None,
    ):
        self.repository = repository or UserRepository()
        self.notifier = notifier or default_notifier
        self.resend_interval = resend_interval or settings.PHONE_RESEND_INTERVAL_SECONDS

    def confirm_email(self, token: str) -> User:
        user = self.repository.find_by_confirmation_token(token)
        if not user:
            raise ValidationFailed(["Confirmation token is invalid"])

        user.confirmed_at = datetime.now(timezone.utc)
        user.confirmation_token = None
        self.repository.update(user)
        logger.info(f"User {user.id} confirmed email")
        return user

    def resend_confirmation(self, email: str) -> bool:
        """Returns False when the email was already confirmed"""
        user = self.repository.find_by_email(email)
        if not user:
            raise NotFoundError("User not found")
        if user.email_confirmed:
            return False

        if not user.confirmation_token:
            user.confirmation_token = generate_token()
        user.confirmation_sent_at = datetime.now(timezone.utc)
        self.repository.update(user)
        self.notifier.send_confirmation_instructions(user)
        return True

    def verify_phone(self, phone_number: str, token: str) -> Tuple[User, bool]:
        """
        Returns:
            (user, already_verified)

        Raises:
            NotFoundError: no user with that phone number
            ValidationFailed: wrong code
        """
        user = self._find_by_phone(phone_number)
        if user.phone_verified:
            return user, True

        if not token or user.phone_verification_token != token:
            raise ValidationFailed(["Invalid or expired verification token"])

        user.phone_verified = True
        user.phone_verification_token = None
        self.repository.update(user)
        logger.info(f"User {user.id} verified phone")
        return user, False

    def resend_phone(self, phone_number: str, now: Optional[datetime] = None) -> bool:
        """
        Send a new phone code; returns False when the phone is already verified

        Raises:
            ThrottledError: the previous code was sent less than the resend interval ago
        """
        user = self._find_by_phone(phone_number)
        if user.phone_verified:
            return False

        if not user.can_resend_phone_verification(self.resend_interval, now=now):
            raise ThrottledError(
                "Please wait before requesting another verification code",
                retry_after=self.resend_interval,
            )

        self.send_phone_verification(user, now=now)
        return True

    def send_phone_verification(self, user: User, now: Optional[datetime] = None):
        if not user.phone_verification_token:
            user.phone_verification_token = generate_phone_code()
        user.phone_verification_sent_at = now or datetime.now(timezone.utc)
        self.repository.update(user)
        self.notifier.send_phone_verification(user)

    def _find_by_phone(self, phone_number: str) -> User:
        user = self.repository.find_by_phone_number(phone_number)
        if not user:
            raise NotFoundError("User not found")
        return user
