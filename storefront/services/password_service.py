"""
Password Recovery Service
Reset tokens sent by email and the password change that consumes them
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from storefront.core.config import settings
from storefront.core.errors import NotFoundError, ValidationFailed
from storefront.domain.user import User
from storefront.repositories.user_repository import UserRepository
from storefront.services.auth_service import pwd_context, password_errors, generate_token
from storefront.services.notification_service import Notifier, notifier as default_notifier

logger = logging.getLogger(__name__)


class PasswordService:

    def __init__(self, repository: Optional[UserRepository] = None, notifier: Optional[Notifier] = None):
        self.repository = repository or UserRepository()
        self.notifier = notifier or default_notifier

    def send_reset_instructions(self, email: str) -> User:
        """
        Issue a reset token and mail the reset link

        Raises:
            NotFoundError: no account for that email
        """
        user = self.repository.find_by_email(email)
        if not user:
            raise NotFoundError("Email not found")

        user.reset_password_token = generate_token()
        user.reset_password_sent_at = datetime.now(timezone.utc)
        self.repository.update(user)
        self.notifier.send_reset_password_instructions(user)
        logger.info(f"Password reset requested for user {user.id}")
        return user

    def reset_password(
        self,
        token: str,
        password: str,
        password_confirmation: Optional[str],
        now: Optional[datetime] = None,
    ) -> User:
        """
        Change the password with a reset token

        Raises:
            ValidationFailed: unknown or expired token, weak or unconfirmed password
        """
        user = self.repository.find_by_reset_password_token(token)
        if not user:
            raise ValidationFailed(["Reset password token is invalid"])

        now = now or datetime.now(timezone.utc)
        sent_at = user.reset_password_sent_at
        if sent_at is not None and sent_at.tzinfo is None:
            sent_at = sent_at.replace(tzinfo=timezone.utc)
        if sent_at is None or sent_at < now - timedelta(hours=settings.RESET_PASSWORD_WITHIN_HOURS):
            raise ValidationFailed(["Reset password token has expired, please request a new one"])

        errors = password_errors(password, password_confirmation)
        if errors:
            raise ValidationFailed(errors)

        user.encrypted_password = pwd_context.hash(password)
        user.reset_password_token = None
        user.reset_password_sent_at = None
        self.repository.update(user)
        logger.info(f"Password reset for user {user.id}")
        return user
