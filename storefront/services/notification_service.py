"""
Notification Service
Delivers account emails and SMS codes

No mail or SMS provider is wired in: messages are written to the log so they
can be picked up in development and tests.
"""
import logging

from storefront.core.config import settings
from storefront.domain.user import User

logger = logging.getLogger(__name__)


class Notifier:
    """Logging delivery for confirmation, reset and phone verification messages"""

    def __init__(self, from_email: str = None, frontend_url: str = None):
        self.from_email = from_email or settings.DEFAULT_FROM_EMAIL
        self.frontend_url = (frontend_url or settings.FRONTEND_URL).rstrip("/")

    def send_email(self, to: str, subject: str, body: str) -> bool:
        logger.info(f"[mail] from={self.from_email} to={to} subject={subject!r}\n{body}")
        return True

    def send_sms(self, phone_number: str, message: str) -> bool:
        logger.info(f"[sms] to={phone_number} message={message!r}")
        return True

    def send_confirmation_instructions(self, user: User) -> bool:
        link = f"{self.frontend_url}/confirm-email?confirmation_token={user.confirmation_token}"
        return self.send_email(
            user.email,
            "Confirmation instructions",
            f"Welcome {user.email}!\n\nConfirm your account email through the link below:\n{link}",
        )

    def send_reset_password_instructions(self, user: User) -> bool:
        link = f"{self.frontend_url}/reset-password?reset_password_token={user.reset_password_token}"
        return self.send_email(
            user.email,
            "Reset password instructions",
            f"Someone has requested a link to change your password:\n{link}\n\n"
            "If you didn't request this, please ignore this email.",
        )

    def send_phone_verification(self, user: User) -> bool:
        return self.send_sms(
            user.phone_number,
            f"Your verification code is: {user.phone_verification_token}. "
            "This code will expire in 10 minutes.",
        )


notifier = Notifier()
