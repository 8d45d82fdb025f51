"""
Unit tests for registration, login and logout
"""
import pytest
from unittest.mock import MagicMock

from storefront.core.errors import AuthenticationError, ValidationFailed
from storefront.domain.user import User, RegisterRequest
from storefront.repositories.user_repository import UserRepository
from storefront.services.auth_service import (
    AuthService, pwd_context, password_errors, generate_phone_code, CUSTOMER_ROLE,
)
from storefront.services.notification_service import Notifier


@pytest.fixture
def repository():
    repo = MagicMock(spec=UserRepository)
    repo.email_taken.return_value = False
    repo.create.side_effect = lambda values, role_name=None: User(id=42, roles=[role_name], **values)
    repo.update.side_effect = lambda user: user
    return repo


@pytest.fixture
def notifier():
    return MagicMock(spec=Notifier)


@pytest.fixture
def service(repository, notifier):
    return AuthService(repository=repository, notifier=notifier)


@pytest.fixture
def stored_user():
    return User(
        id=7,
        email='buyer@example.com',
        encrypted_password=pwd_context.hash('secret123'),
        api_key='key-7',
        roles=['customer'],
    )


class TestPasswordRules:

    def test_valid_password(self):
        assert password_errors('secret123', 'secret123') == []

    def test_short_password(self):
        assert password_errors('abc', None) == ["Password is too short (minimum is 6 characters)"]

    def test_confirmation_mismatch(self):
        assert password_errors('secret123', 'secret124') == ["Password confirmation doesn't match Password"]

    def test_phone_code_is_six_digits(self):
        code = generate_phone_code()
        assert len(code) == 6
        assert code.isdigit()


class TestRegister:

    def test_register_creates_customer(self, service, repository, notifier):
        user = service.register(RegisterRequest(
            email='new@example.com', password='secret123', password_confirmation='secret123',
        ))

        assert user.email == 'new@example.com'
        assert user.roles == [CUSTOMER_ROLE]
        assert user.api_key
        assert user.confirmation_token
        assert user.phone_verification_token is None
        assert pwd_context.verify('secret123', user.encrypted_password)
        notifier.send_confirmation_instructions.assert_called_once_with(user)

    def test_register_with_phone_prepares_code(self, service):
        user = service.register(RegisterRequest(
            email='new@example.com', password='secret123', phone_number='+15555550100',
        ))

        assert user.phone_number == '+15555550100'
        assert len(user.phone_verification_token) == 6

    def test_register_collects_all_errors(self, service, repository, notifier):
        repository.email_taken.return_value = True

        with pytest.raises(ValidationFailed) as exc_info:
            service.register(RegisterRequest(
                email='taken@example.com', password='abc', password_confirmation='abd',
                phone_number='call me',
            ))

        assert exc_info.value.errors == [
            "Email has already been taken",
            "Password is too short (minimum is 6 characters)",
            "Password confirmation doesn't match Password",
            "Phone number must be a valid phone number",
        ]
        repository.create.assert_not_called()
        notifier.send_confirmation_instructions.assert_not_called()


class TestLogin:

    def test_login(self, service, repository, stored_user):
        repository.find_by_email.return_value = stored_user

        user = service.login('buyer@example.com', 'secret123')

        assert user.api_key == 'key-7'
        repository.update.assert_not_called()
        repository.add_role.assert_not_called()

    def test_wrong_password(self, service, repository, stored_user):
        repository.find_by_email.return_value = stored_user

        with pytest.raises(AuthenticationError) as exc_info:
            service.login('buyer@example.com', 'wrong-password')

        assert exc_info.value.message == "Invalid email or password"

    def test_unknown_email(self, service, repository):
        repository.find_by_email.return_value = None

        with pytest.raises(AuthenticationError):
            service.login('nobody@example.com', 'secret123')

    def test_login_issues_missing_key_and_role(self, service, repository, stored_user):
        stored_user.api_key = None
        stored_user.roles = []
        repository.find_by_email.return_value = stored_user

        user = service.login('buyer@example.com', 'secret123')

        assert user.api_key
        assert user.roles == [CUSTOMER_ROLE]
        repository.update.assert_called_once()
        repository.add_role.assert_called_once_with(7, CUSTOMER_ROLE)

    def test_logout_rotates_key(self, service, repository, stored_user):
        service.logout(stored_user)

        assert stored_user.api_key != 'key-7'
        repository.update.assert_called_once_with(stored_user)
