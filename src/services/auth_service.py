"""Authentication business logic service."""

import logging
from typing import Any, Callable

from supabase import Client

from src.api.middleware.error_handler import AuthenticationError, ValidationError
from src.core.supabase import create_auth_client, get_supabase_client
from src.models.user import User
from src.repositories.catalog_repository import SupabaseUserRepository, UserRepository
from src.services.token_service import TokenError, TokenPurpose, TokenService

logger = logging.getLogger(__name__)

RESET_REQUESTED_MESSAGE = "If an account exists with this email, a password reset link has been sent."

ResetTokenDelivery = Callable[[User, str], None]


def log_reset_token_delivery(user: User, token: str) -> None:
    """Default delivery hook. Email delivery belongs to the notification subsystem."""
    logger.info("Password reset token issued for user %s", user.id)


class AuthService:
    """Service for credential login and password resets.

    Passwords are checked by Supabase Auth; the session token handed back to
    the client is our own, issued by TokenService.
    """

    def __init__(
        self,
        users: UserRepository | None = None,
        token_service: TokenService | None = None,
        auth_client_factory: Callable[[], Client] = create_auth_client,
        admin_client: Client | None = None,
        reset_delivery: ResetTokenDelivery = log_reset_token_delivery,
    ) -> None:
        """Initialize auth service.

        Uses a fresh client per login (auth_client_factory) so the session
        stored by sign_in_with_password never leaks into the shared client.
        """
        self.users = users or SupabaseUserRepository()
        self.token_service = token_service or TokenService.from_settings()
        self.auth_client_factory = auth_client_factory
        self._admin_client = admin_client
        self.reset_delivery = reset_delivery

    @property
    def admin_client(self) -> Client:
        if self._admin_client is None:
            self._admin_client = get_supabase_client()
        return self._admin_client

    async def login(self, email: str, password: str) -> dict[str, Any]:
        """Login user with email and password.

        Args:
            email: User's email address.
            password: User's password.

        Returns:
            dict: access_token, user_id, email and expires_in.

        Raises:
            AuthenticationError: If the credentials are wrong or the account
                cannot sign in.
        """
        try:
            response = self.auth_client_factory().auth.sign_in_with_password(
                {
                    "email": email,
                    "password": password,
                }
            )
        except Exception as e:
            error_msg = str(e)
            logger.warning("Login failed for %s: %s", email, error_msg)

            if "email not confirmed" in error_msg.lower() or "not verified" in error_msg.lower():
                raise AuthenticationError("Please verify your email before logging in") from e
            raise AuthenticationError("Invalid email or password") from e

        if not response.user:
            raise AuthenticationError("Invalid email or password")

        user = self.users.get_by_email(email)
        if not user or not user.is_active:
            logger.warning("Login refused for %s: account missing or not active", email)
            raise AuthenticationError("Invalid email or password")

        if not user.is_verified:
            raise AuthenticationError("Please verify your email before logging in")

        token = self.token_service.issue(user)
        logger.info("User logged in: %s", user.id)

        return {
            "access_token": token,
            "user_id": user.id,
            "email": user.email,
            "expires_in": self.token_service.ttl_seconds(TokenPurpose.SESSION),
        }

    async def request_password_reset(self, email: str) -> dict[str, Any]:
        """Issue a password reset token if the account exists.

        Always returns the same response so callers cannot probe which
        emails are registered.
        """
        user = self.users.get_by_email(email)
        if user and user.is_active:
            token = self.token_service.issue_reset_token(user)
            self.reset_delivery(user, token)
        else:
            logger.info("Password reset requested for unknown or inactive account")

        return {
            "email_sent": True,
            "message": RESET_REQUESTED_MESSAGE,
        }

    async def reset_password(self, token: str, new_password: str) -> dict[str, Any]:
        """Set a new password using a reset token.

        Raises:
            ValidationError: If the token is invalid, expired, not a reset
                token, or the password update fails.
        """
        try:
            claims = self.token_service.verify(token, TokenPurpose.PASSWORD_RESET)
        except TokenError as e:
            logger.warning("Rejected password reset token: %s", e.message)
            raise ValidationError("Invalid or expired password reset token") from e

        user = self.users.get(claims.user_id)
        if not user or user.email.lower() != claims.subject.lower():
            raise ValidationError("Invalid or expired password reset token")

        try:
            self.admin_client.auth.admin.update_user_by_id(str(user.id), {"password": new_password})
        except Exception as e:
            logger.error("Password update failed for user %s: %s", user.id, str(e))
            raise ValidationError("Failed to update password") from e

        logger.info("Password reset for user %s", user.id)
        return {"message": "Password has been reset successfully. You can now log in."}
