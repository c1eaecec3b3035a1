"""Signed identity tokens for sessions and password resets."""

import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable
from uuid import UUID

import jwt

from src.core.config import Settings, get_settings
from src.models.user import User

ALGORITHM = "HS256"
REQUIRED_CLAIMS = ["sub", "userId", "iat", "exp", "purpose"]


class TokenPurpose(str, Enum):
    """What a token may be used for. A reset token never authenticates a request."""

    SESSION = "session"
    PASSWORD_RESET = "password_reset"


class TokenError(Exception):
    """Base class for token verification failures."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class TokenExpiredError(TokenError):
    """The token's expiry instant has passed."""


class MalformedTokenError(TokenError):
    """The token cannot be decoded or its claims are missing or mistyped."""


class TokenSignatureError(TokenError):
    """The token was not signed with our secret."""


@dataclass(frozen=True)
class TokenClaims:
    """Verified claims of an identity token.

    Attributes:
        subject: The email address the token was issued to.
        user_id: The user's id.
        issued_at: Issue time, seconds since the epoch.
        expires_at: Expiry time, seconds since the epoch. Always after issued_at.
        purpose: Session or password reset.
    """

    subject: str
    user_id: UUID
    issued_at: int
    expires_at: int
    purpose: TokenPurpose


class TokenService:
    """Issues and verifies HS256 identity tokens.

    The service holds no state besides the signing secret, the TTLs and a
    clock, so one instance can be shared across requests.
    """

    def __init__(
        self,
        secret: str,
        session_ttl_seconds: int = 36000,
        reset_ttl_seconds: int = 600,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if not secret:
            raise ValueError("Token signing secret must not be empty")
        self._secret = secret
        self._ttls = {
            TokenPurpose.SESSION: session_ttl_seconds,
            TokenPurpose.PASSWORD_RESET: reset_ttl_seconds,
        }
        self._clock = clock

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "TokenService":
        settings = settings or get_settings()
        return cls(
            secret=settings.jwt_secret,
            session_ttl_seconds=settings.session_token_ttl_seconds,
            reset_ttl_seconds=settings.reset_token_ttl_seconds,
        )

    def _now(self) -> int:
        return int(self._clock())

    def ttl_seconds(self, purpose: TokenPurpose) -> int:
        return self._ttls[purpose]

    def issue(self, user: User, purpose: TokenPurpose = TokenPurpose.SESSION) -> str:
        """Issue a signed token for a user.

        Args:
            user: The user the token identifies.
            purpose: Session (10 h by default) or password reset (10 min).

        Returns:
            str: Encoded JWT.
        """
        issued_at = self._now()
        payload = {
            "sub": user.email,
            "userId": str(user.id),
            "iat": issued_at,
            "exp": issued_at + self._ttls[purpose],
            "purpose": purpose.value,
        }
        return jwt.encode(payload, self._secret, algorithm=ALGORITHM)

    def issue_reset_token(self, user: User) -> str:
        return self.issue(user, TokenPurpose.PASSWORD_RESET)

    def verify(self, token: str, purpose: TokenPurpose = TokenPurpose.SESSION) -> TokenClaims:
        """Verify a token and return its claims.

        Expiry is checked against the service clock rather than by PyJWT, so
        tests can move time deterministically.

        Args:
            token: Encoded JWT.
            purpose: The purpose the caller expects the token to carry.

        Returns:
            TokenClaims: The verified claims.

        Raises:
            TokenSignatureError: If the signature does not match.
            MalformedTokenError: If the token cannot be decoded, a claim is
                missing or mistyped, or the purpose does not match.
            TokenExpiredError: If the expiry instant is not in the future.
        """
        if not token:
            raise MalformedTokenError("Token is empty")

        try:
            payload: dict[str, Any] = jwt.decode(
                token,
                self._secret,
                algorithms=[ALGORITHM],
                options={
                    "verify_signature": True,
                    "verify_exp": False,
                    "verify_iat": False,
                    "require": REQUIRED_CLAIMS,
                },
            )
        except jwt.InvalidSignatureError as e:
            raise TokenSignatureError("Invalid token signature") from e
        except jwt.MissingRequiredClaimError as e:
            raise MalformedTokenError(f"Token missing required claim: {e.claim}") from e
        except jwt.InvalidTokenError as e:
            raise MalformedTokenError(f"Invalid token format: {e}") from e

        claims = _parse_claims(payload)

        if claims.purpose != purpose:
            raise MalformedTokenError(f"Token purpose is {claims.purpose.value}, expected {purpose.value}")

        if claims.expires_at <= self._now():
            raise TokenExpiredError("Token has expired")

        return claims

    def validate_for_user(self, token: str, expected_subject: str) -> bool:
        """Check that a session token is valid and was issued to the given email."""
        try:
            claims = self.verify(token)
        except TokenError:
            return False
        return claims.subject.lower() == expected_subject.lower()

    def validate_ownership(self, token: str, expected_user_id: UUID) -> bool:
        """Check that a session token is valid and belongs to the given user id."""
        try:
            claims = self.verify(token)
        except TokenError:
            return False
        return claims.user_id == expected_user_id


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _parse_claims(payload: dict[str, Any]) -> TokenClaims:
    subject = payload["sub"]
    if not isinstance(subject, str) or not subject:
        raise MalformedTokenError("Claim 'sub' must be a non-empty string")

    try:
        user_id = UUID(str(payload["userId"]))
    except ValueError as e:
        raise MalformedTokenError("Claim 'userId' must be a UUID") from e

    issued_at, expires_at = payload["iat"], payload["exp"]
    if not _is_int(issued_at) or not _is_int(expires_at):
        raise MalformedTokenError("Claims 'iat' and 'exp' must be integers")
    if expires_at <= issued_at:
        raise MalformedTokenError("Token expires before it was issued")

    try:
        purpose = TokenPurpose(payload["purpose"])
    except ValueError as e:
        raise MalformedTokenError(f"Unknown token purpose: {payload['purpose']!r}") from e

    return TokenClaims(
        subject=subject,
        user_id=user_id,
        issued_at=issued_at,
        expires_at=expires_at,
        purpose=purpose,
    )
