"""Request identity resolution from bearer tokens.

Resolution never rejects a request: a missing or unusable credential simply
leaves the request anonymous. Route dependencies decide whether anonymous is
acceptable.
"""

import logging
from functools import lru_cache
from typing import Any, Callable

from fastapi import Request, Response

from src.repositories.catalog_repository import SupabaseUserRepository, UserRepository
from src.schemas.auth import Identity
from src.services.token_service import TokenError, TokenService

logger = logging.getLogger(__name__)


def extract_bearer_token(authorization: str | None) -> str | None:
    """Extract the token from an "Authorization: Bearer <token>" header value.

    Args:
        authorization: Raw header value, possibly None.

    Returns:
        str | None: The token, or None if the header is absent or not a
            well-formed bearer credential.
    """
    if not authorization:
        return None

    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None

    return parts[1]


class IdentityResolver:
    """Turns an Authorization header into an Identity, or None."""

    def __init__(self, token_service: TokenService, users: UserRepository) -> None:
        self.token_service = token_service
        self.users = users

    def resolve(self, authorization: str | None) -> Identity | None:
        token = extract_bearer_token(authorization)
        if token is None:
            return None

        try:
            claims = self.token_service.verify(token)
        except TokenError as e:
            logger.info("Ignoring unusable bearer token: %s", e.message)
            return None

        try:
            user = self.users.get_by_email(claims.subject)
        except Exception:
            # Anonymous, so public routes keep working while the user store is down.
            logger.exception("User lookup failed while resolving bearer token")
            return None

        if user is None:
            logger.info("Token subject has no user record")
            return None

        if user.id != claims.user_id:
            logger.warning("Token userId does not match user %s", user.id)
            return None

        if not user.is_active:
            logger.info("Token for inactive user %s", user.id)
            return None

        return Identity(user_id=user.id, email=user.email, authorities=list(user.authorities))


@lru_cache
def get_identity_resolver() -> IdentityResolver:
    return IdentityResolver(TokenService.from_settings(), SupabaseUserRepository())


async def identity_resolver_middleware(request: Request, call_next: Callable[[Request], Any]) -> Response:
    """Attach the resolved identity (or None) to request.state.identity.

    Tests and alternative wiring can place a resolver on app.state.identity_resolver.
    """
    authorization = request.headers.get("Authorization")
    if authorization is None:
        request.state.identity = None
        return await call_next(request)

    resolver = getattr(request.app.state, "identity_resolver", None) or get_identity_resolver()
    request.state.identity = resolver.resolve(authorization)
    return await call_next(request)
