"""Authorization decisions for protected operations.

The identity resolver never rejects a request; this module is where a missing
identity becomes a 401 and a non-owner becomes a 403.
"""

from enum import Enum
from typing import Iterable
from uuid import UUID

from src.api.middleware.error_handler import AuthenticationError, AuthorizationError
from src.schemas.auth import Identity


class RoutePolicy(str, Enum):
    """Access policy attached to an operation."""

    PUBLIC = "public"
    AUTHENTICATED = "authenticated"
    OWNER = "owner"


def authorize(
    identity: Identity | None,
    policy: RoutePolicy,
    owner_ids: Iterable[UUID] = (),
) -> Identity | None:
    """Apply an access policy to the resolved identity.

    Args:
        identity: The request identity, or None for anonymous requests.
        policy: The operation's access policy.
        owner_ids: Users that own the target resource. Used by OWNER only.

    Returns:
        Identity | None: The identity the operation runs as.

    Raises:
        AuthenticationError: If the policy needs an identity and there is none.
        AuthorizationError: If the policy is OWNER and the identity owns nothing.
    """
    if policy == RoutePolicy.PUBLIC:
        return identity

    if identity is None:
        raise AuthenticationError()

    if policy == RoutePolicy.OWNER and identity.user_id not in set(owner_ids):
        raise AuthorizationError("You do not have access to this resource")

    return identity


def ensure_owner(user_id: UUID | None, *owner_ids: UUID, message: str = "You do not have access to this resource") -> None:
    """Raise AuthorizationError unless user_id is one of owner_ids.

    Services call this after loading the target, once the caller is known to
    be authenticated.
    """
    if user_id is None or user_id not in owner_ids:
        raise AuthorizationError(message)
