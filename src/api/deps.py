"""FastAPI dependency injection functions."""

from typing import Annotated

from fastapi import Depends, Request

from src.api.guard import RoutePolicy, authorize
from src.schemas.auth import Identity
from src.services.auth_service import AuthService
from src.services.bid_service import BidService
from src.services.checkout_service import CheckoutService
from src.services.message_service import MessageService
from src.services.webhook_service import WebhookService


async def get_identity(request: Request) -> Identity | None:
    """Return the identity resolved by the identity middleware, or None.

    Use this for public endpoints that behave differently for signed-in users.
    """
    identity = getattr(request.state, "identity", None)
    return authorize(identity, RoutePolicy.PUBLIC)


async def require_identity(request: Request) -> Identity:
    """Return the request identity or fail with 401.

    Raises:
        AuthenticationError: If the request carries no usable credential.
    """
    identity = getattr(request.state, "identity", None)
    return authorize(identity, RoutePolicy.AUTHENTICATED)


# Type aliases for cleaner dependency injection
OptionalIdentity = Annotated[Identity | None, Depends(get_identity)]
CurrentIdentity = Annotated[Identity, Depends(require_identity)]


# Service providers, overridable through app.dependency_overrides


def get_bid_service() -> BidService:
    return BidService()


def get_checkout_service() -> CheckoutService:
    return CheckoutService()


def get_webhook_service() -> WebhookService:
    return WebhookService()


def get_auth_service() -> AuthService:
    return AuthService()


def get_message_service() -> MessageService:
    return MessageService()


BidServiceDep = Annotated[BidService, Depends(get_bid_service)]
CheckoutServiceDep = Annotated[CheckoutService, Depends(get_checkout_service)]
WebhookServiceDep = Annotated[WebhookService, Depends(get_webhook_service)]
AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]
MessageServiceDep = Annotated[MessageService, Depends(get_message_service)]
