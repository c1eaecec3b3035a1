"""Global error handling middleware for consistent error responses."""

import logging
import traceback
from typing import Any, Callable

from fastapi import Request, Response, status
from fastapi.responses import JSONResponse

from src.schemas.common import ErrorResponse

logger = logging.getLogger(__name__)


class APIError(Exception):
    """Base exception for API errors.

    Use this class to raise application-specific errors that should
    be returned to the client with a specific status code and message.
    """

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        error_type: str = "api_error",
        details: list[dict[str, Any]] | None = None,
    ) -> None:
        """Initialize API error.

        Args:
            message: Human-readable error message.
            status_code: HTTP status code to return.
            error_type: Error category/type for client handling.
            details: Optional additional error details.
        """
        self.message = message
        self.status_code = status_code
        self.error_type = error_type
        self.details = details
        super().__init__(message)


class NotFoundError(APIError):
    """Resource not found error."""

    def __init__(self, message: str = "Resource not found", details: list[dict[str, Any]] | None = None) -> None:
        super().__init__(
            message=message,
            status_code=status.HTTP_404_NOT_FOUND,
            error_type="not_found",
            details=details,
        )


class ValidationError(APIError):
    """Business-rule validation error (bad price, self-bid, self-message)."""

    def __init__(
        self,
        message: str = "Validation error",
        details: list[dict[str, Any]] | None = None,
        error_type: str = "validation_error",
    ) -> None:
        super().__init__(
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            error_type=error_type,
            details=details,
        )


class InvalidBidderError(ValidationError):
    """The bidder owns the listing they are bidding on."""

    def __init__(self, message: str = "You cannot bid on your own listing") -> None:
        super().__init__(message=message, error_type="invalid_bidder")


class BiddingDisabledError(ValidationError):
    """The listing does not accept bids."""

    def __init__(self, message: str = "This listing does not allow bidding") -> None:
        super().__init__(message=message, error_type="bidding_disabled")


class AuthenticationError(APIError):
    """Authentication failure error (no usable credential)."""

    def __init__(self, message: str = "Authentication required", details: list[dict[str, Any]] | None = None) -> None:
        super().__init__(
            message=message,
            status_code=status.HTTP_401_UNAUTHORIZED,
            error_type="authentication_error",
            details=details,
        )


class AuthorizationError(APIError):
    """Authorization failure error (valid credential, wrong owner)."""

    def __init__(self, message: str = "Access denied", details: list[dict[str, Any]] | None = None) -> None:
        super().__init__(
            message=message,
            status_code=status.HTTP_403_FORBIDDEN,
            error_type="authorization_error",
            details=details,
        )


class ConflictError(APIError):
    """The action collides with existing state (duplicate bid, checkout in flight)."""

    def __init__(
        self,
        message: str = "Conflict",
        details: list[dict[str, Any]] | None = None,
        error_type: str = "conflict",
    ) -> None:
        super().__init__(
            message=message,
            status_code=status.HTTP_409_CONFLICT,
            error_type=error_type,
            details=details,
        )


class InvalidTransitionError(ConflictError):
    """A state transition that the bid lifecycle does not allow from the current status."""

    def __init__(self, message: str = "Invalid status transition") -> None:
        super().__init__(message=message, error_type="invalid_transition")


class PreconditionFailedError(ConflictError):
    """The target is not in a status that permits the action (e.g. paying a pending bid)."""

    def __init__(self, message: str = "Precondition failed") -> None:
        super().__init__(message=message, error_type="precondition_failed")


class WebhookSignatureError(APIError):
    """Webhook signature missing or invalid; nothing was processed."""

    def __init__(self, message: str = "Invalid signature") -> None:
        super().__init__(
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            error_type="invalid_signature",
        )


class WebhookPayloadError(APIError):
    """Webhook body could not be deserialized into an event; nothing was processed."""

    def __init__(self, message: str = "Malformed webhook payload") -> None:
        super().__init__(
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            error_type="invalid_payload",
        )


class UpstreamError(APIError):
    """The payment processor failed. The client only sees a generic message."""

    def __init__(self, message: str = "Payment processor unavailable, please try again later") -> None:
        super().__init__(
            message=message,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error_type="upstream_error",
        )


def create_error_response(
    error_type: str,
    message: str,
    status_code: int,
    details: list[dict[str, Any]] | None = None,
    request_id: str | None = None,
) -> JSONResponse:
    """Create a standardized JSON error response.

    Args:
        error_type: Error category for client handling.
        message: Human-readable error description.
        status_code: HTTP status code.
        details: Optional error details.
        request_id: Optional request ID for tracing.

    Returns:
        JSONResponse: Formatted error response.
    """
    error_response = ErrorResponse.from_exception(
        error_type=error_type,
        message=message,
        details=details,
        request_id=request_id,
    )
    return JSONResponse(
        status_code=status_code,
        content=error_response.model_dump(mode="json", exclude_none=True),
    )


async def error_handler_middleware(request: Request, call_next: Callable[[Request], Any]) -> Response:
    """Middleware to catch and format all exceptions.

    Ensures consistent error response format across the application.
    Logs full stack traces for debugging while returning safe messages to clients.

    Args:
        request: The incoming request.
        call_next: Next middleware or route handler.

    Returns:
        Response: Either the successful response or formatted error response.
    """
    request_id = request.headers.get("X-Request-ID")

    try:
        return await call_next(request)

    except APIError as e:
        if e.status_code >= 500:
            logger.error(
                "API error: %s - %s\n%s",
                e.error_type,
                e.message,
                traceback.format_exc(),
                extra={"request_id": request_id, "status_code": e.status_code},
            )
        else:
            logger.warning(
                "API error: %s - %s",
                e.error_type,
                e.message,
                extra={"request_id": request_id, "status_code": e.status_code},
            )
        response = create_error_response(
            error_type=e.error_type,
            message=e.message,
            status_code=e.status_code,
            details=e.details,
            request_id=request_id,
        )
        if isinstance(e, AuthenticationError):
            response.headers["WWW-Authenticate"] = "Bearer"
        return response

    except Exception as e:
        # Unexpected exceptions - log full stack trace
        logger.error(
            "Unhandled exception: %s\n%s",
            str(e),
            traceback.format_exc(),
            extra={"request_id": request_id},
        )
        return create_error_response(
            error_type="internal_error",
            message="An unexpected error occurred",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            request_id=request_id,
        )
