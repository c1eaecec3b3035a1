"""Order and payment API routes."""

from uuid import UUID

from fastapi import APIRouter, status

from src.api.deps import CheckoutServiceDep, CurrentIdentity
from src.api.guard import RoutePolicy, authorize
from src.schemas.checkout import CheckoutResponse, OrderListResponse, OrderResponse, PaymentStatusResponse

router = APIRouter(prefix="/orders", tags=["orders"])


@router.get(
    "",
    response_model=OrderListResponse,
    summary="List my orders",
    description="Returns all orders for the authenticated user.",
)
async def list_orders(identity: CurrentIdentity, service: CheckoutServiceDep) -> OrderListResponse:
    orders = await service.list_orders(identity.user_id)
    return OrderListResponse(items=[OrderResponse.model_validate(order) for order in orders])


@router.get(
    "/user/{user_id}",
    response_model=OrderListResponse,
    summary="List a user's orders",
    description="Returns a user's orders. Users may only list their own.",
)
async def list_user_orders(
    user_id: UUID,
    identity: CurrentIdentity,
    service: CheckoutServiceDep,
) -> OrderListResponse:
    authorize(identity, RoutePolicy.OWNER, owner_ids=[user_id])
    orders = await service.list_orders(user_id)
    return OrderListResponse(items=[OrderResponse.model_validate(order) for order in orders])


@router.post(
    "/cart",
    response_model=OrderResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create order from cart",
    description="Snapshots the current cart into a pending order and empties the cart.",
)
async def create_order_from_cart(identity: CurrentIdentity, service: CheckoutServiceDep) -> OrderResponse:
    order = await service.create_order_from_cart(identity.user_id)
    return OrderResponse.model_validate(order)


@router.get(
    "/payments/{external_reference_id}/status",
    response_model=PaymentStatusResponse,
    summary="Get payment status",
    description="Returns the status of a payment by its Stripe Checkout Session ID.",
)
async def get_payment_status(
    external_reference_id: str,
    identity: CurrentIdentity,
    service: CheckoutServiceDep,
) -> PaymentStatusResponse:
    payment = await service.get_payment_status(external_reference_id, identity.user_id)
    return PaymentStatusResponse(
        external_reference_id=external_reference_id,
        payment_status=payment.status,
        order_id=payment.order_id,
        failure_reason=payment.failure_reason,
    )


@router.get(
    "/{order_id}",
    response_model=OrderResponse,
    summary="Get order details",
    description="Returns order details. Only the purchasing user may view an order.",
)
async def get_order(order_id: UUID, identity: CurrentIdentity, service: CheckoutServiceDep) -> OrderResponse:
    order = await service.get_order(order_id, identity.user_id)
    return OrderResponse.model_validate(order)


@router.post(
    "/{order_id}/pay",
    response_model=CheckoutResponse,
    summary="Pay for an order",
    description="Creates (or returns the existing) Stripe Checkout Session for a pending order.",
)
async def pay_for_order(
    order_id: UUID,
    identity: CurrentIdentity,
    service: CheckoutServiceDep,
) -> CheckoutResponse:
    payment = await service.create_order_checkout(order_id, identity.user_id)
    return CheckoutResponse(
        checkout_url=payment.checkout_url,
        order_id=payment.order_id,
        payment_id=payment.id,
    )
