"""Bid API routes."""

from uuid import UUID

from fastapi import APIRouter, status

from src.api.deps import BidServiceDep, CheckoutServiceDep, CurrentIdentity
from src.schemas.bid import BidCountResponse, BidCreate, BidResponse, BidStatusUpdate
from src.schemas.checkout import CheckoutResponse

router = APIRouter(prefix="/bids", tags=["bids"])


@router.get(
    "/user",
    response_model=list[BidResponse],
    summary="List my bids",
    description="Returns all bids placed by the authenticated user, newest first.",
)
async def list_my_bids(identity: CurrentIdentity, service: BidServiceDep) -> list[BidResponse]:
    bids = await service.list_bids_for_user(identity.user_id)
    return [BidResponse.model_validate(bid) for bid in bids]


@router.get(
    "/listing/{listing_id}/count",
    response_model=BidCountResponse,
    summary="Count active bids",
    description="Public count of pending and accepted bids on a listing.",
)
async def count_listing_bids(listing_id: UUID, service: BidServiceDep) -> BidCountResponse:
    count = await service.count_active_bids(listing_id)
    return BidCountResponse(listing_id=listing_id, count=count)


@router.get(
    "/listing/{listing_id}",
    response_model=list[BidResponse],
    summary="List bids on a listing",
    description="Returns all bids on a listing. Only the listing's seller may call this.",
)
async def list_listing_bids(
    listing_id: UUID,
    identity: CurrentIdentity,
    service: BidServiceDep,
) -> list[BidResponse]:
    bids = await service.list_bids_for_listing(listing_id, identity.user_id)
    return [BidResponse.model_validate(bid) for bid in bids]


@router.post(
    "/{listing_id}",
    response_model=BidResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Place a bid",
    description="Place a pending bid on a listing that allows bidding.",
)
async def create_bid(
    listing_id: UUID,
    data: BidCreate,
    identity: CurrentIdentity,
    service: BidServiceDep,
) -> BidResponse:
    """Place a bid on a listing.

    Args:
        listing_id: The listing to bid on.
        data: Offered price and optional terms.
        identity: The authenticated bidder.
        service: Bid service.

    Returns:
        BidResponse: The created pending bid.
    """
    bid = await service.create_bid(
        listing_id=listing_id,
        bidder_id=identity.user_id,
        proposed_price=data.proposed_price,
        additional_terms=data.additional_terms,
    )
    return BidResponse.model_validate(bid)


@router.get(
    "/{bid_id}",
    response_model=BidResponse,
    summary="Get a bid",
    description="Returns a bid to its bidder or the listing's seller.",
)
async def get_bid(bid_id: UUID, identity: CurrentIdentity, service: BidServiceDep) -> BidResponse:
    bid = await service.get_bid(bid_id, identity.user_id)
    return BidResponse.model_validate(bid)


@router.put(
    "/{bid_id}/status",
    response_model=BidResponse,
    summary="Decide on a bid",
    description="Seller accepts or rejects a pending bid.",
)
@router.patch(
    "/{bid_id}/status",
    response_model=BidResponse,
    summary="Decide on a bid",
    description="Seller accepts or rejects a pending bid.",
)
async def update_bid_status(
    bid_id: UUID,
    data: BidStatusUpdate,
    identity: CurrentIdentity,
    service: BidServiceDep,
) -> BidResponse:
    """Apply a seller decision to a bid.

    Returns 409 if the bid already left the pending state, including when a
    concurrent decision won.
    """
    bid = await service.set_status(bid_id, identity.user_id, data.status)
    return BidResponse.model_validate(bid)


@router.post(
    "/{bid_id}/accept",
    response_model=BidResponse,
    summary="Accept a bid",
    description="Seller accepts a pending bid; competing pending bids are rejected.",
)
async def accept_bid(bid_id: UUID, identity: CurrentIdentity, service: BidServiceDep) -> BidResponse:
    bid = await service.accept_bid(bid_id, identity.user_id)
    return BidResponse.model_validate(bid)


@router.post(
    "/{bid_id}/reject",
    response_model=BidResponse,
    summary="Reject a bid",
    description="Seller rejects a pending bid.",
)
async def reject_bid(bid_id: UUID, identity: CurrentIdentity, service: BidServiceDep) -> BidResponse:
    bid = await service.reject_bid(bid_id, identity.user_id)
    return BidResponse.model_validate(bid)


@router.post(
    "/{bid_id}/pay",
    response_model=CheckoutResponse,
    summary="Pay for an accepted bid",
    description="Creates (or returns the existing) Stripe Checkout Session for an accepted bid.",
)
async def pay_for_bid(
    bid_id: UUID,
    identity: CurrentIdentity,
    checkout_service: CheckoutServiceDep,
) -> CheckoutResponse:
    """Start payment for an accepted bid.

    Repeated calls return the same checkout URL while the payment is pending.
    """
    payment = await checkout_service.create_bid_checkout(bid_id, identity.user_id)
    return CheckoutResponse(
        checkout_url=payment.checkout_url,
        order_id=payment.order_id,
        payment_id=payment.id,
    )
