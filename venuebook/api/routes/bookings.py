"""
Booking endpoints: concurrency-safe creation, lifecycle transitions and payments.
"""

from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from venuebook.api.dependencies import get_dispatcher, get_policy
from venuebook.core.config import get_settings
from venuebook.core.logging import get_logger
from venuebook.core.security import Actor, get_current_actor, get_optional_actor
from venuebook.db.session import get_db
from venuebook.models.booking import Booking
from venuebook.schemas.booking import (
    BookingCreate,
    BookingCreatedResponse,
    BookingDetailResponse,
    BookingResponse,
    MarkPaidRequest,
    PaymentCreate,
    PricingBreakdown,
    StatusChangeRequest,
)
from venuebook.services.booking_service import create_booking, get_booking, list_bookings
from venuebook.services.notification_service import NotificationDispatcher
from venuebook.services.payment_service import mark_fully_paid, record_payment
from venuebook.services.policy import BookingPolicy
from venuebook.services.pricing import booking_hours
from venuebook.services.status_service import cancel_booking, confirm_booking, reject_booking

logger = get_logger(__name__)
router = APIRouter(prefix="/bookings", tags=["Bookings"])

HOURS_PRECISION = Decimal("0.0001")


def pricing_for(booking: Booking) -> PricingBreakdown:
    return PricingBreakdown(
        hours=booking_hours(booking.start_time, booking.end_time).quantize(HOURS_PRECISION),
        base_price=booking.base_price,
        amenity_surcharge=booking.amenity_surcharge,
        total_price=booking.total_price,
        amenity_ids=booking.amenity_ids or [],
        currency=get_settings().CURRENCY,
    )


@router.post("/", response_model=BookingCreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_booking_endpoint(
    booking_data: BookingCreate,
    actor: Optional[Actor] = Depends(get_optional_actor),
    policy: BookingPolicy = Depends(get_policy),
    notifier: NotificationDispatcher = Depends(get_dispatcher),
    db: AsyncSession = Depends(get_db),
):
    """
    Reserve a venue slot. Guests may book without a token.

    Overlapping requests race on the venue's version; exactly one wins and
    the rest get 409.
    """
    booking = await create_booking(db, booking_data, actor=actor, policy=policy, notifier=notifier)
    return BookingCreatedResponse(
        message="Booking created successfully",
        booking=BookingResponse.model_validate(booking),
        pricing=pricing_for(booking),
    )


@router.get("/", response_model=list[BookingResponse])
async def list_bookings_endpoint(
    limit: int = Query(100, ge=1, le=500),
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """Bookings visible to the caller: all for admins, managed facilities for managers, own for users."""
    return await list_bookings(db, actor, limit=limit)


@router.get("/{booking_id}", response_model=BookingDetailResponse)
async def get_booking_endpoint(
    booking_id: int,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    return await get_booking(db, booking_id, actor)


@router.post("/{booking_id}/confirm", response_model=BookingDetailResponse)
async def confirm_booking_endpoint(
    booking_id: int,
    body: Optional[StatusChangeRequest] = None,
    actor: Actor = Depends(get_current_actor),
    notifier: NotificationDispatcher = Depends(get_dispatcher),
    db: AsyncSession = Depends(get_db),
):
    reason = body.reason if body else None
    return await confirm_booking(db, booking_id, actor, reason=reason, notifier=notifier)


@router.post("/{booking_id}/reject", response_model=BookingDetailResponse)
async def reject_booking_endpoint(
    booking_id: int,
    body: Optional[StatusChangeRequest] = None,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    reason = body.reason if body else None
    return await reject_booking(db, booking_id, actor, reason=reason)


@router.post("/{booking_id}/cancel", response_model=BookingDetailResponse)
async def cancel_booking_endpoint(
    booking_id: int,
    body: Optional[StatusChangeRequest] = None,
    actor: Actor = Depends(get_current_actor),
    notifier: NotificationDispatcher = Depends(get_dispatcher),
    db: AsyncSession = Depends(get_db),
):
    """Cancel a pending or confirmed booking and release its slot."""
    reason = body.reason if body else None
    return await cancel_booking(db, booking_id, actor, reason=reason, notifier=notifier)


@router.post("/{booking_id}/payments", response_model=BookingDetailResponse)
async def record_payment_endpoint(
    booking_id: int,
    payment: PaymentCreate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    return await record_payment(
        db,
        booking_id,
        actor,
        payment.amount,
        method=payment.method,
        note=payment.note,
        transaction_id=payment.transaction_id,
        reason=payment.reason,
    )


@router.post("/{booking_id}/mark-paid", response_model=BookingDetailResponse)
async def mark_paid_endpoint(
    booking_id: int,
    body: Optional[MarkPaidRequest] = None,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """Settle the outstanding balance in one payment (cash at the counter)."""
    body = body or MarkPaidRequest()
    return await mark_fully_paid(db, booking_id, actor, amount=body.amount, method=body.method)
