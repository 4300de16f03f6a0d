"""
Payment ledger.

Payments are appended, never edited:
  total_paid        = sum(payments.amount)
  remaining_balance = total_price - total_paid
  payment_status    = paid once remaining_balance <= 0

Overpayment is rejected rather than clamped so operator mistakes surface
instead of turning into negative balances.
"""

from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from venuebook.core.exceptions import PaymentError
from venuebook.core.logging import get_logger
from venuebook.core.metrics import payments_recorded
from venuebook.core.security import Actor
from venuebook.models.booking import ACTIVE_STATUSES, Booking, BookingPayment, PaymentStatus
from venuebook.services.authorization import Action, authorize
from venuebook.services.booking_service import append_history, update_booking
from venuebook.services.catalog_service import get_facility
from venuebook.services.pricing import CENTS, to_money

logger = get_logger(__name__)

PAYMENT_RECEIVED = "Payment received"
MARKED_AS_PAID = "Marked as paid"


def _parse_amount(amount) -> Decimal:
    try:
        value = Decimal(str(amount))
    except (InvalidOperation, TypeError, ValueError):
        raise PaymentError(f"Invalid payment amount: {amount!r}") from None
    if not value.is_finite() or value <= 0:
        raise PaymentError("Payment amount must be greater than zero")
    if value.adjusted() >= 10:
        raise PaymentError(f"Payment amount {value} is too large")
    if value != value.quantize(CENTS):
        raise PaymentError(f"Payment amount {value} has more than 2 decimal places")
    return value.quantize(CENTS)


def _apply_payment(
    booking: Booking,
    actor: Actor,
    amount: Decimal,
    method: str,
    note: Optional[str],
    transaction_id: Optional[str],
    reason: Optional[str],
) -> None:
    if booking.status not in ACTIVE_STATUSES:
        raise PaymentError(f"Booking is {booking.status} and cannot take payments")

    remaining = Decimal(booking.total_price) - Decimal(booking.total_paid)
    if amount > remaining:
        raise PaymentError(f"Amount {amount} exceeds remaining balance {to_money(remaining)}")

    now = datetime.now(timezone.utc)
    booking.payments.append(
        BookingPayment(
            amount=amount,
            method=method or "cash",
            paid_at=now,
            note=note,
            recorded_by=actor.id,
            transaction_id=transaction_id,
        )
    )
    booking.total_paid = to_money(Decimal(booking.total_paid) + amount)
    booking.remaining_balance = to_money(Decimal(booking.total_price) - booking.total_paid)
    if booking.remaining_balance <= 0:
        booking.payment_status = PaymentStatus.PAID.value

    # Informational entry: the status itself does not change
    append_history(booking, actor, reason or PAYMENT_RECEIVED, at=now)


async def record_payment(
    db: AsyncSession,
    booking_id: int,
    actor: Actor,
    amount,
    method: str = "cash",
    note: Optional[str] = None,
    transaction_id: Optional[str] = None,
    reason: Optional[str] = None,
    timeout: Optional[float] = None,
) -> Booking:
    """Append a payment to the booking's ledger and return the updated booking."""
    return await _settle(
        db, booking_id, actor, _parse_amount(amount), method, note, transaction_id, reason, timeout
    )


async def mark_fully_paid(
    db: AsyncSession,
    booking_id: int,
    actor: Actor,
    amount=None,
    method: str = "cash",
    timeout: Optional[float] = None,
) -> Booking:
    """
    Manual reconciliation (e.g. cash at the counter).

    Records the outstanding balance, or `amount` when given, as an ordinary
    payment so the ledger invariants hold exactly as for record_payment.
    The balance is read in the same unit of work, after authorization.
    """
    value = None if amount is None else _parse_amount(amount)
    return await _settle(db, booking_id, actor, value, method, None, None, MARKED_AS_PAID, timeout)


def _outstanding_balance(booking: Booking) -> Decimal:
    balance = Decimal(booking.total_price) - Decimal(booking.total_paid)
    if balance <= 0:
        raise PaymentError("Booking has no outstanding balance")
    return balance


async def _settle(
    db: AsyncSession,
    booking_id: int,
    actor: Actor,
    value: Optional[Decimal],
    method: str,
    note: Optional[str],
    transaction_id: Optional[str],
    reason: Optional[str],
    timeout: Optional[float],
) -> Booking:
    """`value=None` pays whatever balance is outstanding at commit time."""
    paid: dict[str, Decimal] = {}

    async def mutate(booking: Booking) -> None:
        facility = await get_facility(db, booking.facility_id)
        authorize(actor, Action.RECORD_PAYMENT, facility, booking)
        paid["amount"] = value if value is not None else _outstanding_balance(booking)
        _apply_payment(booking, actor, paid["amount"], method, note, transaction_id, reason)

    booking = await update_booking(db, booking_id, mutate, operation="payment", timeout=timeout)

    payments_recorded.inc()
    logger.info(
        "payment_recorded",
        booking_id=booking.id,
        reference=booking.reference,
        amount=str(paid["amount"]),
        method=method,
        total_paid=str(booking.total_paid),
        remaining_balance=str(booking.remaining_balance),
        payment_status=booking.payment_status,
        actor_id=actor.id,
    )
    return booking
