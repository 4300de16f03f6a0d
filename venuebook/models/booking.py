"""
Booking model: a reservation of one venue over a half-open time interval.

Key design decisions:
- Interval and pricing snapshot are written once at creation; nothing
  recalculates them if the venue's rate changes later
- `version` is the mapper's version_id_col, so concurrent read-modify-write
  on status or balances fails with StaleDataError instead of interleaving
- Status history and payments are append-only child tables
- total_paid / remaining_balance are denormalized for query efficiency
"""

import enum

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    event,
)
from sqlalchemy.orm import relationship

from venuebook.db.base import Base, TimestampMixin


class BookingStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


# Statuses that hold the venue's calendar
ACTIVE_STATUSES = (BookingStatus.PENDING.value, BookingStatus.CONFIRMED.value)
TERMINAL_STATUSES = (BookingStatus.REJECTED.value, BookingStatus.CANCELLED.value)


class Booking(Base, TimestampMixin):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    reference = Column(String(32), nullable=False, unique=True)
    invoice_number = Column(String(32), nullable=False, unique=True)

    facility_id = Column(Integer, ForeignKey("facilities.id"), nullable=False, index=True)
    venue_id = Column(Integer, ForeignKey("venues.id"), nullable=False)
    requester_id = Column(String(64), nullable=True, index=True)  # null for guests

    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=False)

    status = Column(String(20), nullable=False, default=BookingStatus.PENDING.value)

    # Pricing snapshot
    base_price = Column(Numeric(12, 2), nullable=False, default=0)
    amenity_surcharge = Column(Numeric(12, 2), nullable=False, default=0)
    total_price = Column(Numeric(12, 2), nullable=False, default=0)
    amenity_ids = Column(JSON, nullable=False, default=list)

    # Ledger
    payment_status = Column(String(20), nullable=False, default=PaymentStatus.PENDING.value)
    total_paid = Column(Numeric(12, 2), nullable=False, default=0)
    remaining_balance = Column(Numeric(12, 2), nullable=False, default=0)

    # Contact metadata
    contact_name = Column(String(255), nullable=False)
    contact_email = Column(String(255), nullable=False)
    purpose = Column(String(500), nullable=True)
    attendees = Column(Integer, nullable=True)
    notes = Column(Text, nullable=True)

    version = Column(Integer, nullable=False)

    venue = relationship("Venue", lazy="raise")
    payments = relationship(
        "BookingPayment",
        back_populates="booking",
        lazy="selectin",
        order_by="BookingPayment.id",
        cascade="all, delete-orphan",
    )
    status_history = relationship(
        "StatusHistoryEntry",
        back_populates="booking",
        lazy="selectin",
        order_by="StatusHistoryEntry.sequence",
        cascade="all, delete-orphan",
    )

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        CheckConstraint("start_time < end_time", name="check_booking_interval"),
        CheckConstraint(
            "status IN ('pending', 'confirmed', 'rejected', 'cancelled')",
            name="check_booking_status",
        ),
        CheckConstraint(
            "payment_status IN ('pending', 'paid', 'failed', 'refunded')",
            name="check_booking_payment_status",
        ),
        CheckConstraint("total_paid >= 0", name="check_booking_total_paid_non_negative"),
        # Overlap queries: WHERE venue_id = ? AND start_time < ? AND end_time > ?
        Index("ix_bookings_venue_interval", "venue_id", "start_time", "end_time"),
    )

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    def __repr__(self) -> str:
        return f"<Booking(id={self.id}, ref={self.reference}, venue={self.venue_id}, status={self.status})>"


class BookingPayment(Base):
    __tablename__ = "booking_payments"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    method = Column(String(50), nullable=False, default="cash")
    paid_at = Column(DateTime(timezone=True), nullable=False)
    note = Column(Text, nullable=True)
    recorded_by = Column(String(64), nullable=False)
    transaction_id = Column(String(128), nullable=True)

    booking = relationship("Booking", back_populates="payments")

    __table_args__ = (
        CheckConstraint("amount > 0", name="check_payment_amount_positive"),
    )

    def __repr__(self) -> str:
        return f"<BookingPayment(booking={self.booking_id}, amount={self.amount}, method={self.method})>"


class StatusHistoryEntry(Base):
    __tablename__ = "booking_status_history"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True)
    sequence = Column(Integer, nullable=False)
    status = Column(String(20), nullable=False)
    actor_id = Column(String(64), nullable=False)
    changed_at = Column(DateTime(timezone=True), nullable=False)
    reason = Column(String(500), nullable=True)

    booking = relationship("Booking", back_populates="status_history")

    __table_args__ = (
        Index("ix_status_history_booking_seq", "booking_id", "sequence", unique=True),
    )

    def __repr__(self) -> str:
        return f"<StatusHistoryEntry(booking={self.booking_id}, seq={self.sequence}, status={self.status})>"


@event.listens_for(BookingPayment, "before_update")
@event.listens_for(StatusHistoryEntry, "before_update")
def _reject_ledger_edits(mapper, connection, target):
    raise RuntimeError(f"{type(target).__name__} rows are append-only")
