"""Initial schema: facilities, venues, amenities, bookings, payments, status history.

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    # Catalog
    op.create_table(
        "facilities",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("location", sa.String(255), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_facilities_id", "facilities", ["id"])

    op.create_table(
        "facility_managers",
        sa.Column("facility_id", sa.Integer(), sa.ForeignKey("facilities.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("user_id", sa.String(64), primary_key=True),
    )

    op.create_table(
        "venues",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("facility_id", sa.Integer(), sa.ForeignKey("facilities.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("capacity", sa.Integer(), nullable=True),
        sa.Column("hourly_rate", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("is_bookable", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        # Claim counter bumped by every reservation attempt
        sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("1")),
        *_timestamps(),
        sa.CheckConstraint("hourly_rate >= 0", name="check_venue_rate_non_negative"),
        sa.CheckConstraint("capacity IS NULL OR capacity > 0", name="check_venue_capacity_positive"),
    )
    op.create_index("ix_venues_id", "venues", ["id"])
    op.create_index("ix_venues_facility_id", "venues", ["facility_id"])

    op.create_table(
        "amenities",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("venue_id", sa.Integer(), sa.ForeignKey("venues.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("surcharge", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.CheckConstraint("surcharge >= 0", name="check_amenity_surcharge_non_negative"),
    )
    op.create_index("ix_amenities_id", "amenities", ["id"])
    op.create_index("ix_amenities_venue_id", "amenities", ["venue_id"])

    # Bookings
    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("reference", sa.String(32), nullable=False),
        sa.Column("invoice_number", sa.String(32), nullable=False),
        sa.Column("facility_id", sa.Integer(), sa.ForeignKey("facilities.id"), nullable=False),
        sa.Column("venue_id", sa.Integer(), sa.ForeignKey("venues.id"), nullable=False),
        sa.Column("requester_id", sa.String(64), nullable=True),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'pending'")),
        sa.Column("base_price", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("amenity_surcharge", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("total_price", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("amenity_ids", sa.JSON(), nullable=False),
        sa.Column("payment_status", sa.String(20), nullable=False, server_default=sa.text("'pending'")),
        sa.Column("total_paid", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("remaining_balance", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("contact_name", sa.String(255), nullable=False),
        sa.Column("contact_email", sa.String(255), nullable=False),
        sa.Column("purpose", sa.String(500), nullable=True),
        sa.Column("attendees", sa.Integer(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("reference", name="uq_bookings_reference"),
        sa.UniqueConstraint("invoice_number", name="uq_bookings_invoice_number"),
        sa.CheckConstraint("start_time < end_time", name="check_booking_interval"),
        sa.CheckConstraint(
            "status IN ('pending', 'confirmed', 'rejected', 'cancelled')", name="check_booking_status"
        ),
        sa.CheckConstraint(
            "payment_status IN ('pending', 'paid', 'failed', 'refunded')", name="check_booking_payment_status"
        ),
        sa.CheckConstraint("total_paid >= 0", name="check_booking_total_paid_non_negative"),
    )
    op.create_index("ix_bookings_id", "bookings", ["id"])
    op.create_index("ix_bookings_facility_id", "bookings", ["facility_id"])
    op.create_index("ix_bookings_requester_id", "bookings", ["requester_id"])
    # Covers the overlap probe: venue_id = ? AND start_time < ? AND end_time > ?
    op.create_index("ix_bookings_venue_interval", "bookings", ["venue_id", "start_time", "end_time"])

    op.create_table(
        "booking_payments",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("booking_id", sa.Integer(), sa.ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("method", sa.String(50), nullable=False, server_default=sa.text("'cash'")),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column("recorded_by", sa.String(64), nullable=False),
        sa.Column("transaction_id", sa.String(128), nullable=True),
        sa.CheckConstraint("amount > 0", name="check_payment_amount_positive"),
    )
    op.create_index("ix_booking_payments_id", "booking_payments", ["id"])
    op.create_index("ix_booking_payments_booking_id", "booking_payments", ["booking_id"])

    op.create_table(
        "booking_status_history",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("booking_id", sa.Integer(), sa.ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False),
        sa.Column("sequence", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("actor_id", sa.String(64), nullable=False),
        sa.Column("changed_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("reason", sa.String(500), nullable=True),
    )
    op.create_index("ix_booking_status_history_id", "booking_status_history", ["id"])
    op.create_index("ix_booking_status_history_booking_id", "booking_status_history", ["booking_id"])
    op.create_index(
        "ix_status_history_booking_seq", "booking_status_history", ["booking_id", "sequence"], unique=True
    )


def downgrade() -> None:
    op.drop_table("booking_status_history")
    op.drop_table("booking_payments")
    op.drop_table("bookings")
    op.drop_table("amenities")
    op.drop_table("venues")
    op.drop_table("facility_managers")
    op.drop_table("facilities")
