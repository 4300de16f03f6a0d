"""All models imported here so metadata and Alembic autogenerate see every table."""

from venuebook.models.booking import (
    ACTIVE_STATUSES,
    Booking,
    BookingPayment,
    BookingStatus,
    PaymentStatus,
    StatusHistoryEntry,
)
from venuebook.models.catalog import Amenity, Facility, FacilityManager, Venue

__all__ = [
    "Facility",
    "FacilityManager",
    "Venue",
    "Amenity",
    "Booking",
    "BookingPayment",
    "StatusHistoryEntry",
    "BookingStatus",
    "PaymentStatus",
    "ACTIVE_STATUSES",
]
