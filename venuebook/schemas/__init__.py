from venuebook.schemas.booking import (
    BookingCreate, BookingResponse, BookingDetailResponse, BookingCreatedResponse,
    PricingBreakdown, StatusChangeRequest, PaymentCreate, MarkPaidRequest,
)
from venuebook.schemas.catalog import AvailabilityResponse, ConflictingBooking, QuoteResponse

__all__ = [
    "BookingCreate", "BookingResponse", "BookingDetailResponse", "BookingCreatedResponse",
    "PricingBreakdown", "StatusChangeRequest", "PaymentCreate", "MarkPaidRequest",
    "AvailabilityResponse", "ConflictingBooking", "QuoteResponse",
]
