"""
Pydantic schemas for booking-related request/response validation.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, EmailStr, Field


class BookingCreate(BaseModel):
    facility_id: int
    venue_id: int
    start_time: datetime
    end_time: datetime
    contact_name: str = Field(..., min_length=1, max_length=255)
    contact_email: EmailStr
    purpose: Optional[str] = Field(None, max_length=500)
    attendees: Optional[int] = Field(None, gt=0)
    notes: Optional[str] = Field(None, max_length=2000)
    amenity_ids: list[int] = Field(default_factory=list)


class PaymentResponse(BaseModel):
    id: int
    amount: Decimal
    method: str
    paid_at: datetime
    note: Optional[str]
    recorded_by: str
    transaction_id: Optional[str]

    model_config = {"from_attributes": True}


class StatusHistoryResponse(BaseModel):
    sequence: int
    status: str
    actor_id: str
    changed_at: datetime
    reason: Optional[str]

    model_config = {"from_attributes": True}


class BookingResponse(BaseModel):
    id: int
    reference: str
    invoice_number: str
    facility_id: int
    venue_id: int
    requester_id: Optional[str]
    start_time: datetime
    end_time: datetime
    status: str
    base_price: Decimal
    amenity_surcharge: Decimal
    total_price: Decimal
    amenity_ids: list[int]
    payment_status: str
    total_paid: Decimal
    remaining_balance: Decimal
    contact_name: str
    contact_email: str
    purpose: Optional[str]
    attendees: Optional[int]
    notes: Optional[str]
    created_at: datetime

    model_config = {"from_attributes": True}


class BookingDetailResponse(BookingResponse):
    payments: list[PaymentResponse]
    status_history: list[StatusHistoryResponse]


class PricingBreakdown(BaseModel):
    hours: Decimal
    base_price: Decimal
    amenity_surcharge: Decimal
    total_price: Decimal
    amenity_ids: list[int]
    currency: str


class BookingCreatedResponse(BaseModel):
    message: str
    booking: BookingResponse
    pricing: PricingBreakdown


class StatusChangeRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


class PaymentCreate(BaseModel):
    amount: Decimal = Field(..., max_digits=12, decimal_places=2)
    method: str = Field("cash", min_length=1, max_length=50)
    note: Optional[str] = Field(None, max_length=2000)
    transaction_id: Optional[str] = Field(None, max_length=128)
    reason: Optional[str] = Field(None, max_length=500)


class MarkPaidRequest(BaseModel):
    amount: Optional[Decimal] = Field(None, max_digits=12, decimal_places=2)
    method: str = Field("cash", min_length=1, max_length=50)
