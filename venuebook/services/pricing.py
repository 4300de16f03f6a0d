"""
Pricing calculator.

Price = hours x venue hourly rate + flat surcharges of the selected amenities.
Hours stay unrounded for the arithmetic; only `snapshot()` quantizes to cents
when the figures are persisted or displayed.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from venuebook.models.catalog import Venue

CENTS = Decimal("0.01")
SECONDS_PER_HOUR = Decimal(3600)


def to_money(value) -> Decimal:
    return Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class PriceQuote:
    hours: Decimal
    base_price: Decimal
    surcharge: Decimal
    total: Decimal
    amenity_ids: list[int] = field(default_factory=list)

    def snapshot(self) -> dict:
        """Cent-quantized figures as stored on the booking."""
        return {
            "base_price": to_money(self.base_price),
            "amenity_surcharge": to_money(self.surcharge),
            "total_price": to_money(self.total),
            "amenity_ids": list(self.amenity_ids),
        }


def booking_hours(start: datetime, end: datetime) -> Decimal:
    delta = end - start
    seconds = Decimal(delta.days * 86400 + delta.seconds) + Decimal(delta.microseconds) / Decimal(1_000_000)
    return seconds / SECONDS_PER_HOUR


def compute_price(
    venue: Venue,
    start: datetime,
    end: datetime,
    selected_amenity_ids: Iterable[int] = (),
) -> PriceQuote:
    """
    Quote a booking of `venue` over [start, end).

    Unknown and repeated amenity ids are dropped silently; they count toward
    neither the surcharge nor the returned selection.
    """
    hours = booking_hours(start, end)
    base_price = hours * Decimal(str(venue.hourly_rate or 0))

    by_id = {amenity.id: amenity for amenity in venue.amenities}
    matched: list[int] = []
    surcharge = Decimal(0)
    for raw_id in selected_amenity_ids:
        try:
            amenity_id = int(raw_id)
        except (TypeError, ValueError):
            continue
        amenity = by_id.get(amenity_id)
        if amenity is None or amenity_id in matched:
            continue
        matched.append(amenity_id)
        surcharge += Decimal(str(amenity.surcharge or 0))

    return PriceQuote(
        hours=hours,
        base_price=base_price,
        surcharge=surcharge,
        total=base_price + surcharge,
        amenity_ids=matched,
    )
