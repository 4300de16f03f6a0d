"""
Tests for the pricing calculator.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from venuebook.models import Amenity, Venue
from venuebook.services.pricing import booking_hours, compute_price, to_money

START = datetime(2030, 6, 1, 10, 0, tzinfo=timezone.utc)


def make_venue(rate: str = "100.00") -> Venue:
    return Venue(
        id=1,
        name="Main Hall",
        hourly_rate=Decimal(rate),
        amenities=[
            Amenity(id=11, name="Projector", surcharge=Decimal("25.00")),
            Amenity(id=12, name="Sound system", surcharge=Decimal("40.00")),
        ],
    )


def test_two_hours_with_one_amenity():
    """100/hr for 2 hours plus a 25 surcharge is 225."""
    quote = compute_price(make_venue(), START, START + timedelta(hours=2), [11])
    snapshot = quote.snapshot()
    assert snapshot["base_price"] == Decimal("200.00")
    assert snapshot["amenity_surcharge"] == Decimal("25.00")
    assert snapshot["total_price"] == Decimal("225.00")
    assert snapshot["amenity_ids"] == [11]


def test_unknown_amenity_is_dropped():
    quote = compute_price(make_venue(), START, START + timedelta(hours=2), [11, 999])
    assert quote.total == Decimal("225")
    assert quote.amenity_ids == [11]


def test_duplicate_amenity_counts_once():
    quote = compute_price(make_venue(), START, START + timedelta(hours=2), [12, 12, 11])
    assert quote.surcharge == Decimal("65.00")
    assert quote.amenity_ids == [12, 11]


def test_no_amenities():
    quote = compute_price(make_venue(), START, START + timedelta(hours=3))
    assert quote.surcharge == 0
    assert quote.total == Decimal("300")
    assert quote.amenity_ids == []


def test_fractional_hours_are_not_rounded():
    """20 minutes at 100/hr is 33.33, not a whole hour."""
    quote = compute_price(make_venue(), START, START + timedelta(minutes=20))
    assert quote.hours == Decimal(1200) / Decimal(3600)
    assert quote.snapshot()["base_price"] == Decimal("33.33")


def test_rounding_happens_once_on_the_total():
    """Ten minutes at 10.00/hr is 1.666..., rounded half up to 1.67."""
    quote = compute_price(make_venue("10.00"), START, START + timedelta(minutes=10))
    assert quote.snapshot()["total_price"] == Decimal("1.67")


def test_free_venue():
    quote = compute_price(make_venue("0"), START, START + timedelta(hours=4), [])
    assert quote.snapshot()["total_price"] == Decimal("0.00")


@pytest.mark.parametrize(
    "minutes, expected",
    [(60, Decimal(1)), (90, Decimal("1.5")), (24 * 60, Decimal(24))],
)
def test_booking_hours(minutes, expected):
    assert booking_hours(START, START + timedelta(minutes=minutes)) == expected


def test_to_money_rounds_half_up():
    assert to_money("2.345") == Decimal("2.35")
    assert to_money(Decimal("2.344")) == Decimal("2.34")
