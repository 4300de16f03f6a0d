"""
Catalog: facilities own venues, venues own amenities.

Key design decisions:
- Normalized tables; a venue is only addressable through its facility id
- Rates and surcharges are NUMERIC with non-negative CHECK constraints
- `Venue.version` is the claim counter the reservation engine bumps to take
  the venue row lock, serializing booking attempts on the same venue
- Managers are opaque identity-provider ids, not local user rows
"""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Table,
    Text,
)
from sqlalchemy.orm import relationship

from venuebook.db.base import Base, TimestampMixin

facility_managers = Table(
    "facility_managers",
    Base.metadata,
    Column("facility_id", Integer, ForeignKey("facilities.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", String(64), primary_key=True),
)


class FacilityManager(Base):
    __table__ = facility_managers

    def __repr__(self) -> str:
        return f"<FacilityManager(facility={self.facility_id}, user={self.user_id})>"


class Facility(Base, TimestampMixin):
    __tablename__ = "facilities"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    location = Column(String(255), nullable=True)

    venues = relationship(
        "Venue",
        back_populates="facility",
        lazy="selectin",
        order_by="Venue.id",
        cascade="all, delete-orphan",
    )
    managers = relationship(FacilityManager, lazy="selectin", cascade="all, delete-orphan")

    @property
    def manager_ids(self) -> set[str]:
        return {m.user_id for m in self.managers}

    def __repr__(self) -> str:
        return f"<Facility(id={self.id}, name={self.name})>"


class Venue(Base, TimestampMixin):
    __tablename__ = "venues"

    id = Column(Integer, primary_key=True, index=True)
    facility_id = Column(Integer, ForeignKey("facilities.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    capacity = Column(Integer, nullable=True)
    hourly_rate = Column(Numeric(12, 2), nullable=False, default=0)
    is_bookable = Column(Boolean, nullable=False, default=False)

    # Bumped by every reservation attempt to take the row lock
    version = Column(Integer, nullable=False, default=1)

    facility = relationship("Facility", back_populates="venues")
    amenities = relationship(
        "Amenity",
        back_populates="venue",
        lazy="selectin",
        order_by=lambda: [Amenity.sort_order, Amenity.id],
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        CheckConstraint("hourly_rate >= 0", name="check_venue_rate_non_negative"),
        CheckConstraint("capacity IS NULL OR capacity > 0", name="check_venue_capacity_positive"),
    )

    def __repr__(self) -> str:
        return f"<Venue(id={self.id}, name={self.name}, bookable={self.is_bookable})>"


class Amenity(Base):
    __tablename__ = "amenities"

    id = Column(Integer, primary_key=True, index=True)
    venue_id = Column(Integer, ForeignKey("venues.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    surcharge = Column(Numeric(12, 2), nullable=False, default=0)  # flat, not per hour
    sort_order = Column(Integer, nullable=False, default=0)

    venue = relationship("Venue", back_populates="amenities")

    __table_args__ = (
        CheckConstraint("surcharge >= 0", name="check_amenity_surcharge_non_negative"),
    )

    def __repr__(self) -> str:
        return f"<Amenity(id={self.id}, venue={self.venue_id}, surcharge={self.surcharge})>"
