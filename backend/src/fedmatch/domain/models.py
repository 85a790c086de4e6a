"""SQLAlchemy ORM models for the FedMatch scoring engine.

All models use SQLite-compatible types:
- String(36) for UUID primary keys
- JSON for structured data (no JSONB)
- DateTime for timestamps (no TIMESTAMPTZ), stored as naive UTC
"""

import uuid

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    Integer,
    JSON,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.sql import func

from fedmatch.infra.database import Base


# ---------------------------------------------------------------------------
# Broker listings
# ---------------------------------------------------------------------------


class Property(Base):
    """A leasable real-estate asset listed by a broker."""

    __tablename__ = "properties"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    broker_id = Column(String(36), nullable=True, index=True)
    name = Column(String(255))
    address = Column(String(500))
    city = Column(String(100))
    state = Column(String(50))
    zip = Column(String(20))
    latitude = Column(Float)
    longitude = Column(Float)

    # Space
    total_sqft = Column(Integer, default=0)
    available_sqft = Column(Integer, default=0)
    usable_sqft = Column(Integer, nullable=True)
    min_divisible_sqft = Column(Integer, nullable=True)
    is_contiguous = Column(Boolean, default=True)

    # Building
    building_class = Column(String(5))  # A+, A, B, C
    total_floors = Column(Integer, nullable=True)
    available_floors = Column(JSON, default=list)
    ada_compliant = Column(Boolean, default=False)
    public_transit_access = Column(Boolean, default=False)
    parking_spaces = Column(Integer, nullable=True)
    parking_ratio = Column(Float, nullable=True)
    features = Column(JSON, default=list)  # ["fiber", "backup_power", ...]
    certifications = Column(JSON, default=list)

    # Timeline
    available_date = Column(Date, nullable=True)
    min_lease_term_months = Column(Integer, nullable=True)
    max_lease_term_months = Column(Integer, nullable=True)
    build_out_weeks = Column(Integer, default=0)
    status = Column(String(20), default="active", index=True)  # active, leased, withdrawn

    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())


class BrokerProfile(Base):
    """Past-performance signal for the broker offering a property."""

    __tablename__ = "broker_profiles"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), unique=True, nullable=False, index=True)
    government_lease_experience = Column(Boolean, default=False)
    government_leases_count = Column(Integer, default=0)
    gsa_certified = Column(Boolean, default=False)
    years_in_business = Column(Integer, default=0)
    total_portfolio_sqft = Column(Integer, default=0)
    references = Column(JSON, default=list)  # [{agency, contract_value, year}]
    willing_to_build_to_suit = Column(Boolean, default=False)
    willing_to_provide_improvements = Column(Boolean, default=False)
    created_at = Column(DateTime, default=func.now())


# ---------------------------------------------------------------------------
# Opportunities
# ---------------------------------------------------------------------------


class Opportunity(Base):
    """A government lease solicitation as synced from SAM.gov."""

    __tablename__ = "opportunities"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    notice_id = Column(String(100), index=True)
    title = Column(String(500))
    description = Column(Text)
    naics_code = Column(String(10))
    pop_city_name = Column(String(100))
    pop_state_code = Column(String(10))
    pop_zip = Column(String(20))
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    posted_date = Column(DateTime, nullable=True)
    response_deadline = Column(DateTime, nullable=True)
    # Figures parsed from RFP documents, when available
    full_data = Column(JSON, default=dict)
    created_at = Column(DateTime, default=func.now())


# ---------------------------------------------------------------------------
# Federal reference data (GSA IOLP)
# ---------------------------------------------------------------------------


class FederalProperty(Base):
    """Owned building or leased space from the GSA inventory."""

    __tablename__ = "federal_properties"

    id = Column(String(64), primary_key=True)  # building_<OBJECTID> / lease_<OBJECTID>
    ownership = Column(String(10), nullable=False, index=True)  # owned, leased
    location_code = Column(String(50))
    building_name = Column(String(255))
    address = Column(String(500))
    city = Column(String(100))
    state = Column(String(10), index=True)
    zipcode = Column(String(20))
    latitude = Column(Float, nullable=False, index=True)
    longitude = Column(Float, nullable=False, index=True)
    rsf = Column(Float, default=0)
    vacant_rsf = Column(Float, default=0)
    lease_expiration_date = Column(Date, nullable=True, index=True)
    construction_year = Column(Integer, nullable=True)
    agency = Column(String(100))
    synced_at = Column(DateTime, default=func.now(), onupdate=func.now())


# ---------------------------------------------------------------------------
# Score cache
# ---------------------------------------------------------------------------


class PropertyScore(Base):
    """Cached match score for a (property, opportunity) pair."""

    __tablename__ = "property_scores"
    __table_args__ = (
        UniqueConstraint("property_id", "opportunity_id", name="uq_property_scores_key"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    property_id = Column(String(36), nullable=False, index=True)
    opportunity_id = Column(String(36), nullable=False, index=True)
    payload = Column(JSON, nullable=False)
    overall_score = Column(Float)
    grade = Column(String(3))
    qualified = Column(Boolean)
    competitive = Column(Boolean)
    computed_at = Column(DateTime, nullable=False)
    expires_at = Column(DateTime, nullable=False, index=True)


class PresenceScoreRecord(Base):
    """Cached presence score for a rounded (lat, lng, radius) key."""

    __tablename__ = "presence_scores"
    __table_args__ = (
        UniqueConstraint("latitude", "longitude", "radius_miles", name="uq_presence_scores_key"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    radius_miles = Column(Float, nullable=False)
    payload = Column(JSON, nullable=False)
    overall_score = Column(Float)
    grade = Column(String(3))
    percentile = Column(Float)
    total_properties = Column(Integer)
    hit_count = Column(Integer, default=0)
    last_accessed_at = Column(DateTime, nullable=True)
    computed_at = Column(DateTime, nullable=False)
    expires_at = Column(DateTime, nullable=False, index=True)
