"""Serialization between ORM rows and the scorers' typed inputs.

The scorers only see frozen dataclasses from ``domain.contracts``; this layer
is the one place that knows how the tables lay the same data out.
"""

from datetime import date, datetime

from fedmatch.domain import models
from fedmatch.domain.contracts import (
    BrokerExperienceProfile,
    BrokerReference,
    FederalPropertyRecord,
    Property,
    PropertyBuilding,
    PropertySpace,
    PropertyTimeline,
)
from fedmatch.domain.enums import BuildingClass, Ownership
from fedmatch.domain.schemas import FederalPropertyResponse


def property_from_row(row: models.Property) -> Property:
    """Build the scorer's view of a broker listing."""
    return Property(
        id=row.id,
        city=row.city or "",
        state=row.state or "",
        lat=row.latitude,
        lng=row.longitude,
        space=PropertySpace(
            total_sqft=row.total_sqft or 0,
            available_sqft=row.available_sqft or 0,
            usable_sqft=row.usable_sqft,
            min_divisible_sqft=row.min_divisible_sqft,
            is_contiguous=row.is_contiguous if row.is_contiguous is not None else True,
        ),
        building=PropertyBuilding(
            building_class=BuildingClass.parse(row.building_class),
            total_floors=row.total_floors,
            available_floors=tuple(row.available_floors or ()),
            ada_compliant=bool(row.ada_compliant),
            public_transit_access=bool(row.public_transit_access),
            parking_ratio=row.parking_ratio or 0.0,
            features=frozenset(str(f).strip().lower() for f in (row.features or []) if f),
            certifications=tuple(str(c) for c in (row.certifications or []) if c),
        ),
        timeline=PropertyTimeline(
            available_date=row.available_date,
            min_lease_term_months=row.min_lease_term_months,
            max_lease_term_months=row.max_lease_term_months,
            build_out_weeks=row.build_out_weeks or 0,
        ),
        broker_id=row.broker_id,
    )


def experience_from_row(row: models.BrokerProfile | None) -> BrokerExperienceProfile:
    """A missing profile scores as a broker with no track record."""
    if row is None:
        return BrokerExperienceProfile()
    references = []
    for ref in row.references or []:
        if not isinstance(ref, dict) or not ref.get("agency"):
            continue
        references.append(BrokerReference(
            agency=ref["agency"],
            contract_value=float(ref.get("contract_value") or 0),
            year=ref.get("year"),
        ))
    return BrokerExperienceProfile(
        government_lease_experience=bool(row.government_lease_experience),
        government_leases_count=row.government_leases_count or 0,
        gsa_certified=bool(row.gsa_certified),
        years_in_business=row.years_in_business or 0,
        total_portfolio_sqft=row.total_portfolio_sqft or 0,
        references=tuple(references),
        willing_to_build_to_suit=bool(row.willing_to_build_to_suit),
        willing_to_provide_improvements=bool(row.willing_to_provide_improvements),
    )


def _iso(value: date | datetime | None) -> str | None:
    return value.isoformat() if value else None


def opportunity_to_raw(row: models.Opportunity) -> dict:
    """Flatten an opportunity row into the mapping the extractor reads."""
    return {
        "id": row.id,
        "notice_id": row.notice_id,
        "title": row.title,
        "description": row.description,
        "naics_code": row.naics_code,
        "pop_city_name": row.pop_city_name,
        "pop_state_code": row.pop_state_code,
        "pop_zip": row.pop_zip,
        "latitude": row.latitude,
        "longitude": row.longitude,
        "posted_date": _iso(row.posted_date),
        "response_deadline": _iso(row.response_deadline),
        "full_data": row.full_data or {},
    }


def federal_record_from_row(row: models.FederalProperty) -> FederalPropertyRecord:
    return FederalPropertyRecord(
        id=row.id,
        latitude=row.latitude,
        longitude=row.longitude,
        ownership=Ownership(row.ownership),
        rsf=row.rsf or 0.0,
        vacant_rsf=row.vacant_rsf or 0.0,
        lease_expiration=row.lease_expiration_date,
        construction_year=row.construction_year,
        agency=row.agency,
        building_name=row.building_name,
        address=row.address,
        city=row.city,
        state=row.state,
        zipcode=row.zipcode,
        location_code=row.location_code,
    )


def serialize_federal_record(
    record: FederalPropertyRecord, distance_miles: float | None = None
) -> FederalPropertyResponse:
    return FederalPropertyResponse(
        id=record.id,
        latitude=record.latitude,
        longitude=record.longitude,
        ownership=record.ownership,
        rsf=record.rsf,
        vacant_rsf=record.vacant_rsf,
        lease_expiration=record.lease_expiration,
        construction_year=record.construction_year,
        agency=record.agency,
        building_name=record.building_name,
        address=record.address,
        city=record.city,
        state=record.state,
        distance_miles=round(distance_miles, 2) if distance_miles is not None else None,
    )
