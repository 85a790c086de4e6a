"""Typed dataclasses for scorer inputs.

These are read-only views built from ORM rows (see
``services.property_serializer``) or directly in tests, so the scorers never
touch the database.
"""

from dataclasses import dataclass, field
from datetime import date

from fedmatch.domain.enums import AreaUnit, BuildingClass, Ownership


@dataclass(frozen=True)
class GeoPoint:
    lat: float
    lng: float


# ---------------------------------------------------------------------------
# Property (broker listing)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PropertySpace:
    total_sqft: int = 0
    available_sqft: int = 0
    usable_sqft: int | None = None
    min_divisible_sqft: int | None = None
    is_contiguous: bool = True


@dataclass(frozen=True)
class PropertyBuilding:
    building_class: BuildingClass | None = None
    total_floors: int | None = None
    available_floors: tuple[int, ...] = ()
    ada_compliant: bool = False
    public_transit_access: bool = False
    parking_ratio: float = 0.0  # spaces per 1,000 sq ft
    features: frozenset[str] = frozenset()
    certifications: tuple[str, ...] = ()


@dataclass(frozen=True)
class PropertyTimeline:
    available_date: date | None = None  # None means available now
    min_lease_term_months: int | None = None
    max_lease_term_months: int | None = None
    build_out_weeks: int = 0


@dataclass(frozen=True)
class Property:
    """A leasable asset as the match scorer sees it."""
    id: str
    city: str = ""
    state: str = ""
    lat: float | None = None
    lng: float | None = None
    space: PropertySpace = field(default_factory=PropertySpace)
    building: PropertyBuilding = field(default_factory=PropertyBuilding)
    timeline: PropertyTimeline = field(default_factory=PropertyTimeline)
    broker_id: str | None = None


# ---------------------------------------------------------------------------
# Opportunity requirement (derived per call, never persisted)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LocationRequirement:
    state: str
    radius_miles: float
    city: str | None = None
    zip: str | None = None
    delineated_area: str | None = None
    center: GeoPoint | None = None


@dataclass(frozen=True)
class SpaceRequirement:
    min_sqft: int | None = None
    max_sqft: int | None = None
    target_sqft: int | None = None
    unit: AreaUnit = AreaUnit.RENTABLE
    contiguous: bool = True
    divisible: bool = False


@dataclass(frozen=True)
class BuildingRequirement:
    acceptable_classes: frozenset[BuildingClass] = frozenset()
    min_floors: int | None = None
    max_floors: int | None = None
    ada_required: bool = True
    transit_required: bool = False
    parking_required: bool = False
    required_features: frozenset[str] = frozenset()
    required_certifications: tuple[str, ...] = ()


@dataclass(frozen=True)
class TimelineRequirement:
    occupancy_date: date
    response_deadline: date
    firm_term_months: int | None = None
    total_term_months: int | None = None

    def __post_init__(self):
        if self.occupancy_date < self.response_deadline:
            raise ValueError(
                f"occupancy date {self.occupancy_date} precedes response deadline "
                f"{self.response_deadline}"
            )


@dataclass(frozen=True)
class OpportunityRequirement:
    opportunity_id: str
    location: LocationRequirement
    space: SpaceRequirement
    building: BuildingRequirement
    timeline: TimelineRequirement


# ---------------------------------------------------------------------------
# Broker past performance
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BrokerReference:
    agency: str
    contract_value: float = 0.0
    year: int | None = None


@dataclass(frozen=True)
class BrokerExperienceProfile:
    government_lease_experience: bool = False
    government_leases_count: int = 0
    gsa_certified: bool = False
    years_in_business: int = 0
    total_portfolio_sqft: int = 0
    references: tuple[BrokerReference, ...] = ()
    willing_to_build_to_suit: bool = False
    willing_to_provide_improvements: bool = False


# ---------------------------------------------------------------------------
# Federal reference data
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FederalPropertyRecord:
    """One owned building or leased space from the IOLP dataset."""
    id: str
    latitude: float
    longitude: float
    ownership: Ownership
    rsf: float = 0.0
    vacant_rsf: float = 0.0
    lease_expiration: date | None = None
    construction_year: int | None = None
    agency: str | None = None
    building_name: str | None = None
    address: str | None = None
    city: str | None = None
    state: str | None = None
    zipcode: str | None = None
    location_code: str | None = None
