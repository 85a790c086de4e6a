"""Shared test infrastructure for the FedMatch test suite.

Provides:
- session_factory: async sessionmaker over a fresh SQLite file database
- db_session: a session from that factory (request-scoped session stand-in)
- make_property / make_opportunity / make_broker_profile / make_federal_property:
  row factories that commit, so cache sessions see the data
- build_property / build_requirement: in-memory scorer inputs
"""

import uuid
from datetime import date, datetime, timedelta

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

# Import Base first, then models to register all tables
from fedmatch.infra.database import Base

import fedmatch.domain.models  # noqa: F401

from fedmatch.domain.contracts import (
    BuildingRequirement,
    GeoPoint,
    LocationRequirement,
    OpportunityRequirement,
    Property,
    PropertyBuilding,
    PropertySpace,
    PropertyTimeline,
    SpaceRequirement,
    TimelineRequirement,
)
from fedmatch.domain.enums import BuildingClass
from fedmatch.domain.models import (
    BrokerProfile,
    FederalProperty,
    Opportunity,
    Property as PropertyRow,
)

TODAY = date(2026, 3, 2)


# ---------------------------------------------------------------------------
# Database fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
async def session_factory(tmp_path):
    """Sessionmaker over a throwaway SQLite file with all tables created.

    A file (not ``:memory:``) so the cache's separate sessions see the same
    database through their own connections.
    """
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    yield factory

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session
        await session.rollback()


# ---------------------------------------------------------------------------
# Row factories
# ---------------------------------------------------------------------------

@pytest.fixture
def make_property(db_session):
    """Factory for a committed Property row matching the reference requirement.

    Usage:
        prop = await make_property(ada_compliant=False)
    """
    async def _factory(**overrides) -> PropertyRow:
        values = dict(
            id=str(uuid.uuid4()),
            name="Federal Center Plaza",
            address="500 C St SW",
            city="Washington",
            state="DC",
            latitude=38.8951,
            longitude=-77.0364,
            total_sqft=80_000,
            available_sqft=50_000,
            is_contiguous=True,
            building_class="B",
            total_floors=8,
            ada_compliant=True,
            public_transit_access=True,
            parking_ratio=2.5,
            features=["fiber", "backup_power"],
            certifications=["LEED Gold"],
            available_date=TODAY + timedelta(days=60),
            min_lease_term_months=60,
            max_lease_term_months=240,
            build_out_weeks=0,
        )
        values.update(overrides)
        row = PropertyRow(**values)
        db_session.add(row)
        await db_session.commit()
        return row

    return _factory


@pytest.fixture
def make_opportunity(db_session):
    """Factory for a committed Opportunity row.

    Usage:
        opp = await make_opportunity(full_data={"min_sqft": 40000})
    """
    async def _factory(**overrides) -> Opportunity:
        values = dict(
            id=str(uuid.uuid4()),
            notice_id="47PA0126R0001",
            title="Lease of Office Space - Washington, DC",
            description="Office space in Washington, DC. ADA compliance required.",
            naics_code="531120",
            pop_city_name="Washington",
            pop_state_code="DC",
            latitude=38.8951,
            longitude=-77.0364,
            posted_date=datetime(2026, 2, 1),
            response_deadline=datetime.combine(TODAY + timedelta(days=30), datetime.min.time()),
            full_data={
                "min_sqft": 40_000,
                "target_sqft": 50_000,
                "max_sqft": 120_000,
                "occupancy_date": (TODAY + timedelta(days=120)).isoformat(),
            },
        )
        values.update(overrides)
        row = Opportunity(**values)
        db_session.add(row)
        await db_session.commit()
        return row

    return _factory


@pytest.fixture
def make_broker_profile(db_session):
    async def _factory(user_id: str, **overrides) -> BrokerProfile:
        values = dict(
            id=str(uuid.uuid4()),
            user_id=user_id,
            government_lease_experience=True,
            government_leases_count=4,
            gsa_certified=True,
            years_in_business=12,
            references=[{"agency": "GSA", "contract_value": 1_200_000, "year": 2023}],
            willing_to_build_to_suit=False,
            willing_to_provide_improvements=True,
        )
        values.update(overrides)
        row = BrokerProfile(**values)
        db_session.add(row)
        await db_session.commit()
        return row

    return _factory


@pytest.fixture
def make_federal_property(db_session):
    """Factory for a committed FederalProperty row (leased by default)."""
    async def _factory(**overrides) -> FederalProperty:
        values = dict(
            id=f"lease_{uuid.uuid4().hex[:8]}",
            ownership="leased",
            city="Washington",
            state="DC",
            latitude=38.8951,
            longitude=-77.0364,
            rsf=100_000,
            vacant_rsf=0,
            lease_expiration_date=None,
            construction_year=1990,
            agency="GSA",
        )
        values.update(overrides)
        row = FederalProperty(**values)
        db_session.add(row)
        await db_session.commit()
        return row

    return _factory


# ---------------------------------------------------------------------------
# In-memory scorer inputs
# ---------------------------------------------------------------------------

def build_property(
    *,
    available_sqft: int = 50_000,
    building_class: BuildingClass | None = BuildingClass.B,
    ada_compliant: bool = True,
    available_in_days: int | None = 60,
    lat: float | None = 38.8951,
    lng: float | None = -77.0364,
    city: str = "Washington",
    state: str = "DC",
    **space_overrides,
) -> Property:
    """The reference listing: 50,000 SF class B downtown DC, ADA, ready in 60 days."""
    return Property(
        id="prop-1",
        city=city,
        state=state,
        lat=lat,
        lng=lng,
        space=PropertySpace(total_sqft=80_000, available_sqft=available_sqft, **space_overrides),
        building=PropertyBuilding(
            building_class=building_class,
            total_floors=8,
            ada_compliant=ada_compliant,
            public_transit_access=True,
            parking_ratio=2.5,
            features=frozenset({"fiber", "backup_power"}),
            certifications=("LEED Gold",),
        ),
        timeline=PropertyTimeline(
            available_date=TODAY + timedelta(days=available_in_days) if available_in_days is not None else None,
            min_lease_term_months=60,
            max_lease_term_months=240,
        ),
    )


def build_requirement(
    *,
    location: LocationRequirement | None = None,
    space: SpaceRequirement | None = None,
    building: BuildingRequirement | None = None,
    occupancy_in_days: int = 120,
) -> OpportunityRequirement:
    """The reference requirement: 40k/50k/120k SF, classes {A+, A, B}, ADA, occupancy in 120 days."""
    return OpportunityRequirement(
        opportunity_id="opp-1",
        location=location or LocationRequirement(
            state="DC", radius_miles=10.0, city="Washington", center=GeoPoint(38.8951, -77.0364),
        ),
        space=space or SpaceRequirement(min_sqft=40_000, max_sqft=120_000, target_sqft=50_000),
        building=building or BuildingRequirement(
            acceptable_classes=frozenset({BuildingClass.A_PLUS, BuildingClass.A, BuildingClass.B}),
            ada_required=True,
        ),
        timeline=TimelineRequirement(
            occupancy_date=TODAY + timedelta(days=occupancy_in_days),
            response_deadline=TODAY + timedelta(days=30),
            firm_term_months=60,
            total_term_months=240,
        ),
    )
