"""Read access to the synced federal property inventory."""

from datetime import date, datetime, timezone

from dateutil.relativedelta import relativedelta
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fedmatch.domain.contracts import FederalPropertyRecord, GeoPoint
from fedmatch.domain.enums import Ownership
from fedmatch.domain.models import FederalProperty
from fedmatch.services.geo import bounding_box, haversine_miles
from fedmatch.services.property_serializer import federal_record_from_row


class FederalPropertyRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def find_within_radius(
        self, center: GeoPoint, radius_miles: float
    ) -> list[tuple[FederalPropertyRecord, float]]:
        """Records within ``radius_miles`` of ``center``, nearest first.

        The bounding box narrows the indexed query; great-circle distance
        decides membership.
        """
        min_lat, min_lng, max_lat, max_lng = bounding_box(center.lat, center.lng, radius_miles)
        result = await self.session.execute(
            select(FederalProperty).where(
                FederalProperty.latitude.between(min_lat, max_lat),
                FederalProperty.longitude.between(min_lng, max_lng),
            )
        )

        matches = []
        for row in result.scalars().all():
            dist = haversine_miles(center.lat, center.lng, row.latitude, row.longitude)
            if dist <= radius_miles:
                matches.append((federal_record_from_row(row), dist))
        matches.sort(key=lambda m: (m[1], m[0].id))
        return matches

    async def find_expiring_leases(
        self,
        months_ahead: int = 24,
        state: str | None = None,
        *,
        today: date | None = None,
    ) -> list[FederalPropertyRecord]:
        """Leases expiring between today and ``months_ahead`` months out, soonest first."""
        today = today or datetime.now(timezone.utc).date()
        horizon = today + relativedelta(months=months_ahead)
        query = select(FederalProperty).where(
            FederalProperty.ownership == Ownership.LEASED.value,
            FederalProperty.lease_expiration_date.is_not(None),
            FederalProperty.lease_expiration_date.between(today, horizon),
        )
        if state:
            query = query.where(FederalProperty.state == state.strip().upper())
        query = query.order_by(FederalProperty.lease_expiration_date, FederalProperty.id)

        result = await self.session.execute(query)
        return [federal_record_from_row(row) for row in result.scalars().all()]
