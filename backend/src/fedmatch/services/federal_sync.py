"""Sync the IOLP inventory into the ``federal_properties`` table."""

import logging
from dataclasses import dataclass
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fedmatch.domain.contracts import FederalPropertyRecord
from fedmatch.domain.models import FederalProperty
from fedmatch.infra.iolp_client import IOLPClient

logger = logging.getLogger(__name__)

BATCH_SIZE = 500


@dataclass
class SyncSummary:
    fetched: int = 0
    inserted: int = 0
    updated: int = 0


def _row_values(record: FederalPropertyRecord) -> dict:
    return {
        "ownership": record.ownership.value,
        "location_code": record.location_code,
        "building_name": record.building_name,
        "address": record.address,
        "city": record.city,
        "state": record.state,
        "zipcode": record.zipcode,
        "latitude": record.latitude,
        "longitude": record.longitude,
        "rsf": record.rsf,
        "vacant_rsf": record.vacant_rsf,
        "lease_expiration_date": record.lease_expiration,
        "construction_year": record.construction_year,
        "agency": record.agency,
    }


async def upsert_records(session: AsyncSession, records: Iterable[FederalPropertyRecord]) -> SyncSummary:
    """Insert new records and refresh existing ones, committing per batch."""
    summary = SyncSummary()
    batch: list[FederalPropertyRecord] = []

    async def flush_batch():
        # Later duplicates of an id in the same batch win
        by_id = {r.id: r for r in batch}
        result = await session.execute(
            select(FederalProperty).where(FederalProperty.id.in_(by_id.keys()))
        )
        existing = {row.id: row for row in result.scalars().all()}
        for record_id, record in by_id.items():
            values = _row_values(record)
            row = existing.get(record_id)
            if row is None:
                session.add(FederalProperty(id=record_id, **values))
                summary.inserted += 1
            else:
                for attr, value in values.items():
                    setattr(row, attr, value)
                summary.updated += 1
        await session.commit()
        batch.clear()

    for record in records:
        summary.fetched += 1
        batch.append(record)
        if len(batch) >= BATCH_SIZE:
            await flush_batch()
    if batch:
        await flush_batch()
    return summary


async def sync_federal_properties(
    session: AsyncSession,
    client: IOLPClient,
    state: str | None = None,
) -> SyncSummary:
    """Fetch both IOLP layers and upsert them.

    Raises:
        UpstreamUnavailable: the IOLP service failed; nothing is written.
    """
    records = await client.fetch_all(state=state)
    summary = await upsert_records(session, records)
    logger.info(
        "Federal property sync%s: %d fetched, %d inserted, %d updated",
        f" ({state})" if state else "",
        summary.fetched, summary.inserted, summary.updated,
    )
    return summary
