"""Sync script: load the GSA IOLP inventory into federal_properties.

Usage:
    cd backend
    python scripts/sync_federal_data.py            # all states
    python scripts/sync_federal_data.py --state DC

Presence scores are computed from this table, so run it before serving
presence requests and periodically afterwards.
"""

import argparse
import asyncio
import logging
import os
import sys

# Ensure backend/src is on the path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

logging.basicConfig(level=logging.INFO, format="%(levelname)s  %(message)s")
logger = logging.getLogger(__name__)


async def sync(state: str | None) -> int:
    from fedmatch.app.config import get_settings
    from fedmatch.domain.errors import UpstreamUnavailable
    from fedmatch.infra.database import async_session, init_db
    from fedmatch.infra.iolp_client import IOLPClient
    from fedmatch.services.federal_sync import sync_federal_properties

    settings = get_settings()
    await init_db()

    client = IOLPClient(
        settings.iolp_base_url,
        timeout=settings.iolp_timeout_seconds,
        page_size=settings.iolp_page_size,
    )
    logger.info("Syncing federal properties from %s%s", settings.iolp_base_url, f" for {state}" if state else "")

    async with async_session() as session:
        try:
            summary = await sync_federal_properties(session, client, state=state)
        except UpstreamUnavailable as exc:
            logger.error("Sync aborted: %s", exc.message)
            return 1

    logger.info(
        "Done. Fetched: %d, Inserted: %d, Updated: %d",
        summary.fetched, summary.inserted, summary.updated,
    )
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--state", help="two-letter state code to limit the sync")
    args = parser.parse_args()
    sys.exit(asyncio.run(sync(args.state)))
