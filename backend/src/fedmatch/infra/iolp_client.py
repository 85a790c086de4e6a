"""Client for the GSA Inventory of Owned and Leased Properties (IOLP).

Queries the HIFLD ArcGIS FeatureServer that republishes the inventory:
layer 3 holds federally owned buildings, layer 4 leased space.  Results are
paged with ``resultOffset`` / ``resultRecordCount`` until the server stops
reporting ``exceededTransferLimit``.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Any

import httpx

from fedmatch.domain.contracts import FederalPropertyRecord
from fedmatch.domain.enums import Ownership
from fedmatch.domain.errors import UpstreamUnavailable

logger = logging.getLogger(__name__)

BUILDINGS_LAYER = 3
LEASES_LAYER = 4

LAYER_PREFIX = {
    BUILDINGS_LAYER: "building",
    LEASES_LAYER: "lease",
}
LAYER_OWNERSHIP = {
    BUILDINGS_LAYER: Ownership.OWNED,
    LEASES_LAYER: Ownership.LEASED,
}
OWNERSHIP_INDICATOR = {
    "F": Ownership.OWNED,
    "L": Ownership.LEASED,
}

# Safety stop for a server that keeps claiming more pages
_MAX_PAGES = 500


def _parse_arcgis_date(value: Any) -> date | None:
    """ArcGIS returns dates as epoch milliseconds or as ISO-ish strings."""
    if value is None or value == "":
        return None
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc).date()
        except (OverflowError, OSError, ValueError):
            return None
    text = str(value).strip()
    for fmt in ("%Y-%m-%d", "%Y-%m-%dT%H:%M:%S", "%m/%d/%Y"):
        try:
            return datetime.strptime(text[:19] if "T" in text else text, fmt).date()
        except ValueError:
            continue
    return None


def _to_float(value: Any) -> float | None:
    try:
        return float(value) if value is not None and value != "" else None
    except (TypeError, ValueError):
        return None


def parse_feature(feature: dict, layer: int) -> FederalPropertyRecord | None:
    """Map one ArcGIS feature onto a record; features without a position are skipped."""
    attrs = feature.get("attributes") or {}
    geometry = feature.get("geometry") or {}

    object_id = attrs.get("OBJECTID")
    if object_id is None:
        return None

    lat = _to_float(attrs.get("latitude"))
    lng = _to_float(attrs.get("longitude"))
    if lat is None or lng is None:
        lat = _to_float(geometry.get("y"))
        lng = _to_float(geometry.get("x"))
    if lat is None or lng is None or not (-90 <= lat <= 90 and -180 <= lng <= 180):
        return None

    indicator = str(attrs.get("owned_or_leased_indicator") or "").strip().upper()
    ownership = OWNERSHIP_INDICATOR.get(indicator, LAYER_OWNERSHIP[layer])

    year = attrs.get("year_constructed")
    try:
        construction_year = int(year) if year else None
    except (TypeError, ValueError):
        construction_year = None

    state = attrs.get("state")
    return FederalPropertyRecord(
        id=f"{LAYER_PREFIX[layer]}_{object_id}",
        latitude=lat,
        longitude=lng,
        ownership=ownership,
        rsf=_to_float(attrs.get("building_rsf")) or 0.0,
        vacant_rsf=_to_float(attrs.get("vacant_rsf")) or 0.0,
        lease_expiration=_parse_arcgis_date(attrs.get("lease_expiration_date")),
        construction_year=construction_year,
        agency=attrs.get("agency_abbr"),
        building_name=attrs.get("building_name"),
        address=attrs.get("address"),
        city=attrs.get("city"),
        state=state.strip().upper() if isinstance(state, str) else None,
        zipcode=str(attrs["zipcode"]) if attrs.get("zipcode") is not None else None,
        location_code=attrs.get("location_code"),
    )


class IOLPClient:
    """Async client for the IOLP FeatureServer."""

    def __init__(self, base_url: str, timeout: float = 30.0, page_size: int = 2000) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._page_size = page_size

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def fetch_all(self, state: str | None = None) -> list[FederalPropertyRecord]:
        """Owned buildings followed by leased space, optionally for one state."""
        where = f"state = '{state.strip().upper()}'" if state else "1=1"
        owned = await self.fetch_layer(BUILDINGS_LAYER, where)
        leased = await self.fetch_layer(LEASES_LAYER, where)
        return owned + leased

    async def fetch_layer(self, layer: int, where: str = "1=1") -> list[FederalPropertyRecord]:
        """Page through one layer.

        Raises:
            UpstreamUnavailable: on HTTP, network or ArcGIS-level errors.
        """
        records: list[FederalPropertyRecord] = []
        skipped = 0
        offset = 0
        url = f"{self._base_url}/{layer}/query"

        async with httpx.AsyncClient(timeout=self._timeout) as client:
            for _ in range(_MAX_PAGES):
                params = {
                    "where": where,
                    "outFields": "*",
                    "returnGeometry": "true",
                    "outSR": "4326",
                    "resultOffset": offset,
                    "resultRecordCount": self._page_size,
                    "orderByFields": "OBJECTID ASC",
                    "f": "json",
                }
                data = await self._fetch(client, url, params)
                features = data.get("features") or []
                for feature in features:
                    record = parse_feature(feature, layer)
                    if record is None:
                        skipped += 1
                    else:
                        records.append(record)

                if not features or not data.get("exceededTransferLimit"):
                    break
                offset += len(features)

        logger.info(
            "IOLP layer %d: %d records fetched, %d skipped without position",
            layer, len(records), skipped,
        )
        return records

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _fetch(self, client: httpx.AsyncClient, url: str, params: dict) -> dict:
        try:
            resp = await client.get(url, params=params)
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPStatusError as exc:
            logger.warning("IOLP API HTTP error: %s", exc)
            raise UpstreamUnavailable(f"IOLP API returned {exc.response.status_code}") from exc
        except httpx.RequestError as exc:
            logger.warning("IOLP API request failed: %s", exc)
            raise UpstreamUnavailable(f"IOLP API request failed: {exc}") from exc
        except ValueError as exc:
            logger.warning("IOLP API returned invalid JSON: %s", exc)
            raise UpstreamUnavailable("IOLP API returned invalid JSON") from exc

        if not isinstance(data, dict):
            raise UpstreamUnavailable("IOLP API returned an unexpected payload")
        if "error" in data:
            error = data["error"] or {}
            logger.warning("IOLP API error payload: %s", error)
            raise UpstreamUnavailable(f"IOLP API error: {error.get('message', 'unknown')}")
        return data
