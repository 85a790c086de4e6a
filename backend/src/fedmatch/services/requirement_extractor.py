"""Requirement Extractor: raw opportunity record -> OpportunityRequirement.

Pure function, no I/O.  Upstream opportunity records are often only
partially machine-extracted, so every absent or unreadable field resolves to
a documented default from ``ScoringConfig`` instead of raising.

Resolution order for each figure:
    1. Explicit value in ``full_data`` (parsed from the RFP documents)
    2. Pattern match against title + description
    3. Config default
"""

from __future__ import annotations

import math
import re
from collections.abc import Mapping
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from fedmatch.domain.contracts import (
    BuildingRequirement,
    GeoPoint,
    LocationRequirement,
    OpportunityRequirement,
    SpaceRequirement,
    TimelineRequirement,
)
from fedmatch.domain.enums import AreaUnit, BuildingClass, BuildingFeature
from fedmatch.services.scoring_config import DEFAULT_CONFIG, ScoringConfig

# ── Patterns ────────────────────────────────────────────────────────────────

_NUMBER = r"(\d{1,3}(?:,\d{3})+|\d+)"
_AREA_UNITS = r"(?:aboa\s+)?(?:a?rsf|usf|sf|square\s+feet|sq\.?\s*ft)"

MIN_AREA_PATTERN = re.compile(rf"minimum\s+(?:of\s+)?{_NUMBER}\s*{_AREA_UNITS}")
MAX_AREA_PATTERN = re.compile(rf"maximum\s+(?:of\s+)?{_NUMBER}\s*{_AREA_UNITS}")
AREA_PATTERN = re.compile(rf"{_NUMBER}\s*{_AREA_UNITS}")
USABLE_PATTERN = re.compile(r"\baboa\b|\busable\b|\busf\b")

# Figures below this are square-foot noise ("10 sf closet") rather than a requirement.
_MIN_PLAUSIBLE_SQFT = 500

RADIUS_PATTERN = re.compile(r"within\s+(\d+(?:\.\d+)?)\s+miles?")
DELINEATED_AREA_PATTERN = re.compile(r"delineated\s+area[:\s]+([^.;\n]{3,200})")
CLASS_PATTERN = re.compile(r"\bclass\s+(a\+|a|b|c)(?![a-z])")

OCCUPANCY_PATTERNS = (
    re.compile(r"occupancy\s+(?:by|on|date)[:\s]+(\d{1,2}/\d{1,2}/\d{2,4})"),
    re.compile(r"move-?in\s+date[:\s]+(\d{1,2}/\d{1,2}/\d{2,4})"),
)
FIRM_TERM_PATTERN = re.compile(r"(\d+)[\s-]*(years?|months?)\s+firm")
TOTAL_TERM_PATTERN = re.compile(r"(\d+)[\s-]*(years?|months?)\s+(?:total|full\s+term)")

FEATURE_PATTERNS: dict[BuildingFeature, re.Pattern] = {
    BuildingFeature.FIBER: re.compile(r"fiber|high.speed.internet"),
    BuildingFeature.BACKUP_POWER: re.compile(r"generator|backup\s+power|emergency\s+power"),
    BuildingFeature.LOADING_DOCK: re.compile(r"loading\s+dock|loading\s+area"),
    BuildingFeature.SECURITY_24X7: re.compile(r"24.7.security|24.hour.security"),
    BuildingFeature.SECURE_ACCESS: re.compile(r"controlled\s+access|card\s+access|secure\s+access"),
    BuildingFeature.SCIF_CAPABLE: re.compile(r"\bscif\b|sensitive\s+compartmented"),
    BuildingFeature.DATA_CENTER: re.compile(r"data.center|server.room"),
    BuildingFeature.CAFETERIA: re.compile(r"cafeteria|food.service"),
    BuildingFeature.FITNESS_CENTER: re.compile(r"fitness|\bgym\b"),
    BuildingFeature.CONFERENCE_CENTER: re.compile(r"conference\s+(?:center|facility)|meeting.rooms"),
}

CERTIFICATION_PATTERNS: dict[str, re.Pattern] = {
    "LEED": re.compile(r"\bleed\b"),
    "Energy Star": re.compile(r"energy\s+star"),
}

FEATURE_NAMES = frozenset(f.value for f in BuildingFeature)

TRANSIT_PATTERN = re.compile(r"transit|metro|subway")
PARKING_PATTERN = re.compile(r"parking")


# ── Helpers ─────────────────────────────────────────────────────────────────

def _parse_date(value) -> Optional[date]:
    """Best-effort parse of a date-like value into a ``date`` object.

    Accepts ``date``, ``datetime``, ISO-format strings, US ``MM/DD/YYYY``
    strings, or ``None``.  Returns ``None`` when the value cannot be
    interpreted as a date.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        cleaned = value.strip()
        if not cleaned:
            return None
        try:
            return date.fromisoformat(cleaned[:10])
        except (ValueError, TypeError):
            pass
        for fmt in ("%m/%d/%Y", "%m/%d/%y"):
            try:
                return datetime.strptime(cleaned, fmt).date()
            except ValueError:
                continue
    return None


def _to_int(value) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.replace(",", "").strip()
    try:
        as_float = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    if not math.isfinite(as_float):
        return None
    number = int(as_float)
    return number if number > 0 else None


def _to_float(value) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    return number if math.isfinite(number) else None


def _clean(value) -> Optional[str]:
    if value is None:
        return None
    return str(value).strip() or None


def _as_list(value) -> list:
    """Only list-like values count; a scalar is unreadable."""
    return list(value) if isinstance(value, (list, tuple)) else []


def _months(count: str, unit: str) -> int:
    return int(count) * (12 if unit.startswith("year") else 1)


def _text_of(raw: Mapping) -> str:
    title = _clean(raw.get("title")) or ""
    description = _clean(raw.get("description")) or ""
    return f"{title} {description}".lower()


# ── Sub-requirements ────────────────────────────────────────────────────────

def _extract_location(raw: Mapping, parsed: Mapping, text: str, config: ScoringConfig) -> LocationRequirement:
    state = (_clean(raw.get("pop_state_code")) or config.default_state).upper()
    city = _clean(raw.get("pop_city_name"))
    zip_code = _clean(raw.get("pop_zip"))

    delineated_area = _clean(parsed.get("delineated_area"))
    if not delineated_area:
        match = DELINEATED_AREA_PATTERN.search(text)
        delineated_area = match.group(1).strip() if match else None

    radius = _to_float(parsed.get("radius_miles"))
    if radius is None:
        match = RADIUS_PATTERN.search(text)
        radius = float(match.group(1)) if match else None
    if radius is None or not 0 < radius < float("inf"):
        radius = config.default_radius_miles

    center = None
    lat = _to_float(raw.get("latitude"))
    lng = _to_float(raw.get("longitude"))
    if lat is not None and lng is not None and -90 <= lat <= 90 and -180 <= lng <= 180:
        center = GeoPoint(lat=lat, lng=lng)

    return LocationRequirement(
        state=state,
        radius_miles=radius,
        city=city,
        zip=zip_code,
        delineated_area=delineated_area,
        center=center,
    )


def _extract_space(parsed: Mapping, text: str, config: ScoringConfig) -> SpaceRequirement:
    unit = AreaUnit.USABLE if USABLE_PATTERN.search(text) else AreaUnit.RENTABLE
    if parsed.get("usable_or_rentable") in (AreaUnit.USABLE.value, AreaUnit.RENTABLE.value):
        unit = AreaUnit(parsed["usable_or_rentable"])

    min_sqft = _to_int(parsed.get("min_sqft"))
    max_sqft = _to_int(parsed.get("max_sqft"))
    target_sqft = _to_int(parsed.get("target_sqft"))

    if min_sqft is None and max_sqft is None:
        min_match = MIN_AREA_PATTERN.search(text)
        max_match = MAX_AREA_PATTERN.search(text)
        if min_match:
            min_sqft = _to_int(min_match.group(1))
        if max_match:
            max_sqft = _to_int(max_match.group(1))

    if min_sqft is None and max_sqft is None:
        figures = [
            n for n in (_to_int(m.group(1)) for m in AREA_PATTERN.finditer(text))
            if n is not None and n >= _MIN_PLAUSIBLE_SQFT
        ]
        if len(figures) == 1:
            # A single figure reads as a target with +/-10% latitude
            target_sqft = target_sqft or figures[0]
            min_sqft = round(figures[0] * 0.9)
            max_sqft = round(figures[0] * 1.1)
        elif figures:
            min_sqft, max_sqft = min(figures), max(figures)

    if min_sqft is None and max_sqft is None:
        min_sqft = config.default_min_sqft
        max_sqft = config.default_max_sqft
        target_sqft = target_sqft or config.default_target_sqft

    if min_sqft is not None and max_sqft is not None and min_sqft > max_sqft:
        min_sqft, max_sqft = max_sqft, min_sqft

    if target_sqft is None:
        if min_sqft is not None and max_sqft is not None:
            target_sqft = round((min_sqft + max_sqft) / 2)
        else:
            target_sqft = min_sqft or max_sqft

    contiguous = parsed.get("contiguous")
    if contiguous is None:
        contiguous = "non-contiguous" not in text and "noncontiguous" not in text
    divisible = parsed.get("divisible")
    if divisible is None:
        divisible = "divisible" in text and "not divisible" not in text

    return SpaceRequirement(
        min_sqft=min_sqft,
        max_sqft=max_sqft,
        target_sqft=target_sqft,
        unit=unit,
        contiguous=bool(contiguous),
        divisible=bool(divisible),
    )


def _extract_building(parsed: Mapping, text: str, config: ScoringConfig) -> BuildingRequirement:
    classes = {
        c for c in (BuildingClass.parse(v) for v in _as_list(parsed.get("building_classes")))
        if c is not None
    }
    if not classes:
        classes = {
            c for c in (BuildingClass.parse(m.group(1)) for m in CLASS_PATTERN.finditer(text))
            if c is not None
        }
    if not classes:
        classes = set(config.default_acceptable_classes)

    features = {f.value for f, pattern in FEATURE_PATTERNS.items() if pattern.search(text)}
    features.update(
        f for f in _as_list(parsed.get("required_features"))
        if isinstance(f, str) and f in FEATURE_NAMES
    )

    certifications = [name for name, pattern in CERTIFICATION_PATTERNS.items() if pattern.search(text)]
    for cert in _as_list(parsed.get("required_certifications")):
        cert = cert.strip() if isinstance(cert, str) else ""
        if cert and cert.lower() not in {c.lower() for c in certifications}:
            certifications.append(cert)

    # Federal leases carry an ADA mandate unless the record says otherwise.
    ada_required = parsed.get("ada_required")
    if ada_required is None:
        ada_required = True

    return BuildingRequirement(
        acceptable_classes=frozenset(classes),
        min_floors=_to_int(parsed.get("min_floors")),
        max_floors=_to_int(parsed.get("max_floors")),
        ada_required=bool(ada_required),
        transit_required=bool(TRANSIT_PATTERN.search(text)),
        parking_required=bool(PARKING_PATTERN.search(text)),
        required_features=frozenset(features),
        required_certifications=tuple(certifications),
    )


def _extract_timeline(
    raw: Mapping, parsed: Mapping, text: str, config: ScoringConfig, today: date,
) -> TimelineRequirement:
    deadline = _parse_date(raw.get("response_deadline")) or today

    occupancy = _parse_date(parsed.get("occupancy_date"))
    if occupancy is None:
        for pattern in OCCUPANCY_PATTERNS:
            match = pattern.search(text)
            if match:
                occupancy = _parse_date(match.group(1))
                break
    if occupancy is None or occupancy < deadline:
        try:
            occupancy = deadline + timedelta(days=config.occupancy_buffer_days)
        except OverflowError:
            occupancy = date.max

    firm = _to_int(parsed.get("firm_term_months"))
    if firm is None:
        match = FIRM_TERM_PATTERN.search(text)
        firm = _months(*match.groups()) if match else config.default_firm_term_months
    total = _to_int(parsed.get("total_term_months"))
    if total is None:
        match = TOTAL_TERM_PATTERN.search(text)
        total = _months(*match.groups()) if match else config.default_total_term_months
    total = max(total, firm)

    return TimelineRequirement(
        occupancy_date=occupancy,
        response_deadline=deadline,
        firm_term_months=firm,
        total_term_months=total,
    )


# ── Public API ──────────────────────────────────────────────────────────────

def extract(
    raw: Mapping,
    config: ScoringConfig = DEFAULT_CONFIG,
    *,
    today: date | None = None,
) -> OpportunityRequirement:
    """Normalize a raw opportunity record into an ``OpportunityRequirement``.

    Parameters
    ----------
    raw
        Keys: id, title, description, pop_city_name, pop_state_code,
        pop_zip, latitude, longitude, response_deadline, full_data.
        Any of them may be missing.
    config
        Supplies the documented defaults.
    today
        Stand-in for "now" when the deadline is missing (tests pin it).
    """
    today = today or datetime.now(timezone.utc).date()
    parsed = raw.get("full_data") or {}
    if not isinstance(parsed, Mapping):
        parsed = {}
    text = _text_of(raw)

    return OpportunityRequirement(
        opportunity_id=str(raw.get("id") or ""),
        location=_extract_location(raw, parsed, text, config),
        space=_extract_space(parsed, text, config),
        building=_extract_building(parsed, text, config),
        timeline=_extract_timeline(raw, parsed, text, config, today),
    )
