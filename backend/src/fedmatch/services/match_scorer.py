"""Deterministic MCDA Match Scorer.

Pure-function module: NO database access.

Computes a composite match score from five weighted categories:
    - Location   (25%)  haversine distance with linear decay + city bonus
    - Space      (25%)  available area against the [min, target, max] band
    - Building   (20%)  class ladder, accessibility, features, certifications
    - Timeline   (15%)  ready-by-occupancy feasibility + lease-term overlap
    - Experience (15%)  broker past-performance signals

Each category is a pure function returning a ``CategoryOutcome``: a 0-100
score, the normalized sub-factors behind it, detail fields for the UI, and
the disqualifiers it raised.  Disqualifiers are accumulated, never raised, so
a ``MatchScore`` is always produced for well-formed input.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone

from fedmatch.domain.contracts import (
    BrokerExperienceProfile,
    BuildingRequirement,
    LocationRequirement,
    OpportunityRequirement,
    Property,
    SpaceRequirement,
    TimelineRequirement,
)
from fedmatch.domain.enums import AreaUnit, ScoreCategory
from fedmatch.domain.schemas import CategoryScore, MatchScore
from fedmatch.services.geo import haversine_miles
from fedmatch.services.grading import assign_grade, clamp, round_score
from fedmatch.services.scoring_config import DEFAULT_CONFIG, ScoringConfig

# ── Category constants ──────────────────────────────────────────────────────

# Credit left at the edge of the [min, max] band when the target sits mid-band
BAND_EDGE_FIT = 0.8
# Shortfall fraction at which an undersized space scores zero
SHORTFALL_ZERO_AT = 0.5

CLASS_EXACT = 1.0
CLASS_ADJACENT = 0.6
CLASS_MISMATCH = 0.2
CLASS_UNKNOWN = 0.5
FLOOR_MISMATCH_PENALTY = 10.0

BUILDING_SUBWEIGHTS = {
    "class": 0.35,
    "accessibility": 0.25,
    "features": 0.25,
    "certifications": 0.15,
}

FEASIBILITY_POINTS = 70.0
TERM_POINTS = 30.0
# Share of feasibility credit earned by being exactly on time
ON_TIME_FLOOR = 0.7

GOV_LEASE_CAP = 10
YEARS_CAP = 20
REFERENCES_CAP = 3
EXPERIENCE_POINTS = {
    "government_leases": 35.0,
    "gsa_certified": 15.0,
    "years_in_business": 20.0,
    "references": 10.0,
    "build_to_suit": 10.0,
    "improvements": 10.0,
}

ADA_DISQUALIFIER = "ADA compliance required but not met"


# ── Insight text ────────────────────────────────────────────────────────────

STRENGTHS: dict[tuple[str, str], str] = {
    ("location", "proximity"): "Property is close to the center of the delineated area",
    ("location", "city_match"): "Property is in the requirement's target city",
    ("location", "state_match"): "Property is in the required state",
    ("space", "size_fit"): "Available space fits the requirement's size band",
    ("space", "contiguity"): "Space is contiguous as required",
    ("building", "class"): "Building class is on the acceptable list",
    ("building", "accessibility"): "Building meets every accessibility mandate",
    ("building", "features"): "Building offers the required features",
    ("building", "certifications"): "Building holds the required certifications",
    ("timeline", "feasibility"): "Space can be ready before the required occupancy date",
    ("timeline", "lease_term"): "Lease terms fit the requirement's firm and total term",
    ("experience", "government_leases"): "Broker has a record of government leases",
    ("experience", "gsa_certified"): "Broker is GSA certified",
    ("experience", "years_in_business"): "Broker is well established",
    ("experience", "references"): "Broker can supply agency references",
    ("experience", "build_to_suit"): "Broker offers build-to-suit",
    ("experience", "improvements"): "Broker offers tenant improvements",
}

WEAKNESSES: dict[tuple[str, str], tuple[str, str]] = {
    ("location", "proximity"): (
        "Property is far from the center of the delineated area",
        "Verify the property falls inside the delineated area boundaries",
    ),
    ("location", "city_match"): (
        "Property is outside the requirement's target city",
        "Emphasize commute access and proximity to the target city",
    ),
    ("location", "state_match"): (
        "Property is outside the required state",
        "Confirm whether the solicitation accepts offers from neighboring states",
    ),
    ("space", "size_short"): (
        "Available space is below the requirement's target",
        "Consider highlighting expansion options or adjacent space",
    ),
    ("space", "size_over"): (
        "Available space exceeds the requirement's maximum",
        "Offer a subdivided suite sized to the requirement",
    ),
    ("space", "size_fit"): (
        "Available space sits at the edge of the requirement's size band",
        "Explain how the layout can be configured to the target size",
    ),
    ("space", "contiguity"): (
        "Space is not contiguous as required",
        "Look for a contiguous block or propose a reconfiguration",
    ),
    ("building", "class"): (
        "Building class is outside the acceptable list",
        "Document recent renovations that bring the building up to class",
    ),
    ("building", "accessibility"): (
        "Building does not meet the accessibility mandates",
        "Scope ADA, transit or parking upgrades before responding",
    ),
    ("building", "features"): (
        "Building is missing required features",
        "Evaluate the cost to add the missing features",
    ),
    ("building", "certifications"): (
        "Building lacks the required certifications",
        "Start the certification process or show equivalent ratings",
    ),
    ("timeline", "feasibility"): (
        "Space cannot be ready by the required occupancy date",
        "Communicate a realistic timeline and any acceleration options",
    ),
    ("timeline", "lease_term"): (
        "Lease terms do not cover the requirement's term",
        "Negotiate term flexibility with the owner",
    ),
    ("experience", "government_leases"): (
        "Broker has limited government lease experience",
        "Highlight institutional lease experience or team with an experienced prime",
    ),
    ("experience", "gsa_certified"): (
        "Broker is not GSA certified",
        "Pursue GSA certification or partner with a certified broker",
    ),
    ("experience", "years_in_business"): (
        "Broker has a short operating history",
        "Showcase the ownership group's track record",
    ),
    ("experience", "references"): (
        "Broker has few agency references",
        "Collect references from prior public-sector clients",
    ),
    ("experience", "build_to_suit"): (
        "Broker does not offer build-to-suit",
        "Ask the owner whether build-to-suit is negotiable",
    ),
    ("experience", "improvements"): (
        "Broker does not offer tenant improvements",
        "Ask the owner about a tenant improvement allowance",
    ),
}


@dataclass
class CategoryOutcome:
    """Result of one category function, before weighting."""

    score: float
    subfactors: dict[str, float]  # each normalized to [0, 1]
    details: dict = field(default_factory=dict)
    disqualifiers: list[str] = field(default_factory=list)


# ── Location ────────────────────────────────────────────────────────────────

def score_location(
    prop: Property,
    requirement: LocationRequirement,
    config: ScoringConfig = DEFAULT_CONFIG,
) -> CategoryOutcome:
    """Distance decay inside the radius, coarse city/state match otherwise.

    Location never disqualifies.
    """
    state_match = bool(prop.state) and prop.state.strip().upper() == requirement.state.strip().upper()
    req_city = (requirement.city or "").strip().lower()
    city_match = state_match and bool(req_city) and (prop.city or "").strip().lower() == req_city
    radius = requirement.radius_miles if requirement.radius_miles > 0 else config.default_radius_miles

    details = {
        "state_match": state_match,
        "city_match": city_match,
        "radius_miles": radius,
        "distance_miles": None,
        "within_radius": None,
        "delineated_area": requirement.delineated_area,
    }

    if requirement.center is not None and prop.lat is not None and prop.lng is not None:
        dist = haversine_miles(requirement.center.lat, requirement.center.lng, prop.lat, prop.lng)
        within = dist <= radius
        proximity = max(0.0, 1.0 - dist / radius) if within else 0.0
        score = 100.0 * proximity
        if city_match:
            score += config.city_match_bonus
        elif not within and state_match:
            score = max(score, config.outside_radius_state_floor)
        details["distance_miles"] = round(dist, 2)
        details["within_radius"] = within
        subfactors = {"proximity": proximity, "city_match": 1.0 if city_match else 0.0}
    else:
        if city_match:
            score = 100.0
        elif state_match:
            score = 50.0
        else:
            score = 0.0
        subfactors = {
            "city_match": 1.0 if city_match else 0.0,
            "state_match": 1.0 if state_match else 0.0,
        }

    return CategoryOutcome(score=clamp(score), subfactors=subfactors, details=details)


# ── Space ───────────────────────────────────────────────────────────────────

def _effective_area(prop: Property, requirement: SpaceRequirement) -> int:
    space = prop.space
    available = space.available_sqft or space.total_sqft or 0
    if requirement.unit is AreaUnit.USABLE and space.usable_sqft:
        available = min(available, space.usable_sqft) if available else space.usable_sqft
    return available


def score_space(
    prop: Property,
    requirement: SpaceRequirement,
    config: ScoringConfig = DEFAULT_CONFIG,
) -> CategoryOutcome:
    """Score available area against the requirement's [min, target, max] band.

    Rules
    -----
    * Inside [min, max]      -> 100 at target, 80 at the band edge
    * Below min              -> 80 at min, linear to 0 at 50% short
    * Above max              -> 80 at max, linear to 0 at twice max;
                                floor of 70 when divisible down to max
    * Contiguity unmet       -> minus the contiguity penalty
    * Short by more than the tolerance -> disqualifier
    """
    space = prop.space
    available = _effective_area(prop, requirement)
    min_req = requirement.min_sqft or 0
    max_req = requirement.max_sqft
    target = requirement.target_sqft
    if target is None:
        target = round((min_req + max_req) / 2) if max_req is not None else min_req

    meets_min = available >= min_req
    meets_max = max_req is None or available <= max_req
    can_subdivide = False

    if meets_min and meets_max:
        deviation = 0.0
        if target and available != target:
            if available < target:
                span = target - min_req
            else:
                span = (max_req - target) if max_req is not None else target
            deviation = min(1.0, abs(available - target) / span) if span > 0 else 0.0
        fit = 1.0 - (1.0 - BAND_EDGE_FIT) * deviation
        size_key = "size_fit"
    elif not meets_min:
        shortfall = (min_req - available) / min_req
        fit = BAND_EDGE_FIT * max(0.0, 1.0 - shortfall / SHORTFALL_ZERO_AT)
        size_key = "size_short"
    else:
        excess = (available - max_req) / max_req if max_req else 1.0
        fit = BAND_EDGE_FIT * max(0.0, 1.0 - excess)
        if space.min_divisible_sqft and space.min_divisible_sqft <= max_req:
            can_subdivide = True
            fit = max(fit, 0.7)
        size_key = "size_over"

    contiguity_met = not (requirement.contiguous and not space.is_contiguous)
    score = 100.0 * fit
    if not contiguity_met:
        score -= config.contiguity_penalty

    disqualifiers = []
    floor_sqft = min_req * (1.0 - config.space_shortfall_tolerance)
    if min_req > 0 and available < floor_sqft:
        disqualifiers.append(
            f"Available space ({available:,} SF) is more than "
            f"{config.space_shortfall_tolerance:.0%} below the minimum of {min_req:,} SF"
        )

    variance = available - target if target else None
    details = {
        "available_sqft": available,
        "min_sqft": requirement.min_sqft,
        "max_sqft": requirement.max_sqft,
        "target_sqft": target,
        "unit": requirement.unit.value,
        "meets_minimum": meets_min,
        "meets_maximum": meets_max,
        "meets_contiguous": contiguity_met,
        "can_subdivide": can_subdivide,
        "variance": variance,
        "variance_percent": round(variance / target * 100, 2) if target else None,
    }
    return CategoryOutcome(
        score=clamp(score),
        subfactors={size_key: fit, "contiguity": 1.0 if contiguity_met else 0.0},
        details=details,
        disqualifiers=disqualifiers,
    )


# ── Building ────────────────────────────────────────────────────────────────

def _class_fit(prop: Property, requirement: BuildingRequirement) -> tuple[float, bool]:
    """Return (fit, exact) for the building class ladder."""
    if not requirement.acceptable_classes:
        return CLASS_EXACT, True
    building_class = prop.building.building_class
    if building_class is None:
        return CLASS_UNKNOWN, False
    if building_class in requirement.acceptable_classes:
        return CLASS_EXACT, True
    gap = min(abs(building_class.ordinal - c.ordinal) for c in requirement.acceptable_classes)
    return (CLASS_ADJACENT if gap == 1 else CLASS_MISMATCH), False


def _has_certification(held: tuple[str, ...], wanted: str) -> bool:
    wanted = wanted.lower()
    return any(wanted in h.lower() or h.lower() in wanted for h in held if h)


def score_building(
    prop: Property,
    requirement: BuildingRequirement,
    config: ScoringConfig = DEFAULT_CONFIG,
) -> CategoryOutcome:
    """Weighted sum of class, accessibility, features and certifications.

    ADA is the one building attribute treated as a hard disqualifier.
    """
    building = prop.building
    class_fit, class_exact = _class_fit(prop, requirement)

    mandates = [
        ("ada", requirement.ada_required, building.ada_compliant),
        ("public_transit", requirement.transit_required, building.public_transit_access),
        ("parking", requirement.parking_required, building.parking_ratio > 0),
    ]
    required_mandates = [(name, met) for name, required, met in mandates if required]
    accessibility_fit = (
        sum(1 for _, met in required_mandates if met) / len(required_mandates)
        if required_mandates else 1.0
    )
    accessibility_missing = [name for name, met in required_mandates if not met]

    features_met = sorted(requirement.required_features & building.features)
    features_missing = sorted(requirement.required_features - building.features)
    features_fit = (
        len(features_met) / len(requirement.required_features)
        if requirement.required_features else 1.0
    )

    certs_met = [c for c in requirement.required_certifications if _has_certification(building.certifications, c)]
    certs_missing = [c for c in requirement.required_certifications if c not in certs_met]
    certs_fit = (
        len(certs_met) / len(requirement.required_certifications)
        if requirement.required_certifications else 1.0
    )

    subfactors = {
        "class": class_fit,
        "accessibility": accessibility_fit,
        "features": features_fit,
        "certifications": certs_fit,
    }
    score = 100.0 * sum(BUILDING_SUBWEIGHTS[k] * v for k, v in subfactors.items())

    floors_met = True
    if building.total_floors is not None:
        if requirement.min_floors is not None and building.total_floors < requirement.min_floors:
            floors_met = False
        if requirement.max_floors is not None and building.total_floors > requirement.max_floors:
            floors_met = False
    if not floors_met:
        score -= FLOOR_MISMATCH_PENALTY

    disqualifiers = []
    if requirement.ada_required and not building.ada_compliant:
        disqualifiers.append(ADA_DISQUALIFIER)

    details = {
        "building_class": building.building_class.value if building.building_class else None,
        "acceptable_classes": sorted(c.value for c in requirement.acceptable_classes),
        "class_match": class_exact,
        "accessibility_met": not accessibility_missing,
        "accessibility_missing": accessibility_missing,
        "features_met": features_met,
        "features_missing": features_missing,
        "certifications_met": certs_met,
        "certifications_missing": certs_missing,
        "floors_met": floors_met,
    }
    return CategoryOutcome(
        score=clamp(score), subfactors=subfactors, details=details, disqualifiers=disqualifiers,
    )


# ── Timeline ────────────────────────────────────────────────────────────────

def _term_fit(
    prop_min: int | None,
    prop_max: int | None,
    firm: int | None,
    total: int | None,
) -> float:
    """Overlap of the property's [min, max] term with the requirement's [firm, total]."""
    low = firm or 0
    high = total or low
    prop_min = prop_min or 0
    if (prop_max is not None and prop_max < low) or (high and prop_min > high):
        return 0.0
    fit = 1.0
    if prop_min > low:
        fit -= 0.5
    if prop_max is not None and prop_max < high:
        fit -= 0.3
    return max(0.0, fit)


def score_timeline(
    prop: Property,
    requirement: TimelineRequirement,
    config: ScoringConfig = DEFAULT_CONFIG,
    *,
    today: date | None = None,
) -> CategoryOutcome:
    """Feasibility (70 pts) plus lease-term compatibility (30 pts).

    Ready date = available date (today when unknown) + build-out weeks.
    Ready later than occupancy + grace -> disqualifier.
    """
    today = today or datetime.now(timezone.utc).date()
    timeline = prop.timeline
    available = timeline.available_date or today
    ready = available + timedelta(weeks=max(0, timeline.build_out_weeks or 0))
    slack_days = (requirement.occupancy_date - ready).days
    comfort = max(1, config.timeline_comfort_days)

    disqualifiers = []
    if slack_days >= 0:
        feasibility = ON_TIME_FLOOR + (1.0 - ON_TIME_FLOOR) * min(1.0, slack_days / comfort)
    else:
        days_late = -slack_days
        feasibility = ON_TIME_FLOOR * max(0.0, 1.0 - days_late / comfort)
        if days_late > config.timeline_grace_days:
            disqualifiers.append(
                f"Space ready {days_late} days after the required occupancy date "
                f"({requirement.occupancy_date.isoformat()})"
            )

    term_fit = _term_fit(
        timeline.min_lease_term_months,
        timeline.max_lease_term_months,
        requirement.firm_term_months,
        requirement.total_term_months,
    )
    score = FEASIBILITY_POINTS * feasibility + TERM_POINTS * term_fit

    details = {
        "available_date": available.isoformat(),
        "ready_date": ready.isoformat(),
        "occupancy_date": requirement.occupancy_date.isoformat(),
        "available_on_time": slack_days >= 0,
        "days_before_occupancy": slack_days,
        "lease_term_compatible": term_fit == 1.0,
    }
    return CategoryOutcome(
        score=clamp(score),
        subfactors={"feasibility": feasibility, "lease_term": term_fit},
        details=details,
        disqualifiers=disqualifiers,
    )


# ── Experience ──────────────────────────────────────────────────────────────

def score_experience(profile: BrokerExperienceProfile) -> CategoryOutcome:
    """Normalized sum of broker signals.  Never disqualifies."""
    lease_count = profile.government_leases_count or (1 if profile.government_lease_experience else 0)
    lease_count = max(0, min(lease_count, GOV_LEASE_CAP))

    subfactors = {
        "government_leases": math.log1p(lease_count) / math.log1p(GOV_LEASE_CAP),
        "gsa_certified": 1.0 if profile.gsa_certified else 0.0,
        "years_in_business": max(0, min(profile.years_in_business, YEARS_CAP)) / YEARS_CAP,
        "references": min(len(profile.references), REFERENCES_CAP) / REFERENCES_CAP,
        "build_to_suit": 1.0 if profile.willing_to_build_to_suit else 0.0,
        "improvements": 1.0 if profile.willing_to_provide_improvements else 0.0,
    }
    score = sum(EXPERIENCE_POINTS[k] * v for k, v in subfactors.items())

    flexibility = []
    if profile.willing_to_build_to_suit:
        flexibility.append("Build-to-suit available")
    if profile.willing_to_provide_improvements:
        flexibility.append("TI allowance available")
    details = {
        "has_gov_experience": lease_count > 0,
        "government_leases_count": profile.government_leases_count,
        "gsa_certified": profile.gsa_certified,
        "references_count": len(profile.references),
        "flexibility": flexibility,
    }
    return CategoryOutcome(score=clamp(score), subfactors=subfactors, details=details)


# ── Insights ────────────────────────────────────────────────────────────────

def generate_insights(
    outcomes: dict[str, CategoryOutcome],
    config: ScoringConfig = DEFAULT_CONFIG,
) -> tuple[list[str], list[str], list[str]]:
    """Strong categories name their best sub-factor; weak ones their worst."""
    strengths: list[str] = []
    weaknesses: list[str] = []
    recommendations: list[str] = []

    for category, outcome in outcomes.items():
        if not outcome.subfactors:
            continue
        if outcome.score >= config.strong_threshold:
            best = max(outcome.subfactors, key=outcome.subfactors.get)
            strengths.append(STRENGTHS.get((category, best), f"Strong {category} match"))
        elif outcome.score < config.weak_threshold:
            worst = min(outcome.subfactors, key=outcome.subfactors.get)
            weakness, recommendation = WEAKNESSES.get(
                (category, worst),
                (f"Weak {category} match", f"Review the {category} requirements"),
            )
            weaknesses.append(weakness)
            recommendations.append(recommendation)

    return strengths, weaknesses, recommendations


# ── Main scorer ─────────────────────────────────────────────────────────────

def compute_match_score(
    prop: Property,
    requirement: OpportunityRequirement,
    experience: BrokerExperienceProfile,
    config: ScoringConfig = DEFAULT_CONFIG,
    *,
    today: date | None = None,
) -> MatchScore:
    """Compute a deterministic, explainable match score.

    Parameters
    ----------
    prop
        The broker's listing.
    requirement
        Output of ``requirement_extractor.extract``.
    experience
        The offering broker's past-performance profile.
    config
        Weights, thresholds and tolerances.
    today
        Reference date for availability (tests pin it).

    Returns
    -------
    MatchScore
        Never raises for well-formed input; failed hard constraints show up
        as ``qualified=False`` with populated ``disqualifiers``.
    """
    outcomes: dict[str, CategoryOutcome] = {
        ScoreCategory.LOCATION.value: score_location(prop, requirement.location, config),
        ScoreCategory.SPACE.value: score_space(prop, requirement.space, config),
        ScoreCategory.BUILDING.value: score_building(prop, requirement.building, config),
        ScoreCategory.TIMELINE.value: score_timeline(prop, requirement.timeline, config, today=today),
        ScoreCategory.EXPERIENCE.value: score_experience(experience),
    }
    weights = config.weights.as_dict()

    categories: dict[str, CategoryScore] = {}
    overall = 0.0
    disqualifiers: list[str] = []
    for name, outcome in outcomes.items():
        weight = weights[name]
        overall += outcome.score * weight
        disqualifiers.extend(outcome.disqualifiers)
        categories[name] = CategoryScore(
            name=name.title(),
            score=round_score(outcome.score),
            weight=weight,
            weighted=round(outcome.score * weight, 2),
            details=outcome.details,
        )

    overall = round_score(overall)
    qualified = not disqualifiers
    strengths, weaknesses, recommendations = generate_insights(outcomes, config)

    return MatchScore(
        property_id=prop.id,
        opportunity_id=requirement.opportunity_id,
        overall_score=overall,
        grade=assign_grade(overall),
        qualified=qualified,
        competitive=qualified and overall >= config.competitive_threshold,
        categories=categories,
        strengths=tuple(strengths),
        weaknesses=tuple(weaknesses),
        recommendations=tuple(recommendations),
        disqualifiers=tuple(disqualifiers),
        computed_at=datetime.now(timezone.utc),
    )
