"""Tests for fedmatch.services.requirement_extractor."""

from __future__ import annotations

from datetime import date, timedelta

import pytest

from fedmatch.domain.enums import AreaUnit, BuildingClass
from fedmatch.services.requirement_extractor import extract
from fedmatch.services.scoring_config import ScoringConfig

TODAY = date(2026, 3, 2)


def _raw(**overrides) -> dict:
    raw = {
        "id": "opp-1",
        "title": "Lease of Office Space",
        "description": "",
        "pop_city_name": "Washington",
        "pop_state_code": "DC",
        "pop_zip": "20001",
        "latitude": 38.9,
        "longitude": -77.03,
        "response_deadline": "2026-04-01T17:00:00",
        "full_data": {},
    }
    raw.update(overrides)
    return raw


# ═══════════════════════════════════════════════════════════════════════════
# 1. Defaults
# ═══════════════════════════════════════════════════════════════════════════

class TestDefaults:

    def test_empty_record_resolves_every_default(self):
        req = extract({}, today=TODAY)
        assert req.opportunity_id == ""
        assert req.location.state == "DC"
        assert req.location.radius_miles == 10.0
        assert req.location.center is None
        assert (req.space.min_sqft, req.space.target_sqft, req.space.max_sqft) == (40_000, 50_000, 120_000)
        assert req.space.unit is AreaUnit.RENTABLE
        assert req.building.acceptable_classes == {BuildingClass.A_PLUS, BuildingClass.A, BuildingClass.B}
        assert req.building.ada_required is True
        assert req.timeline.response_deadline == TODAY
        assert req.timeline.occupancy_date == TODAY + timedelta(days=90)
        assert (req.timeline.firm_term_months, req.timeline.total_term_months) == (60, 240)

    def test_config_overrides_defaults(self):
        config = ScoringConfig(default_state="VA", default_radius_miles=25, occupancy_buffer_days=30)
        req = extract({}, config, today=TODAY)
        assert req.location.state == "VA"
        assert req.location.radius_miles == 25
        assert req.timeline.occupancy_date == TODAY + timedelta(days=30)

    def test_garbage_values_do_not_raise(self):
        req = extract(
            _raw(latitude="north", longitude=None, response_deadline="soon",
                 full_data={"min_sqft": "lots", "radius_miles": -3}),
            today=TODAY,
        )
        assert req.location.center is None
        assert req.location.radius_miles == 10.0
        assert req.space.min_sqft == 40_000
        assert req.timeline.response_deadline == TODAY

    def test_full_data_not_a_mapping_is_ignored(self):
        req = extract(_raw(full_data=["unexpected"]), today=TODAY)
        assert req.space.min_sqft == 40_000

    @pytest.mark.parametrize("figure", ["1e400", float("inf"), float("nan"), "-inf"])
    def test_non_finite_figures_fall_back(self, figure):
        req = extract(
            _raw(full_data={"min_sqft": figure, "max_sqft": figure, "radius_miles": figure}),
            today=TODAY,
        )
        assert (req.space.min_sqft, req.space.max_sqft) == (40_000, 120_000)
        assert req.location.radius_miles == 10.0

    @pytest.mark.parametrize("value", [5, "Class A", {"a": 1}, None, True])
    def test_scalar_lists_fall_back(self, value):
        req = extract(
            _raw(full_data={
                "building_classes": value,
                "required_features": value,
                "required_certifications": value,
            }),
            today=TODAY,
        )
        assert req.building.acceptable_classes == {BuildingClass.A_PLUS, BuildingClass.A, BuildingClass.B}
        assert req.building.required_features == frozenset()
        assert req.building.required_certifications == ()

    def test_deadline_near_max_date_clamps_occupancy(self):
        req = extract(_raw(response_deadline="9999-12-30"), today=TODAY)
        assert req.timeline.response_deadline == date(9999, 12, 30)
        assert req.timeline.occupancy_date == date.max

    def test_non_string_delineated_area_is_stringified(self):
        req = extract(_raw(full_data={"delineated_area": 20001}), today=TODAY)
        assert req.location.delineated_area == "20001"


# ═══════════════════════════════════════════════════════════════════════════
# 2. Location
# ═══════════════════════════════════════════════════════════════════════════

class TestLocation:

    def test_place_of_performance_fields(self):
        req = extract(_raw(), today=TODAY)
        assert req.location.state == "DC"
        assert req.location.city == "Washington"
        assert req.location.zip == "20001"
        assert req.location.center.lat == 38.9

    def test_radius_from_text(self):
        req = extract(_raw(description="Space must be within 5 miles of the Capitol."), today=TODAY)
        assert req.location.radius_miles == 5.0

    def test_delineated_area_from_text(self):
        req = extract(
            _raw(description="Delineated area: North: K Street; South: Independence Ave."),
            today=TODAY,
        )
        assert req.location.delineated_area.startswith("north: k street")

    def test_out_of_range_coordinates_dropped(self):
        req = extract(_raw(latitude=120.0), today=TODAY)
        assert req.location.center is None


# ═══════════════════════════════════════════════════════════════════════════
# 3. Space
# ═══════════════════════════════════════════════════════════════════════════

class TestSpace:

    def test_full_data_figures_win(self):
        req = extract(
            _raw(description="minimum of 1,000 SF", full_data={"min_sqft": 20000, "max_sqft": "30,000"}),
            today=TODAY,
        )
        assert (req.space.min_sqft, req.space.max_sqft, req.space.target_sqft) == (20_000, 30_000, 25_000)

    def test_min_and_max_from_text(self):
        req = extract(
            _raw(description="A minimum of 12,000 ABOA SF and a maximum of 15,000 ABOA SF."),
            today=TODAY,
        )
        assert (req.space.min_sqft, req.space.max_sqft) == (12_000, 15_000)
        assert req.space.unit is AreaUnit.USABLE

    def test_single_figure_gives_ten_percent_band(self):
        req = extract(_raw(description="The Government requires 10,000 square feet of rentable office space."), today=TODAY)
        assert req.space.target_sqft == 10_000
        assert (req.space.min_sqft, req.space.max_sqft) == (9_000, 11_000)
        assert req.space.unit is AreaUnit.RENTABLE

    def test_multiple_figures_give_range(self):
        req = extract(_raw(description="Between 8,000 SF and 9,500 SF of office space."), today=TODAY)
        assert (req.space.min_sqft, req.space.max_sqft) == (8_000, 9_500)

    def test_tiny_figures_ignored(self):
        req = extract(_raw(description="Includes a 100 sf storage closet."), today=TODAY)
        assert req.space.min_sqft == 40_000

    def test_swapped_bounds_are_reordered(self):
        req = extract(_raw(full_data={"min_sqft": 50000, "max_sqft": 20000}), today=TODAY)
        assert (req.space.min_sqft, req.space.max_sqft) == (20_000, 50_000)

    def test_contiguity_and_divisibility_flags(self):
        req = extract(_raw(description="Non-contiguous space is acceptable; divisible by floor."), today=TODAY)
        assert req.space.contiguous is False
        assert req.space.divisible is True


# ═══════════════════════════════════════════════════════════════════════════
# 4. Building
# ═══════════════════════════════════════════════════════════════════════════

class TestBuilding:

    def test_class_from_text(self):
        req = extract(_raw(description="Offered space must be in a Class A building."), today=TODAY)
        assert req.building.acceptable_classes == {BuildingClass.A}

    def test_class_from_full_data(self):
        req = extract(_raw(full_data={"building_classes": ["Class A+", "b", "bogus"]}), today=TODAY)
        assert req.building.acceptable_classes == {BuildingClass.A_PLUS, BuildingClass.B}

    def test_features_and_certifications_from_text(self):
        req = extract(
            _raw(description=(
                "Building must provide fiber connectivity, a backup generator, a loading dock "
                "and SCIF space. LEED or Energy Star certification preferred."
            )),
            today=TODAY,
        )
        assert req.building.required_features == {"fiber", "backup_power", "loading_dock", "scif_capable"}
        assert req.building.required_certifications == ("LEED", "Energy Star")

    def test_certification_entries_cleaned(self):
        req = extract(
            _raw(full_data={"required_certifications": [None, 3, "  ", " LEED ", "leed", "WELL"]}),
            today=TODAY,
        )
        assert req.building.required_certifications == ("LEED", "WELL")

    def test_unknown_feature_names_dropped(self):
        req = extract(_raw(full_data={"required_features": ["fiber", "helipad", 7]}), today=TODAY)
        assert req.building.required_features == {"fiber"}

    def test_transit_and_parking(self):
        req = extract(_raw(description="Near Metro with on-site parking."), today=TODAY)
        assert req.building.transit_required is True
        assert req.building.parking_required is True

    def test_ada_can_be_waived_explicitly(self):
        req = extract(_raw(full_data={"ada_required": False}), today=TODAY)
        assert req.building.ada_required is False

    def test_floor_bounds(self):
        req = extract(_raw(full_data={"min_floors": 2, "max_floors": "6"}), today=TODAY)
        assert (req.building.min_floors, req.building.max_floors) == (2, 6)


# ═══════════════════════════════════════════════════════════════════════════
# 5. Timeline
# ═══════════════════════════════════════════════════════════════════════════

class TestTimeline:

    def test_occupancy_from_full_data(self):
        req = extract(_raw(full_data={"occupancy_date": "2026-09-01"}), today=TODAY)
        assert req.timeline.occupancy_date == date(2026, 9, 1)
        assert req.timeline.response_deadline == date(2026, 4, 1)

    def test_occupancy_from_text(self):
        req = extract(_raw(description="Occupancy by: 10/15/2026."), today=TODAY)
        assert req.timeline.occupancy_date == date(2026, 10, 15)

    def test_occupancy_before_deadline_falls_back_to_buffer(self):
        req = extract(_raw(full_data={"occupancy_date": "2026-01-01"}), today=TODAY)
        assert req.timeline.occupancy_date == date(2026, 4, 1) + timedelta(days=90)
        assert req.timeline.occupancy_date >= req.timeline.response_deadline

    def test_terms_from_text(self):
        req = extract(_raw(description="Lease term: 10 years total, 5 years firm."), today=TODAY)
        assert req.timeline.firm_term_months == 60
        assert req.timeline.total_term_months == 120

    def test_total_term_never_below_firm(self):
        req = extract(_raw(full_data={"firm_term_months": 120, "total_term_months": 60}), today=TODAY)
        assert req.timeline.total_term_months == 120

    @pytest.mark.parametrize("deadline", [None, "", "not a date"])
    def test_missing_deadline_uses_today(self, deadline):
        req = extract(_raw(response_deadline=deadline), today=TODAY)
        assert req.timeline.response_deadline == TODAY
