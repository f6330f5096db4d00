"""
Tavara.care Coordination Service - Match Scoring Tests
"""

import pytest

from tavara.db.models import Profile
from tavara.services.match_scoring import (
    calculate_match_score,
    score_care_types,
    score_schedule,
    score_experience,
    score_location,
    island_of
)


def _family(**fields):
    return Profile(id="fam-1", role="family", **fields)


def _caregiver(**fields):
    return Profile(id="cg-1", role="professional", **fields)


class TestDimensionScores:
    """Each dimension scored on its own."""

    def test_care_types_partial_coverage(self):
        """Test the share of needs the caregiver covers."""
        family = _family(care_types=["Personal Care", "Companionship"])
        caregiver = _caregiver(care_types=["personal care"])

        score, detail = score_care_types(family, caregiver)

        assert score == 50.0
        assert "1 of 2" in detail

    def test_care_services_count_as_offered(self):
        """Test care services are merged with care types."""
        family = _family(care_types=["Meal Preparation"])
        caregiver = _caregiver(care_types=["Companionship"], care_services=["Meal Preparation"])

        score, _ = score_care_types(family, caregiver)

        assert score == 100.0

    def test_missing_data_is_neutral(self):
        """Test every dimension falls back to the neutral score."""
        family = _family()
        caregiver = _caregiver()

        assert score_care_types(family, caregiver)[0] == 50.0
        assert score_schedule(family, caregiver)[0] == 50.0
        assert score_location(family, caregiver)[0] == 50.0

    def test_flexible_caregiver_covers_any_shift(self):
        """Test flexible availability scores 100."""
        family = _family(care_schedule="weekend_evening_6pm_6am")
        caregiver = _caregiver(care_schedule="flexible")

        score, detail = score_schedule(family, caregiver)

        assert score == 100.0
        assert "flexible" in detail

    def test_schedule_overlap_uses_availability(self):
        """Test availability ids are merged with the schedule column."""
        family = _family(care_schedule="mon_fri_8am_4pm,sat_sun_8am_4pm")
        caregiver = _caregiver(availability=["sat_sun_8am_4pm"])

        score, _ = score_schedule(family, caregiver)

        assert score == 50.0

    @pytest.mark.parametrize("years,expected", [
        ("12 years", 100.0),
        ("5+ years", 85.0),
        ("3-5 years", 70.0),
        ("1 year", 55.0),
        ("0-2 years", 40.0),
        (None, 40.0),
    ])
    def test_experience_bands(self, years, expected):
        """Test experience bands on the first number in the text."""
        score, _ = score_experience(_caregiver(years_of_experience=years))
        assert score == expected

    def test_location_same_island(self):
        """Test different towns on the same island."""
        family = _family(location="Arima, Trinidad")
        caregiver = _caregiver(location="Chaguanas, Trinidad")

        assert score_location(family, caregiver)[0] == 70.0

    def test_location_other_island(self):
        """Test Trinidad against Tobago."""
        family = _family(location="Arima, Trinidad")
        caregiver = _caregiver(location="Scarborough, Tobago")

        assert score_location(family, caregiver)[0] == 40.0

    def test_location_exact_match_ignores_case(self):
        family = _family(location="Arima")
        caregiver = _caregiver(location="arima")

        assert score_location(family, caregiver)[0] == 100.0

    def test_both_islands_is_ambiguous(self):
        """Test a location naming both islands belongs to neither."""
        assert island_of("Trinidad and Tobago") is None
        assert island_of("Crown Point, Tobago") == "tobago"


class TestMatchScore:
    """Weighted overall score."""

    def test_weighted_overall(self):
        """Test overall score from the four weighted dimensions."""
        family = _family(
            care_types=["Personal Care", "Companionship"],
            care_schedule="mon_fri_8am_4pm",
            location="Arima"
        )
        caregiver = _caregiver(
            care_types=["Personal Care"],
            care_schedule="mon_fri_8am_4pm",
            years_of_experience="12 years",
            location="Arima"
        )

        match = calculate_match_score(family, caregiver)

        # 0.40 * 50 + 0.25 * 100 + 0.20 * 100 + 0.15 * 100
        assert match.overall == 80
        assert match.explanation.startswith("80% match")
        assert "Same location" in match.explanation

    def test_scores_are_bounded(self):
        """Test the overall score stays within 0-100."""
        match = calculate_match_score(_family(), _caregiver())

        assert 0 <= match.overall <= 100
        assert match.to_dict()["overall"] == match.overall

    def test_wrong_roles_rejected(self):
        """Test scoring refuses swapped roles."""
        with pytest.raises(ValueError):
            calculate_match_score(_caregiver(), _family())
