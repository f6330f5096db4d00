"""
Tavara.care Coordination Service - Match Scoring

Deterministic family/caregiver compatibility score.
Four weighted dimensions, each scored 0-100:
care types, schedule, experience and location.
"""

from typing import List, Optional
from dataclasses import dataclass, asdict

from tavara.config import (
    MATCH_WEIGHTS,
    NEUTRAL_SCORE,
    EXPERIENCE_SCORE_BANDS,
    EXPERIENCE_BASE_SCORE,
    LOCATION_SAME_SCORE,
    LOCATION_SAME_ISLAND_SCORE,
    LOCATION_OTHER_SCORE,
    FLEXIBLE_SCHEDULE_IDS,
    SHIFT_OPTIONS
)
from tavara.db.models import Profile
from tavara.utils.helpers import as_list, split_schedule, first_integer


@dataclass
class MatchScore:
    """Compatibility of one family with one caregiver."""
    overall: int
    care_types_score: float
    schedule_score: float
    experience_score: float
    location_score: float
    care_types_detail: str
    schedule_detail: str
    experience_detail: str
    location_detail: str
    explanation: str = ""

    def to_dict(self) -> dict:
        return asdict(self)


def _lower_set(values: List[str]) -> set:
    return {v.strip().lower() for v in values if v and v.strip()}


def score_care_types(family: Profile, caregiver: Profile) -> tuple:
    """
    Percentage of the family's care needs the caregiver offers.

    Returns:
        tuple: (score, detail)
    """
    needs = _lower_set(as_list(family.care_types))
    offered = _lower_set(as_list(caregiver.care_types) + as_list(caregiver.care_services))

    if not needs or not offered:
        return float(NEUTRAL_SCORE), "Care types not specified"

    covered = needs & offered
    score = round(len(covered) / len(needs) * 100, 1)
    if not covered:
        return score, "No overlapping care types"
    return score, f"Covers {len(covered)} of {len(needs)} care needs: {', '.join(sorted(covered))}"


def _schedule_ids(profile: Profile) -> List[str]:
    ids = split_schedule(profile.care_schedule)
    # availability is the professional's own list of shift ids
    for item in as_list(profile.availability):
        if item not in ids:
            ids.append(item)
    return ids


def score_schedule(family: Profile, caregiver: Profile) -> tuple:
    """Overlap of standardized shift ids; flexible caregivers cover every shift."""
    wanted = _schedule_ids(family)
    available = _schedule_ids(caregiver)

    if not wanted or not available:
        return float(NEUTRAL_SCORE), "Schedule not specified"

    if any(shift_id in FLEXIBLE_SCHEDULE_IDS for shift_id in available):
        return 100.0, "Caregiver has a flexible schedule"

    overlap = [shift_id for shift_id in wanted if shift_id in available]
    score = round(len(overlap) / len(wanted) * 100, 1)
    if not overlap:
        return score, "No overlapping shifts"
    labels = [SHIFT_OPTIONS[s][0] if s in SHIFT_OPTIONS else s for s in overlap]
    return score, f"Available for {', '.join(labels)}"


def score_experience(caregiver: Profile) -> tuple:
    years = first_integer(caregiver.years_of_experience)
    if years is None:
        return float(EXPERIENCE_BASE_SCORE), "Experience not specified"

    for minimum, score in EXPERIENCE_SCORE_BANDS:
        if years >= minimum:
            return float(score), f"{years}+ years of experience"
    return float(EXPERIENCE_BASE_SCORE), f"{years} years of experience"


def island_of(location: str) -> Optional[str]:
    """Trinidad or Tobago from a free-text location; None when ambiguous."""
    text = location.lower()
    has_tobago = "tobago" in text
    has_trinidad = "trinidad" in text
    if has_tobago and has_trinidad:
        return None
    if has_tobago:
        return "tobago"
    if has_trinidad:
        return "trinidad"
    return None


def score_location(family: Profile, caregiver: Profile) -> tuple:
    family_location = (family.location or "").strip()
    caregiver_location = (caregiver.location or "").strip()

    if not family_location or not caregiver_location:
        return float(NEUTRAL_SCORE), "Location not specified"

    if family_location.lower() == caregiver_location.lower():
        return float(LOCATION_SAME_SCORE), f"Same location: {caregiver_location}"

    family_island = island_of(family_location)
    if family_island and family_island == island_of(caregiver_location):
        return float(LOCATION_SAME_ISLAND_SCORE), f"Same island: {family_island.title()}"

    return float(LOCATION_OTHER_SCORE), f"Caregiver based in {caregiver_location}"


def calculate_match_score(family: Profile, caregiver: Profile) -> MatchScore:
    """
    Score a family against a caregiver.

    Args:
        family: Profile with role family
        caregiver: Profile with role professional

    Returns:
        MatchScore: Overall and per-dimension scores

    Raises:
        ValueError: If either profile has the wrong role
    """
    if family.role != "family":
        raise ValueError(f"Profile {family.id} is not a family user")
    if caregiver.role != "professional":
        raise ValueError(f"Profile {caregiver.id} is not a professional caregiver")

    care_score, care_detail = score_care_types(family, caregiver)
    schedule_score, schedule_detail = score_schedule(family, caregiver)
    experience_score, experience_detail = score_experience(caregiver)
    location_score, location_detail = score_location(family, caregiver)

    overall = round(
        MATCH_WEIGHTS["care_types"] * care_score
        + MATCH_WEIGHTS["schedule"] * schedule_score
        + MATCH_WEIGHTS["experience"] * experience_score
        + MATCH_WEIGHTS["location"] * location_score
    )

    match = MatchScore(
        overall=overall,
        care_types_score=care_score,
        schedule_score=schedule_score,
        experience_score=experience_score,
        location_score=location_score,
        care_types_detail=care_detail,
        schedule_detail=schedule_detail,
        experience_detail=experience_detail,
        location_detail=location_detail
    )
    match.explanation = build_explanation(match)
    return match


def build_explanation(match: MatchScore) -> str:
    """One-line summary listing the strongest dimensions first."""
    dimensions = [
        (match.care_types_score, match.care_types_detail),
        (match.schedule_score, match.schedule_detail),
        (match.experience_score, match.experience_detail),
        (match.location_score, match.location_detail),
    ]
    dimensions.sort(key=lambda d: d[0], reverse=True)
    strengths = [detail for score, detail in dimensions if score >= 70]
    if not strengths:
        return f"{match.overall}% match"
    return f"{match.overall}% match. " + "; ".join(strengths)
