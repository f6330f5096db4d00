"""
Tavara.care Coordination Service - Helper Utilities

Utility functions for common operations.
"""

import re
import secrets
from typing import Any, List, Optional, Union


def generate_session_id() -> str:
    """Session id for anonymous registration-assistant visitors."""
    return f"chat_{secrets.token_hex(12)}"


def first_integer(text: Any) -> Optional[int]:
    """First run of digits in a string ("5+ years" -> 5)."""
    if text is None:
        return None
    match = re.search(r"\d+", str(text))
    return int(match.group()) if match else None


def parse_rate(value: Union[str, int, float, None]) -> Optional[float]:
    """
    Parse a free-text rate such as "$35/hr".

    Args:
        value: Stored rate, either text or a number

    Returns:
        Optional[float]: First integer found, the number unchanged, or None
    """
    if value is None:
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value
    number = first_integer(value)
    return float(number) if number is not None else None


def split_schedule(schedule: Optional[str]) -> List[str]:
    """Split a comma-separated schedule column into shift ids."""
    if not schedule:
        return []
    return [item.strip() for item in schedule.split(",") if item.strip()]


def as_list(value: Any) -> List[str]:
    """Normalise a JSON list column, a comma string or None to a list of strings."""
    if not value:
        return []
    if isinstance(value, str):
        return split_schedule(value)
    return [str(item) for item in value if item]


def stable_string_hash(text: str) -> int:
    """
    32-bit string hash (h = 31*h + ord(c), signed overflow), returned as abs().

    Stable across processes, unlike the builtin hash().
    """
    h = 0
    for char in text:
        h = (31 * h + ord(char)) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return abs(h)


def display_profile_name(profile) -> Optional[str]:
    """Full name, or first + last name, of a profile row."""
    if profile is None:
        return None
    if profile.full_name:
        return profile.full_name
    parts = [p for p in (profile.first_name, profile.last_name) if p]
    return " ".join(parts) if parts else None


def profile_rate(profile) -> Optional[float]:
    """Hourly rate of a caregiver, falling back to the expected rate."""
    rate = parse_rate(profile.hourly_rate)
    if rate is None:
        rate = parse_rate(profile.expected_rate)
    return rate
