"""
Tavara.care Coordination Service - Chat Input Validation
"""

import re
from dataclasses import dataclass
from typing import Optional

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
NAME_PATTERN = re.compile(r"^[A-Za-z\s\-']+$")
BUDGET_PATTERN = re.compile(r"^\$?\s?\d+(\.\d{1,2})?(\s?-\s?\$?\s?\d+(\.\d{1,2})?)?(\s?/\s?hour)?$")
PHONE_SEPARATORS = re.compile(r"[\s\-().]")


@dataclass
class ValidationResult:
    is_valid: bool
    error_message: Optional[str] = None


def _validate_phone(value: str) -> ValidationResult:
    number = PHONE_SEPARATORS.sub("", value)

    if number.startswith("+"):
        if not re.fullmatch(r"\+\d{8,15}", number):
            return ValidationResult(False, "International format should be +[country code][number] "
                                           "(8-15 digits total)")
        # Trinidad & Tobago
        if number.startswith("+1868") and len(number) != 12:
            return ValidationResult(False, "Trinidad & Tobago numbers should be +1868 followed by 7 digits")
        if number.startswith("+1") and len(number) != 12:
            return ValidationResult(False, "US/Canada numbers should be +1 followed by 10 digits")
        return ValidationResult(True)

    if not re.fullmatch(r"\d{7,15}", number):
        return ValidationResult(False, "Local format should be 7-15 digits (will auto-format to international)")
    return ValidationResult(True)


def validate_chat_input(value: str, field_type: Optional[str]) -> ValidationResult:
    """
    Validate a reply against the field it answers.

    Args:
        value: Raw user input
        field_type: email, phone, name, budget, or anything else

    Returns:
        ValidationResult: Validity and a user-facing error message
    """
    if not value or not value.strip():
        return ValidationResult(False, "This field cannot be empty")

    value = value.strip()
    field_type = (field_type or "").lower()

    if field_type == "email":
        if not EMAIL_PATTERN.match(value):
            return ValidationResult(False, "Please enter a valid email address (example@domain.com)")
        return ValidationResult(True)

    if field_type == "phone":
        return _validate_phone(value)

    if field_type == "name":
        if len(value) < 2:
            return ValidationResult(False, "Name must be at least 2 characters")
        if not NAME_PATTERN.match(value):
            return ValidationResult(False, "Please use only letters, spaces, hyphens, and apostrophes in your name")
        return ValidationResult(True)

    if field_type == "budget":
        if not BUDGET_PATTERN.match(value) and "negotiable" not in value.lower():
            return ValidationResult(False, "Please enter a valid budget amount (e.g., $20-30/hour or Negotiable)")
        return ValidationResult(True)

    return ValidationResult(True)
