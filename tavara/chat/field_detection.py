"""
Tavara.care Coordination Service - Field Detection

Works out which kind of input the assistant is waiting for,
either from the bot's last message or from the registration question.
"""

import re
from typing import Dict, List, Optional

from tavara.config import REGISTRATION_FLOWS, ROLE_OPTIONS
from tavara.core.logging import logger

EMAIL_PATTERN = re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b")
PHONE_PATTERN = re.compile(r"\+[0-9]{1,3}\s[0-9]{3}\s[0-9]{3,4}")


def get_current_question(role: Optional[str], question_index: int) -> Optional[tuple]:
    """Registration question (id, label, type, options) for a role, or None."""
    if not role:
        return None
    questions = REGISTRATION_FLOWS.get(role.lower(), REGISTRATION_FLOWS["family"])
    if 0 <= question_index < len(questions):
        return questions[question_index]
    return None


def detect_field_type(role: Optional[str], question_index: int) -> Optional[str]:
    """
    Field type of a registration question from its label and id.

    Returns:
        Optional[str]: email, phone, name, budget or None
    """
    question = get_current_question(role, question_index)
    if question is None:
        return None

    question_id, label, _, _ = question
    question_id = question_id.lower()
    label = label.lower()

    if "email" in label or "email" in question_id:
        return "email"
    if ("phone" in label or "phone" in question_id or "contact number" in label
            or "contact_number" in question_id or "telephone" in label):
        return "phone"
    if "name" in label or "name" in question_id:
        return "name"
    if ("budget" in label or "budget" in question_id or "cost" in label
            or "price" in label or "hour" in label):
        return "budget"
    return None


def detect_field_type_from_message(message: str) -> Optional[str]:
    """
    Field type implied by a bot message.

    Checked in order: email, phone, name, budget.
    """
    if not message:
        return None

    content = message.lower()

    if "email" in content or "e-mail" in content or EMAIL_PATTERN.search(message):
        return "email"

    if ("phone" in content or "contact number" in content or "telephone" in content
            or "call you" in content or PHONE_PATTERN.search(message)):
        return "phone"

    if "name" in content or "what should i call you" in content or "who am i talking to" in content:
        return "name"

    if "budget" in content or "price" in content or "per hour" in content or "$" in content:
        return "budget"

    logger.debug(f"No field type detected in message: {message[:50]}")
    return None


def generate_question_options(role: Optional[str], question_index: int) -> Optional[List[Dict]]:
    """
    Selectable options for the current question.

    Role options before a role is chosen; the option list for select,
    multiselect and checkbox questions; yes/no for confirm questions.
    """
    if not role:
        if question_index <= 0:
            return [dict(option) for option in ROLE_OPTIONS]
        return None

    question = get_current_question(role, question_index)
    if question is None:
        return None

    _, _, question_type, options = question
    if question_type in ("select", "multiselect", "checkbox"):
        return [{"id": option, "label": option} for option in options or []]
    if question_type == "confirm":
        return [{"id": "yes", "label": "Yes"}, {"id": "no", "label": "No"}]
    return None
