"""
Tavara.care Coordination Service - Chat Flow Engine

State container for the registration assistant.
chat_flow_reducer is pure: it returns a new state and never mutates its input.
"""

import copy
from typing import Any, Dict, Optional

from tavara.config import (
    CHAT_STEPS,
    CONTACT_LEAD_SCORES,
    CARE_NEEDS_LEAD_SCORES,
    URGENCY_LEAD_SCORES
)
from tavara.utils.helpers import generate_session_id


def initial_state(session_id: str = "") -> Dict[str, Any]:
    return {
        "current_step": "welcome",
        "conversation": {
            "id": None,
            "session_id": session_id,
            "conversation_data": [],
            "contact_info": {},
            "care_needs": {},
            "lead_score": 0,
            "converted": False
        },
        "is_loading": True,
        "is_minimized": False,
        "is_open": False,
        "session_id": session_id
    }


def _with_conversation(state: Dict, **changes: Any) -> Dict:
    conversation = dict(state["conversation"])
    conversation.update(changes)
    return {**state, "conversation": conversation}


def chat_flow_reducer(state: Dict[str, Any], action: Dict[str, Any]) -> Dict[str, Any]:
    """
    Apply one action to the assistant state.

    Args:
        state: Current state
        action: {"type": ..., "payload": ...}

    Returns:
        Dict: New state; unknown actions return the input unchanged
    """
    action_type = action.get("type")
    payload = action.get("payload")

    if action_type == "SET_STEP":
        if payload not in CHAT_STEPS:
            raise ValueError(f"Unknown chat step: {payload}")
        return {**state, "current_step": payload}

    if action_type == "ADD_MESSAGE":
        messages = list(state["conversation"]["conversation_data"])
        messages.append(copy.deepcopy(payload))
        return _with_conversation(state, conversation_data=messages)

    if action_type == "SET_CONVERSATION":
        conversation = copy.deepcopy(payload)
        return {**state, "conversation": conversation, "session_id": conversation.get("session_id", "")}

    if action_type == "UPDATE_CONTACT_INFO":
        merged = {**(state["conversation"].get("contact_info") or {}), **payload}
        return _with_conversation(state, contact_info=merged)

    if action_type == "UPDATE_CARE_NEEDS":
        merged = {**(state["conversation"].get("care_needs") or {}), **payload}
        return _with_conversation(state, care_needs=merged)

    if action_type == "SET_LOADING":
        return {**state, "is_loading": bool(payload)}

    if action_type == "SET_MINIMIZED":
        return {**state, "is_minimized": bool(payload)}

    if action_type == "SET_OPEN":
        return {**state, "is_open": bool(payload)}

    if action_type == "RESET":
        return initial_state(payload or generate_session_id())

    return state


def step_from_history(messages: list) -> Optional[str]:
    """Step recorded on the most recent message that has one."""
    for message in reversed(messages):
        step = (message.get("context_data") or {}).get("step")
        if step:
            return step
    return None


def calculate_lead_score(contact_info: Optional[Dict], care_needs: Optional[Dict]) -> int:
    """
    Score how complete and urgent a lead is.

    Args:
        contact_info: firstName, lastName, email, phone, location
        care_needs: relationship, careType, schedule, urgency, role

    Returns:
        int: Lead score
    """
    score = 0

    for field, points in CONTACT_LEAD_SCORES.items():
        if (contact_info or {}).get(field):
            score += points

    care_needs = care_needs or {}
    for field, points in CARE_NEEDS_LEAD_SCORES.items():
        if care_needs.get(field):
            score += points
    score += URGENCY_LEAD_SCORES.get(care_needs.get("urgency"), 0)

    return score
