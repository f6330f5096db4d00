"""
Tavara.care Coordination Service - Chat Service

Persists registration-assistant conversations by session id and drives
them through the role-based question flow. Resumed conversations pick up
at the step recorded on their last message.
"""

from typing import Dict, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from tavara.chat.field_detection import detect_field_type_from_message
from tavara.chat.flow_engine import (
    chat_flow_reducer,
    initial_state,
    step_from_history,
    calculate_lead_score
)
from tavara.chat.input_validation import validate_chat_input
from tavara.config import (
    ROLE_OPTIONS,
    CHAT_INTRO_MESSAGE,
    ROLE_FOLLOWUP_MESSAGES,
    DEFAULT_FOLLOWUP_MESSAGE,
    CONTACT_FIELDS,
    STEP_PROMPTS,
    RELATIONSHIP_PROMPT,
    URGENCY_OPTIONS,
    COMPLETION_MESSAGE
)
from tavara.core.errors import NotFoundError, ConflictError
from tavara.core.logging import logger
from tavara.core.security import sanitize_input
from tavara.db.models import ChatbotConversation, ChatbotMessage
from tavara.monitoring.metrics import metrics_collector
from tavara.services.lead_service import LeadService
from tavara.utils.helpers import generate_session_id


def _match_option(text: str, options: List[Dict]) -> Optional[str]:
    """Option id chosen by id, label or 1-based number."""
    answer = text.strip().lower()
    for index, option in enumerate(options, start=1):
        if answer in (option["id"].lower(), option["label"].lower(), str(index)):
            return option["id"]
    return None


def registration_url(role: str, conversation_id: str) -> str:
    return f"/registration/{role}?prefill={conversation_id}"


class ChatService:
    """Registration assistant conversations."""

    def __init__(self, lead_service: LeadService = None):
        self.lead_service = lead_service or LeadService()
        logger.info("ChatService initialized")

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def initialize_conversation(self, db: Session, session_id: Optional[str] = None) -> ChatbotConversation:
        """
        Load the conversation for a session, creating it if needed.

        A resumed conversation takes the step of its most recent message
        that recorded one.
        """
        session_id = session_id or generate_session_id()
        conversation = (
            db.query(ChatbotConversation)
            .filter(ChatbotConversation.session_id == session_id)
            .first()
        )

        if conversation is None:
            conversation = ChatbotConversation(
                session_id=session_id,
                contact_info={},
                care_needs={},
                current_step="welcome"
            )
            db.add(conversation)
            db.commit()
            logger.info(f"Started chat conversation {conversation.id}", extra={"session_id": session_id})
            return conversation

        step = step_from_history([{"context_data": m.context_data} for m in conversation.messages])
        if step and step != conversation.current_step:
            conversation.current_step = step
            db.commit()
        return conversation

    def get_conversation(self, db: Session, session_id: str) -> ChatbotConversation:
        conversation = (
            db.query(ChatbotConversation)
            .filter(ChatbotConversation.session_id == session_id)
            .first()
        )
        if conversation is None:
            raise NotFoundError("Conversation", session_id)
        return conversation

    def add_message(
        self,
        db: Session,
        conversation: ChatbotConversation,
        sender_type: str,
        message: str,
        step: str,
        options: Optional[List[Dict]] = None
    ) -> ChatbotMessage:
        """Append a message that records the step it was sent at."""
        if sender_type not in ("user", "bot", "system"):
            raise ValueError(f"Unknown sender type: {sender_type}")

        last_sequence = (
            db.query(func.max(ChatbotMessage.sequence))
            .filter(ChatbotMessage.conversation_id == conversation.id)
            .scalar()
        ) or 0

        context = {"step": step}
        if options:
            context["options"] = options
        row = ChatbotMessage(
            conversation_id=conversation.id,
            sequence=last_sequence + 1,
            sender_type=sender_type,
            message=message,
            message_type="option" if options else "text",
            context_data=context
        )
        db.add(row)
        conversation.current_step = step
        db.commit()
        db.refresh(conversation)

        if sender_type == "user":
            metrics_collector.record_chat_message()
        return row

    def update_contact_info(self, db: Session, conversation: ChatbotConversation, updates: Dict) -> Dict:
        conversation.contact_info = {**(conversation.contact_info or {}), **updates}
        conversation.lead_score = calculate_lead_score(conversation.contact_info, conversation.care_needs)
        db.commit()
        return conversation.contact_info

    def update_care_needs(self, db: Session, conversation: ChatbotConversation, updates: Dict) -> Dict:
        conversation.care_needs = {**(conversation.care_needs or {}), **updates}
        conversation.lead_score = calculate_lead_score(conversation.contact_info, conversation.care_needs)
        db.commit()
        return conversation.care_needs

    def mark_converted(self, db: Session, conversation: ChatbotConversation):
        conversation.converted = True
        db.commit()

    def to_state(self, conversation: ChatbotConversation) -> Dict:
        """Build assistant state for a stored conversation."""
        state = initial_state(conversation.session_id)
        state = chat_flow_reducer(state, {"type": "SET_CONVERSATION", "payload": {
            "id": conversation.id,
            "session_id": conversation.session_id,
            "conversation_data": [
                {
                    "sender_type": m.sender_type,
                    "message": m.message,
                    "message_type": m.message_type,
                    "context_data": m.context_data,
                    "timestamp": m.created_at.isoformat() if m.created_at else None
                }
                for m in conversation.messages
            ],
            "contact_info": conversation.contact_info or {},
            "care_needs": conversation.care_needs or {},
            "lead_score": conversation.lead_score or 0,
            "converted": bool(conversation.converted)
        }})
        state = chat_flow_reducer(state, {"type": "SET_STEP", "payload": conversation.current_step or "welcome"})
        return chat_flow_reducer(state, {"type": "SET_LOADING", "payload": False})

    # ------------------------------------------------------------------
    # Flow
    # ------------------------------------------------------------------

    def start_conversation(self, db: Session, session_id: Optional[str] = None) -> Dict:
        """Initialize a session and post the intro with role options."""
        conversation = self.initialize_conversation(db, session_id)
        if not conversation.messages:
            self.add_message(db, conversation, "bot", CHAT_INTRO_MESSAGE, "role_selection",
                             options=[dict(o) for o in ROLE_OPTIONS])
        return self.to_state(conversation)

    def _last_bot_message(self, conversation: ChatbotConversation) -> Optional[ChatbotMessage]:
        return next((m for m in reversed(conversation.messages) if m.sender_type == "bot"), None)

    def _next_question(self, conversation: ChatbotConversation) -> Tuple[str, str, Optional[List[Dict]]]:
        """(step, prompt, options) of the next unanswered question."""
        contact = conversation.contact_info or {}
        care_needs = conversation.care_needs or {}
        role = care_needs.get("role", "family")

        for field, prompt in CONTACT_FIELDS:
            if not contact.get(field):
                return "contact_info", prompt, None
        if role == "family" and not care_needs.get("relationship"):
            return "care_needs", RELATIONSHIP_PROMPT, None
        if not care_needs.get("careType"):
            return "care_needs", STEP_PROMPTS["care_needs"][role], None
        if not care_needs.get("schedule"):
            return "schedule", STEP_PROMPTS["schedule"][role], None
        if not care_needs.get("urgency"):
            return "urgency", STEP_PROMPTS["urgency"][role], [dict(o) for o in URGENCY_OPTIONS]
        return "completion", COMPLETION_MESSAGE, None

    def _record_answer(self, db: Session, conversation: ChatbotConversation, text: str):
        contact = conversation.contact_info or {}
        care_needs = conversation.care_needs or {}
        role = care_needs.get("role", "family")

        pending_contact = next((field for field, _ in CONTACT_FIELDS if not contact.get(field)), None)
        if pending_contact:
            self.update_contact_info(db, conversation, {pending_contact: text})
        elif role == "family" and not care_needs.get("relationship"):
            self.update_care_needs(db, conversation, {"relationship": text})
        elif not care_needs.get("careType"):
            care_types = [part.strip() for part in text.split(",") if part.strip()]
            self.update_care_needs(db, conversation, {"careType": care_types})
        elif not care_needs.get("schedule"):
            self.update_care_needs(db, conversation, {"schedule": text})
        elif not care_needs.get("urgency"):
            urgency = _match_option(text, URGENCY_OPTIONS) or text
            self.update_care_needs(db, conversation, {"urgency": urgency})

    def process_reply(self, db: Session, session_id: str, text: str) -> Dict:
        """
        Handle one user reply and post the next bot prompt.

        The reply is validated against the field implied by the last bot
        message. Invalid replies are stored, answered with the validation
        error and leave the step unchanged.

        Returns:
            Dict: valid, error, reply, options and the new state
        """
        conversation = self.get_conversation(db, session_id)
        step = conversation.current_step or "welcome"
        if step == "completion":
            raise ConflictError("This conversation is already complete")

        text = sanitize_input(text or "", max_length=1000)
        self.add_message(db, conversation, "user", text, step)

        if step in ("welcome", "role_selection"):
            role = _match_option(text, ROLE_OPTIONS)
            if role is None:
                error = "Please choose one of the options above."
                self.add_message(db, conversation, "bot", error, "role_selection",
                                 options=[dict(o) for o in ROLE_OPTIONS])
                return self._result(conversation, False, error)

            self.update_care_needs(db, conversation, {"role": role})
            self.add_message(db, conversation, "bot",
                             ROLE_FOLLOWUP_MESSAGES.get(role, DEFAULT_FOLLOWUP_MESSAGE), "contact_info")
        else:
            last_bot = self._last_bot_message(conversation)
            field_type = detect_field_type_from_message(last_bot.message) if last_bot else None
            validation = validate_chat_input(text, field_type)
            if not validation.is_valid:
                repeat = f"{validation.error_message}. {last_bot.message}" if last_bot else validation.error_message
                self.add_message(db, conversation, "bot", repeat, step)
                return self._result(conversation, False, validation.error_message)
            self._record_answer(db, conversation, text.strip())

        next_step, prompt, options = self._next_question(conversation)
        if next_step == "completion":
            self.lead_service.capture_chat_lead(db, conversation)
            role = conversation.care_needs.get("role", "family")
            prompt = f"{prompt} {registration_url(role, conversation.id)}"
        self.add_message(db, conversation, "bot", prompt, next_step, options=options)

        return self._result(conversation, True, None)

    def _result(self, conversation: ChatbotConversation, valid: bool, error: Optional[str]) -> Dict:
        last_bot = self._last_bot_message(conversation)
        return {
            "valid": valid,
            "error": error,
            "reply": last_bot.message if last_bot else None,
            "options": (last_bot.context_data or {}).get("options") if last_bot else None,
            "state": self.to_state(conversation)
        }

    def get_registration_prefill(self, db: Session, conversation_id: str) -> Dict:
        """
        Registration URL and prefill data for a conversation; marks it converted.
        """
        conversation = db.get(ChatbotConversation, conversation_id)
        if conversation is None:
            raise NotFoundError("Conversation", conversation_id)
        role = (conversation.care_needs or {}).get("role")
        if not role:
            raise ValueError("Conversation has no role selected")

        self.mark_converted(db, conversation)
        logger.info(f"Conversation {conversation.id} converted to {role} registration")
        return {
            "conversation_id": conversation.id,
            "role": role,
            "url": registration_url(role, conversation.id),
            "contact_info": conversation.contact_info or {},
            "care_needs": conversation.care_needs or {}
        }
