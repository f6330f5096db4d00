"""
Tavara.care Coordination Service - Chat Service Tests
"""

import pytest

from tavara.core.errors import ConflictError, NotFoundError
from tavara.db.models import ChatbotConversation, Lead
from tavara.services.chat_service import ChatService
from tavara.services.lead_service import LeadService


@pytest.fixture
def chat_service(email_outbox):
    return ChatService(lead_service=LeadService(email_client=email_outbox))


FAMILY_REPLIES = [
    "1",
    "Ana",
    "Ramdial",
    "ana@example.com",
    "+1 868 555 0101",
    "Arima",
    "My mother",
    "Personal Care, Companionship",
    "Weekdays",
    "Immediately",
]


class TestConversationLifecycle:

    def test_start_posts_role_options(self, db, chat_service):
        state = chat_service.start_conversation(db, "chat_test")

        assert state["current_step"] == "role_selection"
        messages = state["conversation"]["conversation_data"]
        assert len(messages) == 1
        assert messages[0]["context_data"]["options"][0]["id"] == "family"

    def test_start_is_idempotent(self, db, chat_service):
        chat_service.start_conversation(db, "chat_test")
        state = chat_service.start_conversation(db, "chat_test")

        assert len(state["conversation"]["conversation_data"]) == 1

    def test_resume_uses_last_step(self, db, chat_service):
        """Test a resumed conversation picks up the step of its last message."""
        chat_service.start_conversation(db, "chat_test")
        conversation = chat_service.get_conversation(db, "chat_test")
        conversation.current_step = "welcome"
        db.commit()

        resumed = chat_service.initialize_conversation(db, "chat_test")

        assert resumed.current_step == "role_selection"

    def test_unknown_session(self, db, chat_service):
        with pytest.raises(NotFoundError):
            chat_service.process_reply(db, "missing", "hello")


class TestFamilyFlow:
    """Role, contact details and care needs through to completion."""

    def test_full_flow_captures_lead(self, db, chat_service):
        chat_service.start_conversation(db, "chat_test")

        result = None
        for reply in FAMILY_REPLIES:
            result = chat_service.process_reply(db, "chat_test", reply)
            assert result["valid"] is True, reply

        state = result["state"]
        assert state["current_step"] == "completion"
        assert state["conversation"]["contact_info"]["email"] == "ana@example.com"
        assert state["conversation"]["care_needs"]["careType"] == ["Personal Care", "Companionship"]
        assert state["conversation"]["care_needs"]["urgency"] == "immediate"
        assert state["conversation"]["lead_score"] == 110
        assert "/registration/family?prefill=" in result["reply"]

        lead = db.query(Lead).one()
        assert lead.source == "chatbot"
        assert lead.name == "Ana Ramdial"
        assert lead.lead_score == 110

    def test_role_by_label(self, db, chat_service):
        chat_service.start_conversation(db, "chat_test")

        result = chat_service.process_reply(db, "chat_test", "I provide care services")

        assert result["state"]["conversation"]["care_needs"]["role"] == "professional"
        assert result["reply"] == "What is your first name?"

    def test_invalid_role_repeats_options(self, db, chat_service):
        chat_service.start_conversation(db, "chat_test")

        result = chat_service.process_reply(db, "chat_test", "maybe")

        assert result["valid"] is False
        assert result["error"] == "Please choose one of the options above."
        assert len(result["options"]) == 3

    def test_invalid_email_keeps_step(self, db, chat_service):
        """Test an invalid reply is answered with the error and the same question."""
        chat_service.start_conversation(db, "chat_test")
        for reply in FAMILY_REPLIES[:3]:
            chat_service.process_reply(db, "chat_test", reply)

        result = chat_service.process_reply(db, "chat_test", "not-an-email")

        assert result["valid"] is False
        assert result["reply"].endswith("What's your email address?")
        assert "email" not in result["state"]["conversation"]["contact_info"]

    def test_free_text_urgency_kept(self, db, chat_service):
        chat_service.start_conversation(db, "chat_test")
        for reply in FAMILY_REPLIES[:-1]:
            chat_service.process_reply(db, "chat_test", reply)

        result = chat_service.process_reply(db, "chat_test", "after Carnival")

        assert result["state"]["conversation"]["care_needs"]["urgency"] == "after Carnival"

    def test_completed_conversation_rejects_replies(self, db, chat_service):
        chat_service.start_conversation(db, "chat_test")
        for reply in FAMILY_REPLIES:
            chat_service.process_reply(db, "chat_test", reply)

        with pytest.raises(ConflictError):
            chat_service.process_reply(db, "chat_test", "hello again")


class TestRegistrationPrefill:

    def test_prefill_marks_converted(self, db, chat_service):
        chat_service.start_conversation(db, "chat_test")
        chat_service.process_reply(db, "chat_test", "family")
        chat_service.process_reply(db, "chat_test", "Ana")
        conversation = chat_service.get_conversation(db, "chat_test")

        prefill = chat_service.get_registration_prefill(db, conversation.id)

        assert prefill["url"] == f"/registration/family?prefill={conversation.id}"
        assert prefill["contact_info"] == {"firstName": "Ana"}
        assert db.get(ChatbotConversation, conversation.id).converted is True

    def test_prefill_requires_role(self, db, chat_service):
        chat_service.start_conversation(db, "chat_test")
        conversation = chat_service.get_conversation(db, "chat_test")

        with pytest.raises(ValueError):
            chat_service.get_registration_prefill(db, conversation.id)
