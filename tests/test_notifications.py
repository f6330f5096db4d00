"""
Tavara.care Coordination Service - Notification Tests

WhatsApp delivery through a mocked Graph API, shift notification
logging and admin nudges.
"""

import httpx
import pytest

from tavara.core.errors import IntegrationError
from tavara.db.models import AdminCommunication, WhatsAppMessageLog
from tavara.integrations.whatsapp_client import WhatsAppClient
from tavara.monitoring.metrics import metrics_collector
from tavara.services.notification_service import NotificationService, nudge_message


class TestWhatsAppClient:

    def test_payload(self, whatsapp_outbox):
        sent, client = whatsapp_outbox

        client.send_text("+18685550101", "Hello")

        assert sent == [{
            "messaging_product": "whatsapp",
            "to": "18685550101",
            "type": "text",
            "text": {"body": "Hello"}
        }]

    def test_unconfigured(self):
        with pytest.raises(IntegrationError):
            WhatsAppClient().send_text("+18685550101", "Hello")

    @pytest.mark.usefixtures("whatsapp_outbox")
    def test_api_error(self):
        """Test a Graph API rejection carries its status code."""
        client = WhatsAppClient(http_client=httpx.Client(transport=httpx.MockTransport(
            lambda request: httpx.Response(400, json={"error": {"message": "Invalid recipient"}})
        )))

        with pytest.raises(IntegrationError) as exc:
            client.send_text("+18685550101", "Hello")
        assert exc.value.status_code == 400


class TestDelivery:

    def test_send_logs_message(self, db, notification_service, family):
        assert notification_service.send_whatsapp(db, family.phone_number, "Hi", "test", family.id) is True

        entry = db.query(WhatsAppMessageLog).one()
        assert entry.direction == "outgoing"
        assert entry.processed is True
        assert metrics_collector.get_metrics()["notifications_sent"] == {"whatsapp": 1}

    def test_failure_is_reported_not_raised(self, db, email_outbox, family):
        service = NotificationService(whatsapp_client=WhatsAppClient(), email_client=email_outbox)

        assert service.send_whatsapp(db, family.phone_number, "Hi", "test") is False
        assert db.query(WhatsAppMessageLog).one().processed is False
        assert metrics_collector.get_metrics()["notifications_failed"] == {"whatsapp": 1}

    def test_notify_profile_without_phone(self, db, notification_service, make_profile, whatsapp_sent):
        profile = make_profile("professional", full_name="No Phone")

        notification = notification_service.notify_profile(db, profile, "Shift tomorrow", "shift_reminder")

        assert notification.delivery_status == "no_phone"
        assert whatsapp_sent == []


class TestNudges:

    def test_step_message(self):
        assert nudge_message("family", "reminder", current_step=3).startswith("Complete your care needs")
        assert nudge_message("family", "welcome").startswith("Welcome to Tavara!")
        assert nudge_message("community", "reminder", current_step=42) == "Continue your journey with Tavara!"

    def test_template_message(self):
        assert nudge_message("family", "follow_up").startswith("Hi {name}, how is your experience")
        assert nudge_message("family", "unknown").startswith("Hi {name}, greetings")

    def test_both_channels(self, db, notification_service, admin, family, email_outbox, whatsapp_sent):
        """Test one communication row per recipient and channel."""
        result = notification_service.send_nudge(db, admin.id, [family.id], channel="both", message_type="reminder")

        assert result["sent"] == 2
        assert email_outbox.sent[0]["to"] == "maria@example.com"
        assert email_outbox.sent[0]["subject"] == "Next Step: Continue Your Tavara Journey"
        assert whatsapp_sent[0]["text"]["body"].startswith("Hi Maria Lopez, don't forget")
        channels = sorted(c.channel for c in db.query(AdminCommunication).all())
        assert channels == ["email", "whatsapp"]

    def test_custom_message_and_missing_contact(self, db, notification_service, admin, make_profile, email_outbox):
        no_email = make_profile("community", full_name="Quiet Supporter")

        result = notification_service.send_nudge(
            db, admin.id, [no_email.id], channel="email", custom_message="Hello {name}!"
        )

        assert result["failed"] == 1
        assert email_outbox.sent == []
        assert db.query(AdminCommunication).one().custom_message == "Hello Quiet Supporter!"

    @pytest.mark.parametrize("channel,user_ids", [("sms", ["x"]), ("email", [])])
    def test_invalid_nudge(self, db, notification_service, admin, channel, user_ids):
        with pytest.raises(ValueError):
            notification_service.send_nudge(db, admin.id, user_ids, channel=channel)
