"""Test configuration and fixtures."""

import os

# In-memory database and no audit files for the whole test run
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENABLE_AUDIT_LOGGING"] = "false"
os.environ["ENVIRONMENT"] = "test"
os.environ["API_KEY_ENABLED"] = "false"

import json

import httpx
import pytest

from tavara.db.base import Base, SessionLocal, engine
from tavara.db import models  # noqa: F401
from tavara.db.models import Profile, CarePlan, CareTeamMember
from tavara.api.dependencies import reset_rate_limits
from tavara.core.settings import get_settings
from tavara.integrations.whatsapp_client import WhatsAppClient
from tavara.monitoring.metrics import metrics_collector
from tavara.services.notification_service import NotificationService


@pytest.fixture(autouse=True)
def _reset_state():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    reset_rate_limits()
    metrics_collector.reset_metrics()
    yield


@pytest.fixture
def db():
    """Database session on a fresh schema."""
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_profile(db):
    """Factory for profiles of any role."""
    def _make(role="family", **fields):
        profile = Profile(role=role, **fields)
        db.add(profile)
        db.commit()
        return profile
    return _make


@pytest.fixture
def family(make_profile):
    return make_profile(
        "family",
        full_name="Maria Lopez",
        email="maria@example.com",
        phone_number="+18685550101",
        location="Port of Spain, Trinidad",
        care_types=["Personal Care", "Companionship"],
        care_schedule="mon_fri_8am_4pm"
    )


@pytest.fixture
def caregiver(make_profile):
    return make_profile(
        "professional",
        full_name="Andre Baptiste",
        email="andre@example.com",
        phone_number="+18685550202",
        location="San Fernando, Trinidad",
        care_types=["Personal Care", "Companionship", "Meal Preparation"],
        care_schedule="mon_fri_8am_4pm",
        years_of_experience="6 years",
        hourly_rate="$35/hr"
    )


@pytest.fixture
def admin(make_profile):
    return make_profile("admin", full_name="Admin User", email="admin@example.com")


@pytest.fixture
def care_plan(db, family):
    plan = CarePlan(family_id=family.id, title="Mum's care", plan_type="scheduled", status="active")
    db.add(plan)
    db.commit()
    return plan


@pytest.fixture
def team_member(db, care_plan, caregiver):
    member = CareTeamMember(
        care_plan_id=care_plan.id,
        family_id=care_plan.family_id,
        caregiver_id=caregiver.id,
        role="caregiver",
        status="active",
        display_name="Andre B.",
        regular_rate=30.0,
        overtime_rate=45.0
    )
    db.add(member)
    db.commit()
    return member


class RecordingEmailClient:
    """Email client that keeps messages instead of sending them."""

    def __init__(self):
        self.sent = []

    def send(self, to, subject, html, reply_to=None):
        self.sent.append({"to": to, "subject": subject, "html": html, "reply_to": reply_to})
        return {"id": f"email-{len(self.sent)}"}


@pytest.fixture
def whatsapp_outbox(monkeypatch):
    """Graph API payloads captured through an httpx mock transport."""
    sent = []

    def handler(request):
        sent.append(json.loads(request.content))
        return httpx.Response(200, json={"messages": [{"id": f"wamid.{len(sent)}"}]})

    settings = get_settings()
    monkeypatch.setattr(settings, "WHATSAPP_ACCESS_TOKEN", "test-token")
    monkeypatch.setattr(settings, "WHATSAPP_PHONE_NUMBER_ID", "1234567890")
    client = WhatsAppClient(http_client=httpx.Client(transport=httpx.MockTransport(handler)))
    return sent, client


@pytest.fixture
def email_outbox():
    return RecordingEmailClient()


@pytest.fixture
def notification_service(whatsapp_outbox, email_outbox):
    _, client = whatsapp_outbox
    return NotificationService(whatsapp_client=client, email_client=email_outbox)


@pytest.fixture
def whatsapp_sent(whatsapp_outbox):
    return whatsapp_outbox[0]
