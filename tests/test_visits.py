"""
Tavara.care Coordination Service - Visit & Payment Tests

PayPal is replaced by an httpx mock transport answering the OAuth
and checkout endpoints.
"""

import json
from datetime import date

import httpx
import pytest

from tavara.core.errors import ConflictError, IntegrationError
from tavara.core.settings import get_settings
from tavara.db.models import VisitBooking
from tavara.integrations.paypal_client import PayPalClient
from tavara.monitoring.metrics import metrics_collector
from tavara.services.visit_service import VisitService, poll_payment_status, visit_fee

VISIT_DAY = date(2024, 6, 10)


class FakePayPal:
    """Minimal PayPal REST API."""

    def __init__(self, capture_status="COMPLETED", order_statuses=None):
        self.capture_status = capture_status
        self.order_statuses = list(order_statuses or ["APPROVED"])
        self.orders = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path == "/v1/oauth2/token":
            return httpx.Response(200, json={"access_token": "test-token"})
        if path == "/v2/checkout/orders" and request.method == "POST":
            self.orders.append(json.loads(request.content))
            return httpx.Response(201, json={
                "id": "ORDER-1",
                "links": [{"rel": "approve", "href": "https://paypal.test/approve/ORDER-1"}]
            })
        if path.endswith("/capture"):
            return httpx.Response(201, json={"status": self.capture_status})
        if path.startswith("/v2/checkout/orders/"):
            status = self.order_statuses.pop(0) if len(self.order_statuses) > 1 else self.order_statuses[0]
            return httpx.Response(200, json={"status": status})
        return httpx.Response(404, json={"message": "Not found"})


@pytest.fixture
def paypal_credentials(monkeypatch):
    settings = get_settings()
    monkeypatch.setattr(settings, "PAYPAL_CLIENT_ID", "client-id")
    monkeypatch.setattr(settings, "PAYPAL_CLIENT_SECRET", "client-secret")


def _service(api: FakePayPal) -> VisitService:
    return VisitService(paypal_client=PayPalClient(http_client=httpx.Client(transport=httpx.MockTransport(api))))


class TestVirtualVisits:

    def test_schedules_without_payment(self, db, family):
        service = _service(FakePayPal())

        booking = service.schedule_virtual_visit(db, family.id, VISIT_DAY, "10:00")

        assert booking.payment_status == "not_required"
        assert family.visit_scheduling_status == "scheduled"
        assert family.visit_notes["visit_type"] == "virtual"


@pytest.mark.usefixtures("paypal_credentials")
class TestInPersonVisits:

    def test_create_order(self, db, family):
        api = FakePayPal()

        result = _service(api).create_visit_payment(
            db, family.id, "in_person", VISIT_DAY, "10:00",
            return_url="https://tavara.test/ok", cancel_url="https://tavara.test/cancel"
        )

        assert result == {
            "order_id": "ORDER-1",
            "approval_url": "https://paypal.test/approve/ORDER-1",
            "amount": "300.00",
            "currency": "TTD"
        }
        unit = api.orders[0]["purchase_units"][0]
        assert unit["amount"] == {"currency_code": "TTD", "value": "300.00"}
        assert unit["custom_id"] == family.id
        assert family.visit_payment_status == "pending"

    def test_virtual_needs_no_order(self, db, family):
        with pytest.raises(ValueError):
            _service(FakePayPal()).create_visit_payment(
                db, family.id, "virtual", VISIT_DAY, "10:00", "https://a", "https://b"
            )

    def test_complete_books_visit(self, db, family):
        result = _service(FakePayPal()).complete_visit_payment(db, family.id, "ORDER-1", VISIT_DAY, "10:00")

        booking = db.get(VisitBooking, result["booking_id"])
        assert booking.payment_reference == "ORDER-1"
        assert booking.payment_amount == 300.0
        assert family.visit_payment_status == "completed"
        assert family.visit_notes["payment_completed"] is True
        assert metrics_collector.get_metrics()["payments_captured"] == 1

    def test_order_used_once(self, db, family):
        service = _service(FakePayPal())
        service.complete_visit_payment(db, family.id, "ORDER-1", VISIT_DAY, "10:00")

        with pytest.raises(ConflictError):
            service.complete_visit_payment(db, family.id, "ORDER-1", VISIT_DAY, "11:00")

    def test_incomplete_capture(self, db, family):
        with pytest.raises(IntegrationError):
            _service(FakePayPal(capture_status="PENDING")).complete_visit_payment(
                db, family.id, "ORDER-1", VISIT_DAY, "10:00"
            )
        assert db.query(VisitBooking).count() == 0

    @pytest.mark.parametrize("paypal_status,expected", [
        ("COMPLETED", "completed"),
        ("VOIDED", "failed"),
        ("APPROVED", "pending"),
    ])
    def test_status_mapping(self, paypal_status, expected):
        assert _service(FakePayPal(order_statuses=[paypal_status])).get_payment_status("ORDER-1") == expected

    def test_wait_for_payment(self):
        service = _service(FakePayPal(order_statuses=["APPROVED", "APPROVED", "COMPLETED"]))

        assert service.wait_for_payment("ORDER-1", interval=1, timeout=10, sleep=lambda s: None) == "completed"


class TestPayPalErrors:

    def test_missing_credentials(self):
        with pytest.raises(IntegrationError):
            PayPalClient(http_client=httpx.Client(transport=httpx.MockTransport(FakePayPal()))).get_order("X")

    @pytest.mark.usefixtures("paypal_credentials")
    def test_api_error_message(self):
        def handler(request):
            if request.url.path == "/v1/oauth2/token":
                return httpx.Response(200, json={"access_token": "t"})
            return httpx.Response(422, json={"message": "Order not approved"})

        client = PayPalClient(http_client=httpx.Client(transport=httpx.MockTransport(handler)))

        with pytest.raises(IntegrationError, match="Order not approved") as exc:
            client.capture_order("ORDER-1")
        assert exc.value.status_code == 422


class TestPolling:

    def _clock(self):
        now = [0.0]

        def sleep(seconds):
            now[0] += seconds

        return (lambda: now[0]), sleep

    def test_returns_final_status(self):
        clock, sleep = self._clock()
        statuses = iter(["pending", "pending", "failed"])

        assert poll_payment_status(lambda: next(statuses), interval=1, timeout=10,
                                   sleep=sleep, clock=clock) == "failed"

    def test_timeout(self):
        """Test polling gives up once the next wait would pass the deadline."""
        clock, sleep = self._clock()
        calls = []

        def status():
            calls.append(clock())
            return "pending"

        assert poll_payment_status(status, interval=1, timeout=3, sleep=sleep, clock=clock) == "timeout"
        assert calls == [0.0, 1.0, 2.0, 3.0]

    def test_fee_format(self):
        assert visit_fee() == "300.00"
