"""
Tavara.care Coordination Service - Monitoring Tests

Metrics collection and the JSONL audit trail.
"""

from datetime import datetime, timedelta

import pytest

from tavara.core.settings import get_settings
from tavara.monitoring.audit_logger import AuditLogger
from tavara.monitoring.metrics import MetricsCollector


@pytest.fixture
def collector():
    return MetricsCollector()


class TestMetricsCollector:

    def test_counts(self, collector):
        collector.record_assignment("automatic")
        collector.record_assignment("automatic")
        collector.record_assignment("manual")
        collector.record_deactivation(3)
        collector.record_recalculation("completed")
        collector.record_lead("chatbot")
        collector.record_notification("email", success=True)
        collector.record_notification("whatsapp", success=False)
        collector.record_payment()

        metrics = collector.get_metrics()

        assert metrics["total_assignments"] == 3
        assert metrics["assignments_by_type"] == {"automatic": 2, "manual": 1}
        assert metrics["assignments_deactivated"] == 3
        assert metrics["recalculations"] == {"completed": 1}
        assert metrics["leads_captured"] == {"chatbot": 1}
        assert metrics["notifications_sent"] == {"email": 1}
        assert metrics["notifications_failed"] == {"whatsapp": 1}
        assert metrics["payments_captured"] == 1

    def test_average_response_time(self, collector):
        collector.record_response_time(10.0)
        collector.record_response_time(20.0)

        assert collector.get_metrics()["average_response_time_ms"] == 15.0

    def test_response_times_capped(self, collector):
        """Test only the last 1000 response times are kept."""
        for _ in range(1000):
            collector.record_response_time(1.0)
        collector.record_response_time(1001.0)

        assert len(collector.metrics["response_times"]) == 1000
        assert collector.get_metrics()["average_response_time_ms"] == 2.0

    def test_prometheus_export(self, collector):
        collector.record_assignment("care_team")
        collector.record_notification("whatsapp", success=True)
        collector.record_error()

        text = collector.export_prometheus()

        assert 'tavara_assignments_total{type="care_team"} 1' in text
        assert 'tavara_notifications_total{channel="whatsapp",outcome="sent"} 1' in text
        assert "tavara_errors_total 1" in text
        assert "tavara_payments_captured_total 0" in text

    def test_reset(self, collector):
        collector.record_chat_message()
        collector.record_error()

        collector.reset_metrics()

        metrics = collector.get_metrics()
        assert metrics["chat_messages"] == 0
        assert metrics["error_count"] == 0


class TestAuditLogger:

    @pytest.fixture
    def audit(self, tmp_path, monkeypatch):
        monkeypatch.setattr(get_settings(), "ENABLE_AUDIT_LOGGING", True)
        return AuditLogger(log_dir=tmp_path / "audit")

    def test_write_and_query(self, audit):
        audit.log_admin_intervention("admin-1", "family-1", "caregiver-1", 90.0, 72.5, reason="Same parish")
        audit.log_payroll_payment("entry-1", 265.0, actor_id="family-1")

        today = datetime.utcnow()
        entries = audit.query_logs(today - timedelta(days=1), today)

        assert [e["event_type"] for e in entries] == ["admin_intervention", "payroll_payment"]
        assert entries[0]["calculated_match_score"] == 72.5

    def test_filter_by_event_type(self, audit):
        audit.log_assignment_change("deactivated", "assignment-1", "automatic")
        audit.log_verification("+18685550101", success=False, reason="Invalid verification code")

        today = datetime.utcnow()
        entries = audit.query_logs(today, today, event_type="phone_verification")

        assert len(entries) == 1
        assert entries[0]["phone_suffix"] == "0101"
        assert "+18685550101" not in str(entries[0])

    def test_disabled(self, tmp_path):
        audit = AuditLogger(log_dir=tmp_path / "audit")

        audit.log_payroll_payment("entry-1", 100.0)

        assert audit.query_logs(datetime.utcnow(), datetime.utcnow()) == []
        assert not (tmp_path / "audit").exists()
