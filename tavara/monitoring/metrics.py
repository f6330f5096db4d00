"""
Tavara.care Coordination Service - Metrics Collector

In-process counters for monitoring and observability.
Provides Prometheus-compatible metrics export.
"""

import time
from typing import Dict
from datetime import datetime
from collections import defaultdict
from threading import Lock

from tavara.core.logging import logger


def _empty_metrics() -> Dict:
    return {
        "assignments_by_type": defaultdict(int),
        "assignments_deactivated": 0,
        "recalculations": defaultdict(int),
        "chat_messages": 0,
        "leads_captured": defaultdict(int),
        "notifications_sent": defaultdict(int),
        "notifications_failed": defaultdict(int),
        "payments_captured": 0,
        "response_times": [],
        "error_count": 0
    }


class MetricsCollector:
    """
    Centralized metrics collection for monitoring.

    Collects:
    - Assignments created by type and deactivations
    - Match recalculations by outcome
    - Registration-assistant messages and captured leads
    - Notifications sent / failed by channel
    - Response times and error count
    """

    def __init__(self):
        """Initialize metrics collector."""
        self.start_time = time.time()
        self.lock = Lock()
        # Metrics storage
        self.metrics = _empty_metrics()

        logger.info("MetricsCollector initialized")

    def record_assignment(self, assignment_type: str):
        with self.lock:
            self.metrics["assignments_by_type"][assignment_type] += 1

    def record_deactivation(self, count: int = 1):
        with self.lock:
            self.metrics["assignments_deactivated"] += count

    def record_recalculation(self, status: str):
        with self.lock:
            self.metrics["recalculations"][status] += 1

    def record_chat_message(self):
        with self.lock:
            self.metrics["chat_messages"] += 1

    def record_lead(self, source: str):
        with self.lock:
            self.metrics["leads_captured"][source] += 1

    def record_notification(self, channel: str, success: bool):
        """
        Record an outbound notification.

        Args:
            channel: email, whatsapp or in_app
            success: Whether the provider accepted it
        """
        with self.lock:
            key = "notifications_sent" if success else "notifications_failed"
            self.metrics[key][channel] += 1

    def record_payment(self):
        with self.lock:
            self.metrics["payments_captured"] += 1

    def record_response_time(self, response_time_ms: float):
        with self.lock:
            self.metrics["response_times"].append(response_time_ms)
            # Keep only last 1000 response times
            if len(self.metrics["response_times"]) > 1000:
                self.metrics["response_times"] = self.metrics["response_times"][-1000:]

    def record_error(self):
        """Record an error occurrence."""
        with self.lock:
            self.metrics["error_count"] += 1

    def get_metrics(self) -> dict:
        """
        Get current metrics snapshot.

        Returns:
            dict: Current metrics
        """
        with self.lock:
            response_times = self.metrics["response_times"]
            # Calculate average response time
            avg_response_time = (
                sum(response_times) / len(response_times)
                if response_times else 0.0
            )

            # Calculate uptime
            uptime_seconds = time.time() - self.start_time

            assignments = dict(self.metrics["assignments_by_type"])
            return {
                "total_assignments": sum(assignments.values()),
                "assignments_by_type": assignments,
                "assignments_deactivated": self.metrics["assignments_deactivated"],
                "recalculations": dict(self.metrics["recalculations"]),
                "chat_messages": self.metrics["chat_messages"],
                "leads_captured": dict(self.metrics["leads_captured"]),
                "notifications_sent": dict(self.metrics["notifications_sent"]),
                "notifications_failed": dict(self.metrics["notifications_failed"]),
                "payments_captured": self.metrics["payments_captured"],
                "average_response_time_ms": round(avg_response_time, 2),
                "error_count": self.metrics["error_count"],
                "uptime_seconds": round(uptime_seconds, 2),
                "timestamp": datetime.utcnow().isoformat()
            }

    def export_prometheus(self) -> str:
        """
        Export metrics in Prometheus format.

        Returns:
            str: Prometheus-formatted metrics
        """
        metrics = self.get_metrics()

        lines = [
            "# HELP tavara_assignments_total Caregiver assignments created",
            "# TYPE tavara_assignments_total counter",
        ]
        for assignment_type, count in metrics["assignments_by_type"].items():
            lines.append(f'tavara_assignments_total{{type="{assignment_type}"}} {count}')

        lines.extend([
            "",
            "# HELP tavara_assignments_deactivated_total Assignments deactivated",
            "# TYPE tavara_assignments_deactivated_total counter",
            f"tavara_assignments_deactivated_total {metrics['assignments_deactivated']}",
            "",
            "# HELP tavara_recalculations_total Match recalculations by status",
            "# TYPE tavara_recalculations_total counter",
        ])
        for status, count in metrics["recalculations"].items():
            lines.append(f'tavara_recalculations_total{{status="{status}"}} {count}')

        lines.extend([
            "",
            "# HELP tavara_chat_messages_total Registration assistant messages",
            "# TYPE tavara_chat_messages_total counter",
            f"tavara_chat_messages_total {metrics['chat_messages']}",
            "",
            "# HELP tavara_leads_total Leads captured by source",
            "# TYPE tavara_leads_total counter",
        ])
        for source, count in metrics["leads_captured"].items():
            lines.append(f'tavara_leads_total{{source="{source}"}} {count}')

        lines.extend([
            "",
            "# HELP tavara_notifications_total Outbound notifications by channel and outcome",
            "# TYPE tavara_notifications_total counter",
        ])
        for channel, count in metrics["notifications_sent"].items():
            lines.append(f'tavara_notifications_total{{channel="{channel}",outcome="sent"}} {count}')
        for channel, count in metrics["notifications_failed"].items():
            lines.append(f'tavara_notifications_total{{channel="{channel}",outcome="failed"}} {count}')

        lines.extend([
            "",
            "# HELP tavara_payments_captured_total Visit payments captured",
            "# TYPE tavara_payments_captured_total counter",
            f"tavara_payments_captured_total {metrics['payments_captured']}",
            "",
            "# HELP tavara_response_time_ms Average response time in milliseconds",
            "# TYPE tavara_response_time_ms gauge",
            f"tavara_response_time_ms {metrics['average_response_time_ms']}",
            "",
            "# HELP tavara_errors_total Total errors",
            "# TYPE tavara_errors_total counter",
            f"tavara_errors_total {metrics['error_count']}",
            "",
            "# HELP tavara_uptime_seconds Service uptime in seconds",
            "# TYPE tavara_uptime_seconds counter",
            f"tavara_uptime_seconds {metrics['uptime_seconds']}"
        ])

        return "\n".join(lines)

    def reset_metrics(self):
        """Reset all metrics (for testing purposes only)."""
        with self.lock:
            self.start_time = time.time()
            self.metrics = _empty_metrics()
            logger.info("Metrics reset")


# Shared by services and routes
metrics_collector = MetricsCollector()
