"""
Tavara.care Coordination Service - Audit Logger

Append-only audit trail for administrative actions:
match interventions, assignment changes and payroll payments.
"""

import json
from datetime import datetime, timedelta
from typing import Dict, Any, Optional
from pathlib import Path

from tavara.core.logging import logger
from tavara.core.settings import get_settings

settings = get_settings()


class AuditLogger:
    """
    Audit logging for coordination traceability.

    Logs:
    - Admin match interventions
    - Assignment creation and deactivation
    - Payroll payments
    - Phone verification outcomes
    """

    def __init__(self, log_dir: Optional[Path] = None):
        """
        Initialize audit logger.

        Args:
            log_dir: Directory for audit logs (default: AUDIT_LOG_DIR)
        """
        self.enabled = settings.ENABLE_AUDIT_LOGGING
        self.log_dir = Path(log_dir) if log_dir else Path(settings.AUDIT_LOG_DIR)

        if self.enabled:
            self._ensure_log_directory()

        logger.info(f"AuditLogger initialized (enabled={self.enabled})")

    def _ensure_log_directory(self):
        """Ensure log directory exists."""
        try:
            self.log_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Failed to create log directory: {str(e)}")
            self.enabled = False

    def log_admin_intervention(
        self,
        admin_id: Optional[str],
        family_user_id: str,
        caregiver_id: str,
        admin_match_score: float,
        calculated_match_score: Optional[float],
        reason: Optional[str] = None
    ):
        """
        Log a manual match made by an administrator.

        Args:
            admin_id: Acting administrator
            family_user_id: Family profile id
            caregiver_id: Caregiver profile id
            admin_match_score: Score chosen by the admin
            calculated_match_score: Score the algorithm produced
            reason: Free-text justification
        """
        self._write_audit_log({
            "event_type": "admin_intervention",
            "timestamp": datetime.utcnow().isoformat() + "Z",
            "admin_id": admin_id,
            "family_user_id": family_user_id,
            "caregiver_id": caregiver_id,
            "admin_match_score": admin_match_score,
            "calculated_match_score": calculated_match_score,
            "reason": reason
        })

    def log_assignment_change(
        self,
        action: str,
        assignment_id: str,
        assignment_type: str,
        actor_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        """Log creation, upgrade or deactivation of an assignment."""
        self._write_audit_log({
            "event_type": "assignment_change",
            "timestamp": datetime.utcnow().isoformat() + "Z",
            "action": action,
            "assignment_id": assignment_id,
            "assignment_type": assignment_type,
            "actor_id": actor_id,
            "details": details or {}
        })

    def log_payroll_payment(self, payroll_entry_id: str, amount: float, actor_id: Optional[str] = None):
        self._write_audit_log({
            "event_type": "payroll_payment",
            "timestamp": datetime.utcnow().isoformat() + "Z",
            "payroll_entry_id": payroll_entry_id,
            "amount": amount,
            "actor_id": actor_id,
            "service_version": settings.APP_VERSION
        })

    def log_verification(self, formatted_number: str, success: bool, reason: Optional[str] = None):
        self._write_audit_log({
            "event_type": "phone_verification",
            "timestamp": datetime.utcnow().isoformat() + "Z",
            # last four digits only
            "phone_suffix": formatted_number[-4:],
            "success": success,
            "reason": reason
        })

    def _write_audit_log(self, entry: Dict[str, Any]):
        """
        Write audit log entry to the daily JSONL file.

        Args:
            entry: Audit log entry
        """
        if not self.enabled:
            return

        try:
            # Use daily log files
            date_str = datetime.utcnow().strftime("%Y-%m-%d")
            log_file = self.log_dir / f"audit_{date_str}.jsonl"

            # Write as JSON line
            with open(log_file, "a") as f:
                f.write(json.dumps(entry, default=str) + "\n")

        except OSError as e:
            logger.error(f"Failed to write audit log: {str(e)}")

    def query_logs(
        self,
        start_date: datetime,
        end_date: datetime,
        event_type: Optional[str] = None
    ) -> list:
        """
        Query audit logs by day range.

        Args:
            start_date: Start date
            end_date: End date
            event_type: Filter by event type

        Returns:
            list: Matching audit entries
        """
        if not self.enabled:
            return []

        results = []

        # Iterate through log files in date range
        current_date = start_date
        while current_date.date() <= end_date.date():
            date_str = current_date.strftime("%Y-%m-%d")
            log_file = self.log_dir / f"audit_{date_str}.jsonl"

            if log_file.exists():
                try:
                    with open(log_file, "r") as f:
                        for line in f:
                            entry = json.loads(line)

                            # Filter by event type if specified
                            if event_type and entry.get("event_type") != event_type:
                                continue

                            results.append(entry)

                except (OSError, json.JSONDecodeError) as e:
                    logger.error(f"Failed to read audit log {log_file}: {str(e)}")

            # Move to next day
            current_date += timedelta(days=1)

        return results


audit_logger = AuditLogger()
