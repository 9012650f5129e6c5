"""
Scheduled Jobs for Conversation Intelligence.

This module provides the background jobs that close the feedback loop:
- Quality alert notifications to Slack (quality_alerts.py)
- Escalation alert delivery from the running engine (quality_alerts.py)
- Personalization profile tuning (personalization_tuning.py)

Idempotency:
------------
- Alert notifications never repeat the same alert key within the
  configured notification window (ALERT_NOTIFICATION_WINDOW_MINUTES).
  Sends are tracked in the job_alert_state table.
- Force flag (force=True) bypasses the check for manual re-sends.
- Profile tuning is a pure recomputation and safe to re-run.

Environment Requirements:
-------------------------
- SLACK_WEBHOOK_URL: Slack incoming webhook URL for alert notifications
- DATABASE_URL: Required by every job (scores and alert state live there)

Usage Examples:
---------------
    from conversation_intel.jobs import send_quality_alerts, run_personalization_tuning

    result = await send_quality_alerts()
    result = await run_personalization_tuning(window_days=14)
"""

# =============================================================================
# Alert Notification Exports
# =============================================================================

from conversation_intel.jobs.quality_alerts import (
    send_quality_alerts,
    send_escalation_alerts,
    run_escalation_notifier,
    check_recently_sent,
    mark_alert_sent,
)

# =============================================================================
# Personalization Tuning Exports
# =============================================================================

from conversation_intel.jobs.personalization_tuning import run_personalization_tuning

# =============================================================================
# Public API Declaration
# =============================================================================

__all__ = [
    'send_quality_alerts',        # Monitor stored scores and post quality alerts
    'send_escalation_alerts',     # Post pending escalation alerts from an engine
    'run_escalation_notifier',    # Periodic escalation delivery loop
    'check_recently_sent',        # Alert idempotency check
    'mark_alert_sent',            # Record an alert send
    'run_personalization_tuning', # Recompute and persist segment profiles
]
