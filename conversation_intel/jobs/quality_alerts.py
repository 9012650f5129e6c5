"""
Slack alert notification jobs for Conversation Intelligence.

Two notification paths post Block Kit messages through the Slack incoming
webhook (slack_sdk.webhook.WebhookClient):

- send_quality_alerts(): scheduled batch job. Loads stored effectiveness
  scores for the current and previous monitoring windows, runs quality
  monitoring and posts any quality_decline / performance_spike /
  anomaly_detected alerts.
- send_escalation_alerts(): drains escalation alerts that require
  notification from the running engine and posts them. Runs inside the API
  process (see run_escalation_notifier), since the alerts live in the
  engine's trigger system.

Idempotency:
- Each alert has a key (quality: alert type + window end hour; escalation:
  conversation + trigger type). A key already sent within
  ALERT_NOTIFICATION_WINDOW_MINUTES is skipped.
- State is persisted in the job_alert_state table.
- force=True bypasses the check.

Environment Requirements:
- SLACK_WEBHOOK_URL: Slack incoming webhook URL
  Format: https://hooks.slack.com/services/xxx/yyy/zzz

Usage:
    result = await send_quality_alerts()
    result = await send_escalation_alerts(engine)
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from slack_sdk.webhook import WebhookClient

from conversation_intel.core.config import get_settings
from conversation_intel.core.database import get_db_pool
from conversation_intel.models.enums import AlertSeverity, TriggerAction
from conversation_intel.models.schemas import EscalationAlert, QualityAlert, QualityMonitoringReport
from conversation_intel.services.engine import ConversationEngine
from conversation_intel.services.quality_optimizer import ResponseQualityOptimizer
from conversation_intel.services.repository import fetch_response_scores
from conversation_intel.sql import (
    ESCALATION_ALERT_JOB,
    QUALITY_ALERT_JOB,
    get_alert_state_query,
    get_alert_state_upsert_query,
)


logger = logging.getLogger(__name__)


SEVERITY_EMOJI = {
    AlertSeverity.CRITICAL: ':rotating_light:',
    AlertSeverity.HIGH: ':warning:',
    AlertSeverity.MEDIUM: ':large_orange_diamond:',
    AlertSeverity.LOW: ':information_source:',
}

ACTION_EMOJI = {
    TriggerAction.IMMEDIATE: ':rotating_light:',
    TriggerAction.SCHEDULED: ':calendar:',
    TriggerAction.QUEUE: ':inbox_tray:',
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Idempotency Functions
# =============================================================================

async def check_recently_sent(
    job_type: str,
    alert_key: str,
    window_minutes: int,
    now: Optional[datetime] = None,
) -> bool:
    """
    True when the alert key was sent within the notification window.

    Args:
        job_type: QUALITY_ALERT_JOB or ESCALATION_ALERT_JOB.
        alert_key: Deduplication key of the alert.
        window_minutes: Notification window in minutes.
        now: Reference time (defaults to current UTC time).
    """
    now = now or _utcnow()
    pool = await get_db_pool()

    async with pool.acquire() as conn:
        row = await conn.fetchrow(get_alert_state_query(), job_type, alert_key)

    if row is None or row['last_sent_at'] is None:
        return False
    return now - row['last_sent_at'] < timedelta(minutes=window_minutes)


async def mark_alert_sent(job_type: str, alert_key: str, now: Optional[datetime] = None) -> None:
    """Record a successful send of an alert key (upsert)."""
    pool = await get_db_pool()

    async with pool.acquire() as conn:
        await conn.execute(get_alert_state_upsert_query(), job_type, alert_key, now or _utcnow())


async def _filter_unsent(
    job_type: str,
    keyed: List[tuple],
    window_minutes: int,
    now: datetime,
) -> List[tuple]:
    unsent = []
    for key, item in keyed:
        try:
            if await check_recently_sent(job_type, key, window_minutes, now):
                logger.debug(f"Skipping {job_type} alert {key}: sent within {window_minutes} minutes")
                continue
        except Exception as e:
            # Missing state table on first deployment; send rather than drop
            logger.warning(f"Could not check alert state for {key}: {e}")
        unsent.append((key, item))
    return unsent


async def _mark_all(job_type: str, keys: List[str], now: datetime) -> None:
    for key in keys:
        try:
            await mark_alert_sent(job_type, key, now)
        except Exception as e:
            # Delivered already; a duplicate on the next run is the worst case
            logger.warning(f"Could not record alert state for {key}: {e}")


def _post(webhook_url: str, blocks: List[Dict[str, Any]], text: str) -> Optional[str]:
    """
    Post blocks; returns an error message or None on success.

    WebhookClient is synchronous, so async callers run this in a worker thread.
    """
    try:
        client = WebhookClient(webhook_url)
        response = client.send(text=text, blocks=blocks)
    except Exception as e:
        return f'Failed to send Slack message: {str(e)}'
    if response.status_code != 200:
        return f'Slack API returned status {response.status_code}: {response.body}'
    return None


# =============================================================================
# Slack Message Formatting
# =============================================================================

def format_quality_alert_blocks(
    report: QualityMonitoringReport,
    alerts: List[QualityAlert],
    window_start: datetime,
    window_end: datetime,
) -> List[Dict[str, Any]]:
    """Block Kit message for quality monitoring alerts."""
    metrics = report.metrics
    blocks: List[Dict[str, Any]] = [
        {
            "type": "header",
            "text": {"type": "plain_text", "text": "Response Quality Alert", "emoji": True},
        },
        {
            "type": "section",
            "text": {
                "type": "mrkdwn",
                "text": (
                    f"*Window:* {window_start:%Y-%m-%d %H:%M} - {window_end:%Y-%m-%d %H:%M} UTC\n"
                    f"*Responses scored:* {metrics.sampleSize:,}\n"
                    f"*Average score:* {metrics.averageResponseScore:.1f} "
                    f"({report.trend.direction.value}, {report.trend.performanceChange:+.1f})\n"
                    f"*Conversion rate:* {metrics.conversionRate:.1%}  |  "
                    f"*Escalation rate:* {metrics.escalationRate:.1%}  |  "
                    f"*Missed replies:* {metrics.responseMissRate:.1%}"
                ),
            },
        },
        {"type": "divider"},
    ]

    for alert in alerts:
        blocks.append({
            "type": "section",
            "text": {
                "type": "mrkdwn",
                "text": (
                    f"{SEVERITY_EMOJI[alert.severity]} *{alert.type.value.replace('_', ' ').title()}* "
                    f"({alert.severity.value})\n{alert.message}"
                ),
            },
        })

    blocks.append({
        "type": "context",
        "elements": [{"type": "mrkdwn", "text": f"Generated at {_utcnow():%Y-%m-%d %H:%M:%S} UTC"}],
    })
    return blocks


def format_escalation_blocks(alerts: List[EscalationAlert]) -> List[Dict[str, Any]]:
    """Block Kit message listing escalations that need a human."""
    blocks: List[Dict[str, Any]] = [
        {
            "type": "header",
            "text": {"type": "plain_text", "text": f"{len(alerts)} conversation(s) need a human", "emoji": True},
        },
    ]
    for alert in alerts:
        blocks.append({
            "type": "section",
            "text": {
                "type": "mrkdwn",
                "text": (
                    f"{ACTION_EMOJI[alert.action]} *{alert.triggerType.value.replace('_', ' ')}* "
                    f"({alert.action.value}, score {alert.score:.0f})\n"
                    f"Conversation `{alert.conversationId or 'unknown'}` | Lead `{alert.leadId or 'unknown'}`\n"
                    f"{alert.reason}"
                ),
            },
        })
    return blocks


# =============================================================================
# Main Entry Points
# =============================================================================

async def send_quality_alerts(
    optimizer: Optional[ResponseQualityOptimizer] = None,
    window_hours: Optional[int] = None,
    now: Optional[datetime] = None,
    force: bool = False,
) -> Dict[str, Any]:
    """
    Run quality monitoring over stored scores and post alerts to Slack.

    Args:
        optimizer: Optimizer whose thresholds are used (built from settings
            when omitted).
        window_hours: Monitoring window (defaults to the configured window).
        now: End of the current window (defaults to current UTC time).
        force: Send even if the same alert was sent within the window.

    Returns:
        Dict with:
        - success: True if alerts were sent or skipped appropriately
        - skipped: True if nothing needed sending
        - reason: Reason for skip (if skipped)
        - alerts_sent: Number of alerts posted
        - error: Error message (if failed)

    Raises:
        No exceptions are raised - all errors are captured in the return dict.
    """
    settings = get_settings()
    if not settings.slack_webhook_url:
        return {
            'success': False,
            'error': 'SLACK_WEBHOOK_URL not configured. Set this environment variable to enable alerts.',
        }

    optimizer = optimizer or ResponseQualityOptimizer(settings)
    hours = window_hours or settings.quality_monitoring_window_hours
    window_end = now or _utcnow()
    window_start = window_end - timedelta(hours=hours)
    previous_start = window_start - timedelta(hours=hours)

    try:
        current = await fetch_response_scores(
            window_start, window_end, settings.industry_average_score, settings.top_performer_score,
        )
        previous = await fetch_response_scores(
            previous_start, window_start, settings.industry_average_score, settings.top_performer_score,
        )
    except Exception as e:
        logger.error(f"Failed to load response scores: {e}", exc_info=True)
        return {'success': False, 'error': f'Failed to load response scores: {str(e)}'}

    if not current:
        return {'success': True, 'skipped': True, 'reason': 'No scored responses in the monitoring window'}

    report = optimizer.monitor_quality(current, previous)
    if not report.alerts:
        return {
            'success': True,
            'skipped': True,
            'reason': 'No quality alerts raised',
            'average_score': report.metrics.averageResponseScore,
        }

    window_tag = window_end.strftime('%Y%m%d%H')
    keyed = [(f"{alert.type.value}:{window_tag}", alert) for alert in report.alerts]
    if not force:
        keyed = await _filter_unsent(
            QUALITY_ALERT_JOB, keyed, settings.alert_notification_window_minutes, window_end,
        )
    if not keyed:
        return {'success': True, 'skipped': True, 'reason': 'All quality alerts already sent'}

    alerts = [alert for _, alert in keyed]
    blocks = format_quality_alert_blocks(report, alerts, window_start, window_end)
    error = await asyncio.to_thread(
        _post, settings.slack_webhook_url, blocks, f"{len(alerts)} response quality alert(s)",
    )
    if error:
        logger.error(error)
        return {'success': False, 'error': error}

    await _mark_all(QUALITY_ALERT_JOB, [key for key, _ in keyed], window_end)
    logger.info(f"Posted {len(alerts)} quality alert(s) to Slack")
    return {
        'success': True,
        'alerts_sent': len(alerts),
        'average_score': report.metrics.averageResponseScore,
        'trend': report.trend.direction.value,
    }


async def send_escalation_alerts(
    engine: ConversationEngine,
    now: Optional[datetime] = None,
    force: bool = False,
) -> Dict[str, Any]:
    """
    Post pending escalation alerts from the engine to Slack.

    Alerts are drained from the engine before sending; alerts already sent
    for the same conversation and trigger type within the notification
    window are dropped. Alerts that could not be delivered are handed back
    to the engine and retried on the next run.

    Returns:
        Dict with success / skipped / reason / alerts_sent / error.
    """
    settings = get_settings()
    if not settings.slack_webhook_url:
        return {
            'success': False,
            'error': 'SLACK_WEBHOOK_URL not configured. Set this environment variable to enable alerts.',
        }

    pending = engine.drain_alerts()
    if not pending:
        return {'success': True, 'skipped': True, 'reason': 'No pending escalation alerts'}

    now = now or _utcnow()
    keyed = [(f"{alert.conversationId}:{alert.triggerType.value}", alert) for alert in pending]
    if not force:
        keyed = await _filter_unsent(
            ESCALATION_ALERT_JOB, keyed, settings.alert_notification_window_minutes, now,
        )
    if not keyed:
        return {'success': True, 'skipped': True, 'reason': 'All escalation alerts already sent'}

    alerts = [alert for _, alert in keyed]
    error = await asyncio.to_thread(
        _post, settings.slack_webhook_url, format_escalation_blocks(alerts), f"{len(alerts)} escalation(s)",
    )
    if error:
        logger.error(f"{error} ({len(alerts)} escalation alert(s) requeued)")
        engine.requeue_alerts(alerts)
        return {'success': False, 'error': error}

    await _mark_all(ESCALATION_ALERT_JOB, [key for key, _ in keyed], now)
    logger.info(f"Posted {len(alerts)} escalation alert(s) to Slack")
    return {'success': True, 'alerts_sent': len(alerts)}


async def run_escalation_notifier(engine: ConversationEngine, interval_seconds: int) -> None:
    """Deliver escalation alerts every interval until cancelled."""
    logger.info(f"Escalation notifier started (interval={interval_seconds}s)")
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            result = await send_escalation_alerts(engine)
            if not result['success']:
                logger.warning(f"Escalation notification failed: {result.get('error')}")
        except Exception as e:
            logger.error(f"Escalation notifier error: {e}", exc_info=True)
