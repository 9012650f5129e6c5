"""
Escalation Trigger System.

Independent rule evaluation deciding whether a human must take over a
conversation. It runs before any other routing step and can fire regardless
of what the routing engine would otherwise conclude.

Evaluation:
- Triggers are evaluated in priority-descending order.
- Each trigger type has a fixed condition test against the message and lead
  score that returns either 0 or a fixed high score (binary, not graded).
- The first trigger whose score reaches its threshold and is not cooling
  down fires; evaluation stops there.

Cooldowns:
A cooldown map keyed by (conversation, trigger type) holds the last firing
time. A trigger inside its cooldown window is skipped regardless of score.
The check-and-set happens under one lock, so concurrent messages record an
alert exactly once per window.

Alerts:
Each firing records an EscalationAlert. Recent alerts are kept in a bounded
buffer for the API; pending alerts are drained by the notification job.
"""

import logging
import threading
from collections import deque
from datetime import datetime, timedelta, timezone
from typing import Callable, Deque, Dict, Iterable, List, Optional, Tuple
from uuid import uuid4

from conversation_intel.models.enums import LeadPriority, TriggerType
from conversation_intel.models.schemas import (
    ConversationAnalysis,
    EscalationAlert,
    EscalationTrigger,
    LeadScore,
    TriggerEvaluation,
)
from conversation_intel.services.catalogs import (
    COMPLEX_REQUEST_MIN_LENGTH,
    COMPLEX_REQUEST_MIN_QUESTIONS,
    ESCALATION_TRIGGERS,
    HIGH_VALUE_MIN_LEAD_SCORE,
    TRIGGER_PHRASES,
    TRIGGER_SCORES,
    contains_any,
    find_buying_signals,
)


logger = logging.getLogger(__name__)


Clock = Callable[[], datetime]
CooldownKey = Tuple[Optional[str], TriggerType]

MAX_RECENT_ALERTS = 500


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def escalation_reason(trigger: EscalationTrigger) -> str:
    return f"{trigger.type.value.replace('_', ' ')} detected - {trigger.action.value} escalation required"


# =============================================================================
# Per-type condition tests
# =============================================================================

def _buying_signal(text: str, message: str, lead_score: Optional[LeadScore]) -> bool:
    phrases = TRIGGER_PHRASES[TriggerType.BUYING_SIGNAL]
    if contains_any(text, phrases):
        return True
    return any(signal in phrases for signal in find_buying_signals(text))


def _complaint(text: str, message: str, lead_score: Optional[LeadScore]) -> bool:
    return contains_any(text, TRIGGER_PHRASES[TriggerType.COMPLAINT])


def _complex_request(text: str, message: str, lead_score: Optional[LeadScore]) -> bool:
    return (
        len(message) > COMPLEX_REQUEST_MIN_LENGTH
        or message.count('?') >= COMPLEX_REQUEST_MIN_QUESTIONS
    )


def _high_value(text: str, message: str, lead_score: Optional[LeadScore]) -> bool:
    return (
        lead_score is not None
        and lead_score.priorityTier == LeadPriority.HOT
        and lead_score.totalScore >= HIGH_VALUE_MIN_LEAD_SCORE
    )


def _urgent_timeline(text: str, message: str, lead_score: Optional[LeadScore]) -> bool:
    return contains_any(text, TRIGGER_PHRASES[TriggerType.URGENT_TIMELINE])


def _competitor_mention(text: str, message: str, lead_score: Optional[LeadScore]) -> bool:
    return contains_any(text, TRIGGER_PHRASES[TriggerType.COMPETITOR_MENTION])


CONDITION_TESTS: Dict[TriggerType, Callable[[str, str, Optional[LeadScore]], bool]] = {
    TriggerType.BUYING_SIGNAL: _buying_signal,
    TriggerType.COMPLAINT: _complaint,
    TriggerType.COMPLEX_REQUEST: _complex_request,
    TriggerType.HIGH_VALUE: _high_value,
    TriggerType.URGENT_TIMELINE: _urgent_timeline,
    TriggerType.COMPETITOR_MENTION: _competitor_mention,
}


# =============================================================================
# Trigger System
# =============================================================================

class EscalationTriggerSystem:
    """
    Evaluates escalation triggers with per-trigger cooldowns.

    Args:
        triggers: Trigger catalog; defaults to ESCALATION_TRIGGERS.
        cooldowns: Optional per-type cooldown overrides in seconds.
        clock: Callable returning the current aware datetime.
    """

    def __init__(
        self,
        triggers: Optional[Iterable[EscalationTrigger]] = None,
        cooldowns: Optional[Dict[str, int]] = None,
        default_cooldown: Optional[int] = None,
        clock: Optional[Clock] = None,
    ):
        catalog = list(ESCALATION_TRIGGERS if triggers is None else triggers)
        overrides = cooldowns or {}
        configured = []
        for trigger in catalog:
            seconds = overrides.get(trigger.type.value, default_cooldown)
            if seconds is not None:
                trigger = trigger.model_copy(update={'cooldownSeconds': int(seconds)})
            configured.append(trigger)

        self._triggers = sorted(configured, key=lambda t: t.priority, reverse=True)
        self._clock = clock or _utcnow
        self._lock = threading.RLock()
        self._last_fired: Dict[CooldownKey, datetime] = {}
        self._recent: Deque[EscalationAlert] = deque(maxlen=MAX_RECENT_ALERTS)
        self._pending: List[EscalationAlert] = []

    @property
    def triggers(self) -> List[EscalationTrigger]:
        return list(self._triggers)

    def score_trigger(
        self,
        trigger: EscalationTrigger,
        message: str,
        lead_score: Optional[LeadScore] = None,
    ) -> float:
        """Fixed score for the trigger type when its condition holds, else 0."""
        test = CONDITION_TESTS.get(trigger.type)
        if test is None:
            return 0.0
        text = (message or '').lower()
        return TRIGGER_SCORES[trigger.type] if test(text, message or '', lead_score) else 0.0

    def in_cooldown(self, trigger_type: TriggerType, conversation_id: Optional[str] = None) -> bool:
        trigger = self._find(trigger_type)
        with self._lock:
            return self._cooling_down(trigger, conversation_id, self._clock())

    def evaluate(
        self,
        message: str,
        analysis: Optional[ConversationAnalysis] = None,
        lead_score: Optional[LeadScore] = None,
        conversation_id: Optional[str] = None,
    ) -> TriggerEvaluation:
        """
        Evaluate triggers for one message; at most one fires.

        Args:
            message: Raw inbound message.
            analysis: Analysis of the message (identifiers for the alert).
            lead_score: External lead score used by the high-value trigger.
            conversation_id: Cooldown scope; falls back to the analysis id.

        Returns:
            TriggerEvaluation: The fired trigger (if any) and the types that
            matched but were skipped because they are cooling down.
        """
        if conversation_id is None and analysis is not None:
            conversation_id = analysis.conversationId

        suppressed = []
        for trigger in self._triggers:
            score = self.score_trigger(trigger, message, lead_score)
            if score <= 0 or score < trigger.threshold:
                continue

            with self._lock:
                now = self._clock()
                if self._cooling_down(trigger, conversation_id, now):
                    suppressed.append(trigger.type)
                    logger.debug(
                        f"Trigger {trigger.type.value} suppressed by cooldown "
                        f"for conversation={conversation_id}"
                    )
                    continue
                self._last_fired[(conversation_id, trigger.type)] = now
                alert = self._record_alert(trigger, score, analysis, conversation_id, now)

            logger.info(
                f"Escalation trigger fired: {trigger.type.value} (score={score:.0f}) "
                f"conversation={conversation_id} alert={alert.alertId}"
            )
            return TriggerEvaluation(
                fired=True,
                trigger=trigger,
                score=score,
                reason=alert.reason,
                suppressedTypes=suppressed,
            )

        return TriggerEvaluation(fired=False, suppressedTypes=suppressed)

    def recent_alerts(self, limit: int = 50) -> List[EscalationAlert]:
        """Most recent alerts, newest first."""
        with self._lock:
            alerts = list(self._recent)
        return list(reversed(alerts))[:limit]

    def drain_alerts(self) -> List[EscalationAlert]:
        """Take all alerts not yet handed to the notification job."""
        with self._lock:
            pending, self._pending = self._pending, []
        return pending

    def requeue_alerts(self, alerts: List[EscalationAlert]) -> None:
        """Put undelivered alerts back ahead of any raised since the drain."""
        with self._lock:
            self._pending = list(alerts) + self._pending

    def reset_cooldowns(self) -> None:
        with self._lock:
            self._last_fired.clear()

    # -------------------------------------------------------------------------
    # Internal helpers (callers hold the lock)
    # -------------------------------------------------------------------------

    def _find(self, trigger_type: TriggerType) -> EscalationTrigger:
        for trigger in self._triggers:
            if trigger.type == trigger_type:
                return trigger
        raise KeyError(trigger_type)

    def _cooling_down(
        self,
        trigger: EscalationTrigger,
        conversation_id: Optional[str],
        now: datetime,
    ) -> bool:
        last = self._last_fired.get((conversation_id, trigger.type))
        if last is None:
            return False
        return now < last + timedelta(seconds=trigger.cooldownSeconds)

    def _record_alert(
        self,
        trigger: EscalationTrigger,
        score: float,
        analysis: Optional[ConversationAnalysis],
        conversation_id: Optional[str],
        now: datetime,
    ) -> EscalationAlert:
        alert = EscalationAlert(
            alertId=str(uuid4()),
            triggerType=trigger.type,
            action=trigger.action,
            conversationId=conversation_id,
            leadId=analysis.leadId if analysis else None,
            score=score,
            reason=escalation_reason(trigger),
            notificationRequired=trigger.notificationRequired,
            firedAt=now,
        )
        self._recent.append(alert)
        if trigger.notificationRequired:
            self._pending.append(alert)
        return alert


__all__ = [
    'EscalationTriggerSystem',
    'CONDITION_TESTS',
    'escalation_reason',
]
