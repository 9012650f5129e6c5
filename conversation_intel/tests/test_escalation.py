"""
Tests for the escalation trigger system.

Test Classes:
- TestTriggerConditions: which trigger fires for which message
- TestCooldowns: per-conversation cooldown suppression and expiry
- TestAlerts: recent / pending alert bookkeeping
"""

from concurrent.futures import ThreadPoolExecutor

import pytest

from conversation_intel.models.enums import LeadPriority, TriggerAction, TriggerType
from conversation_intel.models.schemas import ConversationAnalysis, LeadScore
from conversation_intel.services.escalation import EscalationTriggerSystem

from conversation_intel.tests.conftest import FixedClock


@pytest.fixture
def triggers(clock: FixedClock) -> EscalationTriggerSystem:
    return EscalationTriggerSystem(clock=clock)


class TestTriggerConditions:

    def test_buying_signal_fires(self, triggers: EscalationTriggerSystem) -> None:
        evaluation = triggers.evaluate("I'm ready to buy", conversation_id='conv-1')

        assert evaluation.fired
        assert evaluation.trigger.type == TriggerType.BUYING_SIGNAL
        assert evaluation.trigger.action == TriggerAction.IMMEDIATE
        assert evaluation.score == 95.0
        assert evaluation.reason == 'buying signal detected - immediate escalation required'

    def test_alias_counts_as_buying_signal(self, triggers: EscalationTriggerSystem) -> None:
        evaluation = triggers.evaluate("Can we sign the paperwork?", conversation_id='conv-1')

        assert evaluation.trigger.type == TriggerType.BUYING_SIGNAL

    def test_plain_question_fires_nothing(self, triggers: EscalationTriggerSystem) -> None:
        evaluation = triggers.evaluate("What colors do you have?", conversation_id='conv-1')

        assert not evaluation.fired
        assert evaluation.trigger is None

    def test_higher_priority_trigger_wins(self, triggers: EscalationTriggerSystem) -> None:
        # Matches both complaint and urgent timeline
        evaluation = triggers.evaluate("I'm unhappy and need this sorted today", conversation_id='conv-1')

        assert evaluation.trigger.type == TriggerType.COMPLAINT

    def test_high_value_needs_hot_lead_with_high_score(self, triggers: EscalationTriggerSystem) -> None:
        hot = LeadScore(totalScore=90, priorityTier=LeadPriority.HOT)
        lukewarm = LeadScore(totalScore=90, priorityTier=LeadPriority.WARM)

        assert triggers.evaluate("Hello there", lead_score=hot, conversation_id='a').trigger.type == TriggerType.HIGH_VALUE
        assert not triggers.evaluate("Hello there", lead_score=lukewarm, conversation_id='b').fired

    def test_many_questions_are_complex(self, triggers: EscalationTriggerSystem) -> None:
        evaluation = triggers.evaluate(
            "Is it available? Which trims come with AWD? Can you hold it?",
            conversation_id='conv-1',
        )

        assert evaluation.trigger.type == TriggerType.COMPLEX_REQUEST
        assert evaluation.trigger.action == TriggerAction.QUEUE

    def test_long_message_is_complex(self, triggers: EscalationTriggerSystem) -> None:
        evaluation = triggers.evaluate("x" * 301, conversation_id='conv-1')

        assert evaluation.trigger.type == TriggerType.COMPLEX_REQUEST

    def test_competitor_mention(self, triggers: EscalationTriggerSystem) -> None:
        evaluation = triggers.evaluate("The Honda place offered more", conversation_id='conv-1')

        assert evaluation.trigger.type == TriggerType.COMPETITOR_MENTION
        assert evaluation.score == 70.0

    def test_conversation_id_falls_back_to_analysis(self, triggers: EscalationTriggerSystem) -> None:
        analysis = ConversationAnalysis(conversationId='from-analysis', leadId='lead-3')

        triggers.evaluate("I'm ready to buy", analysis)

        assert triggers.in_cooldown(TriggerType.BUYING_SIGNAL, 'from-analysis')
        assert triggers.recent_alerts()[0].leadId == 'lead-3'


class TestCooldowns:

    def test_second_firing_is_suppressed(self, triggers: EscalationTriggerSystem) -> None:
        first = triggers.evaluate("I'm ready to buy", conversation_id='conv-1')
        second = triggers.evaluate("I'm ready to buy", conversation_id='conv-1')

        assert first.fired
        assert not second.fired
        assert second.suppressedTypes == [TriggerType.BUYING_SIGNAL]

    def test_suppressed_trigger_lets_next_trigger_fire(self, triggers: EscalationTriggerSystem) -> None:
        triggers.evaluate("I'm ready to buy", conversation_id='conv-1')

        evaluation = triggers.evaluate("I'm ready to buy today", conversation_id='conv-1')

        assert evaluation.trigger.type == TriggerType.URGENT_TIMELINE
        assert evaluation.suppressedTypes == [TriggerType.BUYING_SIGNAL]

    def test_cooldown_is_per_conversation(self, triggers: EscalationTriggerSystem) -> None:
        assert triggers.evaluate("I'm ready to buy", conversation_id='conv-1').fired
        assert triggers.evaluate("I'm ready to buy", conversation_id='conv-2').fired

    def test_cooldown_expires(self, triggers: EscalationTriggerSystem, clock: FixedClock) -> None:
        triggers.evaluate("I'm ready to buy", conversation_id='conv-1')

        clock.advance(899)
        assert triggers.in_cooldown(TriggerType.BUYING_SIGNAL, 'conv-1')

        clock.advance(2)
        assert not triggers.in_cooldown(TriggerType.BUYING_SIGNAL, 'conv-1')
        assert triggers.evaluate("I'm ready to buy", conversation_id='conv-1').fired

    def test_cooldown_override(self, clock: FixedClock) -> None:
        triggers = EscalationTriggerSystem(cooldowns={'buying_signal': 60}, clock=clock)

        triggers.evaluate("I'm ready to buy", conversation_id='conv-1')
        clock.advance(61)

        assert triggers.evaluate("I'm ready to buy", conversation_id='conv-1').fired

    def test_default_cooldown_applies_to_every_trigger(self) -> None:
        triggers = EscalationTriggerSystem(default_cooldown=30)

        assert {t.cooldownSeconds for t in triggers.triggers} == {30}

    def test_reset_clears_cooldowns(self, triggers: EscalationTriggerSystem) -> None:
        triggers.evaluate("I'm ready to buy", conversation_id='conv-1')

        triggers.reset_cooldowns()

        assert triggers.evaluate("I'm ready to buy", conversation_id='conv-1').fired

    def test_concurrent_messages_fire_once(self, triggers: EscalationTriggerSystem) -> None:
        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(
                lambda _: triggers.evaluate("I'm ready to buy", conversation_id='conv-1'),
                range(32),
            ))

        assert sum(1 for r in results if r.fired) == 1
        assert len(triggers.recent_alerts()) == 1


class TestAlerts:

    def test_notification_alerts_are_drained_once(self, triggers: EscalationTriggerSystem) -> None:
        triggers.evaluate("I'm ready to buy", conversation_id='conv-1')

        drained = triggers.drain_alerts()

        assert [a.triggerType for a in drained] == [TriggerType.BUYING_SIGNAL]
        assert drained[0].conversationId == 'conv-1'
        assert triggers.drain_alerts() == []

    def test_requeued_alerts_come_back_first(self, triggers: EscalationTriggerSystem) -> None:
        triggers.evaluate("I'm ready to buy", conversation_id='conv-1')
        undelivered = triggers.drain_alerts()
        triggers.evaluate("I'm ready to buy", conversation_id='conv-2')

        triggers.requeue_alerts(undelivered)

        assert [a.conversationId for a in triggers.drain_alerts()] == ['conv-1', 'conv-2']
        assert len(triggers.recent_alerts()) == 2

    def test_silent_triggers_are_recorded_but_not_pending(self, triggers: EscalationTriggerSystem) -> None:
        triggers.evaluate("The Honda place offered more", conversation_id='conv-1')

        assert triggers.drain_alerts() == []
        assert triggers.recent_alerts()[0].triggerType == TriggerType.COMPETITOR_MENTION

    def test_recent_alerts_newest_first(self, triggers: EscalationTriggerSystem) -> None:
        triggers.evaluate("I'm ready to buy", conversation_id='first')
        triggers.evaluate("I'm ready to buy", conversation_id='second')

        alerts = triggers.recent_alerts(limit=1)

        assert [a.conversationId for a in alerts] == ['second']
