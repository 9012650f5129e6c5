"""
Tests for the conversation analyzer and priority ranking.

Test Classes:
- TestClassification: mood, urgency, intent, signals and risk factors
- TestRecommendation: the ordered recommendation decision table
- TestConfidenceAndDefaults: confidence formula and the default analysis
- TestRankConversations: priority score ordering and staleness flags
"""

from datetime import datetime, timedelta, timezone

import pytest

from conversation_intel.models.enums import (
    ConversationStage,
    Intent,
    Mood,
    RecommendedAction,
    Urgency,
)
from conversation_intel.models.schemas import (
    ConversationAnalysis,
    ConversationMessage,
    LeadContext,
    RankingInput,
)
from conversation_intel.services.analyzer import (
    ConversationAnalyzer,
    priority_score,
    rank_conversations,
)


@pytest.fixture
def analyzer() -> ConversationAnalyzer:
    return ConversationAnalyzer()


def customer(content: str) -> ConversationMessage:
    return ConversationMessage(content=content, isFromAgent=False)


def agent(content: str) -> ConversationMessage:
    return ConversationMessage(content=content, isFromAgent=True)


class TestClassification:

    def test_ready_to_buy_message(self, analyzer: ConversationAnalyzer) -> None:
        analysis = analyzer.analyze(
            "I'm ready to buy today, can we sign the paperwork?",
            conversation_id='conv-1',
        )

        assert analysis.conversationId == 'conv-1'
        assert analysis.intent == Intent.READY_TO_BUY
        assert analysis.urgency == Urgency.HIGH
        assert analysis.mood == Mood.NEUTRAL
        # Alias "sign the paperwork" reports under its canonical phrase
        assert analysis.buyingSignals == ['ready to buy', 'sign today']
        assert analysis.stage == ConversationStage.CLOSING

    def test_excited_outranks_frustrated(self, analyzer: ConversationAnalyzer) -> None:
        analysis = analyzer.analyze("I love it, but the process is confusing")

        assert analysis.mood == Mood.EXCITED

    def test_many_positive_phrases_become_very_positive(self, analyzer: ConversationAnalyzer) -> None:
        analysis = analyzer.analyze("Thanks, looks good and sounds good. Tell me more")

        assert analysis.mood == Mood.VERY_POSITIVE

    def test_single_positive_phrase_stays_positive(self, analyzer: ConversationAnalyzer) -> None:
        analysis = analyzer.analyze("Thanks for the quick reply")

        assert analysis.mood == Mood.POSITIVE

    def test_unmatched_text_defaults_to_medium_research(self, analyzer: ConversationAnalyzer) -> None:
        analysis = analyzer.analyze("Hello there")

        assert analysis.urgency == Urgency.MEDIUM
        assert analysis.intent == Intent.RESEARCH
        assert analysis.mood == Mood.NEUTRAL
        assert analysis.buyingSignals == []

    def test_risk_factors_and_objection_stage(self, analyzer: ConversationAnalyzer) -> None:
        analysis = analyzer.analyze("That's too expensive, I'm shopping around")

        assert analysis.riskFactors == ['too expensive', 'shopping around']
        assert analysis.mood == Mood.NEGATIVE
        assert analysis.stage == ConversationStage.OBJECTION_HANDLING

    def test_agent_messages_are_ignored(self, analyzer: ConversationAnalyzer) -> None:
        history = [agent("Are you ready to buy today?")]

        analysis = analyzer.analyze("What colors do you have?", history)

        assert 'ready to buy' not in analysis.buyingSignals
        assert analysis.buyingSignals == ['what colors']
        assert analysis.urgency == Urgency.MEDIUM

    def test_signals_in_history_are_counted(self, analyzer: ConversationAnalyzer) -> None:
        history = [customer("We would be paying cash")]

        analysis = analyzer.analyze("Is the blue one still available?", history)

        assert analysis.buyingSignals == ['cash buyer', 'still available']

    def test_lead_id_is_carried_over(self, analyzer: ConversationAnalyzer) -> None:
        analysis = analyzer.analyze("Hello", lead_context=LeadContext(leadId='lead-9'))

        assert analysis.leadId == 'lead-9'

    def test_identical_inputs_give_equal_analyses(self, analyzer: ConversationAnalyzer) -> None:
        history = [customer("Looking for an SUV"), agent("Great, which size?")]

        first = analyzer.analyze("How much is the monthly payment?", history, conversation_id='c')
        second = analyzer.analyze("How much is the monthly payment?", history, conversation_id='c')

        assert first == second


class TestRecommendation:

    def test_strong_signal_escalates(self, analyzer: ConversationAnalyzer) -> None:
        analysis = analyzer.analyze("I'm ready to buy today, can we sign the paperwork?")

        assert analysis.recommendedAction == RecommendedAction.ESCALATE
        assert analysis.nextSteps[0] == 'Notify human agent immediately'

    def test_critical_urgency_escalates(self, analyzer: ConversationAnalyzer) -> None:
        analysis = analyzer.analyze("My car broke down and I need something asap")

        assert analysis.urgency == Urgency.CRITICAL
        assert analysis.recommendedAction == RecommendedAction.ESCALATE

    def test_three_signals_need_urgent_followup(self, analyzer: ConversationAnalyzer) -> None:
        analysis = analyzer.analyze(
            "Can I get a test drive? I also have a trade-in and want payment options"
        )

        assert len(analysis.buyingSignals) >= 3
        assert analysis.recommendedAction == RecommendedAction.URGENT_FOLLOWUP

    def test_high_urgency_schedules_call(self, analyzer: ConversationAnalyzer) -> None:
        analysis = analyzer.analyze("Could someone call me tomorrow?")

        assert analysis.urgency == Urgency.HIGH
        assert analysis.recommendedAction == RecommendedAction.SCHEDULE_CALL

    def test_price_focus_sends_offer(self, analyzer: ConversationAnalyzer) -> None:
        analysis = analyzer.analyze("How much is the monthly payment on the Accord?")

        assert analysis.intent == Intent.PRICE_FOCUSED
        assert analysis.recommendedAction == RecommendedAction.SEND_OFFER

    def test_no_signals_continue(self, analyzer: ConversationAnalyzer) -> None:
        analysis = analyzer.analyze("Hello there")

        assert analysis.recommendedAction == RecommendedAction.CONTINUE


class TestConfidenceAndDefaults:

    def test_confidence_counts_signals(self, analyzer: ConversationAnalyzer) -> None:
        analysis = analyzer.analyze("I'm ready to buy today, can we sign the paperwork?")

        assert analysis.confidence == 70

    def test_confidence_counts_customer_history_only(self, analyzer: ConversationAnalyzer) -> None:
        history = [customer("Hi"), agent("Hello!"), customer("Just browsing")]

        analysis = analyzer.analyze("Hello again", history)

        assert analysis.confidence == 60

    def test_confidence_is_capped(self, analyzer: ConversationAnalyzer) -> None:
        history = [customer("Hi") for _ in range(8)]

        analysis = analyzer.analyze("I'm ready to buy and will pay cash", history)

        assert analysis.confidence == 100

    def test_empty_input_returns_default_analysis(self, analyzer: ConversationAnalyzer) -> None:
        analysis = analyzer.analyze("", [], conversation_id='conv-empty')

        assert analysis.conversationId == 'conv-empty'
        assert analysis.confidence == 30
        assert analysis.mood == Mood.NEUTRAL
        assert analysis.urgency == Urgency.MEDIUM
        assert analysis.intent == Intent.RESEARCH
        assert analysis.recommendedAction == RecommendedAction.CONTINUE
        assert analysis.buyingSignals == []

    def test_agent_only_history_returns_default_analysis(self, analyzer: ConversationAnalyzer) -> None:
        analysis = analyzer.analyze("   ", [agent("Are you still interested?")])

        assert analysis.confidence == 30

    def test_empty_history_analyzes_the_message(self, analyzer: ConversationAnalyzer) -> None:
        analysis = analyzer.analyze("Is it still available?", [])

        assert analysis.confidence == 60
        assert analysis.stage == ConversationStage.INTRODUCTION


class TestRankConversations:

    NOW = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)

    def hot_analysis(self) -> ConversationAnalysis:
        return ConversationAnalysis(
            conversationId='hot',
            urgency=Urgency.CRITICAL,
            intent=Intent.READY_TO_BUY,
            mood=Mood.EXCITED,
            buyingSignals=['ready to buy', 'cash buyer'],
        )

    def test_priority_score_sums_weights(self) -> None:
        assert priority_score(self.hot_analysis()) == 105.0
        assert priority_score(ConversationAnalysis()) == 30.0

    def test_sorted_by_priority_descending(self) -> None:
        items = [
            RankingInput(analysis=ConversationAnalysis(conversationId='cold')),
            RankingInput(analysis=self.hot_analysis()),
        ]

        ranked = rank_conversations(items, now=self.NOW)

        assert [p.conversationId for p in ranked] == ['hot', 'cold']
        assert ranked[0].signalCount == 2

    def test_ties_keep_input_order(self) -> None:
        items = [
            RankingInput(analysis=ConversationAnalysis(conversationId='a')),
            RankingInput(analysis=ConversationAnalysis(conversationId='b')),
        ]

        ranked = rank_conversations(items, now=self.NOW)

        assert [p.conversationId for p in ranked] == ['a', 'b']

    def test_stale_conversations_are_flagged(self) -> None:
        items = [
            RankingInput(
                analysis=ConversationAnalysis(conversationId='recent'),
                lastActivityAt=self.NOW - timedelta(days=1),
            ),
            RankingInput(
                analysis=ConversationAnalysis(conversationId='stale'),
                lastActivityAt=self.NOW - timedelta(days=4),
            ),
            RankingInput(
                analysis=ConversationAnalysis(conversationId='abandoned'),
                # Naive timestamps are treated as UTC
                lastActivityAt=(self.NOW - timedelta(days=8)).replace(tzinfo=None),
            ),
        ]

        ranked = {p.conversationId: p for p in rank_conversations(items, now=self.NOW)}

        assert not ranked['recent'].escalationCandidate
        assert ranked['stale'].escalationCandidate
        assert not ranked['stale'].urgentCandidate
        assert ranked['abandoned'].escalationCandidate
        assert ranked['abandoned'].urgentCandidate
        assert ranked['abandoned'].daysSinceActivity == 8.0

    def test_missing_activity_is_never_stale(self) -> None:
        ranked = rank_conversations([RankingInput(analysis=ConversationAnalysis())], now=self.NOW)

        assert ranked[0].daysSinceActivity is None
        assert not ranked[0].escalationCandidate
