"""
Conversation Analyzer Service.

Turns an inbound message plus recent conversation history into a structured
ConversationAnalysis: mood, urgency, intent, buying signals, risk factors, a
recommended action with reasoning, confidence and next steps.

Algorithm:
1. Concatenate customer-authored text (history then current message), lower-case.
2. Mood, urgency and intent come from the ordered rule tables in
   services/catalogs.py; the first matching tier wins.
3. Buying signals and risk factors are every catalog phrase present.
4. The recommended action comes from RECOMMENDATION_RULES, an ordered
   decision table over (signals, urgency, intent, mood).
5. Confidence = 50 + min(30, 5 x history) + min(20, 10 x signals), max 100.

The analyzer is a pure function of its inputs: identical inputs always yield
an equal analysis, and empty input yields the default analysis with
confidence 30 instead of raising.

Ranking:
rank_conversations() orders a set of active conversations by a weighted
priority score and flags stale ones as escalation candidates.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, List, Optional, Sequence, Tuple

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
    ConversationPriority,
    LeadContext,
    RankingInput,
)
from conversation_intel.services.catalogs import (
    ESCALATION_SIGNAL_PHRASES,
    INTENT_RULES,
    MOOD_RULES,
    RISK_PHRASES,
    URGENCY_RULES,
    VERY_POSITIVE_MIN_HITS,
    find_buying_signals,
    first_matching_tier,
    matched_phrases,
)


logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

BASE_CONFIDENCE = 50
HISTORY_CONFIDENCE_STEP = 5
HISTORY_CONFIDENCE_CAP = 30
SIGNAL_CONFIDENCE_STEP = 10
SIGNAL_CONFIDENCE_CAP = 20
DEFAULT_CONFIDENCE = 30

DEFAULT_REASONING = 'No customer text to analyze; continuing the conversation'


# =============================================================================
# Recommendation Decision Table
# =============================================================================

@dataclass(frozen=True)
class _Features:
    """Classification outputs the decision table is evaluated against."""
    signals: Tuple[str, ...]
    urgency: Urgency
    intent: Intent
    mood: Mood


RecommendationRule = Tuple[Callable[[_Features], bool], RecommendedAction, str]

# Ordered; first matching rule wins
RECOMMENDATION_RULES: Tuple[RecommendationRule, ...] = (
    (
        lambda f: any(s in ESCALATION_SIGNAL_PHRASES for s in f.signals)
        or f.urgency == Urgency.CRITICAL,
        RecommendedAction.ESCALATE,
        'High-value buying signal or critical urgency requires a human',
    ),
    (
        lambda f: f.intent == Intent.READY_TO_BUY or len(f.signals) >= 3,
        RecommendedAction.URGENT_FOLLOWUP,
        'Customer is close to a purchase decision',
    ),
    (
        lambda f: f.urgency == Urgency.HIGH or (f.mood == Mood.EXCITED and len(f.signals) >= 1),
        RecommendedAction.SCHEDULE_CALL,
        'Near-term timeline or enthusiastic buyer; a call will move things forward',
    ),
    (
        lambda f: f.intent == Intent.PRICE_FOCUSED or 'best price' in f.signals,
        RecommendedAction.SEND_OFFER,
        'Customer is focused on price; a concrete offer is the next step',
    ),
    (
        lambda f: True,
        RecommendedAction.CONTINUE,
        'No strong signals yet; keep the conversation going',
    ),
)

NEXT_STEPS = {
    RecommendedAction.ESCALATE: [
        'Notify human agent immediately',
        'Prepare handoff documentation',
    ],
    RecommendedAction.URGENT_FOLLOWUP: [
        'Contact customer within 1 hour',
        'Confirm vehicle availability',
    ],
    RecommendedAction.SCHEDULE_CALL: [
        'Offer available call times',
        'Send appointment confirmation',
    ],
    RecommendedAction.SEND_OFFER: [
        'Prepare pricing options',
        'Highlight current incentives',
    ],
    RecommendedAction.CONTINUE: [
        'Answer open questions',
        'Track conversation progression',
    ],
}


# =============================================================================
# Conversation Stage
# =============================================================================

POST_SALE_PHRASES: Tuple[str, ...] = (
    'picked up the car', 'took delivery', 'bought it', 'first service', 'after the purchase',
)


def _derive_stage(
    text: str,
    history_length: int,
    intent: Intent,
    mood: Mood,
    risk_factors: Sequence[str],
) -> ConversationStage:
    if any(phrase in text for phrase in POST_SALE_PHRASES):
        return ConversationStage.POST_SALE
    if intent == Intent.READY_TO_BUY:
        return ConversationStage.CLOSING
    if risk_factors or mood in (Mood.NEGATIVE, Mood.FRUSTRATED):
        return ConversationStage.OBJECTION_HANDLING
    if history_length == 0:
        return ConversationStage.INTRODUCTION
    if history_length <= 2:
        return ConversationStage.INFORMATION_GATHERING
    if intent in (Intent.PRICE_FOCUSED, Intent.COMPARISON):
        return ConversationStage.PRESENTATION
    return ConversationStage.NEEDS_ASSESSMENT


# =============================================================================
# Ranking Weights
# =============================================================================

URGENCY_WEIGHTS = {
    Urgency.CRITICAL: 40,
    Urgency.HIGH: 30,
    Urgency.MEDIUM: 20,
    Urgency.LOW: 10,
}

INTENT_WEIGHTS = {
    Intent.READY_TO_BUY: 30,
    Intent.PRICE_FOCUSED: 20,
    Intent.COMPARISON: 15,
    Intent.RESEARCH: 10,
    Intent.UNDECIDED: 5,
}

MOOD_WEIGHTS = {
    Mood.EXCITED: 15,
    Mood.FRUSTRATED: 15,
    Mood.NEGATIVE: 10,
    Mood.VERY_POSITIVE: 10,
    Mood.POSITIVE: 5,
    Mood.NEUTRAL: 0,
}

SIGNAL_WEIGHT = 10


# =============================================================================
# Analyzer
# =============================================================================

class ConversationAnalyzer:
    """
    Stateless, history-aware message classifier.

    Safe to share across concurrently processed conversations.
    """

    def analyze(
        self,
        message: str,
        history: Optional[Sequence[ConversationMessage]] = None,
        lead_context: Optional[LeadContext] = None,
        conversation_id: Optional[str] = None,
    ) -> ConversationAnalysis:
        """
        Analyze one inbound message in the context of its conversation.

        Args:
            message: Text of the inbound customer message.
            history: Prior messages in arrival order. Agent-authored messages
                are ignored for classification.
            lead_context: Optional lead fields; only the id is carried over.
            conversation_id: Identifier copied onto the analysis.

        Returns:
            ConversationAnalysis: Always complete; the default analysis when
            there is no customer text at all.
        """
        customer_history = [m for m in (history or []) if not m.isFromAgent]
        history_length = len(customer_history)
        lead_id = lead_context.leadId if lead_context else None

        parts = [m.content for m in customer_history] + [message or '']
        text = ' '.join(p for p in parts if p).strip().lower()

        if not text:
            return self.default_analysis(conversation_id, lead_id)

        mood = self.classify_mood(text)
        urgency = first_matching_tier(text, URGENCY_RULES, Urgency.MEDIUM)
        intent = first_matching_tier(text, INTENT_RULES, Intent.RESEARCH)
        signals = find_buying_signals(text)
        risk_factors = matched_phrases(text, RISK_PHRASES)

        action, reasoning = self.recommend(signals, urgency, intent, mood)
        confidence = self.compute_confidence(history_length, len(signals))
        stage = _derive_stage(text, history_length, intent, mood, risk_factors)

        logger.debug(
            f"Analyzed conversation={conversation_id}: mood={mood.value} "
            f"urgency={urgency.value} intent={intent.value} signals={len(signals)}"
        )

        return ConversationAnalysis(
            conversationId=conversation_id,
            leadId=lead_id,
            mood=mood,
            urgency=urgency,
            intent=intent,
            buyingSignals=signals,
            riskFactors=risk_factors,
            recommendedAction=action,
            reasoning=reasoning,
            confidence=confidence,
            nextSteps=list(NEXT_STEPS[action]),
            stage=stage,
        )

    @staticmethod
    def default_analysis(
        conversation_id: Optional[str] = None,
        lead_id: Optional[str] = None,
    ) -> ConversationAnalysis:
        return ConversationAnalysis(
            conversationId=conversation_id,
            leadId=lead_id,
            mood=Mood.NEUTRAL,
            urgency=Urgency.MEDIUM,
            intent=Intent.RESEARCH,
            recommendedAction=RecommendedAction.CONTINUE,
            reasoning=DEFAULT_REASONING,
            confidence=DEFAULT_CONFIDENCE,
            nextSteps=list(NEXT_STEPS[RecommendedAction.CONTINUE]),
            stage=ConversationStage.INTRODUCTION,
        )

    @staticmethod
    def classify_mood(text: str) -> Mood:
        """
        First non-empty mood bucket in priority order.

        A positive result is strengthened to very_positive when it has at
        least VERY_POSITIVE_MIN_HITS hits.
        """
        for mood, phrases in MOOD_RULES:
            hits = matched_phrases(text, phrases)
            if not hits:
                continue
            if mood == Mood.POSITIVE and len(hits) >= VERY_POSITIVE_MIN_HITS:
                return Mood.VERY_POSITIVE
            return mood
        return Mood.NEUTRAL

    @staticmethod
    def recommend(
        signals: Sequence[str],
        urgency: Urgency,
        intent: Intent,
        mood: Mood,
    ) -> Tuple[RecommendedAction, str]:
        features = _Features(tuple(signals), urgency, intent, mood)
        for predicate, action, reasoning in RECOMMENDATION_RULES:
            if predicate(features):
                return action, reasoning
        # Unreachable: the last rule always matches
        return RecommendedAction.CONTINUE, DEFAULT_REASONING

    @staticmethod
    def compute_confidence(history_length: int, signal_count: int) -> int:
        confidence = (
            BASE_CONFIDENCE
            + min(HISTORY_CONFIDENCE_CAP, HISTORY_CONFIDENCE_STEP * history_length)
            + min(SIGNAL_CONFIDENCE_CAP, SIGNAL_CONFIDENCE_STEP * signal_count)
        )
        return min(100, confidence)


# =============================================================================
# Priority Ranking
# =============================================================================

def priority_score(analysis: ConversationAnalysis) -> float:
    """urgency tier + 10 x signal count + intent tier + mood tier."""
    return float(
        URGENCY_WEIGHTS[analysis.urgency]
        + SIGNAL_WEIGHT * len(analysis.buyingSignals)
        + INTENT_WEIGHTS[analysis.intent]
        + MOOD_WEIGHTS[analysis.mood]
    )


def rank_conversations(
    items: Sequence[RankingInput],
    now: Optional[datetime] = None,
    stale_days: int = 3,
    urgent_stale_days: int = 7,
) -> List[ConversationPriority]:
    """
    Rank active conversations, most urgent first.

    Conversations idle for more than `stale_days` become escalation
    candidates; more than `urgent_stale_days` makes them urgent candidates.
    Ties keep input order.

    Args:
        items: Analyses with optional last-activity timestamps.
        now: Reference time (defaults to current UTC time).
        stale_days: Idle days before escalation candidacy.
        urgent_stale_days: Idle days before urgent candidacy.

    Returns:
        List[ConversationPriority]: Sorted by descending priority score.
    """
    now = now or datetime.now(timezone.utc)
    ranked: List[ConversationPriority] = []

    for item in items:
        analysis = item.analysis
        days_idle: Optional[float] = None
        if item.lastActivityAt is not None:
            last = item.lastActivityAt
            if last.tzinfo is None:
                last = last.replace(tzinfo=timezone.utc)
            days_idle = (now - last).total_seconds() / 86400.0

        ranked.append(ConversationPriority(
            conversationId=analysis.conversationId,
            leadId=analysis.leadId,
            priorityScore=priority_score(analysis),
            urgency=analysis.urgency,
            intent=analysis.intent,
            mood=analysis.mood,
            signalCount=len(analysis.buyingSignals),
            daysSinceActivity=round(days_idle, 2) if days_idle is not None else None,
            escalationCandidate=days_idle is not None and days_idle > stale_days,
            urgentCandidate=days_idle is not None and days_idle > urgent_stale_days,
        ))

    ranked.sort(key=lambda p: p.priorityScore, reverse=True)
    return ranked


__all__ = [
    'ConversationAnalyzer',
    'RECOMMENDATION_RULES',
    'NEXT_STEPS',
    'priority_score',
    'rank_conversations',
]
