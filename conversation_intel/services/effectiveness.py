"""
Response Effectiveness Scoring.

Scores a sent response on six rule-based quality dimensions, adds a bonus
for measured downstream impact and buckets the result against fixed
industry benchmarks.

Dimensions (0-100 each):
- relevance: word overlap with the customer's message plus intent keywords
- clarity: length bounds and sentence length
- engagement: questions, second-person address, energy
- personalization: customer name and vehicle-of-interest mentions
- actionability: a question or call to action
- professionalism: courtesy phrases minus slang and shouting

overall = mean(dimensions) + impact bonus, capped at 100, where the bonus is
+10 if the customer replied, +2 x sentiment change (when positive), +8 if the
conversation advanced a stage and +15 if a new buying signal appeared.

Scoring never blocks the response pipeline: any exception yields a neutral
score (70 on every dimension).
"""

import logging
import re
from datetime import datetime, timezone
from typing import Dict, List, Optional
from uuid import uuid4

from conversation_intel.models.enums import Intent, RelativePerformance
from conversation_intel.models.schemas import (
    BenchmarkComparison,
    ResponseDimensions,
    ResponseEffectivenessScore,
    ResponseImpact,
    ScoringContext,
)
from conversation_intel.services.catalogs import segment_for_interest


logger = logging.getLogger(__name__)


# =============================================================================
# Heuristic vocabulary
# =============================================================================

STOPWORDS = frozenset({
    'about', 'after', 'also', 'been', 'could', 'does', 'from', 'have', 'just',
    'like', 'more', 'that', 'than', 'then', 'there', 'they', 'this', 'what',
    'when', 'which', 'will', 'with', 'would', 'your', 'yours', 'their',
})

INTENT_KEYWORDS: Dict[Intent, tuple] = {
    Intent.READY_TO_BUY: ('paperwork', 'appointment', 'schedule', 'today', 'finalize'),
    Intent.PRICE_FOCUSED: ('price', '$', 'payment', 'offer', 'incentive', 'financing'),
    Intent.COMPARISON: ('compare', 'difference', 'advantage', 'versus', 'value'),
    Intent.RESEARCH: ('feature', 'option', 'spec', 'trim', 'model'),
    Intent.UNDECIDED: ('question', 'help', 'options', 'no pressure'),
}

CALL_TO_ACTION = ('schedule', 'call', 'visit', 'stop by', 'reply', 'book', 'appointment', 'let me know')
COURTESY = ('thank', 'happy to', 'glad to', 'appreciate', 'please')
SLANG = ('lol', 'gonna', 'wanna', 'omg', 'btw', ' u ', ' ur ')

SUGGESTIONS = {
    'relevance': 'Address the specific question the customer asked',
    'clarity': 'Keep the reply concise with short sentences',
    'engagement': 'Ask a question to invite a reply',
    'personalization': "Use the customer's name and reference their vehicle of interest",
    'actionability': 'End with a clear call to action such as scheduling a visit',
    'professionalism': 'Use a courteous, professional tone without slang',
}
SUGGESTION_THRESHOLD = 70.0

REPLY_BONUS = 10.0
SENTIMENT_FACTOR = 2.0
PROGRESSION_BONUS = 8.0
BUYING_SIGNAL_BONUS = 15.0

_WORD = re.compile(r"[a-z']+")


def _clamp(value: float) -> float:
    return max(0.0, min(100.0, value))


def _content_words(text: str) -> set:
    return {w for w in _WORD.findall(text.lower()) if len(w) >= 4 and w not in STOPWORDS}


# =============================================================================
# Dimension heuristics
# =============================================================================

def score_relevance(response: str, original_message: str, intent: Optional[Intent]) -> float:
    text = response.lower()
    original_words = _content_words(original_message)
    if not original_words and intent is None:
        return 70.0

    overlap = len(original_words & _content_words(response))
    score = 60.0 + min(30.0, 10.0 * overlap)
    if intent is not None and any(k in text for k in INTENT_KEYWORDS.get(intent, ())):
        score += 10.0
    return _clamp(score)


def score_clarity(response: str) -> float:
    length = len(response.strip())
    if length == 0:
        return 0.0
    if 40 <= length <= 400:
        score = 90.0
    elif length < 40:
        score = 60.0
    elif length <= 600:
        score = 75.0
    else:
        score = 55.0

    sentences = [s for s in re.split(r'[.!?]+', response) if s.strip()]
    if sentences:
        words_per_sentence = sum(len(s.split()) for s in sentences) / len(sentences)
        if words_per_sentence > 30:
            score -= 10.0
    return _clamp(score)


def score_engagement(response: str) -> float:
    text = response.lower()
    score = 60.0
    if '?' in response:
        score += 15.0
    if '!' in response:
        score += 10.0
    if re.search(r"\byou(r)?\b", text):
        score += 10.0
    return _clamp(score)


def score_personalization(response: str, first_name: Optional[str], vehicle_interest: Optional[str]) -> float:
    text = response.lower()
    has_name = bool(first_name) and first_name.lower() in text
    has_vehicle = bool(vehicle_interest) and vehicle_interest.lower() in text
    score = 85.0 if has_name else 60.0
    if has_vehicle:
        score += 10.0
    return _clamp(score)


def score_actionability(response: str) -> float:
    text = response.lower()
    if '?' in response or any(cta in text for cta in CALL_TO_ACTION):
        return 80.0
    return 65.0


def score_professionalism(response: str) -> float:
    text = f" {response.lower()} "
    score = 78.0
    if any(phrase in text for phrase in COURTESY):
        score += 10.0
    if any(term in text for term in SLANG):
        score -= 20.0
    if '!!' in response:
        score -= 10.0
    if re.search(r"\b[A-Z]{4,}\b", response):
        score -= 10.0
    return _clamp(score)


def impact_bonus(impact: ResponseImpact) -> float:
    bonus = 0.0
    if impact.customerReplied:
        bonus += REPLY_BONUS
    if impact.sentimentChange > 0:
        bonus += SENTIMENT_FACTOR * impact.sentimentChange
    if impact.conversationProgression:
        bonus += PROGRESSION_BONUS
    if impact.buyingSignalTriggered:
        bonus += BUYING_SIGNAL_BONUS
    return bonus


def relative_performance(score: float, industry_average: float, top_performer: float) -> RelativePerformance:
    """Four-tier benchmark bucket; average band is industry average ± 5."""
    if score >= top_performer:
        return RelativePerformance.TOP_TIER
    if score >= industry_average + 5:
        return RelativePerformance.ABOVE_AVERAGE
    if score >= industry_average - 5:
        return RelativePerformance.AVERAGE
    return RelativePerformance.BELOW_AVERAGE


# =============================================================================
# Scorer
# =============================================================================

class ResponseScorer:
    """
    Computes ResponseEffectivenessScore records.

    Args:
        industry_average: Benchmark average score.
        top_performer: Benchmark top-performer score.
        neutral_score: Score substituted when scoring fails.
    """

    def __init__(
        self,
        industry_average: float = 72.0,
        top_performer: float = 88.0,
        neutral_score: float = 70.0,
    ):
        self.industry_average = industry_average
        self.top_performer = top_performer
        self.neutral_score = neutral_score

    def score_response(
        self,
        response: str,
        context: Optional[ScoringContext] = None,
        original_message: str = '',
    ) -> ResponseEffectivenessScore:
        """Score a response; falls back to the neutral score on any error."""
        context = context or ScoringContext()
        try:
            return self._score(response, context, original_message)
        except Exception as e:
            logger.error(
                f"Response scoring failed for conversation={context.conversationId}: {e}",
                exc_info=True,
            )
            return self.neutral(context)

    def neutral(self, context: ScoringContext) -> ResponseEffectivenessScore:
        value = self.neutral_score
        return ResponseEffectivenessScore(
            responseId=context.responseId or str(uuid4()),
            conversationId=context.conversationId,
            overallScore=value,
            dimensions=ResponseDimensions(
                relevance=value, clarity=value, engagement=value,
                personalization=value, actionability=value, professionalism=value,
            ),
            impact=context.impact or ResponseImpact(),
            benchmarkComparison=self._benchmark(value),
            scoredAt=datetime.now(timezone.utc),
        )

    def _score(
        self,
        response: str,
        context: ScoringContext,
        original_message: str,
    ) -> ResponseEffectivenessScore:
        lead = context.lead
        dimensions = ResponseDimensions(
            relevance=score_relevance(response, original_message, context.intent),
            clarity=score_clarity(response),
            engagement=score_engagement(response),
            personalization=score_personalization(response, lead.firstName, lead.vehicleInterest),
            actionability=score_actionability(response),
            professionalism=score_professionalism(response),
        )
        values = list(dimensions.model_dump().values())
        impact = context.impact or ResponseImpact()
        overall = round(min(100.0, sum(values) / len(values) + impact_bonus(impact)), 1)

        return ResponseEffectivenessScore(
            responseId=context.responseId or str(uuid4()),
            conversationId=context.conversationId,
            overallScore=overall,
            dimensions=dimensions,
            impact=impact,
            benchmarkComparison=self._benchmark(overall),
            improvementSuggestions=self._suggestions(dimensions),
            segment=segment_for_interest(lead.vehicleInterest),
            scoredAt=datetime.now(timezone.utc),
        )

    def _benchmark(self, score: float) -> BenchmarkComparison:
        return BenchmarkComparison(
            industryAverage=self.industry_average,
            topPerformer=self.top_performer,
            relativePerformance=relative_performance(score, self.industry_average, self.top_performer),
        )

    @staticmethod
    def _suggestions(dimensions: ResponseDimensions) -> List[str]:
        return [
            SUGGESTIONS[name]
            for name, value in dimensions.model_dump().items()
            if value < SUGGESTION_THRESHOLD
        ]


__all__ = [
    'ResponseScorer',
    'score_relevance',
    'score_clarity',
    'score_engagement',
    'score_personalization',
    'score_actionability',
    'score_professionalism',
    'impact_bonus',
    'relative_performance',
]
