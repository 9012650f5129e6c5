"""
Response Quality Optimizer.

The feedback loop of the engine. It ties together:
- A/B testing (services/ab_testing.py): experiment lifecycle, weighted
  variant selection and outcome counters
- Effectiveness scoring (services/effectiveness.py)
- Personalization profiles per lead segment (services/personalization.py)
- Trend and alert monitoring (services/quality_monitoring.py)
- Optimization recommendations derived from accumulated scores

Each optimizer instance owns its manager objects; nothing is module-global.

Recommendation rules (evaluated over a batch of scores):
- personalization dimension below 70 → personalization (high)
- clarity or engagement below 70 → content_structure (medium; critical
  when the overall average is below 60)
- professionalism below 70 → response_tone (medium)
- mean customer response time above one hour → timing (medium)
- escalation rate above 25% → escalation_threshold (high)
- a segment averaging below the industry benchmark → personalization for
  that segment (low)
Recommendations are ordered by priority weight (critical 4, high 3,
medium 2, low 1), then expected impact.
"""

import logging
from typing import Dict, List, Optional, Sequence, Tuple
from uuid import uuid4

import numpy as np

from conversation_intel.core.config import Settings, get_settings
from conversation_intel.models.enums import (
    ABTestStatus,
    Intent,
    LeadSegment,
    Mood,
    OptimizationType,
    PersonalizationLevel,
    RecommendationPriority,
    ResponseLength,
    ResponseTone,
    StrategyType,
    Urgency,
)
from conversation_intel.models.schemas import (
    ABTestConfiguration,
    ABTestCreate,
    ABTestOutcome,
    ABTestVariant,
    ConversationAnalysis,
    LeadContext,
    OptimizationRecommendation,
    PersonalizationProfile,
    QualityMonitoringReport,
    ResponseEffectivenessScore,
    ResponseStrategy,
    ScoringContext,
    SegmentPerformance,
)
from conversation_intel.services.ab_testing import ABTestManager
from conversation_intel.services.effectiveness import ResponseScorer
from conversation_intel.services.personalization import PersonalizationManager
from conversation_intel.services.quality_monitoring import monitor_quality


logger = logging.getLogger(__name__)


PRIORITY_WEIGHTS: Dict[RecommendationPriority, int] = {
    RecommendationPriority.CRITICAL: 4,
    RecommendationPriority.HIGH: 3,
    RecommendationPriority.MEDIUM: 2,
    RecommendationPriority.LOW: 1,
}

DIMENSION_FLOOR = 70.0
CRITICAL_OVERALL = 60.0
SLOW_RESPONSE_SECONDS = 3600.0
ESCALATION_RATE_CEILING = 0.25


class ResponseQualityOptimizer:
    """
    A/B testing, scoring, personalization and monitoring in one service.

    Args:
        settings: Benchmarks, neutral score and monitoring thresholds.
        ab_tests: Experiment manager (built from settings when omitted).
        scorer: Effectiveness scorer (built from settings when omitted).
        personalization: Profile manager (defaults when omitted).
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        ab_tests: Optional[ABTestManager] = None,
        scorer: Optional[ResponseScorer] = None,
        personalization: Optional[PersonalizationManager] = None,
    ):
        self.settings = settings or get_settings()
        self.ab_tests = ab_tests or ABTestManager(min_sample_size=self.settings.ab_test_min_sample_size)
        self.scorer = scorer or ResponseScorer(
            industry_average=self.settings.industry_average_score,
            top_performer=self.settings.top_performer_score,
            neutral_score=self.settings.neutral_quality_score,
        )
        self.personalization = personalization or PersonalizationManager()

    # =========================================================================
    # A/B testing
    # =========================================================================

    def create_ab_test(self, config: ABTestCreate) -> str:
        return self.ab_tests.create_ab_test(config)

    def start_ab_test(self, test_id: str) -> ABTestConfiguration:
        return self.ab_tests.start_ab_test(test_id)

    def pause_ab_test(self, test_id: str) -> ABTestConfiguration:
        return self.ab_tests.pause_ab_test(test_id)

    def resume_ab_test(self, test_id: str) -> ABTestConfiguration:
        return self.ab_tests.resume_ab_test(test_id)

    def update_ab_test_results(
        self,
        test_id: str,
        variant_id: str,
        outcome: ABTestOutcome,
    ) -> ABTestConfiguration:
        return self.ab_tests.update_ab_test_results(test_id, variant_id, outcome)

    def get_ab_test(self, test_id: str) -> ABTestConfiguration:
        return self.ab_tests.get_test(test_id)

    def list_ab_tests(self, status: Optional[ABTestStatus] = None) -> List[ABTestConfiguration]:
        return self.ab_tests.list_tests(status)

    # =========================================================================
    # Strategy selection
    # =========================================================================

    def select_strategy(
        self,
        lead: LeadContext,
        analysis: Optional[ConversationAnalysis] = None,
    ) -> Tuple[ResponseStrategy, Optional[str], Optional[ABTestVariant]]:
        """
        Strategy for the next response to this lead.

        When an active test's segmentation matches the lead, a variant is
        drawn (recording an impression) and its strategy is used. Otherwise
        the strategy comes from the lead segment's personalization profile.

        Returns:
            Tuple of (strategy, test id or None, variant or None).
        """
        test_id = self.ab_tests.find_applicable_test(lead)
        if test_id is not None:
            variant = self.ab_tests.select_variant(test_id)
            logger.debug(f"Lead {lead.leadId} assigned to {test_id}/{variant.id}")
            return variant.strategy, test_id, variant

        profile = self.personalization.profile_for_interest(lead.vehicleInterest)
        return self.profile_strategy(profile, analysis), None, None

    @staticmethod
    def profile_strategy(
        profile: PersonalizationProfile,
        analysis: Optional[ConversationAnalysis] = None,
    ) -> ResponseStrategy:
        """Default strategy for a segment, adjusted for the current mood and urgency."""
        tone = profile.toneAdjustments.get('default', ResponseTone.PROFESSIONAL)
        urgency = Urgency.MEDIUM
        length = ResponseLength.MODERATE
        include_offers = False

        if analysis is not None:
            tone = profile.toneAdjustments.get(analysis.mood.value, tone)
            if analysis.mood == Mood.EXCITED:
                tone = ResponseTone.ENTHUSIASTIC
            urgency = analysis.urgency
            include_offers = analysis.intent == Intent.PRICE_FOCUSED
            if analysis.intent == Intent.RESEARCH:
                length = ResponseLength.DETAILED
            elif analysis.urgency in (Urgency.HIGH, Urgency.CRITICAL):
                length = ResponseLength.BRIEF

        if profile.namingFrequency >= 2:
            level = PersonalizationLevel.HIGH
        elif profile.namingFrequency >= 1:
            level = PersonalizationLevel.MEDIUM
        else:
            level = PersonalizationLevel.LOW

        return ResponseStrategy(
            type=StrategyType.AI_GENERATED,
            tone=tone,
            personalizationLevel=level,
            responseLength=length,
            includeOffers=include_offers,
            urgencyLevel=urgency,
        )

    # =========================================================================
    # Scoring and personalization
    # =========================================================================

    def score_response(
        self,
        response: str,
        context: Optional[ScoringContext] = None,
        original_message: str = '',
    ) -> ResponseEffectivenessScore:
        return self.scorer.score_response(response, context, original_message)

    def segment_for(self, vehicle_interest: Optional[str]) -> LeadSegment:
        return self.personalization.segment_for(vehicle_interest)

    def get_profile(self, segment: LeadSegment) -> PersonalizationProfile:
        return self.personalization.get_profile(segment)

    def all_profiles(self) -> List[PersonalizationProfile]:
        return self.personalization.all_profiles()

    def recompute_profiles(self, rows: Sequence[SegmentPerformance]) -> List[PersonalizationProfile]:
        return self.personalization.recompute_profiles(rows)

    # =========================================================================
    # Monitoring and recommendations
    # =========================================================================

    def monitor_quality(
        self,
        current: Sequence[ResponseEffectivenessScore],
        previous: Sequence[ResponseEffectivenessScore] = (),
    ) -> QualityMonitoringReport:
        return monitor_quality(
            current,
            previous,
            decline_threshold=self.settings.quality_decline_threshold,
            z_threshold=self.settings.anomaly_z_threshold,
        )

    def generate_recommendations(
        self,
        scores: Sequence[ResponseEffectivenessScore],
    ) -> List[OptimizationRecommendation]:
        """Ranked tuning recommendations for a batch of scores."""
        if not scores:
            return []

        dims = {
            name: float(np.mean([getattr(s.dimensions, name) for s in scores]))
            for name in ('relevance', 'clarity', 'engagement', 'personalization',
                         'actionability', 'professionalism')
        }
        overall = float(np.mean([s.overallScore for s in scores]))
        recommendations: List[OptimizationRecommendation] = []

        if dims['personalization'] < DIMENSION_FLOOR:
            recommendations.append(self._recommendation(
                OptimizationType.PERSONALIZATION,
                RecommendationPriority.HIGH,
                'Increase response personalization',
                f"Personalization averages {dims['personalization']:.1f}",
                DIMENSION_FLOOR - dims['personalization'],
                ["Use the customer's first name", 'Reference the vehicle of interest'],
            ))

        weakest_structure = min(dims['clarity'], dims['engagement'])
        if weakest_structure < DIMENSION_FLOOR:
            recommendations.append(self._recommendation(
                OptimizationType.CONTENT_STRUCTURE,
                RecommendationPriority.CRITICAL if overall < CRITICAL_OVERALL else RecommendationPriority.MEDIUM,
                'Restructure response content',
                f"Clarity {dims['clarity']:.1f}, engagement {dims['engagement']:.1f}",
                DIMENSION_FLOOR - weakest_structure,
                ['Keep replies between 40 and 400 characters', 'Close with a question'],
            ))

        if dims['professionalism'] < DIMENSION_FLOOR:
            recommendations.append(self._recommendation(
                OptimizationType.RESPONSE_TONE,
                RecommendationPriority.MEDIUM,
                'Adjust response tone',
                f"Professionalism averages {dims['professionalism']:.1f}",
                DIMENSION_FLOOR - dims['professionalism'],
                ['Remove slang and all-caps words', 'Add courteous phrasing'],
            ))

        response_times = [s.impact.responseTime for s in scores if s.impact.responseTime is not None]
        if response_times and float(np.mean(response_times)) > SLOW_RESPONSE_SECONDS:
            recommendations.append(self._recommendation(
                OptimizationType.TIMING,
                RecommendationPriority.MEDIUM,
                'Improve response timing',
                f"Customers take {float(np.mean(response_times)) / 60:.0f} minutes to reply on average",
                5.0,
                ['Send follow-ups during business hours', 'Shorten time to first response'],
            ))

        escalation_rate = sum(1 for s in scores if s.impact.escalationRequired) / len(scores)
        if escalation_rate > ESCALATION_RATE_CEILING:
            recommendations.append(self._recommendation(
                OptimizationType.ESCALATION_THRESHOLD,
                RecommendationPriority.HIGH,
                'Review escalation thresholds',
                f"{escalation_rate:.0%} of responses required escalation",
                round((escalation_rate - ESCALATION_RATE_CEILING) * 100, 1),
                ['Audit trigger thresholds', 'Add templates for common escalation causes'],
            ))

        by_segment: Dict[LeadSegment, List[float]] = {}
        for score in scores:
            if score.segment is not None:
                by_segment.setdefault(score.segment, []).append(score.overallScore)
        for segment, values in by_segment.items():
            average = float(np.mean(values))
            if average < self.settings.industry_average_score:
                recommendations.append(self._recommendation(
                    OptimizationType.PERSONALIZATION,
                    RecommendationPriority.LOW,
                    f"Tune {segment.value} profile",
                    f"{segment.value} responses average {average:.1f}",
                    self.settings.industry_average_score - average,
                    ['Recompute the segment profile from recent performance'],
                    segment,
                ))

        recommendations.sort(key=lambda r: (PRIORITY_WEIGHTS[r.priority], r.expectedImpact), reverse=True)
        return recommendations

    @staticmethod
    def _recommendation(
        kind: OptimizationType,
        priority: RecommendationPriority,
        title: str,
        description: str,
        expected_impact: float,
        implementation: List[str],
        segment: Optional[LeadSegment] = None,
    ) -> OptimizationRecommendation:
        return OptimizationRecommendation(
            id=f"rec_{uuid4().hex[:10]}",
            type=kind,
            priority=priority,
            title=title,
            description=description,
            expectedImpact=round(expected_impact, 1),
            implementation=implementation,
            affectedSegment=segment,
        )


__all__ = [
    'ResponseQualityOptimizer',
    'PRIORITY_WEIGHTS',
]
