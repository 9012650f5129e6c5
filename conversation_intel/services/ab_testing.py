"""
A/B Test Lifecycle and Variant Selection.

Experiments compare response strategies on live traffic.

Lifecycle:
    draft → active (start: weights locked, startDate set)
    active ⇄ paused
    active → completed (automatic once total impressions reach the
                        required sample size; winner computed)
Completed tests are never restarted.

Validation at creation (ABTestConfigurationError):
- at least two variants
- variant weights non-negative and summing to 100 (±0.01)
- unique variant ids (missing ids are generated first, never reusing a supplied id)
- requiredSampleSize at or above the configured minimum

Selection:
A uniform draw in [0, 100) is scanned against cumulative variant weights;
the first variant whose cumulative weight exceeds the draw is chosen, with
the first variant as fallback. Selecting a variant records an impression.

Results:
update_ab_test_results() is ignored unless the test is active. It increments
the outcome counters, updates the running mean response time and then checks
for completion, so the final outcome of a sample is always counted before
the winner is computed.

All state lives in this manager behind one lock; callers receive copies.
"""

import logging
import random
import threading
from datetime import datetime, timezone
from typing import Dict, List, Optional
from uuid import uuid4

from conversation_intel.core.errors import (
    ABTestConfigurationError,
    ABTestStateError,
    NotFoundError,
)
from conversation_intel.models.enums import ABTestStatus
from conversation_intel.models.schemas import (
    ABTestConfiguration,
    ABTestCreate,
    ABTestOutcome,
    ABTestSegmentation,
    ABTestVariant,
    LeadContext,
)


logger = logging.getLogger(__name__)


WEIGHT_TOTAL = 100.0
WEIGHT_TOLERANCE = 0.01
DEFAULT_MIN_SAMPLE_SIZE = 50


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def validate_ab_test(config: ABTestCreate, min_sample_size: int = DEFAULT_MIN_SAMPLE_SIZE) -> None:
    """
    Reject malformed test configurations.

    Raises:
        ABTestConfigurationError: With a description of the first problem found.
    """
    if len(config.variants) < 2:
        raise ABTestConfigurationError('A/B test must have at least 2 variants')

    if any(v.weight < 0 for v in config.variants):
        raise ABTestConfigurationError('Variant weights must be non-negative')

    total = sum(v.weight for v in config.variants)
    if abs(total - WEIGHT_TOTAL) > WEIGHT_TOLERANCE:
        raise ABTestConfigurationError(f'Variant weights must sum to 100% (got {total:g})')

    ids = [v.id for v in config.variants if v.id]
    if len(ids) != len(set(ids)):
        raise ABTestConfigurationError('Variant ids must be unique')

    if config.requiredSampleSize < min_sample_size:
        raise ABTestConfigurationError(
            f'Required sample size must be at least {min_sample_size}'
        )


def assign_variant_ids(config: ABTestCreate) -> ABTestCreate:
    """
    Fill in missing variant ids as variant_N, skipping any id already taken.

    Supplied ids are kept as given, so duplicates among them still fail
    validation.
    """
    taken = {v.id for v in config.variants if v.id}
    variants = []
    counter = 0
    for variant in config.variants:
        if not variant.id:
            counter += 1
            while f"variant_{counter}" in taken:
                counter += 1
            variant = variant.model_copy(update={'id': f"variant_{counter}"})
            taken.add(variant.id)
        variants.append(variant)
    return config.model_copy(update={'variants': variants})


def segment_matches(segmentation: ABTestSegmentation, lead: LeadContext) -> bool:
    """True when the lead satisfies every populated segmentation clause."""
    if segmentation.leadSource:
        sources = {s.lower() for s in segmentation.leadSource}
        if (lead.source or '').lower() not in sources:
            return False

    if segmentation.vehicleInterest:
        interest = (lead.vehicleInterest or '').lower()
        if not interest or not any(v.lower() in interest for v in segmentation.vehicleInterest):
            return False

    if segmentation.minLeadScore is not None or segmentation.maxLeadScore is not None:
        if lead.leadScore is None:
            return False
        if segmentation.minLeadScore is not None and lead.leadScore < segmentation.minLeadScore:
            return False
        if segmentation.maxLeadScore is not None and lead.leadScore > segmentation.maxLeadScore:
            return False

    return True


def pick_variant(variants: List[ABTestVariant], draw: float) -> ABTestVariant:
    """Cumulative-weight scan of a draw in [0, 100)."""
    cumulative = 0.0
    for variant in variants:
        cumulative += variant.weight
        if draw < cumulative:
            return variant
    return variants[0]


def pick_winner(variants: List[ABTestVariant]) -> ABTestVariant:
    """Highest responses/impressions; ties resolve to the earlier variant."""
    best = variants[0]
    for variant in variants[1:]:
        if variant.performance.response_rate > best.performance.response_rate:
            best = variant
    return best


class ABTestManager:
    """
    Owns all A/B tests and their counters.

    Args:
        min_sample_size: Smallest accepted requiredSampleSize.
        rng: Random source for variant selection.
        clock: Callable returning the current aware datetime.
    """

    def __init__(
        self,
        min_sample_size: int = DEFAULT_MIN_SAMPLE_SIZE,
        rng: Optional[random.Random] = None,
        clock=None,
    ):
        self.min_sample_size = min_sample_size
        self._rng = rng or random.Random()
        self._clock = clock or _utcnow
        self._lock = threading.RLock()
        self._tests: Dict[str, ABTestConfiguration] = {}

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def create_ab_test(self, config: ABTestCreate) -> str:
        """
        Create a draft test.

        Returns:
            str: The new test id.

        Raises:
            ABTestConfigurationError: If the configuration is malformed.
        """
        config = assign_variant_ids(config)
        validate_ab_test(config, self.min_sample_size)

        test_id = f"ab_{uuid4().hex[:12]}"
        variants = [
            ABTestVariant(id=v.id, name=v.name, weight=v.weight, strategy=v.strategy)
            for v in config.variants
        ]
        test = ABTestConfiguration(
            testId=test_id,
            name=config.name,
            description=config.description,
            status=ABTestStatus.DRAFT,
            segmentation=config.segmentation,
            variants=variants,
            requiredSampleSize=config.requiredSampleSize,
            confidenceLevel=config.confidenceLevel,
            createdAt=self._clock(),
        )

        with self._lock:
            self._tests[test_id] = test

        logger.info(f"Created A/B test {test_id} '{config.name}' with {len(variants)} variants")
        return test_id

    def start_ab_test(self, test_id: str) -> ABTestConfiguration:
        """
        Activate a draft test.

        Raises:
            NotFoundError: Unknown test id.
            ABTestStateError: The test is not in draft.
        """
        with self._lock:
            test = self._get(test_id)
            if test.status != ABTestStatus.DRAFT:
                raise ABTestStateError(
                    f"Test {test_id} can only be started from draft (status={test.status.value})"
                )
            test.status = ABTestStatus.ACTIVE
            test.startDate = self._clock()
            snapshot = test.model_copy(deep=True)

        logger.info(f"Started A/B test {test_id}")
        return snapshot

    def pause_ab_test(self, test_id: str) -> ABTestConfiguration:
        with self._lock:
            test = self._get(test_id)
            if test.status != ABTestStatus.ACTIVE:
                raise ABTestStateError(f"Only active tests can be paused (status={test.status.value})")
            test.status = ABTestStatus.PAUSED
            snapshot = test.model_copy(deep=True)
        logger.info(f"Paused A/B test {test_id}")
        return snapshot

    def resume_ab_test(self, test_id: str) -> ABTestConfiguration:
        with self._lock:
            test = self._get(test_id)
            if test.status != ABTestStatus.PAUSED:
                raise ABTestStateError(f"Only paused tests can be resumed (status={test.status.value})")
            test.status = ABTestStatus.ACTIVE
            snapshot = test.model_copy(deep=True)
        logger.info(f"Resumed A/B test {test_id}")
        return snapshot

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def get_test(self, test_id: str) -> ABTestConfiguration:
        with self._lock:
            return self._get(test_id).model_copy(deep=True)

    def list_tests(self, status: Optional[ABTestStatus] = None) -> List[ABTestConfiguration]:
        with self._lock:
            return [
                t.model_copy(deep=True)
                for t in self._tests.values()
                if status is None or t.status == status
            ]

    def find_applicable_test(self, lead: LeadContext) -> Optional[str]:
        """Id of the oldest active test whose segmentation matches the lead."""
        with self._lock:
            for test in self._tests.values():
                if test.status == ABTestStatus.ACTIVE and segment_matches(test.segmentation, lead):
                    return test.testId
        return None

    # -------------------------------------------------------------------------
    # Traffic and results
    # -------------------------------------------------------------------------

    def select_variant(self, test_id: str) -> ABTestVariant:
        """
        Weighted random variant for an active test; records an impression.

        Raises:
            NotFoundError: Unknown test id.
            ABTestStateError: The test is not active.
        """
        with self._lock:
            test = self._get(test_id)
            if test.status != ABTestStatus.ACTIVE:
                raise ABTestStateError(f"Test {test_id} is not active")
            variant = pick_variant(test.variants, self._rng.random() * WEIGHT_TOTAL)
            variant.performance.impressions += 1
            return variant.model_copy(deep=True)

    def update_ab_test_results(
        self,
        test_id: str,
        variant_id: str,
        outcome: ABTestOutcome,
    ) -> ABTestConfiguration:
        """
        Apply one observed outcome to a variant, then check for completion.

        Outcomes for tests that are not active are ignored.

        Raises:
            NotFoundError: Unknown test or variant id.
        """
        with self._lock:
            test = self._get(test_id)
            if test.status != ABTestStatus.ACTIVE:
                logger.debug(f"Ignoring outcome for inactive test {test_id} ({test.status.value})")
                return test.model_copy(deep=True)

            performance = self._variant(test, variant_id).performance
            if outcome.responded:
                performance.responses += 1
                if outcome.responseTime is not None:
                    performance.averageResponseTime += (
                        outcome.responseTime - performance.averageResponseTime
                    ) / performance.responses
            if outcome.converted:
                performance.conversions += 1
            if outcome.escalated:
                performance.escalations += 1

            self._check_completion(test)
            return test.model_copy(deep=True)

    # -------------------------------------------------------------------------
    # Internal helpers (callers hold the lock)
    # -------------------------------------------------------------------------

    def _get(self, test_id: str) -> ABTestConfiguration:
        test = self._tests.get(test_id)
        if test is None:
            raise NotFoundError('A/B test', test_id)
        return test

    @staticmethod
    def _variant(test: ABTestConfiguration, variant_id: str) -> ABTestVariant:
        for variant in test.variants:
            if variant.id == variant_id:
                return variant
        raise NotFoundError('A/B test variant', variant_id)

    def _check_completion(self, test: ABTestConfiguration) -> None:
        if test.total_impressions < test.requiredSampleSize:
            return
        winner = pick_winner(test.variants)
        test.status = ABTestStatus.COMPLETED
        test.endDate = self._clock()
        test.winnerVariantId = winner.id
        logger.info(
            f"A/B test {test.testId} completed after {test.total_impressions} impressions; "
            f"winner={winner.id} (response rate {winner.performance.response_rate:.3f})"
        )


__all__ = [
    'ABTestManager',
    'validate_ab_test',
    'assign_variant_ids',
    'segment_matches',
    'pick_variant',
    'pick_winner',
]
