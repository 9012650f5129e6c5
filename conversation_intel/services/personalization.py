"""
Personalization Profiles per Lead Segment.

Each of the five lead segments (luxury, commercial, first_time_buyer, family,
performance) has one profile: how often to use the customer's name, how often
to reference the vehicle of interest, preferred tone and content topics, and
an effectiveness estimate.

Profiles are batch-tuned: recompute_profiles() takes aggregated performance
rows (produced by jobs/personalization_tuning.py from stored scores) and
rewrites the affected profiles in one step. Single interactions never update
a profile directly.
"""

import copy
import logging
import threading
from collections import Counter
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Sequence

import numpy as np

from conversation_intel.models.enums import LeadSegment, ResponseTone
from conversation_intel.models.schemas import PersonalizationProfile, SegmentPerformance
from conversation_intel.services.catalogs import segment_for_interest


logger = logging.getLogger(__name__)


# Segments with fewer aggregated samples keep their current profile
MIN_SEGMENT_SAMPLES = 20
# Tone slices with fewer samples are not eligible as preferred tone
MIN_TONE_SAMPLES = 10
MAX_FREQUENCY = 5.0
TOP_TOPICS = 3

SEGMENT_DEFAULTS: Dict[LeadSegment, dict] = {
    LeadSegment.LUXURY: dict(
        toneAdjustments={'default': ResponseTone.PROFESSIONAL},
        contentPreferences=['features', 'exclusivity', 'service'],
    ),
    LeadSegment.COMMERCIAL: dict(
        toneAdjustments={'default': ResponseTone.PROFESSIONAL},
        contentPreferences=['capability', 'financing', 'fleet pricing'],
    ),
    LeadSegment.FIRST_TIME_BUYER: dict(
        toneAdjustments={'default': ResponseTone.FRIENDLY},
        contentPreferences=['financing', 'reliability', 'benefits'],
    ),
    LeadSegment.FAMILY: dict(
        toneAdjustments={'default': ResponseTone.FRIENDLY},
        contentPreferences=['safety', 'space', 'financing'],
    ),
    LeadSegment.PERFORMANCE: dict(
        toneAdjustments={'default': ResponseTone.ENTHUSIASTIC},
        contentPreferences=['performance', 'features', 'test drive'],
    ),
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def default_profiles(now: Optional[datetime] = None) -> Dict[LeadSegment, PersonalizationProfile]:
    now = now or _utcnow()
    return {
        segment: PersonalizationProfile(segment=segment, lastUpdated=now, **copy.deepcopy(overrides))
        for segment, overrides in SEGMENT_DEFAULTS.items()
    }


def tune_profile(
    profile: PersonalizationProfile,
    rows: Sequence[SegmentPerformance],
    now: datetime,
) -> PersonalizationProfile:
    """
    New profile for one segment from its aggregated performance rows.

    - effectiveness: sample-weighted mean score
    - naming/vehicle frequency: sample-weighted means over the rows scoring at
      or above the segment mean
    - preferred tone: eligible tone slice with the best score x reply rate
    - content preferences: most common topics among the above-mean rows
    """
    samples = np.array([r.sampleSize for r in rows], dtype=np.float64)
    scores = np.array([r.averageScore for r in rows], dtype=np.float64)
    total = float(samples.sum())

    effectiveness = float(np.average(scores, weights=samples))
    strong = [r for r in rows if r.averageScore >= effectiveness] or list(rows)
    strong_weights = np.array([r.sampleSize for r in strong], dtype=np.float64)

    naming = float(np.average([r.averageNameMentions for r in strong], weights=strong_weights))
    vehicle = float(np.average([r.averageVehicleMentions for r in strong], weights=strong_weights))

    tones = dict(profile.toneAdjustments)
    eligible = [r for r in rows if r.sampleSize >= MIN_TONE_SAMPLES]
    if eligible:
        best = max(eligible, key=lambda r: r.averageScore * r.replyRate)
        tones['default'] = best.tone

    topics = Counter(topic for r in strong for topic in r.topTopics)
    preferences = [topic for topic, _ in topics.most_common(TOP_TOPICS)] or list(profile.contentPreferences)

    return profile.model_copy(update={
        'namingFrequency': round(min(MAX_FREQUENCY, max(0.0, naming)), 1),
        'vehicleReferenceFrequency': round(min(MAX_FREQUENCY, max(0.0, vehicle)), 1),
        'toneAdjustments': tones,
        'contentPreferences': preferences,
        'effectiveness': round(min(100.0, max(0.0, effectiveness)), 1),
        'sampleSize': int(total),
        'lastUpdated': now,
    })


class PersonalizationManager:
    """Holds one profile per segment behind a lock."""

    def __init__(self, profiles: Optional[Iterable[PersonalizationProfile]] = None, clock=None):
        self._clock = clock or _utcnow
        self._lock = threading.RLock()
        self._profiles = default_profiles(self._clock())
        for profile in profiles or []:
            self._profiles[profile.segment] = profile

    @staticmethod
    def segment_for(vehicle_interest: Optional[str]) -> LeadSegment:
        return segment_for_interest(vehicle_interest)

    def get_profile(self, segment: LeadSegment) -> PersonalizationProfile:
        with self._lock:
            return self._profiles[segment].model_copy(deep=True)

    def profile_for_interest(self, vehicle_interest: Optional[str]) -> PersonalizationProfile:
        return self.get_profile(self.segment_for(vehicle_interest))

    def all_profiles(self) -> List[PersonalizationProfile]:
        with self._lock:
            return [p.model_copy(deep=True) for p in self._profiles.values()]

    def recompute_profiles(self, rows: Sequence[SegmentPerformance]) -> List[PersonalizationProfile]:
        """
        Batch-tune profiles from aggregated performance rows.

        Segments with fewer than MIN_SEGMENT_SAMPLES total samples are left
        unchanged.

        Returns:
            List[PersonalizationProfile]: The profiles that were updated.
        """
        grouped: Dict[LeadSegment, List[SegmentPerformance]] = {}
        for row in rows:
            if row.sampleSize > 0:
                grouped.setdefault(row.segment, []).append(row)

        now = self._clock()
        updated: List[PersonalizationProfile] = []
        with self._lock:
            for segment, segment_rows in grouped.items():
                total = sum(r.sampleSize for r in segment_rows)
                if total < MIN_SEGMENT_SAMPLES:
                    logger.debug(f"Skipping {segment.value}: only {total} samples")
                    continue
                profile = tune_profile(self._profiles[segment], segment_rows, now)
                self._profiles[segment] = profile
                updated.append(profile.model_copy(deep=True))

        logger.info(f"Recomputed {len(updated)} personalization profiles from {len(rows)} rows")
        return updated


__all__ = [
    'PersonalizationManager',
    'SEGMENT_DEFAULTS',
    'default_profiles',
    'tune_profile',
]
