"""
Personalization profile tuning job.

Batch job that recomputes per-segment personalization profiles from the
effectiveness scores stored over a look-back window:

1. Aggregate response_scores per (segment, tone) since the cutoff
2. Recompute profiles with PersonalizationManager.recompute_profiles()
   (segments with too few samples keep their profile)
3. Persist the updated profiles to personalization_profiles

Profiles are loaded at API startup, so a standalone run takes effect on the
next restart; passing the running engine's optimizer updates it in place.

Usage:
    result = await run_personalization_tuning()
    result = await run_personalization_tuning(engine.optimizer, window_days=14)
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from conversation_intel.core.config import get_settings
from conversation_intel.services.quality_optimizer import ResponseQualityOptimizer
from conversation_intel.services.repository import (
    fetch_segment_performance,
    load_profiles,
    save_profiles,
)
from conversation_intel.services.personalization import PersonalizationManager
from conversation_intel.sql import DEFAULT_TUNING_WINDOW_DAYS


logger = logging.getLogger(__name__)


async def run_personalization_tuning(
    optimizer: Optional[ResponseQualityOptimizer] = None,
    window_days: int = DEFAULT_TUNING_WINDOW_DAYS,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Recompute and persist personalization profiles.

    Args:
        optimizer: Optimizer holding the profiles to tune. When omitted, one
            is built from the persisted profiles.
        window_days: Look-back window for stored scores.
        now: Reference time (defaults to current UTC time).

    Returns:
        Dict with:
        - success: True if the run completed
        - skipped: True if there was no performance data
        - segments_updated: Segment names whose profile changed
        - rows: Number of aggregated (segment, tone) rows
        - error: Error message (if failed)
    """
    now = now or datetime.now(timezone.utc)
    since = now - timedelta(days=window_days)

    try:
        if optimizer is None:
            optimizer = ResponseQualityOptimizer(
                get_settings(),
                personalization=PersonalizationManager(await load_profiles()),
            )
        rows = await fetch_segment_performance(since)
    except Exception as e:
        logger.error(f"Failed to load personalization data: {e}", exc_info=True)
        return {'success': False, 'error': f'Failed to load personalization data: {str(e)}'}

    if not rows:
        return {
            'success': True,
            'skipped': True,
            'reason': f'No scored responses since {since:%Y-%m-%d}',
        }

    updated = optimizer.recompute_profiles(rows)

    try:
        await save_profiles(updated)
    except Exception as e:
        logger.error(f"Failed to persist personalization profiles: {e}", exc_info=True)
        return {'success': False, 'error': f'Failed to persist profiles: {str(e)}'}

    return {
        'success': True,
        'segments_updated': [p.segment.value for p in updated],
        'rows': len(rows),
    }
