"""
Persistence and lead-scoring collaborators.

The engine reads conversations, messages and leads but never writes them;
the platform owns those tables. Two protocols describe what the engine
needs, so tests and alternative stores can supply their own:

- ConversationRepository: get_conversation, get_messages, get_lead
- LeadScorer: score(lead_id) -> LeadScore or None

The asyncpg implementations go through the helpers in core/database.py and
the queries in sql/conversation_queries.py.

Module-level functions load stored effectiveness scores, segment aggregates
and personalization profiles for the batch jobs.
"""

import json
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol

from conversation_intel.core.database import execute_many, execute_query, execute_query_one
from conversation_intel.models.enums import LeadPriority, LeadSegment, ResponseTone
from conversation_intel.models.schemas import (
    BenchmarkComparison,
    ConversationMessage,
    ConversationRecord,
    LeadRecord,
    LeadScore,
    PersonalizationProfile,
    ResponseDimensions,
    ResponseEffectivenessScore,
    ResponseImpact,
    SegmentPerformance,
)
from conversation_intel.services.effectiveness import relative_performance
from conversation_intel.sql import (
    get_conversation_query,
    get_lead_query,
    get_lead_score_query,
    get_messages_query,
    get_profile_upsert_query,
    get_profiles_query,
    get_response_scores_query,
    get_segment_performance_query,
    get_segment_topics_query,
)


logger = logging.getLogger(__name__)


# Most recent messages loaded per conversation
MESSAGE_HISTORY_LIMIT = 50
TOP_TOPICS_PER_SLICE = 5


# =============================================================================
# Protocols
# =============================================================================

class ConversationRepository(Protocol):
    """Read-only access to conversations, messages and leads."""

    async def get_conversation(self, conversation_id: str) -> Optional[ConversationRecord]:
        ...

    async def get_messages(self, conversation_id: str) -> List[ConversationMessage]:
        ...

    async def get_lead(self, lead_id: str) -> Optional[LeadRecord]:
        ...


class LeadScorer(Protocol):
    """External lead scoring; an advisory input to routing."""

    async def score(self, lead_id: str) -> Optional[LeadScore]:
        ...


# =============================================================================
# asyncpg implementations
# =============================================================================

class PostgresConversationRepository:
    """ConversationRepository backed by the shared asyncpg pool."""

    def __init__(self, history_limit: int = MESSAGE_HISTORY_LIMIT):
        self.history_limit = history_limit

    async def get_conversation(self, conversation_id: str) -> Optional[ConversationRecord]:
        row = await execute_query_one(get_conversation_query(), conversation_id)
        if row is None:
            return None
        return ConversationRecord(
            id=str(row['id']),
            status=row['status'] or 'active',
            leadId=str(row['lead_id']),
            lastActivityAt=row['last_activity_at'],
        )

    async def get_messages(self, conversation_id: str) -> List[ConversationMessage]:
        rows = await execute_query(get_messages_query(), conversation_id, self.history_limit)
        return [
            ConversationMessage(
                content=row['content'] or '',
                isFromAgent=bool(row['is_from_agent']),
                timestamp=row['created_at'],
            )
            for row in rows
        ]

    async def get_lead(self, lead_id: str) -> Optional[LeadRecord]:
        row = await execute_query_one(get_lead_query(), lead_id)
        if row is None:
            return None
        return LeadRecord(
            id=str(row['id']),
            firstName=row['first_name'],
            lastName=row['last_name'],
            vehicleInterest=row['vehicle_interest'],
            source=row['source'],
        )


class PostgresLeadScorer:
    """LeadScorer reading the most recent row of lead_scores."""

    async def score(self, lead_id: str) -> Optional[LeadScore]:
        row = await execute_query_one(get_lead_score_query(), lead_id)
        if row is None:
            return None
        tier = row['priority_tier']
        return LeadScore(
            totalScore=float(row['total_score'] or 0),
            priorityTier=LeadPriority(tier) if tier else LeadPriority.COLD,
        )


# =============================================================================
# Batch job data access
# =============================================================================

def _json_value(value: Any) -> Dict[str, Any]:
    """asyncpg returns jsonb as text unless a codec is registered."""
    if value is None:
        return {}
    if isinstance(value, (bytes, str)):
        return json.loads(value)
    return dict(value)


async def fetch_response_scores(
    start: datetime,
    end: datetime,
    industry_average: float = 72.0,
    top_performer: float = 88.0,
) -> List[ResponseEffectivenessScore]:
    """Stored effectiveness scores with scored_at in [start, end)."""
    rows = await execute_query(get_response_scores_query(), start, end)
    scores = []
    for row in rows:
        overall = float(row['overall_score'])
        scores.append(ResponseEffectivenessScore(
            responseId=str(row['response_id']),
            conversationId=str(row['conversation_id']) if row['conversation_id'] else None,
            overallScore=overall,
            dimensions=ResponseDimensions(**_json_value(row['dimensions'])),
            impact=ResponseImpact(**_json_value(row['impact'])),
            benchmarkComparison=BenchmarkComparison(
                industryAverage=industry_average,
                topPerformer=top_performer,
                relativePerformance=relative_performance(overall, industry_average, top_performer),
            ),
            segment=LeadSegment(row['segment']) if row['segment'] else None,
            scoredAt=row['scored_at'],
        ))
    return scores


async def fetch_segment_performance(since: datetime) -> List[SegmentPerformance]:
    """Aggregated (segment, tone) rows for personalization tuning."""
    rows = await execute_query(get_segment_performance_query(), since)
    topic_rows = await execute_query(get_segment_topics_query(), since)

    topics: Dict[tuple, List[str]] = {}
    for row in topic_rows:
        key = (row['segment'], row['tone'])
        bucket = topics.setdefault(key, [])
        if len(bucket) < TOP_TOPICS_PER_SLICE:
            bucket.append(row['topic'])

    performance = []
    for row in rows:
        tone = row['tone']
        performance.append(SegmentPerformance(
            segment=LeadSegment(row['segment']),
            tone=ResponseTone(tone) if tone else ResponseTone.PROFESSIONAL,
            sampleSize=int(row['sample_size']),
            averageScore=float(row['average_score'] or 0),
            replyRate=float(row['reply_rate'] or 0),
            averageNameMentions=float(row['average_name_mentions'] or 0),
            averageVehicleMentions=float(row['average_vehicle_mentions'] or 0),
            topTopics=topics.get((row['segment'], tone), []),
        ))
    return performance


async def load_profiles() -> List[PersonalizationProfile]:
    """Persisted personalization profiles; rows that fail validation are skipped."""
    rows = await execute_query(get_profiles_query())
    profiles = []
    for row in rows:
        try:
            profiles.append(PersonalizationProfile(**_json_value(row['profile'])))
        except (ValueError, TypeError) as e:
            logger.warning(f"Skipping stored profile for segment={row['segment']}: {e}")
    return profiles


async def save_profiles(profiles: List[PersonalizationProfile]) -> None:
    if not profiles:
        return
    await execute_many(
        get_profile_upsert_query(),
        [(p.segment.value, p.model_dump_json(), p.lastUpdated) for p in profiles],
    )
    logger.info(f"Persisted {len(profiles)} personalization profiles")


__all__ = [
    'ConversationRepository',
    'LeadScorer',
    'PostgresConversationRepository',
    'PostgresLeadScorer',
    'fetch_response_scores',
    'fetch_segment_performance',
    'load_profiles',
    'save_profiles',
]
