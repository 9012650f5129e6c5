"""
SQL Query Module for the Conversation Intelligence backend.

Re-exports the parameterized queries from conversation_queries so callers
import from conversation_intel.sql directly.

Example usage:
    from conversation_intel.sql import get_conversation_query
    from conversation_intel.core.database import execute_query_one

    row = await execute_query_one(get_conversation_query(), conversation_id)
"""

from conversation_intel.sql.conversation_queries import (
    get_conversation_query,
    get_messages_query,
    get_lead_query,
    get_lead_score_query,
    get_response_scores_query,
    get_segment_performance_query,
    get_segment_topics_query,
    get_profiles_query,
    get_profile_upsert_query,
    get_alert_state_query,
    get_alert_state_upsert_query,
    QUALITY_ALERT_JOB,
    ESCALATION_ALERT_JOB,
    DEFAULT_TUNING_WINDOW_DAYS,
)


__all__ = [
    'get_conversation_query',
    'get_messages_query',
    'get_lead_query',
    'get_lead_score_query',
    'get_response_scores_query',
    'get_segment_performance_query',
    'get_segment_topics_query',
    'get_profiles_query',
    'get_profile_upsert_query',
    'get_alert_state_query',
    'get_alert_state_upsert_query',
    'QUALITY_ALERT_JOB',
    'ESCALATION_ALERT_JOB',
    'DEFAULT_TUNING_WINDOW_DAYS',
]
