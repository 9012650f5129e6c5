"""
Conversation Queries Module for the Conversation Intelligence backend.

Provides parameterized PostgreSQL queries for:
- Conversation, message and lead lookups (read-only; the platform owns these)
- The latest lead score per lead
- Stored response effectiveness scores for the monitoring window
- Segment performance aggregates for personalization tuning
- Persisted personalization profiles
- Alert notification state for the Slack alert job

All queries use $n placeholders; values are always passed separately to
asyncpg, never interpolated.

Expected tables:
    conversations            (id, status, lead_id, last_activity_at)
    conversation_messages    (conversation_id, content, is_from_agent, created_at)
    leads                    (id, first_name, last_name, vehicle_interest, source)
    lead_scores              (lead_id, total_score, priority_tier, scored_at)
    response_scores          (response_id, conversation_id, overall_score,
                              dimensions jsonb, impact jsonb, segment, tone,
                              name_mentions, vehicle_mentions, topics text[],
                              scored_at)
    personalization_profiles (segment, profile jsonb, updated_at)
    job_alert_state          (job_type, alert_key, last_sent_at, send_count)
"""


# =============================================================================
# CONSTANTS
# =============================================================================

# Job type recorded in job_alert_state by the quality alert job
QUALITY_ALERT_JOB = 'quality_alerts'
ESCALATION_ALERT_JOB = 'escalation_alerts'

# Default look-back for segment performance aggregation
DEFAULT_TUNING_WINDOW_DAYS: int = 30


# =============================================================================
# CONVERSATION LOOKUPS
# =============================================================================

def get_conversation_query() -> str:
    """Conversation header by id. Params: $1 conversation_id."""
    return """
    SELECT id, status, lead_id, last_activity_at
    FROM conversations
    WHERE id = $1
    """


def get_messages_query() -> str:
    """
    Messages of a conversation in arrival order.

    Params: $1 conversation_id, $2 limit.
    """
    return """
    SELECT content, is_from_agent, created_at
    FROM (
        SELECT content, is_from_agent, created_at
        FROM conversation_messages
        WHERE conversation_id = $1
        ORDER BY created_at DESC
        LIMIT $2
    ) recent
    ORDER BY created_at ASC
    """


def get_lead_query() -> str:
    """Lead by id. Params: $1 lead_id."""
    return """
    SELECT id, first_name, last_name, vehicle_interest, source
    FROM leads
    WHERE id = $1
    """


def get_lead_score_query() -> str:
    """Most recent lead score. Params: $1 lead_id."""
    return """
    SELECT total_score, priority_tier
    FROM lead_scores
    WHERE lead_id = $1
    ORDER BY scored_at DESC
    LIMIT 1
    """


# =============================================================================
# RESPONSE SCORES
# =============================================================================

def get_response_scores_query() -> str:
    """
    Stored effectiveness scores within a time window.

    Params: $1 window start (inclusive), $2 window end (exclusive).
    """
    return """
    SELECT
        response_id,
        conversation_id,
        overall_score,
        dimensions,
        impact,
        segment,
        scored_at
    FROM response_scores
    WHERE scored_at >= $1
      AND scored_at < $2
    ORDER BY scored_at ASC
    """


def get_segment_performance_query() -> str:
    """
    Aggregate stored scores per (segment, tone) since a cutoff.

    Params: $1 cutoff timestamp.
    """
    return """
    SELECT
        segment,
        tone,
        COUNT(*) AS sample_size,
        AVG(overall_score) AS average_score,
        AVG(CASE WHEN (impact->>'customerReplied')::boolean THEN 1.0 ELSE 0.0 END) AS reply_rate,
        AVG(COALESCE(name_mentions, 0)) AS average_name_mentions,
        AVG(COALESCE(vehicle_mentions, 0)) AS average_vehicle_mentions
    FROM response_scores
    WHERE scored_at >= $1
      AND segment IS NOT NULL
    GROUP BY segment, tone
    ORDER BY segment, tone
    """


def get_segment_topics_query() -> str:
    """
    Topic frequency per (segment, tone) among above-average responses.

    Params: $1 cutoff timestamp.
    """
    return """
    WITH scored AS (
        SELECT segment, tone, topics, overall_score,
               AVG(overall_score) OVER (PARTITION BY segment) AS segment_average
        FROM response_scores
        WHERE scored_at >= $1
          AND segment IS NOT NULL
    )
    SELECT segment, tone, topic, COUNT(*) AS mentions
    FROM scored, UNNEST(topics) AS topic
    WHERE overall_score >= segment_average
    GROUP BY segment, tone, topic
    ORDER BY segment, tone, mentions DESC
    """


# =============================================================================
# PERSONALIZATION PROFILES
# =============================================================================

def get_profiles_query() -> str:
    return """
    SELECT segment, profile
    FROM personalization_profiles
    """


def get_profile_upsert_query() -> str:
    """Params: $1 segment, $2 profile json, $3 updated_at."""
    return """
    INSERT INTO personalization_profiles (segment, profile, updated_at)
    VALUES ($1, $2::jsonb, $3)
    ON CONFLICT (segment)
    DO UPDATE SET
        profile = EXCLUDED.profile,
        updated_at = EXCLUDED.updated_at
    """


# =============================================================================
# ALERT STATE
# =============================================================================

def get_alert_state_query() -> str:
    """Last send of an alert key. Params: $1 job_type, $2 alert_key."""
    return """
    SELECT last_sent_at, send_count
    FROM job_alert_state
    WHERE job_type = $1
      AND alert_key = $2
    """


def get_alert_state_upsert_query() -> str:
    """Params: $1 job_type, $2 alert_key, $3 sent_at."""
    return """
    INSERT INTO job_alert_state (job_type, alert_key, last_sent_at, send_count)
    VALUES ($1, $2, $3, 1)
    ON CONFLICT (job_type, alert_key)
    DO UPDATE SET
        last_sent_at = EXCLUDED.last_sent_at,
        send_count = job_alert_state.send_count + 1
    """
