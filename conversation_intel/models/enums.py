"""
Enumeration definitions for the Conversation Intelligence backend.

This module provides the narrow classification vocabulary used throughout the
engine: conversation mood, urgency and intent; buying-signal categories;
escalation triggers; routing outcomes; A/B testing states; and quality
monitoring buckets.

All enums inherit from both `str` and `Enum` to ensure JSON serialization
compatibility with Pydantic models, enabling automatic serialization in API
responses.
"""

from enum import Enum


# =============================================================================
# Conversation Analysis
# =============================================================================


class Mood(str, Enum):
    """
    Customer mood detected from customer-authored text.

    Classification priority: excited > frustrated > negative > positive > neutral.
    VERY_POSITIVE is a strengthened positive (several positive hits, no negatives).
    """
    VERY_POSITIVE = "very_positive"
    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"
    FRUSTRATED = "frustrated"
    EXCITED = "excited"


class Urgency(str, Enum):
    """
    Purchase timeline urgency tier.

    Tiers are matched in order critical → high → medium → low; default medium.
    """
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class Intent(str, Enum):
    """
    Purchase intent.

    Matched in order ready_to_buy > price_focused > comparison > research >
    undecided; default research.
    """
    RESEARCH = "research"
    COMPARISON = "comparison"
    READY_TO_BUY = "ready_to_buy"
    PRICE_FOCUSED = "price_focused"
    UNDECIDED = "undecided"


class RecommendedAction(str, Enum):
    """Next move recommended by the analyzer's decision table."""
    CONTINUE = "continue"
    SCHEDULE_CALL = "schedule_call"
    SEND_OFFER = "send_offer"
    URGENT_FOLLOWUP = "urgent_followup"
    ESCALATE = "escalate"


class ConversationStage(str, Enum):
    """Position of a conversation in the sales flow."""
    INTRODUCTION = "introduction"
    INFORMATION_GATHERING = "information_gathering"
    NEEDS_ASSESSMENT = "needs_assessment"
    PRESENTATION = "presentation"
    OBJECTION_HANDLING = "objection_handling"
    CLOSING = "closing"
    POST_SALE = "post_sale"


class SignalCategory(str, Enum):
    """Buying-signal category."""
    URGENCY = "urgency"
    FINANCIAL = "financial"
    DECISION = "decision"
    TIMELINE = "timeline"


class SignalStrength(str, Enum):
    """
    Buying-signal strength group.

    Only STRONG signals in the escalation subset force an escalate
    recommendation.
    """
    STRONG = "strong"
    MEDIUM = "medium"
    WEAK = "weak"


# =============================================================================
# Leads
# =============================================================================


class LeadPriority(str, Enum):
    """Coarse lead priority tier produced by the external lead scorer."""
    HOT = "hot"
    WARM = "warm"
    COLD = "cold"


class LeadSegment(str, Enum):
    """Personalization segment derived from vehicle-interest keywords."""
    LUXURY = "luxury"
    COMMERCIAL = "commercial"
    FIRST_TIME_BUYER = "first_time_buyer"
    FAMILY = "family"
    PERFORMANCE = "performance"


# =============================================================================
# Escalation
# =============================================================================


class TriggerType(str, Enum):
    """Escalation trigger types."""
    BUYING_SIGNAL = "buying_signal"
    COMPLAINT = "complaint"
    COMPLEX_REQUEST = "complex_request"
    HIGH_VALUE = "high_value"
    URGENT_TIMELINE = "urgent_timeline"
    COMPETITOR_MENTION = "competitor_mention"


class TriggerAction(str, Enum):
    """
    How quickly an escalation must be picked up.

    - immediate: page a human now
    - scheduled: contact within the working window
    - queue: place in the agent work queue
    """
    IMMEDIATE = "immediate"
    SCHEDULED = "scheduled"
    QUEUE = "queue"


# =============================================================================
# Routing
# =============================================================================


class RoutingType(str, Enum):
    """Chosen response path for one inbound message."""
    AI_GENERATED = "ai_generated"
    TEMPLATE_BASED = "template_based"
    HUMAN_ESCALATION = "human_escalation"
    AUTOMATED_ACTION = "automated_action"


class RoutingPriority(str, Enum):
    """Handling priority attached to a routing decision."""
    IMMEDIATE = "immediate"
    URGENT = "urgent"
    NORMAL = "normal"
    LOW = "low"


class AutomatedAction(str, Enum):
    """Deterministic actions handled without generation."""
    SEND_HOURS_INFO = "send_hours_info"
    SEND_LOCATION_INFO = "send_location_info"
    ACKNOWLEDGE_RESPONSE = "acknowledge_response"


class TemplateCategory(str, Enum):
    """Response template categories."""
    GREETING = "greeting"
    INFORMATION = "information"
    PRICING = "pricing"
    SCHEDULING = "scheduling"
    FOLLOWUP = "followup"
    OBJECTION_HANDLING = "objection_handling"


class ResponseTone(str, Enum):
    """Tone requested from the generation service."""
    PROFESSIONAL = "professional"
    FRIENDLY = "friendly"
    ENTHUSIASTIC = "enthusiastic"
    CASUAL = "casual"
    URGENT = "urgent"


class ResponseType(str, Enum):
    """Response purpose derived from intent."""
    SALES_FOCUSED = "sales_focused"
    INFORMATIONAL = "informational"
    FOLLOWUP = "followup"


# =============================================================================
# A/B Testing
# =============================================================================


class ABTestStatus(str, Enum):
    """
    A/B test lifecycle state.

    draft → active ⇄ paused → completed. Completed tests never restart.
    """
    DRAFT = "draft"
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"


class StrategyType(str, Enum):
    """Response strategy used by an A/B variant."""
    AI_GENERATED = "ai_generated"
    TEMPLATE_BASED = "template_based"
    HYBRID = "hybrid"


class PersonalizationLevel(str, Enum):
    """How heavily a response references customer details."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ResponseLength(str, Enum):
    """Target response length bucket."""
    BRIEF = "brief"
    MODERATE = "moderate"
    DETAILED = "detailed"


# =============================================================================
# Quality Scoring and Monitoring
# =============================================================================


class RelativePerformance(str, Enum):
    """
    Benchmark bucket for an effectiveness score.

    - top_tier: ≥ top performer (88)
    - above_average: ≥ industry average + 5
    - average: ≥ industry average - 5
    - below_average: everything else
    """
    TOP_TIER = "top_tier"
    ABOVE_AVERAGE = "above_average"
    AVERAGE = "average"
    BELOW_AVERAGE = "below_average"


class OptimizationType(str, Enum):
    """Area targeted by an optimization recommendation."""
    RESPONSE_TONE = "response_tone"
    PERSONALIZATION = "personalization"
    CONTENT_STRUCTURE = "content_structure"
    TIMING = "timing"
    ESCALATION_THRESHOLD = "escalation_threshold"


class RecommendationPriority(str, Enum):
    """Priority of an optimization recommendation."""
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class AlertSeverity(str, Enum):
    """Severity level for quality alerts."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class QualityAlertType(str, Enum):
    """Kind of quality alert raised by monitoring."""
    QUALITY_DECLINE = "quality_decline"
    PERFORMANCE_SPIKE = "performance_spike"
    ANOMALY_DETECTED = "anomaly_detected"


class QualityTrendDirection(str, Enum):
    """Direction of average quality between two monitoring windows."""
    IMPROVING = "improving"
    DECLINING = "declining"
    STABLE = "stable"
