"""
Routing Decision Engine.

Consumes a ConversationAnalysis plus the lead's score and produces exactly
one RoutingDecision per message. Evaluation order is a deliberate tie-break
policy; the first applicable step wins:

1. Escalation check (EscalationTriggerSystem). A fired trigger returns
   human_escalation with a priority taken from the (urgency, lead tier)
   table: critical urgency or hot lead → immediate; high urgency or warm
   lead → urgent; else normal. Triggers whose action is immediate never
   route below urgent.
2. Automated action: hours, location and/or a bare acknowledgment. Every
   matching action is listed and answered in one reply. Confidence 85.
3. Template: best TemplateMatcher score strictly above the threshold (70).
4. Default ai_generated: confidence 70, +10 hot lead, +5 history > 3,
   +5 message length within [50, 300], capped at 95. Priority comes from
   the same (urgency, lead tier) table.

Besides the decision itself, this module builds what each path needs to
execute: filled templates, canned automated replies, the escalation payload
handed to a human agent, next steps and the tone/response type requested
from generation.

The only state is the decision-type tally exposed by metrics().
"""

import logging
import re
import threading
from typing import Dict, List, Optional, Sequence

from conversation_intel.core.config import Settings, get_settings
from conversation_intel.models.enums import (
    AutomatedAction,
    Intent,
    LeadPriority,
    Mood,
    ResponseTone,
    ResponseType,
    RoutingPriority,
    RoutingType,
    TriggerAction,
    TriggerType,
    Urgency,
)
from conversation_intel.models.schemas import (
    ConversationAnalysis,
    ConversationMessage,
    EscalationPayload,
    LeadContext,
    LeadScore,
    ResponseTemplate,
    RoutingDecision,
    RoutingMetrics,
)
from conversation_intel.services.catalogs import (
    ACKNOWLEDGMENT_MESSAGES,
    AUTOMATED_ACTION_RULES,
    contains_any,
)
from conversation_intel.services.escalation import EscalationTriggerSystem
from conversation_intel.services.template_matcher import TemplateMatcher


logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

AUTOMATED_ACTION_CONFIDENCE = 85.0
AUTOMATED_ACTION_REASONING = 'Simple informational request that can be handled automatically'

AI_BASE_CONFIDENCE = 70.0
AI_HOT_LEAD_BONUS = 10.0
AI_HISTORY_BONUS = 5.0
AI_LENGTH_BONUS = 5.0
AI_CONFIDENCE_CAP = 95.0
AI_HISTORY_MIN = 3
AI_LENGTH_RANGE = (50, 300)

SUMMARY_MESSAGES = 5
SUMMARY_CHARS = 100

BASE_VEHICLE_VALUE = 25000.0
VEHICLE_VALUES = (
    ('luxury', 45000.0),
    ('truck', 35000.0),
)
HOT_LEAD_VALUE_MULTIPLIER = 1.2

BASE_SUGGESTED_ACTIONS = [
    'Review conversation history',
    'Contact customer within 30 minutes',
]

NEXT_STEPS: Dict[RoutingType, List[str]] = {
    RoutingType.HUMAN_ESCALATION: [
        'Notify human agent immediately',
        'Prepare handoff documentation',
    ],
    RoutingType.AUTOMATED_ACTION: [
        'Confirm customer received the information',
        'Resume conversation when customer replies',
    ],
    RoutingType.TEMPLATE_BASED: [
        'Track template effectiveness',
        'Monitor customer reply',
    ],
    RoutingType.AI_GENERATED: [
        'Monitor response effectiveness',
        'Track conversation progression',
    ],
}

TONE_BY_MOOD: Dict[Mood, ResponseTone] = {
    Mood.EXCITED: ResponseTone.ENTHUSIASTIC,
    Mood.VERY_POSITIVE: ResponseTone.FRIENDLY,
    Mood.POSITIVE: ResponseTone.FRIENDLY,
}

RESPONSE_TYPE_BY_INTENT: Dict[Intent, ResponseType] = {
    Intent.READY_TO_BUY: ResponseType.SALES_FOCUSED,
    Intent.PRICE_FOCUSED: ResponseType.SALES_FOCUSED,
    Intent.RESEARCH: ResponseType.INFORMATIONAL,
    Intent.COMPARISON: ResponseType.INFORMATIONAL,
    Intent.UNDECIDED: ResponseType.FOLLOWUP,
}

_PLACEHOLDER_PATTERN = re.compile(r'\[([A-Z_]+)\]')


# =============================================================================
# Pure helpers
# =============================================================================

def routing_priority(
    urgency: Urgency,
    lead_tier: Optional[LeadPriority],
    trigger_action: Optional[TriggerAction] = None,
) -> RoutingPriority:
    """Two-axis priority table over (urgency, lead tier)."""
    if urgency == Urgency.CRITICAL or lead_tier == LeadPriority.HOT:
        priority = RoutingPriority.IMMEDIATE
    elif urgency == Urgency.HIGH or lead_tier == LeadPriority.WARM:
        priority = RoutingPriority.URGENT
    else:
        priority = RoutingPriority.NORMAL

    if trigger_action == TriggerAction.IMMEDIATE and priority == RoutingPriority.NORMAL:
        priority = RoutingPriority.URGENT
    return priority


def detect_automated_actions(message: str) -> List[AutomatedAction]:
    """Every deterministic match for hours, location and bare acknowledgments, in rule order."""
    text = (message or '').lower()
    actions = [action for action, phrases in AUTOMATED_ACTION_RULES if contains_any(text, phrases)]
    if text.strip().strip('.!?, ') in ACKNOWLEDGMENT_MESSAGES:
        actions.append(AutomatedAction.ACKNOWLEDGE_RESPONSE)
    return actions


def suggested_actions(analysis: ConversationAnalysis, trigger_type: Optional[TriggerType]) -> List[str]:
    actions = list(BASE_SUGGESTED_ACTIONS)
    if analysis.intent == Intent.READY_TO_BUY:
        actions.extend(['Prepare financing pre-approval', 'Check vehicle availability'])
    if trigger_type == TriggerType.COMPLAINT:
        actions.extend(['Escalate to manager', 'Document complaint details'])
    return actions


def estimate_value(vehicle_interest: Optional[str], lead_tier: Optional[LeadPriority]) -> float:
    interest = (vehicle_interest or '').lower()
    value = BASE_VEHICLE_VALUE
    for keyword, keyword_value in VEHICLE_VALUES:
        if keyword in interest:
            value = keyword_value
            break
    if lead_tier == LeadPriority.HOT:
        value *= HOT_LEAD_VALUE_MULTIPLIER
    return round(value, 2)


def summarize_conversation(history: Sequence[ConversationMessage]) -> str:
    """Last five messages, one per line, truncated to 100 characters."""
    lines = []
    for message in list(history)[-SUMMARY_MESSAGES:]:
        speaker = 'Agent' if message.isFromAgent else 'Customer'
        lines.append(f"{speaker}: {message.content[:SUMMARY_CHARS]}")
    return '\n'.join(lines)


def response_tone(mood: Mood) -> ResponseTone:
    return TONE_BY_MOOD.get(mood, ResponseTone.PROFESSIONAL)


def response_type(intent: Intent) -> ResponseType:
    return RESPONSE_TYPE_BY_INTENT.get(intent, ResponseType.INFORMATIONAL)


def next_steps(decision: RoutingDecision) -> List[str]:
    return list(NEXT_STEPS[decision.routingType])


# =============================================================================
# Response Builders
# =============================================================================

def placeholder_values(lead_context: Optional[LeadContext], settings: Settings) -> Dict[str, str]:
    lead = lead_context or LeadContext()
    return {
        'CUSTOMER_NAME': lead.firstName or 'there',
        'VEHICLE_INTEREST': lead.vehicleInterest or 'our vehicles',
        'STARTING_PRICE': settings.starting_price,
        'APR_RATE': settings.apr_rate,
        'LEASE_PAYMENT': settings.lease_payment,
        'AVAILABILITY_OPTIONS': settings.availability_options,
        'DEALERSHIP_ADDRESS': settings.dealership_address,
        'PHONE_NUMBER': settings.dealership_phone,
    }


def fill_template(
    template: ResponseTemplate,
    lead_context: Optional[LeadContext] = None,
    settings: Optional[Settings] = None,
) -> str:
    """
    Replace [PLACEHOLDER] names in template content.

    Unknown placeholders are left untouched.
    """
    values = placeholder_values(lead_context, settings or get_settings())
    return _PLACEHOLDER_PATTERN.sub(lambda m: values.get(m.group(1), m.group(0)), template.content)


def automated_response(
    actions: Sequence[AutomatedAction],
    lead_context: Optional[LeadContext] = None,
    settings: Optional[Settings] = None,
) -> str:
    """One canned reply covering every requested action, joined in order."""
    settings = settings or get_settings()
    parts = []
    for action in actions:
        if action == AutomatedAction.SEND_HOURS_INFO:
            parts.append(settings.showroom_hours)
        elif action == AutomatedAction.SEND_LOCATION_INFO:
            parts.append(
                f"We're located at {settings.dealership_address}. "
                f"Call us at {settings.dealership_phone} if you need directions!"
            )
        else:
            vehicle = (lead_context.vehicleInterest if lead_context else None) or 'our vehicles'
            parts.append(
                f"Great! I'll make note of that. Is there anything else about {vehicle} I can help you with?"
            )
    return ' '.join(parts)


def build_escalation_payload(
    decision: RoutingDecision,
    analysis: ConversationAnalysis,
    history: Sequence[ConversationMessage],
    lead_score: Optional[LeadScore] = None,
    lead_context: Optional[LeadContext] = None,
) -> EscalationPayload:
    tier = lead_score.priorityTier if lead_score else None
    return EscalationPayload(
        reason=decision.escalationReason or decision.reasoning,
        priority=decision.priority,
        conversationSummary=summarize_conversation(history),
        suggestedActions=list(decision.requiredActions or suggested_actions(analysis, decision.triggerType)),
        urgencyLevel=analysis.urgency,
        buyingSignals=list(analysis.buyingSignals),
        leadScore=lead_score.totalScore if lead_score else 0.0,
        estimatedValue=estimate_value(lead_context.vehicleInterest if lead_context else None, tier),
    )


# =============================================================================
# Decision Engine
# =============================================================================

class RoutingDecisionEngine:
    """
    Chooses the response path for each inbound message.

    Args:
        triggers: Escalation trigger system consulted first.
        matcher: Template matcher consulted third.
        template_threshold: Template score must be strictly above this.
    """

    def __init__(
        self,
        triggers: EscalationTriggerSystem,
        matcher: TemplateMatcher,
        template_threshold: float = 70.0,
    ):
        self.triggers = triggers
        self.matcher = matcher
        self.template_threshold = template_threshold
        self._lock = threading.Lock()
        self._counts: Dict[RoutingType, int] = {t: 0 for t in RoutingType}

    def decide(
        self,
        analysis: ConversationAnalysis,
        message: str,
        lead_score: Optional[LeadScore] = None,
        history_length: int = 0,
        lead_context: Optional[LeadContext] = None,
        conversation_id: Optional[str] = None,
    ) -> RoutingDecision:
        """
        Produce exactly one routing decision for a message.

        Args:
            analysis: Analysis of the message.
            message: Raw message text.
            lead_score: External lead score; None is treated as a cold lead.
            history_length: Number of prior messages in the conversation.
            lead_context: Lead fields used by template matching.
            conversation_id: Cooldown scope for escalation triggers.

        Returns:
            RoutingDecision: Always populated with reasoning and priority.
        """
        decision = (
            self._check_escalation(analysis, message, lead_score, conversation_id)
            or self._check_automated(message)
            or self._check_template(analysis, message, lead_context)
            or self._ai_generated(analysis, message, lead_score, history_length)
        )

        with self._lock:
            self._counts[decision.routingType] += 1

        logger.info(
            f"Routing decision for conversation={conversation_id or analysis.conversationId}: "
            f"{decision.routingType.value} (confidence={decision.confidence:.0f}, "
            f"priority={decision.priority.value})"
        )
        return decision

    def metrics(self) -> RoutingMetrics:
        with self._lock:
            counts = dict(self._counts)
        return RoutingMetrics(
            totalDecisions=sum(counts.values()),
            aiGenerated=counts[RoutingType.AI_GENERATED],
            templateBased=counts[RoutingType.TEMPLATE_BASED],
            humanEscalations=counts[RoutingType.HUMAN_ESCALATION],
            automatedActions=counts[RoutingType.AUTOMATED_ACTION],
        )

    # -------------------------------------------------------------------------
    # Evaluation steps
    # -------------------------------------------------------------------------

    def _check_escalation(
        self,
        analysis: ConversationAnalysis,
        message: str,
        lead_score: Optional[LeadScore],
        conversation_id: Optional[str],
    ) -> Optional[RoutingDecision]:
        evaluation = self.triggers.evaluate(message, analysis, lead_score, conversation_id)
        if not evaluation.fired or evaluation.trigger is None:
            return None

        trigger = evaluation.trigger
        tier = lead_score.priorityTier if lead_score else None
        return RoutingDecision(
            routingType=RoutingType.HUMAN_ESCALATION,
            confidence=evaluation.score,
            reasoning=evaluation.reason or 'Escalation trigger fired',
            escalationReason=evaluation.reason,
            requiredActions=suggested_actions(analysis, trigger.type),
            priority=routing_priority(analysis.urgency, tier, trigger.action),
            triggerType=trigger.type,
        )

    def _check_automated(self, message: str) -> Optional[RoutingDecision]:
        actions = detect_automated_actions(message)
        if not actions:
            return None
        return RoutingDecision(
            routingType=RoutingType.AUTOMATED_ACTION,
            confidence=AUTOMATED_ACTION_CONFIDENCE,
            reasoning=AUTOMATED_ACTION_REASONING,
            requiredActions=[action.value for action in actions],
            priority=RoutingPriority.NORMAL,
            automatedAction=actions[0],
        )

    def _check_template(
        self,
        analysis: ConversationAnalysis,
        message: str,
        lead_context: Optional[LeadContext],
    ) -> Optional[RoutingDecision]:
        match = self.matcher.best_match(message, analysis.intent, lead_context)
        if match.score <= self.template_threshold:
            return None
        return RoutingDecision(
            routingType=RoutingType.TEMPLATE_BASED,
            confidence=match.score,
            reasoning=f"High-confidence template match: {match.template.name}",
            templateId=match.template.id,
            priority=RoutingPriority.NORMAL,
        )

    def _ai_generated(
        self,
        analysis: ConversationAnalysis,
        message: str,
        lead_score: Optional[LeadScore],
        history_length: int,
    ) -> RoutingDecision:
        tier = lead_score.priorityTier if lead_score else None
        confidence = AI_BASE_CONFIDENCE
        if tier == LeadPriority.HOT:
            confidence += AI_HOT_LEAD_BONUS
        if history_length > AI_HISTORY_MIN:
            confidence += AI_HISTORY_BONUS
        low, high = AI_LENGTH_RANGE
        if low <= len(message or '') <= high:
            confidence += AI_LENGTH_BONUS

        return RoutingDecision(
            routingType=RoutingType.AI_GENERATED,
            confidence=min(AI_CONFIDENCE_CAP, confidence),
            reasoning='No escalation, automation or strong template match; generating a tailored response',
            priority=routing_priority(analysis.urgency, tier),
        )


__all__ = [
    'RoutingDecisionEngine',
    'routing_priority',
    'detect_automated_actions',
    'suggested_actions',
    'estimate_value',
    'summarize_conversation',
    'response_tone',
    'response_type',
    'next_steps',
    'fill_template',
    'automated_response',
    'build_escalation_payload',
]
