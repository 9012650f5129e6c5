"""
Signal Catalogs: static rule tables for conversation analysis and routing.

Every heuristic the engine applies is expressed here as an ordered,
declarative table of (outcome, phrases) so the tie-break order is explicit
and can be tested on its own. The services import these tables and the small
lookup helpers at the bottom of the module; nothing in this module holds
state.

Tables:
- BUYING_SIGNALS: weighted purchase-intent phrases, in detection order
- ESCALATION_SIGNAL_PHRASES: strong subset that forces an escalate recommendation
- MOOD_RULES / URGENCY_RULES / INTENT_RULES: ordered term tiers, first match wins
- RISK_PHRASES: disengagement and objection phrases
- ESCALATION_TRIGGERS: trigger definitions in priority-descending order
- TRIGGER_PHRASES: keyword sets used by the per-type trigger tests
- AUTOMATED_ACTION_RULES: deterministic informational requests
- CATEGORY_RELEVANCE: template category x intent relevance (0-35)
- default_templates(): fresh copy of the response template catalog
- SEGMENT_RULES: vehicle-interest keywords → personalization segment

Matching is plain lower-case substring containment; callers lower-case the
text once before calling the helpers.
"""

from typing import Dict, Iterable, List, Optional, Sequence, Tuple, TypeVar

from conversation_intel.models.enums import (
    AutomatedAction,
    Intent,
    LeadSegment,
    Mood,
    SignalCategory,
    SignalStrength,
    TemplateCategory,
    TriggerAction,
    TriggerType,
    Urgency,
)
from conversation_intel.models.schemas import (
    BuyingSignal,
    EscalationTrigger,
    ResponseTemplate,
)


T = TypeVar('T')


# =============================================================================
# Buying Signals
# =============================================================================

BUYING_SIGNALS: Tuple[BuyingSignal, ...] = (
    # Strong: customer is prepared to transact
    BuyingSignal(phrase='ready to buy', weight=10, category=SignalCategory.DECISION,
                 description='Customer states they are ready to purchase',
                 strength=SignalStrength.STRONG,
                 aliases=('ready to purchase',)),
    BuyingSignal(phrase='sign today', weight=10, category=SignalCategory.DECISION,
                 description='Customer wants to complete paperwork now',
                 strength=SignalStrength.STRONG,
                 aliases=('sign the paperwork', 'sign paperwork', 'sign the papers')),
    BuyingSignal(phrase='cash buyer', weight=9, category=SignalCategory.FINANCIAL,
                 description='Customer will pay in cash',
                 strength=SignalStrength.STRONG,
                 aliases=('paying cash', 'pay cash', 'pay in cash')),
    BuyingSignal(phrase='pre-approved', weight=9, category=SignalCategory.FINANCIAL,
                 description='Customer already has financing approval',
                 strength=SignalStrength.STRONG,
                 aliases=('preapproved', 'pre approved')),
    BuyingSignal(phrase='make a deal', weight=9, category=SignalCategory.DECISION,
                 description='Customer wants to negotiate a purchase',
                 strength=SignalStrength.STRONG),
    BuyingSignal(phrase='best price', weight=8, category=SignalCategory.FINANCIAL,
                 description='Customer is asking for a final number',
                 strength=SignalStrength.STRONG,
                 aliases=('lowest price', 'out the door')),
    BuyingSignal(phrase='down payment ready', weight=8, category=SignalCategory.FINANCIAL,
                 description='Customer has the down payment available',
                 strength=SignalStrength.STRONG,
                 aliases=('have the down payment',)),
    BuyingSignal(phrase='coming in today', weight=8, category=SignalCategory.TIMELINE,
                 description='Customer plans a same-day visit',
                 strength=SignalStrength.STRONG,
                 aliases=('come in today', 'stop by today')),
    BuyingSignal(phrase='available this weekend', weight=7, category=SignalCategory.TIMELINE,
                 description='Customer is free to visit this weekend',
                 strength=SignalStrength.STRONG,
                 aliases=('come in this weekend',)),
    # Medium: active evaluation of a purchase
    BuyingSignal(phrase='monthly payment', weight=6, category=SignalCategory.FINANCIAL,
                 description='Customer is working out affordability',
                 aliases=('payment options',)),
    BuyingSignal(phrase='trade-in', weight=6, category=SignalCategory.FINANCIAL,
                 description='Customer has a vehicle to trade',
                 aliases=('trade in', 'my trade')),
    BuyingSignal(phrase='financing terms', weight=5, category=SignalCategory.FINANCIAL,
                 description='Customer is comparing loan terms',
                 aliases=('financing options', 'interest rate')),
    BuyingSignal(phrase='test drive', weight=6, category=SignalCategory.DECISION,
                 description='Customer wants to drive the vehicle'),
    BuyingSignal(phrase='see in person', weight=5, category=SignalCategory.DECISION,
                 description='Customer wants to inspect the vehicle',
                 aliases=('see it in person', 'look at it in person')),
    BuyingSignal(phrase='this week', weight=5, category=SignalCategory.URGENCY,
                 description='Customer has a near-term timeline'),
    BuyingSignal(phrase='still available', weight=4, category=SignalCategory.URGENCY,
                 description='Customer is checking inventory',
                 aliases=('in stock',)),
    # Weak: early interest
    BuyingSignal(phrase='more information', weight=2, category=SignalCategory.DECISION,
                 description='Customer asks for general details',
                 strength=SignalStrength.WEAK,
                 aliases=('more info', 'send me details')),
    BuyingSignal(phrase='what colors', weight=2, category=SignalCategory.DECISION,
                 description='Customer asks about configuration',
                 strength=SignalStrength.WEAK,
                 aliases=('which colors', 'color options')),
)

# Strong subset that forces an escalate recommendation in the analyzer
ESCALATION_SIGNAL_PHRASES: Tuple[str, ...] = (
    'ready to buy',
    'sign today',
    'cash buyer',
    'pre-approved',
)


# =============================================================================
# Mood, Urgency and Intent Tiers (ordered; first non-empty bucket wins)
# =============================================================================

MOOD_RULES: Tuple[Tuple[Mood, Tuple[str, ...]], ...] = (
    (Mood.EXCITED, (
        'love this car', 'love it', 'perfect for us', 'exactly what i wanted',
        'so excited', "can't wait", 'cant wait', 'dream car', 'amazing',
    )),
    (Mood.FRUSTRATED, (
        'confusing process', 'confusing', 'no one called back', 'nobody called',
        'wasting time', 'waste of time', 'frustrated', 'ridiculous', 'still waiting',
    )),
    (Mood.NEGATIVE, (
        'too expensive', 'not what i expected', 'disappointed', 'not interested',
        'unhappy', 'terrible', 'awful', 'bad experience',
    )),
    (Mood.POSITIVE, (
        'looks good', 'interested', 'tell me more', 'great', 'thanks',
        'thank you', 'sounds good', 'nice', 'like the',
    )),
)

# Positive hits needed (with no negative hits) to upgrade positive → very_positive
VERY_POSITIVE_MIN_HITS = 3

URGENCY_RULES: Tuple[Tuple[Urgency, Tuple[str, ...]], ...] = (
    (Urgency.CRITICAL, (
        'need immediately', 'immediately', 'car broke down', 'broke down',
        'emergency', 'asap', 'urgent', 'right now',
    )),
    (Urgency.HIGH, (
        'today', 'tonight', 'tomorrow', 'this week', 'before weekend',
        'this weekend', 'lease expires', 'soon',
    )),
    (Urgency.MEDIUM, (
        'next month', 'by spring', 'by summer', 'when convenient',
        'next few weeks', 'few weeks',
    )),
    (Urgency.LOW, (
        'eventually', 'just looking', 'no timeline', 'no rush', 'someday', 'next year',
    )),
)

INTENT_RULES: Tuple[Tuple[Intent, Tuple[str, ...]], ...] = (
    (Intent.READY_TO_BUY, (
        'ready to buy', 'ready to purchase', 'sign today', 'sign the paperwork',
        'make a deal', 'cash buyer', 'pre-approved', 'buy today', 'want to buy',
        "i'll take it",
    )),
    (Intent.PRICE_FOCUSED, (
        'best price', 'price', 'cost', 'how much', 'discount', 'payment',
        'cheaper', 'budget', 'afford',
    )),
    (Intent.COMPARISON, (
        'compare', 'comparison', 'versus', ' vs ', 'other dealer',
        'difference between', 'better than',
    )),
    (Intent.RESEARCH, (
        'information', 'details', 'features', 'specs', 'tell me about',
        'learn more', 'mpg', 'options',
    )),
    (Intent.UNDECIDED, (
        'not sure', 'undecided', 'thinking about', 'maybe', 'still deciding',
        'on the fence',
    )),
)


# =============================================================================
# Risk Factors
# =============================================================================

RISK_PHRASES: Tuple[str, ...] = (
    # Price objections
    'too expensive', 'over budget', 'out of my budget', 'better offer',
    # Comparison shopping
    'other dealer', 'shopping around', 'found a better',
    # Disengagement
    'not interested', 'maybe later', 'just looking', 'not ready',
    'need to think', 'stop texting', 'unsubscribe', 'no longer',
)


# =============================================================================
# Escalation Triggers (priority-descending)
# =============================================================================

ESCALATION_TRIGGERS: Tuple[EscalationTrigger, ...] = (
    EscalationTrigger(type=TriggerType.BUYING_SIGNAL, threshold=80,
                      action=TriggerAction.IMMEDIATE, notificationRequired=True, priority=10),
    EscalationTrigger(type=TriggerType.COMPLAINT, threshold=75,
                      action=TriggerAction.IMMEDIATE, notificationRequired=True, priority=9),
    EscalationTrigger(type=TriggerType.HIGH_VALUE, threshold=85,
                      action=TriggerAction.IMMEDIATE, notificationRequired=True, priority=8),
    EscalationTrigger(type=TriggerType.URGENT_TIMELINE, threshold=70,
                      action=TriggerAction.SCHEDULED, notificationRequired=True, priority=7),
    EscalationTrigger(type=TriggerType.COMPETITOR_MENTION, threshold=60,
                      action=TriggerAction.SCHEDULED, notificationRequired=False, priority=6),
    EscalationTrigger(type=TriggerType.COMPLEX_REQUEST, threshold=65,
                      action=TriggerAction.QUEUE, notificationRequired=False, priority=5),
)

TRIGGER_PHRASES: Dict[TriggerType, Tuple[str, ...]] = {
    TriggerType.BUYING_SIGNAL: (
        'ready to buy', 'sign today', 'cash buyer', 'pre-approved', 'make a deal',
    ),
    TriggerType.COMPLAINT: (
        'complaint', 'unhappy', 'disappointed', 'terrible', 'awful', 'manager',
    ),
    TriggerType.URGENT_TIMELINE: (
        'today', 'asap', 'urgent', 'immediately', 'this week',
    ),
    TriggerType.COMPETITOR_MENTION: (
        'toyota', 'honda', 'ford', 'chevy', 'nissan', 'other dealer',
    ),
}

# Fixed binary score returned when a trigger's condition holds
TRIGGER_SCORES: Dict[TriggerType, float] = {
    TriggerType.BUYING_SIGNAL: 95.0,
    TriggerType.COMPLAINT: 90.0,
    TriggerType.HIGH_VALUE: 85.0,
    TriggerType.URGENT_TIMELINE: 80.0,
    TriggerType.COMPLEX_REQUEST: 75.0,
    TriggerType.COMPETITOR_MENTION: 70.0,
}

COMPLEX_REQUEST_MIN_LENGTH = 300
COMPLEX_REQUEST_MIN_QUESTIONS = 3
HIGH_VALUE_MIN_LEAD_SCORE = 80.0


# =============================================================================
# Automated Actions
# =============================================================================

AUTOMATED_ACTION_RULES: Tuple[Tuple[AutomatedAction, Tuple[str, ...]], ...] = (
    (AutomatedAction.SEND_HOURS_INFO, ('hours', 'open')),
    (AutomatedAction.SEND_LOCATION_INFO, ('location', 'address', 'directions')),
)

# Whole-message acknowledgments (after stripping punctuation)
ACKNOWLEDGMENT_MESSAGES: Tuple[str, ...] = ('yes', 'no', 'ok', 'okay', 'sure', 'sounds good')


# =============================================================================
# Templates
# =============================================================================

CATEGORY_RELEVANCE: Dict[TemplateCategory, Dict[Intent, float]] = {
    TemplateCategory.GREETING: {
        Intent.RESEARCH: 15, Intent.COMPARISON: 10, Intent.READY_TO_BUY: 5,
    },
    TemplateCategory.INFORMATION: {
        Intent.RESEARCH: 30, Intent.COMPARISON: 25, Intent.UNDECIDED: 20,
    },
    TemplateCategory.PRICING: {
        Intent.PRICE_FOCUSED: 35, Intent.COMPARISON: 30, Intent.READY_TO_BUY: 25,
    },
    TemplateCategory.SCHEDULING: {
        Intent.READY_TO_BUY: 35, Intent.RESEARCH: 15, Intent.COMPARISON: 20,
    },
    TemplateCategory.FOLLOWUP: {
        Intent.RESEARCH: 20, Intent.UNDECIDED: 25, Intent.COMPARISON: 15,
    },
    TemplateCategory.OBJECTION_HANDLING: {
        Intent.PRICE_FOCUSED: 30, Intent.COMPARISON: 35, Intent.UNDECIDED: 25,
    },
}
DEFAULT_CATEGORY_RELEVANCE = 10.0

# Focus tag that matches any stated vehicle interest
FOCUS_ALL = 'all'

DEFAULT_TEMPLATE_ID = 'default'

_TEMPLATE_DEFINITIONS: Tuple[dict, ...] = (
    dict(
        id='greeting_new_lead',
        name='New Lead Greeting',
        category=TemplateCategory.GREETING,
        content=(
            "Hi [CUSTOMER_NAME]! Thanks for reaching out about [VEHICLE_INTEREST]. "
            "I'd be glad to help you find the right fit. What matters most to you "
            "in your next vehicle?"
        ),
        placeholders=['CUSTOMER_NAME', 'VEHICLE_INTEREST'],
        useConditions=['first message', 'introduction', 'hello'],
        automotiveFocus=[FOCUS_ALL],
        effectiveness=85,
    ),
    dict(
        id='pricing_info',
        name='Pricing Information',
        category=TemplateCategory.PRICING,
        content=(
            "Great question, [CUSTOMER_NAME]. [VEHICLE_INTEREST] starts at "
            "[STARTING_PRICE], and we have current incentives that can bring that "
            "down. Would you like me to put together a personalized quote?"
        ),
        placeholders=['CUSTOMER_NAME', 'VEHICLE_INTEREST', 'STARTING_PRICE'],
        useConditions=['price', 'cost', 'how much'],
        automotiveFocus=['sedan', 'suv', 'truck'],
        effectiveness=80,
    ),
    dict(
        id='test_drive_scheduling',
        name='Test Drive Scheduling',
        category=TemplateCategory.SCHEDULING,
        content=(
            "I'd love to get you behind the wheel of [VEHICLE_INTEREST], "
            "[CUSTOMER_NAME]! We have openings [AVAILABILITY_OPTIONS]. Which works "
            "best for you?"
        ),
        placeholders=['CUSTOMER_NAME', 'VEHICLE_INTEREST', 'AVAILABILITY_OPTIONS'],
        useConditions=['test drive', 'schedule', 'appointment'],
        automotiveFocus=[FOCUS_ALL],
        effectiveness=90,
    ),
    dict(
        id='financing_options',
        name='Financing Options',
        category=TemplateCategory.INFORMATION,
        content=(
            "We offer flexible financing on [VEHICLE_INTEREST], [CUSTOMER_NAME], "
            "with rates from [APR_RATE]% APR for qualified buyers and lease options "
            "from [LEASE_PAYMENT]/month. Want me to run a quick estimate?"
        ),
        placeholders=['CUSTOMER_NAME', 'VEHICLE_INTEREST', 'APR_RATE', 'LEASE_PAYMENT'],
        useConditions=['financing', 'loan', 'payment', 'lease'],
        automotiveFocus=[FOCUS_ALL],
        effectiveness=88,
    ),
    dict(
        id='vehicle_features',
        name='Vehicle Features',
        category=TemplateCategory.INFORMATION,
        content=(
            "[VEHICLE_INTEREST] is packed with features worth seeing, [CUSTOMER_NAME]. "
            "Is there a particular trim, option or spec you'd like me to walk you through?"
        ),
        placeholders=['CUSTOMER_NAME', 'VEHICLE_INTEREST'],
        useConditions=['features', 'specs', 'mpg', 'options'],
        automotiveFocus=['sedan', 'suv', 'truck'],
        effectiveness=72,
    ),
    dict(
        id='followup_check_in',
        name='Follow-up Check-in',
        category=TemplateCategory.FOLLOWUP,
        content=(
            "Hi [CUSTOMER_NAME], just checking in on [VEHICLE_INTEREST]. Do you have "
            "any questions I can answer, or would a quick call at [PHONE_NUMBER] be easier?"
        ),
        placeholders=['CUSTOMER_NAME', 'VEHICLE_INTEREST', 'PHONE_NUMBER'],
        useConditions=['follow up', 'checking in', 'any update', 'still thinking'],
        automotiveFocus=[FOCUS_ALL],
        effectiveness=75,
    ),
    dict(
        id='price_objection',
        name='Price Objection',
        category=TemplateCategory.OBJECTION_HANDLING,
        content=(
            "I understand, [CUSTOMER_NAME]. Budget matters. Let's look at options on "
            "[VEHICLE_INTEREST] that fit, including leases from [LEASE_PAYMENT]/month "
            "and trade-in credit. What monthly range are you comfortable with?"
        ),
        placeholders=['CUSTOMER_NAME', 'VEHICLE_INTEREST', 'LEASE_PAYMENT'],
        useConditions=['too expensive', 'over budget', 'better offer', 'cheaper'],
        automotiveFocus=[FOCUS_ALL],
        effectiveness=78,
    ),
)

_DEFAULT_TEMPLATE_DEFINITION = dict(
    id=DEFAULT_TEMPLATE_ID,
    name='Acknowledge and Redirect',
    category=TemplateCategory.FOLLOWUP,
    content="Thank you for your message. Let me get that information for you.",
    placeholders=[],
    useConditions=[],
    automotiveFocus=[FOCUS_ALL],
    effectiveness=50,
)


def default_templates() -> List[ResponseTemplate]:
    """Fresh, independently mutable copy of the template catalog."""
    return [ResponseTemplate(**definition) for definition in _TEMPLATE_DEFINITIONS]


def default_fallback_template() -> ResponseTemplate:
    return ResponseTemplate(**_DEFAULT_TEMPLATE_DEFINITION)


# Generic acknowledgment used when generation fails and no template scores
GENERIC_ACKNOWLEDGMENT = (
    "Thanks for your message! A member of our team will follow up with you shortly."
)

# Sent to the customer when the conversation is handed to a human
ESCALATION_ACKNOWLEDGMENT = (
    "I'm connecting you with one of our specialists who will be in touch "
    "shortly to provide personalized assistance."
)


# =============================================================================
# Personalization Segments
# =============================================================================

SEGMENT_RULES: Tuple[Tuple[LeadSegment, Tuple[str, ...]], ...] = (
    (LeadSegment.LUXURY, ('luxury', 'premium')),
    (LeadSegment.COMMERCIAL, ('truck', 'commercial')),
    (LeadSegment.FAMILY, ('family', 'suv')),
    (LeadSegment.PERFORMANCE, ('sport', 'performance')),
)
DEFAULT_SEGMENT = LeadSegment.FIRST_TIME_BUYER


# =============================================================================
# Lookup Helpers
# =============================================================================

def matched_phrases(text: str, phrases: Iterable[str]) -> List[str]:
    """Phrases contained in text, in the given order."""
    return [phrase for phrase in phrases if phrase in text]


def contains_any(text: str, phrases: Iterable[str]) -> bool:
    return any(phrase in text for phrase in phrases)


def first_matching_tier(
    text: str,
    rules: Sequence[Tuple[T, Tuple[str, ...]]],
    default: Optional[T] = None,
) -> Optional[T]:
    """
    Return the outcome of the first rule whose phrase set matches text.

    Rules are evaluated in table order, so the table encodes tie-break priority.
    """
    for outcome, phrases in rules:
        if contains_any(text, phrases):
            return outcome
    return default


def find_buying_signals(text: str) -> List[str]:
    """
    Canonical buying-signal phrases present in text.

    Catalog order is preserved and duplicates collapse to one entry even when
    several surface forms of the same signal appear.
    """
    found: List[str] = []
    for signal in BUYING_SIGNALS:
        if signal.phrase not in found and contains_any(text, signal.surface_forms()):
            found.append(signal.phrase)
    return found


def segment_for_interest(vehicle_interest: Optional[str]) -> LeadSegment:
    """Personalization segment for a vehicle-interest string."""
    interest = (vehicle_interest or '').lower()
    segment = first_matching_tier(interest, SEGMENT_RULES)
    return segment if segment is not None else DEFAULT_SEGMENT


__all__ = [
    'BUYING_SIGNALS',
    'ESCALATION_SIGNAL_PHRASES',
    'MOOD_RULES',
    'VERY_POSITIVE_MIN_HITS',
    'URGENCY_RULES',
    'INTENT_RULES',
    'RISK_PHRASES',
    'ESCALATION_TRIGGERS',
    'TRIGGER_PHRASES',
    'TRIGGER_SCORES',
    'COMPLEX_REQUEST_MIN_LENGTH',
    'COMPLEX_REQUEST_MIN_QUESTIONS',
    'HIGH_VALUE_MIN_LEAD_SCORE',
    'AUTOMATED_ACTION_RULES',
    'ACKNOWLEDGMENT_MESSAGES',
    'CATEGORY_RELEVANCE',
    'DEFAULT_CATEGORY_RELEVANCE',
    'FOCUS_ALL',
    'DEFAULT_TEMPLATE_ID',
    'GENERIC_ACKNOWLEDGMENT',
    'ESCALATION_ACKNOWLEDGMENT',
    'SEGMENT_RULES',
    'DEFAULT_SEGMENT',
    'default_templates',
    'default_fallback_template',
    'matched_phrases',
    'contains_any',
    'first_matching_tier',
    'find_buying_signals',
    'segment_for_interest',
]
