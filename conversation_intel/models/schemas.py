"""
Pydantic v2 schema definitions for the Conversation Intelligence backend.

This module defines the plain data records passed between engine components
and exposed through the API. Field names use camelCase so API payloads keep
the same shape as the surrounding marketing platform.

Model groups:
- Conversation inputs: ConversationMessage, LeadContext, ConversationRecord,
  LeadRecord, LeadScore
- Catalog entries: BuyingSignal, EscalationTrigger, ResponseTemplate
- Analysis and routing: ConversationAnalysis, TemplateMatch, TriggerEvaluation,
  EscalationAlert, RoutingDecision, EscalationPayload, RouteResult,
  RoutingMetrics, ConversationPriority
- A/B testing: ResponseStrategy, VariantPerformance, ABTestVariant,
  ABTestSegmentation, ABTestCreate, ABTestConfiguration, ABTestOutcome
- Quality: ResponseDimensions, ResponseImpact, BenchmarkComparison,
  ResponseEffectivenessScore, ScoringContext, PersonalizationProfile,
  SegmentPerformance, OptimizationRecommendation, QualityMonitoringMetrics,
  QualityTrend, QualityAlert, QualityMonitoringReport, OptimizedResponse
- API request bodies

Catalog entries and analyses are frozen: they are created once and superseded,
never mutated. ResponseTemplate.effectiveness and the A/B counters are the
only mutable fields and are updated by their owning services under a lock.
"""

from datetime import datetime
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from conversation_intel.models.enums import (
    ABTestStatus,
    AlertSeverity,
    AutomatedAction,
    ConversationStage,
    Intent,
    LeadPriority,
    LeadSegment,
    Mood,
    OptimizationType,
    PersonalizationLevel,
    QualityAlertType,
    QualityTrendDirection,
    RecommendationPriority,
    RecommendedAction,
    RelativePerformance,
    ResponseLength,
    ResponseTone,
    ResponseType,
    RoutingPriority,
    RoutingType,
    SignalCategory,
    SignalStrength,
    StrategyType,
    TemplateCategory,
    TriggerAction,
    TriggerType,
    Urgency,
)


# =============================================================================
# Conversation Inputs
# =============================================================================


class ConversationMessage(BaseModel):
    """One message of a conversation, as returned by persistence."""

    content: str = Field(default="", description="Message body")
    isFromAgent: bool = Field(default=False, description="True for agent/AI authored messages")
    timestamp: Optional[datetime] = Field(default=None, description="When the message was sent")


class LeadContext(BaseModel):
    """Lead fields used by analysis, template fill and personalization."""

    leadId: Optional[str] = None
    firstName: Optional[str] = None
    lastName: Optional[str] = None
    vehicleInterest: Optional[str] = None
    source: Optional[str] = None
    leadScore: Optional[float] = Field(default=None, ge=0, le=100)


class ConversationRecord(BaseModel):
    """Conversation header fetched from persistence."""

    id: str
    status: str = "active"
    leadId: str
    lastActivityAt: Optional[datetime] = None


class LeadRecord(BaseModel):
    """Lead fetched from persistence."""

    id: str
    firstName: Optional[str] = None
    lastName: Optional[str] = None
    vehicleInterest: Optional[str] = None
    source: Optional[str] = None

    def to_context(self, lead_score: Optional[float] = None) -> LeadContext:
        return LeadContext(
            leadId=self.id,
            firstName=self.firstName,
            lastName=self.lastName,
            vehicleInterest=self.vehicleInterest,
            source=self.source,
            leadScore=lead_score,
        )


class LeadScore(BaseModel):
    """Output of the external lead-scoring collaborator."""

    totalScore: float = Field(default=0.0, ge=0, le=100)
    priorityTier: LeadPriority = LeadPriority.COLD


# =============================================================================
# Catalog Entries
# =============================================================================


class BuyingSignal(BaseModel):
    """
    Weighted buying-signal phrase.

    `aliases` are alternative surface forms that canonicalize to `phrase`
    (e.g. "sign the paperwork" reports as "sign today").
    """
    model_config = ConfigDict(frozen=True)

    phrase: str
    weight: int = Field(ge=1, le=10)
    category: SignalCategory
    description: str
    strength: SignalStrength = SignalStrength.MEDIUM
    aliases: Tuple[str, ...] = ()

    def surface_forms(self) -> Tuple[str, ...]:
        return (self.phrase,) + self.aliases


class EscalationTrigger(BaseModel):
    """Escalation trigger definition; evaluated fresh per message."""
    model_config = ConfigDict(frozen=True)

    type: TriggerType
    threshold: float = Field(ge=0, le=100)
    action: TriggerAction
    notificationRequired: bool
    priority: int
    cooldownSeconds: int = Field(default=900, ge=0)


class ResponseTemplate(BaseModel):
    """Canned response. Only `effectiveness` changes over time."""
    model_config = ConfigDict(validate_assignment=True)

    id: str
    name: str
    category: TemplateCategory
    content: str
    placeholders: List[str] = Field(default_factory=list)
    useConditions: List[str] = Field(default_factory=list)
    automotiveFocus: List[str] = Field(default_factory=list)
    effectiveness: float = Field(default=50.0, ge=0, le=100)


# =============================================================================
# Analysis and Routing
# =============================================================================


class ConversationAnalysis(BaseModel):
    """
    Structured interpretation of one inbound message in context.

    Frozen and deterministic for identical inputs, so it can be cached keyed
    by conversation and message.
    """
    model_config = ConfigDict(frozen=True)

    conversationId: Optional[str] = None
    leadId: Optional[str] = None
    mood: Mood = Mood.NEUTRAL
    urgency: Urgency = Urgency.MEDIUM
    intent: Intent = Intent.RESEARCH
    buyingSignals: List[str] = Field(default_factory=list)
    riskFactors: List[str] = Field(default_factory=list)
    recommendedAction: RecommendedAction = RecommendedAction.CONTINUE
    reasoning: str = ""
    confidence: int = Field(default=30, ge=0, le=100)
    nextSteps: List[str] = Field(default_factory=list)
    stage: ConversationStage = ConversationStage.INTRODUCTION


class TemplateMatch(BaseModel):
    """Best template for a message and its 0-100 score."""

    template: ResponseTemplate
    score: float = Field(ge=0, le=100)


class TriggerEvaluation(BaseModel):
    """Outcome of evaluating the trigger catalog against one message."""

    fired: bool = False
    trigger: Optional[EscalationTrigger] = None
    score: float = 0.0
    reason: Optional[str] = None
    suppressedTypes: List[TriggerType] = Field(default_factory=list)


class EscalationAlert(BaseModel):
    """Recorded once per trigger firing for downstream monitoring."""

    alertId: str
    triggerType: TriggerType
    action: TriggerAction
    conversationId: Optional[str] = None
    leadId: Optional[str] = None
    score: float
    reason: str
    notificationRequired: bool
    firedAt: datetime


class RoutingDecision(BaseModel):
    """The chosen response strategy for one inbound message."""

    routingType: RoutingType
    confidence: float = Field(ge=0, le=100)
    reasoning: str
    templateId: Optional[str] = None
    escalationReason: Optional[str] = None
    requiredActions: Optional[List[str]] = None
    priority: RoutingPriority = RoutingPriority.NORMAL
    automatedAction: Optional[AutomatedAction] = None
    triggerType: Optional[TriggerType] = None


class EscalationPayload(BaseModel):
    """Handoff package for the human agent."""

    reason: str
    priority: RoutingPriority
    conversationSummary: str
    suggestedActions: List[str]
    urgencyLevel: Urgency
    buyingSignals: List[str]
    leadScore: float
    estimatedValue: float


class RouteResult(BaseModel):
    """Result of routing one message end to end."""

    conversationId: str
    decision: RoutingDecision
    analysis: ConversationAnalysis
    suggestedResponse: Optional[str] = None
    escalationPayload: Optional[EscalationPayload] = None
    requiredActions: List[str] = Field(default_factory=list)
    nextSteps: List[str] = Field(default_factory=list)
    responseTone: ResponseTone = ResponseTone.PROFESSIONAL
    responseType: ResponseType = ResponseType.INFORMATIONAL
    usedFallback: bool = False


class RoutingMetrics(BaseModel):
    """Decision-type tallies since the engine started."""

    totalDecisions: int = 0
    aiGenerated: int = 0
    templateBased: int = 0
    humanEscalations: int = 0
    automatedActions: int = 0


class RankingInput(BaseModel):
    """One active conversation to rank."""

    analysis: ConversationAnalysis
    lastActivityAt: Optional[datetime] = None


class ConversationPriority(BaseModel):
    """Priority ranking entry for an active conversation."""

    conversationId: Optional[str] = None
    leadId: Optional[str] = None
    priorityScore: float
    urgency: Urgency
    intent: Intent
    mood: Mood
    signalCount: int
    daysSinceActivity: Optional[float] = None
    escalationCandidate: bool = False
    urgentCandidate: bool = False


# =============================================================================
# A/B Testing
# =============================================================================


class ResponseStrategy(BaseModel):
    """Response strategy descriptor carried by a variant."""

    type: StrategyType = StrategyType.AI_GENERATED
    tone: ResponseTone = ResponseTone.PROFESSIONAL
    personalizationLevel: PersonalizationLevel = PersonalizationLevel.MEDIUM
    responseLength: ResponseLength = ResponseLength.MODERATE
    includeOffers: bool = False
    urgencyLevel: Urgency = Urgency.MEDIUM
    templateId: Optional[str] = None


class VariantPerformance(BaseModel):
    """Accumulating counters for one variant."""

    impressions: int = 0
    responses: int = 0
    conversions: int = 0
    escalations: int = 0
    averageResponseTime: float = 0.0

    @property
    def response_rate(self) -> float:
        return self.responses / max(1, self.impressions)


class ABTestVariant(BaseModel):
    """One competing strategy within an experiment."""

    id: str
    name: str
    weight: float = Field(ge=0, le=100)
    strategy: ResponseStrategy = Field(default_factory=ResponseStrategy)
    performance: VariantPerformance = Field(default_factory=VariantPerformance)


class ABTestSegmentation(BaseModel):
    """Predicate deciding which leads enter an experiment."""

    leadSource: List[str] = Field(default_factory=list)
    vehicleInterest: List[str] = Field(default_factory=list)
    minLeadScore: Optional[float] = None
    maxLeadScore: Optional[float] = None


class ABTestVariantCreate(BaseModel):
    """Variant definition supplied at creation time."""

    id: Optional[str] = None
    name: str
    weight: float
    strategy: ResponseStrategy = Field(default_factory=ResponseStrategy)


class ABTestCreate(BaseModel):
    """Request body for creating an A/B test."""
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "name": "Friendly vs professional",
                "variants": [
                    {"name": "Friendly", "weight": 60, "strategy": {"tone": "friendly"}},
                    {"name": "Professional", "weight": 40, "strategy": {"tone": "professional"}},
                ],
                "requiredSampleSize": 100,
            }
        }
    )

    name: str
    description: str = ""
    variants: List[ABTestVariantCreate]
    segmentation: ABTestSegmentation = Field(default_factory=ABTestSegmentation)
    requiredSampleSize: int = 100
    confidenceLevel: float = 95.0


class ABTestConfiguration(BaseModel):
    """Experiment state, counters included."""

    testId: str
    name: str
    description: str = ""
    status: ABTestStatus = ABTestStatus.DRAFT
    segmentation: ABTestSegmentation = Field(default_factory=ABTestSegmentation)
    variants: List[ABTestVariant]
    requiredSampleSize: int
    confidenceLevel: float = 95.0
    createdAt: datetime
    startDate: Optional[datetime] = None
    endDate: Optional[datetime] = None
    winnerVariantId: Optional[str] = None

    @property
    def total_impressions(self) -> int:
        return sum(v.performance.impressions for v in self.variants)


class ABTestOutcome(BaseModel):
    """Observed outcome of one response shown under a variant."""

    responded: bool = False
    converted: bool = False
    escalated: bool = False
    responseTime: Optional[float] = Field(default=None, ge=0, description="Seconds until the customer replied")


# =============================================================================
# Quality Scoring
# =============================================================================


class ResponseDimensions(BaseModel):
    """Per-dimension quality scores (0-100)."""

    relevance: float
    clarity: float
    engagement: float
    personalization: float
    actionability: float
    professionalism: float


class ResponseImpact(BaseModel):
    """Downstream impact measured after a response was sent."""

    customerReplied: bool = False
    sentimentChange: float = 0.0
    conversationProgression: bool = False
    buyingSignalTriggered: bool = False
    escalationRequired: bool = False
    converted: bool = False
    responseTime: Optional[float] = None


class BenchmarkComparison(BaseModel):
    """Score bucketed against fixed industry benchmarks."""

    industryAverage: float
    topPerformer: float
    relativePerformance: RelativePerformance


class ResponseEffectivenessScore(BaseModel):
    """Composite quality measure for a sent response. Immutable once written."""
    model_config = ConfigDict(frozen=True)

    responseId: str
    conversationId: Optional[str] = None
    overallScore: float = Field(ge=0, le=100)
    dimensions: ResponseDimensions
    impact: ResponseImpact = Field(default_factory=ResponseImpact)
    benchmarkComparison: BenchmarkComparison
    improvementSuggestions: List[str] = Field(default_factory=list)
    segment: Optional[LeadSegment] = None
    scoredAt: datetime


class ScoringContext(BaseModel):
    """Context supplied when scoring a response."""

    responseId: Optional[str] = None
    conversationId: Optional[str] = None
    lead: LeadContext = Field(default_factory=LeadContext)
    intent: Optional[Intent] = None
    impact: Optional[ResponseImpact] = None


class PersonalizationProfile(BaseModel):
    """Tunable personalization parameters for one lead segment."""

    segment: LeadSegment
    namingFrequency: float = 2.0
    vehicleReferenceFrequency: float = 3.0
    contextualReferences: List[str] = Field(
        default_factory=lambda: ['previous conversation', 'specific needs']
    )
    toneAdjustments: Dict[str, ResponseTone] = Field(
        default_factory=lambda: {'default': ResponseTone.PROFESSIONAL}
    )
    contentPreferences: List[str] = Field(
        default_factory=lambda: ['features', 'benefits', 'financing']
    )
    effectiveness: float = Field(default=70.0, ge=0, le=100)
    sampleSize: int = 0
    lastUpdated: datetime


class SegmentPerformance(BaseModel):
    """
    Aggregated performance for one (segment, tone) slice of past responses.

    Rows are produced by the batch tuning job from stored scores.
    """

    segment: LeadSegment
    tone: ResponseTone = ResponseTone.PROFESSIONAL
    sampleSize: int = Field(default=0, ge=0)
    averageScore: float = 0.0
    replyRate: float = Field(default=0.0, ge=0, le=1)
    averageNameMentions: float = 0.0
    averageVehicleMentions: float = 0.0
    topTopics: List[str] = Field(default_factory=list)


class OptimizationRecommendation(BaseModel):
    """Actionable tuning suggestion derived from effectiveness scores."""

    id: str
    type: OptimizationType
    priority: RecommendationPriority
    title: str
    description: str
    expectedImpact: float
    implementation: List[str] = Field(default_factory=list)
    affectedSegment: Optional[LeadSegment] = None


class QualityMonitoringMetrics(BaseModel):
    """Aggregate response quality over one monitoring window."""

    sampleSize: int = 0
    averageResponseScore: float = 0.0
    responseVelocity: float = 0.0
    conversionRate: float = 0.0
    escalationRate: float = 0.0
    responseMissRate: float = 0.0


class QualityTrend(BaseModel):
    """Change of the average score between two windows."""

    direction: QualityTrendDirection = QualityTrendDirection.STABLE
    performanceChange: float = 0.0


class QualityAlert(BaseModel):
    """Alert raised by quality monitoring."""

    alertId: str
    type: QualityAlertType
    severity: AlertSeverity
    message: str
    metric: str
    value: float
    detectedAt: datetime


class QualityMonitoringReport(BaseModel):
    """Metrics, trend and alerts for one monitoring run."""

    metrics: QualityMonitoringMetrics
    trend: QualityTrend
    alerts: List[QualityAlert] = Field(default_factory=list)


class OptimizedResponse(BaseModel):
    """Response produced under the optimizer's strategy selection."""

    response: str
    variantUsed: Optional[str] = None
    testId: Optional[str] = None
    qualityScore: float
    strategy: ResponseStrategy = Field(default_factory=ResponseStrategy)
    usedFallback: bool = False


# =============================================================================
# API Request Bodies
# =============================================================================


class AnalyzeRequest(BaseModel):
    """Body for POST /conversations/analyze."""

    message: str
    history: List[ConversationMessage] = Field(default_factory=list)
    leadContext: LeadContext = Field(default_factory=LeadContext)
    conversationId: Optional[str] = None


class RouteRequest(BaseModel):
    """Body for POST /conversations/{id}/route."""

    message: str
    senderId: Optional[str] = None


class OptimizedResponseRequest(BaseModel):
    """Body for POST /conversations/{id}/optimized-response."""

    message: str
    context: LeadContext = Field(default_factory=LeadContext)


class ScoreRequest(BaseModel):
    """Body for POST /quality/score."""

    response: str
    originalMessage: str = ""
    context: ScoringContext = Field(default_factory=ScoringContext)


class MonitorRequest(BaseModel):
    """Body for POST /quality/monitor."""

    current: List[ResponseEffectivenessScore]
    previous: List[ResponseEffectivenessScore] = Field(default_factory=list)


class RankRequest(BaseModel):
    """Body for POST /conversations/priorities."""

    conversations: List[RankingInput]
