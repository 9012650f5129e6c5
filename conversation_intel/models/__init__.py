"""
Package initialization file for conversation intelligence models.

This module exports all Pydantic schemas and enumerations from schemas.py and
enums.py, making them importable from conversation_intel.models directly.

Usage:
    from conversation_intel.models import (
        Mood,
        Urgency,
        ConversationAnalysis,
        RoutingDecision,
        # ... etc
    )
"""

# =============================================================================
# Enums
# =============================================================================

from conversation_intel.models.enums import (
    # Conversation analysis
    Mood,
    Urgency,
    Intent,
    RecommendedAction,
    ConversationStage,
    SignalCategory,
    SignalStrength,
    # Leads
    LeadPriority,
    LeadSegment,
    # Escalation
    TriggerType,
    TriggerAction,
    # Routing
    RoutingType,
    RoutingPriority,
    AutomatedAction,
    TemplateCategory,
    ResponseTone,
    ResponseType,
    # A/B testing
    ABTestStatus,
    StrategyType,
    PersonalizationLevel,
    ResponseLength,
    # Quality
    RelativePerformance,
    OptimizationType,
    RecommendationPriority,
    AlertSeverity,
    QualityAlertType,
    QualityTrendDirection,
)

# =============================================================================
# Schemas
# =============================================================================

from conversation_intel.models.schemas import (
    # Conversation inputs
    ConversationMessage,
    LeadContext,
    ConversationRecord,
    LeadRecord,
    LeadScore,
    # Catalog entries
    BuyingSignal,
    EscalationTrigger,
    ResponseTemplate,
    # Analysis and routing
    ConversationAnalysis,
    TemplateMatch,
    TriggerEvaluation,
    EscalationAlert,
    RoutingDecision,
    EscalationPayload,
    RouteResult,
    RoutingMetrics,
    RankingInput,
    ConversationPriority,
    # A/B testing
    ResponseStrategy,
    VariantPerformance,
    ABTestVariant,
    ABTestSegmentation,
    ABTestVariantCreate,
    ABTestCreate,
    ABTestConfiguration,
    ABTestOutcome,
    # Quality
    ResponseDimensions,
    ResponseImpact,
    BenchmarkComparison,
    ResponseEffectivenessScore,
    ScoringContext,
    PersonalizationProfile,
    SegmentPerformance,
    OptimizationRecommendation,
    QualityMonitoringMetrics,
    QualityTrend,
    QualityAlert,
    QualityMonitoringReport,
    OptimizedResponse,
    # API request bodies
    AnalyzeRequest,
    RouteRequest,
    OptimizedResponseRequest,
    ScoreRequest,
    MonitorRequest,
    RankRequest,
)


__all__ = [
    # Enums
    'Mood',
    'Urgency',
    'Intent',
    'RecommendedAction',
    'ConversationStage',
    'SignalCategory',
    'SignalStrength',
    'LeadPriority',
    'LeadSegment',
    'TriggerType',
    'TriggerAction',
    'RoutingType',
    'RoutingPriority',
    'AutomatedAction',
    'TemplateCategory',
    'ResponseTone',
    'ResponseType',
    'ABTestStatus',
    'StrategyType',
    'PersonalizationLevel',
    'ResponseLength',
    'RelativePerformance',
    'OptimizationType',
    'RecommendationPriority',
    'AlertSeverity',
    'QualityAlertType',
    'QualityTrendDirection',
    # Schemas
    'ConversationMessage',
    'LeadContext',
    'ConversationRecord',
    'LeadRecord',
    'LeadScore',
    'BuyingSignal',
    'EscalationTrigger',
    'ResponseTemplate',
    'ConversationAnalysis',
    'TemplateMatch',
    'TriggerEvaluation',
    'EscalationAlert',
    'RoutingDecision',
    'EscalationPayload',
    'RouteResult',
    'RoutingMetrics',
    'RankingInput',
    'ConversationPriority',
    'ResponseStrategy',
    'VariantPerformance',
    'ABTestVariant',
    'ABTestSegmentation',
    'ABTestVariantCreate',
    'ABTestCreate',
    'ABTestConfiguration',
    'ABTestOutcome',
    'ResponseDimensions',
    'ResponseImpact',
    'BenchmarkComparison',
    'ResponseEffectivenessScore',
    'ScoringContext',
    'PersonalizationProfile',
    'SegmentPerformance',
    'OptimizationRecommendation',
    'QualityMonitoringMetrics',
    'QualityTrend',
    'QualityAlert',
    'QualityMonitoringReport',
    'OptimizedResponse',
    'AnalyzeRequest',
    'RouteRequest',
    'OptimizedResponseRequest',
    'ScoreRequest',
    'MonitorRequest',
    'RankRequest',
]
