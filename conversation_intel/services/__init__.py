"""
Conversation Intelligence Services Module

This module contains the business logic of the conversation intelligence
engine. Services hold no global state: each instance owns its mutable state
behind a lock, and the engine is built once per process by build_engine().

Services:
- catalogs: buying signals, escalation triggers, templates, keyword tiers
- analyzer: mood / urgency / intent classification and priority ranking
- template_matcher: template scoring and effectiveness updates
- escalation: escalation trigger evaluation with per-conversation cooldowns
- routing: routing decisions, template fill and escalation payloads
- generation: OpenAI client and prompt construction
- ab_testing: A/B test lifecycle, variant selection and results
- effectiveness: response effectiveness scoring
- personalization: per-segment personalization profiles
- quality_monitoring: trend analysis and quality alerts
- quality_optimizer: the optimizer composing the four modules above
- repository: persistence and lead-scoring collaborators (asyncpg)
- engine: the end-to-end pipeline façade

All services are consumed by the API layer (conversation_intel/api/) and the
batch jobs (conversation_intel/jobs/).
"""

# =============================================================================
# Analysis Exports
# =============================================================================

from conversation_intel.services.analyzer import (
    ConversationAnalyzer,
    priority_score,
    rank_conversations,
)

# =============================================================================
# Routing, Templates and Escalation Exports
# =============================================================================

from conversation_intel.services.template_matcher import TemplateMatcher
from conversation_intel.services.escalation import EscalationTriggerSystem
from conversation_intel.services.routing import (
    RoutingDecisionEngine,
    routing_priority,
    fill_template,
    build_escalation_payload,
)

# =============================================================================
# Generation Exports
# =============================================================================

from conversation_intel.services.generation import GenerationClient

# =============================================================================
# Quality Optimization Exports
# =============================================================================

from conversation_intel.services.ab_testing import ABTestManager
from conversation_intel.services.effectiveness import ResponseScorer
from conversation_intel.services.personalization import PersonalizationManager
from conversation_intel.services.quality_monitoring import monitor_quality
from conversation_intel.services.quality_optimizer import ResponseQualityOptimizer

# =============================================================================
# Persistence and Pipeline Exports
# =============================================================================

from conversation_intel.services.repository import (
    ConversationRepository,
    LeadScorer,
    PostgresConversationRepository,
    PostgresLeadScorer,
)
from conversation_intel.services.engine import ConversationEngine, build_engine


__all__ = [
    'ConversationAnalyzer',
    'priority_score',
    'rank_conversations',
    'TemplateMatcher',
    'EscalationTriggerSystem',
    'RoutingDecisionEngine',
    'routing_priority',
    'fill_template',
    'build_escalation_payload',
    'GenerationClient',
    'ABTestManager',
    'ResponseScorer',
    'PersonalizationManager',
    'monitor_quality',
    'ResponseQualityOptimizer',
    'ConversationRepository',
    'LeadScorer',
    'PostgresConversationRepository',
    'PostgresLeadScorer',
    'ConversationEngine',
    'build_engine',
]
