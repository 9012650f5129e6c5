"""
Conversation Engine - the message pipeline.

ConversationEngine composes the analyzer, routing decision engine (with its
trigger system and template matcher), generation client and quality
optimizer behind the operations the API and jobs call:

    analyze()                 classify a message without side effects
    route()                   load context, analyze, decide and build the reply
    get_optimized_response()  A/B aware reply generation with quality score
    score_response()          effectiveness scoring
    rank_conversations()      priority ordering of active conversations
    A/B test passthroughs     create / start / pause / resume / results

Routing paths:
    human_escalation  escalation payload for the agent plus a handoff
                      acknowledgment for the customer
    automated_action  deterministic hours / location / acknowledgment reply
    template_based    best template with placeholders filled
    ai_generated      generation client under asyncio.wait_for; on any
                      failure the best template (score > 0) is filled, else
                      the generic acknowledgment is sent

Engines are built once per process by build_engine() (see main.py lifespan)
and shared; all mutable state lives in the component services behind locks.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import List, Optional, Sequence, Tuple

from conversation_intel.core.config import Settings, get_settings
from conversation_intel.core.errors import ConversationIntelError, GenerationError, NotFoundError
from conversation_intel.models.enums import (
    ABTestStatus,
    AutomatedAction,
    ResponseTone,
    ResponseType,
    RoutingType,
    StrategyType,
)
from conversation_intel.models.schemas import (
    ABTestConfiguration,
    ABTestCreate,
    ABTestOutcome,
    ConversationAnalysis,
    ConversationMessage,
    ConversationPriority,
    EscalationAlert,
    LeadContext,
    LeadScore,
    OptimizedResponse,
    PersonalizationProfile,
    RankingInput,
    ResponseEffectivenessScore,
    ResponseStrategy,
    RouteResult,
    RoutingMetrics,
    ScoringContext,
)
from conversation_intel.services.analyzer import ConversationAnalyzer, rank_conversations
from conversation_intel.services.catalogs import ESCALATION_ACKNOWLEDGMENT, GENERIC_ACKNOWLEDGMENT
from conversation_intel.services.escalation import EscalationTriggerSystem
from conversation_intel.services.generation import (
    RESPONSE_LENGTH_CHARS,
    GenerationClient,
    build_context,
    build_system_prompt,
)
from conversation_intel.services.personalization import PersonalizationManager
from conversation_intel.services.quality_optimizer import ResponseQualityOptimizer
from conversation_intel.services.repository import (
    ConversationRepository,
    LeadScorer,
    PostgresConversationRepository,
    PostgresLeadScorer,
)
from conversation_intel.services.routing import (
    RoutingDecisionEngine,
    automated_response,
    build_escalation_payload,
    fill_template,
    next_steps,
    response_tone,
    response_type,
)
from conversation_intel.services.template_matcher import TemplateMatcher


logger = logging.getLogger(__name__)


class ConversationEngine:
    """
    End-to-end conversation intelligence pipeline.

    Args:
        settings: Application settings.
        analyzer: Message classifier.
        routing: Routing decision engine (owns triggers and templates).
        optimizer: A/B testing, scoring, personalization and monitoring.
        generation: Generation service client.
        repository: Conversation/message/lead store; required by route().
        lead_scorer: External lead scoring; optional and advisory.
        clock: Callable returning the current aware datetime.
    """

    def __init__(
        self,
        settings: Settings,
        analyzer: ConversationAnalyzer,
        routing: RoutingDecisionEngine,
        optimizer: ResponseQualityOptimizer,
        generation: GenerationClient,
        repository: Optional[ConversationRepository] = None,
        lead_scorer: Optional[LeadScorer] = None,
        clock=None,
    ):
        self.settings = settings
        self.analyzer = analyzer
        self.routing = routing
        self.optimizer = optimizer
        self.generation = generation
        self.repository = repository
        self.lead_scorer = lead_scorer
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    @property
    def triggers(self) -> EscalationTriggerSystem:
        return self.routing.triggers

    @property
    def matcher(self) -> TemplateMatcher:
        return self.routing.matcher

    # =========================================================================
    # Analysis
    # =========================================================================

    def analyze(
        self,
        message: str,
        history: Optional[Sequence[ConversationMessage]] = None,
        lead_context: Optional[LeadContext] = None,
        conversation_id: Optional[str] = None,
    ) -> ConversationAnalysis:
        return self.analyzer.analyze(message, history, lead_context, conversation_id)

    def rank_conversations(self, items: Sequence[RankingInput]) -> List[ConversationPriority]:
        return rank_conversations(
            items,
            now=self._clock(),
            stale_days=self.settings.stale_conversation_days,
            urgent_stale_days=self.settings.urgent_stale_conversation_days,
        )

    # =========================================================================
    # Routing
    # =========================================================================

    async def route(
        self,
        conversation_id: str,
        message: str,
        sender_id: Optional[str] = None,
    ) -> RouteResult:
        """
        Route one inbound message and build the suggested reply.

        Args:
            conversation_id: Conversation the message belongs to.
            message: Inbound message text.
            sender_id: Sender identifier (logged only).

        Returns:
            RouteResult: Decision, analysis and exactly one of suggested
            response / escalation payload / required actions populated for
            the chosen path.

        Raises:
            NotFoundError: Unknown conversation or lead.
            ConversationIntelError: No conversation repository configured.
        """
        if self.repository is None:
            raise ConversationIntelError('No conversation repository configured')

        conversation = await self.repository.get_conversation(conversation_id)
        if conversation is None:
            raise NotFoundError('Conversation', conversation_id)

        history = _without_current(await self.repository.get_messages(conversation_id), message)

        lead = await self.repository.get_lead(conversation.leadId)
        if lead is None:
            raise NotFoundError('Lead', conversation.leadId)

        lead_score = await self._lead_score(lead.id)
        lead_context = lead.to_context(lead_score.totalScore if lead_score else None)

        logger.info(
            f"Routing message for conversation={conversation_id} lead={lead.id} "
            f"sender={sender_id or 'unknown'} history={len(history)}"
        )

        analysis = self.analyze(message, history, lead_context, conversation_id)
        decision = self.routing.decide(
            analysis,
            message,
            lead_score=lead_score,
            history_length=len(history),
            lead_context=lead_context,
            conversation_id=conversation_id,
        )

        result = RouteResult(
            conversationId=conversation_id,
            decision=decision,
            analysis=analysis,
            nextSteps=next_steps(decision),
            responseTone=response_tone(analysis.mood),
            responseType=response_type(analysis.intent),
        )

        if decision.routingType == RoutingType.HUMAN_ESCALATION:
            transcript = list(history) + [ConversationMessage(content=message, timestamp=self._clock())]
            payload = build_escalation_payload(decision, analysis, transcript, lead_score, lead_context)
            result.escalationPayload = payload
            result.requiredActions = list(payload.suggestedActions)
            result.suggestedResponse = ESCALATION_ACKNOWLEDGMENT

        elif decision.routingType == RoutingType.AUTOMATED_ACTION:
            result.requiredActions = list(decision.requiredActions or [])
            actions = [AutomatedAction(action) for action in result.requiredActions]
            result.suggestedResponse = automated_response(actions, lead_context, self.settings)

        elif decision.routingType == RoutingType.TEMPLATE_BASED:
            template = self.matcher.get_template(decision.templateId)
            result.suggestedResponse = fill_template(template, lead_context, self.settings)

        else:
            profile = self.optimizer.personalization.profile_for_interest(lead_context.vehicleInterest)
            strategy = self.optimizer.profile_strategy(profile, analysis)
            text, used_fallback = await self._generate(
                message, history, analysis, lead_context,
                strategy, result.responseTone, result.responseType, profile,
            )
            result.suggestedResponse = text
            result.usedFallback = used_fallback

        return result

    # =========================================================================
    # Optimized responses
    # =========================================================================

    async def get_optimized_response(
        self,
        conversation_id: str,
        message: str,
        context: Optional[LeadContext] = None,
    ) -> OptimizedResponse:
        """
        Reply under the optimizer's strategy selection, scored for quality.

        Leads matching an active A/B test get that test's variant strategy
        (recording an impression); everyone else gets their segment profile's
        default strategy.
        """
        lead_context = context or LeadContext()
        history = await self._history(conversation_id)
        history = _without_current(history, message)

        analysis = self.analyze(message, history, lead_context, conversation_id)
        strategy, test_id, variant = self.optimizer.select_strategy(lead_context, analysis)
        profile = self.optimizer.personalization.profile_for_interest(lead_context.vehicleInterest)
        kind = response_type(analysis.intent)

        used_fallback = False
        if strategy.type == StrategyType.TEMPLATE_BASED:
            text = self._template_response(strategy, message, analysis, lead_context)
        else:
            draft = None
            if strategy.type == StrategyType.HYBRID:
                draft = self._template_response(strategy, message, analysis, lead_context)
            text, used_fallback = await self._generate(
                message, history, analysis, lead_context,
                strategy, strategy.tone, kind, profile, draft=draft,
            )

        score = self.score_response(
            text,
            ScoringContext(conversationId=conversation_id, lead=lead_context, intent=analysis.intent),
            message,
        )

        return OptimizedResponse(
            response=text,
            variantUsed=variant.id if variant else None,
            testId=test_id,
            qualityScore=score.overallScore,
            strategy=strategy,
            usedFallback=used_fallback,
        )

    # =========================================================================
    # Quality and A/B testing passthroughs
    # =========================================================================

    def score_response(
        self,
        response: str,
        context: Optional[ScoringContext] = None,
        original_message: str = '',
    ) -> ResponseEffectivenessScore:
        return self.optimizer.score_response(response, context, original_message)

    def create_ab_test(self, config: ABTestCreate) -> str:
        return self.optimizer.create_ab_test(config)

    def start_ab_test(self, test_id: str) -> ABTestConfiguration:
        return self.optimizer.start_ab_test(test_id)

    def pause_ab_test(self, test_id: str) -> ABTestConfiguration:
        return self.optimizer.pause_ab_test(test_id)

    def resume_ab_test(self, test_id: str) -> ABTestConfiguration:
        return self.optimizer.resume_ab_test(test_id)

    def update_ab_test_results(self, test_id: str, variant_id: str, outcome: ABTestOutcome) -> ABTestConfiguration:
        return self.optimizer.update_ab_test_results(test_id, variant_id, outcome)

    def get_ab_test(self, test_id: str) -> ABTestConfiguration:
        return self.optimizer.get_ab_test(test_id)

    def list_ab_tests(self, status: Optional[ABTestStatus] = None) -> List[ABTestConfiguration]:
        return self.optimizer.list_ab_tests(status)

    def routing_metrics(self) -> RoutingMetrics:
        return self.routing.metrics()

    def recent_alerts(self, limit: int = 50) -> List[EscalationAlert]:
        return self.triggers.recent_alerts(limit)

    def drain_alerts(self) -> List[EscalationAlert]:
        return self.triggers.drain_alerts()

    def requeue_alerts(self, alerts: List[EscalationAlert]) -> None:
        self.triggers.requeue_alerts(alerts)

    # =========================================================================
    # Internal helpers
    # =========================================================================

    async def _history(self, conversation_id: Optional[str]) -> List[ConversationMessage]:
        if self.repository is None or not conversation_id:
            return []
        return await self.repository.get_messages(conversation_id)

    async def _lead_score(self, lead_id: str) -> Optional[LeadScore]:
        """Lead scoring is advisory; failures route the lead as cold."""
        if self.lead_scorer is None:
            return None
        try:
            return await self.lead_scorer.score(lead_id)
        except Exception as e:
            logger.warning(f"Lead scoring failed for lead={lead_id}; treating as cold: {e}")
            return None

    def _template_response(
        self,
        strategy: ResponseStrategy,
        message: str,
        analysis: ConversationAnalysis,
        lead_context: LeadContext,
    ) -> str:
        if strategy.templateId:
            try:
                template = self.matcher.get_template(strategy.templateId)
                return fill_template(template, lead_context, self.settings)
            except NotFoundError:
                logger.warning(f"Strategy template {strategy.templateId} not found; using best match")
        match = self.matcher.best_match(message, analysis.intent, lead_context)
        return fill_template(match.template, lead_context, self.settings)

    def _fallback_response(
        self,
        message: str,
        analysis: ConversationAnalysis,
        lead_context: LeadContext,
    ) -> str:
        match = self.matcher.best_match(message, analysis.intent, lead_context)
        if match.score > 0:
            return fill_template(match.template, lead_context, self.settings)
        return GENERIC_ACKNOWLEDGMENT

    async def _generate(
        self,
        message: str,
        history: Sequence[ConversationMessage],
        analysis: ConversationAnalysis,
        lead_context: LeadContext,
        strategy: ResponseStrategy,
        tone: ResponseTone,
        kind: ResponseType,
        profile: Optional[PersonalizationProfile] = None,
        draft: Optional[str] = None,
    ) -> Tuple[str, bool]:
        """
        Generated reply, or the fallback reply when generation fails.

        Returns:
            Tuple of (text, used_fallback).
        """
        system_prompt = build_system_prompt(strategy, kind, profile)
        context = build_context(message, history, analysis, lead_context)
        if draft:
            context = f"{context}\nDraft reply to adapt: {draft}"

        try:
            text = await asyncio.wait_for(
                self.generation.generate(
                    system_prompt,
                    context,
                    max_length=RESPONSE_LENGTH_CHARS[strategy.responseLength],
                    tone=tone,
                ),
                timeout=self.settings.generation_timeout_seconds,
            )
            return text, False
        except GenerationError as e:
            logger.warning(f"Generation failed for conversation={analysis.conversationId}: {e}")
        except asyncio.TimeoutError:
            logger.warning(
                f"Generation timed out after {self.settings.generation_timeout_seconds}s "
                f"for conversation={analysis.conversationId}"
            )
        except Exception as e:
            logger.error(f"Unexpected generation error for conversation={analysis.conversationId}: {e}", exc_info=True)

        return self._fallback_response(message, analysis, lead_context), True


def _without_current(history: List[ConversationMessage], message: str) -> List[ConversationMessage]:
    """Drop the trailing stored copy of the message being processed."""
    if history and not history[-1].isFromAgent and history[-1].content.strip() == (message or '').strip():
        return history[:-1]
    return history


def build_engine(
    settings: Optional[Settings] = None,
    repository: Optional[ConversationRepository] = None,
    lead_scorer: Optional[LeadScorer] = None,
    generation: Optional[GenerationClient] = None,
    profiles: Optional[Sequence[PersonalizationProfile]] = None,
    clock=None,
) -> ConversationEngine:
    """
    Construct a fully wired engine.

    When DATABASE_URL is configured and no collaborators are passed, the
    asyncpg repository and lead scorer are used.
    """
    settings = settings or get_settings()

    triggers = EscalationTriggerSystem(
        cooldowns=settings.escalation_cooldown_overrides,
        default_cooldown=settings.escalation_cooldown_seconds,
        clock=clock,
    )
    routing = RoutingDecisionEngine(triggers, TemplateMatcher(), settings.template_match_threshold)
    optimizer = ResponseQualityOptimizer(
        settings,
        personalization=PersonalizationManager(profiles, clock=clock),
    )

    if settings.database_url:
        repository = repository or PostgresConversationRepository()
        lead_scorer = lead_scorer or PostgresLeadScorer()

    engine = ConversationEngine(
        settings=settings,
        analyzer=ConversationAnalyzer(),
        routing=routing,
        optimizer=optimizer,
        generation=generation or GenerationClient(settings),
        repository=repository,
        lead_scorer=lead_scorer,
        clock=clock,
    )
    logger.info(
        f"Conversation engine ready (repository={'yes' if repository else 'no'}, "
        f"generation={'configured' if engine.generation.configured else 'fallback only'})"
    )
    return engine


__all__ = [
    'ConversationEngine',
    'build_engine',
]
