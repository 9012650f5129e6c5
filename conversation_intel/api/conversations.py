"""
FastAPI router module for conversation analysis and routing.

Implements:
- POST /conversations/analyze: classify a message with optional history
- POST /conversations/priorities: rank active conversations by priority
- POST /conversations/{conversation_id}/route: route an inbound message
- POST /conversations/{conversation_id}/optimized-response: A/B aware reply

Missing conversations or leads return 404. Generation failures never reach
the caller; the engine falls back to a template or a generic acknowledgment.
"""

import logging
from typing import List

from fastapi import APIRouter, HTTPException

from conversation_intel.core.dependencies import EngineDep
from conversation_intel.core.errors import NotFoundError
from conversation_intel.models.schemas import (
    AnalyzeRequest,
    ConversationAnalysis,
    ConversationPriority,
    OptimizedResponse,
    OptimizedResponseRequest,
    RankRequest,
    RouteRequest,
    RouteResult,
)


logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/analyze", response_model=ConversationAnalysis)
async def analyze_conversation(request: AnalyzeRequest, engine: EngineDep) -> ConversationAnalysis:
    """
    Analyze one message in the context of its history.

    Pure classification: no routing, cooldown or counter side effects.
    """
    try:
        return engine.analyze(
            request.message,
            request.history,
            request.leadContext,
            request.conversationId,
        )
    except Exception as e:
        logger.error(f"Error analyzing message: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to analyze message: {str(e)}")


@router.post("/priorities", response_model=List[ConversationPriority])
async def rank_conversations(request: RankRequest, engine: EngineDep) -> List[ConversationPriority]:
    """Rank the supplied conversation analyses, most urgent first."""
    try:
        ranked = engine.rank_conversations(request.conversations)
        logger.info(f"Ranked {len(ranked)} conversations")
        return ranked
    except Exception as e:
        logger.error(f"Error ranking conversations: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to rank conversations: {str(e)}")


@router.post("/{conversation_id}/route", response_model=RouteResult)
async def route_message(conversation_id: str, request: RouteRequest, engine: EngineDep) -> RouteResult:
    """
    Route an inbound message.

    Returns the decision together with the suggested response, escalation
    payload or required actions for the chosen path.
    """
    try:
        return await engine.route(conversation_id, request.message, request.senderId)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error routing message for conversation {conversation_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to route message: {str(e)}")


@router.post("/{conversation_id}/optimized-response", response_model=OptimizedResponse)
async def optimized_response(
    conversation_id: str,
    request: OptimizedResponseRequest,
    engine: EngineDep,
) -> OptimizedResponse:
    """Generate a reply under A/B test or personalization strategy selection."""
    try:
        return await engine.get_optimized_response(conversation_id, request.message, request.context)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error generating optimized response for {conversation_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to generate response: {str(e)}")
