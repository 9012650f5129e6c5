"""
FastAPI router module for response quality.

Implements:
- POST /quality/score: effectiveness score for one response
- GET /quality/profiles: current personalization profile per segment
- POST /quality/recommendations: ranked optimization recommendations
- POST /quality/monitor: metrics, trend and alerts for a window of scores
"""

import logging
from typing import List

from fastapi import APIRouter, HTTPException

from conversation_intel.core.dependencies import EngineDep
from conversation_intel.models.schemas import (
    MonitorRequest,
    OptimizationRecommendation,
    PersonalizationProfile,
    QualityMonitoringReport,
    ResponseEffectivenessScore,
    ScoreRequest,
)


logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/score", response_model=ResponseEffectivenessScore)
async def score_response(request: ScoreRequest, engine: EngineDep) -> ResponseEffectivenessScore:
    """Score a response; scoring failures yield the neutral score rather than an error."""
    return engine.score_response(request.response, request.context, request.originalMessage)


@router.get("/profiles", response_model=List[PersonalizationProfile])
async def list_profiles(engine: EngineDep) -> List[PersonalizationProfile]:
    try:
        return engine.optimizer.all_profiles()
    except Exception as e:
        logger.error(f"Error listing personalization profiles: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to list profiles: {str(e)}")


@router.post("/recommendations", response_model=List[OptimizationRecommendation])
async def recommendations(
    scores: List[ResponseEffectivenessScore],
    engine: EngineDep,
) -> List[OptimizationRecommendation]:
    try:
        ranked = engine.optimizer.generate_recommendations(scores)
        logger.info(f"Generated {len(ranked)} recommendations from {len(scores)} scores")
        return ranked
    except Exception as e:
        logger.error(f"Error generating recommendations: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to generate recommendations: {str(e)}")


@router.post("/monitor", response_model=QualityMonitoringReport)
async def monitor(request: MonitorRequest, engine: EngineDep) -> QualityMonitoringReport:
    try:
        return engine.optimizer.monitor_quality(request.current, request.previous)
    except Exception as e:
        logger.error(f"Error monitoring quality: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to monitor quality: {str(e)}")
