"""
FastAPI router module for escalation alerts and routing metrics.

Implements:
- GET /escalations/alerts: most recent escalation alerts, newest first
- GET /routing/metrics: decision-type tallies since the engine started
"""

import logging
from typing import List

from fastapi import APIRouter, HTTPException, Query

from conversation_intel.core.dependencies import EngineDep
from conversation_intel.models.schemas import EscalationAlert, RoutingMetrics


logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/escalations/alerts", response_model=List[EscalationAlert])
async def list_escalation_alerts(
    engine: EngineDep,
    limit: int = Query(50, ge=1, le=500, description="Maximum alerts to return"),
) -> List[EscalationAlert]:
    try:
        return engine.recent_alerts(limit)
    except Exception as e:
        logger.error(f"Error listing escalation alerts: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to list escalation alerts: {str(e)}")


@router.get("/routing/metrics", response_model=RoutingMetrics)
async def routing_metrics(engine: EngineDep) -> RoutingMetrics:
    return engine.routing_metrics()
