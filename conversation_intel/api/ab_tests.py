"""
FastAPI router module for A/B test management.

Implements:
- POST /ab-tests: create a draft test (400 on invalid configuration)
- GET /ab-tests: list tests, optionally filtered by status
- GET /ab-tests/{test_id}: test state and per-variant counters
- POST /ab-tests/{test_id}/start: draft → active (409 from other states)
- POST /ab-tests/{test_id}/pause: active → paused
- POST /ab-tests/{test_id}/resume: paused → active
- POST /ab-tests/{test_id}/results: record one observed outcome

Completed tests report winnerVariantId; they are never restarted.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel, Field

from conversation_intel.core.dependencies import EngineDep
from conversation_intel.core.errors import ABTestConfigurationError, ABTestStateError, NotFoundError
from conversation_intel.models.enums import ABTestStatus
from conversation_intel.models.schemas import ABTestConfiguration, ABTestCreate, ABTestOutcome


logger = logging.getLogger(__name__)

router = APIRouter()


# =============================================================================
# Local Pydantic Models for API Requests/Responses
# =============================================================================

class ABTestCreateResponse(BaseModel):
    """Response model for test creation."""
    testId: str = Field(..., description="Identifier of the new draft test")


class ABTestResultRequest(BaseModel):
    """Request body for recording an outcome."""
    variantId: str
    outcome: ABTestOutcome


def _http_error(e: Exception) -> HTTPException:
    """Map engine errors onto HTTP status codes."""
    if isinstance(e, NotFoundError):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, ABTestConfigurationError):
        return HTTPException(status_code=400, detail=str(e))
    if isinstance(e, ABTestStateError):
        return HTTPException(status_code=409, detail=str(e))
    return HTTPException(status_code=500, detail=str(e))


# =============================================================================
# Endpoints
# =============================================================================

@router.post("", response_model=ABTestCreateResponse, status_code=201)
async def create_ab_test(request: ABTestCreate, engine: EngineDep) -> ABTestCreateResponse:
    try:
        return ABTestCreateResponse(testId=engine.create_ab_test(request))
    except (ABTestConfigurationError, NotFoundError, ABTestStateError) as e:
        raise _http_error(e)
    except Exception as e:
        logger.error(f"Error creating A/B test: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to create A/B test: {str(e)}")


@router.get("", response_model=List[ABTestConfiguration])
async def list_ab_tests(
    engine: EngineDep,
    status: Optional[ABTestStatus] = Query(None, description="Filter by lifecycle status"),
) -> List[ABTestConfiguration]:
    try:
        return engine.list_ab_tests(status)
    except Exception as e:
        logger.error(f"Error listing A/B tests: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to list A/B tests: {str(e)}")


@router.get("/{test_id}", response_model=ABTestConfiguration)
async def get_ab_test(test_id: str, engine: EngineDep) -> ABTestConfiguration:
    try:
        return engine.get_ab_test(test_id)
    except NotFoundError as e:
        raise _http_error(e)
    except Exception as e:
        logger.error(f"Error retrieving A/B test {test_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to retrieve A/B test: {str(e)}")


@router.post("/{test_id}/start", response_model=ABTestConfiguration)
async def start_ab_test(test_id: str, engine: EngineDep) -> ABTestConfiguration:
    try:
        return engine.start_ab_test(test_id)
    except (NotFoundError, ABTestStateError) as e:
        raise _http_error(e)
    except Exception as e:
        logger.error(f"Error starting A/B test {test_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to start A/B test: {str(e)}")


@router.post("/{test_id}/pause", response_model=ABTestConfiguration)
async def pause_ab_test(test_id: str, engine: EngineDep) -> ABTestConfiguration:
    try:
        return engine.pause_ab_test(test_id)
    except (NotFoundError, ABTestStateError) as e:
        raise _http_error(e)
    except Exception as e:
        logger.error(f"Error pausing A/B test {test_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to pause A/B test: {str(e)}")


@router.post("/{test_id}/resume", response_model=ABTestConfiguration)
async def resume_ab_test(test_id: str, engine: EngineDep) -> ABTestConfiguration:
    try:
        return engine.resume_ab_test(test_id)
    except (NotFoundError, ABTestStateError) as e:
        raise _http_error(e)
    except Exception as e:
        logger.error(f"Error resuming A/B test {test_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to resume A/B test: {str(e)}")


@router.post("/{test_id}/results", response_model=ABTestConfiguration)
async def record_ab_test_result(
    test_id: str,
    request: ABTestResultRequest,
    engine: EngineDep,
) -> ABTestConfiguration:
    """Apply one outcome; outcomes for inactive tests are ignored."""
    try:
        return engine.update_ab_test_results(test_id, request.variantId, request.outcome)
    except NotFoundError as e:
        raise _http_error(e)
    except Exception as e:
        logger.error(f"Error recording result for A/B test {test_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to record A/B test result: {str(e)}")
