"""
API package initialization.

This package contains the FastAPI router modules of the Conversation
Intelligence service:
- conversations: analysis, routing, optimized responses and ranking
- ab_tests: A/B test lifecycle and results
- quality: effectiveness scoring, profiles, recommendations and monitoring
- escalations: escalation alerts and routing metrics
"""

from fastapi import APIRouter

# Import router modules
from conversation_intel.api.conversations import router as conversations_router
from conversation_intel.api.ab_tests import router as ab_tests_router
from conversation_intel.api.quality import router as quality_router
from conversation_intel.api.escalations import router as escalations_router

# Create main API router
api_router = APIRouter()

# Include all sub-routers
api_router.include_router(conversations_router, prefix="/conversations", tags=["conversations"])
api_router.include_router(ab_tests_router, prefix="/ab-tests", tags=["ab-tests"])
api_router.include_router(quality_router, prefix="/quality", tags=["quality"])
api_router.include_router(escalations_router, tags=["escalations"])  # escalations router carries full paths

# Export all routers for selective imports
__all__ = [
    "api_router",
    "conversations_router",
    "ab_tests_router",
    "quality_router",
    "escalations_router",
]
