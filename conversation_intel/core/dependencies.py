"""
FastAPI dependency injection module for the Conversation Intelligence backend.

Endpoint handlers receive the shared engine through this dependency
instead of importing globals, so tests can substitute it.

Key Dependencies Provided:
- get_engine / EngineDep: the ConversationEngine built in the app lifespan
  and stored on app.state.engine

Usage Examples:
    @router.post("/conversations/{conversation_id}/route")
    async def route_message(
        conversation_id: str,
        request: RouteRequest,
        engine: EngineDep,
    ) -> RouteResult:
        return await engine.route(conversation_id, request.message, request.senderId)
"""

from typing import Annotated

from fastapi import Depends, HTTPException, Request

from conversation_intel.services.engine import ConversationEngine


# =============================================================================
# Engine Dependency
# =============================================================================

def get_engine(request: Request) -> ConversationEngine:
    """
    Return the engine stored on the application state.

    Raises:
        HTTPException: 503 if the application lifespan has not built it.
    """
    engine = getattr(request.app.state, 'engine', None)
    if engine is None:
        raise HTTPException(status_code=503, detail="Conversation engine not initialized")
    return engine


# =============================================================================
# Type Aliases
# =============================================================================

EngineDep = Annotated[ConversationEngine, Depends(get_engine)]


__all__ = [
    'get_engine',
    'EngineDep',
]
