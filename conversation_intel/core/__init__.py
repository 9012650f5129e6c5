"""
Core infrastructure package for the Conversation Intelligence backend.

Provides:
- Configuration management via pydantic-settings
- Async PostgreSQL connectivity via asyncpg
- The engine exception taxonomy

This module re-exports key components from submodules for convenient
importing:

    from conversation_intel.core import get_settings, init_db, NotFoundError

FastAPI dependencies live in conversation_intel.core.dependencies and are
imported from there directly, since they depend on the services layer.

Usage Examples:
    # Database pool lifecycle (in FastAPI lifespan)
    from conversation_intel.core import init_db, close_db

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await init_db()
        yield
        await close_db()
"""

# =============================================================================
# Re-exports from conversation_intel.core.config
# =============================================================================
from conversation_intel.core.config import Settings, get_settings

# =============================================================================
# Re-exports from conversation_intel.core.database
# =============================================================================
from conversation_intel.core.database import (
    init_db,
    close_db,
    get_db_pool,
    execute_query,
    execute_query_one,
    execute_many,
)

# =============================================================================
# Re-exports from conversation_intel.core.errors
# =============================================================================
from conversation_intel.core.errors import (
    ConversationIntelError,
    NotFoundError,
    GenerationError,
    ABTestConfigurationError,
    ABTestStateError,
)


__all__ = [
    'Settings',
    'get_settings',
    'init_db',
    'close_db',
    'get_db_pool',
    'execute_query',
    'execute_query_one',
    'execute_many',
    'ConversationIntelError',
    'NotFoundError',
    'GenerationError',
    'ABTestConfigurationError',
    'ABTestStateError',
]
