"""
Pytest Configuration and Shared Fixtures for Conversation Intelligence Tests.

This module provides fixtures and configuration for all tests, supporting:
- Async test execution with pytest-asyncio (registered through its entry point)
- Mock database pool fixtures for testing jobs without real database connections
- Mock external service fixtures (Slack webhook, generation service)
- In-memory conversation repository and lead scorer
- A controllable clock for cooldown and staleness tests
- A fully wired ConversationEngine built from test settings

Dependency References:
- conversation_intel/core/database.py: get_db_pool for database connections
- conversation_intel/core/config.py: Settings / get_settings
- conversation_intel/jobs/quality_alerts.py: WebhookClient for Slack integration
- conversation_intel/services/engine.py: build_engine
"""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Dict, Generator, List, Optional
from unittest.mock import AsyncMock, Mock, patch

import pytest

from conversation_intel.core.config import Settings
from conversation_intel.models.enums import LeadPriority
from conversation_intel.models.schemas import (
    ConversationMessage,
    ConversationRecord,
    LeadRecord,
    LeadScore,
)
from conversation_intel.services.engine import ConversationEngine, build_engine


# ============================================================
# PYTEST HOOKS
# ============================================================

def pytest_configure(config) -> None:
    """
    Configure custom pytest markers for test organization.

    Custom markers defined:
    - slow: Marks tests as slow (deselect with -m "not slow")
    - integration: Marks integration tests requiring external services
    """
    config.addinivalue_line(
        'markers',
        'slow: marks tests as slow (deselect with -m "not slow")'
    )
    config.addinivalue_line(
        'markers',
        'integration: marks tests requiring external service connectivity'
    )


# ============================================================
# TEST DOUBLES
# ============================================================

class FixedClock:
    """Clock returning a settable aware datetime; advance() moves it forward."""

    def __init__(self, now: Optional[datetime] = None):
        self.now = now or datetime(2026, 3, 2, 15, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


class InMemoryConversationRepository:
    """ConversationRepository backed by dictionaries."""

    def __init__(
        self,
        conversations: Optional[Dict[str, ConversationRecord]] = None,
        messages: Optional[Dict[str, List[ConversationMessage]]] = None,
        leads: Optional[Dict[str, LeadRecord]] = None,
    ):
        self.conversations = conversations or {}
        self.messages = messages or {}
        self.leads = leads or {}

    async def get_conversation(self, conversation_id: str) -> Optional[ConversationRecord]:
        return self.conversations.get(conversation_id)

    async def get_messages(self, conversation_id: str, limit: Optional[int] = None) -> List[ConversationMessage]:
        return list(self.messages.get(conversation_id, []))

    async def get_lead(self, lead_id: str) -> Optional[LeadRecord]:
        return self.leads.get(lead_id)


class StaticLeadScorer:
    """LeadScorer returning a fixed score, or raising when given an error."""

    def __init__(self, score: Optional[LeadScore] = None, error: Optional[Exception] = None):
        self._score = score
        self._error = error
        self.calls: List[str] = []

    async def score(self, lead_id: str) -> Optional[LeadScore]:
        self.calls.append(lead_id)
        if self._error is not None:
            raise self._error
        return self._score


class StubGenerationClient:
    """
    Generation client double.

    Returns `reply`, raises `error` when set, and sleeps `delay` seconds
    first so timeouts can be exercised. Every call is recorded.
    """

    configured = True

    def __init__(self, reply: str = '', error: Optional[Exception] = None, delay: float = 0.0):
        self.reply = reply
        self.error = error
        self.delay = delay
        self.calls: List[Dict[str, object]] = []

    async def generate(self, system_prompt, context, max_length=250, tone=None) -> str:
        self.calls.append({
            'system_prompt': system_prompt,
            'context': context,
            'max_length': max_length,
            'tone': tone,
        })
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.reply


# ============================================================
# DATABASE MOCK FIXTURES
# ============================================================

@pytest.fixture
def mock_db_pool() -> AsyncMock:
    """
    Create a mock asyncpg connection pool for testing database operations.

    Returns:
        AsyncMock: Mocked asyncpg pool whose acquire() yields a connection
        with execute / fetch / fetchrow / fetchval mocks.

    Usage:
        async def test_database_query(mock_db_pool):
            conn = mock_db_pool.acquire.return_value.__aenter__.return_value
            conn.fetchrow.return_value = {'last_sent_at': None}
    """
    pool = AsyncMock()

    conn = AsyncMock()
    conn.execute = AsyncMock(return_value=None)
    conn.fetch = AsyncMock(return_value=[])
    conn.fetchrow = AsyncMock(return_value=None)
    conn.fetchval = AsyncMock(return_value=None)

    acquire_context = AsyncMock()
    acquire_context.__aenter__ = AsyncMock(return_value=conn)
    acquire_context.__aexit__ = AsyncMock(return_value=None)
    pool.acquire = Mock(return_value=acquire_context)

    pool.release = AsyncMock(return_value=None)
    pool.close = AsyncMock(return_value=None)

    return pool


# ============================================================
# SETTINGS FIXTURES
# ============================================================

@pytest.fixture
def test_settings() -> Settings:
    """
    Settings isolated from the environment and any .env file.

    The generation timeout is short so timeout fallbacks run quickly.
    """
    return Settings(
        _env_file=None,
        database_url=None,
        openai_api_key=None,
        slack_webhook_url='https://hooks.slack.com/services/T000/B000/XXXX',
        generation_timeout_seconds=0.05,
        escalation_cooldown_seconds=900,
        alert_notification_window_minutes=60,
    )


@pytest.fixture
def mock_settings(test_settings: Settings) -> Generator[Settings, None, None]:
    """
    Patch get_settings where the jobs import it.

    Yields the settings instance so tests can change fields in place.
    """
    with patch('conversation_intel.jobs.quality_alerts.get_settings', return_value=test_settings), \
            patch('conversation_intel.jobs.personalization_tuning.get_settings', return_value=test_settings):
        yield test_settings


# ============================================================
# SLACK MOCK FIXTURE
# ============================================================

@pytest.fixture
def mock_slack_client() -> Generator[Mock, None, None]:
    """
    Patch slack_sdk WebhookClient in the alerts job.

    Yields:
        Mock: The patched WebhookClient class; its instance's send() returns
        a 200 response with body 'ok'.
    """
    with patch('conversation_intel.jobs.quality_alerts.WebhookClient') as mock_client_class:
        mock_instance = Mock()
        mock_response = Mock()
        mock_response.status_code = 200
        mock_response.body = 'ok'
        mock_instance.send.return_value = mock_response
        mock_client_class.return_value = mock_instance
        yield mock_client_class


# ============================================================
# ENGINE FIXTURES
# ============================================================

@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def repository() -> InMemoryConversationRepository:
    """
    Two conversations:
    - conv-1: lead-1 (Sarah, Honda CR-V) with one customer and one agent message
    - conv-orphan: references a lead that does not exist
    """
    return InMemoryConversationRepository(
        conversations={
            'conv-1': ConversationRecord(id='conv-1', leadId='lead-1'),
            'conv-orphan': ConversationRecord(id='conv-orphan', leadId='lead-missing'),
        },
        messages={
            'conv-1': [
                ConversationMessage(content="Hi, I'm looking at the CR-V", isFromAgent=False),
                ConversationMessage(content="Thanks for reaching out! How can I help?", isFromAgent=True),
            ],
        },
        leads={
            'lead-1': LeadRecord(
                id='lead-1', firstName='Sarah', lastName='Lee',
                vehicleInterest='Honda CR-V', source='website',
            ),
        },
    )


@pytest.fixture
def lead_scorer() -> StaticLeadScorer:
    return StaticLeadScorer(LeadScore(totalScore=65.0, priorityTier=LeadPriority.WARM))


@pytest.fixture
def generation() -> StubGenerationClient:
    return StubGenerationClient(reply="Happy to help, Sarah! Would you like to see the CR-V this week?")


@pytest.fixture
def engine(
    test_settings: Settings,
    repository: InMemoryConversationRepository,
    lead_scorer: StaticLeadScorer,
    generation: StubGenerationClient,
    clock: FixedClock,
) -> ConversationEngine:
    """Engine wired with the in-memory repository and stub generation."""
    return build_engine(
        test_settings,
        repository=repository,
        lead_scorer=lead_scorer,
        generation=generation,
        clock=clock,
    )
