"""
Pytest test module for the notification and tuning jobs.

Test Classes:
- TestAlertState: check_recently_sent / mark_alert_sent against job_alert_state
- TestEscalationAlerts: draining engine alerts to Slack with idempotency
- TestQualityAlerts: quality monitoring over stored scores
- TestPersonalizationTuning: profile recomputation and persistence

Internal Dependencies:
- conversation_intel/jobs/quality_alerts.py
- conversation_intel/jobs/personalization_tuning.py
- conversation_intel/tests/conftest.py: mock fixtures (auto-discovered)
"""

from datetime import datetime, timedelta, timezone
from typing import List
from unittest.mock import AsyncMock, Mock, patch

import pytest

from conversation_intel.jobs.personalization_tuning import run_personalization_tuning
from conversation_intel.jobs.quality_alerts import (
    check_recently_sent,
    mark_alert_sent,
    send_escalation_alerts,
    send_quality_alerts,
)
from conversation_intel.models.enums import LeadSegment, RelativePerformance, ResponseTone
from conversation_intel.models.schemas import (
    BenchmarkComparison,
    ResponseDimensions,
    ResponseEffectivenessScore,
    ResponseImpact,
    SegmentPerformance,
)
from conversation_intel.services.quality_optimizer import ResponseQualityOptimizer
from conversation_intel.sql import ESCALATION_ALERT_JOB, QUALITY_ALERT_JOB


# Mark all tests in this module as async
pytestmark = pytest.mark.asyncio


NOW = datetime(2026, 3, 2, 15, 0, tzinfo=timezone.utc)

DB_POOL = 'conversation_intel.jobs.quality_alerts.get_db_pool'


def scores(values: List[float]) -> List[ResponseEffectivenessScore]:
    return [
        ResponseEffectivenessScore(
            responseId=f"resp-{i}",
            overallScore=value,
            dimensions=ResponseDimensions(
                relevance=value, clarity=value, engagement=value,
                personalization=value, actionability=value, professionalism=value,
            ),
            impact=ResponseImpact(),
            benchmarkComparison=BenchmarkComparison(
                industryAverage=72.0, topPerformer=88.0,
                relativePerformance=RelativePerformance.AVERAGE,
            ),
            scoredAt=NOW,
        )
        for i, value in enumerate(values)
    ]


# =============================================================================
# Test Class: TestAlertState
# =============================================================================

class TestAlertState:

    async def test_recent_send_is_detected(self, mock_db_pool: AsyncMock) -> None:
        # Arrange
        mock_conn = mock_db_pool.acquire.return_value.__aenter__.return_value
        mock_conn.fetchrow.return_value = {'last_sent_at': NOW - timedelta(minutes=10)}

        # Act
        with patch(DB_POOL, new=AsyncMock(return_value=mock_db_pool)):
            result = await check_recently_sent(ESCALATION_ALERT_JOB, 'conv-1:buying_signal', 60, NOW)

        # Assert
        assert result is True
        args = mock_conn.fetchrow.call_args.args
        assert args[1:] == (ESCALATION_ALERT_JOB, 'conv-1:buying_signal')

    async def test_old_send_is_not_recent(self, mock_db_pool: AsyncMock) -> None:
        mock_conn = mock_db_pool.acquire.return_value.__aenter__.return_value
        mock_conn.fetchrow.return_value = {'last_sent_at': NOW - timedelta(minutes=90)}

        with patch(DB_POOL, new=AsyncMock(return_value=mock_db_pool)):
            result = await check_recently_sent(QUALITY_ALERT_JOB, 'quality_decline:2026030215', 60, NOW)

        assert result is False

    async def test_never_sent(self, mock_db_pool: AsyncMock) -> None:
        with patch(DB_POOL, new=AsyncMock(return_value=mock_db_pool)):
            result = await check_recently_sent(QUALITY_ALERT_JOB, 'anything', 60, NOW)

        assert result is False

    async def test_mark_alert_sent_upserts(self, mock_db_pool: AsyncMock) -> None:
        mock_conn = mock_db_pool.acquire.return_value.__aenter__.return_value

        with patch(DB_POOL, new=AsyncMock(return_value=mock_db_pool)):
            await mark_alert_sent(ESCALATION_ALERT_JOB, 'conv-1:complaint', NOW)

        mock_conn.execute.assert_called_once()
        assert mock_conn.execute.call_args.args[1:] == (ESCALATION_ALERT_JOB, 'conv-1:complaint', NOW)


# =============================================================================
# Test Class: TestEscalationAlerts
# =============================================================================

class TestEscalationAlerts:

    async def test_sends_pending_alert(
        self,
        engine,
        mock_db_pool: AsyncMock,
        mock_settings,
        mock_slack_client: Mock,
    ) -> None:
        # Arrange: one buying-signal escalation pending
        engine.triggers.evaluate("I'm ready to buy", conversation_id='conv-1')
        mock_conn = mock_db_pool.acquire.return_value.__aenter__.return_value

        # Act
        with patch(DB_POOL, new=AsyncMock(return_value=mock_db_pool)):
            result = await send_escalation_alerts(engine, now=NOW)

        # Assert
        assert result == {'success': True, 'alerts_sent': 1}
        mock_slack_client.assert_called_once_with(mock_settings.slack_webhook_url)
        send_kwargs = mock_slack_client.return_value.send.call_args.kwargs
        assert 'conv-1' in str(send_kwargs['blocks'])
        mock_conn.execute.assert_called_once()
        assert mock_conn.execute.call_args.args[2] == 'conv-1:buying_signal'
        assert engine.drain_alerts() == []

    async def test_skips_recently_sent(
        self,
        engine,
        mock_db_pool: AsyncMock,
        mock_settings,
        mock_slack_client: Mock,
    ) -> None:
        engine.triggers.evaluate("I'm ready to buy", conversation_id='conv-1')
        mock_conn = mock_db_pool.acquire.return_value.__aenter__.return_value
        mock_conn.fetchrow.return_value = {'last_sent_at': NOW - timedelta(minutes=5)}

        with patch(DB_POOL, new=AsyncMock(return_value=mock_db_pool)):
            result = await send_escalation_alerts(engine, now=NOW)

        assert result['skipped'] is True
        mock_slack_client.return_value.send.assert_not_called()

    async def test_force_bypasses_idempotency(
        self,
        engine,
        mock_db_pool: AsyncMock,
        mock_settings,
        mock_slack_client: Mock,
    ) -> None:
        engine.triggers.evaluate("I'm ready to buy", conversation_id='conv-1')
        mock_conn = mock_db_pool.acquire.return_value.__aenter__.return_value
        mock_conn.fetchrow.return_value = {'last_sent_at': NOW - timedelta(minutes=5)}

        with patch(DB_POOL, new=AsyncMock(return_value=mock_db_pool)):
            result = await send_escalation_alerts(engine, now=NOW, force=True)

        assert result['alerts_sent'] == 1
        mock_conn.fetchrow.assert_not_called()

    async def test_nothing_pending(self, engine, mock_settings, mock_slack_client: Mock) -> None:
        result = await send_escalation_alerts(engine, now=NOW)

        assert result['success'] is True
        assert result['skipped'] is True
        mock_slack_client.assert_not_called()

    async def test_missing_webhook(self, engine, mock_settings) -> None:
        mock_settings.slack_webhook_url = None

        result = await send_escalation_alerts(engine, now=NOW)

        assert result['success'] is False
        assert 'SLACK_WEBHOOK_URL' in result['error']

    async def test_slack_failure_is_not_marked(
        self,
        engine,
        mock_db_pool: AsyncMock,
        mock_settings,
        mock_slack_client: Mock,
    ) -> None:
        engine.triggers.evaluate("I'm ready to buy", conversation_id='conv-1')
        mock_slack_client.return_value.send.return_value.status_code = 500
        mock_slack_client.return_value.send.return_value.body = 'server_error'
        mock_conn = mock_db_pool.acquire.return_value.__aenter__.return_value

        with patch(DB_POOL, new=AsyncMock(return_value=mock_db_pool)):
            result = await send_escalation_alerts(engine, now=NOW)

        assert result['success'] is False
        assert '500' in result['error']
        mock_conn.execute.assert_not_called()

    async def test_failed_alert_is_delivered_on_next_run(
        self,
        engine,
        mock_db_pool: AsyncMock,
        mock_settings,
        mock_slack_client: Mock,
    ) -> None:
        engine.triggers.evaluate("I'm ready to buy", conversation_id='conv-1')
        response = mock_slack_client.return_value.send.return_value
        response.status_code = 500
        response.body = 'server_error'

        with patch(DB_POOL, new=AsyncMock(return_value=mock_db_pool)):
            failed = await send_escalation_alerts(engine, now=NOW)
            response.status_code = 200
            response.body = 'ok'
            retried = await send_escalation_alerts(engine, now=NOW + timedelta(minutes=1))

        assert failed['success'] is False
        assert retried == {'success': True, 'alerts_sent': 1}
        assert mock_slack_client.return_value.send.call_count == 2
        assert 'conv-1' in str(mock_slack_client.return_value.send.call_args.kwargs['blocks'])
        assert engine.drain_alerts() == []

    async def test_state_table_errors_do_not_block_delivery(
        self,
        engine,
        mock_settings,
        mock_slack_client: Mock,
    ) -> None:
        engine.triggers.evaluate("I'm ready to buy", conversation_id='conv-1')

        with patch(DB_POOL, new=AsyncMock(side_effect=ConnectionError('no database'))):
            result = await send_escalation_alerts(engine, now=NOW)

        assert result == {'success': True, 'alerts_sent': 1}


# =============================================================================
# Test Class: TestQualityAlerts
# =============================================================================

class TestQualityAlerts:

    async def test_decline_is_posted(
        self,
        mock_db_pool: AsyncMock,
        mock_settings,
        mock_slack_client: Mock,
    ) -> None:
        fetch = AsyncMock(side_effect=[scores([68] * 5), scores([80] * 5)])

        with patch('conversation_intel.jobs.quality_alerts.fetch_response_scores', new=fetch), \
                patch(DB_POOL, new=AsyncMock(return_value=mock_db_pool)):
            result = await send_quality_alerts(now=NOW)

        assert result['success'] is True
        assert result['alerts_sent'] == 1
        assert result['trend'] == 'declining'
        assert result['average_score'] == 68.0
        # Current window first, then the window before it
        assert fetch.call_args_list[0].args[1] == NOW
        assert fetch.call_args_list[1].args[1] == fetch.call_args_list[0].args[0]
        mock_slack_client.return_value.send.assert_called_once()

    async def test_no_scores_skips(self, mock_settings, mock_slack_client: Mock) -> None:
        fetch = AsyncMock(side_effect=[[], []])

        with patch('conversation_intel.jobs.quality_alerts.fetch_response_scores', new=fetch):
            result = await send_quality_alerts(now=NOW)

        assert result['skipped'] is True
        mock_slack_client.assert_not_called()

    async def test_stable_quality_skips(self, mock_settings, mock_slack_client: Mock) -> None:
        fetch = AsyncMock(side_effect=[scores([79, 80, 81]), scores([80, 80, 80])])

        with patch('conversation_intel.jobs.quality_alerts.fetch_response_scores', new=fetch):
            result = await send_quality_alerts(now=NOW)

        assert result['skipped'] is True
        assert result['reason'] == 'No quality alerts raised'

    async def test_load_failure_is_reported(self, mock_settings, mock_slack_client: Mock) -> None:
        fetch = AsyncMock(side_effect=ConnectionError('database unavailable'))

        with patch('conversation_intel.jobs.quality_alerts.fetch_response_scores', new=fetch):
            result = await send_quality_alerts(now=NOW)

        assert result['success'] is False
        assert 'database unavailable' in result['error']


# =============================================================================
# Test Class: TestPersonalizationTuning
# =============================================================================

class TestPersonalizationTuning:

    async def test_updates_and_saves_profiles(self, mock_settings) -> None:
        optimizer = ResponseQualityOptimizer(mock_settings)
        rows = [
            SegmentPerformance(
                segment=LeadSegment.FAMILY, tone=ResponseTone.FRIENDLY, sampleSize=40,
                averageScore=82.0, replyRate=0.6, averageNameMentions=2.0,
                topTopics=['safety'],
            ),
        ]
        save = AsyncMock()

        with patch(
            'conversation_intel.jobs.personalization_tuning.fetch_segment_performance',
            new=AsyncMock(return_value=rows),
        ), patch('conversation_intel.jobs.personalization_tuning.save_profiles', new=save):
            result = await run_personalization_tuning(optimizer, window_days=14, now=NOW)

        assert result == {'success': True, 'segments_updated': ['family'], 'rows': 1}
        saved = save.call_args.args[0]
        assert [p.segment for p in saved] == [LeadSegment.FAMILY]
        assert optimizer.get_profile(LeadSegment.FAMILY).effectiveness == 82.0

    async def test_no_rows_skips(self, mock_settings) -> None:
        save = AsyncMock()

        with patch(
            'conversation_intel.jobs.personalization_tuning.load_profiles',
            new=AsyncMock(return_value=[]),
        ), patch(
            'conversation_intel.jobs.personalization_tuning.fetch_segment_performance',
            new=AsyncMock(return_value=[]),
        ), patch('conversation_intel.jobs.personalization_tuning.save_profiles', new=save):
            result = await run_personalization_tuning(now=NOW)

        assert result['skipped'] is True
        save.assert_not_called()

    async def test_persist_failure_is_reported(self, mock_settings) -> None:
        rows = [SegmentPerformance(segment=LeadSegment.LUXURY, sampleSize=30, averageScore=75.0)]

        with patch(
            'conversation_intel.jobs.personalization_tuning.fetch_segment_performance',
            new=AsyncMock(return_value=rows),
        ), patch(
            'conversation_intel.jobs.personalization_tuning.save_profiles',
            new=AsyncMock(side_effect=ConnectionError('write failed')),
        ):
            result = await run_personalization_tuning(ResponseQualityOptimizer(mock_settings), now=NOW)

        assert result['success'] is False
        assert 'write failed' in result['error']
