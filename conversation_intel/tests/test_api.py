"""
API tests for the FastAPI routers.

The TestClient is used without its context manager so the application
lifespan (database pool, notifier task) does not run; the engine fixture is
placed on app.state directly.
"""

from typing import Generator

import pytest
from fastapi.testclient import TestClient

from conversation_intel.main import app
from conversation_intel.services.engine import ConversationEngine


@pytest.fixture
def client(engine: ConversationEngine) -> Generator[TestClient, None, None]:
    app.state.engine = engine
    yield TestClient(app)
    app.state.engine = None


def ab_test_body(weights=(60, 40)) -> dict:
    return {
        'name': 'Friendly vs professional',
        'variants': [
            {'id': 'friendly', 'name': 'Friendly', 'weight': weights[0], 'strategy': {'tone': 'friendly'}},
            {'id': 'professional', 'name': 'Professional', 'weight': weights[1], 'strategy': {'tone': 'professional'}},
        ],
        'requiredSampleSize': 100,
    }


class TestHealth:

    def test_health_reports_engine(self, client: TestClient) -> None:
        response = client.get('/health')

        assert response.status_code == 200
        assert response.json() == {'status': 'healthy', 'engine': True}

    def test_missing_engine_is_unavailable(self) -> None:
        app.state.engine = None

        response = TestClient(app).get('/routing/metrics')

        assert response.status_code == 503


class TestConversationEndpoints:

    def test_analyze(self, client: TestClient) -> None:
        response = client.post('/conversations/analyze', json={
            'message': "I'm ready to buy today!",
            'conversationId': 'conv-9',
        })

        assert response.status_code == 200
        body = response.json()
        assert body['conversationId'] == 'conv-9'
        assert body['intent'] == 'ready_to_buy'
        assert 'ready to buy' in body['buyingSignals']

    def test_route(self, client: TestClient) -> None:
        response = client.post('/conversations/conv-1/route', json={'message': 'What are your hours?'})

        assert response.status_code == 200
        body = response.json()
        assert body['decision']['routingType'] == 'automated_action'
        assert body['suggestedResponse']

    def test_route_unknown_conversation(self, client: TestClient) -> None:
        response = client.post('/conversations/missing/route', json={'message': 'Hello'})

        assert response.status_code == 404
        assert 'missing' in response.json()['detail']

    def test_route_updates_metrics(self, client: TestClient) -> None:
        client.post('/conversations/conv-1/route', json={'message': 'Can I schedule a test drive?'})

        response = client.get('/routing/metrics')

        assert response.status_code == 200
        assert response.json()['templateBased'] == 1

    def test_escalation_alerts_listed(self, client: TestClient) -> None:
        client.post('/conversations/conv-1/route', json={'message': "I'm ready to buy"})

        response = client.get('/escalations/alerts', params={'limit': 5})

        assert response.status_code == 200
        alerts = response.json()
        assert len(alerts) == 1
        assert alerts[0]['triggerType'] == 'buying_signal'


class TestABTestEndpoints:

    def test_create_and_fetch(self, client: TestClient) -> None:
        created = client.post('/ab-tests', json=ab_test_body())

        assert created.status_code == 201
        test_id = created.json()['testId']

        fetched = client.get(f'/ab-tests/{test_id}')
        assert fetched.status_code == 200
        assert fetched.json()['status'] == 'draft'

    def test_bad_weights_rejected(self, client: TestClient) -> None:
        response = client.post('/ab-tests', json=ab_test_body(weights=(60, 30)))

        assert response.status_code == 400
        assert '100' in response.json()['detail']

    def test_unknown_test(self, client: TestClient) -> None:
        assert client.get('/ab-tests/missing').status_code == 404

    def test_double_start_conflicts(self, client: TestClient) -> None:
        test_id = client.post('/ab-tests', json=ab_test_body()).json()['testId']

        first = client.post(f'/ab-tests/{test_id}/start')
        second = client.post(f'/ab-tests/{test_id}/start')

        assert first.status_code == 200
        assert first.json()['status'] == 'active'
        assert second.status_code == 409


class TestQualityEndpoints:

    def test_score(self, client: TestClient) -> None:
        response = client.post('/quality/score', json={
            'response': 'Thanks Sarah! Would you like to schedule a test drive this week?',
            'originalMessage': 'Can I test drive it?',
            'context': {'lead': {'firstName': 'Sarah'}},
        })

        assert response.status_code == 200
        assert 0 <= response.json()['overallScore'] <= 100

    def test_profiles(self, client: TestClient) -> None:
        response = client.get('/quality/profiles')

        assert response.status_code == 200
        assert {p['segment'] for p in response.json()} == {
            'luxury', 'commercial', 'first_time_buyer', 'family', 'performance',
        }
