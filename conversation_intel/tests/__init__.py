'''
Conversation Intelligence Test Suite

Test Modules:
-------------
- test_analyzer.py: mood / urgency / intent classification, recommendations,
  confidence and priority ranking
- test_template_matcher.py: template scoring, best match and fallback
- test_escalation.py: trigger conditions, cooldowns and alert buffers
- test_routing.py: decision order, AI confidence, priority table and
  response builders
- test_ab_testing.py: configuration validation, lifecycle, variant selection
  and winner selection
- test_effectiveness.py: dimension scoring, impact bonus, benchmarks and the
  neutral score on failure
- test_personalization.py: segments and batch profile tuning
- test_quality_monitoring.py: metrics, trend, decline alerts and anomalies
- test_quality_optimizer.py: strategy selection and recommendations
- test_generation.py: generation client errors and prompt construction
- test_engine.py: end-to-end routing with generation fallbacks
- test_jobs.py: Slack alert idempotency and profile tuning jobs
- test_api.py: FastAPI endpoints and error mapping

Running Tests:
--------------
    pip install -e ".[test]"
    pytest -v

Configuration:
--------------
See conftest.py for shared fixtures and test configuration.
'''

__all__ = []
