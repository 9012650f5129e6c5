"""
Conversation Intelligence Package.

FastAPI service layer for the sales conversation intelligence engine.
Classifies inbound customer messages, routes each one to an escalation,
automated reply, template or generated response, and tunes response
quality through A/B tests, effectiveness scoring and personalization.

Subpackages:
    - api: FastAPI route handlers
    - core: Configuration, database, errors and dependencies
    - models: Pydantic schemas and enums
    - services: Engine components and the pipeline façade
    - jobs: Scheduled alerting and personalization tuning jobs
    - sql: Parameterized SQL queries
"""

__version__ = "1.0.0"
