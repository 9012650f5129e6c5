"""
Exception taxonomy for the conversation intelligence engine.

Four failure families exist:
- Input errors (NotFoundError): a conversation or lead is missing. Surfaced to
  the caller as a typed failure and never retried.
- Generation errors (GenerationError): timeout, rate limit or malformed output
  from the language model. Always recovered locally by falling back to a
  template or a generic acknowledgment.
- Configuration errors (ABTestConfigurationError, ABTestStateError): rejected
  synchronously when an experiment is created or transitioned.
- Scoring errors: never raised to callers; the optimizer substitutes a
  neutral score.

The API layer maps these onto HTTP status codes (404, 400, 409).
"""


class ConversationIntelError(Exception):
    """Base class for all engine errors."""
    pass


class NotFoundError(ConversationIntelError):
    """Raised when a conversation, lead, template or test does not exist."""

    def __init__(self, entity: str, entity_id: str):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found: {entity_id}")


class GenerationError(ConversationIntelError):
    """Raised when the generation service fails or returns unusable output."""
    pass


class ABTestConfigurationError(ConversationIntelError):
    """Raised when an A/B test configuration is malformed."""
    pass


class ABTestStateError(ConversationIntelError):
    """Raised on an invalid A/B test lifecycle transition."""
    pass


__all__ = [
    'ConversationIntelError',
    'NotFoundError',
    'GenerationError',
    'ABTestConfigurationError',
    'ABTestStateError',
]
