"""
Generation service client and prompt construction.

The language model is an external collaborator: given a system prompt, the
conversation context and constraints (maximum length, tone) it returns text
or fails. Every failure mode (timeout, rate limit, API error, empty or
malformed output, missing credentials) is raised as GenerationError so the
pipeline can fall back to a template or a generic acknowledgment.

Callers additionally wrap generate() in asyncio.wait_for with the configured
timeout; see services/engine.py.
"""

import logging
from typing import List, Optional, Sequence

from openai import APIError, APITimeoutError, AsyncOpenAI, RateLimitError

from conversation_intel.core.config import Settings, get_settings
from conversation_intel.core.errors import GenerationError
from conversation_intel.models.enums import (
    PersonalizationLevel,
    ResponseLength,
    ResponseTone,
    ResponseType,
    Urgency,
)
from conversation_intel.models.schemas import (
    ConversationAnalysis,
    ConversationMessage,
    LeadContext,
    PersonalizationProfile,
    ResponseStrategy,
)


logger = logging.getLogger(__name__)


# Target character counts per length bucket
RESPONSE_LENGTH_CHARS = {
    ResponseLength.BRIEF: 150,
    ResponseLength.MODERATE: 250,
    ResponseLength.DETAILED: 400,
}

HISTORY_WINDOW = 6


class GenerationClient:
    """
    OpenAI-compatible chat completion client.

    Args:
        settings: Application settings (model, key, timeout, token budget).
        client: Pre-built AsyncOpenAI client; built from settings when omitted.
    """

    def __init__(self, settings: Optional[Settings] = None, client: Optional[AsyncOpenAI] = None):
        self.settings = settings or get_settings()
        self.model = self.settings.generation_model
        self.client = client
        if self.client is None and self.settings.openai_api_key:
            self.client = AsyncOpenAI(
                api_key=self.settings.openai_api_key,
                base_url=self.settings.openai_base_url,
                timeout=self.settings.generation_timeout_seconds,
                max_retries=0,
            )

    @property
    def configured(self) -> bool:
        return self.client is not None

    async def generate(
        self,
        system_prompt: str,
        context: str,
        max_length: int = 250,
        tone: ResponseTone = ResponseTone.PROFESSIONAL,
    ) -> str:
        """
        Generate a reply.

        Args:
            system_prompt: Instructions for the model.
            context: Conversation context and the message to answer.
            max_length: Maximum reply length in characters.
            tone: Requested tone, repeated in the instructions.

        Returns:
            str: Generated reply, trimmed to max_length.

        Raises:
            GenerationError: On any failure of the generation service.
        """
        if self.client is None:
            raise GenerationError('Generation service is not configured (OPENAI_API_KEY missing)')

        messages = [
            {'role': 'system', 'content': f"{system_prompt}\nTone: {tone.value}."},
            {'role': 'user', 'content': context},
        ]

        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=self.settings.generation_temperature,
                max_tokens=self.settings.generation_max_tokens,
            )
        except APITimeoutError as e:
            raise GenerationError(f"Generation timed out: {e}") from e
        except RateLimitError as e:
            raise GenerationError(f"Generation rate limited: {e}") from e
        except APIError as e:
            raise GenerationError(f"Generation API error: {e}") from e

        if not response.choices:
            raise GenerationError('No choices returned from generation service')

        text = (response.choices[0].message.content or '').strip()
        if not text:
            raise GenerationError('Empty response from generation service')

        logger.debug(f"Generated {len(text)} characters with model={self.model}")
        return trim_to_length(text, max_length)


# =============================================================================
# Prompt construction
# =============================================================================

def trim_to_length(text: str, max_length: int) -> str:
    """Cut text to max_length, preferring the last sentence boundary."""
    if len(text) <= max_length:
        return text
    cut = text[:max_length]
    boundary = max(cut.rfind('. '), cut.rfind('! '), cut.rfind('? '))
    if boundary > max_length // 2:
        return cut[:boundary + 1]
    return cut.rstrip()


def build_system_prompt(
    strategy: ResponseStrategy,
    response_type: ResponseType,
    profile: Optional[PersonalizationProfile] = None,
) -> str:
    max_chars = RESPONSE_LENGTH_CHARS[strategy.responseLength]
    lines: List[str] = [
        'You are a helpful automotive sales assistant replying to a customer by text or email.',
        f"Write a {response_type.value.replace('_', ' ')} reply of at most {max_chars} characters.",
        'Never invent prices, inventory or appointment times that are not in the context.',
    ]

    if strategy.personalizationLevel == PersonalizationLevel.HIGH:
        lines.append("Address the customer by name and reference their vehicle of interest.")
    elif strategy.personalizationLevel == PersonalizationLevel.MEDIUM:
        lines.append("Reference the customer's vehicle of interest where it fits.")

    if strategy.includeOffers:
        lines.append('Mention that current incentives are available.')
    if strategy.urgencyLevel in (Urgency.HIGH, Urgency.CRITICAL):
        lines.append('Encourage a prompt next step without being pushy.')

    if profile is not None:
        lines.append(
            f"Preferred topics for this customer segment: {', '.join(profile.contentPreferences)}."
        )

    lines.append('End with one clear question or call to action.')
    return '\n'.join(lines)


def build_context(
    message: str,
    history: Sequence[ConversationMessage],
    analysis: Optional[ConversationAnalysis] = None,
    lead_context: Optional[LeadContext] = None,
) -> str:
    lead = lead_context or LeadContext()
    parts = []
    if lead.firstName:
        parts.append(f"Customer name: {lead.firstName}")
    if lead.vehicleInterest:
        parts.append(f"Vehicle of interest: {lead.vehicleInterest}")
    if analysis is not None:
        parts.append(
            f"Detected mood: {analysis.mood.value}; urgency: {analysis.urgency.value}; "
            f"intent: {analysis.intent.value}"
        )
        if analysis.buyingSignals:
            parts.append(f"Buying signals: {', '.join(analysis.buyingSignals)}")

    recent = list(history)[-HISTORY_WINDOW:]
    if recent:
        parts.append('Recent conversation:')
        for item in recent:
            speaker = 'Agent' if item.isFromAgent else 'Customer'
            parts.append(f"{speaker}: {item.content}")

    parts.append(f"Customer message to answer: {message}")
    return '\n'.join(parts)


__all__ = [
    'GenerationClient',
    'RESPONSE_LENGTH_CHARS',
    'trim_to_length',
    'build_system_prompt',
    'build_context',
]
