"""
Template Matcher Service.

Scores the response template catalog against the current message and context
and returns the best match with its 0-100 score.

Scoring (per template):
    25 x use-condition keywords present in the message
  + 20 if any automotive-focus tag matches the lead's vehicle interest
  + category relevance for the detected intent (CATEGORY_RELEVANCE, default 10)
  + 0.3 x template effectiveness
  capped at 100.

When the catalog is empty or every template scores 0, the designated
"acknowledge and redirect" template is returned with score 0 so the router's
threshold defers elsewhere.

The matcher owns its template catalog. Template effectiveness is the only
mutable state and is updated under a lock.
"""

import logging
import threading
from typing import Iterable, List, Optional

from conversation_intel.core.errors import NotFoundError
from conversation_intel.models.enums import Intent
from conversation_intel.models.schemas import LeadContext, ResponseTemplate, TemplateMatch
from conversation_intel.services.catalogs import (
    CATEGORY_RELEVANCE,
    DEFAULT_CATEGORY_RELEVANCE,
    FOCUS_ALL,
    default_fallback_template,
    default_templates,
)


logger = logging.getLogger(__name__)


KEYWORD_POINTS = 25.0
FOCUS_POINTS = 20.0
EFFECTIVENESS_FACTOR = 0.3
MAX_SCORE = 100.0


class TemplateMatcher:
    """Scores and serves response templates."""

    def __init__(
        self,
        templates: Optional[Iterable[ResponseTemplate]] = None,
        fallback: Optional[ResponseTemplate] = None,
    ):
        catalog = default_templates() if templates is None else list(templates)
        self._templates = {t.id: t for t in catalog}
        self._fallback = fallback or default_fallback_template()
        self._lock = threading.RLock()

    @property
    def templates(self) -> List[ResponseTemplate]:
        with self._lock:
            return list(self._templates.values())

    @property
    def fallback(self) -> ResponseTemplate:
        return self._fallback

    def get_template(self, template_id: str) -> ResponseTemplate:
        if template_id == self._fallback.id:
            return self._fallback
        with self._lock:
            template = self._templates.get(template_id)
        if template is None:
            raise NotFoundError('template', template_id)
        return template

    def score_template(
        self,
        template: ResponseTemplate,
        message: str,
        intent: Intent,
        lead_context: Optional[LeadContext] = None,
    ) -> float:
        """Score one template against a message; see module docstring."""
        text = (message or '').lower()
        interest = ((lead_context.vehicleInterest if lead_context else None) or '').lower()

        keyword_hits = sum(1 for keyword in template.useConditions if keyword.lower() in text)
        score = KEYWORD_POINTS * keyword_hits

        if interest and any(
            tag == FOCUS_ALL or tag.lower() in interest for tag in template.automotiveFocus
        ):
            score += FOCUS_POINTS

        score += CATEGORY_RELEVANCE.get(template.category, {}).get(intent, DEFAULT_CATEGORY_RELEVANCE)
        score += EFFECTIVENESS_FACTOR * template.effectiveness

        return min(MAX_SCORE, score)

    def best_match(
        self,
        message: str,
        intent: Intent,
        lead_context: Optional[LeadContext] = None,
    ) -> TemplateMatch:
        """
        Highest-scoring template for the message.

        Ties resolve to the template listed first in the catalog.

        Returns:
            TemplateMatch: The best template and its score, or the fallback
            template with score 0 when nothing scores above zero.
        """
        best: Optional[TemplateMatch] = None
        for template in self.templates:
            score = self.score_template(template, message, intent, lead_context)
            if best is None or score > best.score:
                best = TemplateMatch(template=template, score=score)

        if best is None or best.score <= 0:
            return TemplateMatch(template=self._fallback, score=0.0)

        logger.debug(f"Best template match: {best.template.id} ({best.score:.1f})")
        return best

    def update_effectiveness(self, template_id: str, effectiveness: float) -> ResponseTemplate:
        """
        Replace a template's effectiveness score (clamped to 0-100).

        Raises:
            NotFoundError: If the template id is unknown.
        """
        clamped = max(0.0, min(100.0, float(effectiveness)))
        with self._lock:
            template = self._templates.get(template_id)
            if template is None:
                raise NotFoundError('template', template_id)
            template.effectiveness = clamped
        logger.info(f"Template {template_id} effectiveness set to {clamped:.1f}")
        return template


__all__ = ['TemplateMatcher']
