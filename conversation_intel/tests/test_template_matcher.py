"""
Tests for template scoring and selection.
"""

import pytest

from conversation_intel.core.errors import NotFoundError
from conversation_intel.models.enums import Intent, TemplateCategory
from conversation_intel.models.schemas import LeadContext, ResponseTemplate
from conversation_intel.services.catalogs import DEFAULT_TEMPLATE_ID
from conversation_intel.services.template_matcher import TemplateMatcher


@pytest.fixture
def matcher() -> TemplateMatcher:
    return TemplateMatcher()


def make_template(template_id: str, **overrides) -> ResponseTemplate:
    fields = dict(
        id=template_id,
        name=template_id,
        category=TemplateCategory.FOLLOWUP,
        content='Checking in about [VEHICLE_INTEREST].',
        useConditions=['checking in'],
        automotiveFocus=['all'],
        effectiveness=60,
    )
    fields.update(overrides)
    return ResponseTemplate(**fields)


class TestScoring:

    def test_pricing_question_picks_pricing_template(self, matcher: TemplateMatcher) -> None:
        lead = LeadContext(firstName='Ana', vehicleInterest='Toyota Camry sedan')

        match = matcher.best_match("How much does it cost?", Intent.PRICE_FOCUSED, lead)

        assert match.template.id == 'pricing_info'
        assert match.score == 100.0

    def test_score_grows_with_matched_keywords(self, matcher: TemplateMatcher) -> None:
        template = matcher.get_template('financing_options')

        none = matcher.score_template(template, "hello", Intent.RESEARCH)
        one = matcher.score_template(template, "any financing?", Intent.RESEARCH)
        two = matcher.score_template(template, "financing or a loan?", Intent.RESEARCH)

        assert none < one < two
        assert one - none == pytest.approx(25.0)
        assert two == 100.0

    def test_focus_tag_requires_matching_interest(self, matcher: TemplateMatcher) -> None:
        template = matcher.get_template('vehicle_features')

        suv = matcher.score_template(template, "", Intent.RESEARCH, LeadContext(vehicleInterest='Compact SUV'))
        coupe = matcher.score_template(template, "", Intent.RESEARCH, LeadContext(vehicleInterest='Sport coupe'))

        assert suv - coupe == pytest.approx(20.0)

    def test_all_focus_needs_a_stated_interest(self, matcher: TemplateMatcher) -> None:
        template = matcher.get_template('greeting_new_lead')

        with_interest = matcher.score_template(template, "", Intent.RESEARCH, LeadContext(vehicleInterest='anything'))
        without = matcher.score_template(template, "", Intent.RESEARCH, LeadContext())

        assert with_interest - without == pytest.approx(20.0)

    def test_unlisted_intent_uses_default_relevance(self, matcher: TemplateMatcher) -> None:
        template = make_template('t', category=TemplateCategory.PRICING, effectiveness=0, automotiveFocus=[])

        assert matcher.score_template(template, "", Intent.UNDECIDED) == pytest.approx(10.0)


class TestBestMatch:

    def test_empty_catalog_returns_fallback_with_zero_score(self) -> None:
        matcher = TemplateMatcher(templates=[])

        match = matcher.best_match("Anything at all", Intent.RESEARCH)

        assert match.template.id == DEFAULT_TEMPLATE_ID
        assert match.score == 0.0

    def test_ties_resolve_to_catalog_order(self) -> None:
        matcher = TemplateMatcher(templates=[make_template('first'), make_template('second')])

        match = matcher.best_match("Just checking in", Intent.UNDECIDED, LeadContext(vehicleInterest='SUV'))

        assert match.template.id == 'first'


class TestCatalogAccess:

    def test_unknown_template_raises(self, matcher: TemplateMatcher) -> None:
        with pytest.raises(NotFoundError):
            matcher.get_template('does_not_exist')

    def test_fallback_is_addressable(self, matcher: TemplateMatcher) -> None:
        assert matcher.get_template(DEFAULT_TEMPLATE_ID) is matcher.fallback

    def test_update_effectiveness_clamps(self, matcher: TemplateMatcher) -> None:
        updated = matcher.update_effectiveness('pricing_info', 150)

        assert updated.effectiveness == 100.0
        assert matcher.get_template('pricing_info').effectiveness == 100.0

    def test_update_unknown_template_raises(self, matcher: TemplateMatcher) -> None:
        with pytest.raises(NotFoundError):
            matcher.update_effectiveness('nope', 50)

    def test_matchers_do_not_share_catalogs(self) -> None:
        first, second = TemplateMatcher(), TemplateMatcher()

        first.update_effectiveness('pricing_info', 10)

        assert second.get_template('pricing_info').effectiveness == 80.0
