"""Tests for the end-to-end quote pipeline and plan presets."""

import pytest
from pydantic import ValidationError

from proposal_configurator.core.models import (
    FeatureSelection,
    PartnershipModel,
    PlanLevel,
    PriceMode,
    PricingModel,
    QuoteRequest,
    ServiceSelection,
)
from proposal_configurator.core.quote import apply_plan_preset, run_quote


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("DEFAULT_MARKUP_PERCENT", "PARTNER_SHARE_RATE", "ENFORCE_REQUIRED_SERVICES"):
        monkeypatch.delenv(name, raising=False)


class TestRunQuote:
    def test_default_configuration(self):
        result = run_quote(QuoteRequest())
        # 20 seats x 20 = 400 internal, 100% markup.
        assert result.user_count == 20
        assert result.internal_cost == 400
        assert result.markup_percent == 100
        assert result.calculated_price == 800
        assert result.final_price == 800
        assert result.price_mode is PriceMode.AUTO
        assert result.setup_total == 500
        assert result.roi.recovered_revenue == 2000
        assert result.payback_month == 1
        assert result.yearly_profit == -500 + 12 * 1200
        assert len(result.payback) == 13
        assert result.profit.profit == 400
        assert result.profit.margin_percent == 50
        assert result.price_validation.is_valid is True

    def test_value_pricing_uses_calculated_price(self):
        result = run_quote(QuoteRequest(manual_price=5000))
        assert result.value_pricing.cost_plus_price == 800
        assert result.value_pricing.value_suggested_price == 200
        assert result.value_pricing.price_difference_percent == -75

    def test_manual_price_overrides(self):
        result = run_quote(QuoteRequest(manual_price=150))
        assert result.price_mode is PriceMode.MANUAL
        assert result.calculated_price == 800
        assert result.final_price == 150
        assert result.price_validation.is_valid is False
        assert result.price_validation.deficit == 10

    def test_manual_price_feeds_payback(self):
        result = run_quote(QuoteRequest(manual_price=2500))
        assert result.payback_month is None
        assert result.yearly_profit == -500 + 12 * -500

    def test_tier_sets_user_count(self):
        result = run_quote(QuoteRequest(tier_id="tier_10", user_count=3))
        assert result.user_count == 10
        assert result.internal_cost == 200

    def test_unknown_tier_rejected(self):
        with pytest.raises(ValidationError):
            QuoteRequest(tier_id="tier_7")

    def test_negative_user_count_clamped(self):
        result = run_quote(QuoteRequest(user_count=-5))
        assert result.user_count == 0
        assert result.internal_cost == 0
        assert result.final_price == 160

    def test_per_user_model(self):
        result = run_quote(QuoteRequest(pricing_model=PricingModel.PER_USER, user_count=15))
        assert result.final_price == 900

    def test_partner_model(self):
        result = run_quote(QuoteRequest(partnership_model=PartnershipModel.PARTNER))
        assert result.profit.profit == pytest.approx(560)
        assert result.profit.profit + result.profit.platform_fee == 800

    def test_markup_from_env(self, monkeypatch):
        monkeypatch.setenv("DEFAULT_MARKUP_PERCENT", "150")
        result = run_quote(QuoteRequest())
        assert result.markup_percent == 150
        assert result.final_price == 1000

    def test_explicit_markup_wins_over_env(self, monkeypatch):
        monkeypatch.setenv("DEFAULT_MARKUP_PERCENT", "150")
        assert run_quote(QuoteRequest(markup_percent=100)).final_price == 800

    def test_required_services_policy_from_env(self, monkeypatch):
        services = ServiceSelection(onboarding=False, training=True)
        assert run_quote(QuoteRequest(services=services)).setup_total == 2000
        monkeypatch.setenv("ENFORCE_REQUIRED_SERVICES", "0")
        assert run_quote(QuoteRequest(services=services)).setup_total == 1500

    def test_request_policy_overrides_env(self, monkeypatch):
        monkeypatch.setenv("ENFORCE_REQUIRED_SERVICES", "0")
        services = ServiceSelection(onboarding=False, training=True)
        request = QuoteRequest(services=services, enforce_required_services=True)
        assert run_quote(request).setup_total == 2000


class TestPlanPresets:
    def test_enterprise(self):
        preset = apply_plan_preset(PlanLevel.ENTERPRISE)
        assert preset["user_count"] == 50
        assert preset["features"] == FeatureSelection(crm=True, whatsapp=True, ai=True, conversions=True)

    def test_start(self):
        preset = apply_plan_preset(PlanLevel.START, FeatureSelection(conversions=True))
        assert preset["tier"].id == "tier_5"
        assert preset["features"].conversions is False

    def test_pro_links_tier(self):
        preset = apply_plan_preset(PlanLevel.PRO)
        assert preset["tier"].linked_plan == "pro"
        assert preset["user_count"] == 20


class TestPlanInQuote:
    def test_plan_fills_seats_and_features(self):
        result = run_quote(QuoteRequest(plan=PlanLevel.ENTERPRISE))
        assert result.user_count == 50
        assert result.features == FeatureSelection(crm=True, whatsapp=True, ai=True, conversions=True)
        assert result.internal_cost == 50 * 20 + 60 + 20
        assert result != run_quote(QuoteRequest())

    def test_explicit_fields_win_over_plan(self):
        features = FeatureSelection(crm=True, whatsapp=True, ai=False, conversions=False)
        result = run_quote(QuoteRequest(plan=PlanLevel.ENTERPRISE, user_count=12, features=features))
        assert result.user_count == 12
        assert result.features == features
        assert result.internal_cost == 12 * 20

    def test_explicit_tier_wins_over_plan(self):
        result = run_quote(QuoteRequest(plan=PlanLevel.START, tier_id="tier_30"))
        assert result.user_count == 30
        assert result.features.conversions is False

    def test_setup_items_in_result(self):
        services = ServiceSelection(onboarding=False, training=True)
        result = run_quote(QuoteRequest(services=services))
        assert [item.id for item in result.setup_items] == ["onboarding", "training"]
        assert sum(item.amount for item in result.setup_items) == result.setup_total == 2000
