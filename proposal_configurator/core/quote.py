from __future__ import annotations

from typing import Dict, Tuple

from . import catalog
from .models import FeatureSelection, PlanLevel, PriceOverride, QuoteRequest, QuoteResult
from .pricing import (
    calculate_profit,
    complexity_percent,
    customization_cost,
    default_markup_percent,
    enforce_required_services,
    integration_cost,
    internal_cost,
    monthly_price,
    setup_items,
    validate_minimum_price,
)
from .roi import (
    calculate_roi,
    calculate_value_pricing,
    cumulative_profit,
    find_payback_month,
    yearly_profit,
)


def apply_plan_preset(level: PlanLevel, current: FeatureSelection | None = None) -> Dict[str, object]:
    """Tier and features for a plan; features not named by the preset keep their current value."""
    preset = catalog.PLAN_PRESETS[level.value]
    tier = catalog.user_tier(str(preset["tier_id"]))
    base = (current or FeatureSelection()).model_dump()
    base.update(preset["features"])  # type: ignore[arg-type]
    return {
        "plan": level,
        "tier": tier,
        "user_count": tier.max_users,
        "features": FeatureSelection(**base),
    }


def resolve_configuration(request: QuoteRequest) -> Tuple[FeatureSelection, int]:
    """
    Features and billed seats for a request.

    A ``plan`` fills in the preset's features and seat count; fields sent
    explicitly in the request (``features``, ``tier_id``, ``user_count``)
    take precedence over the preset.
    """
    explicit = request.model_fields_set
    if request.plan is None:
        return request.features, request.effective_user_count()

    preset = apply_plan_preset(request.plan, request.features)
    features = request.features if "features" in explicit else preset["features"]
    if request.tier_id or "user_count" in explicit:
        users = request.effective_user_count()
    else:
        users = int(preset["user_count"])
    return features, users


def run_quote(request: QuoteRequest) -> QuoteResult:
    features, users = resolve_configuration(request)
    cost = internal_cost(features, users)
    pct = complexity_percent(request.complexity)
    markup = request.markup_percent if request.markup_percent is not None else default_markup_percent()

    calculated = monthly_price(
        request.pricing_model,
        features,
        users,
        request.complexity,
        markup,
    )
    override = PriceOverride.from_value(request.manual_price)
    final = override.effective(calculated)

    enforce = request.enforce_required_services
    if enforce is None:
        enforce = enforce_required_services()
    items = setup_items(
        request.services,
        request.customization,
        request.integration_level,
        enforce_required=enforce,
    )
    setup = float(sum(item.amount for item in items))

    roi = calculate_roi(request.roi)
    value_pricing = calculate_value_pricing(calculated, roi.recovered_revenue)
    points = cumulative_profit(setup, final, roi.recovered_revenue)

    return QuoteResult(
        pricing_model=request.pricing_model,
        user_count=users,
        internal_cost=cost,
        complexity_percent=pct,
        markup_percent=markup,
        calculated_price=calculated,
        price_mode=override.mode,
        final_price=final,
        features=features,
        setup_total=setup,
        setup_items=items,
        customization_cost=customization_cost(request.customization),
        integration_cost=integration_cost(request.integration_level),
        roi=roi,
        value_pricing=value_pricing,
        payback=points,
        payback_month=find_payback_month(points),
        yearly_profit=yearly_profit(points),
        profit=calculate_profit(request.partnership_model, final, cost),
        price_validation=validate_minimum_price(final),
    )
