from __future__ import annotations

import os
from decimal import ROUND_CEILING, ROUND_HALF_UP, Decimal
from typing import Callable, Dict, List, Optional

from . import catalog
from .models import (
    ComplexitySelection,
    FeatureSelection,
    IntegrationLevel,
    PartnershipModel,
    PriceValidation,
    PricingModel,
    ProfitBreakdown,
    ServiceSelection,
    SetupItem,
    TechnicalCustomization,
    clean_number,
)


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return float(default)
    try:
        return float(raw)
    except ValueError:
        return float(default)


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name, "").strip().lower()
    if not raw:
        return default
    return raw in ("1", "true", "on", "sim", "yes")


def default_markup_percent() -> float:
    return _env_float("DEFAULT_MARKUP_PERCENT", catalog.DEFAULT_MARKUP_PERCENT)


def partner_share_rate() -> float:
    rate = _env_float("PARTNER_SHARE_RATE", catalog.PARTNER_SHARE_RATE)
    return min(1.0, max(0.0, rate))


def enforce_required_services() -> bool:
    return _env_flag("ENFORCE_REQUIRED_SERVICES", True)


def _dec(value: float) -> Decimal:
    return Decimal(str(value))


def ceil_to_ten(value) -> int:
    """Rounds up to the next multiple of 10; exact multiples stay put."""
    return int((_dec(value) / 10).to_integral_value(rounding=ROUND_CEILING) * 10)


def round_half_up(value, places: int = 0) -> float:
    exponent = Decimal(1).scaleb(-places)
    return float(_dec(value).quantize(exponent, rounding=ROUND_HALF_UP))


# ---------------------------------------------------------------------------
# Cost
# ---------------------------------------------------------------------------


def module_costs(features: FeatureSelection) -> float:
    cost = catalog.WHATSAPP_MODULE_COST if features.whatsapp else 0.0
    if features.ai and features.whatsapp:
        cost += catalog.AI_MODULE_COST
    if features.conversions:
        cost += catalog.CONVERSIONS_MODULE_COST
    return cost


def internal_cost(features: FeatureSelection, user_count: int) -> float:
    users = int(clean_number(user_count))
    cost = 0.0
    if features.crm:
        cost += users * catalog.CRM_PER_USER_COST
    return cost + module_costs(features)


# ---------------------------------------------------------------------------
# Monthly price
# ---------------------------------------------------------------------------


def complexity_percent(selection: ComplexitySelection) -> int:
    selected = set(selection.selected_ids())
    return sum(factor.percentage for factor in catalog.COMPLEXITY_FACTORS if factor.id in selected)


def complexity_flat_fee(selection: ComplexitySelection) -> int:
    selected = set(selection.selected_ids())
    return sum(factor.flat_fee for factor in catalog.COMPLEXITY_FACTORS if factor.id in selected)


def final_price(base_cost: float, markup_percent: float, complexity_pct: float) -> int:
    base = _dec(clean_number(base_cost))
    with_markup = base * (1 + _dec(clean_number(markup_percent)) / 100)
    with_complexity = with_markup * (1 + _dec(clean_number(complexity_pct)) / 100)
    return max(ceil_to_ten(with_complexity), catalog.MIN_MONTHLY_COST)


def price_per_user_for_band(user_count: int) -> float:
    users = int(clean_number(user_count))
    for band in catalog.VOLUME_BANDS:
        if band.contains(users):
            return band.price_per_user
    return catalog.VOLUME_BANDS[-1].price_per_user


def fixed_tier_for(user_count: int) -> catalog.FixedTier:
    users = int(clean_number(user_count))
    for tier in catalog.FIXED_TIERS:
        if tier.min_users <= users <= tier.max_users:
            return tier
    if users < catalog.FIXED_TIERS[0].min_users:
        return catalog.FIXED_TIERS[0]
    return catalog.FIXED_TIERS[-1]


def _floored(value: float) -> float:
    return max(value, catalog.MIN_MONTHLY_COST)


def per_user_monthly_price(
    features: FeatureSelection,
    user_count: int,
    complexity: Optional[ComplexitySelection] = None,
) -> float:
    users = int(clean_number(user_count))
    seats = price_per_user_for_band(users) * users
    flat = complexity_flat_fee(complexity) if complexity is not None else 0
    return _floored(seats + module_costs(features) + flat)


def fixed_tier_monthly_price(
    features: FeatureSelection,
    user_count: int,
    complexity: Optional[ComplexitySelection] = None,
) -> float:
    package = fixed_tier_for(user_count).monthly_price
    flat = complexity_flat_fee(complexity) if complexity is not None else 0
    return _floored(package + module_costs(features) + flat)


def hybrid_monthly_price(
    features: FeatureSelection,
    user_count: int,
    complexity: Optional[ComplexitySelection] = None,
) -> float:
    users = int(clean_number(user_count))
    extra_users = max(0, users - catalog.HYBRID_BASE_USERS)
    seats = catalog.HYBRID_BASE_PRICE + extra_users * catalog.HYBRID_ADDITIONAL_USER_PRICE
    flat = complexity_flat_fee(complexity) if complexity is not None else 0
    return _floored(seats + module_costs(features) + flat)


def _cost_plus_monthly_price(
    features: FeatureSelection,
    user_count: int,
    complexity: Optional[ComplexitySelection] = None,
    markup_percent: Optional[float] = None,
) -> float:
    markup = default_markup_percent() if markup_percent is None else markup_percent
    pct = complexity_percent(complexity) if complexity is not None else 0
    return final_price(internal_cost(features, user_count), markup, pct)


_FLEXIBLE_PRICERS: Dict[PricingModel, Callable[..., float]] = {
    PricingModel.PER_USER: per_user_monthly_price,
    PricingModel.FIXED_TIER: fixed_tier_monthly_price,
    PricingModel.HYBRID: hybrid_monthly_price,
}


def monthly_price(
    model: PricingModel,
    features: FeatureSelection,
    user_count: int,
    complexity: Optional[ComplexitySelection] = None,
    markup_percent: Optional[float] = None,
) -> float:
    """Computed (automatic) monthly price for a pricing model.

    ``cost_plus`` applies markup and percent complexity over internal cost;
    the flexible models add complexity as flat fees instead.
    """
    if model == PricingModel.COST_PLUS:
        return _cost_plus_monthly_price(features, user_count, complexity, markup_percent)
    pricer = _FLEXIBLE_PRICERS.get(model)
    if pricer is None:
        raise ValueError(f"Modelo de precificacao desconhecido: {model}")
    return pricer(features, user_count, complexity)


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------


def billed_services(
    services: ServiceSelection, *, enforce_required: Optional[bool] = None
) -> List[catalog.ServiceCatalogEntry]:
    """Fixed-cost services charged at setup: the selected ones, plus required ones when enforced."""
    if enforce_required is None:
        enforce_required = enforce_required_services()
    selected = set(services.selected_ids())
    return [
        entry
        for entry in catalog.SERVICE_CATALOG
        if entry.category == "service"
        and entry.cost_type == "fixed"
        and (entry.id in selected or (enforce_required and entry.required))
    ]


def services_total(services: ServiceSelection, *, enforce_required: Optional[bool] = None) -> float:
    return float(sum(entry.cost for entry in billed_services(services, enforce_required=enforce_required)))


def customization_cost(customization: TechnicalCustomization) -> int:
    return catalog.add_on_cost(catalog.DOMAIN_OPTIONS, customization.domain.value) + catalog.add_on_cost(
        catalog.BRANDING_OPTIONS, customization.branding.value
    )


def integration_cost(level: IntegrationLevel) -> int:
    return catalog.add_on_cost(catalog.INTEGRATION_LEVELS, level.value)


def setup_items(
    services: ServiceSelection,
    customization: Optional[TechnicalCustomization] = None,
    integration_level: Optional[IntegrationLevel] = None,
    *,
    enforce_required: Optional[bool] = None,
) -> List[SetupItem]:
    """
    Line items of the one-off setup charge.

    When the items fall short of the minimum setup value, a final
    adjustment line makes up the difference, so the items always sum
    to ``setup_total``.
    """
    items = [
        SetupItem(id=entry.id, label=entry.label, amount=entry.cost)
        for entry in billed_services(services, enforce_required=enforce_required)
    ]
    add_ons = []
    if customization is not None:
        add_ons.append(catalog.add_on(catalog.DOMAIN_OPTIONS, customization.domain.value))
        add_ons.append(catalog.add_on(catalog.BRANDING_OPTIONS, customization.branding.value))
    if integration_level is not None:
        add_ons.append(catalog.add_on(catalog.INTEGRATION_LEVELS, integration_level.value))
    items.extend(SetupItem(id=opt.id, label=opt.label, amount=opt.cost) for opt in add_ons if opt.cost > 0)

    subtotal = sum(item.amount for item in items)
    if subtotal < catalog.MIN_SETUP_VALUE:
        items.append(
            SetupItem(
                id="minimum_setup",
                label="Ajuste ao setup minimo",
                amount=catalog.MIN_SETUP_VALUE - subtotal,
            )
        )
    return items


def setup_total(
    services: ServiceSelection,
    customization: Optional[TechnicalCustomization] = None,
    integration_level: Optional[IntegrationLevel] = None,
    *,
    enforce_required: Optional[bool] = None,
) -> float:
    items = setup_items(services, customization, integration_level, enforce_required=enforce_required)
    return max(float(sum(item.amount for item in items)), catalog.MIN_SETUP_VALUE)


# ---------------------------------------------------------------------------
# Profit & validation
# ---------------------------------------------------------------------------


def margin_percent(profit: float, price: float) -> int:
    if price <= 0:
        return 0
    return int(round_half_up(profit / price * 100))


def calculate_profit(
    partnership: PartnershipModel,
    sale_price: float,
    cost: float,
    share_rate: Optional[float] = None,
) -> ProfitBreakdown:
    price = clean_number(sale_price)
    cost = clean_number(cost)
    if partnership == PartnershipModel.WHITELABEL:
        profit = price - cost
        fee = 0.0
    elif partnership == PartnershipModel.PARTNER:
        # Revenue share is taken on the sale price; internal cost stays with the platform.
        rate = partner_share_rate() if share_rate is None else share_rate
        profit = price * rate
        fee = price - profit
    else:
        raise ValueError(f"Modelo de parceria desconhecido: {partnership}")

    return ProfitBreakdown(
        partnership_model=partnership,
        sale_price=price,
        internal_cost=cost,
        profit=profit,
        platform_fee=fee,
        margin_percent=margin_percent(profit, price),
    )


def validate_minimum_price(price: float) -> PriceValidation:
    value = clean_number(price)
    deficit = max(0.0, catalog.MIN_MONTHLY_COST - value)
    if deficit > 0:
        message = (
            f"Preco abaixo do minimo sustentavel de R$ {catalog.MIN_MONTHLY_COST}/mes "
            f"(faltam R$ {deficit:,.2f})."
        )
        return PriceValidation(is_valid=False, deficit=deficit, message=message)
    return PriceValidation(is_valid=True, deficit=0.0, message="Preco dentro da faixa sustentavel.")
