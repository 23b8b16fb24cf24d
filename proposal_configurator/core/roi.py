from __future__ import annotations

from decimal import Decimal
from typing import List, Optional

from . import catalog
from .models import PaybackPoint, ROIInputs, ROIOutputs, ValuePricingResult, clean_number
from .pricing import ceil_to_ten, round_half_up


def calculate_roi(inputs: ROIInputs) -> ROIOutputs:
    """
    Funil de conversao: leads x taxa x ticket, antes e depois da melhoria.

    A melhoria e relativa sobre a taxa atual (5% com +20% vira 6%, nao 25%).
    """
    ticket = Decimal(str(inputs.ticket_medio))
    leads = Decimal(str(inputs.leads_per_month))
    rate = Decimal(str(inputs.current_conversion_rate))
    improvement = Decimal(str(inputs.conversion_improvement))

    current_revenue = leads * (rate / 100) * ticket
    new_rate = rate * (1 + improvement / 100)
    projected_revenue = leads * (new_rate / 100) * ticket

    return ROIOutputs(
        current_revenue=round_half_up(current_revenue),
        projected_revenue=round_half_up(projected_revenue),
        recovered_revenue=round_half_up(projected_revenue - current_revenue),
        conversion_lift=float(improvement),
        new_conversion_rate=round_half_up(new_rate, 1),
    )


def calculate_value_pricing(cost_plus_price: float, recovered_revenue: float) -> ValuePricingResult:
    recovered = clean_number(recovered_revenue)
    value_price = ceil_to_ten(Decimal(str(recovered)) * catalog.VALUE_SHARE_PERCENTAGE / 100)
    if cost_plus_price > 0:
        difference = int(round_half_up((value_price - cost_plus_price) / cost_plus_price * 100))
    else:
        difference = 0
    return ValuePricingResult(
        cost_plus_price=cost_plus_price,
        value_suggested_price=value_price,
        is_high_ticket_opportunity=difference > catalog.HIGH_TICKET_THRESHOLD,
        price_difference_percent=difference,
    )


def cumulative_profit(
    setup_cost: float,
    monthly_price: float,
    monthly_recovered_revenue: float,
) -> List[PaybackPoint]:
    """Balanco acumulado mes a mes (0..12): setup como deficit inicial, depois receita recuperada menos mensalidade."""
    balance = -max(clean_number(setup_cost), catalog.MIN_SETUP_VALUE)
    net_monthly = clean_number(monthly_recovered_revenue) - clean_number(monthly_price)
    points = [_point(0, balance)]
    for month in range(1, catalog.PAYBACK_HORIZON_MONTHS + 1):
        balance += net_monthly
        points.append(_point(month, balance))
    return points


def _point(month: int, balance: float) -> PaybackPoint:
    return PaybackPoint(
        month=month,
        label=f"Mês {month}",
        cumulative_balance=balance,
        is_positive=balance >= 0,
    )


def find_payback_month(points: List[PaybackPoint]) -> Optional[int]:
    for point in points:
        if point.month > 0 and point.is_positive:
            return point.month
    return None


def yearly_profit(points: List[PaybackPoint]) -> float:
    if not points:
        return 0.0
    return points[-1].cumulative_balance
