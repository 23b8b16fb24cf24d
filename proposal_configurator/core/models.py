from __future__ import annotations

import math
from datetime import datetime
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from . import catalog


class Feature(str, Enum):
    CRM = "crm"
    WHATSAPP = "whatsapp"
    AI = "ai"
    CONVERSIONS = "conversions"


class PricingModel(str, Enum):
    COST_PLUS = "cost_plus"
    PER_USER = "per_user"
    FIXED_TIER = "fixed_tier"
    HYBRID = "hybrid"


class PartnershipModel(str, Enum):
    WHITELABEL = "whitelabel"
    PARTNER = "partner"


class PlanLevel(str, Enum):
    START = "start"
    PRO = "pro"
    ENTERPRISE = "enterprise"


class PriceMode(str, Enum):
    AUTO = "auto"
    MANUAL = "manual"


class DomainOption(str, Enum):
    DEFAULT = "default"
    CUSTOM = "custom"


class BrandingOption(str, Enum):
    STANDARD = "standard"
    WHITELABEL = "whitelabel"


class IntegrationLevel(str, Enum):
    NONE = "none"
    BASIC = "basic"
    ADVANCED = "advanced"


def clean_number(value: Any) -> float:
    """Coerces missing, malformed, NaN or negative numbers to 0."""
    if value is None or value == "":
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(number) or math.isinf(number):
        return 0.0
    return max(0.0, number)


class _Record(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


class FeatureSelection(_Record):
    crm: bool = True
    whatsapp: bool = True
    ai: bool = False
    conversions: bool = False

    @model_validator(mode="before")
    @classmethod
    def _ai_requires_whatsapp(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("ai") and not data.get("whatsapp", True):
            data = {**data, "ai": False}
        return data

    def is_enabled(self, feature: Feature) -> bool:
        return bool(getattr(self, feature.value))

    def toggle(self, feature: Feature) -> "FeatureSelection":
        # The AI agent runs on top of WhatsApp; enabling it alone is rejected.
        if feature is Feature.AI and not self.whatsapp:
            return self
        values = self.model_dump()
        values[feature.value] = not values[feature.value]
        if not values["whatsapp"]:
            values["ai"] = False
        return FeatureSelection(**values)


class ServiceSelection(_Record):
    onboarding: bool = True
    training: bool = False
    migration: bool = False

    def selected_ids(self) -> List[str]:
        return [key for key, value in self.model_dump().items() if value]


class ComplexitySelection(_Record):
    presencial: bool = False
    urgencia: bool = False
    suporte: bool = False

    def selected_ids(self) -> List[str]:
        return [key for key, value in self.model_dump().items() if value]


class TechnicalCustomization(_Record):
    domain: DomainOption = DomainOption.DEFAULT
    branding: BrandingOption = BrandingOption.STANDARD


class ClientData(_Record):
    company_name: str = ""
    contact_name: str = ""
    email: str = ""
    phone: str = ""
    sector: str = ""
    origin: str = ""


class ROIInputs(_Record):
    ticket_medio: float = 2000
    leads_per_month: float = 100
    current_conversion_rate: float = 5
    conversion_improvement: float = catalog.DEFAULT_CONVERSION_IMPROVEMENT

    @field_validator("ticket_medio", "leads_per_month", "conversion_improvement", mode="before")
    @classmethod
    def _non_negative(cls, value: Any) -> float:
        return clean_number(value)

    @field_validator("current_conversion_rate", mode="before")
    @classmethod
    def _percentage(cls, value: Any) -> float:
        return min(100.0, clean_number(value))


class ROIOutputs(_Record):
    current_revenue: float
    projected_revenue: float
    recovered_revenue: float
    conversion_lift: float
    new_conversion_rate: float


class ValuePricingResult(_Record):
    cost_plus_price: float
    value_suggested_price: int
    is_high_ticket_opportunity: bool
    price_difference_percent: int


class PaybackPoint(_Record):
    month: int = Field(..., ge=0, le=catalog.PAYBACK_HORIZON_MONTHS)
    label: str
    cumulative_balance: float
    is_positive: bool


class ProfitBreakdown(_Record):
    partnership_model: PartnershipModel
    sale_price: float
    internal_cost: float
    profit: float
    platform_fee: float
    margin_percent: int


class PriceValidation(_Record):
    is_valid: bool
    deficit: float
    message: str


class SetupItem(_Record):
    id: str
    label: str
    amount: float


class PriceOverride(_Record):
    """Auto/manual state of the monthly price field.

    ``auto`` follows the computed price. Typing a price switches to
    ``manual`` and freezes that value until ``reset`` is called or an input
    that feeds the automatic calculation changes.
    """

    mode: PriceMode = PriceMode.AUTO
    manual_price: Optional[float] = None

    @model_validator(mode="after")
    def _consistent(self) -> "PriceOverride":
        if self.mode is PriceMode.MANUAL and self.manual_price is None:
            raise ValueError("manual mode requires a manual_price")
        if self.mode is PriceMode.AUTO and self.manual_price is not None:
            raise ValueError("auto mode cannot carry a manual_price")
        return self

    @classmethod
    def from_value(cls, manual_price: Optional[float]) -> "PriceOverride":
        if manual_price is None:
            return cls()
        return cls(mode=PriceMode.MANUAL, manual_price=clean_number(manual_price))

    def set_manual(self, value: float) -> "PriceOverride":
        return PriceOverride(mode=PriceMode.MANUAL, manual_price=clean_number(value))

    def reset(self) -> "PriceOverride":
        return PriceOverride()

    def input_changed(self) -> "PriceOverride":
        return PriceOverride()

    def effective(self, computed: float) -> float:
        if self.mode is PriceMode.MANUAL and self.manual_price is not None:
            return self.manual_price
        return computed


class QuoteRequest(_Record):
    pricing_model: PricingModel = PricingModel.COST_PLUS
    partnership_model: PartnershipModel = PartnershipModel.WHITELABEL
    plan: Optional[PlanLevel] = None
    tier_id: Optional[str] = None
    user_count: int = 20
    features: FeatureSelection = Field(default_factory=FeatureSelection)
    services: ServiceSelection = Field(default_factory=ServiceSelection)
    complexity: ComplexitySelection = Field(default_factory=ComplexitySelection)
    customization: TechnicalCustomization = Field(default_factory=TechnicalCustomization)
    integration_level: IntegrationLevel = IntegrationLevel.NONE
    markup_percent: Optional[float] = None
    manual_price: Optional[float] = Field(default=None, ge=0)
    enforce_required_services: Optional[bool] = None
    roi: ROIInputs = Field(default_factory=ROIInputs)

    @field_validator("user_count", mode="before")
    @classmethod
    def _clamp_users(cls, value: Any) -> int:
        return int(clean_number(value))

    @field_validator("markup_percent", mode="before")
    @classmethod
    def _clamp_markup(cls, value: Any) -> Optional[float]:
        if value is None:
            return None
        return clean_number(value)

    @field_validator("tier_id")
    @classmethod
    def _known_tier(cls, value: Optional[str]) -> Optional[str]:
        if value is not None:
            catalog.user_tier(value)
        return value

    def effective_user_count(self) -> int:
        # Picking a tier bills the tier's seat ceiling.
        if self.tier_id:
            return catalog.user_tier(self.tier_id).max_users
        return self.user_count


class QuoteResult(_Record):
    pricing_model: PricingModel
    user_count: int
    internal_cost: float
    complexity_percent: int
    markup_percent: float
    calculated_price: float
    price_mode: PriceMode
    final_price: float
    features: FeatureSelection = Field(default_factory=FeatureSelection)
    setup_total: float
    setup_items: List[SetupItem] = Field(default_factory=list)
    customization_cost: int
    integration_cost: int = 0
    roi: ROIOutputs
    value_pricing: ValuePricingResult
    payback: List[PaybackPoint]
    payback_month: Optional[int]
    yearly_profit: float
    profit: ProfitBreakdown
    price_validation: PriceValidation


class ProposalSnapshot(_Record):
    proposal_id: str
    created_at: datetime
    valid_until: datetime
    client: ClientData = Field(default_factory=ClientData)
    request: QuoteRequest
    result: QuoteResult
    stripe_checkout_url: Optional[str] = None
    pix_key: Optional[str] = None
