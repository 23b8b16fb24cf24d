from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List


# Internal (provider-side) costs, BRL per month.
CRM_PER_USER_COST = 20.0
AI_MODULE_COST = 60.0
CONVERSIONS_MODULE_COST = 20.0
WHATSAPP_MODULE_COST = 0.0  # bundled into the AI module.

MIN_SETUP_VALUE = 500
MIN_MONTHLY_COST = 160

DEFAULT_MARKUP_PERCENT = 100
MIN_MARKUP_PERCENT = 50
MAX_MARKUP_PERCENT = 300

PARTNER_SHARE_RATE = 0.70
VALUE_SHARE_PERCENTAGE = 10
HIGH_TICKET_THRESHOLD = 30

DEFAULT_CONVERSION_IMPROVEMENT = 20
MIN_CONVERSION_IMPROVEMENT = 5
MAX_CONVERSION_IMPROVEMENT = 50

PAYBACK_HORIZON_MONTHS = 12
PROPOSAL_VALIDITY_DAYS = 15

HYBRID_BASE_PRICE = 300
HYBRID_BASE_USERS = 5
HYBRID_ADDITIONAL_USER_PRICE = 50


@dataclass(frozen=True)
class ServiceCatalogEntry:
    id: str
    label: str
    cost: float
    cost_type: str  # "fixed" | "percent"
    category: str  # "service" | "complexity"
    description: str = ""
    required: bool = False


@dataclass(frozen=True)
class ComplexityFactor:
    id: str
    label: str
    percentage: int
    flat_fee: int
    description: str = ""


@dataclass(frozen=True)
class UserTier:
    id: str
    label: str
    min_users: int
    max_users: int
    linked_plan: str


@dataclass(frozen=True)
class FixedTier:
    id: str
    label: str
    min_users: int
    max_users: int
    linked_plan: str
    monthly_price: int


@dataclass(frozen=True)
class VolumeBand:
    min_users: int
    max_users: int
    price_per_user: float

    def contains(self, user_count: int) -> bool:
        return self.min_users <= user_count <= self.max_users


@dataclass(frozen=True)
class AddOnOption:
    id: str
    label: str
    cost: int
    description: str = ""


SERVICE_CATALOG: List[ServiceCatalogEntry] = [
    ServiceCatalogEntry(
        id="onboarding",
        label="Setup Técnico",
        cost=500,
        cost_type="fixed",
        category="service",
        description="Configuração inicial obrigatória",
        required=True,
    ),
    ServiceCatalogEntry(
        id="training",
        label="Treinamento",
        cost=1500,
        cost_type="fixed",
        category="service",
        description="2h de call + materiais",
    ),
    ServiceCatalogEntry(
        id="migration",
        label="Migração de Dados",
        cost=1000,
        cost_type="fixed",
        category="service",
        description="Importação completa",
    ),
    ServiceCatalogEntry(
        id="presencial",
        label="Reuniões Presenciais",
        cost=10,
        cost_type="percent",
        category="complexity",
        description="Atendimento presencial",
    ),
    ServiceCatalogEntry(
        id="urgencia",
        label="Urgência na Entrega",
        cost=15,
        cost_type="percent",
        category="complexity",
        description="Prazo reduzido",
    ),
    ServiceCatalogEntry(
        id="suporte",
        label="Suporte Estendido",
        cost=20,
        cost_type="percent",
        category="complexity",
        description="SLA premium 24h",
    ),
]

COMPLEXITY_FACTORS: List[ComplexityFactor] = [
    ComplexityFactor(
        id="presencial",
        label="Reuniões Presenciais",
        percentage=10,
        flat_fee=100,
        description="Atendimento presencial",
    ),
    ComplexityFactor(
        id="urgencia",
        label="Urgência na Entrega",
        percentage=15,
        flat_fee=150,
        description="Prazo reduzido",
    ),
    ComplexityFactor(
        id="suporte",
        label="Suporte Estendido",
        percentage=20,
        flat_fee=200,
        description="SLA premium 24h",
    ),
]

USER_TIERS: List[UserTier] = [
    UserTier(id="tier_5", label="Até 5 usuários", min_users=1, max_users=5, linked_plan="start"),
    UserTier(id="tier_10", label="Até 10 usuários", min_users=6, max_users=10, linked_plan="start"),
    UserTier(id="tier_20", label="Até 20 usuários", min_users=11, max_users=20, linked_plan="pro"),
    UserTier(id="tier_30", label="Até 30 usuários", min_users=21, max_users=30, linked_plan="pro"),
    UserTier(id="tier_50", label="Até 50 usuários", min_users=31, max_users=50, linked_plan="enterprise"),
    UserTier(id="tier_unlimited", label="Ilimitado", min_users=51, max_users=999, linked_plan="enterprise"),
]

FIXED_TIERS: List[FixedTier] = [
    FixedTier(id="pkg_5", label="Pacote 5", min_users=1, max_users=5, linked_plan="start", monthly_price=390),
    FixedTier(id="pkg_10", label="Pacote 10", min_users=6, max_users=10, linked_plan="start", monthly_price=690),
    FixedTier(id="pkg_20", label="Pacote 20", min_users=11, max_users=20, linked_plan="pro", monthly_price=1190),
    FixedTier(id="pkg_30", label="Pacote 30", min_users=21, max_users=30, linked_plan="pro", monthly_price=1590),
    FixedTier(id="pkg_50", label="Pacote 50", min_users=31, max_users=50, linked_plan="enterprise", monthly_price=2390),
    FixedTier(
        id="pkg_unlimited", label="Pacote Ilimitado", min_users=51, max_users=999, linked_plan="enterprise", monthly_price=3990
    ),
]

# Ascending, non-overlapping. Counts above the last band clamp to it.
VOLUME_BANDS: List[VolumeBand] = [
    VolumeBand(min_users=1, max_users=5, price_per_user=80),
    VolumeBand(min_users=6, max_users=10, price_per_user=70),
    VolumeBand(min_users=11, max_users=20, price_per_user=60),
    VolumeBand(min_users=21, max_users=30, price_per_user=55),
    VolumeBand(min_users=31, max_users=50, price_per_user=50),
    VolumeBand(min_users=51, max_users=999, price_per_user=45),
]

DOMAIN_OPTIONS: List[AddOnOption] = [
    AddOnOption(id="default", label="Domínio Padrão da Agência", cost=0, description="Sem custo extra"),
    AddOnOption(id="custom", label="Domínio Personalizado", cost=200, description="URL exclusiva do cliente"),
]

BRANDING_OPTIONS: List[AddOnOption] = [
    AddOnOption(id="standard", label="Layout Padrão", cost=0, description="Interface padrão do sistema"),
    AddOnOption(id="whitelabel", label="White Label Completo", cost=500, description="Cores e logo do cliente"),
]

INTEGRATION_LEVELS: List[AddOnOption] = [
    AddOnOption(id="none", label="Sem integrações", cost=0),
    AddOnOption(id="basic", label="Integração básica", cost=800, description="Webhooks e planilhas"),
    AddOnOption(id="advanced", label="Integração avançada", cost=2000, description="ERP / API dedicada"),
]

PLAN_PRESETS: Dict[str, Dict[str, object]] = {
    "start": {
        "tier_id": "tier_5",
        "features": {"crm": True, "whatsapp": True, "ai": False, "conversions": False},
        "description": "Pequenas equipes",
    },
    "pro": {
        "tier_id": "tier_20",
        "features": {"crm": True, "whatsapp": True, "ai": False, "conversions": True},
        "description": "Times em crescimento",
    },
    "enterprise": {
        "tier_id": "tier_50",
        "features": {"crm": True, "whatsapp": True, "ai": True, "conversions": True},
        "description": "Solução completa",
    },
}

FEATURE_LABELS: Dict[str, str] = {
    "crm": "CRM & Pipeline",
    "whatsapp": "WhatsApp Oficial",
    "ai": "Agente de IA",
    "conversions": "Conversões",
}


def user_tier(tier_id: str) -> UserTier:
    for tier in USER_TIERS:
        if tier.id == tier_id:
            return tier
    raise ValueError(f"Faixa de usuarios desconhecida: {tier_id}")


def add_on(options: List[AddOnOption], option_id: str) -> AddOnOption:
    for option in options:
        if option.id == option_id:
            return option
    raise ValueError(f"Opcao desconhecida: {option_id}")


def add_on_cost(options: List[AddOnOption], option_id: str) -> int:
    return add_on(options, option_id).cost


def catalog_payload() -> Dict[str, object]:
    return {
        "features": [{"id": key, "label": label} for key, label in FEATURE_LABELS.items()],
        "services": [entry.__dict__ for entry in SERVICE_CATALOG],
        "complexity_factors": [factor.__dict__ for factor in COMPLEXITY_FACTORS],
        "user_tiers": [tier.__dict__ for tier in USER_TIERS],
        "fixed_tiers": [tier.__dict__ for tier in FIXED_TIERS],
        "volume_bands": [band.__dict__ for band in VOLUME_BANDS],
        "domain_options": [opt.__dict__ for opt in DOMAIN_OPTIONS],
        "branding_options": [opt.__dict__ for opt in BRANDING_OPTIONS],
        "integration_levels": [opt.__dict__ for opt in INTEGRATION_LEVELS],
        "plan_presets": PLAN_PRESETS,
        "rules": {
            "min_setup_value": MIN_SETUP_VALUE,
            "min_monthly_cost": MIN_MONTHLY_COST,
            "markup_range": [MIN_MARKUP_PERCENT, MAX_MARKUP_PERCENT],
            "conversion_improvement_range": [MIN_CONVERSION_IMPROVEMENT, MAX_CONVERSION_IMPROVEMENT],
            "partner_share_rate": PARTNER_SHARE_RATE,
        },
    }
