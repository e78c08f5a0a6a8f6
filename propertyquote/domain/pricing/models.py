"""Pricing domain models - engine inputs, outputs and rule-type policy"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class RuleType(str, Enum):
    ZONE = "zone"
    SERVICE = "service"
    CUSTOMER = "customer"
    VOLUME = "volume"


@dataclass(frozen=True)
class RuleTypePolicy:
    # Stackable types may apply several rules of the same type to one service
    stackable: bool


RULE_TYPE_POLICIES: Dict[RuleType, RuleTypePolicy] = {
    RuleType.ZONE: RuleTypePolicy(stackable=False),
    RuleType.SERVICE: RuleTypePolicy(stackable=False),
    RuleType.CUSTOMER: RuleTypePolicy(stackable=True),  # e.g. VIP + loyalty discounts
    RuleType.VOLUME: RuleTypePolicy(stackable=False),
}

# (service-name keyword, fixedPrices key), checked in order
FIXED_PRICE_KEYS: Tuple[Tuple[str, str], ...] = (
    ("lawn", "lawnPerSqFt"),
    ("driveway", "drivewayPerSqFt"),
    ("sidewalk", "sidewalkPerSqFt"),
    ("building", "buildingPerSqFt"),
)

# Adjustments at or below this many dollars are treated as "no change"
NEGLIGIBLE_ADJUSTMENT = 0.001


@dataclass(frozen=True)
class Service:
    """A priced line item. The engine returns new instances and never mutates its input."""

    name: str
    area: float
    price_per_unit: float
    total_price: float


@dataclass(frozen=True)
class RuleDefinition:
    """Detached snapshot of a stored pricing rule."""

    id: str
    name: str
    type: str
    conditions: Dict[str, Any] = field(default_factory=dict)
    pricing: Dict[str, Any] = field(default_factory=dict)
    priority: int = 0
    description: Optional[str] = None

    @classmethod
    def from_record(cls, record) -> "RuleDefinition":
        return cls(
            id=str(record.id),
            name=record.name,
            type=record.type,
            conditions=dict(record.conditions or {}),
            pricing=dict(record.pricing or {}),
            priority=record.priority or 0,
            description=record.description,
        )


@dataclass(frozen=True)
class AppliedRule:
    rule_id: str
    rule_name: str
    rule_type: str
    adjustment: float  # new total - previous total, summed over touched services
    description: Optional[str] = None


@dataclass
class PricingResult:
    services: List[Service]
    applied_rules: List[AppliedRule]


@dataclass
class PricingPreview:
    original_total: float
    adjusted_total: float
    total_adjustment: float
    services: List[Service]
    applied_rules: List[AppliedRule]
