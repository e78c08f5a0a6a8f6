"""
Pricing rule engine.

Evaluates a business's active rules in priority order against a list of
priced services. Each applicable rule transforms a service's price in a
fixed order: multiplier, fixed per-unit override, recompute total,
surcharge, discount, minimum charge, floor at zero.

The engine fails open: any unexpected error returns the caller's services
unchanged with no applied rules, so a broken rule never blocks a quote.
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import date as date_type
from datetime import datetime
from typing import List, Optional, Sequence, Set, Tuple

from sqlalchemy.orm import Session

from ...shared.validators import normalize_zip_code
from .models import (
    FIXED_PRICE_KEYS,
    NEGLIGIBLE_ADJUSTMENT,
    RULE_TYPE_POLICIES,
    AppliedRule,
    PricingPreview,
    PricingResult,
    RuleDefinition,
    RuleType,
    Service,
)
from .repository import PricingRuleRepository

logger = logging.getLogger(__name__)


@dataclass
class PricingContext:
    zip_code: Optional[str] = None
    customer_tags: List[str] = field(default_factory=list)
    total_area: Optional[float] = None
    services: List[Service] = field(default_factory=list)
    date: Optional[datetime] = None


def _rule_type(rule: RuleDefinition) -> Optional[RuleType]:
    try:
        return RuleType(rule.type)
    except ValueError:
        return None


def _matches_service_types(service: Service, service_types: Sequence[str]) -> bool:
    name = service.name.lower()
    return any(st.lower() in name for st in service_types)


def _parse_date(value) -> Optional[date_type]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date_type):
        return value
    return datetime.fromisoformat(str(value)).date()


def _within_schedule(conditions: dict, when: datetime) -> bool:
    """Optional dateRange / daysOfWeek / timeOfDay restrictions; absent means always."""
    date_range = conditions.get("dateRange") or {}
    start = _parse_date(date_range.get("start"))
    end = _parse_date(date_range.get("end"))
    if start and when.date() < start:
        return False
    if end and when.date() > end:
        return False

    days = conditions.get("daysOfWeek")
    if days:
        # 0 = Sunday
        if (when.weekday() + 1) % 7 not in days:
            return False

    time_of_day = conditions.get("timeOfDay") or {}
    window_start = time_of_day.get("start")
    window_end = time_of_day.get("end")
    if window_start and window_end:
        now = when.strftime("%H:%M")
        if window_start <= window_end:
            if not window_start <= now <= window_end:
                return False
        elif window_end < now < window_start:  # window wraps past midnight
            return False

    return True


def check_rule_applicability(rule: RuleDefinition, context: PricingContext) -> bool:
    conditions = rule.conditions or {}
    rule_type = _rule_type(rule)

    if rule_type is RuleType.ZONE:
        zip_codes = conditions.get("zipCodes") or []
        if not zip_codes or not context.zip_code:
            return False
        matches = normalize_zip_code(context.zip_code) in {normalize_zip_code(z) for z in zip_codes}

    elif rule_type is RuleType.SERVICE:
        service_types = conditions.get("serviceTypes") or []
        if not service_types:
            return False
        matches = any(_matches_service_types(s, service_types) for s in context.services)

    elif rule_type is RuleType.CUSTOMER:
        rule_tags = conditions.get("customerTags") or []
        if not rule_tags:
            return False
        matches = any(tag in context.customer_tags for tag in rule_tags)

    elif rule_type is RuleType.VOLUME:
        if not context.total_area:
            return False
        min_area = conditions.get("minArea")
        max_area = conditions.get("maxArea")
        matches = (min_area is None or context.total_area >= min_area) and (
            max_area is None or context.total_area <= max_area
        )

    else:
        logger.warning(f"Unknown pricing rule type '{rule.type}' on rule {rule.id}")
        return False

    return matches and _within_schedule(conditions, context.date or datetime.now())


def apply_pricing_rule(service: Service, rule: RuleDefinition) -> Tuple[Service, float]:
    """Apply one rule to one service; returns the new service and the dollar delta."""
    pricing = rule.pricing
    if not pricing:
        logger.warning(f"Rule '{rule.name}' has no pricing configuration")
        return service, 0.0

    original_total = service.total_price or service.area * service.price_per_unit
    price_per_unit = service.price_per_unit

    multiplier = pricing.get("priceMultiplier")
    if multiplier is not None and multiplier != 1:
        price_per_unit *= multiplier

    # A fixed rate replaces the unit price outright, multiplier included
    fixed_prices = pricing.get("fixedPrices") or {}
    name = service.name.lower()
    for keyword, key in FIXED_PRICE_KEYS:
        if keyword in name and fixed_prices.get(key):
            price_per_unit = fixed_prices[key]
            break

    total = service.area * price_per_unit

    surcharge = pricing.get("surcharge")
    if surcharge:
        total += surcharge

    discount = pricing.get("discount") or {}
    amount = discount.get("amount")
    if amount:
        if discount.get("percentage"):
            total *= 1 - amount / 100
        else:
            total -= amount

    minimum_charge = pricing.get("minimumCharge")
    if minimum_charge and total < minimum_charge:
        total = minimum_charge

    total = max(0.0, total)

    adjusted = replace(service, price_per_unit=price_per_unit, total_price=total)
    return adjusted, total - original_total


class PricingEngine:
    """Evaluates a business's pricing rules against priced services"""

    def __init__(self, db: Session, repo: Optional[PricingRuleRepository] = None):
        self.db = db
        self.repo = repo or PricingRuleRepository()

    def _load_rules(self, business_id: int) -> List[RuleDefinition]:
        # Snapshot rows so later commits/rollbacks cannot expire them mid-calculation
        return [RuleDefinition.from_record(r) for r in self.repo.get_active_rules(self.db, business_id)]

    def _record_usage(self, rule: RuleDefinition) -> None:
        """Bump applied_count; failures are logged and never affect the quote"""
        try:
            self.repo.increment_applied_count(self.db, int(rule.id))
        except Exception as e:
            logger.warning(f"⚠️ Failed to update applied count for rule {rule.id}: {e}")
            try:
                self.db.rollback()
            except Exception as rollback_error:
                logger.warning(f"⚠️ Rollback after count update failed: {rollback_error}")

    def calculate_pricing(
        self,
        business_id: int,
        services: Sequence[Service],
        customer_tags: Optional[Sequence[str]] = None,
        zip_code: Optional[str] = None,
        total_area: Optional[float] = None,
        date: Optional[datetime] = None,
        commit: bool = True,
    ) -> PricingResult:
        """
        Apply every applicable active rule to the services.

        Only one zone, service and volume rule may change a given service;
        customer rules stack. Set commit=False to skip applied_count updates.
        """
        try:
            rules = self._load_rules(business_id)
            context = PricingContext(
                zip_code=zip_code,
                customer_tags=list(customer_tags or []),
                total_area=total_area,
                services=list(services),
                date=date,
            )

            final_services = list(services)
            applied_types: List[Set[RuleType]] = [set() for _ in final_services]
            applied_rules: List[AppliedRule] = []
            fired_rules: List[RuleDefinition] = []

            for rule in rules:
                if not check_rule_applicability(rule, context):
                    continue

                rule_type = RuleType(rule.type)
                policy = RULE_TYPE_POLICIES[rule_type]
                service_types = rule.conditions.get("serviceTypes") or []
                total_adjustment = 0.0
                rule_applied = False

                for i, service in enumerate(final_services):
                    if rule_type is RuleType.SERVICE and not _matches_service_types(service, service_types):
                        continue

                    if not policy.stackable and rule_type in applied_types[i]:
                        logger.debug(
                            f"Skipping rule '{rule.name}' for '{service.name}' - "
                            f"{rule_type.value} rule already applied"
                        )
                        continue

                    adjusted, adjustment = apply_pricing_rule(service, rule)
                    if abs(adjustment) > NEGLIGIBLE_ADJUSTMENT:
                        final_services[i] = adjusted
                        applied_types[i].add(rule_type)
                        total_adjustment += adjustment
                        rule_applied = True
                        logger.debug(
                            f"Rule '{rule.name}' on '{service.name}': "
                            f"{service.total_price:.2f} -> {adjusted.total_price:.2f}"
                        )

                if rule_applied:
                    applied_rules.append(
                        AppliedRule(
                            rule_id=rule.id,
                            rule_name=rule.name,
                            rule_type=rule_type.value,
                            adjustment=total_adjustment,
                            description=rule.description,
                        )
                    )
                    fired_rules.append(rule)

            # Usage is only recorded once the whole quote has been priced
            if commit:
                for rule in fired_rules:
                    self._record_usage(rule)

            return PricingResult(services=final_services, applied_rules=applied_rules)

        except Exception as e:
            logger.error(f"❌ Error calculating pricing for business {business_id}: {e}")
            return PricingResult(services=list(services), applied_rules=[])

    def preview_pricing_rules(
        self,
        business_id: int,
        services: Sequence[Service],
        customer_tags: Optional[Sequence[str]] = None,
        zip_code: Optional[str] = None,
        total_area: Optional[float] = None,
        date: Optional[datetime] = None,
        commit: bool = False,
    ) -> PricingPreview:
        """What-if pricing; does not count towards rule usage unless commit=True"""
        original_total = sum(s.area * s.price_per_unit for s in services)

        result = self.calculate_pricing(
            business_id,
            services,
            customer_tags=customer_tags,
            zip_code=zip_code,
            total_area=total_area,
            date=date,
            commit=commit,
        )
        adjusted_total = sum(s.total_price for s in result.services)

        return PricingPreview(
            original_total=original_total,
            adjusted_total=adjusted_total,
            total_adjustment=adjusted_total - original_total,
            services=result.services,
            applied_rules=result.applied_rules,
        )
