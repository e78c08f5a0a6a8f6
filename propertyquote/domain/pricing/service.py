"""Pricing rule service - Business logic for rule administration and pricing"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import Business, PricingRule
from .engine import PricingEngine
from .models import PricingPreview, PricingResult, RuleType
from .repository import PricingRuleRepository
from .schemas import CalculatePricingRequest, PricingRuleCreate, PricingRuleUpdate

logger = logging.getLogger(__name__)


class PricingRuleValidationError(ValueError):
    """A rule definition that could never apply"""


# condition key each rule type needs at least one entry in
REQUIRED_CONDITIONS = {
    RuleType.ZONE: ("zipCodes", "Zone rules must include at least one ZIP code"),
    RuleType.CUSTOMER: ("customerTags", "Customer rules must include at least one customer tag"),
    RuleType.SERVICE: ("serviceTypes", "Service rules must include at least one service type"),
}


def validate_rule_definition(rule_type: RuleType, conditions: dict, pricing: dict) -> None:
    required = REQUIRED_CONDITIONS.get(rule_type)
    if required and not conditions.get(required[0]):
        raise PricingRuleValidationError(required[1])

    if rule_type is RuleType.VOLUME and conditions.get("minArea") is None and conditions.get("maxArea") is None:
        raise PricingRuleValidationError("Volume rules must set minArea or maxArea")

    if not pricing:
        raise PricingRuleValidationError("Rule must define at least one pricing adjustment")


def summarize_preview(preview: PricingPreview) -> dict:
    """Headline numbers for the rule preview screen"""
    original = preview.original_total
    percentage_change = (preview.total_adjustment / original * 100) if original > 0 else 0.0
    return {
        "rules_applied": len(preview.applied_rules),
        "percentage_change": round(percentage_change, 2),
        "savings_amount": round(max(0.0, -preview.total_adjustment), 2),
        "increase_amount": round(max(0.0, preview.total_adjustment), 2),
    }


class PricingRuleService:
    """Service layer for pricing rule business logic"""

    def __init__(self, db: Session, engine: Optional[PricingEngine] = None):
        self.db = db
        self.repo = PricingRuleRepository()
        self.engine = engine or PricingEngine(db, self.repo)

    def get_rules(
        self, business: Business, rule_type: Optional[RuleType] = None, is_active: Optional[bool] = None
    ) -> list[PricingRule]:
        return self.repo.get_rules(
            self.db, business.id, rule_type.value if rule_type else None, is_active
        )

    def get_rule(self, rule_id: int, business: Business) -> PricingRule:
        rule = self.repo.get_rule_by_id(self.db, rule_id, business.id)
        if not rule:
            raise HTTPException(status_code=404, detail="Pricing rule not found")
        return rule

    def create_rule(self, data: PricingRuleCreate, business: Business) -> PricingRule:
        """Create a new pricing rule with validation"""
        logger.info(f"📥 Creating {data.type.value} pricing rule for business_id: {business.id}")

        conditions = data.conditions.model_dump(exclude_none=True)
        pricing = data.pricing.model_dump(exclude_none=True)
        try:
            validate_rule_definition(data.type, conditions, pricing)
        except PricingRuleValidationError as e:
            logger.warning(f"⚠️ Invalid pricing rule for business {business.id}: {e}")
            raise HTTPException(status_code=400, detail=str(e))

        rule = self.repo.create_rule(
            self.db,
            business.id,
            name=data.name,
            type=data.type.value,
            conditions=conditions,
            pricing=pricing,
            priority=data.priority,
            is_active=data.isActive,
            description=data.description,
        )
        logger.info(f"✅ Pricing rule {rule.id} created")
        return rule

    def update_rule(self, rule_id: int, data: PricingRuleUpdate, business: Business) -> PricingRule:
        rule = self.get_rule(rule_id, business)

        updates = {}
        if data.name is not None:
            updates["name"] = data.name.strip()
        if data.conditions is not None:
            updates["conditions"] = data.conditions.model_dump(exclude_none=True)
        if data.pricing is not None:
            updates["pricing"] = data.pricing.model_dump(exclude_none=True)
        if data.priority is not None:
            updates["priority"] = data.priority
        if data.isActive is not None:
            updates["is_active"] = data.isActive
        if data.description is not None:
            updates["description"] = data.description

        try:
            validate_rule_definition(
                RuleType(rule.type),
                updates.get("conditions", rule.conditions or {}),
                updates.get("pricing", rule.pricing or {}),
            )
        except PricingRuleValidationError as e:
            logger.warning(f"⚠️ Invalid update for pricing rule {rule_id}: {e}")
            raise HTTPException(status_code=400, detail=str(e))

        return self.repo.update_rule(self.db, rule, **updates)

    def delete_rule(self, rule_id: int, business: Business) -> dict:
        rule = self.get_rule(rule_id, business)
        self.repo.delete_rule(self.db, rule)
        logger.info(f"🗑️ Pricing rule {rule_id} deleted")
        return {"message": "Pricing rule deleted successfully"}

    def calculate(self, data: CalculatePricingRequest, business: Business) -> PricingResult:
        return self.engine.calculate_pricing(
            business.id,
            [s.to_service() for s in data.services],
            customer_tags=data.customerTags,
            zip_code=data.zipCode,
            total_area=data.totalArea,
            date=data.date,
        )

    def preview(
        self, data: CalculatePricingRequest, business: Business
    ) -> tuple[PricingPreview, dict]:
        preview = self.engine.preview_pricing_rules(
            business.id,
            [s.to_service() for s in data.services],
            customer_tags=data.customerTags,
            zip_code=data.zipCode,
            total_area=data.totalArea,
            date=data.date or datetime.now(),
        )
        return preview, summarize_preview(preview)
