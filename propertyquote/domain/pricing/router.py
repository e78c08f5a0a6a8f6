"""Pricing rule router - FastAPI endpoints for rule administration and pricing"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_business
from ...database import get_db
from ...models import Business
from .models import RuleType
from .schemas import (
    AppliedRuleSchema,
    CalculatePricingRequest,
    PreviewResponse,
    PreviewSummary,
    PricingResponse,
    PricingRuleCreate,
    PricingRuleResponse,
    PricingRuleUpdate,
    ServiceSchema,
)
from .service import PricingRuleService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/pricing-rules", tags=["Pricing Rules"])


def get_pricing_rule_service(db: Session = Depends(get_db)) -> PricingRuleService:
    """Dependency injection for PricingRuleService"""
    return PricingRuleService(db)


# ============================================================================
# RULE ADMINISTRATION
# ============================================================================


@router.get("", response_model=list[PricingRuleResponse])
async def get_pricing_rules(
    type: Optional[RuleType] = Query(None),
    isActive: Optional[bool] = Query(None),
    current_business: Business = Depends(get_current_business),
    service: PricingRuleService = Depends(get_pricing_rule_service),
):
    """List the business's pricing rules, highest priority first"""
    rules = service.get_rules(current_business, type, isActive)
    return [PricingRuleResponse.from_rule(r) for r in rules]


@router.post("", response_model=PricingRuleResponse, status_code=201)
async def create_pricing_rule(
    data: PricingRuleCreate,
    current_business: Business = Depends(get_current_business),
    service: PricingRuleService = Depends(get_pricing_rule_service),
):
    rule = service.create_rule(data, current_business)
    return PricingRuleResponse.from_rule(rule)


@router.put("/{rule_id}", response_model=PricingRuleResponse)
async def update_pricing_rule(
    rule_id: int,
    data: PricingRuleUpdate,
    current_business: Business = Depends(get_current_business),
    service: PricingRuleService = Depends(get_pricing_rule_service),
):
    rule = service.update_rule(rule_id, data, current_business)
    return PricingRuleResponse.from_rule(rule)


@router.delete("/{rule_id}")
async def delete_pricing_rule(
    rule_id: int,
    current_business: Business = Depends(get_current_business),
    service: PricingRuleService = Depends(get_pricing_rule_service),
):
    return service.delete_rule(rule_id, current_business)


# ============================================================================
# PRICING
# ============================================================================


@router.post("/calculate", response_model=PricingResponse)
async def calculate_pricing(
    data: CalculatePricingRequest,
    current_business: Business = Depends(get_current_business),
    service: PricingRuleService = Depends(get_pricing_rule_service),
):
    """Apply active rules to a quote's services"""
    result = service.calculate(data, current_business)
    return PricingResponse(
        services=[ServiceSchema.from_service(s) for s in result.services],
        appliedRules=[AppliedRuleSchema.from_applied(a) for a in result.applied_rules],
    )


@router.post("/preview", response_model=PreviewResponse)
async def preview_pricing(
    data: CalculatePricingRequest,
    current_business: Business = Depends(get_current_business),
    service: PricingRuleService = Depends(get_pricing_rule_service),
):
    """What-if pricing that does not count towards rule usage"""
    preview, summary = service.preview(data, current_business)
    return PreviewResponse(
        originalTotal=round(preview.original_total, 2),
        adjustedTotal=round(preview.adjusted_total, 2),
        totalAdjustment=round(preview.total_adjustment, 2),
        services=[ServiceSchema.from_service(s) for s in preview.services],
        appliedRules=[AppliedRuleSchema.from_applied(a) for a in preview.applied_rules],
        summary=PreviewSummary(
            rulesApplied=summary["rules_applied"],
            percentageChange=summary["percentage_change"],
            savingsAmount=summary["savings_amount"],
            increaseAmount=summary["increase_amount"],
        ),
    )
