"""Pricing domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from ...shared.validators import validate_iso_date, validate_time_of_day, validate_zip_code
from .models import AppliedRule, RuleType, Service


class DateRangeSchema(BaseModel):
    start: Optional[str] = None
    end: Optional[str] = None

    @field_validator("start", "end")
    @classmethod
    def validate_dates(cls, v):
        return validate_iso_date(v)


class TimeOfDaySchema(BaseModel):
    start: str
    end: str

    @field_validator("start", "end")
    @classmethod
    def validate_times(cls, v):
        return validate_time_of_day(v)


class RuleConditionsSchema(BaseModel):
    """When a rule applies; which keys matter depends on the rule type"""

    zipCodes: Optional[list[str]] = None
    serviceTypes: Optional[list[str]] = None
    customerTags: Optional[list[str]] = None
    minArea: Optional[float] = Field(None, ge=0)
    maxArea: Optional[float] = Field(None, ge=0)
    dateRange: Optional[DateRangeSchema] = None
    daysOfWeek: Optional[list[int]] = None  # 0 = Sunday
    timeOfDay: Optional[TimeOfDaySchema] = None

    @field_validator("zipCodes")
    @classmethod
    def validate_zip_codes(cls, v):
        if v is None:
            return v
        return [validate_zip_code(z) for z in v]

    @field_validator("serviceTypes", "customerTags")
    @classmethod
    def strip_blank_entries(cls, v):
        if v is None:
            return v
        return [item.strip() for item in v if item and item.strip()]

    @field_validator("daysOfWeek")
    @classmethod
    def validate_days(cls, v):
        if v is None:
            return v
        if any(day < 0 or day > 6 for day in v):
            raise ValueError("daysOfWeek entries must be 0 (Sunday) to 6 (Saturday)")
        return sorted(set(v))

    @model_validator(mode="after")
    def validate_area_bounds(self):
        if self.minArea is not None and self.maxArea is not None and self.minArea > self.maxArea:
            raise ValueError("minArea cannot be greater than maxArea")
        return self


class FixedPricesSchema(BaseModel):
    lawnPerSqFt: Optional[float] = Field(None, ge=0)
    drivewayPerSqFt: Optional[float] = Field(None, ge=0)
    sidewalkPerSqFt: Optional[float] = Field(None, ge=0)
    buildingPerSqFt: Optional[float] = Field(None, ge=0)


class DiscountSchema(BaseModel):
    amount: float = Field(..., ge=0)
    percentage: bool = False

    @model_validator(mode="after")
    def validate_percentage(self):
        if self.percentage and self.amount > 100:
            raise ValueError("Percentage discount cannot exceed 100")
        return self


class RulePricingSchema(BaseModel):
    """How a rule changes the price"""

    priceMultiplier: Optional[float] = Field(None, gt=0)
    fixedPrices: Optional[FixedPricesSchema] = None
    minimumCharge: Optional[float] = Field(None, ge=0)
    surcharge: Optional[float] = None
    discount: Optional[DiscountSchema] = None


class PricingRuleCreate(BaseModel):
    """Schema for creating a pricing rule"""

    name: str = Field(..., min_length=1, max_length=255)
    type: RuleType
    conditions: RuleConditionsSchema = Field(default_factory=RuleConditionsSchema)
    pricing: RulePricingSchema = Field(default_factory=RulePricingSchema)
    priority: int = 0
    isActive: bool = True
    description: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Rule name cannot be empty")
        return v


class PricingRuleUpdate(BaseModel):
    """Schema for updating a pricing rule; omitted fields are left unchanged"""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    conditions: Optional[RuleConditionsSchema] = None
    pricing: Optional[RulePricingSchema] = None
    priority: Optional[int] = None
    isActive: Optional[bool] = None
    description: Optional[str] = None


class PricingRuleResponse(BaseModel):
    id: int
    name: str
    type: str
    conditions: dict
    pricing: dict
    priority: int
    isActive: bool
    description: Optional[str] = None
    appliedCount: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_rule(cls, rule) -> "PricingRuleResponse":
        return cls(
            id=rule.id,
            name=rule.name,
            type=rule.type,
            conditions=rule.conditions or {},
            pricing=rule.pricing or {},
            priority=rule.priority,
            isActive=rule.is_active,
            description=rule.description,
            appliedCount=rule.applied_count or 0,
            created_at=rule.created_at,
            updated_at=rule.updated_at,
        )


class ServiceSchema(BaseModel):
    name: str
    area: float = Field(..., ge=0)
    pricePerUnit: float = Field(..., ge=0)
    totalPrice: Optional[float] = Field(None, ge=0)

    def to_service(self) -> Service:
        total = self.totalPrice if self.totalPrice is not None else self.area * self.pricePerUnit
        return Service(
            name=self.name, area=self.area, price_per_unit=self.pricePerUnit, total_price=total
        )

    @classmethod
    def from_service(cls, service: Service) -> "ServiceSchema":
        return cls(
            name=service.name,
            area=service.area,
            pricePerUnit=round(service.price_per_unit, 4),
            totalPrice=round(service.total_price, 2),
        )


class CalculatePricingRequest(BaseModel):
    """Schema for pricing a set of services against the business's rules"""

    services: list[ServiceSchema]
    customerTags: list[str] = Field(default_factory=list)
    zipCode: Optional[str] = None
    totalArea: Optional[float] = Field(None, ge=0)
    date: Optional[datetime] = None


class AppliedRuleSchema(BaseModel):
    ruleId: str
    ruleName: str
    ruleType: str
    adjustment: float
    description: Optional[str] = None

    @classmethod
    def from_applied(cls, applied: AppliedRule) -> "AppliedRuleSchema":
        return cls(
            ruleId=applied.rule_id,
            ruleName=applied.rule_name,
            ruleType=applied.rule_type,
            adjustment=round(applied.adjustment, 2),
            description=applied.description,
        )


class PricingResponse(BaseModel):
    services: list[ServiceSchema]
    appliedRules: list[AppliedRuleSchema]


class PreviewSummary(BaseModel):
    rulesApplied: int
    percentageChange: float
    savingsAmount: float
    increaseAmount: float


class PreviewResponse(BaseModel):
    originalTotal: float
    adjustedTotal: float
    totalAdjustment: float
    services: list[ServiceSchema]
    appliedRules: list[AppliedRuleSchema]
    summary: PreviewSummary
