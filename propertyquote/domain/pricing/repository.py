"""Pricing rule repository - Database operations for pricing rules"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import PricingRule


class PricingRuleRepository:
    """Repository for pricing rule database operations"""

    @staticmethod
    def get_active_rules(db: Session, business_id: int) -> list[PricingRule]:
        """Active rules, highest priority first, oldest first within a priority"""
        return (
            db.query(PricingRule)
            .filter(PricingRule.business_id == business_id, PricingRule.is_active.is_(True))
            .order_by(PricingRule.priority.desc(), PricingRule.created_at.asc(), PricingRule.id.asc())
            .all()
        )

    @staticmethod
    def increment_applied_count(db: Session, rule_id: int) -> None:
        """Atomic counter bump; concurrent requests may still lose updates across replicas"""
        db.query(PricingRule).filter(PricingRule.id == rule_id).update(
            {PricingRule.applied_count: PricingRule.applied_count + 1},
            synchronize_session=False,
        )
        db.commit()

    @staticmethod
    def get_rules(
        db: Session,
        business_id: int,
        rule_type: Optional[str] = None,
        is_active: Optional[bool] = None,
    ) -> list[PricingRule]:
        """Get rules for the admin list view, newest first within a priority"""
        query = db.query(PricingRule).filter(PricingRule.business_id == business_id)

        if rule_type:
            query = query.filter(PricingRule.type == rule_type)

        if is_active is not None:
            query = query.filter(PricingRule.is_active.is_(is_active))

        return query.order_by(PricingRule.priority.desc(), PricingRule.created_at.desc()).all()

    @staticmethod
    def get_rule_by_id(db: Session, rule_id: int, business_id: int) -> Optional[PricingRule]:
        return (
            db.query(PricingRule)
            .filter(PricingRule.id == rule_id, PricingRule.business_id == business_id)
            .first()
        )

    @staticmethod
    def create_rule(db: Session, business_id: int, **rule_data) -> PricingRule:
        rule = PricingRule(business_id=business_id, **rule_data)
        db.add(rule)
        db.commit()
        db.refresh(rule)
        return rule

    @staticmethod
    def update_rule(db: Session, rule: PricingRule, **updates) -> PricingRule:
        """Update a rule with provided fields"""
        for key, value in updates.items():
            if value is not None and hasattr(rule, key):
                setattr(rule, key, value)

        db.commit()
        db.refresh(rule)
        return rule

    @staticmethod
    def delete_rule(db: Session, rule: PricingRule) -> None:
        db.delete(rule)
        db.commit()
