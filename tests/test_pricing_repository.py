"""Tests for pricing rule persistence."""

from propertyquote.auth import create_business_with_api_key
from propertyquote.domain.pricing.repository import PricingRuleRepository
from propertyquote.models import PricingRule


def make_rule(db, business, name, priority=0, type="zone", is_active=True):
    return PricingRuleRepository.create_rule(
        db,
        business.id,
        name=name,
        type=type,
        conditions={"zipCodes": ["02139"]},
        pricing={"priceMultiplier": 1.1},
        priority=priority,
        is_active=is_active,
    )


class TestActiveRules:
    """Tests for the engine's rule query."""

    def test_priority_desc_then_creation_order(self, db, business):
        make_rule(db, business, "first low", priority=1)
        make_rule(db, business, "high", priority=9)
        make_rule(db, business, "second low", priority=1)

        names = [r.name for r in PricingRuleRepository.get_active_rules(db, business.id)]

        assert names == ["high", "first low", "second low"]

    def test_inactive_rules_excluded(self, db, business):
        make_rule(db, business, "on")
        make_rule(db, business, "off", is_active=False)

        names = [r.name for r in PricingRuleRepository.get_active_rules(db, business.id)]

        assert names == ["on"]

    def test_increment_applied_count(self, db, business):
        rule = make_rule(db, business, "counted")

        PricingRuleRepository.increment_applied_count(db, rule.id)
        PricingRuleRepository.increment_applied_count(db, rule.id)

        db.refresh(rule)
        assert rule.applied_count == 2


class TestRuleAdministration:
    """Tests for list/get/update/delete."""

    def test_new_rule_defaults(self, db, business):
        rule = make_rule(db, business, "defaults")

        assert rule.applied_count == 0
        assert rule.is_active is True
        assert rule.created_at is not None

    def test_filter_by_type_and_active(self, db, business):
        make_rule(db, business, "zone on")
        make_rule(db, business, "volume on", type="volume")
        make_rule(db, business, "zone off", is_active=False)

        zones = PricingRuleRepository.get_rules(db, business.id, rule_type="zone")
        active = PricingRuleRepository.get_rules(db, business.id, is_active=True)

        assert sorted(r.name for r in zones) == ["zone off", "zone on"]
        assert sorted(r.name for r in active) == ["volume on", "zone on"]

    def test_get_rule_is_scoped_to_business(self, db, business):
        other, _ = create_business_with_api_key(db, "Other Co")
        rule = make_rule(db, business, "mine")

        assert PricingRuleRepository.get_rule_by_id(db, rule.id, business.id) is rule
        assert PricingRuleRepository.get_rule_by_id(db, rule.id, other.id) is None

    def test_update_skips_none_values(self, db, business):
        rule = make_rule(db, business, "before", priority=3)

        PricingRuleRepository.update_rule(db, rule, name="after", priority=None)

        assert rule.name == "after"
        assert rule.priority == 3

    def test_delete(self, db, business):
        rule = make_rule(db, business, "doomed")

        PricingRuleRepository.delete_rule(db, rule)

        assert db.query(PricingRule).count() == 0

    def test_deleting_business_removes_its_rules(self, db, business):
        make_rule(db, business, "orphan")

        db.delete(business)
        db.commit()

        assert db.query(PricingRule).count() == 0
