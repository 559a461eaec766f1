"""
Tests for rule normalization
"""
import re
import pytest
from form_validator import Overridden, Plain, Rule, RuleSet, normalize
from form_validator.checks import BUILTIN_CHECKS
from form_validator.rules import BUILTIN_CHECK_NAMES, to_setting


class TestNormalize:
    """Test normalize()."""

    def test_shorthand_is_required_only(self):
        rule_set = normalize({"firstname": True})
        assert rule_set["firstname"] == Rule("firstname", {"required": Plain(True)})

    def test_spec_is_copied(self):
        pattern = re.compile(r"^\d+$")
        rule_set = normalize({"zip": {"required": True, "pattern": pattern}})
        rule = rule_set["zip"]
        assert rule.get("required") == Plain(True)
        assert rule.get("pattern") == Plain(pattern)

    def test_override_records_are_tagged(self):
        rule_set = normalize({"age": {"min": {"value": 18, "message": "Adults only"}}})
        assert rule_set["age"].get("min") == Overridden(18, "Adults only")

    def test_preserves_declaration_order(self):
        rule_set = normalize({"b": True, "a": True, "c": {}})
        assert rule_set.keys() == ["b", "a", "c"]
        assert [rule.key for rule in rule_set] == ["b", "a", "c"]

    def test_false_declares_no_checks(self):
        rule_set = normalize({"notes": False})
        assert rule_set["notes"].checks == {}

    def test_unknown_keys_ignored(self):
        rule_set = normalize({"field": {"required": True, "colour": "blue"}})
        assert set(rule_set["field"].checks) == {"required"}

    def test_no_consistency_checks(self):
        rule_set = normalize({"field": {"minLength": 10, "maxLength": 2}})
        assert rule_set["field"].get("minLength") == Plain(10)

    @pytest.mark.parametrize("declared", [None, {}])
    def test_empty(self, declared):
        assert len(normalize(declared)) == 0

    def test_idempotent(self):
        declared = {"firstname": True, "age": {"min": 18, "max": {"value": 99, "message": "M"}}}
        assert normalize(declared) == normalize(declared)

    def test_missing_field_raises_key_error(self):
        with pytest.raises(KeyError):
            normalize({"a": True})["b"]


class TestToSetting:
    """Test check configuration tagging."""

    def test_plain(self):
        assert to_setting(3) == Plain(3)

    def test_mapping_without_message_is_plain(self):
        assert to_setting({"value": 3}) == Plain({"value": 3})

    def test_already_tagged(self):
        setting = Overridden(3, "M")
        assert to_setting(setting) is setting


class TestRuleSet:
    """Test RuleSet container behaviour."""

    def test_contains(self):
        rule_set = RuleSet([Rule("a")])
        assert "a" in rule_set
        assert "b" not in rule_set

    def test_builtin_order_matches_engine(self):
        assert tuple(check.name for check in BUILTIN_CHECKS) == BUILTIN_CHECK_NAMES
