"""
Validation Engine - Rule Evaluation

Applies each field's checks to a data record and collects at most one error
message per field.

## Evaluation Order (per field)

1. `required` - a blank value (None, "", 0, False) records the required
   message and skips the built-in checks below
2. Built-in checks, only for non-None values, in the order of BUILTIN_CHECKS:
   isEmail, isURL, minLength, maxLength, pattern, min, max,
   ltDate, lteDate, gtDate, gteDate
3. `custom` - caller callable, always runs
4. `script` - compiled source, always runs

Every failing check overwrites the message already recorded for the field, so
the last failure in this order wins.

## Messages

A check declared with an override record (`{"value": ..., "message": ...}`)
fails with its own message. Otherwise the default message key of the check is
resolved through the message-lookup function.

Nothing raises out of `evaluate()`: faults in caller-supplied logic are logged
and recorded as messages for the field concerned.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple

from .checks import (
    BUILTIN_CHECKS,
    CUSTOM_ERROR_MESSAGE,
    INVALID_VALUE_MESSAGE,
    REQUIRED_MESSAGE,
    SCRIPT_ERROR_MESSAGE,
    is_blank,
)
from .rules import CheckSetting, Overridden, Rule, RuleSet
from .script import run_script
from .translation import Translate

logger = logging.getLogger(__name__)


@dataclass
class ValidationResult:
    """Verdict of one validation call."""

    valid: bool
    errors: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"valid": self.valid, "errors": dict(self.errors)}


def interpret_outcome(result: Any) -> Tuple[bool, Optional[str]]:
    """
    Interpret the return value of a custom or script check.

    Returns:
        Tuple of (passed, message) - message is set only when the check
        returned a non-empty string
    """
    if result is True:
        return True, None
    if isinstance(result, str) and result:
        return False, result
    return False, None


class _FieldEvaluator:
    """Evaluates one rule against one data record."""

    def __init__(self, rule: Rule, data: Mapping[str, Any], options, translate: Translate):
        self.rule = rule
        self.data = data
        self.options = options
        self.translate = translate
        self.message: Optional[str] = None

    def fail(self, setting: Optional[CheckSetting], key: str, values=None) -> None:
        if isinstance(setting, Overridden):
            self.message = setting.message
        else:
            self.message = self.translate(key, values)

    def evaluate(self) -> Optional[str]:
        value = self.data.get(self.rule.key)

        required = self.rule.get("required")
        if required is not None and required.value and is_blank(value):
            self.fail(required, REQUIRED_MESSAGE)
        elif value is not None:
            self._run_builtin_checks(value)

        self._run_custom()
        self._run_script()
        return self.message

    def _run_builtin_checks(self, value: Any) -> None:
        for check in BUILTIN_CHECKS:
            setting = self.rule.get(check.name)
            if setting is None or not check.enabled(setting.value):
                continue
            passed, values = check.run(value, setting.value, self.options)
            if not passed:
                self.fail(setting, check.message_key, values)

    def _run_custom(self) -> None:
        setting = self.rule.get("custom")
        if setting is None or not callable(setting.value):
            return
        try:
            result = setting.value(self.data, self.rule.key)
        except Exception:
            logger.warning(f"Custom check for {self.rule.key} raised", exc_info=True)
            self.fail(None, CUSTOM_ERROR_MESSAGE)
            return
        self._record_outcome(setting, result)

    def _run_script(self) -> None:
        setting = self.rule.get("script")
        if setting is None or not setting.value:
            return
        try:
            result = run_script(str(setting.value), self.data)
        except Exception:
            logger.warning(f"Script check for {self.rule.key} failed", exc_info=True)
            self.fail(None, SCRIPT_ERROR_MESSAGE)
            return
        if result is None:
            logger.warning(f"Script check for {self.rule.key} is not returning any value")
        self._record_outcome(setting, result)

    def _record_outcome(self, setting: CheckSetting, result: Any) -> None:
        passed, message = interpret_outcome(result)
        if passed:
            return
        if message is not None:
            self.message = message
        else:
            self.fail(setting, INVALID_VALUE_MESSAGE)


def evaluate(
    rule_set: RuleSet,
    data: Optional[Mapping[str, Any]],
    options,
    translate: Translate,
) -> ValidationResult:
    """
    Validate a data record against a rule set.

    Args:
        rule_set: Normalized rules
        data: Field values; absent fields are treated as None
        options: ValidatorOptions in effect
        translate: Message lookup, already bound to the translation prefix

    Returns:
        ValidationResult with one message per invalid field
    """
    errors: Dict[str, str] = {}

    if len(rule_set) == 0:
        logger.warning("No rules defined")
        return ValidationResult(valid=True, errors=errors)

    data = data or {}
    for rule in rule_set:
        message = _FieldEvaluator(rule, data, options, translate).evaluate()
        if message is not None:
            errors[rule.key] = message

    return ValidationResult(valid=not errors, errors=errors)
