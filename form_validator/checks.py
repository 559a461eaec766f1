"""
Built-in field checks.

Each check compares a single field value against the target configured in the
field's rule. Checks never raise: values of the wrong type either never fail
(length and range checks) or always fail (regex and date checks), matching
how the comparators behave on malformed input.

The order of BUILTIN_CHECKS is the evaluation order used by the engine. A later
failing check overwrites the message of an earlier one.
"""

import logging
import numbers
import operator
import re
from abc import ABC, abstractmethod
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Callable, Dict, Optional, Tuple

logger = logging.getLogger(__name__)

EMAIL_REGEX = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}\Z")
URL_REGEX = re.compile(r'^(http|https)://[^ "]+\Z')

# Default message keys (looked up through the message-lookup function)
REQUIRED_MESSAGE = "This field is required"
INVALID_VALUE_MESSAGE = "Invalid value"
CUSTOM_ERROR_MESSAGE = "Validation error"
SCRIPT_ERROR_MESSAGE = "Validation error (script)"

# (passed, interpolation values for the failure message)
Outcome = Tuple[bool, Optional[Dict[str, Any]]]


def is_blank(value: Any) -> bool:
    """True for None, empty string, numeric zero (or NaN) and False."""
    if value is None or value is False:
        return True
    if isinstance(value, str):
        return value == ""
    if isinstance(value, numbers.Number):
        # NaN is the only value unequal to itself
        return value == 0 or value != value
    return False


def as_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def as_number(value: Any) -> Optional[numbers.Number]:
    """Return a comparable number, or None when the value is not numeric."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (numbers.Real, Decimal)):
        # NaN never compares as smaller or larger
        return value if value == value else None
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def parse_date(value: Any) -> Optional[datetime]:
    """
    Parse a date-like value.

    Accepts datetime, date, ISO-8601 strings and epoch milliseconds.
    Returns None when the value cannot be parsed.
    """
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return datetime.fromisoformat(text)
        except ValueError:
            return None
    return None


def format_date(moment: datetime, date_format: Optional[str] = None) -> str:
    if date_format:
        return moment.strftime(date_format)
    return moment.isoformat()


def _aligned(left: datetime, right: datetime) -> Tuple[datetime, datetime]:
    # Mixed naive/aware pairs are compared on wall-clock time
    if (left.tzinfo is None) != (right.tzinfo is None):
        return left.replace(tzinfo=None), right.replace(tzinfo=None)
    return left, right


def resolve_regex(pattern: Any) -> "re.Pattern":
    if isinstance(pattern, re.Pattern):
        return pattern
    return re.compile(as_text(pattern))


class BuiltinCheck(ABC):
    """
    Abstract base class for the built-in checks.

    A check is identified by its declaration name (e.g. 'minLength') and has a
    default message key used when the rule does not override the message.
    """

    def __init__(self, name: str, message_key: str):
        self.name = name
        self.message_key = message_key

    def enabled(self, target: Any) -> bool:
        """Return True when the configured target switches the check on."""
        return bool(target)

    @abstractmethod
    def run(self, value: Any, target: Any, options: Any) -> Outcome:
        """
        Compare a present (non-None) value against the configured target.

        Returns:
            Tuple of (passed, values) where values are the interpolation
            values for the default failure message (or None)
        """

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"


class RegexCheck(BuiltinCheck):
    """Match against a pattern taken from the validator options."""

    def __init__(self, name: str, message_key: str, option: str):
        super().__init__(name, message_key)
        self.option = option

    def run(self, value, target, options) -> Outcome:
        regex = getattr(options, self.option)
        return regex.search(as_text(value)) is not None, None


class PatternCheck(BuiltinCheck):
    """Match against the expression configured in the rule."""

    def run(self, value, target, options) -> Outcome:
        try:
            regex = resolve_regex(target)
        except re.error as e:
            logger.warning(f"Invalid pattern {target!r}: {e}")
            return False, None
        return regex.search(as_text(value)) is not None, None


class LengthCheck(BuiltinCheck):
    """Compare the length of the value against a threshold."""

    def __init__(self, name: str, message_key: str, fails: Callable[[Any, Any], bool]):
        super().__init__(name, message_key)
        self.fails = fails

    def enabled(self, target) -> bool:
        return target is not None

    def run(self, value, target, options) -> Outcome:
        threshold = as_number(target)
        if threshold is None:
            return True, None
        try:
            length = len(value)
        except TypeError:
            return True, None
        return not self.fails(length, threshold), {"value": target}


class RangeCheck(LengthCheck):
    """Compare the numeric value against a threshold."""

    def run(self, value, target, options) -> Outcome:
        threshold = as_number(target)
        number = as_number(value)
        if threshold is None or number is None:
            return True, None
        return not self.fails(number, threshold), {"value": target}


class DateCheck(BuiltinCheck):
    """Compare the value as a date against a target date."""

    def __init__(self, name: str, message_key: str, holds: Callable[[Any, Any], bool]):
        super().__init__(name, message_key)
        self.holds = holds

    def run(self, value, target, options) -> Outcome:
        bound = parse_date(target)
        if bound is None:
            return False, {"value": as_text(target)}
        values = {"value": format_date(bound, options.date_format)}

        moment = parse_date(value)
        if moment is None:
            return False, values
        moment, bound = _aligned(moment, bound)
        return self.holds(moment, bound), values


BUILTIN_CHECKS = (
    RegexCheck("isEmail", "Invalid email address", "email_pattern"),
    RegexCheck("isURL", "Invalid URL", "url_pattern"),
    LengthCheck("minLength", "Minimum length is {{value}}", operator.lt),
    LengthCheck("maxLength", "Maximum length is {{value}}", operator.gt),
    PatternCheck("pattern", INVALID_VALUE_MESSAGE),
    RangeCheck("min", "Minimum value is {{value}}", operator.lt),
    RangeCheck("max", "Maximum value is {{value}}", operator.gt),
    DateCheck("ltDate", "Date must be before {{value}}", operator.lt),
    DateCheck("lteDate", "Date must be on or before {{value}}", operator.le),
    DateCheck("gtDate", "Date must be after {{value}}", operator.gt),
    DateCheck("gteDate", "Date must be on or after {{value}}", operator.ge),
)
