"""
Rule Set - Declaration Normalizing

Turns caller-supplied rule declarations into the canonical representation the
validation engine iterates over: one `Rule` per field, each holding zero or
more checks.

## Declaration Format

```python
declared = {
    "firstname": True,                      # shorthand for {"required": True}
    "email": {"required": True, "isEmail": True},
    "nickname": {"minLength": {"value": 3, "message": "Too short"}},
}
rule_set = normalize(declared)
```

Every check configuration is converted once into a tagged variant:

- `Plain(value)` - a bare value, failure message comes from the message lookup
- `Overridden(value, message)` - same comparison, `message` is used verbatim

No consistency checks are made here (e.g. `minLength > maxLength` is accepted).
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Mapping, Optional, Union

# Built-in checks, in evaluation order after `required`
BUILTIN_CHECK_NAMES = (
    "isEmail",
    "isURL",
    "minLength",
    "maxLength",
    "pattern",
    "min",
    "max",
    "ltDate",
    "lteDate",
    "gtDate",
    "gteDate",
)

CHECK_NAMES = ("required",) + BUILTIN_CHECK_NAMES + ("custom", "script")


@dataclass(frozen=True)
class Plain:
    """Check configured with a bare value."""

    value: Any


@dataclass(frozen=True)
class Overridden:
    """Check configured with a value and a caller-supplied failure message."""

    value: Any
    message: str


CheckSetting = Union[Plain, Overridden]


def is_override_record(raw: Any) -> bool:
    """Return True for the `{"value": ..., "message": ...}` declaration shape."""
    return isinstance(raw, Mapping) and "value" in raw and "message" in raw


def to_setting(raw: Any) -> CheckSetting:
    """Convert one declared check configuration into its tagged variant."""
    if isinstance(raw, (Plain, Overridden)):
        return raw
    if is_override_record(raw):
        return Overridden(raw["value"], str(raw["message"]))
    return Plain(raw)


@dataclass
class Rule:
    """All checks attached to one field."""

    key: str
    checks: Dict[str, CheckSetting] = field(default_factory=dict)

    def get(self, name: str) -> Optional[CheckSetting]:
        return self.checks.get(name)


class RuleSet:
    """Ordered, immutable collection of field rules (declaration order)."""

    def __init__(self, rules: Optional[List[Rule]] = None):
        self._rules = tuple(rules or ())

    def __iter__(self) -> Iterator[Rule]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def __getitem__(self, key: str) -> Rule:
        for rule in self._rules:
            if rule.key == key:
                return rule
        raise KeyError(key)

    def __contains__(self, key: object) -> bool:
        return any(rule.key == key for rule in self._rules)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RuleSet):
            return NotImplemented
        return self._rules == other._rules

    def __repr__(self) -> str:
        return f"RuleSet({[rule.key for rule in self._rules]!r})"

    def keys(self) -> List[str]:
        return [rule.key for rule in self._rules]


def normalize(declared: Optional[Mapping[str, Any]]) -> RuleSet:
    """
    Normalize declared rules into a RuleSet.

    Args:
        declared: Mapping of field name to either `True` (required only) or a
            rule specification mapping. `False`/`None` declare a field with no
            checks.

    Returns:
        A new RuleSet preserving declaration order
    """
    rules = []
    for key, spec in (declared or {}).items():
        if spec is True:
            rules.append(Rule(key, {"required": Plain(True)}))
        elif isinstance(spec, Mapping):
            checks = {
                name: to_setting(spec[name]) for name in CHECK_NAMES if name in spec
            }
            rules.append(Rule(key, checks))
        else:
            rules.append(Rule(key))
    return RuleSet(rules)
