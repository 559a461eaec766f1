"""
form-validator: Declarative field validation

This library validates flat data records (e.g. form input) against per-field
rules:
- Presence, type, length, numeric range and date comparison checks
- Per-check override messages
- Caller-supplied check functions and compiled script checks
- Pluggable message lookup (translation)
- YAML configuration and rule files

Example:
    from form_validator import FormValidator

    validator = FormValidator(rules={"firstname": True, "email": {"isEmail": True}})
    result = validator.validate({"firstname": "", "email": "jane@example.com"})
"""

from .api import FormValidator, ValidatorState
from .config_loader import ConfigLoader, ValidatorOptions
from .rules import Overridden, Plain, Rule, RuleSet, normalize
from .translation import MessageCatalog
from .validation_engine import ValidationResult, evaluate

__version__ = "0.1.0"
__all__ = [
    "FormValidator",
    "ValidatorState",
    "ConfigLoader",
    "ValidatorOptions",
    "Overridden",
    "Plain",
    "Rule",
    "RuleSet",
    "normalize",
    "MessageCatalog",
    "ValidationResult",
    "evaluate",
]
