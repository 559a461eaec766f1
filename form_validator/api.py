"""
Public API for form-validator

This is the "front door" - the main entry point for validating records.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional, Union

from .config_loader import ConfigLoader, ValidatorOptions
from .rules import RuleSet, normalize
from .translation import MessageCatalog, Translate, with_prefix
from .validation_engine import ValidationResult, evaluate

logger = logging.getLogger(__name__)


@dataclass
class ValidatorState:
    """
    Everything a validator carries between calls.

    Attributes:
        rule_set: Rules currently in effect
        options: Engine configuration
        validated: True once validate() ran with live=True
        errors: Errors published by the last validation
        snapshot: Serialized data of the last validation, for change detection
    """

    rule_set: RuleSet = field(default_factory=RuleSet)
    options: ValidatorOptions = field(default_factory=ValidatorOptions)
    validated: bool = False
    errors: Dict[str, str] = field(default_factory=dict)
    snapshot: Optional[str] = None


def _snapshot(data: Optional[Mapping[str, Any]]) -> Optional[str]:
    # None when the data cannot be serialized; such data always counts as changed
    try:
        return json.dumps(data or {}, sort_keys=True, default=str)
    except (TypeError, ValueError):
        return None


class FormValidator:
    """
    Field validator holding rules, options and the last published result.

    Example:
        from form_validator import FormValidator

        validator = FormValidator(rules={
            "firstname": True,
            "email": {"required": True, "isEmail": True},
            "age": {"min": {"value": 18, "message": "Adults only"}},
        })

        result = validator.validate({"firstname": "Jane", "email": "jane@", "age": 17})
        if not result.valid:
            for field_name, message in result.errors.items():
                print(f"{field_name}: {message}")

        # Later, whenever the host considers the input changed
        validator.revalidate(new_data)
    """

    def __init__(
        self,
        rules: Optional[Mapping[str, Any]] = None,
        options: Union[ValidatorOptions, Mapping[str, Any], None] = None,
        translate: Optional[Translate] = None,
        on_result: Optional[Callable[[ValidationResult], None]] = None,
        config_loader: Optional[ConfigLoader] = None,
    ):
        """
        Initialize the validator.

        Args:
            rules: Declared rules (field -> True or rule specification)
            options: ValidatorOptions, or a mapping of options applied on top of
                the loaded configuration
            translate: Message lookup `(key, values) -> str`; defaults to the
                bundled message catalog
            on_result: Result store, called with every ValidationResult
            config_loader: ConfigLoader providing the base options; defaults to
                the bundled configuration

        Raises:
            ValueError: If the options are invalid
        """
        if isinstance(options, ValidatorOptions):
            resolved = options
        else:
            loader = config_loader or ConfigLoader()
            resolved = ValidatorOptions.from_mapping(options, base=loader.get_options())

        self.state = ValidatorState(options=resolved)
        self._translate = translate or MessageCatalog.load()
        self._on_result = on_result
        self.update_rules(rules or {})

    @property
    def rules(self) -> RuleSet:
        return self.state.rule_set

    @property
    def options(self) -> ValidatorOptions:
        return self.state.options

    @property
    def errors(self) -> Dict[str, str]:
        return self.state.errors

    @property
    def is_valid(self) -> bool:
        """True only after a live validation that produced no errors."""
        return self.state.validated and not self.state.errors

    def update_rules(self, declared: Mapping[str, Any]) -> RuleSet:
        """
        Replace the rules in effect.

        Args:
            declared: Mapping of field -> True (required only) or rule specification

        Returns:
            The new RuleSet
        """
        rule_set = normalize(declared)
        self.state.rule_set = rule_set
        logger.debug(f"Rules updated: {rule_set.keys()}")
        return rule_set

    def validate(self, data: Optional[Mapping[str, Any]], live: bool = True) -> ValidationResult:
        """
        Validate a data record against the current rules.

        Args:
            data: Field values (missing fields count as None)
            live: Mark the validator as validated, enabling revalidate() and
                is_valid

        Returns:
            ValidationResult with `valid` and per-field `errors`
        """
        if live:
            self.state.validated = True

        translate = with_prefix(self._translate, self.state.options.translation_prefix)
        result = evaluate(self.state.rule_set, data, self.state.options, translate)

        self.state.snapshot = _snapshot(data)
        self._publish(result)
        return result

    def revalidate(self, data: Optional[Mapping[str, Any]]) -> Optional[ValidationResult]:
        """
        Re-run validation after the host's input changed.

        Does nothing before the first live validate() call, or when the data
        is unchanged since the last validation.

        Returns:
            The new ValidationResult, or None if validation was skipped
        """
        if not self.state.validated or data is None:
            return None
        snapshot = _snapshot(data)
        if snapshot is not None and snapshot == self.state.snapshot:
            return None
        return self.validate(data)

    def _publish(self, result: ValidationResult) -> None:
        self.state.errors = dict(result.errors)
        if self._on_result is not None:
            self._on_result(result)
