"""Message lookup: YAML message catalog with {{name}} interpolation."""

import re
from importlib.resources import files
from typing import Any, Callable, Dict, Mapping, Optional

import yaml

# (key, interpolation values) -> message
Translate = Callable[..., str]

_PLACEHOLDER = re.compile(r"\{\{\s*(\w+)\s*\}\}")


def interpolate(template: str, values: Optional[Mapping[str, Any]] = None) -> str:
    """Replace {{name}} placeholders; unknown placeholders are left in place."""
    if not values:
        return template

    def substitute(match):
        name = match.group(1)
        return str(values[name]) if name in values else match.group(0)

    return _PLACEHOLDER.sub(substitute, template)


def _flatten(messages: Mapping[str, Any], prefix: str = "") -> Dict[str, str]:
    flat = {}
    for key, value in messages.items():
        full_key = f"{prefix}.{key}" if prefix else str(key)
        if isinstance(value, Mapping):
            flat.update(_flatten(value, full_key))
        else:
            flat[full_key] = str(value)
    return flat


class MessageCatalog:
    """
    Default message-lookup function.

    Nested catalog mappings are addressed with dotted keys, so the catalog

        Validation:
          "Invalid URL": "Adresse invalide"

    answers the key "Validation.Invalid URL". A missing key is returned as-is
    (interpolated), the same way i18next-style lookups behave.
    """

    def __init__(self, messages: Optional[Mapping[str, Any]] = None):
        self._messages = _flatten(messages or {})

    @classmethod
    def load(cls, path: Optional[str] = None) -> "MessageCatalog":
        """
        Load a catalog from a YAML file.

        Args:
            path: Catalog file; defaults to the bundled English messages.yaml
        """
        if path is None:
            catalog_file = files("form_validator").joinpath("messages.yaml")
            with catalog_file.open("r") as f:
                return cls(yaml.safe_load(f))
        with open(path) as f:
            return cls(yaml.safe_load(f))

    def __contains__(self, key: str) -> bool:
        return key in self._messages

    def __call__(self, key: str, values: Optional[Mapping[str, Any]] = None) -> str:
        return interpolate(self._messages.get(key, key), values)


def with_prefix(translate: Translate, prefix: Optional[str]) -> Translate:
    """
    Wrap a lookup function so default message keys get the translation prefix.

    A None prefix means keys are passed through unchanged.
    """
    if prefix is None:
        return translate

    def lookup(key: str, values: Optional[Mapping[str, Any]] = None) -> str:
        return translate(f"{prefix}.{key}", values)

    return lookup
