"""Validator configuration: bundled defaults, override files and rule files."""

import hashlib
import logging
import re
import urllib.parse
from dataclasses import dataclass, fields, replace
from importlib.resources import files
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import requests
import yaml
from jsonschema import ValidationError, validate

from .checks import EMAIL_REGEX, URL_REGEX, resolve_regex
from .rules import CHECK_NAMES

logger = logging.getLogger(__name__)

# Option names as used by JavaScript-style hosts
OPTION_ALIASES = {
    "emailRegex": "email_regex",
    "urlRegex": "url_regex",
    "dateFormat": "date_format",
    "translationPrefix": "translation_prefix",
}

_NULLABLE_STRING = {"type": ["string", "null"]}

OPTIONS_SCHEMA = {
    "type": "object",
    "properties": {
        "email_regex": _NULLABLE_STRING,
        "url_regex": _NULLABLE_STRING,
        "date_format": _NULLABLE_STRING,
        "translation_prefix": _NULLABLE_STRING,
    },
    "additionalProperties": False,
}

_CHECK_SETTING = {
    "anyOf": [
        {"type": ["boolean", "number", "string", "null"]},
        {
            "type": "object",
            "properties": {
                "value": {"type": ["boolean", "number", "string"]},
                "message": {"type": "string"},
            },
            "required": ["value", "message"],
            "additionalProperties": False,
        },
    ]
}

# Shape of rule declarations coming from files or over the wire.
# `custom` needs a Python callable and cannot be declared there.
RULES_SCHEMA = {
    "type": "object",
    "additionalProperties": {
        "anyOf": [
            {"type": ["boolean", "null"]},
            {
                "type": "object",
                "properties": {
                    name: _CHECK_SETTING for name in CHECK_NAMES if name != "custom"
                },
                "additionalProperties": False,
            },
        ]
    },
}


def normalize_option_keys(settings: Mapping[str, Any]) -> Dict[str, Any]:
    """Map camelCase option names to their snake_case equivalents."""
    return {OPTION_ALIASES.get(key, key): value for key, value in settings.items()}


def check_document(document: Any, schema: dict, source: str) -> None:
    """
    Check a configuration document against a JSON schema.

    Raises:
        ValueError: If the document does not conform
    """
    try:
        validate(instance=document, schema=schema)
    except ValidationError as e:
        location = "/".join(str(p) for p in e.absolute_path) or "<root>"
        raise ValueError(f"Invalid configuration in {source} at {location}: {e.message}") from e


@dataclass(frozen=True)
class ValidatorOptions:
    """
    Engine configuration.

    Attributes:
        email_regex: Pattern (string or compiled) replacing the built-in email regex
        url_regex: Pattern (string or compiled) replacing the built-in URL regex
        date_format: strftime format for date check targets in messages
        translation_prefix: Prefix for default message keys; None for no prefix
    """

    email_regex: Any = None
    url_regex: Any = None
    date_format: Optional[str] = None
    translation_prefix: Optional[str] = "Validation"

    def __post_init__(self):
        for name in ("email_regex", "url_regex"):
            pattern = getattr(self, name)
            if pattern:
                try:
                    resolve_regex(pattern)
                except re.error as e:
                    raise ValueError(f"Invalid {name} {pattern!r}: {e}") from e

    @property
    def email_pattern(self) -> "re.Pattern":
        return resolve_regex(self.email_regex) if self.email_regex else EMAIL_REGEX

    @property
    def url_pattern(self) -> "re.Pattern":
        return resolve_regex(self.url_regex) if self.url_regex else URL_REGEX

    @classmethod
    def from_mapping(
        cls, settings: Optional[Mapping[str, Any]], base: Optional["ValidatorOptions"] = None
    ) -> "ValidatorOptions":
        """
        Build options from a mapping, on top of `base` (or the defaults).

        Raises:
            ValueError: If the mapping holds unknown option names
        """
        settings = normalize_option_keys(settings or {})
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(settings) - known)
        if unknown:
            raise ValueError(f"Unknown validator options: {', '.join(unknown)}")
        return replace(base or cls(), **settings)


class ConfigLoader:
    """Loads validator options (bundled defaults + optional override) and rule files."""

    CACHE_DIR = Path.home() / ".cache" / "form-validator"

    def __init__(self, config_uri: Optional[str] = None):
        """
        Initialize config loader with the bundled default-config.yaml.

        Args:
            config_uri: Optional override config (relative path, file:// or http(s)://)

        Raises:
            ValueError: If a config document is malformed
            RuntimeError: If a remote config cannot be fetched
        """
        config_file = files("form_validator").joinpath("default-config.yaml")
        self.default_config_path = str(config_file)
        self.cache_dir = self.CACHE_DIR

        with config_file.open("r") as f:
            self.config = normalize_option_keys(yaml.safe_load(f) or {})

        self.config_uri = config_uri
        if config_uri:
            override = self._load_config_from_uri(config_uri)
            if not isinstance(override, Mapping):
                raise ValueError(f"Config {config_uri} must be a mapping")
            self.config.update(normalize_option_keys(override))

        check_document(self.config, OPTIONS_SCHEMA, config_uri or self.default_config_path)

    def get_options(self) -> ValidatorOptions:
        """Get the validator options described by the loaded config."""
        return ValidatorOptions.from_mapping(self.config)

    def load_rules(self, uri: str) -> Dict[str, Any]:
        """
        Load rule declarations from a YAML file.

        The file holds a top-level `rules:` mapping in the declaration format
        accepted by `normalize()`; patterns are strings and scripts are source.

        Raises:
            ValueError: If the file is not a valid rule document
        """
        document = self._load_config_from_uri(uri)
        if not isinstance(document, Mapping) or "rules" not in document:
            raise ValueError(f"Rule file {uri} must contain a top-level 'rules' mapping")
        rules = document["rules"] or {}
        check_document(rules, RULES_SCHEMA, uri)
        logger.debug(f"Loaded {len(rules)} field rules from {uri}")
        return dict(rules)

    def _load_yaml(self, path: str) -> Any:
        """Load YAML file from disk."""
        with open(path) as f:
            return yaml.safe_load(f)

    def _load_config_from_uri(self, uri: str) -> Any:
        """
        Load a YAML document from a URI (with caching for remote files).

        Supports:
        - Relative or absolute paths
        - file:// - Local filesystem
        - https:// / http:// - Remote, cached under CACHE_DIR
        """
        parsed = urllib.parse.urlparse(uri)

        if not parsed.scheme:
            return self._load_yaml(uri)

        if parsed.scheme == "file":
            return self._load_yaml(urllib.parse.unquote(parsed.path))

        if parsed.scheme in ("http", "https"):
            cache_key = hashlib.sha256(uri.encode()).hexdigest()
            cache_path = self.cache_dir / f"config_{cache_key}.yaml"

            if cache_path.exists():
                return self._load_yaml(str(cache_path))

            content = self._fetch_uri(uri)
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            cache_path.write_text(content)
            return yaml.safe_load(content)

        raise ValueError(f"Unsupported URI scheme: {parsed.scheme} in {uri}")

    def _fetch_uri(self, uri: str) -> str:
        """Fetch content from HTTP/HTTPS URI."""
        try:
            response = requests.get(uri, timeout=10)
            response.raise_for_status()
        except requests.RequestException as e:
            raise RuntimeError(f"Failed to fetch config from {uri}: {e}") from e
        return response.text
