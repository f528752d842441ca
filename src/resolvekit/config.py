"""Settings loader for resolver feature flags and backend options."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from resolvekit.core.resolution import FeatureFlags, RequestContext, ResolverRegistry, resolver_registry
from resolvekit.core.validation import ConfigurationError, raise_for_schema

logger = logging.getLogger(__name__)

SETTINGS_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "feature_flags": {
            "type": "object",
            "additionalProperties": {"type": ["boolean", "string"]},
        },
        "timeout": {"type": "number", "exclusiveMinimum": 0},
        "resolvers": {
            "type": "object",
            "additionalProperties": {"type": ["object", "null"]},
        },
    },
    "additionalProperties": False,
}


@dataclass
class Settings:
    features: FeatureFlags = field(default_factory=FeatureFlags)
    timeout: float | None = None
    resolver_options: dict[str, dict[str, Any]] = field(default_factory=dict)
    source_path: Path | None = None

    def request_context(self) -> RequestContext:
        """Build a request context carrying these flags and timeout."""
        ctx = RequestContext.background().with_features(self.features)
        if self.timeout is not None:
            ctx = ctx.with_timeout(self.timeout)
        return ctx


def parse_settings(data: dict[str, Any] | None, *, source_path: Path | None = None) -> Settings:
    """Validate a profile mapping and turn it into Settings.

    Raises:
        ConfigurationError: If the mapping or any resolver options are invalid
    """
    data = data or {}
    raise_for_schema(data, SETTINGS_SCHEMA, context="settings")

    resolver_options: dict[str, dict[str, Any]] = {}
    for resolver_type, options in (data.get("resolvers") or {}).items():
        options = dict(options or {})
        try:
            resolver_registry.validate_options(resolver_type, options)
        except ValueError as exc:
            raise ConfigurationError(str(exc)) from exc
        resolver_options[resolver_type] = options

    timeout = data.get("timeout")
    return Settings(
        features=FeatureFlags.from_mapping(data.get("feature_flags")),
        timeout=float(timeout) if timeout is not None else None,
        resolver_options=resolver_options,
        source_path=source_path,
    )


def load_settings(path: str | Path, profile: str = "default") -> Settings:
    """Load settings from a YAML file.

    The file holds one mapping per profile:

        default:
          feature_flags:
            enable-hub-resolver: "true"
            enable-bundles-resolver: "false"
          timeout: 60
          resolvers:
            hub:
              url: https://hub.example.com/v1/resource/{catalog}/{kind}/{name}/{version}/yaml

    Args:
        path: Path to settings YAML file
        profile: Profile name to load (default: "default")

    Raises:
        ConfigurationError: If the file is missing, unparsable or invalid
    """
    config_path = Path(path)
    try:
        data = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
    except FileNotFoundError as exc:
        raise ConfigurationError(f"Settings file not found: {config_path}") from exc
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Invalid YAML in settings file: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigurationError(f"Settings file must contain a YAML mapping, got {type(data).__name__}")
    if profile not in data:
        available = ", ".join(sorted(str(key) for key in data)) or "(none)"
        raise ConfigurationError(f"Profile '{profile}' not found in {config_path}. Available: {available}")

    logger.debug("Loading settings profile '%s' from %s", profile, config_path)
    return parse_settings(data[profile], source_path=config_path)


def build_resolvers(settings: Settings, registry: ResolverRegistry | None = None) -> ResolverRegistry:
    """Create and register one resolver per known type using configured options.

    Types without options are built with their defaults.
    """
    target = registry if registry is not None else ResolverRegistry()
    for resolver_type in resolver_registry.factory_types():
        options = settings.resolver_options.get(resolver_type, {})
        target.register(resolver_registry.create(resolver_type, options))
    return target


__all__ = ["SETTINGS_SCHEMA", "Settings", "build_resolvers", "load_settings", "parse_settings"]
