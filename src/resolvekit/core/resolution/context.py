"""Request-scoped feature flags, deadlines and cancellation."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any

from resolvekit.core.validation import ConfigurationError

from .errors import ContextCanceledError, DeadlineExceededError, ResolutionTransportError

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

# Resolver type identifiers, also used as selector label values
RESOLVER_TYPE_HUB = "hub"
RESOLVER_TYPE_BUNDLES = "bundles"

FLAG_ENABLE_HUB_RESOLVER = "enable-hub-resolver"
FLAG_ENABLE_BUNDLES_RESOLVER = "enable-bundles-resolver"

_FLAG_FIELDS = {
    FLAG_ENABLE_HUB_RESOLVER: "enable_hub_resolver",
    FLAG_ENABLE_BUNDLES_RESOLVER: "enable_bundles_resolver",
}


def _parse_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in {"true", "false"}:
        return value.strip().lower() == "true"
    raise ConfigurationError(f"feature flag {key!r} must be true or false, got {value!r}")


@dataclass(frozen=True)
class FeatureFlags:
    """Which resolver types are enabled."""

    enable_hub_resolver: bool = True
    enable_bundles_resolver: bool = True

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> FeatureFlags:
        """Build flags from config-map style keys, e.g. ``enable-hub-resolver: "true"``."""
        if not data:
            return cls()
        values: dict[str, bool] = {}
        for key, value in data.items():
            field_name = _FLAG_FIELDS.get(key)
            if field_name is None:
                known = ", ".join(sorted(_FLAG_FIELDS))
                raise ConfigurationError(f"unknown feature flag {key!r}. Known flags: {known}")
            values[field_name] = _parse_bool(key, value)
        return cls(**values)

    def is_enabled(self, resolver_type: str) -> bool:
        if resolver_type == RESOLVER_TYPE_HUB:
            return self.enable_hub_resolver
        if resolver_type == RESOLVER_TYPE_BUNDLES:
            return self.enable_bundles_resolver
        return False


@dataclass(frozen=True)
class RequestContext:
    """Per-request state passed to every resolver call.

    A context without feature flags has every resolver type disabled. Deadlines
    are absolute ``time.monotonic()`` values.

    Example:
        >>> ctx = RequestContext.background().with_features(FeatureFlags()).with_timeout(10)
        >>> ctx.is_enabled("hub")
        True
    """

    features: FeatureFlags | None = None
    deadline: float | None = None
    cancel_events: tuple[threading.Event, ...] = ()

    @classmethod
    def background(cls) -> RequestContext:
        return cls()

    def with_features(self, features: FeatureFlags) -> RequestContext:
        return replace(self, features=features)

    def with_timeout(self, seconds: float) -> RequestContext:
        deadline = time.monotonic() + seconds
        if self.deadline is not None:
            deadline = min(deadline, self.deadline)
        return replace(self, deadline=deadline)

    def with_cancel(self) -> tuple[RequestContext, Callable[[], None]]:
        """Return a child context and the function that cancels it.

        Cancelling a parent also cancels every context derived from it.
        """
        event = threading.Event()
        ctx = replace(self, cancel_events=(*self.cancel_events, event))
        return ctx, event.set

    def is_enabled(self, resolver_type: str) -> bool:
        return self.features is not None and self.features.is_enabled(resolver_type)

    def remaining(self) -> float | None:
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    def err(self) -> ResolutionTransportError | None:
        if any(event.is_set() for event in self.cancel_events):
            return ContextCanceledError()
        if self.deadline is not None and time.monotonic() >= self.deadline:
            return DeadlineExceededError()
        return None

    def raise_if_done(self) -> None:
        error = self.err()
        if error is not None:
            raise error


def context_with_hub_resolver_enabled(ctx: RequestContext) -> RequestContext:
    """Return ``ctx`` with the hub resolver enabled and other flags kept."""
    features = ctx.features or FeatureFlags(enable_hub_resolver=False, enable_bundles_resolver=False)
    return ctx.with_features(replace(features, enable_hub_resolver=True))


def context_with_bundles_resolver_enabled(ctx: RequestContext) -> RequestContext:
    """Return ``ctx`` with the bundles resolver enabled and other flags kept."""
    features = ctx.features or FeatureFlags(enable_hub_resolver=False, enable_bundles_resolver=False)
    return ctx.with_features(replace(features, enable_bundles_resolver=True))


__all__ = [
    "FLAG_ENABLE_BUNDLES_RESOLVER",
    "FLAG_ENABLE_HUB_RESOLVER",
    "RESOLVER_TYPE_BUNDLES",
    "RESOLVER_TYPE_HUB",
    "FeatureFlags",
    "RequestContext",
    "context_with_bundles_resolver_enabled",
    "context_with_hub_resolver_enabled",
]
