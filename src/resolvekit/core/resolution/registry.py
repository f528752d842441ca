"""Registry routing resolution requests to resolver backends."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from resolvekit.core.validation import raise_for_schema

from .protocols import ResolvedResource, Resolver

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping, Sequence

    from .context import RequestContext
    from .params import Param

logger = logging.getLogger(__name__)


@dataclass
class ResolverFactory:
    """Factory for creating resolver instances from options."""

    create: Callable[[dict[str, Any]], Resolver]
    schema: Mapping[str, Any] | None = None


class ResolverRegistry:
    """Registry of resolver factories and live resolver instances.

    Factories are keyed by resolver type and build configured resolvers.
    Registered instances are selected by matching their selector against the
    labels of a resolution request.

    Example:
        >>> registry = ResolverRegistry()
        >>> registry.register(registry.create("hub", {"url": "http://hub.local/{name}"}))
        >>> registry.resolve(ctx, {"resolution.tekton.dev/type": "hub"}, params)
    """

    def __init__(self) -> None:
        self._factories: dict[str, ResolverFactory] = {}
        self._resolvers: dict[str, Resolver] = {}

    def register_factory(
        self,
        resolver_type: str,
        factory: Callable[[dict[str, Any]], Resolver],
        schema: Mapping[str, Any] | None = None,
    ) -> None:
        """Register a factory building resolvers of ``resolver_type``.

        Args:
            resolver_type: Resolver type identifier (e.g. "hub")
            factory: Callable creating a resolver from an options dict
            schema: Optional JSON schema for validating options
        """
        self._factories[resolver_type] = ResolverFactory(create=factory, schema=schema)
        logger.debug("Registered resolver factory for type: %s", resolver_type)

    def has_factory(self, resolver_type: str) -> bool:
        return resolver_type in self._factories

    def factory_types(self) -> list[str]:
        return sorted(self._factories)

    def factory_schema(self, resolver_type: str) -> Mapping[str, Any] | None:
        return self._get_factory(resolver_type).schema

    def validate_options(self, resolver_type: str, options: dict[str, Any] | None) -> None:
        """Validate resolver options without building a resolver.

        Raises:
            ValueError: If no factory is registered for the type
            ConfigurationError: If options violate the factory schema
        """
        factory = self._get_factory(resolver_type)
        raise_for_schema(options or {}, factory.schema, context=f"resolver:{resolver_type}")

    def create(self, resolver_type: str, options: dict[str, Any] | None = None) -> Resolver:
        """Build a resolver of ``resolver_type`` from validated options."""
        self.validate_options(resolver_type, options)
        return self._get_factory(resolver_type).create(dict(options or {}))

    def register(self, resolver: Resolver) -> None:
        """Initialize ``resolver`` and make it available for routing."""
        resolver.initialize()
        self._resolvers[resolver.resolver_type] = resolver
        logger.debug("Registered resolver %s (type=%s)", resolver.name, resolver.resolver_type)

    def get(self, resolver_type: str) -> Resolver:
        try:
            return self._resolvers[resolver_type]
        except KeyError as exc:
            raise ValueError(
                f"No resolver registered for type '{resolver_type}'. "
                f"Available types: {self._available(self._resolvers)}"
            ) from exc

    def resolvers(self) -> list[Resolver]:
        return list(self._resolvers.values())

    def select(self, ctx: RequestContext, labels: Mapping[str, str]) -> Resolver:
        """Return the resolver whose selector is contained in ``labels``.

        Raises:
            ValueError: If no registered resolver matches
        """
        for resolver in self._resolvers.values():
            selector = resolver.get_selector(ctx)
            if all(labels.get(key) == value for key, value in selector.items()):
                return resolver
        raise ValueError(
            f"No resolver matches labels {dict(labels)}. "
            f"Available types: {self._available(self._resolvers)}"
        )

    def resolve(
        self,
        ctx: RequestContext,
        labels: Mapping[str, str],
        params: Sequence[Param],
    ) -> ResolvedResource:
        """Route a request to its resolver, validate params, then resolve.

        Errors from the resolver propagate unchanged.
        """
        resolver = self.select(ctx, labels)
        logger.debug("Resolving with %s", resolver.name)
        resolver.validate_params(ctx, params)
        resource = resolver.resolve(ctx, params)
        logger.debug("Resolved %d bytes with %s", len(resource.content), resolver.name)
        return resource

    def reset(self) -> None:
        """Forget registered resolver instances. Factories are kept."""
        self._resolvers.clear()

    def _get_factory(self, resolver_type: str) -> ResolverFactory:
        try:
            return self._factories[resolver_type]
        except KeyError as exc:
            raise ValueError(
                f"No resolver factory registered for type '{resolver_type}'. "
                f"Available types: {self._available(self._factories)}"
            ) from exc

    @staticmethod
    def _available(entries: Mapping[str, Any]) -> str:
        return ", ".join(sorted(entries)) or "(none)"


# Global registry instance
resolver_registry = ResolverRegistry()


def register_resolver(
    resolver_type: str, schema: Mapping[str, Any] | None = None
) -> Callable[[type], type]:
    """Decorator registering a resolver class as the factory for a type.

    Usage:
        @register_resolver("hub", schema=HUB_RESOLVER_SCHEMA)
        class HubResolver:
            ...
    """

    def decorator(cls: type) -> type:
        resolver_registry.register_factory(
            resolver_type,
            factory=lambda options: cls(**options),
            schema=schema,
        )
        return cls

    return decorator


__all__ = ["ResolverFactory", "ResolverRegistry", "register_resolver", "resolver_registry"]
