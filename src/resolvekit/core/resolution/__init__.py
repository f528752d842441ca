"""Remote resource resolvers.

Resolvers fetch task and pipeline manifests from external sources at
execution time. Each backend implements the :class:`Resolver` protocol and is
routed to by its selector labels.

Public API:
    resolve(ctx, labels, params) -> ResolvedResource
        Route a request to the matching registered resolver and resolve it

    resolver_registry
        Global registry for resolver factories and instances

Backends:
    hub:
        kind, name, version, catalog -> manifest from the hub yaml endpoint

    bundles:
        kind, name, bundle, serviceAccount -> manifest from an artifact bundle

Examples:
    >>> from resolvekit.core.resolution import (
    ...     FeatureFlags, RequestContext, params_from_mapping, resolver_registry, resolve,
    ... )
    >>> resolver_registry.register(resolver_registry.create("hub"))
    >>> ctx = RequestContext.background().with_features(FeatureFlags())
    >>> resource = resolve(
    ...     ctx,
    ...     {"resolution.tekton.dev/type": "hub"},
    ...     params_from_mapping({"kind": "task", "name": "git-clone", "version": "0.9", "catalog": "tekton"}),
    ... )
"""

from __future__ import annotations

from typing import TYPE_CHECKING

# Import backends to trigger registration via decorators
from . import bundle as _bundle
from . import hub as _hub
from .bundle import BundleFetcher, BundleFetchRequest, BundleResolver
from .context import (
    RESOLVER_TYPE_BUNDLES,
    RESOLVER_TYPE_HUB,
    FeatureFlags,
    RequestContext,
    context_with_bundles_resolver_enabled,
    context_with_hub_resolver_enabled,
)
from .errors import (
    ContextCanceledError,
    DeadlineExceededError,
    InvalidParamsError,
    MalformedResponseError,
    ResolutionError,
    ResolutionTransportError,
    ResolverDisabledError,
)
from .hub import HubResolver
from .params import Param, ParamValue, params_from_mapping
from .protocols import LABEL_KEY_RESOLVER_TYPE, ResolvedResource, Resolver
from .registry import ResolverRegistry, register_resolver, resolver_registry

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence


def resolve(
    ctx: RequestContext,
    labels: Mapping[str, str],
    params: Sequence[Param],
) -> ResolvedResource:
    """Resolve ``params`` with the globally registered resolver matching ``labels``.

    Raises:
        ValueError: If no registered resolver matches the labels
        ResolutionError: Any error raised by the selected resolver
    """
    return resolver_registry.resolve(ctx, labels, params)


__all__ = [
    "LABEL_KEY_RESOLVER_TYPE",
    "RESOLVER_TYPE_BUNDLES",
    "RESOLVER_TYPE_HUB",
    "BundleFetchRequest",
    "BundleFetcher",
    "BundleResolver",
    "ContextCanceledError",
    "DeadlineExceededError",
    "FeatureFlags",
    "HubResolver",
    "InvalidParamsError",
    "MalformedResponseError",
    "Param",
    "ParamValue",
    "RequestContext",
    "ResolutionError",
    "ResolutionTransportError",
    "ResolvedResource",
    "Resolver",
    "ResolverDisabledError",
    "ResolverRegistry",
    "context_with_bundles_resolver_enabled",
    "context_with_hub_resolver_enabled",
    "params_from_mapping",
    "register_resolver",
    "resolve",
    "resolver_registry",
]
