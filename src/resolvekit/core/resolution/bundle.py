"""Bundle resolver fetching manifests from OCI-style artifact bundles."""

from __future__ import annotations

import importlib
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from resolvekit.core.validation import ConfigurationError

from .context import RESOLVER_TYPE_BUNDLES
from .errors import ResolutionError, ResolutionTransportError, ResolverDisabledError
from .params import extract_string_params, require_params, validate_kind
from .protocols import (
    ANNOTATION_KEY_CONTENT_TYPE,
    CONTENT_TYPE_YAML,
    LABEL_KEY_RESOLVER_TYPE,
    SUPPORTED_KINDS,
    ResolvedResource,
)
from .registry import register_resolver

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from .context import RequestContext
    from .params import Param

logger = logging.getLogger(__name__)

LABEL_VALUE_BUNDLE_RESOLVER_TYPE = RESOLVER_TYPE_BUNDLES

PARAM_KIND = "kind"
PARAM_NAME = "name"
PARAM_BUNDLE = "bundle"
PARAM_SERVICE_ACCOUNT = "serviceAccount"
BUNDLE_PARAMS = (PARAM_KIND, PARAM_NAME, PARAM_BUNDLE, PARAM_SERVICE_ACCOUNT)

DISABLED_ERROR = "cannot handle resolution request, enable-bundles-resolver feature flag not true"

BUNDLE_RESOLVER_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "fetcher": {
            "type": "string",
            "pattern": r"^[A-Za-z_][\w.]*:[A-Za-z_]\w*$",
            "description": "Import path 'package.module:attribute' of the bundle fetcher",
        },
    },
    "additionalProperties": False,
}


@dataclass(frozen=True)
class BundleFetchRequest:
    """Coordinates of a manifest inside an artifact bundle.

    Attributes:
        bundle: Bundle reference (e.g. "registry.example.com/tasks:v1")
        kind: Resource kind ("task" or "pipeline")
        name: Resource name within the bundle
        service_account: Identity the fetcher authenticates as
    """

    bundle: str
    kind: str
    name: str
    service_account: str


@runtime_checkable
class BundleFetcher(Protocol):
    """Pulls a bundle and extracts one manifest from it."""

    def fetch(self, ctx: RequestContext, request: BundleFetchRequest) -> bytes:
        """Return the raw manifest bytes for ``request``.

        Raises:
            Any fetch failure (not found, auth, corrupt bundle). The resolver
            propagates it without reinterpretation.
        """
        ...


def load_fetcher(path: str) -> BundleFetcher | Callable[[RequestContext, BundleFetchRequest], bytes]:
    """Import a fetcher from ``package.module:attribute``.

    Classes are instantiated with no arguments; other attributes are used as-is.

    Raises:
        ConfigurationError: If the path cannot be imported
    """
    module_name, _, attribute = path.partition(":")
    try:
        module = importlib.import_module(module_name)
        target = getattr(module, attribute)
    except (ImportError, AttributeError) as exc:
        raise ConfigurationError(f"cannot load bundle fetcher '{path}': {exc}") from exc
    return target() if isinstance(target, type) else target


@register_resolver(RESOLVER_TYPE_BUNDLES, schema=BUNDLE_RESOLVER_SCHEMA)
@dataclass
class BundleResolver:
    """Resolve task and pipeline manifests stored in artifact bundles.

    Pulling and unpacking the bundle is delegated to a :class:`BundleFetcher`
    (or a plain callable with the same signature). One resolve is one fetch.

    Attributes:
        fetcher: Fetcher instance, callable, or import path 'module:attribute'
    """

    fetcher: Any = None

    def __post_init__(self) -> None:
        if isinstance(self.fetcher, str):
            self.fetcher = load_fetcher(self.fetcher)

    @property
    def name(self) -> str:
        return "bundleresolver"

    @property
    def resolver_type(self) -> str:
        return RESOLVER_TYPE_BUNDLES

    def initialize(self) -> None:
        return None

    def get_selector(self, ctx: RequestContext) -> dict[str, str]:
        return {LABEL_KEY_RESOLVER_TYPE: LABEL_VALUE_BUNDLE_RESOLVER_TYPE}

    def validate_params(self, ctx: RequestContext, params: Sequence[Param]) -> None:
        self._request_from_params(ctx, params)

    def resolve(self, ctx: RequestContext, params: Sequence[Param]) -> ResolvedResource:
        """Fetch a manifest out of the referenced bundle.

        Raises:
            ResolverDisabledError: If the bundles resolver is disabled in ``ctx``
            InvalidParamsError: If params are missing or invalid
            ResolutionTransportError: If the fetcher cannot reach the registry
            ResolutionError: If no fetcher is configured
        """
        request = self._request_from_params(ctx, params)
        if self.fetcher is None:
            raise ResolutionError("no bundle fetcher configured")

        ctx.raise_if_done()
        logger.debug(
            "Fetching %s %s from bundle %s as %s",
            request.kind,
            request.name,
            request.bundle,
            request.service_account,
        )
        try:
            content = self._fetch(ctx, request)
        except ResolutionError:
            raise
        except OSError as exc:
            raise ResolutionTransportError(self._fetch_error(request, exc)) from exc
        except Exception as exc:
            raise ResolutionError(self._fetch_error(request, exc)) from exc
        ctx.raise_if_done()

        if not isinstance(content, (bytes, bytearray)):
            raise ResolutionError(
                self._fetch_error(request, TypeError(f"fetcher returned {type(content).__name__}, expected bytes"))
            )

        return ResolvedResource(
            content=bytes(content),
            annotations={ANNOTATION_KEY_CONTENT_TYPE: CONTENT_TYPE_YAML},
        )

    @staticmethod
    def _fetch_error(request: BundleFetchRequest, exc: Exception) -> str:
        return f"error fetching {request.kind} {request.name} from bundle {request.bundle}: {exc}"

    def _fetch(self, ctx: RequestContext, request: BundleFetchRequest) -> bytes:
        if isinstance(self.fetcher, BundleFetcher):
            return self.fetcher.fetch(ctx, request)
        return self.fetcher(ctx, request)

    def _request_from_params(self, ctx: RequestContext, params: Sequence[Param]) -> BundleFetchRequest:
        if not ctx.is_enabled(RESOLVER_TYPE_BUNDLES):
            raise ResolverDisabledError(DISABLED_ERROR)
        values = extract_string_params(params, BUNDLE_PARAMS)
        require_params(values, BUNDLE_PARAMS, RESOLVER_TYPE_BUNDLES)
        validate_kind(values[PARAM_KIND], SUPPORTED_KINDS)
        return BundleFetchRequest(
            bundle=values[PARAM_BUNDLE],
            kind=values[PARAM_KIND],
            name=values[PARAM_NAME],
            service_account=values[PARAM_SERVICE_ACCOUNT],
        )


__all__ = [
    "BUNDLE_RESOLVER_SCHEMA",
    "DISABLED_ERROR",
    "LABEL_VALUE_BUNDLE_RESOLVER_TYPE",
    "PARAM_BUNDLE",
    "PARAM_KIND",
    "PARAM_NAME",
    "PARAM_SERVICE_ACCOUNT",
    "BundleFetchRequest",
    "BundleFetcher",
    "BundleResolver",
    "load_fetcher",
]
