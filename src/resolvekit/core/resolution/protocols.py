"""Protocols and data classes for remote resource resolution."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .context import RequestContext
    from .params import Param

# Label key whose value names the resolver type a request is meant for
LABEL_KEY_RESOLVER_TYPE = "resolution.tekton.dev/type"

ANNOTATION_KEY_CONTENT_TYPE = "content-type"
CONTENT_TYPE_YAML = "application/x-yaml"

KIND_TASK = "task"
KIND_PIPELINE = "pipeline"
SUPPORTED_KINDS = (KIND_TASK, KIND_PIPELINE)


@dataclass(frozen=True)
class ResolvedResource:
    """Manifest bytes returned by a successful resolution.

    Attributes:
        content: Raw manifest bytes (empty when the upstream has no such resource)
        annotations: Backend-specific metadata about the content
    """

    content: bytes
    annotations: Mapping[str, str] = field(default_factory=dict)


@runtime_checkable
class Resolver(Protocol):
    """Protocol every resolution backend implements.

    Backends are routed to by matching :meth:`get_selector` against the labels
    of a resolution request.
    """

    @property
    def name(self) -> str:
        """Human readable resolver name."""
        ...

    @property
    def resolver_type(self) -> str:
        """Fixed resolver type identifier (e.g. 'hub', 'bundles')."""
        ...

    def initialize(self) -> None:
        """Prepare the resolver once before it serves requests."""
        ...

    def get_selector(self, ctx: RequestContext) -> dict[str, str]:
        """Labels identifying requests this resolver handles. Pure, never raises."""
        ...

    def validate_params(self, ctx: RequestContext, params: Sequence[Param]) -> None:
        """Check enablement and params without any network I/O.

        Raises:
            ResolverDisabledError: If the resolver type is disabled in ``ctx``
            InvalidParamsError: If params are missing, invalid or conflicting
        """
        ...

    def resolve(self, ctx: RequestContext, params: Sequence[Param]) -> ResolvedResource:
        """Fetch the manifest described by ``params``.

        Raises:
            ResolverDisabledError: If the resolver type is disabled in ``ctx``
            InvalidParamsError: If params are missing, invalid or conflicting
            ResolutionTransportError: If the upstream cannot be reached
            MalformedResponseError: If the upstream answer cannot be parsed
        """
        ...


__all__ = [
    "ANNOTATION_KEY_CONTENT_TYPE",
    "CONTENT_TYPE_YAML",
    "KIND_PIPELINE",
    "KIND_TASK",
    "LABEL_KEY_RESOLVER_TYPE",
    "SUPPORTED_KINDS",
    "ResolvedResource",
    "Resolver",
]
