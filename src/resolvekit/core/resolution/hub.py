"""Hub resolver fetching task and pipeline manifests from a catalog hub API."""

from __future__ import annotations

import json
import logging
import string
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

import requests

from resolvekit.core.validation import ConfigurationError

from .context import RESOLVER_TYPE_HUB
from .errors import (
    DeadlineExceededError,
    MalformedResponseError,
    ResolutionTransportError,
    ResolverDisabledError,
)
from .params import extract_string_params, require_params, validate_kind
from .protocols import LABEL_KEY_RESOLVER_TYPE, SUPPORTED_KINDS, ResolvedResource
from .registry import register_resolver

if TYPE_CHECKING:
    from collections.abc import Sequence

    from .context import RequestContext
    from .params import Param

logger = logging.getLogger(__name__)

LABEL_VALUE_HUB_RESOLVER_TYPE = RESOLVER_TYPE_HUB

DEFAULT_HUB_URL = "https://api.hub.tekton.dev"
# Placeholders are filled from the request params
YAML_ENDPOINT = "v1/resource/{catalog}/{kind}/{name}/{version}/yaml"

PARAM_KIND = "kind"
PARAM_NAME = "name"
PARAM_VERSION = "version"
PARAM_CATALOG = "catalog"
HUB_PARAMS = (PARAM_KIND, PARAM_NAME, PARAM_VERSION, PARAM_CATALOG)

# The hub reports missing resources as a JSON error body with this name
NOT_FOUND_ERROR_NAME = "not-found"

DISABLED_ERROR = "cannot handle resolution request, enable-hub-resolver feature flag not true"

READ_CHUNK_SIZE = 8192
# How often a waiting caller re-checks its context for cancellation
CONTEXT_POLL_INTERVAL = 0.02

HUB_RESOLVER_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "url": {
            "type": "string",
            "description": "Yaml endpoint URL template with {catalog}, {kind}, {name}, {version}",
        },
        "timeout": {
            "type": "number",
            "exclusiveMinimum": 0,
            "description": "Request timeout in seconds",
        },
    },
    "additionalProperties": False,
}


@register_resolver(RESOLVER_TYPE_HUB, schema=HUB_RESOLVER_SCHEMA)
@dataclass
class HubResolver:
    """Resolve task and pipeline manifests from a hub's yaml endpoint.

    The hub answers with a JSON envelope. ``{"data": {"yaml": ...}}`` carries
    the manifest, and an error body named ``not-found`` means the hub has no
    resource at those coordinates, which resolves to empty content. The HTTP
    status is not consulted because the hub reports both cases in the body.

    Attributes:
        url: Endpoint URL template (default: public hub yaml endpoint)
        timeout: Request timeout in seconds, capped by the context deadline
        session: Optional requests session (created if omitted)

    Example:
        >>> resolver = HubResolver()
        >>> ctx = context_with_hub_resolver_enabled(RequestContext.background())
        >>> params = params_from_mapping(
        ...     {"kind": "task", "name": "git-clone", "version": "0.9", "catalog": "tekton"}
        ... )
        >>> resolver.resolve(ctx, params).content[:11]
        b'apiVersion:'
    """

    url: str = f"{DEFAULT_HUB_URL}/{YAML_ENDPOINT}"
    timeout: float = 30.0
    session: requests.Session | None = None

    def __post_init__(self) -> None:
        if self.session is None:
            self.session = requests.Session()
        try:
            fields = [field_name for _, field_name, _, _ in string.Formatter().parse(self.url)]
        except ValueError as exc:
            raise ConfigurationError(f"invalid hub url template {self.url!r}: {exc}") from exc
        unknown = {field_name for field_name in fields if field_name is not None and field_name not in HUB_PARAMS}
        if unknown:
            raise ConfigurationError(
                f"hub url template has unknown placeholders: {', '.join(sorted(unknown))}"
            )

    @property
    def name(self) -> str:
        return "Hub"

    @property
    def resolver_type(self) -> str:
        return RESOLVER_TYPE_HUB

    def initialize(self) -> None:
        return None

    def get_selector(self, ctx: RequestContext) -> dict[str, str]:
        return {LABEL_KEY_RESOLVER_TYPE: LABEL_VALUE_HUB_RESOLVER_TYPE}

    def validate_params(self, ctx: RequestContext, params: Sequence[Param]) -> None:
        self._options_from_params(ctx, params)

    def resolve(self, ctx: RequestContext, params: Sequence[Param]) -> ResolvedResource:
        """Fetch a manifest from the hub.

        Returns:
            Resource with the manifest bytes, or empty content if the hub
            reports the resource as not found

        Raises:
            ResolverDisabledError: If the hub resolver is disabled in ``ctx``
            InvalidParamsError: If params are missing or invalid
            ResolutionTransportError: If the hub cannot be reached
            MalformedResponseError: If the body is not a recognised envelope
        """
        options = self._options_from_params(ctx, params)
        url = self._build_url(options)
        body = self._request(ctx, url)
        return ResolvedResource(content=self._parse_body(body))

    def _options_from_params(self, ctx: RequestContext, params: Sequence[Param]) -> dict[str, str]:
        if not ctx.is_enabled(RESOLVER_TYPE_HUB):
            raise ResolverDisabledError(DISABLED_ERROR)
        values = extract_string_params(params, HUB_PARAMS)
        require_params(values, HUB_PARAMS, RESOLVER_TYPE_HUB)
        validate_kind(values[PARAM_KIND], SUPPORTED_KINDS)
        return values

    def _build_url(self, options: dict[str, str]) -> str:
        quoted = {key: quote(value, safe="") for key, value in options.items()}
        return self.url.format(**quoted)

    def _request(self, ctx: RequestContext, url: str) -> bytes:
        """GET ``url`` and return its body within the context's deadline.

        The transfer runs on a worker thread while the caller watches ``ctx``,
        so cancellation or an expired deadline returns control immediately
        even if the hub is still sending. The worker stops at its next chunk.

        Raises:
            ContextCanceledError: If the context is cancelled
            DeadlineExceededError: If the context deadline passes
            ResolutionTransportError: For network or connection errors
        """
        ctx.raise_if_done()

        timeout = self.timeout
        remaining = ctx.remaining()
        if remaining is not None:
            if remaining <= 0:
                raise DeadlineExceededError()
            timeout = min(timeout, remaining)

        logger.debug("Requesting hub resource: %s", url)
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="hub-request")
        try:
            future = executor.submit(self._read_body, ctx, url, timeout)
        finally:
            executor.shutdown(wait=False)

        while not wait([future], timeout=CONTEXT_POLL_INTERVAL).done:
            ctx.raise_if_done()

        try:
            body = future.result()
        except requests.RequestException as exc:
            context_error = ctx.err()
            if context_error is not None:
                raise context_error from exc
            raise ResolutionTransportError(f"error requesting resource from hub: {exc}") from exc

        ctx.raise_if_done()
        return body

    def _read_body(self, ctx: RequestContext, url: str, timeout: float) -> bytes:
        response = self.session.request("GET", url, timeout=timeout, stream=True)  # type: ignore[union-attr]
        try:
            logger.debug("Hub responded with status %s for %s", response.status_code, url)
            body = bytearray()
            for chunk in response.iter_content(chunk_size=READ_CHUNK_SIZE):
                ctx.raise_if_done()
                body.extend(chunk)
            return bytes(body)
        finally:
            response.close()

    @staticmethod
    def _parse_body(body: bytes) -> bytes:
        if not body or not body.strip():
            raise MalformedResponseError("error unmarshalling json response: unexpected end of JSON input")

        try:
            data = json.loads(body)
        except ValueError as exc:
            raise MalformedResponseError(f"error unmarshalling json response: {exc}") from exc

        if isinstance(data, dict):
            payload = data.get("data")
            if isinstance(payload, dict) and isinstance(payload.get("yaml"), str):
                return payload["yaml"].encode("utf-8")
            if data.get("name") == NOT_FOUND_ERROR_NAME:
                logger.debug("Hub reported resource not found: %s", data.get("message"))
                return b""

        raise MalformedResponseError(
            "error unmarshalling json response: expected data.yaml string or not-found error body"
        )


__all__ = [
    "DEFAULT_HUB_URL",
    "DISABLED_ERROR",
    "HUB_RESOLVER_SCHEMA",
    "LABEL_VALUE_HUB_RESOLVER_TYPE",
    "PARAM_CATALOG",
    "PARAM_KIND",
    "PARAM_NAME",
    "PARAM_VERSION",
    "YAML_ENDPOINT",
    "HubResolver",
]
