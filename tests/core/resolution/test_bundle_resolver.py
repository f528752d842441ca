"""Tests for the bundle resolver."""

from unittest.mock import MagicMock

import pytest

from resolvekit.core.resolution.bundle import (
    DISABLED_ERROR,
    LABEL_VALUE_BUNDLE_RESOLVER_TYPE,
    PARAM_BUNDLE,
    PARAM_KIND,
    PARAM_NAME,
    PARAM_SERVICE_ACCOUNT,
    BundleFetchRequest,
    BundleResolver,
    load_fetcher,
)
from resolvekit.core.resolution.context import (
    RequestContext,
    context_with_bundles_resolver_enabled,
    context_with_hub_resolver_enabled,
)
from resolvekit.core.resolution.errors import (
    ContextCanceledError,
    InvalidParamsError,
    ResolutionError,
    ResolutionTransportError,
    ResolverDisabledError,
)
from resolvekit.core.resolution.params import Param
from resolvekit.core.resolution.protocols import (
    ANNOTATION_KEY_CONTENT_TYPE,
    CONTENT_TYPE_YAML,
    LABEL_KEY_RESOLVER_TYPE,
    Resolver,
)
from resolvekit.core.validation import ConfigurationError

MANIFEST = b"apiVersion: tekton.dev/v1beta1\nkind: Task\nmetadata:\n  name: foo\n"


def resolver_context():
    return context_with_bundles_resolver_enabled(RequestContext.background())


def bundle_params(kind="task", name="foo", bundle="bar", service_account="baz"):
    return [
        Param.of(PARAM_KIND, kind),
        Param.of(PARAM_NAME, name),
        Param.of(PARAM_BUNDLE, bundle),
        Param.of(PARAM_SERVICE_ACCOUNT, service_account),
    ]


def static_fetcher(ctx, request):
    return MANIFEST


class RecordingFetcher:
    """Fetcher object recording the requests it serves."""

    def __init__(self):
        self.requests = []

    def fetch(self, ctx, request):
        self.requests.append(request)
        return MANIFEST


class TestBundleResolverContract:
    """Selector, validation and enablement checks."""

    @pytest.fixture
    def resolver(self):
        return BundleResolver(fetcher=MagicMock(side_effect=AssertionError("fetcher must not be called")))

    def test_satisfies_resolver_protocol(self, resolver):
        assert isinstance(resolver, Resolver)

    def test_name_and_type(self, resolver):
        assert resolver.name == "bundleresolver"
        assert resolver.resolver_type == "bundles"

    def test_get_selector(self, resolver):
        selector = resolver.get_selector(RequestContext.background())
        assert selector[LABEL_KEY_RESOLVER_TYPE] == LABEL_VALUE_BUNDLE_RESOLVER_TYPE

    def test_validate_params_task(self, resolver):
        resolver.validate_params(resolver_context(), bundle_params(kind="task"))

    def test_validate_params_pipeline(self, resolver):
        resolver.validate_params(resolver_context(), bundle_params(kind="pipeline"))

    def test_validate_params_disabled(self, resolver):
        with pytest.raises(ResolverDisabledError) as exc_info:
            resolver.validate_params(RequestContext.background(), bundle_params())
        assert str(exc_info.value) == DISABLED_ERROR

    def test_validate_params_disabled_when_only_hub_enabled(self, resolver):
        ctx = context_with_hub_resolver_enabled(RequestContext.background())
        with pytest.raises(ResolverDisabledError) as exc_info:
            resolver.validate_params(ctx, bundle_params())
        assert str(exc_info.value) == DISABLED_ERROR

    def test_validate_params_missing_bundle(self, resolver):
        params = [p for p in bundle_params() if p.name != PARAM_BUNDLE]
        with pytest.raises(InvalidParamsError, match="bundle"):
            resolver.validate_params(resolver_context(), params)

    def test_validate_params_missing_name(self, resolver):
        params = [p for p in bundle_params() if p.name != PARAM_NAME]
        with pytest.raises(InvalidParamsError, match="name"):
            resolver.validate_params(resolver_context(), params)

    def test_validate_params_missing_service_account(self, resolver):
        with pytest.raises(InvalidParamsError, match="serviceAccount"):
            resolver.validate_params(resolver_context(), bundle_params(service_account=""))

    def test_validate_params_invalid_kind(self, resolver):
        with pytest.raises(InvalidParamsError, match="kind"):
            resolver.validate_params(resolver_context(), bundle_params(kind="not-taskpipeline"))

    def test_validate_params_duplicate_bundle(self, resolver):
        params = bundle_params() + [Param.of(PARAM_BUNDLE, "other")]
        with pytest.raises(InvalidParamsError, match="duplicate"):
            resolver.validate_params(resolver_context(), params)

    def test_resolve_disabled(self, resolver):
        with pytest.raises(ResolverDisabledError) as exc_info:
            resolver.resolve(RequestContext.background(), bundle_params())
        assert str(exc_info.value) == DISABLED_ERROR
        resolver.fetcher.assert_not_called()


class TestBundleResolverResolve:
    """Delegation to the bundle fetcher."""

    def test_resolve_with_callable_fetcher(self):
        resolver = BundleResolver(fetcher=static_fetcher)

        output = resolver.resolve(resolver_context(), bundle_params())

        assert output.content == MANIFEST
        assert output.annotations[ANNOTATION_KEY_CONTENT_TYPE] == CONTENT_TYPE_YAML

    def test_resolve_with_fetcher_object_passes_request(self):
        fetcher = RecordingFetcher()
        resolver = BundleResolver(fetcher=fetcher)

        resolver.resolve(resolver_context(), bundle_params(kind="pipeline", name="build", bundle="reg/img:v1"))

        assert fetcher.requests == [
            BundleFetchRequest(bundle="reg/img:v1", kind="pipeline", name="build", service_account="baz")
        ]

    def test_resolve_passes_context_to_fetcher(self):
        seen = []

        def fetcher(ctx, request):
            seen.append(ctx)
            return MANIFEST

        ctx = resolver_context()
        BundleResolver(fetcher=fetcher).resolve(ctx, bundle_params())

        assert seen == [ctx]

    def test_resolve_revalidates_params(self):
        calls = []
        resolver = BundleResolver(fetcher=lambda ctx, request: calls.append(request) or MANIFEST)

        with pytest.raises(InvalidParamsError):
            resolver.resolve(resolver_context(), bundle_params(kind="bogus"))
        assert calls == []

    def test_resolve_without_fetcher(self):
        resolver = BundleResolver()

        with pytest.raises(ResolutionError, match="no bundle fetcher configured"):
            resolver.resolve(resolver_context(), bundle_params())

    def test_resolution_error_from_fetcher_propagates_unchanged(self):
        original = ResolutionError("bundle bar does not contain task foo")

        def fetcher(ctx, request):
            raise original

        with pytest.raises(ResolutionError) as exc_info:
            BundleResolver(fetcher=fetcher).resolve(resolver_context(), bundle_params())

        assert exc_info.value is original

    def test_connection_error_becomes_transport_error(self):
        def fetcher(ctx, request):
            raise ConnectionError("registry unreachable")

        with pytest.raises(ResolutionTransportError, match="registry unreachable") as exc_info:
            BundleResolver(fetcher=fetcher).resolve(resolver_context(), bundle_params())

        assert isinstance(exc_info.value.__cause__, ConnectionError)

    def test_other_fetch_error_keeps_message(self):
        def fetcher(ctx, request):
            raise PermissionError("unauthorized: authentication required")

        with pytest.raises(ResolutionError, match="authentication required"):
            BundleResolver(fetcher=fetcher).resolve(resolver_context(), bundle_params())

    def test_corrupt_bundle_error_is_resolution_error(self):
        def fetcher(ctx, request):
            raise ValueError("layer digest mismatch")

        with pytest.raises(ResolutionError, match="layer digest mismatch") as exc_info:
            BundleResolver(fetcher=fetcher).resolve(resolver_context(), bundle_params())

        assert not isinstance(exc_info.value, ResolutionTransportError)

    def test_os_error_becomes_transport_error(self):
        def fetcher(ctx, request):
            raise TimeoutError("registry read timed out")

        with pytest.raises(ResolutionTransportError, match="registry read timed out"):
            BundleResolver(fetcher=fetcher).resolve(resolver_context(), bundle_params())

    def test_text_content_is_rejected(self):
        resolver = BundleResolver(fetcher=lambda ctx, request: "kind: Task\n")

        with pytest.raises(ResolutionError, match="fetcher returned str, expected bytes") as exc_info:
            resolver.resolve(resolver_context(), bundle_params())

        assert "error fetching task foo from bundle bar" in str(exc_info.value)

    def test_integer_content_is_rejected(self):
        resolver = BundleResolver(fetcher=lambda ctx, request: 3)

        with pytest.raises(ResolutionError, match="fetcher returned int, expected bytes"):
            resolver.resolve(resolver_context(), bundle_params())

    def test_bytearray_content_is_accepted(self):
        resolver = BundleResolver(fetcher=lambda ctx, request: bytearray(MANIFEST))

        output = resolver.resolve(resolver_context(), bundle_params())

        assert output.content == MANIFEST
        assert isinstance(output.content, bytes)

    def test_cancelled_context_skips_fetch(self):
        calls = []
        resolver = BundleResolver(fetcher=lambda ctx, request: calls.append(request) or MANIFEST)
        ctx, cancel = resolver_context().with_cancel()
        cancel()

        with pytest.raises(ContextCanceledError):
            resolver.resolve(ctx, bundle_params())
        assert calls == []


class TestLoadFetcher:
    """Import-path fetcher configuration."""

    def test_load_function(self):
        fetcher = load_fetcher("json:loads")
        assert callable(fetcher)

    def test_load_class_instantiates(self):
        fetcher = load_fetcher("collections:OrderedDict")
        assert fetcher == {}

    def test_resolver_accepts_import_path(self):
        resolver = BundleResolver(fetcher="json:dumps")
        assert callable(resolver.fetcher)

    def test_missing_module(self):
        with pytest.raises(ConfigurationError, match="cannot load bundle fetcher"):
            load_fetcher("resolvekit_missing_module:fetch")

    def test_missing_attribute(self):
        with pytest.raises(ConfigurationError, match="cannot load bundle fetcher"):
            load_fetcher("json:no_such_function")
