"""Tests for request contexts and feature flags."""

import pytest

from resolvekit.core.resolution.context import (
    RESOLVER_TYPE_BUNDLES,
    RESOLVER_TYPE_HUB,
    FeatureFlags,
    RequestContext,
    context_with_bundles_resolver_enabled,
    context_with_hub_resolver_enabled,
)
from resolvekit.core.resolution.errors import ContextCanceledError, DeadlineExceededError
from resolvekit.core.validation import ConfigurationError


class TestFeatureFlags:
    def test_defaults_enable_both(self):
        flags = FeatureFlags()
        assert flags.is_enabled(RESOLVER_TYPE_HUB)
        assert flags.is_enabled(RESOLVER_TYPE_BUNDLES)

    def test_unknown_type_disabled(self):
        assert not FeatureFlags().is_enabled("git")

    def test_from_mapping_strings(self):
        flags = FeatureFlags.from_mapping({"enable-hub-resolver": "false", "enable-bundles-resolver": "TRUE"})
        assert not flags.enable_hub_resolver
        assert flags.enable_bundles_resolver

    def test_from_mapping_bools(self):
        flags = FeatureFlags.from_mapping({"enable-bundles-resolver": False})
        assert flags.enable_hub_resolver
        assert not flags.enable_bundles_resolver

    def test_from_mapping_empty(self):
        assert FeatureFlags.from_mapping(None) == FeatureFlags()

    def test_from_mapping_unknown_key(self):
        with pytest.raises(ConfigurationError, match="unknown feature flag"):
            FeatureFlags.from_mapping({"enable-git-resolver": "true"})

    def test_from_mapping_bad_value(self):
        with pytest.raises(ConfigurationError, match="must be true or false"):
            FeatureFlags.from_mapping({"enable-hub-resolver": "yes"})


class TestRequestContext:
    def test_background_disables_everything(self):
        ctx = RequestContext.background()
        assert not ctx.is_enabled(RESOLVER_TYPE_HUB)
        assert not ctx.is_enabled(RESOLVER_TYPE_BUNDLES)
        assert ctx.err() is None
        assert ctx.remaining() is None

    def test_enable_hub_only(self):
        ctx = context_with_hub_resolver_enabled(RequestContext.background())
        assert ctx.is_enabled(RESOLVER_TYPE_HUB)
        assert not ctx.is_enabled(RESOLVER_TYPE_BUNDLES)

    def test_enable_helpers_compose(self):
        ctx = context_with_bundles_resolver_enabled(
            context_with_hub_resolver_enabled(RequestContext.background())
        )
        assert ctx.is_enabled(RESOLVER_TYPE_HUB)
        assert ctx.is_enabled(RESOLVER_TYPE_BUNDLES)

    def test_enable_does_not_mutate_parent(self):
        parent = RequestContext.background()
        context_with_hub_resolver_enabled(parent)
        assert not parent.is_enabled(RESOLVER_TYPE_HUB)

    def test_with_timeout_sets_remaining(self):
        ctx = RequestContext.background().with_timeout(30)
        remaining = ctx.remaining()
        assert remaining is not None
        assert 0 < remaining <= 30

    def test_child_timeout_cannot_extend_parent(self):
        parent = RequestContext.background().with_timeout(1)
        child = parent.with_timeout(60)
        assert child.deadline == parent.deadline

    def test_expired_deadline(self):
        ctx = RequestContext.background().with_timeout(0)
        assert isinstance(ctx.err(), DeadlineExceededError)
        with pytest.raises(DeadlineExceededError, match="context deadline exceeded"):
            ctx.raise_if_done()

    def test_cancel(self):
        ctx, cancel = RequestContext.background().with_cancel()
        assert ctx.err() is None
        cancel()
        with pytest.raises(ContextCanceledError, match="context canceled"):
            ctx.raise_if_done()

    def test_cancel_parent_cancels_child(self):
        parent, cancel = RequestContext.background().with_cancel()
        child, _ = parent.with_cancel()
        cancel()
        assert isinstance(child.err(), ContextCanceledError)

    def test_cancel_child_leaves_parent(self):
        parent, _ = RequestContext.background().with_cancel()
        child, cancel_child = parent.with_cancel()
        cancel_child()
        assert parent.err() is None
        assert isinstance(child.err(), ContextCanceledError)
