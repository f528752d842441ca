"""Error classification for resolver backends."""

from __future__ import annotations


class ResolutionError(Exception):
    """Base class for every error raised while validating or resolving."""


class ResolverDisabledError(ResolutionError):
    """Resolver type is not enabled for the request context."""


class InvalidParamsError(ResolutionError, ValueError):
    """Parameters are missing, invalid, duplicated or conflicting."""


class ResolutionTransportError(ResolutionError, ConnectionError):
    """Upstream could not be reached or the fetch itself failed."""


class ContextCanceledError(ResolutionTransportError):
    """Request context was cancelled before the upstream call finished."""

    def __init__(self, message: str = "context canceled") -> None:
        super().__init__(message)


class DeadlineExceededError(ResolutionTransportError):
    """Request context deadline passed before the upstream call finished."""

    def __init__(self, message: str = "context deadline exceeded") -> None:
        super().__init__(message)


class MalformedResponseError(ResolutionError):
    """Upstream responded with a body that is not the expected JSON shape."""


__all__ = [
    "ContextCanceledError",
    "DeadlineExceededError",
    "InvalidParamsError",
    "MalformedResponseError",
    "ResolutionError",
    "ResolutionTransportError",
    "ResolverDisabledError",
]
