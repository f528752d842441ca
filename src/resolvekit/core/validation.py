"""Schema validation helpers for resolver options and settings."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from jsonschema import Draft202012Validator

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping


class ConfigurationError(Exception):
    """Raised when settings or resolver options are invalid."""


@dataclass
class ValidationMessage:
    """A single validation failure with the location it refers to."""

    message: str
    context: str | None = None

    def format(self) -> str:
        if self.context:
            return f"{self.context}: {self.message}"
        return self.message


def _format_path(path: Any) -> str:
    parts: list[str] = []
    for item in path:
        if isinstance(item, int):
            parts.append(f"[{item}]")
        elif parts:
            parts.append(f".{item}")
        else:
            parts.append(str(item))
    return "".join(parts)


def validate_schema(
    data: Any,
    schema: Mapping[str, Any],
    *,
    context: str | None = None,
) -> Iterator[ValidationMessage]:
    """Yield validation messages for ``data`` against a JSON schema.

    Args:
        data: Value to validate
        schema: JSON schema
        context: Optional prefix describing where ``data`` came from

    Yields:
        One ValidationMessage per violation, ordered by location
    """
    validator = Draft202012Validator(schema)
    errors = sorted(validator.iter_errors(data), key=lambda err: [str(part) for part in err.path])
    for error in errors:
        location = _format_path(error.absolute_path)
        if context and location:
            where = f"{context}.{location}"
        else:
            where = context or location or None
        yield ValidationMessage(message=error.message, context=where)


def raise_for_schema(data: Any, schema: Mapping[str, Any] | None, *, context: str) -> None:
    """Raise ConfigurationError listing every schema violation in ``data``."""
    if schema is None:
        return
    errors = list(validate_schema(data, schema, context=context))
    if errors:
        raise ConfigurationError("\n".join(msg.format() for msg in errors))


__all__ = ["ConfigurationError", "ValidationMessage", "raise_for_schema", "validate_schema"]
