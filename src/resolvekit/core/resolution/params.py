"""Parameter sets supplied to resolvers."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from .errors import InvalidParamsError

PARAM_TYPE_STRING = "string"
PARAM_TYPE_ARRAY = "array"
PARAM_TYPE_OBJECT = "object"


@dataclass(frozen=True)
class ParamValue:
    """A parameter value: a string, an array of strings, or a string mapping.

    Attributes:
        type: One of "string", "array" or "object"
        string_val: Value when ``type`` is "string"
        array_val: Value when ``type`` is "array"
        object_val: Value when ``type`` is "object"
    """

    type: str
    string_val: str = ""
    array_val: tuple[str, ...] = ()
    object_val: Mapping[str, str] | None = None

    @classmethod
    def of(cls, value: Any) -> ParamValue:
        """Build a value from a plain Python string, sequence or mapping."""
        if isinstance(value, ParamValue):
            return value
        if isinstance(value, str):
            return cls(type=PARAM_TYPE_STRING, string_val=value)
        if isinstance(value, Mapping):
            return cls(type=PARAM_TYPE_OBJECT, object_val={str(k): str(v) for k, v in value.items()})
        if isinstance(value, Sequence):
            return cls(type=PARAM_TYPE_ARRAY, array_val=tuple(str(item) for item in value))
        raise TypeError(f"unsupported param value type: {type(value).__name__}")

    def is_string(self) -> bool:
        return self.type == PARAM_TYPE_STRING


@dataclass(frozen=True)
class Param:
    """A named parameter supplied by a caller."""

    name: str
    value: ParamValue

    @classmethod
    def of(cls, name: str, value: Any) -> Param:
        return cls(name=name, value=ParamValue.of(value))


def params_from_mapping(mapping: Mapping[str, Any]) -> list[Param]:
    """Build an ordered parameter set from a mapping, keeping insertion order."""
    return [Param.of(name, value) for name, value in mapping.items()]


def params_to_map(params: Sequence[Param]) -> dict[str, ParamValue]:
    """Index a parameter set by name; later duplicates win."""
    return {param.name: param.value for param in params}


def extract_string_params(
    params: Sequence[Param],
    recognized: Sequence[str],
) -> dict[str, str]:
    """Return non-empty string values for recognised names.

    Names outside ``recognized`` are ignored. Recognised names must appear at
    most once and carry a string value.

    Raises:
        InvalidParamsError: On duplicates or non-string values
    """
    seen: dict[str, str] = {}
    for param in params:
        if param.name not in recognized:
            continue
        if param.name in seen:
            raise InvalidParamsError(f"duplicate param {param.name!r}")
        if not param.value.is_string():
            raise InvalidParamsError(
                f"param {param.name!r} must be a string, got {param.value.type}"
            )
        seen[param.name] = param.value.string_val
    return {name: value for name, value in seen.items() if value}


def require_params(values: Mapping[str, str], required: Sequence[str], resolver_type: str) -> None:
    """Raise naming every required param absent from ``values``."""
    missing = [name for name in required if not values.get(name)]
    if missing:
        raise InvalidParamsError(
            f"missing required {resolver_type} resolver params: {', '.join(missing)}"
        )


def validate_kind(kind: str, supported: Sequence[str]) -> None:
    """Raise unless ``kind`` is exactly one of ``supported``."""
    if kind not in supported:
        raise InvalidParamsError(
            f"kind param must be one of {', '.join(supported)}, got {kind!r}"
        )


__all__ = [
    "PARAM_TYPE_ARRAY",
    "PARAM_TYPE_OBJECT",
    "PARAM_TYPE_STRING",
    "Param",
    "ParamValue",
    "extract_string_params",
    "params_from_mapping",
    "params_to_map",
    "require_params",
    "validate_kind",
]
