"""Building positional parameters for outgoing JSON-RPC calls."""

from __future__ import annotations

import json
import math
from collections.abc import Mapping
from typing import Any

from rpcmesh.errors import ParseError


def to_rpc_params(params: list[Any] | tuple[Any, ...]) -> str:
    """Serialize a list or tuple of parameters as a compact JSON array."""
    if not isinstance(params, (list, tuple)):
        raise TypeError("params must be a list or a tuple")
    try:
        return json.dumps(
            list(params), separators=(",", ":"), ensure_ascii=False, allow_nan=False
        )
    except (TypeError, ValueError) as exc:
        raise ParseError(exc) from exc


def _to_json_value(value: Any) -> Any:
    if value is None or isinstance(value, (bool, str)):
        return value
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, (list, tuple)):
        return [_to_json_value(item) for item in value]
    if isinstance(value, Mapping):
        converted: dict[str, Any] = {}
        for key, item in value.items():
            if isinstance(key, bool) or not isinstance(key, (str, int)):
                raise TypeError("map keys must be strings or integers")
            converted[str(key)] = _to_json_value(item)
        return converted
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def rpc_params(*args: Any) -> list[Any] | None:
    """Convert the arguments to positional params; with no arguments return ``None``."""
    if not args:
        return None
    return [_to_json_value(arg) for arg in args]