"""JSON-RPC version marker, request IDs and incoming request parameters."""

from __future__ import annotations

import json
from typing import Any

from rpcmesh.errors import InvalidParams, ParseError

JSONRPC_VERSION = "2.0"

_U64_MAX = 2**64 - 1


def _reject_constant(name: str) -> Any:
    raise ValueError(f"invalid JSON value: {name}")


_DECODER = json.JSONDecoder(parse_constant=_reject_constant)


def _is_u64(value: Any) -> bool:
    return (
        isinstance(value, int)
        and not isinstance(value, bool)
        and 0 <= value <= _U64_MAX
    )


def check_version(value: Any) -> str:
    """Return ``value`` if it is the JSON-RPC version string "2.0"; raise ParseError otherwise."""
    if not isinstance(value, str):
        raise ParseError(f'invalid type: {value!r}, expected a string "2.0"')
    if value != JSONRPC_VERSION:
        raise ParseError(f'invalid value: string {value!r}, expected a string "2.0"')
    return value


def validate_id(value: Any) -> int | str | None:
    """Return ``value`` if it is a valid request ID: null, an unsigned 64-bit integer or a string."""
    if value is None or isinstance(value, str) or _is_u64(value):
        return value
    raise ParseError(f"data did not match any variant of request Id: {value!r}")


def validate_subscription_id(value: Any) -> int | str:
    """Return ``value`` if it is a valid subscription ID: an unsigned 64-bit integer or a string."""
    if isinstance(value, str) or _is_u64(value):
        return value
    raise ParseError(f"data did not match any variant of subscription Id: {value!r}")


def _loads(text: str) -> Any:
    value, end = _DECODER.raw_decode(text)
    if text[end:].strip():
        raise ValueError(f"trailing characters at column {end + 1}")
    return value


class Params:
    """Parameters carried by an incoming JSON-RPC request, kept as raw JSON text."""

    def __init__(self, raw: str | None = None) -> None:
        self.raw = raw.strip() if raw is not None else None

    def __repr__(self) -> str:
        return f"Params({self.raw!r})"

    def is_object(self) -> bool:
        """Return True if the parameters are a JSON object."""
        return self.raw is not None and self.raw.startswith("{")

    def sequence(self) -> ParamsSequence:
        """Return a parser that yields positional parameters one at a time.

        An empty array ``[]`` is treated as no parameters at all.
        """
        if self.raw is None or self.raw == "[]":
            return ParamsSequence("")
        return ParamsSequence(self.raw)

    def parse(self) -> Any:
        """Decode all parameters; absent parameters decode as ``None``."""
        text = self.raw if self.raw is not None else "null"
        try:
            return _loads(text)
        except ValueError as exc:
            raise InvalidParams(exc) from exc

    def one(self) -> Any:
        """Decode parameters that must be an array of exactly one value, and return that value."""
        value = self.parse()
        if not isinstance(value, list):
            raise InvalidParams(f"invalid type: {value!r}, expected an array of length 1")
        if len(value) != 1:
            raise InvalidParams(f"invalid length {len(value)}, expected an array of length 1")
        return value[0]


class ParamsSequence:
    """Parser over a JSON array of parameters, consumed one value at a time."""

    def __init__(self, json_text: str) -> None:
        self._json = json_text

    def __repr__(self) -> str:
        return f"ParamsSequence({self._json!r})"

    def _next_inner(self) -> tuple[bool, Any]:
        text = self._json
        if not text:
            return False, None
        lead = text[0]
        if lead == "]":
            self._json = ""
            return False, None
        if lead not in "[,":
            raise InvalidParams(
                f"Invalid params. Expected one of '[', ']' or ',' but found {text!r}"
            )
        text = text[1:].lstrip()
        if not text:
            return False, None
        try:
            value, end = _DECODER.raw_decode(text)
        except ValueError as exc:
            self._json = ""
            raise InvalidParams(exc) from exc
        self._json = text[end:].lstrip()
        return True, value

    def next(self) -> Any:
        """Return the next parameter; raise InvalidParams if there is none."""
        found, value = self._next_inner()
        if not found:
            raise InvalidParams("No more params")
        return value

    def optional_next(self) -> Any:
        """Return the next parameter, or ``None`` for ``null`` and for a missing value."""
        _, value = self._next_inner()
        return value