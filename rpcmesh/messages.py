"""JSON-RPC request, notification, response and error messages."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from rpcmesh.codes import ErrorObject
from rpcmesh.errors import ParseError
from rpcmesh.params import (
    JSONRPC_VERSION,
    check_version,
    validate_id,
    validate_subscription_id,
)

_WHITESPACE = " \t\n\r"


def _reject_constant(name: str) -> Any:
    raise ValueError(f"invalid JSON value: {name}")


_DECODER = json.JSONDecoder(parse_constant=_reject_constant)


def _default(obj: Any) -> Any:
    to_dict = getattr(obj, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def _encode(value: Any, sort: bool = False) -> str:
    try:
        return json.dumps(
            value,
            separators=(",", ":"),
            ensure_ascii=False,
            allow_nan=False,
            sort_keys=sort,
            default=_default,
        )
    except (TypeError, ValueError) as exc:
        raise ParseError(exc) from exc


def _envelope(pairs: list[tuple[str, str]]) -> str:
    return "{" + ",".join(f"{json.dumps(key)}:{value}" for key, value in pairs) + "}"


def _skip(text: str, pos: int) -> int:
    while pos < len(text) and text[pos] in _WHITESPACE:
        pos += 1
    return pos


def _as_text(data: Any) -> str:
    if isinstance(data, (bytes, bytearray, memoryview)):
        try:
            return bytes(data).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ParseError(exc) from exc
    if not isinstance(data, str):
        raise TypeError("JSON input must be str or bytes")
    return data


def _raw_fields(data: Any) -> dict[str, str]:
    """Split a JSON object into its members, keeping each value as raw JSON text."""
    text = _as_text(data)
    pos = _skip(text, 0)
    if text[pos : pos + 1] != "{":
        raise ParseError("expected a JSON object")
    pos = _skip(text, pos + 1)
    fields: dict[str, str] = {}
    if text[pos : pos + 1] == "}":
        pos += 1
    else:
        while True:
            if text[pos : pos + 1] != '"':
                raise ParseError(f"expected a field name at column {pos + 1}")
            try:
                key, pos = _DECODER.raw_decode(text, pos)
            except ValueError as exc:
                raise ParseError(exc) from exc
            pos = _skip(text, pos)
            if text[pos : pos + 1] != ":":
                raise ParseError(f"expected ':' at column {pos + 1}")
            pos = _skip(text, pos + 1)
            try:
                _, end = _DECODER.raw_decode(text, pos)
            except ValueError as exc:
                raise ParseError(exc) from exc
            if key in fields:
                raise ParseError(f"duplicate field `{key}`")
            fields[key] = text[pos:end]
            pos = _skip(text, end)
            sep = text[pos : pos + 1]
            if sep == ",":
                pos = _skip(text, pos + 1)
                continue
            if sep == "}":
                pos += 1
                break
            raise ParseError(f"expected ',' or '}}' at column {pos + 1}")
    if _skip(text, pos) != len(text):
        raise ParseError(f"trailing characters at column {pos + 1}")
    return fields


def _decode(raw: str) -> Any:
    try:
        return _DECODER.decode(raw)
    except ValueError as exc:
        raise ParseError(exc) from exc


def _require(fields: dict[str, str], name: str) -> str:
    try:
        return fields[name]
    except KeyError:
        raise ParseError(f"missing field `{name}`") from None


def _deny_unknown(fields: dict[str, str], allowed: frozenset[str]) -> None:
    unknown = [name for name in fields if name not in allowed]
    if unknown:
        raise ParseError(f"unknown field `{unknown[0]}`")


def _method_name(raw: str) -> str:
    method = _decode(raw)
    if not isinstance(method, str):
        raise ParseError(f"invalid type: {method!r}, expected a string")
    return method


def _params_json(params: Any) -> str:
    if isinstance(params, tuple):
        params = list(params)
    if isinstance(params, dict):
        if not all(isinstance(key, str) for key in params):
            raise TypeError("named params must have string keys")
    elif not isinstance(params, list):
        raise TypeError("params must be a list, a tuple, a dict or None")
    return _encode(params, sort=True)


_REQUEST_FIELDS = frozenset({"jsonrpc", "id", "method", "params"})
_NOTIFICATION_FIELDS = frozenset({"jsonrpc", "method", "params"})
_RESPONSE_FIELDS = frozenset({"jsonrpc", "result", "id"})


@dataclass(frozen=True)
class Request:
    """Incoming JSON-RPC request; ``params`` is kept as raw JSON text or ``None``."""

    id: int | str | None
    method: str
    params: str | None = None
    jsonrpc: str = JSONRPC_VERSION

    @classmethod
    def from_json(cls, text: Any) -> Request:
        """Parse a request object, rejecting unknown fields."""
        fields = _raw_fields(text)
        _deny_unknown(fields, _REQUEST_FIELDS)
        jsonrpc = check_version(_decode(_require(fields, "jsonrpc")))
        req_id = validate_id(_decode(_require(fields, "id")))
        method = _method_name(_require(fields, "method"))
        raw_params = fields.get("params")
        if raw_params == "null":
            raw_params = None
        return cls(req_id, method, raw_params, jsonrpc)


@dataclass(frozen=True)
class Notification:
    """JSON-RPC notification: a request object without an ID."""

    method: str
    params: Any
    jsonrpc: str = JSONRPC_VERSION

    @classmethod
    def from_json(cls, text: Any) -> Notification:
        """Parse a notification object, rejecting unknown fields."""
        fields = _raw_fields(text)
        _deny_unknown(fields, _NOTIFICATION_FIELDS)
        jsonrpc = check_version(_decode(_require(fields, "jsonrpc")))
        method = _method_name(_require(fields, "method"))
        params = _decode(_require(fields, "params"))
        return cls(method, params, jsonrpc)

    def to_json(self) -> str:
        """Serialize to compact JSON."""
        return _envelope(
            [
                ("jsonrpc", _encode(self.jsonrpc)),
                ("method", _encode(self.method)),
                ("params", _encode(self.params)),
            ]
        )


@dataclass(frozen=True)
class Response:
    """Successful JSON-RPC response."""

    result: Any
    id: int | str | None
    jsonrpc: str = JSONRPC_VERSION

    @classmethod
    def from_json(cls, text: Any) -> Response:
        """Parse a response object, rejecting unknown fields."""
        fields = _raw_fields(text)
        _deny_unknown(fields, _RESPONSE_FIELDS)
        jsonrpc = check_version(_decode(_require(fields, "jsonrpc")))
        result = _decode(_require(fields, "result"))
        resp_id = validate_id(_decode(_require(fields, "id")))
        return cls(result, resp_id, jsonrpc)

    def to_json(self) -> str:
        """Serialize to compact JSON."""
        return _envelope(
            [
                ("jsonrpc", _encode(self.jsonrpc)),
                ("result", _encode(self.result)),
                ("id", _encode(validate_id(self.id))),
            ]
        )


@dataclass(frozen=True)
class SubscriptionPayload:
    """The ``params`` member of a subscription notification."""

    subscription: int | str
    result: Any

    def to_dict(self) -> dict[str, Any]:
        """Return the wire form."""
        return {
            "subscription": validate_subscription_id(self.subscription),
            "result": self.result,
        }

    @classmethod
    def from_dict(cls, data: Any) -> SubscriptionPayload:
        """Build a payload from its wire form; raise ParseError if it does not fit."""
        if not isinstance(data, dict):
            raise ParseError("subscription payload must be a JSON object")
        if "subscription" not in data:
            raise ParseError("missing field `subscription`")
        if "result" not in data:
            raise ParseError("missing field `result`")
        return cls(validate_subscription_id(data["subscription"]), data["result"])


@dataclass(frozen=True)
class RpcError:
    """Failed JSON-RPC response."""

    error: ErrorObject
    id: int | str | None
    jsonrpc: str = JSONRPC_VERSION

    @classmethod
    def from_json(cls, text: Any) -> RpcError:
        """Parse a failed response object."""
        fields = _raw_fields(text)
        jsonrpc = check_version(_decode(_require(fields, "jsonrpc")))
        error = ErrorObject.from_dict(_decode(_require(fields, "error")))
        err_id = validate_id(_decode(_require(fields, "id")))
        return cls(error, err_id, jsonrpc)

    def to_json(self) -> str:
        """Serialize to compact JSON."""
        return _envelope(
            [
                ("jsonrpc", _encode(self.jsonrpc)),
                ("error", _encode(self.error.to_dict())),
                ("id", _encode(validate_id(self.id))),
            ]
        )

    def __str__(self) -> str:
        return self.to_json()


def parse_invalid_request_id(data: Any) -> int | str | None:
    """Extract the ``id`` of an otherwise invalid request; raise ParseError if there is none."""
    fields = _raw_fields(data)
    return validate_id(_decode(_require(fields, "id")))


def request_to_json(id: Any, method: str, params: Any = None) -> str:
    """Serialize an outgoing request; ``params`` is omitted when ``None``."""
    pairs = [
        ("jsonrpc", _encode(JSONRPC_VERSION)),
        ("id", _encode(validate_id(id))),
        ("method", _encode(method)),
    ]
    if params is not None:
        pairs.append(("params", _params_json(params)))
    return _envelope(pairs)


def notification_to_json(method: str, params: Any = None) -> str:
    """Serialize an outgoing notification; ``params`` is omitted when ``None``."""
    pairs = [("jsonrpc", _encode(JSONRPC_VERSION)), ("method", _encode(method))]
    if params is not None:
        pairs.append(("params", _params_json(params)))
    return _envelope(pairs)