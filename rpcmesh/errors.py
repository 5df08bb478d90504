"""Error types raised by JSON-RPC clients and servers."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

TEN_MB_SIZE_BYTES = 10 * 1024 * 1024
"""Ten megabytes."""

_U64_MAX = 2**64 - 1


@dataclass(frozen=True)
class Mismatch:
    """An expected value paired with the value actually seen."""

    expected: Any
    got: Any

    def __str__(self) -> str:
        return f"Expected: {self.expected}, Got: {self.got}"


class RpcException(Exception):
    """Base class of every error raised by the library."""


class CallError(RpcException):
    """A method call failed."""

    def __init__(self, description: str) -> None:
        super().__init__(f"Server call failed: {description}")
        self.description = description


class InvalidParams(CallError):
    """The call carried parameters that could not be used."""

    def __init__(self, reason: Any) -> None:
        self.reason = reason
        self.detail = str(reason)
        super().__init__(f"Invalid params in the call: {self.detail}")


class CallFailed(CallError):
    """The call failed; the server picks the error code and message."""

    def __init__(self, error: Any) -> None:
        self.error = error
        self.detail = str(error)
        super().__init__(f"RPC Call failed: {self.detail}")


class CustomCallError(CallError):
    """The call failed with a specific JSON-RPC code, message and optional raw JSON data."""

    def __init__(self, code: int, message: str, data: str | None = None) -> None:
        self.code = code
        self.message = message
        self.data = data
        super().__init__(
            f"RPC Call failed: code: {code}, message: {message}, data: {data!r}"
        )


class TransportError(RpcException):
    """Networking error or error on the low-level protocol layer."""

    def __init__(self, source: Any) -> None:
        self.source = source
        super().__init__(f"Networking or low-level protocol error: {source}")


class RequestError(RpcException):
    """The server answered a request with a JSON-RPC error."""

    def __init__(self, body: str) -> None:
        self.body = body
        super().__init__(f"JSON-RPC request error: {json.dumps(body)}")


class InternalChannelError(RpcException):
    """The channel between the front end and the background task failed."""

    def __init__(self, reason: Any) -> None:
        self.reason = reason
        super().__init__(f"Frontend/backend channel error: {reason}")


class InvalidResponse(RpcException):
    """The response did not match what was expected."""

    def __init__(self, mismatch: Mismatch) -> None:
        self.mismatch = mismatch
        super().__init__(f"Invalid response: {mismatch}")


class RestartNeeded(RpcException):
    """The background task has terminated."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(
            f"The background task been terminated because: {reason}; restart required"
        )


class ParseError(RpcException):
    """Data could not be parsed."""

    def __init__(self, reason: Any) -> None:
        self.reason = reason
        super().__init__(f"Parse error: {reason}")


class InvalidSubscriptionId(RpcException):
    """The subscription ID is not valid."""

    def __init__(self) -> None:
        super().__init__("Invalid subscription ID")


class InvalidRequestId(RpcException):
    """The request ID is not valid."""

    def __init__(self) -> None:
        super().__init__("Invalid request ID")


class UnregisteredNotification(RpcException):
    """A notification arrived for a method nobody registered."""

    def __init__(self, method: str) -> None:
        self.method = method
        super().__init__("Unregistered notification method")


class DuplicateRequestId(RpcException):
    """A request with the same ID has already been registered."""

    def __init__(self) -> None:
        super().__init__(
            "A request with the same request ID has already been registered"
        )


class MethodAlreadyRegistered(RpcException):
    """A method of that name already exists."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Method: {name} was already registered")


class MethodNotFound(RpcException):
    """No method of that name has been registered."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Method: {name} has not yet been registered")


class SubscriptionNameConflict(RpcException):
    """Subscribe and unsubscribe method names are the same."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(
            f"Cannot use the same method name for subscribe and unsubscribe, used: {name}"
        )


@dataclass(frozen=True)
class SubscriptionClosedError:
    """Payload sent on a subscription to signal that it has been closed."""

    close_reason: str
    subscription_id: int

    def to_dict(self) -> dict[str, Any]:
        """Return the wire form of the payload."""
        return {"subscription_closed": self.close_reason, "id": self.subscription_id}

    @classmethod
    def from_dict(cls, data: Any) -> SubscriptionClosedError:
        """Build the payload from its wire form; raise ParseError if it does not fit."""
        if not isinstance(data, dict):
            raise ParseError("subscription closed error must be a JSON object")
        if "subscription_closed" not in data:
            raise ParseError("missing field `subscription_closed`")
        if "id" not in data:
            raise ParseError("missing field `id`")
        reason = data["subscription_closed"]
        sub_id = data["id"]
        if not isinstance(reason, str):
            raise ParseError("field `subscription_closed` must be a string")
        if isinstance(sub_id, bool) or not isinstance(sub_id, int):
            raise ParseError("field `id` must be an unsigned integer")
        if not 0 <= sub_id <= _U64_MAX:
            raise ParseError("field `id` is out of range")
        return cls(reason, sub_id)


class SubscriptionClosed(RpcException):
    """The subscription was closed."""

    def __init__(self, error: SubscriptionClosedError) -> None:
        self.error = error
        super().__init__(f"Subscription closed: {error!r}")


class RequestTimeout(RpcException):
    """The request timed out."""

    def __init__(self) -> None:
        super().__init__("Request timeout")


class MaxSlotsExceeded(RpcException):
    """The configured number of concurrent request slots is used up."""

    def __init__(self) -> None:
        super().__init__("Configured max number of request slots exceeded")


class AlreadyStopped(RpcException):
    """The server has already been stopped."""

    def __init__(self) -> None:
        super().__init__("Attempted to stop server that is already stopped")


class EmptyAllowList(RpcException):
    """An allow list for a header was empty."""

    def __init__(self, header: str) -> None:
        self.header = header
        super().__init__(f"Must set at least one allowed value for the {header} header")


class ResourceAtCapacity(RpcException):
    """A resource is already at capacity."""

    def __init__(self, label: str) -> None:
        self.label = label
        super().__init__(f"Resource at capacity: {label}")


class ResourceNameAlreadyTaken(RpcException):
    """A resource of that name is already registered."""

    def __init__(self, label: str) -> None:
        self.label = label
        super().__init__(f"Resource name already taken: {label}")


class ResourceNameNotFoundForMethod(RpcException):
    """A method refers to a resource that was never registered."""

    def __init__(self, label: str, method: str) -> None:
        self.label = label
        self.method = method
        super().__init__(f"Resource name `{label}` not found for method `{method}`")


class UninitializedMethod(RpcException):
    """The resources of a method have not been initialized."""

    def __init__(self, method: str) -> None:
        self.method = method
        super().__init__(f"Method `{method}` has uninitialized resources")


class MaxResourcesReached(RpcException):
    """The maximum number of resources is already registered."""

    def __init__(self) -> None:
        super().__init__("Maximum number of resources reached")


class CustomError(RpcException):
    """Free-form error."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(f"Custom error: {message}")


def to_call_error(err: Any) -> CallFailed:
    """Wrap any error as a failed call with the default code and message."""
    return CallFailed(err)


class GenericTransportError(Exception):
    """Error raised while reading a request from a transport."""

    def __init__(self, inner: Any) -> None:
        self.inner = inner
        super().__init__(f"Transport error: {inner}")


class RequestTooLarge(GenericTransportError):
    """The request was too big."""

    def __init__(self) -> None:
        self.inner = None
        Exception.__init__(self, "The request was too big")


class MalformedRequest(GenericTransportError):
    """The request was malformed."""

    def __init__(self) -> None:
        self.inner = None
        Exception.__init__(self, "Malformed request")