"""JSON-RPC error codes and error objects."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar

from rpcmesh.errors import ParseError

PARSE_ERROR_CODE = -32700
OVERSIZED_REQUEST_CODE = -32701
INTERNAL_ERROR_CODE = -32603
INVALID_PARAMS_CODE = -32602
INVALID_REQUEST_CODE = -32600
METHOD_NOT_FOUND_CODE = -32601
SERVER_IS_BUSY_CODE = -32604
CALL_EXECUTION_FAILED_CODE = -32000
UNKNOWN_ERROR_CODE = -32001

PARSE_ERROR_MSG = "Parse error"
OVERSIZED_REQUEST_MSG = "Request is too big"
INTERNAL_ERROR_MSG = "Internal error"
INVALID_PARAMS_MSG = "Invalid params"
INVALID_REQUEST_MSG = "Invalid request"
METHOD_NOT_FOUND_MSG = "Method not found"
SERVER_IS_BUSY_MSG = "Server is busy, try again later"
SERVER_ERROR_MSG = "Server error"

_I32_MIN = -(2**31)
_I32_MAX = 2**31 - 1

_PREDEFINED_MESSAGES = {
    PARSE_ERROR_CODE: PARSE_ERROR_MSG,
    OVERSIZED_REQUEST_CODE: OVERSIZED_REQUEST_MSG,
    INVALID_REQUEST_CODE: INVALID_REQUEST_MSG,
    METHOD_NOT_FOUND_CODE: METHOD_NOT_FOUND_MSG,
    SERVER_IS_BUSY_CODE: SERVER_IS_BUSY_MSG,
    INVALID_PARAMS_CODE: INVALID_PARAMS_MSG,
    INTERNAL_ERROR_CODE: INTERNAL_ERROR_MSG,
}


@dataclass(frozen=True)
class ErrorCode:
    """A JSON-RPC error code.

    ``predefined`` marks the codes the protocol names; any other code is an
    implementation-defined server error.
    """

    code: int
    predefined: bool = False

    PARSE_ERROR: ClassVar[ErrorCode]
    OVERSIZED_REQUEST: ClassVar[ErrorCode]
    INVALID_REQUEST: ClassVar[ErrorCode]
    METHOD_NOT_FOUND: ClassVar[ErrorCode]
    SERVER_IS_BUSY: ClassVar[ErrorCode]
    INVALID_PARAMS: ClassVar[ErrorCode]
    INTERNAL_ERROR: ClassVar[ErrorCode]

    def __post_init__(self) -> None:
        if isinstance(self.code, bool) or not isinstance(self.code, int):
            raise TypeError("error code must be an integer")
        if not _I32_MIN <= self.code <= _I32_MAX:
            raise ValueError(f"error code {self.code} does not fit in 32 bits")
        if self.predefined and self.code not in _PREDEFINED_MESSAGES:
            raise ValueError(f"{self.code} is not a predefined error code")

    @classmethod
    def from_code(cls, code: int) -> ErrorCode:
        """Map an integer to its error code; unknown codes become server errors."""
        if isinstance(code, bool) or not isinstance(code, int):
            raise TypeError("error code must be an integer")
        predefined = code in _PREDEFINED_MESSAGES and code != SERVER_IS_BUSY_CODE
        return cls(code, predefined)

    def message(self) -> str:
        """Return the standard message for this code."""
        if self.predefined:
            return _PREDEFINED_MESSAGES[self.code]
        return SERVER_ERROR_MSG

    def __str__(self) -> str:
        return f"{self.code}: {self.message()}"


ErrorCode.PARSE_ERROR = ErrorCode(PARSE_ERROR_CODE, True)
ErrorCode.OVERSIZED_REQUEST = ErrorCode(OVERSIZED_REQUEST_CODE, True)
ErrorCode.INVALID_REQUEST = ErrorCode(INVALID_REQUEST_CODE, True)
ErrorCode.METHOD_NOT_FOUND = ErrorCode(METHOD_NOT_FOUND_CODE, True)
ErrorCode.SERVER_IS_BUSY = ErrorCode(SERVER_IS_BUSY_CODE, True)
ErrorCode.INVALID_PARAMS = ErrorCode(INVALID_PARAMS_CODE, True)
ErrorCode.INTERNAL_ERROR = ErrorCode(INTERNAL_ERROR_CODE, True)

_ERROR_OBJECT_FIELDS = frozenset({"code", "message", "data"})


@dataclass(frozen=True)
class ErrorObject:
    """The ``error`` member of a failed JSON-RPC response.

    ``data`` is left out of equality comparisons; ``None`` means it is absent.
    """

    code: ErrorCode
    message: str
    data: Any = field(default=None, compare=False)

    @classmethod
    def from_code(cls, code: ErrorCode) -> ErrorObject:
        """Build an error object carrying the standard message of ``code``."""
        return cls(code, code.message())

    def to_dict(self) -> dict[str, Any]:
        """Return the wire form; ``data`` is omitted when absent."""
        out: dict[str, Any] = {"code": self.code.code, "message": self.message}
        if self.data is not None:
            out["data"] = self.data
        return out

    @classmethod
    def from_dict(cls, data: Any) -> ErrorObject:
        """Build an error object from its wire form; raise ParseError if it does not fit."""
        if not isinstance(data, dict):
            raise ParseError("error object must be a JSON object")
        unknown = set(data) - _ERROR_OBJECT_FIELDS
        if unknown:
            raise ParseError(f"unknown field `{sorted(unknown)[0]}`")
        if "code" not in data:
            raise ParseError("missing field `code`")
        if "message" not in data:
            raise ParseError("missing field `message`")
        if not isinstance(data["message"], str):
            raise ParseError("field `message` must be a string")
        try:
            code = ErrorCode.from_code(data["code"])
        except (TypeError, ValueError) as exc:
            raise ParseError(exc) from exc
        return cls(code, data["message"], data.get("data"))