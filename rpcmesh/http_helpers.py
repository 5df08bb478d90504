"""Helpers for reading HTTP request headers and bodies."""

from __future__ import annotations

import re
from collections.abc import AsyncIterator, Iterator, Mapping
from typing import Any

from rpcmesh.errors import (
    TEN_MB_SIZE_BYTES,
    GenericTransportError,
    MalformedRequest,
    RequestTooLarge,
)

_U32_MAX = 2**32 - 1
_VISIBLE_ASCII = re.compile(r"[\t\x20-\x7e]*")
_DECIMAL = re.compile(r"\+?[0-9]+")


def _all_values(headers: Any, header_name: str) -> list[Any]:
    name = header_name.lower()
    get_all = getattr(headers, "get_all", None)
    if callable(get_all):
        return list(get_all(name) or [])
    items = headers.items() if isinstance(headers, Mapping) else headers
    values: list[Any] = []
    for key, value in items:
        if isinstance(key, (bytes, bytearray)):
            key = bytes(key).decode("latin-1")
        if key.lower() != name:
            continue
        if isinstance(value, (list, tuple)):
            values.extend(value)
        else:
            values.append(value)
    return values


def _as_text(value: Any) -> str | None:
    if isinstance(value, (bytes, bytearray)):
        value = bytes(value).decode("latin-1")
    if not isinstance(value, str) or not _VISIBLE_ASCII.fullmatch(value):
        return None
    return value


def read_header_value(headers: Any, header_name: str) -> str | None:
    """Return the header's value when it occurs exactly once and is printable ASCII."""
    values = _all_values(headers, header_name)
    if len(values) != 1:
        return None
    return _as_text(values[0])


def read_header_values(headers: Any, header_name: str) -> Iterator[Any]:
    """Iterate over every value given for a header."""
    return iter(_all_values(headers, header_name))


def read_header_content_length(headers: Any) -> int | None:
    """Return Content-Length if present once and fitting in 32 unsigned bits."""
    length = read_header_value(headers, "content-length")
    if length is None or not _DECIMAL.fullmatch(length):
        return None
    value = int(length)
    return value if value <= _U32_MAX else None


def _to_bytes(chunk: Any) -> bytes:
    if isinstance(chunk, (bytes, bytearray, memoryview)):
        return bytes(chunk)
    raise TypeError(f"body chunk must be bytes, not {type(chunk).__name__}")


async def _stream(chunks: Any) -> AsyncIterator[bytes]:
    if hasattr(chunks, "__aiter__"):
        async for chunk in chunks:
            yield _to_bytes(chunk)
    else:
        for chunk in chunks:
            yield _to_bytes(chunk)


async def _next_chunk(stream: AsyncIterator[bytes]) -> bytes | None:
    try:
        return await stream.__anext__()
    except StopAsyncIteration:
        return None
    except GenericTransportError:
        raise
    except Exception as exc:
        raise GenericTransportError(exc) from exc


async def read_body(
    headers: Any, chunks: Any, max_request_body_size: int = TEN_MB_SIZE_BYTES
) -> tuple[bytes, bool]:
    """Read a request body from ``chunks`` within the size limit.

    Returns the body and whether it holds a single request (``{``) rather than
    a batch (``[``). Raises RequestTooLarge, MalformedRequest, or
    GenericTransportError wrapping an error from reading the chunks.
    """
    body_size = read_header_content_length(headers) or 0
    if body_size > max_request_body_size:
        raise RequestTooLarge()

    stream = _stream(chunks)
    try:
        first = await _next_chunk(stream)
        if first is None:
            raise MalformedRequest()
        if len(first) > max_request_body_size:
            raise RequestTooLarge()

        lead = first[:1]
        if lead == b"{":
            single = True
        elif lead == b"[":
            single = False
        else:
            raise MalformedRequest()

        received = bytearray(first)
        while (chunk := await _next_chunk(stream)) is not None:
            if len(chunk) + len(received) > max_request_body_size:
                raise RequestTooLarge()
            received += chunk
        return bytes(received), single
    finally:
        await stream.aclose()