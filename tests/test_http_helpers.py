from email.message import Message

import pytest

from rpcmesh.errors import GenericTransportError, MalformedRequest, RequestTooLarge
from rpcmesh.http_helpers import (
    read_body,
    read_header_content_length,
    read_header_value,
    read_header_values,
)


async def _batch_chunks():
    yield b"[1,"
    yield b"2]"


def _failing_chunks():
    yield b"{"
    raise OSError("connection reset")


@pytest.mark.asyncio
async def test_body_to_bytes_size_limit_works():
    with pytest.raises(RequestTooLarge):
        await read_body([], [bytes(128)], 127)


def test_read_content_length_works():
    headers = [("content-length", "177")]
    assert read_header_content_length(headers) == 177

    headers.append(("Content-Length", "999"))
    assert read_header_content_length(headers) is None


def test_read_content_length_too_big_value():
    headers = [("content-length", "18446744073709551616")]
    assert read_header_content_length(headers) is None


def test_read_content_length_not_a_number():
    assert read_header_content_length({"content-length": "12a"}) is None
    assert read_header_content_length({}) is None


def test_read_header_value_from_message():
    msg = Message()
    msg["Content-Type"] = "application/json"
    assert read_header_value(msg, "content-type") == "application/json"
    msg["Content-Type"] = "text/plain"
    assert read_header_value(msg, "content-type") is None


def test_read_header_value_rejects_non_ascii():
    assert read_header_value({"x-name": "caf\u00e9"}, "x-name") is None
    assert read_header_value({"x-name": b"plain"}, "X-Name") == "plain"


def test_read_header_values_lists_all():
    headers = {"Accept": ["a", "b"], "Host": "localhost"}
    assert list(read_header_values(headers, "accept")) == ["a", "b"]
    assert list(read_header_values(headers, "missing")) == []


@pytest.mark.asyncio
async def test_single_request():
    body, single = await read_body({}, [b'{"a":', b"1}"], 100)
    assert body == b'{"a":1}'
    assert single is True


@pytest.mark.asyncio
async def test_batch_request_from_async_iterable():
    body, single = await read_body({}, _batch_chunks(), 100)
    assert body == b"[1,2]"
    assert single is False


@pytest.mark.asyncio
async def test_content_length_over_limit():
    with pytest.raises(RequestTooLarge):
        await read_body({"content-length": "11"}, [b"{}"], 10)


@pytest.mark.asyncio
async def test_total_size_over_limit():
    with pytest.raises(RequestTooLarge):
        await read_body({}, [b"{12345", b"67890}"], 11)


@pytest.mark.asyncio
async def test_total_size_at_limit():
    body, _ = await read_body({}, [b"{12345", b"6789}"], 11)
    assert len(body) == 11


@pytest.mark.asyncio
@pytest.mark.parametrize("chunks", [[], [b""], [b"hello"]])
async def test_malformed(chunks):
    with pytest.raises(MalformedRequest):
        await read_body({}, chunks, 100)


@pytest.mark.asyncio
async def test_inner_error_is_wrapped():
    with pytest.raises(GenericTransportError) as info:
        await read_body({}, _failing_chunks(), 100)
    assert isinstance(info.value.inner, OSError)
    assert not isinstance(info.value, (RequestTooLarge, MalformedRequest))