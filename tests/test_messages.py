import pytest

from rpcmesh.codes import ErrorCode, ErrorObject
from rpcmesh.errors import ParseError
from rpcmesh.messages import (
    Notification,
    Request,
    Response,
    RpcError,
    SubscriptionPayload,
    notification_to_json,
    parse_invalid_request_id,
    request_to_json,
)


@pytest.mark.parametrize(
    "ser, expected_id, expected_params",
    [
        ('{"jsonrpc":"2.0", "method":"subtract", "params":[42, 23], "id":1}', 1, "[42, 23]"),
        ('{"jsonrpc":"2.0", "method":"subtract", "id":null}', None, None),
    ],
)
def test_deserialize_request(ser, expected_id, expected_params):
    request = Request.from_json(ser)
    assert request.jsonrpc == "2.0"
    assert request.id == expected_id
    assert request.method == "subtract"
    assert request.params == expected_params


def test_deserialize_valid_notif_works():
    dsr = Notification.from_json('{"jsonrpc":"2.0","method":"say_hello","params":[]}')
    assert dsr.method == "say_hello"
    assert dsr.jsonrpc == "2.0"
    assert dsr.params == []


def test_deserialize_call_bad_id_should_fail():
    with pytest.raises(ParseError):
        Request.from_json('{"jsonrpc":"2.0","method":"say_hello","params":[],"id":{}}')


def test_request_rejects_unknown_field():
    with pytest.raises(ParseError):
        Request.from_json('{"jsonrpc":"2.0","method":"m","id":1,"extra":0}')


def test_request_rejects_missing_method():
    with pytest.raises(ParseError):
        Request.from_json('{"jsonrpc":"2.0","id":1}')


def test_request_rejects_wrong_version():
    with pytest.raises(ParseError):
        Request.from_json('{"jsonrpc":"1.0","method":"m","id":1}')


def test_request_rejects_duplicate_field():
    with pytest.raises(ParseError):
        Request.from_json('{"jsonrpc":"2.0","method":"m","method":"n","id":1}')


def test_request_null_params_is_absent():
    request = Request.from_json(b'{"jsonrpc":"2.0","method":"m","id":"a","params":null}')
    assert request.params is None
    assert request.id == "a"


def test_deserialize_invalid_request():
    s = '{"id":120,"method":"my_method","params":["foo", "bar"],"extra_field":[]}'
    assert parse_invalid_request_id(s) == 120


def test_invalid_request_garbage_fails():
    with pytest.raises(ParseError):
        parse_invalid_request_id(b"not json")


@pytest.mark.parametrize(
    "expected, req_id, params",
    [
        ('{"jsonrpc":"2.0","id":1,"method":"subtract","params":[42,23]}', 1, [42, 23]),
        ('{"jsonrpc":"2.0","id":null,"method":"subtract","params":[42,23]}', None, [42, 23]),
        ('{"jsonrpc":"2.0","id":1,"method":"subtract"}', 1, None),
        ('{"jsonrpc":"2.0","id":null,"method":"subtract"}', None, None),
    ],
)
def test_serialize_call(expected, req_id, params):
    assert request_to_json(req_id, "subtract", params) == expected


@pytest.mark.parametrize(
    "params, expected",
    [
        ([], "[]"),
        ([42, 23], "[42,23]"),
        ({"a": 42, "b": None, "c": "aa"}, '{"a":42,"b":null,"c":"aa"}'),
        ({"c": "aa", "a": 42, "b": None}, '{"a":42,"b":null,"c":"aa"}'),
    ],
)
def test_params_serialize(params, expected):
    assert request_to_json(1, "m", params) == '{"jsonrpc":"2.0","id":1,"method":"m","params":' + expected + "}"


def test_request_to_json_rejects_bad_params():
    with pytest.raises(TypeError):
        request_to_json(1, "m", "not params")


def test_serialize_notif():
    exp = '{"jsonrpc":"2.0","method":"say_hello","params":["hello"]}'
    assert notification_to_json("say_hello", ["hello"]) == exp


def test_notification_round_trip():
    notif = Notification("bar", {"x": [1, 2]})
    assert Notification.from_json(notif.to_json()) == notif


def test_subscription_response_serialize():
    sub_id = "D3wwzU6vvoUUYehv4qoFzq42DZnLoAETeFzeyk8swH4o"
    notif = Notification("bar", SubscriptionPayload(sub_id, "hello"))
    assert notif.to_json() == (
        '{"jsonrpc":"2.0","method":"bar","params":{"subscription":'
        '"D3wwzU6vvoUUYehv4qoFzq42DZnLoAETeFzeyk8swH4o","result":"hello"}}'
    )


def test_serialize_call_response():
    assert Response("ok", 1).to_json() == '{"jsonrpc":"2.0","result":"ok","id":1}'


def test_deserialize_call():
    dsr = Response.from_json('{"jsonrpc":"2.0", "result":99, "id":11}')
    assert dsr.jsonrpc == "2.0"
    assert dsr.result == 99
    assert dsr.id == 11


def test_response_rejects_unknown_field():
    with pytest.raises(ParseError):
        Response.from_json('{"jsonrpc":"2.0","result":1,"id":1,"other":2}')


def test_subscription_params_serialize_work():
    payload = SubscriptionPayload(12, "goal")
    assert Notification("m", payload).to_json().endswith('"params":{"subscription":12,"result":"goal"}}')
    assert payload.to_dict() == {"subscription": 12, "result": "goal"}


def test_subscription_params_deserialize_work():
    dsr = SubscriptionPayload.from_dict({"subscription": "9", "result": "offside"})
    assert dsr.subscription == "9"
    assert dsr.result == "offside"


def test_subscription_payload_bad_id():
    with pytest.raises(ParseError):
        SubscriptionPayload.from_dict({"subscription": None, "result": 1})


def test_rpc_error_deserialize_works():
    ser = '{"jsonrpc":"2.0","error":{"code":-32700,"message":"Parse error"},"id":null}'
    exp = RpcError(ErrorObject(ErrorCode.PARSE_ERROR, "Parse error"), None)
    assert RpcError.from_json(ser) == exp


def test_rpc_error_deserialize_with_optional_data():
    ser = '{"jsonrpc":"2.0","error":{"code":-32700,"message":"Parse error", "data":"vegan"},"id":null}'
    err = RpcError.from_json(ser)
    assert err == RpcError(ErrorObject(ErrorCode.PARSE_ERROR, "Parse error", "vegan"), None)
    assert err.error.data == "vegan"


def test_rpc_error_serialize_works():
    exp = '{"jsonrpc":"2.0","error":{"code":-32603,"message":"Internal error"},"id":1337}'
    err = RpcError(ErrorObject(ErrorCode.INTERNAL_ERROR, "Internal error"), 1337)
    assert err.to_json() == exp
    assert str(err) == exp