import json
import math

import pytest

from rpcmesh.errors import ParseError
from rpcmesh.messages import notification_to_json, request_to_json
from rpcmesh.rpc_params import rpc_params, to_rpc_params


def test_no_args_is_none():
    assert rpc_params() is None


def test_args_become_list():
    assert rpc_params(1, "a", True) == [1, "a", True]


def test_tuples_become_lists():
    assert rpc_params((1, 2), {"k": (3,)}) == [[1, 2], {"k": [3]}]


def test_integer_map_keys_become_strings():
    result = rpc_params({7: "x"})
    assert list(result[0]) == [str(7)]


def test_non_finite_float_becomes_null():
    result = rpc_params(math.nan)
    assert result == [None]


def test_unsupported_value_rejected():
    with pytest.raises(TypeError):
        rpc_params(object())


def test_used_as_notification_params():
    exp = '{"jsonrpc":"2.0","method":"say_hello","params":["hello"]}'
    assert notification_to_json("say_hello", rpc_params("hello")) == exp


def test_no_params_omitted_from_request():
    assert "params" not in request_to_json(1, "say_hello", rpc_params())


def test_to_rpc_params_compact():
    assert to_rpc_params([3]) == "[3]"


def test_to_rpc_params_empty():
    assert to_rpc_params([]) == "[]"


def test_to_rpc_params_round_trip():
    params = (1, {"a": 2}, "three", None)
    assert json.loads(to_rpc_params(params)) == [1, {"a": 2}, "three", None]


def test_to_rpc_params_keeps_unicode():
    assert "♥" in to_rpc_params(["♥"])


def test_to_rpc_params_rejects_non_sequence():
    with pytest.raises(TypeError):
        to_rpc_params("x")


def test_to_rpc_params_rejects_unserializable():
    with pytest.raises(ParseError):
        to_rpc_params([object()])


def test_to_rpc_params_rejects_nan():
    with pytest.raises(ParseError):
        to_rpc_params([math.inf])