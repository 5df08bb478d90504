# rpcmesh

Building blocks for JSON-RPC 2.0 servers and clients. The package has no runtime dependencies.

- `rpcmesh.errors`: the exception hierarchy, rooted at `RpcException`, plus `SubscriptionClosedError` (the payload that marks a closed subscription) and the transport errors `RequestTooLarge` and `MalformedRequest`.
- `rpcmesh.codes`: the standard error codes (`ErrorCode`) and error objects (`ErrorObject`).
- `rpcmesh.params`: incoming parameters (`Params`) and a parser that reads positional parameters one at a time (`ParamsSequence`). The parser handles optional trailing parameters.
- `rpcmesh.messages`: the `Request`, `Notification`, `Response`, `SubscriptionPayload` and `RpcError` message types, with `request_to_json` and `notification_to_json` for outgoing messages.
- `rpcmesh.rpc_params`: builds outgoing positional parameters (`rpc_params`, `to_rpc_params`).
- `rpcmesh.client`: request ID slots (`RequestIdGuard`), subscription handles (`Subscription`) and the messages a client front end sends to its background task.
- `rpcmesh.resources`: named resources with capacities (`Resources`). Claiming returns a `ResourceGuard`, which gives the units back when it is released.
- `rpcmesh.server_helpers`: a thread-safe response channel (`MethodSink`). It also has `send_response`, `send_error`, `send_call_error`, `prepare_error` and `collect_batch_response`.
- `rpcmesh.methods`: method collections (`Methods`). A collection can execute a request, execute it under resource limits, or call a method directly without a server.
- `rpcmesh.http_helpers`: reads a request body under a size limit (`read_body`) and reads header values.
- `rpcmesh.testing`: canned JSON-RPC responses, a small HTTP server that always sends the same body (`HardcodedHttpServer`), and timeout helpers.

## Install

```
pip install rpcmesh
```

To also install the test dependencies, run `pip install rpcmesh[test]`.

## Examples

### Messages and parameters

```python
from rpcmesh.messages import RpcError, request_to_json
from rpcmesh.params import Params
from rpcmesh.rpc_params import rpc_params

request_to_json(1, "subtract", rpc_params(42, 23))
# '{"jsonrpc":"2.0","id":1,"method":"subtract","params":[42,23]}'

seq = Params("[1, 2, null]").sequence()
[seq.optional_next() for _ in range(4)]
# [1, 2, None, None]

err = RpcError.from_json(
    '{"jsonrpc":"2.0","error":{"code":-32700,"message":"Parse error"},"id":null}'
)
str(err.error.code)
# '-32700: Parse error'
```

### Sending responses

```python
from rpcmesh.codes import ErrorCode, ErrorObject
from rpcmesh.server_helpers import MethodSink, send_error, send_response

sink = MethodSink()
send_response(1, sink, "ok")
send_error(2, sink, ErrorObject.from_code(ErrorCode.METHOD_NOT_FOUND))
sink.get_nowait()
# '{"jsonrpc":"2.0","result":"ok","id":1}'
sink.get_nowait()
# '{"jsonrpc":"2.0","error":{"code":-32601,"message":"Method not found"},"id":2}'
```

### Resource limits

```python
from rpcmesh.errors import ResourceAtCapacity
from rpcmesh.resources import Resources

resources = Resources()
resources.register("CPU", 6, 2)
resources.register("MEM", 10, 1)

with resources.claim([3, 0]):
    with resources.claim([3, 0]):
        try:
            resources.claim([1, 0])
        except ResourceAtCapacity as exc:
            print(exc)  # Resource at capacity: CPU
```

A capacity of 0 means the resource is not limited. `Methods.execute_with_resources` answers with error code `-32604` ("Server is busy, try again later") when a method's resources cannot be claimed.

### Request ID slots

```python
from rpcmesh.client import RequestIdGuard

guard = RequestIdGuard(1)
guard.next_request_id()      # 0
# guard.next_request_id()    # would raise MaxSlotsExceeded
guard.reclaim_request_id()
guard.next_request_ids(3)    # [1, 2, 3]
```

## What the package does not do

- `Methods` has no public way to register methods. There is no module type that wraps a context and offers registration of synchronous, asynchronous, blocking, subscription or alias methods. There is also no server-side sink that pushes subscription notifications.
- The package has no WebSocket or HTTP JSON-RPC server or client. It provides the pieces such a transport would use. The only network code is the test helpers in `rpcmesh.testing`.
- The package installs no command-line commands.