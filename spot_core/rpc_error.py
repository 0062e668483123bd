# Copyright (c) 2023 Boston Dynamics AI Institute LLC. See LICENSE file for more info.

import typing

import grpc

from spot_core.status import RPCErrorCode, Status

# HTTP status codes reported by proxies through cancelled calls.
_CANCELLED_HTTP_CODES: typing.List[typing.Tuple[str, RPCErrorCode]] = [
    ("401", RPCErrorCode.UNAUTHENTICATED),
    ("403", RPCErrorCode.INVALID_APP_TOKEN),
    ("404", RPCErrorCode.NOT_FOUND),
    ("429", RPCErrorCode.TOO_MANY_REQUESTS),
    ("502", RPCErrorCode.SERVICE_UNAVAILABLE),
    ("504", RPCErrorCode.PROXY_CONNECTION),
]

_STATUS_CODES: typing.Dict[grpc.StatusCode, RPCErrorCode] = {
    grpc.StatusCode.OK: RPCErrorCode.SUCCESS,
    grpc.StatusCode.DEADLINE_EXCEEDED: RPCErrorCode.TIMED_OUT,
    grpc.StatusCode.UNIMPLEMENTED: RPCErrorCode.UNIMPLEMENTED,
    grpc.StatusCode.PERMISSION_DENIED: RPCErrorCode.PERMISSION_DENIED,
    grpc.StatusCode.RESOURCE_EXHAUSTED: RPCErrorCode.RESPONSE_TOO_LARGE,
    grpc.StatusCode.UNAVAILABLE: RPCErrorCode.RETRYABLE_UNAVAILABLE,
    grpc.StatusCode.UNAUTHENTICATED: RPCErrorCode.UNAUTHENTICATED,
    grpc.StatusCode.NOT_FOUND: RPCErrorCode.NOT_FOUND,
}

_DETAILS_PATTERNS: typing.List[typing.Tuple[str, RPCErrorCode]] = [
    ("is not in peer certificate", RPCErrorCode.INVALID_CLIENT_CERTIFICATE),
    ("Failed to connect to remote host", RPCErrorCode.PROXY_CONNECTION),
    ("Exception calling application", RPCErrorCode.SERVICE_FAILED_DURING_EXECUTION),
    ("Handshake failed", RPCErrorCode.INVALID_CLIENT_CERTIFICATE),
    ("Name resolution failure", RPCErrorCode.UNKNOWN_DNS_NAME),
    ("TRANSIENT_FAILURE", RPCErrorCode.TRANSIENT_FAILURE),
    ("Connect Failed", RPCErrorCode.UNABLE_TO_CONNECT_TO_ROBOT),
]


def rpc_error_code(code: grpc.StatusCode, details: typing.Optional[str] = None) -> RPCErrorCode:
    """Classifies a gRPC status `code` and its `details` into an RPC error code."""
    details = details or ""
    if code == grpc.StatusCode.CANCELLED:
        for http_code, error_code in _CANCELLED_HTTP_CODES:
            if http_code in details:
                return error_code
        return RPCErrorCode.CLIENT_CANCELLED_OPERATION
    if code in _STATUS_CODES:
        return _STATUS_CODES[code]
    for pattern, error_code in _DETAILS_PATTERNS:
        if pattern in details:
            return error_code
    return RPCErrorCode.UNIMPLEMENTED


def status_from_grpc(code: grpc.StatusCode, details: typing.Optional[str] = None) -> Status:
    """Lifts a gRPC status into a `Status`, keeping `details` as context."""
    return Status(rpc_error_code(code, details), details or None)


def status_from_rpc_error(error: grpc.RpcError) -> Status:
    """Lifts a failed gRPC call into a `Status`."""
    if isinstance(error, grpc.Call):
        return status_from_grpc(error.code(), error.details())
    return status_from_grpc(grpc.StatusCode.UNKNOWN, str(error))
