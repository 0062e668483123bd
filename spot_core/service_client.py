# Copyright (c) 2023 Boston Dynamics AI Institute LLC. See LICENSE file for more info.

"""
The generic call path of every service client.

A call starts asynchronously on the gRPC stub and completes through a callback,
which post-processes the response into a `Result` and resolves a future:

.. code-block:: python

   future = power_client.power_command_async(PowerCommandRequest.Request.REQUEST_ON_MOTORS)
   result = future.result()  # what power_client.power_command(...) does
"""

import concurrent.futures
import dataclasses
import enum
import logging
import typing

import grpc
from bosdyn.api.header_pb2 import CommonError
from google.protobuf.message import Message

from spot_core.config import DEFAULT_CLIENT_NAME, DEFAULT_RPC_TIMEOUT
from spot_core.header import fill_request_header, has_header
from spot_core.lease import LeaseWalletProtocol, attach_lease
from spot_core.response_status import COMMON_ERROR_CODE, LEASE_USE_RESULT_STATUS
from spot_core.rpc_error import status_from_rpc_error
from spot_core.status import Result, RPCErrorCode, SDKErrorCode, Status, ok
from spot_core.time_util import Clock, now_nsec


class LogRequestMode(enum.Enum):
    """Whether the robot should log requests."""

    DEFAULT = "default"
    ENABLED = "enabled"
    DISABLED = "disabled"


@dataclasses.dataclass(frozen=True)
class RPCParameters:
    """
    Per-call knobs.

    Attributes:
        timeout: call deadline, in seconds from the call start. None if not specified.
        logging_control: whether to ask the robot to log the request.
        retry_policy: opaque retry policy, forwarded as is.
        logging_tag: opaque logging tag, forwarded as is.
    """

    timeout: typing.Optional[float] = None
    logging_control: LogRequestMode = LogRequestMode.DEFAULT
    retry_policy: typing.Any = None
    logging_tag: typing.Optional[str] = None


def combine_rpc_parameters(
    parameters: typing.Optional[RPCParameters], defaults: typing.Optional[RPCParameters]
) -> RPCParameters:
    """Fills every unspecified field in `parameters` from `defaults`."""
    parameters = parameters or RPCParameters()
    defaults = defaults or RPCParameters()
    timeout = parameters.timeout if parameters.timeout is not None else defaults.timeout
    logging_control = parameters.logging_control
    if logging_control is LogRequestMode.DEFAULT:
        logging_control = defaults.logging_control
    return RPCParameters(
        timeout=timeout if timeout is not None else DEFAULT_RPC_TIMEOUT,
        logging_control=logging_control,
        retry_policy=parameters.retry_policy if parameters.retry_policy is not None else defaults.retry_policy,
        logging_tag=parameters.logging_tag if parameters.logging_tag is not None else defaults.logging_tag,
    )


def process_response(
    transport_status: Status,
    response: typing.Optional[Message],
    payload_status: typing.Optional[Status] = None,
) -> Status:
    """
    Merges transport, header and payload outcomes into a single status.

    The first non-successful outcome, in that order, wins.

    Args:
        transport_status: outcome of the call at the transport level.
        response: call response, if any.
        payload_status: outcome reported by the response payload, if any.
    """
    if not transport_status:
        return transport_status
    if response is not None and has_header(response):
        error = response.header.error
        if error.code != CommonError.CODE_OK:
            return Status(error.code, error.message or None, COMMON_ERROR_CODE)
    if payload_status is not None:
        return payload_status
    return ok()


def process_response_with_lease(
    transport_status: Status,
    response: typing.Optional[Message],
    payload_status: typing.Optional[Status],
    wallet: typing.Optional[LeaseWalletProtocol],
    logger: typing.Optional[logging.Logger] = None,
) -> Status:
    """
    Like `process_response`, but for responses reporting on lease use.

    The lease use result, if any, is handed to `wallet` before any status is computed.
    A lease use failure takes precedence over the payload status.
    """
    if not transport_status:
        return transport_status
    lease_use_status = None
    if response is not None and "lease_use_result" in response.DESCRIPTOR.fields_by_name:
        if response.HasField("lease_use_result"):
            lease_use_result = response.lease_use_result
            if wallet is not None:
                wallet_status = wallet.on_lease_use_result(lease_use_result)
                if not wallet_status:
                    (logger or logging.getLogger(__name__)).debug("Lease use result not recorded: %s", wallet_status)
            lease_use_status = Status(lease_use_result.status, category=LEASE_USE_RESULT_STATUS)
    status = process_response(transport_status, response, None)
    if not status:
        return status
    if lease_use_status is not None and not lease_use_status:
        return lease_use_status
    return payload_status if payload_status is not None else status


CompletionCallback = typing.Callable[[Message, typing.Optional[Message], Status], Result]


class ServiceClient:
    """
    Base class for clients of a single robot service.

    Subclasses specify the service they talk to through class attributes.

    Attributes:
        default_service_name: name the service is registered under in the robot directory.
        service_type: fully qualified gRPC service name.
        stub_class: generated gRPC stub class.

    Args:
        client_name: name to stamp in request headers.
        clock: source of request timestamps.
        rpc_parameters: default parameters for every call.
        lease_wallet: wallet to draw leases from and report lease use to.
        logger: logger for call failures.
    """

    default_service_name: str = ""
    service_type: str = ""
    stub_class: typing.Optional[typing.Type] = None

    def __init__(
        self,
        *,
        client_name: str = DEFAULT_CLIENT_NAME,
        clock: Clock = now_nsec,
        rpc_parameters: typing.Optional[RPCParameters] = None,
        lease_wallet: typing.Optional[LeaseWalletProtocol] = None,
        logger: typing.Optional[logging.Logger] = None,
    ) -> None:
        self._client_name = client_name
        self._clock = clock
        self._rpc_parameters = rpc_parameters or RPCParameters()
        self._lease_wallet = lease_wallet
        self._logger = logger or logging.getLogger(__name__)
        self._stub: typing.Any = None

    def set_comms(self, channel: grpc.Channel) -> None:
        """Binds this client to `channel`. Meant to be called once."""
        if self.stub_class is None:
            raise ValueError(f"{type(self).__name__} has no stub class")
        self._stub = self.stub_class(channel)

    @property
    def has_stub(self) -> bool:
        return self._stub is not None

    @property
    def client_name(self) -> str:
        return self._client_name

    @property
    def clock(self) -> Clock:
        return self._clock

    @property
    def lease_wallet(self) -> typing.Optional[LeaseWalletProtocol]:
        return self._lease_wallet

    def initiate_async_call(
        self,
        method_name: str,
        request: Message,
        on_complete: CompletionCallback,
        rpc_parameters: typing.Optional[RPCParameters] = None,
        lease_resource: typing.Optional[str] = None,
    ) -> "concurrent.futures.Future[Result]":
        """
        Starts a unary call and returns a future for its result.

        Args:
            method_name: gRPC method name, as found in the stub.
            request: call request. Its header is stamped before sending.
            on_complete: callback invoked with the request, the response (or None) and the
            transport status once the call is done. Its return value resolves the future.
            rpc_parameters: call parameters, completed by the client defaults.
            lease_resource: resource to draw a lease for, if the request carries none.

        Returns:
            a future result. Setup failures resolve it immediately.
        """
        promise: "concurrent.futures.Future[Result]" = concurrent.futures.Future()
        promise.set_running_or_notify_cancel()
        if self._stub is None:
            status = Status(SDKErrorCode.STUB_UNSET, f"{type(self).__name__}.{method_name}")
            promise.set_result(Result(status))
            return promise
        parameters = combine_rpc_parameters(rpc_parameters, self._rpc_parameters)
        if has_header(request):
            fill_request_header(
                request,
                self._client_name,
                self._clock,
                disable_rpc_logging=parameters.logging_control is LogRequestMode.DISABLED,
            )
        if lease_resource is not None and self._lease_wallet is not None:
            status = attach_lease(request, self._lease_wallet, lease_resource)
            if not status:
                promise.set_result(Result(status))
                return promise

        def done(call: grpc.Future) -> None:
            response = None
            if call.cancelled():
                transport_status = Status(RPCErrorCode.CLIENT_CANCELLED_OPERATION)
            else:
                error = call.exception()
                if error is None:
                    response = call.result()
                    transport_status = ok()
                else:
                    transport_status = status_from_rpc_error(error)
            if not transport_status:
                self._logger.debug("%s call failed: %s", method_name, transport_status)
            try:
                result = on_complete(request, response, transport_status)
            except Exception as e:
                promise.set_exception(e)
            else:
                promise.set_result(result)

        rpc = getattr(self._stub, method_name)
        rpc.future(request, timeout=parameters.timeout).add_done_callback(done)
        return promise

    def call_async(
        self,
        method_name: str,
        request: Message,
        *,
        status_of: typing.Optional[typing.Callable[[Message], Status]] = None,
        extract: typing.Optional[typing.Callable[[Message], typing.Any]] = None,
        rpc_parameters: typing.Optional[RPCParameters] = None,
        lease_resource: typing.Optional[str] = None,
    ) -> "concurrent.futures.Future[Result]":
        """
        Starts a unary call with standard response post-processing.

        Args:
            method_name: gRPC method name, as found in the stub.
            request: call request.
            status_of: maps a response to its payload status, if the response carries one.
            extract: maps a response to the value to return, the response itself by default.
            rpc_parameters: call parameters, completed by the client defaults.
            lease_resource: resource to draw a lease for. Responses of calls with
            a lease resource report lease use back to the client lease wallet.
        """

        def on_complete(request: Message, response: typing.Optional[Message], transport_status: Status) -> Result:
            payload_status = None
            if response is not None and status_of is not None:
                payload_status = status_of(response)
            if lease_resource is not None:
                status = process_response_with_lease(
                    transport_status, response, payload_status, self._lease_wallet, self._logger
                )
            else:
                status = process_response(transport_status, response, payload_status)
            if transport_status and not status:
                self._logger.debug("%s call unsuccessful: %s", method_name, status)
            value = response
            if response is not None and extract is not None:
                value = extract(response)
            return Result(status, value)

        return self.initiate_async_call(method_name, request, on_complete, rpc_parameters, lease_resource)

    def call(self, method_name: str, request: Message, **kwargs: typing.Any) -> Result:
        """Blocking form of `call_async`."""
        return self.call_async(method_name, request, **kwargs).result()
