# Copyright (c) 2023 Boston Dynamics AI Institute LLC. See LICENSE file for more info.

"""
Common header handling.

Clients stamp request headers before sending. Services validate request headers on entry
and finalize response headers on exit, typically as in:

.. code-block:: python

   def PowerCommand(self, request, context):
       response = PowerCommandResponse()
       if not validate_request_header_and_respond(request, response):
           return response
       ...
       set_ok(response)
       return response
"""

import typing

from bosdyn.api.header_pb2 import CommonError
from google.protobuf.message import Message

from spot_core.strip import stripped_copy
from spot_core.time_util import Clock, now_nsec, set_timestamp


def has_header(message: Message) -> bool:
    """Checks whether `message` type has a common header field."""
    return "header" in message.DESCRIPTOR.fields_by_name


def fill_request_header(
    request: Message,
    client_name: str,
    clock: Clock = now_nsec,
    disable_rpc_logging: bool = False,
) -> None:
    """Stamps `request` header with `client_name` and the current time."""
    header = request.header
    header.client_name = client_name
    set_timestamp(clock(), header.request_timestamp)
    if disable_rpc_logging:
        header.disable_rpc_logging = True


def prepare_response_header(
    request: Message,
    response: Message,
    reflect_request: bool = False,
    clock: Clock = now_nsec,
) -> None:
    """
    Populates `response` header from `request`.

    Args:
        request: request being served.
        response: response to be populated.
        reflect_request: whether to embed a stripped copy of `request` in the response header.
        clock: source of the request reception time.
    """
    header = response.header
    set_timestamp(clock(), header.request_received_timestamp)
    if request.HasField("header"):
        header.request_header.CopyFrom(request.header)
    if reflect_request:
        header.request.Pack(stripped_copy(request))


def set_error(response: Message, code: int, message: str = "", clock: Clock = now_nsec) -> None:
    """Sets `response` common error and stamps its response time."""
    header = response.header
    header.error.code = code
    header.error.message = message
    set_timestamp(clock(), header.response_timestamp)


def set_ok(response: Message, message: str = "", clock: Clock = now_nsec) -> bool:
    set_error(response, CommonError.CODE_OK, message, clock)
    return True


def set_invalid_request(response: Message, message: str, clock: Clock = now_nsec) -> bool:
    set_error(response, CommonError.CODE_INVALID_REQUEST, message, clock)
    return False


def set_internal_error(response: Message, message: str, clock: Clock = now_nsec) -> bool:
    set_error(response, CommonError.CODE_INTERNAL_SERVER_ERROR, message, clock)
    return False


def set_ok_if_not_error(response: Message, clock: Clock = now_nsec) -> bool:
    """
    Marks `response` as successful, unless a common error is already set.

    Returns:
        true if `response` ends up marked as successful, false otherwise.
    """
    header = response.header
    if header.error.code == CommonError.CODE_UNSPECIFIED:
        return set_ok(response, clock=clock)
    if not header.HasField("response_timestamp"):
        set_timestamp(clock(), header.response_timestamp)
    return header.error.code == CommonError.CODE_OK


def validate_request_header_and_respond(
    request: Message,
    response: Message,
    reflect_request: bool = False,
    clock: Clock = now_nsec,
) -> bool:
    """
    Validates `request` header and populates `response` header accordingly.

    Args:
        request: request being served.
        response: response to be populated.
        reflect_request: whether to embed a stripped copy of `request` in the response header.
        clock: source of reception and response times.

    Returns:
        true if the request header is valid and the response is marked as successful, false otherwise.
    """
    prepare_response_header(request, response, reflect_request, clock)
    if not request.HasField("header"):
        return set_invalid_request(response, "No header in request", clock)
    header = request.header
    if not header.HasField("request_timestamp"):
        return set_invalid_request(response, "No request_timestamp message present in header", clock)
    timestamp = header.request_timestamp
    if timestamp.seconds < 0 or timestamp.nanos < 0:
        return set_invalid_request(
            response, f"Invalid request_timestamp {timestamp.seconds}.{timestamp.nanos} in header.", clock
        )
    if not header.client_name:
        return set_invalid_request(response, "Invalid client_name in header", clock)
    return set_ok(response, clock=clock)


def common_error(response: Message) -> typing.Optional[CommonError]:
    """Returns `response` common error, if `response` has a header."""
    if not has_header(response):
        return None
    return response.header.error
