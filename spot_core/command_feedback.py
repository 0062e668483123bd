# Copyright (c) 2023 Boston Dynamics AI Institute LLC. See LICENSE file for more info.

"""Blocking on command feedback."""

import concurrent.futures
import logging
import time
import typing

from google.protobuf.message import Message

from spot_core.service_client import RPCParameters
from spot_core.status import Result, RPCErrorCode, SDKErrorCode, Status
from spot_core.time_util import Clock, now_nsec, nsec_to_sec

logger = logging.getLogger(__name__)

FeedbackRequester = typing.Callable[[RPCParameters], "concurrent.futures.Future[Result]"]
"""Issues a feedback request with the given call parameters."""

FeedbackEvaluator = typing.Callable[[Message], typing.Tuple[bool, Status]]
"""Evaluates a feedback response, returning whether it is terminal and the status it stands for."""


def check_update_frequency(update_frequency: float) -> None:
    """Zero update frequencies are invalid. Negative ones disable sleeping between polls."""
    if update_frequency == 0:
        raise ValueError("update frequency cannot be 0")


def command_timed_out(description: str) -> Status:
    return Status(SDKErrorCode.COMMAND_TIMED_OUT).chain(f"timed out while polling {description}")


def block_on_feedback(
    request_feedback: FeedbackRequester,
    evaluate: FeedbackEvaluator,
    end_time_nsec: int,
    update_frequency: float,
    *,
    initial_status: Status,
    description: str,
    early_end: typing.Optional[typing.Callable[[], bool]] = None,
    clock: Clock = now_nsec,
) -> Status:
    """
    Polls feedback until it turns terminal.

    Each feedback request is given the remaining time as deadline,
    and polls are spaced 1 / `update_frequency` seconds apart at most.

    Args:
        request_feedback: starts a feedback request with the given call parameters.
        evaluate: evaluates a feedback response.
        end_time_nsec: deadline, in nanoseconds since the epoch.
        update_frequency: polling rate, in Hz. Negative rates poll back to back.
        initial_status: status to return if ended early before any feedback.
        description: what is being polled, for diagnostics.
        early_end: optional predicate to stop polling early.
        clock: source of time for the deadline.

    Returns:
        the terminal feedback status, the most recent non-terminal status if ended early,
        or an SDK error equivalent status on timeout.
    """
    check_update_frequency(update_frequency)
    update_period = 1.0 / update_frequency
    last_status = initial_status
    while clock() < end_time_nsec:
        if early_end is not None and early_end():
            logger.debug("Stopped polling %s early", description)
            return last_status
        start_time = clock()
        remaining = nsec_to_sec(end_time_nsec - start_time)
        future = request_feedback(RPCParameters(timeout=remaining))
        try:
            result = future.result(timeout=remaining)
        except concurrent.futures.TimeoutError:
            return command_timed_out(description)
        if result.status == Status(RPCErrorCode.TIMED_OUT):
            return command_timed_out(description)
        if not result:
            return result.status.chain(f"failed to poll {description}")
        terminal, status = evaluate(result.response)
        if terminal:
            return status
        last_status = status
        elapsed = nsec_to_sec(clock() - start_time)
        time.sleep(max(0.0, update_period - elapsed))
    return command_timed_out(description)
