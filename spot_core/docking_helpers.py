# Copyright (c) 2023 Boston Dynamics AI Institute LLC. See LICENSE file for more info.

import concurrent.futures
import dataclasses
import logging
import time
import typing

from bosdyn.api.docking import docking_pb2
from bosdyn.api.docking.docking_pb2 import DockingCommandFeedbackResponse

from spot_core.clients import DockingClient
from spot_core.config import DOCKING_DEFAULT_END_DURATION, DOCKING_DEFAULT_INTERVAL
from spot_core.status import DockingHelperErrorCode, Result, Status, ok
from spot_core.time_sync import TimeSyncEndpoint
from spot_core.time_util import Clock, now_nsec, nsec_to_sec, sec_to_nsec

logger = logging.getLogger(__name__)

EarlyEnd = typing.Optional[typing.Callable[[], bool]]


@dataclasses.dataclass
class BlockingDockDetails:
    """Bookkeeping of a blocking dock."""

    attempts_made: int = 0


def _ends_early(early_end: EarlyEnd) -> bool:
    return early_end is not None and early_end()


def _wait_until_done(
    future: "concurrent.futures.Future[Result]", interval: float, early_end: EarlyEnd
) -> typing.Optional[Result]:
    """Waits on `future`, checking `early_end` every `interval` seconds. Returns None if ended early."""
    while True:
        if _ends_early(early_end):
            return None
        done, _ = concurrent.futures.wait([future], timeout=interval)
        if done:
            return future.result()


def wait_on_feedback(
    docking_client: DockingClient,
    command_id: int,
    success: int = DockingCommandFeedbackResponse.STATUS_DOCKED,
    progress: int = DockingCommandFeedbackResponse.STATUS_IN_PROGRESS,
    interval: float = DOCKING_DEFAULT_INTERVAL,
    early_end: EarlyEnd = None,
    clock: Clock = now_nsec,
) -> Result[DockingCommandFeedbackResponse]:
    """
    Polls docking command feedback until it reports anything but `progress`.

    Failed feedback requests are retried. Polls happen once per `interval` at most.

    Args:
        docking_client: client to poll feedback with.
        command_id: docking command ID.
        success: feedback status that stands for success.
        progress: feedback status that stands for progress.
        interval: minimum time between polls, in seconds.
        early_end: optional predicate to stop polling early.
        clock: source of time for poll spacing.

    Returns:
        the last feedback, with a `DockingHelperErrorCode.COMMAND_FAILED` status
        if it reports anything but `success`.
    """
    sleep_duration = 0.0
    while True:
        time.sleep(sleep_duration)
        start_time = clock()
        future = docking_client.docking_command_feedback_async(command_id)
        _wait_until_done(future, interval, early_end)
        sleep_duration = max(0.0, interval - nsec_to_sec(clock() - start_time))
        result = future.result()
        if _ends_early(early_end):
            break
        if result and result.response.status != progress:
            break
        if not result:
            logger.debug("Docking command %d feedback failed: %s", command_id, result.status)
    if result and result.response.status == success:
        return result
    if result:
        return Result(Status(DockingHelperErrorCode.COMMAND_FAILED), result.response)
    return result


def blocking_dock(
    docking_client: DockingClient,
    time_sync_endpoint: TimeSyncEndpoint,
    dock_id: int,
    num_attempts: int = 1,
    interval: float = DOCKING_DEFAULT_INTERVAL,
    end_duration: float = DOCKING_DEFAULT_END_DURATION,
    early_end: EarlyEnd = None,
    command_id_given: typing.Optional[typing.Callable[[int], None]] = None,
    clock: Clock = now_nsec,
) -> Result[BlockingDockDetails]:
    """
    Docks the robot, blocking until done.

    The first attempt, and every other one after that, go through the dock prep pose.
    If all attempts fail, the robot is sent back to the prep pose.

    Args:
        docking_client: client to issue docking commands with.
        time_sync_endpoint: source of robot time for command end times.
        dock_id: fiducial ID of the dock.
        num_attempts: number of attempts to make. Zero or less for unlimited attempts.
        interval: how often to poll feedback and check `early_end`, in seconds.
        end_duration: how long each docking command is valid for, in seconds.
        early_end: optional predicate to abort docking.
        command_id_given: optional callback, given every docking command ID issued.
        clock: source of local time.
    """
    details = BlockingDockDetails()

    def issue(prep_pose_behavior: int) -> typing.Tuple[typing.Optional[Result], Status]:
        request = docking_client.docking_command_builder(
            dock_id, clock() + sec_to_nsec(end_duration), time_sync_endpoint, prep_pose_behavior
        )
        if not request:
            return None, request.status
        if _ends_early(early_end):
            return None, Status(DockingHelperErrorCode.CANCELLED)
        if prep_pose_behavior != docking_pb2.PREP_POSE_ONLY_POSE:
            details.attempts_made += 1
        future = docking_client.docking_command_async(request.response)
        result = _wait_until_done(future, interval, early_end)
        if result is None:
            return None, Status(DockingHelperErrorCode.CANCELLED)
        if result and command_id_given is not None:
            command_id_given(result.response.docking_command_id)
        return result, ok()

    while num_attempts <= 0 or details.attempts_made < num_attempts:
        # Odd attempts go through the prep pose.
        if (details.attempts_made + 1) % 2 == 1:
            prep_pose_behavior = docking_pb2.PREP_POSE_USE_POSE
        else:
            prep_pose_behavior = docking_pb2.PREP_POSE_SKIP_POSE
        result, status = issue(prep_pose_behavior)
        if result is None:
            return Result(status, details)
        if not result:
            logger.info("Docking attempt %d failed: %s", details.attempts_made, result.status)
            continue
        feedback = wait_on_feedback(
            docking_client, result.response.docking_command_id, interval=interval, early_end=early_end, clock=clock
        )
        if feedback:
            return Result(ok(), details)
        if _ends_early(early_end):
            return Result(Status(DockingHelperErrorCode.CANCELLED), details)
        logger.info("Docking attempt %d failed: %s", details.attempts_made, feedback.status)

    result, status = issue(docking_pb2.PREP_POSE_ONLY_POSE)
    if result is None:
        return Result(status, details)
    if not result:
        return Result(result.status, details)
    wait_on_feedback(
        docking_client,
        result.response.docking_command_id,
        success=DockingCommandFeedbackResponse.STATUS_AT_PREP_POSE,
        interval=interval,
        early_end=early_end,
        clock=clock,
    )
    return Result(Status(DockingHelperErrorCode.RETRIES_EXCEEDED), details)
