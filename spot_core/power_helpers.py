# Copyright (c) 2023 Boston Dynamics AI Institute LLC. See LICENSE file for more info.

"""
Blocking robot power management.

All helpers take a timeout, in seconds, and a feedback update frequency, in Hz.
Update frequencies cannot be zero. Negative frequencies poll feedback back to back.
"""

import typing

from bosdyn.api.power_pb2 import PowerCommandRequest, PowerCommandStatus
from bosdyn.api.robot_command_pb2 import RobotCommand
from bosdyn.api.robot_state_pb2 import PowerState

from spot_core.clients import PowerClient, RobotCommandClient, RobotStateClient
from spot_core.command_feedback import block_on_feedback, check_update_frequency
from spot_core.config import DEFAULT_POWER_COMMAND_TIMEOUT, DEFAULT_UPDATE_FREQUENCY
from spot_core.response_status import POWER_COMMAND_STATUS
from spot_core.status import Result, SDKErrorCode, Status, ok
from spot_core.time_util import Clock, now_nsec, nsec_to_sec, sec_to_nsec

EarlyEnd = typing.Optional[typing.Callable[[], bool]]


def power_command(
    power_client: PowerClient,
    request_kind: int,
    timeout: float = DEFAULT_POWER_COMMAND_TIMEOUT,
    update_frequency: float = DEFAULT_UPDATE_FREQUENCY,
    early_end: EarlyEnd = None,
    clock: Clock = now_nsec,
) -> Status:
    """
    Issues a power command and blocks until it completes.

    Args:
        power_client: client to issue the command with.
        request_kind: ``PowerCommandRequest.Request`` value.
        timeout: time to wait for completion, in seconds.
        update_frequency: feedback polling rate, in Hz.
        early_end: optional predicate to stop waiting early.
        clock: source of time for the deadline.

    Returns:
        a successful status if the command completed, the command failure status otherwise.
    """
    if power_client is None:
        raise ValueError("power client is required")
    check_update_frequency(update_frequency)
    end_time_nsec = clock() + sec_to_nsec(timeout)
    result = power_client.power_command(request_kind)
    if not result:
        return result.status
    if result.response.status == PowerCommandStatus.STATUS_SUCCESS:
        return ok()
    power_command_id = result.response.power_command_id

    def evaluate(response: typing.Any) -> typing.Tuple[bool, Status]:
        status = Status(response.status, category=POWER_COMMAND_STATUS)
        if response.status == PowerCommandStatus.STATUS_SUCCESS:
            return True, ok()
        return response.status != PowerCommandStatus.STATUS_IN_PROGRESS, status

    return block_on_feedback(
        lambda parameters: power_client.power_command_feedback_async(power_command_id, parameters),
        evaluate,
        end_time_nsec,
        update_frequency,
        initial_status=result.status,
        description=f"power command {power_command_id}",
        early_end=early_end,
        clock=clock,
    )


def power_on_motors(power_client: PowerClient, *args: typing.Any, **kwargs: typing.Any) -> Status:
    return power_command(power_client, PowerCommandRequest.Request.REQUEST_ON_MOTORS, *args, **kwargs)


def power_off_motors(power_client: PowerClient, *args: typing.Any, **kwargs: typing.Any) -> Status:
    """Cuts motor power right away. Prefer `safe_power_off_motors`."""
    return power_command(power_client, PowerCommandRequest.Request.REQUEST_OFF_MOTORS, *args, **kwargs)


def power_off_robot(power_client: PowerClient, *args: typing.Any, **kwargs: typing.Any) -> Status:
    return power_command(power_client, PowerCommandRequest.Request.REQUEST_OFF_ROBOT, *args, **kwargs)


def power_cycle_robot(power_client: PowerClient, *args: typing.Any, **kwargs: typing.Any) -> Status:
    return power_command(power_client, PowerCommandRequest.Request.REQUEST_CYCLE_ROBOT, *args, **kwargs)


def power_on_payload_ports(power_client: PowerClient, *args: typing.Any, **kwargs: typing.Any) -> Status:
    return power_command(power_client, PowerCommandRequest.Request.REQUEST_ON_PAYLOAD_PORTS, *args, **kwargs)


def power_off_payload_ports(power_client: PowerClient, *args: typing.Any, **kwargs: typing.Any) -> Status:
    return power_command(power_client, PowerCommandRequest.Request.REQUEST_OFF_PAYLOAD_PORTS, *args, **kwargs)


def power_on_wifi_radio(power_client: PowerClient, *args: typing.Any, **kwargs: typing.Any) -> Status:
    return power_command(power_client, PowerCommandRequest.Request.REQUEST_ON_WIFI_RADIO, *args, **kwargs)


def power_off_wifi_radio(power_client: PowerClient, *args: typing.Any, **kwargs: typing.Any) -> Status:
    return power_command(power_client, PowerCommandRequest.Request.REQUEST_OFF_WIFI_RADIO, *args, **kwargs)


def safe_power_off_motors(
    robot_command_client: RobotCommandClient,
    robot_state_client: RobotStateClient,
    timeout: float = DEFAULT_POWER_COMMAND_TIMEOUT,
    update_frequency: float = DEFAULT_UPDATE_FREQUENCY,
    early_end: EarlyEnd = None,
    clock: Clock = now_nsec,
) -> Status:
    """
    Safely powers off motors, and blocks until they are off.

    The robot is commanded to sit down before cutting power,
    then robot state is polled for motor power state.
    """
    if robot_command_client is None:
        raise ValueError("robot command client is required")
    if robot_state_client is None:
        raise ValueError("robot state client is required")
    check_update_frequency(update_frequency)
    end_time_nsec = clock() + sec_to_nsec(timeout)
    command = RobotCommand()
    command.full_body_command.safe_power_off_request.SetInParent()
    result = robot_command_client.robot_command(command)
    if not result:
        return result.status

    motors_not_off = Status(SDKErrorCode.GENERIC_SDK_ERROR, "motors not yet off")

    def evaluate(robot_state: typing.Any) -> typing.Tuple[bool, Status]:
        if robot_state.power_state.motor_power_state == PowerState.MotorPowerState.MOTOR_POWER_STATE_OFF:
            return True, ok()
        return False, motors_not_off

    return block_on_feedback(
        robot_state_client.get_robot_state_async,
        evaluate,
        end_time_nsec,
        update_frequency,
        initial_status=motors_not_off,
        description=f"safe power off command {result.response.robot_command_id}",
        early_end=early_end,
        clock=clock,
    )


def _safe_power_off_then(
    power_request_kind: int,
    robot_command_client: RobotCommandClient,
    robot_state_client: RobotStateClient,
    power_client: PowerClient,
    timeout: float,
    update_frequency: float,
    early_end: EarlyEnd,
    clock: Clock,
) -> Status:
    end_time_nsec = clock() + sec_to_nsec(timeout)
    status = safe_power_off_motors(
        robot_command_client, robot_state_client, timeout, update_frequency, early_end, clock
    )
    if not status or (early_end is not None and early_end()):
        return status
    return power_command(
        power_client,
        power_request_kind,
        nsec_to_sec(end_time_nsec - clock()),
        update_frequency,
        early_end,
        clock,
    )


def safe_power_off_robot(
    robot_command_client: RobotCommandClient,
    robot_state_client: RobotStateClient,
    power_client: PowerClient,
    timeout: float = DEFAULT_POWER_COMMAND_TIMEOUT,
    update_frequency: float = DEFAULT_UPDATE_FREQUENCY,
    early_end: EarlyEnd = None,
    clock: Clock = now_nsec,
) -> Status:
    """Safely powers off motors, then the robot, all within `timeout` seconds."""
    return _safe_power_off_then(
        PowerCommandRequest.Request.REQUEST_OFF_ROBOT,
        robot_command_client,
        robot_state_client,
        power_client,
        timeout,
        update_frequency,
        early_end,
        clock,
    )


def safe_power_cycle_robot(
    robot_command_client: RobotCommandClient,
    robot_state_client: RobotStateClient,
    power_client: PowerClient,
    timeout: float = DEFAULT_POWER_COMMAND_TIMEOUT,
    update_frequency: float = DEFAULT_UPDATE_FREQUENCY,
    early_end: EarlyEnd = None,
    clock: Clock = now_nsec,
) -> Status:
    """Safely powers off motors, then power cycles the robot, all within `timeout` seconds."""
    return _safe_power_off_then(
        PowerCommandRequest.Request.REQUEST_CYCLE_ROBOT,
        robot_command_client,
        robot_state_client,
        power_client,
        timeout,
        update_frequency,
        early_end,
        clock,
    )


def is_powered_on(robot_state_client: RobotStateClient) -> Result[bool]:
    """Checks whether robot motors are powered on."""
    if robot_state_client is None:
        raise ValueError("robot state client is required")
    result = robot_state_client.get_robot_state()
    if not result:
        return Result(result.status, False)
    motor_power_state = result.response.power_state.motor_power_state
    return Result(result.status, motor_power_state == PowerState.MotorPowerState.MOTOR_POWER_STATE_ON)


def fan_power_command(power_client: PowerClient, percent_power: int, duration: float) -> Result[int]:
    """
    Commands robot fans at `percent_power` for `duration` seconds.

    Returns:
        the command ID, to poll feedback with.
    """
    result = power_client.fan_power_command(percent_power, duration)
    if not result:
        return Result(result.status)
    return Result(result.status, result.response.command_id)


def fan_power_command_feedback(power_client: PowerClient, command_id: int) -> Result[int]:
    """
    Returns:
        the ``FanPowerCommandFeedbackResponse.Status`` of the command.
    """
    result = power_client.fan_power_command_feedback(command_id)
    if not result:
        return Result(result.status)
    return Result(result.status, result.response.status)
