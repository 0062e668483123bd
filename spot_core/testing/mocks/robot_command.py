# Copyright (c) 2023 Boston Dynamics AI Institute LLC. See LICENSE file for more info.

import itertools
import typing

import grpc
from bosdyn.api.robot_command_pb2 import RobotCommandRequest, RobotCommandResponse
from bosdyn.api.robot_command_service_pb2_grpc import RobotCommandServiceServicer
from bosdyn.api.robot_state_pb2 import PowerState

from spot_core.testing.mocks.robot_state import MockRobotStateService


class MockRobotCommandService(RobotCommandServiceServicer, MockRobotStateService):
    """
    A mock robot command service.

    Only safe power off commands are supported, and these cut motor power right away.
    """

    def __init__(self, **kwargs: typing.Any) -> None:
        super().__init__(**kwargs)
        self._robot_command_ids = itertools.count(1)
        self.robot_commands: typing.List[RobotCommandRequest] = []

    def RobotCommand(self, request: RobotCommandRequest, context: grpc.ServicerContext) -> RobotCommandResponse:
        self.robot_commands.append(request)
        response = RobotCommandResponse()
        full_body_command = request.command.full_body_command
        if not full_body_command.HasField("safe_power_off_request"):
            response.status = RobotCommandResponse.Status.STATUS_UNSUPPORTED
            response.message = "only safe power off is supported"
            return response
        power_state = self.robot_state.power_state
        power_state.motor_power_state = PowerState.MotorPowerState.MOTOR_POWER_STATE_OFF
        response.status = RobotCommandResponse.Status.STATUS_OK
        response.robot_command_id = next(self._robot_command_ids)
        return response
