# Copyright (c) 2023 Boston Dynamics AI Institute LLC. See LICENSE file for more info.

import typing

import grpc
from bosdyn.api.robot_state_pb2 import (
    PowerState,
    RobotState,
    RobotStateRequest,
    RobotStateResponse,
)
from bosdyn.api.robot_state_service_pb2_grpc import RobotStateServiceServicer


class MockRobotStateService(RobotStateServiceServicer):
    """
    A mock robot state service.

    It exposes robot state to be modified by the user. Motors start powered off.
    """

    def __init__(self, **kwargs: typing.Any) -> None:
        super().__init__(**kwargs)
        self._robot_state = RobotState()
        self._robot_state.power_state.motor_power_state = PowerState.MotorPowerState.MOTOR_POWER_STATE_OFF

    @property
    def robot_state(self) -> RobotState:
        return self._robot_state

    def GetRobotState(self, request: RobotStateRequest, context: grpc.ServicerContext) -> RobotStateResponse:
        response = RobotStateResponse()
        response.robot_state.CopyFrom(self._robot_state)
        return response
