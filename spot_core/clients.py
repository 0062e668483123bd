# Copyright (c) 2023 Boston Dynamics AI Institute LLC. See LICENSE file for more info.

"""Clients for the robot services the core relies upon."""

import concurrent.futures
import typing

from bosdyn.api import (
    directory_pb2,
    power_pb2,
    robot_command_pb2,
    robot_state_pb2,
    time_sync_pb2,
)
from bosdyn.api.directory_service_pb2_grpc import DirectoryServiceStub
from bosdyn.api.docking import docking_pb2
from bosdyn.api.docking.docking_service_pb2_grpc import DockingServiceStub
from bosdyn.api.power_service_pb2_grpc import PowerServiceStub
from bosdyn.api.robot_command_service_pb2_grpc import RobotCommandServiceStub
from bosdyn.api.robot_state_service_pb2_grpc import RobotStateServiceStub
from bosdyn.api.time_sync_service_pb2_grpc import TimeSyncServiceStub

from spot_core.config import BODY_RESOURCE, FAN_RESOURCE
from spot_core.response_status import (
    DOCKING_COMMAND_STATUS,
    FAN_POWER_COMMAND_STATUS,
    POWER_COMMAND_STATUS,
    ROBOT_COMMAND_STATUS,
)
from spot_core.service_client import RPCParameters, ServiceClient
from spot_core.status import Result, Status
from spot_core.time_util import sec_to_duration

if typing.TYPE_CHECKING:
    from spot_core.time_sync import TimeSyncEndpoint

FutureResult = concurrent.futures.Future


class TimeSyncClient(ServiceClient):
    """A client for the robot time sync service."""

    default_service_name = "time-sync"
    service_type = "bosdyn.api.TimeSyncService"
    stub_class = TimeSyncServiceStub

    def time_sync_update_async(
        self,
        previous_round_trip: typing.Optional[time_sync_pb2.TimeSyncRoundTrip] = None,
        clock_identifier: str = "",
        rpc_parameters: typing.Optional[RPCParameters] = None,
    ) -> FutureResult:
        """
        Requests a time sync update.

        The previous round trip is only sent along a known clock identifier.
        """
        request = time_sync_pb2.TimeSyncUpdateRequest()
        if clock_identifier:
            request.clock_identifier = clock_identifier
            if previous_round_trip is not None:
                request.previous_round_trip.CopyFrom(previous_round_trip)
        return self.call_async("TimeSyncUpdate", request, rpc_parameters=rpc_parameters)

    def time_sync_update(self, *args: typing.Any, **kwargs: typing.Any) -> Result[time_sync_pb2.TimeSyncUpdateResponse]:
        return self.time_sync_update_async(*args, **kwargs).result()


class DirectoryClient(ServiceClient):
    """A client for the robot directory service."""

    default_service_name = "directory"
    service_type = "bosdyn.api.DirectoryService"
    stub_class = DirectoryServiceStub

    def list_services_async(self, rpc_parameters: typing.Optional[RPCParameters] = None) -> FutureResult:
        """Lists all services registered with the robot."""
        return self.call_async(
            "ListServiceEntries",
            directory_pb2.ListServiceEntriesRequest(),
            extract=lambda response: list(response.service_entries),
            rpc_parameters=rpc_parameters,
        )

    def list_services(
        self, rpc_parameters: typing.Optional[RPCParameters] = None
    ) -> Result[typing.List[directory_pb2.ServiceEntry]]:
        return self.list_services_async(rpc_parameters).result()


class PowerClient(ServiceClient):
    """A client for the robot power service."""

    default_service_name = "power"
    service_type = "bosdyn.api.PowerService"
    stub_class = PowerServiceStub

    def power_command_async(
        self, request_kind: int, rpc_parameters: typing.Optional[RPCParameters] = None
    ) -> FutureResult:
        """Issues a power command, e.g. ``PowerCommandRequest.Request.REQUEST_ON_MOTORS``."""
        request = power_pb2.PowerCommandRequest(request=request_kind)
        return self.call_async(
            "PowerCommand",
            request,
            status_of=lambda response: Status(response.status, category=POWER_COMMAND_STATUS),
            rpc_parameters=rpc_parameters,
            lease_resource=BODY_RESOURCE,
        )

    def power_command(self, request_kind: int, **kwargs: typing.Any) -> Result[power_pb2.PowerCommandResponse]:
        return self.power_command_async(request_kind, **kwargs).result()

    def power_command_feedback_async(
        self, power_command_id: int, rpc_parameters: typing.Optional[RPCParameters] = None
    ) -> FutureResult:
        request = power_pb2.PowerCommandFeedbackRequest(power_command_id=power_command_id)
        return self.call_async("PowerCommandFeedback", request, rpc_parameters=rpc_parameters)

    def power_command_feedback(
        self, power_command_id: int, **kwargs: typing.Any
    ) -> Result[power_pb2.PowerCommandFeedbackResponse]:
        return self.power_command_feedback_async(power_command_id, **kwargs).result()

    def fan_power_command_async(
        self, percent_power: int, duration: float, rpc_parameters: typing.Optional[RPCParameters] = None
    ) -> FutureResult:
        """Commands fans at `percent_power` for `duration` seconds."""
        request = power_pb2.FanPowerCommandRequest(percent_power=percent_power)
        request.duration.CopyFrom(sec_to_duration(duration))
        return self.call_async(
            "FanPowerCommand",
            request,
            status_of=lambda response: Status(response.status, category=FAN_POWER_COMMAND_STATUS),
            rpc_parameters=rpc_parameters,
            lease_resource=FAN_RESOURCE,
        )

    def fan_power_command(
        self, percent_power: int, duration: float, **kwargs: typing.Any
    ) -> Result[power_pb2.FanPowerCommandResponse]:
        return self.fan_power_command_async(percent_power, duration, **kwargs).result()

    def fan_power_command_feedback_async(
        self, command_id: int, rpc_parameters: typing.Optional[RPCParameters] = None
    ) -> FutureResult:
        request = power_pb2.FanPowerCommandFeedbackRequest(command_id=command_id)
        return self.call_async("FanPowerCommandFeedback", request, rpc_parameters=rpc_parameters)

    def fan_power_command_feedback(
        self, command_id: int, **kwargs: typing.Any
    ) -> Result[power_pb2.FanPowerCommandFeedbackResponse]:
        return self.fan_power_command_feedback_async(command_id, **kwargs).result()


class RobotStateClient(ServiceClient):
    """A client for the robot state service."""

    default_service_name = "robot-state"
    service_type = "bosdyn.api.RobotStateService"
    stub_class = RobotStateServiceStub

    def get_robot_state_async(self, rpc_parameters: typing.Optional[RPCParameters] = None) -> FutureResult:
        return self.call_async(
            "GetRobotState",
            robot_state_pb2.RobotStateRequest(),
            extract=lambda response: response.robot_state,
            rpc_parameters=rpc_parameters,
        )

    def get_robot_state(
        self, rpc_parameters: typing.Optional[RPCParameters] = None
    ) -> Result[robot_state_pb2.RobotState]:
        return self.get_robot_state_async(rpc_parameters).result()


class RobotCommandClient(ServiceClient):
    """A client for the robot command service."""

    default_service_name = "robot-command"
    service_type = "bosdyn.api.RobotCommandService"
    stub_class = RobotCommandServiceStub

    def robot_command_async(
        self,
        command: robot_command_pb2.RobotCommand,
        clock_identifier: str = "",
        rpc_parameters: typing.Optional[RPCParameters] = None,
    ) -> FutureResult:
        request = robot_command_pb2.RobotCommandRequest(clock_identifier=clock_identifier)
        request.command.CopyFrom(command)
        return self.call_async(
            "RobotCommand",
            request,
            status_of=lambda response: Status(response.status, category=ROBOT_COMMAND_STATUS),
            rpc_parameters=rpc_parameters,
            lease_resource=BODY_RESOURCE,
        )

    def robot_command(
        self, command: robot_command_pb2.RobotCommand, **kwargs: typing.Any
    ) -> Result[robot_command_pb2.RobotCommandResponse]:
        return self.robot_command_async(command, **kwargs).result()

    def robot_command_feedback_async(
        self, robot_command_id: int, rpc_parameters: typing.Optional[RPCParameters] = None
    ) -> FutureResult:
        request = robot_command_pb2.RobotCommandFeedbackRequest(robot_command_id=robot_command_id)
        return self.call_async("RobotCommandFeedback", request, rpc_parameters=rpc_parameters)

    def robot_command_feedback(
        self, robot_command_id: int, **kwargs: typing.Any
    ) -> Result[robot_command_pb2.RobotCommandFeedbackResponse]:
        return self.robot_command_feedback_async(robot_command_id, **kwargs).result()


class DockingClient(ServiceClient):
    """A client for the robot docking service."""

    default_service_name = "docking"
    service_type = "bosdyn.api.docking.DockingService"
    stub_class = DockingServiceStub

    def docking_command_builder(
        self,
        docking_station_id: int,
        end_time_nsec: int,
        time_sync_endpoint: "TimeSyncEndpoint",
        prep_pose_behavior: int = docking_pb2.PREP_POSE_UNKNOWN,
    ) -> Result[docking_pb2.DockingCommandRequest]:
        """
        Builds a docking command request.

        Args:
            docking_station_id: fiducial ID of the dock.
            end_time_nsec: local time, in nanoseconds since the epoch, at which the command expires.
            time_sync_endpoint: source of the robot clock identifier and skew.
            prep_pose_behavior: how to make use of the dock prep pose.
        """
        clock_identifier = time_sync_endpoint.get_clock_identifier()
        if not clock_identifier:
            return Result(clock_identifier.status.chain("cannot build docking command"))
        end_time = time_sync_endpoint.robot_timestamp_from_local(end_time_nsec)
        if not end_time:
            return Result(end_time.status.chain("cannot build docking command"))
        request = docking_pb2.DockingCommandRequest(
            docking_station_id=docking_station_id,
            clock_identifier=clock_identifier.response,
            prep_pose_behavior=prep_pose_behavior,
        )
        request.end_time.CopyFrom(end_time.response)
        return Result(clock_identifier.status, request)

    def docking_command_async(
        self, request: docking_pb2.DockingCommandRequest, rpc_parameters: typing.Optional[RPCParameters] = None
    ) -> FutureResult:
        return self.call_async(
            "DockingCommand",
            request,
            status_of=lambda response: Status(response.status, category=DOCKING_COMMAND_STATUS),
            rpc_parameters=rpc_parameters,
            lease_resource=BODY_RESOURCE,
        )

    def docking_command(
        self, request: docking_pb2.DockingCommandRequest, **kwargs: typing.Any
    ) -> Result[docking_pb2.DockingCommandResponse]:
        return self.docking_command_async(request, **kwargs).result()

    def docking_command_feedback_async(
        self, docking_command_id: int, rpc_parameters: typing.Optional[RPCParameters] = None
    ) -> FutureResult:
        request = docking_pb2.DockingCommandFeedbackRequest(docking_command_id=docking_command_id)
        return self.call_async("DockingCommandFeedback", request, rpc_parameters=rpc_parameters)

    def docking_command_feedback(
        self, docking_command_id: int, **kwargs: typing.Any
    ) -> Result[docking_pb2.DockingCommandFeedbackResponse]:
        return self.docking_command_feedback_async(docking_command_id, **kwargs).result()
