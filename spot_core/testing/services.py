# Copyright (c) 2023 Boston Dynamics AI Institute LLC. See LICENSE file for more info.

from bosdyn.api.directory_service_pb2_grpc import DirectoryServiceServicer
from bosdyn.api.docking.docking_service_pb2_grpc import DockingServiceServicer
from bosdyn.api.power_service_pb2_grpc import PowerServiceServicer
from bosdyn.api.robot_command_service_pb2_grpc import RobotCommandServiceServicer
from bosdyn.api.robot_state_service_pb2_grpc import RobotStateServiceServicer
from bosdyn.api.time_sync_service_pb2_grpc import TimeSyncServiceServicer


class BaseSpotServicer(
    DirectoryServiceServicer,
    DockingServiceServicer,
    PowerServiceServicer,
    RobotCommandServiceServicer,
    RobotStateServiceServicer,
    TimeSyncServiceServicer,
):
    """
    Base robot services servicer.

    It implements nothing.
    """

    name: str
