# Copyright (c) 2023 Boston Dynamics AI Institute LLC. See LICENSE file for more info.

from spot_core.testing.grpc import AutoServicer
from spot_core.testing.mocks.directory import MockDirectoryService
from spot_core.testing.mocks.power import MockPowerService
from spot_core.testing.mocks.robot_command import MockRobotCommandService
from spot_core.testing.mocks.robot_state import MockRobotStateService
from spot_core.testing.mocks.time_sync import MockTimeSyncService
from spot_core.testing.services import BaseSpotServicer


class BaseMockSpot(AutoServicer, BaseSpotServicer):
    """Base robot mock."""

    name = "mockie"
    autocomplete = True


class MockSpot(
    BaseMockSpot,
    MockDirectoryService,
    MockPowerService,
    MockRobotCommandService,
    MockRobotStateService,
    MockTimeSyncService,
):
    """
    Nominal robot mock.

    It implements directory listing, time sync, and nominal power management.
    For the rest, it relies on automatic specification.
    """

    autospec = True
