# Copyright (c) 2023 Boston Dynamics AI Institute LLC. See LICENSE file for more info.

"""Error categories for service-defined response status enumerations."""

from bosdyn.api import (
    data_buffer_pb2,
    header_pb2,
    lease_pb2,
    local_grid_pb2,
    network_compute_bridge_pb2,
    power_pb2,
    robot_command_pb2,
    time_sync_pb2,
)
from bosdyn.api.docking import docking_pb2
from bosdyn.api.graph_nav import graph_nav_pb2
from bosdyn.api.mission import mission_pb2

from spot_core.status import ProtoEnumCategory

COMMON_ERROR_CODE = ProtoEnumCategory(header_pb2.CommonError.Code, success=[header_pb2.CommonError.CODE_OK])

LEASE_USE_RESULT_STATUS = ProtoEnumCategory(
    lease_pb2.LeaseUseResult.Status, success=[lease_pb2.LeaseUseResult.STATUS_OK]
)

TIME_SYNC_STATE_STATUS = ProtoEnumCategory(
    time_sync_pb2.TimeSyncState.Status, success=[time_sync_pb2.TimeSyncState.STATUS_OK]
)

# Commands still in progress are accepted commands.
POWER_COMMAND_STATUS = ProtoEnumCategory(
    power_pb2.PowerCommandStatus,
    success=[power_pb2.PowerCommandStatus.STATUS_IN_PROGRESS, power_pb2.PowerCommandStatus.STATUS_SUCCESS],
)

FAN_POWER_COMMAND_STATUS = ProtoEnumCategory(
    power_pb2.FanPowerCommandResponse.Status, success=[power_pb2.FanPowerCommandResponse.STATUS_OK]
)

ROBOT_COMMAND_STATUS = ProtoEnumCategory(
    robot_command_pb2.RobotCommandResponse.Status, success=[robot_command_pb2.RobotCommandResponse.STATUS_OK]
)

DOCKING_COMMAND_STATUS = ProtoEnumCategory(
    docking_pb2.DockingCommandResponse.Status, success=[docking_pb2.DockingCommandResponse.STATUS_OK]
)

# Older robots leave clear graph status unset on success.
CLEAR_GRAPH_STATUS = ProtoEnumCategory(graph_nav_pb2.ClearGraphResponse.Status, success=[0, 1])

SET_LOCALIZATION_STATUS = ProtoEnumCategory(graph_nav_pb2.SetLocalizationResponse.Status, success=[1])
NAVIGATE_ROUTE_STATUS = ProtoEnumCategory(graph_nav_pb2.NavigateRouteResponse.Status, success=[1])
NAVIGATE_TO_STATUS = ProtoEnumCategory(graph_nav_pb2.NavigateToResponse.Status, success=[1])
DOWNLOAD_WAYPOINT_SNAPSHOT_STATUS = ProtoEnumCategory(
    graph_nav_pb2.DownloadWaypointSnapshotResponse.Status, success=[1]
)
DOWNLOAD_EDGE_SNAPSHOT_STATUS = ProtoEnumCategory(graph_nav_pb2.DownloadEdgeSnapshotResponse.Status, success=[1])

LOCAL_GRID_STATUS = ProtoEnumCategory(local_grid_pb2.LocalGridResponse.Status, success=[1])

NETWORK_COMPUTE_STATUS = ProtoEnumCategory(network_compute_bridge_pb2.NetworkComputeStatus, success=[1])
LIST_AVAILABLE_MODELS_STATUS = ProtoEnumCategory(network_compute_bridge_pb2.ListAvailableModelsStatus, success=[1])

LOAD_MISSION_STATUS = ProtoEnumCategory(mission_pb2.LoadMissionResponse.Status, success=[1])
PLAY_MISSION_STATUS = ProtoEnumCategory(mission_pb2.PlayMissionResponse.Status, success=[1])
PAUSE_MISSION_STATUS = ProtoEnumCategory(mission_pb2.PauseMissionResponse.Status, success=[1])
RESTART_MISSION_STATUS = ProtoEnumCategory(mission_pb2.RestartMissionResponse.Status, success=[1])

RECORD_TEXT_MESSAGES_ERROR = ProtoEnumCategory(data_buffer_pb2.RecordTextMessagesResponse.Error.Type, success=[0])
RECORD_OPERATOR_COMMENTS_ERROR = ProtoEnumCategory(
    data_buffer_pb2.RecordOperatorCommentsResponse.Error.Type, success=[0]
)
RECORD_DATA_BLOBS_ERROR = ProtoEnumCategory(data_buffer_pb2.RecordDataBlobsResponse.Error.Type, success=[0])
RECORD_SIGNAL_TICKS_ERROR = ProtoEnumCategory(data_buffer_pb2.RecordSignalTicksResponse.Error.Type, success=[0])
RECORD_EVENTS_ERROR = ProtoEnumCategory(data_buffer_pb2.RecordEventsResponse.Error.Type, success=[0])
