# Copyright (c) 2023 Boston Dynamics AI Institute LLC. See LICENSE file for more info.

"""
Removal of bulky binary payloads from messages.

Copies of requests are reflected in response headers and audit records,
where image, point cloud or blob bytes are of no use. Strippers are registered
per message type, by fully qualified protobuf name, and only ever clear fields.
"""

import typing

from google.protobuf.message import Message

Stripper = typing.Callable[[Message], None]

_STRIPPERS: typing.Dict[str, Stripper] = {}


def _clear_path(message: Message, path: typing.Sequence[str]) -> None:
    name, *rest = path
    if not rest:
        message.ClearField(name)
        return
    value = getattr(message, name)
    if isinstance(value, Message):
        if message.HasField(name):
            _clear_path(value, rest)
        return
    for item in value:
        _clear_path(item, rest)


def field_stripper(*paths: str) -> Stripper:
    """
    Builds a stripper that clears fields by dotted path.

    Repeated fields along a path are traversed item by item, and
    unset message fields are never populated.
    """
    split_paths = [path.split(".") for path in paths]

    def stripper(message: Message) -> None:
        for path in split_paths:
            _clear_path(message, path)

    return stripper


def register_stripper(type_name: str, stripper: Stripper) -> None:
    """Registers `stripper` for messages of the fully qualified `type_name`."""
    _STRIPPERS[type_name] = stripper


def registered_types() -> typing.FrozenSet[str]:
    """Returns the names of all message types with a registered stripper."""
    return frozenset(_STRIPPERS)


def strip_large_byte_fields(message: Message) -> bool:
    """
    Clears large byte fields of `message` in place.

    Returns:
        true if `message` type has a registered stripper, false otherwise.
    """
    stripper = _STRIPPERS.get(message.DESCRIPTOR.full_name)
    if stripper is None:
        return False
    stripper(message)
    return True


M = typing.TypeVar("M", bound=Message)


def stripped_copy(message: M) -> M:
    """Returns a copy of `message` with large byte fields cleared. The original is left untouched."""
    copy = type(message)()
    copy.CopyFrom(message)
    strip_large_byte_fields(copy)
    return copy


for _type_name, _paths in {
    "bosdyn.api.GetImageResponse": ["image_responses.shot.image.data"],
    "bosdyn.api.GetLocalGridsResponse": ["local_grid_responses.local_grid.data"],
    "bosdyn.api.GetPointCloudResponse": ["point_cloud_responses.point_cloud.data"],
    "bosdyn.api.graph_nav.UploadWaypointSnapshotRequest": ["chunk.data"],
    "bosdyn.api.graph_nav.UploadEdgeSnapshotRequest": ["chunk.data"],
    "bosdyn.api.graph_nav.DownloadWaypointSnapshotResponse": ["chunk.data"],
    "bosdyn.api.graph_nav.DownloadEdgeSnapshotResponse": ["chunk.data"],
    "bosdyn.api.RecordDataBlobsRequest": ["blob_data.data"],
    "bosdyn.api.RecordSignalTicksRequest": ["tick_data.data"],
    "bosdyn.api.StoreImageRequest": ["image.image.data"],
    "bosdyn.api.StoreDataRequest": ["data"],
    "bosdyn.api.AddLogAnnotationRequest": ["annotations.blob_data.data"],
}.items():
    register_stripper(_type_name, field_stripper(*_paths))
