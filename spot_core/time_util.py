# Copyright (c) 2023 Boston Dynamics AI Institute LLC. See LICENSE file for more info.

"""
Time conversions among epoch nanoseconds, seconds and protobuf well-known types.

Anything here that reads the current time does so through a `Clock`, a callable
returning nanoseconds since the epoch. Objects that need the current time take
a clock on construction, defaulting to `now_nsec`.
"""

import time
import typing

from google.protobuf.duration_pb2 import Duration
from google.protobuf.timestamp_pb2 import Timestamp

Clock = typing.Callable[[], int]

NSEC_PER_SEC = 1_000_000_000


def now_nsec() -> int:
    """Returns local wall-clock time, in nanoseconds since the epoch."""
    return time.time_ns()


def sec_to_nsec(seconds: float) -> int:
    return int(round(seconds * NSEC_PER_SEC))


def nsec_to_sec(nsec: int) -> float:
    return nsec / NSEC_PER_SEC


def set_timestamp(nsec: int, timestamp: Timestamp) -> None:
    """Sets `timestamp` to `nsec` nanoseconds since the epoch."""
    timestamp.FromNanoseconds(nsec)


def nsec_to_timestamp(nsec: int) -> Timestamp:
    timestamp = Timestamp()
    set_timestamp(nsec, timestamp)
    return timestamp


def timestamp_to_nsec(timestamp: Timestamp) -> int:
    return timestamp.seconds * NSEC_PER_SEC + timestamp.nanos


def now_timestamp(clock: Clock = now_nsec) -> Timestamp:
    return nsec_to_timestamp(clock())


def set_duration(nsec: int, duration: Duration) -> None:
    """Sets `duration` to a signed span of `nsec` nanoseconds."""
    duration.FromNanoseconds(nsec)


def nsec_to_duration(nsec: int) -> Duration:
    duration = Duration()
    set_duration(nsec, duration)
    return duration


def sec_to_duration(seconds: float) -> Duration:
    return nsec_to_duration(sec_to_nsec(seconds))


def duration_to_nsec(duration: Duration) -> int:
    return duration.seconds * NSEC_PER_SEC + duration.nanos


def duration_to_sec(duration: Duration) -> float:
    return nsec_to_sec(duration_to_nsec(duration))


def duration_is_less_than(lhs: Duration, rhs: Duration) -> bool:
    return duration_to_nsec(lhs) < duration_to_nsec(rhs)


def duration_is_less_or_equal(lhs: Duration, rhs: Duration) -> bool:
    return duration_to_nsec(lhs) <= duration_to_nsec(rhs)


class RateLimiter:
    """
    Lets an action through at most once per period.

    The first check always passes.

    Args:
        period_nsec: minimum time between passing checks, in nanoseconds.
    """

    def __init__(self, period_nsec: int) -> None:
        self._period_nsec = period_nsec
        self._last_nsec: typing.Optional[int] = None

    def check(self, now: int) -> bool:
        """Checks whether an action at `now` nanoseconds should go through."""
        if self._last_nsec is not None and now - self._last_nsec < self._period_nsec:
            return False
        self._last_nsec = now
        return True


class RobotTimeConverter:
    """Maps local time to robot time, given the robot clock skew."""

    def __init__(self, clock_skew_nsec: int) -> None:
        self._clock_skew_nsec = clock_skew_nsec

    @classmethod
    def from_duration(cls, clock_skew: Duration) -> "RobotTimeConverter":
        return cls(duration_to_nsec(clock_skew))

    @property
    def clock_skew_nsec(self) -> int:
        return self._clock_skew_nsec

    def robot_nsec_from_local(self, local_nsec: int) -> int:
        return local_nsec + self._clock_skew_nsec

    def robot_timestamp_from_local(self, local_nsec: int) -> Timestamp:
        return nsec_to_timestamp(self.robot_nsec_from_local(local_nsec))

    def robot_timestamp_from_local_timestamp(self, local_timestamp: Timestamp) -> Timestamp:
        return self.robot_timestamp_from_local(timestamp_to_nsec(local_timestamp))
