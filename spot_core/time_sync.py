# Copyright (c) 2023 Boston Dynamics AI Institute LLC. See LICENSE file for more info.

"""
Estimation of the skew between local and robot clocks.

Every exchange with the robot time sync service records four timestamps:
request transmission and response reception in local time, request reception and
response transmission in robot time. The next exchange reports these back, under
the clock identifier the robot assigned on the first exchange, for the robot to
refine its skew estimate.

.. code-block:: python

   endpoint = TimeSyncEndpoint(time_sync_client)
   with TimeSyncThread(endpoint) as thread:
       if thread.wait_for_sync():
           converter = thread.get_robot_time_converter().unwrap()
"""

import logging
import threading
import time
import typing

from bosdyn.api.time_sync_pb2 import TimeSyncRoundTrip, TimeSyncState, TimeSyncUpdateResponse
from google.protobuf.duration_pb2 import Duration
from google.protobuf.timestamp_pb2 import Timestamp

from spot_core.clients import TimeSyncClient
from spot_core.config import (
    DEFAULT_ESTABLISH_SAMPLES,
    TIME_SYNC_DEFAULT_INTERVAL,
    TIME_SYNC_NOT_READY_INTERVAL,
    TIME_SYNC_SLEEP_SLICE,
    TIME_SYNC_WAIT_DEFAULT_TIMEOUT,
)
from spot_core.response_status import TIME_SYNC_STATE_STATUS
from spot_core.status import Result, Status, TimeSyncErrorCode
from spot_core.time_util import (
    Clock,
    RobotTimeConverter,
    duration_to_nsec,
    nsec_to_timestamp,
    timestamp_to_nsec,
)


class TimeSyncEndpoint:
    """
    Client-side state of the time sync protocol.

    All accessors are thread-safe.

    Args:
        time_sync_client: client to exchange updates through.
        clock: source of local time, the client clock by default.
        logger: logger for failed exchanges.
    """

    def __init__(
        self,
        time_sync_client: TimeSyncClient,
        clock: typing.Optional[Clock] = None,
        logger: typing.Optional[logging.Logger] = None,
    ) -> None:
        self._client = time_sync_client
        self._clock = clock or time_sync_client.clock
        self._logger = logger or logging.getLogger(__name__)
        self._lock = threading.Lock()
        self._previous_round_trip: typing.Optional[TimeSyncRoundTrip] = None
        self._latest_update_result: Result[TimeSyncUpdateResponse] = Result(
            Status(TimeSyncErrorCode.PREVIOUS_TIME_SYNC_UNAVAILABLE_YET)
        )
        self._clock_identifier = ""

    @property
    def client(self) -> TimeSyncClient:
        return self._client

    @property
    def clock(self) -> Clock:
        return self._clock

    @property
    def previous_round_trip(self) -> typing.Optional[TimeSyncRoundTrip]:
        """Timestamps of the last completed exchange, if any."""
        with self._lock:
            if self._previous_round_trip is None:
                return None
            round_trip = TimeSyncRoundTrip()
            round_trip.CopyFrom(self._previous_round_trip)
            return round_trip

    @property
    def latest_update_result(self) -> Result[TimeSyncUpdateResponse]:
        with self._lock:
            return self._latest_update_result

    def get_new_estimate(self) -> bool:
        """
        Performs one time sync exchange.

        Returns:
            true if the exchange succeeded, false otherwise. Failed exchanges leave state untouched.
        """
        with self._lock:
            previous_round_trip = self._previous_round_trip
            clock_identifier = self._clock_identifier
        result = self._client.time_sync_update(previous_round_trip, clock_identifier)
        client_rx = self._clock()
        if not result:
            self._logger.warning("Failed to get a new time sync estimate: %s", result.status)
            return False
        response = result.response
        round_trip = TimeSyncRoundTrip()
        round_trip.client_tx.CopyFrom(response.header.request_header.request_timestamp)
        round_trip.server_rx.CopyFrom(response.header.request_received_timestamp)
        round_trip.server_tx.CopyFrom(response.header.response_timestamp)
        round_trip.client_rx.CopyFrom(nsec_to_timestamp(client_rx))
        with self._lock:
            self._previous_round_trip = round_trip
            self._latest_update_result = result
            if not self._clock_identifier:
                self._clock_identifier = response.clock_identifier
            elif response.clock_identifier and response.clock_identifier != self._clock_identifier:
                self._logger.warning(
                    "Ignoring clock identifier change from %s to %s",
                    self._clock_identifier,
                    response.clock_identifier,
                )
        return True

    def establish_time_sync(
        self, max_samples: int = DEFAULT_ESTABLISH_SAMPLES, break_on_success: bool = True
    ) -> bool:
        """
        Performs up to `max_samples` time sync exchanges.

        Args:
            max_samples: maximum number of exchanges.
            break_on_success: whether to stop as soon as time sync is established.

        Returns:
            true if time sync is established in the end, false otherwise.
        """
        for _ in range(max_samples):
            if break_on_success and self.has_established_time_sync():
                break
            self.get_new_estimate()
        return self.has_established_time_sync()

    def has_established_time_sync(self) -> bool:
        with self._lock:
            result = self._latest_update_result
        return bool(result) and result.response.state.status == TimeSyncState.STATUS_OK

    def get_clock_skew(self) -> Result[Duration]:
        """Returns the best estimate of the robot clock skew, to be added to local time."""
        with self._lock:
            result = self._latest_update_result
        if not result:
            return Result(result.status.chain("clock synchronization not yet achieved"))
        state = result.response.state
        if state.status != TimeSyncState.STATUS_OK:
            status = Status(state.status, category=TIME_SYNC_STATE_STATUS)
            return Result(status.chain("clock synchronization not yet achieved"))
        clock_skew = Duration()
        clock_skew.CopyFrom(state.best_estimate.clock_skew)
        return Result(result.status, clock_skew)

    def get_clock_identifier(self) -> Result[str]:
        with self._lock:
            clock_identifier = self._clock_identifier
        if not clock_identifier:
            return Result(Status(TimeSyncErrorCode.CLOCK_IDENTIFIER_UNSET))
        return Result(Status(TimeSyncErrorCode.SUCCESS), clock_identifier)

    def get_robot_time_converter(self) -> Result[RobotTimeConverter]:
        clock_skew = self.get_clock_skew()
        if not clock_skew:
            return Result(clock_skew.status)
        return Result(clock_skew.status, RobotTimeConverter(duration_to_nsec(clock_skew.response)))

    def robot_timestamp_from_local(self, local_nsec: int) -> Result[Timestamp]:
        """Converts local time, in nanoseconds since the epoch, to robot time."""
        converter = self.get_robot_time_converter()
        if not converter:
            return Result(converter.status)
        return Result(converter.status, converter.response.robot_timestamp_from_local(local_nsec))

    def robot_timestamp_from_local_timestamp(self, local_timestamp: Timestamp) -> Result[Timestamp]:
        return self.robot_timestamp_from_local(timestamp_to_nsec(local_timestamp))


class TimeSyncThread:
    """
    Background time sync estimation.

    The worker thread exchanges updates back to back until time sync is established,
    then once every `interval`. It backs off while the robot service is not ready.

    Args:
        endpoint: time sync endpoint to drive.
        interval: time between exchanges, in seconds, once time sync is established.
        logger: logger for the worker lifecycle.
    """

    def __init__(
        self,
        endpoint: TimeSyncEndpoint,
        interval: float = TIME_SYNC_DEFAULT_INTERVAL,
        logger: typing.Optional[logging.Logger] = None,
    ) -> None:
        self._endpoint = endpoint
        self._interval = interval
        self._logger = logger or logging.getLogger(__name__)
        self._lock = threading.Lock()
        self._should_exit = False
        self._stopped = True
        self._wakeup = threading.Event()
        self._thread: typing.Optional[threading.Thread] = None

    @property
    def endpoint(self) -> TimeSyncEndpoint:
        return self._endpoint

    @property
    def interval(self) -> float:
        with self._lock:
            return self._interval

    @interval.setter
    def interval(self, interval: float) -> None:
        with self._lock:
            self._interval = interval

    @property
    def stopped(self) -> bool:
        with self._lock:
            return self._stopped

    @property
    def should_exit(self) -> bool:
        with self._lock:
            return self._should_exit

    def start(self) -> None:
        """Starts the worker thread. Does nothing if already running."""
        with self._lock:
            if not self._stopped:
                return
            self._stopped = False
            self._should_exit = False
            self._wakeup.clear()
            self._thread = threading.Thread(target=self._run, name="time-sync", daemon=True)
            self._thread.start()
        self._logger.debug("Time sync thread started")

    def stop(self) -> None:
        """Requests the worker thread to stop and waits for it to do so."""
        with self._lock:
            self._should_exit = True
            self._wakeup.set()
            thread = self._thread
            self._thread = None
        if thread is not None:
            thread.join()
            self._logger.debug("Time sync thread stopped")

    def __enter__(self) -> "TimeSyncThread":
        self.start()
        return self

    def __exit__(self, *exc: typing.Any) -> None:
        self.stop()

    def _next_delay(self) -> float:
        result = self._endpoint.latest_update_result
        if result:
            status = result.response.state.status
            if status == TimeSyncState.STATUS_SERVICE_NOT_READY:
                return TIME_SYNC_NOT_READY_INTERVAL
            if status == TimeSyncState.STATUS_OK:
                return self.interval
        return 0.0

    def _run(self) -> None:
        try:
            while not self.should_exit:
                delay = self._next_delay()
                if delay > 0.0 and self._wakeup.wait(delay):
                    continue
                # Failed exchanges are logged by the endpoint and retried.
                self._endpoint.get_new_estimate()
        finally:
            with self._lock:
                self._stopped = True

    def has_established_time_sync(self) -> bool:
        return self._endpoint.has_established_time_sync()

    def wait_for_sync(self, timeout: float = TIME_SYNC_WAIT_DEFAULT_TIMEOUT) -> bool:
        """
        Waits for time sync to be established.

        Returns:
            true as soon as time sync is established, false on timeout
            or if the worker thread stops before that.
        """
        deadline = time.monotonic() + timeout
        while True:
            if self._endpoint.has_established_time_sync():
                return True
            if self.stopped or time.monotonic() >= deadline:
                return False
            time.sleep(TIME_SYNC_SLEEP_SLICE)

    def get_robot_clock_skew(self, timeout: float = TIME_SYNC_WAIT_DEFAULT_TIMEOUT) -> Result[Duration]:
        if not self.wait_for_sync(timeout):
            return Result(Status(TimeSyncErrorCode.UNABLE_TO_ESTABLISH_TIME_SYNC))
        return self._endpoint.get_clock_skew()

    def get_robot_time_converter(
        self, timeout: float = TIME_SYNC_WAIT_DEFAULT_TIMEOUT
    ) -> Result[RobotTimeConverter]:
        if not self.wait_for_sync(timeout):
            return Result(Status(TimeSyncErrorCode.UNABLE_TO_ESTABLISH_TIME_SYNC))
        return self._endpoint.get_robot_time_converter()

    def robot_timestamp_from_local(
        self, local_nsec: int, timeout: float = TIME_SYNC_WAIT_DEFAULT_TIMEOUT
    ) -> Result[Timestamp]:
        if not self.wait_for_sync(timeout):
            return Result(Status(TimeSyncErrorCode.UNABLE_TO_ESTABLISH_TIME_SYNC))
        return self._endpoint.robot_timestamp_from_local(local_nsec)
