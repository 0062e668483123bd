# Copyright (c) 2023 Boston Dynamics AI Institute LLC. See LICENSE file for more info.

import dataclasses
import logging
import time
import typing

from spot_core.clients import DirectoryClient
from spot_core.config import SERVICE_WAIT_DEFAULT_INTERVAL, SERVICE_WAIT_DEFAULT_TIMEOUT
from spot_core.status import Condition, Status, WaitErrorCode
from spot_core.time_util import Clock, now_nsec, nsec_to_sec, sec_to_nsec

logger = logging.getLogger(__name__)


@dataclasses.dataclass
class WaitResult:
    """
    Outcome of waiting for services.

    Attributes:
        status: wait status.
        missing_services: services not yet registered, only meaningful on timeout.
    """

    status: Status
    missing_services: typing.Set[str] = dataclasses.field(default_factory=set)

    def __bool__(self) -> bool:
        return bool(self.status)


def wait_for_all_services(
    service_names: typing.Iterable[str],
    directory_client: DirectoryClient,
    timeout: float = SERVICE_WAIT_DEFAULT_TIMEOUT,
    interval: float = SERVICE_WAIT_DEFAULT_INTERVAL,
    clock: Clock = now_nsec,
) -> WaitResult:
    """
    Waits for services to be registered in the robot directory.

    The directory is listed at least once. Listing failures that are not
    retryable end the wait right away.

    Args:
        service_names: names of the services to wait for.
        directory_client: client to list services with.
        timeout: time to wait, in seconds.
        interval: time between directory listings, in seconds.
        clock: source of time for the wait deadline.

    Returns:
        a successful result once all services are registered, a result equivalent to
        `Condition.TIMEOUT` listing missing services if time runs out, and
        the listing failure otherwise.
    """
    names = set(service_names)
    missing = set(names)
    deadline = clock() + sec_to_nsec(timeout)
    while True:
        result = directory_client.list_services()
        if result:
            missing = names - {entry.name for entry in result.response}
            if not missing:
                return WaitResult(Status(WaitErrorCode.SUCCESS))
            logger.debug("Waiting for services: %s", ", ".join(sorted(missing)))
        elif result.status != Condition.RETRYABLE:
            return WaitResult(result.status)
        else:
            logger.debug("Failed to list services, retrying: %s", result.status)
        remaining = nsec_to_sec(deadline - clock())
        if remaining <= 0.0:
            break
        time.sleep(min(interval, remaining))
        if clock() >= deadline:
            break
    return WaitResult(Status(WaitErrorCode.TIMEOUT), missing)
