# Copyright (c) 2023 Boston Dynamics AI Institute LLC. See LICENSE file for more info.

import logging
import threading
import typing

from bosdyn.api.lease_pb2 import Lease, LeaseUseResult
from google.protobuf.message import Message

from spot_core.config import DEFAULT_CLIENT_NAME
from spot_core.status import LeaseWalletErrorCode, Result, Status, ok


class LeaseWalletProtocol(typing.Protocol):
    """The lease wallet surface that service clients rely on."""

    def advance_lease(self, resource: str) -> Result[Lease]:
        """Returns a lease for `resource`, newer than any handed out before."""

    def on_lease_use_result(self, lease_use_result: LeaseUseResult) -> Status:
        """Absorbs the outcome of using a lease."""


class LeaseWallet:
    """
    An in-memory, thread-safe holder of leases, by resource.

    Args:
        client_name: name appended to the client names of advanced leases.
        logger: logger for lease bookkeeping.
    """

    def __init__(self, client_name: str = DEFAULT_CLIENT_NAME, logger: typing.Optional[logging.Logger] = None) -> None:
        self._client_name = client_name
        self._logger = logger or logging.getLogger(__name__)
        self._lock = threading.Lock()
        self._leases: typing.Dict[str, Lease] = {}
        self._lease_use_results: typing.Dict[str, LeaseUseResult] = {}

    @property
    def client_name(self) -> str:
        return self._client_name

    def add_lease(self, lease: Lease) -> None:
        """Adds `lease` to the wallet, replacing any lease for the same resource."""
        copy = Lease()
        copy.CopyFrom(lease)
        with self._lock:
            self._leases[lease.resource] = copy

    def remove_lease(self, resource: str) -> Status:
        with self._lock:
            if self._leases.pop(resource, None) is None:
                return Status(LeaseWalletErrorCode.RESOURCE_NOT_IN_WALLET, resource)
        return ok()

    def get_lease(self, resource: str) -> Result[Lease]:
        with self._lock:
            lease = self._leases.get(resource)
            if lease is None:
                return Result(Status(LeaseWalletErrorCode.RESOURCE_NOT_IN_WALLET, resource))
            copy = Lease()
            copy.CopyFrom(lease)
        return Result(Status(LeaseWalletErrorCode.SUCCESS), copy)

    def advance_lease(self, resource: str) -> Result[Lease]:
        """Increments the latest sequence number of the `resource` lease, and returns the new lease."""
        with self._lock:
            lease = self._leases.get(resource)
            if lease is None:
                return Result(Status(LeaseWalletErrorCode.RESOURCE_NOT_IN_WALLET, resource))
            newer = Lease()
            newer.CopyFrom(lease)
            if newer.sequence:
                newer.sequence[-1] += 1
            else:
                newer.sequence.append(1)
            if not newer.client_names or newer.client_names[-1] != self._client_name:
                newer.client_names.append(self._client_name)
            self._leases[resource] = newer
            copy = Lease()
            copy.CopyFrom(newer)
        return Result(Status(LeaseWalletErrorCode.SUCCESS), copy)

    def on_lease_use_result(self, lease_use_result: LeaseUseResult) -> Status:
        """
        Records the outcome of using a lease.

        A lease the robot no longer honors is dropped from the wallet.
        """
        resource = lease_use_result.attempted_lease.resource
        with self._lock:
            if resource not in self._leases:
                return Status(LeaseWalletErrorCode.RESOURCE_NOT_IN_WALLET, resource)
            recorded = LeaseUseResult()
            recorded.CopyFrom(lease_use_result)
            self._lease_use_results[resource] = recorded
            if lease_use_result.status in (
                LeaseUseResult.STATUS_OLDER,
                LeaseUseResult.STATUS_REVOKED,
                LeaseUseResult.STATUS_WRONG_EPOCH,
            ):
                del self._leases[resource]
                self._logger.warning(
                    "Lease for %s dropped: %s", resource, LeaseUseResult.Status.Name(lease_use_result.status)
                )
        return Status(LeaseWalletErrorCode.SUCCESS)

    def last_lease_use_result(self, resource: str) -> typing.Optional[LeaseUseResult]:
        with self._lock:
            return self._lease_use_results.get(resource)


def attach_lease(request: Message, wallet: LeaseWalletProtocol, resource: str) -> Status:
    """Attaches a fresh `resource` lease from `wallet` to `request`, unless it already carries one."""
    if request.HasField("lease"):
        return ok()
    result = wallet.advance_lease(resource)
    if not result:
        return result.status.chain(f"unable to attach {resource} lease")
    request.lease.CopyFrom(result.response)
    return ok()
