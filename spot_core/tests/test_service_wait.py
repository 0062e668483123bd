# Copyright (c) 2023 Boston Dynamics AI Institute LLC. See LICENSE file for more info.

import threading
import time
from typing import Iterator

import grpc
import pytest
from bosdyn.api.directory_pb2 import ListServiceEntriesResponse, ServiceEntry

import spot_core.testing
from spot_core.clients import DirectoryClient
from spot_core.service_wait import wait_for_all_services
from spot_core.status import Condition, RPCErrorCode, Status
from spot_core.testing.fixtures import SpotFixture
from spot_core.testing.mocks import BaseMockSpot, MockDirectoryService


@spot_core.testing.fixture
class directory_spot(BaseMockSpot, MockDirectoryService):
    autotrack = True

    def __init__(self) -> None:
        super().__init__(services=[ServiceEntry(name="A", type="test.AService")])


@spot_core.testing.fixture
class flaky_directory_spot(BaseMockSpot):
    autospec = True
    autotrack = True


@pytest.fixture
def directory_client(directory_spot: SpotFixture) -> Iterator[DirectoryClient]:
    with directory_spot.channel() as channel:
        client = DirectoryClient()
        client.set_comms(channel)
        yield client


@pytest.fixture
def flaky_directory_client(flaky_directory_spot: SpotFixture) -> Iterator[DirectoryClient]:
    with flaky_directory_spot.channel() as channel:
        client = DirectoryClient()
        client.set_comms(channel)
        yield client


def test_wait_for_services(directory_spot: SpotFixture, directory_client: DirectoryClient) -> None:
    def register_b() -> None:
        while directory_spot.api.ListServiceEntries.num_calls < 1:
            time.sleep(0.01)
        directory_spot.api.register_service(ServiceEntry(name="B", type="test.BService"))

    registrar = threading.Thread(target=register_b)
    registrar.start()
    start = time.monotonic()
    result = wait_for_all_services(["A", "B"], directory_client, timeout=5.0, interval=0.1)
    elapsed = time.monotonic() - start
    registrar.join()
    assert result, result.status
    assert result.status == Condition.SUCCESS
    assert result.missing_services == set()
    assert 0.1 <= elapsed < 0.3


def test_wait_for_registered_services(directory_spot: SpotFixture, directory_client: DirectoryClient) -> None:
    result = wait_for_all_services(["A"], directory_client, timeout=0.0)
    assert result
    assert directory_spot.api.ListServiceEntries.num_calls == 1


def test_wait_for_services_timeout(directory_spot: SpotFixture, directory_client: DirectoryClient) -> None:
    directory_spot.api.unregister_service("A")
    result = wait_for_all_services(["A"], directory_client, timeout=0.3, interval=0.1)
    assert not result
    assert result.status == Condition.TIMEOUT
    assert result.missing_services == {"A"}
    assert directory_spot.api.ListServiceEntries.num_calls >= 3


def test_wait_for_services_timeout_shorter_than_interval(
    directory_spot: SpotFixture, directory_client: DirectoryClient
) -> None:
    start = time.monotonic()
    result = wait_for_all_services(["A", "C"], directory_client, timeout=0.3, interval=1.0)
    elapsed = time.monotonic() - start
    assert result.status == Condition.TIMEOUT
    assert result.missing_services == {"C"}
    assert 0.25 <= elapsed < 0.6


def test_wait_for_services_with_zero_timeout(directory_spot: SpotFixture, directory_client: DirectoryClient) -> None:
    result = wait_for_all_services(["A", "C"], directory_client, timeout=0.0)
    assert result.status == Condition.TIMEOUT
    assert result.missing_services == {"C"}
    assert directory_spot.api.ListServiceEntries.num_calls == 1


def test_wait_for_services_retries(
    flaky_directory_spot: SpotFixture, flaky_directory_client: DirectoryClient
) -> None:
    handler = flaky_directory_spot.api.ListServiceEntries
    handler.future.fails(grpc.StatusCode.UNAVAILABLE).repeatedly(2)
    listing = ListServiceEntriesResponse()
    listing.service_entries.add(name="A")
    handler.future.returns(listing)
    result = wait_for_all_services(["A"], flaky_directory_client, timeout=5.0, interval=0.01)
    assert result, result.status
    assert flaky_directory_spot.api.ListServiceEntries.num_calls == 3


def test_wait_for_services_gives_up_on_failure(
    flaky_directory_spot: SpotFixture, flaky_directory_client: DirectoryClient
) -> None:
    flaky_directory_spot.api.ListServiceEntries.future.fails(grpc.StatusCode.PERMISSION_DENIED)
    result = wait_for_all_services(["A"], flaky_directory_client, timeout=5.0)
    assert not result
    assert result.status == Status(RPCErrorCode.PERMISSION_DENIED)
    assert result.missing_services == set()
