# Copyright (c) 2023 Boston Dynamics AI Institute LLC. See LICENSE file for more info.

import concurrent.futures
import dataclasses
import functools
import typing

import grpc
import pytest

from spot_core.testing.services import BaseSpotServicer


@dataclasses.dataclass
class SpotFixture:
    """
    A fixture that provides robot services.

    Attributes:
        address: address of the underlying gRPC server.
        port: port of the underlying gRPC server.
        api: access to robot services implementation.
    """

    address: str
    port: int
    api: BaseSpotServicer

    @property
    def target(self) -> str:
        """Target string for gRPC channels."""
        return f"{self.address}:{self.port}"

    def channel(self) -> grpc.Channel:
        """Opens an insecure gRPC channel to the underlying server."""
        return grpc.insecure_channel(self.target)


def fixture(
    cls: typing.Optional[typing.Type[BaseSpotServicer]] = None,
    *,
    address: str = "127.0.0.1",
    max_workers: int = 10,
    **kwargs: typing.Any,
) -> typing.Callable:
    """
    Robot services as a `pytest.fixture`.

    This function decorates a class that implements robot services.
    Such classes request parameters like any `pytest.fixture` would do by specifying
    them in their __init__ methods.

    Args:
        address: address for the underlying gRPC server.
        max_workers: maximum number of threads to use for gRPC call servicing.

    Other keyword arguments are forwarded to `pytest.fixture`.
    """

    def decorator(cls: typing.Type[BaseSpotServicer]) -> typing.Callable:
        def fixturefunc(**kwargs) -> typing.Iterator[SpotFixture]:
            with concurrent.futures.ThreadPoolExecutor(max_workers=max_workers) as thread_pool:
                server = grpc.server(thread_pool)
                port = server.add_insecure_port(f"{address}:0")
                with cls(**kwargs) as mock:
                    mock.add_to(server)
                    server.start()
                    try:
                        yield SpotFixture(address=address, port=port, api=mock)
                    finally:
                        server.stop(grace=None)

        functools.update_wrapper(fixturefunc, cls)
        return pytest.fixture(fixturefunc, **kwargs)

    if cls is None:
        return decorator
    return decorator(cls)
