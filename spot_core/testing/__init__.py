# Copyright (c) 2023 Boston Dynamics AI Institute LLC. See LICENSE file for more info.

"""
This subpackage provides `pytest` compatible machinery to test robot service clients.

At its core, this machinery is nothing but mocks and fixtures: mocks of robot gRPC
services, and fixtures serving those mocks over the wire.

Mocks are gRPC servicer subclasses, designed for aggregation via multiple inheritance.
Those under `spot_core.testing.mocks` cover the services `spot_core` clients talk to.

Decorating a mock class with the `spot_core.testing.fixture` function turns it into
a `pytest.fixture`. When requested by a test, the fixture starts a gRPC server hosting
the mocked services for as long as it remains in scope, at a unique local address.

.. code-block:: python

   import grpc

   import spot_core.testing
   from spot_core.clients import PowerClient
   from spot_core.testing.mocks import MockSpot

   @spot_core.testing.fixture
   class fake_spot(MockSpot):
       pass

   def test_power(fake_spot):
       client = PowerClient()
       client.set_comms(grpc.insecure_channel(f"{fake_spot.address}:{fake_spot.port}"))
       assert client.power_command(PowerCommandRequest.Request.REQUEST_ON_MOTORS)

Autospec'd mocks, `spot_core.testing.mocks.MockSpot` among them, define _deferred
method handlers_ for non-implemented methods. A deferred method handler lets tests
specify the outcome of calls in advance, or serve calls as they come in:

.. code-block:: python

   response = DockingCommandResponse(status=DockingCommandResponse.Status.STATUS_OK)
   fake_spot.api.DockingCommand.future.returns(response)
"""

from spot_core.testing.fixtures import fixture

__all__ = ["fixture"]
