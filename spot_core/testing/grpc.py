# Copyright (c) 2023 Boston Dynamics AI Institute LLC. See LICENSE file for more info.

import collections
import functools
import inspect
import logging
import math
import os
import queue
import sys
import threading
import typing
import weakref

import grpc

from spot_core.header import has_header, set_ok_if_not_error
from spot_core.time_util import set_timestamp, now_nsec


def implemented(function: typing.Callable) -> bool:
    """
    Checks if a given servicer `function` is implemented or not.

    Generated servicer methods raise NotImplementedError, so their code is looked up for it.
    """
    if not callable(function):
        raise ValueError(f"{function} is not a callable")
    if inspect.ismethod(function):
        function = function.__func__
    if not inspect.isfunction(function):
        return True
    return "NotImplementedError" not in function.__code__.co_names


class _HandlerCollector:
    """A stand-in for `grpc.Server` that keeps generic handlers for inspection."""

    def __init__(self) -> None:
        self.handlers: typing.List[grpc.GenericRpcHandler] = []

    def add_generic_rpc_handlers(self, handlers: typing.Iterable[grpc.GenericRpcHandler]) -> None:
        self.handlers.extend(handlers)

    def add_registered_method_handlers(self, service_name: str, method_handlers: typing.Dict) -> None:
        pass


def collect_servicer_add_functions(servicer_class: typing.Type) -> typing.Iterable[typing.Callable]:
    """Yields the generated ``add_*_to_server`` functions for every servicer `servicer_class` derives from."""
    for cls in servicer_class.__mro__:
        module = sys.modules[cls.__module__]
        add = getattr(module, f"add_{cls.__name__}_to_server", None)
        if callable(add):
            yield add


def _collect_handlers(servicer: typing.Any) -> typing.List[grpc.GenericRpcHandler]:
    collector = _HandlerCollector()
    for add in collect_servicer_add_functions(type(servicer)):
        add(servicer, collector)
    return collector.handlers


def collect_method_handlers(servicer: typing.Any) -> typing.Iterable[typing.Tuple[str, grpc.RpcMethodHandler]]:
    """Yields ``(endpoint, handler)`` pairs for every RPC method of `servicer`."""
    for handler in _collect_handlers(servicer):
        if hasattr(handler, "_method_handlers"):
            yield from handler._method_handlers.items()


def collect_service_types(servicer: typing.Any) -> typing.Iterable[str]:
    """Yields the fully qualified names of all services `servicer` implements."""
    for handler in _collect_handlers(servicer):
        if hasattr(handler, "service_name"):
            yield handler.service_name()


class BaseServicer:
    def add_to(self, server: grpc.Server) -> None:
        """Adds all service handlers to `server`."""
        for add in collect_servicer_add_functions(type(self)):
            add(self, server)


class ForwardingWrapper:
    """A `functools.wraps` equivalent that forwards attribute access to the wrapped callable."""

    def __init__(self, wrapped: typing.Callable) -> None:
        functools.update_wrapper(self, wrapped, updated=[])

    def __getattr__(self, name: str) -> typing.Any:
        return getattr(self.__wrapped__, name)

    def __call__(self, *args: typing.Any, **kwargs: typing.Any) -> typing.Any:
        raise NotImplementedError()


class AutoServicer(BaseServicer):
    """
    A gRPC servicer that decorates its own unary-unary method handlers to ease testing.

    Attributes:
        autospec: if true, non-implemented handlers are replaced by deferred handlers.
        autotrack: if true, handlers keep track of calls.
        autocomplete: if true, handlers complete response headers.
    """

    autospec = False
    autotrack = False
    autocomplete = False

    def __init__(self, *args: typing.Any, **kwargs: typing.Any) -> None:
        super().__init__(*args, **kwargs)
        self.needs_shutdown: typing.List[typing.Any] = []
        for _, handler in collect_method_handlers(self):
            if handler.request_streaming or handler.response_streaming:
                continue
            original = handler.unary_unary
            decorated = original
            if self.autospec and not implemented(decorated):
                decorated = DeferredRpcHandler(decorated)
                self.needs_shutdown.append(decorated)
            if self.autotrack:
                decorated = TrackingRpcHandler(decorated)
            if self.autocomplete:
                decorated = AutoCompletingRpcHandler(decorated)
            if decorated is not original:
                setattr(self, original.__name__, decorated)

    def __enter__(self) -> "AutoServicer":
        return self

    def __exit__(self, *exc: typing.Any) -> None:
        self.shutdown()

    def shutdown(self) -> None:
        """Aborts all pending deferred calls."""
        for handler in self.needs_shutdown:
            handler.shutdown()


class TrackingRpcHandler(ForwardingWrapper):
    """A unary-unary handler decorator that records requests."""

    def __init__(self, handler: typing.Callable) -> None:
        super().__init__(handler)
        self.requests: typing.List[typing.Any] = []
        self.num_calls = 0

    def __call__(self, request: typing.Any, context: grpc.ServicerContext) -> typing.Any:
        try:
            self.requests.append(request)
            return self.__wrapped__(request, context)
        finally:
            self.num_calls += 1


def complete_response_header(request: typing.Any, response: typing.Any) -> bool:
    """
    Completes `response` header, if any, the way a service would.

    The request header is echoed back, reception and response times are
    stamped if missing, and the response is marked successful unless
    an error is already set.
    """
    if not has_header(response):
        return False
    header = response.header
    if has_header(request) and request.HasField("header"):
        header.request_header.CopyFrom(request.header)
    if not header.HasField("request_received_timestamp"):
        set_timestamp(now_nsec(), header.request_received_timestamp)
    set_ok_if_not_error(response)
    return True


class AutoCompletingRpcHandler(ForwardingWrapper):
    """A unary-unary handler decorator that completes response headers."""

    def __call__(self, request: typing.Any, context: grpc.ServicerContext) -> typing.Any:
        response = self.__wrapped__(request, context)
        # Scripted responses may be served more than once.
        completed = type(response)()
        completed.CopyFrom(response)
        complete_response_header(request, completed)
        return completed


class DeferredRpcHandler(ForwardingWrapper):
    """
    A unary-unary handler whose calls are resolved elsewhere.

    Calls are resolved either in advance, through the `future` outcome queue, or
    as they come, by serving pending calls from another thread:

    .. code-block:: python

       servicer.ListServiceEntries.future.returns(response).repeatedly(2)
       servicer.ListServiceEntries.future.fails(grpc.StatusCode.UNAVAILABLE)

       call = servicer.TimeSyncUpdate.serve(timeout=2.0)
       call.returns(TimeSyncUpdateResponse())
    """

    class Call:
        """A pending call."""

        def __init__(self, request: typing.Any, context: grpc.ServicerContext) -> None:
            self.request = request
            self.context = context
            self.response: typing.Optional[typing.Any] = None
            self.code: typing.Optional[grpc.StatusCode] = None
            self.details: typing.Optional[str] = None
            self._done = threading.Event()

        @property
        def completed(self) -> bool:
            return self._done.is_set()

        def wait_for_completion(self, timeout: typing.Optional[float] = None) -> bool:
            return self._done.wait(timeout)

        def returns(self, response: typing.Any) -> None:
            """Completes the call with a `response`."""
            if self.completed:
                raise RuntimeError("call already completed!")
            self.response = response
            self._done.set()

        def fails(self, code: grpc.StatusCode, details: typing.Optional[str] = None) -> None:
            """Completes the call with an error `code` and optional `details`."""
            if self.completed:
                raise RuntimeError("call already completed!")
            self.code = code
            self.details = details
            self._done.set()

    class Outcome:
        """A scripted outcome, usable once by default."""

        def __init__(self, resolve: typing.Callable[["DeferredRpcHandler.Call"], None]) -> None:
            self._resolve = resolve
            self._num_repeats: typing.Optional[float] = None
            self.num_uses = 0

        @property
        def num_repeats(self) -> typing.Optional[float]:
            return self._num_repeats

        def repeatedly(self, times: int) -> None:
            """Makes this outcome usable `times` times."""
            assert times > 0
            if self._num_repeats is not None:
                raise RuntimeError("outcome repetition already specified")
            self._num_repeats = times

        def forever(self) -> None:
            """Makes this outcome usable for good."""
            if self._num_repeats is not None:
                raise RuntimeError("outcome repetition already specified")
            self._num_repeats = math.inf

        def apply(self, call: "DeferredRpcHandler.Call") -> bool:
            if self.num_uses >= (self._num_repeats or 1):
                return False
            self._resolve(call)
            self.num_uses += 1
            return True

    class Future:
        """A FIFO queue of scripted outcomes for upcoming calls."""

        def __init__(self) -> None:
            self._lock = threading.Lock()
            self._outcomes: typing.Deque["DeferredRpcHandler.Outcome"] = collections.deque()

        def materialize(self, call: "DeferredRpcHandler.Call") -> bool:
            """Resolves `call` with the oldest usable outcome, if any."""
            with self._lock:
                while self._outcomes:
                    if self._outcomes[0].apply(call):
                        return True
                    self._outcomes.popleft()
                return False

        def _push(self, outcome: "DeferredRpcHandler.Outcome") -> "DeferredRpcHandler.Outcome":
            with self._lock:
                if self._outcomes and self._outcomes[-1].num_repeats == math.inf:
                    raise RuntimeError("future is predetermined, cannot specify outcome (did you use forever())")
                self._outcomes.append(outcome)
            return outcome

        def returns(self, response: typing.Any) -> "DeferredRpcHandler.Outcome":
            """Scripts the next call to succeed with `response`."""
            return self._push(DeferredRpcHandler.Outcome(lambda call: call.returns(response)))

        def fails(self, code: grpc.StatusCode, details: typing.Optional[str] = None) -> "DeferredRpcHandler.Outcome":
            """Scripts the next call to fail with `code` and optional `details`."""
            return self._push(DeferredRpcHandler.Outcome(lambda call: call.fails(code, details)))

    def __init__(self, handler: typing.Callable) -> None:
        super().__init__(handler)
        self._future = DeferredRpcHandler.Future()
        self._pending: queue.SimpleQueue = queue.SimpleQueue()
        self._served: weakref.WeakSet = weakref.WeakSet()

    @property
    def future(self) -> "DeferredRpcHandler.Future":
        """The window to upcoming calls."""
        return self._future

    @property
    def pending(self) -> bool:
        """Whether a call is waiting to be served."""
        return not self._pending.empty()

    def serve(self, timeout: typing.Optional[float] = None) -> typing.Optional["DeferredRpcHandler.Call"]:
        """Returns the next pending call, or None if none comes within `timeout` seconds."""
        try:
            call = self._pending.get(timeout=timeout)
        except queue.Empty:
            return None
        self._served.add(call)
        return call

    def shutdown(self) -> None:
        """Aborts all calls not yet completed."""
        in_test = "PYTEST_CURRENT_TEST" in os.environ
        for call in list(self._served):
            if not call.completed:
                if in_test:
                    logging.warning(f"{self.__name__} call not completed, aborted during shutdown")
                call.fails(grpc.StatusCode.ABORTED, "call aborted")
        self._served.clear()
        while not self._pending.empty():
            call = self._pending.get_nowait()
            if in_test:
                logging.warning(f"{self.__name__} call not served, dropped during shutdown")
            call.fails(grpc.StatusCode.ABORTED, "call dropped")

    def __call__(self, request: typing.Any, context: grpc.ServicerContext) -> typing.Any:
        call = DeferredRpcHandler.Call(request, context)
        if not self._future.materialize(call):
            self._pending.put(call)
            call.wait_for_completion()
        if call.response is None:
            context.abort(call.code, call.details or "")
        return call.response
