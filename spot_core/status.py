# Copyright (c) 2023 Boston Dynamics AI Institute LLC. See LICENSE file for more info.

"""
Status values shared by every call in this package.

A `Status` is a ``(category, code)`` pair plus an optional chain of context messages.
Categories know how to describe their codes and which well-known `Condition` each code
is equivalent to, so that call sites can test outcomes without knowing where they came from:

.. code-block:: python

   result = power_client.power_command(PowerCommandRequest.Request.REQUEST_ON_MOTORS)
   if result.status == Condition.RETRYABLE:
       ...
   elif not result:
       logger.error("Power command failed: %s", result.status)
"""

import dataclasses
import enum
import typing


class Condition(enum.Enum):
    """Equivalence classes for status values."""

    SUCCESS = "Success"
    RESPONSE_ERROR = "ResponseError"
    RPC_ERROR = "RPCError"
    SDK_ERROR = "SDKError"
    RETRYABLE = "Retryable"
    TIMEOUT = "Timeout"


class ErrorCategory:
    """
    A named family of status codes.

    Args:
        name: category name, as shown in status descriptions.
        messages: textual description for each known code.
        conditions: conditions each known code is equivalent to.
        default_conditions: conditions for codes with no explicit entry.
    """

    def __init__(
        self,
        name: str,
        messages: typing.Mapping[int, str],
        conditions: typing.Mapping[int, typing.FrozenSet[Condition]],
        default_conditions: typing.FrozenSet[Condition] = frozenset(),
    ) -> None:
        self._name = name
        self._messages = dict(messages)
        self._conditions = dict(conditions)
        self._default_conditions = default_conditions

    @property
    def name(self) -> str:
        return self._name

    def message(self, code: int) -> str:
        """Describes the given `code`."""
        return self._messages.get(code, f"unknown code {code}")

    def equivalent(self, code: int, condition: Condition) -> bool:
        """Checks whether this category considers `code` to belong to `condition`."""
        return condition in self._conditions.get(code, self._default_conditions)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self._name}>"


class EnumErrorCategory(ErrorCategory):
    """A category for a client-side `enum.IntEnum` of error codes.

    Code zero is the only success code. Any other code is equivalent to `failure` conditions.
    """

    def __init__(
        self,
        name: str,
        codes: typing.Type[enum.IntEnum],
        messages: typing.Mapping[int, str],
        failure: typing.FrozenSet[Condition],
        overrides: typing.Optional[typing.Mapping[int, typing.FrozenSet[Condition]]] = None,
    ) -> None:
        conditions = {int(code): failure for code in codes}
        conditions.update(overrides or {})
        conditions[0] = frozenset({Condition.SUCCESS})
        super().__init__(name, messages, conditions, failure)
        self.codes = codes


class ProtoEnumCategory(ErrorCategory):
    """A category for a service-defined protobuf enumeration.

    Codes in `success` are equivalent to `Condition.SUCCESS`, any other is a `Condition.RESPONSE_ERROR`.

    Args:
        enum_type: protobuf enum wrapper, e.g. ``PowerCommandStatus``.
        success: enumeration values that stand for success.
    """

    def __init__(self, enum_type: typing.Any, success: typing.Iterable[int]) -> None:
        descriptor = enum_type.DESCRIPTOR
        name = descriptor.full_name.rpartition(".")[-1]
        if descriptor.containing_type is not None:
            name = f"{descriptor.containing_type.name}_{name}"
        messages = {value.number: value.name for value in descriptor.values}
        conditions = {int(value): frozenset({Condition.SUCCESS}) for value in success}
        super().__init__(name, messages, conditions, frozenset({Condition.RESPONSE_ERROR}))
        self.enum_type = enum_type


_ENUM_CATEGORIES: typing.Dict[typing.Type[enum.IntEnum], ErrorCategory] = {}


def register_enum_category(category: EnumErrorCategory) -> EnumErrorCategory:
    """Makes `category` implicit for `Status` instances built from its codes."""
    _ENUM_CATEGORIES[category.codes] = category
    return category


class Status:
    """
    An outcome, as a ``(category, code)`` pair plus context messages.

    A status is truthy iff it is equivalent to `Condition.SUCCESS`.
    Comparing a status with a `Condition` tests for equivalence,
    comparing two statuses tests for identical category and code.

    Args:
        code: status code. Codes of registered `enum.IntEnum` types carry their own category.
        message: optional context message.
        category: status category, mandatory for plain integer codes.
    """

    def __init__(
        self,
        code: int,
        message: typing.Optional[str] = None,
        category: typing.Optional[ErrorCategory] = None,
    ) -> None:
        if category is None:
            category = _ENUM_CATEGORIES.get(type(code))
            if category is None:
                raise ValueError(f"no category known for {code!r}")
        self._category = category
        self._code = int(code)
        self._context: typing.Tuple[str, ...] = (message,) if message else ()

    @property
    def code(self) -> int:
        return self._code

    @property
    def category(self) -> ErrorCategory:
        return self._category

    @property
    def context(self) -> typing.Tuple[str, ...]:
        """Context messages, outermost first."""
        return self._context

    @property
    def message(self) -> str:
        """Full description, context messages first."""
        return ": ".join(self._context + (self._category.message(self._code),))

    def equivalent(self, condition: Condition) -> bool:
        return self._category.equivalent(self._code, condition)

    def chain(self, message: str) -> "Status":
        """Returns a copy of this status with an additional outer context `message`."""
        status = Status(self._code, category=self._category)
        status._context = (message,) + self._context
        return status

    def chain_code(self, code: int, message: str, category: typing.Optional[ErrorCategory] = None) -> "Status":
        """Returns a new status for `code`, carrying this status description as context."""
        status = Status(code, message, category)
        status._context = status._context + (str(self),)
        return status

    def __bool__(self) -> bool:
        return self.equivalent(Condition.SUCCESS)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Condition):
            return self.equivalent(other)
        if isinstance(other, Status):
            return self._category is other._category and self._code == other._code
        return NotImplemented

    def __hash__(self) -> int:
        return hash((id(self._category), self._code))

    def __str__(self) -> str:
        return f"{self.message} ({self._category.name}:{self._code})"

    def __repr__(self) -> str:
        return f"Status({self._category.name}:{self._code}, {self.message!r})"


class StatusError(Exception):
    """Raised when a non-successful result is unwrapped."""

    def __init__(self, status: Status) -> None:
        super().__init__(str(status))
        self.status = status


T = typing.TypeVar("T")


@dataclasses.dataclass
class Result(typing.Generic[T]):
    """
    A status and the response, or payload extracted from it, it applies to.

    The status is authoritative. The response may be missing or partially
    populated on failure, so check the status first.
    """

    status: Status
    response: typing.Optional[T] = None

    def __bool__(self) -> bool:
        return bool(self.status)

    def unwrap(self) -> T:
        """Returns the response if successful, raises `StatusError` otherwise."""
        if not self.status:
            raise StatusError(self.status)
        return typing.cast(T, self.response)


class SDKErrorCode(enum.IntEnum):
    SUCCESS = 0
    GENERIC_SDK_ERROR = 3
    STUB_UNSET = 4
    COMMAND_TIMED_OUT = 5


SDK_ERROR_CATEGORY = register_enum_category(
    EnumErrorCategory(
        "SDKError",
        SDKErrorCode,
        {
            SDKErrorCode.SUCCESS: "Success",
            SDKErrorCode.GENERIC_SDK_ERROR: "Generic SDK error",
            SDKErrorCode.STUB_UNSET: "Service stub is not set",
            SDKErrorCode.COMMAND_TIMED_OUT: "CommandTimedOutError",
        },
        frozenset({Condition.SDK_ERROR}),
    )
)


class RPCErrorCode(enum.IntEnum):
    SUCCESS = 0
    CLIENT_CANCELLED_OPERATION = 1
    INVALID_APP_TOKEN = 2
    INVALID_CLIENT_CERTIFICATE = 3
    NONEXISTENT_AUTHORITY = 4
    PERMISSION_DENIED = 5
    PROXY_CONNECTION = 6
    RESPONSE_TOO_LARGE = 7
    SERVICE_UNAVAILABLE = 8
    SERVICE_FAILED_DURING_EXECUTION = 9
    TIMED_OUT = 10
    UNABLE_TO_CONNECT_TO_ROBOT = 11
    UNAUTHENTICATED = 12
    UNKNOWN_DNS_NAME = 13
    UNIMPLEMENTED = 14
    TRANSIENT_FAILURE = 15
    TOO_MANY_REQUESTS = 16
    NOT_FOUND = 17
    RETRYABLE_UNAVAILABLE = 18


RETRYABLE_RPC_ERROR_CODES = frozenset(
    {
        RPCErrorCode.TIMED_OUT,
        RPCErrorCode.TRANSIENT_FAILURE,
        RPCErrorCode.TOO_MANY_REQUESTS,
        RPCErrorCode.RETRYABLE_UNAVAILABLE,
    }
)

RPC_ERROR_CATEGORY = register_enum_category(
    EnumErrorCategory(
        "RPCError",
        RPCErrorCode,
        {
            RPCErrorCode.SUCCESS: "Success",
            RPCErrorCode.CLIENT_CANCELLED_OPERATION: "The user cancelled the rpc request",
            RPCErrorCode.INVALID_APP_TOKEN: "The provided app token is invalid",
            RPCErrorCode.INVALID_CLIENT_CERTIFICATE: "The provided client certificate is invalid",
            RPCErrorCode.NONEXISTENT_AUTHORITY: "The app is not authorized to access the service",
            RPCErrorCode.PERMISSION_DENIED: "The rpc request was denied access",
            RPCErrorCode.PROXY_CONNECTION: "The proxy could not connect to the remote service",
            RPCErrorCode.RESPONSE_TOO_LARGE: "The rpc response was larger than allowed",
            RPCErrorCode.SERVICE_UNAVAILABLE: "The service could not be reached",
            RPCErrorCode.SERVICE_FAILED_DURING_EXECUTION: "The service encountered an error during execution",
            RPCErrorCode.TIMED_OUT: "The remote procedure call did not terminate within the allotted time",
            RPCErrorCode.UNABLE_TO_CONNECT_TO_ROBOT: "The robot could not be reached",
            RPCErrorCode.UNAUTHENTICATED: "The user needs to authenticate or does not have permission",
            RPCErrorCode.UNKNOWN_DNS_NAME: "The system could not find the requested robot",
            RPCErrorCode.UNIMPLEMENTED: "The API does not recognize the request",
            RPCErrorCode.TRANSIENT_FAILURE: "The service experienced a transient failure",
            RPCErrorCode.TOO_MANY_REQUESTS: "The remote service is overloaded",
            RPCErrorCode.NOT_FOUND: "The requested service was not found",
            RPCErrorCode.RETRYABLE_UNAVAILABLE: "The service is temporarily unavailable",
        },
        frozenset({Condition.RPC_ERROR, Condition.RESPONSE_ERROR}),
        overrides={code: frozenset({Condition.RPC_ERROR, Condition.RETRYABLE}) for code in RETRYABLE_RPC_ERROR_CODES},
    )
)


class WaitErrorCode(enum.IntEnum):
    SUCCESS = 0
    TIMEOUT = 1


WAIT_ERROR_CATEGORY = register_enum_category(
    EnumErrorCategory(
        "WaitError",
        WaitErrorCode,
        {
            WaitErrorCode.SUCCESS: "Success",
            WaitErrorCode.TIMEOUT: "Timed out waiting for services",
        },
        frozenset({Condition.TIMEOUT}),
    )
)


class TimeSyncErrorCode(enum.IntEnum):
    SUCCESS = 0
    CLOCK_IDENTIFIER_UNSET = 1
    PREVIOUS_TIME_SYNC_UNAVAILABLE_YET = 2
    UNABLE_TO_ESTABLISH_TIME_SYNC = 3


TIME_SYNC_ERROR_CATEGORY = register_enum_category(
    EnumErrorCategory(
        "TimeSyncError",
        TimeSyncErrorCode,
        {
            TimeSyncErrorCode.SUCCESS: "Success",
            TimeSyncErrorCode.CLOCK_IDENTIFIER_UNSET: "Clock identifier cannot be empty.",
            TimeSyncErrorCode.PREVIOUS_TIME_SYNC_UNAVAILABLE_YET: "Result not yet populated",
            TimeSyncErrorCode.UNABLE_TO_ESTABLISH_TIME_SYNC: "Unable to establish time sync",
        },
        frozenset({Condition.SDK_ERROR}),
    )
)


class DockingHelperErrorCode(enum.IntEnum):
    SUCCESS = 0
    RETRIES_EXCEEDED = 1
    CANCELLED = 2
    COMMAND_FAILED = 3


DOCKING_HELPER_ERROR_CATEGORY = register_enum_category(
    EnumErrorCategory(
        "DockingHelperError",
        DockingHelperErrorCode,
        {
            DockingHelperErrorCode.SUCCESS: "Success",
            DockingHelperErrorCode.RETRIES_EXCEEDED: "Exhausted all docking attempts",
            DockingHelperErrorCode.CANCELLED: "Docking was cancelled",
            DockingHelperErrorCode.COMMAND_FAILED: "The docking command failed",
        },
        frozenset({Condition.SDK_ERROR}),
    )
)


class LeaseWalletErrorCode(enum.IntEnum):
    SUCCESS = 0
    RESOURCE_NOT_IN_WALLET = 1


LEASE_WALLET_ERROR_CATEGORY = register_enum_category(
    EnumErrorCategory(
        "LeaseWalletError",
        LeaseWalletErrorCode,
        {
            LeaseWalletErrorCode.SUCCESS: "Success",
            LeaseWalletErrorCode.RESOURCE_NOT_IN_WALLET: "The lease wallet holds no lease for the resource",
        },
        frozenset({Condition.SDK_ERROR}),
    )
)


def ok() -> Status:
    """Returns a plain success status."""
    return Status(SDKErrorCode.SUCCESS)
