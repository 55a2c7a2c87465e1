"""Exception types for paramstore.

Each error also derives from the builtin a caller would naturally catch,
so ``except ValueError`` keeps working for configuration problems.
"""


class ParamStoreError(Exception):
    """Base class for all paramstore errors."""


class ConfigurationError(ParamStoreError, ValueError):
    """Raised for invalid configuration, builder fields or arguments."""


class UnknownDeviceError(ConfigurationError):
    """Raised when a device has no registered slot."""

    def __init__(self, device):
        super().__init__(f"Device {device} is not registered with the parameter store")
        self.device = device


class UnsupportedVersionError(ConfigurationError):
    """Raised when a persisted stream carries an unknown version byte."""

    def __init__(self, version: int):
        super().__init__(f"Unsupported encoding version: {version}")
        self.version = version


class ItemNotFoundError(ParamStoreError, KeyError):
    """Raised when an embedding item is unknown and no default is configured."""

    def __init__(self, item):
        super().__init__(f"The provided item was not found: {item!r}")
        self.item = item

    def __str__(self) -> str:
        return self.args[0]


class ParameterServerNotConfiguredError(ParamStoreError, RuntimeError):
    """Raised when a distributed operation runs without a parameter server."""


class PartialMaterializationError(ParamStoreError, RuntimeError):
    """Raised when a replica entry was left half-built by a failed first touch."""

    def __init__(self, parameter_id: str):
        super().__init__(
            f"Replicas for parameter {parameter_id} were partially materialized; "
            f"reset the entry before retrying"
        )
        self.parameter_id = parameter_id
