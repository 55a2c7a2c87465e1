"""Training-time parameter management."""

from paramstore.training.device_registry import DeviceRegistry
from paramstore.training.parameter_server import LocalParameterServer, ParameterServer
from paramstore.training.parameter_store import ParameterStore

__all__ = [
    "DeviceRegistry",
    "ParameterServer",
    "LocalParameterServer",
    "ParameterStore",
]
