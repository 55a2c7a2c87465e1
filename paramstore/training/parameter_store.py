"""Per-device parameter replicas and their synchronization."""

import threading
from typing import Dict, List, Optional, Sequence

from paramstore.exceptions import (
    ConfigurationError,
    ParameterServerNotConfiguredError,
    PartialMaterializationError,
)
from paramstore.ndarray import Device, NDArray, NDManager
from paramstore.nn.parameter import Parameter
from paramstore.training.device_registry import DeviceRegistry
from paramstore.training.parameter_server import ParameterServer
from paramstore.utils.config import StoreConfig
from paramstore.utils.logging import get_logger


class _ReplicaEntry:
    """Replica record for one parameter id.

    ``replicas`` is empty until first touch completes, then holds one array
    per registered slot (distributed mode) or a single array (local mode).
    """

    __slots__ = ("requires_gradient", "replicas", "materialized", "failed", "lock")

    def __init__(self, requires_gradient: bool):
        self.requires_gradient = requires_gradient
        self.replicas: List[NDArray] = []
        self.materialized = False
        self.failed = False
        self.lock = threading.Lock()


class ParameterStore:
    """
    Hands out device-local values of parameters and syncs them with a
    parameter server.

    Replicas are created on first touch. Placement for one parameter id
    runs exactly once even when several worker threads ask for it at the
    same time; threads asking for other ids are not blocked by it.

    Without a parameter server the store runs in local mode with a single
    registered device, the device of its manager. ``set_parameter_server``
    switches to distributed mode over an ordered device list and drops all
    existing replicas, since they were built for the old slot layout.
    """

    def __init__(self, manager: NDManager, copy: bool = False):
        """
        Initialize the store.

        Args:
            manager: Allocation context that owns every copy the store makes
            copy: In local mode, always copy the canonical array even when it
                already lives on the requested device
        """
        self._manager = manager
        self._copy = copy
        self._entries: Dict[str, _ReplicaEntry] = {}
        self._table_lock = threading.Lock()
        self._registry = DeviceRegistry()
        self._registry.register_single_device(manager.device)
        self._parameter_server: Optional[ParameterServer] = None
        self.logger = get_logger("parameter_store")

    @classmethod
    def from_config(
        cls,
        manager: NDManager,
        config: StoreConfig,
        parameter_server: Optional[ParameterServer] = None
    ) -> "ParameterStore":
        """
        Build a store from a StoreConfig.

        ``config.devices`` is only used together with ``parameter_server``;
        it defaults to the manager's device when empty.
        """
        config.validate()
        store = cls(manager, copy=config.copy)
        if parameter_server is not None:
            devices = [Device.from_string(d) for d in config.devices] or [manager.device]
            store.set_parameter_server(parameter_server, devices)
        return store

    @property
    def manager(self) -> NDManager:
        return self._manager

    @property
    def copy(self) -> bool:
        return self._copy

    @property
    def parameter_server(self) -> Optional[ParameterServer]:
        return self._parameter_server

    @property
    def devices(self) -> List[Device]:
        return self._registry.devices()

    def set_parameter_server(
        self,
        parameter_server: ParameterServer,
        devices: Sequence[Device]
    ) -> None:
        """
        Switch to distributed mode over ``devices``.

        The slot of each device is its position in ``devices``. All replica
        entries are discarded. Must not run concurrently with ``get_value``.

        Raises:
            ConfigurationError: If the server is missing or the device list
                is empty or has duplicates; nothing changes in that case
        """
        if parameter_server is None:
            raise ConfigurationError("A parameter server is required for distributed mode")

        with self._table_lock:
            self._registry.configure(devices)
            dropped = len(self._entries)
            self._entries.clear()
            self._parameter_server = parameter_server

        if dropped:
            self.logger.warning(
                f"Device configuration changed, dropped {dropped} replica entries"
            )
        self.logger.info(
            f"Distributed mode over {[str(d) for d in self._registry.devices()]}"
        )

    def _get_or_create_entry(self, parameter: Parameter) -> _ReplicaEntry:
        with self._table_lock:
            entry = self._entries.get(parameter.id)
            if entry is None:
                entry = _ReplicaEntry(bool(parameter.requires_gradient))
                self._entries[parameter.id] = entry
            return entry

    def get_value(self, parameter: Parameter, device: Device) -> NDArray:
        """
        Get the value of ``parameter`` on ``device``.

        Args:
            parameter: Parameter to look up
            device: Registered target device

        Returns:
            The replica for the device's slot

        Raises:
            UnknownDeviceError: If ``device`` is not registered
            PartialMaterializationError: If an earlier first touch failed
        """
        slot = self._registry.slot_of(device)
        entry = self._get_or_create_entry(parameter)

        with entry.lock:
            if entry.failed:
                raise PartialMaterializationError(parameter.id)
            if not entry.materialized:
                try:
                    self._materialize(parameter, entry, device, slot)
                except Exception:
                    entry.failed = True
                    raise
                entry.materialized = True
            return entry.replicas[slot]

    def _materialize(
        self,
        parameter: Parameter,
        entry: _ReplicaEntry,
        device: Device,
        slot: int
    ) -> None:
        array = parameter.array
        server = self._parameter_server

        if server is None:
            if self._copy or array.device != device:
                array = array.to_device(device, track_gradient=True)
                array.attach(self._manager)
            entry.replicas.append(array)
            self.logger.debug(f"Placed {parameter.name}[{parameter.id}] on {device}")
            return

        arrays: List[NDArray] = []
        for i, slot_device in enumerate(self._registry.devices()):
            if i == slot:
                arrays.append(array)
            else:
                replica = array.to_device(slot_device, track_gradient=True)
                replica.attach(self._manager)
                arrays.append(replica)

        for replica in arrays:
            server.init(parameter.id, arrays)
            entry.replicas.append(replica)
        self.logger.debug(
            f"Placed {parameter.name}[{parameter.id}] on {len(arrays)} devices, "
            f"canonical at slot {slot}"
        )

    def update_all_parameters(self) -> None:
        """
        Push gradients and pull new values for every trainable parameter.

        Entries are visited in first-touch order. The push pass gives the
        k-th trainable entry priority -k; the pull pass counts again from 0.
        Pulled values are written into the live replicas by the server.
        Nothing is pushed if any trainable entry failed its first touch.

        Raises:
            ParameterServerNotConfiguredError: In local mode
            PartialMaterializationError: If a trainable entry failed its
                first touch and was not reset
        """
        server = self._parameter_server
        if server is None:
            raise ParameterServerNotConfiguredError(
                "update_all_parameters requires a parameter server"
            )

        with self._table_lock:
            trainable = [
                (parameter_id, entry)
                for parameter_id, entry in self._entries.items()
                if entry.requires_gradient
            ]

        for parameter_id, entry in trainable:
            if entry.failed:
                raise PartialMaterializationError(parameter_id)

        priority = 0
        for parameter_id, entry in trainable:
            gradients = [replica.gradient for replica in entry.replicas]
            server.push(parameter_id, gradients, -priority)
            priority += 1

        priority = 0
        for parameter_id, entry in trainable:
            server.pull(parameter_id, list(entry.replicas), -priority)
            priority += 1

    def reset(self, parameter_id: Optional[str] = None) -> None:
        """Drop the replica entry of one parameter, or all entries."""
        with self._table_lock:
            if parameter_id is None:
                self._entries.clear()
            else:
                self._entries.pop(parameter_id, None)

    def is_materialized(self, parameter_id: str) -> bool:
        with self._table_lock:
            entry = self._entries.get(parameter_id)
        return entry is not None and entry.materialized

    def get_replicas(self, parameter_id: str) -> List[NDArray]:
        """Replicas of a parameter in slot order (empty if never touched)."""
        with self._table_lock:
            entry = self._entries.get(parameter_id)
        return [] if entry is None else list(entry.replicas)

    def __len__(self) -> int:
        with self._table_lock:
            return len(self._entries)

    def __contains__(self, parameter_id: str) -> bool:
        with self._table_lock:
            return parameter_id in self._entries
