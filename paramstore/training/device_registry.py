"""Mapping from devices to replica slot indices."""

import threading
from typing import Dict, List, Sequence

from paramstore.exceptions import ConfigurationError, UnknownDeviceError
from paramstore.ndarray import Device


class DeviceRegistry:
    """
    Thread-safe map of registered devices to contiguous slot indices.

    The slot of a device is its position in the registration order and
    indexes every replica list built under that configuration.
    """

    def __init__(self):
        self._slots: Dict[Device, int] = {}
        self._devices: List[Device] = []
        self._lock = threading.Lock()

    def register_single_device(self, device: Device) -> None:
        """Reset to the non-distributed configuration: ``device`` at slot 0."""
        self.configure([device])

    def configure(self, devices: Sequence[Device]) -> None:
        """
        Replace the device set atomically.

        Raises:
            ConfigurationError: If ``devices`` is empty or has duplicates
        """
        devices = list(devices)
        if not devices:
            raise ConfigurationError("At least one device must be registered")
        slots = {device: i for i, device in enumerate(devices)}
        if len(slots) != len(devices):
            raise ConfigurationError(
                f"Devices must be distinct, got {[str(d) for d in devices]}"
            )
        with self._lock:
            self._slots = slots
            self._devices = devices

    def slot_of(self, device: Device) -> int:
        """
        Get the slot index of ``device``.

        Raises:
            UnknownDeviceError: If the device is not registered
        """
        with self._lock:
            slot = self._slots.get(device)
        if slot is None:
            raise UnknownDeviceError(device)
        return slot

    def devices(self) -> List[Device]:
        """Registered devices in slot order."""
        with self._lock:
            return list(self._devices)

    def __len__(self) -> int:
        with self._lock:
            return len(self._devices)

    def __contains__(self, device: Device) -> bool:
        with self._lock:
            return device in self._slots

    def __repr__(self) -> str:
        return f"DeviceRegistry({[str(d) for d in self.devices()]})"
