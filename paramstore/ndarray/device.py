"""Logical compute devices."""

from dataclasses import dataclass

CPU = "cpu"
GPU = "gpu"


@dataclass(frozen=True)
class Device:
    """
    An opaque, hashable identifier for a compute unit.

    Devices are placement labels: two arrays on ``gpu(0)`` and ``gpu(1)``
    are distinct buffers even when the backend keeps both in host memory.
    """

    device_type: str = CPU
    device_id: int = 0

    @classmethod
    def cpu(cls, device_id: int = 0) -> "Device":
        return cls(CPU, device_id)

    @classmethod
    def gpu(cls, device_id: int = 0) -> "Device":
        return cls(GPU, device_id)

    @classmethod
    def from_string(cls, spec: str) -> "Device":
        """
        Parse a device spec such as ``"cpu"``, ``"gpu:1"`` or ``"gpu(1)"``.

        Raises:
            ValueError: If the spec is malformed
        """
        text = spec.strip().lower().replace("(", ":").rstrip(")")
        device_type, _, index = text.partition(":")
        if not device_type:
            raise ValueError(f"Invalid device spec: {spec!r}")
        try:
            device_id = int(index) if index else 0
        except ValueError:
            raise ValueError(f"Invalid device index in {spec!r}") from None
        return cls(device_type, device_id)

    def __str__(self) -> str:
        return f"{self.device_type}({self.device_id})"
