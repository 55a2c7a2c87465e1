"""Abstract array interface consumed by the parameter store."""

from abc import ABC, abstractmethod
from typing import Tuple

import numpy as np

from paramstore.ndarray.device import Device


class NDArray(ABC):
    """
    Array capability required by parameters, layers and the store.

    The store never looks inside an array. It only places it on devices,
    binds copies to an allocation context and reads gradients, so any
    engine implementing this interface can back it.
    """

    @property
    @abstractmethod
    def device(self) -> Device:
        """Device this array lives on."""

    @property
    @abstractmethod
    def shape(self) -> Tuple[int, ...]:
        pass

    @property
    @abstractmethod
    def dtype(self) -> np.dtype:
        pass

    @property
    def ndim(self) -> int:
        return len(self.shape)

    @abstractmethod
    def to_device(self, device: Device, track_gradient: bool = False) -> "NDArray":
        """
        Return an independent copy on ``device``.

        The source array is never modified. When ``track_gradient`` is set
        the copy gets its own zeroed gradient buffer.
        """

    @property
    @abstractmethod
    def gradient(self) -> "NDArray":
        """
        Gradient buffer of this array.

        Raises:
            RuntimeError: If gradient tracking was never enabled
        """

    @abstractmethod
    def has_gradient(self) -> bool:
        pass

    @abstractmethod
    def attach_gradient(self) -> None:
        """Enable gradient tracking with a zeroed buffer."""

    @abstractmethod
    def attach(self, manager) -> None:
        """Bind this array's lifetime to ``manager``."""

    @abstractmethod
    def detach(self) -> None:
        pass

    @abstractmethod
    def reshape(self, *shape) -> "NDArray":
        pass

    @abstractmethod
    def gather(self, indices: "NDArray") -> "NDArray":
        """Select rows along axis 0 (embedding lookup)."""

    @abstractmethod
    def to_numpy(self) -> np.ndarray:
        """Return a host copy of the data."""

    @abstractmethod
    def set(self, values) -> None:
        """Overwrite the contents in place; the shape must match."""

    @abstractmethod
    def close(self) -> None:
        """Release the underlying buffer."""
