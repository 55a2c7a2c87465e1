"""Learnable parameters owned by layers."""

import uuid
from typing import BinaryIO, Optional, Tuple

import numpy as np

from paramstore.exceptions import ConfigurationError, UnsupportedVersionError
from paramstore.ndarray import NDArray, NDManager
from paramstore.nn.initializer import initialize_array
from paramstore.storage.serialization import read_array, write_array


def _read_byte(stream: BinaryIO) -> int:
    data = stream.read(1)
    if not data:
        raise EOFError("Unexpected end of parameter stream")
    return data[0]


class Parameter:
    """
    A named, learnable array.

    The id is a random hex string fixed at construction; the parameter
    store keys its replica table by it. The canonical array lives on the
    device of the manager that initialized it.
    """

    VERSION = 1

    def __init__(
        self,
        name: str,
        requires_gradient: bool = True,
        init_strategy: str = "normal",
        init_scale: float = 0.01
    ):
        self.id = uuid.uuid4().hex
        self.name = name
        self.requires_gradient = requires_gradient
        self.init_strategy = init_strategy
        self.init_scale = init_scale
        self._array: Optional[NDArray] = None

    def is_initialized(self) -> bool:
        return self._array is not None

    def initialize(
        self,
        manager: NDManager,
        shape: Tuple[int, ...],
        dtype=np.float32
    ) -> None:
        """Allocate the canonical array on ``manager``. No-op if already initialized."""
        if self._array is not None:
            return
        data = initialize_array(shape, self.init_strategy, self.init_scale, dtype)
        self._set_from_numpy(manager, data)

    def _set_from_numpy(self, manager: NDManager, data: np.ndarray) -> None:
        array = manager.create(data)
        if self.requires_gradient:
            array.attach_gradient()
        self._array = array

    @property
    def array(self) -> NDArray:
        if self._array is None:
            raise RuntimeError(f"Parameter {self.name} has not been initialized")
        return self._array

    def set_array(self, array: NDArray) -> None:
        if self._array is not None:
            raise RuntimeError(f"Parameter {self.name} is already initialized")
        self._array = array

    def save(self, stream: BinaryIO) -> None:
        """Write version byte, initialized flag and (if set) the array."""
        stream.write(bytes([self.VERSION]))
        if self._array is None:
            stream.write(b"\x00")
            return
        stream.write(b"\x01")
        write_array(stream, self._array.to_numpy(), self.name)

    def load(self, manager: NDManager, stream: BinaryIO) -> None:
        """
        Read a parameter written by ``save``.

        Raises:
            UnsupportedVersionError: If the version byte is unknown
            ConfigurationError: If the stored name does not match
        """
        version = _read_byte(stream)
        if version != self.VERSION:
            raise UnsupportedVersionError(version)
        if _read_byte(stream) == 0:
            return

        name, data = read_array(stream)
        if name != self.name:
            raise ConfigurationError(
                f"Unexpected parameter name {name!r}, expected {self.name!r}"
            )
        if self._array is not None and self._array.shape == data.shape:
            self._array.set(data)
        else:
            self._array = None
            self._set_from_numpy(manager, data)

    def close(self) -> None:
        if self._array is not None:
            self._array.close()
            self._array = None

    def __repr__(self) -> str:
        return f"Parameter(name={self.name!r}, id={self.id}, requires_gradient={self.requires_gradient})"
