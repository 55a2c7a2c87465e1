"""Numpy-backed NDArray implementation."""

import threading
import uuid
from typing import Optional, Tuple

import numpy as np

from paramstore.ndarray.base import NDArray
from paramstore.ndarray.device import Device


class NumpyNDArray(NDArray):
    """
    NDArray over a host ``np.ndarray`` tagged with a logical device.

    Device transfers copy the buffer, so replicas on different devices
    never alias each other.
    """

    def __init__(self, data: np.ndarray, device: Optional[Device] = None):
        self._data = np.asarray(data)
        self._device = device or Device.cpu()
        self._grad: Optional["NumpyNDArray"] = None
        self._manager = None
        self._closed = False
        self._lock = threading.Lock()
        self.uid = uuid.uuid4().hex

    def _check_open(self):
        if self._closed:
            raise RuntimeError("NDArray has been closed")

    @property
    def device(self) -> Device:
        return self._device

    @property
    def shape(self) -> Tuple[int, ...]:
        self._check_open()
        return tuple(self._data.shape)

    @property
    def dtype(self) -> np.dtype:
        self._check_open()
        return self._data.dtype

    @property
    def manager(self):
        return self._manager

    def to_device(self, device: Device, track_gradient: bool = False) -> "NumpyNDArray":
        self._check_open()
        copy = NumpyNDArray(self._data.copy(), device)
        if track_gradient:
            copy.attach_gradient()
        return copy

    @property
    def gradient(self) -> "NumpyNDArray":
        self._check_open()
        if self._grad is None:
            raise RuntimeError(
                "No gradient attached to this NDArray; enable gradient tracking first"
            )
        return self._grad

    def has_gradient(self) -> bool:
        return self._grad is not None

    def attach_gradient(self) -> None:
        self._check_open()
        self._grad = NumpyNDArray(np.zeros_like(self._data), self._device)

    def attach(self, manager) -> None:
        self._check_open()
        with self._lock:
            if self._manager is manager:
                return
            if self._manager is not None:
                self._manager.detach_internal(self.uid)
            manager.attach_internal(self.uid, self)
            self._manager = manager

    def detach(self) -> None:
        with self._lock:
            if self._manager is not None:
                self._manager.detach_internal(self.uid)
                self._manager = None

    def reshape(self, *shape) -> "NumpyNDArray":
        self._check_open()
        if len(shape) == 1 and isinstance(shape[0], (tuple, list)):
            shape = tuple(shape[0])
        return NumpyNDArray(self._data.reshape(shape), self._device)

    def gather(self, indices: NDArray) -> "NumpyNDArray":
        self._check_open()
        idx = indices.to_numpy().astype(np.int64, copy=False)
        return NumpyNDArray(np.take(self._data, idx, axis=0), self._device)

    def to_numpy(self) -> np.ndarray:
        self._check_open()
        return self._data.copy()

    def set(self, values) -> None:
        self._check_open()
        if isinstance(values, NDArray):
            values = values.to_numpy()
        values = np.asarray(values)
        if values.shape != self._data.shape:
            raise ValueError(
                f"Shape mismatch: expected {self._data.shape}, got {values.shape}"
            )
        np.copyto(self._data, values, casting="unsafe")

    def close(self) -> None:
        if self._closed:
            return
        self.detach()
        self._closed = True
        self._data = None
        self._grad = None

    @property
    def closed(self) -> bool:
        return self._closed

    def __repr__(self) -> str:
        if self._closed:
            return "NumpyNDArray(<closed>)"
        return f"NumpyNDArray(shape={self.shape}, dtype={self.dtype}, device={self._device})"
