"""Allocation context that owns array lifetimes."""

import threading
from typing import Dict, Optional

import numpy as np

from paramstore.ndarray.device import Device
from paramstore.ndarray.numpy_array import NumpyNDArray


class NDManager:
    """
    Creates arrays on a device and closes everything attached to it.

    Managers form a tree: closing a manager closes its sub-managers first.
    Attachment bookkeeping is lock-protected so worker threads can bind
    replicas concurrently.
    """

    def __init__(self, device: Optional[Device] = None, parent: Optional["NDManager"] = None):
        self._device = device or Device.cpu()
        self._parent = parent
        self._resources: Dict[str, object] = {}
        self._children: Dict[int, "NDManager"] = {}
        self._lock = threading.RLock()
        self._closed = False

    @classmethod
    def new_base_manager(cls, device: Optional[Device] = None) -> "NDManager":
        return cls(device)

    @property
    def device(self) -> Device:
        return self._device

    @property
    def closed(self) -> bool:
        return self._closed

    def _check_open(self):
        if self._closed:
            raise RuntimeError("NDManager has been closed")

    def new_sub_manager(self, device: Optional[Device] = None) -> "NDManager":
        with self._lock:
            self._check_open()
            child = NDManager(device or self._device, parent=self)
            self._children[id(child)] = child
            return child

    def create(self, data, dtype=None, device: Optional[Device] = None) -> NumpyNDArray:
        """Create an array attached to this manager from array-like data."""
        self._check_open()
        array = NumpyNDArray(np.array(data, dtype=dtype), device or self._device)
        array.attach(self)
        return array

    def zeros(self, shape, dtype=np.float32) -> NumpyNDArray:
        return self.create(np.zeros(shape, dtype=dtype))

    def ones(self, shape, dtype=np.float32) -> NumpyNDArray:
        return self.create(np.ones(shape, dtype=dtype))

    def attach_internal(self, resource_id: str, resource) -> None:
        with self._lock:
            self._check_open()
            self._resources[resource_id] = resource

    def detach_internal(self, resource_id: str) -> None:
        with self._lock:
            self._resources.pop(resource_id, None)

    def num_resources(self) -> int:
        with self._lock:
            return len(self._resources)

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            for child in list(self._children.values()):
                child.close()
            resources = list(self._resources.values())
            self._resources.clear()
            self._closed = True
        for resource in resources:
            resource.close()
        if self._parent is not None:
            self._parent._remove_child(self)

    def _remove_child(self, child: "NDManager") -> None:
        with self._lock:
            self._children.pop(id(child), None)

    def __enter__(self) -> "NDManager":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def __repr__(self) -> str:
        return f"NDManager(device={self._device}, resources={self.num_resources()})"
