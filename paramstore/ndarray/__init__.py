"""Array abstraction and the numpy backend."""

from paramstore.ndarray.device import Device
from paramstore.ndarray.base import NDArray
from paramstore.ndarray.numpy_array import NumpyNDArray
from paramstore.ndarray.manager import NDManager

__all__ = ["Device", "NDArray", "NumpyNDArray", "NDManager"]
