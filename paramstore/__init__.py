"""
paramstore - per-device parameter replicas for data-parallel training.

This package provides:
- ParameterStore: lazily places parameters on devices and syncs gradients
- ParameterServer / LocalParameterServer: the synchronization backend
- Embedding: an item-to-vector layer built on the store
- StoreConfig: configuration for the store and its collaborators
"""

from paramstore.utils.config import StoreConfig
from paramstore.ndarray import Device, NDArray, NDManager
from paramstore.nn import Embedding, EmbeddingConfig, Parameter
from paramstore.training import LocalParameterServer, ParameterServer, ParameterStore

__version__ = "0.1.0"
__all__ = [
    "ParameterStore",
    "ParameterServer",
    "LocalParameterServer",
    "Embedding",
    "EmbeddingConfig",
    "Parameter",
    "Device",
    "NDArray",
    "NDManager",
    "StoreConfig",
]
