"""Parameter server interface and an in-process implementation."""

import threading
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from paramstore.ndarray import NDArray
from paramstore.optimizers import BaseOptimizer, create_optimizer
from paramstore.utils.config import StoreConfig
from paramstore.utils.logging import get_logger


class ParameterServer(ABC):
    """
    Distributed backend the parameter store synchronizes through.

    All array lists are ordered by device slot. Priorities are relative:
    a higher value should be served before a lower one.
    """

    @abstractmethod
    def init(self, parameter_id: str, arrays: Sequence[NDArray]) -> None:
        """
        Register the initial per-slot values of a parameter.

        Called once per slot with the same complete array list when a
        parameter is first materialized.
        """

    @abstractmethod
    def push(self, parameter_id: str, gradients: Sequence[NDArray], priority: int = 0) -> None:
        """Submit per-slot gradients of a parameter."""

    @abstractmethod
    def pull(self, parameter_id: str, weights: Sequence[NDArray], priority: int = 0) -> None:
        """Write the current value of a parameter into every array of ``weights``."""

    def close(self) -> None:
        pass


class LocalParameterServer(ParameterServer):
    """
    Single-process parameter server.

    Keeps one master copy per parameter. A push sums the gradients of all
    devices; the next pull applies the optimizer to the master once and
    broadcasts the result into the replicas.
    """

    def __init__(self, optimizer: BaseOptimizer):
        self._optimizer = optimizer
        self._weights: Dict[str, np.ndarray] = {}
        self._pending_grads: Dict[str, np.ndarray] = {}
        self._priorities: Dict[str, int] = {}
        self._lock = threading.RLock()
        self.logger = get_logger("local_ps")

        self._stats = {
            "total_inits": 0,
            "total_pushes": 0,
            "total_pulls": 0,
            "total_updates": 0,
        }

    @classmethod
    def from_config(cls, config: StoreConfig) -> "LocalParameterServer":
        optimizer = create_optimizer(config.optimizer, **config.get_optimizer_config())
        return cls(optimizer)

    @property
    def optimizer(self) -> BaseOptimizer:
        return self._optimizer

    def init(self, parameter_id: str, arrays: Sequence[NDArray]) -> None:
        if not arrays:
            raise ValueError(f"No arrays given to initialize {parameter_id}")
        with self._lock:
            self._stats["total_inits"] += 1
            if parameter_id in self._weights:
                return
            self._weights[parameter_id] = arrays[0].to_numpy()
            self.logger.debug(
                f"Registered {parameter_id} shape={arrays[0].shape} across {len(arrays)} devices"
            )

    def push(self, parameter_id: str, gradients: Sequence[NDArray], priority: int = 0) -> None:
        with self._lock:
            if parameter_id not in self._weights:
                raise KeyError(f"Parameter not initialized on server: {parameter_id}")
            self._stats["total_pushes"] += 1

            aggregated = None
            for grad in gradients:
                values = grad.to_numpy()
                aggregated = values if aggregated is None else aggregated + values
            if aggregated is None:
                return

            pending = self._pending_grads.get(parameter_id)
            self._pending_grads[parameter_id] = (
                aggregated if pending is None else pending + aggregated
            )
            self._priorities[parameter_id] = priority

    def pull(self, parameter_id: str, weights: Sequence[NDArray], priority: int = 0) -> None:
        with self._lock:
            if parameter_id not in self._weights:
                raise KeyError(f"Parameter not initialized on server: {parameter_id}")
            self._stats["total_pulls"] += 1

            grad = self._pending_grads.pop(parameter_id, None)
            if grad is not None:
                self._weights[parameter_id] = self._optimizer.update(
                    parameter_id, self._weights[parameter_id], grad
                )
                self._stats["total_updates"] += 1

            master = self._weights[parameter_id]
            for weight in weights:
                weight.set(master)

    def get(self, parameter_id: str) -> Optional[np.ndarray]:
        """Get a copy of the master value, or None if unknown."""
        with self._lock:
            weight = self._weights.get(parameter_id)
            return None if weight is None else weight.copy()

    def get_priority(self, parameter_id: str) -> Optional[int]:
        """Priority of the most recent push for ``parameter_id``."""
        with self._lock:
            return self._priorities.get(parameter_id)

    def get_parameter_ids(self) -> List[str]:
        with self._lock:
            return list(self._weights.keys())

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "num_parameters": len(self._weights),
                "pending_updates": len(self._pending_grads),
                **self._stats,
            }

    def close(self) -> None:
        with self._lock:
            self._weights.clear()
            self._pending_grads.clear()
            self._priorities.clear()
            self._optimizer.reset()

    def __contains__(self, parameter_id: str) -> bool:
        with self._lock:
            return parameter_id in self._weights

    def __len__(self) -> int:
        with self._lock:
            return len(self._weights)
