"""Base optimizer interface used by parameter servers."""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import numpy as np


class BaseOptimizer(ABC):
    """
    Base class for all optimizers.

    Optimizers turn an aggregated gradient into a new weight. Per-parameter
    state (momentum, moments) is keyed by the parameter id so one optimizer
    serves every parameter a server holds.
    """

    def __init__(
        self,
        learning_rate: float = 0.01,
        rescale_grad: float = 1.0,
        clip_grad: Optional[float] = None
    ):
        """
        Initialize optimizer.

        Args:
            learning_rate: Learning rate for updates
            rescale_grad: Multiplier applied to every incoming gradient,
                e.g. 1 / batch_size
            clip_grad: Clip gradient values to [-clip_grad, clip_grad]
        """
        self.learning_rate = learning_rate
        self.rescale_grad = rescale_grad
        self.clip_grad = clip_grad
        self._state: Dict[str, np.ndarray] = {}
        self._update_counts: Dict[str, int] = {}

    def update(
        self,
        parameter_id: str,
        weight: np.ndarray,
        grad: np.ndarray
    ) -> np.ndarray:
        """
        Apply one update and return the new weight.

        Args:
            parameter_id: Identifier of the parameter
            weight: Current weight values
            grad: Aggregated gradient

        Returns:
            Updated weight array
        """
        self._update_counts[parameter_id] = self._update_counts.get(parameter_id, 0) + 1
        return self._apply(parameter_id, weight, self._preprocess(grad))

    @abstractmethod
    def _apply(
        self,
        parameter_id: str,
        weight: np.ndarray,
        grad: np.ndarray
    ) -> np.ndarray:
        pass

    def _preprocess(self, grad: np.ndarray) -> np.ndarray:
        grad = grad * self.rescale_grad
        if self.clip_grad is not None:
            grad = np.clip(grad, -self.clip_grad, self.clip_grad)
        return grad

    def get_update_count(self, parameter_id: str) -> int:
        return self._update_counts.get(parameter_id, 0)

    def _get_or_create_state(
        self,
        parameter_id: str,
        state_name: str,
        shape: tuple,
        dtype: np.dtype = np.float32,
        init_value: float = 0.0
    ) -> np.ndarray:
        key = f"{parameter_id}_{state_name}"
        if key not in self._state:
            self._state[key] = np.full(shape, init_value, dtype=dtype)
        return self._state[key]

    def get_state(self) -> Dict[str, Any]:
        """Return optimizer state for checkpointing."""
        return {
            "type": self.name,
            "hyperparameters": self.hyperparameters(),
            "update_counts": dict(self._update_counts),
            "state": {k: v.copy() for k, v in self._state.items()},
        }

    def set_state(self, state: Dict[str, Any]):
        """Restore optimizer state from ``get_state`` output."""
        for key, value in state.get("hyperparameters", {}).items():
            setattr(self, key, value)
        self._update_counts = dict(state.get("update_counts", {}))
        self._state = {k: v.copy() for k, v in state.get("state", {}).items()}

    def hyperparameters(self) -> Dict[str, Any]:
        return {
            "learning_rate": self.learning_rate,
            "rescale_grad": self.rescale_grad,
            "clip_grad": self.clip_grad,
        }

    def reset(self):
        self._state.clear()
        self._update_counts.clear()

    def remove_state(self, parameter_id: str):
        """Drop state for one parameter."""
        prefix = f"{parameter_id}_"
        for key in [k for k in self._state if k.startswith(prefix)]:
            del self._state[key]
        self._update_counts.pop(parameter_id, None)

    @property
    @abstractmethod
    def name(self) -> str:
        pass
