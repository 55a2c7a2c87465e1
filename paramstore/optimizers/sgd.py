"""SGD optimizer with momentum and weight decay."""

from typing import Any, Dict, Optional

import numpy as np

from paramstore.optimizers.base import BaseOptimizer


class SGDOptimizer(BaseOptimizer):
    """
    Stochastic gradient descent.

    Update rule:
        grad = rescale(grad) + weight_decay * weight
        velocity = momentum * velocity + grad      (momentum > 0)
        weight = weight - lr * velocity
    """

    def __init__(
        self,
        learning_rate: float = 0.01,
        momentum: float = 0.0,
        weight_decay: float = 0.0,
        rescale_grad: float = 1.0,
        clip_grad: Optional[float] = None
    ):
        super().__init__(learning_rate, rescale_grad, clip_grad)
        if momentum < 0:
            raise ValueError("momentum must be non-negative")
        self.momentum = momentum
        self.weight_decay = weight_decay

    @property
    def name(self) -> str:
        return "sgd"

    def _apply(
        self,
        parameter_id: str,
        weight: np.ndarray,
        grad: np.ndarray
    ) -> np.ndarray:
        if self.weight_decay != 0:
            grad = grad + self.weight_decay * weight

        if self.momentum == 0:
            return weight - self.learning_rate * grad

        velocity = self._get_or_create_state(
            parameter_id, "velocity", weight.shape, weight.dtype
        )
        velocity[:] = self.momentum * velocity + grad
        return weight - self.learning_rate * velocity

    def hyperparameters(self) -> Dict[str, Any]:
        params = super().hyperparameters()
        params.update(momentum=self.momentum, weight_decay=self.weight_decay)
        return params
