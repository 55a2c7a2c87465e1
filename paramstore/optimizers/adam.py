"""Adam optimizer with bias correction."""

from typing import Any, Dict, Optional

import numpy as np

from paramstore.optimizers.base import BaseOptimizer


class AdamOptimizer(BaseOptimizer):
    """
    Adam (Kingma & Ba, 2014).

    The bias-correction step is the number of updates applied to the
    parameter so far, tracked per parameter id by the base class.
    """

    def __init__(
        self,
        learning_rate: float = 0.001,
        beta1: float = 0.9,
        beta2: float = 0.999,
        epsilon: float = 1e-8,
        rescale_grad: float = 1.0,
        clip_grad: Optional[float] = None
    ):
        super().__init__(learning_rate, rescale_grad, clip_grad)
        self.beta1 = beta1
        self.beta2 = beta2
        self.epsilon = epsilon

    @property
    def name(self) -> str:
        return "adam"

    def _apply(
        self,
        parameter_id: str,
        weight: np.ndarray,
        grad: np.ndarray
    ) -> np.ndarray:
        m = self._get_or_create_state(parameter_id, "m", weight.shape, weight.dtype)
        v = self._get_or_create_state(parameter_id, "v", weight.shape, weight.dtype)
        t = self.get_update_count(parameter_id)

        m[:] = self.beta1 * m + (1 - self.beta1) * grad
        v[:] = self.beta2 * v + (1 - self.beta2) * np.square(grad)

        m_hat = m / (1 - self.beta1 ** t)
        v_hat = v / (1 - self.beta2 ** t)
        return weight - self.learning_rate * m_hat / (np.sqrt(v_hat) + self.epsilon)

    def hyperparameters(self) -> Dict[str, Any]:
        params = super().hyperparameters()
        params.update(beta1=self.beta1, beta2=self.beta2, epsilon=self.epsilon)
        return params
