"""Weight initialization strategies."""

from typing import Tuple

import numpy as np

from paramstore.exceptions import ConfigurationError


def initialize_array(
    shape: Tuple[int, ...],
    init_strategy: str = "normal",
    init_scale: float = 0.01,
    dtype=np.float32
) -> np.ndarray:
    """
    Create a host array for a new parameter.

    Args:
        shape: Array shape
        init_strategy: "zeros", "ones", "random", "normal", "xavier" or "he"
        init_scale: Scale for random/normal initialization
        dtype: Data type

    Returns:
        Initialized numpy array

    Raises:
        ConfigurationError: For an unknown strategy
    """
    shape = tuple(int(d) for d in shape)
    if init_strategy == "zeros":
        return np.zeros(shape, dtype=dtype)
    elif init_strategy == "ones":
        return np.ones(shape, dtype=dtype)
    elif init_strategy == "random":
        return ((np.random.random(shape) - 0.5) * 2 * init_scale).astype(dtype)
    elif init_strategy == "normal":
        return (np.random.randn(*shape) * init_scale).astype(dtype)
    elif init_strategy == "xavier":
        fan_in = shape[0] if len(shape) > 0 else 1
        fan_out = shape[1] if len(shape) > 1 else 1
        std = np.sqrt(2.0 / (fan_in + fan_out))
        return (np.random.randn(*shape) * std).astype(dtype)
    elif init_strategy == "he":
        fan_in = shape[0] if len(shape) > 0 else 1
        std = np.sqrt(2.0 / max(fan_in, 1))
        return (np.random.randn(*shape) * std).astype(dtype)
    else:
        raise ConfigurationError(f"Unknown init strategy: {init_strategy}")
