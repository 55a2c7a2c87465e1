"""Optimizers applied by parameter servers."""

from paramstore.optimizers.base import BaseOptimizer
from paramstore.optimizers.sgd import SGDOptimizer
from paramstore.optimizers.adam import AdamOptimizer

__all__ = [
    "BaseOptimizer",
    "SGDOptimizer",
    "AdamOptimizer",
    "create_optimizer",
]


def create_optimizer(name: str, **kwargs) -> BaseOptimizer:
    """
    Factory function to create optimizer by name.

    Args:
        name: Optimizer name ("sgd", "adam")
        **kwargs: Optimizer-specific parameters

    Returns:
        Optimizer instance
    """
    optimizers = {
        "sgd": SGDOptimizer,
        "adam": AdamOptimizer,
    }

    if name.lower() not in optimizers:
        raise ValueError(f"Unknown optimizer: {name}. Available: {list(optimizers.keys())}")

    return optimizers[name.lower()](**kwargs)
