"""Neural-network building blocks."""

from paramstore.nn.parameter import Parameter
from paramstore.nn.embedding import Embedding, EmbeddingConfig
from paramstore.nn.initializer import initialize_array

__all__ = ["Parameter", "Embedding", "EmbeddingConfig", "initialize_array"]
