"""Embedding layer mapping items to learned vectors."""

from dataclasses import dataclass
from typing import Any, BinaryIO, Collection, Dict, Hashable, Optional, Tuple

import numpy as np

from paramstore.exceptions import (
    ConfigurationError,
    ItemNotFoundError,
    UnsupportedVersionError,
)
from paramstore.ndarray import NDArray, NDManager
from paramstore.nn.parameter import Parameter
from paramstore.utils.config import StoreConfig

DEFAULT_INDEX = 0


@dataclass
class EmbeddingConfig:
    """
    Settings for an Embedding layer.

    Attributes:
        items: Items that get their own embedding (required)
        embedding_size: Length of each embedding vector (required, > 0)
        use_default: Reserve index 0 for unknown items instead of failing
        dtype: Data type of the embedding weight
    """

    items: Optional[Collection[Hashable]] = None
    embedding_size: int = 0
    use_default: bool = True
    dtype: str = "float32"

    def validate(self) -> None:
        if self.items is None:
            raise ConfigurationError("You must specify the items to embed")
        if self.embedding_size <= 0:
            raise ConfigurationError("You must specify a positive embedding size")
        try:
            np.dtype(self.dtype)
        except TypeError:
            raise ConfigurationError(f"Invalid dtype: {self.dtype}") from None

    def build(self) -> "Embedding":
        """Validate and construct the layer."""
        self.validate()
        return Embedding(self)


class Embedding:
    """
    Maps a fixed collection of items to 1-D embedding vectors.

    Items get consecutive indices into an ``(num_items, embedding_size)``
    weight. With ``use_default`` index 0 is the shared embedding for any
    unknown item. A repeated item still takes a row; its last index wins.
    """

    VERSION = 1

    def __init__(self, config: EmbeddingConfig):
        self.embedding_size = config.embedding_size
        self.use_default = config.use_default
        self.dtype = np.dtype(config.dtype)

        self._embedder: Dict[Any, int] = {}
        num_items = 1 if self.use_default else 0
        for item in config.items:
            self._embedder[item] = num_items
            num_items += 1
        self.num_items = num_items

        self.embedding = Parameter("embedding", requires_gradient=True)

    @staticmethod
    def builder() -> EmbeddingConfig:
        return EmbeddingConfig()

    def get_direct_parameters(self):
        return [self.embedding]

    def parameter_shape(self, name: str) -> Tuple[int, int]:
        if name == "embedding":
            return (self.num_items, self.embedding_size)
        raise ConfigurationError(f"Invalid parameter name: {name}")

    def output_shape(self, input_shape: Tuple[int, ...]) -> Tuple[int, ...]:
        return tuple(input_shape) + (self.embedding_size,)

    def initialize(
        self,
        manager: NDManager,
        init_strategy: Optional[str] = None,
        init_scale: Optional[float] = None
    ) -> None:
        if init_strategy is not None:
            self.embedding.init_strategy = init_strategy
        if init_scale is not None:
            self.embedding.init_scale = init_scale
        self.embedding.initialize(manager, self.parameter_shape("embedding"), self.dtype)

    def initialize_from_config(self, manager: NDManager, config: StoreConfig) -> None:
        """Initialize the weight with the strategy and scale of a StoreConfig."""
        self.initialize(manager, config.init_strategy, config.init_scale)

    def embed(self, items):
        """
        Map an item, a sequence of items, or nested sequences to indices.

        Lists, tuples and numpy arrays are treated as sequences unless the
        tuple itself is a known item.

        Raises:
            ItemNotFoundError: If an item is unknown and use_default is off
        """
        try:
            return self._embedder[items]
        except (KeyError, TypeError):
            pass
        if isinstance(items, np.ndarray):
            return self.embed(items.tolist())
        if isinstance(items, (list, tuple)):
            return [self.embed(item) for item in items]
        if self.use_default:
            return DEFAULT_INDEX
        raise ItemNotFoundError(items)

    def forward(self, parameter_store, manager: NDManager, items) -> NDArray:
        """
        Look up embeddings for raw items.

        A single item returns shape ``(embedding_size,)``; a sequence of N
        items returns ``(N, embedding_size)``; an A x B nested sequence
        returns ``(A, B, embedding_size)``.
        """
        indices = manager.create(np.asarray(self.embed(items), dtype=np.int64))
        return self.forward_indices(parameter_store, indices)

    def forward_indices(self, parameter_store, indices: NDArray) -> NDArray:
        """Look up embeddings for an index array on its own device."""
        weight = parameter_store.get_value(self.embedding, indices.device)
        if indices.ndim == 0:
            result = weight.gather(indices.reshape(1))
            return result.reshape(self.embedding_size)
        return weight.gather(indices)

    def save_parameters(self, stream: BinaryIO) -> None:
        stream.write(bytes([self.VERSION]))
        self.embedding.save(stream)

    def load_parameters(self, manager: NDManager, stream: BinaryIO) -> None:
        data = stream.read(1)
        if not data:
            raise EOFError("Unexpected end of embedding stream")
        if data[0] != self.VERSION:
            raise UnsupportedVersionError(data[0])
        self.embedding.load(manager, stream)
