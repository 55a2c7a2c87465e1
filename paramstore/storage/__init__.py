"""Persistence helpers for paramstore."""

from paramstore.storage.serialization import (
    decode_array,
    encode_array,
    read_array,
    write_array,
)

__all__ = ["write_array", "read_array", "encode_array", "decode_array"]
