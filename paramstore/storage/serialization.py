"""Binary codec for arrays written into parameter streams."""

import io
import struct
from typing import BinaryIO, Optional, Tuple

import msgpack
import numpy as np

MAGIC = b"PSND"


def _read_exact(stream: BinaryIO, size: int) -> bytes:
    data = stream.read(size)
    if len(data) != size:
        raise EOFError(f"Expected {size} bytes, got {len(data)}")
    return data


def write_array(stream: BinaryIO, array: np.ndarray, name: Optional[str] = None) -> None:
    """
    Write an array to a binary stream.

    Layout:
        magic (4 bytes)
        header length (uint32, little endian)
        msgpack header {"name", "dtype", "shape"}
        data length (uint64, little endian)
        raw C-order bytes
    """
    array = np.ascontiguousarray(array)
    header = msgpack.packb({
        "name": name,
        "dtype": array.dtype.str,
        "shape": list(array.shape),
    })
    stream.write(MAGIC)
    stream.write(struct.pack("<I", len(header)))
    stream.write(header)

    data = array.tobytes()
    stream.write(struct.pack("<Q", len(data)))
    stream.write(data)


def read_array(stream: BinaryIO) -> Tuple[Optional[str], np.ndarray]:
    """
    Read an array written by ``write_array``.

    Returns:
        Tuple of (name, array)

    Raises:
        EOFError: If the stream ends early
        ValueError: If the stream does not start with an array record
    """
    magic = _read_exact(stream, len(MAGIC))
    if magic != MAGIC:
        raise ValueError(f"Invalid array record marker: {magic!r}")

    header_len = struct.unpack("<I", _read_exact(stream, 4))[0]
    header = msgpack.unpackb(_read_exact(stream, header_len))
    dtype = np.dtype(header["dtype"])
    shape = tuple(header["shape"])

    data_len = struct.unpack("<Q", _read_exact(stream, 8))[0]
    expected = int(np.prod(shape, dtype=np.int64)) * dtype.itemsize
    if data_len != expected:
        raise ValueError(f"Array payload is {data_len} bytes, header implies {expected}")
    data = _read_exact(stream, data_len)

    array = np.frombuffer(data, dtype=dtype).reshape(shape).copy()
    return header.get("name"), array


def encode_array(array: np.ndarray, name: Optional[str] = None) -> bytes:
    buffer = io.BytesIO()
    write_array(buffer, array, name)
    return buffer.getvalue()


def decode_array(data: bytes) -> Tuple[Optional[str], np.ndarray]:
    return read_array(io.BytesIO(data))
