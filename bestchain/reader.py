from __future__ import annotations

import logging
from typing import BinaryIO, Iterator

import numpy as np

from .chain import HeaderParseError
from .config import CONFIG, ScanConfig
from .models import HEADER_SIZE, Header, hash256


logger = logging.getLogger(__name__)

# Bitcoin block header wire layout, all integers little-endian.
HEADER_DTYPE = np.dtype(
    [
        ("version", "<u4"),
        ("prev_hash", "V32"),
        ("merkle_root", "V32"),
        ("timestamp", "<u4"),
        ("bits", "<u4"),
        ("nonce", "<u4"),
    ]
)
assert HEADER_DTYPE.itemsize == HEADER_SIZE


def _read_up_to(stream: BinaryIO, size: int) -> bytes:
    # Unbuffered streams may hand back less than asked for before EOF.
    chunks: list[bytes] = []
    remaining = size
    while remaining > 0:
        chunk = stream.read(remaining)
        if not chunk:
            break
        chunks.append(chunk)
        remaining -= len(chunk)
    return b"".join(chunks)


def decode_records(data: bytes) -> list[Header]:
    if len(data) % HEADER_SIZE:
        raise HeaderParseError(f"Header data length {len(data)} is not a multiple of {HEADER_SIZE}")

    records = np.frombuffer(data, dtype=HEADER_DTYPE)
    view = memoryview(data)
    headers: list[Header] = []
    for i, (prev_hash, bits) in enumerate(zip(records["prev_hash"], records["bits"].tolist())):
        raw = view[i * HEADER_SIZE : (i + 1) * HEADER_SIZE]
        headers.append(Header(hash=hash256(raw), prev_hash=prev_hash.tobytes(), bits=bits))
    return headers


def parse_header(raw: bytes) -> Header:
    if len(raw) != HEADER_SIZE:
        raise HeaderParseError(f"Header must be exactly {HEADER_SIZE} bytes, got {len(raw)}")
    return Header.from_bytes(raw)


def read_headers(stream: BinaryIO, config: ScanConfig = CONFIG) -> Iterator[Header]:
    """Yield every header of a stream of back-to-back 80-byte records.

    Raises HeaderParseError when the stream ends inside a record.
    """
    batch_bytes = HEADER_SIZE * config.read_batch
    offset = 0
    while True:
        data = _read_up_to(stream, batch_bytes)
        if not data:
            break

        whole = len(data) - len(data) % HEADER_SIZE
        if whole != len(data):
            raise HeaderParseError(
                f"Truncated header at byte offset {offset + whole}: "
                f"got {len(data) - whole} of {HEADER_SIZE} bytes"
            )

        yield from decode_records(data)
        offset += len(data)
        if len(data) < batch_bytes:
            break

    logger.info("Read %d headers (%d bytes)", offset // HEADER_SIZE, offset)
