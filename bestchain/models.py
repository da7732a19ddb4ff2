from __future__ import annotations

import hashlib
import struct
from dataclasses import dataclass, field


HEADER_SIZE = 80
HASH_SIZE = 32

PREV_HASH_SLICE = slice(4, 36)
BITS_SLICE = slice(72, 76)


def pack_header(
    prev_hash: bytes,
    bits: int,
    nonce: int = 0,
    version: int = 1,
    merkle_root: bytes = bytes(HASH_SIZE),
    timestamp: int = 0,
) -> bytes:
    if len(prev_hash) != HASH_SIZE or len(merkle_root) != HASH_SIZE:
        raise ValueError(f"Hashes must be {HASH_SIZE} bytes")
    return struct.pack("<I32s32sIII", version, prev_hash, merkle_root, timestamp, bits, nonce)


def hash256(data: bytes) -> bytes:
    return hashlib.sha256(hashlib.sha256(data).digest()).digest()


def display_hex(digest: bytes) -> str:
    """Hex of a little-endian stored hash as block explorers print it."""
    return digest[::-1].hex()


def bits_to_target(bits: int) -> int:
    exponent = bits >> 24
    mantissa = bits & 0x007FFFFF
    # Sign bit set means a negative target, which carries no work.
    if bits & 0x00800000 and mantissa:
        return 0
    if exponent <= 3:
        return mantissa >> (8 * (3 - exponent))
    return mantissa << (8 * (exponent - 3))


def block_work(target: int) -> int:
    if target <= 0:
        return 0
    return (1 << 256) // (target + 1)


@dataclass(frozen=True)
class Header:
    hash: bytes
    prev_hash: bytes
    bits: int

    @classmethod
    def from_bytes(cls, raw: bytes) -> "Header":
        if len(raw) != HEADER_SIZE:
            raise ValueError(f"Header must be {HEADER_SIZE} bytes, got {len(raw)}")
        return cls(
            hash=hash256(raw),
            prev_hash=bytes(raw[PREV_HASH_SLICE]),
            bits=int.from_bytes(raw[BITS_SLICE], "little"),
        )

    @property
    def display_hash(self) -> str:
        return display_hex(self.hash)

    @property
    def display_prev_hash(self) -> str:
        return display_hex(self.prev_hash)

    def work(self, mode: str = "bits") -> int:
        if mode == "bits":
            return self.bits
        if mode == "target":
            return block_work(bits_to_target(self.bits))
        raise ValueError(f"Unknown work mode '{mode}'")


# Nodes compare by identity; field-wise eq/repr would recurse up the whole
# parent chain.
@dataclass(eq=False)
class ChainNode:
    header: Header
    parent: ChainNode | None = field(default=None, repr=False)
    height: int = 0
    work: int | None = None

    @property
    def hash(self) -> bytes:
        return self.header.hash

    def is_root(self) -> bool:
        return self.parent is None

    def ancestors(self):
        """Yield this node and every ancestor up to its root."""
        node: ChainNode | None = self
        while node is not None:
            yield node
            node = node.parent
