"""Derive independent game outcomes from one 64-byte oracle answer.

Each decision reads its own byte range so the outcomes stay independent:

- spawn position: bytes [0:2] and [2:4]
- catch roll: bytes [0:8]
- pool selection: bytes [8:16]
- relocation position: bytes [16:18] and [18:20]

Spawn requests only read the spawn range and throw requests only read the
catch, selection and relocation ranges.
"""

from __future__ import annotations

from dataclasses import dataclass

from .constants import MAX_COORDINATE, SEED_LENGTH, SEED_TAG
from .models import RequestKind

SPAWN_X_BYTES = slice(0, 2)
SPAWN_Y_BYTES = slice(2, 4)
CATCH_ROLL_BYTES = slice(0, 8)
POOL_SELECTION_BYTES = slice(8, 16)
RELOCATE_X_BYTES = slice(16, 18)
RELOCATE_Y_BYTES = slice(18, 20)


@dataclass(frozen=True)
class Position:
    x: int
    y: int


def _le(randomness: bytes, byte_range: slice) -> int:
    return int.from_bytes(randomness[byte_range], "little")


def spawn_position(randomness: bytes, max_coordinate: int = MAX_COORDINATE) -> Position:
    modulus = max_coordinate + 1
    return Position(
        x=_le(randomness, SPAWN_X_BYTES) % modulus,
        y=_le(randomness, SPAWN_Y_BYTES) % modulus,
    )


def catch_roll(randomness: bytes) -> int:
    return _le(randomness, CATCH_ROLL_BYTES) % 100


def is_caught(randomness: bytes, catch_rate: int) -> bool:
    return catch_roll(randomness) < catch_rate


def pool_index(randomness: bytes, count: int) -> int:
    """Index into the first ``count`` vault entries; ``count`` must be positive."""
    if count <= 0:
        raise ValueError("pool selection requires a non-empty pool")
    return _le(randomness, POOL_SELECTION_BYTES) % count


def relocation_position(randomness: bytes, max_coordinate: int = MAX_COORDINATE) -> Position:
    modulus = max_coordinate + 1
    return Position(
        x=_le(randomness, RELOCATE_X_BYTES) % modulus,
        y=_le(randomness, RELOCATE_Y_BYTES) % modulus,
    )


def make_seed(counter: int, kind: RequestKind) -> bytes:
    """Build the unique 32-byte oracle seed for request number ``counter``."""
    seed = bytearray(SEED_LENGTH)
    seed[0:8] = counter.to_bytes(8, "little")
    seed[8] = kind.code
    seed[24:32] = SEED_TAG
    return bytes(seed)
