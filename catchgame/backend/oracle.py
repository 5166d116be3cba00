"""Randomness oracle contract and an in-memory implementation for local runs."""

from __future__ import annotations

from dataclasses import dataclass
import logging
import secrets
import threading
from typing import Protocol

from .constants import RANDOMNESS_LENGTH

logger = logging.getLogger(__name__)


class RandomnessRecord(Protocol):
    def fulfilled_randomness(self) -> bytes | None:
        """Return the 64 published bytes, or None while the oracle has not answered."""


class RandomnessOracle(Protocol):
    def request(self, seed: bytes) -> RandomnessRecord:
        """Ask the oracle for randomness tied to ``seed``."""

    def lookup(self, seed: bytes) -> RandomnessRecord | None:
        """Return the record previously created for ``seed``."""


@dataclass
class StoredRandomness:
    seed: bytes
    randomness: bytes | None = None

    def fulfilled_randomness(self) -> bytes | None:
        if self.randomness is None or len(self.randomness) != RANDOMNESS_LENGTH:
            return None
        return self.randomness


class InMemoryOracle:
    """Oracle stand-in that keeps records in process.

    With ``auto_fulfill`` every request is answered immediately from the
    operating system's CSPRNG; otherwise answers arrive through ``fulfill``.
    """

    def __init__(self, auto_fulfill: bool = False) -> None:
        self.auto_fulfill = auto_fulfill
        self._records: dict[bytes, StoredRandomness] = {}
        self._lock = threading.Lock()

    def request(self, seed: bytes) -> StoredRandomness:
        with self._lock:
            record = self._records.get(seed)
            if record is None:
                record = StoredRandomness(seed=seed)
                self._records[seed] = record
        if self.auto_fulfill:
            self.fulfill(seed)
        return record

    def lookup(self, seed: bytes) -> StoredRandomness | None:
        return self._records.get(seed)

    def fulfill(self, seed: bytes, randomness: bytes | None = None) -> StoredRandomness:
        if randomness is None:
            randomness = secrets.token_bytes(RANDOMNESS_LENGTH)
        if len(randomness) != RANDOMNESS_LENGTH:
            raise ValueError(f"randomness must be {RANDOMNESS_LENGTH} bytes")
        with self._lock:
            record = self._records.get(seed)
            if record is None:
                raise KeyError(seed.hex())
            if record.randomness is None:
                record.randomness = randomness
                logger.debug("Oracle fulfilled seed %s", seed.hex())
        return record

    def pending_seeds(self) -> list[bytes]:
        return [seed for seed, record in self._records.items() if record.fulfilled_randomness() is None]
