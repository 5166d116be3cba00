"""Fixed-capacity creature slot registry."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any

from .checked import U8_MAX, checked_add, checked_sub
from .constants import MAX_COORDINATE, MAX_SLOTS, MAX_THROW_ATTEMPTS
from .errors import InvalidCoordinate, InvalidSlotIndex, SlotAlreadyOccupied, SlotNotActive


@dataclass(frozen=True)
class CreatureSlot:
    is_active: bool = False
    creature_id: int = 0
    pos_x: int = 0
    pos_y: int = 0
    throw_attempts: int = 0
    spawn_timestamp: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "isActive": self.is_active,
            "creatureId": self.creature_id,
            "posX": self.pos_x,
            "posY": self.pos_y,
            "throwAttempts": self.throw_attempts,
            "spawnTimestamp": self.spawn_timestamp,
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> CreatureSlot:
        return cls(
            is_active=bool(payload["isActive"]),
            creature_id=int(payload["creatureId"]),
            pos_x=int(payload["posX"]),
            pos_y=int(payload["posY"]),
            throw_attempts=int(payload["throwAttempts"]),
            spawn_timestamp=int(payload["spawnTimestamp"]),
        )


EMPTY_SLOT = CreatureSlot()


def validate_coordinates(pos_x: int, pos_y: int, max_coordinate: int = MAX_COORDINATE) -> None:
    for value in (pos_x, pos_y):
        if value < 0 or value > max_coordinate:
            raise InvalidCoordinate(f"Coordinate {value} must be within 0..{max_coordinate}")


class SlotRegistry:
    """Slots addressed by index, with ``active_count`` kept in step.

    Slot records are immutable values, so reading one never aliases the
    registry's storage.
    """

    def __init__(
        self,
        capacity: int = MAX_SLOTS,
        max_attempts: int = MAX_THROW_ATTEMPTS,
        slots: list[CreatureSlot] | None = None,
        active_count: int = 0,
    ) -> None:
        self.capacity = capacity
        self.max_attempts = max_attempts
        self._slots = list(slots) if slots is not None else [EMPTY_SLOT] * capacity
        if len(self._slots) != capacity:
            raise ValueError(f"expected {capacity} slots, got {len(self._slots)}")
        self.active_count = active_count

    def __len__(self) -> int:
        return self.capacity

    def __iter__(self):
        return iter(self._slots)

    def validate_index(self, index: int) -> None:
        if index < 0 or index >= self.capacity:
            raise InvalidSlotIndex(f"Slot index {index} must be within 0..{self.capacity - 1}")

    def get(self, index: int) -> CreatureSlot:
        self.validate_index(index)
        return self._slots[index]

    def require_active(self, index: int) -> CreatureSlot:
        slot = self.get(index)
        if not slot.is_active:
            raise SlotNotActive(f"Slot {index} has no active creature")
        return slot

    def require_empty(self, index: int) -> None:
        if self.get(index).is_active:
            raise SlotAlreadyOccupied(f"Slot {index} is already occupied")

    def occupy(self, index: int, creature_id: int, pos_x: int, pos_y: int, spawn_timestamp: int) -> CreatureSlot:
        """Place a fresh creature and return whatever the slot held before."""
        previous = self.get(index)
        if not previous.is_active:
            self.active_count = checked_add(self.active_count, 1, U8_MAX)
        self._slots[index] = CreatureSlot(
            is_active=True,
            creature_id=creature_id,
            pos_x=pos_x,
            pos_y=pos_y,
            throw_attempts=0,
            spawn_timestamp=spawn_timestamp,
        )
        return previous

    def clear(self, index: int) -> CreatureSlot:
        previous = self.require_active(index)
        self._slots[index] = EMPTY_SLOT
        self.active_count = checked_sub(self.active_count, 1)
        return previous

    def move(self, index: int, pos_x: int, pos_y: int) -> CreatureSlot:
        """Relocate an active creature with a fresh attempt budget; return the old record."""
        previous = self.require_active(index)
        self._slots[index] = replace(previous, pos_x=pos_x, pos_y=pos_y, throw_attempts=0)
        return previous

    def record_miss(self, index: int) -> CreatureSlot:
        slot = self.require_active(index)
        updated = replace(slot, throw_attempts=min(slot.throw_attempts + 1, self.max_attempts))
        self._slots[index] = updated
        return updated

    def to_dict(self) -> dict[str, Any]:
        return {
            "capacity": self.capacity,
            "maxAttempts": self.max_attempts,
            "activeCount": self.active_count,
            "slots": [slot.to_dict() for slot in self._slots],
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> SlotRegistry:
        return cls(
            capacity=int(payload["capacity"]),
            max_attempts=int(payload["maxAttempts"]),
            slots=[CreatureSlot.from_dict(slot) for slot in payload["slots"]],
            active_count=int(payload["activeCount"]),
        )
