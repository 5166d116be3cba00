import pytest

from catchgame.backend.errors import InvalidCoordinate, InvalidSlotIndex, SlotAlreadyOccupied, SlotNotActive
from catchgame.backend.slots import EMPTY_SLOT, SlotRegistry, validate_coordinates


def _active_count(registry: SlotRegistry) -> int:
    return sum(1 for slot in registry if slot.is_active)


def test_new_registry_has_fixed_capacity_of_empty_slots() -> None:
    registry = SlotRegistry()

    assert len(registry) == 20
    assert registry.active_count == 0
    assert all(slot == EMPTY_SLOT for slot in registry)


def test_occupy_and_clear_keep_active_count_in_step() -> None:
    registry = SlotRegistry()

    registry.occupy(0, creature_id=1, pos_x=10, pos_y=20, spawn_timestamp=100)
    registry.occupy(5, creature_id=2, pos_x=30, pos_y=40, spawn_timestamp=101)
    assert registry.active_count == 2 == _active_count(registry)

    cleared = registry.clear(0)

    assert cleared.creature_id == 1
    assert registry.get(0) == EMPTY_SLOT
    assert registry.active_count == 1 == _active_count(registry)


def test_occupy_over_active_slot_does_not_double_count() -> None:
    registry = SlotRegistry()
    registry.occupy(3, creature_id=1, pos_x=1, pos_y=1, spawn_timestamp=1)

    previous = registry.occupy(3, creature_id=2, pos_x=2, pos_y=2, spawn_timestamp=2)

    assert previous.creature_id == 1
    assert registry.get(3).creature_id == 2
    assert registry.active_count == 1


def test_slot_guards() -> None:
    registry = SlotRegistry()
    registry.occupy(1, creature_id=7, pos_x=0, pos_y=0, spawn_timestamp=0)

    with pytest.raises(InvalidSlotIndex):
        registry.get(20)
    with pytest.raises(InvalidSlotIndex):
        registry.get(-1)
    with pytest.raises(SlotAlreadyOccupied):
        registry.require_empty(1)
    with pytest.raises(SlotNotActive):
        registry.require_active(2)
    with pytest.raises(SlotNotActive):
        registry.clear(2)


def test_record_miss_and_move() -> None:
    registry = SlotRegistry(max_attempts=3)
    registry.occupy(0, creature_id=4, pos_x=5, pos_y=6, spawn_timestamp=0)

    registry.record_miss(0)
    updated = registry.record_miss(0)
    assert updated.throw_attempts == 2

    previous = registry.move(0, 700, 800)

    assert (previous.pos_x, previous.pos_y, previous.throw_attempts) == (5, 6, 2)
    moved = registry.get(0)
    assert (moved.pos_x, moved.pos_y, moved.throw_attempts) == (700, 800, 0)
    assert moved.creature_id == 4
    assert moved.is_active is True


def test_validate_coordinates_bounds() -> None:
    validate_coordinates(0, 999)

    with pytest.raises(InvalidCoordinate):
        validate_coordinates(1000, 0)
    with pytest.raises(InvalidCoordinate):
        validate_coordinates(0, -1)


def test_registry_survives_serialization() -> None:
    registry = SlotRegistry()
    registry.occupy(2, creature_id=9, pos_x=11, pos_y=12, spawn_timestamp=13)
    registry.record_miss(2)

    restored = SlotRegistry.from_dict(registry.to_dict())

    assert restored.get(2) == registry.get(2)
    assert restored.active_count == 1
