import random

import pytest

from catchgame.backend.models import RequestKind
from catchgame.backend.randomness import (
    catch_roll,
    is_caught,
    make_seed,
    pool_index,
    relocation_position,
    spawn_position,
)


def _randomness(catch_value: int = 0, selection_value: int = 0, relocate_x: int = 0, relocate_y: int = 0) -> bytes:
    data = bytearray(64)
    data[0:8] = catch_value.to_bytes(8, "little")
    data[8:16] = selection_value.to_bytes(8, "little")
    data[16:18] = relocate_x.to_bytes(2, "little")
    data[18:20] = relocate_y.to_bytes(2, "little")
    return bytes(data)


def test_spawn_position_reads_first_four_bytes_little_endian() -> None:
    data = bytearray(64)
    data[0:2] = (1005).to_bytes(2, "little")
    data[2:4] = (65535).to_bytes(2, "little")

    position = spawn_position(bytes(data))

    assert position.x == 5
    assert position.y == 535


def test_catch_roll_reduces_first_eight_bytes_mod_100() -> None:
    randomness = _randomness(catch_value=12_345)

    assert catch_roll(randomness) == 45
    assert is_caught(randomness, 46) is True
    assert is_caught(randomness, 45) is False


def test_zero_rate_never_catches_and_full_rate_always_catches() -> None:
    rng = random.Random(11)
    for _ in range(200):
        randomness = rng.randbytes(64)
        assert is_caught(randomness, 0) is False
        assert is_caught(randomness, 100) is True


def test_caught_matches_roll_below_rate_for_every_tier_rate() -> None:
    rng = random.Random(3)
    for _ in range(200):
        randomness = rng.randbytes(64)
        expected_roll = int.from_bytes(randomness[0:8], "little") % 100
        for rate in (2, 20, 50, 99):
            assert is_caught(randomness, rate) == (expected_roll < rate)


def test_pool_index_reads_selection_bytes() -> None:
    assert pool_index(_randomness(selection_value=7), 3) == 1
    assert pool_index(_randomness(selection_value=7), 1) == 0


def test_pool_index_rejects_empty_pool() -> None:
    with pytest.raises(ValueError):
        pool_index(_randomness(), 0)


def test_relocation_position_reads_bytes_16_to_20() -> None:
    position = relocation_position(_randomness(relocate_x=1234, relocate_y=7))

    assert position.x == 234
    assert position.y == 7


def test_throw_decisions_do_not_share_byte_ranges() -> None:
    rng = random.Random(5)
    base = rng.randbytes(64)

    other_selection = base[:8] + rng.randbytes(56)
    assert catch_roll(other_selection) == catch_roll(base)

    other_roll = rng.randbytes(8) + base[8:16] + rng.randbytes(48)
    assert pool_index(other_roll, 17) == pool_index(base, 17)

    other_roll_and_selection = rng.randbytes(16) + base[16:20] + rng.randbytes(44)
    assert relocation_position(other_roll_and_selection) == relocation_position(base)


def test_positions_stay_within_bounds() -> None:
    rng = random.Random(9)
    for _ in range(200):
        randomness = rng.randbytes(64)
        for position in (spawn_position(randomness), relocation_position(randomness)):
            assert 0 <= position.x <= 999
            assert 0 <= position.y <= 999


def test_make_seed_layout() -> None:
    seed = make_seed(258, RequestKind.THROW)

    assert len(seed) == 32
    assert seed[0:8] == (258).to_bytes(8, "little")
    assert seed[8] == 1
    assert seed[9:24] == bytes(15)
    assert seed[24:32] == b"pkblgame"
    assert make_seed(258, RequestKind.SPAWN) != seed
    assert make_seed(259, RequestKind.THROW) != seed
