"""Per-player ball balances and lifetime counters."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .checked import U32_MAX, U64_MAX, checked_add
from .constants import NUM_TIERS
from .errors import InsufficientBalls, InvalidBallType


def validate_tier(tier: int) -> None:
    if tier < 0 or tier >= NUM_TIERS:
        raise InvalidBallType(f"Ball tier {tier} must be within 0..{NUM_TIERS - 1}")


@dataclass
class PlayerInventory:
    player: str
    balls: list[int] = field(default_factory=lambda: [0] * NUM_TIERS)
    total_purchased: int = 0
    total_throws: int = 0
    total_catches: int = 0

    def balance(self, tier: int) -> int:
        validate_tier(tier)
        return self.balls[tier]

    def credit(self, tier: int, quantity: int) -> None:
        validate_tier(tier)
        self.balls[tier] = checked_add(self.balls[tier], quantity, U32_MAX)

    def debit(self, tier: int, quantity: int = 1) -> None:
        validate_tier(tier)
        if self.balls[tier] < quantity:
            raise InsufficientBalls(f"Player holds {self.balls[tier]} balls of tier {tier}, needs {quantity}")
        self.balls[tier] -= quantity

    def record_purchase(self, tier: int, quantity: int) -> None:
        self.credit(tier, quantity)
        self.total_purchased = checked_add(self.total_purchased, quantity, U64_MAX)

    def record_throw(self) -> None:
        self.total_throws = checked_add(self.total_throws, 1, U64_MAX)

    def record_catch(self) -> None:
        self.total_catches = checked_add(self.total_catches, 1, U64_MAX)

    def to_dict(self) -> dict[str, Any]:
        return {
            "player": self.player,
            "balls": list(self.balls),
            "totalPurchased": self.total_purchased,
            "totalThrows": self.total_throws,
            "totalCatches": self.total_catches,
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> PlayerInventory:
        return cls(
            player=payload["player"],
            balls=[int(count) for count in payload["balls"]],
            total_purchased=int(payload["totalPurchased"]),
            total_throws=int(payload["totalThrows"]),
            total_catches=int(payload["totalCatches"]),
        )
