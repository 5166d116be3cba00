"""Domain records for game configuration, randomness requests and awards."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class RequestKind(str, Enum):
    SPAWN = "spawn"
    THROW = "throw"

    @property
    def code(self) -> int:
        return 0 if self is RequestKind.SPAWN else 1


class RequestStatus(str, Enum):
    PENDING = "pending"
    READY = "ready"
    FULFILLED = "fulfilled"


@dataclass
class GameConfig:
    authority: str = ""
    treasury: str = ""
    ball_prices: list[int] = field(default_factory=list)
    catch_rates: list[int] = field(default_factory=list)
    max_active: int = 0
    creature_id_counter: int = 0
    request_counter: int = 0
    total_revenue: int = 0
    total_withdrawn: int = 0
    is_initialized: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "authority": self.authority,
            "treasury": self.treasury,
            "ballPrices": list(self.ball_prices),
            "catchRates": list(self.catch_rates),
            "maxActive": self.max_active,
            "creatureIdCounter": self.creature_id_counter,
            "requestCounter": self.request_counter,
            "totalRevenue": self.total_revenue,
            "totalWithdrawn": self.total_withdrawn,
            "isInitialized": self.is_initialized,
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> GameConfig:
        return cls(
            authority=payload["authority"],
            treasury=payload.get("treasury", ""),
            ball_prices=[int(price) for price in payload["ballPrices"]],
            catch_rates=[int(rate) for rate in payload["catchRates"]],
            max_active=int(payload["maxActive"]),
            creature_id_counter=int(payload["creatureIdCounter"]),
            request_counter=int(payload["requestCounter"]),
            total_revenue=int(payload["totalRevenue"]),
            total_withdrawn=int(payload.get("totalWithdrawn", 0)),
            is_initialized=bool(payload["isInitialized"]),
        )


@dataclass
class RequestRecord:
    """One outstanding (or consumed) oracle call.

    ``creature_id`` is the creature a throw targeted; it is 0 for spawns.
    """

    kind: RequestKind
    requester: str
    slot_index: int
    item_tier: int
    seed: bytes
    request_id: int
    creature_id: int = 0
    is_fulfilled: bool = False
    created_at: int = 0

    @property
    def seed_hex(self) -> str:
        return self.seed.hex()

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "requester": self.requester,
            "slotIndex": self.slot_index,
            "itemTier": self.item_tier,
            "seed": self.seed_hex,
            "requestId": self.request_id,
            "creatureId": self.creature_id,
            "isFulfilled": self.is_fulfilled,
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> RequestRecord:
        return cls(
            kind=RequestKind(payload["kind"]),
            requester=payload["requester"],
            slot_index=int(payload["slotIndex"]),
            item_tier=int(payload["itemTier"]),
            seed=bytes.fromhex(payload["seed"]),
            request_id=int(payload["requestId"]),
            creature_id=int(payload.get("creatureId", 0)),
            is_fulfilled=bool(payload["isFulfilled"]),
            created_at=int(payload.get("createdAt", 0)),
        )


@dataclass(frozen=True)
class UnsettledAward:
    asset_id: str
    winner: str
    request_id: int
    reason: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "assetId": self.asset_id,
            "winner": self.winner,
            "requestId": self.request_id,
            "reason": self.reason,
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> UnsettledAward:
        return cls(
            asset_id=payload["assetId"],
            winner=payload["winner"],
            request_id=int(payload["requestId"]),
            reason=payload["reason"],
        )


@dataclass(frozen=True)
class CreatedIdentity:
    token: str
    identity: str
