"""Aggregate game state and its initial builder."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from .constants import MAX_COORDINATE, MAX_SLOTS, MAX_THROW_ATTEMPTS, MAX_VAULT_SIZE, NUM_TIERS
from .errors import AlreadyInitialized, InvalidBallType, InvalidCatchRate, ZeroBallPrice
from .inventory import PlayerInventory
from .models import GameConfig, RequestRecord, UnsettledAward
from .slots import SlotRegistry
from .vault import CollectibleVault


def utc_now_ts() -> int:
    return int(datetime.now(timezone.utc).timestamp())


@dataclass
class GameState:
    config: GameConfig = field(default_factory=GameConfig)
    slots: SlotRegistry = field(default_factory=SlotRegistry)
    vault: CollectibleVault = field(default_factory=CollectibleVault)
    requests: dict[str, RequestRecord] = field(default_factory=dict)
    inventories: dict[str, PlayerInventory] = field(default_factory=dict)
    unsettled_awards: list[UnsettledAward] = field(default_factory=list)
    max_coordinate: int = MAX_COORDINATE
    version: int = 0

    def snapshot(self) -> GameState:
        return copy.deepcopy(self)

    def inventory_for(self, player: str) -> PlayerInventory | None:
        return self.inventories.get(player)

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "maxCoordinate": self.max_coordinate,
            "config": self.config.to_dict(),
            "slots": self.slots.to_dict(),
            "vault": self.vault.to_dict(),
            "requests": {seed: request.to_dict() for seed, request in self.requests.items()},
            "inventories": {player: inventory.to_dict() for player, inventory in self.inventories.items()},
            "unsettledAwards": [award.to_dict() for award in self.unsettled_awards],
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> GameState:
        return cls(
            config=GameConfig.from_dict(payload["config"]),
            slots=SlotRegistry.from_dict(payload["slots"]),
            vault=CollectibleVault.from_dict(payload["vault"]),
            requests={seed: RequestRecord.from_dict(item) for seed, item in payload.get("requests", {}).items()},
            inventories={
                player: PlayerInventory.from_dict(item) for player, item in payload.get("inventories", {}).items()
            },
            unsettled_awards=[UnsettledAward.from_dict(item) for item in payload.get("unsettledAwards", [])],
            max_coordinate=int(payload.get("maxCoordinate", MAX_COORDINATE)),
            version=int(payload.get("version", 0)),
        )


def validate_price_table(ball_prices: list[int]) -> None:
    if len(ball_prices) != NUM_TIERS:
        raise InvalidBallType(f"Expected {NUM_TIERS} ball prices, got {len(ball_prices)}")
    for price in ball_prices:
        if price <= 0:
            raise ZeroBallPrice()


def validate_rate_table(catch_rates: list[int]) -> None:
    if len(catch_rates) != NUM_TIERS:
        raise InvalidBallType(f"Expected {NUM_TIERS} catch rates, got {len(catch_rates)}")
    for rate in catch_rates:
        if rate < 0 or rate > 100:
            raise InvalidCatchRate(f"Catch rate {rate} must be within 0..100")


def build_initial_state(
    authority: str,
    ball_prices: list[int],
    catch_rates: list[int],
    treasury: str = "",
    current: GameState | None = None,
    slot_capacity: int = MAX_SLOTS,
    max_attempts: int = MAX_THROW_ATTEMPTS,
    vault_size: int = MAX_VAULT_SIZE,
) -> GameState:
    """Validate the initial tables and return a fresh, initialized game.

    Every check runs before anything is built, so a rejected call leaves no
    partial state behind.
    """
    if current is not None and current.config.is_initialized:
        raise AlreadyInitialized()
    validate_price_table(ball_prices)
    validate_rate_table(catch_rates)

    config = GameConfig(
        authority=authority,
        treasury=treasury,
        ball_prices=list(ball_prices),
        catch_rates=list(catch_rates),
        max_active=slot_capacity,
        is_initialized=True,
    )
    return GameState(
        config=config,
        slots=SlotRegistry(capacity=slot_capacity, max_attempts=max_attempts),
        vault=CollectibleVault(max_size=vault_size),
        version=1 if current is None else current.version + 1,
    )
