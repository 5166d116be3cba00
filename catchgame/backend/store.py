"""Persistence interfaces and implementations for the shared game record."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
import json
import logging
import threading
from typing import Any, Callable, Iterable, Protocol
import uuid

from catchgame.backend import admin, engine
from catchgame.backend.engine import OperationResult
from catchgame.backend.errors import TransferError
from catchgame.backend.models import RequestRecord, RequestStatus
from catchgame.backend.oracle import InMemoryOracle, RandomnessOracle
from catchgame.backend.state import GameState
from catchgame.backend.transfer import AssetTransfer, InMemoryAssetLedger, MoveKind, TransferAccounts

logger = logging.getLogger(__name__)

Operation = Callable[[GameState], OperationResult]


class GameStore(Protocol):
    oracle: RandomnessOracle
    transfer: AssetTransfer

    def get_state(self) -> GameState:
        """Return the committed game state."""

    def execute(self, operation: Operation) -> OperationResult:
        """Run ``operation`` against the current state exclusively and commit its result."""

    def initialize(
        self, authority: str, ball_prices: list[int], catch_rates: list[int], treasury: str = ""
    ) -> OperationResult: ...

    def purchase_balls(self, player: str, tier: int, quantity: int) -> OperationResult: ...

    def request_spawn(self, caller: str, slot_index: int) -> OperationResult: ...

    def request_throw(self, player: str, slot_index: int, tier: int) -> OperationResult: ...

    def consume(self, seed_hex: str, transfer_accounts: Iterable[TransferAccounts] = ()) -> OperationResult: ...

    def request_status(self, seed_hex: str) -> RequestStatus: ...

    def list_requests(self, status: RequestStatus | None = None) -> list[tuple[RequestRecord, RequestStatus]]: ...

    def force_spawn(self, caller: str, slot_index: int, pos_x: int, pos_y: int) -> OperationResult: ...

    def reposition(self, caller: str, slot_index: int, pos_x: int, pos_y: int) -> OperationResult: ...

    def despawn(self, caller: str, slot_index: int) -> OperationResult: ...

    def deposit_asset(self, caller: str, asset_id: str, source_account: str | None = None) -> OperationResult: ...

    def withdraw_asset(
        self, caller: str, vault_index: int, recipient_account: str | None = None
    ) -> OperationResult: ...

    def set_ball_price(self, caller: str, tier: int, new_price: int) -> OperationResult: ...

    def set_catch_rate(self, caller: str, tier: int, new_rate: int) -> OperationResult: ...

    def set_max_active(self, caller: str, new_max: int) -> OperationResult: ...

    def withdraw_revenue(self, caller: str, amount: int) -> OperationResult: ...

    def settle_award(
        self, caller: str, asset_id: str, transfer_accounts: Iterable[TransferAccounts]
    ) -> OperationResult: ...


class _GameOperations:
    """Named operations shared by every store; each one commits through ``execute``."""

    oracle: RandomnessOracle
    transfer: AssetTransfer

    def get_state(self) -> GameState:
        raise NotImplementedError

    def execute(self, operation: Operation) -> OperationResult:
        raise NotImplementedError

    def _apply(self, operation: Operation) -> OperationResult:
        """Commit ``operation``, then run the custody moves it asked for.

        A rejected move is written back in a follow-up commit. Rejected award
        moves become unsettled awards; any other rejection is raised after the
        write-back.
        """
        result = self.execute(operation)
        if not result.custody_moves:
            return result

        state = result.state
        events = list(result.events)
        rejected: TransferError | None = None
        for move in result.custody_moves:
            try:
                self.transfer.transfer(move.source_account, move.recipient_account, move.asset_id, 1)
            except TransferError as exc:
                logger.warning("Custody move %s of %s rejected: %s", move.kind.value, move.asset_id, exc)
                reverted = self.execute(lambda current, move=move: admin.revert_custody_move(current, move))
                state = reverted.state
                events.extend(reverted.events)
                if move.kind is not MoveKind.AWARD:
                    rejected = exc
        if rejected is not None:
            raise rejected
        return OperationResult(state=state, events=events)

    def initialize(
        self, authority: str, ball_prices: list[int], catch_rates: list[int], treasury: str = ""
    ) -> OperationResult:
        return self._apply(lambda state: admin.initialize(state, authority, ball_prices, catch_rates, treasury))

    def purchase_balls(self, player: str, tier: int, quantity: int) -> OperationResult:
        return self._apply(lambda state: engine.purchase_balls(state, player, tier, quantity))

    def request_spawn(self, caller: str, slot_index: int) -> OperationResult:
        return self._apply(lambda state: engine.request_spawn(state, caller, slot_index, self.oracle))

    def request_throw(self, player: str, slot_index: int, tier: int) -> OperationResult:
        return self._apply(lambda state: engine.request_throw(state, player, slot_index, tier, self.oracle))

    def consume(self, seed_hex: str, transfer_accounts: Iterable[TransferAccounts] = ()) -> OperationResult:
        accounts = list(transfer_accounts)
        return self._apply(lambda state: engine.consume_randomness(state, seed_hex, self.oracle, accounts))

    def request_status(self, seed_hex: str) -> RequestStatus:
        return engine.request_status(self.get_state(), seed_hex, self.oracle)

    def list_requests(self, status: RequestStatus | None = None) -> list[tuple[RequestRecord, RequestStatus]]:
        return engine.list_requests(self.get_state(), self.oracle, status)

    def force_spawn(self, caller: str, slot_index: int, pos_x: int, pos_y: int) -> OperationResult:
        return self._apply(lambda state: admin.force_spawn(state, caller, slot_index, pos_x, pos_y))

    def reposition(self, caller: str, slot_index: int, pos_x: int, pos_y: int) -> OperationResult:
        return self._apply(lambda state: admin.reposition(state, caller, slot_index, pos_x, pos_y))

    def despawn(self, caller: str, slot_index: int) -> OperationResult:
        return self._apply(lambda state: admin.despawn(state, caller, slot_index))

    def deposit_asset(self, caller: str, asset_id: str, source_account: str | None = None) -> OperationResult:
        return self._apply(lambda state: admin.deposit_asset(state, caller, asset_id, source_account))

    def withdraw_asset(
        self, caller: str, vault_index: int, recipient_account: str | None = None
    ) -> OperationResult:
        return self._apply(lambda state: admin.withdraw_asset(state, caller, vault_index, recipient_account))

    def set_ball_price(self, caller: str, tier: int, new_price: int) -> OperationResult:
        return self._apply(lambda state: admin.set_ball_price(state, caller, tier, new_price))

    def set_catch_rate(self, caller: str, tier: int, new_rate: int) -> OperationResult:
        return self._apply(lambda state: admin.set_catch_rate(state, caller, tier, new_rate))

    def set_max_active(self, caller: str, new_max: int) -> OperationResult:
        return self._apply(lambda state: admin.set_max_active(state, caller, new_max))

    def withdraw_revenue(self, caller: str, amount: int) -> OperationResult:
        return self._apply(lambda state: admin.withdraw_revenue(state, caller, amount))

    def settle_award(
        self, caller: str, asset_id: str, transfer_accounts: Iterable[TransferAccounts]
    ) -> OperationResult:
        accounts = list(transfer_accounts)
        return self._apply(lambda state: admin.settle_award(state, caller, asset_id, accounts))


@dataclass
class InMemoryGameStore(_GameOperations):
    oracle: RandomnessOracle = field(default_factory=InMemoryOracle)
    transfer: AssetTransfer = field(default_factory=InMemoryAssetLedger)

    def __post_init__(self) -> None:
        self._state = GameState()
        self._lock = threading.Lock()

    def get_state(self) -> GameState:
        with self._lock:
            return self._state.snapshot()

    def execute(self, operation: Operation) -> OperationResult:
        with self._lock:
            result = operation(self._state)
            self._state = result.state
        return result


@dataclass
class PostgresGameStore(_GameOperations):
    database_url: str
    oracle: RandomnessOracle = field(default_factory=InMemoryOracle)
    transfer: AssetTransfer = field(default_factory=InMemoryAssetLedger)
    game_id: str = "default"

    def _connect(self) -> Any:
        import psycopg

        return psycopg.connect(self.database_url)

    @staticmethod
    def _decode(state_json: Any) -> GameState:
        payload = state_json if isinstance(state_json, dict) else json.loads(state_json)
        return GameState.from_dict(payload)

    def get_state(self) -> GameState:
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    SELECT s.state_json
                    FROM games g
                    JOIN game_snapshots s
                      ON s.game_id = g.id AND s.version = g.current_version
                    WHERE g.id = %s
                    """,
                    (self.game_id,),
                )
                row = cur.fetchone()

        if row is None:
            return GameState()
        return self._decode(row[0])

    def execute(self, operation: Operation) -> OperationResult:
        now = datetime.now(timezone.utc)
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    INSERT INTO games (id, current_version, updated_at)
                    VALUES (%s, 0, %s)
                    ON CONFLICT (id) DO NOTHING
                    """,
                    (self.game_id, now),
                )
                # The row lock serializes every operation against this game.
                cur.execute(
                    """
                    SELECT g.current_version, s.state_json
                    FROM games g
                    LEFT JOIN game_snapshots s
                      ON s.game_id = g.id AND s.version = g.current_version
                    WHERE g.id = %s
                    FOR UPDATE OF g
                    """,
                    (self.game_id,),
                )
                row = cur.fetchone()
                current = GameState() if row is None or row[1] is None else self._decode(row[1])

                result = operation(current)
                next_state = result.state

                cur.execute(
                    """
                    INSERT INTO game_snapshots (id, game_id, version, created_at, state_json)
                    VALUES (%s, %s, %s, %s, %s::jsonb)
                    """,
                    (str(uuid.uuid4()), self.game_id, next_state.version, now, json.dumps(next_state.to_dict())),
                )
                cur.execute(
                    """
                    UPDATE games
                    SET current_version = %s, updated_at = %s
                    WHERE id = %s
                    """,
                    (next_state.version, now, self.game_id),
                )
                for domain_event in result.events:
                    cur.execute(
                        """
                        INSERT INTO game_events (id, game_id, version, created_at, event_json)
                        VALUES (%s, %s, %s, %s, %s::jsonb)
                        """,
                        (str(uuid.uuid4()), self.game_id, next_state.version, now, json.dumps(domain_event)),
                    )
            conn.commit()

        logger.debug("Committed game %s at version %d", self.game_id, result.state.version)
        return result


def create_store(
    database_url: str | None,
    oracle: RandomnessOracle | None = None,
    transfer: AssetTransfer | None = None,
) -> GameStore:
    oracle = oracle if oracle is not None else InMemoryOracle()
    transfer = transfer if transfer is not None else InMemoryAssetLedger()
    if database_url:
        return PostgresGameStore(database_url=database_url, oracle=oracle, transfer=transfer)
    return InMemoryGameStore(oracle=oracle, transfer=transfer)
