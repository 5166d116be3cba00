"""Request/consume protocol for oracle-driven spawns and throws.

Every operation takes the current ``GameState`` and returns an
``OperationResult`` holding a new state plus the domain events it emitted.
The input state is never modified, so a failing operation leaves nothing
half-applied and the caller decides when to commit. Custody transfers are
returned as ``CustodyMove`` records for the store to run after it commits.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Any, Iterable

from .checked import U64_MAX, checked_add, checked_mul, saturating_sub
from .constants import MAX_PURCHASE_AMOUNT, RANDOMNESS_LENGTH
from .errors import (
    MaxActiveReached,
    MaxAttemptsReached,
    NotInitialized,
    PurchaseExceedsMax,
    RandomnessNotReady,
    RequestAlreadyFulfilled,
    RequestNotFound,
    Unauthorized,
    ZeroQuantity,
)
from .inventory import PlayerInventory, validate_tier
from .models import RequestKind, RequestRecord, RequestStatus, UnsettledAward
from .oracle import RandomnessOracle
from .randomness import catch_roll, make_seed, relocation_position, spawn_position
from .state import GameState, utc_now_ts
from .transfer import CustodyMove, MoveKind, TransferAccounts, find_accounts
from .vault import vault_account_for

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OperationResult:
    state: GameState
    events: list[dict[str, Any]]
    custody_moves: list[CustodyMove] = field(default_factory=list)


def event(kind: str, **fields: Any) -> dict[str, Any]:
    return {"kind": kind, **fields}


def require_initialized(state: GameState) -> None:
    if not state.config.is_initialized:
        raise NotInitialized()


def require_authority(state: GameState, caller: str) -> None:
    require_initialized(state)
    if caller != state.config.authority:
        raise Unauthorized()


def purchase_balls(state: GameState, player: str, tier: int, quantity: int) -> OperationResult:
    require_initialized(state)
    validate_tier(tier)
    if quantity <= 0:
        raise ZeroQuantity()

    total_cost = checked_mul(state.config.ball_prices[tier], quantity, U64_MAX)
    if total_cost > MAX_PURCHASE_AMOUNT:
        raise PurchaseExceedsMax(f"Cost {total_cost} exceeds {MAX_PURCHASE_AMOUNT}")

    next_state = state.snapshot()
    inventory = next_state.inventories.get(player) or PlayerInventory(player=player)
    inventory.record_purchase(tier, quantity)
    next_state.inventories[player] = inventory
    next_state.config.total_revenue = checked_add(next_state.config.total_revenue, total_cost)
    next_state.version += 1

    logger.info("Player %s purchased %d balls of tier %d for %d", player, quantity, tier, total_cost)
    return OperationResult(
        state=next_state,
        events=[event("balls_purchased", buyer=player, ballType=tier, quantity=quantity, totalCost=total_cost)],
    )


def _open_request(
    state: GameState,
    kind: RequestKind,
    requester: str,
    slot_index: int,
    item_tier: int,
    creature_id: int,
    oracle: RandomnessOracle,
    now: int,
) -> RequestRecord:
    config = state.config
    seed = make_seed(config.request_counter, kind)
    request = RequestRecord(
        kind=kind,
        requester=requester,
        slot_index=slot_index,
        item_tier=item_tier,
        seed=seed,
        request_id=config.request_counter,
        creature_id=creature_id,
        created_at=now,
    )
    # Overflow must surface before the oracle is asked for anything.
    next_counter = checked_add(config.request_counter, 1)
    oracle.request(seed)
    config.request_counter = next_counter
    state.requests[request.seed_hex] = request
    return request


def request_spawn(
    state: GameState,
    caller: str,
    slot_index: int,
    oracle: RandomnessOracle,
    now: int | None = None,
) -> OperationResult:
    require_authority(state, caller)
    state.slots.require_empty(slot_index)
    if state.slots.active_count >= state.config.max_active:
        raise MaxActiveReached()

    next_state = state.snapshot()
    request = _open_request(
        next_state,
        kind=RequestKind.SPAWN,
        requester=caller,
        slot_index=slot_index,
        item_tier=0,
        creature_id=0,
        oracle=oracle,
        now=utc_now_ts() if now is None else now,
    )
    next_state.version += 1

    logger.info("Spawn requested for slot %d with seed %s", slot_index, request.seed_hex)
    return OperationResult(
        state=next_state,
        events=[event("spawn_requested", slotIndex=slot_index, seed=request.seed_hex, requestId=request.request_id)],
    )


def request_throw(
    state: GameState,
    player: str,
    slot_index: int,
    tier: int,
    oracle: RandomnessOracle,
    now: int | None = None,
) -> OperationResult:
    require_initialized(state)
    validate_tier(tier)
    slot = state.slots.require_active(slot_index)
    if slot.throw_attempts >= state.slots.max_attempts:
        raise MaxAttemptsReached()

    next_state = state.snapshot()
    inventory = next_state.inventories.get(player) or PlayerInventory(player=player)
    inventory.debit(tier)
    inventory.record_throw()
    next_state.inventories[player] = inventory

    request = _open_request(
        next_state,
        kind=RequestKind.THROW,
        requester=player,
        slot_index=slot_index,
        item_tier=tier,
        creature_id=slot.creature_id,
        oracle=oracle,
        now=utc_now_ts() if now is None else now,
    )
    next_state.version += 1

    logger.info("Player %s threw tier %d at creature %d (seed %s)", player, tier, slot.creature_id, request.seed_hex)
    return OperationResult(
        state=next_state,
        events=[
            event(
                "throw_attempted",
                thrower=player,
                creatureId=slot.creature_id,
                ballType=tier,
                slotIndex=slot_index,
                seed=request.seed_hex,
            )
        ],
    )


def _read_randomness(oracle: RandomnessOracle, seed: bytes) -> bytes | None:
    record = oracle.lookup(seed)
    if record is None:
        return None
    randomness = record.fulfilled_randomness()
    if randomness is None or len(randomness) != RANDOMNESS_LENGTH:
        return None
    return bytes(randomness)


def request_status(state: GameState, seed_hex: str, oracle: RandomnessOracle) -> RequestStatus:
    request = state.requests.get(seed_hex)
    if request is None:
        raise RequestNotFound(f"No request with seed {seed_hex}")
    if request.is_fulfilled:
        return RequestStatus.FULFILLED
    if _read_randomness(oracle, request.seed) is not None:
        return RequestStatus.READY
    return RequestStatus.PENDING


def list_requests(
    state: GameState,
    oracle: RandomnessOracle,
    status: RequestStatus | None = None,
) -> list[tuple[RequestRecord, RequestStatus]]:
    listed: list[tuple[RequestRecord, RequestStatus]] = []
    for seed_hex, request in state.requests.items():
        current = request_status(state, seed_hex, oracle)
        if status is None or current is status:
            listed.append((request, current))
    listed.sort(key=lambda item: item[0].request_id)
    return listed


def consume_randomness(
    state: GameState,
    seed_hex: str,
    oracle: RandomnessOracle,
    transfer_accounts: Iterable[TransferAccounts] = (),
    now: int | None = None,
) -> OperationResult:
    """Resolve a ready request exactly once.

    Anyone may call this. The fulfilled flag is checked before anything else
    is read or written; a second call for the same seed always fails with
    RequestAlreadyFulfilled.
    """
    request = state.requests.get(seed_hex)
    if request is None:
        raise RequestNotFound(f"No request with seed {seed_hex}")
    if request.is_fulfilled:
        raise RequestAlreadyFulfilled(f"Request {request.request_id} was already consumed")

    randomness = _read_randomness(oracle, request.seed)
    if randomness is None:
        raise RandomnessNotReady(f"Seed {seed_hex} has no fulfilled randomness")

    next_state = state.snapshot()
    next_request = next_state.requests[seed_hex]
    moves: list[CustodyMove] = []
    if next_request.kind is RequestKind.SPAWN:
        events = _resolve_spawn(next_state, next_request, randomness, utc_now_ts() if now is None else now)
    else:
        events = _resolve_throw(next_state, next_request, randomness, list(transfer_accounts), moves)

    next_request.is_fulfilled = True
    next_state.version += 1
    return OperationResult(state=next_state, events=events, custody_moves=moves)


def _resolve_spawn(state: GameState, request: RequestRecord, randomness: bytes, now: int) -> list[dict[str, Any]]:
    position = spawn_position(randomness, state.max_coordinate)
    state.config.creature_id_counter = checked_add(state.config.creature_id_counter, 1)
    creature_id = state.config.creature_id_counter

    events: list[dict[str, Any]] = []
    previous = state.slots.occupy(request.slot_index, creature_id, position.x, position.y, now)
    if previous.is_active:
        logger.warning(
            "Spawn for slot %d replaced creature %d placed while the request was pending",
            request.slot_index,
            previous.creature_id,
        )
        events.append(event("despawned", creatureId=previous.creature_id, slotIndex=request.slot_index))

    events.append(
        event("spawned", creatureId=creature_id, slotIndex=request.slot_index, posX=position.x, posY=position.y)
    )
    logger.info("Creature %d spawned at (%d, %d) in slot %d", creature_id, position.x, position.y, request.slot_index)
    return events


def _resolve_throw(
    state: GameState,
    request: RequestRecord,
    randomness: bytes,
    transfer_accounts: list[TransferAccounts],
    moves: list[CustodyMove],
) -> list[dict[str, Any]]:
    slot_index = request.slot_index
    slot = state.slots.get(slot_index)
    if not slot.is_active or slot.creature_id != request.creature_id:
        return _void_throw(state, request)

    catch_rate = state.config.catch_rates[request.item_tier]
    roll = catch_roll(randomness)
    player = request.requester

    if roll < catch_rate:
        events: list[dict[str, Any]] = []
        asset_id = ""
        if state.vault.count > 0:
            asset_id = state.vault.take_award(randomness)
            events.append(event("asset_awarded", winner=player, assetId=asset_id, vaultRemaining=state.vault.count))

        inventory = state.inventory_for(player)
        if inventory is not None:
            inventory.record_catch()
        state.slots.clear(slot_index)
        events.append(event("caught", catcher=player, creatureId=slot.creature_id, slotIndex=slot_index, assetId=asset_id))
        logger.info("Creature %d caught by %s (roll %d < %d)", slot.creature_id, player, roll, catch_rate)

        # Custody moves after commit; the pool removal above already is the award.
        if asset_id:
            events.extend(_plan_award(state, asset_id, request, transfer_accounts, moves))
        return events

    updated = state.slots.record_miss(slot_index)
    max_attempts = state.slots.max_attempts
    events = [
        event(
            "catch_failed",
            thrower=player,
            creatureId=slot.creature_id,
            slotIndex=slot_index,
            attemptsRemaining=saturating_sub(max_attempts, updated.throw_attempts),
        )
    ]
    if updated.throw_attempts >= max_attempts:
        position = relocation_position(randomness, state.max_coordinate)
        previous = state.slots.move(slot_index, position.x, position.y)
        events.append(
            event(
                "relocated",
                creatureId=slot.creature_id,
                slotIndex=slot_index,
                oldX=previous.pos_x,
                oldY=previous.pos_y,
                newX=position.x,
                newY=position.y,
            )
        )
        logger.info("Creature %d fled to (%d, %d) after %d misses", slot.creature_id, position.x, position.y, max_attempts)
    return events


def _void_throw(state: GameState, request: RequestRecord) -> list[dict[str, Any]]:
    inventory = state.inventory_for(request.requester)
    if inventory is not None:
        inventory.credit(request.item_tier, 1)
    logger.info(
        "Throw %d voided: creature %d no longer in slot %d",
        request.request_id,
        request.creature_id,
        request.slot_index,
    )
    return [
        event(
            "throw_voided",
            thrower=request.requester,
            creatureId=request.creature_id,
            slotIndex=request.slot_index,
            ballType=request.item_tier,
        )
    ]


def _owe_award(state: GameState, asset_id: str, winner: str, request_id: int, reason: str) -> dict[str, Any]:
    state.unsettled_awards.append(
        UnsettledAward(asset_id=asset_id, winner=winner, request_id=request_id, reason=reason)
    )
    logger.warning("Asset %s owed to %s pending reconciliation (%s)", asset_id, winner, reason)
    return event("award_unsettled", winner=winner, assetId=asset_id, reason=reason)


def _plan_award(
    state: GameState,
    asset_id: str,
    request: RequestRecord,
    transfer_accounts: list[TransferAccounts],
    moves: list[CustodyMove],
) -> list[dict[str, Any]]:
    accounts = find_accounts(transfer_accounts, asset_id)
    if accounts is None:
        return [_owe_award(state, asset_id, request.requester, request.request_id, "missing_transfer_accounts")]
    if accounts.source_account != vault_account_for(asset_id):
        logger.warning("Source account %s does not hold vault asset %s", accounts.source_account, asset_id)
        return [_owe_award(state, asset_id, request.requester, request.request_id, "transfer_failed")]

    moves.append(
        CustodyMove(
            kind=MoveKind.AWARD,
            asset_id=asset_id,
            source_account=accounts.source_account,
            recipient_account=accounts.recipient_account,
            winner=request.requester,
            request_id=request.request_id,
        )
    )
    return []


def record_unsettled_award(state: GameState, move: CustodyMove, reason: str = "transfer_failed") -> OperationResult:
    """Write back an award whose committed custody move was rejected."""
    next_state = state.snapshot()
    owed = _owe_award(next_state, move.asset_id, move.winner, move.request_id, reason)
    next_state.version += 1
    return OperationResult(state=next_state, events=[owed])
