"""Authority-only overrides that bypass randomness."""

from __future__ import annotations

import logging
from typing import Iterable

from .checked import checked_add
from .errors import (
    AwardNotOwed,
    InsufficientWithdrawalAmount,
    InvalidCatchRate,
    InvalidMaxActive,
    MaxActiveReached,
    TransferError,
    ZeroBallPrice,
)
from .engine import OperationResult, event, record_unsettled_award, require_authority
from .inventory import validate_tier
from .slots import validate_coordinates
from .state import GameState, build_initial_state, utc_now_ts
from .transfer import CustodyMove, MoveKind, TransferAccounts, find_accounts
from .vault import vault_account_for

logger = logging.getLogger(__name__)


def initialize(
    state: GameState,
    authority: str,
    ball_prices: list[int],
    catch_rates: list[int],
    treasury: str = "",
) -> OperationResult:
    next_state = build_initial_state(
        authority=authority,
        ball_prices=ball_prices,
        catch_rates=catch_rates,
        treasury=treasury,
        current=state,
    )
    logger.info("Game initialized with authority %s", authority)
    return OperationResult(state=next_state, events=[event("initialized", authority=authority)])


def force_spawn(
    state: GameState,
    caller: str,
    slot_index: int,
    pos_x: int,
    pos_y: int,
    now: int | None = None,
) -> OperationResult:
    require_authority(state, caller)
    state.slots.validate_index(slot_index)
    validate_coordinates(pos_x, pos_y, state.max_coordinate)
    state.slots.require_empty(slot_index)
    if state.slots.active_count >= state.config.max_active:
        raise MaxActiveReached()

    next_state = state.snapshot()
    next_state.config.creature_id_counter = checked_add(next_state.config.creature_id_counter, 1)
    creature_id = next_state.config.creature_id_counter
    next_state.slots.occupy(slot_index, creature_id, pos_x, pos_y, utc_now_ts() if now is None else now)
    next_state.version += 1

    logger.info("Force spawned creature %d at slot %d (%d, %d)", creature_id, slot_index, pos_x, pos_y)
    return OperationResult(
        state=next_state,
        events=[event("spawned", creatureId=creature_id, slotIndex=slot_index, posX=pos_x, posY=pos_y)],
    )


def reposition(state: GameState, caller: str, slot_index: int, pos_x: int, pos_y: int) -> OperationResult:
    require_authority(state, caller)
    state.slots.validate_index(slot_index)
    validate_coordinates(pos_x, pos_y, state.max_coordinate)
    state.slots.require_active(slot_index)

    next_state = state.snapshot()
    previous = next_state.slots.move(slot_index, pos_x, pos_y)
    next_state.version += 1

    return OperationResult(
        state=next_state,
        events=[
            event(
                "relocated",
                creatureId=previous.creature_id,
                slotIndex=slot_index,
                oldX=previous.pos_x,
                oldY=previous.pos_y,
                newX=pos_x,
                newY=pos_y,
            )
        ],
    )


def despawn(state: GameState, caller: str, slot_index: int) -> OperationResult:
    require_authority(state, caller)
    state.slots.require_active(slot_index)

    next_state = state.snapshot()
    previous = next_state.slots.clear(slot_index)
    next_state.version += 1

    logger.info("Despawned creature %d from slot %d", previous.creature_id, slot_index)
    return OperationResult(
        state=next_state,
        events=[event("despawned", creatureId=previous.creature_id, slotIndex=slot_index)],
    )


def deposit_asset(
    state: GameState,
    caller: str,
    asset_id: str,
    source_account: str | None = None,
) -> OperationResult:
    """Record ``asset_id`` in the vault; custody moves in after commit when a source is given."""
    require_authority(state, caller)

    next_state = state.snapshot()
    count = next_state.vault.deposit(asset_id)
    next_state.version += 1

    moves = []
    if source_account:
        moves.append(CustodyMove(MoveKind.DEPOSIT, asset_id, source_account, vault_account_for(asset_id)))

    logger.info("Asset %s deposited; vault holds %d", asset_id, count)
    return OperationResult(
        state=next_state,
        events=[event("asset_deposited", assetId=asset_id, vaultCount=count)],
        custody_moves=moves,
    )


def withdraw_asset(
    state: GameState,
    caller: str,
    vault_index: int,
    recipient_account: str | None = None,
) -> OperationResult:
    require_authority(state, caller)

    next_state = state.snapshot()
    asset_id = next_state.vault.remove(vault_index)
    next_state.version += 1

    moves = []
    if recipient_account:
        moves.append(CustodyMove(MoveKind.WITHDRAWAL, asset_id, vault_account_for(asset_id), recipient_account))

    logger.info("Asset %s withdrawn; vault holds %d", asset_id, next_state.vault.count)
    return OperationResult(
        state=next_state,
        events=[event("asset_withdrawn", assetId=asset_id, vaultCount=next_state.vault.count)],
        custody_moves=moves,
    )


def set_ball_price(state: GameState, caller: str, tier: int, new_price: int) -> OperationResult:
    require_authority(state, caller)
    validate_tier(tier)
    if new_price <= 0:
        raise ZeroBallPrice()

    next_state = state.snapshot()
    old_price = next_state.config.ball_prices[tier]
    next_state.config.ball_prices[tier] = new_price
    next_state.version += 1
    return OperationResult(
        state=next_state,
        events=[event("ball_price_updated", ballType=tier, oldPrice=old_price, newPrice=new_price)],
    )


def set_catch_rate(state: GameState, caller: str, tier: int, new_rate: int) -> OperationResult:
    require_authority(state, caller)
    validate_tier(tier)
    if new_rate < 0 or new_rate > 100:
        raise InvalidCatchRate()

    next_state = state.snapshot()
    old_rate = next_state.config.catch_rates[tier]
    next_state.config.catch_rates[tier] = new_rate
    next_state.version += 1
    return OperationResult(
        state=next_state,
        events=[event("catch_rate_updated", ballType=tier, oldRate=old_rate, newRate=new_rate)],
    )


def set_max_active(state: GameState, caller: str, new_max: int) -> OperationResult:
    require_authority(state, caller)
    if new_max < 1 or new_max > state.slots.capacity:
        raise InvalidMaxActive(f"Max active must be within 1..{state.slots.capacity}")

    next_state = state.snapshot()
    old_max = next_state.config.max_active
    next_state.config.max_active = new_max
    next_state.version += 1
    return OperationResult(state=next_state, events=[event("max_active_updated", oldMax=old_max, newMax=new_max)])


def withdraw_revenue(state: GameState, caller: str, amount: int) -> OperationResult:
    require_authority(state, caller)
    available = state.config.total_revenue - state.config.total_withdrawn
    if amount <= 0 or amount > available:
        raise InsufficientWithdrawalAmount(f"Requested {amount}, available {available}")

    next_state = state.snapshot()
    next_state.config.total_withdrawn = checked_add(next_state.config.total_withdrawn, amount)
    next_state.version += 1

    logger.info("Withdrew %d revenue to %s", amount, caller)
    return OperationResult(state=next_state, events=[event("revenue_withdrawn", recipient=caller, amount=amount)])


def settle_award(
    state: GameState,
    caller: str,
    asset_id: str,
    transfer_accounts: Iterable[TransferAccounts],
) -> OperationResult:
    """Deliver an asset that left the pool without its custody transfer."""
    require_authority(state, caller)
    owed = next((award for award in state.unsettled_awards if award.asset_id == asset_id), None)
    if owed is None:
        raise AwardNotOwed(f"Asset {asset_id} is not owed to anyone")

    accounts = find_accounts(transfer_accounts, asset_id)
    if accounts is None:
        raise TransferError(f"No transfer accounts supplied for {asset_id}")
    if accounts.source_account != vault_account_for(asset_id):
        raise TransferError(f"Source account {accounts.source_account} is not the vault's")

    next_state = state.snapshot()
    next_state.unsettled_awards = [award for award in next_state.unsettled_awards if award.asset_id != asset_id]
    next_state.version += 1

    logger.info("Settled award of %s to %s", asset_id, owed.winner)
    return OperationResult(
        state=next_state,
        events=[event("award_settled", winner=owed.winner, assetId=asset_id, requestId=owed.request_id)],
        custody_moves=[
            CustodyMove(
                kind=MoveKind.SETTLEMENT,
                asset_id=asset_id,
                source_account=accounts.source_account,
                recipient_account=accounts.recipient_account,
                winner=owed.winner,
                request_id=owed.request_id,
                reason=owed.reason,
            )
        ],
    )


def revert_custody_move(state: GameState, move: CustodyMove) -> OperationResult:
    """Undo the committed effect of a custody move the transfer subsystem rejected."""
    if move.kind is MoveKind.AWARD:
        return record_unsettled_award(state, move)
    if move.kind is MoveKind.SETTLEMENT:
        return record_unsettled_award(state, move, move.reason or "transfer_failed")

    next_state = state.snapshot()
    if move.kind is MoveKind.DEPOSIT:
        if move.asset_id in next_state.vault:
            next_state.vault.remove(next_state.vault.assets().index(move.asset_id))
        kind = "deposit_reverted"
    else:
        next_state.vault.deposit(move.asset_id)
        kind = "withdrawal_reverted"
    next_state.version += 1

    logger.warning("Reverted %s of %s after a rejected transfer", move.kind.value, move.asset_id)
    return OperationResult(
        state=next_state,
        events=[event(kind, assetId=move.asset_id, vaultCount=next_state.vault.count)],
    )
