"""Domain errors raised by the game core and its collaborators."""

from __future__ import annotations


class GameError(Exception):
    """Base class for every error the game reports to a caller."""

    code = "game_error"
    message = "Game operation failed"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)

    @property
    def detail(self) -> str:
        return str(self)


class PreconditionError(GameError):
    code = "precondition_failed"
    message = "Operation precondition not met"


class AlreadyInitialized(PreconditionError):
    code = "already_initialized"
    message = "Game has already been initialized"


class NotInitialized(PreconditionError):
    code = "not_initialized"
    message = "Game has not been initialized"


class Unauthorized(PreconditionError):
    code = "unauthorized"
    message = "Only the game authority can perform this operation"


class InvalidBallType(PreconditionError):
    code = "invalid_ball_type"
    message = "Invalid ball tier"


class InvalidCatchRate(PreconditionError):
    code = "invalid_catch_rate"
    message = "Catch rate must be between 0 and 100"


class ZeroBallPrice(PreconditionError):
    code = "zero_ball_price"
    message = "Ball price must be greater than 0"


class InvalidMaxActive(PreconditionError):
    code = "invalid_max_active"
    message = "Max active creatures is out of range"


class InvalidSlotIndex(PreconditionError):
    code = "invalid_slot_index"
    message = "Slot index is out of range"


class InvalidCoordinate(PreconditionError):
    code = "invalid_coordinate"
    message = "Coordinate is out of range"


class SlotAlreadyOccupied(PreconditionError):
    code = "slot_already_occupied"
    message = "Creature slot is already occupied"


class SlotNotActive(PreconditionError):
    code = "slot_not_active"
    message = "Creature slot is not active"


class MaxActiveReached(PreconditionError):
    code = "max_active_reached"
    message = "Maximum number of active creatures reached"


class MaxAttemptsReached(PreconditionError):
    code = "max_attempts_reached"
    message = "Maximum throw attempts reached for this creature"


class InsufficientBalls(PreconditionError):
    code = "insufficient_balls"
    message = "Insufficient ball balance for this throw"


class ZeroQuantity(PreconditionError):
    code = "zero_quantity"
    message = "Quantity must be greater than 0"


class PurchaseExceedsMax(PreconditionError):
    code = "purchase_exceeds_max"
    message = "Purchase exceeds the maximum allowed per call"


class InsufficientWithdrawalAmount(PreconditionError):
    code = "insufficient_withdrawal_amount"
    message = "Withdrawal amount is zero or exceeds available revenue"


class VaultFull(PreconditionError):
    code = "vault_full"
    message = "Collectible vault is full"


class VaultEmpty(PreconditionError):
    code = "vault_empty"
    message = "Collectible vault is empty"


class InvalidVaultIndex(PreconditionError):
    code = "invalid_vault_index"
    message = "Vault index is out of range"


class InvalidAssetId(PreconditionError):
    code = "invalid_asset_id"
    message = "Asset id must not be empty"


class AssetAlreadyInVault(PreconditionError):
    code = "asset_already_in_vault"
    message = "Asset is already held by the vault"


class AwardNotOwed(PreconditionError):
    code = "award_not_owed"
    message = "No unsettled award exists for this asset"


class RequestNotFound(PreconditionError):
    code = "request_not_found"
    message = "Randomness request not found"


class RequestAlreadyFulfilled(PreconditionError):
    code = "request_already_fulfilled"
    message = "Randomness request has already been fulfilled"


class RandomnessNotReady(PreconditionError):
    code = "randomness_not_ready"
    message = "Randomness has not been fulfilled by the oracle yet"


class MathOverflow(GameError):
    code = "math_overflow"
    message = "Numerical overflow in calculation"


class TransferError(GameError):
    code = "transfer_failed"
    message = "Asset transfer was rejected"
