"""Asset custody transfer contract and an in-memory ledger implementation."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from enum import Enum
import threading
from typing import Any, Iterable, Protocol

from .errors import TransferError


@dataclass(frozen=True)
class TransferAccounts:
    """Accounts a caller supplies so an awarded asset can change custody."""

    asset_id: str
    source_account: str
    recipient_account: str

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> TransferAccounts:
        return cls(
            asset_id=str(payload.get("assetId", "")),
            source_account=str(payload.get("sourceAccount", "")),
            recipient_account=str(payload.get("recipientAccount", "")),
        )


class MoveKind(str, Enum):
    AWARD = "award"
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    SETTLEMENT = "settlement"


@dataclass(frozen=True)
class CustodyMove:
    """A custody transfer an operation asks for once its state is committed.

    Award and settlement moves carry the owed record so a rejected transfer
    can be written back as an unsettled award.
    """

    kind: MoveKind
    asset_id: str
    source_account: str
    recipient_account: str
    winner: str = ""
    request_id: int = 0
    reason: str = ""


def find_accounts(accounts: Iterable[TransferAccounts], asset_id: str) -> TransferAccounts | None:
    for candidate in accounts:
        if candidate.asset_id == asset_id:
            return candidate
    return None


class AssetTransfer(Protocol):
    def transfer(self, source_account: str, recipient_account: str, asset_id: str, quantity: int = 1) -> None:
        """Move ``quantity`` units of ``asset_id``; raise TransferError when rejected."""


class InMemoryAssetLedger:
    """Holdings per account, used for local runs and tests."""

    def __init__(self) -> None:
        self._holdings: dict[str, dict[str, int]] = defaultdict(dict)
        self._lock = threading.Lock()

    def credit(self, account: str, asset_id: str, quantity: int = 1) -> None:
        with self._lock:
            holdings = self._holdings[account]
            holdings[asset_id] = holdings.get(asset_id, 0) + quantity

    def balance(self, account: str, asset_id: str) -> int:
        return self._holdings.get(account, {}).get(asset_id, 0)

    def transfer(self, source_account: str, recipient_account: str, asset_id: str, quantity: int = 1) -> None:
        if not source_account or not recipient_account:
            raise TransferError("Transfer accounts are malformed")
        if source_account == recipient_account:
            raise TransferError("Source and recipient accounts must differ")
        with self._lock:
            source = self._holdings.get(source_account, {})
            if source.get(asset_id, 0) < quantity:
                raise TransferError(f"Account {source_account} does not hold {asset_id}")
            source[asset_id] -= quantity
            if source[asset_id] == 0:
                del source[asset_id]
            recipient = self._holdings[recipient_account]
            recipient[asset_id] = recipient.get(asset_id, 0) + quantity
