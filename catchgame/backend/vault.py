"""Bounded pool of collectible asset ids awarded on a catch."""

from __future__ import annotations

from typing import Any

from .checked import U8_MAX, checked_add
from .constants import MAX_VAULT_SIZE, VAULT_ACCOUNT_PREFIX
from .errors import AssetAlreadyInVault, InvalidAssetId, InvalidVaultIndex, VaultEmpty, VaultFull
from .randomness import pool_index

EMPTY_ASSET = ""


def vault_account_for(asset_id: str) -> str:
    """Custody account the vault holds ``asset_id`` in."""
    return f"{VAULT_ACCOUNT_PREFIX}{asset_id}"


class CollectibleVault:
    """Fixed array of asset ids; the first ``count`` entries are live.

    Removal swaps the last live entry into the hole, so entry order carries
    no meaning.
    """

    def __init__(self, max_size: int = MAX_VAULT_SIZE, assets: list[str] | None = None, count: int = 0) -> None:
        self.max_size = max_size
        self._assets = list(assets) if assets is not None else [EMPTY_ASSET] * max_size
        if len(self._assets) != max_size:
            raise ValueError(f"expected {max_size} vault entries, got {len(self._assets)}")
        self.count = count

    def __len__(self) -> int:
        return self.count

    def __contains__(self, asset_id: object) -> bool:
        return asset_id in self._assets[: self.count]

    def assets(self) -> list[str]:
        return list(self._assets[: self.count])

    def deposit(self, asset_id: str) -> int:
        if not asset_id:
            raise InvalidAssetId()
        if self.count >= self.max_size:
            raise VaultFull(f"Vault holds the maximum of {self.max_size} assets")
        if asset_id in self:
            raise AssetAlreadyInVault(f"Asset {asset_id} is already in the vault")
        self._assets[self.count] = asset_id
        self.count = checked_add(self.count, 1, U8_MAX)
        return self.count

    def remove(self, index: int) -> str:
        if index < 0 or index >= self.count:
            raise InvalidVaultIndex(f"Vault index {index} must be below {self.count}")
        asset_id = self._assets[index]
        last = self.count - 1
        if index != last:
            self._assets[index] = self._assets[last]
        self._assets[last] = EMPTY_ASSET
        self.count = last
        return asset_id

    def take_award(self, randomness: bytes) -> str:
        """Select an asset from the pool-selection bytes and remove it at once."""
        if self.count == 0:
            raise VaultEmpty()
        return self.remove(pool_index(randomness, self.count))

    def to_dict(self) -> dict[str, Any]:
        return {"maxSize": self.max_size, "count": self.count, "assets": list(self._assets)}

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> CollectibleVault:
        return cls(max_size=int(payload["maxSize"]), assets=list(payload["assets"]), count=int(payload["count"]))
