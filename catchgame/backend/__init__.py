"""Backend package for the catch game."""

from .config import BackendSettings, load_settings
from .oracle import InMemoryOracle
from .security import generate_token, identity_for, verify_identity
from .state import GameState, build_initial_state
from .store import GameStore, InMemoryGameStore, PostgresGameStore, create_store
from .transfer import InMemoryAssetLedger, TransferAccounts

__all__ = [
    "BackendSettings",
    "build_initial_state",
    "create_store",
    "GameState",
    "GameStore",
    "generate_token",
    "identity_for",
    "InMemoryAssetLedger",
    "InMemoryGameStore",
    "InMemoryOracle",
    "load_settings",
    "PostgresGameStore",
    "TransferAccounts",
    "verify_identity",
]
