"""Fixed game limits and defaults."""

from __future__ import annotations

# Hard cap on creature slots; the soft cap lives on GameConfig.max_active.
MAX_SLOTS = 20

MAX_COORDINATE = 999

MAX_THROW_ATTEMPTS = 3

MAX_VAULT_SIZE = 20

# Poke, Great, Ultra, Master.
NUM_TIERS = 4

RANDOMNESS_LENGTH = 64
SEED_LENGTH = 32
SEED_TAG = b"pkblgame"

# Prices in atomic currency units (6 decimals).
DEFAULT_BALL_PRICES = (1_000_000, 10_000_000, 25_000_000, 49_900_000)
DEFAULT_CATCH_RATES = (2, 20, 50, 99)

MAX_PURCHASE_AMOUNT = 5_000_000_000

VAULT_ACCOUNT_PREFIX = "vault:"
