"""Caller tokens and the identities derived from them."""

from __future__ import annotations

import hashlib
import secrets

from .models import CreatedIdentity

TOKEN_BYTES = 24


def generate_token() -> str:
    """Generate a URL-safe bearer token for a player or the authority."""
    return secrets.token_urlsafe(TOKEN_BYTES)


def identity_for(token: str, server_salt: str) -> str:
    """Derive the stable caller identity via sha256(token + server_salt)."""
    payload = f"{token}{server_salt}".encode("utf-8")
    return hashlib.sha256(payload).hexdigest()


def verify_identity(raw_token: str, expected_identity: str, server_salt: str) -> bool:
    return secrets.compare_digest(identity_for(raw_token, server_salt), expected_identity)


def issue_identity(server_salt: str) -> CreatedIdentity:
    token = generate_token()
    return CreatedIdentity(token=token, identity=identity_for(token, server_salt))
