"""Scorer and viewer tokens for remote match access."""

from __future__ import annotations

import hashlib
import hmac
import secrets


TOKEN_BYTES = 24

# HOST submits turns and undo; VIEWER only follows the match
ROLE_HOST = "HOST"
ROLE_VIEWER = "VIEWER"


def generate_token() -> str:
    """Issue a fresh URL-safe token; one per role when a match is created."""
    return secrets.token_urlsafe(TOKEN_BYTES)


def hash_token(token: str, server_salt: str) -> str:
    """Digest stored in place of the raw token: sha256 over token and salt."""
    return hashlib.sha256(f"{token}{server_salt}".encode("utf-8")).hexdigest()


def verify_token(raw_token: str, expected_hash: str, server_salt: str) -> bool:
    # constant-time comparison of the two digests
    return hmac.compare_digest(hash_token(raw_token, server_salt), expected_hash)
