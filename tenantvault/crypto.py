"""
Password hashing and key-material helpers.

Account passwords are stored as adaptive pbkdf2-sha256 hashes (passlib);
the iteration count comes from config so it can be raised over time.
Credential contents never pass through here: they arrive already encrypted
by the client, which derives its key from the per-user master-key salt
generated below.
"""

from __future__ import annotations

import base64
import secrets

from passlib.context import CryptContext

SALT_SIZE = 32  # bytes, before base64
PASSWORD_CHARSET = (
    "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789!@#$%^&*()_+-=[]{}|;:,.<>?"
)


class PasswordHasher:
    """Hash and verify account passwords."""

    def __init__(self, rounds: int = 29000) -> None:
        self._context = CryptContext(
            schemes=["pbkdf2_sha256"],
            deprecated="auto",
            pbkdf2_sha256__rounds=rounds,
        )

    def hash(self, plaintext: str) -> str:
        return self._context.hash(plaintext)

    def verify(self, plaintext: str, hashed: str) -> bool:
        """False for a wrong password and for an empty/unknown hash (OAuth-only or invited users)."""
        if not hashed:
            return False
        try:
            return self._context.verify(plaintext, hashed)
        except ValueError:
            return False


def generate_salt() -> str:
    """Random per-user salt for client-side master key derivation (base64)."""
    return base64.b64encode(secrets.token_bytes(SALT_SIZE)).decode("ascii")


def generate_password(length: int = 20) -> str:
    """Random password drawn uniformly from PASSWORD_CHARSET."""
    if length < 1:
        raise ValueError("length must be positive")
    return "".join(secrets.choice(PASSWORD_CHARSET) for _ in range(length))
