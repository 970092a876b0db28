"""
Secret hashing shared by the store adapters.
"""

from functools import lru_cache
from typing import Optional

import bcrypt

# bcrypt only reads the first 72 bytes; newer releases reject longer input.
BCRYPT_MAX_BYTES = 72

DEFAULT_ROUNDS = 12


def _encode(secret: str) -> bytes:
    return secret.encode("utf-8")[:BCRYPT_MAX_BYTES]


@lru_cache(maxsize=None)
def dummy_hash(rounds: int = DEFAULT_ROUNDS) -> bytes:
    """Hash compared against when the login is unknown, at the store's cost factor."""
    return bcrypt.hashpw(b"intake-dummy-secret", bcrypt.gensalt(rounds=rounds))


def hash_secret(secret: str, rounds: int = DEFAULT_ROUNDS) -> bytes:
    return bcrypt.hashpw(_encode(secret), bcrypt.gensalt(rounds=rounds))


def check_secret(secret: str, secret_hash: Optional[bytes], rounds: int = DEFAULT_ROUNDS) -> bool:
    """Constant-shape comparison: a missing hash still runs one bcrypt check.

    ``rounds`` must match the cost the store hashes with, so unknown logins
    cost the same as wrong secrets.
    """
    matched = bcrypt.checkpw(_encode(secret), secret_hash or dummy_hash(rounds))
    return matched and secret_hash is not None
