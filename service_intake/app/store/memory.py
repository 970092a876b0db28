"""
In-memory intake store for local runs and tests.
"""

import asyncio
import itertools
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from shared.errors import StoreError
from shared.logging import get_logger
from .hashing import DEFAULT_ROUNDS, check_secret, hash_secret
from .interfaces import Identity, IntakeStore


@dataclass
class _StoredIdentity:
    identity: Identity
    secret_hash: bytes


class InMemoryStore(IntakeStore):
    """Identity and submission store held in process memory."""

    def __init__(self, bcrypt_rounds: int = DEFAULT_ROUNDS):
        self.logger = get_logger("intake.store.memory")
        self.bcrypt_rounds = bcrypt_rounds
        self.submissions: List[Any] = []
        self.fail_inserts = False
        self._identities: Dict[str, _StoredIdentity] = {}
        self._ids = itertools.count(1)

    def add_identity(self, login: str, secret: str) -> Identity:
        """Create an account and return its identity."""
        if login in self._identities:
            raise ValueError(f"Login '{login}' already exists")
        identity = Identity(user_id=next(self._ids), login=login)
        self._identities[login] = _StoredIdentity(
            identity=identity,
            secret_hash=hash_secret(secret, rounds=self.bcrypt_rounds),
        )
        self.logger.info("Identity added", user_id=identity.user_id)
        return identity

    def delete_identity(self, user_id: int) -> bool:
        for login, stored in list(self._identities.items()):
            if stored.identity.user_id == user_id:
                del self._identities[login]
                self.logger.info("Identity deleted", user_id=user_id)
                return True
        return False

    async def find_identity_by_credentials(self, login: str, secret: str) -> Optional[Identity]:
        stored = self._identities.get(login)
        secret_hash = stored.secret_hash if stored else None
        if await asyncio.to_thread(check_secret, secret, secret_hash, self.bcrypt_rounds):
            return stored.identity
        return None

    async def identity_exists(self, user_id: int) -> bool:
        return any(s.identity.user_id == user_id for s in self._identities.values())

    async def insert(self, payload: Any) -> None:
        if self.fail_inserts:
            raise StoreError("Insert rejected", details={"payload_type": type(payload).__name__})
        self.submissions.append(payload)
