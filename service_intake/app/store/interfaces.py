"""
Collaborator interfaces consumed by the intake core.

Implementations own their concurrency safety; the core issues at most one
call per collaborator per request.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional


@dataclass(frozen=True)
class Identity:
    """A stored account, referenced by value."""

    user_id: int
    login: str


class IdentityStore(ABC):
    """Lookup of stored identities."""

    @abstractmethod
    async def find_identity_by_credentials(self, login: str, secret: str) -> Optional[Identity]:
        """Return the identity matching both fields, or None.

        A missing login and a wrong secret must be indistinguishable to the
        caller. Infrastructure failures raise ``StoreError``.
        """

    @abstractmethod
    async def identity_exists(self, user_id: int) -> bool:
        """Whether ``user_id`` still refers to a live account."""


class SubmissionStore(ABC):
    """Sink for validated payloads."""

    @abstractmethod
    async def insert(self, payload: Any) -> None:
        """Persist one validated payload, raising ``StoreError`` on failure."""


class IntakeStore(IdentityStore, SubmissionStore):
    """Single backend serving both collaborator roles."""

    async def start(self) -> None:
        """Acquire resources. No-op by default."""

    async def stop(self) -> None:
        """Release resources. No-op by default."""

    async def check_health(self) -> str:
        return "ok"
