"""
Persistence collaborators for the intake gateway.
"""

from shared.config import BaseConfig
from .interfaces import Identity, IdentityStore, IntakeStore, SubmissionStore
from .memory import InMemoryStore
from .postgres import PostgresStore


def create_store(config: BaseConfig) -> IntakeStore:
    """PostgreSQL when a DSN is configured, otherwise process memory."""
    if config.postgres_dsn:
        return PostgresStore(config.postgres_dsn)
    return InMemoryStore()


__all__ = [
    "Identity",
    "IdentityStore",
    "InMemoryStore",
    "IntakeStore",
    "PostgresStore",
    "SubmissionStore",
    "create_store",
]
