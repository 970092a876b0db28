"""
PostgreSQL intake store.
"""

import asyncio
import dataclasses
from typing import Any, Dict, Optional

import asyncpg

from shared.errors import StoreError
from shared.logging import get_logger
from ..models.payloads import ServiceOrder, ServiceRequest, ServiceStatus
from .hashing import DEFAULT_ROUNDS, check_secret, hash_secret
from .interfaces import Identity, IntakeStore

SUBMISSION_TABLES: Dict[type, str] = {
    ServiceRequest: "service_requests",
    ServiceOrder: "service_orders",
    ServiceStatus: "service_statuses",
}

SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS identities (
        user_id BIGSERIAL PRIMARY KEY,
        login VARCHAR(100) NOT NULL UNIQUE,
        secret_hash BYTEA NOT NULL,
        created_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW()
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS service_requests (
        id BIGSERIAL PRIMARY KEY,
        request_id VARCHAR(50) NOT NULL,
        dealer_code VARCHAR(20) NOT NULL,
        client_name VARCHAR(150) NOT NULL,
        phone VARCHAR(20) NOT NULL,
        email VARCHAR(100),
        vin VARCHAR(17),
        car_model VARCHAR(100),
        mileage BIGINT,
        comment TEXT,
        received_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW()
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS service_orders (
        id BIGSERIAL PRIMARY KEY,
        order_id VARCHAR(50) NOT NULL,
        request_id VARCHAR(50) NOT NULL,
        dealer_code VARCHAR(20) NOT NULL,
        order_date VARCHAR(19) NOT NULL,
        amount DOUBLE PRECISION NOT NULL,
        currency VARCHAR(3),
        comment TEXT,
        received_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW()
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS service_statuses (
        id BIGSERIAL PRIMARY KEY,
        order_id VARCHAR(50) NOT NULL,
        status VARCHAR(20) NOT NULL,
        status_date VARCHAR(19) NOT NULL,
        comment TEXT,
        received_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW()
    );
    """,
)


class PostgresStore(IntakeStore):
    """asyncpg-backed identity and submission store."""

    def __init__(self, dsn: str, min_size: int = 2, max_size: int = 10, bcrypt_rounds: int = DEFAULT_ROUNDS):
        self.dsn = dsn
        self.min_size = min_size
        self.max_size = max_size
        self.bcrypt_rounds = bcrypt_rounds
        self.logger = get_logger("intake.store.postgres")
        self.pool: Optional[asyncpg.Pool] = None

    async def start(self) -> None:
        """Open the pool and create tables if they don't exist."""
        try:
            self.pool = await asyncpg.create_pool(
                self.dsn,
                min_size=self.min_size,
                max_size=self.max_size,
                command_timeout=30
            )
            async with self.pool.acquire() as conn:
                for statement in SCHEMA:
                    await conn.execute(statement)
        except (OSError, asyncpg.PostgresError) as e:
            self.logger.error("Failed to start PostgreSQL store", error=str(e))
            raise StoreError("PostgreSQL store failed to start", details={"error": str(e)}) from e

        self.logger.info("PostgreSQL store started")

    async def stop(self) -> None:
        if self.pool:
            await self.pool.close()
            self.pool = None
            self.logger.info("PostgreSQL store stopped")

    def _require_pool(self) -> asyncpg.Pool:
        if self.pool is None:
            raise StoreError("PostgreSQL store not started")
        return self.pool

    async def add_identity(self, login: str, secret: str) -> Identity:
        """Create an account; used by provisioning scripts and tests."""
        secret_hash = await asyncio.to_thread(hash_secret, secret, self.bcrypt_rounds)
        try:
            async with self._require_pool().acquire() as conn:
                user_id = await conn.fetchval(
                    "INSERT INTO identities (login, secret_hash) VALUES ($1, $2) RETURNING user_id",
                    login, secret_hash
                )
        except (OSError, asyncpg.PostgresError) as e:
            raise StoreError("Identity insert failed", details={"error": str(e)}) from e
        return Identity(user_id=user_id, login=login)

    async def find_identity_by_credentials(self, login: str, secret: str) -> Optional[Identity]:
        try:
            async with self._require_pool().acquire() as conn:
                row = await conn.fetchrow(
                    "SELECT user_id, login, secret_hash FROM identities WHERE login = $1",
                    login
                )
        except (OSError, asyncpg.PostgresError) as e:
            raise StoreError("Identity lookup failed", details={"error": str(e)}) from e

        secret_hash = bytes(row["secret_hash"]) if row else None
        if await asyncio.to_thread(check_secret, secret, secret_hash, self.bcrypt_rounds):
            return Identity(user_id=row["user_id"], login=row["login"])
        return None

    async def identity_exists(self, user_id: int) -> bool:
        try:
            async with self._require_pool().acquire() as conn:
                found = await conn.fetchval(
                    "SELECT EXISTS(SELECT 1 FROM identities WHERE user_id = $1)",
                    user_id
                )
        except (OSError, asyncpg.PostgresError) as e:
            raise StoreError("Identity existence check failed", details={"error": str(e)}) from e
        return bool(found)

    async def insert(self, payload: Any) -> None:
        table = SUBMISSION_TABLES.get(type(payload))
        if table is None:
            raise StoreError(
                "No table for payload type",
                details={"payload_type": type(payload).__name__},
            )

        record = dataclasses.asdict(payload)
        columns = ", ".join(record)
        placeholders = ", ".join(f"${i}" for i in range(1, len(record) + 1))
        try:
            async with self._require_pool().acquire() as conn:
                await conn.execute(
                    f"INSERT INTO {table} ({columns}) VALUES ({placeholders})",
                    *record.values()
                )
        except (OSError, asyncpg.PostgresError) as e:
            raise StoreError(
                "Submission insert failed",
                details={"table": table, "error": str(e)},
            ) from e

        self.logger.info("Submission stored", table=table)

    async def check_health(self) -> str:
        try:
            async with self._require_pool().acquire() as conn:
                await conn.fetchval("SELECT 1")
            return "ok"
        except (StoreError, OSError, asyncpg.PostgresError) as e:
            self.logger.error("PostgreSQL health check failed", error=str(e))
            return "error"
