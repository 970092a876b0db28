"""
Signed, time-bounded access tokens.

Tokens are self-contained JWTs: the payload carries the numeric ``user_id``
and an ``exp`` claim, so verification needs only the signing configuration.
There is no server-side session store.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional

from jose import jwt
from jose.exceptions import JOSEError

from shared.config import BaseConfig
from shared.errors import SigningError, TokenExpired, TokenInvalid
from shared.logging import get_logger


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class SigningConfig:
    """Process-wide signing settings shared by issuer and verifier."""

    secret: str
    algorithm: str = "HS256"
    lifetime: timedelta = timedelta(hours=12)

    @classmethod
    def from_config(cls, config: BaseConfig) -> "SigningConfig":
        return cls(
            secret=config.jwt_secret,
            algorithm=config.jwt_algorithm,
            lifetime=timedelta(seconds=config.token_lifetime_seconds),
        )


@dataclass(frozen=True)
class IssuedToken:
    """A minted token and its absolute expiry."""

    token: str
    expires_at: datetime


class TokenIssuer:
    """Mints signed tokens carrying a user identifier."""

    def __init__(self, signing: SigningConfig, clock: Callable[[], datetime] = _utcnow):
        self.signing = signing
        self.clock = clock
        self.logger = get_logger("intake.tokens.issuer")

    def issue(self, user_id: int) -> IssuedToken:
        """Sign a token for ``user_id`` that expires after the configured lifetime."""
        if not self.signing.secret:
            raise SigningError("Signing key is empty")
        if self.signing.lifetime <= timedelta(0):
            raise SigningError(
                "Token lifetime must be positive",
                details={"lifetime_seconds": self.signing.lifetime.total_seconds()},
            )

        issued_at = self.clock().replace(microsecond=0)
        expires_at = issued_at + self.signing.lifetime
        claims = {
            "user_id": user_id,
            "iat": int(issued_at.timestamp()),
            "exp": int(expires_at.timestamp()),
        }

        try:
            token = jwt.encode(claims, self.signing.secret, algorithm=self.signing.algorithm)
        except (JOSEError, TypeError, ValueError) as exc:
            raise SigningError(
                "Token signing failed",
                details={"algorithm": self.signing.algorithm, "error": str(exc)},
            ) from exc

        self.logger.debug("Token signed", user_id=user_id, expires_at=expires_at.isoformat())
        return IssuedToken(token=token, expires_at=expires_at)


class TokenVerifier:
    """Checks signature, then expiry, and extracts the embedded user id."""

    def __init__(self, signing: SigningConfig, clock: Callable[[], datetime] = _utcnow):
        self.signing = signing
        self.clock = clock
        self.logger = get_logger("intake.tokens.verifier")

    def verify(self, token: Optional[str]) -> int:
        """Return the ``user_id`` carried by a valid token."""
        if not token:
            raise TokenInvalid("Token missing")

        # Expiry is checked below against our own clock; the library only
        # verifies the signature here.
        try:
            claims = jwt.decode(
                token,
                self.signing.secret,
                algorithms=[self.signing.algorithm],
                options={"verify_exp": False},
            )
        except JOSEError as exc:
            raise TokenInvalid("Token signature or format invalid", details={"error": str(exc)}) from exc

        self._check_expiry(claims)
        return self._extract_user_id(claims)

    def _check_expiry(self, claims: Dict[str, Any]) -> None:
        exp = claims.get("exp")
        if isinstance(exp, bool) or not isinstance(exp, (int, float)):
            raise TokenInvalid("Token missing expiry claim", details={"exp": exp})

        now = self.clock().timestamp()
        if now >= exp:
            raise TokenExpired(
                "Token expired",
                details={"expired_at": datetime.fromtimestamp(exp, timezone.utc).isoformat()},
            )

    def _extract_user_id(self, claims: Dict[str, Any]) -> int:
        user_id = claims.get("user_id")
        if isinstance(user_id, bool) or not isinstance(user_id, int) or user_id < 0:
            raise TokenInvalid("Token missing user id claim", details={"user_id": user_id})
        return user_id
