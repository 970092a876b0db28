"""
Authentication gate for protected routes.
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Request

from shared.errors import IdentityNotFound, TokenExpired, TokenInvalid, UnauthorizedError
from shared.logging import get_logger, set_user_context
from shared.metrics import MetricsCollector
from .credentials import IdentityResolver
from .tokens import TokenVerifier

_FAILURE_REASONS = {
    TokenInvalid: "token_invalid",
    TokenExpired: "token_expired",
    IdentityNotFound: "identity_not_found",
}


@dataclass(frozen=True)
class AuthContext:
    """Caller identity established by the gate."""

    user_id: int
    token: str


class AuthMiddleware:
    """Token check followed by identity check.

    Used as a router-level FastAPI dependency, so every handler on the
    protected router runs only after both gates pass. Any failure raises an
    ``UnauthorizedError`` subclass; the client sees a uniform "unauthorized"
    while the specific reason is logged and counted.
    """

    def __init__(
        self,
        verifier: TokenVerifier,
        resolver: IdentityResolver,
        *,
        token_header: str = "Authorization",
        token_scheme: str = "Bearer",
        metrics: Optional[MetricsCollector] = None,
    ):
        self.verifier = verifier
        self.resolver = resolver
        self.token_header = token_header
        self.token_scheme = token_scheme
        self.metrics = metrics
        self.logger = get_logger("intake.auth.middleware")

    async def __call__(self, request: Request) -> AuthContext:
        context = await self.authenticate(request)
        request.state.auth_context = context
        set_user_context(context.user_id)
        return context

    async def authenticate(self, request: Request) -> AuthContext:
        """Run both gates for ``request`` and return the caller's context."""
        try:
            token = self.extract_token(request)
            user_id = self.verifier.verify(token)
            self.logger.debug("Token checked", user_id=user_id)

            await self.resolver.resolve(user_id)
            self.logger.debug("Identity checked", user_id=user_id)
        except UnauthorizedError as e:
            reason = _FAILURE_REASONS.get(type(e), "unauthorized")
            if self.metrics:
                self.metrics.record_auth_failure(reason)
            self.logger.warning(
                "Protected request rejected",
                path=request.url.path,
                reason=reason,
                error=e.message,
                details=e.details,
            )
            raise

        return AuthContext(user_id=user_id, token=token)

    def extract_token(self, request: Request) -> str:
        """Pull the raw token out of the configured header."""
        header = request.headers.get(self.token_header)
        if not header:
            raise TokenInvalid(
                "Authorization token missing",
                details={"header": self.token_header},
            )

        if not self.token_scheme:
            return header.strip()

        scheme, _, token = header.partition(" ")
        if scheme.lower() != self.token_scheme.lower() or not token.strip():
            raise TokenInvalid(
                "Authorization header has unexpected format",
                details={"header": self.token_header, "expected_scheme": self.token_scheme},
            )
        return token.strip()
