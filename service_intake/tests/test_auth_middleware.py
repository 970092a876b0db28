"""
Unit tests for AuthMiddleware.
"""

import pytest
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock
from fastapi import Request

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from service_intake.app.auth import (
    AuthContext,
    AuthMiddleware,
    IdentityResolver,
    SigningConfig,
    TokenIssuer,
    TokenVerifier,
)
from service_intake.app.store import InMemoryStore
from shared.errors import IdentityNotFound, TokenExpired, TokenInvalid, UnauthorizedError
from shared.metrics import MetricsCollector


class TestAuthMiddleware:
    """Test cases for AuthMiddleware."""

    @pytest.fixture
    def signing(self):
        return SigningConfig(secret="test-secret", lifetime=timedelta(hours=1))

    @pytest.fixture
    def store(self):
        return InMemoryStore(bcrypt_rounds=4)

    @pytest.fixture
    def identity(self, store):
        return store.add_identity("dealer", "secret")

    @pytest.fixture
    def metrics(self):
        return MetricsCollector("intake-test")

    @pytest.fixture
    def middleware(self, signing, store, metrics):
        return AuthMiddleware(TokenVerifier(signing), IdentityResolver(store), metrics=metrics)

    @pytest.fixture
    def token(self, signing, identity):
        return TokenIssuer(signing).issue(identity.user_id).token

    @pytest.fixture
    def mock_request(self):
        """Create mock request."""
        request = MagicMock(spec=Request)
        request.headers = {}
        request.url.path = "/auth/servicerequests"
        return request

    @pytest.mark.asyncio
    async def test_authenticate_success(self, middleware, mock_request, token, identity):
        """Test both gates pass for a valid token of a live account."""
        mock_request.headers = {"Authorization": f"Bearer {token}"}

        context = await middleware.authenticate(mock_request)

        assert context == AuthContext(user_id=identity.user_id, token=token)

    @pytest.mark.asyncio
    async def test_call_stores_context_on_request(self, middleware, mock_request, token, identity):
        """Test the dependency form exposes the caller to handlers."""
        mock_request.headers = {"Authorization": f"Bearer {token}"}

        context = await middleware(mock_request)

        assert mock_request.state.auth_context == context
        assert context.user_id == identity.user_id

    @pytest.mark.asyncio
    async def test_scheme_is_case_insensitive(self, middleware, mock_request, token):
        mock_request.headers = {"Authorization": f"bearer {token}"}

        context = await middleware.authenticate(mock_request)

        assert context.token == token

    @pytest.mark.asyncio
    async def test_missing_header(self, middleware, mock_request, metrics):
        """Test requests without a token are rejected as invalid."""
        with pytest.raises(TokenInvalid):
            await middleware.authenticate(mock_request)

        assert metrics.sample("auth_failures_total", reason="token_invalid") == 1.0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("header", ["Basic abc", "Bearer", "Bearer    ", "token-without-scheme"])
    async def test_bad_header_format(self, middleware, mock_request, header):
        mock_request.headers = {"Authorization": header}

        with pytest.raises(TokenInvalid):
            await middleware.authenticate(mock_request)

    @pytest.mark.asyncio
    async def test_expired_token(self, middleware, mock_request, signing, identity, metrics):
        """Test expired tokens are rejected and the reason is recorded."""
        past = datetime.now(timezone.utc) - timedelta(hours=3)
        token = TokenIssuer(signing, clock=lambda: past).issue(identity.user_id).token
        mock_request.headers = {"Authorization": f"Bearer {token}"}

        with pytest.raises(TokenExpired):
            await middleware.authenticate(mock_request)

        assert metrics.sample("auth_failures_total", reason="token_expired") == 1.0

    @pytest.mark.asyncio
    async def test_deleted_identity(self, middleware, mock_request, store, token, identity, metrics):
        """Test a valid token for a deleted account is rejected."""
        store.delete_identity(identity.user_id)
        mock_request.headers = {"Authorization": f"Bearer {token}"}

        with pytest.raises(IdentityNotFound):
            await middleware.authenticate(mock_request)

        assert metrics.sample("auth_failures_total", reason="identity_not_found") == 1.0

    @pytest.mark.asyncio
    async def test_identity_not_checked_when_token_fails(self, signing, mock_request):
        """Test the identity gate is skipped once the token gate rejects."""
        resolver = AsyncMock()
        middleware = AuthMiddleware(TokenVerifier(signing), resolver)
        mock_request.headers = {"Authorization": "Bearer garbage"}

        with pytest.raises(TokenInvalid):
            await middleware.authenticate(mock_request)

        resolver.resolve.assert_not_called()

    @pytest.mark.asyncio
    async def test_all_failures_share_public_message(self, middleware, mock_request, signing, store, identity):
        """Test clients cannot tell which check failed."""
        past = datetime.now(timezone.utc) - timedelta(hours=3)
        expired = TokenIssuer(signing, clock=lambda: past).issue(identity.user_id).token
        orphan = TokenIssuer(signing).issue(999).token

        messages = set()
        for header in (None, "Bearer garbage", f"Bearer {expired}", f"Bearer {orphan}"):
            mock_request.headers = {"Authorization": header} if header else {}
            with pytest.raises(UnauthorizedError) as exc_info:
                await middleware.authenticate(mock_request)
            assert exc_info.value.status_code == 401
            messages.add(exc_info.value.to_response().error)

        assert messages == {"unauthorized"}

    @pytest.mark.asyncio
    async def test_custom_header_without_scheme(self, signing, store, identity, token, mock_request):
        """Test raw tokens in a configured header."""
        middleware = AuthMiddleware(
            TokenVerifier(signing),
            IdentityResolver(store),
            token_header="X-Access-Token",
            token_scheme="",
        )
        mock_request.headers = {"X-Access-Token": token}

        context = await middleware.authenticate(mock_request)

        assert context.user_id == identity.user_id
