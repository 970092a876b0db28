"""
Intake gateway service: login plus token-gated submission routes.
"""

from typing import Optional, Type, TypeVar

from fastapi import APIRouter, Depends, Request

from shared.base_service import BaseService
from shared.config import ServiceConfig
from shared.errors import AccessLayerException, AuthenticationFailed, StoreError
from .auth import (
    AuthMiddleware,
    CredentialVerifier,
    IdentityResolver,
    SigningConfig,
    TokenIssuer,
    TokenVerifier,
)
from .models import (
    AcceptedResponse,
    Credentials,
    ServiceOrder,
    ServiceRequest,
    ServiceStatus,
    TokenResponse,
)
from .store import IntakeStore, create_store
from .validation import RuleRegistry, ValidationEngine, build_rule_registry

T = TypeVar("T")


class IntakeService(BaseService):
    """Request gateway service implementation."""

    def __init__(
        self,
        config: Optional[ServiceConfig] = None,
        store: Optional[IntakeStore] = None,
        registry: Optional[RuleRegistry] = None,
    ):
        super().__init__("intake", 8000, config)

        # Built once; shared read-only by every request.
        self.signing = SigningConfig.from_config(self.config)
        self.registry = (registry or build_rule_registry()).freeze()
        self.validation = ValidationEngine(self.registry)
        self.validation.prepare(Credentials, ServiceRequest, ServiceOrder, ServiceStatus)

        self.store = store or create_store(self.config)
        self.token_issuer = TokenIssuer(self.signing)
        self.token_verifier = TokenVerifier(self.signing)
        self.credential_verifier = CredentialVerifier(self.store)
        self.identity_resolver = IdentityResolver(self.store)
        self.auth_middleware = AuthMiddleware(
            self.token_verifier,
            self.identity_resolver,
            token_header=self.config.token_header,
            token_scheme=self.config.token_scheme,
            metrics=self.metrics,
        )

        @self.app.on_event("startup")
        async def _startup():
            await self.store.start()

        @self.app.on_event("shutdown")
        async def _shutdown():
            await self.store.stop()

        self._setup_intake_routes()

        # Expose service instance via app state for introspection/testing
        self.app.state.intake_service = self

    def _setup_intake_routes(self):
        """Open login route plus the token-gated submission routes."""

        @self.app.get("/")
        async def root():
            return {
                "service": "intake",
                "message": "Service Intake Gateway",
                "version": "1.0.0"
            }

        @self.app.post("/authentication", response_model=TokenResponse)
        async def authenticate(request: Request):
            """Exchange login/secret for a signed token."""
            credentials = self.validation.validate(
                self.validation.decode(await request.body(), Credentials)
            )

            try:
                identity = await self.credential_verifier.verify(credentials.login, credentials.secret)
            except AuthenticationFailed:
                self.metrics.record_auth_failure("bad_credentials")
                raise

            issued = self.token_issuer.issue(identity.user_id)
            self.logger.info("Token issued", user_id=identity.user_id, expires_at=issued.expires_at.isoformat())
            return TokenResponse(token=issued.token, exp=issued.expires_at)

        protected = APIRouter(prefix="/auth", dependencies=[Depends(self.auth_middleware)])

        @protected.post("/servicerequests", response_model=AcceptedResponse)
        async def submit_service_request(request: Request):
            return await self._accept(request, ServiceRequest, "requests")

        @protected.post("/serviceorders", response_model=AcceptedResponse)
        async def submit_service_order(request: Request):
            return await self._accept(request, ServiceOrder, "orders")

        @protected.post("/servicestatuses", response_model=AcceptedResponse)
        async def submit_service_status(request: Request):
            return await self._accept(request, ServiceStatus, "statuses")

        self.app.include_router(protected)

    async def _accept(self, request: Request, shape: Type[T], kind: str) -> AcceptedResponse:
        """Decode, validate and persist one submission.

        The success response is only produced after the store call returns;
        a store failure surfaces to the caller as 503.
        """
        try:
            payload = self.validation.validate(
                self.validation.decode(await request.body(), shape)
            )
        except AccessLayerException:
            self.metrics.record_submission(kind, "rejected")
            raise

        try:
            await self.store.insert(payload)
        except StoreError:
            self.metrics.record_submission(kind, "store_error")
            raise

        self.metrics.record_submission(kind, "accepted")
        self.logger.info(
            "Submission accepted",
            kind=kind,
            user_id=request.state.auth_context.user_id,
        )
        return AcceptedResponse()

    async def _check_dependencies(self):
        """Check intake dependencies."""
        return {"store": await self.store.check_health()}


def create_app():
    """Create FastAPI application."""
    service = IntakeService()
    return service.app


if __name__ == "__main__":
    service = IntakeService()
    service.run()
