"""
Intake Gateway Service package.

The gateway accepts dealer submissions behind token authentication:
- Login: credentials checked against the identity store, signed token issued
- Protected routes: token verified and subject re-resolved on every request
- Validation: declarative field rules applied before anything is persisted

Structure:
- app.main: FastAPI app, routes, and service wiring.
- app.auth: Token issuer/verifier, credential and identity checks, gate.
- app.validation: Rule registry and validation engine.
- app.models: Payload shapes and response models.
- app.store: Identity/submission store interfaces and adapters.
"""
