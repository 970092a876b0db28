"""
Shared utilities for the Service Intake Gateway.

This package aggregates common building blocks consumed by every service:

- config: Service configuration via pydantic-settings
- logging: Structured logging with request correlation
- metrics: Prometheus metrics helpers
- errors: Canonical error types and client-facing responses
- base_service: FastAPI application scaffolding

Do not import from service packages into shared/.
"""
