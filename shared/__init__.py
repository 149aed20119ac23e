"""
Shared utilities for the Feature Flags service.

This package aggregates common building blocks consumed by the service:

- config: Rule store and service configuration via pydantic-settings
- logging: Structured logging with request correlation
- metrics: Prometheus metrics helpers
- errors: Canonical error types and responses
- base_service: FastAPI application shell (health, metrics, error mapping)

Do not import from service_flags into shared/.
"""
