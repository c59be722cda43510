"""
Shared utilities for the OAPIS Registry.

This package aggregates common building blocks consumed by all services:

- config: Service configuration via pydantic-settings
- logging: Structured logging with request correlation
- metrics: Prometheus metrics helpers
- tracing: OpenTelemetry tracing config
- errors: Registry error types and response bodies
- base_service: FastAPI application shell

Do not import from service_* packages into shared/.
"""
