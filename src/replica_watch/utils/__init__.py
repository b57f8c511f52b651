"""
Utility modules for replica-watch

Provides:
- retry: RetryExecutor with jittered exponential backoff
- logging: logging setup, formatters and context adapters
- metrics: Prometheus metrics and publisher
- tracing: OpenTelemetry spans
- vault_client: HashiCorp Vault integration for credentials
"""

__all__ = ["retry", "logging", "metrics", "tracing", "vault_client"]
