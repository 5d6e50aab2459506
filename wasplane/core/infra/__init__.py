"""
Contratos para providers de WebSphere.

Los providers (cluster_member, cf, jdbc_provider, ...) implementan estos contratos;
el core no depende de ningún provider concreto. La base opcional vive en infra.base.
"""

from wasplane.core.infra.contracts import (
    ExecutionContext,
    ExecutionResult,
    FailureReason,
    Outcome,
    PlanResult,
    ProviderContract,
)

__all__ = [
    "ExecutionContext",
    "ExecutionResult",
    "FailureReason",
    "Outcome",
    "PlanResult",
    "ProviderContract",
]
