"""
Cachet Sync keeps a Cachet status page in line with health checks.

Reconciles batches of check results into Cachet components and
incidents, concurrently and idempotently.
"""

__version__ = "1.0.0"

from cachet_sync.config import ConfigBuilder, IntegrationConfig
from cachet_sync.errors import (
    BatchFailedError,
    CachetError,
    ReconciliationError,
    TransportError,
    ValidationError,
)
from cachet_sync.integration import CachetIntegration
from cachet_sync.models import (
    BatchReport,
    CheckOutcome,
    Component,
    ComponentStatus,
    Incident,
    IncidentStatus,
    IterationResult,
    ReconcileOptions,
)

__all__ = [
    "BatchFailedError",
    "BatchReport",
    "CachetError",
    "CachetIntegration",
    "CheckOutcome",
    "Component",
    "ComponentStatus",
    "ConfigBuilder",
    "Incident",
    "IncidentStatus",
    "IntegrationConfig",
    "IterationResult",
    "ReconcileOptions",
    "ReconciliationError",
    "TransportError",
    "ValidationError",
]
