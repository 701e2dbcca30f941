"""
SLA Application Layer
======================

Application layer for SLA tracking.

Contains:
- Services: Orchestrate business logic and coordinate with repositories
- DTOs: Data transfer objects for API serialization

This layer depends on the domain layer and repository interfaces,
but not on concrete infrastructure implementations.
"""

from sla_engine.sla.application.dto import (
    TaskSnapshotDTO,
    SLAEvaluateRequest,
    SLAPolicyUpsertRequest,
    SLAPolicyResponse,
    SLATargetEvaluationResponse,
    SLAPolicyEvaluationResponse,
    SLABreachResponse,
    SLAHealthSnapshotResponse,
    TaskStateResetResponse,
)
from sla_engine.sla.application.services import (
    SLAPolicyService,
    SLAEvaluationService,
    BreachRecorder,
    ISLALedgerRepository,
    ISLAConfigProvider,
    INotificationEventSink,
)

__all__ = [
    # DTOs
    "TaskSnapshotDTO",
    "SLAEvaluateRequest",
    "SLAPolicyUpsertRequest",
    "SLAPolicyResponse",
    "SLATargetEvaluationResponse",
    "SLAPolicyEvaluationResponse",
    "SLABreachResponse",
    "SLAHealthSnapshotResponse",
    "TaskStateResetResponse",
    # Services
    "SLAPolicyService",
    "SLAEvaluationService",
    "BreachRecorder",
    # Interfaces
    "ISLALedgerRepository",
    "ISLAConfigProvider",
    "INotificationEventSink",
]
