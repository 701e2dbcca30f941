"""
SLA Domain Layer
================

Domain layer for SLA tracking.

Contains:
- Entities: Core business objects with identity (SLAPolicy, SLATaskState, SLABreachRecord)
- Value Objects: Immutable objects defined by attributes (SLATarget, SLAPauseRule, SLAConfig)
- Domain Services: Stateless business logic (SLACalculator)

This layer has no dependencies on infrastructure - pure Python business logic.
"""

from sla_engine.sla.domain.entities import (
    TaskSnapshot,
    SLAPolicy,
    SLATaskState,
    SLATargetEvaluation,
    SLABreachRecord,
    SLAPolicyEvaluation,
    SLAHealthSnapshot,
    ProjectSLALedger,
)
from sla_engine.sla.domain.value_objects import (
    SLACalculator,
    SLAConfig,
    SLATarget,
    SLAPauseRule,
    SLAPolicyFilter,
    SLAPolicyTemplate,
    builtin_default_policies,
)

__all__ = [
    # Entities
    "TaskSnapshot",
    "SLAPolicy",
    "SLATaskState",
    "SLATargetEvaluation",
    "SLABreachRecord",
    "SLAPolicyEvaluation",
    "SLAHealthSnapshot",
    "ProjectSLALedger",
    # Value Objects & Services
    "SLACalculator",
    "SLAConfig",
    "SLATarget",
    "SLAPauseRule",
    "SLAPolicyFilter",
    "SLAPolicyTemplate",
    "builtin_default_policies",
]
