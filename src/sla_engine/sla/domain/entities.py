"""
SLA Domain Entities
====================

Pure Python domain entities for SLA tracking.

Following Domain-Driven Design principles, these entities contain
business logic and are free of infrastructure concerns.
"""

from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Any, Dict, List, Optional, Set, Tuple

from pydantic import BaseModel, Field

from sla_engine.config import SLAState
from sla_engine.sla.domain.value_objects import (
    SLATarget, SLAPauseRule, SLAPolicyFilter, ChannelStr
)


@dataclass
class TaskSnapshot:
    """
    Point-in-time view of a task, supplied by the caller on every evaluation.

    Every field except ``id`` is optional: the evaluator falls back to
    defaults instead of rejecting incomplete task data.
    """

    id: str
    title: Optional[str] = None
    status: Optional[str] = None
    priority: Optional[str] = None
    blocked: bool = False
    custom_fields: Dict[str, Any] = field(default_factory=dict)
    assignee_ids: List[str] = field(default_factory=list)

    # Timestamps
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    due_date: Optional[datetime] = None

    @property
    def is_completed(self) -> bool:
        """Check if task has been completed."""
        return self.completed_at is not None

    @property
    def display_title(self) -> str:
        return self.title or "Untitled task"


class SLAPolicy(BaseModel):
    """
    SLA policy entity.

    Policies are never deleted; they are switched off with ``active=False``.
    Only the first entry of ``targets`` is evaluated.
    """
    id: str
    project_id: str
    name: str
    description: Optional[str] = None
    active: bool = True
    targets: List[SLATarget] = Field(default_factory=list)
    pause_when: List[SLAPauseRule] = Field(default_factory=list)
    resume_when: List[SLAPauseRule] = Field(default_factory=list)
    filter: Optional[SLAPolicyFilter] = None
    notification_channels: List[ChannelStr] = Field(default_factory=lambda: ["email"])
    updated_at: datetime

    @property
    def primary_target(self) -> Optional[SLATarget]:
        """The target the evaluator looks at."""
        return self.targets[0] if self.targets else None


@dataclass
class SLATaskState:
    """
    Bookkeeping carried between evaluations for one (policy, task) pair.

    ``breached_targets`` is the idempotency guard for breach records.
    Paused time is kept in seconds so checks less than a minute apart still
    accrue; evaluations report whole minutes.
    """

    task_id: str
    policy_id: str
    breached_targets: Set[str] = field(default_factory=set)
    paused_seconds: float = 0.0
    last_checked_at: Optional[datetime] = None
    last_status: Optional[str] = None

    @property
    def paused_minutes(self) -> int:
        return int(self.paused_seconds // 60)

    def has_breached(self, target_id: str) -> bool:
        return target_id in self.breached_targets

    def mark_breached(self, target_id: str) -> None:
        self.breached_targets.add(target_id)

    def record_check(self, paused_seconds: float, checked_at: datetime, status: Optional[str]) -> None:
        """Persist the outcome of one evaluation."""
        self.paused_seconds = max(0.0, paused_seconds)
        self.last_checked_at = checked_at
        self.last_status = status


@dataclass(frozen=True)
class SLATargetEvaluation:
    """Result of evaluating one target for one task."""

    target_id: str
    type: str
    status: str
    duration_minutes: int
    elapsed_minutes: int
    remaining_minutes: int
    paused_minutes: int

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class SLABreachRecord:
    """
    Immutable breach log entry.

    ``target_type`` is the type of the breached target (response, resolution, update).
    """

    id: str
    policy_id: str
    task_id: str
    task_title: str
    occurred_at: datetime
    target_id: str
    target_type: str

    def to_dict(self) -> dict:
        data = asdict(self)
        data["occurred_at"] = self.occurred_at.isoformat()
        return data


@dataclass
class SLAPolicyEvaluation:
    """Per-policy rollup produced by one evaluation pass."""

    policy_id: str
    policy_name: str
    active: bool
    total_tasks: int = 0
    on_track: int = 0
    at_risk: int = 0
    breached: int = 0
    met: int = 0
    evaluations: Dict[str, SLATargetEvaluation] = field(default_factory=dict)

    def tally(self, task_id: str, evaluation: SLATargetEvaluation) -> None:
        """Record a task's evaluation and bump the matching counter."""
        self.evaluations[task_id] = evaluation
        if evaluation.status == SLAState.MET:
            self.met += 1
        elif evaluation.status == SLAState.BREACHED:
            self.breached += 1
        elif evaluation.status == SLAState.AT_RISK:
            self.at_risk += 1
        else:
            self.on_track += 1


@dataclass
class SLAHealthSnapshot:
    """
    Aggregate returned by each evaluation call.

    Not persisted beyond the project's "last snapshot" slot.
    """

    generated_at: datetime
    policies: List[SLAPolicyEvaluation] = field(default_factory=list)
    totals: Dict[str, int] = field(
        default_factory=lambda: {"on_track": 0, "at_risk": 0, "breached": 0, "met": 0}
    )
    breaches: List[SLABreachRecord] = field(default_factory=list)

    def add_policy(self, evaluation: SLAPolicyEvaluation) -> None:
        self.policies.append(evaluation)
        self.totals["on_track"] += evaluation.on_track
        self.totals["at_risk"] += evaluation.at_risk
        self.totals["breached"] += evaluation.breached
        self.totals["met"] += evaluation.met

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        return {
            "generated_at": self.generated_at.isoformat(),
            "policies": [
                {
                    "policy_id": p.policy_id,
                    "policy_name": p.policy_name,
                    "active": p.active,
                    "total_tasks": p.total_tasks,
                    "on_track": p.on_track,
                    "at_risk": p.at_risk,
                    "breached": p.breached,
                    "met": p.met,
                    "evaluations": {
                        task_id: evaluation.to_dict()
                        for task_id, evaluation in p.evaluations.items()
                    },
                }
                for p in self.policies
            ],
            "totals": dict(self.totals),
            "breaches": [breach.to_dict() for breach in self.breaches],
        }


@dataclass
class ProjectSLALedger:
    """
    All SLA state owned by one project.

    ``policies`` stays ``None`` until the project's defaults are seeded.
    """

    project_id: str
    policies: Optional[List[SLAPolicy]] = None
    task_states: Dict[Tuple[str, str], SLATaskState] = field(default_factory=dict)
    breaches: List[SLABreachRecord] = field(default_factory=list)
    last_snapshot: Optional[SLAHealthSnapshot] = None

    def task_state(self, policy_id: str, task_id: str) -> SLATaskState:
        """Fetch-or-create the bookkeeping for a (policy, task) pair."""
        key = (policy_id, task_id)
        state = self.task_states.get(key)
        if state is None:
            state = SLATaskState(task_id=task_id, policy_id=policy_id)
            self.task_states[key] = state
        return state

    def drop_task_state(self, policy_id: str, task_id: str) -> bool:
        return self.task_states.pop((policy_id, task_id), None) is not None

    def recent_breaches(self, limit: int) -> List[SLABreachRecord]:
        return list(self.breaches[-limit:]) if limit > 0 else []
