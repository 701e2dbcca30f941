"""
SLA Value Objects
==================

Immutable value objects for the SLA domain.

Value objects are defined by their attributes rather than an identity.
Policy building blocks (targets, pause rules, filters) are Pydantic models so
they validate the same way whether they come from YAML defaults or from an
API upsert.
"""

from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator

from sla_engine.config import (
    SLAState, PauseRuleType, DEFAULT_WARNING_THRESHOLD
)
from sla_engine.shared.infrastructure.clock import minutes_between

if TYPE_CHECKING:
    from sla_engine.sla.domain.entities import TaskSnapshot


SLATargetTypeStr = Literal["response", "resolution", "update"]
SLAStateStr = Literal["on_track", "at_risk", "breached", "met"]
PauseRuleTypeStr = Literal["status", "blocked", "customField"]
ChannelStr = Literal["email", "slack", "teams", "in_app"]


class SLATarget(BaseModel):
    """A single timed commitment within a policy."""
    id: str = Field(..., min_length=1)
    type: SLATargetTypeStr
    duration_minutes: int = Field(..., ge=0)
    warning_threshold: Optional[float] = Field(
        default=None,
        ge=0.0,
        le=1.0,
        description="Fraction of the duration left at which the target turns at_risk"
    )
    applies_to_statuses: Optional[List[str]] = None

    def warning_minutes(self, default_threshold: float = DEFAULT_WARNING_THRESHOLD) -> float:
        threshold = self.warning_threshold if self.warning_threshold is not None else default_threshold
        return self.duration_minutes * threshold


class SLAPauseRule(BaseModel):
    """
    Predicate over task state used for both pause and resume rules.

    ``field_key`` defaults to the first entry of ``values`` for custom field rules.
    """
    id: str
    reason: str = ""
    type: PauseRuleTypeStr
    field_key: Optional[str] = None
    values: Optional[List[str]] = None

    def resolved_field_key(self) -> Optional[str]:
        if self.field_key:
            return self.field_key
        if self.values:
            return self.values[0]
        return None


class SLAPolicyFilter(BaseModel):
    """Task-matching filter. Missing or empty fields impose no constraint."""
    priorities: Optional[List[str]] = None
    statuses: Optional[List[str]] = None
    custom_field_matches: Optional[Dict[str, Union[str, List[str]]]] = None


class SLAPolicyTemplate(BaseModel):
    """
    Policy definition without project identity.

    Templates are loaded from YAML and stamped into each new project.
    """
    name: str = "New SLA"
    description: Optional[str] = None
    active: bool = True
    targets: List[SLATarget] = Field(default_factory=list)
    pause_when: List[SLAPauseRule] = Field(default_factory=list)
    resume_when: List[SLAPauseRule] = Field(default_factory=list)
    filter: Optional[SLAPolicyFilter] = None
    notification_channels: List[ChannelStr] = Field(default_factory=lambda: ["email"])


def builtin_default_policies() -> List[SLAPolicyTemplate]:
    """Policies every project starts with when no YAML override exists."""
    return [
        SLAPolicyTemplate(
            name="High priority response",
            description="Respond to urgent work within four hours.",
            targets=[
                SLATarget(id="response", type="response", duration_minutes=60 * 4, warning_threshold=0.25),
            ],
            pause_when=[
                SLAPauseRule(id="waiting", reason="Waiting on customer", type="status", values=["waiting"]),
                SLAPauseRule(id="blocked", reason="Task is blocked", type="blocked"),
            ],
            filter=SLAPolicyFilter(priorities=["urgent", "high"]),
            notification_channels=["slack", "email"],
        ),
        SLAPolicyTemplate(
            name="Resolution target",
            description="Resolve work within two business days.",
            targets=[
                SLATarget(id="resolution", type="resolution", duration_minutes=60 * 24 * 2, warning_threshold=0.2),
            ],
            pause_when=[
                SLAPauseRule(id="blocked", reason="Blocked work", type="blocked"),
                SLAPauseRule(
                    id="external",
                    reason="Waiting on partner",
                    type="customField",
                    field_key="dependency_type",
                    values=["external_dependency", "customer"],
                ),
            ],
            resume_when=[
                SLAPauseRule(id="resumed", reason="Resumed", type="status", values=["in_progress"]),
            ],
            notification_channels=["teams", "email"],
        ),
    ]


class SLAConfig(BaseModel):
    """
    SLA Configuration loaded from YAML.

    This is a value object - immutable and defined by its attributes.
    """
    default_policies: List[SLAPolicyTemplate] = Field(
        default_factory=builtin_default_policies,
        description="Policies seeded into each project on first access"
    )
    warning_threshold: float = Field(
        default=DEFAULT_WARNING_THRESHOLD,
        ge=0.0,
        le=1.0,
        description="Warning threshold applied to targets that do not set one"
    )

    @field_validator("default_policies", mode="before")
    @classmethod
    def validate_default_policies(cls, v: Any) -> Any:
        """A null section in YAML means "use the built-in defaults"."""
        if v is None:
            return builtin_default_policies()
        return v


def _stringify(value: Any) -> str:
    """String form used for custom field comparisons (None compares as empty)."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class SLACalculator:
    """
    Pure functions for SLA calculations.

    Stateless utility class - all SLA clock arithmetic and rule matching
    lives here so the evaluation service only orchestrates.
    """

    @staticmethod
    def calculate_elapsed_minutes(task: "TaskSnapshot", now: datetime) -> int:
        """
        Minutes the SLA clock has run for a task, ignoring pauses.

        The clock starts at ``created_at`` (falling back to ``updated_at``, then
        ``now``) and stops at ``completed_at`` when the task is done.
        """
        started_at = task.created_at or task.updated_at or now
        if task.completed_at:
            return max(0, minutes_between(task.completed_at, started_at))
        return max(0, minutes_between(now, started_at))

    @staticmethod
    def task_matches_policy(task: "TaskSnapshot", policy_filter: Optional[SLAPolicyFilter]) -> bool:
        """All filter clauses are ANDed; an absent clause always matches."""
        if policy_filter is None:
            return True

        if policy_filter.priorities and task.priority not in policy_filter.priorities:
            return False
        if policy_filter.statuses and task.status not in policy_filter.statuses:
            return False

        for field_key, expected in (policy_filter.custom_field_matches or {}).items():
            value = _stringify(task.custom_fields.get(field_key))
            if isinstance(expected, list):
                if value not in expected:
                    return False
            elif value != _stringify(expected):
                return False

        return True

    @staticmethod
    def is_paused(task: "TaskSnapshot", pause_rules: List[SLAPauseRule]) -> bool:
        """True when any pause rule holds for the task."""
        for rule in pause_rules:
            if rule.type == PauseRuleType.BLOCKED and task.blocked:
                return True
            if rule.type == PauseRuleType.STATUS and rule.values and task.status in rule.values:
                return True
            if rule.type == PauseRuleType.CUSTOM_FIELD and rule.values:
                field_key = rule.resolved_field_key()
                value = task.custom_fields.get(field_key) if field_key else None
                if value and _stringify(value) in rule.values:
                    return True
        return False

    @staticmethod
    def should_resume(task: "TaskSnapshot", resume_rules: List[SLAPauseRule]) -> bool:
        """True when any resume rule recognises the task as active again."""
        for rule in resume_rules:
            if rule.type == PauseRuleType.STATUS and rule.values and task.status in rule.values:
                return True
            if rule.type == PauseRuleType.BLOCKED and not task.blocked:
                return True
            if rule.type == PauseRuleType.CUSTOM_FIELD and rule.values:
                field_key = rule.resolved_field_key()
                value = task.custom_fields.get(field_key) if field_key else None
                if value == "active":
                    return True
        return False

    @staticmethod
    def calculate_status(
        completed: bool,
        effective_elapsed: int,
        remaining: int,
        target: SLATarget,
        default_threshold: float = DEFAULT_WARNING_THRESHOLD
    ) -> str:
        """
        Classify a target.

        Args:
            completed: Whether the task has a completion timestamp
            effective_elapsed: Elapsed minutes minus paused minutes
            remaining: Duration minus effective elapsed
            target: The target being evaluated
            default_threshold: Threshold for targets that do not set their own

        Returns:
            SLAState: Current SLA state
        """
        if completed:
            if effective_elapsed <= target.duration_minutes:
                return SLAState.MET
            return SLAState.BREACHED

        if remaining <= 0:
            return SLAState.BREACHED
        if remaining <= target.warning_minutes(default_threshold):
            return SLAState.AT_RISK
        return SLAState.ON_TRACK
