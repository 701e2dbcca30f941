"""
SLA Application DTOs
=====================

Data Transfer Objects for SLA API layer.

These Pydantic models handle serialization/deserialization and validation
for API requests and responses. Following YAGNI - only what's needed.
"""

from pydantic import BaseModel, Field, field_validator
from typing import Any, Dict, List, Optional
from datetime import datetime

from sla_engine.sla.domain import (
    TaskSnapshot, SLATarget, SLAPauseRule, SLAPolicyFilter, SLABreachRecord
)
from sla_engine.sla.domain.value_objects import SLAStateStr, SLATargetTypeStr, ChannelStr


# ========== Request DTOs ==========

class TaskSnapshotDTO(BaseModel):
    """Task snapshot as supplied by the caller; only ``id`` is required."""
    id: str = Field(..., min_length=1, description="Task ID")
    title: Optional[str] = None
    status: Optional[str] = None
    priority: Optional[str] = None
    blocked: bool = False
    custom_fields: Dict[str, Any] = Field(default_factory=dict)
    assignee_ids: List[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    due_date: Optional[datetime] = None

    @field_validator("custom_fields", "assignee_ids", mode="before")
    @classmethod
    def validate_collections(cls, v: Any, info) -> Any:
        """Treat explicit nulls as empty collections."""
        if v is None:
            return {} if info.field_name == "custom_fields" else []
        return v

    def to_domain(self) -> TaskSnapshot:
        """Convert to domain entity."""
        return TaskSnapshot(**self.model_dump())


class SLAEvaluateRequest(BaseModel):
    """Request model for an evaluation pass."""
    tasks: List[TaskSnapshotDTO] = Field(
        default_factory=list,
        description="Task snapshots to evaluate"
    )
    now: Optional[datetime] = Field(None, description="Evaluation time (defaults to server clock)")


class SLAPolicyUpsertRequest(BaseModel):
    """
    Partial policy. With ``id`` the named policy is updated, without it a
    new policy is created.
    """
    id: Optional[str] = None
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    active: Optional[bool] = None
    targets: Optional[List[SLATarget]] = None
    pause_when: Optional[List[SLAPauseRule]] = None
    resume_when: Optional[List[SLAPauseRule]] = None
    filter: Optional[SLAPolicyFilter] = None
    notification_channels: Optional[List[ChannelStr]] = None

    def to_changes(self) -> Dict[str, Any]:
        """Only the fields the caller actually sent."""
        return self.model_dump(exclude_unset=True)


# ========== Response DTOs ==========

class SLAPolicyResponse(BaseModel):
    """Response model for an SLA policy."""
    id: str
    project_id: str
    name: str
    description: Optional[str] = None
    active: bool
    targets: List[SLATarget]
    pause_when: List[SLAPauseRule]
    resume_when: List[SLAPauseRule]
    filter: Optional[SLAPolicyFilter] = None
    notification_channels: List[ChannelStr]
    updated_at: datetime


class SLATargetEvaluationResponse(BaseModel):
    target_id: str
    type: SLATargetTypeStr
    status: SLAStateStr
    duration_minutes: int
    elapsed_minutes: int
    remaining_minutes: int
    paused_minutes: int


class SLAPolicyEvaluationResponse(BaseModel):
    """Per-policy counters of one evaluation pass."""
    policy_id: str
    policy_name: str
    active: bool
    total_tasks: int
    on_track: int
    at_risk: int
    breached: int
    met: int
    evaluations: Dict[str, SLATargetEvaluationResponse] = Field(default_factory=dict)


class SLABreachResponse(BaseModel):
    """Response model for a breach record."""
    id: str
    policy_id: str
    task_id: str
    task_title: str
    occurred_at: datetime
    target_id: str
    target_type: SLATargetTypeStr

    @classmethod
    def from_domain(cls, breach: SLABreachRecord) -> "SLABreachResponse":
        return cls(**breach.to_dict())


class SLAHealthSnapshotResponse(BaseModel):
    """Response model for an SLA health snapshot."""
    generated_at: datetime
    policies: List[SLAPolicyEvaluationResponse]
    totals: Dict[str, int] = Field(..., description="Counts per SLA state across policies")
    breaches: List[SLABreachResponse] = Field(
        default_factory=list,
        description="Most recent breach records"
    )


class TaskStateResetResponse(BaseModel):
    policy_id: str
    task_id: str
    reset: bool = Field(..., description="Whether any state existed for the pair")
