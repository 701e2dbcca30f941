"""
SLA Application Services
=========================

Application services orchestrate business logic and coordinate between
domain entities and repositories.

Following SOLID principles:
- Single Responsibility: policies, breach recording and evaluation are separate services
- Dependency Inversion: depend on abstractions (repository, config provider,
  event sink), not concrete implementations
"""

import copy
from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple

from pydantic import ValidationError

from sla_engine.config import settings, SLAState, NotificationTrigger
from sla_engine.core import ResourceNotFoundException, ValidationException
from sla_engine.shared.infrastructure.clock import (
    Clock, utc_now, resolve_now, generate_id, seconds_between
)
from sla_engine.shared.infrastructure.logging import get_logger, log_latency
from sla_engine.sla.domain import (
    TaskSnapshot, SLAPolicy, SLATaskState, SLATarget, SLATargetEvaluation,
    SLABreachRecord, SLAPolicyEvaluation, SLAHealthSnapshot, ProjectSLALedger,
    SLACalculator, SLAConfig, SLAPolicyTemplate
)

logger = get_logger(__name__)


# ========== Ports (Dependency Inversion) ==========

class ISLALedgerRepository(ABC):
    """Interface for per-project SLA state."""

    @abstractmethod
    def locked(self, project_id: str) -> AbstractContextManager[ProjectSLALedger]:
        """Hold the project's lock and yield its ledger."""

    @abstractmethod
    def reset(self, project_id: str) -> bool:
        """Drop all SLA state for a project."""


class ISLAConfigProvider(ABC):
    """Interface for SLA configuration access."""

    @abstractmethod
    def get_config(self) -> SLAConfig:
        """Get current SLA configuration."""


class INotificationEventSink(ABC):
    """
    Narrow port through which SLA tracking emits notification events.

    The notification service is the production implementation; tests can
    substitute a recording sink.
    """

    @abstractmethod
    def emit(
        self,
        project_id: str,
        trigger: str,
        payload: Dict[str, Any],
        channels: Optional[List[str]] = None,
        now: Optional[datetime] = None
    ) -> Any:
        """Hand an event to the notification pipeline."""


# ========== Application Services ==========

class SLAPolicyService:
    """
    Policy Store operations: seeding, listing and upserting policies.
    """

    def __init__(
        self,
        repository: ISLALedgerRepository,
        config_provider: ISLAConfigProvider,
        clock: Clock = utc_now
    ):
        self._repository = repository
        self._config_provider = config_provider
        self._clock = clock

    def ensure_policies(self, ledger: ProjectSLALedger, now: datetime) -> List[SLAPolicy]:
        """Seed the project's policies from configuration on first access."""
        if ledger.policies is None:
            templates = self._config_provider.get_config().default_policies
            ledger.policies = [
                self._stamp(template, ledger.project_id, now) for template in templates
            ]
            logger.info(
                "Seeded default SLA policies",
                extra={"project_id": ledger.project_id, "policy_count": len(ledger.policies)}
            )
        return ledger.policies

    @staticmethod
    def _stamp(template: SLAPolicyTemplate, project_id: str, now: datetime) -> SLAPolicy:
        return SLAPolicy(
            id=generate_id("sla"),
            project_id=project_id,
            updated_at=now,
            **copy.deepcopy(template.model_dump())
        )

    def list_policies(self, project_id: str, now: Optional[datetime] = None) -> List[SLAPolicy]:
        """Detached copies of every policy of a project (active or not)."""
        now = resolve_now(now, self._clock)
        with self._repository.locked(project_id) as ledger:
            return [p.model_copy(deep=True) for p in self.ensure_policies(ledger, now)]

    def upsert_policy(
        self,
        project_id: str,
        changes: Dict[str, Any],
        now: Optional[datetime] = None
    ) -> SLAPolicy:
        """
        Create a policy, or merge ``changes`` into the policy named by ``changes["id"]``.

        Raises:
            ResourceNotFoundException: ``id`` given but unknown (nothing is mutated)
            ValidationException: merged policy fails validation (nothing is mutated)
        """
        now = resolve_now(now, self._clock)
        changes = {k: v for k, v in changes.items() if k not in ("project_id", "updated_at")}
        policy_id = changes.pop("id", None)

        with self._repository.locked(project_id) as ledger:
            policies = self.ensure_policies(ledger, now)

            if policy_id:
                index = next((i for i, p in enumerate(policies) if p.id == policy_id), None)
                if index is None:
                    raise ResourceNotFoundException("SLA policy", policy_id)
                merged = {**policies[index].model_dump(), **changes, "updated_at": now}
                policy = self._validate(merged)
                policies[index] = policy
                logger.info(
                    "SLA policy updated",
                    extra={"project_id": project_id, "policy_id": policy_id}
                )
            else:
                fields = {**SLAPolicyTemplate().model_dump(), **changes}
                policy = self._validate({
                    **fields,
                    "id": generate_id("sla"),
                    "project_id": project_id,
                    "updated_at": now,
                })
                policies.append(policy)
                logger.info(
                    "SLA policy created",
                    extra={"project_id": project_id, "policy_id": policy.id}
                )

            return policy.model_copy(deep=True)

    @staticmethod
    def _validate(data: Dict[str, Any]) -> SLAPolicy:
        try:
            return SLAPolicy.model_validate(data)
        except ValidationError as e:
            raise ValidationException.from_pydantic("Invalid SLA policy", e)


class BreachRecorder:
    """
    Appends breach records and announces them on the event sink.

    Callers guarantee a target is recorded at most once per task state.
    """

    def __init__(self, event_sink: INotificationEventSink):
        self._event_sink = event_sink

    def record(
        self,
        ledger: ProjectSLALedger,
        policy: SLAPolicy,
        task: TaskSnapshot,
        evaluation: SLATargetEvaluation,
        now: datetime
    ) -> SLABreachRecord:
        breach = SLABreachRecord(
            id=generate_id("breach"),
            policy_id=policy.id,
            task_id=task.id,
            task_title=task.display_title,
            occurred_at=now,
            target_id=evaluation.target_id,
            target_type=evaluation.type,
        )
        ledger.breaches.append(breach)

        logger.info(
            "SLA breach recorded",
            extra={
                "project_id": ledger.project_id,
                "policy_id": policy.id,
                "task_id": task.id,
                "target_id": evaluation.target_id,
                "elapsed_minutes": evaluation.elapsed_minutes,
            }
        )

        self._event_sink.emit(
            ledger.project_id,
            NotificationTrigger.SLA_BREACH,
            {
                "task_id": task.id,
                "task_title": task.title,
                "policy_id": policy.id,
                "target_id": evaluation.target_id,
                "elapsed_minutes": evaluation.elapsed_minutes,
            },
            channels=list(policy.notification_channels),
            now=now,
        )
        return breach


class SLAEvaluationService:
    """
    Service for evaluating SLA targets against a task population.

    Run on every batch of task snapshots; continuity between calls lives in
    each project's task states.
    """

    def __init__(
        self,
        repository: ISLALedgerRepository,
        policy_service: SLAPolicyService,
        config_provider: ISLAConfigProvider,
        breach_recorder: BreachRecorder,
        clock: Clock = utc_now,
        breach_tail_size: int = settings.breach_tail_size
    ):
        self._repository = repository
        self._policy_service = policy_service
        self._config_provider = config_provider
        self._breach_recorder = breach_recorder
        self._clock = clock
        self._breach_tail_size = breach_tail_size

    def evaluate(
        self,
        project_id: str,
        tasks: Sequence[TaskSnapshot],
        now: Optional[datetime] = None
    ) -> SLAHealthSnapshot:
        """
        Evaluate every active policy of a project against ``tasks``.

        Args:
            project_id: Project whose policies and task states are used
            tasks: Task snapshots fetched by the caller
            now: Evaluation time (defaults to the service clock)

        Returns:
            SLAHealthSnapshot: detached snapshot, also kept as the project's last snapshot
        """
        now = resolve_now(now, self._clock)
        config = self._config_provider.get_config()

        with log_latency(logger, "sla_evaluation", project_id=project_id, task_count=len(tasks)):
            with self._repository.locked(project_id) as ledger:
                policies = [
                    p for p in self._policy_service.ensure_policies(ledger, now) if p.active
                ]
                snapshot = SLAHealthSnapshot(generated_at=now)

                for policy in policies:
                    snapshot.add_policy(
                        self._evaluate_policy(ledger, policy, tasks, now, config)
                    )

                snapshot.breaches = ledger.recent_breaches(self._breach_tail_size)
                ledger.last_snapshot = snapshot
                return copy.deepcopy(snapshot)

    def _evaluate_policy(
        self,
        ledger: ProjectSLALedger,
        policy: SLAPolicy,
        tasks: Sequence[TaskSnapshot],
        now: datetime,
        config: SLAConfig
    ) -> SLAPolicyEvaluation:
        rollup = SLAPolicyEvaluation(
            policy_id=policy.id,
            policy_name=policy.name,
            active=policy.active,
        )

        for task in tasks:
            if not SLACalculator.task_matches_policy(task, policy.filter):
                continue
            rollup.total_tasks += 1
            state = ledger.task_state(policy.id, task.id)

            # Multi-target policies are evaluated on their first target only
            target = policy.primary_target
            if target is None:
                continue

            evaluation, paused_seconds = self._evaluate_target(task, policy, target, state, now, config)

            if evaluation.status == SLAState.BREACHED and not state.has_breached(target.id):
                self._breach_recorder.record(ledger, policy, task, evaluation, now)
                state.mark_breached(target.id)

            rollup.tally(task.id, evaluation)
            state.record_check(paused_seconds, now, task.status)

        return rollup

    def _evaluate_target(
        self,
        task: TaskSnapshot,
        policy: SLAPolicy,
        target: SLATarget,
        state: SLATaskState,
        now: datetime,
        config: SLAConfig
    ) -> Tuple[SLATargetEvaluation, float]:
        """
        Evaluate a single target, accruing paused time from the task state.

        Returns the evaluation and the paused seconds to carry forward.
        """
        total_elapsed = SLACalculator.calculate_elapsed_minutes(task, now)

        paused_seconds = state.paused_seconds
        paused = SLACalculator.is_paused(task, policy.pause_when)
        if paused and state.last_checked_at is not None:
            paused_seconds += max(0.0, seconds_between(now, state.last_checked_at))
        if not paused and SLACalculator.should_resume(task, policy.resume_when):
            paused_seconds = 0.0
        paused_minutes = int(paused_seconds // 60)

        effective_elapsed = max(0, total_elapsed - paused_minutes)
        remaining = target.duration_minutes - effective_elapsed

        status = SLACalculator.calculate_status(
            task.is_completed,
            effective_elapsed,
            remaining,
            target,
            config.warning_threshold
        )

        return SLATargetEvaluation(
            target_id=target.id,
            type=target.type,
            status=status,
            duration_minutes=target.duration_minutes,
            elapsed_minutes=effective_elapsed,
            remaining_minutes=remaining,
            paused_minutes=paused_minutes,
        ), paused_seconds

    # ========== Read models & reset ==========

    def get_last_snapshot(self, project_id: str) -> Optional[SLAHealthSnapshot]:
        with self._repository.locked(project_id) as ledger:
            if ledger.last_snapshot is None:
                return None
            return copy.deepcopy(ledger.last_snapshot)

    def get_breach_log(self, project_id: str) -> List[SLABreachRecord]:
        with self._repository.locked(project_id) as ledger:
            return list(ledger.breaches)

    def reset_task_state(self, project_id: str, policy_id: str, task_id: str) -> bool:
        """
        Forget paused time and recorded breaches for one (policy, task) pair.

        A task that is still breached after a reset produces a new breach record.
        """
        with self._repository.locked(project_id) as ledger:
            dropped = ledger.drop_task_state(policy_id, task_id)
        logger.info(
            "SLA task state reset",
            extra={
                "project_id": project_id,
                "policy_id": policy_id,
                "task_id": task_id,
                "dropped": dropped,
            }
        )
        return dropped

    def reset_project(self, project_id: str) -> None:
        """Clear policies, task states, breach log and last snapshot of a project."""
        self._repository.reset(project_id)
