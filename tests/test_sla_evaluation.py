from datetime import timedelta

from sla_engine.config import SLAState, NotificationTrigger
from sla_engine.sla.application import SLAEvaluationService, SLAPolicyService, BreachRecorder
from sla_engine.sla.domain import SLAConfig
from sla_engine.sla.infrastructure import InMemorySLARepository, StaticConfigProvider

from conftest import NOW, PROJECT_ID, RecordingSink


def minutes(n):
    return NOW + timedelta(minutes=n)


def evaluation_for(snapshot, task_id, policy_index=0):
    return snapshot.policies[policy_index].evaluations[task_id]


class TestScenarios:
    def test_at_risk_near_deadline(self, container, response_policy, make_task):
        snapshot = container.evaluator.evaluate(PROJECT_ID, [make_task(minutes_ago=200)], now=NOW)

        evaluation = evaluation_for(snapshot, "task-1")
        assert evaluation.status == SLAState.AT_RISK
        assert evaluation.remaining_minutes == 40
        assert snapshot.totals["at_risk"] == 1
        assert snapshot.breaches == []

    def test_breached_past_deadline(self, container, response_policy, make_task):
        snapshot = container.evaluator.evaluate(PROJECT_ID, [make_task(minutes_ago=250)], now=NOW)

        assert evaluation_for(snapshot, "task-1").status == SLAState.BREACHED
        assert len(snapshot.breaches) == 1
        breach = snapshot.breaches[0]
        assert breach.task_id == "task-1"
        assert breach.policy_id == response_policy.id
        assert breach.target_id == "response"
        assert breach.target_type == "response"
        assert breach.occurred_at == NOW

    def test_blocked_time_is_not_counted(self, container, response_policy, make_task):
        created = NOW - timedelta(minutes=250)
        container.evaluator.evaluate(
            PROJECT_ID, [make_task(created_at=created, blocked=False)], now=minutes(-100)
        )
        snapshot = container.evaluator.evaluate(
            PROJECT_ID, [make_task(created_at=created, blocked=True)], now=NOW
        )

        evaluation = evaluation_for(snapshot, "task-1")
        assert evaluation.paused_minutes == 100
        assert evaluation.elapsed_minutes == 150
        assert evaluation.remaining_minutes == 90
        # 90 minutes left is above the 60 minute warning line
        assert evaluation.status == SLAState.ON_TRACK
        assert container.evaluator.get_breach_log(PROJECT_ID) == []


class TestBreachBookkeeping:
    def test_breach_recorded_once_across_evaluations(self, container, response_policy, make_task):
        task = make_task(minutes_ago=250)
        for offset in (0, 10, 20, 30):
            container.evaluator.evaluate(PROJECT_ID, [task], now=minutes(offset))

        assert len(container.evaluator.get_breach_log(PROJECT_ID)) == 1
        events = [
            e for e in container.notifications.list_pending_events(PROJECT_ID)
            if e.trigger == NotificationTrigger.SLA_BREACH
        ]
        assert len(events) == 1

    def test_breach_event_payload_and_channels(self, container, response_policy, make_task):
        container.evaluator.evaluate(PROJECT_ID, [make_task(minutes_ago=300)], now=NOW)

        event = container.notifications.list_pending_events(PROJECT_ID)[0]
        assert event.trigger == NotificationTrigger.SLA_BREACH
        assert event.channels == ["slack", "email"]
        assert event.scheduled_for == NOW
        assert event.payload == {
            "task_id": "task-1",
            "task_title": "Task task-1",
            "policy_id": response_policy.id,
            "target_id": "response",
            "elapsed_minutes": 300,
        }

    def test_reset_task_state_allows_new_breach(self, container, response_policy, make_task):
        task = make_task(minutes_ago=250)
        container.evaluator.evaluate(PROJECT_ID, [task], now=NOW)

        assert container.evaluator.reset_task_state(PROJECT_ID, response_policy.id, "task-1")
        container.evaluator.evaluate(PROJECT_ID, [task], now=minutes(5))

        assert len(container.evaluator.get_breach_log(PROJECT_ID)) == 2

    def test_pause_and_resume_keep_breach_recorded(self, container, response_policy, make_task):
        container.evaluator.evaluate(PROJECT_ID, [make_task(minutes_ago=250)], now=NOW)
        container.evaluator.evaluate(PROJECT_ID, [make_task(minutes_ago=250, blocked=True)], now=minutes(5))
        container.evaluator.evaluate(PROJECT_ID, [make_task(minutes_ago=250)], now=minutes(10))

        assert len(container.evaluator.get_breach_log(PROJECT_ID)) == 1

    def test_reset_unknown_task_state(self, container, response_policy):
        assert not container.evaluator.reset_task_state(PROJECT_ID, response_policy.id, "nope")

    def test_untitled_task_breach(self, container, response_policy, make_task):
        container.evaluator.evaluate(PROJECT_ID, [make_task(minutes_ago=250, title=None)], now=NOW)

        assert container.evaluator.get_breach_log(PROJECT_ID)[0].task_title == "Untitled task"

    def test_breach_tail_is_bounded(self, clock, make_task):
        sink = RecordingSink()
        repository = InMemorySLARepository()
        config = StaticConfigProvider(SLAConfig(default_policies=[]))
        policies = SLAPolicyService(repository, config, clock=clock)
        evaluator = SLAEvaluationService(
            repository, policies, config, BreachRecorder(sink), clock=clock, breach_tail_size=2
        )
        policies.upsert_policy(PROJECT_ID, {
            "targets": [{"id": "t", "type": "resolution", "duration_minutes": 10}],
        })

        tasks = [make_task(f"task-{i}", minutes_ago=60) for i in range(3)]
        snapshot = evaluator.evaluate(PROJECT_ID, tasks)

        assert len(evaluator.get_breach_log(PROJECT_ID)) == 3
        assert [b.task_id for b in snapshot.breaches] == ["task-1", "task-2"]
        assert len(sink.events) == 3
        assert all(e["trigger"] == NotificationTrigger.SLA_BREACH for e in sink.events)


class TestPausedTime:
    def test_paused_minutes_grow_monotonically(self, container, response_policy, make_task):
        created = NOW
        paused_history = []
        effective_history = []
        for offset in (10, 20, 35, 60):
            snapshot = container.evaluator.evaluate(
                PROJECT_ID, [make_task(created_at=created, blocked=True)], now=minutes(offset)
            )
            evaluation = evaluation_for(snapshot, "task-1")
            paused_history.append(evaluation.paused_minutes)
            effective_history.append(evaluation.elapsed_minutes)

        assert paused_history == [0, 10, 25, 50]
        assert effective_history == [10, 10, 10, 10]

    def test_sub_minute_checks_still_accrue_pause(self, container, response_policy, make_task):
        created = NOW - timedelta(minutes=150)
        task = make_task(created_at=created, blocked=True)
        snapshot = None
        for step in range(134):
            snapshot = container.evaluator.evaluate(PROJECT_ID, [task], now=NOW + timedelta(seconds=45 * step))

        evaluation = evaluation_for(snapshot, "task-1")
        assert evaluation.paused_minutes == 99
        assert evaluation.elapsed_minutes == 150
        assert evaluation.status == SLAState.ON_TRACK
        assert container.evaluator.get_breach_log(PROJECT_ID) == []
        assert container.notifications.list_pending_events(PROJECT_ID) == []

    def test_partial_minutes_carry_between_checks(self, container, response_policy, make_task):
        task = make_task(created_at=NOW, blocked=True)
        paused = []
        for seconds in (0, 40, 80, 120):
            snapshot = container.evaluator.evaluate(PROJECT_ID, [task], now=NOW + timedelta(seconds=seconds))
            paused.append(evaluation_for(snapshot, "task-1").paused_minutes)

        assert paused == [0, 0, 1, 2]

    def test_resume_rule_resets_paused_minutes(self, container, make_task):
        container.policies.upsert_policy(PROJECT_ID, {
            "targets": [{"id": "r", "type": "resolution", "duration_minutes": 1000}],
            "pause_when": [{"id": "blocked", "type": "blocked"}],
            "resume_when": [{"id": "resumed", "type": "status", "values": ["in_progress"]}],
        }, now=NOW)
        created = NOW

        container.evaluator.evaluate(PROJECT_ID, [make_task(created_at=created, blocked=True)], now=minutes(10))
        paused = container.evaluator.evaluate(
            PROJECT_ID, [make_task(created_at=created, blocked=True)], now=minutes(40)
        )
        resumed = container.evaluator.evaluate(
            PROJECT_ID, [make_task(created_at=created, status="in_progress")], now=minutes(50)
        )

        assert evaluation_for(paused, "task-1").paused_minutes == 30
        assert evaluation_for(resumed, "task-1").paused_minutes == 0
        assert evaluation_for(resumed, "task-1").elapsed_minutes == 50

    def test_unpaused_without_resume_rule_keeps_paused_minutes(self, container, response_policy, make_task):
        created = NOW
        container.evaluator.evaluate(PROJECT_ID, [make_task(created_at=created, blocked=True)], now=minutes(10))
        container.evaluator.evaluate(PROJECT_ID, [make_task(created_at=created, blocked=True)], now=minutes(30))
        snapshot = container.evaluator.evaluate(
            PROJECT_ID, [make_task(created_at=created, blocked=False)], now=minutes(45)
        )

        evaluation = evaluation_for(snapshot, "task-1")
        assert evaluation.paused_minutes == 20
        assert evaluation.elapsed_minutes == 25


class TestPolicySelection:
    def test_only_first_target_is_evaluated(self, container, make_task):
        container.policies.upsert_policy(PROJECT_ID, {
            "targets": [
                {"id": "first", "type": "response", "duration_minutes": 10},
                {"id": "second", "type": "resolution", "duration_minutes": 10000},
            ],
        }, now=NOW)

        snapshot = container.evaluator.evaluate(PROJECT_ID, [make_task(minutes_ago=60)], now=NOW)

        evaluation = evaluation_for(snapshot, "task-1")
        assert evaluation.target_id == "first"
        assert evaluation.status == SLAState.BREACHED
        assert [b.target_id for b in container.evaluator.get_breach_log(PROJECT_ID)] == ["first"]

    def test_policy_without_targets_counts_tasks_only(self, container, make_task):
        container.policies.upsert_policy(PROJECT_ID, {"name": "Empty"}, now=NOW)

        snapshot = container.evaluator.evaluate(PROJECT_ID, [make_task(minutes_ago=60)], now=NOW)

        rollup = snapshot.policies[0]
        assert rollup.total_tasks == 1
        assert rollup.evaluations == {}
        assert snapshot.totals == {"on_track": 0, "at_risk": 0, "breached": 0, "met": 0}

    def test_filter_limits_tasks(self, container, make_task):
        container.policies.upsert_policy(PROJECT_ID, {
            "targets": [{"id": "r", "type": "response", "duration_minutes": 240}],
            "filter": {"priorities": ["urgent"]},
        }, now=NOW)

        snapshot = container.evaluator.evaluate(PROJECT_ID, [
            make_task("a", minutes_ago=10, priority="urgent"),
            make_task("b", minutes_ago=10, priority="low"),
        ], now=NOW)

        assert snapshot.policies[0].total_tasks == 1
        assert list(snapshot.policies[0].evaluations) == ["a"]

    def test_inactive_policies_are_skipped(self, container, response_policy, make_task):
        container.policies.upsert_policy(PROJECT_ID, {"id": response_policy.id, "active": False}, now=NOW)

        snapshot = container.evaluator.evaluate(PROJECT_ID, [make_task(minutes_ago=300)], now=NOW)

        assert snapshot.policies == []
        assert container.evaluator.get_breach_log(PROJECT_ID) == []


class TestCompletionAndDefaults:
    def test_completed_within_target_is_met(self, container, response_policy, make_task):
        task = make_task(minutes_ago=500, completed_at=NOW - timedelta(minutes=300))
        snapshot = container.evaluator.evaluate(PROJECT_ID, [task], now=NOW)

        assert evaluation_for(snapshot, "task-1").status == SLAState.MET
        assert snapshot.totals["met"] == 1

    def test_completed_late_is_breached(self, container, response_policy, make_task):
        task = make_task(minutes_ago=500, completed_at=NOW - timedelta(minutes=100))
        snapshot = container.evaluator.evaluate(PROJECT_ID, [task], now=NOW)

        assert evaluation_for(snapshot, "task-1").status == SLAState.BREACHED
        assert len(snapshot.breaches) == 1

    def test_missing_timestamps_never_raise(self, container, response_policy, make_task):
        snapshot = container.evaluator.evaluate(PROJECT_ID, [make_task(title=None)], now=NOW)

        evaluation = evaluation_for(snapshot, "task-1")
        assert evaluation.elapsed_minutes == 0
        assert evaluation.status == SLAState.ON_TRACK

    def test_overdue_task_is_never_on_track(self, container, response_policy, make_task):
        for overdue_by in (0, 1, 30, 600):
            task = make_task(
                f"task-{overdue_by}",
                minutes_ago=240 + overdue_by,
                due_date=NOW - timedelta(minutes=overdue_by),
            )
            snapshot = container.evaluator.evaluate(PROJECT_ID, [task], now=NOW)
            assert evaluation_for(snapshot, task.id).status != SLAState.ON_TRACK


class TestSnapshots:
    def test_last_snapshot_is_retained_and_detached(self, container, response_policy, make_task):
        assert container.evaluator.get_last_snapshot(PROJECT_ID) is None

        snapshot = container.evaluator.evaluate(PROJECT_ID, [make_task(minutes_ago=200)], now=NOW)
        snapshot.totals["at_risk"] = 99

        stored = container.evaluator.get_last_snapshot(PROJECT_ID)
        assert stored.generated_at == NOW
        assert stored.totals["at_risk"] == 1

    def test_project_reset_clears_everything(self, container, response_policy, make_task):
        container.evaluator.evaluate(PROJECT_ID, [make_task(minutes_ago=250)], now=NOW)

        container.evaluator.reset_project(PROJECT_ID)

        assert container.evaluator.get_last_snapshot(PROJECT_ID) is None
        assert container.evaluator.get_breach_log(PROJECT_ID) == []
        assert container.policies.list_policies(PROJECT_ID) == []

    def test_projects_are_isolated(self, container, response_policy, make_task):
        snapshot = container.evaluator.evaluate("other-project", [make_task(minutes_ago=250)], now=NOW)

        assert snapshot.policies == []
        assert container.evaluator.get_breach_log(PROJECT_ID) == []
