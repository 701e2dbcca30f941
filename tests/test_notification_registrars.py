from datetime import timedelta

import pytest

from sla_engine.core import ValidationException

from conftest import NOW, PROJECT_ID


@pytest.fixture
def service(container):
    return container.notifications


def due_in(minutes):
    return NOW + timedelta(minutes=minutes)


class TestDueSoon:
    def test_tasks_inside_window_are_registered(self, service, make_task):
        tasks = [
            make_task("soon", due_date=due_in(60), assignee_ids=["ana", "raj"]),
            make_task("edge", due_date=due_in(4320)),
            make_task("far", due_date=due_in(4321)),
            make_task("past", due_date=due_in(-1)),
            make_task("done", due_date=due_in(30), completed_at=NOW),
            make_task("undated"),
        ]

        events = service.register_due_soon_notifications(PROJECT_ID, tasks, now=NOW)

        assert [e.payload["task_id"] for e in events] == ["soon", "edge"]
        assert all(e.trigger == "due_soon" for e in events)

    def test_due_now_is_inside_window(self, service, make_task):
        events = service.register_due_soon_notifications(PROJECT_ID, [make_task(due_date=NOW)], now=NOW)
        assert len(events) == 1

    def test_payload_and_channels(self, service, make_task):
        task = make_task("soon", due_date=due_in(120), assignee_ids=["ana"], title="Ship it")

        event = service.register_due_soon_notifications(PROJECT_ID, [task], now=NOW)[0]

        assert event.payload == {
            "task_id": "soon",
            "task_title": "Ship it",
            "due_date": due_in(120).isoformat(),
            "recipients": ["ana"],
        }
        assert event.channels == ["in_app", "email", "slack"]
        assert event.scheduled_for == NOW

    def test_task_is_registered_once(self, service, make_task):
        task = make_task(due_date=due_in(60))

        service.register_due_soon_notifications(PROJECT_ID, [task], now=NOW)
        again = service.register_due_soon_notifications(PROJECT_ID, [task], now=due_in(30))

        assert again == []
        assert len(service.list_pending_events(PROJECT_ID)) == 1

    def test_registration_survives_delivery_but_not_reset(self, service, make_task):
        task = make_task(due_date=due_in(60))
        service.register_due_soon_notifications(PROJECT_ID, [task], now=NOW)
        service.process_queue(PROJECT_ID, now=NOW)

        assert service.register_due_soon_notifications(PROJECT_ID, [task], now=NOW) == []

        service.reset_project(PROJECT_ID)
        assert len(service.register_due_soon_notifications(PROJECT_ID, [task], now=NOW)) == 1

    def test_recipients_reach_delivery(self, service, make_task):
        task = make_task(due_date=due_in(60), assignee_ids=["ana"])
        service.register_due_soon_notifications(PROJECT_ID, [task], now=NOW)

        record = service.process_queue(PROJECT_ID, now=NOW)[0]

        assert record.recipients == ["ana"]
        assert record.summary == "Due soon: Task task-1"


class TestAutomationRuns:
    def test_default_runs_sorted_by_next_run(self, service):
        runs = service.list_automation_runs(PROJECT_ID, now=NOW)

        assert [(r.cadence, r.next_run_at) for r in runs] == [
            ("hourly", due_in(45)),
            ("daily", due_in(90)),
            ("weekly", due_in(4320)),
        ]
        assert all(r.status == "scheduled" for r in runs)
        assert all(r.owning_automation.startswith(f"{PROJECT_ID}:") for r in runs)

    def test_register_fills_defaults(self, service):
        run = service.register_automation_run(PROJECT_ID, {"name": "Cleanup"}, now=NOW)

        assert run.id.startswith("automation")
        assert run.cadence == "daily"
        assert run.status == "scheduled"
        assert run.next_run_at == due_in(60)
        assert run.owning_automation == f"{PROJECT_ID}:Cleanup"

    def test_register_keeps_given_fields(self, service):
        run = service.register_automation_run(PROJECT_ID, {
            "id": "run-1",
            "name": "Sync",
            "cadence": "weekly",
            "next_run_at": due_in(10),
            "owning_automation": "crm",
            "status": "paused",
        }, now=NOW)

        assert (run.id, run.cadence, run.status, run.owning_automation) == ("run-1", "weekly", "paused", "crm")
        assert service.list_automation_runs(PROJECT_ID, now=NOW)[0].id == "run-1"

    def test_register_announces_the_run(self, service):
        service.register_automation_run(PROJECT_ID, {"name": "Cleanup", "cadence": "hourly"}, now=NOW)

        event = service.list_pending_events(PROJECT_ID)[0]
        assert event.trigger == "automation_run"
        assert event.payload == {"automation_name": "Cleanup", "cadence": "hourly"}
        assert event.channels == ["in_app", "slack"]

    def test_registered_run_joins_the_defaults(self, service):
        service.register_automation_run(PROJECT_ID, {"name": "Cleanup"}, now=NOW)

        assert len(service.list_automation_runs(PROJECT_ID, now=NOW)) == 4

    @pytest.mark.parametrize("automation", [
        {},
        {"name": ""},
        {"name": "Cleanup", "cadence": "yearly"},
        {"name": "Cleanup", "status": "exploded"},
    ])
    def test_invalid_runs_are_rejected(self, service, automation):
        with pytest.raises(ValidationException):
            service.register_automation_run(PROJECT_ID, automation, now=NOW)

        assert service.list_pending_events(PROJECT_ID) == []
        assert len(service.list_automation_runs(PROJECT_ID, now=NOW)) == 3
