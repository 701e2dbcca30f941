import threading
from collections import Counter
from concurrent.futures import ThreadPoolExecutor

from sla_engine.shared.infrastructure.registry import ProjectRegistry
from sla_engine.sla.domain import ProjectSLALedger

from conftest import NOW, PROJECT_ID

WORKERS = 8
ROUNDS = 25


def test_project_operations_are_serialized(container, response_policy, make_task):
    breached_task = make_task(minutes_ago=300, title="Outage")
    start = threading.Barrier(WORKERS)
    enqueued = []

    def worker(index):
        start.wait()
        for round_no in range(ROUNDS):
            container.evaluator.evaluate(PROJECT_ID, [breached_task], now=NOW)
            event = container.notifications.enqueue(
                PROJECT_ID, "mention", {"target": f"w{index}-{round_no}"}, now=NOW
            )
            enqueued.append(event.id)
            container.notifications.process_queue(PROJECT_ID, now=NOW)

    with ThreadPoolExecutor(max_workers=WORKERS) as pool:
        for future in [pool.submit(worker, i) for i in range(WORKERS)]:
            future.result()
    container.notifications.process_queue(PROJECT_ID, now=NOW)

    log = container.notifications.get_delivery_log(PROJECT_ID, limit=10_000)
    per_event = Counter(record.event_id for record in log)
    triggers = Counter(record.trigger for record in log)

    assert len(container.evaluator.get_breach_log(PROJECT_ID)) == 1
    assert triggers["sla_breach"] == 1
    assert triggers["digest"] == 2
    assert len(enqueued) == WORKERS * ROUNDS
    assert all(per_event[event_id] == 1 for event_id in enqueued)
    assert max(per_event.values()) == 1
    assert container.notifications.list_pending_events(PROJECT_ID) == []


def test_same_project_shares_one_lock():
    registry = ProjectRegistry(ProjectSLALedger, name="test")
    inside = threading.Event()
    release = threading.Event()
    order = []

    def holder():
        with registry.locked(PROJECT_ID):
            inside.set()
            release.wait(timeout=5)
            order.append("holder")

    def waiter():
        inside.wait(timeout=5)
        with registry.locked(PROJECT_ID):
            order.append("waiter")

    threads = [threading.Thread(target=holder), threading.Thread(target=waiter)]
    for thread in threads:
        thread.start()
    inside.wait(timeout=5)
    with registry.locked("other-project"):
        order.append("other")
    release.set()
    for thread in threads:
        thread.join(timeout=5)

    assert order == ["other", "holder", "waiter"]


def test_dispose_forgets_project_locks():
    registry = ProjectRegistry(ProjectSLALedger, name="test")
    for project_id in ("a", "b", "c"):
        with registry.locked(project_id):
            pass

    registry.dispose()

    assert registry.project_ids() == []
    assert registry._locks == {}
