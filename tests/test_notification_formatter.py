from datetime import timedelta

import pytest

from sla_engine.notifications.domain import NotificationDigestConfig, NotificationFormatter

from conftest import NOW


def digest(cadence="daily", send_at="08:00"):
    return NotificationDigestConfig(id="d", name="Digest", cadence=cadence, send_at=send_at)


class TestRecipients:
    def test_explicit_recipients_win(self):
        payload = {"recipients": ["ana", 7, "raj"], "assignee_id": "zoe"}
        assert NotificationFormatter.derive_recipients(payload) == ["ana", "raj"]

    def test_single_recipient_string(self):
        assert NotificationFormatter.derive_recipients({"recipients": "ana"}) == ["ana"]

    def test_assignee_fallback(self):
        assert NotificationFormatter.derive_recipients({"assignee_id": "zoe"}) == ["zoe"]

    def test_project_team_fallback(self):
        assert NotificationFormatter.derive_recipients({}) == ["project_team"]
        assert NotificationFormatter.derive_recipients({"assignee_id": 12}) == ["project_team"]


class TestSummaries:
    @pytest.mark.parametrize("trigger,payload,expected", [
        ("mention", {"target": "@ana"}, "Mentioned @ana"),
        ("mention", {}, "Mentioned user"),
        ("assignment", {"task_title": "Fix login"}, "Assigned task Fix login"),
        ("assignment", {}, "Assigned task"),
        ("due_soon", {"task_title": "Ship"}, "Due soon: Ship"),
        ("due_soon", {"task_id": "t-9"}, "Due soon: t-9"),
        ("automation_run", {"automation_name": "Nightly"}, "Automation Nightly"),
        ("automation_run", {}, "Automation run"),
        ("sla_breach", {"task_title": "Outage"}, "SLA breach on Outage"),
        ("sla_breach", {"task_id": "t-1", "task_title": None}, "SLA breach on t-1"),
        ("digest", {"digest_id": "daily-digest"}, "Digest daily-digest"),
    ])
    def test_summary_per_trigger(self, trigger, payload, expected):
        assert NotificationFormatter.summarize(trigger, payload) == expected

    def test_unknown_trigger(self):
        assert NotificationFormatter.summarize("other", {}) == "Notification"


class TestDigestGate:
    def test_first_send_is_always_due(self):
        assert NotificationFormatter.is_digest_due(digest(), None, NOW)

    def test_daily_gate_opens_five_minutes_early(self):
        last_sent = NOW
        assert not NotificationFormatter.is_digest_due(digest(), last_sent, NOW + timedelta(minutes=1434))
        assert NotificationFormatter.is_digest_due(digest(), last_sent, NOW + timedelta(minutes=1435))

    def test_weekly_gate(self):
        weekly = digest(cadence="weekly")
        assert not NotificationFormatter.is_digest_due(weekly, NOW, NOW + timedelta(days=6))
        assert NotificationFormatter.is_digest_due(weekly, NOW, NOW + timedelta(minutes=10080 - 5))

    def test_custom_grace(self):
        assert not NotificationFormatter.is_digest_due(digest(), NOW, NOW + timedelta(minutes=1435), 0)
        assert NotificationFormatter.is_digest_due(digest(), NOW, NOW + timedelta(minutes=1440), 0)


class TestSendTimes:
    def test_plain_send_time(self):
        assert NotificationFormatter.nominal_send_time(digest(send_at="08:00"), NOW) == NOW.replace(hour=8)

    def test_weekday_prefix_is_ignored(self):
        sent = NotificationFormatter.nominal_send_time(digest(send_at="Monday 09:30"), NOW)
        assert (sent.hour, sent.minute) == (9, 30)
        assert sent.date() == NOW.date()

    @pytest.mark.parametrize("send_at", ["soon", "25:00", "", "Friday"])
    def test_unparseable_hour_falls_back_to_eight(self, send_at):
        sent = NotificationFormatter.nominal_send_time(digest(send_at=send_at), NOW)
        assert (sent.hour, sent.minute) == (8, 0)

    def test_next_send_follows_last_send(self):
        last_sent = NOW - timedelta(hours=3)
        assert NotificationFormatter.next_send_at(digest(), last_sent, NOW) == last_sent + timedelta(days=1)

    def test_next_send_without_history_is_today(self):
        assert NotificationFormatter.next_send_at(digest(), None, NOW) == NOW.replace(hour=8)
