"""Unit tests for notification email rendering."""

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from uuid import uuid4

import pytest

from dispatchlog.notifications import templates

NOW = datetime(2026, 3, 10, 9, 0, tzinfo=timezone.utc)


def _task(**overrides):
    fields = {
        "id": uuid4(),
        "record_number": "42",
        "description_of_work": "Inspect <b>gear</b> & brakes",
        "issuance_message": None,
        "assigned_completion_date": NOW + timedelta(days=3),
        "priority": SimpleNamespace(name="High"),
        "complexity": SimpleNamespace(name="Simple"),
        "attachments": [],
    }
    fields.update(overrides)
    return SimpleNamespace(**fields)


class TestUrgencyNote:

    @pytest.mark.parametrize(
        "delta, expected",
        [
            (timedelta(days=-2), "Overdue by 2 day(s)"),
            (timedelta(hours=-30), "Overdue by 1 day(s)"),
            (timedelta(0), "Due today"),
            (timedelta(hours=-3), "Due today"),
            (timedelta(hours=20), "Due in 1 day"),
            (timedelta(days=3), "Due in 3 day(s)"),
        ],
    )
    def test_labels(self, delta, expected):
        assert templates.urgency_note(NOW + delta, NOW) == expected

    def test_missing_due_date(self):
        assert templates.urgency_note(None, NOW) == "Scheduled task"

    def test_naive_due_date_treated_as_utc(self):
        naive = (NOW + timedelta(days=2)).replace(tzinfo=None)

        assert templates.urgency_note(naive, NOW) == "Due in 2 day(s)"


class TestTaskEmails:

    def test_assigned_email(self):
        task = _task(issuance_message="Before Friday")

        subject, html = templates.task_assigned_email(task, "Chris Creator", "https://log.example/", NOW)

        assert subject == "New Task Assigned: 42"
        assert "Inspect &lt;b&gt;gear&lt;/b&gt; &amp; brakes" in html
        assert "<b>gear</b>" not in html
        assert "Before Friday" in html
        assert "Due in 3 day(s)" in html
        assert f"https://log.example/tasks/{task.id}" in html

    def test_lead_message_replaces_issuance_message(self):
        task = _task(issuance_message="Original")

        _, html = templates.task_assigned_email(task, "C", "http://x", NOW, lead_message="REMINDER: look")

        assert "REMINDER: look" in html
        assert "Original" not in html

    def test_forwarded_email(self):
        subject, html = templates.task_forwarded_email(
            _task(), "Eli <Employee>", "eli@test.com", "Over to you", "http://x", NOW
        )

        assert subject == "Task Forwarded: 42"
        assert "Eli &lt;Employee&gt;" in html
        assert "Over to you" in html

    def test_rejected_email(self):
        subject, html = templates.task_rejected_email(
            _task(), "Alex", "alex@test.com", "Missing <signature>", "http://x"
        )

        assert subject == "Task Rejected: 42"
        assert "Missing &lt;signature&gt;" in html

    def test_notice_email(self):
        subject, html = templates.notice_email(
            _task(issuance_message="Hangar closed", attachments=[object()]), "Dana", "http://x"
        )

        assert subject == "Notice: 42"
        assert "Hangar closed" in html
        assert "An attachment is available with this notice." in html

    def test_missing_reference_rows(self):
        _, html = templates.task_assigned_email(_task(priority=None, complexity=None), "C", "http://x", NOW)

        assert "Unknown" in html


def test_task_url_strips_trailing_slash():
    assert templates.task_url("https://log.example/", "abc") == "https://log.example/tasks/abc"
