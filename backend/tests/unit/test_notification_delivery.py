"""Unit tests for email transports and best-effort delivery.

Tests cover:
- InMemoryEmailSender success and simulated failure
- SmtpEmailSender message building, STARTTLS and error mapping
- deliver_best_effort swallowing and logging ExternalSideEffectError
- JSON log lines carrying task and recipient correlation
"""

import json
import logging
import smtplib
from types import SimpleNamespace
from uuid import uuid4

import pytest

from dispatchlog.config import Settings
from dispatchlog.notifications.dispatcher import deliver_best_effort, get_email_sender
from dispatchlog.notifications.email import SmtpEmailSender
from dispatchlog.notifications.memory import InMemoryEmailSender
from dispatchlog.notifications.ports import EmailMessage
from dispatchlog.observability.logging_config import JSONFormatter
from dispatchlog.tasks.errors import ExternalSideEffectError


MESSAGE = EmailMessage(to="holder@test.com", subject="New Task Assigned: 7", html="<p>hi</p>")


class TestInMemoryEmailSender:

    def test_records_sent_messages(self):
        sender = InMemoryEmailSender()

        sender.send(MESSAGE)

        assert sender.recipients() == ["holder@test.com"]
        sender.clear()
        assert sender.sent == []

    def test_failure_mode(self):
        sender = InMemoryEmailSender(mode="failure", error_message="relay down")

        with pytest.raises(ExternalSideEffectError) as exc:
            sender.send(MESSAGE)

        assert exc.value.message == "relay down"
        assert sender.sent == []

    def test_failing_recipients_case_insensitive(self):
        sender = InMemoryEmailSender(failing_recipients=["HOLDER@test.com"])

        with pytest.raises(ExternalSideEffectError):
            sender.send(MESSAGE)

        sender.send(EmailMessage(to="other@test.com", subject="s", html="h"))
        assert sender.recipients() == ["other@test.com"]


class FakeSMTP:
    """Stand-in for smtplib.SMTP that records calls."""

    instances = []

    def __init__(self, host, port, timeout=None, offers_starttls=True, fail_with=None):
        self.host = host
        self.port = port
        self.timeout = timeout
        self.offers_starttls = offers_starttls
        self.fail_with = fail_with
        self.calls = []
        self.sent = []
        FakeSMTP.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.calls.append("quit")
        return False

    def ehlo(self):
        self.calls.append("ehlo")

    def has_extn(self, name):
        return self.offers_starttls and name == "starttls"

    def starttls(self):
        self.calls.append("starttls")

    def login(self, user, password):
        self.calls.append(("login", user))

    def send_message(self, msg):
        if self.fail_with is not None:
            raise self.fail_with
        self.sent.append(msg)


class TestSmtpEmailSender:

    @pytest.fixture(autouse=True)
    def reset(self):
        FakeSMTP.instances = []

    def test_sends_multipart_with_starttls(self, monkeypatch):
        monkeypatch.setattr(smtplib, "SMTP", FakeSMTP)
        sender = SmtpEmailSender("smtp.test", 587, "noreply@test.com", user="bot", password="pw")

        sender.send(EmailMessage(to="holder@test.com", subject="Subj", html="<p>x</p>", text="x"))

        server = FakeSMTP.instances[0]
        assert (server.host, server.port, server.timeout) == ("smtp.test", 587, 30)
        assert server.calls[:3] == ["ehlo", "starttls", "ehlo"]
        assert ("login", "bot") in server.calls
        msg = server.sent[0]
        assert msg["To"] == "holder@test.com"
        assert msg["From"] == "noreply@test.com"
        assert msg["Subject"] == "Subj"
        assert [part.get_content_type() for part in msg.get_payload()] == ["text/plain", "text/html"]

    def test_skips_login_without_credentials(self, monkeypatch):
        monkeypatch.setattr(
            smtplib, "SMTP",
            lambda host, port, timeout=None: FakeSMTP(host, port, timeout, offers_starttls=False),
        )
        sender = SmtpEmailSender("smtp.test", 25, "noreply@test.com")

        sender.send(MESSAGE)

        server = FakeSMTP.instances[0]
        assert "starttls" not in server.calls
        assert not any(isinstance(call, tuple) for call in server.calls)

    def test_implicit_tls_on_465(self, monkeypatch):
        monkeypatch.setattr(smtplib, "SMTP_SSL", FakeSMTP)
        sender = SmtpEmailSender("smtp.test", 465, "noreply@test.com")

        sender.send(MESSAGE)

        assert FakeSMTP.instances[0].port == 465
        assert "starttls" not in FakeSMTP.instances[0].calls

    @pytest.mark.parametrize(
        "error",
        [smtplib.SMTPRecipientsRefused({"holder@test.com": (550, b"no")}), ConnectionRefusedError()],
    )
    def test_transport_errors_mapped(self, monkeypatch, error):
        monkeypatch.setattr(
            smtplib, "SMTP",
            lambda host, port, timeout=None: FakeSMTP(host, port, timeout, fail_with=error),
        )
        sender = SmtpEmailSender("smtp.test", 587, "noreply@test.com")

        with pytest.raises(ExternalSideEffectError) as exc:
            sender.send(MESSAGE)

        assert "holder@test.com" in exc.value.message

    def test_from_settings(self):
        settings = Settings(
            SMTP_HOST="relay.test", SMTP_PORT=2525, SMTP_USER="bot@test.com",
            SMTP_PASSWORD="pw", SMTP_TIMEOUT_SECONDS=5,
        )

        sender = SmtpEmailSender.from_settings(settings)

        assert (sender.host, sender.port, sender.timeout) == ("relay.test", 2525, 5)
        assert sender.sender == "bot@test.com"


class TestDeliverBestEffort:

    def _task(self):
        return SimpleNamespace(id=uuid4(), record_number="12")

    def test_success_returns_true(self):
        calls = []

        delivered = deliver_best_effort(
            SimpleNamespace(rollback=lambda: calls.append("rollback")),
            "assigned", self._task(), "holder@test.com",
            lambda value, flag=None: calls.append((value, flag)), "x", flag=True,
        )

        assert delivered is True
        assert calls == [("x", True)]

    def test_failure_rolled_back_and_logged(self, caplog):
        calls = []
        task = self._task()

        def failing():
            raise ExternalSideEffectError("relay down")

        with caplog.at_level(logging.ERROR, logger="dispatchlog.notifications.dispatcher"):
            delivered = deliver_best_effort(
                SimpleNamespace(rollback=lambda: calls.append("rollback")),
                "forwarded", task, "holder@test.com", failing,
            )

        assert delivered is False
        assert calls == ["rollback"]
        record = caplog.records[-1]
        assert record.task_id == task.id
        assert record.record_number == "12"
        assert record.recipient == "holder@test.com"
        assert "relay down" in record.getMessage()

    def test_other_errors_propagate(self):
        def broken():
            raise RuntimeError("bug")

        with pytest.raises(RuntimeError):
            deliver_best_effort(SimpleNamespace(rollback=lambda: None), "assigned", self._task(), "x", broken)


def test_json_formatter_includes_correlation_fields():
    task_id = uuid4()
    record = logging.LogRecord("dispatchlog", logging.ERROR, __file__, 1, "failed", None, None)
    record.task_id = task_id
    record.recipient = "holder@test.com"

    payload = json.loads(JSONFormatter().format(record))

    assert payload["task_id"] == str(task_id)
    assert payload["recipient"] == "holder@test.com"
    assert payload["message"] == "failed"
    assert "record_number" not in payload


def test_email_backend_from_settings():
    get_email_sender.cache_clear()

    assert isinstance(get_email_sender(), InMemoryEmailSender)
