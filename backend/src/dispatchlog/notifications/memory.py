"""In-memory email sender for development and tests.

Keeps every delivered message in ``sent`` instead of talking to a relay.
Failures can be simulated for all messages or for selected recipients.

Configuration:
    - mode: "success" | "failure" (default: "success")
    - failing_recipients: addresses that always fail, regardless of mode
    - error_message: message carried by the raised error

Usage:
    sender = InMemoryEmailSender()
    dispatcher = NotificationDispatcher(db, sender)
    ...
    assert sender.sent[0].to == "holder@example.com"

    sender = InMemoryEmailSender(mode="failure")
    # send() raises ExternalSideEffectError
"""

import logging
from typing import Iterable, List, Optional

from ..tasks.errors import ExternalSideEffectError
from .ports import EmailMessage, EmailSenderPort

logger = logging.getLogger(__name__)


class InMemoryEmailSender(EmailSenderPort):

    def __init__(
        self,
        mode: str = "success",
        failing_recipients: Optional[Iterable[str]] = None,
        error_message: str = "In-memory sender simulated failure",
    ):
        self.mode = mode
        self.failing_recipients = {r.lower() for r in (failing_recipients or [])}
        self.error_message = error_message
        self.sent: List[EmailMessage] = []

    def send(self, message: EmailMessage) -> None:
        if self.mode == "failure" or message.to.lower() in self.failing_recipients:
            logger.info(f"InMemoryEmailSender: Simulating failure for {message.to}")
            raise ExternalSideEffectError(self.error_message)

        self.sent.append(message)

    def recipients(self) -> List[str]:
        return [message.to for message in self.sent]

    def clear(self) -> None:
        self.sent.clear()
