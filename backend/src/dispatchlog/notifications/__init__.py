"""Task notifications: in-app rows, email and reminders."""

from .ports import EmailMessage, EmailSenderPort
from .memory import InMemoryEmailSender
from .dispatcher import NotificationDispatcher, deliver_best_effort, get_email_sender

__all__ = [
    "EmailMessage",
    "EmailSenderPort",
    "InMemoryEmailSender",
    "NotificationDispatcher",
    "deliver_best_effort",
    "get_email_sender",
]
