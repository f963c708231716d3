"""Port interface for outbound email (Hexagonal Architecture)."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass
class EmailMessage:
    """Rendered email ready for delivery."""

    to: str
    subject: str
    html: str
    text: Optional[str] = None


class EmailSenderPort(ABC):
    """Port interface for email transports.

    Implementations must raise ExternalSideEffectError on any delivery
    failure and never return a partial result.
    """

    @abstractmethod
    def send(self, message: EmailMessage) -> None:
        """Deliver a single message.

        Raises:
            ExternalSideEffectError: If the transport rejects or fails
        """
        pass
