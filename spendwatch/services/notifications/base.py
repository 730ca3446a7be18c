from __future__ import annotations

"""Channel sender abstraction.

A sender either returns normally (delivered) or raises ChannelDeliveryError
with a human readable detail. Senders apply their own timeouts; a timeout is
just another delivery failure.
"""
from abc import ABC, abstractmethod
from typing import Optional


class EmailSender(ABC):
    @abstractmethod
    def send_email(
        self, address: str, subject: str, body: str, html: Optional[str] = None
    ) -> None:
        raise NotImplementedError


class SmsSender(ABC):
    @abstractmethod
    def send_sms(self, phone_number: str, message: str) -> None:
        raise NotImplementedError
