"""Notification channels, message rendering and alert dispatch."""

from .base import EmailSender, SmsSender
from .dispatcher import DispatchResult, NotificationDispatcher
from .messages import AlertMessage, MessageRenderer
from .providers import make_email_sender, make_sms_sender

__all__ = [
    "EmailSender",
    "SmsSender",
    "DispatchResult",
    "NotificationDispatcher",
    "AlertMessage",
    "MessageRenderer",
    "make_email_sender",
    "make_sms_sender",
]
