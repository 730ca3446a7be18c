from __future__ import annotations

"""Concrete channel senders and factories.

'log' senders only write the message to the application log and always
succeed; they are the defaults for local runs. 'smtp' and 'http' deliver for
real and surface every transport problem as ChannelDeliveryError.
"""
import logging
import smtplib
from email.message import EmailMessage
from typing import Dict, Optional, Type

from spendwatch.core.config import Settings
from spendwatch.core.errors import ChannelDeliveryError
from spendwatch.services.http_client import HttpError, post_json
from .base import EmailSender, SmsSender

logger = logging.getLogger("spendwatch.notifications")


class LogEmailSender(EmailSender):
    def __init__(self, settings: Optional[Settings] = None):
        pass

    def send_email(self, address, subject, body, html=None):  # type: ignore[override]
        logger.info("[EMAIL] to=%s subject=%s\n%s", address, subject, body)


class SmtpEmailSender(EmailSender):
    def __init__(self, settings: Settings):
        self._host = settings.smtp_host
        self._port = settings.smtp_port
        self._username = settings.smtp_username
        self._password = settings.smtp_password
        self._use_tls = settings.smtp_use_tls
        self._sender = settings.email_sender
        self._timeout = settings.http_timeout_seconds

    def _build(self, address: str, subject: str, body: str, html: Optional[str]) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = self._sender
        msg["To"] = address
        msg["Subject"] = subject
        msg.set_content(body)
        if html:
            msg.add_alternative(html, subtype="html")
        return msg

    def send_email(self, address, subject, body, html=None):  # type: ignore[override]
        msg = self._build(address, subject, body, html)
        try:
            with smtplib.SMTP(self._host, self._port, timeout=self._timeout) as smtp:
                if self._use_tls:
                    smtp.starttls()
                if self._username:
                    smtp.login(self._username, self._password or "")
                smtp.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            raise ChannelDeliveryError(f"SMTP delivery to {address} failed: {e}") from e


class LogSmsSender(SmsSender):
    def __init__(self, settings: Optional[Settings] = None):
        pass

    def send_sms(self, phone_number, message):  # type: ignore[override]
        logger.info("[SMS] to=%s message=%s", phone_number, message)


class HttpSmsSender(SmsSender):
    """Posts {"to": ..., "message": ...} to a JSON SMS gateway."""

    def __init__(self, settings: Settings):
        if not settings.sms_gateway_url:
            raise ValueError("sms_gateway_url is required for the http SMS sender")
        self._url = settings.sms_gateway_url
        self._token = settings.sms_gateway_token
        self._timeout = settings.http_timeout_seconds

    def send_sms(self, phone_number, message):  # type: ignore[override]
        headers = {"Authorization": f"Bearer {self._token}"} if self._token else None
        try:
            post_json(
                self._url,
                {"to": phone_number, "message": message},
                headers=headers,
                timeout=self._timeout,
                retries=1,
            )
        except HttpError as e:
            raise ChannelDeliveryError(f"SMS delivery to {phone_number} failed: {e}") from e


_EMAIL_REGISTRY: Dict[str, Type[EmailSender]] = {
    "log": LogEmailSender,
    "smtp": SmtpEmailSender,
}

_SMS_REGISTRY: Dict[str, Type[SmsSender]] = {
    "log": LogSmsSender,
    "http": HttpSmsSender,
}


def make_email_sender(settings: Settings) -> EmailSender:
    cls = _EMAIL_REGISTRY.get(settings.email_provider)
    if not cls:
        raise ValueError(f"Unknown email provider '{settings.email_provider}'")
    return cls(settings)  # type: ignore[call-arg]


def make_sms_sender(settings: Settings) -> SmsSender:
    cls = _SMS_REGISTRY.get(settings.sms_provider)
    if not cls:
        raise ValueError(f"Unknown sms provider '{settings.sms_provider}'")
    return cls(settings)  # type: ignore[call-arg]
