import logging
import re
from dataclasses import dataclass
from typing import Optional, Protocol

import requests

from planwise.core.config import settings as core_settings
from .config import settings
from .metrics import gateway_requests_total

logger = logging.getLogger(__name__)

E164_PHONE_REGEX = re.compile(r"^\+[1-9]\d{7,14}$")
WHATSAPP_PREFIX = "whatsapp:"

CHANNEL_SMS = "sms"
CHANNEL_WHATSAPP = "whatsapp"


class TwilioError(Exception):
    """Typed gateway failure; ``status`` mirrors the HTTP status we would surface."""

    def __init__(self, message: str, status: int = 500):
        super().__init__(message)
        self.message = message
        self.status = status


@dataclass
class SendResult:
    message_sid: Optional[str] = None


class MessagingGateway(Protocol):
    def send(self, channel: str, to: str, body: str) -> SendResult:
        ...


def _strip_whatsapp_prefix(value: str) -> str:
    value = value.strip()
    if value.lower().startswith(WHATSAPP_PREFIX):
        return value[len(WHATSAPP_PREFIX):]
    return value


def is_valid_e164_phone_number(value: str) -> bool:
    return bool(E164_PHONE_REGEX.match(_strip_whatsapp_prefix(value or "")))


def ensure_e164_phone(value: str) -> str:
    normalized = _strip_whatsapp_prefix(value or "")
    if not E164_PHONE_REGEX.match(normalized):
        raise TwilioError(
            "Ungueltige Telefonnummer. Bitte E.164 Format nutzen (z.B. +491234567890).",
            400,
        )
    return normalized


def as_whatsapp_address(phone: str) -> str:
    return f"{WHATSAPP_PREFIX}{phone}"


class TwilioGateway:
    """Sends SMS / WhatsApp messages through the Twilio Messages REST API."""

    def __init__(
        self,
        account_sid: Optional[str] = None,
        auth_token: Optional[str] = None,
        from_number: Optional[str] = None,
        whatsapp_from: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[int] = None,
        session: Optional[requests.Session] = None,
    ):
        self.account_sid = account_sid or core_settings.TWILIO_ACCOUNT_SID
        self.auth_token = auth_token or core_settings.TWILIO_AUTH_TOKEN
        self.from_number = from_number or core_settings.TWILIO_FROM_NUMBER
        self.whatsapp_from = whatsapp_from or core_settings.TWILIO_WHATSAPP_FROM
        self.base_url = (base_url or core_settings.TWILIO_API_BASE_URL).rstrip("/")
        self.timeout = timeout or settings.GATEWAY_TIMEOUT_SECONDS
        self.session = session or requests.Session()

    def _resolve_from(self, channel: str) -> str:
        if channel == CHANNEL_SMS:
            if not self.from_number:
                raise TwilioError("Twilio SMS ist nicht konfiguriert. Bitte TWILIO_FROM_NUMBER setzen.", 500)
            if self.from_number.lower().startswith(WHATSAPP_PREFIX):
                raise TwilioError('TWILIO_FROM_NUMBER darf fuer SMS nicht mit "whatsapp:" beginnen.', 500)
            return self.from_number

        sender = self.whatsapp_from or self.from_number
        if not sender:
            raise TwilioError("Twilio WhatsApp ist nicht konfiguriert. Bitte TWILIO_WHATSAPP_FROM setzen.", 500)
        if sender.lower().startswith(WHATSAPP_PREFIX):
            return sender
        return as_whatsapp_address(ensure_e164_phone(sender))

    def send(self, channel: str, to: str, body: str) -> SendResult:
        if not self.account_sid or not self.auth_token:
            raise TwilioError(
                "Twilio ist nicht konfiguriert. Bitte TWILIO_ACCOUNT_SID und TWILIO_AUTH_TOKEN setzen.",
                500,
            )
        to_phone = ensure_e164_phone(to)
        sender = self._resolve_from(channel)
        to_address = as_whatsapp_address(to_phone) if channel == CHANNEL_WHATSAPP else to_phone

        url = f"{self.base_url}/Accounts/{self.account_sid}/Messages.json"
        try:
            response = self.session.post(
                url,
                data={"To": to_address, "From": sender, "Body": body},
                auth=(self.account_sid, self.auth_token),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            gateway_requests_total.labels(channel=channel, outcome="error").inc()
            logger.error(f"Twilio request failed | channel={channel}: {e!r}")
            raise TwilioError("Twilio ist nicht erreichbar.", 502) from e

        try:
            payload = response.json()
        except ValueError:
            payload = {}
        if not isinstance(payload, dict):
            payload = {}

        if not response.ok:
            gateway_requests_total.labels(channel=channel, outcome="rejected").inc()
            message = payload.get("message") or "Twilio konnte die Nachricht nicht senden."
            logger.warning(f"Twilio rejected message | channel={channel} status={response.status_code}: {message}")
            raise TwilioError(message, response.status_code)

        gateway_requests_total.labels(channel=channel, outcome="sent").inc()
        return SendResult(message_sid=payload.get("sid"))


def describe_error(exc: Exception) -> str:
    """Text stored in the ledger for a failed delivery."""
    if isinstance(exc, TwilioError):
        return exc.message
    return str(exc) or "Unbekannter Fehler"
