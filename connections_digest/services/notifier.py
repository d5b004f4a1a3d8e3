"""
notifier.py — Templated delivery of system communications

The digest hands each recipient bundle to a Notifier exactly once. The
notifier renders the system communication for the chosen medium and
passes it to that medium's transport.

Business Rules:
- Rendering uses Jinja2; the email body is HTML-autoescaped, SMS/push are plain
- Email needs an active address, SMS a mobile number, push a push message —
  otherwise a warning is reported and nothing is sent
- Render and transport failures are reported as errors, never raised
- A medium is available only when a transport is registered for it
- A notifier from build_notifier owns its httpx client; close() releases it
- CurrentDateTime is the digest run time when the caller passes one

Called by: services/digest_service.py, scheduler.py
Depends on: jinja2, httpx, config.py
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone

import httpx
from jinja2 import Environment, TemplateError

from ..config import Settings
from ..exceptions import DeliveryError
from ..models import CommunicationType, Person, SystemCommunication

log = logging.getLogger("digest.notifier")

_html_env = Environment(autoescape=True)
_text_env = Environment(autoescape=False)


@dataclass
class SendMessageResult:
    messages_sent: int = 0
    warnings: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    def merge(self, other: SendMessageResult) -> None:
        self.messages_sent += other.messages_sent
        self.warnings.extend(other.warnings)
        self.errors.extend(other.errors)


@dataclass
class OutboundMessage:
    medium: CommunicationType
    to: str
    body: str
    subject: str = ""
    from_email: str = ""
    person_id: int | None = None


class Notifier(ABC):
    """Delivery service the digest dispatches through."""

    @abstractmethod
    def has_active_transport(self, medium: CommunicationType) -> bool:
        ...

    @abstractmethod
    def send(
        self,
        person: Person,
        medium: CommunicationType,
        communication: SystemCommunication,
        merge_fields: dict,
    ) -> SendMessageResult:
        ...

    def close(self) -> None:
        """Release delivery resources. Called once the run is finished."""


class RelayTransport:
    """Posts rendered messages as JSON to an HTTP relay (mail/SMS/push gateway)."""

    def __init__(self, url: str, client: httpx.Client):
        self.url = url
        self.client = client

    def send(self, message: OutboundMessage) -> None:
        payload = {
            "medium": message.medium.name.lower(),
            "to": message.to,
            "from": message.from_email,
            "subject": message.subject,
            "body": message.body,
            "person_id": message.person_id,
        }
        try:
            resp = self.client.post(self.url, json=payload)
        except httpx.HTTPError as e:
            raise DeliveryError(f"Relay request failed: {e}") from e
        if resp.status_code >= 300:
            raise DeliveryError(f"Relay rejected message: {resp.status_code} — {resp.text[:200]}")


def common_merge_fields(app_url: str, now: datetime) -> dict:
    return {
        "PublicApplicationRoot": app_url.rstrip("/") + "/",
        "CurrentDateTime": now,
    }


class TemplateNotifier(Notifier):
    def __init__(
        self,
        transports: dict[CommunicationType, RelayTransport],
        app_url: str = "",
        client: httpx.Client | None = None,
    ):
        self.transports = transports
        self.app_url = app_url
        self.client = client  # closed by close(); None when the caller owns it

    def close(self) -> None:
        if self.client is not None:
            self.client.close()
            self.client = None

    def has_active_transport(self, medium: CommunicationType) -> bool:
        return medium in self.transports

    def send(self, person, medium, communication, merge_fields) -> SendMessageResult:
        result = SendMessageResult()
        # The digest passes its run time; direct callers get the wall clock
        now = merge_fields.get("CurrentDateTime") or datetime.now(timezone.utc)
        fields = {**common_merge_fields(self.app_url, now), **merge_fields}

        transport = self.transports.get(medium)
        if transport is None:
            result.errors.append(
                f"No active {medium.name.lower()} transport; "
                f"{person.full_name} was not notified."
            )
            return result

        try:
            message = self._render(person, medium, communication, fields, result)
        except TemplateError as e:
            result.errors.append(
                f"Unable to render {communication.title} for {person.full_name}: {e}"
            )
            return result
        if message is None:
            return result

        try:
            transport.send(message)
        except DeliveryError as e:
            log.warning(f"Delivery to {person.full_name} failed: {e}")
            result.errors.append(f"Failed to send to {person.full_name}: {e}")
            return result

        result.messages_sent += 1
        return result

    def _render(
        self,
        person: Person,
        medium: CommunicationType,
        communication: SystemCommunication,
        fields: dict,
        result: SendMessageResult,
    ) -> OutboundMessage | None:
        if medium == CommunicationType.SMS:
            if not person.mobile_phone:
                result.warnings.append(f"{person.full_name} does not have a mobile phone number.")
                return None
            return OutboundMessage(
                medium=medium,
                to=person.mobile_phone,
                body=_text_env.from_string(communication.sms_message or "").render(fields),
                person_id=person.id,
            )

        if medium == CommunicationType.PUSH_NOTIFICATION:
            if not (communication.push_message or "").strip():
                result.warnings.append(
                    f"No push message found in system communication {communication.title}."
                )
                return None
            return OutboundMessage(
                medium=medium,
                to=str(person.id),
                subject=_text_env.from_string(communication.push_title or "").render(fields),
                body=_text_env.from_string(communication.push_message).render(fields),
                person_id=person.id,
            )

        if not person.email or person.is_email_active is False:
            result.warnings.append(f"{person.full_name} does not have an active email address.")
            return None
        return OutboundMessage(
            medium=CommunicationType.EMAIL,
            to=person.email,
            from_email=communication.from_email or "",
            subject=_text_env.from_string(communication.subject or "").render(fields),
            body=_html_env.from_string(communication.body or "").render(fields),
            person_id=person.id,
        )


def build_notifier(settings: Settings, client: httpx.Client | None = None) -> TemplateNotifier:
    """Register a relay transport for every medium with a configured relay URL."""
    headers = {"Authorization": f"Bearer {settings.relay_api_key}"} if settings.relay_api_key else {}
    owned = None
    if client is None:
        client = owned = httpx.Client(timeout=settings.relay_timeout_seconds, headers=headers)
    urls = {
        CommunicationType.EMAIL: settings.email_relay_url,
        CommunicationType.SMS: settings.sms_relay_url,
        CommunicationType.PUSH_NOTIFICATION: settings.push_relay_url,
    }
    transports = {medium: RelayTransport(url, client) for medium, url in urls.items() if url}
    return TemplateNotifier(transports, app_url=settings.app_url, client=owned)
