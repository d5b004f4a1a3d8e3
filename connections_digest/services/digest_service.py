"""
digest_service.py — Open connections digest run

Query → filter → group → classify → assemble → dispatch, once per run.

Business Rules:
- The System Communication must resolve before anything is queried
- `now` is read once and threaded through every stage
- Channel warnings never stop the run
- The notifier is called exactly once per connector
- Recipient errors are collected; the run fails after everyone was attempted

Usage:
    result = run_open_connections_digest(db, config, notifier)
    print(result.summary())

Called by: scheduler.py, scripts/run_digest.py
Depends on: services/request_filter.py, digest_classifier.py,
            digest_bundle.py, channel_resolver.py, notifier.py
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..config import settings
from ..exceptions import DigestConfigurationError, DigestJobError
from ..models import CommunicationType, SystemCommunication
from ..schemas.digest_job import DigestJobConfig
from .channel_resolver import available_mediums, determine_medium, resolve_job_medium
from .digest_bundle import RecipientBundle, build_recipient_bundles
from .digest_classifier import group_by_connector
from .notifier import Notifier, SendMessageResult
from .request_filter import select_candidate_requests, tomorrow_midnight

log = logging.getLogger("digest.dispatch")


# ── Result formatting ────────────────────────────────────────────────


def format_messages(messages: list[str], label: str) -> str:
    """'{n} Label(s):' header plus one line per message; '' when empty."""
    if not messages:
        return ""
    plural = f"{label}s" if len(messages) > 1 else label
    lines = [f"{len(messages)} {plural}:", *messages]
    return "\n".join(lines) + "\n"


@dataclass
class DigestRunResult:
    messages_sent: int = 0
    warnings: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    recipients: int = 0
    mediums: dict[int, CommunicationType] = field(default_factory=dict)

    def add_send_result(self, send_result: SendMessageResult) -> None:
        self.messages_sent += send_result.messages_sent
        self.warnings.extend(send_result.warnings)
        self.errors.extend(send_result.errors)

    def summary(self) -> str:
        return f"{self.messages_sent} connection reminders sent.\n" + format_messages(
            self.warnings, "Warning"
        )

    def message(self) -> str:
        return self.summary() + format_messages(self.errors, "Error")


# ── Stages ───────────────────────────────────────────────────────────


def get_system_communication(db: Session, config: DigestJobConfig) -> SystemCommunication:
    communication = None
    if config.system_communication_guid:
        communication = (
            db.query(SystemCommunication)
            .filter(func.lower(SystemCommunication.guid) == config.system_communication_guid)
            .first()
        )
    if communication is None:
        raise DigestConfigurationError(
            format_messages(["System Communication is required!"], "Warning")
        )
    return communication


def dispatch_bundles(
    bundles: list[RecipientBundle],
    communication: SystemCommunication,
    job_medium: CommunicationType,
    notifier: Notifier,
    result: DigestRunResult,
    now: datetime,
) -> None:
    mediums = available_mediums(
        communication,
        sms_transport_active=notifier.has_active_transport(CommunicationType.SMS),
        push_transport_active=notifier.has_active_transport(CommunicationType.PUSH_NOTIFICATION),
    )
    for bundle in bundles:
        person = bundle.person
        medium = determine_medium([job_medium, person.communication_preference], mediums)
        result.mediums[person.id] = medium
        log.debug(f"Sending digest to {person.full_name} via {medium.name}")
        try:
            fields = {**bundle.merge_fields(), "CurrentDateTime": now}
            send_result = notifier.send(person, medium, communication, fields)
        except Exception as e:
            log.error(f"Notifier failed for {person.full_name}: {e}")
            result.errors.append(f"Unable to send to {person.full_name}: {e}")
            continue
        result.add_send_result(send_result)


def run_open_connections_digest(
    db: Session,
    config: DigestJobConfig,
    notifier: Notifier,
    *,
    now: datetime | None = None,
    tz_name: str | None = None,
) -> DigestRunResult:
    """Run one digest. Raises DigestConfigurationError or DigestJobError."""
    now = now or datetime.now(timezone.utc)
    communication = get_system_communication(db, config)
    log.info(f"Open connections digest started — now={now.isoformat()}")

    result = DigestRunResult()
    job_medium, channel_warnings = resolve_job_medium(
        config.send_using,
        communication,
        sms_transport_active=notifier.has_active_transport(CommunicationType.SMS),
    )
    for warning in channel_warnings:
        log.warning(warning)
    result.warnings.extend(channel_warnings)

    midnight = tomorrow_midnight(now, tz_name or settings.digest_timezone)
    requests = select_candidate_requests(db, config, midnight)
    bundles = build_recipient_bundles(group_by_connector(requests), now, config)
    result.recipients = len(bundles)

    dispatch_bundles(bundles, communication, job_medium, notifier, result, now)

    log.info(
        f"Open connections digest finished — {result.messages_sent} sent to "
        f"{result.recipients} connector(s), {len(result.warnings)} warning(s), "
        f"{len(result.errors)} error(s)"
    )
    if result.errors:
        raise DigestJobError(result.message(), result)
    return result
