"""Delivery medium resolution.

Two pure steps:
  1. resolve_job_medium — run-level policy. Turns the configured medium into
     the effective one for this run (forcing Email when SMS cannot be used)
     and returns the warnings that decision produced.
  2. determine_medium — per recipient. Walks the preferences in order
     (effective job medium, then the person's own preference) and returns the
     first concrete medium that is available, Email otherwise.
"""

from typing import Iterable

from ..models import CommunicationType, SystemCommunication

CONCRETE_MEDIUMS = (
    CommunicationType.EMAIL,
    CommunicationType.SMS,
    CommunicationType.PUSH_NOTIFICATION,
)


def has_sms_content(communication: SystemCommunication) -> bool:
    return bool((communication.sms_message or "").strip())


def has_push_content(communication: SystemCommunication) -> bool:
    return bool((communication.push_message or "").strip())


def resolve_job_medium(
    send_using: CommunicationType,
    communication: SystemCommunication,
    sms_transport_active: bool,
) -> tuple[CommunicationType, list[str]]:
    """Return (effective medium, warnings). At most one warning per run."""
    sms_content = has_sms_content(communication)

    if send_using == CommunicationType.SMS and not (sms_transport_active and sms_content):
        return CommunicationType.EMAIL, [
            "The job is setup to send via SMS but either SMS isn't enabled or no SMS "
            f"message was found in system communication {communication.title}. "
            "Connection reminders were sent via email."
        ]

    if send_using != CommunicationType.EMAIL and not sms_content:
        return CommunicationType.EMAIL, [
            f"No SMS message found in system communication {communication.title}. "
            "All connection reminders were sent via email."
        ]

    return send_using, []


def available_mediums(
    communication: SystemCommunication,
    sms_transport_active: bool,
    push_transport_active: bool,
) -> set[CommunicationType]:
    """Mediums a recipient may be routed to. Email is always the fallback."""
    mediums = {CommunicationType.EMAIL}
    if sms_transport_active and has_sms_content(communication):
        mediums.add(CommunicationType.SMS)
    if push_transport_active and has_push_content(communication):
        mediums.add(CommunicationType.PUSH_NOTIFICATION)
    return mediums


def determine_medium(
    preferences: Iterable[CommunicationType | None],
    available: Iterable[CommunicationType] = CONCRETE_MEDIUMS,
) -> CommunicationType:
    """First available concrete medium among preferences, else Email.

    RecipientPreference (and None) defer to the next preference.
    """
    allowed = set(available)
    for preference in preferences:
        if preference is None or preference == CommunicationType.RECIPIENT_PREFERENCE:
            continue
        if preference in allowed:
            return preference
    return CommunicationType.EMAIL
