"""
schemas/digest_job.py — Validated configuration for the open connections digest

Built from a ServiceJob's `attributes` mapping plus its last successful
run timestamp. Validation runs before any request is queried.

Business Rules:
- send_using is one of Email, SMS, RecipientPreference (legacy codes 1, 2, 0)
- Opportunity allow-list may be a list or a comma-delimited string; empty = all
- A missing System Communication parses fine here; the run fails on it
- Naive timestamps are taken as UTC

Called by: scheduler.py, scripts/run_digest.py, services/digest_service.py
Depends on: pydantic, models/enums.py
"""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, field_validator

from ..models.enums import CommunicationType

_SEND_USING_NAMES = {
    "email": CommunicationType.EMAIL,
    "sms": CommunicationType.SMS,
    "recipientpreference": CommunicationType.RECIPIENT_PREFERENCE,
    "recipient_preference": CommunicationType.RECIPIENT_PREFERENCE,
}
_ALLOWED_SEND_USING = {
    CommunicationType.EMAIL,
    CommunicationType.SMS,
    CommunicationType.RECIPIENT_PREFERENCE,
}


class DigestJobConfig(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    system_communication_guid: str | None = None
    send_using: CommunicationType = CommunicationType.EMAIL
    connection_opportunity_guids: tuple[str, ...] = ()
    connection_group_guid: str | None = None
    include_descendant_groups: bool = False
    include_all_requests: bool = True
    include_opportunity_breakdown: bool = True
    last_successful_run_at: datetime | None = None

    @field_validator("system_communication_guid", "connection_group_guid", mode="before")
    @classmethod
    def blank_guid_is_none(cls, v):
        if v is None:
            return None
        v = str(v).strip()
        return v.lower() or None

    @field_validator("send_using", mode="before")
    @classmethod
    def parse_send_using(cls, v):
        if isinstance(v, str):
            key = v.strip().lower().replace(" ", "")
            if key.isdigit():
                v = int(key)
            elif key in _SEND_USING_NAMES:
                return _SEND_USING_NAMES[key]
            else:
                raise ValueError(f"Unknown send_using value: {v!r}")
        if v not in {int(t) for t in _ALLOWED_SEND_USING}:
            raise ValueError(f"send_using must be Email, SMS or RecipientPreference, got {v!r}")
        return CommunicationType(v)

    @field_validator("connection_opportunity_guids", mode="before")
    @classmethod
    def split_guids(cls, v):
        if v is None:
            return ()
        if isinstance(v, str):
            v = v.split(",")
        return tuple(g.strip().lower() for g in v if g and g.strip())

    @field_validator("last_successful_run_at")
    @classmethod
    def assume_utc(cls, v: datetime | None) -> datetime | None:
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @classmethod
    def from_service_job(cls, job) -> DigestJobConfig:
        """Validate a ServiceJob row's attributes into a config."""
        data = dict(job.attributes or {})
        data["last_successful_run_at"] = job.last_successful_run_at
        return cls.model_validate(data)
