"""
digest_bundle.py — Per-connector recipient bundle and its merge fields

One RecipientBundle per connector group, always. The bundle is built from
already-classified data and turned into the named merge values the
system communication template expects.

Called by: services/digest_service.py
Depends on: services/digest_classifier.py
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from ..models import ConnectionOpportunity, ConnectionRequest, Person
from ..schemas.digest_job import DigestJobConfig
from .digest_classifier import classify_requests


@dataclass(frozen=True)
class RecipientBundle:
    person: Person
    requests: list[ConnectionRequest]
    opportunities: list[ConnectionOpportunity]
    new_requests: dict[int, list[ConnectionRequest]]
    idle_request_ids: dict[int, list[int]]
    critical_request_ids: dict[int, list[int]]
    last_run_at: datetime | None
    include_opportunity_breakdown: bool
    include_all_requests: bool

    def requests_by_opportunity(self) -> dict[ConnectionOpportunity, list[ConnectionRequest]]:
        grouped: dict[ConnectionOpportunity, list[ConnectionRequest]] = {}
        for r in self.requests:
            grouped.setdefault(r.connection_opportunity, []).append(r)
        return grouped

    def merge_fields(self) -> dict:
        return {
            "Requests": list(self.requests),
            "ConnectionOpportunities": list(self.opportunities),
            "ConnectionRequests": self.requests_by_opportunity(),
            "NewConnectionRequests": self.new_requests,
            "IdleConnectionRequestIds": self.idle_request_ids,
            "CriticalConnectionRequestIds": self.critical_request_ids,
            "Person": self.person,
            "LastRunDate": self.last_run_at,
            "IncludeOpportunityBreakdown": self.include_opportunity_breakdown,
            "IncludeAllRequests": self.include_all_requests,
        }


def assemble_bundle(
    person: Person,
    requests: list[ConnectionRequest],
    now: datetime,
    config: DigestJobConfig,
) -> RecipientBundle:
    classification = classify_requests(requests, now, config.last_successful_run_at)
    return RecipientBundle(
        person=person,
        requests=list(requests),
        opportunities=classification.opportunities,
        new_requests=classification.new_requests,
        idle_request_ids=classification.idle_request_ids,
        critical_request_ids=classification.critical_request_ids,
        last_run_at=config.last_successful_run_at,
        include_opportunity_breakdown=config.include_opportunity_breakdown,
        include_all_requests=config.include_all_requests,
    )


def build_recipient_bundles(
    groups: dict[int, list[ConnectionRequest]],
    now: datetime,
    config: DigestJobConfig,
) -> list[RecipientBundle]:
    """One bundle per connector group, in group order.

    The connector is resolved from the group's materialized alias → person.
    """
    bundles = []
    for requests in groups.values():
        person = requests[0].connector_person_alias.person
        bundles.append(assemble_bundle(person, requests, now, config))
    return bundles
