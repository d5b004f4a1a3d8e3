"""Connector grouping and new / idle / critical classification.

Pure functions over materialized ConnectionRequest rows. `now` and the
last successful run timestamp are passed in; nothing here reads the clock.

Idle cutoffs come from each request's own opportunity → connection type,
so one connector's requests may be judged against different thresholds.
The three subsets are independent: a request can be new and idle at once.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Iterable

from ..models import ConnectionOpportunity, ConnectionRequest


@dataclass
class ConnectorClassification:
    opportunities: list[ConnectionOpportunity] = field(default_factory=list)
    new_requests: dict[int, list[ConnectionRequest]] = field(default_factory=dict)
    idle_request_ids: dict[int, list[int]] = field(default_factory=dict)
    critical_request_ids: dict[int, list[int]] = field(default_factory=dict)


# ── Grouping ─────────────────────────────────────────────────────────


def connector_person_id(request: ConnectionRequest) -> int | None:
    alias = request.connector_person_alias
    return alias.person_id if alias is not None else None


def group_by_connector(
    requests: Iterable[ConnectionRequest],
) -> dict[int, list[ConnectionRequest]]:
    """Partition requests by the connector's person id, in first-seen order.

    Different aliases of one person land in the same group. Requests with
    no connector are dropped.
    """
    groups: dict[int, list[ConnectionRequest]] = {}
    for request in requests:
        person_id = connector_person_id(request)
        if person_id is None:
            continue
        groups.setdefault(person_id, []).append(request)
    return groups


def _group_by_opportunity(requests: Iterable[ConnectionRequest], ids_only: bool) -> dict:
    grouped: dict[int, list] = defaultdict(list)
    for r in requests:
        grouped[r.connection_opportunity_id].append(r.id if ids_only else r)
    return dict(grouped)


def distinct_opportunities(requests: Iterable[ConnectionRequest]) -> list[ConnectionOpportunity]:
    seen: dict[int, ConnectionOpportunity] = {}
    for r in requests:
        opp = r.connection_opportunity
        if opp is not None and opp.id not in seen:
            seen[opp.id] = opp
    return list(seen.values())


# ── Predicates ───────────────────────────────────────────────────────


def is_new(request: ConnectionRequest, last_run_at: datetime | None) -> bool:
    if last_run_at is None or request.created_at is None:
        return False
    return request.created_at >= last_run_at


def idle_cutoff(request: ConnectionRequest, now: datetime) -> datetime:
    days = request.connection_opportunity.connection_type.days_until_request_idle or 0
    return now - timedelta(days=days)


def last_activity_at(request: ConnectionRequest) -> datetime | None:
    stamps = [a.created_at for a in request.activities if a.created_at is not None]
    return max(stamps) if stamps else None


def is_idle(request: ConnectionRequest, now: datetime) -> bool:
    """Idle when the latest activity (or creation, if none) is older than the cutoff."""
    cutoff = idle_cutoff(request, now)
    latest = last_activity_at(request)
    if latest is not None:
        return latest < cutoff
    return request.created_at is not None and request.created_at < cutoff


def is_critical(request: ConnectionRequest) -> bool:
    status = request.connection_status
    return bool(status is not None and status.is_critical)


# ── Classification ───────────────────────────────────────────────────


def classify_requests(
    requests: list[ConnectionRequest], now: datetime, last_run_at: datetime | None
) -> ConnectorClassification:
    """Derive the opportunity list and the three sub-grouped subsets for one connector."""
    return ConnectorClassification(
        opportunities=distinct_opportunities(requests),
        new_requests=_group_by_opportunity(
            (r for r in requests if is_new(r, last_run_at)), ids_only=False
        ),
        idle_request_ids=_group_by_opportunity(
            (r for r in requests if is_idle(r, now)), ids_only=True
        ),
        critical_request_ids=_group_by_opportunity(
            (r for r in requests if is_critical(r)), ids_only=True
        ),
    )
