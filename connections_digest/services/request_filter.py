"""
request_filter.py — Candidate selection for the connections digest

Narrows all connection requests to the ones a connector should hear about.

Business Rules:
- A request without a connector is never selected
- Active requests are selected; FutureFollowUp requests only when their
  follow-up date is set and strictly before tomorrow's local midnight
- A non-empty opportunity allow-list restricts by opportunity guid
- A configured connector group restricts to its active members (direct
  members, or the whole descendant tree when include_descendant_groups)
- Every field classification reads is loaded eagerly here

Called by: services/digest_service.py
Depends on: models, services/group_membership.py
"""

import logging
from datetime import datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

from sqlalchemy import and_, func, or_
from sqlalchemy.orm import Query, Session, contains_eager, joinedload, selectinload

from ..models import (
    ConnectionOpportunity,
    ConnectionRequest,
    ConnectionState,
    PersonAlias,
)
from ..schemas.digest_job import DigestJobConfig
from .group_membership import get_active_member_person_ids, get_group_by_guid

log = logging.getLogger("digest.filter")


def tomorrow_midnight(now: datetime, tz_name: str = "UTC") -> datetime:
    """Start of the day after `now` in tz_name, returned as aware UTC."""
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    zone = ZoneInfo(tz_name)
    local_today = now.astimezone(zone).date()
    midnight = datetime.combine(local_today + timedelta(days=1), time.min, tzinfo=zone)
    return midnight.astimezone(timezone.utc)


def build_candidate_query(
    db: Session,
    config: DigestJobConfig,
    midnight_tomorrow: datetime,
    connector_person_ids: set[int] | None = None,
) -> Query:
    """Query for candidate requests. connector_person_ids=None means unscoped."""
    q = (
        db.query(ConnectionRequest)
        .join(ConnectionRequest.connection_opportunity)
        .join(
            PersonAlias,
            ConnectionRequest.connector_person_alias_id == PersonAlias.id,
        )
        .filter(
            ConnectionRequest.connector_person_alias_id.isnot(None),
            or_(
                ConnectionRequest.connection_state == ConnectionState.ACTIVE,
                and_(
                    ConnectionRequest.connection_state == ConnectionState.FUTURE_FOLLOW_UP,
                    ConnectionRequest.followup_date.isnot(None),
                    ConnectionRequest.followup_date < midnight_tomorrow,
                ),
            ),
        )
    )

    if config.connection_opportunity_guids:
        q = q.filter(
            func.lower(ConnectionOpportunity.guid).in_(config.connection_opportunity_guids)
        )

    if connector_person_ids is not None:
        q = q.filter(PersonAlias.person_id.in_(connector_person_ids))

    return q.options(
        contains_eager(ConnectionRequest.connection_opportunity).joinedload(
            ConnectionOpportunity.connection_type
        ),
        joinedload(ConnectionRequest.connector_person_alias).joinedload(PersonAlias.person),
        joinedload(ConnectionRequest.connection_status),
        selectinload(ConnectionRequest.activities),
    ).order_by(ConnectionRequest.id)


def resolve_connector_scope(db: Session, config: DigestJobConfig) -> set[int] | None:
    """Person ids allowed as connectors, or None when no group scopes the run."""
    if not config.connection_group_guid:
        return None
    group = get_group_by_guid(db, config.connection_group_guid)
    if group is None:
        log.warning(
            f"Connection group {config.connection_group_guid} not found — "
            "connectors are not scoped"
        )
        return None
    return get_active_member_person_ids(
        db, group, include_descendants=config.include_descendant_groups
    )


def select_candidate_requests(
    db: Session, config: DigestJobConfig, midnight_tomorrow: datetime
) -> list[ConnectionRequest]:
    """Run the filter stage and return fully materialized requests."""
    scope = resolve_connector_scope(db, config)
    requests = build_candidate_query(db, config, midnight_tomorrow, scope).all()
    log.info(
        f"Selected {len(requests)} candidate connection request(s)"
        + (f" for {len(scope)} scoped connector(s)" if scope is not None else "")
    )
    return requests
