"""
conftest.py — Shared Test Fixtures for the connections digest

Provides an in-memory SQLite database and factory fixtures for people,
connection types/opportunities/statuses, requests, groups, system
communications and service jobs, plus a recording FakeNotifier.

Business Rules:
- All tests run against an isolated in-memory DB
- Each test function gets fresh tables
- Time is fixed: NOW is a Tuesday afternoon in UTC

Called by: all test files via pytest autodiscovery
Depends on: connections_digest.models (Base)
"""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from connections_digest.models import (
    Base,
    CommunicationType,
    ConnectionOpportunity,
    ConnectionRequest,
    ConnectionRequestActivity,
    ConnectionState,
    ConnectionStatus,
    ConnectionType,
    Group,
    GroupMember,
    GroupMemberStatus,
    Person,
    PersonAlias,
    ServiceJob,
    SystemCommunication,
)
from connections_digest.services.notifier import Notifier, SendMessageResult

NOW = datetime(2026, 3, 10, 15, 0, 0, tzinfo=timezone.utc)
LAST_RUN = NOW - timedelta(days=1)

# ── In-memory SQLite engine ──────────────────────────────────────────

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestSessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@event.listens_for(engine, "connect")
def _enable_fk(dbapi_conn, _):
    """SQLite ignores FKs by default — turn them on."""
    dbapi_conn.execute("PRAGMA foreign_keys=ON")


# ── Fixtures ─────────────────────────────────────────────────────────


@pytest.fixture(autouse=True)
def db_session():
    """Create all tables, yield a session, then tear down."""
    Base.metadata.create_all(bind=engine)
    session = TestSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def connection_type(db_session: Session) -> ConnectionType:
    """Connection type with a 14-day idle threshold."""
    ct = ConnectionType(name="Volunteer", days_until_request_idle=14)
    db_session.add(ct)
    db_session.flush()
    return ct


@pytest.fixture()
def opportunity(db_session: Session, connection_type: ConnectionType) -> ConnectionOpportunity:
    opp = ConnectionOpportunity(name="Greeters", connection_type=connection_type)
    db_session.add(opp)
    db_session.flush()
    return opp


@pytest.fixture()
def open_status(db_session: Session, connection_type: ConnectionType) -> ConnectionStatus:
    status = ConnectionStatus(name="No Contact", is_critical=False, connection_type=connection_type)
    db_session.add(status)
    db_session.flush()
    return status


@pytest.fixture()
def critical_status(db_session: Session, connection_type: ConnectionType) -> ConnectionStatus:
    status = ConnectionStatus(name="Urgent", is_critical=True, connection_type=connection_type)
    db_session.add(status)
    db_session.flush()
    return status


@pytest.fixture()
def make_person(db_session: Session):
    """Factory: make_person("Ann") → (Person, PersonAlias)."""

    def _make(first_name="Ann", last_name="Connector", email=None, **kwargs):
        person = Person(
            first_name=first_name,
            last_name=last_name,
            email=email if email is not None else f"{first_name.lower()}@example.org",
            **kwargs,
        )
        alias = PersonAlias(person=person)
        db_session.add_all([person, alias])
        db_session.flush()
        return person, alias

    return _make


@pytest.fixture()
def make_request(db_session: Session, opportunity: ConnectionOpportunity, open_status):
    """Factory for connection requests; defaults to an Active request created an hour ago."""

    def _make(
        connector_alias,
        *,
        opportunity=opportunity,
        state=ConnectionState.ACTIVE,
        status=open_status,
        created_at=None,
        followup_date=None,
        activity_times=(),
    ):
        req = ConnectionRequest(
            connection_opportunity=opportunity,
            connector_person_alias=connector_alias,
            connection_state=state,
            connection_status=status,
            created_at=created_at or NOW - timedelta(hours=1),
            followup_date=followup_date,
            activities=[ConnectionRequestActivity(created_at=t) for t in activity_times],
        )
        db_session.add(req)
        db_session.flush()
        return req

    return _make


@pytest.fixture()
def make_group(db_session: Session):
    """Factory: make_group("Connectors", members=[person, ...], parent=None)."""

    def _make(name="Connectors", members=(), parent=None, inactive_members=()):
        group = Group(name=name, parent_group=parent)
        db_session.add(group)
        for person in members:
            db_session.add(GroupMember(group=group, person=person))
        for person in inactive_members:
            db_session.add(
                GroupMember(group=group, person=person, member_status=GroupMemberStatus.INACTIVE)
            )
        db_session.flush()
        return group

    return _make


@pytest.fixture()
def system_communication(db_session: Session) -> SystemCommunication:
    comm = SystemCommunication(
        title="Open Connections Digest",
        from_email="noreply@example.org",
        subject="You have {{ Requests | length }} open connection requests",
        body="<p>Hi {{ Person.first_name }}</p>",
        sms_message="",
    )
    db_session.add(comm)
    db_session.flush()
    return comm


@pytest.fixture()
def digest_job(db_session: Session, system_communication: SystemCommunication) -> ServiceJob:
    job = ServiceJob(
        name="Open Connections Digest",
        job_class="open_connections_digest",
        cron_expression="0 7 * * *",
        attributes={"system_communication_guid": system_communication.guid, "send_using": "1"},
        last_successful_run_at=LAST_RUN,
    )
    db_session.add(job)
    db_session.commit()
    return job


class FakeNotifier(Notifier):
    """Records every send; reports an error for people in fail_person_ids."""

    def __init__(self, mediums=(CommunicationType.EMAIL,), fail_person_ids=(), warn=None):
        self.mediums = set(mediums)
        self.fail_person_ids = set(fail_person_ids)
        self.warn = warn
        self.calls = []

    def has_active_transport(self, medium):
        return medium in self.mediums

    def send(self, person, medium, communication, merge_fields):
        self.calls.append((person, medium, communication, merge_fields))
        if person.id in self.fail_person_ids:
            return SendMessageResult(errors=[f"Could not reach {person.full_name}"])
        warnings = [self.warn] if self.warn else []
        return SendMessageResult(messages_sent=1, warnings=warnings)


@pytest.fixture()
def fake_notifier() -> FakeNotifier:
    return FakeNotifier()
