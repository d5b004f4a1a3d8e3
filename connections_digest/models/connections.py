"""Connection models — types, opportunities, statuses, requests, activities."""

import uuid

from sqlalchemy import Boolean, Column, Enum, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import relationship

from .base import Base, UTCDateTime, utcnow
from .enums import ConnectionState


class ConnectionType(Base):
    """Carries the idle policy shared by every opportunity of this type."""

    __tablename__ = "connection_types"
    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False)
    days_until_request_idle = Column(Integer, nullable=False, default=14)
    is_active = Column(Boolean, default=True)

    opportunities = relationship("ConnectionOpportunity", back_populates="connection_type")
    statuses = relationship("ConnectionStatus", back_populates="connection_type")


class ConnectionOpportunity(Base):
    __tablename__ = "connection_opportunities"
    id = Column(Integer, primary_key=True)
    guid = Column(String(36), unique=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(255), nullable=False)
    public_name = Column(String(255))
    is_active = Column(Boolean, default=True)
    connection_type_id = Column(Integer, ForeignKey("connection_types.id"), nullable=False)

    connection_type = relationship("ConnectionType", back_populates="opportunities")
    requests = relationship("ConnectionRequest", back_populates="connection_opportunity")

    def __repr__(self) -> str:
        return f"<ConnectionOpportunity {self.id} {self.name!r}>"


class ConnectionStatus(Base):
    __tablename__ = "connection_statuses"
    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False)
    is_critical = Column(Boolean, default=False, nullable=False)
    is_default = Column(Boolean, default=False)
    connection_type_id = Column(Integer, ForeignKey("connection_types.id"))

    connection_type = relationship("ConnectionType", back_populates="statuses")


class ConnectionRequest(Base):
    __tablename__ = "connection_requests"
    id = Column(Integer, primary_key=True)
    guid = Column(String(36), unique=True, default=lambda: str(uuid.uuid4()))
    connection_opportunity_id = Column(
        Integer, ForeignKey("connection_opportunities.id"), nullable=False
    )
    person_alias_id = Column(Integer, ForeignKey("person_aliases.id"))  # requester
    connector_person_alias_id = Column(Integer, ForeignKey("person_aliases.id"))
    connection_state = Column(
        Enum(ConnectionState, native_enum=False, length=20),
        nullable=False,
        default=ConnectionState.ACTIVE,
    )
    connection_status_id = Column(Integer, ForeignKey("connection_statuses.id"))
    followup_date = Column(UTCDateTime)
    comments = Column(Text)
    created_at = Column(UTCDateTime, default=utcnow)

    connection_opportunity = relationship("ConnectionOpportunity", back_populates="requests")
    connection_status = relationship("ConnectionStatus")
    person_alias = relationship("PersonAlias", foreign_keys=[person_alias_id])
    connector_person_alias = relationship("PersonAlias", foreign_keys=[connector_person_alias_id])
    activities = relationship(
        "ConnectionRequestActivity",
        back_populates="connection_request",
        cascade="all, delete-orphan",
        order_by="ConnectionRequestActivity.created_at",
    )

    __table_args__ = (
        Index("ix_conn_requests_connector", "connector_person_alias_id"),
        Index("ix_conn_requests_opportunity", "connection_opportunity_id"),
        Index("ix_conn_requests_state", "connection_state"),
    )

    def __repr__(self) -> str:
        return f"<ConnectionRequest {self.id} {self.connection_state.value}>"


class ConnectionRequestActivity(Base):
    __tablename__ = "connection_request_activities"
    id = Column(Integer, primary_key=True)
    connection_request_id = Column(
        Integer, ForeignKey("connection_requests.id", ondelete="CASCADE"), nullable=False
    )
    note = Column(Text)
    created_at = Column(UTCDateTime, default=utcnow)

    connection_request = relationship("ConnectionRequest", back_populates="activities")

    __table_args__ = (Index("ix_conn_activities_request", "connection_request_id"),)
