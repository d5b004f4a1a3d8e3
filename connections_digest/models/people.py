"""People, aliases, and groups — connector identities and scoping groups."""

import uuid

from sqlalchemy import Boolean, Column, Enum, ForeignKey, Index, Integer, String
from sqlalchemy.orm import relationship

from .base import Base, UTCDateTime, utcnow
from .enums import CommunicationType, GroupMemberStatus


class Person(Base):
    __tablename__ = "people"
    id = Column(Integer, primary_key=True)
    first_name = Column(String(100))
    nick_name = Column(String(100))
    last_name = Column(String(100))
    email = Column(String(255))
    is_email_active = Column(Boolean, default=True)
    mobile_phone = Column(String(50))
    communication_preference = Column(
        Enum(CommunicationType, native_enum=False, length=30),
        default=CommunicationType.EMAIL,
    )
    created_at = Column(UTCDateTime, default=utcnow)

    aliases = relationship("PersonAlias", back_populates="person")

    @property
    def full_name(self) -> str:
        first = self.nick_name or self.first_name or ""
        return f"{first} {self.last_name or ''}".strip()

    def __repr__(self) -> str:
        return f"<Person {self.id} {self.full_name!r}>"


class PersonAlias(Base):
    """Stable reference to a person; merged people keep every alias."""

    __tablename__ = "person_aliases"
    id = Column(Integer, primary_key=True)
    person_id = Column(Integer, ForeignKey("people.id"), nullable=False)
    guid = Column(String(36), unique=True, default=lambda: str(uuid.uuid4()))

    person = relationship("Person", back_populates="aliases")

    __table_args__ = (Index("ix_person_aliases_person", "person_id"),)


class Group(Base):
    __tablename__ = "groups"
    id = Column(Integer, primary_key=True)
    guid = Column(String(36), unique=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(255), nullable=False)
    is_active = Column(Boolean, default=True)
    is_archived = Column(Boolean, default=False)
    parent_group_id = Column(Integer, ForeignKey("groups.id"))
    created_at = Column(UTCDateTime, default=utcnow)

    parent_group = relationship("Group", remote_side=[id], back_populates="child_groups")
    child_groups = relationship("Group", back_populates="parent_group")
    members = relationship("GroupMember", back_populates="group", cascade="all, delete-orphan")

    __table_args__ = (Index("ix_groups_parent", "parent_group_id"),)


class GroupMember(Base):
    __tablename__ = "group_members"
    id = Column(Integer, primary_key=True)
    group_id = Column(Integer, ForeignKey("groups.id", ondelete="CASCADE"), nullable=False)
    person_id = Column(Integer, ForeignKey("people.id"), nullable=False)
    member_status = Column(
        Enum(GroupMemberStatus, native_enum=False, length=20),
        default=GroupMemberStatus.ACTIVE,
    )
    is_archived = Column(Boolean, default=False)
    created_at = Column(UTCDateTime, default=utcnow)

    group = relationship("Group", back_populates="members")
    person = relationship("Person")

    __table_args__ = (
        Index("ix_group_members_group", "group_id"),
        Index("ix_group_members_person", "person_id"),
    )
