"""System communication templates used by scheduled jobs."""

import uuid

from sqlalchemy import Boolean, Column, Integer, String, Text

from .base import Base, UTCDateTime, utcnow


class SystemCommunication(Base):
    __tablename__ = "system_communications"
    id = Column(Integer, primary_key=True)
    guid = Column(String(36), unique=True, default=lambda: str(uuid.uuid4()))
    title = Column(String(255), nullable=False)
    from_email = Column(String(255))
    subject = Column(String(500))
    body = Column(Text)
    sms_message = Column(Text)
    push_title = Column(String(255))
    push_message = Column(Text)
    is_active = Column(Boolean, default=True)
    created_at = Column(UTCDateTime, default=utcnow)
