"""Scheduled job definitions and their last-run bookkeeping."""

from sqlalchemy import JSON, Boolean, Column, Integer, String, Text

from .base import Base, UTCDateTime


class ServiceJob(Base):
    """One configured scheduled job. `attributes` holds the job settings."""

    __tablename__ = "service_jobs"
    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    job_class = Column(String(100), nullable=False)  # open_connections_digest
    cron_expression = Column(String(100), default="0 7 * * *")
    is_active = Column(Boolean, default=True)
    attributes = Column(JSON, default=dict)
    last_run_at = Column(UTCDateTime)
    last_successful_run_at = Column(UTCDateTime)
    last_status = Column(String(50))  # Success | Exception | Skipped
    last_status_message = Column(Text)
