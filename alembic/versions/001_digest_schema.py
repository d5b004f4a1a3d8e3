"""digest schema - people, groups, connections, communications, service jobs

Revision ID: 001_digest
Revises: None
Create Date: 2026-10-19
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001_digest"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "people",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("first_name", sa.String(100)),
        sa.Column("nick_name", sa.String(100)),
        sa.Column("last_name", sa.String(100)),
        sa.Column("email", sa.String(255)),
        sa.Column("is_email_active", sa.Boolean()),
        sa.Column("mobile_phone", sa.String(50)),
        sa.Column("communication_preference", sa.String(30)),
        sa.Column("created_at", sa.DateTime()),
    )
    op.create_table(
        "person_aliases",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("person_id", sa.Integer(), sa.ForeignKey("people.id"), nullable=False),
        sa.Column("guid", sa.String(36), unique=True),
    )
    op.create_index("ix_person_aliases_person", "person_aliases", ["person_id"])

    op.create_table(
        "groups",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("guid", sa.String(36), unique=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("is_active", sa.Boolean()),
        sa.Column("is_archived", sa.Boolean()),
        sa.Column("parent_group_id", sa.Integer(), sa.ForeignKey("groups.id")),
        sa.Column("created_at", sa.DateTime()),
    )
    op.create_index("ix_groups_parent", "groups", ["parent_group_id"])
    op.create_table(
        "group_members",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "group_id", sa.Integer(),
            sa.ForeignKey("groups.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("person_id", sa.Integer(), sa.ForeignKey("people.id"), nullable=False),
        sa.Column("member_status", sa.String(20)),
        sa.Column("is_archived", sa.Boolean()),
        sa.Column("created_at", sa.DateTime()),
    )
    op.create_index("ix_group_members_group", "group_members", ["group_id"])
    op.create_index("ix_group_members_person", "group_members", ["person_id"])

    op.create_table(
        "connection_types",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("days_until_request_idle", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean()),
    )
    op.create_table(
        "connection_opportunities",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("guid", sa.String(36), unique=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("public_name", sa.String(255)),
        sa.Column("is_active", sa.Boolean()),
        sa.Column(
            "connection_type_id", sa.Integer(),
            sa.ForeignKey("connection_types.id"), nullable=False,
        ),
    )
    op.create_table(
        "connection_statuses",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("is_critical", sa.Boolean(), nullable=False),
        sa.Column("is_default", sa.Boolean()),
        sa.Column("connection_type_id", sa.Integer(), sa.ForeignKey("connection_types.id")),
    )
    op.create_table(
        "connection_requests",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("guid", sa.String(36), unique=True),
        sa.Column(
            "connection_opportunity_id", sa.Integer(),
            sa.ForeignKey("connection_opportunities.id"), nullable=False,
        ),
        sa.Column("person_alias_id", sa.Integer(), sa.ForeignKey("person_aliases.id")),
        sa.Column("connector_person_alias_id", sa.Integer(), sa.ForeignKey("person_aliases.id")),
        sa.Column("connection_state", sa.String(20), nullable=False),
        sa.Column("connection_status_id", sa.Integer(), sa.ForeignKey("connection_statuses.id")),
        sa.Column("followup_date", sa.DateTime()),
        sa.Column("comments", sa.Text()),
        sa.Column("created_at", sa.DateTime()),
    )
    op.create_index("ix_conn_requests_connector", "connection_requests", ["connector_person_alias_id"])
    op.create_index("ix_conn_requests_opportunity", "connection_requests", ["connection_opportunity_id"])
    op.create_index("ix_conn_requests_state", "connection_requests", ["connection_state"])
    op.create_table(
        "connection_request_activities",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "connection_request_id", sa.Integer(),
            sa.ForeignKey("connection_requests.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("note", sa.Text()),
        sa.Column("created_at", sa.DateTime()),
    )
    op.create_index(
        "ix_conn_activities_request", "connection_request_activities", ["connection_request_id"]
    )

    op.create_table(
        "system_communications",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("guid", sa.String(36), unique=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("from_email", sa.String(255)),
        sa.Column("subject", sa.String(500)),
        sa.Column("body", sa.Text()),
        sa.Column("sms_message", sa.Text()),
        sa.Column("push_title", sa.String(255)),
        sa.Column("push_message", sa.Text()),
        sa.Column("is_active", sa.Boolean()),
        sa.Column("created_at", sa.DateTime()),
    )
    op.create_table(
        "service_jobs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("job_class", sa.String(100), nullable=False),
        sa.Column("cron_expression", sa.String(100)),
        sa.Column("is_active", sa.Boolean()),
        sa.Column("attributes", sa.JSON()),
        sa.Column("last_run_at", sa.DateTime()),
        sa.Column("last_successful_run_at", sa.DateTime()),
        sa.Column("last_status", sa.String(50)),
        sa.Column("last_status_message", sa.Text()),
    )


def downgrade() -> None:
    """Drop all digest tables. ⚠️ DESTRUCTIVE — only for dev/test environments."""
    for table in (
        "service_jobs",
        "system_communications",
        "connection_request_activities",
        "connection_requests",
        "connection_statuses",
        "connection_opportunities",
        "connection_types",
        "group_members",
        "groups",
        "person_aliases",
        "people",
    ):
        op.drop_table(table)
