"""create_push_contact_tables

Revision ID: 3f1c2a9d7b10
Revises:
Create Date: 2026-10-19 10:12:41.204517

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1c2a9d7b10'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

BIGINT_PK = sa.BigInteger().with_variant(sa.Integer(), "sqlite")


def upgrade() -> None:
    op.create_table(
        "push_contacts",
        sa.Column("id", BIGINT_PK, primary_key=True),
        sa.Column("device_token", sa.String(length=512), nullable=False, unique=True),
        sa.Column("domain", sa.String(length=255), nullable=False),
        sa.Column("enc_email", sa.LargeBinary(), nullable=True),
        sa.Column("email_hash", sa.LargeBinary(), nullable=True),
        sa.Column("modified_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_push_contact_domain", "push_contacts", ["domain"])
    op.create_index("ix_push_contact_email_hash", "push_contacts", ["email_hash"], mysql_length=32)

    op.create_table(
        "push_messages",
        sa.Column("id", BIGINT_PK, primary_key=True),
        sa.Column("message_id", sa.String(length=64), nullable=False, unique=True),
        sa.Column("domain", sa.String(length=255), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("on_click_link", sa.String(length=2048), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "push_history_events",
        sa.Column("id", BIGINT_PK, primary_key=True),
        sa.Column("message_id", sa.String(length=64), nullable=False),
        sa.Column("device_token", sa.String(length=512), nullable=False),
        sa.Column("sent_success", sa.Boolean(), nullable=False),
        sa.Column("event_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("details", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_history_message_id", "push_history_events", ["message_id"])
    op.create_index("ix_history_device_token", "push_history_events", ["device_token"])

    op.create_table(
        "push_message_stats",
        sa.Column("id", BIGINT_PK, primary_key=True),
        sa.Column("message_id", sa.String(length=64), nullable=False, unique=True),
        sa.Column("domain", sa.String(length=255), nullable=False),
        sa.Column("sent", sa.Integer(), nullable=False),
        sa.Column("delivered", sa.Integer(), nullable=False),
        sa.Column("not_delivered", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_stats_domain_message", "push_message_stats", ["domain", "message_id"])


def downgrade() -> None:
    op.drop_index("ix_stats_domain_message", table_name="push_message_stats")
    op.drop_table("push_message_stats")
    op.drop_index("ix_history_device_token", table_name="push_history_events")
    op.drop_index("ix_history_message_id", table_name="push_history_events")
    op.drop_table("push_history_events")
    op.drop_table("push_messages")
    op.drop_index("ix_push_contact_email_hash", table_name="push_contacts")
    op.drop_index("ix_push_contact_domain", table_name="push_contacts")
    op.drop_table("push_contacts")
