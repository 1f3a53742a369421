"""create publishing tables

Revision ID: 0001
Revises:
Create Date: 2026-10-18
"""

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def _timestamp(name: str) -> sa.Column:
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        server_default=sa.text("now()"),
        nullable=False,
    )


def upgrade() -> None:
    op.create_table(
        "campaigns",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("user_id", sa.Text(), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("goal", sa.Text(), nullable=True),
        sa.Column("daily_budget", sa.Numeric(), nullable=True),
        sa.Column("currency", sa.Text(), nullable=False, server_default="USD"),
        sa.Column(
            "location_targeting",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column("remote_campaign_id", sa.Text(), nullable=True),
        sa.Column("remote_adset_id", sa.Text(), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
    )

    op.create_table(
        "meta_connections",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("campaign_id", sa.Uuid(as_uuid=True), nullable=False, unique=True),
        sa.Column("access_token", sa.Text(), nullable=True),
        sa.Column("token_expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("selected_ad_account_id", sa.Text(), nullable=True),
        sa.Column("selected_page_id", sa.Text(), nullable=True),
        sa.Column("selected_instagram_id", sa.Text(), nullable=True),
        sa.Column(
            "payment_connected", sa.Boolean(), nullable=False, server_default=sa.false()
        ),
        sa.Column("status", sa.Text(), nullable=False, server_default="active"),
        _timestamp("created_at"),
        sa.ForeignKeyConstraint(["campaign_id"], ["campaigns.id"], ondelete="CASCADE"),
    )

    op.create_table(
        "ads",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("campaign_id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column("name", sa.Text(), nullable=False, server_default=""),
        sa.Column("status", sa.Text(), nullable=False, server_default="draft"),
        sa.Column("remote_ad_id", sa.Text(), nullable=True),
        sa.Column("remote_effective_status", sa.Text(), nullable=True),
        sa.Column(
            "creative_data",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column(
            "copy_data",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column(
            "destination_data",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejected_at", sa.DateTime(timezone=True), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.ForeignKeyConstraint(["campaign_id"], ["campaigns.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_ads_campaign", "ads", ["campaign_id"])
    op.create_index("ix_ads_remote_ad_id", "ads", ["remote_ad_id"], unique=True)

    op.create_table(
        "ad_status_transitions",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("ad_id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column("from_status", sa.Text(), nullable=True),
        sa.Column("to_status", sa.Text(), nullable=False),
        sa.Column("triggered_by", sa.Text(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column(
            "metadata_json",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        _timestamp("created_at"),
        sa.ForeignKeyConstraint(["ad_id"], ["ads.id"], ondelete="CASCADE"),
    )
    op.create_index(
        "ix_ad_status_transitions_ad_created",
        "ad_status_transitions",
        ["ad_id", "created_at"],
    )


def downgrade() -> None:
    op.drop_index("ix_ad_status_transitions_ad_created", table_name="ad_status_transitions")
    op.drop_table("ad_status_transitions")
    op.drop_index("ix_ads_remote_ad_id", table_name="ads")
    op.drop_index("ix_ads_campaign", table_name="ads")
    op.drop_table("ads")
    op.drop_table("meta_connections")
    op.drop_table("campaigns")
