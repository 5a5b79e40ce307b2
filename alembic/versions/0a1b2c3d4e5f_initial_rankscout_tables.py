"""initial tables: website profiles, keywords, scraped pages, scrape jobs

Revision ID: 0a1b2c3d4e5f
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op
from rankscout.models.base import StringID

# revision identifiers, used by Alembic.
revision: str = "0a1b2c3d4e5f"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "website_profiles",
        sa.Column("id", StringID(), nullable=False),
        sa.Column("domain", sa.String(length=255), nullable=False),
        sa.Column("job_id", sa.String(length=255), nullable=True),
        sa.Column("last_scraped_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("business_overview", sa.Text(), nullable=True),
        sa.Column("icps", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("seed_keywords", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("lean_keywords", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("seo_validated_keyword_ids", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("relevant_keyword_ids", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "keywords",
        sa.Column("id", StringID(), nullable=False),
        sa.Column("keyword", sa.String(length=500), nullable=False),
        sa.Column("search_volume", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("difficulty", sa.String(length=20), nullable=False, server_default="UNKNOWN"),
        sa.Column("last_updated", sa.DateTime(timezone=True), nullable=True),
        sa.Column("provider", sa.String(length=50), nullable=True),
        sa.Column("raw_source", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_keywords_keyword"), "keywords", ["keyword"], unique=True)

    op.create_table(
        "scraped_pages",
        sa.Column("id", StringID(), nullable=False),
        sa.Column("website_profile_id", StringID(), nullable=False),
        sa.Column("url", sa.String(length=2000), nullable=False),
        sa.Column("type", sa.String(length=20), nullable=False),
        sa.Column("context", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["website_profile_id"], ["website_profiles.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("website_profile_id", "url", name="uq_scraped_pages_profile_url"),
    )
    op.create_index(
        op.f("ix_scraped_pages_website_profile_id"),
        "scraped_pages",
        ["website_profile_id"],
        unique=False,
    )

    op.create_table(
        "scrape_jobs",
        sa.Column("id", StringID(), nullable=False),
        sa.Column("website_profile_id", StringID(), nullable=False),
        sa.Column("domain", sa.String(length=255), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("job_id", sa.String(length=255), nullable=True),
        sa.Column("processing_started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "result_page_ids",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column("error", sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["website_profile_id"], ["website_profiles.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_scrape_jobs_website_profile_id"),
        "scrape_jobs",
        ["website_profile_id"],
        unique=False,
    )
    op.create_index(op.f("ix_scrape_jobs_job_id"), "scrape_jobs", ["job_id"], unique=False)
    op.create_index(
        "ix_scrape_jobs_status_processing_started_at",
        "scrape_jobs",
        ["status", "processing_started_at"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_scrape_jobs_status_processing_started_at", table_name="scrape_jobs")
    op.drop_index(op.f("ix_scrape_jobs_job_id"), table_name="scrape_jobs")
    op.drop_index(op.f("ix_scrape_jobs_website_profile_id"), table_name="scrape_jobs")
    op.drop_table("scrape_jobs")
    op.drop_index(op.f("ix_scraped_pages_website_profile_id"), table_name="scraped_pages")
    op.drop_table("scraped_pages")
    op.drop_index(op.f("ix_keywords_keyword"), table_name="keywords")
    op.drop_table("keywords")
    op.drop_table("website_profiles")
