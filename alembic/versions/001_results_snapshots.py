"""add versioned results snapshot tables

Revision ID: 001
Revises:
Create Date: 2026-10-18

Introduces four append-only tables:
  - snapshots: one row per captured version of the results feed
  - snapshot_districts: district turnout copied into each snapshot
  - snapshot_contests: contests per snapshot, unique by (snapshot_id, natural_id)
  - snapshot_candidates: candidate results per contest
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "snapshots",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        # Change-detection fingerprint
        sa.Column("total_votes", sa.BigInteger, nullable=False),
    )
    op.create_index("idx_snapshots_timestamp", "snapshots", ["timestamp"])

    op.create_table(
        "snapshot_districts",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("snapshot_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("snapshots.id"), nullable=False),
        sa.Column("name", sa.Text, nullable=False),
        sa.Column("percent_turnout", sa.Double, nullable=False),
        sa.Column("registered_voters", sa.Integer, nullable=False),
        sa.Column("ballots_counted", sa.Integer, nullable=False),
        sa.Column("district_type", sa.Text, nullable=False),
        sa.Column("district_type_subheading", sa.Text, nullable=False),
    )
    op.create_index("idx_snapshot_districts_snapshot_id", "snapshot_districts", ["snapshot_id"])

    op.create_table(
        "snapshot_contests",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("snapshot_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("snapshots.id"), nullable=False),
        sa.Column(
            "district_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("snapshot_districts.id"),
            nullable=False,
        ),
        sa.Column("natural_id", sa.Integer, nullable=False),
        sa.Column("ballot_title", sa.Text, nullable=False),
        sa.Column("sort_seq", sa.Integer, nullable=True),
        # First-seen order within the feed
        sa.Column("position", sa.Integer, nullable=False),
        sa.UniqueConstraint("snapshot_id", "natural_id", name="uq_snapshot_contests_natural_id"),
    )
    op.create_index("idx_snapshot_contests_natural_id", "snapshot_contests", ["natural_id"])

    op.create_table(
        "snapshot_candidates",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("snapshot_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("snapshots.id"), nullable=False),
        sa.Column(
            "contest_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("snapshot_contests.id"),
            nullable=False,
        ),
        sa.Column("name", sa.Text, nullable=False),
        sa.Column("percentage", sa.Double, nullable=False),
        sa.Column("votes", sa.Integer, nullable=False),
        sa.Column("party_preference", sa.String(20), nullable=False),
        sa.Column("sort_seq", sa.Integer, nullable=True),
        sa.Column("position", sa.Integer, nullable=False),
    )
    op.create_index("idx_snapshot_candidates_contest_id", "snapshot_candidates", ["contest_id"])
    op.create_index("idx_snapshot_candidates_snapshot_id", "snapshot_candidates", ["snapshot_id"])


def downgrade() -> None:
    op.drop_index("idx_snapshot_candidates_snapshot_id", table_name="snapshot_candidates")
    op.drop_index("idx_snapshot_candidates_contest_id", table_name="snapshot_candidates")
    op.drop_table("snapshot_candidates")
    op.drop_index("idx_snapshot_contests_natural_id", table_name="snapshot_contests")
    op.drop_table("snapshot_contests")
    op.drop_index("idx_snapshot_districts_snapshot_id", table_name="snapshot_districts")
    op.drop_table("snapshot_districts")
    op.drop_index("idx_snapshots_timestamp", table_name="snapshots")
    op.drop_table("snapshots")
