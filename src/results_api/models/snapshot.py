"""Versioned results snapshot ORM models.

A Snapshot owns full copies of its districts, contests, and candidates.
Nothing is shared or deduplicated across snapshots, so a point-in-time
read never joins outside one snapshot. Rows are append-only.
"""

import uuid
from datetime import datetime

from sqlalchemy import (
    BigInteger,
    DateTime,
    Double,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from results_api.models.base import Base, UUIDMixin


class Snapshot(Base, UUIDMixin):
    """One atomically written capture of all contest results."""

    __tablename__ = "snapshots"

    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    total_votes: Mapped[int] = mapped_column(BigInteger, nullable=False)

    # Relationships
    contests: Mapped[list["ContestRecord"]] = relationship(
        back_populates="snapshot",
        order_by="ContestRecord.position",
    )

    __table_args__ = (Index("idx_snapshots_timestamp", "timestamp"),)


class DistrictRecord(Base, UUIDMixin):
    """District turnout as published alongside a contest in one snapshot."""

    __tablename__ = "snapshot_districts"

    snapshot_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("snapshots.id"),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    percent_turnout: Mapped[float] = mapped_column(Double, nullable=False)
    registered_voters: Mapped[int] = mapped_column(Integer, nullable=False)
    ballots_counted: Mapped[int] = mapped_column(Integer, nullable=False)
    district_type: Mapped[str] = mapped_column(Text, nullable=False)
    district_type_subheading: Mapped[str] = mapped_column(Text, nullable=False)

    __table_args__ = (Index("idx_snapshot_districts_snapshot_id", "snapshot_id"),)


class ContestRecord(Base, UUIDMixin):
    """A contest within one snapshot, correlated across snapshots by ``natural_id``."""

    __tablename__ = "snapshot_contests"

    snapshot_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("snapshots.id"),
        nullable=False,
    )
    district_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("snapshot_districts.id"),
        nullable=False,
    )
    natural_id: Mapped[int] = mapped_column(Integer, nullable=False)
    ballot_title: Mapped[str] = mapped_column(Text, nullable=False)
    sort_seq: Mapped[int | None] = mapped_column(Integer, nullable=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False)

    # Relationships
    snapshot: Mapped["Snapshot"] = relationship(back_populates="contests")
    district: Mapped["DistrictRecord"] = relationship()
    candidates: Mapped[list["CandidateRecord"]] = relationship(
        back_populates="contest",
        order_by="CandidateRecord.position",
    )

    __table_args__ = (
        UniqueConstraint("snapshot_id", "natural_id", name="uq_snapshot_contests_natural_id"),
        Index("idx_snapshot_contests_natural_id", "natural_id"),
    )


class CandidateRecord(Base, UUIDMixin):
    """One candidate's result in one contest of one snapshot."""

    __tablename__ = "snapshot_candidates"

    snapshot_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("snapshots.id"),
        nullable=False,
    )
    contest_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("snapshot_contests.id"),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    percentage: Mapped[float] = mapped_column(Double, nullable=False)
    votes: Mapped[int] = mapped_column(Integer, nullable=False)
    party_preference: Mapped[str] = mapped_column(String(20), nullable=False)
    sort_seq: Mapped[int | None] = mapped_column(Integer, nullable=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False)

    # Relationships
    contest: Mapped["ContestRecord"] = relationship(back_populates="candidates")

    __table_args__ = (
        Index("idx_snapshot_candidates_contest_id", "contest_id"),
        Index("idx_snapshot_candidates_snapshot_id", "snapshot_id"),
    )
