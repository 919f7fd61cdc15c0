"""Pydantic v2 views of stored results snapshots.

``SnapshotView`` is the read model returned by the snapshot store, held
(as JSON) by the latest-snapshot cache, and served by the API.
"""

import uuid
from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from results_api.lib.results_feed.parser import PartyPreference


class CandidateView(BaseModel):
    """One candidate's result within a contest."""

    model_config = ConfigDict(from_attributes=True)

    name: str
    percentage: float
    votes: int
    party_preference: PartyPreference
    sort_seq: int | None = None


class DistrictView(BaseModel):
    """District turnout attached to a contest."""

    model_config = ConfigDict(from_attributes=True)

    name: str
    percent_turnout: float
    registered_voters: int
    ballots_counted: int
    district_type: str
    district_type_subheading: str


class ContestView(BaseModel):
    """A contest with its district and candidates."""

    model_config = ConfigDict(from_attributes=True)

    natural_id: int = Field(description="Externally assigned contest id, stable across snapshots")
    ballot_title: str
    sort_seq: int | None = None
    district: DistrictView
    candidates: list[CandidateView] = Field(default_factory=list)

    @property
    def total_votes(self) -> int:
        """Votes cast across all candidates in this contest."""
        return sum(c.votes for c in self.candidates)

    def vote_share(self, candidate: CandidateView) -> float:
        """Percentage of this contest's votes won by ``candidate``, to two decimals."""
        total = self.total_votes
        if total == 0:
            return 0.0
        return round(candidate.votes * 100 / total, 2)

    def ranked_candidates(self) -> list[CandidateView]:
        """Candidates ordered by published percentage, highest first."""
        return sorted(self.candidates, key=lambda c: c.percentage, reverse=True)


class SnapshotView(BaseModel):
    """A full snapshot: metadata plus every contest tree."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    timestamp: datetime
    total_votes: int
    contests: list[ContestView] = Field(default_factory=list)

    @field_validator("timestamp")
    @classmethod
    def _assume_utc(cls, v: datetime) -> datetime:
        # SQLite hands back naive datetimes; snapshots are always written in UTC
        return v if v.tzinfo is not None else v.replace(tzinfo=UTC)

    def contest(self, natural_id: int) -> ContestView | None:
        """Return the contest with ``natural_id``, or None."""
        for contest in self.contests:
            if contest.natural_id == natural_id:
                return contest
        return None


class BallotTitleGroup(BaseModel):
    """Contests sharing one ballot title."""

    ballot_title: str
    contests: list[ContestView]


def group_by_ballot_title(snapshot: SnapshotView) -> list[BallotTitleGroup]:
    """Group a snapshot's contests by ballot title, in first-seen order."""
    grouped: dict[str, list[ContestView]] = {}
    for contest in snapshot.contests:
        grouped.setdefault(contest.ballot_title, []).append(contest)
    return [BallotTitleGroup(ballot_title=title, contests=contests) for title, contests in grouped.items()]
