"""Group flat result rows into District -> Contest -> Candidate trees.

Grouping is keyed by the contest's natural id and relies only on
first-seen insertion order, so a fixed input ordering always produces the
same output.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field

from loguru import logger

from results_api.lib.results_feed.parser import PartyPreference, ResultRecord


@dataclass(frozen=True)
class DistrictData:
    """District attributes attached to a contest."""

    name: str
    percent_turnout: float
    registered_voters: int
    ballots_counted: int
    district_type: str
    district_type_subheading: str


@dataclass(frozen=True)
class CandidateData:
    """One candidate's (or ballot response's) result."""

    name: str
    percentage: float
    votes: int
    party_preference: PartyPreference
    sort_seq: int | None = None


@dataclass
class ContestTree:
    """A contest with its district and candidates, ready for persistence."""

    natural_id: int
    ballot_title: str
    district: DistrictData
    candidates: list[CandidateData] = field(default_factory=list)
    sort_seq: int | None = None


def _district_from_record(record: ResultRecord) -> DistrictData:
    return DistrictData(
        name=record.district_name,
        percent_turnout=record.percent_turnout,
        registered_voters=record.registered_voters,
        ballots_counted=record.ballots_counted,
        district_type=record.district_type,
        district_type_subheading=record.district_type_subheading,
    )


def _candidate_from_record(record: ResultRecord) -> CandidateData:
    return CandidateData(
        name=record.candidate_name,
        percentage=record.percent_of_votes,
        votes=record.votes,
        party_preference=record.party_preference,
        sort_seq=record.candidate_sort_seq,
    )


def normalize_records(records: Iterable[ResultRecord]) -> list[ContestTree]:
    """Build one ContestTree per distinct contest natural id.

    The district (and ballot title) come from the first row seen for a
    contest; later rows for the same contest only contribute candidates.

    Args:
        records: Validated rows in feed order.

    Returns:
        Contest trees in order of first appearance.
    """
    contests: dict[int, ContestTree] = {}
    row_count = 0

    for record in records:
        row_count += 1
        contest = contests.get(record.contest_id)
        if contest is None:
            contest = ContestTree(
                natural_id=record.contest_id,
                ballot_title=record.ballot_title,
                district=_district_from_record(record),
                sort_seq=record.contest_sort_seq,
            )
            contests[record.contest_id] = contest
        contest.candidates.append(_candidate_from_record(record))

    logger.debug("Normalized {} rows into {} contests", row_count, len(contests))
    return list(contests.values())

