"""Total-votes fingerprint used to decide whether a new snapshot is needed.

Only the aggregate vote count is compared. Two different result sets
that happen to share a total are treated as unchanged; this is an
accepted approximation, not something to tighten here.
"""

from collections.abc import Iterable
from dataclasses import dataclass

from results_api.lib.results_feed.normalizer import ContestTree


@dataclass(frozen=True)
class ChangeDecision:
    """Outcome of comparing a result set against the last stored snapshot."""

    changed: bool
    total_votes: int
    previous_total: int | None


def compute_total_votes(contests: Iterable[ContestTree]) -> int:
    """Sum votes over every candidate in every contest."""
    return sum(candidate.votes for contest in contests for candidate in contest.candidates)


def detect_change(contests: Iterable[ContestTree], previous_total: int | None) -> ChangeDecision:
    """Compare the fingerprint of ``contests`` with the previous snapshot's.

    Args:
        contests: Normalized result set.
        previous_total: ``total_votes`` of the latest stored snapshot, or
            None when nothing has been stored yet.

    Returns:
        A ChangeDecision; ``changed`` is True when there is no prior
        snapshot or the totals differ.
    """
    total = compute_total_votes(contests)
    return ChangeDecision(
        changed=previous_total is None or previous_total != total,
        total_votes=total,
        previous_total=previous_total,
    )
