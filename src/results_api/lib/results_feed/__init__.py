"""Results feed library — fetch, parse, normalize, and fingerprint county results.

Public API:
    - fetch_results_csv: Async HTTP fetch + parse of the results CSV
    - parse_results_csv / parse_records: Validate rows into ResultRecord
    - normalize_records: Group rows into ContestTree instances
    - detect_change: Compare a result set's total votes with the last snapshot
    - FetchError / MalformedRecordError: Error types
"""

from results_api.lib.results_feed.change_detector import ChangeDecision, compute_total_votes, detect_change
from results_api.lib.results_feed.fetcher import FetchError, fetch_results_csv, validate_url_domain
from results_api.lib.results_feed.normalizer import (
    CandidateData,
    ContestTree,
    DistrictData,
    normalize_records,
)
from results_api.lib.results_feed.parser import (
    MalformedRecordError,
    PartyPreference,
    ResultRecord,
    parse_records,
    parse_results_csv,
)

__all__ = [
    "CandidateData",
    "ChangeDecision",
    "ContestTree",
    "DistrictData",
    "FetchError",
    "MalformedRecordError",
    "PartyPreference",
    "ResultRecord",
    "compute_total_votes",
    "detect_change",
    "fetch_results_csv",
    "normalize_records",
    "parse_records",
    "parse_results_csv",
    "validate_url_domain",
]
