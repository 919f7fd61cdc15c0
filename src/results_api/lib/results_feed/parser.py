"""Results feed row parser and Pydantic validation models.

Validates flat rows from the county results CSV into ``ResultRecord``
instances. Column aliases match the published CSV headers; snake_case
field names are accepted as well so callers can build rows directly.
"""

import enum
import io
from collections.abc import Iterable, Mapping
from typing import Any

import pandas as pd
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator


class MalformedRecordError(ValueError):
    """Raised when a results row cannot be parsed into a ``ResultRecord``."""

    def __init__(self, row_number: int | None, message: str):
        location = f"row {row_number}" if row_number is not None else "results feed"
        super().__init__(f"Malformed {location}: {message}")
        self.row_number = row_number


class PartyPreference(enum.StrEnum):
    """Party a candidate prefers, as far as the free-text source tells us."""

    DEMOCRAT = "Democrat"
    REPUBLICAN = "Republican"
    NOT_AFFILIATED = "NotAffiliated"

    @classmethod
    def infer(cls, text: str | None) -> "PartyPreference":
        """Classify free text by case-insensitive substring match.

        Lossy on purpose: "Prefers Democratic Party" is a Democrat, and
        anything unrecognized (including None) is NotAffiliated.
        """
        lowered = (text or "").lower()
        if "democrat" in lowered:
            return cls.DEMOCRAT
        if "republican" in lowered:
            return cls.REPUBLICAN
        return cls.NOT_AFFILIATED


def _strip_quoted(v: Any) -> Any:
    """Trim surrounding whitespace and double quotes from string values."""
    if isinstance(v, str):
        return v.strip().strip('"').strip()
    return v


def _coerce_blank_to_none(v: Any) -> Any:
    """Coerce empty strings (pandas' missing value with NA parsing off) to None."""
    if isinstance(v, str) and not v.strip():
        return None
    return v


class ResultRecord(BaseModel):
    """One flat results row: a contest, its district, and one candidate's result."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    contest_id: int = Field(alias="GEMS Contest ID")
    contest_sort_seq: int | None = Field(default=None, alias="Contest Sort Seq")
    district_type: str = Field(alias="District Type")
    district_type_subheading: str = Field(default="", alias="District Type Subheading")
    district_name: str = Field(alias="District Name")
    ballot_title: str = Field(alias="Ballot Title")
    ballots_counted: int = Field(alias="Ballots Counted for District")
    registered_voters: int = Field(alias="Registered Voters for District")
    percent_turnout: float = Field(alias="Percent Turnout for District")
    candidate_sort_seq: int | None = Field(default=None, alias="Candidate Sort Seq")
    candidate_name: str = Field(alias="Ballot Response")
    party_preference: PartyPreference = Field(default=PartyPreference.NOT_AFFILIATED, alias="Party Preference")
    votes: int = Field(alias="Votes")
    percent_of_votes: float = Field(alias="Percent of Votes")

    @field_validator(
        "contest_id",
        "ballots_counted",
        "registered_voters",
        "votes",
        "percent_turnout",
        "percent_of_votes",
        mode="before",
    )
    @classmethod
    def _coerce_quoted_numeric(cls, v: Any) -> Any:
        return _strip_quoted(v)

    @field_validator("contest_sort_seq", "candidate_sort_seq", mode="before")
    @classmethod
    def _coerce_optional_int(cls, v: Any) -> Any:
        return _coerce_blank_to_none(_strip_quoted(v))

    @field_validator("district_type_subheading", mode="before")
    @classmethod
    def _coerce_subheading(cls, v: Any) -> Any:
        return v if v is not None else ""

    @field_validator("party_preference", mode="before")
    @classmethod
    def _infer_party(cls, v: Any) -> PartyPreference:
        if isinstance(v, PartyPreference):
            return v
        return PartyPreference.infer(_coerce_blank_to_none(v))


REQUIRED_COLUMNS: frozenset[str] = frozenset(
    field.alias
    for field in ResultRecord.model_fields.values()
    if field.is_required() and field.alias is not None
)


def parse_records(
    rows: Iterable[Mapping[str, Any]],
    *,
    skip_malformed: bool = False,
) -> list[ResultRecord]:
    """Validate raw row mappings into ``ResultRecord`` instances.

    Args:
        rows: Row mappings keyed by CSV header or field name, in feed order.
        skip_malformed: Log and drop rows that fail validation instead of
            rejecting the whole batch.

    Returns:
        Validated records in input order.

    Raises:
        MalformedRecordError: On the first invalid row, unless ``skip_malformed``.
    """
    records: list[ResultRecord] = []
    skipped = 0
    for row_number, row in enumerate(rows, start=1):
        try:
            records.append(ResultRecord.model_validate(dict(row)))
        except ValidationError as exc:
            if not skip_malformed:
                raise MalformedRecordError(row_number, str(exc)) from exc
            skipped += 1
            logger.warning("Skipping malformed results row {}: {}", row_number, exc.errors()[0]["msg"])

    if skipped:
        logger.warning("Skipped {} malformed row(s) out of {}", skipped, skipped + len(records))
    return records


def parse_results_csv(text: str, *, skip_malformed: bool = False) -> list[ResultRecord]:
    """Parse CSV text from the results feed.

    All columns are read as strings so numeric coercion happens in one
    place (the record validators).

    Args:
        text: Raw CSV body including the header row.
        skip_malformed: Passed through to :func:`parse_records`.

    Returns:
        Validated records in feed order.

    Raises:
        MalformedRecordError: If the CSV is unreadable, lacks required
            columns, or (unless skipping) contains an invalid row.
    """
    try:
        frame = pd.read_csv(io.StringIO(text), dtype=str, keep_default_na=False)
    except pd.errors.EmptyDataError as exc:
        raise MalformedRecordError(None, "CSV body is empty") from exc
    except pd.errors.ParserError as exc:
        raise MalformedRecordError(None, f"CSV could not be parsed: {exc}") from exc

    frame.columns = [str(col).lstrip("\ufeff").strip() for col in frame.columns]
    missing = REQUIRED_COLUMNS - set(frame.columns)
    if missing:
        raise MalformedRecordError(None, f"missing columns: {sorted(missing)}")

    logger.debug("Parsed results CSV: {} rows, {} columns", len(frame), len(frame.columns))
    return parse_records(frame.to_dict(orient="records"), skip_malformed=skip_malformed)
