"""ORM model registry — import all models so Alembic autogenerate discovers them."""

from results_api.models.snapshot import CandidateRecord, ContestRecord, DistrictRecord, Snapshot

__all__ = [
    "CandidateRecord",
    "ContestRecord",
    "DistrictRecord",
    "Snapshot",
]
