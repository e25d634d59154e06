"""Persistence: repository protocols, document stores and ranking saves."""

from .batching import DEFAULT_BATCH_LIMIT, chunk_documents, commit_in_batches
from .documents import CalculatedRoundRecord, RankingDocument, SnapshotEntry, WeeklySnapshot
from .memory import Collections, MemoryDocumentStore
from .parquet_store import ParquetDocumentStore
from .protocols import (
    GameRepository,
    ProgressSink,
    RankingWriter,
    RosterRepository,
    RoundRecordStore,
    RunLock,
    SnapshotStore,
)
from .rankings import build_ranking_documents, compute_competition_ranks, save_rankings

__all__ = [
    "GameRepository",
    "RosterRepository",
    "RankingWriter",
    "SnapshotStore",
    "RoundRecordStore",
    "RunLock",
    "ProgressSink",
    "MemoryDocumentStore",
    "ParquetDocumentStore",
    "Collections",
    "RankingDocument",
    "SnapshotEntry",
    "WeeklySnapshot",
    "CalculatedRoundRecord",
    "DEFAULT_BATCH_LIMIT",
    "chunk_documents",
    "commit_in_batches",
    "compute_competition_ranks",
    "build_ranking_documents",
    "save_rankings",
]
