"""Batched persistence with a bounded number of writes per commit."""

import logging
from typing import Any, List, Mapping, Sequence, Tuple

from ..exceptions import PersistenceError
from .protocols import RankingWriter

logger = logging.getLogger(__name__)

DEFAULT_BATCH_LIMIT = 500


def chunk_documents(
    documents: Sequence[Tuple[str, Mapping[str, Any]]],
    batch_limit: int = DEFAULT_BATCH_LIMIT,
) -> List[Sequence[Tuple[str, Mapping[str, Any]]]]:
    """Split (doc_id, document) pairs into chunks of at most ``batch_limit``."""
    if batch_limit <= 0:
        raise ValueError("batch_limit must be positive")
    return [documents[i : i + batch_limit] for i in range(0, len(documents), batch_limit)]


def commit_in_batches(
    writer: RankingWriter,
    collection: str,
    documents: Sequence[Tuple[str, Mapping[str, Any]]],
    batch_limit: int = DEFAULT_BATCH_LIMIT,
) -> int:
    """
    Write documents as a sequence of atomic batch commits.

    The save as a whole is not a transaction: when a batch fails, the
    batches before it stay committed. Documents are full overwrites keyed
    by id, so calling this again with the same documents is safe.

    Returns:
        Number of batches committed

    Raises:
        PersistenceError: With ``committed`` set to the number of batches
            that were written before the failure.
    """
    chunks = chunk_documents(list(documents), batch_limit)
    for committed, chunk in enumerate(chunks):
        try:
            writer.commit_batch(collection, chunk)
        except (PersistenceError, OSError) as exc:
            raise PersistenceError(
                f"Batch commit to '{collection}' failed: {exc}",
                committed=committed,
                total=len(chunks),
            ) from exc
        logger.debug("Committed batch %d/%d to %s (%d docs)", committed + 1, len(chunks), collection, len(chunk))
    return len(chunks)
