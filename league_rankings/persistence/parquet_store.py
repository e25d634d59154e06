"""Parquet-directory document store used by the command line interface."""

import logging
import os
import re
from pathlib import Path
from typing import Iterable, List, Union

import polars as pl

from ..exceptions import ConcurrentRunError, PersistenceError
from .memory import ID_FIELDS, Collections, MemoryDocumentStore

logger = logging.getLogger(__name__)

STATE_COLLECTIONS = (
    Collections.RANKINGS,
    Collections.SNAPSHOTS,
    Collections.ROUNDS,
    Collections.CALCULATIONS,
)


def _lock_name(season_id: str) -> str:
    return re.sub(r"[^A-Za-z0-9_.-]", "_", season_id) + ".lock"


class ParquetDocumentStore(MemoryDocumentStore):
    """
    Document store mirrored to one parquet file per collection.

    Input collections (``seasons.parquet``, ``teams.parquet``,
    ``games.parquet``) are read once on open. Engine-owned collections
    (rankings, snapshot history, calculated rounds, progress) are
    rewritten after every commit via a temp file and atomic rename.

    Run locks are exclusive-create files under ``<directory>/.locks`` so
    two processes pointed at the same directory cannot run concurrently
    on the same season.

    Example:
        >>> store = ParquetDocumentStore("league_data/")
        >>> store.list_seasons()
    """

    def __init__(self, directory: Union[str, Path]):
        super().__init__()
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)
        self._lock_dir = self.directory / ".locks"

        for collection, id_field in ID_FIELDS.items():
            path = self._path(collection)
            if not path.exists():
                continue
            df = pl.read_parquet(path)
            if id_field not in df.columns:
                raise ValueError(f"{path} is missing required column '{id_field}'")
            docs = self._collections[collection]
            for doc in df.to_dicts():
                docs[str(doc[id_field])] = doc
            logger.debug("Loaded %d documents from %s", df.height, path)

        snapshots = self._collections[Collections.SNAPSHOTS].values()
        self._snapshot_sequence = max((int(d.get("sequence") or 0) for d in snapshots), default=0)

    def _path(self, collection: str) -> Path:
        return self.directory / f"{collection}.parquet"

    def _on_commit(self, collection: str) -> None:
        if collection in STATE_COLLECTIONS:
            self.flush(collection)

    def flush(self, collection: str) -> None:
        """Rewrite one collection's parquet file from memory."""
        path = self._path(collection)
        docs = list(self._collections[collection].values())
        if not docs:
            if path.exists():
                path.unlink()
            return
        tmp = path.with_name(path.name + ".tmp")
        try:
            pl.DataFrame(docs, infer_schema_length=None).write_parquet(tmp)
            os.replace(tmp, path)
        except (OSError, pl.exceptions.PolarsError) as exc:
            raise PersistenceError(f"Failed to write {path}: {exc}") from exc

    def acquire_run_lock(self, run_id: str, season_ids: Iterable[str]) -> None:
        season_ids = list(season_ids)
        super().acquire_run_lock(run_id, season_ids)

        self._lock_dir.mkdir(exist_ok=True)
        acquired: List[Path] = []
        for sid in season_ids:
            path = self._lock_dir / _lock_name(sid)
            try:
                fd = os.open(path, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
            except FileExistsError:
                for p in acquired:
                    p.unlink(missing_ok=True)
                super().release_run_lock(run_id, season_ids)
                holder = path.read_text().strip() or None
                raise ConcurrentRunError([sid], holder=holder) from None
            with os.fdopen(fd, "w") as fh:
                fh.write(run_id)
            acquired.append(path)

    def release_run_lock(self, run_id: str, season_ids: Iterable[str]) -> None:
        season_ids = list(season_ids)
        for sid in season_ids:
            path = self._lock_dir / _lock_name(sid)
            try:
                if path.read_text().strip() == run_id:
                    path.unlink()
            except FileNotFoundError:
                pass
        super().release_run_lock(run_id, season_ids)

    def __repr__(self) -> str:
        return f"ParquetDocumentStore({str(self.directory)!r})"
