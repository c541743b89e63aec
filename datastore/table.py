from __future__ import annotations
import fcntl
import json
import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from threading import Lock
from typing import Callable, Dict, Generic, Hashable, Iterator, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as ModelValidationError

from errors import ConflictError, StorageError

RowT = TypeVar("RowT", bound=BaseModel)

Predicate = Callable[[RowT], bool]

FileSignature = Tuple[int, int, int]

# Signature recorded for a persistence file that does not exist yet.
_ABSENT: FileSignature = (0, 0, 0)


class JsonTable(Generic[RowT]):
    """In-memory table with integer ids, an optional unique index and JSON persistence.

    Every operation runs under a thread lock and, for persisted tables, an
    exclusive ``flock`` on a sidecar ``.lock`` file. While both are held the
    rows are re-read from disk whenever another handle has replaced the file,
    so a uniqueness check and the insert that follows it are atomic across
    every process sharing the file. Writes go to a temporary file that is
    renamed over the table file. Rows are handed out as deep copies.
    """

    def __init__(
        self,
        name: str,
        model: Type[RowT],
        persistence_path: Optional[Path] = None,
        unique_key: Optional[Callable[[RowT], Hashable]] = None,
    ) -> None:
        self.name = name
        self.model = model
        self.persistence_path = persistence_path
        self._unique_key = unique_key
        self._rows: Dict[int, RowT] = {}
        self._index: Dict[Hashable, int] = {}
        self._next_id = 1
        self._disk_signature: Optional[FileSignature] = None
        self._lock = Lock()
        if persistence_path:
            persistence_path.parent.mkdir(parents=True, exist_ok=True)
            # Surface an unreadable file when the table is opened.
            with self._locked():
                pass

    def insert(self, row: RowT) -> RowT:
        """Store a copy of ``row`` under a fresh id and return the stored copy.

        Raises ConflictError when the unique index already holds the row's key.
        """
        with self._locked():
            key = self._unique_key(row) if self._unique_key else None
            if key is not None and key in self._index:
                raise ConflictError(
                    f"Row with key {key!r} already exists in table {self.name!r}."
                )
            stored = self._store(row)
            self._persist()
            return stored.model_copy(deep=True)

    def get_or_insert(self, row: RowT) -> tuple[RowT, bool]:
        """Return the row sharing ``row``'s unique key, inserting ``row`` if there is none."""
        if self._unique_key is None:
            raise TypeError(f"Table {self.name!r} has no unique index.")
        with self._locked():
            existing_id = self._index.get(self._unique_key(row))
            if existing_id is not None:
                return self._rows[existing_id].model_copy(deep=True), False
            stored = self._store(row)
            self._persist()
            return stored.model_copy(deep=True), True

    def get(self, row_id: int) -> Optional[RowT]:
        with self._locked():
            row = self._rows.get(row_id)
            if row is None:
                return None
            return row.model_copy(deep=True)

    def get_by_key(self, key: Hashable) -> Optional[RowT]:
        with self._locked():
            row_id = self._index.get(key)
            if row_id is None:
                return None
            return self._rows[row_id].model_copy(deep=True)

    def scan(self, predicate: Optional[Predicate] = None) -> list[RowT]:
        """Return deep copies of all rows matching ``predicate``, in id order."""

        with self._locked():
            return [
                row.model_copy(deep=True)
                for row in self._rows.values()
                if predicate is None or predicate(row)
            ]

    def delete_where(self, predicate: Predicate) -> int:
        with self._locked():
            doomed = [row_id for row_id, row in self._rows.items() if predicate(row)]
            for row_id in doomed:
                row = self._rows.pop(row_id)
                if self._unique_key is not None:
                    self._index.pop(self._unique_key(row), None)
            if doomed:
                self._persist()
            return len(doomed)

    def __len__(self) -> int:
        with self._locked():
            return len(self._rows)

    def close(self) -> None:
        """Make sure the table file exists.

        Mutations are written as they happen, so closing never writes rows
        this handle loaded earlier over rows another handle stored since.
        """
        with self._locked():
            if self._disk_signature == _ABSENT:
                self._persist()

    @contextmanager
    def _locked(self) -> Iterator[None]:
        with self._lock:
            if not self.persistence_path:
                yield
                return
            lock_path = self.persistence_path.with_name(self.persistence_path.name + ".lock")
            try:
                handle = lock_path.open("a")
            except OSError as exc:
                raise StorageError(f"Failed to lock table {self.name!r}: {exc}") from exc
            with handle:
                fcntl.flock(handle.fileno(), fcntl.LOCK_EX)
                try:
                    self._sync_from_disk()
                    yield
                finally:
                    fcntl.flock(handle.fileno(), fcntl.LOCK_UN)

    def _store(self, row: RowT) -> RowT:
        row_id = self._next_id
        self._next_id += 1
        stored = row.model_copy(update={"id": row_id}, deep=True)
        self._rows[row_id] = stored
        if self._unique_key is not None:
            self._index[self._unique_key(stored)] = row_id
        return stored

    def _signature(self) -> FileSignature:
        assert self.persistence_path is not None
        try:
            stat = self.persistence_path.stat()
        except FileNotFoundError:
            return _ABSENT
        except OSError as exc:
            raise StorageError(f"Failed to stat table {self.name!r}: {exc}") from exc
        return (stat.st_ino, stat.st_mtime_ns, stat.st_size)

    def _persist(self) -> None:
        if not self.persistence_path:
            return
        payload = {
            "next_id": self._next_id,
            "rows": {
                str(row_id): row.model_dump(mode="json") for row_id, row in self._rows.items()
            },
        }
        # Until the rename lands, memory may hold rows the file does not.
        self._disk_signature = None
        tmp_name: Optional[str] = None
        try:
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.persistence_path.name}.",
                suffix=".tmp",
                dir=self.persistence_path.parent,
            )
            with os.fdopen(fd, "w") as handle:
                handle.write(json.dumps(payload, indent=2, sort_keys=True))
            os.replace(tmp_name, self.persistence_path)
        except OSError as exc:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)
            raise StorageError(f"Failed to persist table {self.name!r}: {exc}") from exc
        self._disk_signature = self._signature()

    def _sync_from_disk(self) -> None:
        signature = self._signature()
        if signature == self._disk_signature:
            return
        self._load_from_disk()
        self._disk_signature = signature

    def _load_from_disk(self) -> None:
        rows: Dict[int, RowT] = {}
        index: Dict[Hashable, int] = {}
        data: dict = {}
        assert self.persistence_path is not None
        if self.persistence_path.exists():
            try:
                raw = self.persistence_path.read_text() or "{}"
                data = json.loads(raw)
                for row_id, payload in data.get("rows", {}).items():
                    row = self.model.model_validate(payload)
                    rows[int(row_id)] = row
                    if self._unique_key is not None:
                        index[self._unique_key(row)] = int(row_id)
            except (OSError, ValueError, AttributeError, ModelValidationError) as exc:
                raise StorageError(
                    f"Failed to load table {self.name!r} from {self.persistence_path}: {exc}"
                ) from exc

        self._rows = rows
        self._index = index
        self._next_id = max(int(data.get("next_id", 1)), max(rows, default=0) + 1)
