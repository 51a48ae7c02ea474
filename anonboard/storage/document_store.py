"""File-based JSON document store.

Each collection is one JSON file under ``base_dir`` holding a list of
documents. Every document has an ``id`` and a ``_version`` that is
bumped on each successful write. Files are replaced atomically
(``os.replace`` of a temp file), so a bulk update either lands in full
or not at all.

Mutations are serialized through a single re-entrant lock. Callers that
read, compute, then write must pass ``expected_version`` to
:meth:`DocumentStore.update_one`; a concurrent writer makes that call
raise :class:`~anonboard.errors.StaleWriteError` instead of silently
overwriting.
"""

from __future__ import annotations

import copy
import json
import logging
import os
import tempfile
import threading
import uuid
from pathlib import Path
from typing import Any, Callable, Iterable, Optional

from anonboard.errors import ConflictError, StaleWriteError

logger = logging.getLogger(__name__)

Predicate = Callable[[dict], bool]


class DocumentStore:
    """JSON-file collections with conditional and bulk update primitives.

    Storage path: ``base_dir`` with one ``<collection>.json`` per
    collection.

    Parameters
    ----------
    base_dir:
        Directory for the collection files (created if missing).
    unique:
        Mapping of collection name to the fields that must be unique
        within it. Empty values are not indexed.
    """

    def __init__(
        self,
        base_dir: str | Path,
        unique: Optional[dict[str, Iterable[str]]] = None,
    ) -> None:
        self._base = Path(base_dir)
        self._base.mkdir(parents=True, exist_ok=True)
        self._unique = {name: tuple(cols) for name, cols in (unique or {}).items()}
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _path(self, collection: str) -> Path:
        return self._base / f"{collection}.json"

    def _read(self, collection: str) -> list[dict]:
        path = self._path(collection)
        if not path.exists():
            return []
        data = json.loads(path.read_text(encoding="utf-8"))
        return data if isinstance(data, list) else []

    def _write(self, collection: str, docs: list[dict]) -> None:
        fd, tmp = tempfile.mkstemp(dir=self._base, prefix=f".{collection}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(docs, fh, indent=2, default=str)
            os.replace(tmp, self._path(collection))
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise

    def _check_unique(self, collection: str, docs: list[dict], candidate: dict) -> None:
        for field in self._unique.get(collection, ()):
            value = candidate.get(field)
            if value in (None, ""):
                continue
            for other in docs:
                if other["id"] != candidate["id"] and other.get(field) == value:
                    raise ConflictError(
                        f"Duplicate value for unique field '{collection}.{field}'"
                    )

    @staticmethod
    def _index_of(docs: list[dict], doc_id: str) -> int:
        for i, d in enumerate(docs):
            if d["id"] == doc_id:
                return i
        return -1

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        with self._lock:
            for d in self._read(collection):
                if d["id"] == doc_id:
                    return d
        return None

    def find(self, collection: str, predicate: Optional[Predicate] = None) -> list[dict]:
        with self._lock:
            docs = self._read(collection)
        if predicate is None:
            return docs
        return [d for d in docs if predicate(d)]

    def find_one(self, collection: str, **fields: Any) -> Optional[dict]:
        for d in self.find(collection):
            if all(d.get(k) == v for k, v in fields.items()):
                return d
        return None

    def lookup(self, collection: str, field: str, value: Any) -> Optional[dict]:
        """Indexed lookup on a declared unique field."""
        if field not in self._unique.get(collection, ()):
            raise ValueError(f"'{collection}.{field}' is not an indexed field")
        if value in (None, ""):
            return None
        return self.find_one(collection, **{field: value})

    def count(self, collection: str, predicate: Optional[Predicate] = None) -> int:
        return len(self.find(collection, predicate))

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def insert(self, collection: str, doc: dict) -> dict:
        """Insert a document, assigning an ``id`` if it has none."""
        new = copy.deepcopy(doc)
        new.setdefault("id", uuid.uuid4().hex)
        new["_version"] = 1
        with self._lock:
            docs = self._read(collection)
            if self._index_of(docs, new["id"]) >= 0:
                raise ConflictError(f"Document '{new['id']}' already exists in {collection}")
            self._check_unique(collection, docs, new)
            docs.append(new)
            self._write(collection, docs)
        return new

    def update_one(
        self,
        collection: str,
        doc_id: str,
        changes: dict,
        *,
        expected_version: Optional[int] = None,
        where: Optional[dict] = None,
    ) -> Optional[dict]:
        """Atomically apply *changes* to one document.

        Returns the updated document, or ``None`` when the document does
        not exist or does not match *where*. Raises
        :class:`StaleWriteError` if *expected_version* is given and no
        longer current.
        """
        with self._lock:
            docs = self._read(collection)
            idx = self._index_of(docs, doc_id)
            if idx < 0:
                return None
            current = docs[idx]
            if where and not all(current.get(k) == v for k, v in where.items()):
                return None
            if expected_version is not None and current.get("_version") != expected_version:
                raise StaleWriteError(
                    f"{collection}/{doc_id} is at version {current.get('_version')}, "
                    f"expected {expected_version}"
                )
            updated = {**current, **copy.deepcopy(changes)}
            updated["id"] = current["id"]
            updated["_version"] = current.get("_version", 0) + 1
            self._check_unique(collection, docs, updated)
            docs[idx] = updated
            self._write(collection, docs)
        return updated

    def increment(self, collection: str, doc_id: str, field: str, amount: int = 1) -> Optional[dict]:
        """Atomically add *amount* to a numeric field."""
        with self._lock:
            current = self.get(collection, doc_id)
            if current is None:
                return None
            return self.update_one(
                collection, doc_id, {field: current.get(field, 0) + amount}
            )

    def update_many(self, collection: str, predicate: Predicate, changes: dict) -> int:
        """Apply *changes* to every matching document in a single write.

        Returns the number of documents whose values actually changed.
        """
        with self._lock:
            docs = self._read(collection)
            changed = 0
            for i, d in enumerate(docs):
                if not predicate(d):
                    continue
                if all(d.get(k) == v for k, v in changes.items()):
                    continue
                docs[i] = {**d, **copy.deepcopy(changes), "_version": d.get("_version", 0) + 1}
                changed += 1
            if changed:
                self._write(collection, docs)
        logger.debug("update_many on %s changed %d document(s)", collection, changed)
        return changed

    def delete(self, collection: str, doc_id: str) -> bool:
        with self._lock:
            docs = self._read(collection)
            remaining = [d for d in docs if d["id"] != doc_id]
            if len(remaining) == len(docs):
                return False
            self._write(collection, remaining)
        return True
