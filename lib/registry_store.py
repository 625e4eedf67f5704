"""
Registration Store - durable, deduplicated collection of registrations.

One interface, one backend chosen at startup (NIT_REGISTRY_BACKEND):

- json:   a JSON array rewritten through temp file + os.replace
- sqlite: a table with a UNIQUE normalized_identifier column

insert_if_absent is the only place uniqueness is enforced. Writers are
serialized by a per-store lock and re-check the key inside it; readers
never take that lock.
"""

import json
import logging
import os
import sqlite3
import tempfile
import threading
from abc import ABC, abstractmethod
from collections.abc import Iterable, Iterator
from contextlib import contextmanager, suppress
from dataclasses import dataclass
from pathlib import Path

from lib import config, paths
from lib.errors import StorageUnavailable
from lib.identifiers import normalize
from lib.models import RegisteredEntity

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InsertResult:
    """
    Result of insert_if_absent.

    inserted=True: `entity` is the record just committed.
    inserted=False: conflict, `entity` is the record that already holds the key.
    """

    entity: RegisteredEntity
    inserted: bool

    @property
    def conflict(self) -> bool:
        return not self.inserted


class RegistrationStore(ABC):
    """Base class for registration store backends."""

    backend: str = ""

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._write_lock = threading.Lock()

    @abstractmethod
    def find_by_normalized_identifier(self, key: str) -> RegisteredEntity | None:
        """Read-only lookup by uniqueness key."""

    @abstractmethod
    def insert_if_absent(self, entity: RegisteredEntity) -> InsertResult:
        """Atomically insert unless the normalized identifier is taken."""

    @abstractmethod
    def seed(self, entities: Iterable[RegisteredEntity]) -> int:
        """Merge records by normalized identifier, last write wins. Returns the number merged."""

    @abstractmethod
    def list_all(self) -> list[RegisteredEntity]:
        """All records in insertion order."""

    def find_by_identifier(self, raw: str) -> RegisteredEntity | None:
        """Normalize then look up."""
        key = normalize(raw)
        if not key:
            return None
        return self.find_by_normalized_identifier(key)

    def count(self) -> int:
        return len(self.list_all())

    @contextmanager
    def _storage_errors(self, operation: str) -> Iterator[None]:
        """Turn I/O and database failures into StorageUnavailable."""
        try:
            yield
        except (OSError, sqlite3.Error, ValueError) as e:
            logger.error(
                "Store %s failed on %s: %s",
                operation,
                self.path,
                e,
                extra=self._log_extra(operation),
            )
            raise StorageUnavailable(operation, str(e)) from e

    def _log_extra(self, operation: str, **fields) -> dict:
        """Registry fields for `extra=`; see lib.observability.logging."""
        return {"operation": operation, "backend": self.backend, **fields}

    @staticmethod
    def _require_key(entity: RegisteredEntity) -> str:
        key = entity.normalized_identifier
        if not key:
            raise ValueError("Cannot store a registration without a normalized identifier")
        return key


# ==================== JSON file backend ====================


class JsonFileStore(RegistrationStore):
    """
    Registrations kept as one JSON array on disk.

    Every commit writes the whole collection to a temp file in the same
    directory, fsyncs it, then os.replace()s it over the store file, so a
    crash leaves either the old or the new file, never a partial one.
    Readers use an in-memory snapshot that is swapped only after the
    replace succeeds. A reader that finds the file changed on disk (another
    process, e.g. the seed command, wrote it) reloads the snapshot first.
    """

    backend = "json"

    def __init__(self, path: str | Path):
        super().__init__(path)
        self._snapshot_lock = threading.Lock()
        with self._storage_errors("open"):
            self._signature = self._file_signature()
            self._records: dict[str, RegisteredEntity] = self._load()
        logger.info("JsonFileStore ready: %s (%d registrations)", self.path, len(self._records))

    def find_by_normalized_identifier(self, key: str) -> RegisteredEntity | None:
        return self._snapshot().get(key)

    def list_all(self) -> list[RegisteredEntity]:
        return list(self._snapshot().values())

    def count(self) -> int:
        return len(self._snapshot())

    def insert_if_absent(self, entity: RegisteredEntity) -> InsertResult:
        key = self._require_key(entity)
        with self._write_lock, self._storage_errors("insert_if_absent"):
            # Reload inside the lock so records written by another process
            # (e.g. the seed command) are part of the check.
            signature = self._file_signature()
            current = self._load()
            existing = current.get(key)
            if existing is not None:
                self._swap(current, signature)
                logger.warning(
                    "Registration conflict for %s",
                    key,
                    extra=self._log_extra("insert_if_absent", normalized_identifier=key),
                )
                return InsertResult(entity=existing, inserted=False)

            updated = dict(current)
            updated[key] = entity
            self._write(updated)
            self._swap(updated, self._file_signature())

        logger.debug(
            "Registered %s as %s",
            key,
            entity.id,
            extra=self._log_extra(
                "insert_if_absent", normalized_identifier=key, registration_id=entity.id
            ),
        )
        return InsertResult(entity=entity, inserted=True)

    def seed(self, entities: Iterable[RegisteredEntity]) -> int:
        batch = [(self._require_key(e), e) for e in entities]
        with self._write_lock, self._storage_errors("seed"):
            merged = self._load()
            for key, entity in batch:
                # Last write wins; an existing key keeps its position.
                merged[key] = entity
            self._write(merged)
            self._swap(merged, self._file_signature())

        logger.info(
            "Seeded %d registrations into %s",
            len(batch),
            self.path,
            extra=self._log_extra("seed", count=len(batch)),
        )
        return len(batch)

    def _file_signature(self) -> tuple[int, int, int] | None:
        """Changes whenever the file is replaced or rewritten; None when absent."""
        try:
            st = os.stat(self.path)
        except FileNotFoundError:
            return None
        return (st.st_mtime_ns, st.st_ino, st.st_size)

    def _snapshot(self) -> dict[str, RegisteredEntity]:
        """Current records, reloaded first if the file changed under us."""
        with self._storage_errors("read"):
            if self._file_signature() == self._signature:
                return self._records
            with self._snapshot_lock:
                signature = self._file_signature()
                if signature != self._signature:
                    self._records = self._load()
                    self._signature = signature
                    logger.debug(
                        "Reloaded %s after an outside write",
                        self.path,
                        extra=self._log_extra("read", count=len(self._records)),
                    )
                return self._records

    def _swap(self, records: dict[str, RegisteredEntity], signature) -> None:
        with self._snapshot_lock:
            self._records = records
            self._signature = signature

    def _load(self) -> dict[str, RegisteredEntity]:
        if not self.path.exists():
            return {}
        text = self.path.read_text(encoding="utf-8")
        try:
            rows = json.loads(text or "[]")
        except json.JSONDecodeError as e:
            raise ValueError(f"Store file is not valid JSON: {e}") from e
        if not isinstance(rows, list):
            raise ValueError("Store file must contain a JSON array")

        records: dict[str, RegisteredEntity] = {}
        for row in rows:
            try:
                entity = RegisteredEntity.from_dict(row)
            except (KeyError, TypeError) as e:
                raise ValueError(f"Malformed registration record: {e}") from e
            records[entity.normalized_identifier] = entity
        return records

    def _write(self, records: dict[str, RegisteredEntity]) -> None:
        payload = [entity.to_dict() for entity in records.values()]
        self.path.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2, ensure_ascii=False)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
        except BaseException:
            with suppress(FileNotFoundError):
                os.unlink(tmp_name)
            raise

        self._fsync_dir()

    def _fsync_dir(self) -> None:
        """Persist the rename itself. Not supported everywhere."""
        if not hasattr(os, "O_DIRECTORY"):
            return
        try:
            fd = os.open(self.path.parent, os.O_RDONLY | os.O_DIRECTORY)
        except OSError as e:
            logger.warning("Could not open %s for fsync: %s", self.path.parent, e)
            return
        try:
            os.fsync(fd)
        except OSError as e:
            logger.warning("Directory fsync failed for %s: %s", self.path.parent, e)
        finally:
            os.close(fd)


# ==================== SQLite backend ====================

SCHEMA = """
CREATE TABLE IF NOT EXISTS registrations (
    seq INTEGER PRIMARY KEY AUTOINCREMENT,
    id TEXT NOT NULL UNIQUE,
    raw_identifier TEXT NOT NULL,
    normalized_identifier TEXT NOT NULL UNIQUE,
    identification_type TEXT NOT NULL,
    name TEXT NOT NULL,
    email TEXT NOT NULL,
    phone TEXT NOT NULL,
    address TEXT NOT NULL,
    registered_at TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'active'
);
"""

COLUMNS = (
    "id",
    "raw_identifier",
    "normalized_identifier",
    "identification_type",
    "name",
    "email",
    "phone",
    "address",
    "registered_at",
    "status",
)

_SELECT = f"SELECT {', '.join(COLUMNS)} FROM registrations"  # noqa: S608
_INSERT = (
    f"INSERT INTO registrations ({', '.join(COLUMNS)}) "  # noqa: S608
    f"VALUES ({', '.join('?' for _ in COLUMNS)})"
)
_UPSERT = _INSERT + " ON CONFLICT(normalized_identifier) DO UPDATE SET " + ", ".join(
    f"{c} = excluded.{c}" for c in COLUMNS if c != "normalized_identifier"
)


class SqliteStore(RegistrationStore):
    """
    Registrations kept in SQLite.

    The UNIQUE constraint on normalized_identifier backs up the in-lock
    re-check, so a writer in another process still cannot create a duplicate.
    """

    backend = "sqlite"

    def __init__(self, path: str | Path):
        super().__init__(path)
        with self._storage_errors("open"):
            self.path.parent.mkdir(parents=True, exist_ok=True)
            conn = self._connect()
            try:
                conn.executescript(SCHEMA)
                conn.execute("PRAGMA journal_mode=WAL")
            finally:
                conn.close()
        logger.info("SqliteStore ready: %s", self.path)

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self.path), timeout=30.0, isolation_level=None)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA synchronous=FULL")
        return conn

    @contextmanager
    def _get_conn(self) -> Iterator[sqlite3.Connection]:
        """Autocommit connection for reads."""
        conn = self._connect()
        try:
            yield conn
        finally:
            conn.close()

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """Write transaction holding SQLite's RESERVED lock from the start."""
        conn = self._connect()
        try:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")
        finally:
            conn.close()

    @staticmethod
    def _row_to_entity(row: sqlite3.Row) -> RegisteredEntity:
        return RegisteredEntity.from_dict(dict(row))

    @staticmethod
    def _values(entity: RegisteredEntity) -> list:
        data = entity.to_dict()
        return [data[c] for c in COLUMNS]

    def find_by_normalized_identifier(self, key: str) -> RegisteredEntity | None:
        with self._storage_errors("find"), self._get_conn() as conn:
            row = conn.execute(f"{_SELECT} WHERE normalized_identifier = ?", [key]).fetchone()
        return self._row_to_entity(row) if row else None

    def list_all(self) -> list[RegisteredEntity]:
        with self._storage_errors("list"), self._get_conn() as conn:
            rows = conn.execute(f"{_SELECT} ORDER BY seq").fetchall()
        return [self._row_to_entity(r) for r in rows]

    def count(self) -> int:
        with self._storage_errors("count"), self._get_conn() as conn:
            return conn.execute("SELECT COUNT(*) FROM registrations").fetchone()[0]

    def insert_if_absent(self, entity: RegisteredEntity) -> InsertResult:
        key = self._require_key(entity)
        with self._write_lock, self._storage_errors("insert_if_absent"):
            with self._transaction() as conn:
                row = conn.execute(
                    f"{_SELECT} WHERE normalized_identifier = ?", [key]
                ).fetchone()
                if row is None:
                    try:
                        conn.execute(_INSERT, self._values(entity))
                    except sqlite3.IntegrityError:
                        row = conn.execute(
                            f"{_SELECT} WHERE normalized_identifier = ?", [key]
                        ).fetchone()
                        if row is None:
                            raise

        if row is not None:
            logger.warning(
                "Registration conflict for %s",
                key,
                extra=self._log_extra("insert_if_absent", normalized_identifier=key),
            )
            return InsertResult(entity=self._row_to_entity(row), inserted=False)

        logger.debug(
            "Registered %s as %s",
            key,
            entity.id,
            extra=self._log_extra(
                "insert_if_absent", normalized_identifier=key, registration_id=entity.id
            ),
        )
        return InsertResult(entity=entity, inserted=True)

    def seed(self, entities: Iterable[RegisteredEntity]) -> int:
        batch = list(entities)
        for entity in batch:
            self._require_key(entity)
        with self._write_lock, self._storage_errors("seed"):
            with self._transaction() as conn:
                conn.executemany(_UPSERT, [self._values(e) for e in batch])

        logger.info(
            "Seeded %d registrations into %s",
            len(batch),
            self.path,
            extra=self._log_extra("seed", count=len(batch)),
        )
        return len(batch)


# ==================== Factory ====================

BACKENDS: dict[str, type[RegistrationStore]] = {
    JsonFileStore.backend: JsonFileStore,
    SqliteStore.backend: SqliteStore,
}


def open_store(backend: str | None = None, path: str | Path | None = None) -> RegistrationStore:
    """Open a store for the configured (or given) backend."""
    backend = backend or config.store_backend()
    if backend not in BACKENDS:
        raise ValueError(f"Unknown store backend {backend!r}")
    return BACKENDS[backend](path or paths.store_path(backend))


_store: RegistrationStore | None = None
_store_lock = threading.Lock()


def get_store() -> RegistrationStore:
    """Get the process-wide store. All writers must share it to share its lock."""
    global _store
    if _store is None:
        with _store_lock:
            if _store is None:
                _store = open_store()
    return _store


def reset_store() -> None:
    """Forget the process-wide store so the next get_store() reopens it."""
    global _store
    with _store_lock:
        _store = None


def set_store(store: RegistrationStore) -> None:
    """Install an already-opened store as the process-wide one."""
    global _store
    with _store_lock:
        _store = store
