"""
Storage layer for pastes.

Two interchangeable backends implement the same contract:
- SQLitePasteStorage: embedded single-file store (local development, single host)
- RedisPasteStorage: networked store, selected when REDIS_URL is configured

Both handle creation, lookup, atomic view counting and health checks.
"""
import logging
import secrets
import sqlite3
import time
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import replace
from pathlib import Path
from typing import Callable, Dict, Iterator, Optional

from redis import Redis
from redis.exceptions import RedisError

from pastebin.availability import is_available
from pastebin.config import Settings
from pastebin.exceptions import StorageUnavailableError
from pastebin.models import Paste

logger = logging.getLogger(__name__)

# 16 random bytes -> 22 URL-safe characters
PASTE_ID_BYTES = 16
MAX_ID_ATTEMPTS = 3
HEALTH_PROBE_ID = "healthcheck"
SQLITE_TIMEOUT_SECONDS = 5.0

SCHEMA = """
CREATE TABLE IF NOT EXISTS pastes (
    id TEXT PRIMARY KEY,
    content TEXT NOT NULL,
    created_at INTEGER NOT NULL,
    ttl_seconds INTEGER,
    max_views INTEGER,
    current_views INTEGER NOT NULL DEFAULT 0
)
"""


def current_time_ms() -> int:
    """Wall-clock time in milliseconds since epoch."""
    return time.time_ns() // 1_000_000


def generate_paste_id() -> str:
    """Unguessable, URL-safe paste identifier."""
    return secrets.token_urlsafe(PASTE_ID_BYTES)


class PasteStorage(ABC):
    """
    Contract shared by every paste backend.

    Every operation initializes the backend lazily on first use, so calling
    ``initialize()`` up front is optional but lets startup fail fast.
    """

    backend_name = "abstract"

    def __init__(self, clock: Callable[[], int] = current_time_ms):
        self.clock = clock
        self._initialized = False

    def initialize(self) -> None:
        """Create the underlying structure if needed. Safe to call repeatedly."""
        if self._initialized:
            return
        self._initialize()
        self._initialized = True
        logger.info(f"{self.backend_name} storage initialized")

    @abstractmethod
    def _initialize(self) -> None:
        ...

    @abstractmethod
    def create(
        self,
        content: str,
        ttl_seconds: Optional[int] = None,
        max_views: Optional[int] = None,
    ) -> str:
        """Persist a new paste with zero views and return its identifier."""

    @abstractmethod
    def get(self, paste_id: str) -> Optional[Paste]:
        """Return the current record, or None if the identifier is unknown."""

    @abstractmethod
    def increment_views(self, paste_id: str) -> bool:
        """Atomically add one view. Returns False if the paste does not exist."""

    @abstractmethod
    def increment_views_if_available(self, paste_id: str, now_ms: int) -> Optional[Paste]:
        """
        Atomically add one view only while the paste is still available at ``now_ms``.

        Returns:
            The record after the increment, or None if the paste is missing,
            expired or out of views
        """

    def ping(self) -> bool:
        """Perform a trivial read; raises StorageUnavailableError when unreachable."""
        self.get(HEALTH_PROBE_ID)
        return True

    def close(self) -> None:
        """Release backend resources."""


class SQLitePasteStorage(PasteStorage):
    """Embedded backend keeping every paste in one SQLite file."""

    backend_name = "sqlite"

    def __init__(self, db_path, clock: Callable[[], int] = current_time_ms):
        super().__init__(clock)
        self.db_path = str(db_path)

    def _initialize(self) -> None:
        try:
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(self.db_path, timeout=SQLITE_TIMEOUT_SECONDS)
            try:
                with conn:
                    conn.execute(SCHEMA)
            finally:
                conn.close()
        except (sqlite3.Error, OSError) as e:
            logger.error(f"Could not initialize SQLite database at {self.db_path}: {e}")
            raise StorageUnavailableError(f"SQLite database unavailable: {e}") from e

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        """Open a short-lived connection; commits on success, rolls back on error."""
        self.initialize()
        try:
            conn = sqlite3.connect(self.db_path, timeout=SQLITE_TIMEOUT_SECONDS)
        except sqlite3.Error as e:
            logger.error(f"Could not open SQLite database at {self.db_path}: {e}")
            raise StorageUnavailableError(f"SQLite database unavailable: {e}") from e
        conn.row_factory = sqlite3.Row
        try:
            with conn:
                yield conn
        except sqlite3.Error as e:
            logger.error(f"SQLite error on {self.db_path}: {e}")
            raise StorageUnavailableError(f"SQLite operation failed: {e}") from e
        finally:
            conn.close()

    @staticmethod
    def _row_to_paste(row: sqlite3.Row) -> Paste:
        return Paste(
            id=row["id"],
            content=row["content"],
            created_at=row["created_at"],
            ttl_seconds=row["ttl_seconds"],
            max_views=row["max_views"],
            current_views=row["current_views"],
        )

    def create(
        self,
        content: str,
        ttl_seconds: Optional[int] = None,
        max_views: Optional[int] = None,
    ) -> str:
        for _ in range(MAX_ID_ATTEMPTS):
            paste_id = generate_paste_id()
            with self._connection() as conn:
                try:
                    conn.execute(
                        """
                        INSERT INTO pastes (id, content, created_at, ttl_seconds, max_views, current_views)
                        VALUES (?, ?, ?, ?, ?, 0)
                        """,
                        (paste_id, content, self.clock(), ttl_seconds, max_views),
                    )
                except sqlite3.IntegrityError:
                    logger.warning(f"Paste id collision on {paste_id}, retrying")
                    continue
            logger.info(f"Paste {paste_id} saved successfully")
            return paste_id
        raise StorageUnavailableError("Could not allocate a unique paste id")

    def get(self, paste_id: str) -> Optional[Paste]:
        with self._connection() as conn:
            row = conn.execute("SELECT * FROM pastes WHERE id = ?", (paste_id,)).fetchone()
        return self._row_to_paste(row) if row else None

    def increment_views(self, paste_id: str) -> bool:
        with self._connection() as conn:
            cursor = conn.execute(
                "UPDATE pastes SET current_views = current_views + 1 WHERE id = ?",
                (paste_id,),
            )
        return cursor.rowcount > 0

    def increment_views_if_available(self, paste_id: str, now_ms: int) -> Optional[Paste]:
        with self._connection() as conn:
            # Same rules as availability.is_available, evaluated under the write lock
            cursor = conn.execute(
                """
                UPDATE pastes SET current_views = current_views + 1
                WHERE id = ?
                  AND (max_views IS NULL OR current_views < max_views)
                  AND (ttl_seconds IS NULL OR ? < created_at + ttl_seconds * 1000)
                """,
                (paste_id, now_ms),
            )
            if cursor.rowcount == 0:
                return None
            row = conn.execute("SELECT * FROM pastes WHERE id = ?", (paste_id,)).fetchone()
        return self._row_to_paste(row)


class RedisPasteStorage(PasteStorage):
    """
    Networked backend storing each paste as a Redis hash at ``paste:{id}``.

    The client must be created with ``decode_responses=True``. Mutations run
    as WATCH/MULTI/EXEC transactions, retried by redis-py when the key
    changes underneath them.
    """

    backend_name = "redis"

    def __init__(self, client: Redis, clock: Callable[[], int] = current_time_ms):
        super().__init__(clock)
        self.redis = client

    @classmethod
    def from_url(cls, url: str, clock: Callable[[], int] = current_time_ms) -> "RedisPasteStorage":
        return cls(Redis.from_url(url, decode_responses=True), clock=clock)

    @staticmethod
    def _key(paste_id: str) -> str:
        return f"paste:{paste_id}"

    @staticmethod
    def _hash_to_paste(paste_id: str, data: Dict[str, str]) -> Paste:
        return Paste(
            id=paste_id,
            content=data["content"],
            created_at=int(data["created_at"]),
            ttl_seconds=int(data["ttl_seconds"]) if "ttl_seconds" in data else None,
            max_views=int(data["max_views"]) if "max_views" in data else None,
            current_views=int(data.get("current_views", 0)),
        )

    @contextmanager
    def _errors(self, action: str) -> Iterator[None]:
        try:
            yield
        except RedisError as e:
            logger.error(f"Redis error while {action}: {type(e).__name__}: {e}")
            raise StorageUnavailableError(f"Redis unavailable while {action}") from e

    def _initialize(self) -> None:
        with self._errors("connecting"):
            self.redis.ping()

    def create(
        self,
        content: str,
        ttl_seconds: Optional[int] = None,
        max_views: Optional[int] = None,
    ) -> str:
        self.initialize()
        for _ in range(MAX_ID_ATTEMPTS):
            paste_id = generate_paste_id()
            key = self._key(paste_id)
            paste_data = {
                "content": content,
                "created_at": str(self.clock()),
                "current_views": "0",
            }
            if ttl_seconds is not None:
                paste_data["ttl_seconds"] = str(ttl_seconds)
            if max_views is not None:
                paste_data["max_views"] = str(max_views)

            def _insert(pipe) -> bool:
                if pipe.exists(key):
                    return False
                pipe.multi()
                pipe.hset(key, mapping=paste_data)
                return True

            with self._errors(f"saving paste {paste_id}"):
                inserted = self.redis.transaction(_insert, key, value_from_callable=True)
            if inserted:
                logger.info(f"Paste {paste_id} saved successfully")
                return paste_id
            logger.warning(f"Paste id collision on {paste_id}, retrying")
        raise StorageUnavailableError("Could not allocate a unique paste id")

    def get(self, paste_id: str) -> Optional[Paste]:
        self.initialize()
        with self._errors(f"fetching paste {paste_id}"):
            data = self.redis.hgetall(self._key(paste_id))
        if not data:
            return None
        return self._hash_to_paste(paste_id, data)

    def increment_views(self, paste_id: str) -> bool:
        self.initialize()
        key = self._key(paste_id)

        def _increment(pipe) -> bool:
            # HINCRBY alone would create a missing key
            if not pipe.exists(key):
                return False
            pipe.multi()
            pipe.hincrby(key, "current_views", 1)
            return True

        with self._errors(f"incrementing views for {paste_id}"):
            return self.redis.transaction(_increment, key, value_from_callable=True)

    def increment_views_if_available(self, paste_id: str, now_ms: int) -> Optional[Paste]:
        self.initialize()
        key = self._key(paste_id)

        def _consume(pipe) -> Optional[Paste]:
            data = pipe.hgetall(key)
            if not data:
                return None
            paste = self._hash_to_paste(paste_id, data)
            if not is_available(paste, now_ms).available:
                return None
            pipe.multi()
            pipe.hincrby(key, "current_views", 1)
            return replace(paste, current_views=paste.current_views + 1)

        with self._errors(f"consuming paste {paste_id}"):
            return self.redis.transaction(_consume, key, value_from_callable=True)

    def close(self) -> None:
        with self._errors("closing connection"):
            self.redis.close()


def create_storage(settings: Settings, clock: Callable[[], int] = current_time_ms) -> PasteStorage:
    """
    Build the storage backend selected by configuration.

    A configured REDIS_URL selects Redis; otherwise pastes live in the
    SQLite file at DATABASE_PATH. No connection is made until first use.
    """
    if settings.REDIS_URL:
        logger.info("Using Redis paste storage")
        return RedisPasteStorage.from_url(settings.REDIS_URL, clock=clock)
    logger.info(f"Using SQLite paste storage at {settings.DATABASE_PATH}")
    return SQLitePasteStorage(settings.DATABASE_PATH, clock=clock)
