"""SQLite-backed Source persistence.

# ─── ARCHITECTURE ROLE ───────────────────────────────────────────────
#
# Layer: Providers (concrete adapter implementing ISourceStore).
#
# Database: ``data/lorekeeper.db`` (shared with conversations and
# preferences; each store creates only its own tables).
#
# Duplicate protection: ``external_id`` carries a UNIQUE constraint.
# SQLite treats NULLs as distinct, so text/document/audio sources (no
# external id) never collide while two concurrent imports of the same
# video cannot both insert.  The ingestion pipeline's pre-check is only a
# fast path for a friendlier error; this constraint is the guarantee.
#
# Chunks are not stored here; they live in the vector index keyed by
# ``source_id``.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import aiosqlite
import structlog

from lorekeeper.interfaces.source_store import ISourceStore
from lorekeeper.models.source import NewSource, Source, SourceKind, SourceUpdate
from lorekeeper.utils.errors import DuplicateSourceError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/lorekeeper.db")
_BUSY_TIMEOUT_SECONDS = 30.0

# ── Schema DDL ────────────────────────────────────────────────────────

_CREATE_SOURCES_TABLE = """\
CREATE TABLE IF NOT EXISTS sources (
    id            TEXT    PRIMARY KEY,
    kind          TEXT    NOT NULL,
    title         TEXT    NOT NULL,
    content       TEXT,
    url           TEXT,
    external_id   TEXT    UNIQUE,
    file_name     TEXT,
    file_type     TEXT,
    thumbnail_url TEXT,
    duration      INTEGER,
    author        TEXT,
    created_at    TEXT    NOT NULL
);
"""

_CREATE_INDICES = [
    "CREATE INDEX IF NOT EXISTS idx_sources_kind ON sources(kind);",
    "CREATE INDEX IF NOT EXISTS idx_sources_created ON sources(created_at);",
]

# ── DML ───────────────────────────────────────────────────────────────

_COLUMNS = (
    "id, kind, title, content, url, external_id, file_name, file_type, "
    "thumbnail_url, duration, author, created_at"
)

_INSERT_SOURCE = f"""\
INSERT INTO sources ({_COLUMNS})
VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?);
"""

_SELECT_BY_ID = f"SELECT {_COLUMNS} FROM sources WHERE id = ?;"
_SELECT_BY_EXTERNAL_ID = f"SELECT {_COLUMNS} FROM sources WHERE external_id = ?;"
_SELECT_ALL = f"SELECT {_COLUMNS} FROM sources ORDER BY created_at DESC, rowid DESC;"
_SELECT_BY_KIND = (
    f"SELECT {_COLUMNS} FROM sources WHERE kind = ? ORDER BY created_at DESC, rowid DESC;"
)
_DELETE_SOURCE = "DELETE FROM sources WHERE id = ?;"
_COUNT_BY_KIND = "SELECT kind, COUNT(*) AS n FROM sources GROUP BY kind;"

# SQLite's default bind-parameter limit is 999.
_IN_CLAUSE_BATCH = 500


class SQLiteSourceStore(ISourceStore):
    """SQLite-backed Source table."""

    def __init__(self, db_path: str | Path = _DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)

    async def initialize(self) -> None:
        """Create the sources table and indices if they don't exist."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute("PRAGMA journal_mode=WAL;")
            await db.execute(_CREATE_SOURCES_TABLE)
            for idx_sql in _CREATE_INDICES:
                await db.execute(idx_sql)
            await db.commit()
        logger.info("source_db_initialized", path=str(self._db_path))

    def get_provider_name(self) -> str:
        return "sqlite_source"

    # ── CRUD ───────────────────────────────────────────────────────────

    async def create(self, new_source: NewSource) -> Source:
        source = Source(
            id=str(uuid.uuid4()),
            created_at=datetime.now(timezone.utc),
            **new_source.model_dump(),
        )
        try:
            async with aiosqlite.connect(str(self._db_path), timeout=_BUSY_TIMEOUT_SECONDS) as db:
                await db.execute(_INSERT_SOURCE, self._source_to_row(source))
                await db.commit()
        except aiosqlite.IntegrityError as exc:
            if source.external_id and "external_id" in str(exc):
                raise DuplicateSourceError(provider_name=self.get_provider_name()) from exc
            raise

        logger.info(
            "source_created",
            source_id=source.id,
            kind=source.kind.value,
            external_id=source.external_id,
        )
        return source

    async def get(self, source_id: str) -> Source | None:
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(_SELECT_BY_ID, (source_id,))
            row = await cursor.fetchone()
        return self._row_to_source(dict(row)) if row else None

    async def get_many(self, source_ids: list[str]) -> dict[str, Source]:
        unique_ids = list(dict.fromkeys(source_ids))
        if not unique_ids:
            return {}

        found: dict[str, Source] = {}
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            for start in range(0, len(unique_ids), _IN_CLAUSE_BATCH):
                batch = unique_ids[start : start + _IN_CLAUSE_BATCH]
                placeholders = ", ".join("?" for _ in batch)
                cursor = await db.execute(
                    f"SELECT {_COLUMNS} FROM sources WHERE id IN ({placeholders});",
                    batch,
                )
                for row in await cursor.fetchall():
                    source = self._row_to_source(dict(row))
                    found[source.id] = source
        return found

    async def get_by_external_id(self, external_id: str) -> Source | None:
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(_SELECT_BY_EXTERNAL_ID, (external_id,))
            row = await cursor.fetchone()
        return self._row_to_source(dict(row)) if row else None

    async def list_sources(self, kind: SourceKind | None = None) -> list[Source]:
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            if kind is None:
                cursor = await db.execute(_SELECT_ALL)
            else:
                cursor = await db.execute(_SELECT_BY_KIND, (kind.value,))
            rows = await cursor.fetchall()
        return [self._row_to_source(dict(row)) for row in rows]

    async def update(self, source_id: str, update: SourceUpdate) -> Source | None:
        assignments: list[str] = []
        params: list[Any] = []
        if update.title is not None:
            assignments.append("title = ?")
            params.append(update.title)
        if update.author is not None:
            assignments.append("author = ?")
            # An empty string clears the author.
            params.append(update.author or None)

        if assignments:
            async with aiosqlite.connect(str(self._db_path), timeout=_BUSY_TIMEOUT_SECONDS) as db:
                cursor = await db.execute(
                    f"UPDATE sources SET {', '.join(assignments)} WHERE id = ?;",
                    [*params, source_id],
                )
                await db.commit()
                if cursor.rowcount == 0:
                    return None
            logger.info("source_updated", source_id=source_id, fields=len(assignments))

        return await self.get(source_id)

    async def delete(self, source_id: str) -> bool:
        async with aiosqlite.connect(str(self._db_path), timeout=_BUSY_TIMEOUT_SECONDS) as db:
            cursor = await db.execute(_DELETE_SOURCE, (source_id,))
            await db.commit()
            deleted = cursor.rowcount > 0
        if deleted:
            logger.info("source_deleted", source_id=source_id)
        return deleted

    async def count_by_kind(self) -> dict[str, int]:
        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute(_COUNT_BY_KIND)
            rows = await cursor.fetchall()
        return {kind: count for kind, count in rows}

    # ── Row mapping ───────────────────────────────────────────────────

    @staticmethod
    def _source_to_row(source: Source) -> tuple:
        return (
            source.id,
            source.kind.value,
            source.title,
            source.content,
            source.url,
            source.external_id,
            source.file_name,
            source.file_type,
            source.thumbnail_url,
            source.duration,
            source.author,
            source.created_at.isoformat(),
        )

    @staticmethod
    def _row_to_source(row: dict[str, Any]) -> Source:
        return Source(
            id=row["id"],
            kind=SourceKind(row["kind"]),
            title=row["title"],
            content=row["content"],
            url=row["url"],
            external_id=row["external_id"],
            file_name=row["file_name"],
            file_type=row["file_type"],
            thumbnail_url=row["thumbnail_url"],
            duration=row["duration"],
            author=row["author"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )
