"""SQLite-backed conversation persistence.

# ─── ARCHITECTURE ROLE ───────────────────────────────────────────────
#
# Layer: Providers (concrete adapter implementing IConversationStore).
#
# Two tables:
#   conversations       one row per session (owner, title, prompt
#                       override, context-source list as JSON)
#   conversation_turns  append-only turns; (conversation_id, position)
#                       is unique, citations stored as JSON
#
# Atomic exchanges: append_exchange() opens ``BEGIN IMMEDIATE`` so the
# write lock is held from the moment it reads the conversation's current
# position and context sources until both turns are committed.  Two
# concurrent chat requests on one conversation serialize instead of
# overwriting each other's context-source list or turn positions.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import json
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import aiosqlite
import structlog

from lorekeeper.interfaces.conversation_store import IConversationStore
from lorekeeper.models.conversation import (
    Citation,
    Conversation,
    ConversationSummary,
    ConversationTurn,
    TurnRole,
)
from lorekeeper.utils.errors import ConversationNotFoundError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/lorekeeper.db")
_BUSY_TIMEOUT_SECONDS = 30.0

# ── Schema DDL ────────────────────────────────────────────────────────

_CREATE_CONVERSATIONS_TABLE = """\
CREATE TABLE IF NOT EXISTS conversations (
    id               TEXT PRIMARY KEY,
    owner_id         TEXT NOT NULL,
    title            TEXT NOT NULL,
    custom_prompt    TEXT,
    context_sources  TEXT NOT NULL DEFAULT '[]',
    last_message_at  TEXT NOT NULL,
    created_at       TEXT NOT NULL,
    updated_at       TEXT NOT NULL
);
"""

_CREATE_TURNS_TABLE = """\
CREATE TABLE IF NOT EXISTS conversation_turns (
    id               INTEGER PRIMARY KEY AUTOINCREMENT,
    conversation_id  TEXT    NOT NULL REFERENCES conversations(id),
    position         INTEGER NOT NULL,
    role             TEXT    NOT NULL,
    content          TEXT    NOT NULL,
    timestamp        TEXT    NOT NULL,
    citations        TEXT    NOT NULL DEFAULT '[]',
    UNIQUE(conversation_id, position)
);
"""

_CREATE_INDICES = [
    "CREATE INDEX IF NOT EXISTS idx_conversations_owner ON conversations(owner_id, last_message_at);",
    "CREATE INDEX IF NOT EXISTS idx_turns_conversation ON conversation_turns(conversation_id, position);",
]

# ── DML ───────────────────────────────────────────────────────────────

_INSERT_CONVERSATION = """\
INSERT INTO conversations (id, owner_id, title, custom_prompt, context_sources,
                           last_message_at, created_at, updated_at)
VALUES (?, ?, ?, ?, '[]', ?, ?, ?);
"""

_SELECT_CONVERSATION = """\
SELECT id, owner_id, title, custom_prompt, context_sources,
       last_message_at, created_at, updated_at
FROM conversations
WHERE id = ? AND owner_id = ?;
"""

_SELECT_TURNS = """\
SELECT role, content, timestamp, citations
FROM conversation_turns
WHERE conversation_id = ?
ORDER BY position ASC;
"""

_SELECT_SUMMARIES = """\
SELECT c.id, c.title, c.custom_prompt, c.last_message_at, c.created_at,
       (SELECT COUNT(*) FROM conversation_turns t WHERE t.conversation_id = c.id) AS message_count
FROM conversations c
WHERE c.owner_id = ?
ORDER BY c.last_message_at DESC, c.rowid DESC;
"""

_SELECT_NEXT_POSITION = """\
SELECT COALESCE(MAX(position) + 1, 0) FROM conversation_turns WHERE conversation_id = ?;
"""

_INSERT_TURN = """\
INSERT INTO conversation_turns (conversation_id, position, role, content, timestamp, citations)
VALUES (?, ?, ?, ?, ?, ?);
"""

_UPDATE_AFTER_EXCHANGE = """\
UPDATE conversations
SET context_sources = ?, last_message_at = ?, updated_at = ?
WHERE id = ?;
"""

_DELETE_TURNS = "DELETE FROM conversation_turns WHERE conversation_id = ?;"
_DELETE_CONVERSATION = "DELETE FROM conversations WHERE id = ? AND owner_id = ?;"


def _now() -> datetime:
    return datetime.now(timezone.utc)


class SQLiteConversationStore(IConversationStore):
    """SQLite-backed, owner-scoped conversation store."""

    def __init__(self, db_path: str | Path = _DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)

    async def initialize(self) -> None:
        """Create conversation tables and indices if they don't exist."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute("PRAGMA journal_mode=WAL;")
            await db.execute(_CREATE_CONVERSATIONS_TABLE)
            await db.execute(_CREATE_TURNS_TABLE)
            for idx_sql in _CREATE_INDICES:
                await db.execute(idx_sql)
            await db.commit()
        logger.info("conversation_db_initialized", path=str(self._db_path))

    def get_provider_name(self) -> str:
        return "sqlite_conversation"

    # ── CRUD ───────────────────────────────────────────────────────────

    async def create(
        self,
        owner_id: str,
        title: str,
        custom_prompt: str | None = None,
    ) -> Conversation:
        conversation_id = str(uuid.uuid4())
        now = _now().isoformat()
        async with aiosqlite.connect(str(self._db_path), timeout=_BUSY_TIMEOUT_SECONDS) as db:
            await db.execute(
                _INSERT_CONVERSATION,
                (conversation_id, owner_id, title, custom_prompt, now, now, now),
            )
            await db.commit()
        logger.info("conversation_created", conversation_id=conversation_id)

        created = datetime.fromisoformat(now)
        return Conversation(
            id=conversation_id,
            owner_id=owner_id,
            title=title,
            custom_prompt=custom_prompt,
            last_message_at=created,
            created_at=created,
            updated_at=created,
        )

    async def get(self, conversation_id: str, owner_id: str) -> Conversation | None:
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            return await self._load(db, conversation_id, owner_id)

    async def list_for_user(self, owner_id: str) -> list[ConversationSummary]:
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(_SELECT_SUMMARIES, (owner_id,))
            rows = await cursor.fetchall()
        return [
            ConversationSummary(
                id=row["id"],
                title=row["title"],
                custom_prompt=row["custom_prompt"],
                message_count=row["message_count"],
                last_message_at=datetime.fromisoformat(row["last_message_at"]),
                created_at=datetime.fromisoformat(row["created_at"]),
            )
            for row in rows
        ]

    async def update(
        self,
        conversation_id: str,
        owner_id: str,
        title: str | None = None,
        custom_prompt: str | None = None,
        clear_custom_prompt: bool = False,
    ) -> Conversation | None:
        assignments: list[str] = ["updated_at = ?"]
        params: list[Any] = [_now().isoformat()]
        if title is not None:
            assignments.append("title = ?")
            params.append(title)
        if clear_custom_prompt:
            assignments.append("custom_prompt = NULL")
        elif custom_prompt is not None:
            assignments.append("custom_prompt = ?")
            params.append(custom_prompt)

        async with aiosqlite.connect(str(self._db_path), timeout=_BUSY_TIMEOUT_SECONDS) as db:
            cursor = await db.execute(
                f"UPDATE conversations SET {', '.join(assignments)} WHERE id = ? AND owner_id = ?;",
                [*params, conversation_id, owner_id],
            )
            await db.commit()
            if cursor.rowcount == 0:
                return None
        return await self.get(conversation_id, owner_id)

    async def delete(self, conversation_id: str, owner_id: str) -> bool:
        async with aiosqlite.connect(str(self._db_path), timeout=_BUSY_TIMEOUT_SECONDS) as db:
            await db.execute("BEGIN IMMEDIATE;")
            cursor = await db.execute(_DELETE_CONVERSATION, (conversation_id, owner_id))
            deleted = cursor.rowcount > 0
            if deleted:
                await db.execute(_DELETE_TURNS, (conversation_id,))
            await db.commit()
        if deleted:
            logger.info("conversation_deleted", conversation_id=conversation_id)
        return deleted

    async def append_exchange(
        self,
        owner_id: str,
        conversation_id: str | None,
        new_title: str,
        turns: list[ConversationTurn],
        context_source_ids: list[str],
    ) -> Conversation:
        now = _now().isoformat()
        async with aiosqlite.connect(str(self._db_path), timeout=_BUSY_TIMEOUT_SECONDS) as db:
            db.row_factory = aiosqlite.Row
            await db.execute("BEGIN IMMEDIATE;")
            try:
                if conversation_id is None:
                    conversation_id = str(uuid.uuid4())
                    await db.execute(
                        _INSERT_CONVERSATION,
                        (conversation_id, owner_id, new_title, None, now, now, now),
                    )
                    existing_sources: list[str] = []
                else:
                    cursor = await db.execute(_SELECT_CONVERSATION, (conversation_id, owner_id))
                    row = await cursor.fetchone()
                    if row is None:
                        raise ConversationNotFoundError(provider_name=self.get_provider_name())
                    existing_sources = json.loads(row["context_sources"])

                cursor = await db.execute(_SELECT_NEXT_POSITION, (conversation_id,))
                (position,) = await cursor.fetchone()
                for offset, turn in enumerate(turns):
                    await db.execute(
                        _INSERT_TURN,
                        (
                            conversation_id,
                            position + offset,
                            turn.role.value,
                            turn.content,
                            turn.timestamp.isoformat(),
                            json.dumps([c.model_dump(mode="json") for c in turn.citations]),
                        ),
                    )

                merged_sources = list(dict.fromkeys([*existing_sources, *context_source_ids]))
                await db.execute(
                    _UPDATE_AFTER_EXCHANGE,
                    (json.dumps(merged_sources), now, now, conversation_id),
                )
                await db.commit()
            except BaseException:
                await db.rollback()
                raise

            conversation = await self._load(db, conversation_id, owner_id)

        if conversation is None:
            # Deleted by another request right after our commit.
            raise ConversationNotFoundError(provider_name=self.get_provider_name())
        logger.info(
            "conversation_exchange_saved",
            conversation_id=conversation_id,
            turns_added=len(turns),
            context_sources=len(conversation.context_sources),
        )
        return conversation

    # ── Row mapping ───────────────────────────────────────────────────

    async def _load(
        self,
        db: aiosqlite.Connection,
        conversation_id: str,
        owner_id: str,
    ) -> Conversation | None:
        cursor = await db.execute(_SELECT_CONVERSATION, (conversation_id, owner_id))
        row = await cursor.fetchone()
        if row is None:
            return None
        cursor = await db.execute(_SELECT_TURNS, (conversation_id,))
        turn_rows = await cursor.fetchall()

        return Conversation(
            id=row["id"],
            owner_id=row["owner_id"],
            title=row["title"],
            custom_prompt=row["custom_prompt"],
            turns=[self._row_to_turn(dict(t)) for t in turn_rows],
            context_sources=json.loads(row["context_sources"]),
            last_message_at=datetime.fromisoformat(row["last_message_at"]),
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )

    @staticmethod
    def _row_to_turn(row: dict[str, Any]) -> ConversationTurn:
        return ConversationTurn(
            role=TurnRole(row["role"]),
            content=row["content"],
            timestamp=datetime.fromisoformat(row["timestamp"]),
            citations=[Citation.model_validate(c) for c in json.loads(row["citations"])],
        )
