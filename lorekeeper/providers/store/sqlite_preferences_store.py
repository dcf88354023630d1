"""SQLite-backed per-user generation preferences (one row per user)."""

from __future__ import annotations

from pathlib import Path

import aiosqlite
import structlog

from lorekeeper.interfaces.preferences_store import IPreferencesStore
from lorekeeper.models.preferences import PreferencesUpdate, UserPreferences

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/lorekeeper.db")

_CREATE_PREFERENCES_TABLE = """\
CREATE TABLE IF NOT EXISTS user_preferences (
    user_id                TEXT PRIMARY KEY,
    temperature            REAL NOT NULL,
    max_tokens             INTEGER NOT NULL,
    model                  TEXT NOT NULL,
    default_system_prompt  TEXT,
    updated_at             TEXT NOT NULL
);
"""

_SELECT_PREFERENCES = """\
SELECT user_id, temperature, max_tokens, model, default_system_prompt
FROM user_preferences WHERE user_id = ?;
"""

_UPSERT_PREFERENCES = """\
INSERT INTO user_preferences (user_id, temperature, max_tokens, model, default_system_prompt, updated_at)
VALUES (?, ?, ?, ?, ?, datetime('now'))
ON CONFLICT(user_id)
DO UPDATE SET temperature = excluded.temperature,
              max_tokens = excluded.max_tokens,
              model = excluded.model,
              default_system_prompt = excluded.default_system_prompt,
              updated_at = excluded.updated_at;
"""


class SQLitePreferencesStore(IPreferencesStore):
    """Preferences table; users without a row get :class:`UserPreferences` defaults.

    Parameters
    ----------
    default_model:
        Model assigned to users who never chose one.
    """

    def __init__(
        self,
        db_path: str | Path = _DEFAULT_DB_PATH,
        default_model: str | None = None,
    ) -> None:
        self._db_path = Path(db_path)
        self._default_model = default_model

    async def initialize(self) -> None:
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute("PRAGMA journal_mode=WAL;")
            await db.execute(_CREATE_PREFERENCES_TABLE)
            await db.commit()
        logger.info("preferences_db_initialized", path=str(self._db_path))

    def get_provider_name(self) -> str:
        return "sqlite_preferences"

    async def get(self, user_id: str) -> UserPreferences:
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(_SELECT_PREFERENCES, (user_id,))
            row = await cursor.fetchone()
        if row is None:
            return self._defaults(user_id)
        return UserPreferences(**dict(row))

    async def upsert(self, user_id: str, update: PreferencesUpdate) -> UserPreferences:
        current = await self.get(user_id)
        changes = {
            key: value
            for key, value in update.model_dump(exclude_unset=True).items()
            if value is not None or key == "default_system_prompt"
        }
        # An empty prompt clears the override.
        if "default_system_prompt" in changes:
            changes["default_system_prompt"] = (changes["default_system_prompt"] or "").strip() or None
        merged = UserPreferences.model_validate({**current.model_dump(), **changes})

        async with aiosqlite.connect(str(self._db_path), timeout=30.0) as db:
            await db.execute(
                _UPSERT_PREFERENCES,
                (
                    user_id,
                    merged.temperature,
                    merged.max_tokens,
                    merged.model,
                    merged.default_system_prompt,
                ),
            )
            await db.commit()

        logger.info("preferences_saved", user_id=user_id, model=merged.model)
        return merged

    def _defaults(self, user_id: str) -> UserPreferences:
        if self._default_model:
            return UserPreferences(user_id=user_id, model=self._default_model)
        return UserPreferences(user_id=user_id)
