"""SQLite persistence for sources, conversations and user preferences.

All three stores may share one database file; each creates only its own
tables in ``initialize()``.
"""

from lorekeeper.providers.store.sqlite_conversation_store import SQLiteConversationStore
from lorekeeper.providers.store.sqlite_preferences_store import SQLitePreferencesStore
from lorekeeper.providers.store.sqlite_source_store import SQLiteSourceStore

__all__ = ["SQLiteConversationStore", "SQLitePreferencesStore", "SQLiteSourceStore"]
