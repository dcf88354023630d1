"""Abstract base class for per-user generation preferences."""

from __future__ import annotations

from abc import ABC, abstractmethod

from lorekeeper.models.preferences import PreferencesUpdate, UserPreferences


# Concrete implementation: SQLitePreferencesStore (lorekeeper/providers/store/)
class IPreferencesStore(ABC):
    @abstractmethod
    async def initialize(self) -> None:
        """Create tables if they do not exist."""

    @abstractmethod
    async def get(self, user_id: str) -> UserPreferences:
        """Return the user's preferences, or defaults when none are stored."""

    @abstractmethod
    async def upsert(self, user_id: str, update: PreferencesUpdate) -> UserPreferences:
        """Merge *update* over the current values and store the result."""
