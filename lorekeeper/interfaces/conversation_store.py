"""Abstract base class for Conversation persistence."""

from __future__ import annotations

from abc import ABC, abstractmethod

from lorekeeper.models.conversation import (
    Conversation,
    ConversationSummary,
    ConversationTurn,
)


# Concrete implementation: SQLiteConversationStore (lorekeeper/providers/store/)
class IConversationStore(ABC):
    """Contract for user-owned conversations.

    Every read and write is scoped by ``owner_id``; a conversation that
    exists but belongs to someone else behaves exactly like a missing one.
    """

    @abstractmethod
    async def initialize(self) -> None:
        """Create tables and indices if they do not exist."""

    @abstractmethod
    async def create(
        self,
        owner_id: str,
        title: str,
        custom_prompt: str | None = None,
    ) -> Conversation:
        """Create an empty conversation."""

    @abstractmethod
    async def get(self, conversation_id: str, owner_id: str) -> Conversation | None:
        """Return the conversation with all turns, or ``None``."""

    @abstractmethod
    async def list_for_user(self, owner_id: str) -> list[ConversationSummary]:
        """Return the owner's conversations, most recent activity first."""

    @abstractmethod
    async def update(
        self,
        conversation_id: str,
        owner_id: str,
        title: str | None = None,
        custom_prompt: str | None = None,
        clear_custom_prompt: bool = False,
    ) -> Conversation | None:
        """Rename and/or change the prompt override; ``None`` if missing."""

    @abstractmethod
    async def delete(self, conversation_id: str, owner_id: str) -> bool:
        """Delete a conversation; ``True`` if one was removed."""

    @abstractmethod
    async def append_exchange(
        self,
        owner_id: str,
        conversation_id: str | None,
        new_title: str,
        turns: list[ConversationTurn],
        context_source_ids: list[str],
    ) -> Conversation:
        """Atomically append turns to a conversation.

        When *conversation_id* is ``None`` a conversation titled *new_title*
        is created in the same transaction.  Both turns land or neither
        does; ``context_source_ids`` are merged into the existing set,
        keeping first-seen order.

        Raises
        ------
        lorekeeper.utils.errors.ConversationNotFoundError
            If *conversation_id* is given but missing or not owned.
        """
