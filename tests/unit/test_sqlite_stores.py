"""Unit tests for the SQLite source, conversation and preferences stores.

Each test gets a fresh database file under ``tmp_path``.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from pathlib import Path

import pytest

from lorekeeper.models.conversation import Citation, ConversationTurn, TurnRole
from lorekeeper.models.preferences import PreferencesUpdate
from lorekeeper.models.source import NewSource, SourceKind, SourceUpdate
from lorekeeper.providers.store.sqlite_conversation_store import SQLiteConversationStore
from lorekeeper.providers.store.sqlite_preferences_store import SQLitePreferencesStore
from lorekeeper.providers.store.sqlite_source_store import SQLiteSourceStore
from lorekeeper.utils.errors import ConversationNotFoundError, DuplicateSourceError


@pytest.fixture
async def source_store(tmp_path: Path) -> SQLiteSourceStore:
    store = SQLiteSourceStore(db_path=tmp_path / "test.db")
    await store.initialize()
    return store


@pytest.fixture
async def conversation_store(tmp_path: Path) -> SQLiteConversationStore:
    store = SQLiteConversationStore(db_path=tmp_path / "test.db")
    await store.initialize()
    return store


@pytest.fixture
async def preferences_store(tmp_path: Path) -> SQLitePreferencesStore:
    store = SQLitePreferencesStore(db_path=tmp_path / "test.db")
    await store.initialize()
    return store


def _video(external_id: str = "dQw4w9WgXcQ", title: str = "A video") -> NewSource:
    return NewSource(kind=SourceKind.VIDEO, title=title, external_id=external_id, duration=120)


def _text(title: str = "An article") -> NewSource:
    return NewSource(kind=SourceKind.TEXT, title=title, content="Body text.")


def _turn(role: TurnRole, content: str, citations: list[Citation] | None = None) -> ConversationTurn:
    return ConversationTurn(
        role=role,
        content=content,
        timestamp=datetime.now(timezone.utc),
        citations=citations or [],
    )


# ======================================================================
# SQLiteSourceStore
# ======================================================================


class TestSourceStore:
    @pytest.mark.asyncio
    async def test_double_initialize_is_idempotent(self, source_store: SQLiteSourceStore) -> None:
        await source_store.initialize()
        assert await source_store.list_sources() == []

    @pytest.mark.asyncio
    async def test_create_and_get(self, source_store: SQLiteSourceStore) -> None:
        created = await source_store.create(_video())

        fetched = await source_store.get(created.id)

        assert fetched == created
        assert fetched.kind is SourceKind.VIDEO
        assert fetched.duration == 120

    @pytest.mark.asyncio
    async def test_get_missing_returns_none(self, source_store: SQLiteSourceStore) -> None:
        assert await source_store.get("nope") is None

    @pytest.mark.asyncio
    async def test_duplicate_external_id_is_rejected(self, source_store: SQLiteSourceStore) -> None:
        await source_store.create(_video())
        with pytest.raises(DuplicateSourceError):
            await source_store.create(_video(title="Same video again"))

    @pytest.mark.asyncio
    async def test_sources_without_external_id_never_collide(
        self, source_store: SQLiteSourceStore
    ) -> None:
        await source_store.create(_text("one"))
        await source_store.create(_text("two"))
        assert len(await source_store.list_sources()) == 2

    @pytest.mark.asyncio
    async def test_concurrent_duplicate_imports_insert_once(
        self, source_store: SQLiteSourceStore
    ) -> None:
        results = await asyncio.gather(
            source_store.create(_video()),
            source_store.create(_video()),
            return_exceptions=True,
        )
        assert sum(isinstance(r, DuplicateSourceError) for r in results) == 1
        assert len(await source_store.list_sources()) == 1

    @pytest.mark.asyncio
    async def test_get_by_external_id(self, source_store: SQLiteSourceStore) -> None:
        created = await source_store.create(_video())
        assert (await source_store.get_by_external_id("dQw4w9WgXcQ")).id == created.id
        assert await source_store.get_by_external_id("other") is None

    @pytest.mark.asyncio
    async def test_get_many_skips_missing_ids(self, source_store: SQLiteSourceStore) -> None:
        a = await source_store.create(_text("a"))
        b = await source_store.create(_text("b"))

        found = await source_store.get_many([a.id, "missing", b.id, a.id])

        assert set(found) == {a.id, b.id}
        assert await source_store.get_many([]) == {}

    @pytest.mark.asyncio
    async def test_list_is_newest_first_and_filterable(self, source_store: SQLiteSourceStore) -> None:
        first = await source_store.create(_text("first"))
        video = await source_store.create(_video())
        last = await source_store.create(_text("last"))

        assert [s.id for s in await source_store.list_sources()] == [last.id, video.id, first.id]
        texts = await source_store.list_sources(SourceKind.TEXT)
        assert [s.id for s in texts] == [last.id, first.id]

    @pytest.mark.asyncio
    async def test_update_title_and_clear_author(self, source_store: SQLiteSourceStore) -> None:
        created = await source_store.create(
            NewSource(kind=SourceKind.TEXT, title="Old", author="Someone")
        )

        updated = await source_store.update(created.id, SourceUpdate(title="New", author=""))

        assert updated.title == "New"
        assert updated.author is None

    @pytest.mark.asyncio
    async def test_update_missing_returns_none(self, source_store: SQLiteSourceStore) -> None:
        assert await source_store.update("nope", SourceUpdate(title="x")) is None

    @pytest.mark.asyncio
    async def test_delete_and_count(self, source_store: SQLiteSourceStore) -> None:
        video = await source_store.create(_video())
        await source_store.create(_text())
        await source_store.create(_text("another"))

        assert await source_store.count_by_kind() == {"video": 1, "text": 2}
        assert await source_store.delete(video.id) is True
        assert await source_store.delete(video.id) is False
        assert await source_store.count_by_kind() == {"text": 2}


# ======================================================================
# SQLiteConversationStore
# ======================================================================


class TestConversationStore:
    @pytest.mark.asyncio
    async def test_create_and_get(self, conversation_store: SQLiteConversationStore) -> None:
        created = await conversation_store.create("alice", "New conversation", custom_prompt="Be terse.")

        fetched = await conversation_store.get(created.id, "alice")

        assert fetched.title == "New conversation"
        assert fetched.custom_prompt == "Be terse."
        assert fetched.turns == []
        assert fetched.context_sources == []

    @pytest.mark.asyncio
    async def test_other_owner_sees_nothing(self, conversation_store: SQLiteConversationStore) -> None:
        created = await conversation_store.create("alice", "Mine")

        assert await conversation_store.get(created.id, "bob") is None
        assert await conversation_store.update(created.id, "bob", title="Stolen") is None
        assert await conversation_store.delete(created.id, "bob") is False
        assert await conversation_store.list_for_user("bob") == []

    @pytest.mark.asyncio
    async def test_append_exchange_creates_conversation(
        self, conversation_store: SQLiteConversationStore
    ) -> None:
        citation = Citation(
            source_id="src-1",
            source_type=SourceKind.VIDEO,
            title="Intro",
            snippet="Plants...",
            score=0.9,
        )
        conversation = await conversation_store.append_exchange(
            owner_id="alice",
            conversation_id=None,
            new_title="What is photosynthesis?",
            turns=[
                _turn(TurnRole.USER, "What is photosynthesis?", [citation]),
                _turn(TurnRole.ASSISTANT, "It is how plants make sugar."),
            ],
            context_source_ids=["src-1"],
        )

        assert conversation.title == "What is photosynthesis?"
        assert [t.role for t in conversation.turns] == [TurnRole.USER, TurnRole.ASSISTANT]
        assert conversation.turns[0].citations == [citation]
        assert conversation.context_sources == ["src-1"]

    @pytest.mark.asyncio
    async def test_context_sources_grow_without_duplicates(
        self, conversation_store: SQLiteConversationStore
    ) -> None:
        created = await conversation_store.create("alice", "Chat")
        for sources in (["a", "b"], ["b", "c"], []):
            conversation = await conversation_store.append_exchange(
                "alice",
                created.id,
                "ignored",
                [_turn(TurnRole.USER, "q"), _turn(TurnRole.ASSISTANT, "a")],
                sources,
            )

        assert conversation.context_sources == ["a", "b", "c"]
        assert len(conversation.turns) == 6
        assert conversation.title == "Chat"

    @pytest.mark.asyncio
    async def test_append_to_missing_conversation_raises(
        self, conversation_store: SQLiteConversationStore
    ) -> None:
        with pytest.raises(ConversationNotFoundError):
            await conversation_store.append_exchange(
                "alice", "missing", "t", [_turn(TurnRole.USER, "q")], []
            )

    @pytest.mark.asyncio
    async def test_concurrent_exchanges_keep_every_turn(
        self, conversation_store: SQLiteConversationStore
    ) -> None:
        created = await conversation_store.create("alice", "Busy")

        await asyncio.gather(
            *(
                conversation_store.append_exchange(
                    "alice",
                    created.id,
                    "t",
                    [_turn(TurnRole.USER, f"q{i}"), _turn(TurnRole.ASSISTANT, f"a{i}")],
                    [f"src-{i}"],
                )
                for i in range(5)
            )
        )

        final = await conversation_store.get(created.id, "alice")
        assert len(final.turns) == 10
        assert sorted(final.context_sources) == [f"src-{i}" for i in range(5)]

    @pytest.mark.asyncio
    async def test_list_orders_by_recent_activity(
        self, conversation_store: SQLiteConversationStore
    ) -> None:
        older = await conversation_store.create("alice", "Older")
        newer = await conversation_store.create("alice", "Newer")
        await conversation_store.append_exchange(
            "alice", older.id, "t", [_turn(TurnRole.USER, "q"), _turn(TurnRole.ASSISTANT, "a")], []
        )

        summaries = await conversation_store.list_for_user("alice")

        assert [s.id for s in summaries] == [older.id, newer.id]
        assert summaries[0].message_count == 2
        assert summaries[1].message_count == 0

    @pytest.mark.asyncio
    async def test_update_and_clear_prompt(self, conversation_store: SQLiteConversationStore) -> None:
        created = await conversation_store.create("alice", "Chat", custom_prompt="Pirate voice.")

        renamed = await conversation_store.update(created.id, "alice", title="Renamed")
        assert renamed.title == "Renamed"
        assert renamed.custom_prompt == "Pirate voice."

        cleared = await conversation_store.update(created.id, "alice", clear_custom_prompt=True)
        assert cleared.custom_prompt is None

    @pytest.mark.asyncio
    async def test_delete_removes_turns(self, conversation_store: SQLiteConversationStore) -> None:
        conversation = await conversation_store.append_exchange(
            "alice", None, "t", [_turn(TurnRole.USER, "q"), _turn(TurnRole.ASSISTANT, "a")], []
        )

        assert await conversation_store.delete(conversation.id, "alice") is True
        assert await conversation_store.get(conversation.id, "alice") is None
        assert await conversation_store.delete(conversation.id, "alice") is False


# ======================================================================
# SQLitePreferencesStore
# ======================================================================


class TestPreferencesStore:
    @pytest.mark.asyncio
    async def test_defaults_for_unknown_user(self, preferences_store: SQLitePreferencesStore) -> None:
        prefs = await preferences_store.get("alice")
        assert prefs.temperature == 0.7
        assert prefs.max_tokens == 8192
        assert prefs.model == "gpt-3.5-turbo"
        assert prefs.default_system_prompt is None

    @pytest.mark.asyncio
    async def test_configured_default_model(self, tmp_path: Path) -> None:
        store = SQLitePreferencesStore(db_path=tmp_path / "p.db", default_model="gpt-4o-mini")
        await store.initialize()
        assert (await store.get("alice")).model == "gpt-4o-mini"

    @pytest.mark.asyncio
    async def test_partial_upsert_keeps_other_fields(
        self, preferences_store: SQLitePreferencesStore
    ) -> None:
        await preferences_store.upsert("alice", PreferencesUpdate(temperature=0.2, model="gpt-4.1"))
        await preferences_store.upsert("alice", PreferencesUpdate(max_tokens=2000))

        prefs = await preferences_store.get("alice")

        assert prefs.temperature == 0.2
        assert prefs.model == "gpt-4.1"
        assert prefs.max_tokens == 2000

    @pytest.mark.asyncio
    async def test_prompt_can_be_set_and_cleared(
        self, preferences_store: SQLitePreferencesStore
    ) -> None:
        await preferences_store.upsert("alice", PreferencesUpdate(default_system_prompt="Be brief."))
        assert (await preferences_store.get("alice")).default_system_prompt == "Be brief."

        cleared = await preferences_store.upsert("alice", PreferencesUpdate(default_system_prompt=""))
        assert cleared.default_system_prompt is None
        assert (await preferences_store.get("alice")).default_system_prompt is None

    @pytest.mark.asyncio
    async def test_users_are_isolated(self, preferences_store: SQLitePreferencesStore) -> None:
        await preferences_store.upsert("alice", PreferencesUpdate(temperature=1.5))
        assert (await preferences_store.get("bob")).temperature == 0.7
