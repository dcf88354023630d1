"""Conversation orchestrator: retrieval-augmented chat over the knowledge base.

Architecture overview for junior developers
--------------------------------------------
One call to :meth:`ChatService.chat` handles one user message:

  1. LOAD      -- fetch the conversation (owner-checked) so its turns can
                  be sent as history.  No id means a new conversation,
                  created when the exchange is saved.
  2. CLASSIFY  -- greetings and acknowledgements skip retrieval entirely.
  3. RETRIEVE  -- embed the message, search the index.  An empty knowledge
                  base or zero hits returns a fixed "nothing found" answer
                  without calling the LLM.  An empty store costs no
                  embedding call.
  4. PROMPT    -- pick the system prompt (conversation override, then the
                  user's default, then the built-in one) and append the
                  labelled CONTEXT block.
  5. GENERATE  -- call the LLM with the history and the user's sampling
                  preferences.
  6. PERSIST   -- append the user turn (carrying the citations) and the
                  assistant turn in one transaction.

A failure in steps 3-5 raises before anything is written, so a failed
exchange never leaves half a conversation behind.

The service also owns conversation CRUD and preference lookups so the API
layer never talks to the stores directly.
"""

from __future__ import annotations

from datetime import datetime, timezone

import structlog

from lorekeeper.interfaces.conversation_store import IConversationStore
from lorekeeper.interfaces.embedding_provider import IEmbeddingProvider
from lorekeeper.interfaces.llm_provider import ILLMProvider
from lorekeeper.interfaces.preferences_store import IPreferencesStore
from lorekeeper.interfaces.question_classifier import IQuestionClassifier
from lorekeeper.models.conversation import (
    ChatReply,
    Citation,
    Conversation,
    ConversationSummary,
    ConversationTurn,
    TurnRole,
)
from lorekeeper.models.preferences import PreferencesUpdate, UserPreferences
from lorekeeper.services.citation_service import CitationFormatter
from lorekeeper.services.retrieval_service import RetrievalService
from lorekeeper.utils.errors import ConversationNotFoundError, InvalidInputError
from lorekeeper.utils.text import truncate_title

logger = structlog.get_logger(logger_name=__name__)

DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful AI assistant with access to a multi-source knowledge base "
    "including YouTube videos, articles, documents, and audio transcriptions.\n\n"
    "INSTRUCTIONS:\n"
    "1. Answer questions using ONLY the information in the provided context (if any)\n"
    "2. If the context doesn't contain the answer, say \"I don't have information "
    "about that in the knowledge base\"\n"
    "3. Cite sources naturally in your answer by mentioning the source title\n"
    "4. Be conversational and concise\n"
    "5. Do not make up information"
)

NO_RESULTS_ANSWER = (
    "I couldn't find any relevant information in your knowledge base to answer "
    "that question. Try importing more videos or asking about topics covered in "
    "your existing videos."
)

NEW_CONVERSATION_TITLE = "New conversation"


class ChatService:
    """Answers chat messages from the knowledge base and records the exchange.

    Parameters
    ----------
    embedding_provider:
        Embeds the user's message for retrieval.
    retrieval_service:
        Threshold-filtered similarity search.
    llm:
        Generates the answer.
    conversation_store, preferences_store:
        Persistence for turns and per-user sampling preferences.
    classifier:
        Decides whether a message needs retrieval.
    citation_formatter:
        Builds the context block and the returned citations.
    citation_count:
        How many of the best hits become citations.
    """

    def __init__(
        self,
        embedding_provider: IEmbeddingProvider,
        retrieval_service: RetrievalService,
        llm: ILLMProvider,
        conversation_store: IConversationStore,
        preferences_store: IPreferencesStore,
        classifier: IQuestionClassifier,
        citation_formatter: CitationFormatter,
        citation_count: int = 3,
    ) -> None:
        self._embedding_provider = embedding_provider
        self._retrieval = retrieval_service
        self._llm = llm
        self._conversations = conversation_store
        self._preferences = preferences_store
        self._classifier = classifier
        self._citations = citation_formatter
        self._citation_count = citation_count

    # ------------------------------------------------------------------
    # Chat
    # ------------------------------------------------------------------

    async def chat(
        self,
        user_id: str,
        message: str,
        conversation_id: str | None = None,
    ) -> ChatReply:
        """Answer *message* and append the exchange to the conversation.

        Raises
        ------
        InvalidInputError
            *message* is blank.
        ConversationNotFoundError
            *conversation_id* does not exist or belongs to another user.
        VectorIndexNotFoundError
            Retrieval was needed but the index is not provisioned.
        EmbeddingError, LLMError
            Embedding or generation failed; nothing is persisted.
        """
        message = message.strip()
        if not message:
            raise InvalidInputError(message="Message must not be empty.")

        conversation: Conversation | None = None
        if conversation_id is not None:
            conversation = await self._conversations.get(conversation_id, user_id)
            if conversation is None:
                raise ConversationNotFoundError()

        retrieval_performed = self._classifier.requires_retrieval(message)
        citations: list[Citation] = []
        context = ""
        context_source_ids: list[str] = []

        if retrieval_performed:
            if not await self._retrieval.has_chunks():
                logger.info("chat_empty_knowledge_base", user_id=user_id)
                return await self._save_exchange(
                    user_id, conversation, message, NO_RESULTS_ANSWER, [], [], True
                )
            query_vector = await self._embedding_provider.embed_single(message)
            hits = await self._retrieval.search(query_vector)
            if not hits:
                logger.info("chat_no_relevant_context", user_id=user_id, message=message[:80])
                return await self._save_exchange(
                    user_id, conversation, message, NO_RESULTS_ANSWER, [], [], True
                )
            context = self._citations.build_context(hits)
            citations = self._citations.build_citations(hits, self._citation_count)
            context_source_ids = list(dict.fromkeys(hit.source.id for hit in hits))

        preferences = await self._preferences.get(user_id)
        system_prompt = self._select_system_prompt(conversation, preferences)
        if context:
            system_prompt = f"{system_prompt}\n\nCONTEXT:\n{context}"

        answer = await self._llm.complete(
            system_prompt=system_prompt,
            user_message=message,
            history=conversation.history() if conversation else [],
            options=preferences.generation_options(),
        )

        return await self._save_exchange(
            user_id,
            conversation,
            message,
            answer,
            citations,
            context_source_ids,
            retrieval_performed,
        )

    async def _save_exchange(
        self,
        user_id: str,
        conversation: Conversation | None,
        message: str,
        answer: str,
        citations: list[Citation],
        context_source_ids: list[str],
        retrieval_performed: bool,
    ) -> ChatReply:
        now = datetime.now(timezone.utc)
        turns = [
            ConversationTurn(role=TurnRole.USER, content=message, timestamp=now, citations=citations),
            ConversationTurn(role=TurnRole.ASSISTANT, content=answer, timestamp=now),
        ]
        saved = await self._conversations.append_exchange(
            owner_id=user_id,
            conversation_id=conversation.id if conversation else None,
            new_title=truncate_title(message),
            turns=turns,
            context_source_ids=context_source_ids,
        )

        logger.info(
            "chat_answered",
            conversation_id=saved.id,
            retrieval_performed=retrieval_performed,
            citations=len(citations),
            turns=len(saved.turns),
        )
        return ChatReply(
            answer=answer,
            citations=citations,
            conversation_id=saved.id,
            retrieval_performed=retrieval_performed,
        )

    @staticmethod
    def _select_system_prompt(
        conversation: Conversation | None,
        preferences: UserPreferences,
    ) -> str:
        if conversation is not None and conversation.custom_prompt:
            return conversation.custom_prompt
        if preferences.default_system_prompt:
            return preferences.default_system_prompt
        return DEFAULT_SYSTEM_PROMPT

    # ------------------------------------------------------------------
    # Conversation CRUD
    # ------------------------------------------------------------------

    async def create_conversation(
        self,
        user_id: str,
        title: str | None = None,
        custom_prompt: str | None = None,
    ) -> Conversation:
        title = (title or "").strip() or NEW_CONVERSATION_TITLE
        return await self._conversations.create(
            owner_id=user_id,
            title=title,
            custom_prompt=(custom_prompt or "").strip() or None,
        )

    async def list_conversations(self, user_id: str) -> list[ConversationSummary]:
        return await self._conversations.list_for_user(user_id)

    async def get_conversation(self, user_id: str, conversation_id: str) -> Conversation:
        conversation = await self._conversations.get(conversation_id, user_id)
        if conversation is None:
            raise ConversationNotFoundError()
        return conversation

    async def update_conversation(
        self,
        user_id: str,
        conversation_id: str,
        title: str | None = None,
        custom_prompt: str | None = None,
    ) -> Conversation:
        """Rename and/or set the prompt override.

        An empty *custom_prompt* string clears the override; ``None`` leaves
        it unchanged.
        """
        if title is not None and not title.strip():
            raise InvalidInputError(message="Conversation title must not be empty.")
        clear_prompt = custom_prompt is not None and not custom_prompt.strip()

        updated = await self._conversations.update(
            conversation_id,
            user_id,
            title=title.strip() if title else None,
            custom_prompt=None if clear_prompt or custom_prompt is None else custom_prompt.strip(),
            clear_custom_prompt=clear_prompt,
        )
        if updated is None:
            raise ConversationNotFoundError()
        return updated

    async def delete_conversation(self, user_id: str, conversation_id: str) -> None:
        if not await self._conversations.delete(conversation_id, user_id):
            raise ConversationNotFoundError()

    # ------------------------------------------------------------------
    # Preferences
    # ------------------------------------------------------------------

    async def get_preferences(self, user_id: str) -> UserPreferences:
        return await self._preferences.get(user_id)

    async def update_preferences(self, user_id: str, update: PreferencesUpdate) -> UserPreferences:
        return await self._preferences.upsert(user_id, update)
