"""Abstract base class for LLM (answer generation) providers.

Defines the contract for the remote chat model that writes answers and
short titles.  The orchestrator passes a system prompt, the new user
message, the prior turns of the conversation and the user's sampling
preferences; the provider returns plain text.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from lorekeeper.models.conversation import ChatMessage
from lorekeeper.models.preferences import GenerationOptions


# Concrete implementation: OpenAILLMProvider (lorekeeper/providers/llm/)
class ILLMProvider(ABC):
    """Contract for chat-completion services."""

    @abstractmethod
    async def complete(
        self,
        system_prompt: str,
        user_message: str,
        history: list[ChatMessage] | None = None,
        options: GenerationOptions | None = None,
    ) -> str:
        """Generate a reply.

        Parameters
        ----------
        system_prompt:
            Instruction message, including any retrieved context.
        user_message:
            The new user turn.
        history:
            Prior turns, oldest first, sent between the system prompt and
            the new message.
        options:
            Temperature, max output tokens and model.  ``None`` uses the
            provider's defaults.

        Returns
        -------
        str
            The model's text response.

        Raises
        ------
        lorekeeper.utils.errors.LLMError
            If the call fails for any reason other than a parameter the
            provider could adjust and retry once.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"openai"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if credentials are configured."""
