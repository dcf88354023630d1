"""LLM provider adapters.

``OpenAILLMProvider`` implements ILLMProvider (lorekeeper/interfaces/llm_provider.py)
for chat answers and source titles.  It also speaks to any OpenAI-compatible
gateway configured through OPENAI_BASE_URL.
"""

from lorekeeper.providers.llm.openai_provider import OpenAILLMProvider

__all__ = ["OpenAILLMProvider"]
