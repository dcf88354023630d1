"""OpenAI chat-completion provider adapter.

Wraps the ``openai`` async client to implement :class:`ILLMProvider`.

Model-specific constraint handling
----------------------------------
Users pick their own model in preferences, and models differ in what they
accept: reasoning models reject any temperature other than the default,
and every model caps output tokens at its own ceiling.  Instead of a
capability table that goes stale, :meth:`OpenAILLMProvider.complete` sends
the request as configured and, when the API answers 400 naming an
offending parameter, adjusts that parameter and retries:

    temperature (unsupported_value)      →  retry with temperature=1
    max_tokens  (invalid_value)          →  retry with the ceiling from the
                                            error text ("at most N completion
                                            tokens"), else the configured
                                            per-model table, else 4096

Each parameter is adjusted at most once per call, so a request makes at
most three attempts.  Every other failure becomes :class:`LLMError`.
"""

from __future__ import annotations

import re

import openai
import structlog

from lorekeeper.config.settings import Settings
from lorekeeper.interfaces.llm_provider import ILLMProvider
from lorekeeper.models.conversation import ChatMessage
from lorekeeper.models.preferences import GenerationOptions
from lorekeeper.utils.errors import LLMError

logger = structlog.get_logger(logger_name=__name__)

EMPTY_RESPONSE_TEXT = "I couldn't generate a response."

_CEILING_RE = re.compile(r"at most (\d+) completion tokens")
_TOKEN_PARAMS = ("max_tokens", "max_completion_tokens")


class OpenAILLMProvider(ILLMProvider):
    """LLM provider backed by the OpenAI chat completions API.

    Parameters
    ----------
    settings:
        Supplies the API key, optional base URL, timeouts and the fallback
        model used when the caller passes no options.
    model_token_limits:
        Output-token ceilings by model name, consulted when the provider
        rejects ``max_tokens`` without stating its limit.
    fallback_max_tokens:
        Ceiling used when neither the error nor the table gives one.
    """

    def __init__(
        self,
        settings: Settings,
        model_token_limits: dict[str, int] | None = None,
        fallback_max_tokens: int = 4096,
    ) -> None:
        self._settings = settings
        self._api_key = settings.openai_api_key

        client_kwargs: dict = {
            "api_key": self._api_key,
            "timeout": openai.Timeout(
                settings.openai_timeout_seconds,
                connect=settings.openai_connect_timeout_seconds,
            ),
        }
        if settings.openai_base_url:
            client_kwargs["base_url"] = settings.openai_base_url

        self._client = openai.AsyncOpenAI(**client_kwargs)
        self._default_model = settings.openai_chat_model
        self._model_token_limits = dict(model_token_limits or {})
        self._fallback_max_tokens = fallback_max_tokens
        self._provider_label = "openai-compatible" if settings.openai_base_url else "openai"

    # ------------------------------------------------------------------
    # ILLMProvider implementation
    # ------------------------------------------------------------------

    async def complete(
        self,
        system_prompt: str,
        user_message: str,
        history: list[ChatMessage] | None = None,
        options: GenerationOptions | None = None,
    ) -> str:
        """Generate a reply, adjusting rejected parameters once each."""
        options = options or GenerationOptions(model=self._default_model)
        messages = self._build_messages(system_prompt, user_message, history or [])

        temperature = options.temperature
        max_tokens = options.max_tokens
        adjusted: set[str] = set()

        while True:
            try:
                response = await self._client.chat.completions.create(
                    model=options.model,
                    messages=messages,
                    temperature=temperature,
                    max_completion_tokens=max_tokens,
                )
                break
            except openai.BadRequestError as exc:
                parameter = self._offending_parameter(exc)
                if parameter is None or parameter in adjusted:
                    raise LLMError(
                        message=f"{self._provider_label} rejected the request: {exc.message}",
                        provider_name=self.get_provider_name(),
                    ) from exc
                adjusted.add(parameter)

                if parameter == "temperature":
                    temperature = 1.0
                else:
                    ceiling = self._token_ceiling(exc, options.model)
                    if ceiling >= max_tokens:
                        raise LLMError(
                            message=f"{self._provider_label} rejected max tokens: {exc.message}",
                            provider_name=self.get_provider_name(),
                        ) from exc
                    max_tokens = ceiling

                logger.warning(
                    "generation_parameter_adjusted",
                    model=options.model,
                    parameter=parameter,
                    temperature=temperature,
                    max_tokens=max_tokens,
                )
            except openai.APITimeoutError as exc:
                raise LLMError(
                    message=f"{self._provider_label} timed out after {self._settings.openai_timeout_seconds}s",
                    provider_name=self.get_provider_name(),
                ) from exc
            except openai.APIError as exc:
                raise LLMError(
                    message=f"{self._provider_label} API error: {exc}",
                    provider_name=self.get_provider_name(),
                ) from exc

        if not response.choices:
            raise LLMError(
                message=f"{self._provider_label} returned no choices",
                provider_name=self.get_provider_name(),
            )
        content = response.choices[0].message.content

        logger.info(
            "openai_completion",
            model=options.model,
            provider=self._provider_label,
            tokens=response.usage.total_tokens if response.usage else None,
            retries=len(adjusted),
        )

        if not content or not content.strip():
            logger.warning("openai_empty_completion", model=options.model)
            return EMPTY_RESPONSE_TEXT
        return content

    def get_provider_name(self) -> str:
        return self._provider_label

    def is_available(self) -> bool:
        """Return ``True`` if an API key is configured."""
        return bool(self._api_key)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _build_messages(
        system_prompt: str,
        user_message: str,
        history: list[ChatMessage],
    ) -> list[dict[str, str]]:
        messages = [{"role": "system", "content": system_prompt}]
        messages.extend({"role": turn.role.value, "content": turn.content} for turn in history)
        messages.append({"role": "user", "content": user_message})
        return messages

    @staticmethod
    def _offending_parameter(exc: openai.BadRequestError) -> str | None:
        """Map a 400 response to ``"temperature"``, ``"max_tokens"`` or ``None``."""
        param = getattr(exc, "param", None) or ""
        code = getattr(exc, "code", None) or ""
        text = str(exc.message or "")

        if param == "temperature" or (code == "unsupported_value" and "temperature" in text):
            return "temperature"
        if param in _TOKEN_PARAMS or (
            code == "invalid_value" and any(name in text for name in _TOKEN_PARAMS)
        ):
            return "max_tokens"
        if _CEILING_RE.search(text):
            return "max_tokens"
        return None

    def _token_ceiling(self, exc: openai.BadRequestError, model: str) -> int:
        match = _CEILING_RE.search(str(exc.message or ""))
        if match:
            return int(match.group(1))
        if model in self._model_token_limits:
            return self._model_token_limits[model]
        # Dated snapshots ("gpt-4o-mini-2024-07-18") use their family's limit.
        family = max(
            (name for name in self._model_token_limits if model.startswith(f"{name}-")),
            key=len,
            default=None,
        )
        if family is not None:
            return self._model_token_limits[family]
        return self._fallback_max_tokens
