"""Per-user generation preferences."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 8192
DEFAULT_MODEL = "gpt-3.5-turbo"


class GenerationOptions(BaseModel):
    """Sampling parameters for one generation call."""

    model_config = ConfigDict(frozen=True)

    temperature: float = Field(default=DEFAULT_TEMPERATURE, ge=0.0, le=2.0)
    max_tokens: int = Field(default=DEFAULT_MAX_TOKENS, ge=1)
    model: str = DEFAULT_MODEL


class UserPreferences(BaseModel):
    """One row per user; a user without a row gets these defaults."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    temperature: float = Field(default=DEFAULT_TEMPERATURE, ge=0.0, le=2.0)
    max_tokens: int = Field(default=DEFAULT_MAX_TOKENS, ge=1000, le=16000)
    model: str = DEFAULT_MODEL
    default_system_prompt: str | None = None

    def generation_options(self) -> GenerationOptions:
        return GenerationOptions(
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            model=self.model,
        )


class PreferencesUpdate(BaseModel):
    """Partial update; ``None`` fields keep their stored (or default) value."""

    model_config = ConfigDict(frozen=True)

    temperature: float | None = Field(default=None, ge=0.0, le=2.0)
    max_tokens: int | None = Field(default=None, ge=1000, le=16000)
    model: str | None = Field(default=None, min_length=1)
    default_system_prompt: str | None = None
