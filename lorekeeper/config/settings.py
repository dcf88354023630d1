"""Application settings loaded from environment variables via pydantic-settings.

# ─── HOW SETTINGS WORK (Junior Developer Guide) ───────────────────────
#
# This class uses pydantic-settings to read configuration from TWO
# sources (in priority order):
#
#   1. **Environment variables** - e.g., OPENAI_API_KEY=sk-abc123
#   2. **.env file** - key=value lines in the project root .env file
#
# Field ``openai_api_key`` maps to env var ``OPENAI_API_KEY``.
#
# Deployment-specific values (keys, paths, model names) live here.
# Tuning knobs that rarely differ between environments (chunk sizes,
# retrieval thresholds, upload caps) live in config/config.yaml.
# ──────────────────────────────────────────────────────────────────────
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Lorekeeper application settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # === OpenAI ===
    openai_api_key: str = ""
    openai_base_url: str = ""  # OpenAI-compatible gateway, empty = api.openai.com
    openai_embedding_model: str = "text-embedding-3-small"
    embedding_dimensions: int = 1536
    openai_chat_model: str = "gpt-3.5-turbo"  # used when a user has no saved model
    openai_title_model: str = "gpt-4o-mini"
    openai_timeout_seconds: float = 25.0
    openai_connect_timeout_seconds: float = 5.0
    whisper_model: str = "whisper-1"

    # === Vector index ===
    chromadb_persist_dir: str = "./data/chromadb"
    vector_index_name: str = "vector_index"
    auto_provision_index: bool = True

    # === Persistence ===
    database_path: str = "data/lorekeeper.db"
    upload_dir: str = "data/uploads"

    # === Users ===
    # Identity comes from an upstream gateway via the X-User-Id header;
    # requests without one act as this user.
    default_user_id: str = "local"

    # === App Config ===
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    app_env: str = "development"
    log_level: str = "INFO"
    cors_origins: str = "*"  # comma-separated

    def get_cors_origins(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]
