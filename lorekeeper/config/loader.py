"""YAML configuration loader with environment variable overrides.

# ─── CONFIGURATION HIERARCHY (Junior Developer Guide) ──────────────────
#
# Configuration is loaded in layers (later layers override earlier):
#
#   1. _DEFAULTS            - Built-in values, so a missing YAML file works
#   2. config/config.yaml   - Static defaults checked into the repo
#   3. .env / environment   - Only the default chat model, read through Settings
#
# The merged result is validated once; a bad knob stops startup with a
# ConfigurationError instead of surfacing as odd chunking or retrieval.
#
# _deep_merge does recursive dict merging:
#   base = {"retrieval": {"limit": 8}}
#   overrides = {"retrieval": {"min_score": 0.7}}
#   result = {"retrieval": {"limit": 8, "min_score": 0.7}}
# ──────────────────────────────────────────────────────────────────────
"""

import copy
from pathlib import Path

import yaml

from lorekeeper.config.settings import Settings
from lorekeeper.utils.errors import ConfigurationError

_MB = 1024 * 1024

_DEFAULTS: dict = {
    "chunking": {
        "chunk_size": 1200,
        "overlap": 200,
        "bulk_segment_chars": 500,
    },
    "retrieval": {
        "candidates": 50,
        "limit": 8,
        "min_score": 0.65,
        "citation_count": 3,
    },
    "ingestion": {
        "min_content_chars": 10,
        "title_preview_chars": 1000,
    },
    "generation": {
        "default_temperature": 0.7,
        "default_max_tokens": 8192,
        "default_model": "gpt-3.5-turbo",
        "fallback_max_tokens": 4096,
        "model_token_limits": {},
    },
    "uploads": {
        "document_max_bytes": 10 * _MB,
        "audio_max_bytes": 25 * _MB,
        "document_mime_types": [
            "application/pdf",
            "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
            "text/plain",
        ],
        "audio_mime_types": [
            "audio/mpeg",
            "audio/wav",
            "audio/mp4",
            "audio/x-m4a",
            "audio/webm",
        ],
        "audio_extensions": ["mp3", "wav", "m4a", "webm"],
    },
}


def load_config(path: str = "config/config.yaml", settings: Settings | None = None) -> dict:
    """Build the effective configuration.

    Args:
        path: YAML file layered over the built-in defaults.  A missing file
            is not an error.
        settings: Source of the default chat model.  A fresh ``Settings()``
            is read when omitted.

    Raises:
        ConfigurationError: If the YAML is not a mapping or a tuning value
            is out of range.
    """
    config = copy.deepcopy(_DEFAULTS)

    config_path = Path(path)
    if config_path.is_file():
        with config_path.open(encoding="utf-8") as handle:
            loaded = yaml.safe_load(handle)
        if loaded is not None and not isinstance(loaded, dict):
            raise ConfigurationError(message=f"{config_path} must contain a mapping at the top level.")
        _deep_merge(config, loaded or {})

    settings = settings or Settings()
    if settings.openai_chat_model:
        config["generation"]["default_model"] = settings.openai_chat_model

    _validate(config)
    return config


def _validate(config: dict) -> None:
    chunking = config["chunking"]
    if not 0 <= chunking["overlap"] < chunking["chunk_size"]:
        raise ConfigurationError(
            message=(
                f"chunking.overlap ({chunking['overlap']}) must be smaller than "
                f"chunking.chunk_size ({chunking['chunk_size']})."
            )
        )

    retrieval = config["retrieval"]
    if not 0.0 <= retrieval["min_score"] <= 1.0:
        raise ConfigurationError(message="retrieval.min_score must lie between 0 and 1.")
    if retrieval["limit"] < 1 or retrieval["candidates"] < retrieval["limit"]:
        raise ConfigurationError(
            message="retrieval.candidates must be at least retrieval.limit, which must be positive."
        )


def _deep_merge(base: dict, overrides: dict) -> None:
    """Recursively merge overrides into base dict, mutating base in place."""
    for key, value in overrides.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
