"""Application settings loaded from YAML with environment variable overrides."""

from __future__ import annotations

import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field

# ---------------------------------------------------------------------------
# Settings sections
# ---------------------------------------------------------------------------


class EmbeddingSettings(BaseModel):
    provider: str = "openai"
    model: str = "text-embedding-3-small"
    dimension: int = 1536


class StoreSettings(BaseModel):
    backend: str = "memory"
    path: str | None = None
    url: str | None = None
    collection: str = "financial_document_chunks"


class LLMSettings(BaseModel):
    provider: str = "openai"
    model: str = "gpt-4o-mini"
    temperature: float = 0.2
    max_tokens: int = 2048


class ChunkingSettings(BaseModel):
    parent_chunk_size: int = 1500
    parent_chunk_overlap: int = 200
    child_chunk_size: int = 400
    child_chunk_overlap: int = 50
    flat_record_chunks: bool = False


class ExtractionSettings(BaseModel):
    temperature: float = 0.1
    max_chars: int = 60_000


class RetrievalSettings(BaseModel):
    alpha: float = 0.5
    overfetch_factor: int = 4
    initial_min_similarity: float = 0.01
    default_max_results: int = 5
    short_query_threshold: int = 20
    default_strictness: float | None = None


class ProcessingSettings(BaseModel):
    embedding_workers: int = 4
    batch_size: int = 32


# ---------------------------------------------------------------------------
# Root settings
# ---------------------------------------------------------------------------


class Settings(BaseModel):
    embedding: EmbeddingSettings = Field(default_factory=EmbeddingSettings)
    store: StoreSettings = Field(default_factory=StoreSettings)
    llm: LLMSettings = Field(default_factory=LLMSettings)
    chunking: ChunkingSettings = Field(default_factory=ChunkingSettings)
    extraction: ExtractionSettings = Field(default_factory=ExtractionSettings)
    retrieval: RetrievalSettings = Field(default_factory=RetrievalSettings)
    processing: ProcessingSettings = Field(default_factory=ProcessingSettings)


# env var -> (section, field)
_ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "FINRAG_EMBEDDING_PROVIDER": ("embedding", "provider"),
    "FINRAG_EMBEDDING_MODEL": ("embedding", "model"),
    "FINRAG_LLM_PROVIDER": ("llm", "provider"),
    "FINRAG_LLM_MODEL": ("llm", "model"),
    "FINRAG_STORE_BACKEND": ("store", "backend"),
    "FINRAG_STORE_URL": ("store", "url"),
}


def _find_settings_file() -> Path | None:
    """Walk up from cwd looking for settings.yaml."""
    profile = os.getenv("FINRAG_PROFILE", "")
    names = [f"settings-{profile}.yaml", "settings.yaml"] if profile else ["settings.yaml"]

    cwd = Path.cwd()
    for parent in [cwd, *cwd.parents]:
        for name in names:
            candidate = parent / name
            if candidate.exists():
                return candidate
    return None


def _apply_env_overrides(raw: dict) -> dict:
    for env_name, (section, key) in _ENV_OVERRIDES.items():
        value = os.getenv(env_name)
        if value:
            raw.setdefault(section, {})[key] = value
    return raw


def load_settings(path: str | Path | None = None) -> Settings:
    """Load settings from YAML file, falling back to defaults.

    Environment variables listed in ``_ENV_OVERRIDES`` win over the file.
    """
    settings_path = Path(path) if path else _find_settings_file()

    raw: dict = {}
    if settings_path is not None:
        with open(settings_path, encoding="utf-8") as fh:
            raw = yaml.safe_load(fh) or {}

    return Settings(**_apply_env_overrides(raw))
