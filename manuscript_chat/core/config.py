"""
Application configuration via environment variables (12-factor).
Pydantic BaseSettings validates and coerces all values at startup.

The LLM credential is deliberately optional here: a missing key must not
break imports or the health probe. It is checked by LLMGateway right before
any outbound call and surfaces as ConfigurationError.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # LLM (OpenAI-compatible chat completions endpoint)
    # ------------------------------------------------------------------
    groq_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("GROQ_API_KEY", "LLM_API_KEY", "groq_api_key"),
    )
    llm_base_url:        str   = "https://api.groq.com/openai/v1"
    llm_model:           str   = "meta-llama/llama-4-maverick-17b-128e-instruct"
    llm_temperature:     float = 0.2
    llm_max_tokens:      int   = 4096
    llm_request_timeout: float = 120.0   # seconds per completion call

    # ------------------------------------------------------------------
    # Chunking
    # ------------------------------------------------------------------
    chunk_size:      int = 1800
    chunk_overlap:   int = 250
    min_chunk_chars: int = 200    # trailing fragments below this are dropped

    # ------------------------------------------------------------------
    # Retrieval
    # ------------------------------------------------------------------
    retrieval_top_k: int = 4

    # ------------------------------------------------------------------
    # Request pacing: advisory self-throttle for the provider's RPM quota
    # ------------------------------------------------------------------
    min_request_gap_seconds: float = 3.5

    # ------------------------------------------------------------------
    # Extraction
    # ------------------------------------------------------------------
    max_preview_chars:    int   = 20_000   # transcript inlined into the extraction prompt
    min_transcript_chars: int   = 500      # below this the model's echoed text is preferred
    structural_map_chars: int   = 15_000
    max_rendered_pages:   int   = 4
    render_scale:         float = 1.5
    jpeg_quality:         int   = 80

    # ------------------------------------------------------------------
    # Application
    # ------------------------------------------------------------------
    app_env: str = "development"   # development | staging | production
    debug: bool = False

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
