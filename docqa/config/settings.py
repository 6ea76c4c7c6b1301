"""Application settings loaded from environment variables via pydantic-settings.

Values come from two sources, highest priority first:

  1. Environment variables, e.g. ``OPENAI_API_KEY=sk-abc123``
  2. A ``.env`` file in the working directory (local development)

Field ``openai_api_key`` maps to env var ``OPENAI_API_KEY`` and so on.
Defaults below apply when neither source sets a value.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """docqa application settings."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # === LLM / Embedding Providers ===
    # Empty string = "not configured"; main.py falls through to the next provider.
    openai_api_key: str = ""
    openai_base_url: str = ""  # OpenAI-compatible endpoint (TogetherAI, Azure proxy, ...)
    openai_text_model: str = ""  # defaults to gpt-3.5-turbo
    openai_embedding_model: str = ""  # defaults to text-embedding-ada-002
    anthropic_api_key: str = ""
    ollama_base_url: str = "http://localhost:11434"

    # === Vector Store ===
    chromadb_persist_dir: str = "./data/chromadb"
    chromadb_collection: str = "documents"

    # === Document Repository ===
    document_db_path: str = "data/documents.db"

    # === Pipeline ===
    chunk_size: int = Field(default=300, gt=0)
    retrieval_top_k: int = Field(default=5, gt=0)
    csv_has_header: bool = True
    llm_temperature: float = 0.1
    llm_max_tokens: int = 1000

    # === External call budgets (seconds) ===
    extraction_timeout: float = 120.0
    embedding_timeout: float = 30.0
    vector_store_timeout: float = 15.0
    llm_timeout: float = 60.0
    max_retries: int = Field(default=3, ge=1)
    retry_backoff: float = 0.5

    # === API limits ===
    max_upload_bytes: int = 10 * 1024 * 1024
    max_question_length: int = 1000
    allowed_origins: list[str] = Field(default_factory=lambda: ["*"])

    # === App Config ===
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    app_env: str = "development"
    log_level: str = "INFO"

    def get_available_llm_providers(self) -> list[str]:
        """Return the LLM provider names that have credentials or a URL configured."""
        providers: list[str] = []
        if self.anthropic_api_key:
            providers.append("anthropic")
        if self.openai_api_key:
            providers.append("openai")
        if self.ollama_base_url:
            providers.append("ollama")
        return providers
