"""Shared configuration loaded from environment / ``.env``."""

from __future__ import annotations

import logging

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application-wide settings, populated from env vars or .env file."""

    # LLM
    llm_api_key: str = Field(default="", description="API key for the OpenAI-compatible provider")
    llm_model_name: str = Field(default="deepseek/deepseek-r1", description="LLM model identifier")
    llm_base_url: str = Field(
        default="https://openrouter.ai/api/v1",
        description=(
            "Base URL for the chat-completions API. Any OpenAI-compatible "
            "endpoint works (OpenRouter, OpenAI, a local vLLM server, ...)."
        ),
    )
    llm_temperature: float = 0.7
    llm_max_tokens: int = 800
    llm_timeout_seconds: float = 60.0
    llm_max_retries: int = Field(
        default=0,
        description="Bounded retries (with exponential backoff) performed by the OpenAI client.",
    )

    # Vector store
    chroma_host: str = "localhost"
    chroma_port: int = 8000
    chroma_collection: str = "docuchat"

    # Embedding
    embedding_model: str = "sentence-transformers/all-MiniLM-L6-v2"
    strict_embedding_model: bool = Field(
        default=False,
        description="Fail queries whose hits were embedded with a different model.",
    )

    # Chunking / retrieval
    chunk_size: int = 512
    chunk_overlap: int = 64
    retrieval_k: int = 2

    # Queue
    redis_url: str = "redis://localhost:6379/0"
    queue_name: str = "file-upload-queue"
    worker_concurrency: int = Field(default=100, description="Number of RQ worker processes started by docuchat-worker.")
    job_timeout_seconds: int = 600

    # Relational store
    database_url: str = "sqlite:///./docuchat.db"

    # Uploads
    upload_dir: str = "uploads"

    # Serving
    api_host: str = "0.0.0.0"
    api_port: int = 8080
    cors_origins: list[str] = Field(
        default_factory=lambda: ["*"],
        description="Origins allowed to call the API from a browser (JSON list in env).",
    )

    log_level: str = "INFO"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


# Import `settings` wherever defaults are needed; clients take explicit overrides.
settings = Settings()


_NOISY_LOGGERS = ("httpx", "httpcore", "urllib3", "chromadb", "sentence_transformers")


def configure_logging(level: str | int = "INFO") -> None:
    """Configure root logging for an entry point (API server or worker)."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
