"""Configuration settings for the art collection RAG service."""

from pydantic_settings import BaseSettings
from typing import Optional, List
import os


class Settings(BaseSettings):
    """Application settings."""

    # API Configuration
    app_name: str = "Art Collection RAG Service"
    app_version: str = "1.0.0"
    api_prefix: str = "/api"
    debug: bool = False

    # Server Configuration
    host: str = "0.0.0.0"
    port: int = 3001
    workers: int = 1

    # CORS
    cors_origins: List[str] = ["http://localhost:3000"]

    # Generation (Ollama exposes an OpenAI-compatible endpoint)
    llm_model: str = "gemma2:2b"
    llm_base_url: str = "http://localhost:11434/v1"
    llm_api_key: str = "ollama"
    llm_temperature: float = 0.1
    llm_timeout: float = 30.0

    # Embeddings / Vector Store
    embedding_model: str = "nomic-embed-text"
    embedding_base_url: Optional[str] = None  # falls back to llm_base_url
    embedding_dimensions: int = 768
    pgvector_table_name: str = "art_collection"
    search_workers: int = 4

    # PostgreSQL
    database_url: Optional[str] = None
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_db: str = "art_rag"
    postgres_user: str = "postgres"
    postgres_password: Optional[str] = None

    # Pipeline
    default_top_k: int = 5
    default_score_threshold: float = 0.6
    max_context_length: int = 4000
    request_timeout_seconds: float = 60.0

    # Request validation
    max_question_length: int = 1000
    max_top_k: int = 20

    # Response cache
    redis_url: Optional[str] = None
    cache_ttl: int = 3600  # 1 hour
    cache_prefix: str = "art_rag:"

    # Metrics
    metrics_enabled: bool = True
    metrics_log_dir: str = "./logs"
    metrics_max_log_bytes: int = 10 * 1024 * 1024  # 10MB
    metrics_retention_days: int = 30
    metrics_top_questions: int = 10

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"

    class Config:
        env_file = ".env"
        env_prefix = "ART_RAG_"
        case_sensitive = False
        extra = "ignore"  # Allow extra fields in .env file


# Create settings instance
settings = Settings()

# Override with environment variables
if os.getenv("REDIS_URL"):
    settings.redis_url = os.getenv("REDIS_URL")
