"""Application configuration for the RAG workbench"""
from typing import List, Optional
from pydantic_settings import BaseSettings
from utils.common import get_log_file_path

class Settings(BaseSettings):
    """Application configuration"""

    # Logger configuration
    LOGGER_NAME: str = "rag_workbench"
    LOG_FILE_PATH: str = get_log_file_path()
    LOG_FILE_LEVEL: str = "DEBUG"
    LOG_CONSOLE_LEVEL: str = "INFO"

    # App metadata
    APP_TITLE: str = "RAG Workbench"
    APP_VERSION: str = "1.0.0"

    # Token estimation
    CHARS_PER_TOKEN: int = 4

    # Document processing
    CHUNK_SIZE_TOKENS: int = 500
    MAX_FILE_SIZE: int = 10 * 1024 * 1024
    ALLOWED_MIME_TYPES: List[str] = ["text/plain", "text/markdown"]
    ALLOWED_FILE_EXTENSIONS: List[str] = ["txt", "md"]

    # Retrieval
    DEFAULT_TOP_K: int = 3
    MAX_TOP_K: int = 50
    MIN_RELEVANCE_SCORE: float = 0.0  # Chunks must score strictly above this
    SCORING_STRATEGY: str = "keyword"  # Options: keyword, bm25

    # Context assembly
    MAX_CONTEXT_TOKENS: int = 3000

    # Citations
    EXCERPT_LENGTH: int = 200
    CONFIDENCE_SCALE: float = 50.0

    # Generation defaults
    DEFAULT_TEMPERATURE: float = 0.3
    DEFAULT_MAX_TOKENS: int = 1000
    COMPLETION_TOKEN_MODE: str = "fragments"  # Options: fragments, estimate

    # Provider credentials (SET IN .env)
    OPENAI_API_KEY: Optional[str] = None
    ANTHROPIC_API_KEY: Optional[str] = None
    GOOGLE_API_KEY: Optional[str] = None

    # Provider endpoints
    OPENAI_BASE_URL: str = "https://api.openai.com/v1"
    ANTHROPIC_BASE_URL: str = "https://api.anthropic.com/v1"
    ANTHROPIC_VERSION: str = "2023-06-01"
    GOOGLE_BASE_URL: str = "https://generativelanguage.googleapis.com/v1beta"

    # Upstream timeouts (seconds)
    UPSTREAM_CONNECT_TIMEOUT: float = 10.0
    UPSTREAM_READ_TIMEOUT: float = 30.0  # Max silence between upstream bytes

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

settings = Settings()
