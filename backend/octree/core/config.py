"""
Application configuration settings.
"""

import sys
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings
from loguru import logger


class Settings(BaseSettings):
    """Application settings."""

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./data/octree.db"

    # Application
    DEBUG: bool = True
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    WORKERS: int = 1

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = "./data/logs/octree.log"

    # AI assistant (OpenAI-compatible chat completions)
    DEEPSEEK_API_KEY: Optional[str] = None
    DEEPSEEK_BASE_URL: str = "https://api.deepseek.com/v1"
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_BASE_URL: str = "https://api.openai.com/v1"
    ASSISTANT_MODEL: str = "deepseek-chat"
    ASSISTANT_TEMPERATURE: float = 0.3
    ASSISTANT_MAX_TOKENS: int = 1000
    ASSISTANT_HISTORY_MESSAGES: int = 3
    LLM_TIMEOUT_SECONDS: float = 60.0

    # Conflict resolution
    CONFLICT_FAST_MODEL: str = "gpt-4o-mini"
    CONFLICT_CAPABLE_MODEL: str = "deepseek-coder"
    CONFLICT_TEMPERATURE: float = 0.2
    CONFLICT_MAX_TOKENS: int = 1200
    SMALL_CHANGE_MAX_LINES: int = 5

    # Suggestions
    SUGGESTION_BATCH_SIZE: int = 5
    STRICT_ANCHOR_CHECK: bool = True

    # Editing
    AUTOSAVE_DEBOUNCE_SECONDS: float = 2.0
    COMPILE_DEBOUNCE_SECONDS: float = 1.0

    # LaTeX compilation
    LATEX_COMPILE_TIMEOUT_SECONDS: int = 30
    LATEX_MAX_SOURCE_CHARS: int = 500000
    LATEX_SAFE_MODE: bool = True
    LATEX_PREFERRED_ENGINE: Optional[str] = None

    # Usage limits
    FREE_EDIT_LIMIT: int = 5
    PRO_MONTHLY_EDIT_LIMIT: int = 50
    USAGE_RESET_DAYS: int = 30

    @field_validator("DATABASE_URL", mode="before")
    @classmethod
    def validate_database_url(cls, v):
        if not v or v == "":
            raise ValueError("DATABASE_URL must be set")
        return v

    @field_validator("SUGGESTION_BATCH_SIZE")
    @classmethod
    def validate_batch_size(cls, v):
        if v < 1:
            raise ValueError("SUGGESTION_BATCH_SIZE must be at least 1")
        return v

    @field_validator("LATEX_PREFERRED_ENGINE")
    @classmethod
    def validate_engine(cls, v):
        if v and v not in ("tectonic", "pdflatex"):
            logger.warning(f"Unknown LATEX_PREFERRED_ENGINE {v!r}; falling back to auto-detection")
            return None
        return v

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()


def configure_logging(config: Settings) -> None:
    """Replace loguru's default handler with a rotating file sink and a console sink."""
    logger.remove()
    logger.configure(extra={"correlation_id": None, "session_id": None})
    logger.add(
        config.LOG_FILE,
        level=config.LOG_LEVEL,
        rotation="10 MB",
        retention="30 days",
        format="{time:YYYY-MM-DD HH:mm:ss} | {level} | {extra[correlation_id]} | {extra[session_id]} | {name}:{function}:{line} | {message}",
    )
    logger.add(
        sys.stderr,
        level=config.LOG_LEVEL,
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <7}</level> | <cyan>{name}</cyan>:<cyan>{line}</cyan> | {message}",
    )


configure_logging(settings)
