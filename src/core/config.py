"""Configuration management using Pydantic Settings"""

import sys
from pathlib import Path

from loguru import logger
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # Paths
    PROJECT_ROOT: Path = Path(__file__).parent.parent.parent
    DB_PATH: Path = PROJECT_ROOT / "data" / "dispatch.db"

    # Confidentiality wrap (fixed shared secret)
    CIPHER_SECRET: str = "change-me"

    # Intent classifier (LUIS-style prediction endpoint)
    CLASSIFIER_ENDPOINT: str = ""
    CLASSIFIER_APP_ID: str = ""
    CLASSIFIER_KEY: str = ""

    # Open-domain answer service (QnA-style knowledge base)
    QNA_ENDPOINT: str = ""
    QNA_KNOWLEDGE_BASE_ID: str = ""
    QNA_KEY: str = ""
    QNA_TOP: int = 1

    HTTP_TIMEOUT: float = 10.0

    # Dialog
    BOT_ID: str = "st-bot"
    TERMINATION_KEYWORD: str = "finish"
    STRUCTURED_INTENT_PREFIX: str = "l_"
    WELCOME_TEXT: str = "Hello, this is ST Bot! How are you today?"
    FALLBACK_TEXT: str = "Sorry, could not find an answer in the Q and A system."

    # Collections
    INTERACTIONS_COLLECTION: str = "interactions"
    SUMMARIES_COLLECTION: str = "summaries"
    USERS_COLLECTION: str = "users"

    # Logging
    LOG_LEVEL: str = "INFO"


settings = Settings()


def configure_logging(level: str = "") -> None:
    """Install a single stderr sink at the configured level"""
    logger.remove()
    logger.add(sys.stderr, level=level or settings.LOG_LEVEL)
