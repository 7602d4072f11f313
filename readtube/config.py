"""
Configuration settings for the ReadTube summarization service.
"""

import os
from typing import List
from pathlib import Path
from dotenv import load_dotenv


# Ensure environment variables are loaded
load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_list(name: str, default: str) -> List[str]:
    return [item.strip() for item in os.getenv(name, default).split(",") if item.strip()]


class Config:
    """Base configuration class."""

    # Application info
    APP_NAME = "ReadTube"
    APP_VERSION = "0.2.0"

    # Data directories
    BASE_DIR = Path(__file__).resolve().parent.parent.absolute()
    DATA_DIR = Path(os.getenv("DATA_DIR", BASE_DIR / "data"))
    DOWNLOADS_DIR = Path(os.getenv("DOWNLOADS_DIR", DATA_DIR / "downloads"))
    SUMMARIES_DIR = Path(os.getenv("SUMMARIES_DIR", DATA_DIR / "summaries"))

    DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{DATA_DIR}/readtube.db")

    # Language model
    GROQ_API_KEY = os.getenv("GROQ_API_KEY")
    MODEL_PROVIDER = os.getenv("MODEL_PROVIDER", "groq")
    DEFAULT_SUMMARY_MODEL = os.getenv("DEFAULT_SUMMARY_MODEL", "llama-3.3-70b-versatile")
    SUMMARY_TEMPERATURE = 0.3
    SUMMARY_MAX_TOKENS = 4096
    CHAT_TEMPERATURE = 0.7
    CHAT_MAX_TOKENS = 1000
    LLM_TIMEOUT = int(os.getenv("LLM_TIMEOUT", "120"))
    TRANSCRIPT_PROMPT_CHARS = int(os.getenv("TRANSCRIPT_PROMPT_CHARS", "10000"))
    CHAT_TRANSCRIPT_CHARS = int(os.getenv("CHAT_TRANSCRIPT_CHARS", "30000"))

    # Speech-to-text (audio fallback tier). Unset disables the tier.
    TRANSCRIPTION_API_KEY = os.getenv("TRANSCRIPTION_API_KEY")
    DEFAULT_TRANSCRIPTION_MODEL = os.getenv("DEFAULT_TRANSCRIPTION_MODEL", "whisper-large-v3-turbo")
    AUDIO_MAX_BYTES = int(os.getenv("AUDIO_MAX_BYTES", str(25 * 1024 * 1024)))

    # YouTube
    YOUTUBE_API_KEY = os.getenv("YOUTUBE_API_KEY")
    PREFERRED_LANGUAGES = _env_list("PREFERRED_LANGUAGES", "en,pl")
    MAX_VIDEO_MINUTES = int(os.getenv("MAX_VIDEO_MINUTES", "180"))

    # Per-call ceilings in seconds
    METADATA_TIMEOUT = int(os.getenv("METADATA_TIMEOUT", "15"))
    CAPTION_TIMEOUT = int(os.getenv("CAPTION_TIMEOUT", "30"))
    AUDIO_TIMEOUT = int(os.getenv("AUDIO_TIMEOUT", "300"))
    HTTP_RETRIES = 3
    HTTP_RETRY_DELAY = 1
    HTTP_RETRY_BACKOFF = 2

    # Identity provider
    AUTH_JWKS_URL = os.getenv("AUTH_JWKS_URL")
    AUTH_JWT_SECRET = os.getenv("AUTH_JWT_SECRET")
    AUTH_ISSUER = os.getenv("AUTH_ISSUER")
    AUTH_AUDIENCE = os.getenv("AUTH_AUDIENCE")

    # Quota and payments
    FREE_MINUTES = int(os.getenv("FREE_MINUTES", "60"))
    ENFORCE_QUOTA = _env_bool("ENFORCE_QUOTA", True)
    STRIPE_SECRET_KEY = os.getenv("STRIPE_SECRET_KEY")
    STRIPE_WEBHOOK_SECRET = os.getenv("STRIPE_WEBHOOK_SECRET")
    PACKAGE_MINUTES = int(os.getenv("PACKAGE_MINUTES", "300"))
    PACKAGE_PRICE = int(os.getenv("PACKAGE_PRICE", "2500"))
    PACKAGE_CURRENCY = os.getenv("PACKAGE_CURRENCY", "pln")
    PACKAGE_NAME = "ReadTube - 5 hours of video summaries"

    PUBLIC_URL = os.getenv("PUBLIC_URL", "http://localhost:8000")

    # Create data directories if they don't exist
    @classmethod
    def initialize(cls):
        """Initialize the application configuration."""
        cls.DATA_DIR.mkdir(parents=True, exist_ok=True)
        cls.DOWNLOADS_DIR.mkdir(parents=True, exist_ok=True)
        cls.SUMMARIES_DIR.mkdir(parents=True, exist_ok=True)

    @classmethod
    def missing_keys(cls) -> List[str]:
        """Names of optional keys that are unset; each one disables a feature."""
        keys = [
            "GROQ_API_KEY",
            "TRANSCRIPTION_API_KEY",
            "YOUTUBE_API_KEY",
            "STRIPE_SECRET_KEY",
            "STRIPE_WEBHOOK_SECRET",
        ]
        return [key for key in keys if not getattr(cls, key)]


class DevelopmentConfig(Config):
    """Development configuration."""

    DEBUG = True
    LOG_LEVEL = "DEBUG"


class ProductionConfig(Config):
    """Production configuration."""

    DEBUG = False
    LOG_LEVEL = "INFO"


# Determine which configuration to use based on environment
def get_config():
    """Get the appropriate configuration based on environment."""
    env = os.getenv("ENVIRONMENT", "development").lower()
    if env == "production":
        return ProductionConfig
    else:
        return DevelopmentConfig


config = get_config()
