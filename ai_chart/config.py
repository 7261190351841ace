"""
Global Configuration Settings

Centralized configuration for the AI chart service.
Controls the chat model connection, AI extraction and logging.
"""

import os
from typing import Any, Dict, Optional
import logging

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)


class AppConfig:
    """Global application configuration."""

    def __init__(self):
        # Chat model configuration; AI_API_KEY wins over OPENAI_API_KEY
        self.AI_API_KEY: Optional[str] = os.getenv("AI_API_KEY") or os.getenv("OPENAI_API_KEY")
        self.AI_BASE_URL: Optional[str] = os.getenv("AI_BASE_URL") or None
        self.AI_MODEL = os.getenv("AI_MODEL", "gpt-4o-mini")
        self.AI_TIMEOUT = float(os.getenv("AI_TIMEOUT", "30"))

        # Pipeline configuration
        self.ENABLE_AI_EXTRACTION = self._get_bool_env("ENABLE_AI_EXTRACTION", default=True)

        # Logging Configuration
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

        # Development/Debug Configuration
        self.DEBUG_MODE = self._get_bool_env("DEBUG_MODE", default=False)

        self._log_configuration()

    def _get_bool_env(self, key: str, default: bool = False) -> bool:
        """Get boolean value from environment variable."""
        value = os.getenv(key, "").lower()
        if value in ("true", "1", "yes", "on"):
            return True
        elif value in ("false", "0", "no", "off"):
            return False
        else:
            return default

    @property
    def ai_configured(self) -> bool:
        return bool(self.AI_API_KEY)

    def _log_configuration(self):
        """Log the current configuration settings."""
        logger.info("🔧 Application Configuration:")
        logger.info(f"   AI Service: {'✅ CONFIGURED' if self.ai_configured else '❌ NOT CONFIGURED'}")
        logger.info(f"   AI Extraction: {'✅ ENABLED' if self.ENABLE_AI_EXTRACTION else '❌ DISABLED'}")
        logger.info(f"   AI Model: {self.AI_MODEL}")
        logger.info(f"   Debug Mode: {'✅ ENABLED' if self.DEBUG_MODE else '❌ DISABLED'}")
        logger.info(f"   Log Level: {self.LOG_LEVEL}")

    def get_summary(self) -> Dict[str, Any]:
        """Get configuration summary; the API key itself is never included."""
        return {
            "ai_configured": self.ai_configured,
            "ai_base_url": self.AI_BASE_URL,
            "ai_model": self.AI_MODEL,
            "ai_timeout": self.AI_TIMEOUT,
            "ai_extraction_enabled": self.ENABLE_AI_EXTRACTION,
            "debug_mode": self.DEBUG_MODE,
            "log_level": self.LOG_LEVEL,
        }


# Global configuration instance
config = AppConfig()


def get_config() -> AppConfig:
    """Get the global configuration instance."""
    return config
