#!/usr/bin/env python3
"""
Configuration management for the transcript resolver.

Loads settings from environment variables (and an optional .env file) with
sensible defaults and validation, and holds the upstream endpoint constants
used by the resolution pipeline.
"""

import os
import re
from dataclasses import dataclass, field
from typing import Optional, Dict, Any, List

from dotenv import load_dotenv

from logging_setup import get_logger

logger = get_logger(__name__)

# --- Upstream endpoints ---
WATCH_URL = "https://www.youtube.com/watch?v={video_id}"
INNERTUBE_API_URL = "https://www.youtube.com/youtubei/v1/player?key={api_key}"

# Android client identity; the web client triggers PoToken requirements more often.
INNERTUBE_CONTEXT = {
    "client": {"clientName": "ANDROID", "clientVersion": "20.10.38"},
}

INNERTUBE_API_KEY_PATTERN = re.compile(r'"INNERTUBE_API_KEY":\s*"([a-zA-Z0-9_-]+)"')

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
DEFAULT_ACCEPT_LANGUAGE = "en-US,en;q=0.9"


@dataclass
class TranscriptConfig:
    """Runtime settings for the resolution pipeline and its transport."""

    timeout: int = 30
    connect_retries: int = 2
    languages: List[str] = field(default_factory=lambda: ["en"])
    preserve_formatting: bool = False
    user_agent: str = DEFAULT_USER_AGENT
    accept_language: str = DEFAULT_ACCEPT_LANGUAGE
    log_level: str = "INFO"
    use_json_logging: bool = True

    @classmethod
    def from_env(cls, dotenv_path: Optional[str] = None) -> 'TranscriptConfig':
        """Load configuration from environment variables with validation."""
        load_dotenv(dotenv_path=dotenv_path, override=False)

        config = cls(
            timeout=cls._parse_int_env("TRANSCRIPT_TIMEOUT", 30, min_val=5, max_val=120),
            connect_retries=cls._parse_int_env("TRANSCRIPT_CONNECT_RETRIES", 2, min_val=0, max_val=5),
            languages=cls._parse_list_env("TRANSCRIPT_LANGUAGES", ["en"]),
            preserve_formatting=cls._parse_bool_env("TRANSCRIPT_PRESERVE_FORMATTING", False),
            user_agent=os.getenv("TRANSCRIPT_USER_AGENT", DEFAULT_USER_AGENT) or DEFAULT_USER_AGENT,
            accept_language=os.getenv("TRANSCRIPT_ACCEPT_LANGUAGE", DEFAULT_ACCEPT_LANGUAGE) or DEFAULT_ACCEPT_LANGUAGE,
            log_level=cls._parse_log_level_env("LOG_LEVEL", "INFO"),
            use_json_logging=cls._parse_bool_env("USE_JSON_LOGGING", True),
        )
        config._log_config()
        return config

    @staticmethod
    def _parse_bool_env(env_var: str, default: bool) -> bool:
        """Parse boolean environment variable."""
        value = os.getenv(env_var)
        if value is None or value.strip() == "":
            return default
        return value.strip().lower() in ("1", "true", "yes", "on")

    @staticmethod
    def _parse_int_env(env_var: str, default: int, min_val: Optional[int] = None, max_val: Optional[int] = None) -> int:
        """Parse integer environment variable with range clamping."""
        raw = os.getenv(env_var)
        if raw is None or raw.strip() == "":
            return default
        try:
            value = int(raw)
        except (ValueError, TypeError):
            logger.warning(f"Invalid value for {env_var}: {raw!r}, using default {default}")
            return default

        if min_val is not None and value < min_val:
            logger.warning(f"{env_var}={value} is below minimum {min_val}, using {min_val}")
            return min_val
        if max_val is not None and value > max_val:
            logger.warning(f"{env_var}={value} is above maximum {max_val}, using {max_val}")
            return max_val
        return value

    @staticmethod
    def _parse_list_env(env_var: str, default: List[str]) -> List[str]:
        """Parse a comma separated list, dropping blanks."""
        raw = os.getenv(env_var)
        if raw is None:
            return list(default)
        items = [item.strip() for item in raw.split(",") if item.strip()]
        if not items:
            logger.warning(f"{env_var} is empty, using default {default}")
            return list(default)
        return items

    @staticmethod
    def _parse_log_level_env(env_var: str, default: str) -> str:
        value = (os.getenv(env_var) or default).strip().upper()
        if value not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            logger.warning(f"Invalid {env_var}={value!r}, using {default}")
            return default
        return value

    def _log_config(self) -> None:
        logger.debug(
            "Transcript configuration loaded: "
            f"timeout={self.timeout}s connect_retries={self.connect_retries} "
            f"languages={','.join(self.languages)} preserve_formatting={self.preserve_formatting}"
        )

    def default_headers(self) -> Dict[str, str]:
        """Headers every upstream request carries."""
        return {
            "User-Agent": self.user_agent,
            "Accept-Language": self.accept_language,
        }

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary for diagnostics."""
        return {
            "transport": {
                "timeout": self.timeout,
                "connect_retries": self.connect_retries,
                "user_agent": self.user_agent,
                "accept_language": self.accept_language,
            },
            "selection": {
                "languages": list(self.languages),
                "preserve_formatting": self.preserve_formatting,
            },
            "logging": {
                "log_level": self.log_level,
                "use_json_logging": self.use_json_logging,
            },
        }


# Global configuration instance
_transcript_config: Optional[TranscriptConfig] = None


def get_transcript_config() -> TranscriptConfig:
    """Get the global configuration instance."""
    global _transcript_config
    if _transcript_config is None:
        _transcript_config = TranscriptConfig.from_env()
    return _transcript_config


def reload_transcript_config() -> TranscriptConfig:
    """Reload configuration from environment variables."""
    global _transcript_config
    _transcript_config = TranscriptConfig.from_env()
    return _transcript_config
