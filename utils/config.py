"""
Configuration management for Fridge Cookbook.

Handles environment variables, storage settings, recipe import settings and
suggestion tuning. Values can also come from a local .env file.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Set

from dotenv import load_dotenv

from .errors import ConfigurationError


# Catalog entries filed under spices/herbs that are not seasonings
# (334 "Salt Cod", 679 "Unsalted Pistachio").
DEFAULT_SPICE_EXCLUSION_IDS = "334,679"


def _parse_id_list(value: str) -> Set[int]:
    """Parse a comma separated list of integer ids, ignoring junk entries"""
    ids = set()
    for part in value.split(','):
        part = part.strip()
        if part.isdigit():
            ids.add(int(part))
    return ids


def _env_int(name: str, default: str) -> int:
    """Integer environment variable; junk values are a configuration error"""
    value = os.getenv(name, default)
    try:
        return int(value)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {value!r}")


@dataclass
class Config:
    """Application configuration settings"""

    # Storage settings
    storage_path: str = "fridge_cookbook.db"

    # AI recipe extraction settings
    ai_enabled: bool = True
    ai_base_url: str = "http://localhost:1234/v1"
    ai_model: str = "local-model"
    ai_api_key: str = ""
    ai_timeout_seconds: int = 30
    ai_max_retries: int = 2
    ai_max_tokens: int = 4096

    # URL import settings
    fetch_timeout_seconds: int = 20
    fetch_max_text_length: int = 15000
    fetch_user_agent: str = "Mozilla/5.0 (compatible; RecipeImporter/1.0)"

    # Suggestions
    suggestion_limit: int = 50
    spice_exclusion_ids: Set[int] = None

    # Logging
    log_level: str = "INFO"
    log_file: str = "logs/fridge_cookbook.log"

    def __post_init__(self):
        """Initialize default values that need processing"""
        if self.spice_exclusion_ids is None:
            self.spice_exclusion_ids = _parse_id_list(DEFAULT_SPICE_EXCLUSION_IDS)

    @classmethod
    def from_environment(cls) -> 'Config':
        """Create configuration from environment variables"""
        load_dotenv()
        config = cls(
            # Storage
            storage_path=os.getenv("FRIDGE_STORAGE_PATH", "fridge_cookbook.db"),

            # AI
            ai_enabled=os.getenv("FRIDGE_AI_ENABLED", "true").lower() == "true",
            ai_base_url=os.getenv("FRIDGE_AI_BASE_URL", "http://localhost:1234/v1"),
            ai_model=os.getenv("FRIDGE_AI_MODEL", "local-model"),
            ai_api_key=os.getenv("FRIDGE_AI_API_KEY", ""),
            ai_timeout_seconds=_env_int("FRIDGE_AI_TIMEOUT", "30"),
            ai_max_retries=_env_int("FRIDGE_AI_MAX_RETRIES", "2"),
            ai_max_tokens=_env_int("FRIDGE_AI_MAX_TOKENS", "4096"),

            # URL import
            fetch_timeout_seconds=_env_int("FRIDGE_FETCH_TIMEOUT", "20"),
            fetch_max_text_length=_env_int("FRIDGE_FETCH_MAX_LENGTH", "15000"),
            fetch_user_agent=os.getenv(
                "FRIDGE_FETCH_USER_AGENT", "Mozilla/5.0 (compatible; RecipeImporter/1.0)"
            ),

            # Suggestions
            suggestion_limit=_env_int("FRIDGE_SUGGESTION_LIMIT", "50"),
            spice_exclusion_ids=_parse_id_list(
                os.getenv("FRIDGE_SPICE_EXCLUSION_IDS", DEFAULT_SPICE_EXCLUSION_IDS)
            ),

            # Logging
            log_level=os.getenv("FRIDGE_LOG_LEVEL", "INFO"),
            log_file=os.getenv("FRIDGE_LOG_FILE", "logs/fridge_cookbook.log")
        )
        config.validate()
        return config

    def validate(self):
        """Reject settings the services cannot work with"""
        problems = []
        if self.suggestion_limit < 0:
            problems.append("FRIDGE_SUGGESTION_LIMIT must not be negative")
        if self.ai_max_retries < 1:
            problems.append("FRIDGE_AI_MAX_RETRIES must be at least 1")
        if self.ai_timeout_seconds <= 0 or self.fetch_timeout_seconds <= 0:
            problems.append("Timeouts must be positive")
        if self.fetch_max_text_length <= 0:
            problems.append("FRIDGE_FETCH_MAX_LENGTH must be positive")
        if problems:
            raise ConfigurationError("; ".join(problems))

    def ensure_directories(self):
        """Create necessary directories"""
        directories = [
            Path(self.log_file).parent,
            Path(self.storage_path).parent
        ]

        for directory in directories:
            if directory and directory != Path("."):
                Path(directory).mkdir(parents=True, exist_ok=True)

    def is_ai_configured(self) -> bool:
        """Check if an AI endpoint is usable"""
        return self.ai_enabled and bool(self.ai_base_url)


# Global configuration instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get global configuration instance"""
    global _config
    if _config is None:
        _config = Config.from_environment()
    return _config


def reload_config():
    """Reload configuration from environment"""
    global _config
    _config = None
    return get_config()
