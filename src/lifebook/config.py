"""Central Configuration System for Lifebook.

This module is the single source of truth for application configuration.
Every other module that needs settings imports from here. AI narration is
optional: the aggregation pipelines always produce a result, and Gemini only
upgrades the prose when it is enabled and reachable.

The configuration system supports:
- Multi-source configuration (environment variables > config file > defaults)
- API key lookup (environment > system keyring)
- Tunable retry, prompt-budget and selection limits

Example:
    >>> from lifebook.config import get_config
    >>>
    >>> cfg = get_config()
    >>> print(cfg.ai.max_attempts)  # 3
    >>> if cfg.is_ai_available():
    ...     api_key = get_api_key()

Config File Format (YAML):
    ```yaml
    ai:
      mode: enabled  # enabled | disabled
      narrative_model: gemini-1.5-flash
      temperature: 0.7
      max_output_tokens: 4096
      timeout_seconds: 60
      max_attempts: 3
      retry_base_delay: 1.0
      max_prompt_chars: 10000
      topic_prompt_chars: 12000

    book:
      max_topics: 5
      max_moments: 5
      max_year_photos: 24
      monthly_excerpt_chars: 600

    paths:
      store_dir: ~/.lifebook/store
      log_dir: ~/.lifebook/logs

    debug: false
    ```
"""

from __future__ import annotations

import functools
import logging
import os
from enum import Enum
from pathlib import Path
from typing import Any

import keyring
import keyring.errors
import yaml
from pydantic import BaseModel, Field, SecretStr, ValidationError, field_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

# Configure module logger - never log secrets
logger = logging.getLogger(__name__)


# =============================================================================
# Exceptions
# =============================================================================


class ConfigError(Exception):
    """Base exception for configuration errors."""

    pass


class APIKeyNotFoundError(ConfigError):
    """Raised when no API key is found in the environment or the keyring."""

    pass


# =============================================================================
# Enums
# =============================================================================


class AIMode(str, Enum):
    """AI feature activation modes.

    Attributes:
        ENABLED: Narratives and topics are requested from Gemini when a key
                 is configured; any failure degrades to templates.
        DISABLED: No network calls. Template narratives and keyword topics only.
    """

    ENABLED = "enabled"
    DISABLED = "disabled"


# =============================================================================
# Configuration Models
# =============================================================================


class AIConfig(BaseModel):
    """Configuration for the narrative text generator.

    Attributes:
        mode: AI activation mode.
        narrative_model: Gemini model identifier used for all text requests.
        temperature: Sampling temperature (0.0=deterministic, 2.0=creative).
        max_output_tokens: Maximum tokens in a model response.
        timeout_seconds: Per-request timeout.
        max_attempts: Total attempts per narrative request (first try included).
        retry_base_delay: Base of the exponential backoff; the delay before
            attempt ``n + 1`` is ``retry_base_delay * 2**n`` seconds.
        max_prompt_chars: Character budget for summary prompts.
        topic_prompt_chars: Character budget for topic extraction prompts.
    """

    mode: AIMode = Field(default=AIMode.ENABLED, description="AI activation mode.")
    narrative_model: str = Field(
        default="gemini-1.5-flash", description="Model used for narrative synthesis."
    )
    temperature: float = Field(
        default=0.7,
        ge=0.0,
        le=2.0,
        description="Sampling temperature (0=deterministic, 2=creative).",
    )
    max_output_tokens: int = Field(
        default=4096, ge=100, le=32000, description="Maximum tokens in model response."
    )
    timeout_seconds: int = Field(
        default=60, ge=5, le=600, description="Request timeout in seconds."
    )
    max_attempts: int = Field(
        default=3, ge=1, le=10, description="Total attempts per request, first try included."
    )
    retry_base_delay: float = Field(
        default=1.0, ge=0.0, le=10.0, description="Base delay for exponential backoff (seconds)."
    )
    max_prompt_chars: int = Field(
        default=10000, ge=500, description="Character budget for summary prompts."
    )
    topic_prompt_chars: int = Field(
        default=12000, ge=500, description="Character budget for topic extraction prompts."
    )

    def is_enabled(self) -> bool:
        """Return True unless AI is switched off."""
        return self.mode != AIMode.DISABLED


class BookConfig(BaseModel):
    """Limits applied while assembling monthly packs and yearly summaries.

    Attributes:
        max_topics: Maximum topics requested per month.
        max_moments: Upper bound on unmatched "moment" selections per month.
        max_year_photos: Maximum photos in a yearly summary.
        monthly_excerpt_chars: Characters of each monthly narrative quoted
            in the yearly prompt.
    """

    max_topics: int = Field(default=5, ge=1, le=20)
    max_moments: int = Field(default=5, ge=1, le=31)
    max_year_photos: int = Field(default=24, ge=1, le=120)
    monthly_excerpt_chars: int = Field(default=600, ge=50)


class PathsConfig(BaseModel):
    """Filesystem locations used by the JSON entry store and log files.

    Example:
        >>> paths = PathsConfig(store_dir="~/book")
        >>> paths.ensure_dirs_exist()
    """

    store_dir: Path = Field(
        default_factory=lambda: Path.home() / ".lifebook" / "store",
        description="Directory holding day records, packs and summaries.",
    )
    log_dir: Path = Field(
        default_factory=lambda: Path.home() / ".lifebook" / "logs",
        description="Directory for log files.",
    )

    @field_validator("store_dir", "log_dir", mode="before")
    @classmethod
    def expand_path(cls, v: Any) -> Path:
        """Expand ~ and resolve path."""
        if isinstance(v, (str, Path)):
            return Path(v).expanduser().resolve()
        return v

    def ensure_dirs_exist(self) -> None:
        """Create the store and log directories if they don't exist."""
        for directory in (self.store_dir, self.log_dir):
            directory.mkdir(parents=True, exist_ok=True)


class AppConfig(BaseSettings):
    """Top-level application configuration.

    Configuration priority (highest wins):
    1. Environment variables (LIFEBOOK_*, nested with ``__``)
    2. Config file (YAML)
    3. In-code defaults

    Example:
        >>> # LIFEBOOK_AI__MODE=disabled lifebook month 2024 3
        >>> config = AppConfig()
        >>> config.ai.mode
        <AIMode.ENABLED: 'enabled'>
    """

    ai: AIConfig = Field(default_factory=AIConfig)
    book: BookConfig = Field(default_factory=BookConfig)
    paths: PathsConfig = Field(default_factory=PathsConfig)
    debug: bool = Field(default=False, description="Enable debug mode.")

    model_config = {
        "env_prefix": "LIFEBOOK_",
        "env_nested_delimiter": "__",
        "case_sensitive": False,
        "extra": "ignore",
    }

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # Environment overrides values read from the YAML file
        return env_settings, init_settings, dotenv_settings, file_secret_settings

    def is_ai_available(self) -> bool:
        """Check if AI is enabled AND an API key is configured."""
        if not self.ai.is_enabled():
            return False
        return APIKeyManager().get_key() is not None

    def to_display_dict(self) -> dict[str, Any]:
        """Return a JSON-friendly view of the settings (no secrets)."""
        return self.model_dump(mode="json")


# =============================================================================
# API Key Management
# =============================================================================


class APIKeyManager:
    """Looks up the Gemini API key.

    Sources are tried in order: the ``GEMINI_API_KEY`` environment variable,
    then the system keyring. Keys are wrapped in SecretStr so they never
    reach a log line by accident.
    """

    KEYRING_SERVICE = "lifebook"
    KEYRING_USERNAME = "gemini"
    ENV_VAR_NAME = "GEMINI_API_KEY"

    def __init__(self) -> None:
        self._cached_key: SecretStr | None = None

    def get_key(self) -> SecretStr | None:
        """Retrieve the API key, or None if no source has one."""
        if self._cached_key is not None:
            return self._cached_key

        key = self._read_from_environment()
        if key:
            logger.debug("API key loaded from environment variable")
        else:
            key = self._read_from_keyring()
            if key:
                logger.debug("API key loaded from system keyring")

        if not key:
            logger.debug("No API key found in any source")
            return None

        self._cached_key = SecretStr(key)
        return self._cached_key

    def store_key(self, key: str) -> None:
        """Save a key to the system keyring."""
        keyring.set_password(self.KEYRING_SERVICE, self.KEYRING_USERNAME, key.strip())
        self._cached_key = None
        logger.info("API key stored in system keyring")

    def _read_from_environment(self) -> str | None:
        key = os.environ.get(self.ENV_VAR_NAME)
        if key:
            return key.strip()
        return None

    def _read_from_keyring(self) -> str | None:
        try:
            return keyring.get_password(self.KEYRING_SERVICE, self.KEYRING_USERNAME)
        except keyring.errors.KeyringError as e:
            # No usable backend on this system
            logger.debug(f"Keyring access failed: {type(e).__name__}")
            return None


# =============================================================================
# Loading
# =============================================================================


DEFAULT_SEARCH_PATHS = (
    Path("./lifebook.yaml"),
    Path("./lifebook.yml"),
    Path.home() / ".lifebook" / "config.yaml",
)


def load_config(path: Path | None = None) -> AppConfig:
    """Load configuration from file, environment, and defaults.

    If no config file is found, uses defaults only (not an error).
    If the config file is malformed, logs a warning and uses defaults.

    Args:
        path: Optional path to a config file. If None, searches default locations.

    Returns:
        Fully-populated AppConfig instance.
    """
    config_data: dict[str, Any] = {}

    search_paths = [path, *DEFAULT_SEARCH_PATHS] if path else list(DEFAULT_SEARCH_PATHS)
    config_file = next((p for p in search_paths if p.exists()), None)

    if config_file is not None:
        try:
            loaded = yaml.safe_load(config_file.read_text(encoding="utf-8"))
            if isinstance(loaded, dict):
                config_data = loaded
            elif loaded is not None:
                logger.warning(f"Config file {config_file} has unexpected format. Using defaults.")
        except yaml.YAMLError as e:
            logger.warning(f"Failed to parse config file {config_file}: {e}. Using defaults.")
        except OSError as e:
            logger.warning(
                f"Failed to read config file {config_file}: {type(e).__name__}. Using defaults."
            )

    try:
        return AppConfig(**config_data)
    except ValidationError as e:
        logger.warning(f"Error parsing config values: {e.error_count()} invalid. Using defaults.")
        return AppConfig()


@functools.lru_cache(maxsize=1)
def get_config() -> AppConfig:
    """Get the cached configuration singleton."""
    return load_config()


def get_api_key() -> SecretStr:
    """Return the Gemini API key.

    Raises:
        APIKeyNotFoundError: If no API key is configured in any source.
    """
    key = APIKeyManager().get_key()
    if key is None:
        raise APIKeyNotFoundError(
            "No API key found. Set the GEMINI_API_KEY environment variable "
            "or run 'lifebook config set-key'."
        )
    return key


def reset_config() -> None:
    """Clear the configuration cache so the next get_config() reloads."""
    get_config.cache_clear()
