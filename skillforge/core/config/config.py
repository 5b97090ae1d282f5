"""
Static configuration management for SkillForge.

Purpose
-------
Provides centralized static configuration loaded from environment variables
with sensible defaults, type validation, and bounds checking. Components never
read the environment themselves; they receive explicit settings objects built
from this class (``RetryPolicy.from_config()``, ``GeminiSettings.from_config()``,
``YouTubeSettings.from_config()``).

Responsibilities
----------------
- Load configuration from environment variables with .env support
- Provide type-safe access to all static configuration values
- Validate critical settings on startup
- Track configuration loading metrics

Non-Responsibilities
--------------------
- Validating credentials against remote services
- Secrets management (use environment variables)

Configuration Categories
------------------------
1. Environment: environment type, debug mode, logging
2. Generation: Gemini API key, ordered model list, retry policy, deadline
3. Video lookup: YouTube API key and timeout
4. Database: connection string and engine settings
5. Gamification: leaderboard size

Dependencies
------------
- python-dotenv: Environment variable loading

Environment Variables
---------------------
Required in production:
- GEMINI_API_KEY: Credential for the text-generation backend
- DATABASE_URL: SQLAlchemy async URL (postgresql+asyncpg://, sqlite+aiosqlite://)

Optional (with defaults):
- GEMINI_MODELS: comma-separated, preference order
  (default: gemini-2.5-flash,gemini-2.5-flash-lite,gemini-2.0-flash)
- AI_RETRY_MAX_ATTEMPTS: attempts per model (default: 3)
- AI_RETRY_BASE_DELAY_MS: backoff base (default: 1000)
- AI_DEADLINE_SECONDS: overall budget per invocation, 0 disables (default: 0)
- YOUTUBE_API_KEY: enables real video links (default: unset)
- ENVIRONMENT, DEBUG, LOG_LEVEL, LOG_JSON
"""

import logging
import os
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

load_dotenv()


# ============================================================================
# Enums and Constants
# ============================================================================


class Environment(Enum):
    """Deployment environment types."""

    DEVELOPMENT = "development"
    TESTING = "testing"
    STAGING = "staging"
    PRODUCTION = "production"

    @classmethod
    def from_string(cls, value: str) -> "Environment":
        """
        Parse environment string safely with fallback.

        Example
        -------
        >>> Environment.from_string("production") == Environment.PRODUCTION
        True
        >>> Environment.from_string("invalid") == Environment.DEVELOPMENT
        True
        """
        try:
            return cls(value.lower())
        except ValueError:
            logging.warning(f"Unknown environment '{value}', defaulting to development")
            return cls.DEVELOPMENT


DEFAULT_GEMINI_MODELS = (
    "gemini-2.5-flash",
    "gemini-2.5-flash-lite",
    "gemini-2.0-flash",
)


# ============================================================================
# Configuration Metrics Tracker
# ============================================================================


class _ConfigLoadMetrics:
    """Tracks which values came from the environment versus defaults."""

    def __init__(self):
        self.env_vars_loaded: Dict[str, bool] = {}
        self.validation_errors: Dict[str, str] = {}
        self.defaults_used: Dict[str, Any] = {}
        self.last_reload: Optional[str] = None

    def record_env_load(self, key: str, from_env: bool, value: Any, default: Any):
        self.env_vars_loaded[key] = from_env
        if not from_env:
            self.defaults_used[key] = default

    def record_validation_error(self, key: str, error: str):
        self.validation_errors[key] = error

    def get_summary(self) -> Dict[str, Any]:
        return {
            "total_configs": len(self.env_vars_loaded),
            "from_environment": sum(1 for v in self.env_vars_loaded.values() if v),
            "from_defaults": sum(1 for v in self.env_vars_loaded.values() if not v),
            "validation_errors": len(self.validation_errors),
            "defaults_used": list(self.defaults_used.keys()),
            "last_reload": self.last_reload,
        }


# ============================================================================
# Main Configuration Class
# ============================================================================


class Config:
    """
    Centralized static configuration for SkillForge.

    Usage
    -----
    >>> Config.GEMINI_MODELS
    ['gemini-2.5-flash', 'gemini-2.5-flash-lite', 'gemini-2.0-flash']
    >>> if Config.is_production():
    ...     Config.validate()
    """

    _metrics: Optional[_ConfigLoadMetrics] = None
    _enable_metrics: bool = True
    _validated: bool = False

    # =========================================================================
    # Environment Configuration
    # =========================================================================

    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    LOG_JSON: Optional[bool] = None
    LOG_COLORS: bool = True

    PROJECT_ROOT = Path(__file__).resolve().parents[3]
    LOGS_DIR = PROJECT_ROOT / "logs"

    # =========================================================================
    # Generation Configuration
    # =========================================================================

    GEMINI_API_KEY: str = ""
    GEMINI_MODELS: List[str] = list(DEFAULT_GEMINI_MODELS)
    AI_RETRY_MAX_ATTEMPTS: int = 3
    AI_RETRY_BASE_DELAY_MS: int = 1000
    AI_DEADLINE_SECONDS: int = 0

    # =========================================================================
    # Video Lookup
    # =========================================================================

    YOUTUBE_API_KEY: str = ""
    YOUTUBE_TIMEOUT_SECONDS: int = 10

    # =========================================================================
    # Database Configuration
    # =========================================================================

    DATABASE_URL: str = ""
    DATABASE_ECHO: bool = False
    DATABASE_POOL_SIZE: int = 5
    DATABASE_MAX_OVERFLOW: int = 10

    # =========================================================================
    # Gamification
    # =========================================================================

    LEADERBOARD_LIMIT: int = 10

    # =========================================================================
    # Helper Methods
    # =========================================================================

    @classmethod
    def _init_metrics(cls):
        if cls._enable_metrics and cls._metrics is None:
            cls._metrics = _ConfigLoadMetrics()

    @classmethod
    def _record_error(cls, key: str, error: str) -> None:
        logging.warning(error)
        if cls._metrics:
            cls._metrics.record_validation_error(key, error)

    @classmethod
    def _safe_int(
        cls,
        key: str,
        default: int,
        min_val: Optional[int] = None,
        max_val: Optional[int] = None,
    ) -> int:
        """
        Safely parse integer from environment with validation.

        Parameters
        ----------
        key:
            Environment variable name.
        default:
            Default value if not set or invalid.
        min_val:
            Minimum allowed value (inclusive).
        max_val:
            Maximum allowed value (inclusive).

        Returns
        -------
        int
            Validated integer value.
        """
        cls._init_metrics()

        raw_value = os.getenv(key)

        if raw_value is None:
            if cls._metrics:
                cls._metrics.record_env_load(key, False, default, default)
            return default

        try:
            value = int(raw_value)
        except ValueError:
            cls._record_error(
                key, f"{key}='{raw_value}' is not a valid integer, using default {default}"
            )
            return default

        if min_val is not None and value < min_val:
            cls._record_error(
                key, f"{key}={value} is below minimum {min_val}, using default {default}"
            )
            return default

        if max_val is not None and value > max_val:
            cls._record_error(
                key, f"{key}={value} exceeds maximum {max_val}, using default {default}"
            )
            return default

        if cls._metrics:
            cls._metrics.record_env_load(key, True, value, default)
        return value

    @classmethod
    def _safe_bool(cls, key: str, default: Optional[bool]) -> Optional[bool]:
        """
        Safely parse boolean from environment.

        Recognizes: true/false, yes/no, 1/0, on/off (case-insensitive).
        """
        cls._init_metrics()

        raw_value = os.getenv(key)

        if raw_value is None:
            if cls._metrics:
                cls._metrics.record_env_load(key, False, default, default)
            return default

        normalized = raw_value.lower().strip()
        if normalized in {"true", "yes", "1", "on"}:
            value = True
        elif normalized in {"false", "no", "0", "off"}:
            value = False
        else:
            cls._record_error(
                key, f"{key}='{raw_value}' is not a valid boolean, using default {default}"
            )
            return default

        if cls._metrics:
            cls._metrics.record_env_load(key, True, value, default)
        return value

    @classmethod
    def _safe_str(cls, key: str, default: str, required: bool = False) -> str:
        """Safely get string from environment; records missing required keys."""
        cls._init_metrics()

        value = os.getenv(key, default)
        from_env = key in os.environ

        if cls._metrics:
            cls._metrics.record_env_load(key, from_env, value, default)

        if required and not value:
            error = f"Required environment variable {key} is not set"
            logging.error(error)
            if cls._metrics:
                cls._metrics.record_validation_error(key, error)

        return value

    @classmethod
    def _safe_list(cls, key: str, default: List[str]) -> List[str]:
        """
        Parse a comma-separated list, dropping blanks and duplicates while
        keeping the first-seen order.
        """
        cls._init_metrics()

        raw_value = os.getenv(key)
        if raw_value is None:
            if cls._metrics:
                cls._metrics.record_env_load(key, False, default, default)
            return list(default)

        items: List[str] = []
        for part in raw_value.split(","):
            item = part.strip()
            if item and item not in items:
                items.append(item)

        if not items:
            cls._record_error(key, f"{key} is empty, using default {list(default)}")
            return list(default)

        if cls._metrics:
            cls._metrics.record_env_load(key, True, items, default)
        return items

    # =========================================================================
    # Configuration Loading
    # =========================================================================

    @classmethod
    def load(cls) -> None:
        """Load all configuration from environment variables with validation."""
        cls._init_metrics()

        cls.ENVIRONMENT = cls._safe_str("ENVIRONMENT", "development")
        cls.DEBUG = bool(cls._safe_bool("DEBUG", False))
        cls.LOG_LEVEL = cls._safe_str("LOG_LEVEL", "INFO")
        cls.LOG_JSON = cls._safe_bool("LOG_JSON", None)
        cls.LOG_COLORS = bool(cls._safe_bool("LOG_COLORS", True))
        logs_dir = os.getenv("LOGS_DIR")
        if logs_dir:
            cls.LOGS_DIR = Path(logs_dir)

        cls.GEMINI_API_KEY = cls._safe_str("GEMINI_API_KEY", "")
        cls.GEMINI_MODELS = cls._safe_list("GEMINI_MODELS", list(DEFAULT_GEMINI_MODELS))
        cls.AI_RETRY_MAX_ATTEMPTS = cls._safe_int(
            "AI_RETRY_MAX_ATTEMPTS", 3, min_val=1, max_val=10
        )
        cls.AI_RETRY_BASE_DELAY_MS = cls._safe_int(
            "AI_RETRY_BASE_DELAY_MS", 1000, min_val=0, max_val=60_000
        )
        cls.AI_DEADLINE_SECONDS = cls._safe_int(
            "AI_DEADLINE_SECONDS", 0, min_val=0, max_val=3600
        )

        cls.YOUTUBE_API_KEY = cls._safe_str("YOUTUBE_API_KEY", "")
        cls.YOUTUBE_TIMEOUT_SECONDS = cls._safe_int(
            "YOUTUBE_TIMEOUT_SECONDS", 10, min_val=1, max_val=120
        )

        cls.DATABASE_URL = cls._safe_str(
            "DATABASE_URL", "sqlite+aiosqlite:///./skillforge.db"
        )
        cls.DATABASE_ECHO = bool(cls._safe_bool("DATABASE_ECHO", False))
        cls.DATABASE_POOL_SIZE = cls._safe_int(
            "DATABASE_POOL_SIZE", 5, min_val=1, max_val=200
        )
        cls.DATABASE_MAX_OVERFLOW = cls._safe_int(
            "DATABASE_MAX_OVERFLOW", 10, min_val=0, max_val=200
        )

        cls.LEADERBOARD_LIMIT = cls._safe_int("LEADERBOARD_LIMIT", 10, min_val=1, max_val=100)

        if cls._metrics:
            cls._metrics.last_reload = datetime.now(timezone.utc).isoformat()

    @classmethod
    def validate(cls) -> None:
        """
        Validate critical configuration values on startup.

        Raises
        ------
        ValueError:
            If required config values are missing in production.
        """
        if cls._validated:
            return

        logger = logging.getLogger(__name__)
        cls.load()

        problems: List[str] = []
        if not cls.GEMINI_API_KEY:
            problems.append("GEMINI_API_KEY environment variable is required")
        if not cls.DATABASE_URL:
            problems.append("DATABASE_URL environment variable is required")

        valid_log_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if cls.LOG_LEVEL.upper() not in valid_log_levels:
            logger.warning(f"Invalid LOG_LEVEL '{cls.LOG_LEVEL}', using INFO")
            cls.LOG_LEVEL = "INFO"

        if cls.is_production():
            if cls.DATABASE_URL.startswith("sqlite"):
                logger.warning("Production environment using SQLite document store")
            if cls.DEBUG:
                logger.warning("DEBUG mode enabled in production!")

        if problems:
            for problem in problems:
                logger.warning(problem)
            if cls.is_production():
                raise ValueError("; ".join(problems))

        cls._validated = True

        if cls._metrics:
            logger.info("Configuration loaded", extra=cls._metrics.get_summary())
            if cls._metrics.validation_errors:
                logger.warning(
                    "Configuration warnings",
                    extra={"validation_errors": cls._metrics.validation_errors},
                )

    # =========================================================================
    # Environment Checks
    # =========================================================================

    @classmethod
    def is_production(cls) -> bool:
        return cls.ENVIRONMENT.lower() == "production"

    @classmethod
    def is_development(cls) -> bool:
        return cls.ENVIRONMENT.lower() == "development"

    @classmethod
    def is_testing(cls) -> bool:
        return cls.ENVIRONMENT.lower() == "testing"

    # =========================================================================
    # Metrics & Summary
    # =========================================================================

    @classmethod
    def get_metrics(cls) -> Optional[_ConfigLoadMetrics]:
        return cls._metrics

    @classmethod
    def get_config_summary(cls) -> Dict[str, Any]:
        """Non-sensitive configuration summary for debugging."""
        return {
            "environment": cls.ENVIRONMENT,
            "debug": cls.DEBUG,
            "log_level": cls.LOG_LEVEL,
            "gemini_models": list(cls.GEMINI_MODELS),
            "ai_retry_max_attempts": cls.AI_RETRY_MAX_ATTEMPTS,
            "ai_retry_base_delay_ms": cls.AI_RETRY_BASE_DELAY_MS,
            "ai_deadline_seconds": cls.AI_DEADLINE_SECONDS,
            "database_scheme": cls.DATABASE_URL.split(":", 1)[0] if cls.DATABASE_URL else None,
            "gemini_api_key_set": bool(cls.GEMINI_API_KEY),
            "youtube_api_key_set": bool(cls.YOUTUBE_API_KEY),
        }


Config.load()
