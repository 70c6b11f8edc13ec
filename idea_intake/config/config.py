"""
Configuration module for Idea Intake.

Loads environment variables from .env file and exposes them as typed configuration values.
Uses python-dotenv for loading and provides safe defaults where appropriate.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# Load .env file from project root
# The .env file should be in the root directory (parent of idea_intake/)
_project_root = Path(__file__).parent.parent.parent
_env_path = _project_root / ".env"
load_dotenv(_env_path)


def _parse_chat_ids(raw: str) -> List[int]:
    """Parse a comma-separated list of chat IDs, skipping invalid entries."""
    chat_ids = []
    for part in raw.split(","):
        part = part.strip()
        if not part:
            continue
        try:
            chat_ids.append(int(part))
        except ValueError:
            logger.warning("Invalid chat ID %r in ALLOWED_CHATS, skipping", part)
    return chat_ids


# =============================================================================
# Application Environment
# =============================================================================

# Application environment: "development", "staging", or "production"
APP_ENV: str = os.getenv("APP_ENV", "development")

# Enable debug mode for verbose logging
DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"

# Root log level (DEBUG, INFO, WARNING, ERROR)
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "DEBUG" if DEBUG else "INFO").upper()


# =============================================================================
# Language Model Configuration
# =============================================================================

# Which backend serves completions: "groq" or "anthropic"
LLM_PROVIDER: str = os.getenv("LLM_PROVIDER", "groq").lower()

# Groq API key (free tier, OpenAI-compatible chat completions)
GROQ_API_KEY: str = os.getenv("GROQ_API_KEY", "")

# Anthropic API key (Messages API)
ANTHROPIC_API_KEY: str = os.getenv("ANTHROPIC_API_KEY", "")

# Model identifier passed to the provider
LLM_MODEL: str = os.getenv(
    "LLM_MODEL",
    "claude-sonnet-4-20250514" if LLM_PROVIDER == "anthropic" else "llama-3.3-70b-versatile",
)

# Optional path to an operator-supplied instruction template for enrichment
SYSTEM_PROMPT_FILE: str = os.getenv("SYSTEM_PROMPT_FILE", "")

# Total budget in seconds for the external calls of one submission
LLM_TIMEOUT: float = float(os.getenv("LLM_TIMEOUT", "60"))


# =============================================================================
# Intake Configuration
# =============================================================================

# Ideas a single submitter may send per hour
RATE_LIMIT_PER_USER: int = int(os.getenv("RATE_LIMIT_PER_USER", "5"))

# Ideas accepted per hour across all submitters
RATE_LIMIT_GLOBAL: int = int(os.getenv("RATE_LIMIT_GLOBAL", "50"))

# How often per-user rate limit state is cleared (minutes)
RATE_LIMIT_RESET_MINUTES: int = int(os.getenv("RATE_LIMIT_RESET_MINUTES", "60"))

# How many recent active ideas are compared against a new submission
DUPLICATE_WINDOW: int = int(os.getenv("DUPLICATE_WINDOW", "100"))

# Chats the bot accepts submissions from (empty = any chat)
ALLOWED_CHATS: List[int] = _parse_chat_ids(os.getenv("ALLOWED_CHATS", ""))


# =============================================================================
# Storage Configuration
# =============================================================================

# SQLite database file
SQLITE_PATH: str = os.getenv("SQLITE_PATH", "./ideas.db")


# =============================================================================
# Moderation Web API
# =============================================================================

WEB_HOST: str = os.getenv("WEB_HOST", "127.0.0.1")
WEB_PORT: int = int(os.getenv("WEB_PORT", "8080"))

# Basic auth credentials; auth is disabled when either is empty
WEB_USERNAME: str = os.getenv("WEB_USERNAME", "")
WEB_PASSWORD: str = os.getenv("WEB_PASSWORD", "")

# Public URL used for links in chat replies
WEB_BASE_URL: str = os.getenv("WEB_BASE_URL", "http://localhost:8080")


# =============================================================================
# Settings Snapshot
# =============================================================================

@dataclass(frozen=True)
class IntakeSettings:
    """
    Explicit snapshot of the values the intake components need.

    Components receive this at construction instead of reading module
    globals, so tests can build them with any values they like.
    """
    rate_limit_per_user: int = 5
    rate_limit_global: int = 50
    rate_limit_reset_minutes: int = 60
    duplicate_window: int = 100
    llm_provider: str = "groq"
    llm_model: str = "llama-3.3-70b-versatile"
    llm_api_key: str = ""
    llm_timeout: float = 60.0
    system_prompt_file: str = ""
    sqlite_path: str = "./ideas.db"
    allowed_chats: Tuple[int, ...] = field(default_factory=tuple)
    web_base_url: str = "http://localhost:8080"

    @classmethod
    def from_env(cls) -> "IntakeSettings":
        """Build settings from the module-level configuration."""
        api_key = ANTHROPIC_API_KEY if LLM_PROVIDER == "anthropic" else GROQ_API_KEY
        return cls(
            rate_limit_per_user=RATE_LIMIT_PER_USER,
            rate_limit_global=RATE_LIMIT_GLOBAL,
            rate_limit_reset_minutes=RATE_LIMIT_RESET_MINUTES,
            duplicate_window=DUPLICATE_WINDOW,
            llm_provider=LLM_PROVIDER,
            llm_model=LLM_MODEL,
            llm_api_key=api_key,
            llm_timeout=LLM_TIMEOUT,
            system_prompt_file=SYSTEM_PROMPT_FILE,
            sqlite_path=SQLITE_PATH,
            allowed_chats=tuple(ALLOWED_CHATS),
            web_base_url=WEB_BASE_URL,
        )


# =============================================================================
# Helper Functions
# =============================================================================

def is_production() -> bool:
    """Check if running in production environment."""
    return APP_ENV == "production"


def is_development() -> bool:
    """Check if running in development environment."""
    return APP_ENV == "development"


def validate_config() -> list[str]:
    """
    Validate that required configuration is present and sane.

    Returns:
        List of missing or invalid configuration keys (empty if all valid).
    """
    errors = []

    if LLM_PROVIDER not in ("groq", "anthropic"):
        errors.append(f"LLM_PROVIDER must be 'groq' or 'anthropic', got {LLM_PROVIDER!r}")

    if is_production():
        if LLM_PROVIDER == "groq" and not GROQ_API_KEY:
            errors.append("GROQ_API_KEY is required in production")
        if LLM_PROVIDER == "anthropic" and not ANTHROPIC_API_KEY:
            errors.append("ANTHROPIC_API_KEY is required in production")
        if not (WEB_USERNAME and WEB_PASSWORD):
            errors.append("WEB_USERNAME and WEB_PASSWORD are required in production")

    if RATE_LIMIT_PER_USER < 1:
        errors.append("RATE_LIMIT_PER_USER must be at least 1")

    if RATE_LIMIT_GLOBAL < 1:
        errors.append("RATE_LIMIT_GLOBAL must be at least 1")

    if DUPLICATE_WINDOW < 0:
        errors.append("DUPLICATE_WINDOW cannot be negative")

    if RATE_LIMIT_RESET_MINUTES < 1:
        errors.append("RATE_LIMIT_RESET_MINUTES must be at least 1")

    if LLM_TIMEOUT <= 0:
        errors.append("LLM_TIMEOUT must be positive")

    return errors


def print_config_summary() -> None:
    """Print a summary of current configuration (safe for logs, no secrets)."""
    print(f"  APP_ENV: {APP_ENV}")
    print(f"  DEBUG: {DEBUG}")
    print(f"  LOG_LEVEL: {LOG_LEVEL}")
    print(f"  LLM_PROVIDER: {LLM_PROVIDER}")
    print(f"  LLM_MODEL: {LLM_MODEL}")
    print(f"  GROQ_API_KEY: {'***' if GROQ_API_KEY else '(not set)'}")
    print(f"  ANTHROPIC_API_KEY: {'***' if ANTHROPIC_API_KEY else '(not set)'}")
    print(f"  SYSTEM_PROMPT_FILE: {SYSTEM_PROMPT_FILE or '(default)'}")
    print(f"  LLM_TIMEOUT: {LLM_TIMEOUT}s")
    print(f"  RATE_LIMIT_PER_USER: {RATE_LIMIT_PER_USER}/h")
    print(f"  RATE_LIMIT_GLOBAL: {RATE_LIMIT_GLOBAL}/h")
    print(f"  DUPLICATE_WINDOW: {DUPLICATE_WINDOW}")
    print(f"  ALLOWED_CHATS: {ALLOWED_CHATS or '(any)'}")
    print(f"  SQLITE_PATH: {SQLITE_PATH}")
    print(f"  WEB: {WEB_HOST}:{WEB_PORT} (auth {'on' if WEB_USERNAME and WEB_PASSWORD else 'off'})")
    print(f"  WEB_BASE_URL: {WEB_BASE_URL}")
