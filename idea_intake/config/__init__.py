"""
Configuration module.

Handles environment variables, API keys, and application settings.
"""

from idea_intake.config.config import (
    APP_ENV,
    DEBUG,
    LOG_LEVEL,
    LLM_PROVIDER,
    GROQ_API_KEY,
    ANTHROPIC_API_KEY,
    LLM_MODEL,
    SYSTEM_PROMPT_FILE,
    LLM_TIMEOUT,
    RATE_LIMIT_PER_USER,
    RATE_LIMIT_GLOBAL,
    RATE_LIMIT_RESET_MINUTES,
    DUPLICATE_WINDOW,
    ALLOWED_CHATS,
    SQLITE_PATH,
    WEB_HOST,
    WEB_PORT,
    WEB_USERNAME,
    WEB_PASSWORD,
    WEB_BASE_URL,
    IntakeSettings,
    is_production,
    is_development,
    validate_config,
    print_config_summary,
)

__all__ = [
    "APP_ENV",
    "DEBUG",
    "LOG_LEVEL",
    "LLM_PROVIDER",
    "GROQ_API_KEY",
    "ANTHROPIC_API_KEY",
    "LLM_MODEL",
    "SYSTEM_PROMPT_FILE",
    "LLM_TIMEOUT",
    "RATE_LIMIT_PER_USER",
    "RATE_LIMIT_GLOBAL",
    "RATE_LIMIT_RESET_MINUTES",
    "DUPLICATE_WINDOW",
    "ALLOWED_CHATS",
    "SQLITE_PATH",
    "WEB_HOST",
    "WEB_PORT",
    "WEB_USERNAME",
    "WEB_PASSWORD",
    "WEB_BASE_URL",
    "IntakeSettings",
    "is_production",
    "is_development",
    "validate_config",
    "print_config_summary",
]
