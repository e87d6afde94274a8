"""
Configuration module.

Handles environment variables, database connection and job settings.
"""

from src.config.config import (
    APP_ENV,
    DEBUG,
    MONGODB_URI,
    MONGODB_DB_NAME,
    MONGODB_TIMEOUT_MS,
    USERS_COLLECTION,
    INTERACTIONS_COLLECTION,
    CONTENTS_COLLECTION,
    ACTIVE_USER_WINDOW_HOURS,
    INTEREST_UPDATE_MAX_ATTEMPTS,
    is_production,
    is_development,
    validate_config,
    print_config_summary,
)

__all__ = [
    "APP_ENV",
    "DEBUG",
    "MONGODB_URI",
    "MONGODB_DB_NAME",
    "MONGODB_TIMEOUT_MS",
    "USERS_COLLECTION",
    "INTERACTIONS_COLLECTION",
    "CONTENTS_COLLECTION",
    "ACTIVE_USER_WINDOW_HOURS",
    "INTEREST_UPDATE_MAX_ATTEMPTS",
    "is_production",
    "is_development",
    "validate_config",
    "print_config_summary",
]
