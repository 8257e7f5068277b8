"""
Simple configuration management.

The ``Settings`` dataclass reads configuration directly from environment
variables, with defaults for every field, so the service can start
without any configuration file.  Override values via environment
variables in production.
"""

import os
from dataclasses import dataclass


@dataclass
class Settings:
    """Application settings loaded from environment variables."""

    project_name: str = os.getenv("PROJECT_NAME", "Turf Platform API")
    api_version: str = os.getenv("API_VERSION", "1.0.0")
    debug: bool = os.getenv("DEBUG", "false").lower() in {"1", "true", "yes"}
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    # Optional path of a log file in addition to console output.
    log_file: str = os.getenv("LOG_FILE", "")

    # Path of the SQLite database holding the ``turfs`` and ``bookings``
    # collections.  Relative paths are resolved against the project root
    # by the ``db`` module.  The special value ``memory`` selects the
    # in-memory store, which is useful for demos and local runs.
    database_url: str = os.getenv("DATABASE_URL", "turf_platform.db")

    # Push delivery endpoint.  When empty, notifications are only logged.
    push_webhook_url: str = os.getenv("PUSH_WEBHOOK_URL", "")
    # Bearer token sent with each push request, if set.
    push_webhook_token: str = os.getenv("PUSH_WEBHOOK_TOKEN", "")
    push_timeout_seconds: float = float(os.getenv("PUSH_TIMEOUT_SECONDS", "10"))


# Instantiate settings once so other modules can import it without
# repeatedly reading environment variables.  Environment variables must
# be set before this module is imported.
settings = Settings()
