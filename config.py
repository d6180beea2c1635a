"""
Configuration management for grab.
Loads ambient settings from environment variables with sensible defaults.

Search behaviour (pattern, flags, concurrency) comes from the command line
only; the environment controls logging.
"""

import os
from dotenv import load_dotenv

# Load .env file if present
load_dotenv()


class Settings:
    """Application settings loaded from environment."""

    # Application
    APP_NAME: str = "grab"
    APP_VERSION: str = "1.0.3"

    # Logging
    LOG_LEVEL: str = os.getenv("GRAB_LOG_LEVEL", "WARNING").upper()

    # ==========================================================================
    # Search engine limits
    # ==========================================================================

    # Maximum number of files searched at the same time.
    # Bounds open file descriptors and memory on large trees.
    DEFAULT_MAX_CONCURRENCY: int = 500

    # Capacity of the result channel between workers and the aggregator
    RESULT_BUFFER_SIZE: int = 5000

    # Bytes sampled from the start of a file by the binary detector
    BINARY_SAMPLE_SIZE: int = 1024

    VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

    @classmethod
    def validate(cls) -> list[str]:
        """Validate settings. Returns list of invalid settings."""
        issues = []

        if cls.LOG_LEVEL not in cls.VALID_LOG_LEVELS:
            issues.append(
                f"GRAB_LOG_LEVEL={cls.LOG_LEVEL!r} is not one of {', '.join(cls.VALID_LOG_LEVELS)}"
            )

        return issues

    @classmethod
    def log_level(cls) -> str:
        """Effective log level name, falling back to WARNING when invalid."""
        if cls.LOG_LEVEL in cls.VALID_LOG_LEVELS:
            return cls.LOG_LEVEL
        return "WARNING"


settings = Settings()
