"""
docsearch Configuration

Central settings loaded from environment variables.
"""

import os
from dataclasses import dataclass
from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class Settings:
    """Immutable application settings."""

    # --- Versioning ---
    VERSION: str = "0.3.0"
    API_VERSION: str = "1"

    # --- Matching Engine ---
    # workers=1 scans serially. Documents shorter than the threshold are
    # always scanned serially, whatever the worker count.
    WORKERS: int = int(os.getenv("DOCSEARCH_WORKERS", "1"))
    PARALLEL_THRESHOLD: int = int(
        os.getenv("DOCSEARCH_PARALLEL_THRESHOLD", "2048")
    )

    # --- Regex Cache ---
    REGEX_CACHE_SIZE: int = int(os.getenv("DOCSEARCH_REGEX_CACHE_SIZE", "4096"))

    # --- Rules ---
    RULES_PATH: str = os.getenv("DOCSEARCH_RULES_PATH", "")

    # --- Server ---
    HOST: str = os.getenv("DOCSEARCH_HOST", "0.0.0.0")
    PORT: int = int(os.getenv("DOCSEARCH_PORT", "8000"))

    # --- CORS ---
    CORS_ORIGINS: str = os.getenv("DOCSEARCH_CORS_ORIGINS", "*")


settings = Settings()
