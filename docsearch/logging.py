"""
docsearch Logging — Structured Records on stderr

The API service logs JSON lines (one object per record). The CLI logs
plain text by default so an operator can read it next to the results.
Both go to stderr, leaving stdout to the CLI's JSON-lines output.

Context travels in `extra=` and only the known keys in STRUCTURED_FIELDS
are emitted:

    logger = get_logger("rules")
    logger.warning("Rule BA_PENYITAAN failed to compile",
                   extra={"rule_id": "BA_PENYITAAN", "line": 14, "column": 9})

Environment:
    DOCSEARCH_LOG_LEVEL   DEBUG / INFO / WARNING / ERROR   (default INFO)
    DOCSEARCH_LOG_FORMAT  json / text                      (default json)
"""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime, timezone


LOG_LEVEL = os.getenv("DOCSEARCH_LOG_LEVEL", "INFO").upper()
LOG_FORMAT = os.getenv("DOCSEARCH_LOG_FORMAT", "json")

# Compile failures
_COMPILE_FIELDS = ("rule_id", "error", "line", "column")
# Scoring and rule loading
_SCORING_FIELDS = ("score", "lines_count", "rules_count", "workers",
                   "duration_ms", "cache_entries")
# HTTP requests
_REQUEST_FIELDS = ("path", "method", "status_code")

STRUCTURED_FIELDS = _COMPILE_FIELDS + _SCORING_FIELDS + _REQUEST_FIELDS


def structured_fields(record: logging.LogRecord) -> dict:
    """The known context fields set on a record, in STRUCTURED_FIELDS order."""
    fields = {}
    for key in STRUCTURED_FIELDS:
        value = getattr(record, key, None)
        if value is not None:
            fields[key] = value
    return fields


class JSONFormatter(logging.Formatter):
    """One JSON object per record, for the API service."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(structured_fields(record))

        if record.exc_info and record.exc_info[0]:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


class TextFormatter(logging.Formatter):
    """Readable one-liners for the CLI. Context is appended as key=value."""

    def __init__(self):
        super().__init__(
            fmt="%(asctime)s [%(levelname)-8s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        text = super().format(record)
        fields = structured_fields(record)
        if not fields:
            return text
        context = " ".join(f"{key}={value}" for key, value in fields.items())
        head, sep, rest = text.partition("\n")
        return f"{head} ({context}){sep}{rest}"


def setup_logging(fmt: str = LOG_FORMAT, stream=None) -> logging.Logger:
    """
    Install a single handler on the `docsearch` logger.

    Safe to call again (the CLI and the API lifespan both call it);
    earlier handlers are replaced, not stacked.
    """
    root = logging.getLogger("docsearch")
    root.setLevel(getattr(logging, LOG_LEVEL, logging.INFO))
    root.handlers.clear()

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(JSONFormatter() if fmt == "json" else TextFormatter())
    root.addHandler(handler)

    # Request lines are logged by the API middleware already
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    return root


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(f"docsearch.{name}")
