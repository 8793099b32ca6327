"""Structured logging setup for Regenlock."""

import structlog
from pathlib import Path
from typing import Any
import os


def configure_logging() -> None:
    """
    Configure structlog for JSON logging to ~/.cache/regenlock/logs/regenlock.log.

    The level comes from REGENLOCK_LOG_LEVEL (DEBUG, INFO, WARNING or ERROR;
    anything else falls back to INFO). What each level adds:

    - DEBUG: edit_started, edit_cancelled, item_not_found, generator_request_body,
      atomic_write_success
    - INFO: version_created, version_deleted, edit_committed, edit_reset,
      regeneration_started, regeneration_finished, drift_check_clean,
      export_started, export_finished
    - WARNING: edit_rejected_empty, edit_rejected_busy, drift_detected,
      export_item_failed, artifact_fetch_error
    - ERROR: generator_http_error, generator_invalid_payload, export_write_failed,
      export_manifest_failed, config_permission_error

    Regeneration and export events carry version_id; edit events carry item_id.

    Example:
        REGENLOCK_LOG_LEVEL=DEBUG regenlock export versions.json --out ./exports

        # Follow one export run
        tail -f ~/.cache/regenlock/logs/regenlock.log | jq 'select(.event | startswith("export_"))'
    """
    log_dir = Path.home() / ".cache" / "regenlock" / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "regenlock.log"

    log_level = os.environ.get("REGENLOCK_LOG_LEVEL", "INFO").upper()

    valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR"]
    if log_level not in valid_levels:
        log_level = "INFO"

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.WriteLoggerFactory(file=open(log_file, "a")),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> Any:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (typically __name__ of calling module)

    Returns:
        Structured logger instance

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("version_created", version_id="...", item_count=3)
    """
    return structlog.get_logger(name)
