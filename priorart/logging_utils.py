"""
Structured logging helpers.

Every pipeline event is emitted as a single JSON line on the
"priorart.events" logger so that stage progress, failures and analysis
metrics can be parsed by log tooling. Ordinary module loggers keep the
plain text format set up by configure_logging().

Usage:
    from priorart.logging_utils import structured_log

    structured_log("INFO", "stage_started", stage="fetch", filing_id="abc")
"""

import json
import logging
from datetime import datetime
from typing import Any

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Configure event logger
logger = logging.getLogger("priorart.events")
logger.setLevel(logging.INFO)
logger.propagate = False


# JSON formatter for structured logging
class JSONFormatter(logging.Formatter):
    def format(self, record):
        if isinstance(record.msg, dict):
            return json.dumps(record.msg, default=str)
        return super().format(record)


# Add handler if not already present
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(JSONFormatter())
    logger.addHandler(handler)


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging for worker processes and scripts."""
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=numeric_level,
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler()],
    )
    logger.setLevel(numeric_level)


def structured_log(level: str, event: str, **kwargs: Any) -> None:
    """
    Emit structured log message with context.

    Usage:
        structured_log("INFO", "job_started", job_id="abc", filing_id="xyz")
    """
    log_data = {
        "event": event,
        "timestamp": datetime.utcnow().isoformat(),
        **kwargs
    }

    if level == "DEBUG":
        logger.debug(log_data)
    elif level == "INFO":
        logger.info(log_data)
    elif level == "WARNING":
        logger.warning(log_data)
    elif level == "ERROR":
        logger.error(log_data)
    else:
        logger.info(log_data)


def log_analysis_metrics(filing_id: str, **metrics: Any) -> None:
    """Log the outcome of a similarity analysis run."""
    structured_log("INFO", "analysis_metrics", filing_id=filing_id, **metrics)
