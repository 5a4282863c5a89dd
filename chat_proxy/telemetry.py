"""Logging and telemetry for the chat proxy.

Emits structured log records to stdout and appends them to an append-only
log file for local review.
"""

import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger("chat_proxy")


def setup_logging(log_file: Optional[str]) -> None:
    """Configure the chat proxy logger with stdout and file handlers.

    Args:
        log_file: Path to the append-only log file, or None for stdout only.
    """
    logger.setLevel(logging.INFO)

    if not logger.handlers:
        stdout_handler = logging.StreamHandler()
        stdout_handler.setLevel(logging.INFO)
        stdout_fmt = logging.Formatter(
            "%(asctime)s [%(levelname)s] %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S",
        )
        stdout_handler.setFormatter(stdout_fmt)
        logger.addHandler(stdout_handler)

        if log_file:
            log_path = Path(log_file)
            os.makedirs(log_path.parent, exist_ok=True)
            file_handler = logging.FileHandler(log_path, mode="a")
            file_handler.setLevel(logging.INFO)
            file_handler.setFormatter(stdout_fmt)
            logger.addHandler(file_handler)


def log_request(
    *,
    identity: str,
    outcome: str,
    status: int,
    error: Optional[str] = None,
    request_id: Optional[str] = None,
    model: Optional[str] = None,
) -> None:
    """Log a single chat request event as one JSON line.

    Args:
        identity: The client identity used for rate limiting.
        outcome: Short outcome label (e.g. "success", "rate_limited").
        status: HTTP status returned to the client.
        error: Internal error detail, if the request failed.
        request_id: Proxy-assigned request ID.
        model: Backend model identifier, when the backend was reached.
    """
    record: Dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "request_id": request_id,
        "identity": identity,
        "outcome": outcome,
        "status": status,
    }

    if model:
        record["model"] = model

    if error:
        record["error"] = error
        logger.warning(json.dumps(record))
    else:
        logger.info(json.dumps(record))
