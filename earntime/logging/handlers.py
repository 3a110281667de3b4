"""
JSONL output for the timer and ledger logs.

Entries arrive as the JSON produced by TimerLogEntry.to_json() or
LedgerLogEntry.to_json(); anything else (a plain warning, an exception)
is wrapped so every line in timer.jsonl and ledger.jsonl parses as one
JSON object tagged with the stream it belongs to.
"""

import json
import logging
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any


class EntryFormatter(logging.Formatter):
    """Renders a record as a single-line JSON object for one log stream."""

    def __init__(self, stream: str):
        super().__init__()
        self.stream = stream

    def format(self, record: logging.LogRecord) -> str:
        return json.dumps(self.to_dict(record), default=str)

    def to_dict(self, record: logging.LogRecord) -> dict[str, Any]:
        message = record.getMessage()
        try:
            data = json.loads(message)
        except json.JSONDecodeError:
            data = None

        if not isinstance(data, dict):
            data = {
                "timestamp": datetime.fromtimestamp(record.created).isoformat(),
                "level": record.levelname,
                "message": message,
                "logger": record.name,
            }
            if record.exc_info and record.exc_info[1] is not None:
                data["error_type"] = type(record.exc_info[1]).__name__
                data["error"] = str(record.exc_info[1])

        data.setdefault("stream", self.stream)
        return data


class JSONLRotatingHandler(RotatingFileHandler):
    """
    Size-rotated JSONL file.

    The file is opened on the first record, so a logger that never fires
    leaves nothing on disk.
    """

    def __init__(
        self,
        filename: str | Path,
        max_bytes: int = 5_000_000,
        backup_count: int = 3,
    ):
        path = Path(filename)
        path.parent.mkdir(parents=True, exist_ok=True)
        super().__init__(
            str(path),
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
            delay=True,
        )


def create_jsonl_logger(
    name: str,
    filepath: Path,
    level: str = "INFO",
    max_bytes: int = 5_000_000,
    backup_count: int = 3,
) -> logging.Logger:
    """
    Build (or rebuild) the logger for one EarnTime stream.

    Args:
        name: Logger name; the last dotted part ("timer", "ledger") tags each line
        filepath: JSONL file to write
        level: DEBUG, INFO, WARNING or ERROR
        max_bytes: Size at which the file rotates
        backup_count: Rotated files to keep

    Returns:
        Logger writing only to filepath
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    # A new config replaces the old file, it does not add a second one
    for existing in list(logger.handlers):
        logger.removeHandler(existing)
        existing.close()

    handler = JSONLRotatingHandler(filepath, max_bytes=max_bytes, backup_count=backup_count)
    handler.setFormatter(EntryFormatter(stream=name.rsplit(".", 1)[-1]))
    logger.addHandler(handler)
    logger.propagate = False

    return logger
