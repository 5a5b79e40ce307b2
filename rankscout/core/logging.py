"""Centralized logging configuration with JSON-formatted extras."""

import json
import logging
import sys

_RESERVED_ATTRS = frozenset(logging.LogRecord("", 0, "", 0, "", None, None).__dict__) | {
    "asctime",
    "message",
    "taskName",
}


class JSONExtrasFormatter(logging.Formatter):
    """Render `timestamp | LEVEL | logger | message {extras}` lines.

    Anything passed through ``extra=`` is appended as a JSON object, so job ids,
    keyword counts and failure classes stay greppable.
    """

    def format(self, record: logging.LogRecord) -> str:
        record.message = record.getMessage()
        timestamp = self.formatTime(record, self.datefmt)
        line = f"{timestamp} | {record.levelname:<8} | {record.name} | {record.message}"

        extras = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RESERVED_ATTRS and not key.startswith("_")
        }
        if extras:
            try:
                line = f"{line} {json.dumps(extras, default=str, ensure_ascii=False)}"
            except (TypeError, ValueError):
                line = f"{line} {extras!r}"

        if record.exc_info and not record.exc_text:
            record.exc_text = self.formatException(record.exc_info)
        if record.exc_text:
            line = f"{line}\n{record.exc_text}"

        return line


def setup_logging(level: int = logging.INFO) -> None:
    """Configure the 'rankscout' logger once with stdout output."""
    logger = logging.getLogger("rankscout")
    logger.setLevel(level)

    if logger.handlers:
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(JSONExtrasFormatter(datefmt="%Y-%m-%d %H:%M:%S"))
    logger.addHandler(handler)

    # Keep output single-sourced when the root logger is configured too
    logger.propagate = False
