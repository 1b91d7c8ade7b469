"""Structured logging for coursesync runs."""

from __future__ import annotations

import json
import re
import sys
from datetime import UTC, datetime
from typing import Any, TextIO

from pydantic import BaseModel, SecretStr, field_validator


LEVELS: dict[str, int] = {"DEBUG": 10, "INFO": 20, "WARNING": 30, "ERROR": 40}

# Remote URLs end up in push diagnostics; never echo embedded credentials.
_CREDENTIAL_PATTERNS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"https://[^:/@\s]+:[^@\s]+@", re.IGNORECASE), "https://***:***@"),
    (re.compile(r"token[=:]\s*\S+", re.IGNORECASE), "token=***"),
    (re.compile(r"password[=:]\s*\S+", re.IGNORECASE), "password=***"),
)


class _MaskedText(BaseModel):
    """Log text with credentials replaced before it is kept."""

    text: SecretStr

    @field_validator("text", mode="before")
    @classmethod
    def _mask(cls, value: Any) -> str:
        text = str(value)
        for pattern, replacement in _CREDENTIAL_PATTERNS:
            text = pattern.sub(replacement, text)
        return text


def _masked(value: Any) -> Any:
    """Mask strings, and strings inside command lists, leaving other values alone."""
    if isinstance(value, str):
        return _MaskedText(text=value).text.get_secret_value()
    if isinstance(value, (list, tuple)):
        return [_masked(item) for item in value]
    return value


class StructuredLogger:
    """Logger writing one record per line, as JSON or as readable text."""

    def __init__(
        self,
        *,
        name: str,
        json_mode: bool = False,
        stream: TextIO | None = None,
        level: str = "DEBUG",
    ) -> None:
        """Create a logger dropping records below ``level``; ``stream`` defaults to stderr."""
        if level not in LEVELS:
            msg = f"unknown log level: {level}"
            raise ValueError(msg)
        self._name = name
        self._json_mode = json_mode
        self._stream: TextIO = stream if stream is not None else sys.stderr
        self._threshold = LEVELS[level]

    @property
    def name(self) -> str:
        """Return the logger name."""
        return self._name

    @property
    def json_mode(self) -> bool:
        """Return whether records are written as JSON lines."""
        return self._json_mode

    def debug(self, message: str, **fields: Any) -> None:
        """Log a DEBUG-level message."""
        self._log("DEBUG", message, fields)

    def info(self, message: str, **fields: Any) -> None:
        """Log an INFO-level message."""
        self._log("INFO", message, fields)

    def warning(self, message: str, **fields: Any) -> None:
        """Log a WARNING-level message."""
        self._log("WARNING", message, fields)

    def error(self, message: str, **fields: Any) -> None:
        """Log an ERROR-level message."""
        self._log("ERROR", message, fields)

    def _log(self, level: str, message: str, fields: dict[str, Any]) -> None:
        if LEVELS[level] < self._threshold:
            return
        timestamp = datetime.now(UTC).isoformat()
        message = _masked(message)
        masked_fields = {key: _masked(value) for key, value in fields.items()}
        if self._json_mode:
            line = self._json_line(timestamp, level, message, masked_fields)
        else:
            line = self._text_line(timestamp, level, message, masked_fields)
        self._stream.write(line + "\n")
        self._stream.flush()

    def _json_line(self, timestamp: str, level: str, message: str, fields: dict[str, Any]) -> str:
        record: dict[str, Any] = {
            "timestamp": timestamp,
            "level": level,
            "logger": self._name,
            "message": message,
            **fields,
        }
        return json.dumps(record, ensure_ascii=False)

    def _text_line(self, timestamp: str, level: str, message: str, fields: dict[str, Any]) -> str:
        line = f"[{timestamp}] {level:<7} {self._name}: {message}"
        if not fields:
            return line
        extras = " ".join(f"{key}={json.dumps(value, ensure_ascii=False)}" for key, value in fields.items())
        return f"{line} | {extras}"


__all__ = ["LEVELS", "StructuredLogger"]
