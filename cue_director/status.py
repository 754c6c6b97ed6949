"""
Status reporting for the director.

The director publishes a single human-readable status line (latest wins)
plus a structured record of it. Each update is mirrored to the
``cue_director.status`` logger at the matching level.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Callable

logger = logging.getLogger(__name__)


class StatusLevel(Enum):
    """Status severities."""

    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"

    @property
    def numeric(self) -> int:
        """Get numeric log level."""
        return {
            "info": logging.INFO,
            "success": logging.INFO,
            "warning": logging.WARNING,
            "error": logging.ERROR,
        }[self.value]


@dataclass
class StatusRecord:
    """A published status.

    Attributes:
        message: Human-readable status line.
        level: Severity.
        timestamp: Unix timestamp.
        data: Additional structured data.
    """

    message: str
    level: StatusLevel = StatusLevel.INFO
    timestamp: float = field(default_factory=time.time)
    data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        d = asdict(self)
        d["level"] = self.level.value
        d.update(d.pop("data", {}))
        return d


StatusListener = Callable[[StatusRecord], None]


class StatusBoard:
    """Latest-wins status channel.

    Example:
        board = StatusBoard(listener=lambda rec: print(rec.message))
        board.update("Mode changed to: HORROR")
        board.error("Failed to load sound: door creak")
        board.message   # "Failed to load sound: door creak"
    """

    def __init__(self, listener: StatusListener | None = None):
        self._listener = listener
        self._latest: StatusRecord | None = None
        self._count = 0

    def update(self, message: str, level: StatusLevel = StatusLevel.INFO, **data: Any) -> StatusRecord:
        """Publish a status, replacing the previous one."""
        record = StatusRecord(message=message, level=level, data=data)
        self._latest = record
        self._count += 1
        logger.log(level.numeric, "Status: %s", message)

        if self._listener is not None:
            try:
                self._listener(record)
            except Exception as e:
                logger.warning(f"Status listener failed: {e}")
        return record

    def info(self, message: str, **data: Any) -> StatusRecord:
        return self.update(message, StatusLevel.INFO, **data)

    def success(self, message: str, **data: Any) -> StatusRecord:
        return self.update(message, StatusLevel.SUCCESS, **data)

    def warning(self, message: str, **data: Any) -> StatusRecord:
        return self.update(message, StatusLevel.WARNING, **data)

    def error(self, message: str, **data: Any) -> StatusRecord:
        return self.update(message, StatusLevel.ERROR, **data)

    @property
    def latest(self) -> StatusRecord | None:
        return self._latest

    @property
    def message(self) -> str:
        return self._latest.message if self._latest else ""

    @property
    def update_count(self) -> int:
        return self._count
