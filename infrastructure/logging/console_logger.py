# infrastructure/logging/console_logger.py
from __future__ import annotations

import json
import sys
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, TextIO

from application.ports.logger import LEVELS, LoggerPort


@dataclass(frozen=True)
class ConsoleLogger(LoggerPort):
    bound: Dict[str, Any] = field(default_factory=dict)
    min_level: str = "DEBUG"
    stream: Optional[TextIO] = None  # None => sys.stdout at emit time

    def bind(self, **fields: Any) -> "ConsoleLogger":
        merged = dict(self.bound)
        merged.update(fields)
        return ConsoleLogger(bound=merged, min_level=self.min_level, stream=self.stream)

    def debug(self, event: str, **fields: Any) -> None:
        self._emit("DEBUG", event, fields)

    def info(self, event: str, **fields: Any) -> None:
        self._emit("INFO", event, fields)

    def warning(self, event: str, **fields: Any) -> None:
        self._emit("WARNING", event, fields)

    def error(self, event: str, **fields: Any) -> None:
        self._emit("ERROR", event, fields)

    def _emit(self, level: str, event: str, fields: Dict[str, Any]) -> None:
        if LEVELS[level] < LEVELS.get(self.min_level.upper(), 10):
            return
        payload = dict(self.bound)
        payload.update(fields)
        payload.setdefault("type", event)
        payload.setdefault("level", level.lower())
        print(f"{event} {json.dumps(payload, ensure_ascii=False, default=str)}", file=self.stream or sys.stdout)
