# application/ports/progress.py
from __future__ import annotations

from typing import Optional, Protocol

from domain.page import Page


class ProgressSink(Protocol):
    def __call__(self, page: Page) -> Optional[BaseException]:
        ...
