# application/page_trace_enricher.py
from __future__ import annotations

from abc import ABC, abstractmethod

from application.ports.logger import LoggerPort
from domain.page import Page


class PageTraceEnricher(ABC):
    @abstractmethod
    def enrich_and_log(self, page: Page, hop: int, logger: LoggerPort) -> None:
        ...
