# application/page_trace_emitter.py
from __future__ import annotations

from typing import Iterable

from application.page_trace_enricher import PageTraceEnricher
from application.ports.logger import LoggerPort
from domain.page import Page


class PageTraceEmitter:
    def __init__(self, enrichers: Iterable[PageTraceEnricher]):
        self._enrichers = list(enrichers)

    @classmethod
    def default(cls) -> "PageTraceEmitter":
        from application.trace_enrichers.cookie_diff import CookieDiffLogger
        from application.trace_enrichers.core import HopCoreTraceLogger
        from application.trace_enrichers.html_signals import HtmlSignalLogger

        return cls([HopCoreTraceLogger(), HtmlSignalLogger(), CookieDiffLogger()])

    def emit(self, page: Page, hop: int, logger: LoggerPort) -> None:
        for e in self._enrichers:
            e.enrich_and_log(page, hop, logger)
