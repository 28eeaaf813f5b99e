# application/trace_enrichers/html_signals.py
from __future__ import annotations

import re
from typing import Optional

from bs4 import BeautifulSoup
from bs4.builder import ParserRejectedMarkup

from application.page_trace_enricher import PageTraceEnricher
from application.ports.logger import LoggerPort
from application.services.meta_refresh_scanner import MetaRefreshScanner
from application.services.redirect_resolver import parse_media_type
from domain.exceptions import ContentTypeUnparseable
from domain.page import Page

_JS_NAVIGATION = re.compile(
    r"(?:window\.|document\.)?location(?:\.href)?\s*=|location\.replace\s*\(|document\.forms?\[0\]\.submit\(\)",
    re.I,
)


def _title(soup: BeautifulSoup) -> Optional[str]:
    return soup.title.get_text(strip=True) if soup.title else None


class HtmlSignalLogger(PageTraceEnricher):
    """
    HTMLレスポンスから「遷移判定に有効な軽量シグナル」を抽出してログ化する。
    - title
    - meta_refresh（実際に辿る先）
    - script_navigation（JS は実行しないので、辿れない遷移のヒントとして残す）
    """

    def __init__(self, scanner: Optional[MetaRefreshScanner] = None):
        self._scanner = scanner or MetaRefreshScanner()

    def enrich_and_log(self, page: Page, hop: int, logger: LoggerPort) -> None:
        if page.response is None or not page.response.body:
            return
        try:
            if parse_media_type(page.header("Content-Type") or "") != "text/html":
                return
        except ContentTypeUnparseable:
            return

        body = page.response.body
        try:
            title = _title(BeautifulSoup(body, "html.parser"))
        except ParserRejectedMarkup:
            title = None

        text = body.decode("utf-8", errors="replace")
        logger.info(
            "hop.html_signals",
            hop=hop,
            title=title,
            meta_refresh=self._scanner.scan(body),
            script_navigation=bool(_JS_NAVIGATION.search(text)),
        )
