# application/trace_enrichers/cookie_diff.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Set, Tuple

from application.page_trace_enricher import PageTraceEnricher
from application.ports.logger import LoggerPort
from domain.page import Cookie, Page


def _cookie_index(items: Iterable[Cookie]) -> Dict[Tuple[str, str, str], Cookie]:
    """
    Key by (name, domain, path). Value is the full cookie (value included).
    """
    return {(c.name, c.domain, c.path): c for c in items}


@dataclass(frozen=True)
class CookieDiff:
    added: Set[str]
    changed: Set[str]
    cleared: Set[str]


def diff_cookies(sent: Iterable[Cookie], received: Iterable[Cookie]) -> CookieDiff:
    before = _cookie_index(sent)
    # server が domain を省略した cookie は host-only、名前で突き合わせる
    before_by_name = {c.name: c for c in before.values()}

    added: Set[str] = set()
    changed: Set[str] = set()
    cleared: Set[str] = set()

    for key, cookie in _cookie_index(received).items():
        prev = before.get(key) or before_by_name.get(cookie.name)
        if cookie.value == "" or (cookie.expires is not None and cookie.expires <= 0):
            if prev is not None:
                cleared.add(cookie.name)
            continue
        if prev is None:
            added.add(cookie.name)
        elif prev.value != cookie.value:
            # do NOT log values; only detect change
            changed.add(cookie.name)

    return CookieDiff(added=added, changed=changed, cleared=cleared)


class CookieDiffLogger(PageTraceEnricher):
    def enrich_and_log(self, page: Page, hop: int, logger: LoggerPort) -> None:
        if page.response is None or not page.response.cookies:
            return

        d = diff_cookies(page.request_cookies, page.response.cookies)

        logger.info(
            "hop.cookie_diff",
            hop=hop,
            added=sorted(d.added),
            changed=sorted(d.changed),
            cleared=sorted(d.cleared),
        )
