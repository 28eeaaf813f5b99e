# application/services/meta_refresh_scanner.py
from __future__ import annotations

import re
from typing import Optional

from bs4 import BeautifulSoup
from bs4.builder import ParserRejectedMarkup

# "<delay>;<url>"。url= プレフィックスと引用符はブラウザ同様に許容
_CONTENT_PATTERN = re.compile(r"^\s*\d+\s*;\s*(?:url\s*=\s*)?(?!url\s*=)(\S+)", re.IGNORECASE)


def parse_refresh_content(content: str) -> Optional[str]:
    m = _CONTENT_PATTERN.match(content)
    if not m:
        return None
    target = m.group(1).strip("'\"")
    return target or None


class MetaRefreshScanner:
    """
    Finds the first <meta http-equiv="refresh" content="N;URL"> in a body.

    Pure text extraction: nothing is fetched and no script runs. Markup the
    parser rejects simply yields no match.
    """

    def scan(self, body: bytes) -> Optional[str]:
        if not body:
            return None

        try:
            soup = BeautifulSoup(body, "html.parser")
        except ParserRejectedMarkup:
            return None

        for meta in soup.find_all("meta"):
            http_equiv = meta.get("http-equiv")
            if http_equiv is None or str(http_equiv).strip().lower() != "refresh":
                continue
            content = meta.get("content")
            if content is None:
                continue
            target = parse_refresh_content(str(content))
            if target is not None:
                return target

        return None
