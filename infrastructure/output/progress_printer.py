# infrastructure/output/progress_printer.py
from __future__ import annotations

import sys
from typing import Optional, TextIO

from domain.page import Page


class ProgressPrinter:
    """Progress sink for the CLI: one block per hop on stderr. Never aborts."""

    def __init__(self, stream: Optional[TextIO] = None):
        self._stream = stream

    def __call__(self, page: Page) -> Optional[BaseException]:
        out = self._stream or sys.stderr
        out.write(f"{page.request_url}\n")

        sent = f"Sent to {page.remote_addr or '?'}"
        if page.tls is not None:
            sent += f" (using TLS version {page.tls.version})"
        out.write(sent + "\n")

        if page.response is None:
            out.write(f"Failed: {page.error}\n")
        else:
            out.write(f"{page.response.status_message}\n")
            if page.response.cookies:
                names = ", ".join(c.name for c in page.response.cookies)
                out.write(f"Cookies set: {names}\n")

        out.write("\n")
        out.flush()
        return None
