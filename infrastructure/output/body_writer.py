# infrastructure/output/body_writer.py
from __future__ import annotations

import sys
from pathlib import Path
from typing import Sequence

from domain.page import Page


class BodyWriter:
    def __init__(self, destination: str):
        self._destination = destination

    def write(self, pages: Sequence[Page]) -> bool:
        """
        Write the final hop's body. Returns False when there is nothing to write.
        """
        if not pages:
            return False

        body = pages[-1].body
        if self._destination == "-":
            sys.stdout.buffer.write(body)
            sys.stdout.flush()
            return True
        Path(self._destination).write_bytes(body)
        return True
