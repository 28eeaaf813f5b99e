# infrastructure/output/details_writer.py
from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Sequence

from domain.page import Page


def pages_to_json(pages: Sequence[Page]) -> List[Dict[str, Any]]:
    return [p.to_dict() for p in pages]


class DetailsWriter:
    """Writes the whole Page sequence as an indented JSON array. "-" => stdout."""

    def __init__(self, destination: str):
        self._destination = destination

    def write(self, pages: Sequence[Page]) -> None:
        text = json.dumps(pages_to_json(pages), indent=2, ensure_ascii=False) + "\n"
        if self._destination == "-":
            sys.stdout.write(text)
            sys.stdout.flush()
            return
        Path(self._destination).write_text(text, encoding="utf-8")
