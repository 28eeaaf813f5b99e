# application/ports/cert_formatter.py
from __future__ import annotations

from typing import Protocol


class CertificateFormatterPort(Protocol):
    def format(self, der: bytes) -> str:
        """Human readable description of a DER certificate. May raise."""
        ...
