# domain/exceptions.py
from __future__ import annotations

from typing import Optional


class TransportError(Exception):
    """A hop failed at the network/TLS/DNS level. Recorded on the Page."""


class TransportTimeout(TransportError):
    pass


class ChaseError(Exception):
    """Top-level failure of a chase (policy driven)."""


class LimitExceeded(ChaseError):
    def __init__(self, count: int):
        super().__init__(f"too many redirects ({count})")
        self.count = count


class ChaseTimeout(ChaseError):
    def __init__(self, timeout_sec: float, pages_recorded: int):
        super().__init__(f"chase timed out after {timeout_sec:g}s ({pages_recorded} pages recorded)")
        self.timeout_sec = timeout_sec
        self.pages_recorded = pages_recorded


class MalformedRedirectTarget(ValueError):
    def __init__(self, target: str, reason: Optional[str] = None):
        msg = f"malformed redirect target: {target!r}"
        if reason:
            msg += f" ({reason})"
        super().__init__(msg)
        self.target = target


class ContentTypeUnparseable(ValueError):
    def __init__(self, value: str):
        super().__init__(f"unparseable Content-Type: {value!r}")
        self.value = value


class ConfigError(ValueError):
    pass
