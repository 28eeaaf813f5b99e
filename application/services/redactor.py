# application/services/redactor.py
from __future__ import annotations

from typing import Any, Dict, Iterable, List

from domain.page import Cookie, HeaderMap

SENSITIVE_KEYS = {"authorization", "proxy-authorization", "cookie", "set-cookie"}
MASK = "********"


def mask_value(key: str, value: Any) -> Any:
    if key.lower() in SENSITIVE_KEYS and value is not None:
        return MASK
    return value


def mask_headers(headers: HeaderMap) -> Dict[str, List[Any]]:
    return {k: [mask_value(k, v) for v in values] for k, values in (headers or {}).items()}


def cookie_names(cookies: Iterable[Cookie]) -> List[str]:
    # 値はログに出さない
    return [c.name for c in cookies]
