# application/services/redirect_resolver.py
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urljoin, urlsplit

import requests

from application.services.meta_refresh_scanner import MetaRefreshScanner
from domain.chase import HopRequest
from domain.exceptions import ContentTypeUnparseable, MalformedRedirectTarget
from domain.page import Page

REDIRECT_STATUSES = frozenset({301, 302, 307, 308})

_TOKEN = r"[!#$%&'*+.^_`|~0-9A-Za-z-]+"
_MEDIA_TYPE = re.compile(rf"^({_TOKEN})/({_TOKEN})$")
_PARAM = re.compile(rf'^({_TOKEN})=({_TOKEN}|"(?:[^"\\]|\\.)*")$')


def parse_media_type(value: str) -> str:
    """
    Return the lower-cased media type of a Content-Type value.
    Raises ContentTypeUnparseable for anything that is not type/subtype with
    well-formed parameters.
    """
    parts = value.split(";")
    m = _MEDIA_TYPE.match(parts[0].strip())
    if not m:
        raise ContentTypeUnparseable(value)
    for raw in parts[1:]:
        param = raw.strip()
        if not param:
            continue
        if not _PARAM.match(param):
            raise ContentTypeUnparseable(value)
    return f"{m.group(1)}/{m.group(2)}".lower()


def build_get_request(base_url: str, target: str) -> HopRequest:
    """GET request for target resolved against base_url. Raises MalformedRedirectTarget."""
    try:
        url = urljoin(base_url, target.strip())
        parts = urlsplit(url)
        if parts.scheme.lower() not in ("http", "https"):
            raise MalformedRedirectTarget(target, f"unsupported scheme {parts.scheme!r}")
        if not parts.hostname:
            raise MalformedRedirectTarget(target, "missing host")
        requests.Request("GET", url).prepare()
    except MalformedRedirectTarget:
        raise
    except (ValueError, requests.exceptions.RequestException) as e:
        raise MalformedRedirectTarget(target, str(e)) from e
    return HopRequest.get(url)


@dataclass(frozen=True)
class RedirectDecision:
    next_request: Optional[HopRequest]
    reason: str
    target: Optional[str] = None


class RedirectResolver:
    def __init__(self, scanner: Optional[MetaRefreshScanner] = None):
        self._scanner = scanner or MetaRefreshScanner()

    def next(self, page: Page) -> Optional[HopRequest]:
        return self.resolve(page).next_request

    def resolve(self, page: Page) -> RedirectDecision:
        if page.response is None:
            return RedirectDecision(None, "transport_error")

        status = page.response.status_code

        if status in REDIRECT_STATUSES:
            location = page.header("Location")
            if not location:
                return RedirectDecision(None, "no_location")
            return self._follow(page, location, "location")

        if status == 200:
            try:
                media_type = parse_media_type(page.header("Content-Type") or "")
            except ContentTypeUnparseable:
                return RedirectDecision(None, "content_type_unparseable")
            if media_type != "text/html":
                return RedirectDecision(None, "not_html")

            target = self._scanner.scan(page.response.body)
            if target is None:
                return RedirectDecision(None, "no_refresh")
            return self._follow(page, target, "meta_refresh")

        return RedirectDecision(None, "status")

    def _follow(self, page: Page, target: str, reason: str) -> RedirectDecision:
        try:
            req = build_get_request(page.request_url, target)
        except MalformedRedirectTarget:
            return RedirectDecision(None, "malformed_target", target=target)
        return RedirectDecision(req, reason, target=target)
