# domain/page.py
from __future__ import annotations

import base64
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Dict, Mapping, Optional, Tuple

if TYPE_CHECKING:
    from domain.chase import HopRequest

# name -> values (multi-value対応, 受信順)
HeaderMap = Mapping[str, Tuple[str, ...]]


def freeze_headers(headers: Optional[HeaderMap]) -> HeaderMap:
    """Read-only copy with tuple values."""
    return MappingProxyType({k: tuple(v) for k, v in (headers or {}).items()})


def header_value(headers: HeaderMap, name: str) -> Optional[str]:
    """First value of a header, case-insensitive."""
    wanted = name.lower()
    for key, values in headers.items():
        if key.lower() == wanted and values:
            return values[0]
    return None


@dataclass(frozen=True)
class Cookie:
    name: str
    value: str
    domain: str = ""
    path: str = ""
    secure: bool = False
    http_only: bool = False
    expires: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "value": self.value,
            "domain": self.domain,
            "path": self.path,
            "secure": self.secure,
            "http_only": self.http_only,
            "expires": self.expires,
        }


@dataclass(frozen=True)
class TlsFacet:
    version: str
    cipher_suite: str
    server_name: str
    certificates: Tuple[str, ...] = ()  # leaf first


@dataclass(frozen=True)
class ResponseFacet:
    status_code: int
    status_message: str
    protocol: str
    headers: HeaderMap
    trailers: HeaderMap
    body: bytes
    cookies: Tuple[Cookie, ...] = ()
    elapsed_ms: Optional[int] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "headers", freeze_headers(self.headers))
        object.__setattr__(self, "trailers", freeze_headers(self.trailers))


@dataclass(frozen=True)
class Page:
    """
    1 hop の記録。append 後は変更しない。
    response と error はどちらか一方だけが入る。
    """

    request_method: str
    request_url: str
    request_protocol: str
    request_headers: HeaderMap
    request_cookies: Tuple[Cookie, ...] = ()
    request: Optional["HopRequest"] = field(default=None, repr=False, compare=False)

    response: Optional[ResponseFacet] = None
    tls: Optional[TlsFacet] = None

    error: Optional[str] = None
    error_type: Optional[str] = None

    local_addr: str = ""
    remote_addr: str = ""
    dns_host: Optional[str] = None
    dns_addresses: Tuple[str, ...] = ()
    started_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if (self.response is None) == (self.error is None):
            raise ValueError("Page must carry exactly one of response or error")
        object.__setattr__(self, "request_headers", freeze_headers(self.request_headers))

    @property
    def status_code(self) -> Optional[int]:
        return self.response.status_code if self.response else None

    @property
    def body(self) -> bytes:
        return self.response.body if self.response else b""

    def header(self, name: str) -> Optional[str]:
        if self.response is None:
            return None
        return header_value(self.response.headers, name)

    def to_dict(self) -> Dict[str, Any]:
        resp = self.response
        tls = self.tls
        return {
            "request_method": self.request_method,
            "request_url": self.request_url,
            "request_protocol": self.request_protocol,
            "request_header": _headers_to_dict(self.request_headers),
            "request_cookies": [c.to_dict() for c in self.request_cookies],
            "response_header": _headers_to_dict(resp.headers) if resp else None,
            "response_trailer": _headers_to_dict(resp.trailers) if resp else None,
            "response_body": base64.b64encode(resp.body).decode("ascii") if resp else None,
            "response_cookies": [c.to_dict() for c in resp.cookies] if resp else [],
            "status_code": resp.status_code if resp else 0,
            "status_message": resp.status_message if resp else "",
            "proto": resp.protocol if resp else "",
            "elapsed_ms": resp.elapsed_ms if resp else None,
            "tls_version": tls.version if tls else "",
            "cipher_suite": tls.cipher_suite if tls else "",
            "tls_server_name": tls.server_name if tls else "",
            "tls_certificates": list(tls.certificates) if tls else [],
            "error": self.error,
            "error_type": self.error_type,
            "local_addr": self.local_addr,
            "remote_addr": self.remote_addr,
            "dns_host": self.dns_host,
            "dns_addresses": list(self.dns_addresses),
            "started_at": self.started_at.isoformat() if self.started_at else None,
        }


def _headers_to_dict(headers: HeaderMap) -> Dict[str, list]:
    return {k: list(v) for k, v in headers.items()}
