# application/ports/http_client.py
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional, Tuple

from domain.chase import HopRequest
from domain.page import Cookie, HeaderMap

# (host, resolved addresses): 接続ごとに名前解決が完了した時点で呼ばれる
DnsDoneHook = Callable[[str, List[str]], None]


@dataclass(frozen=True)
class TlsSession:
    version: str
    cipher_suite: str
    server_name: str
    peer_certificates: Tuple[bytes, ...] = ()  # DER, leaf first


@dataclass(frozen=True)
class TransportResponse:
    status_code: int
    reason: str
    protocol: str
    headers: HeaderMap
    body: Iterable[bytes]
    trailers: HeaderMap = field(default_factory=dict)
    cookies: Tuple[Cookie, ...] = ()
    tls: Optional[TlsSession] = None
    local_addr: str = ""
    remote_addr: str = ""
    elapsed_ms: Optional[int] = None


class ChaseTransportPort(ABC):
    """
    Sends one hop. Redirects are never followed here; cookies persist across
    hops of the same transport instance.

    Failures raise domain.exceptions.TransportError (TransportTimeout for
    timeouts), including failures while the body iterator is consumed.
    """

    @abstractmethod
    def send(
        self,
        request: HopRequest,
        timeout: Optional[float] = None,
        on_dns_done: Optional[DnsDoneHook] = None,
    ) -> TransportResponse:
        ...

    @abstractmethod
    def cookies_for(self, url: str) -> List[Cookie]:
        ...
