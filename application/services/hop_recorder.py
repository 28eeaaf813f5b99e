# application/services/hop_recorder.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Tuple, Union

from application.ports.cert_formatter import CertificateFormatterPort
from application.ports.http_client import TlsSession, TransportResponse
from domain.chase import HopRequest
from domain.page import Cookie, HeaderMap, Page, ResponseFacet, TlsFacet, freeze_headers


@dataclass(frozen=True)
class RequestSnapshot:
    """送信前に取得したリクエストの写し（transport 側で request が変わっても影響しない）"""

    method: str
    url: str
    protocol: str
    headers: HeaderMap
    cookies: Tuple[Cookie, ...]
    request: HopRequest
    started_at: datetime

    @classmethod
    def capture(cls, request: HopRequest, cookies: Iterable[Cookie] = ()) -> "RequestSnapshot":
        return cls(
            method=request.method,
            url=request.url,
            protocol=request.protocol,
            headers=freeze_headers({k: (v,) for k, v in request.headers.items()}),
            cookies=tuple(cookies),
            request=request,
            started_at=datetime.now(timezone.utc),
        )


@dataclass
class DnsCapture:
    """
    DNS 完了通知の受け口。transport が接続時に呼ぶ。
    keep-alive で接続が再利用された hop では呼ばれない。
    """

    host: Optional[str] = None
    addresses: List[str] = field(default_factory=list)

    def __call__(self, host: str, addresses: List[str]) -> None:
        self.host = host
        for addr in addresses:
            if addr not in self.addresses:
                self.addresses.append(addr)


class HopRecorder:
    def __init__(self, cert_formatter: CertificateFormatterPort):
        self._certs = cert_formatter

    def record(
        self,
        snapshot: RequestSnapshot,
        outcome: Union[TransportResponse, BaseException],
        dns: Optional[DnsCapture] = None,
    ) -> Page:
        """
        Build the Page for one hop.

        On success the body iterator is drained here; a TransportError raised
        while reading it propagates so the caller can record the hop as failed.
        """
        dns_host = dns.host if dns else None
        dns_addresses = tuple(dns.addresses) if dns else ()

        if isinstance(outcome, BaseException):
            return Page(
                request_method=snapshot.method,
                request_url=snapshot.url,
                request_protocol=snapshot.protocol,
                request_headers=snapshot.headers,
                request_cookies=snapshot.cookies,
                request=snapshot.request,
                error=str(outcome) or type(outcome).__name__,
                error_type=type(outcome).__name__,
                dns_host=dns_host,
                dns_addresses=dns_addresses,
                started_at=snapshot.started_at,
            )

        body = b"".join(outcome.body)

        response = ResponseFacet(
            status_code=outcome.status_code,
            status_message=f"{outcome.status_code} {outcome.reason}".strip(),
            protocol=outcome.protocol,
            headers=freeze_headers(outcome.headers),
            trailers=freeze_headers(outcome.trailers),
            body=body,
            cookies=tuple(outcome.cookies),
            elapsed_ms=outcome.elapsed_ms,
        )

        return Page(
            request_method=snapshot.method,
            request_url=snapshot.url,
            request_protocol=snapshot.protocol,
            request_headers=snapshot.headers,
            request_cookies=snapshot.cookies,
            request=snapshot.request,
            response=response,
            tls=self._tls_facet(outcome.tls) if outcome.tls else None,
            local_addr=outcome.local_addr,
            remote_addr=outcome.remote_addr,
            dns_host=dns_host,
            dns_addresses=dns_addresses,
            started_at=snapshot.started_at,
        )

    def _tls_facet(self, tls: TlsSession) -> TlsFacet:
        texts: List[str] = []
        for der in tls.peer_certificates:
            try:
                texts.append(self._certs.format(der))
            except Exception as e:
                texts.append(f"certificate error: {e}")
        return TlsFacet(
            version=tls.version,
            cipher_suite=tls.cipher_suite,
            server_name=tls.server_name,
            certificates=tuple(texts),
        )
