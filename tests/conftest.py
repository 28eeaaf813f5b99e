# tests/conftest.py
from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Union
from urllib.parse import urlsplit

import pytest

from application.ports.http_client import ChaseTransportPort, TlsSession, TransportResponse
from domain.chase import HopRequest
from domain.page import Cookie


def build_response(
    status: int,
    headers: Optional[Dict[str, str]] = None,
    body: bytes = b"",
    reason: str = "",
    **kwargs: Any,
) -> TransportResponse:
    reasons = {200: "OK", 301: "Moved Permanently", 302: "Found", 307: "Temporary Redirect",
               308: "Permanent Redirect", 404: "Not Found", 500: "Internal Server Error"}
    return TransportResponse(
        status_code=status,
        reason=reason or reasons.get(status, ""),
        protocol="HTTP/1.1",
        headers={k: (v,) for k, v in (headers or {}).items()},
        body=[body] if body else [],
        **kwargs,
    )


Handler = Callable[[HopRequest], Union[TransportResponse, BaseException]]


class ScriptedTransport(ChaseTransportPort):
    """
    Answers from a handler (request -> response or exception to raise).
    Records every request and fires DNS notifications from `dns`.
    """

    def __init__(self, handler: Handler, dns: Optional[Dict[str, List[str]]] = None,
                 cookies: Optional[List[Cookie]] = None):
        self._handler = handler
        self._dns = dns or {}
        self._cookies = cookies or []
        self.sent: List[HopRequest] = []
        self.timeouts: List[Optional[float]] = []
        self.closed = False

    def send(self, request, timeout=None, on_dns_done=None) -> TransportResponse:
        self.sent.append(request)
        self.timeouts.append(timeout)
        host = urlsplit(request.url).hostname or ""
        if on_dns_done is not None and host in self._dns:
            on_dns_done(host, list(self._dns[host]))
        outcome = self._handler(request)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    def cookies_for(self, url: str) -> List[Cookie]:
        return list(self._cookies)

    def __enter__(self) -> "ScriptedTransport":
        return self

    def __exit__(self, *exc) -> None:
        self.closed = True


class FakeCertFormatter:
    def format(self, der: bytes) -> str:
        if der == b"bad":
            raise ValueError("unable to parse certificate")
        return f"cert:{der.decode('ascii', errors='replace')}"


class RecordingLogger:
    def __init__(self, bound: Optional[Dict[str, Any]] = None, events: Optional[List[Dict[str, Any]]] = None):
        self.bound = bound or {}
        self.events: List[Dict[str, Any]] = [] if events is None else events

    def bind(self, **fields: Any) -> "RecordingLogger":
        merged = dict(self.bound)
        merged.update(fields)
        return RecordingLogger(bound=merged, events=self.events)

    def _add(self, level: str, event: str, fields: Dict[str, Any]) -> None:
        payload = dict(self.bound)
        payload.update(fields)
        payload["event"] = event
        payload["level"] = level
        self.events.append(payload)

    def debug(self, event: str, **fields: Any) -> None:
        self._add("debug", event, fields)

    def info(self, event: str, **fields: Any) -> None:
        self._add("info", event, fields)

    def warning(self, event: str, **fields: Any) -> None:
        self._add("warning", event, fields)

    def error(self, event: str, **fields: Any) -> None:
        self._add("error", event, fields)

    def names(self) -> List[str]:
        return [e["event"] for e in self.events]


@pytest.fixture
def make_response():
    return build_response


@pytest.fixture
def scripted_transport():
    return ScriptedTransport


@pytest.fixture
def cert_formatter() -> FakeCertFormatter:
    return FakeCertFormatter()


@pytest.fixture
def recording_logger() -> RecordingLogger:
    return RecordingLogger()


@pytest.fixture
def tls_session():
    def _make(chain=(b"leaf", b"intermediate")) -> TlsSession:
        return TlsSession(
            version="TLSv1.3",
            cipher_suite="TLS_AES_128_GCM_SHA256",
            server_name="example.com",
            peer_certificates=tuple(chain),
        )
    return _make
