# application/ports/requests_client.py
from __future__ import annotations

import socket
import ssl
import threading
from contextvars import ContextVar
from typing import Dict, Iterator, List, Optional, Tuple

import requests
from requests.adapters import HTTPAdapter
from requests.cookies import get_cookie_header
from urllib3.connection import HTTPConnection, HTTPSConnection
from urllib3.connectionpool import HTTPConnectionPool, HTTPSConnectionPool
from urllib3.exceptions import ConnectTimeoutError, NameResolutionError, NewConnectionError
from urllib3.util.connection import allowed_gai_family

from application.ports.http_client import ChaseTransportPort, DnsDoneHook, TlsSession, TransportResponse
from domain.chase import HopRequest
from domain.exceptions import TransportError, TransportTimeout
from domain.page import Cookie, HeaderMap

_HTTP_VERSIONS = {9: "HTTP/0.9", 10: "HTTP/1.0", 11: "HTTP/1.1", 20: "HTTP/2"}
BODY_CHUNK_SIZE = 8 * 1024


def _format_addr(addr) -> str:
    if not addr:
        return ""
    host, port = addr[0], addr[1]
    if ":" in host:
        return f"[{host}]:{port}"
    return f"{host}:{port}"


def _socket_addresses(sock: socket.socket) -> Tuple[str, str]:
    try:
        return _format_addr(sock.getsockname()), _format_addr(sock.getpeername())
    except OSError:
        return "", ""


def _tls_session(sock: socket.socket) -> Optional[TlsSession]:
    if not isinstance(sock, ssl.SSLSocket):
        return None

    cipher = sock.cipher() or ("", "", 0)
    chain: List[bytes] = []
    # 3.13+ は提示されたチェーン全体を取得できる
    get_chain = getattr(sock, "get_unverified_chain", None)
    if get_chain is not None:
        chain = [c for c in (get_chain() or []) if isinstance(c, bytes)]
    if not chain:
        leaf = sock.getpeercert(binary_form=True)
        if leaf:
            chain = [leaf]

    return TlsSession(
        version=sock.version() or "",
        cipher_suite=cipher[0] or "",
        server_name=sock.server_hostname or "",
        peer_certificates=tuple(chain),
    )


class _HopContext:
    """
    send() 1回分の接続の観測結果と中断状態。

    接続クラスがソケットを握っている間に住所と TLS 情報を写し取る
    （本文が空だと urllib3 は応答を返す前に接続をプールへ戻すため）。
    abort() は watchdog スレッドから呼ばれ、使用中のソケットを shutdown する。
    """

    def __init__(self, on_dns_done: Optional[DnsDoneHook] = None):
        self.on_dns_done = on_dns_done
        self.local_addr = ""
        self.remote_addr = ""
        self.tls: Optional[TlsSession] = None
        self.aborted = False
        self._sock: Optional[socket.socket] = None
        self._lock = threading.Lock()

    def attach(self, sock: socket.socket) -> None:
        with self._lock:
            self._sock = sock
            aborted = self.aborted
        if aborted:
            _shutdown(sock)

    def capture(self, sock: socket.socket) -> None:
        self.attach(sock)
        self.local_addr, self.remote_addr = _socket_addresses(sock)
        self.tls = _tls_session(sock)

    def abort(self) -> None:
        with self._lock:
            self.aborted = True
            sock = self._sock
        if sock is not None:
            _shutdown(sock)


def _shutdown(sock: socket.socket) -> None:
    # SSLSocket.shutdown は _sslobj を外すので素の socket として止める
    try:
        socket.socket.shutdown(sock, socket.SHUT_RDWR)
    except OSError:
        # 既に閉じられている
        pass


# send() の間だけ有効（スレッド/コンテキストごとに独立）
_hop_context: ContextVar[Optional[_HopContext]] = ContextVar("chaselink_hop_context", default=None)


def _connect_notifying(address: Tuple[str, int], timeout, source_address=None, socket_options=None) -> socket.socket:
    """
    Resolve, report the addresses to the current hop's DNS hook, then connect
    to the first address that accepts.
    """
    host, port = address
    if host.startswith("["):
        host = host.strip("[]")
    infos = socket.getaddrinfo(host, port, allowed_gai_family(), socket.SOCK_STREAM)

    ctx = _hop_context.get()
    if ctx is not None and ctx.on_dns_done is not None:
        ctx.on_dns_done(host, [info[4][0] for info in infos])

    err: Optional[OSError] = None
    for family, socktype, proto, _canonname, sockaddr in infos:
        sock = None
        try:
            sock = socket.socket(family, socktype, proto)
            for opt in socket_options or []:
                sock.setsockopt(*opt)
            if timeout is None or isinstance(timeout, (int, float)):
                sock.settimeout(timeout)
            if source_address:
                sock.bind(source_address)
            sock.connect(sockaddr)
            return sock
        except OSError as e:
            err = e
            if sock is not None:
                sock.close()

    if err is not None:
        raise err
    raise OSError("getaddrinfo returns an empty list")


class _TracingConnectionMixin:
    def _new_conn(self) -> socket.socket:
        try:
            sock = _connect_notifying(
                (self._dns_host, self.port),
                self.timeout,
                source_address=self.source_address,
                socket_options=self.socket_options,
            )
        except socket.gaierror as e:
            raise NameResolutionError(self.host, self, e) from e
        except socket.timeout as e:
            raise ConnectTimeoutError(
                self, f"Connection to {self.host} timed out. (connect timeout={self.timeout})"
            ) from e
        except OSError as e:
            raise NewConnectionError(self, f"Failed to establish a new connection: {e}") from e

        ctx = _hop_context.get()
        if ctx is not None:
            ctx.attach(sock)
        return sock

    def getresponse(self, *args, **kwargs):
        # 再利用された接続でもここは毎回通る
        ctx = _hop_context.get()
        if ctx is not None and self.sock is not None:
            ctx.capture(self.sock)
        return super().getresponse(*args, **kwargs)


class _TracingHTTPConnection(_TracingConnectionMixin, HTTPConnection):
    pass


class _TracingHTTPSConnection(_TracingConnectionMixin, HTTPSConnection):
    pass


class _TracingHTTPConnectionPool(HTTPConnectionPool):
    ConnectionCls = _TracingHTTPConnection


class _TracingHTTPSConnectionPool(HTTPSConnectionPool):
    ConnectionCls = _TracingHTTPSConnection


class TracingHTTPAdapter(HTTPAdapter):
    def init_poolmanager(self, *args, **kwargs) -> None:
        super().init_poolmanager(*args, **kwargs)
        self.poolmanager.pool_classes_by_scheme = {
            "http": _TracingHTTPConnectionPool,
            "https": _TracingHTTPSConnectionPool,
        }


def _cookie_record(c) -> Cookie:
    return Cookie(
        name=c.name,
        value=c.value or "",
        domain=c.domain or "",
        path=c.path or "",
        secure=bool(getattr(c, "secure", False)),
        http_only=bool(c.has_nonstandard_attr("HttpOnly")) if hasattr(c, "has_nonstandard_attr") else False,
        expires=getattr(c, "expires", None),
    )


def _header_map(raw_headers) -> HeaderMap:
    out: Dict[str, Tuple[str, ...]] = {}
    getlist = getattr(raw_headers, "getlist", None)
    for key in raw_headers.keys():
        values = getlist(key) if getlist else [raw_headers[key]]
        out[key] = tuple(values)
    return out


def _translate(e: requests.exceptions.RequestException, ctx: _HopContext) -> TransportError:
    if ctx.aborted:
        return TransportTimeout(f"deadline exceeded: {e}")
    if isinstance(e, requests.exceptions.Timeout):
        return TransportTimeout(str(e))
    return TransportError(str(e))


class RequestsChaseTransport(ChaseTransportPort):
    """
    requests.Session based transport.

    One instance is one cookie session: build one per chase. Redirects are
    never followed here and bodies are streamed.

    A timeout passed to send() is a budget for the whole hop (headers and
    body): a watchdog shuts the live socket down when it runs out and the hop
    fails with TransportTimeout.
    """

    def __init__(
        self,
        timeout_sec: Optional[float] = 30,
        verify: bool = True,
        trust_env: bool = True,
        base_headers: Optional[Dict[str, str]] = None,
    ):
        self._session = requests.Session()
        self._session.trust_env = trust_env
        self._session.verify = verify
        adapter = TracingHTTPAdapter()
        self._session.mount("http://", adapter)
        self._session.mount("https://", adapter)
        self._base_headers = base_headers or {}
        self._timeout = timeout_sec
        # REQUESTS_CA_BUNDLE 等に上書きされないようリクエストごとに明示する
        self._verify = verify

    def close(self) -> None:
        self._session.close()

    def __enter__(self) -> "RequestsChaseTransport":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def send(
        self,
        request: HopRequest,
        timeout: Optional[float] = None,
        on_dns_done: Optional[DnsDoneHook] = None,
    ) -> TransportResponse:
        merged = dict(self._base_headers)
        merged.update(request.headers)

        ctx = _HopContext(on_dns_done)
        watchdog: Optional[threading.Timer] = None
        if timeout is not None:
            watchdog = threading.Timer(max(timeout, 0.0), ctx.abort)
            watchdog.daemon = True
            watchdog.start()

        token = _hop_context.set(ctx)
        try:
            resp = self._session.request(
                method=request.method.upper(),
                url=request.url,
                headers=merged,
                timeout=timeout if timeout is not None else self._timeout,
                allow_redirects=False,
                stream=True,
                verify=self._verify,
            )
        except requests.exceptions.RequestException as e:
            _cancel(watchdog)
            raise _translate(e, ctx) from e
        except BaseException:
            _cancel(watchdog)
            raise
        finally:
            _hop_context.reset(token)

        return TransportResponse(
            status_code=resp.status_code,
            reason=resp.reason or "",
            protocol=_HTTP_VERSIONS.get(getattr(resp.raw, "version", 11), "HTTP/1.1"),
            headers=_header_map(resp.raw.headers),
            # urllib3 は trailer を公開しない
            trailers={},
            body=self._iter_body(resp, ctx, watchdog),
            cookies=tuple(_cookie_record(c) for c in resp.cookies),
            tls=ctx.tls,
            local_addr=ctx.local_addr,
            remote_addr=ctx.remote_addr,
            elapsed_ms=int(resp.elapsed.total_seconds() * 1000),
        )

    def cookies_for(self, url: str) -> List[Cookie]:
        """Cookies the session jar would send to url."""
        try:
            prepared = requests.Request("GET", url).prepare()
        except (ValueError, requests.exceptions.RequestException):
            return []
        header = get_cookie_header(self._session.cookies, prepared)
        if not header:
            return []

        sent = set()
        for pair in header.split(";"):
            name, _, value = pair.strip().partition("=")
            sent.add((name, value.strip('"')))

        out: List[Cookie] = []
        for c in self._session.cookies:
            if (c.name, (c.value or "").strip('"')) in sent:
                out.append(_cookie_record(c))
        return out

    @staticmethod
    def _iter_body(
        resp: requests.Response,
        ctx: _HopContext,
        watchdog: Optional[threading.Timer],
    ) -> Iterator[bytes]:
        try:
            for chunk in resp.iter_content(chunk_size=BODY_CHUNK_SIZE):
                if ctx.aborted:
                    raise TransportTimeout(f"deadline exceeded while reading body of {resp.url}")
                yield chunk
            # shutdown 後の EOF は正常終了に見えることがある（Content-Length なし）
            if ctx.aborted:
                raise TransportTimeout(f"deadline exceeded while reading body of {resp.url}")
        except requests.exceptions.RequestException as e:
            raise _translate(e, ctx) from e
        finally:
            _cancel(watchdog)
            resp.close()


def _cancel(watchdog: Optional[threading.Timer]) -> None:
    if watchdog is not None:
        watchdog.cancel()
