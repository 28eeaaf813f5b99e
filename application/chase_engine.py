# application/chase_engine.py
from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from application.page_trace_emitter import PageTraceEmitter
from application.ports.cert_formatter import CertificateFormatterPort
from application.ports.http_client import ChaseTransportPort
from application.ports.logger import LoggerPort, NullLogger
from application.services.hop_recorder import DnsCapture, HopRecorder, RequestSnapshot
from application.services.redirect_resolver import RedirectResolver
from domain.chase import ChaseConfig, ChaseResult, HopRequest
from domain.exceptions import ChaseTimeout, LimitExceeded, TransportError, TransportTimeout
from domain.page import Page

Clock = Callable[[], float]


@dataclass
class ChaseSession:
    """1回の chase 専用の作業状態。呼び出しをまたいで共有しない。"""

    config: ChaseConfig
    deadline: Optional[float] = None
    pages: List[Page] = field(default_factory=list)

    @property
    def hops(self) -> int:
        return len(self.pages)

    def remaining(self, clock: Clock) -> Optional[float]:
        if self.deadline is None:
            return None
        return self.deadline - clock()

    def deadline_passed(self, clock: Clock) -> bool:
        return self.deadline is not None and clock() >= self.deadline

    def limit_reached(self) -> bool:
        return self.config.limit != 0 and self.hops >= self.config.limit


class ChaseEngine:
    """
    Follows protocol (3xx) and document (meta refresh) redirects one hop at a
    time, recording a Page per hop.

    Termination, evaluated in this order after each recorded hop:
      progress callback abort -> hop limit -> transport error (quiet) -> terminal response
    An overall deadline ends the chase with ChaseTimeout; the interrupted hop
    is not recorded.
    """

    def __init__(
        self,
        transport: ChaseTransportPort,
        cert_formatter: CertificateFormatterPort,
        logger: Optional[LoggerPort] = None,
        resolver: Optional[RedirectResolver] = None,
        trace: Optional[PageTraceEmitter] = None,
        clock: Clock = time.monotonic,
    ):
        self._transport = transport
        self._recorder = HopRecorder(cert_formatter)
        self._resolver = resolver or RedirectResolver()
        self._trace = trace or PageTraceEmitter.default()
        self._logger = logger or NullLogger()
        self._clock = clock

    def chase(self, initial_request: HopRequest, config: Optional[ChaseConfig] = None) -> ChaseResult:
        config = config or ChaseConfig()
        session = ChaseSession(
            config=config,
            deadline=self._clock() + config.timeout_sec if config.timeout_sec > 0 else None,
        )
        log = self._logger.bind(chase_id=uuid.uuid4().hex)
        log.info(
            "chase.start",
            url=initial_request.url,
            limit=config.limit,
            timeout_sec=config.timeout_sec,
            user_agent=config.user_agent or None,
        )

        request = initial_request
        while True:
            if config.user_agent:
                request = request.with_header("User-Agent", config.user_agent)

            remaining = session.remaining(self._clock)
            if remaining is not None and remaining <= 0:
                return self._timed_out(session, log)

            page = self._issue(request, remaining, session)
            if page is None:
                return self._timed_out(session, log)

            session.pages.append(page)
            self._trace.emit(page, session.hops, log)

            if config.progress is not None:
                failure = self._notify(config.progress, page)
                if failure is not None:
                    log.warning("chase.callback_aborted", hops=session.hops, error=str(failure))
                    return self._finish(session, log, "callback_aborted", failure)

            if session.limit_reached():
                log.warning("chase.limit_exceeded", hops=session.hops, limit=config.limit)
                return self._finish(session, log, "limit_exceeded", LimitExceeded(session.hops))

            if page.error is not None:
                return self._finish(session, log, "transport_error", None)

            decision = self._resolver.resolve(page)
            if decision.next_request is None:
                return self._finish(session, log, decision.reason, None)

            log.info("chase.next", hop=session.hops, reason=decision.reason, url=decision.next_request.url)
            request = decision.next_request

    def _issue(self, request: HopRequest, remaining: Optional[float], session: ChaseSession) -> Optional[Page]:
        """Send + record one hop. None means the overall deadline interrupted it."""
        snapshot = RequestSnapshot.capture(request, self._transport.cookies_for(request.url))
        dns = DnsCapture()
        try:
            response = self._transport.send(request, timeout=remaining, on_dns_done=dns)
            return self._recorder.record(snapshot, response, dns)
        except TransportError as e:
            # deadline 指定時は transport に残り時間だけを渡しているので timeout = deadline 超過
            if session.deadline_passed(self._clock) or (
                isinstance(e, TransportTimeout) and session.deadline is not None
            ):
                return None
            return self._recorder.record(snapshot, e, dns)

    def _notify(self, progress, page: Page) -> Optional[BaseException]:
        try:
            return progress(page)
        except Exception as e:
            return e

    def _timed_out(self, session: ChaseSession, log: LoggerPort) -> ChaseResult:
        log.warning("chase.timeout", hops=session.hops, timeout_sec=session.config.timeout_sec)
        return self._finish(
            session,
            log,
            "timeout",
            ChaseTimeout(session.config.timeout_sec, session.hops),
        )

    def _finish(
        self,
        session: ChaseSession,
        log: LoggerPort,
        reason: str,
        error: Optional[BaseException],
    ) -> ChaseResult:
        final = session.pages[-1] if session.pages else None
        log.info(
            "chase.end",
            reason=reason,
            hops=session.hops,
            final_url=final.request_url if final else None,
            final_status=final.status_code if final else None,
            error=str(error) if error is not None else None,
        )
        return ChaseResult(pages=tuple(session.pages), error=error)
