# application/trace_enrichers/core.py
from __future__ import annotations

import hashlib

from application.page_trace_enricher import PageTraceEnricher
from application.ports.logger import LoggerPort
from application.services.redactor import cookie_names, mask_headers
from domain.page import Page


class HopCoreTraceLogger(PageTraceEnricher):
    def enrich_and_log(self, page: Page, hop: int, logger: LoggerPort) -> None:
        logger.info(
            "hop.request",
            hop=hop,
            method=page.request_method,
            url=page.request_url,
            proto=page.request_protocol,
            cookies=cookie_names(page.request_cookies),
        )

        if page.response is None:
            logger.warning(
                "hop.failed",
                hop=hop,
                url=page.request_url,
                error=page.error,
                error_type=page.error_type,
                dns_addresses=list(page.dns_addresses),
            )
            return

        resp = page.response
        logger.info(
            "hop.response",
            hop=hop,
            status=resp.status_code,
            status_message=resp.status_message,
            proto=resp.protocol,
            content_type=page.header("Content-Type"),
            location=page.header("Location"),
            body_len=len(resp.body),
            body_sha256=hashlib.sha256(resp.body).hexdigest(),
            elapsed_ms=resp.elapsed_ms,
            remote_addr=page.remote_addr,
            tls_version=page.tls.version if page.tls else None,
            set_cookie=cookie_names(resp.cookies),
        )

        logger.debug(
            "hop.detail",
            hop=hop,
            request_headers=mask_headers(page.request_headers),
            response_headers=mask_headers(resp.headers),
            local_addr=page.local_addr,
            dns_host=page.dns_host,
            dns_addresses=list(page.dns_addresses),
            cipher_suite=page.tls.cipher_suite if page.tls else None,
            tls_server_name=page.tls.server_name if page.tls else None,
            certificate_count=len(page.tls.certificates) if page.tls else 0,
        )
