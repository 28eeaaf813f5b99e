#!/usr/bin/env python3
"""
Follow a URL's redirect chain and report every hop

Usage:
  chaselink <url> [--limit N] [--timeout SEC] [--useragent UA]
            [--silent] [--details FILE|-] [-o FILE|-]

Examples:
  chaselink http://example.com
  chaselink --details - --silent https://bit.ly/xyz
  chaselink -o final.html --limit 5 http://example.com
"""
from __future__ import annotations

import argparse
import sys
from typing import List, Optional

from application.chase_engine import ChaseEngine
from application.ports.progress import ProgressSink
from application.ports.requests_client import RequestsChaseTransport
from application.services.redirect_resolver import build_get_request
from domain.chase import ChaseConfig
from domain.exceptions import ConfigError, MalformedRedirectTarget
from infrastructure.config.settings import ChaseSettings
from infrastructure.logging.log_setup import setup_console_logging
from infrastructure.logging.loguru_logger import LoguruLogger
from infrastructure.output.body_writer import BodyWriter
from infrastructure.output.details_writer import DetailsWriter
from infrastructure.output.progress_printer import ProgressPrinter
from infrastructure.tls.certificate_text import CryptographyCertificateFormatter


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="chaselink", description="Follow HTTP and meta-refresh redirects")
    parser.add_argument("url")
    parser.add_argument("--limit", type=int, help="limit number of requests (0 = unlimited)")
    parser.add_argument("--timeout", type=float, help="timeout in seconds for all requests")
    parser.add_argument("--useragent", type=str, help="user-agent header")
    parser.add_argument("--silent", action="store_true", help="print no progress")
    parser.add_argument("--details", type=str, default="", help="output file for json details ('-' = stdout)")
    parser.add_argument("-o", "--output", type=str, default="", help="output file for final page ('-' = stdout)")
    parser.add_argument("--log-level", type=str, choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    parser.add_argument("--insecure", action="store_true", help="do not verify TLS certificates")
    return parser


def _fail(message: str) -> int:
    print(message, file=sys.stderr)
    return 1


def run(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)

    try:
        settings = ChaseSettings.from_env()
    except ConfigError as e:
        return _fail(f"Invalid configuration: {e}")

    setup_console_logging(level=args.log_level or settings.log_level)

    if args.limit is not None and args.limit < 0:
        return _fail("--limit must be >= 0")
    if args.timeout is not None and args.timeout < 0:
        return _fail("--timeout must be >= 0")

    try:
        request = build_get_request("", args.url)
    except MalformedRedirectTarget as e:
        return _fail(f"Failed to create request: {e}")

    progress: Optional[ProgressSink] = None if args.silent else ProgressPrinter()
    base = settings.to_config(progress=progress)
    config = ChaseConfig(
        limit=args.limit if args.limit is not None else base.limit,
        timeout_sec=args.timeout if args.timeout is not None else base.timeout_sec,
        user_agent=args.useragent if args.useragent is not None else base.user_agent,
        progress=base.progress,
    )

    with RequestsChaseTransport(
        timeout_sec=settings.hop_timeout_sec or None,
        verify=settings.verify_tls and not args.insecure,
    ) as transport:
        engine = ChaseEngine(
            transport=transport,
            cert_formatter=CryptographyCertificateFormatter(),
            logger=LoguruLogger(),
        )
        result = engine.chase(request, config)

    if args.details:
        try:
            DetailsWriter(args.details).write(result.pages)
        except OSError as e:
            return _fail(f"Failed to write details file: {e}")

    if args.output:
        try:
            if not BodyWriter(args.output).write(result.pages):
                print("No pages retrieved", file=sys.stderr)
        except OSError as e:
            return _fail(f"Failed to write output file: {e}")

    if result.error is not None:
        return _fail(f"something failed: {result.error}")
    return 0


def main() -> None:
    sys.exit(run())


if __name__ == "__main__":
    main()
