#!/usr/bin/env python3
"""
chaselink API サーバーを起動するエントリポイント

Usage:
  chaselink-api [--host HOST] [--port PORT] [--reload]
"""
from __future__ import annotations

import argparse
from typing import List, Optional

import uvicorn

from infrastructure.config.settings import ChaseSettings


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="chaselink-api", description="Serve the chaselink HTTP API")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--reload", action="store_true", help="開発時の自動リロード")
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    args = _build_parser().parse_args(argv)
    settings = ChaseSettings.from_env()
    uvicorn.run(
        "api.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
