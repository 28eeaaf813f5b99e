"""FastAPI アプリケーション - redirect chase を HTTP で公開する"""
from __future__ import annotations

from typing import Any, Dict, List, Optional
from uuid import uuid4

from fastapi import Body, FastAPI, HTTPException
from pydantic import BaseModel, Field

from application.chase_engine import ChaseEngine
from application.ports.requests_client import RequestsChaseTransport
from application.services.redirect_resolver import build_get_request
from domain.chase import ChaseConfig
from domain.exceptions import ConfigError, MalformedRedirectTarget
from infrastructure.config.settings import ChaseSettings
from infrastructure.logging.console_logger import ConsoleLogger
from infrastructure.tls.certificate_text import CryptographyCertificateFormatter

MAX_LIMIT = 50
MAX_TIMEOUT_SEC = 120


class ChaseRequest(BaseModel):
    """chase 実行リクエスト"""
    url: str = Field(description="Initial URL")
    limit: int = Field(default=10, ge=0, le=MAX_LIMIT, description="Hop limit (0 = server maximum)")
    timeout_sec: float = Field(default=0, ge=0, le=MAX_TIMEOUT_SEC, description="Overall deadline (0 = none)")
    user_agent: str = Field(default="", description="User-Agent override")
    include_body: bool = Field(default=False, description="Include base64 bodies in the response")


class ChaseResponse(BaseModel):
    """chase 実行レスポンス"""
    chase_id: str = Field(description="Chase identifier")
    success: bool = Field(description="No top-level failure")
    pages: List[Dict[str, Any]] = Field(default_factory=list, description="Recorded hops in order")
    final_url: Optional[str] = Field(default=None, description="URL of the last recorded hop")
    error: Optional[str] = Field(default=None, description="Top-level failure")
    error_type: Optional[str] = Field(default=None, description="Top-level failure class")


app = FastAPI(
    title="chaselink",
    description="HTTP / meta-refresh redirect chain tracer",
    version="0.1.0",
)


@app.get("/")
def read_root():
    """ヘルスチェック"""
    return {"status": "ok", "service": "chaselink"}


def _load_settings() -> ChaseSettings:
    try:
        return ChaseSettings.from_env()
    except ConfigError as e:
        raise HTTPException(status_code=500, detail=f"Invalid configuration: {e}") from e


def _page_payload(page, include_body: bool) -> Dict[str, Any]:
    data = page.to_dict()
    if not include_body:
        data["response_body"] = None
    return data


@app.post("/chases", response_model=ChaseResponse)
def create_chase(request: ChaseRequest = Body(...)) -> ChaseResponse:
    """
    URL を起点に redirect を辿り、全 hop を返す

    limit=0 はサーバ側の上限 (MAX_LIMIT) に置き換える（無制限にはしない）
    """
    try:
        initial = build_get_request("", request.url)
    except MalformedRedirectTarget as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    settings = _load_settings()
    chase_id = uuid4().hex
    logger = ConsoleLogger(min_level=settings.log_level).bind(chase_id=chase_id)

    config = ChaseConfig(
        limit=request.limit or MAX_LIMIT,
        timeout_sec=request.timeout_sec,
        user_agent=request.user_agent or settings.user_agent,
    )

    with RequestsChaseTransport(timeout_sec=settings.hop_timeout_sec or None, verify=settings.verify_tls) as transport:
        engine = ChaseEngine(
            transport=transport,
            cert_formatter=CryptographyCertificateFormatter(),
            logger=logger,
        )
        result = engine.chase(initial, config)

    final = result.final_page
    return ChaseResponse(
        chase_id=chase_id,
        success=result.ok,
        pages=[_page_payload(p, request.include_body) for p in result.pages],
        final_url=final.request_url if final else None,
        error=str(result.error) if result.error is not None else None,
        error_type=type(result.error).__name__ if result.error is not None else None,
    )
