# tests/domain/test_chase.py
from __future__ import annotations

import pytest

from domain.chase import DEFAULT_LIMIT, ChaseConfig, ChaseResult, HopRequest
from domain.exceptions import ChaseTimeout, LimitExceeded, MalformedRedirectTarget
from domain.page import Page, ResponseFacet


class TestHopRequest:
    def test_get(self):
        req = HopRequest.get("http://example.com/")
        assert req.method == "GET"
        assert req.headers == {}
        assert req.protocol == "HTTP/1.1"

    def test_with_header_replaces_case_insensitively(self):
        req = HopRequest.get("http://example.com/").with_header("user-agent", "a").with_header("User-Agent", "b")
        assert req.headers == {"User-Agent": "b"}

    def test_with_header_does_not_mutate(self):
        base = HopRequest.get("http://example.com/")
        base.with_header("X-Test", "1")
        assert base.headers == {}


class TestChaseConfig:
    def test_defaults(self):
        config = ChaseConfig()
        assert config.limit == DEFAULT_LIMIT == 10
        assert config.timeout_sec == 0
        assert config.user_agent == ""
        assert config.progress is None

    def test_negative_limit(self):
        with pytest.raises(ValueError):
            ChaseConfig(limit=-1)

    def test_negative_timeout(self):
        with pytest.raises(ValueError):
            ChaseConfig(timeout_sec=-0.5)


class TestChaseResult:
    def test_empty(self):
        result = ChaseResult(pages=())
        assert result.ok
        assert result.final_page is None

    def test_final_page(self):
        page = Page(
            request_method="GET",
            request_url="http://example.com/",
            request_protocol="HTTP/1.1",
            request_headers={},
            response=ResponseFacet(200, "200 OK", "HTTP/1.1", {}, {}, b""),
        )
        result = ChaseResult(pages=(page,), error=LimitExceeded(1))
        assert not result.ok
        assert result.final_page is page


class TestErrors:
    def test_limit_exceeded_message(self):
        assert str(LimitExceeded(10)) == "too many redirects (10)"

    def test_timeout_message(self):
        err = ChaseTimeout(2.5, 3)
        assert str(err) == "chase timed out after 2.5s (3 pages recorded)"
        assert err.pages_recorded == 3

    def test_malformed_target(self):
        err = MalformedRedirectTarget("ftp://x", "unsupported scheme 'ftp'")
        assert err.target == "ftp://x"
        assert "ftp://x" in str(err)
        assert isinstance(err, ValueError)
