# tests/application/services/test_redactor.py
from application.services.redactor import MASK, cookie_names, mask_headers, mask_value
from domain.page import Cookie


class TestMaskValue:
    def test_mask_authorization(self):
        assert mask_value("authorization", "Bearer token123") == MASK

    def test_mask_proxy_authorization(self):
        assert mask_value("Proxy-Authorization", "Basic abc") == MASK

    def test_mask_cookie(self):
        assert mask_value("cookie", "session=abc123") == MASK

    def test_mask_set_cookie(self):
        assert mask_value("Set-Cookie", "session=xyz789; Path=/") == MASK

    def test_no_mask_regular_header(self):
        assert mask_value("Location", "https://example.com/") == "https://example.com/"

    def test_mask_none_value(self):
        assert mask_value("cookie", None) is None


class TestMaskHeaders:
    def test_masks_every_value_of_sensitive_header(self):
        headers = {"Set-Cookie": ("a=1", "b=2"), "Content-Type": ("text/html",)}

        result = mask_headers(headers)

        assert result == {"Set-Cookie": [MASK, MASK], "Content-Type": ["text/html"]}

    def test_empty(self):
        assert mask_headers({}) == {}


def test_cookie_names_keeps_order_and_drops_values():
    cookies = [Cookie(name="sid", value="secret"), Cookie(name="pref", value="dark")]

    assert cookie_names(cookies) == ["sid", "pref"]
