from __future__ import annotations

import pytest
import requests

from list_scout.errors import FetchError
from list_scout.fetch import fetch_page, read_text_safely


def _mk_resp(body: bytes, content_type: str = "text/html; charset=utf-8", status: int = 200) -> requests.Response:
    r = requests.Response()
    r.status_code = status
    r._content = body
    r.headers["Content-Type"] = content_type
    r.url = "https://example.com/list"
    return r


class _FakeSession:
    def __init__(self, resp: requests.Response | None = None, exc: Exception | None = None) -> None:
        self.resp = resp
        self.exc = exc
        self.calls: list[dict] = []

    def get(self, url, headers=None, timeout=None):
        self.calls.append({"url": url, "headers": headers, "timeout": timeout})
        if self.exc is not None:
            raise self.exc
        return self.resp


def test_header_charset_wins():
    payload = read_text_safely(_mk_resp("<p>héllo</p>".encode("utf-8")))
    assert payload.text == "<p>héllo</p>"
    assert payload.source == "header_charset"
    assert payload.encoding_used == "utf-8"


def test_meta_charset_is_used_when_header_has_none():
    html = '<html><head><meta charset="gbk"></head><body>政务公开</body></html>'
    payload = read_text_safely(_mk_resp(html.encode("gbk"), content_type="text/html"))
    assert "政务公开" in payload.text
    assert payload.source == "meta_charset"
    assert payload.encoding_used == "gbk"


def test_unknown_header_charset_moves_on():
    html = '<meta http-equiv="Content-Type" content="text/html; charset=utf-8"><p>ok</p>'
    payload = read_text_safely(_mk_resp(html.encode("utf-8"), content_type="text/html; charset=no-such-codec"))
    assert payload.source == "meta_charset"
    assert payload.text.endswith("<p>ok</p>")


def test_fetch_page_success():
    sess = _FakeSession(_mk_resp(b"<title>T</title>"))
    page = fetch_page("https://example.com/list", session=sess, headers={"X-Test": "1"}, timeout=3)
    assert page.status_code == 200
    assert page.text == "<title>T</title>"
    assert page.url == "https://example.com/list"
    call = sess.calls[0]
    assert call["timeout"] == 3
    assert call["headers"]["X-Test"] == "1"
    assert "User-Agent" in call["headers"]


def test_fetch_page_http_error():
    sess = _FakeSession(_mk_resp(b"oops", status=500))
    with pytest.raises(FetchError) as exc:
        fetch_page("https://example.com/list", session=sess)
    assert exc.value.status_code == 500


def test_fetch_page_connection_error():
    sess = _FakeSession(exc=requests.ConnectionError("refused"))
    with pytest.raises(FetchError, match="refused"):
        fetch_page("https://example.com/list", session=sess)
