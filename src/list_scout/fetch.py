from __future__ import annotations

"""
fetch.py: download a page and decode it without mangling legacy charsets.

Many listing pages (government portals in particular) are served as GBK/GB2312
with no charset in the Content-Type header, and requests then guesses
ISO-8859-1. The decoder below checks the header, then a <meta charset> in the
first bytes, then the detected encoding, then a short fallback list.
"""

from dataclasses import dataclass
import logging
import re
from typing import Optional

import requests

from .errors import FetchError


logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    "User-Agent": "Mozilla/5.0 (X11; Linux x86_64) list-scout/0.1",
    "Accept": "text/html,application/xhtml+xml;q=0.9,*/*;q=0.8",
}

_META_CHARSET_RE = re.compile(rb"""<meta[^>]+charset\s*=\s*["']?\s*([A-Za-z0-9_\-]+)""", re.I)


@dataclass
class TextPayload:
    text: str
    encoding_used: str
    source: str
    content_type: str
    size_bytes: int


@dataclass
class PagePayload:
    url: str
    status_code: int
    text: str
    encoding_used: str


def _extract_charset(content_type: str) -> Optional[str]:
    m = re.search(r"charset=([^\s;]+)", content_type or "", flags=re.IGNORECASE)
    return m.group(1).strip("\"'") if m else None


def _sniff_meta_charset(raw: bytes) -> Optional[str]:
    m = _META_CHARSET_RE.search(raw[:4096])
    return m.group(1).decode("ascii", errors="ignore") if m else None


def _try_decode(raw: bytes, enc: Optional[str], errors: str) -> Optional[str]:
    if not enc:
        return None
    try:
        return raw.decode(enc, errors=errors)
    except LookupError:
        logger.debug("unknown encoding %r", enc)
        return None


def read_text_safely(
    resp: requests.Response,
    *,
    fallback_encodings: tuple[str, ...] = ("utf-8", "gb18030"),
    errors: str = "replace",
) -> TextPayload:
    """
    Decode resp.content, trying in order:
    1) charset from Content-Type
    2) <meta charset> sniffed from the document head
    3) resp.apparent_encoding
    4) fallback_encodings (strict decode, first that fits)
    5) utf-8 with replacement
    """
    content_type = resp.headers.get("Content-Type", "")
    raw = resp.content or b""
    size = len(raw)

    hypotheses = (
        (_extract_charset(content_type), "header_charset"),
        (_sniff_meta_charset(raw), "meta_charset"),
        (getattr(resp, "apparent_encoding", None), "apparent_encoding"),
    )
    for enc, source in hypotheses:
        text = _try_decode(raw, enc, errors)
        if text is not None:
            return TextPayload(text=text, encoding_used=str(enc), source=source, content_type=content_type, size_bytes=size)

    for enc in fallback_encodings:
        try:
            text = raw.decode(enc)
        except (LookupError, UnicodeDecodeError):
            continue
        return TextPayload(text=text, encoding_used=enc, source="fallback_list", content_type=content_type, size_bytes=size)

    return TextPayload(
        text=raw.decode("utf-8", errors="replace"),
        encoding_used="utf-8",
        source="fallback_utf8",
        content_type=content_type,
        size_bytes=size,
    )


def fetch_page(
    url: str,
    *,
    timeout: float = 15.0,
    headers: Optional[dict[str, str]] = None,
    session: Optional[requests.Session] = None,
) -> PagePayload:
    http = session or requests.Session()
    merged = dict(DEFAULT_HEADERS)
    merged.update(headers or {})
    try:
        resp = http.get(url, headers=merged, timeout=timeout)
    except requests.RequestException as e:
        raise FetchError(url, str(e)) from e

    if not (200 <= resp.status_code < 300):
        raise FetchError(url, f"HTTP {resp.status_code}", status_code=resp.status_code)

    payload = read_text_safely(resp)
    logger.debug("fetched %s (%d bytes, %s via %s)", url, payload.size_bytes, payload.encoding_used, payload.source)
    return PagePayload(
        url=str(resp.url or url),
        status_code=resp.status_code,
        text=payload.text,
        encoding_used=payload.encoding_used,
    )
