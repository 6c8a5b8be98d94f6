from __future__ import annotations

import logging
from typing import Any, Optional
from urllib.parse import SplitResult, parse_qs, urljoin, urlsplit

from .config import DEFAULT_CONFIG, EngineConfig


logger = logging.getLogger(__name__)

_HTTP_SCHEMES = ("http", "https")
_SKIP_SCHEMES = ("javascript:", "mailto:", "tel:", "data:", "about:")


def is_valid_url(url: Any) -> bool:
    if not isinstance(url, str):
        return False
    s = url.strip()
    if not s or s.endswith("...") or "…" in s:
        return False
    try:
        parts = urlsplit(s)
    except ValueError:
        return False
    return parts.scheme.lower() in _HTTP_SCHEMES and bool(parts.netloc)


def _redirect_target(parts: SplitResult, cfg: EngineConfig) -> Optional[str]:
    last = parts.path.rstrip("/").rsplit("/", 1)[-1].lower()
    if last not in cfg.vocabulary.redirect_paths:
        return None
    qs = parse_qs(parts.query)
    for name in cfg.vocabulary.redirect_params:
        vals = qs.get(name)
        if vals and vals[0].strip():
            return vals[0].strip()
    return None


def make_absolute_url(
    href: Optional[str], base_url: Optional[str] = None, *, config: Optional[EngineConfig] = None
) -> Optional[str]:
    """
    Absolute http(s) URL for `href`, or None.

    Redirector links (…/link.do?url=…, /redirect?url=…) are unwrapped to the
    decoded destination. Relative links are resolved against `base_url`.
    """
    if not isinstance(href, str):
        return None
    s = href.strip()
    if not s or s.lower().startswith(_SKIP_SCHEMES):
        return None
    cfg = config or DEFAULT_CONFIG

    try:
        absolute = urljoin(base_url, s) if base_url else s
        parts = urlsplit(absolute)
    except ValueError:
        logger.debug("unparseable href %r (base=%r)", s, base_url)
        return None

    if parts.scheme.lower() not in _HTTP_SCHEMES or not parts.netloc:
        return None

    inner = _redirect_target(parts, cfg)
    if inner and inner != s:
        resolved = make_absolute_url(inner, absolute, config=cfg)
        if resolved:
            return resolved
    return absolute
