from __future__ import annotations

import re
from typing import Optional


_WS_RE = re.compile(r"\s+")

# dates stripped out of titles: 2024-01-05, 2024/1/5, 2024.01.05, 2024年1月5日
DATE_STRIP_RE = re.compile(r"\d{4}[-年/.]\d{1,2}[-月/.]\d{1,2}日?")
# dates recorded next to bare anchors and counted when scoring title links
DATE_RE = re.compile(r"\d{4}[-年]\d{1,2}[-月]\d{1,2}日?")
# dates scanned from card/row/generic text
DATE_FIND_RE = re.compile(r"\d{4}-\d{1,2}-\d{1,2}|\d{4}/\d{1,2}/\d{1,2}|\d{4}年\d{1,2}月\d{1,2}日?")
# parenthesized effective dates in list items: (2023年5月1日起施行)
PAREN_DATE_RE = re.compile(r"[(（]([\d年月日号自起施行\-./]+)[)）]")

SENTENCE_SPLIT_RE = re.compile(r"[。！？!?]|\.(?=\s|$)")
_SENTENCE_HEAD_RE = re.compile(r"^[^。！？!?\n]+")
_LEAD_TAG_RE = re.compile(r"^[一-龥]{2,6}\s+")
_TRAIL_TAG_RE = re.compile(r"\s+[一-龥]{2,6}$")

LONG_TITLE = 200
SENTENCE_MIN = 10
SENTENCE_MAX = 150
HARD_CUT = 100


def collapse_ws(text: Optional[str]) -> str:
    if not text:
        return ""
    return _WS_RE.sub(" ", str(text)).strip()


def find_date(text: Optional[str], pattern: re.Pattern[str] = DATE_FIND_RE) -> Optional[str]:
    if not text:
        return None
    m = pattern.search(text)
    return m.group(0) if m else None


def _cut_long(text: str) -> str:
    if len(text) <= LONG_TITLE:
        return text
    m = _SENTENCE_HEAD_RE.match(text)
    if m:
        head = m.group(0).strip()
        if SENTENCE_MIN <= len(head) <= SENTENCE_MAX:
            return head
    return text[:HARD_CUT].strip()


_STEPS = (
    lambda s: DATE_STRIP_RE.sub("", s),
    lambda s: _TRAIL_TAG_RE.sub("", _LEAD_TAG_RE.sub("", s)),
    collapse_ws,
    _cut_long,
)


def clean_title_text(text: Optional[str]) -> str:
    """
    Normalize a candidate title.

    Strips embedded dates and short CJK category tags at either end, collapses
    whitespace and shortens titles longer than 200 chars (first sentence when
    it is 10-150 chars, else the first 100 chars). If any step would leave
    fewer than max(5, 30% of the input) chars, the whitespace-collapsed input
    is returned unchanged.

    The steps repeat until nothing changes, so cleaning an already clean
    title is a no-op.
    """
    original = collapse_ws(text)
    if not original:
        return ""
    floor = max(5.0, 0.3 * len(original))

    cur = original
    while True:
        nxt = cur
        for step in _STEPS:
            stepped = step(nxt)
            if stepped != nxt and len(stepped) < floor:
                return original
            nxt = stepped
        if nxt == cur:
            return cur
        cur = nxt


def strip_prefixes(text: str, prefixes: tuple[str, ...]) -> str:
    """Drop leading category labels such as "政务动态" (repeatedly)."""
    out = text
    changed = True
    while changed and out:
        changed = False
        for p in prefixes:
            if p and out.startswith(p):
                out = out[len(p) :].lstrip()
                changed = True
    return out


def starts_with_any(text: str, prefixes: tuple[str, ...], *, window: int = 16) -> bool:
    """Prefix test on the first `window` chars; ASCII prefixes must end on a word boundary."""
    head = text[:window].lower()
    for p in prefixes:
        low = p.lower()
        if not low or not head.startswith(low):
            continue
        if low.isascii() and len(text) > len(low) and text[len(low)].isalnum():
            continue
        return True
    return False


_MARKER_SYMBOLS_RE = re.compile(r"[^一-龥a-zA-Z0-9\s【】（）()]")


def strip_symbols(text: Optional[str]) -> str:
    """Keep CJK, ASCII letters/digits, whitespace and bracket pairs."""
    return collapse_ws(_MARKER_SYMBOLS_RE.sub("", text or ""))


def preview(text: Optional[str], limit: int = 100) -> str:
    return collapse_ws(text)[:limit]
