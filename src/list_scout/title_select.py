from __future__ import annotations

import re
from typing import Optional, Sequence

from .config import DEFAULT_CONFIG, EngineConfig
from .dom import Element
from .textutil import DATE_RE, SENTENCE_SPLIT_RE


_URL_PREFIX_RE = re.compile(r"^https?://", re.I)
_BARE_URL_RE = re.compile(r"^https?://\S+$", re.I)
_DATE_COUNT_RE = re.compile(DATE_RE.pattern.replace("日?", ""))


def score_title_link(a: Element, position: int, config: Optional[EngineConfig] = None) -> int:
    """Heuristic score of one anchor as the title link of its item."""
    cfg = config or DEFAULT_CONFIG
    text = a.text
    n = len(text)
    href = (a.get("href") or "").lower()
    score = 0

    if position == 0:
        score += 15

    if 10 <= n <= 150:
        score += 25
    elif 6 <= n < 10:
        score += 5
    elif 150 < n < 300:
        score += 10
    elif n >= 300:
        score -= 20

    dates = len(_DATE_COUNT_RE.findall(text))
    if dates == 1 and n < 100:
        score += 5
    elif dates > 1 or (dates == 1 and n > 200):
        score -= 10

    if any(h in href for h in cfg.vocabulary.title_href_hints):
        score += 8

    if _URL_PREFIX_RE.match(text):
        score -= 25
    if _BARE_URL_RE.match(text):
        score -= 20

    if len([p for p in SENTENCE_SPLIT_RE.split(text) if p.strip()]) > 3 and n > 200:
        score -= 15

    parent = a.parent
    if parent is not None and parent.first_element_child == a:
        score += 10

    return score


def select_title_link(anchors: Sequence[Element], config: Optional[EngineConfig] = None) -> Optional[Element]:
    """Highest-scoring anchor; ties keep the earliest."""
    best: Optional[Element] = None
    best_score = 0
    for i, a in enumerate(anchors):
        s = score_title_link(a, i, config)
        if best is None or s > best_score:
            best, best_score = a, s
    return best
