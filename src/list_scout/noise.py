from __future__ import annotations

from functools import lru_cache
import re
from typing import Optional

from .config import DEFAULT_CONFIG, EngineConfig
from .dom import Element


_TOKEN_SPLIT_RE = re.compile(r"[-_]")
_PAGER_COUNT_RE = re.compile(r"(共|第)\s*\d+\s*(页|条|记录)|\bpage\s+\d+\s+of\s+\d+", re.I)


def class_words(el: Element) -> set[str]:
    """Class tokens plus their hyphen/underscore parts, lowercased."""
    out: set[str] = set()
    for tok in el.classes:
        low = tok.lower()
        out.add(low)
        out.update(p for p in _TOKEN_SPLIT_RE.split(low) if p)
    return out


def has_class_word(el: Element, words: tuple[str, ...]) -> bool:
    mine = class_words(el)
    return any(w.lower() in mine for w in words)


def in_chrome(el: Element, config: Optional[EngineConfig] = None) -> bool:
    """True if `el` is or sits inside page furniture (header, nav, footer, menus)."""
    cfg = config or DEFAULT_CONFIG
    return el.closest(cfg.vocabulary.chrome_selector) is not None


def has_noise_class(el: Element, config: Optional[EngineConfig] = None) -> bool:
    cfg = config or DEFAULT_CONFIG
    return has_class_word(el, cfg.vocabulary.noise_class_words)


@lru_cache(maxsize=256)
def _word_re(word: str) -> re.Pattern[str]:
    return re.compile(rf"\b{re.escape(word)}\b")


def _nav_keyword_hits(el: Element, cfg: EngineConfig) -> int:
    # English menu words ("home", "about") show up in ordinary titles, so
    # they only count inside short link texts.
    text = el.text.lower()
    short = [a.text.lower() for a in el.select("a") if len(a.text) < cfg.thresholds.nav_short_link_max]
    hits = 0
    for kw in cfg.vocabulary.nav_keywords:
        low = kw.lower()
        if not low:
            continue
        if low.isascii():
            pat = _word_re(low)
            if any(pat.search(t) for t in short):
                hits += 1
        elif low in text:
            hits += 1
    return hits


def is_navigation_list(el: Element, config: Optional[EngineConfig] = None) -> bool:
    cfg = config or DEFAULT_CONFIG
    th = cfg.thresholds
    voc = cfg.vocabulary

    if in_chrome(el, cfg):
        return True
    if el.id in voc.nav_ids or has_class_word(el, voc.nav_class_words):
        return True

    links = el.select("a[href]")
    if links:
        first_len = len(links[0].text)
        if first_len > th.nav_content_link_min:
            return False
        if first_len < th.nav_first_link_max:
            short = sum(1 for a in links if len(a.text) < th.nav_short_link_max)
            if short / len(links) > th.nav_short_link_ratio:
                return True

    return _nav_keyword_hits(el, cfg) >= th.nav_keyword_min_hits


def _pager_blocks(el: Element, cfg: EngineConfig) -> list[Element]:
    """Outermost pager-classed descendants of `el`."""
    words = cfg.vocabulary.pager_class_words
    blocks = [d for d in el.select("*") if has_class_word(d, words)]
    return [b for b in blocks if not any(o != b and o.contains(b) for o in blocks)]


def is_pagination_list(
    el: Element, config: Optional[EngineConfig] = None, *, ignore_pagers: bool = False
) -> bool:
    """
    Page-count phrasing, or a clickable control whose whole text is a pager word.

    With `ignore_pagers`, pager-classed blocks nested inside `el` are left out,
    so a result container carrying its own pager is not itself a pager.
    """
    cfg = config or DEFAULT_CONFIG
    text = el.text
    skip: list[Element] = []
    if ignore_pagers:
        if has_class_word(el, cfg.vocabulary.pager_class_words):
            return True
        skip = _pager_blocks(el, cfg)
        for block in skip:
            text = text.replace(block.text, " ", 1)
    if _PAGER_COUNT_RE.search(text):
        return True
    words = {w.lower() for w in cfg.vocabulary.pager_words}
    for ctl in el.select("a, button"):
        if any(b.contains(ctl) for b in skip):
            continue
        if ctl.text.strip().lower() in words:
            return True
    return False


def is_noise_container(el: Element, config: Optional[EngineConfig] = None) -> bool:
    """Navigation or pagination, where a pager nested in the container does not count."""
    return is_navigation_list(el, config) or is_pagination_list(el, config, ignore_pagers=True)
