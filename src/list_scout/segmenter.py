from __future__ import annotations

import logging
from typing import Callable, Iterable, Optional

from .candidates import Container, is_script_href, own_list_items, table_rows
from .config import DEFAULT_CONFIG, EngineConfig
from .dom import Element
from .noise import has_class_word
from .textutil import starts_with_any


logger = logging.getLogger(__name__)

DIV_LIKE = ("div", "section", "article", "main")

CHILD_SELECTORS: tuple[str, ...] = (
    "li",
    'div[class*="item"], div[class*="product"], div[class*="card"]',
    "article",
    "section",
    'div[class*="col"], div[class*="cell"]',
)


def _anchor_item_ok(a: Element, cfg: EngineConfig) -> bool:
    if a.tag != "a" or is_script_href(a.get("href")):
        return False
    text = a.text
    if len(text) <= cfg.thresholds.anchor_title_min_text:
        return False
    low = text.lower()
    return not any(p.lower() in low for p in cfg.vocabulary.no_result_phrases)


def _dedupe(items: Iterable[Element]) -> list[Element]:
    seen: set[Element] = set()
    out: list[Element] = []
    for el in items:
        if el not in seen:
            seen.add(el)
            out.append(el)
    return out


def _marker_items(el: Element, cfg: EngineConfig) -> list[Element]:
    markers = el.select(cfg.vocabulary.marker_selector)
    if len(markers) < cfg.thresholds.marker_min_links:
        return []
    out: list[Element] = []
    for m in markers:
        row = m.closest("tr")
        if row is not None and row != el and el.contains(row):
            out.append(row)
            continue
        parent = m.parent
        out.append(parent if parent is not None and parent != el else m)
    return _dedupe(out)


def _list_items(el: Element, cfg: EngineConfig) -> list[Element]:
    if el.tag not in ("ul", "ol"):
        return []
    return own_list_items(el)


def _inner_table(el: Element, cfg: EngineConfig) -> Optional[Element]:
    for table in el.select("table"):
        rows = table_rows(table)
        if "detail" in table.class_name.lower() and len(rows) < cfg.thresholds.detail_table_min_rows:
            continue
        if any(_is_data_row(tr) for tr in rows):
            return table
    return None


def _div_like_items(el: Element, cfg: EngineConfig) -> list[Element]:
    if el.tag not in DIV_LIKE:
        return []
    nested = el.select("ul li, ol li")
    if nested:
        return nested
    anchors = [a for a in el.select("a[href]") if _anchor_item_ok(a, cfg)]
    if len(anchors) >= cfg.thresholds.segment_min_links:
        return anchors
    if _inner_table(el, cfg) is not None:
        return []
    min_text = cfg.thresholds.segment_child_min_text
    return [c for c in el.children if len(c.text) > min_text and c.select_one("a") is not None]


def _is_data_row(tr: Element) -> bool:
    return any(c.tag == "td" for c in tr.children)


def _table_items(el: Element, cfg: EngineConfig) -> list[Element]:
    if el.tag != "table":
        return []
    return [tr for tr in table_rows(el) if _is_data_row(tr)]


def _inner_table_items(el: Element, cfg: EngineConfig) -> list[Element]:
    table = _inner_table(el, cfg)
    if table is None:
        return []
    return [tr for tr in table_rows(table) if _is_data_row(tr)]


def _child_selector_items(el: Element, cfg: EngineConfig) -> list[Element]:
    for sel in CHILD_SELECTORS:
        found = el.select(sel)
        if found:
            return found
    return []


def _all_children(el: Element, cfg: EngineConfig) -> list[Element]:
    return el.children


Branch = Callable[[Element, EngineConfig], list[Element]]

BRANCHES: list[tuple[str, Branch]] = [
    ("marker-links", _marker_items),
    ("list", _list_items),
    ("div-like", _div_like_items),
    ("table", _table_items),
    ("inner-table", _inner_table_items),
    ("child-selectors", _child_selector_items),
    ("children", _all_children),
]


def _element_items(el: Element, cfg: EngineConfig) -> list[Element]:
    for name, branch in BRANCHES:
        items = branch(el, cfg)
        if items:
            logger.debug("segmented %r via %s branch: %d raw items", el, name, len(items))
            return items
    return []


def _handle_items(container: Container, cfg: EngineConfig) -> list[Element]:
    matches = container.matches
    if matches and all(m.tag == "a" for m in matches):
        return [a for a in matches if _anchor_item_ok(a, cfg)]

    out: list[Element] = []
    for m in matches:
        if m.tag in ("ul", "ol"):
            out.extend(own_list_items(m))
            continue
        if m.tag in DIV_LIKE:
            nested = m.select("ul li, ol li")
            if nested:
                out.extend(nested)
                continue
            anchors = [a for a in m.select("a[href]") if _anchor_item_ok(a, cfg)]
            if len(anchors) >= cfg.thresholds.segment_min_links:
                out.extend(anchors)
                continue
        out.append(m)
    return out


def _keep(item: Element, cfg: EngineConfig) -> bool:
    voc = cfg.vocabulary
    if item.tag in voc.noise_tags:
        return False
    if has_class_word(item, voc.noise_class_words):
        return False
    text = item.text.strip()
    if len(text) < cfg.thresholds.item_min_text:
        return False
    return not starts_with_any(text, voc.boilerplate_prefixes)


def get_list_items(container: Container, *, config: Optional[EngineConfig] = None) -> list[Element]:
    """Split a committed container into ordered items and drop the noise."""
    cfg = config or DEFAULT_CONFIG
    if container.element is not None:
        raw = _element_items(container.element, cfg)
    else:
        raw = _handle_items(container, cfg)

    items = [it for it in _dedupe(raw) if _keep(it, cfg)]
    logger.debug("%s: %d raw items, %d kept", container.describe(), len(raw), len(items))
    return items
