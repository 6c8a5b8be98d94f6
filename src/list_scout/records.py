from __future__ import annotations

from enum import Enum
import logging
import re
from typing import Any, Callable, Optional

from .config import DEFAULT_CONFIG, EngineConfig
from .dom import Element
from .textutil import (
    DATE_RE,
    PAREN_DATE_RE,
    clean_title_text,
    collapse_ws,
    find_date,
    strip_prefixes,
    strip_symbols,
)
from .title_select import select_title_link
from .urls import is_valid_url, make_absolute_url


logger = logging.getLogger(__name__)

_NUMERIC_RE = re.compile(r"^\d+$")

CARD_TITLE_SELECTOR = 'a.title, .title a, [class*="title"] a, a[class*="title"]'
CARD_TAG_SELECTOR = '.tag-type, [class*="tag"]'
CARD_SUMMARY_SELECTOR = '.content, [class*="content"], [class*="desc"], [class*="summary"]'
CARD_DATE_SELECTOR = '.date, [class*="date"]'
CARD_PUBLISHER_SELECTOR = '.publisher, [class*="publisher"], [class*="source"]'
GENERIC_DATE_SELECTOR = '[class*="date"], [class*="time"], time, [datetime]'


class ItemShape(Enum):
    MARKER_LINK = "marker_link"
    ANCHOR = "anchor"
    DIV_CARD = "div_card"
    TABLE_ROW = "table_row"
    LIST_ITEM = "list_item"
    GENERIC = "generic"


def _is_card(item: Element) -> bool:
    cls = item.class_name.lower()
    return "result" in cls or "news-" in cls


def classify_item(item: Element, config: Optional[EngineConfig] = None, *, structural_only: bool = False) -> ItemShape:
    cfg = config or DEFAULT_CONFIG
    if not structural_only:
        marker = cfg.vocabulary.marker_selector
        if item.matches(marker) or item.select_one(marker) is not None:
            return ItemShape.MARKER_LINK
    if item.tag == "a":
        return ItemShape.ANCHOR
    if _is_card(item):
        return ItemShape.DIV_CARD
    if item.tag == "tr":
        return ItemShape.TABLE_ROW
    if item.tag == "li":
        return ItemShape.LIST_ITEM
    if item.tag == "div":
        return ItemShape.DIV_CARD
    return ItemShape.GENERIC


def _abs(href: Optional[str], item: Element, cfg: EngineConfig) -> Optional[str]:
    url = make_absolute_url(href, item.document.url, config=cfg)
    return url if is_valid_url(url) else None


# ---------------------------------------------------------------------------
# one handler per shape


def _marker_fields(item: Element, cfg: EngineConfig) -> Optional[dict[str, Any]]:
    marker = cfg.vocabulary.marker_selector
    a = item if item.matches(marker) else item.select_one(marker)
    if a is None:
        return None
    title = strip_symbols(a.text)
    href = _abs(a.get("href"), item, cfg)
    if not title or not href:
        return None
    return {"title": title, "href": href}


def _anchor_fields(item: Element, cfg: EngineConfig) -> dict[str, Any]:
    raw = item.text
    href = _abs(item.get("href"), item, cfg)
    if len(raw) <= cfg.thresholds.anchor_title_min_text or href is None:
        return _generic_fields(item, cfg)
    fields: dict[str, Any] = {"title": clean_title_text(raw), "href": href}
    parent = item.parent
    date = find_date(parent.text, DATE_RE) if parent is not None else None
    if date:
        fields["date"] = date
    return fields


def _card_fields(item: Element, cfg: EngineConfig) -> dict[str, Any]:
    th = cfg.thresholds
    fields: dict[str, Any] = {}

    title_el = item.select_one(CARD_TITLE_SELECTOR)
    if title_el is None:
        linked = [a for a in item.select("a[href]") if _abs(a.get("href"), item, cfg)]
        title_el = select_title_link(linked, cfg)
    if title_el is not None:
        title = strip_prefixes(title_el.text, cfg.vocabulary.category_prefixes)
        if len(title) > th.card_title_min_text:
            fields["title"] = title
        href = _abs(title_el.get("href"), item, cfg)
        if href:
            fields["href"] = href

    tag_el = item.select_one(CARD_TAG_SELECTOR)
    if tag_el is not None and tag_el.text:
        fields["category"] = tag_el.text

    summary_el = item.select_one(CARD_SUMMARY_SELECTOR)
    if summary_el is not None and len(summary_el.text) > 10:
        fields["summary"] = summary_el.text[: th.summary_max_chars]

    date_el = item.select_one(CARD_DATE_SELECTOR)
    date = None
    if date_el is not None and date_el.text:
        date = find_date(date_el.text) or date_el.text
    else:
        date = find_date(item.text)
    if date:
        fields["date"] = date

    pub_el = item.select_one(CARD_PUBLISHER_SELECTOR)
    if pub_el is not None and pub_el.text:
        fields["publisher"] = pub_el.text
    return fields


def _row_fields(item: Element, cfg: EngineConfig) -> dict[str, Any]:
    cells = [c for c in item.children if c.tag in ("td", "th")]
    if not cells:
        return _generic_fields(item, cfg)
    fields: dict[str, Any] = {}

    first = cells[0]
    link = first.select_one("a[href]")
    href = _abs(link.get("href"), item, cfg) if link is not None else None
    if href and link is not None:
        fields["title"] = link.text or first.text
        fields["href"] = href
    elif first.text:
        fields["title"] = first.text

    for i, cell in enumerate(cells[1:], start=1):
        text = cell.text
        if not text:
            continue
        if "date" not in fields:
            date = find_date(text)
            if date:
                fields["date"] = date
                continue
        a = cell.select_one("a[href]")
        url = _abs(a.get("href"), item, cfg) if a is not None else None
        if url and a is not None:
            fields[f"column_{i}"] = a.text or text
            fields[f"column_{i}_url"] = url
            continue
        fields[f"column_{i}"] = text
    return fields


def _is_download(a: Element, cfg: EngineConfig) -> bool:
    low = a.text.lower()
    return any(w.lower() in low for w in cfg.vocabulary.download_words)


def _list_item_fields(item: Element, cfg: EngineConfig) -> dict[str, Any]:
    fields: dict[str, Any] = {}
    kids = item.children
    if kids and _NUMERIC_RE.match(kids[0].text):
        fields["seq"] = kids[0].text

    downloads: list[tuple[str, str]] = []
    for a in item.select("a[href]"):
        url = _abs(a.get("href"), item, cfg)
        if url is None:
            continue
        if _is_download(a, cfg):
            downloads.append((a.text, url))
        elif "href" not in fields:
            fields["title"] = clean_title_text(a.text)
            fields["href"] = url

    m = PAREN_DATE_RE.search(item.text)
    if m:
        fields["date"] = m.group(1)

    for n, (text, url) in enumerate(downloads, start=1):
        fields[f"download_{n}"] = text
        fields[f"download_{n}_url"] = url
    return fields


def _generic_fields(item: Element, cfg: EngineConfig) -> dict[str, Any]:
    fields: dict[str, Any] = {}
    anchors = item.select("a[href]") if item.tag != "a" else [item]
    n = 1
    seen: set[str] = set()
    for a in anchors:
        url = _abs(a.get("href"), item, cfg)
        if url is None:
            continue
        if "href" not in fields:
            fields["title"] = a.text
            fields["href"] = url
            seen.add(url)
            continue
        if url in seen:
            continue
        seen.add(url)
        n += 1
        fields[f"url_{n}"] = url
        if a.text and a.text != fields.get("title"):
            fields[f"url_{n}_text"] = a.text

    date_el = item.select_one(GENERIC_DATE_SELECTOR)
    date = None
    if date_el is not None:
        date = date_el.get("datetime") or date_el.text or None
    if not date:
        date = find_date(item.text)
    if date:
        fields["date"] = date
    return fields


Handler = Callable[[Element, EngineConfig], Optional[dict[str, Any]]]

_HANDLERS: dict[ItemShape, Handler] = {
    ItemShape.MARKER_LINK: _marker_fields,
    ItemShape.ANCHOR: _anchor_fields,
    ItemShape.DIV_CARD: _card_fields,
    ItemShape.TABLE_ROW: _row_fields,
    ItemShape.LIST_ITEM: _list_item_fields,
    ItemShape.GENERIC: _generic_fields,
}


def _derive_text(item: Element, fields: dict[str, Any], cfg: EngineConfig) -> None:
    if fields.get("summary"):
        return
    text = item.text
    for key in ("title", "date"):
        val = fields.get(key)
        if val:
            text = text.replace(val, "", 1)
    text = collapse_ws(text)[: cfg.thresholds.text_max_chars]
    if text:
        fields["text"] = text


def _extract(item: Element, cfg: EngineConfig) -> Optional[tuple[ItemShape, dict[str, Any]]]:
    shape = classify_item(item, cfg)
    if shape is ItemShape.MARKER_LINK:
        marked = _marker_fields(item, cfg)
        if marked is not None:
            return shape, marked
        shape = classify_item(item, cfg, structural_only=True)

    fields = _HANDLERS[shape](item, cfg) or {}
    _derive_text(item, fields, cfg)

    title = collapse_ws(fields.get("title"))
    if not title:
        title = collapse_ws(item.text)[: cfg.thresholds.preview_max_chars]
    if not title:
        logger.debug("dropping item without title: %r", item)
        return None

    out: dict[str, Any] = {"title": title, "href": fields.get("href")}
    for k, v in fields.items():
        if k not in out:
            out[k] = v
    return shape, out


def extract_item_fields(item: Element, *, config: Optional[EngineConfig] = None) -> Optional[dict[str, Any]]:
    """Every field the item's shape yields (title and href first), or None."""
    got = _extract(item, config or DEFAULT_CONFIG)
    return got[1] if got is not None else None


def extract_item_data(item: Element, *, config: Optional[EngineConfig] = None) -> Optional[dict[str, Any]]:
    """
    Public record for one item.

    Marker-link items give exactly {title, href}; every other shape gives
    {title, href, location} with location reserved (always None). href is
    None when no valid absolute link was found.
    """
    got = _extract(item, config or DEFAULT_CONFIG)
    if got is None:
        return None
    shape, fields = got
    if shape is ItemShape.MARKER_LINK:
        return {"title": fields["title"], "href": fields["href"]}
    return {"title": fields["title"], "href": fields["href"], "location": None}
