from __future__ import annotations

from dataclasses import dataclass
import logging
import re
from typing import Any, Callable, Optional

from .config import DEFAULT_CONFIG, EngineConfig
from .dom import Document, Element, css_path, is_css_ident
from .noise import has_class_word, has_noise_class, in_chrome, is_noise_container, is_pagination_list
from .textutil import preview, strip_symbols


logger = logging.getLogger(__name__)

MARKER_CONTAINER = "marker-link-container"

KEYWORD_LIST_SELECTOR = ", ".join(
    f"{tag}[{attr}*={word}]"
    for tag in ("ul", "ol")
    for word in ("list", "result", "search")
    for attr in ("id", "class")
)
FALLBACK_SELECTOR = 'table, ul, [class*="list-item"], [class*="result-item"], [class*="search-result"]'
RESULT_LIST_SELECTOR = 'div[class*="result-list"], div[class*="s-result"]'
CLASS_GROUP_SELECTOR = 'div[class*="result"], div[class*="item"], div[class*="news"], div[class*="list"]'


@dataclass(frozen=True)
class Container:
    """Committed list region: one element, or a selector with its matches."""

    document: Document
    element: Optional[Element] = None
    selector: Optional[str] = None
    matches: tuple[Element, ...] = ()

    @classmethod
    def of_element(cls, el: Element) -> "Container":
        return cls(document=el.document, element=el)

    @classmethod
    def of_selector(cls, doc: Document, selector: str, matches: list[Element]) -> "Container":
        return cls(document=doc, selector=selector, matches=tuple(matches))

    @property
    def is_handle(self) -> bool:
        return self.element is None

    def elements(self) -> tuple[Element, ...]:
        if self.element is not None:
            return (self.element,)
        return self.matches

    def describe(self) -> str:
        if self.element is not None:
            return repr(self.element)
        return f"{self.selector!r} ({len(self.matches)} matches)"


@dataclass(frozen=True)
class Candidate:
    container: Container
    selector: str
    item_count: int
    preview: str
    type_label: str
    priority: int
    tier: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "selector": self.selector,
            "type": self.type_label,
            "itemCount": self.item_count,
            "preview": self.preview,
            "priority": self.priority,
            "tier": self.tier,
            "description": f"{self.type_label} - {self.item_count} items - {self.preview[:50]}",
        }


# ---------------------------------------------------------------------------
# shared predicates


def is_script_href(href: Optional[str]) -> bool:
    return (href or "").strip().lower().startswith("javascript:")


def qualifying_anchor(a: Element, cfg: EngineConfig, *, min_text: Optional[int] = None) -> bool:
    """Anchor with a real href, enough text and no "no results" phrasing."""
    href = a.get("href")
    if href is None or not href.strip() or is_script_href(href):
        return False
    text = a.text
    limit = cfg.thresholds.anchor_title_min_text if min_text is None else min_text
    if len(text) < limit:
        return False
    low = text.lower()
    return not any(p.lower() in low for p in cfg.vocabulary.no_result_phrases)


def own_list_items(list_el: Element) -> list[Element]:
    return [li for li in list_el.select("li") if li.closest("ul, ol") == list_el]


def valid_list_items(list_el: Element, min_text: int) -> list[Element]:
    """`li` of this list holding an anchor and more than `min_text` chars."""
    return [li for li in own_list_items(list_el) if li.select_one("a") is not None and len(li.text) > min_text]


def table_rows(table: Element) -> list[Element]:
    return [tr for tr in table.select("tr") if tr.closest("table") == table]


def estimate_item_count(el: Element, config: Optional[EngineConfig] = None) -> int:
    cfg = config or DEFAULT_CONFIG
    th = cfg.thresholds
    if el.tag == "table":
        return sum(1 for tr in table_rows(el) if len(tr.select("td")) >= 2)
    if el.tag in ("ul", "ol"):
        return sum(1 for li in own_list_items(el) if len(li.text) > th.valid_item_min_text)
    return sum(
        1
        for child in el.children
        if len(child.text) > th.estimate_child_min_text or child.select_one('a, [class*="item"]') is not None
    )


def group_marker_links(doc: Document, config: Optional[EngineConfig] = None) -> Optional[Element]:
    """Nearest ancestor of the first marker link holding all markers (or enough of them)."""
    cfg = config or DEFAULT_CONFIG
    th = cfg.thresholds
    marker = cfg.vocabulary.marker_selector
    markers = doc.select(marker)
    if len(markers) < th.marker_min_links:
        return None
    cur = markers[0].parent
    for _ in range(th.marker_max_climb):
        if cur is None:
            break
        n = len(cur.select(marker))
        if n == len(markers) or n >= th.marker_min_links:
            return cur
        cur = cur.parent
    return None


def _element_candidate(
    el: Element, *, count: int, text: str, label: str, priority: int, tier: str, cfg: EngineConfig
) -> Candidate:
    return Candidate(
        container=Container.of_element(el),
        selector=css_path(el),
        item_count=count,
        preview=preview(text, cfg.thresholds.preview_max_chars),
        type_label=label,
        priority=priority,
        tier=tier,
    )


# ---------------------------------------------------------------------------
# tiers


def _search_label(doc: Document, cfg: EngineConfig) -> Optional[Element]:
    patterns = [re.compile(p, re.I) for p in cfg.vocabulary.search_phrases]
    for el in doc.elements():
        if el.tag in ("head", "title", "script", "style", "noscript"):
            continue
        own = el.own_text
        if own and any(p.search(own) for p in patterns) and el.closest("head") is None:
            return el
    return None


def _search_anchor_ok(a: Element, cfg: EngineConfig) -> bool:
    th = cfg.thresholds
    if not qualifying_anchor(a, cfg, min_text=th.search_link_min_text):
        return False
    if a.closest("h1, h2, h3") is not None:
        return False
    text = a.text
    if len(text) < th.nav_text_max_for_search and any(t in text for t in cfg.vocabulary.search_nav_texts):
        return False
    return not in_chrome(a, cfg)


def _search_results_in(region: Element, cfg: EngineConfig) -> list[Candidate]:
    th = cfg.thresholds
    doc = region.document
    out: list[Candidate] = []

    divs = ([region] if region.tag == "div" else []) + region.select("div")
    best: Optional[tuple[int, int, Element, list[Element]]] = None
    for div in divs:
        if in_chrome(div, cfg):
            continue
        anchors = [a for a in div.select("a[href]") if _search_anchor_ok(a, cfg)]
        if len(anchors) < th.search_min_links:
            continue
        key = (len(anchors), div.depth)
        if best is None or key > best[:2]:
            best = (key[0], key[1], div, anchors)
    if best is not None:
        count, _, wrapper, anchors = best
        selector = f"{css_path(wrapper)} a[href]"
        out.append(
            Candidate(
                container=Container.of_selector(doc, selector, doc.select(selector)),
                selector=selector,
                item_count=count,
                preview=preview(anchors[0].text, th.preview_max_chars),
                type_label="search results (links)",
                priority=-1,
                tier="A",
            )
        )

    lists = ([region] if region.tag in ("ul", "ol") else []) + region.select("ul, ol")
    for lst in lists:
        if in_chrome(lst, cfg) or has_class_word(lst, cfg.vocabulary.pager_class_words):
            continue
        if is_pagination_list(lst, cfg):
            continue
        if len(own_list_items(lst)) < th.search_min_list_items:
            continue
        valid = valid_list_items(lst, th.valid_item_min_text)
        if len(valid) < th.search_min_list_items:
            continue
        out.append(
            _element_candidate(
                lst, count=len(valid), text=valid[0].text, label="search results", priority=0, tier="A", cfg=cfg
            )
        )
    return out


def detect_search_results(doc: Document, cfg: EngineConfig) -> list[Candidate]:
    label = _search_label(doc, cfg)
    if label is None:
        return []
    region: Optional[Element] = label
    while region is not None:
        found = _search_results_in(region, cfg)
        if found:
            logger.debug("search-result region %r (label %r)", region, label)
            return found
        region = region.parent
    return []


def detect_keyword_lists(doc: Document, cfg: EngineConfig) -> list[Candidate]:
    th = cfg.thresholds
    out: list[Candidate] = []
    for lst in doc.select(KEYWORD_LIST_SELECTOR):
        if is_noise_container(lst, cfg):
            continue
        valid = valid_list_items(lst, th.valid_item_min_text)
        if len(valid) < th.keyword_list_min_items:
            continue
        out.append(
            _element_candidate(lst, count=len(valid), text=valid[0].text, label="list", priority=1, tier="B", cfg=cfg)
        )
    return out


def _repeated_group(parent: Element, cfg: EngineConfig) -> list[Element]:
    groups: dict[str, list[Element]] = {}
    for child in parent.children:
        if not any(qualifying_anchor(a, cfg) for a in child.select("a[href]")):
            continue
        for tok in child.classes:
            groups.setdefault(tok, []).append(child)
    best: list[Element] = []
    for members in groups.values():
        if len(members) > len(best):
            best = members
    return best


def detect_repeated_blocks(doc: Document, cfg: EngineConfig) -> list[Candidate]:
    th = cfg.thresholds
    out: list[Candidate] = []
    for parent in doc.elements():
        if len(parent.children) < th.repeat_min_siblings:
            continue
        members = _repeated_group(parent, cfg)
        if len(members) < th.repeat_min_siblings:
            continue
        if in_chrome(parent, cfg) or is_noise_container(parent, cfg):
            continue
        out.append(
            _element_candidate(
                parent,
                count=len(members),
                text=members[0].text,
                label="repeated blocks",
                priority=2,
                tier="C",
                cfg=cfg,
            )
        )
    return out


def detect_result_list_blocks(doc: Document, cfg: EngineConfig) -> list[Candidate]:
    """`div.result-list` / `div.s-result` wrappers: the richest inner `ul`, or the div itself."""
    th = cfg.thresholds
    out: list[Candidate] = []
    lists: list[tuple[int, Element, list[Element]]] = []
    for div in doc.select(RESULT_LIST_SELECTOR):
        if in_chrome(div, cfg):
            continue
        ul = div.select_one("ul")
        host = ul if ul is not None else div
        valid = [
            li
            for li in host.select("li")
            if li.select_one("a[href]") is not None and len(li.text) > th.result_list_item_min_text
        ]
        if len(valid) < th.result_list_min_items:
            continue
        if ul is not None:
            lists.append((len(valid), ul, valid))
            continue
        out.append(
            _element_candidate(
                div, count=len(valid), text=valid[0].text, label="search results list", priority=1, tier="C", cfg=cfg
            )
        )
    if lists:
        count, ul, valid = max(lists, key=lambda t: t[0])
        logger.debug("result-list wrapper: picked %r with %d items out of %d lists", ul, count, len(lists))
        out.append(
            _element_candidate(ul, count=count, text=valid[0].text, label="search results list", priority=1, tier="C", cfg=cfg)
        )
    return out


def _class_selector(el: Element) -> Optional[str]:
    classes = el.classes
    if not classes or not is_css_ident(classes[0]):
        return None
    return f".{classes[0]}"


def _handle_candidate(
    doc: Document, selector: str, *, count: int, text: str, label: str, cfg: EngineConfig
) -> Optional[Candidate]:
    matches = doc.select(selector)
    # a leading list would make the resolver collapse the handle to one list
    if not matches or matches[0].tag in ("ul", "ol"):
        return None
    return Candidate(
        container=Container.of_selector(doc, selector, matches),
        selector=selector,
        item_count=count,
        preview=preview(text, cfg.thresholds.preview_max_chars),
        type_label=label,
        priority=2,
        tier="C",
    )


def detect_class_groups(doc: Document, cfg: EngineConfig) -> list[Candidate]:
    """Result/item/news/list divs grouped by their first class token."""
    th = cfg.thresholds
    groups: dict[str, list[Element]] = {}
    for div in doc.select(CLASS_GROUP_SELECTOR):
        if div.select_one("a[href]") is None or len(div.text) < th.class_group_min_text:
            continue
        if in_chrome(div, cfg) or has_noise_class(div, cfg):
            continue
        sel = _class_selector(div)
        if sel is not None:
            groups.setdefault(sel, []).append(div)

    out: list[Candidate] = []
    for sel, members in groups.items():
        if len(members) < th.class_group_min_members:
            continue
        first = members[0].select_one("a")
        text = first.text if first is not None else members[0].text
        cand = _handle_candidate(doc, sel, count=len(members), text=text, label="search results", cfg=cfg)
        if cand is not None:
            out.append(cand)
    return out


def _html_title_link(a: Element, min_text: int) -> bool:
    return len(a.text) > min_text and ".html" in (a.get("href") or "").lower()


def detect_title_link_groups(doc: Document, cfg: EngineConfig) -> list[Candidate]:
    """Blocks sharing the class of the first `.html` title link's grandparent."""
    th = cfg.thresholds
    voc = cfg.vocabulary
    links = [
        a
        for a in doc.select("a[href]")
        if _html_title_link(a, th.title_link_min_text)
        and not any(h in (a.get("href") or "").lower() for h in voc.title_link_skip_href)
        and not any(t in a.text for t in voc.title_link_skip_text)
    ]
    if len(links) < th.title_link_min_groups:
        return []
    parent = links[0].parent
    grand = parent.parent if parent is not None else None
    sel = _class_selector(grand) if grand is not None else None
    if sel is None:
        return []
    count = sum(
        1
        for m in doc.select(sel)
        if any(_html_title_link(a, th.title_link_min_text) for a in m.select("a[href]"))
    )
    if count < th.title_link_min_groups:
        return []
    cand = _handle_candidate(doc, sel, count=count, text=links[0].text, label="search results", cfg=cfg)
    return [cand] if cand is not None else []


def detect_marker_links(doc: Document, cfg: EngineConfig) -> list[Candidate]:
    group = group_marker_links(doc, cfg)
    if group is None or in_chrome(group, cfg):
        return []
    markers = group.select(cfg.vocabulary.marker_selector)
    return [
        Candidate(
            container=Container.of_element(group),
            selector=MARKER_CONTAINER,
            item_count=len(markers),
            preview=preview(strip_symbols(markers[0].text), cfg.thresholds.preview_max_chars),
            type_label="marker links",
            priority=3,
            tier="D",
        )
    ]


def _fallback_label(el: Element) -> str:
    if el.tag == "table":
        return "table"
    if el.tag in ("ul", "ol"):
        return "list"
    return "container"


def detect_fallback(doc: Document, cfg: EngineConfig) -> list[Candidate]:
    th = cfg.thresholds
    out: list[Candidate] = []
    for el in doc.select(FALLBACK_SELECTOR):
        if in_chrome(el, cfg) or has_class_word(el, cfg.vocabulary.chrome_class_words):
            continue
        if el.tag == "table" and "detail" in el.class_name.lower() and len(table_rows(el)) < th.detail_table_min_rows:
            continue
        if is_noise_container(el, cfg):
            continue
        count = estimate_item_count(el, cfg)
        if count < th.fallback_min_items:
            continue
        first = el.first_element_child
        text = first.text if first is not None and first.text else el.text
        out.append(
            _element_candidate(el, count=count, text=text, label=_fallback_label(el), priority=4, tier="E", cfg=cfg)
        )
    return out


Detector = Callable[[Document, EngineConfig], list[Candidate]]

TIERS: list[tuple[str, tuple[Detector, ...]]] = [
    ("A", (detect_search_results,)),
    ("B", (detect_keyword_lists,)),
    ("C", (detect_result_list_blocks, detect_repeated_blocks, detect_class_groups, detect_title_link_groups)),
    ("D", (detect_marker_links,)),
    ("E", (detect_fallback,)),
]


def collect_candidates(doc: Document, config: Optional[EngineConfig] = None) -> list[Candidate]:
    """
    Run the detection tiers in order and return the ranked candidates of the
    first tier that finds anything.

    A tier may run several detectors; their candidates are pooled and a
    container already proposed earlier in the tier is not repeated.
    Within a tier: priority ascending, item count descending, then the order
    the detectors produced them in. An empty list means no list was detected.
    """
    cfg = config or DEFAULT_CONFIG
    for name, detectors in TIERS:
        found: list[Candidate] = []
        seen: set[Container] = set()
        for detector in detectors:
            for cand in detector(doc, cfg):
                if cand.container not in seen:
                    seen.add(cand.container)
                    found.append(cand)
        logger.debug("tier %s: %d candidate(s)", name, len(found))
        if found:
            ranked = sorted(enumerate(found), key=lambda p: (p[1].priority, -p[1].item_count, p[0]))
            return [c for _, c in ranked]
    return []
