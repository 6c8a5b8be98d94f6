from __future__ import annotations

import logging
from typing import Optional

from .candidates import (
    MARKER_CONTAINER,
    Container,
    collect_candidates,
    group_marker_links,
    own_list_items,
    table_rows,
    valid_list_items,
)
from .config import DEFAULT_CONFIG, EngineConfig
from .dom import Document, Element, FrameAccessDenied, SelectorSyntaxError
from .errors import CrossOriginAccessError, InvalidSelectorError


logger = logging.getLogger(__name__)


def _frame_container(frame: Element) -> Optional[Container]:
    try:
        sub = frame.document.frame_document(frame)
    except FrameAccessDenied as e:
        raise CrossOriginAccessError(e.src) from e

    for ul in sub.select("ul"):
        if len(own_list_items(ul)) >= 2:
            return Container.of_element(ul)
    for table in sub.select("table"):
        if len(table_rows(table)) >= 2:
            return Container.of_element(table)
    logger.info("no list found inside frame %r", frame)
    return None


def _explicit_container(
    doc: Document, selector: str, cfg: EngineConfig
) -> tuple[bool, Optional[Container]]:
    """(handled, container) for a user-supplied selector."""
    if selector == MARKER_CONTAINER:
        group = group_marker_links(doc, cfg)
        return True, (Container.of_element(group) if group is not None else None)

    try:
        matches = doc.select(selector)
    except SelectorSyntaxError as e:
        raise InvalidSelectorError(selector, str(e)) from e

    if not matches:
        logger.warning("selector %r matched nothing; falling back to auto-detection", selector)
        return False, None

    if len(matches) >= 2:
        if matches[0].tag in ("ul", "ol"):
            lists = [m for m in matches if m.tag in ("ul", "ol")]
            best: Optional[Element] = None
            best_n = 0
            for lst in lists:
                n = len(valid_list_items(lst, cfg.thresholds.explicit_list_item_min_text))
                if n > best_n:
                    best, best_n = lst, n
            if best is not None:
                logger.debug("selector %r: picked list %r with %d items", selector, best, best_n)
                return True, Container.of_element(best)
        return True, Container.of_selector(doc, selector, matches)

    el = matches[0]
    if el.tag in ("iframe", "frame"):
        return True, _frame_container(el)
    if el.tag == "a":
        return True, Container.of_selector(doc, selector, matches)
    return True, Container.of_element(el)


def find_list_container(
    doc: Document, selector: Optional[str] = None, *, config: Optional[EngineConfig] = None
) -> Optional[Container]:
    """
    Commit to one list region.

    With a selector: the marker sentinel regroups marker links, several
    matching lists collapse to the richest one, other multi-matches become a
    selector handle (so does a single anchor, which is its own item), a
    single iframe is searched inside its sub-document.
    Without a selector (or when it matches nothing) the detection tiers
    decide. Returns None when nothing plausible exists.
    """
    cfg = config or DEFAULT_CONFIG
    sel = (selector or "").strip()
    if sel:
        handled, container = _explicit_container(doc, sel, cfg)
        if handled:
            return container

    candidates = collect_candidates(doc, cfg)
    if not candidates:
        logger.info("no list candidates found")
        return None
    best = candidates[0]
    logger.debug("auto-detected %s via tier %s (%d items)", best.selector, best.tier, best.item_count)
    return best.container
