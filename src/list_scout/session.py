from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import logging
import threading
from typing import Any, Callable, Optional, Union
from urllib.parse import urlsplit

from .candidates import Candidate, Container, collect_candidates
from .config import DEFAULT_CONFIG, EngineConfig
from .dom import Document, Element
from .errors import AlreadyRunningError, NoItemsFoundError, NotFoundError, UnsupportedScraperError
from .records import extract_item_data, extract_item_fields
from .resolver import find_list_container
from .segmenter import get_list_items


logger = logging.getLogger(__name__)

STOP_MESSAGE = "Scraping stopped"


class SessionState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"
    COMPLETED = "completed"


def _parse_max_items(raw: Any) -> Optional[int]:
    if raw is None or raw == "":
        return None
    if isinstance(raw, bool):
        raise ValueError(f"max_items must be an integer, got {raw!r}")
    if isinstance(raw, str):
        raw = raw.strip()
        if not raw:
            return None
        if not raw.isdigit():
            raise ValueError(f"max_items must be an integer, got {raw!r}")
    n = int(raw)
    if n < 0:
        raise ValueError(f"max_items must be >= 0, got {n}")
    return n


@dataclass(frozen=True)
class ScraperDescriptor:
    """What the orchestration layer asks for: a list scrape and its cap."""

    name: str = ""
    type: str = "list"
    max_items: Optional[int] = None
    load_more_action: str = "none"

    @staticmethod
    def from_dict(d: dict[str, Any]) -> "ScraperDescriptor":
        options = d.get("options") or {}
        if not isinstance(options, dict):
            options = {}
        raw_max = d.get("max_items", options.get("maxItems"))
        return ScraperDescriptor(
            name=str(d.get("name") or ""),
            type=str(d.get("type") or "list").strip().lower(),
            max_items=_parse_max_items(raw_max),
            load_more_action=str(options.get("loadMoreAction") or d.get("load_more_action") or "none"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type,
            "max_items": self.max_items,
            "load_more_action": self.load_more_action,
        }


@dataclass
class ScrapeSession:
    max_items: Optional[int] = None
    selector_override: Optional[str] = None
    state: SessionState = SessionState.IDLE
    current_index: int = 0
    records: list[dict[str, Any]] = field(default_factory=list)
    _stop: threading.Event = field(default_factory=threading.Event, repr=False)

    def request_stop(self) -> None:
        self._stop.set()

    @property
    def stop_requested(self) -> bool:
        return self._stop.is_set()

    def reached_cap(self) -> bool:
        return self.max_items is not None and self.current_index >= self.max_items

    def reset(self) -> None:
        self.state = SessionState.IDLE
        self.current_index = 0
        self.records = []


@dataclass(frozen=True)
class ScrapeResult:
    records: list[dict[str, Any]]
    count: int
    state: SessionState

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": True,
            "data": self.records,
            "count": self.count,
            "stopped": self.state is SessionState.STOPPED,
        }


RecordHook = Callable[[dict[str, Any], ScrapeSession], None]


def run_session(
    doc: Document,
    session: ScrapeSession,
    *,
    config: Optional[EngineConfig] = None,
    on_record: Optional[RecordHook] = None,
    full: bool = False,
) -> ScrapeResult:
    """
    Resolve, segment and extract into `session.records`.

    The stop flag and the item cap are checked before each extraction, so a
    stop never discards what was already collected.
    """
    cfg = config or DEFAULT_CONFIG
    container = find_list_container(doc, session.selector_override, config=cfg)
    if container is None:
        raise NotFoundError()
    items = get_list_items(container, config=cfg)
    if not items:
        raise NoItemsFoundError()

    extract = extract_item_fields if full else extract_item_data
    for item in items:
        if session.stop_requested:
            break
        if session.reached_cap():
            logger.debug("max_items=%s reached", session.max_items)
            break
        record = extract(item, config=cfg)
        if record is None:
            continue
        session.records.append(record)
        session.current_index += 1
        if on_record is not None:
            on_record(record, session)

    session.state = SessionState.STOPPED if session.stop_requested else SessionState.COMPLETED
    logger.info("session %s with %d record(s) from %d item(s)", session.state.value, len(session.records), len(items))
    return ScrapeResult(records=list(session.records), count=len(session.records), state=session.state)


class ListScraper:
    """
    Page-level facade: one parsed document, one engine config, and at most
    one running scrape session at a time.
    """

    def __init__(self, document: Document, config: Optional[EngineConfig] = None) -> None:
        self.document = document
        self.config = config or DEFAULT_CONFIG
        self._lock = threading.Lock()
        self._active: Optional[ScrapeSession] = None

    @classmethod
    def from_html(cls, html: str, *, url: Optional[str] = None, config: Optional[EngineConfig] = None) -> "ListScraper":
        return cls(Document.from_html(html, url=url), config)

    @property
    def session(self) -> Optional[ScrapeSession]:
        return self._active

    def get_list_options(self) -> list[Candidate]:
        return collect_candidates(self.document, self.config)

    def find_list_container(self, selector: Optional[str] = None) -> Optional[Container]:
        return find_list_container(self.document, selector, config=self.config)

    def get_list_items(self, container: Container) -> list[Element]:
        return get_list_items(container, config=self.config)

    def extract_item_data(self, item: Element) -> Optional[dict[str, Any]]:
        return extract_item_data(item, config=self.config)

    def extract_item_fields(self, item: Element) -> Optional[dict[str, Any]]:
        return extract_item_fields(item, config=self.config)

    def start_scraping(
        self,
        descriptor: Union[ScraperDescriptor, dict[str, Any], None] = None,
        selector: Optional[str] = None,
        *,
        on_record: Optional[RecordHook] = None,
        full: bool = False,
    ) -> ScrapeResult:
        if descriptor is None:
            descriptor = ScraperDescriptor()
        elif isinstance(descriptor, dict):
            descriptor = ScraperDescriptor.from_dict(descriptor)

        with self._lock:
            if self._active is not None and self._active.state is SessionState.RUNNING:
                raise AlreadyRunningError()
            if descriptor.type != "list":
                raise UnsupportedScraperError(descriptor.type)
            session = ScrapeSession(max_items=descriptor.max_items, selector_override=selector)
            session.state = SessionState.RUNNING
            self._active = session

        logger.info("scrape started (max_items=%s, selector=%r)", session.max_items, selector)
        try:
            return run_session(self.document, session, config=self.config, on_record=on_record, full=full)
        except Exception:
            with self._lock:
                session.reset()
            raise

    def stop_scraping(self) -> dict[str, Any]:
        with self._lock:
            if self._active is not None and self._active.state is SessionState.RUNNING:
                self._active.request_stop()
                logger.info("stop requested")
        return {"success": True, "message": STOP_MESSAGE}

    def get_page_info(self) -> dict[str, Any]:
        doc = self.document
        container = self.find_list_container()
        count = len(self.get_list_items(container)) if container is not None else 0
        url = doc.url or ""
        return {
            "url": url,
            "title": doc.title,
            "domain": (urlsplit(url).hostname or "") if url else "",
            "has_list": container is not None,
            "list_items_count": count,
        }
