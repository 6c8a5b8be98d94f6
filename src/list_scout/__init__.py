"""list_scout package.

Heuristic list detection and record extraction for listing pages
(search results, news lists, document tables) with offline fixtures/tests.

Entry point: `list-scout` (console script).
"""

from .candidates import Candidate, Container, collect_candidates, estimate_item_count
from .config import DEFAULT_CONFIG, EngineConfig, TierThresholds, Vocabulary, load_config
from .dom import Document, Element, css_path
from .errors import (
    AlreadyRunningError,
    ConfigError,
    CrossOriginAccessError,
    FetchError,
    InvalidSelectorError,
    ListScoutError,
    NoItemsFoundError,
    NotFoundError,
    UnsupportedScraperError,
)
from .noise import is_navigation_list, is_pagination_list
from .records import ItemShape, extract_item_data, extract_item_fields
from .resolver import find_list_container
from .segmenter import get_list_items
from .session import ListScraper, ScrapeResult, ScraperDescriptor, ScrapeSession, SessionState
from .textutil import clean_title_text
from .title_select import select_title_link
from .urls import is_valid_url, make_absolute_url

__version__ = "0.1.0"
