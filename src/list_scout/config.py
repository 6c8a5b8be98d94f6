from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
import json
import logging
import os
from typing import Any, Optional

from .errors import ConfigError


logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "LIST_SCOUT_CONFIG"


@dataclass(frozen=True)
class TierThresholds:
    """Minimum counts and text lengths used by the detection tiers.

    Each tier keeps its own threshold; they are tuned independently and are
    not meant to be unified.
    """

    # Tier A: search-result region
    search_min_links: int = 5
    search_link_min_text: int = 10
    search_min_list_items: int = 5
    nav_text_max_for_search: int = 15

    # Tier B: keyword-classed lists
    keyword_list_min_items: int = 2
    valid_item_min_text: int = 10

    # Tier C: structural repeats
    repeat_min_siblings: int = 5
    result_list_item_min_text: int = 30
    result_list_min_items: int = 1
    class_group_min_members: int = 2
    class_group_min_text: int = 20
    title_link_min_text: int = 10
    title_link_min_groups: int = 2

    # Tier D: marker links
    marker_min_links: int = 2
    marker_max_climb: int = 10

    # Tier E: generic fallback
    fallback_min_items: int = 2
    detail_table_min_rows: int = 5
    estimate_child_min_text: int = 20

    # navigation heuristics
    nav_first_link_max: int = 15
    nav_short_link_max: int = 20
    nav_short_link_ratio: float = 0.7
    nav_content_link_min: int = 50
    nav_keyword_min_hits: int = 4

    # resolver / segmenter / extractor
    explicit_list_item_min_text: int = 30
    segment_min_links: int = 5
    segment_child_min_text: int = 10
    segment_block_min_text: int = 20
    item_min_text: int = 20
    anchor_title_min_text: int = 10
    card_title_min_text: int = 5
    summary_max_chars: int = 300
    text_max_chars: int = 500
    preview_max_chars: int = 100


@dataclass(frozen=True)
class Vocabulary:
    search_phrases: tuple[str, ...] = (
        r"当前搜索到",
        r"搜索结果",
        r"找到.*结果",
        r"共.*条",
        r"相关结果",
        r"网站内容",
        r"search.*results?",
        r"results? for",
        r"\d+\s+results?",
    )
    no_result_phrases: tuple[str, ...] = ("没有相关", "未找到", "no results", "nothing found")
    search_nav_texts: tuple[str, ...] = ("全部结果", "服务事项", "高级", "all results", "advanced")
    nav_keywords: tuple[str, ...] = (
        "首页", "关于", "联系", "登录", "注册", "更多",
        "home", "about", "contact", "login", "sign in", "register",
    )
    nav_ids: tuple[str, ...] = ("headBanner",)
    nav_class_words: tuple[str, ...] = ("nav", "menu")
    chrome_selector: str = (
        'header, nav, footer, [class*="nav"], [class*="menu"], [class*="footer"]'
    )
    pager_words: tuple[str, ...] = (
        "上一页", "下一页", "首页", "尾页", "末页", "上页", "下页",
        "prev", "previous", "next", "first", "last", "«", "»", "‹", "›",
    )
    pager_class_words: tuple[str, ...] = ("pager", "pagination", "paging", "pages", "pagenav", "page-nav")
    boilerplate_prefixes: tuple[str, ...] = (
        "查看", "更多", "下一", "上一", "全部", "在线办理",
        "view all", "view more", "read more", "more results", "next page", "previous page", "apply online",
    )
    noise_class_words: tuple[str, ...] = ("ad", "banner", "footer", "header", "nav", "tab")
    chrome_class_words: tuple[str, ...] = ("ad", "banner", "footer")
    noise_tags: tuple[str, ...] = ("script", "style", "meta", "link", "noscript", "thead", "th", "button")
    marker_selector: str = 'a[name="docpuburl"]'
    download_words: tuple[str, ...] = ("下载", "download")
    category_prefixes: tuple[str, ...] = ("涉农补贴", "政务动态", "领导同志活动", "公告、公示", "公告,公示", "公告，公示")
    title_href_hints: tuple[str, ...] = ("detail", "article", "news", "content", "view", "show")
    title_link_skip_href: tuple[str, ...] = ("jiansuo", "search")
    title_link_skip_text: tuple[str, ...] = ("首页", "下页", "上页")
    redirect_paths: tuple[str, ...] = ("link.do", "redirect", "jump", "goto", "out")
    redirect_params: tuple[str, ...] = ("url", "target", "to")


@dataclass(frozen=True)
class EngineConfig:
    thresholds: TierThresholds = field(default_factory=TierThresholds)
    vocabulary: Vocabulary = field(default_factory=Vocabulary)

    def to_dict(self) -> dict[str, Any]:
        d = asdict(self)
        for section in d.values():
            for k, v in list(section.items()):
                if isinstance(v, tuple):
                    section[k] = list(v)
        return d

    @staticmethod
    def from_dict(d: dict[str, Any]) -> "EngineConfig":
        """
        Build a config from a (possibly partial) nested dict.

        Missing keys keep their defaults. JSON lists become tuples. Unknown
        keys are reported and ignored; values of the wrong type raise
        ConfigError.
        """
        if not isinstance(d, dict):
            raise ConfigError("config must be a JSON object")
        unknown = set(d) - {"thresholds", "vocabulary"}
        for k in sorted(unknown):
            logger.warning("ignoring unknown config section %r", k)
        return EngineConfig(
            thresholds=_build_section(TierThresholds, d.get("thresholds"), "thresholds"),
            vocabulary=_build_section(Vocabulary, d.get("vocabulary"), "vocabulary"),
        )

    @staticmethod
    def from_json_file(path: str) -> "EngineConfig":
        return EngineConfig.from_dict(_load_json_dict(path))


DEFAULT_CONFIG = EngineConfig()


def _coerce(name: str, default: Any, value: Any) -> Any:
    if isinstance(default, bool):
        if isinstance(value, bool):
            return value
    elif isinstance(default, int):
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    elif isinstance(default, float):
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
    elif isinstance(default, str):
        if isinstance(value, str):
            return value
    elif isinstance(default, tuple):
        if isinstance(value, (list, tuple)) and all(isinstance(x, str) for x in value):
            return tuple(value)
    raise ConfigError(f"bad value for {name}: {value!r}")


def _build_section(cls: type, raw: Any, section: str) -> Any:
    if raw is None:
        return cls()
    if not isinstance(raw, dict):
        raise ConfigError(f"config section {section!r} must be an object")
    base = cls()
    known = {f.name for f in fields(cls)}
    kwargs: dict[str, Any] = {}
    for k, v in raw.items():
        if k not in known:
            logger.warning("ignoring unknown config key %s.%s", section, k)
            continue
        kwargs[k] = _coerce(f"{section}.{k}", getattr(base, k), v)
    return cls(**kwargs)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    out: dict[str, Any] = dict(base)
    for k, v in (override or {}).items():
        if k in out and isinstance(out[k], dict) and isinstance(v, dict):
            out[k] = _deep_merge(out[k], v)
        else:
            out[k] = v
    return out


def _load_json_dict(path: str) -> dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            obj = json.load(f)
    except OSError as e:
        raise ConfigError(f"cannot read config {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"config is not valid JSON: {path}: {e}") from e
    if not isinstance(obj, dict):
        raise ConfigError(f"config must be dict JSON: {path}")
    return obj


def load_config(path: Optional[str] = None, *, overrides: Optional[dict[str, Any]] = None) -> EngineConfig:
    """Defaults <- JSON file (explicit path or $LIST_SCOUT_CONFIG) <- overrides."""
    merged = DEFAULT_CONFIG.to_dict()
    src = path or os.environ.get(CONFIG_ENV_VAR) or None
    if src:
        logger.debug("loading config from %s", src)
        merged = _deep_merge(merged, _load_json_dict(src))
    if overrides:
        merged = _deep_merge(merged, overrides)
    return EngineConfig.from_dict(merged)
