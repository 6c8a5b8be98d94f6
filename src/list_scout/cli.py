from __future__ import annotations

"""
cli.py: command line entry point.

Commands:
- options      : ranked list candidates for a page
- scrape       : records of the best (or a given) list
- page-info    : url/title/domain and whether a list was found
- offline-test : run the engine over saved HTML fixtures (no network)
"""

import argparse
import json
import logging
import os
import sys
from typing import Any, Optional, Sequence

from . import offline_tests as offline_tests_mod
from .config import EngineConfig, load_config
from .errors import ListScoutError
from .fetch import fetch_page
from .session import ListScraper, ScraperDescriptor


logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s | %(levelname)-5s | %(name)-24s | %(message)s"
DATE_FORMAT = "%H:%M:%S"


class CliError(Exception):
    def __init__(self, message: str, exit_code: int = 2) -> None:
        super().__init__(message)
        self.exit_code = exit_code


def _pretty(obj: Any, pretty: bool) -> str:
    return json.dumps(obj, ensure_ascii=False, indent=(2 if pretty else None))


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else getattr(logging, os.environ.get("LOG_LEVEL", "WARNING").upper(), logging.WARNING)
    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt=DATE_FORMAT, stream=sys.stderr)


def _load_cfg(args: argparse.Namespace) -> EngineConfig:
    return load_config(getattr(args, "config", None))


def _scraper_from_args(args: argparse.Namespace) -> ListScraper:
    cfg = _load_cfg(args)
    html_path = getattr(args, "html", None)
    url = getattr(args, "url", None)
    base_url = getattr(args, "base_url", None)

    if html_path:
        try:
            with open(html_path, "r", encoding=args.encoding, errors="replace") as f:
                html = f.read()
        except OSError as e:
            raise CliError(f"cannot read {html_path}: {e}") from e
        return ListScraper.from_html(html, url=base_url or url, config=cfg)

    if url:
        page = fetch_page(url, timeout=float(args.timeout))
        return ListScraper.from_html(page.text, url=base_url or page.url, config=cfg)

    raise CliError("either --html or --url is required")


def cmd_options(args: argparse.Namespace) -> int:
    scraper = _scraper_from_args(args)
    options = [c.to_dict() for c in scraper.get_list_options()]
    print(_pretty({"success": True, "options": options}, args.pretty))
    return 0


def cmd_scrape(args: argparse.Namespace) -> int:
    scraper = _scraper_from_args(args)
    descriptor = ScraperDescriptor(name="cli", type="list", max_items=args.max_items)
    result = scraper.start_scraping(descriptor, args.selector, full=bool(args.full))
    print(_pretty(result.to_dict(), args.pretty))
    return 0


def cmd_page_info(args: argparse.Namespace) -> int:
    scraper = _scraper_from_args(args)
    print(_pretty(scraper.get_page_info(), args.pretty))
    return 0


def cmd_offline_test(args: argparse.Namespace) -> int:
    """Engine checks on saved pages: records_min, candidates_min, href ratio, first title."""
    if not args.cases and not args.fixtures_dir:
        raise CliError("offline-test needs --cases or --fixtures-dir")
    rep = offline_tests_mod.run_offline_tests(
        cases_file=args.cases,
        fixtures_dir=args.fixtures_dir,
        only_case=args.case,
        config=_load_cfg(args),
    )

    if bool(getattr(args, "json", False)):
        print(_pretty(rep, pretty=bool(getattr(args, "pretty", False))))
    else:
        print(offline_tests_mod.format_report_text(rep))

    return 0 if rep.get("ok") else 1


def _add_page_source(sp: argparse.ArgumentParser) -> None:
    src = sp.add_mutually_exclusive_group(required=True)
    src.add_argument("--html", default=None, help="path to a saved HTML page")
    src.add_argument("--url", default=None, help="fetch the page over HTTP")
    sp.add_argument("--base-url", default=None, help="page URL used to absolutize links (for --html)")
    sp.add_argument("--encoding", default="utf-8", help="encoding of the --html file")
    sp.add_argument("--timeout", type=float, default=15.0, help="HTTP timeout in seconds (for --url)")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="list-scout")
    p.add_argument("--pretty", action="store_true", help="pretty JSON output")
    p.add_argument("-v", "--verbose", action="store_true", help="debug logging to stderr")
    p.add_argument("--config", default=None, help="engine config JSON (overrides ENV LIST_SCOUT_CONFIG)")

    sub = p.add_subparsers(dest="cmd", required=True)

    o = sub.add_parser("options", help="ranked list candidates")
    _add_page_source(o)
    o.set_defaults(fn=cmd_options)

    s = sub.add_parser("scrape", help="extract records from the detected (or given) list")
    _add_page_source(s)
    s.add_argument("--selector", default=None, help="explicit container selector (or marker-link-container)")
    s.add_argument("--max-items", type=int, default=None, help="stop after N records")
    s.add_argument("--full", action="store_true", help="emit every extracted field, not just title/href")
    s.set_defaults(fn=cmd_scrape)

    pi = sub.add_parser("page-info", help="url, title, domain and list presence")
    _add_page_source(pi)
    pi.set_defaults(fn=cmd_page_info)

    ot = sub.add_parser("offline-test", help="run the engine over saved HTML fixtures (no network)")
    ot.add_argument("--cases", default=None, help="cases JSON: list or {fixtures_dir, cases}")
    ot.add_argument("--fixtures-dir", default=None, help="fixtures dir (every *.html becomes a case without --cases)")
    ot.add_argument("--case", default=None, help="run only one case by name")
    ot.add_argument("--json", action="store_true")
    ot.set_defaults(fn=cmd_offline_test)

    return p


def main(argv: Optional[Sequence[str]] = None) -> int:
    p = build_parser()
    args = p.parse_args(argv)
    _setup_logging(bool(args.verbose))

    try:
        return int(args.fn(args) or 0)
    except CliError as e:
        print(str(e), file=sys.stderr)
        return int(e.exit_code)
    except ListScoutError as e:
        logger.debug("command failed", exc_info=True)
        print(str(e), file=sys.stderr)
        return 2
    except ValueError as e:
        print(str(e), file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
