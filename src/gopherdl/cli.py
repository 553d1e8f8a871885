from __future__ import annotations

import argparse
import logging
import re
import sys
from pathlib import Path

from tqdm.contrib.logging import logging_redirect_tqdm

from .crawl import DEFAULT_MAX_DEPTH, CrawlConfig, Crawler
from .transport import GopherClient
from .urls import Locator, parse_gopher_url

logger = logging.getLogger(__name__)


def _regex(value: str) -> re.Pattern[str]:
    try:
        return re.compile(value)
    except re.error as e:
        raise argparse.ArgumentTypeError(f"invalid regex {value!r}: {e}") from e


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gopherdl",
        description="Download files and menus from Gopher servers.",
    )
    parser.add_argument("urls", nargs="+", metavar="url")
    parser.add_argument(
        "-r", dest="recursive", action="store_true",
        help="Enable recursive downloads",
    )
    parser.add_argument(
        "-l", dest="max_depth", type=int, default=DEFAULT_MAX_DEPTH, metavar="n",
        help=f"Maximum depth in recursive downloads (default {DEFAULT_MAX_DEPTH})",
    )
    parser.add_argument(
        "-s", dest="span_hosts", action="store_true",
        help="Span hosts on recursive downloads",
    )
    parser.add_argument(
        "-c", dest="clobber", action="store_true",
        help="Enable file clobbering (overwrite existing)",
    )
    kinds = parser.add_mutually_exclusive_group()
    kinds.add_argument(
        "-m", dest="only_menus", action="store_true",
        help="Only download gopher menus",
    )
    kinds.add_argument(
        "-n", dest="no_menus", action="store_true",
        help="Never download gopher menus",
    )
    parser.add_argument(
        "-p", dest="ascend_parent", action="store_true",
        help="Allow ascension to the parent directories",
    )
    parser.add_argument(
        "-w", dest="delay", type=float, default=0.0, metavar="secs",
        help="Delay between downloads",
    )
    parser.add_argument(
        "-d", dest="debug", action="store_true",
        help="Enable debug messages",
    )
    parser.add_argument(
        "-A", dest="accept", type=_regex, default=None, metavar="regex",
        help="Only download URLs fully matching this regex",
    )
    parser.add_argument(
        "-R", dest="reject", type=_regex, default=None, metavar="regex",
        help="Skip URLs fully matching this regex",
    )
    parser.add_argument(
        "-M", dest="regex_on_menus", action="store_true",
        help="Apply -A/-R to menus too (can prevent recursion)",
    )
    parser.add_argument(
        "-O", dest="out", type=Path, default=Path("."), metavar="dir",
        help="Output directory (default: current directory)",
    )
    parser.add_argument(
        "--timeout", type=float, default=None, metavar="secs",
        help="Socket timeout (default: operating system behavior)",
    )
    parser.add_argument(
        "--manifest-dir", type=Path, default=None, metavar="dir",
        help="Write manifest.jsonl / manifest.json into this directory",
    )
    parser.add_argument(
        "--no-progress", action="store_true",
        help="Do not show a progress bar",
    )
    return parser


def config_from_args(args: argparse.Namespace) -> CrawlConfig:
    return CrawlConfig(
        out_dir=args.out,
        recursive=bool(args.recursive),
        max_depth=int(args.max_depth),
        span_hosts=bool(args.span_hosts),
        clobber=bool(args.clobber),
        only_menus=bool(args.only_menus),
        no_menus=bool(args.no_menus),
        ascend_parent=bool(args.ascend_parent),
        delay_s=float(args.delay),
        debug=bool(args.debug),
        accept_regex=args.accept,
        reject_regex=args.reject,
        regex_on_menus=bool(args.regex_on_menus),
        timeout_s=args.timeout,
        show_progress=not bool(args.no_progress),
        manifest_dir=args.manifest_dir,
    )


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        format="%(asctime)s %(levelname)7s %(name)s: %(message)s",
        level=logging.DEBUG if args.debug else logging.INFO,
        stream=sys.stderr,
    )

    try:
        cfg = config_from_args(args)
    except ValueError as e:
        print(str(e), file=sys.stderr)
        return 2

    starts: list[Locator] = []
    for raw_url in args.urls:
        try:
            starts.append(parse_gopher_url(raw_url))
        except ValueError as e:
            print(str(e), file=sys.stderr)
            return 2

    logger.debug("config: %s", cfg.to_dict())

    crawler = Crawler(client=GopherClient(timeout_s=cfg.timeout_s), config=cfg)
    try:
        with logging_redirect_tqdm():
            for start in starts:
                summary = crawler.crawl(start)
                stats = summary["stats"]
                print(
                    f"gopherdl: {summary['start_url']} "
                    f"fetched={stats.get('fetched', 0)} "
                    f"saved={stats.get('saved', 0)} "
                    f"exists={stats.get('exists', 0)} "
                    f"error={stats.get('error', 0)}"
                )
    except KeyboardInterrupt:
        print("Interrupted", file=sys.stderr)
        return 130
    return 0
