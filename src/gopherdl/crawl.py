from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from tqdm import tqdm

from .manifest import ManifestWriter, utc_iso
from .menu import MENU_TYPE, MenuEntry, describe_item_type, is_retrievable, parse_menu
from .pacing import RateLimiter
from .state import CrawlState
from .storage import PersistenceError, save_bytes
from .transport import FetchError, GopherClient
from .urls import CrawlScope, Locator, locator_to_local_path

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 99


class FetchKinds(str, Enum):
    ALL = "all"
    ONLY_MENUS = "only_menus"
    ONLY_FILES = "only_files"


@dataclass(frozen=True)
class CrawlConfig:
    out_dir: Path = Path(".")
    recursive: bool = False
    max_depth: int = DEFAULT_MAX_DEPTH
    span_hosts: bool = False
    clobber: bool = False
    only_menus: bool = False
    no_menus: bool = False
    ascend_parent: bool = False
    delay_s: float = 0.0
    debug: bool = False
    accept_regex: re.Pattern[str] | None = None
    reject_regex: re.Pattern[str] | None = None
    regex_on_menus: bool = False
    timeout_s: float | None = None
    show_progress: bool = False
    manifest_dir: Path | None = None

    def __post_init__(self) -> None:
        if self.only_menus and self.no_menus:
            raise ValueError("only_menus and no_menus are mutually exclusive")
        if self.max_depth < 0:
            raise ValueError(f"max_depth must be >= 0, got {self.max_depth}")
        if self.delay_s < 0:
            raise ValueError(f"delay_s must be >= 0, got {self.delay_s}")
        if self.timeout_s is not None and self.timeout_s <= 0:
            raise ValueError(f"timeout_s must be > 0, got {self.timeout_s}")

    @property
    def fetch_kinds(self) -> FetchKinds:
        if self.only_menus:
            return FetchKinds.ONLY_MENUS
        if self.no_menus:
            return FetchKinds.ONLY_FILES
        return FetchKinds.ALL

    def scope_for(self, start: Locator) -> CrawlScope:
        return CrawlScope(
            start_host=start.host,
            span_hosts=self.span_hosts,
            ascend_parent=self.ascend_parent,
            accept_regex=self.accept_regex,
            reject_regex=self.reject_regex,
            regex_on_menus=self.regex_on_menus,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "out_dir": str(self.out_dir),
            "recursive": self.recursive,
            "max_depth": self.max_depth,
            "span_hosts": self.span_hosts,
            "clobber": self.clobber,
            "fetch_kinds": self.fetch_kinds.value,
            "ascend_parent": self.ascend_parent,
            "delay_s": self.delay_s,
            "accept_regex": self.accept_regex.pattern if self.accept_regex else None,
            "reject_regex": self.reject_regex.pattern if self.reject_regex else None,
            "regex_on_menus": self.regex_on_menus,
            "timeout_s": self.timeout_s,
        }


def wanted_kind(entry: MenuEntry, kinds: FetchKinds) -> bool:
    if kinds == FetchKinds.ONLY_MENUS:
        return entry.is_menu
    if kinds == FetchKinds.ONLY_FILES:
        return not entry.is_menu
    return True


# (locator, item type or None when unknown, remaining depth)
WorkItem = tuple[Locator, Optional[str], int]


class Crawler:
    def __init__(
        self,
        *,
        client: GopherClient,
        config: CrawlConfig,
    ) -> None:
        self.client = client
        self.cfg = config

        self.manifest: ManifestWriter | None = None
        if self.cfg.manifest_dir is not None:
            self.manifest = ManifestWriter(self.cfg.manifest_dir)

        self._state = CrawlState()
        # Shared by every crawl() call so consecutive runs are paced too.
        self._limiter = RateLimiter(self.cfg.delay_s)

    @property
    def state(self) -> CrawlState:
        return self._state

    def _fail(self, locator: Locator, error: Exception) -> None:
        self._state.record_failure(locator, error)
        if self.manifest is not None:
            self.manifest.failed(locator, error)

    def _save(self, locator: Locator, body: bytes, *, is_menu: bool) -> None:
        rel_path = locator_to_local_path(locator, is_menu)
        try:
            written = save_bytes(
                self.cfg.out_dir, rel_path, body, clobber=self.cfg.clobber
            )
        except PersistenceError as e:
            logger.warning("Could not save %s: %s", locator, e)
            self._fail(locator, e)
            return

        path = self.cfg.out_dir / rel_path
        if written:
            logger.info("Saved %s -> %s", locator, path)
            self._state.record_saved(path)
        else:
            logger.info("Not overwriting %s", path)
            self._state.stats["exists"] += 1
        if self.manifest is not None:
            self.manifest.stored(
                locator,
                rel_path=rel_path,
                is_menu=is_menu,
                size=len(body),
                written=written,
            )

    def _children(
        self,
        menu: Locator,
        entries: list[MenuEntry],
        *,
        depth: int,
        scope: CrawlScope,
    ) -> list[WorkItem]:
        kinds = self.cfg.fetch_kinds
        out: list[WorkItem] = []
        for entry in entries:
            reason: str | None = None
            if not is_retrievable(entry.item_type):
                reason = describe_item_type(entry.item_type)
            elif not wanted_kind(entry, kinds):
                reason = kinds.value
            else:
                reason = scope.check(entry, parent_selector=menu.selector)

            if reason is not None:
                logger.debug("Skipping %s (%s)", entry.locator, reason)
                self._state.stats[f"skipped_{reason}"] += 1
                continue
            out.append((entry.locator, entry.item_type, depth - 1))
        return out

    def crawl(self, start: Locator) -> dict:
        """Fetch ``start`` and, when recursive, everything reachable from it.

        Traversal is depth-first in menu order with an explicit stack. Each
        locator is fetched at most once per call; failures are recorded and
        never stop the run.
        """

        self._state = state = CrawlState()
        scope = self.cfg.scope_for(start)
        started_at = utc_iso()

        stack: list[WorkItem] = [(start, None, self.cfg.max_depth)]

        with tqdm(
            desc=start.host,
            unit="item",
            disable=not self.cfg.show_progress,
        ) as bar:
            while stack:
                locator, item_type, depth = stack.pop()
                if not state.mark_visited(locator):
                    continue

                self._limiter.wait()
                try:
                    body = self.client.fetch(locator)
                except FetchError as e:
                    logger.warning("Fetch failed: %s", e)
                    self._fail(locator, e)
                    bar.update(1)
                    continue

                state.stats["fetched"] += 1
                bar.update(1)

                entries: list[MenuEntry] = []
                if item_type is None:
                    # Unknown start type: a body with menu lines is a menu.
                    entries = parse_menu(body)
                    is_menu = bool(entries)
                else:
                    is_menu = item_type == MENU_TYPE
                    if is_menu:
                        entries = parse_menu(body)

                self._save(locator, body, is_menu=is_menu)

                if not is_menu:
                    continue
                state.stats["menus"] += 1
                logger.debug("%s lists %d entries", locator, len(entries))

                if not self.cfg.recursive or depth <= 0:
                    continue

                children = self._children(
                    locator, entries, depth=depth, scope=scope
                )
                stack.extend(reversed(children))

        summary = {
            "start_url": str(start),
            "started_at": started_at,
            "finished_at": utc_iso(),
            "config": self.cfg.to_dict(),
            "stats": dict(state.stats),
            "failed": {str(loc): err for loc, err in state.failed.items()},
        }
        if self.manifest is not None:
            self.manifest.finish(summary)
        return summary
