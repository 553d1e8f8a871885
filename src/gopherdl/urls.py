from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING
from urllib.parse import urlsplit

if TYPE_CHECKING:
    from .menu import MenuEntry

DEFAULT_PORT = "70"
MENU_FILENAME = "gophermap"


@dataclass(frozen=True)
class Locator:
    host: str
    selector: str
    port: str = DEFAULT_PORT

    def __str__(self) -> str:
        return locator_to_display_string(self)


def entry_to_locator(entry: MenuEntry) -> Locator:
    return Locator(host=entry.host, selector=entry.selector, port=entry.port)


def locator_to_display_string(locator: Locator) -> str:
    selector = locator.selector
    if not selector.startswith("/"):
        selector = "/" + selector
    return f"gopher://{locator.host}:{locator.port}{selector}"


def _selector_segments(selector: str) -> list[str]:
    return [part for part in selector.split("/") if part]


def locator_to_local_path(locator: Locator, is_menu: bool) -> Path:
    """Map a locator to its path below the output root.

    Layout: ``<host>/<selector segments...>[/gophermap]``. Empty segments from
    repeated slashes are dropped; nothing else is normalized.
    """

    parts = [locator.host, *_selector_segments(locator.selector)]
    if is_menu:
        parts.append(MENU_FILENAME)
    return Path(*parts)


def parse_gopher_url(raw_url: str) -> Locator:
    """Decompose a command-line URL into a locator.

    Accepts ``gopher://host[:port][/selector]`` or the same without a scheme.
    The path is used verbatim as the selector (``/`` when empty).
    """

    text = raw_url.strip()
    if "://" in text:
        if not text.lower().startswith("gopher://"):
            raise ValueError(f"Unsupported scheme in URL: {raw_url!r}")
    else:
        text = "//" + text

    parts = urlsplit(text)
    host = parts.hostname or ""
    if not host:
        raise ValueError(f"Missing host in URL: {raw_url!r}")

    # .port raises ValueError for non-numeric or out of range ports.
    port = parts.port
    selector = parts.path or "/"
    if parts.query:
        selector += "?" + parts.query

    return Locator(
        host=host,
        selector=selector,
        port=str(port) if port is not None else DEFAULT_PORT,
    )


def is_below(selector: str, parent_selector: str) -> bool:
    return selector.startswith(parent_selector)


@dataclass(frozen=True)
class CrawlScope:
    start_host: str
    span_hosts: bool = False
    ascend_parent: bool = False
    accept_regex: re.Pattern[str] | None = None
    reject_regex: re.Pattern[str] | None = None
    regex_on_menus: bool = False

    def check(self, entry: MenuEntry, *, parent_selector: str) -> str | None:
        """Return why ``entry`` is out of scope, or None when it may be fetched."""

        if not self.span_hosts and entry.host.lower() != self.start_host.lower():
            return "offsite"

        if not self.ascend_parent and not is_below(entry.selector, parent_selector):
            return "ascend"

        # Menus bypass the regex filters unless asked, otherwise a strict
        # accept pattern would stop the recursion at the first level.
        if entry.is_menu and not self.regex_on_menus:
            return None

        url = locator_to_display_string(entry_to_locator(entry))
        if self.reject_regex is not None and self.reject_regex.fullmatch(url):
            return "rejected"
        if self.accept_regex is not None and not self.accept_regex.fullmatch(url):
            return "not_accepted"

        return None
