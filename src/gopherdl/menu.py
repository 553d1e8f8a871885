from __future__ import annotations

from dataclasses import dataclass
from typing import Final

from .urls import Locator, entry_to_locator

MENU_TYPE: Final = "1"

ITEM_TYPES: Final[dict[str, str]] = {
    "0": "text",
    "1": "menu",
    "2": "cso",
    "3": "error",
    "4": "binhex",
    "5": "dos-binary",
    "6": "uuencoded",
    "7": "search",
    "8": "telnet",
    "9": "binary",
    "+": "mirror",
    "g": "gif",
    "I": "image",
    "T": "tn3270",
    "h": "html",
    "i": "info",
    "s": "sound",
    "d": "document",
    "p": "png",
    "P": "pdf",
}

# Items that are not documents reachable by sending their selector.
UNRETRIEVABLE_TYPES: Final[frozenset[str]] = frozenset({"i", "3", "7", "8", "T", "2"})

_FOREIGN_MARKER = "URL:"


def describe_item_type(item_type: str) -> str:
    return ITEM_TYPES.get(item_type, "unknown")


def is_retrievable(item_type: str) -> bool:
    return item_type not in UNRETRIEVABLE_TYPES


@dataclass(frozen=True)
class MenuEntry:
    item_type: str
    display_text: str
    selector: str
    host: str
    port: str

    @property
    def is_menu(self) -> bool:
        return self.item_type == MENU_TYPE

    @property
    def locator(self) -> Locator:
        return entry_to_locator(self)


def is_valid_selector(selector: str) -> bool:
    if not selector:
        return False
    return not selector.upper().startswith(_FOREIGN_MARKER)


def parse_menu_line(line: str) -> MenuEntry | None:
    fields = line.split("\t")
    if len(fields) != 4:
        return None

    type_and_text, selector, host, port = fields
    if not type_and_text:
        return None

    return MenuEntry(
        item_type=type_and_text[0],
        display_text=type_and_text[1:],
        selector=selector.strip(),
        host=host.strip(),
        port=port.strip(),
    )


def parse_menu(raw: bytes) -> list[MenuEntry]:
    """Parse a Gopher menu response into its entries, in display order.

    Lines that do not carry exactly four tab-separated fields (including the
    ``.`` terminator) are dropped, as are entries with an empty selector or a
    ``URL:`` selector pointing at another protocol.
    """

    out: list[MenuEntry] = []
    for raw_line in raw.split(b"\n"):
        if raw_line.endswith(b"\r"):
            raw_line = raw_line[:-1]
        line = raw_line.decode("utf-8", errors="surrogateescape")
        entry = parse_menu_line(line)
        if entry is None or not is_valid_selector(entry.selector):
            continue
        out.append(entry)
    return out
