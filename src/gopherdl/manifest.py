from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from .urls import Locator

EVENTS_FILENAME = "manifest.jsonl"
SUMMARY_FILENAME = "manifest.json"


def utc_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


@dataclass(frozen=True)
class CrawlEvent:
    """One line of the event log. Fields that do not apply stay None."""

    kind: str
    url: str
    at: str = field(default_factory=utc_iso)
    path: str | None = None
    menu: bool | None = None
    size: int | None = None
    error_type: str | None = None
    error: str | None = None

    def to_json(self) -> str:
        data = {k: v for k, v in asdict(self).items() if v is not None}
        return json.dumps(data, ensure_ascii=False)


class ManifestWriter:
    """Append-only record of one or more crawls.

    The event log gets one line per saved, existing or failed locator; the
    summary file is replaced by the summary of the latest crawl.
    """

    def __init__(self, directory: Path) -> None:
        self.directory = directory

    @property
    def events_path(self) -> Path:
        return self.directory / EVENTS_FILENAME

    @property
    def summary_path(self) -> Path:
        return self.directory / SUMMARY_FILENAME

    def record(self, event: CrawlEvent) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        with self.events_path.open("a", encoding="utf-8", newline="\n") as f:
            print(event.to_json(), file=f)

    def stored(
        self,
        locator: Locator,
        *,
        rel_path: Path,
        is_menu: bool,
        size: int,
        written: bool,
    ) -> None:
        self.record(
            CrawlEvent(
                kind="saved" if written else "exists",
                url=str(locator),
                path=rel_path.as_posix(),
                menu=is_menu,
                size=size,
            )
        )

    def failed(self, locator: Locator, error: Exception) -> None:
        self.record(
            CrawlEvent(
                kind="failed",
                url=str(locator),
                error_type=type(error).__name__,
                error=str(error),
            )
        )

    def finish(self, summary: dict[str, Any]) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        with self.summary_path.open("w", encoding="utf-8") as f:
            json.dump(summary, f, indent=2, ensure_ascii=False)
            f.write("\n")
