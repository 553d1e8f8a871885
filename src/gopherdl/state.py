from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path

from .urls import Locator


@dataclass
class CrawlState:
    visited: set[Locator] = field(default_factory=set)
    failed: dict[Locator, str] = field(default_factory=dict)
    saved: list[Path] = field(default_factory=list)
    stats: Counter[str] = field(default_factory=Counter)

    def mark_visited(self, locator: Locator) -> bool:
        """Record ``locator``; False when it was already seen in this run."""

        if locator in self.visited:
            return False
        self.visited.add(locator)
        return True

    def record_failure(self, locator: Locator, error: Exception) -> None:
        self.failed[locator] = str(error)
        self.stats["error"] += 1

    def record_saved(self, path: Path) -> None:
        self.saved.append(path)
        self.stats["saved"] += 1
