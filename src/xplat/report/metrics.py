"""Shared-code metrics derived from the index.

Line counts come from the indexer's per-source-set totals. A source set the
indexer left at zero lines falls back to the summed line counts of its
indexed files.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from xplat.core.logging import get_logger
from xplat.index.models import SHARED_PLATFORM

if TYPE_CHECKING:
    from pathlib import Path

    from xplat.index.store import IndexStore


def percentage(part: int, whole: int) -> float:
    """part as a percentage of whole, 0.0 for an empty whole."""
    return part * 100.0 / whole if whole else 0.0


@dataclass(frozen=True)
class ModuleSharedRanking:
    """One module's place in the shared-code ranking."""

    module_path: str
    display_name: str
    shared_lines: int
    total_lines: int
    rank: int

    @property
    def shared_percentage(self) -> float:
        return percentage(self.shared_lines, self.total_lines)

    def to_dict(self) -> dict[str, Any]:
        return {
            "module_path": self.module_path,
            "display_name": self.display_name,
            "shared_lines": self.shared_lines,
            "total_lines": self.total_lines,
            "shared_percentage": round(self.shared_percentage, 2),
            "rank": self.rank,
        }


@dataclass(frozen=True)
class SharedCodeMetrics:
    """How much of a repository is written once for every platform.

    platform_lines is keyed by source set platform tag, with the shared
    partition under ``SHARED_PLATFORM``.
    """

    total_lines: int = 0
    shared_lines: int = 0
    platform_lines: dict[str, int] = field(default_factory=dict)
    shared_declarations: int = 0
    platform_implementations: int = 0
    pairings_total: int = 0
    pairings_missing: int = 0
    module_rankings: list[ModuleSharedRanking] = field(default_factory=list)

    @property
    def shared_percentage(self) -> float:
        return percentage(self.shared_lines, self.total_lines)

    @property
    def pairing_coverage(self) -> float:
        """Implemented pairings as a percentage of all pairings."""
        return percentage(self.pairings_total - self.pairings_missing, self.pairings_total)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_lines": self.total_lines,
            "shared_lines": self.shared_lines,
            "shared_percentage": round(self.shared_percentage, 2),
            "platform_lines": dict(self.platform_lines),
            "shared_declarations": self.shared_declarations,
            "platform_implementations": self.platform_implementations,
            "pairings_total": self.pairings_total,
            "pairings_missing": self.pairings_missing,
            "pairing_coverage": round(self.pairing_coverage, 2),
            "module_rankings": [r.to_dict() for r in self.module_rankings],
        }


def compute_shared_metrics(store: IndexStore, repo_path: str | Path) -> SharedCodeMetrics:
    """Aggregate line, declaration and pairing counts for one repository."""
    repo = str(repo_path)

    file_lines: Counter[tuple[str | None, str | None]] = Counter()
    for indexed in store.files(repo):
        file_lines[(indexed.module_path, indexed.source_set)] += indexed.line_count

    platform_lines: Counter[str] = Counter()
    per_module: list[tuple[str, str, int, int]] = []
    for module in store.modules(repo):
        if module.id is None:
            continue
        shared = total = 0
        for source_set in store.source_sets(module.id):
            lines = source_set.line_count or file_lines[(module.path, source_set.name)]
            platform_lines[source_set.platform] += lines
            total += lines
            if source_set.platform == SHARED_PLATFORM:
                shared += lines
        per_module.append((module.path, module.display_name, shared, total))

    per_module.sort(key=lambda m: (-percentage(m[2], m[3]), m[0]))
    rankings = [
        ModuleSharedRanking(path, name, shared, total, rank)
        for rank, (path, name, shared, total) in enumerate(per_module, 1)
    ]

    counts = store.declaration_counts(repo)
    pairings = store.pairings(repo)
    metrics = SharedCodeMetrics(
        total_lines=sum(platform_lines.values()),
        shared_lines=platform_lines[SHARED_PLATFORM],
        platform_lines=dict(sorted(platform_lines.items())),
        shared_declarations=counts.shared_declarations,
        platform_implementations=counts.platform_implementations,
        pairings_total=len(pairings),
        pairings_missing=sum(1 for p in pairings if p.is_missing),
        module_rankings=rankings,
    )
    get_logger("report.metrics").debug(
        "shared_metrics_computed",
        repo=repo,
        total_lines=metrics.total_lines,
        shared_lines=metrics.shared_lines,
        modules=len(rankings),
    )
    return metrics
