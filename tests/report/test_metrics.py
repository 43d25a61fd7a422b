"""Tests for shared-code metrics over the index."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from xplat.index import SHARED_PLATFORM, IndexStore, Module, SourceSet
from xplat.report import SharedCodeMetrics, compute_shared_metrics, percentage

if TYPE_CHECKING:
    from conftest import KmpRepo


def _add_app_module(kmp_repo: KmpRepo) -> None:
    """A second module whose source sets carry indexer line totals."""
    with kmp_repo.store.writer() as w:
        module_id = w.add_module(
            Module(
                repo_path=kmp_repo.key,
                path=":app",
                display_name="app",
                absolute_path=str(kmp_repo.root / "app"),
            )
        )
        for name, platform, lines in (
            ("commonMain", SHARED_PLATFORM, 10),
            ("androidMain", "android", 90),
        ):
            w.add_source_set(
                SourceSet(
                    module_id=module_id,
                    name=name,
                    platform=platform,
                    directory_path=str(kmp_repo.root / "app" / "src" / name),
                    line_count=lines,
                )
            )


class TestPercentage:
    def test_empty_whole_is_zero(self) -> None:
        assert percentage(5, 0) == 0.0

    def test_fraction(self) -> None:
        assert percentage(1, 4) == 25.0


class TestComputeSharedMetrics:
    """Line, declaration and pairing aggregation."""

    def test_lines_fall_back_to_indexed_files(self, kmp_repo: KmpRepo) -> None:
        """Source sets without an indexer total sum their files' line counts."""
        metrics = compute_shared_metrics(kmp_repo.store, kmp_repo.key)

        assert metrics.platform_lines == {"common": 17, "jvm": 7, "wasmJs": 3}
        assert metrics.total_lines == 27
        assert metrics.shared_lines == 17
        assert metrics.shared_percentage == pytest.approx(62.96, abs=0.01)

    def test_declarations_and_pairings(self, kmp_repo: KmpRepo) -> None:
        metrics = compute_shared_metrics(kmp_repo.store, kmp_repo.key)

        assert metrics.shared_declarations == 2
        assert metrics.platform_implementations == 3
        assert metrics.pairings_total == 4
        assert metrics.pairings_missing == 1
        assert metrics.pairing_coverage == 75.0

    def test_indexer_line_totals_win_and_modules_are_ranked(self, kmp_repo: KmpRepo) -> None:
        # Given a second, mostly platform-specific module
        _add_app_module(kmp_repo)

        # When
        metrics = compute_shared_metrics(kmp_repo.store, kmp_repo.key)

        # Then the more shared module ranks first
        assert [(r.module_path, r.rank) for r in metrics.module_rankings] == [
            (":shared", 1),
            (":app", 2),
        ]
        app = metrics.module_rankings[1]
        assert (app.shared_lines, app.total_lines) == (10, 100)
        assert app.shared_percentage == 10.0
        assert metrics.total_lines == 127
        assert metrics.platform_lines["android"] == 90
        assert metrics.platform_lines["common"] == 27

    def test_unknown_repository_is_empty(self, index_store: IndexStore) -> None:
        metrics = compute_shared_metrics(index_store, "/nowhere")

        assert metrics == SharedCodeMetrics()
        assert metrics.shared_percentage == 0.0
        assert metrics.pairing_coverage == 0.0

    def test_to_dict_rounds_percentages(self, kmp_repo: KmpRepo) -> None:
        data = compute_shared_metrics(kmp_repo.store, kmp_repo.key).to_dict()

        assert data["shared_percentage"] == 62.96
        assert data["pairing_coverage"] == 75.0
        assert data["module_rankings"][0]["display_name"] == "shared"
