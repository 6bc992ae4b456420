# SPDX-License-Identifier: MIT
"""Tests for the replay executor."""

import pytest

from cache_relay.engine import DirectoryPageLookup, MappingPageLookup
from cache_relay.models import ClearEvent, Page
from cache_relay.replay import ReplayExecutor, resolve_under


@pytest.fixture
def roots(tmp_path):
    deployment_root = tmp_path / "site"
    cache_root = deployment_root / "cache"
    cache_root.mkdir(parents=True)
    return deployment_root, cache_root


@pytest.fixture
def engine(make_engine):
    return make_engine()


@pytest.fixture
def executor(engine, roots):
    deployment_root, cache_root = roots
    return ReplayExecutor(engine, DirectoryPageLookup(), deployment_root, cache_root)


class TestResolveUnder:
    """Test cases for resolve_under."""

    def test_leading_slash_is_relative_to_root(self, tmp_path):
        assert resolve_under(tmp_path, "/cache/foo.html") == (
            tmp_path / "cache" / "foo.html"
        ).resolve()

    def test_escape_is_refused(self, tmp_path):
        assert resolve_under(tmp_path, "../outside.html") is None

    def test_root_itself_is_refused(self, tmp_path):
        assert resolve_under(tmp_path, "/") is None


class TestReplayExecutor:
    """Test cases for ReplayExecutor."""

    def test_clear_all(self, executor, engine):
        assert executor.apply(ClearEvent.clear_all())
        assert engine.calls == [("clear_all",)]

    def test_clear_behaviors(self, executor, engine):
        assert executor.apply(ClearEvent.clear_behaviors(7))
        assert engine.calls == [("clear_behaviors_for", 7)]

    def test_clear_page_forwards_options_without_auxiliary_keys(self, executor, engine):
        event = ClearEvent.clear_page(
            42, {"children": True, "filesCleared": [], "pathsCleared": []}
        )

        assert executor.apply(event)

        assert engine.calls == [("clear_page", 42, {"children": True})]

    def test_unresolved_page_is_skipped(self, engine, roots):
        deployment_root, cache_root = roots
        pages = MappingPageLookup({1: Page(id=1)})
        executor = ReplayExecutor(engine, pages, deployment_root, cache_root)

        assert not executor.apply(ClearEvent.clear_page(99))
        assert not executor.apply(ClearEvent.clear_behaviors(99))
        assert engine.calls == []

    def test_files_cleared_are_deleted(self, executor, roots):
        deployment_root, _ = roots
        cached = deployment_root / "cache" / "foo.html"
        cached.write_text("<html></html>")

        executor.apply(ClearEvent.clear_page(42, {"filesCleared": ["/cache/foo.html"]}))

        assert not cached.exists()

    def test_absent_file_still_clears_page(self, executor, engine):
        event = ClearEvent.clear_page(
            42, {"filesCleared": ["/cache/foo.html"], "children": False}
        )

        assert executor.apply(event)

        assert engine.calls == [("clear_page", 42, {"children": False})]

    def test_paths_cleared_are_removed_recursively(self, executor, roots):
        _, cache_root = roots
        page_dir = cache_root / "pages" / "42"
        (page_dir / "segment").mkdir(parents=True)
        (page_dir / "segment" / "index.html").write_text("cached")

        executor.apply(ClearEvent.clear_page(42, {"pathsCleared": ["pages/42"]}))

        assert not page_dir.exists()
        assert cache_root.exists()

    def test_paths_outside_roots_are_refused(self, executor, roots, tmp_path):
        outside = tmp_path / "precious.txt"
        outside.write_text("keep")

        executor.apply(
            ClearEvent.clear_page(
                42,
                {"filesCleared": ["../precious.txt"], "pathsCleared": ["../../"]},
            )
        )

        assert outside.exists()
        assert roots[1].exists()

    @pytest.mark.parametrize(
        "event",
        [
            ClearEvent.clear_all(),
            ClearEvent.clear_behaviors(7),
            ClearEvent.clear_page(
                42, {"filesCleared": ["/cache/foo.html"], "pathsCleared": ["pages/42"]}
            ),
        ],
    )
    def test_replay_is_idempotent(self, executor, engine, roots, event):
        deployment_root, cache_root = roots
        (deployment_root / "cache" / "foo.html").write_text("x")
        (cache_root / "pages" / "42").mkdir(parents=True)

        executor.apply(event)
        state_after_first = sorted(p.name for p in deployment_root.rglob("*"))
        executor.apply(event)

        assert sorted(p.name for p in deployment_root.rglob("*")) == state_after_first
        assert engine.calls[0] == engine.calls[1]
