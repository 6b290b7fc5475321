"""
Tests for the knowledge-graph builder
"""

from datetime import datetime, timedelta, timezone

import pytest

from bookgraph.graph import DetailLevel, GraphBuilder, GraphConfig, build_graph
from bookgraph.models import Bookmark, EdgeType, HistoryEntry, NodeType

from conftest import utc


def detailed(**overrides):
    values = dict(
        detail_level=DetailLevel.DETAILED,
        max_bookmarks_per_domain=None,
        max_total_bookmarks=None,
    )
    values.update(overrides)
    return GraphConfig(**values)


def all_edges(**overrides):
    values = dict(
        include_domain_edges=True,
        include_folder_edges=True,
        include_same_domain_edges=True,
        include_tag_edges=True,
        include_category_edges=True,
        include_similarity_edges=True,
        min_domain_threshold=1,
        min_tag_threshold=1,
        similarity_threshold=0.1,
    )
    values.update(overrides)
    return detailed(**values)


def assert_no_dangling_edges(graph):
    ids = set(graph.node_ids())
    for edge in graph.edges:
        assert edge.source in ids, edge
        assert edge.target in ids, edge


class TestFromBookmarks:
    """Building from bookmarks only."""

    def test_domain_threshold_two(self, sample_bookmarks):
        graph = GraphBuilder(detailed(min_domain_threshold=2)).from_bookmarks(sample_bookmarks)
        domains = graph.nodes_of_type(NodeType.DOMAIN)
        assert [n.id for n in domains] == ["domain_github.com"]
        assert domains[0].size == 2
        belongs = graph.edges_of_type(EdgeType.BELONGS_TO_DOMAIN)
        assert sorted(e.source for e in belongs) == ["1", "2"]
        assert all(e.target == "domain_github.com" for e in belongs)

    def test_domain_threshold_three(self, sample_bookmarks):
        graph = GraphBuilder(detailed(min_domain_threshold=3)).from_bookmarks(sample_bookmarks)
        assert graph.nodes_of_type(NodeType.DOMAIN) == []
        assert graph.edges_of_type(EdgeType.BELONGS_TO_DOMAIN) == []

    def test_item_nodes_and_metadata(self, sample_bookmarks):
        graph = GraphBuilder(detailed(min_domain_threshold=2)).from_bookmarks(sample_bookmarks)
        items = graph.nodes_of_type(NodeType.BOOKMARK)
        assert [n.id for n in items] == ["1", "2", "3", "4"]
        assert items[3].domain == "amazon.com"
        assert graph.metadata.bookmark_count == 4
        assert graph.metadata.domain_count == 1
        assert graph.metadata.folder_count == 2
        assert graph.metadata.total_nodes == len(graph.nodes)
        assert graph.metadata.total_edges == len(graph.edges)

    def test_folder_and_category_nodes_have_no_threshold(self, sample_bookmarks):
        graph = GraphBuilder(detailed(min_domain_threshold=100, min_tag_threshold=100)).from_bookmarks(
            sample_bookmarks
        )
        folders = {n.id: n.size for n in graph.nodes_of_type(NodeType.FOLDER)}
        assert folders == {"folder_Development": 3, "folder_Shopping": 1}
        categories = {n.id for n in graph.nodes_of_type(NodeType.CATEGORY)}
        assert {"cat_Development", "cat_Shopping"} <= categories
        in_folder = graph.edges_of_type(EdgeType.IN_FOLDER)
        assert len(in_folder) == 4
        in_category = graph.edges_of_type(EdgeType.IN_CATEGORY)
        assert len(in_category) == 4
        assert all(e.weight == pytest.approx(0.7) for e in in_category)

    def test_repeated_item_ids_keep_first(self):
        bookmarks = [
            Bookmark(id="1", title="First", url="https://a.com"),
            Bookmark(id="1", title="Second", url="https://b.com"),
        ]
        graph = GraphBuilder(detailed(min_domain_threshold=1)).from_bookmarks(bookmarks)
        items = graph.nodes_of_type(NodeType.BOOKMARK)
        assert [(n.id, n.title) for n in items] == [("1", "First")]
        assert [n.id for n in graph.nodes_of_type(NodeType.DOMAIN)] == ["domain_a.com"]
        ids = graph.node_ids()
        assert len(ids) == len(set(ids))

    def test_folder_ids_do_not_collide(self):
        bookmarks = [
            Bookmark(id="1", title="x", url="https://a.com", folder="Dev/Rust"),
            Bookmark(id="2", title="y", url="https://b.com", folder="Dev_Rust"),
        ]
        graph = GraphBuilder(detailed()).from_bookmarks(bookmarks)
        folder_ids = [n.id for n in graph.nodes_of_type(NodeType.FOLDER)]
        assert folder_ids == ["folder_Dev_Rust", "folder_Dev%5FRust"]
        targets = {e.source: e.target for e in graph.edges_of_type(EdgeType.IN_FOLDER)}
        assert targets == {"1": "folder_Dev_Rust", "2": "folder_Dev%5FRust"}

    def test_folder_ids_replace_slashes(self):
        bookmarks = [Bookmark(id="1", title="x", url="https://a.com", folder="Dev/Rust")]
        graph = GraphBuilder(detailed()).from_bookmarks(bookmarks)
        folder = graph.nodes_of_type(NodeType.FOLDER)[0]
        assert folder.id == "folder_Dev_Rust"
        assert folder.title == "Dev/Rust"

    def test_tag_nodes_and_edges(self):
        bookmarks = [
            Bookmark(id="1", title="Rust Programming Guide", url="https://rust-lang.org/learn"),
            Bookmark(id="2", title="Rust Async Programming", url="https://rust-lang.org/async"),
        ]
        graph = GraphBuilder(detailed(include_tag_edges=True, min_tag_threshold=2)).from_bookmarks(bookmarks)
        tags = {n.id: n for n in graph.nodes_of_type(NodeType.TAG)}
        assert set(tags) == {"tag_rust", "tag_programming"}
        assert tags["tag_rust"].title == "#rust"
        has_tag = graph.edges_of_type(EdgeType.HAS_TAG)
        assert len(has_tag) == 4
        assert all(e.weight == pytest.approx(0.8) for e in has_tag)
        assert {e.target for e in has_tag} == set(tags)

    def test_similarity_scenario(self):
        bookmarks = [
            Bookmark(id="1", title="Rust Programming Language", url="https://rust-lang.org"),
            Bookmark(id="2", title="Rust Programming Tutorial", url="https://example.com/rust"),
        ]
        config = detailed(include_similarity_edges=True, similarity_threshold=0.2)
        graph = GraphBuilder(config).from_bookmarks(bookmarks)
        similar = graph.edges_of_type(EdgeType.SIMILAR_CONTENT)
        assert len(similar) == 1
        assert {similar[0].source, similar[0].target} == {"1", "2"}
        assert similar[0].weight == pytest.approx(0.5)

    def test_similarity_below_threshold(self):
        bookmarks = [
            Bookmark(id="1", title="Rust Programming Language", url="https://rust-lang.org"),
            Bookmark(id="2", title="Rust Programming Tutorial", url="https://example.com/rust"),
        ]
        config = detailed(include_similarity_edges=True, similarity_threshold=0.6)
        graph = GraphBuilder(config).from_bookmarks(bookmarks)
        assert graph.edges_of_type(EdgeType.SIMILAR_CONTENT) == []

    def test_same_domain_edges_once_per_pair(self):
        bookmarks = [
            Bookmark(id=str(i), title=f"Page {i}", url=f"https://github.com/p{i}") for i in range(4)
        ]
        config = detailed(include_same_domain_edges=True, min_domain_threshold=100)
        graph = GraphBuilder(config).from_bookmarks(bookmarks)
        same = graph.edges_of_type(EdgeType.SAME_DOMAIN)
        assert len(same) == 6
        pairs = {frozenset((e.source, e.target)) for e in same}
        assert len(pairs) == 6
        assert all(e.weight == pytest.approx(0.5) for e in same)

    def test_edge_toggles(self, sample_bookmarks):
        config = detailed(
            min_domain_threshold=1,
            include_domain_edges=False,
            include_folder_edges=False,
            include_category_edges=False,
        )
        graph = GraphBuilder(config).from_bookmarks(sample_bookmarks)
        assert graph.edges == []
        assert graph.nodes_of_type(NodeType.DOMAIN)

    def test_bookmark_without_url(self):
        bookmarks = [Bookmark(id="1", title="No URL Bookmark", folder="Misc")]
        graph = GraphBuilder(detailed(min_domain_threshold=1)).from_bookmarks(bookmarks)
        assert graph.metadata.bookmark_count == 1
        assert graph.nodes_of_type(NodeType.DOMAIN) == []
        assert len(graph.nodes_of_type(NodeType.FOLDER)) == 1

    def test_malformed_urls_do_not_abort(self):
        bookmarks = [
            Bookmark(id="1", title="Broken", url="http://[::1"),
            Bookmark(id="2", title="Relative", url="/just/a/path"),
            Bookmark(id="3", title="Fine", url="https://github.com"),
        ]
        graph = GraphBuilder(all_edges()).from_bookmarks(bookmarks)
        assert graph.metadata.bookmark_count == 3
        assert [n.id for n in graph.nodes_of_type(NodeType.DOMAIN)] == ["domain_github.com"]
        assert_no_dangling_edges(graph)

    def test_empty_input(self):
        graph = GraphBuilder().from_bookmarks([])
        assert graph.nodes == []
        assert graph.edges == []
        assert graph.metadata.bookmark_count == 0


class TestDetailLevels:
    """Filter-stage policies."""

    def test_overview_has_no_item_nodes(self, sample_bookmarks):
        config = GraphConfig(detail_level=DetailLevel.OVERVIEW, min_domain_threshold=1)
        graph = GraphBuilder(config).from_bookmarks(sample_bookmarks * 5)
        assert graph.nodes_of_type(NodeType.BOOKMARK) == []
        assert graph.nodes_of_type(NodeType.DOMAIN)
        assert graph.nodes_of_type(NodeType.FOLDER)
        assert graph.metadata.bookmark_count == 0
        assert_no_dangling_edges(graph)

    def test_domain_only_suppresses_item_nodes(self, sample_bookmarks):
        graph = GraphBuilder(detailed(domain_only=True, min_domain_threshold=2)).from_bookmarks(sample_bookmarks)
        assert graph.nodes_of_type(NodeType.BOOKMARK) == []
        assert [n.id for n in graph.nodes_of_type(NodeType.DOMAIN)] == ["domain_github.com"]
        assert graph.edges == []

    def test_standard_per_domain_cap(self):
        bookmarks = [
            Bookmark(id="g1", title="a", url="https://github.com/1"),
            Bookmark(id="g2", title="b", url="https://github.com/2"),
            Bookmark(id="g3", title="c", url="https://github.com/3"),
            Bookmark(id="x1", title="d", url="https://example.com"),
            Bookmark(id="n1", title="e"),
            Bookmark(id="n2", title="f"),
        ]
        config = GraphConfig(detail_level=DetailLevel.STANDARD, max_bookmarks_per_domain=2, max_total_bookmarks=None)
        graph = GraphBuilder(config).from_bookmarks(bookmarks)
        assert [n.id for n in graph.nodes_of_type(NodeType.BOOKMARK)] == ["g1", "g2", "x1", "n1", "n2"]

    def test_standard_global_cap(self):
        bookmarks = [Bookmark(id=str(i), title="t", url=f"https://site{i}.com") for i in range(10)]
        config = GraphConfig(detail_level=DetailLevel.STANDARD, max_total_bookmarks=3)
        graph = GraphBuilder(config).from_bookmarks(bookmarks)
        assert [n.id for n in graph.nodes_of_type(NodeType.BOOKMARK)] == ["0", "1", "2"]

    def test_detailed_ignores_domain_cap(self):
        bookmarks = [Bookmark(id=str(i), title="t", url=f"https://github.com/{i}") for i in range(15)]
        config = GraphConfig(detail_level=DetailLevel.DETAILED, max_bookmarks_per_domain=2, max_total_bookmarks=12)
        graph = GraphBuilder(config).from_bookmarks(bookmarks)
        assert len(graph.nodes_of_type(NodeType.BOOKMARK)) == 12

    def test_min_date_excludes_old_and_undated(self):
        bookmarks = [
            Bookmark(id="old", title="t", url="https://a.com", date_added=utc(2019)),
            Bookmark(id="new", title="t", url="https://b.com", date_added=utc(2024)),
            Bookmark(id="undated", title="t", url="https://c.com"),
        ]
        graph = GraphBuilder(detailed(min_date=utc(2023))).from_bookmarks(bookmarks)
        assert [n.id for n in graph.nodes_of_type(NodeType.BOOKMARK)] == ["new"]

    def test_date_filter_runs_before_cap(self):
        bookmarks = [
            Bookmark(id="old1", title="t", url="https://github.com/1", date_added=utc(2019)),
            Bookmark(id="old2", title="t", url="https://github.com/2", date_added=utc(2019)),
            Bookmark(id="new1", title="t", url="https://github.com/3", date_added=utc(2024)),
        ]
        config = GraphConfig(max_bookmarks_per_domain=1, min_date=utc(2023))
        graph = GraphBuilder(config).from_bookmarks(bookmarks)
        assert [n.id for n in graph.nodes_of_type(NodeType.BOOKMARK)] == ["new1"]


class TestHistory:
    """Building from history and from both sources."""

    def test_from_history(self, sample_history):
        graph = GraphBuilder(detailed()).from_history(sample_history)
        items = graph.nodes_of_type(NodeType.BOOKMARK)
        assert [n.id for n in items] == ["hist_0", "hist_1"]
        assert [n.size for n in items] == [10, 5]
        assert graph.metadata.bookmark_count == 2
        assert graph.metadata.folder_count == 0
        assert graph.nodes_of_type(NodeType.DOMAIN) == []

    def test_history_date_floor_uses_last_visit(self):
        history = [
            HistoryEntry(url="https://a.com", title="A", visit_count=1, last_visit=utc(2018)),
            HistoryEntry(url="https://b.com", title="B", visit_count=1, last_visit=utc(2025)),
        ]
        graph = GraphBuilder(detailed(min_date=utc(2020))).from_history(history)
        assert [n.id for n in graph.nodes_of_type(NodeType.BOOKMARK)] == ["hist_1"]

    def test_from_both(self, sample_bookmarks, sample_history):
        graph = GraphBuilder(detailed(min_domain_threshold=3)).from_both(sample_bookmarks, sample_history)
        ids = [n.id for n in graph.nodes_of_type(NodeType.BOOKMARK)]
        assert ids == ["1", "2", "3", "4", "hist_0", "hist_1"]
        github = graph.nodes_of_type(NodeType.DOMAIN)
        assert [n.id for n in github] == ["domain_github.com"]
        assert github[0].size == 3
        sources = sorted(e.source for e in graph.edges_of_type(EdgeType.BELONGS_TO_DOMAIN))
        assert sources == ["1", "2", "hist_0"]

    def test_build_graph_helper(self, sample_bookmarks, sample_history):
        assert build_graph(sample_bookmarks, config=detailed()).metadata.bookmark_count == 4
        assert build_graph(history=sample_history, config=detailed()).metadata.bookmark_count == 2
        assert build_graph(sample_bookmarks, sample_history, detailed()).metadata.bookmark_count == 6


class TestInvariants:
    """Properties every produced graph must satisfy."""

    @pytest.mark.parametrize("level", list(DetailLevel))
    @pytest.mark.parametrize("domain_only", [False, True])
    def test_no_dangling_edges(self, sample_bookmarks, sample_history, level, domain_only):
        config = all_edges(detail_level=level, domain_only=domain_only, min_domain_threshold=2, min_tag_threshold=2)
        graph = GraphBuilder(config).from_both(sample_bookmarks * 2, sample_history)
        assert_no_dangling_edges(graph)
        ids = graph.node_ids()
        assert len(ids) == len(set(ids))

    def test_no_self_loops_or_reverse_duplicates(self, sample_bookmarks):
        graph = GraphBuilder(all_edges()).from_bookmarks(sample_bookmarks)
        for edge_type in (EdgeType.SAME_DOMAIN, EdgeType.SIMILAR_CONTENT):
            edges = graph.edges_of_type(edge_type)
            pairs = [frozenset((e.source, e.target)) for e in edges]
            assert len(pairs) == len(set(pairs))
            assert all(len(p) == 2 for p in pairs)

    def test_weights_in_range(self, sample_bookmarks, sample_history):
        graph = GraphBuilder(all_edges()).from_both(sample_bookmarks, sample_history)
        assert graph.edges
        assert all(0.0 <= e.weight <= 1.0 for e in graph.edges)

    def test_thresholds_bound_aggregate_edges(self, sample_bookmarks):
        graph = GraphBuilder(all_edges(min_domain_threshold=2, min_tag_threshold=2)).from_bookmarks(sample_bookmarks)
        domain_ids = {n.id for n in graph.nodes_of_type(NodeType.DOMAIN)}
        tag_ids = {n.id for n in graph.nodes_of_type(NodeType.TAG)}
        assert {e.target for e in graph.edges_of_type(EdgeType.BELONGS_TO_DOMAIN)} <= domain_ids
        assert {e.target for e in graph.edges_of_type(EdgeType.HAS_TAG)} <= tag_ids
        assert all(n.size >= 2 for n in graph.nodes_of_type(NodeType.TAG))

    def test_generated_at_is_recent(self, sample_bookmarks):
        graph = GraphBuilder().from_bookmarks(sample_bookmarks)
        delta = datetime.now(timezone.utc) - graph.metadata.generated_at
        assert timedelta(0) <= delta < timedelta(minutes=1)
