"""
Tests for graph serialization formats
"""

import json

import pytest

from bookgraph.formats import (
    escape_dot_id,
    escape_dot_label,
    escape_xml,
    render,
    to_dot,
    to_gexf,
    to_html,
    to_js_data,
    to_json,
)
from bookgraph.graph import DetailLevel, GraphBuilder, GraphConfig
from bookgraph.models import Bookmark, EdgeType, GraphEdge, GraphNode, KnowledgeGraph, NodeType


@pytest.fixture
def graph(sample_bookmarks):
    config = GraphConfig(
        detail_level=DetailLevel.DETAILED,
        min_domain_threshold=2,
        max_bookmarks_per_domain=None,
        max_total_bookmarks=None,
    )
    return GraphBuilder(config).from_bookmarks(sample_bookmarks)


@pytest.fixture
def tricky_graph():
    nodes = [
        GraphNode(id='a "b"', title='Tom & "Jerry" <script>', node_type=NodeType.BOOKMARK, url="https://x.com/?a=1&b=2"),
        GraphNode(id="domain_x.com", title="x.com", node_type=NodeType.DOMAIN, domain="x.com"),
    ]
    edges = [GraphEdge(source='a "b"', target="domain_x.com", edge_type=EdgeType.BELONGS_TO_DOMAIN)]
    return KnowledgeGraph(nodes=nodes, edges=edges)


class TestJson:
    def test_round_trips_through_json(self, graph):
        data = json.loads(to_json(graph))
        assert len(data["nodes"]) == graph.metadata.total_nodes
        assert len(data["edges"]) == graph.metadata.total_edges
        assert data["metadata"]["bookmark_count"] == 4
        assert data["metadata"]["generated_at"].endswith("Z")

    def test_enum_values_are_lowercase(self, graph):
        data = json.loads(to_json(graph))
        assert {n["node_type"] for n in data["nodes"]} >= {"bookmark", "domain", "folder", "category"}
        assert "belongstodomain" in {e["edge_type"] for e in data["edges"]}

    def test_optional_fields_are_null(self, graph):
        data = json.loads(to_json(graph))
        folder = next(n for n in data["nodes"] if n["node_type"] == "folder")
        assert folder["url"] is None


class TestDot:
    def test_structure(self, graph):
        dot = to_dot(graph)
        assert dot.startswith("digraph BookmarkKnowledgeGraph {")
        assert "rankdir=LR;" in dot
        assert dot.rstrip().endswith("}")
        assert '"1" -> "domain_github.com" [color=blue, penwidth=2];' in dot
        assert "fillcolor=lightgreen, style=filled, shape=ellipse" in dot

    def test_escaping(self, tricky_graph):
        dot = to_dot(tricky_graph)
        assert '"a \\"b\\"" [label="Tom & \\"Jerry\\" \\<script\\>"' in dot
        assert '"a \\"b\\"" -> "domain_x.com"' in dot

    def test_escape_helpers(self):
        assert escape_dot_id('my "id"\twith space') == 'my \\"id\\"\twith space'
        assert escape_dot_id("a\\") == "a\\\\"
        assert escape_dot_id("a b") != escape_dot_id("a_b")
        assert escape_dot_label("a|b{c}") == "a\\|b\\{c\\}"


class TestGexf:
    def test_structure(self, graph):
        gexf = to_gexf(graph)
        assert gexf.startswith('<?xml version="1.0"')
        assert "<gexf" in gexf
        assert "<nodes>" in gexf and "<edges>" in gexf
        assert gexf.rstrip().endswith("</gexf>")
        assert gexf.count("<node ") == graph.metadata.total_nodes
        assert gexf.count("<edge ") == graph.metadata.total_edges

    def test_attributes_are_escaped(self, tricky_graph):
        gexf = to_gexf(tricky_graph)
        assert 'label="Tom &amp; &quot;Jerry&quot; &lt;script&gt;"' in gexf
        assert 'value="https://x.com/?a=1&amp;b=2"' in gexf
        assert 'label="belongstodomain"' in gexf

    def test_escape_xml(self):
        assert escape_xml("<a href='x'>&</a>") == "&lt;a href=&apos;x&apos;&gt;&amp;&lt;/a&gt;"


class TestHtml:
    def test_embeds_graph_data(self, graph):
        html = to_html(graph)
        assert html.startswith("<!DOCTYPE html>")
        assert "<title>Bookmark Knowledge Graph</title>" in html
        assert "d3.v7.min.js" in html
        assert "__GRAPH_DATA__" not in html
        assert '"domain_github.com"' in html

    def test_script_tag_in_title_is_neutralized(self):
        bookmarks = [Bookmark(id="1", title="</script><b>", url="https://a.com")]
        html = to_html(GraphBuilder().from_bookmarks(bookmarks))
        assert "</script><b>" not in html
        assert "<\\/script><b>" in html

    def test_js_data(self, graph):
        js = to_js_data(graph)
        assert "window.graphData = " in js
        payload = js.split("window.graphData = ", 1)[1].rstrip().rstrip(";")
        assert json.loads(payload)["metadata"]["bookmark_count"] == 4


class TestRender:
    @pytest.mark.parametrize("fmt,marker", [
        ("json", '"nodes"'),
        ("dot", "digraph"),
        ("gexf", "<gexf"),
        ("html", "<!DOCTYPE html>"),
        ("JSON", '"nodes"'),
    ])
    def test_dispatch(self, graph, fmt, marker):
        assert marker in render(graph, fmt)

    def test_unknown_format(self, graph):
        with pytest.raises(ValueError, match="unknown graph format"):
            render(graph, "graphml")

    def test_empty_graph(self):
        empty = GraphBuilder().from_bookmarks([])
        assert json.loads(render(empty, "json"))["nodes"] == []
        assert "<nodes>" in render(empty, "gexf")
