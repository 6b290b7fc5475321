# -*- coding: utf-8 -*-
"""Serialize a KnowledgeGraph to JSON, Graphviz DOT, GEXF or a D3 HTML page."""
import json
from typing import Dict, Tuple

from .models import EdgeType, KnowledgeGraph, NodeType

NODE_STYLES: Dict[NodeType, Tuple[str, str]] = {
    NodeType.BOOKMARK: ("lightblue", "box"),
    NodeType.DOMAIN: ("lightgreen", "ellipse"),
    NodeType.FOLDER: ("lightyellow", "folder"),
    NodeType.TAG: ("lightsalmon", "diamond"),
    NodeType.CATEGORY: ("plum", "octagon"),
}

EDGE_STYLES: Dict[EdgeType, str] = {
    EdgeType.BELONGS_TO_DOMAIN: "[color=blue, penwidth=2]",
    EdgeType.IN_FOLDER: "[color=green, penwidth=1]",
    EdgeType.SAME_DOMAIN: "[color=gray, penwidth=0.5, style=dashed]",
    EdgeType.HAS_TAG: "[color=orange, penwidth=1, style=dotted]",
    EdgeType.IN_CATEGORY: "[color=purple, penwidth=1.5]",
    EdgeType.SIMILAR_CONTENT: "[color=red, penwidth=0.5, style=dashed]",
}

FORMATS = ("json", "dot", "gexf", "html")


def escape_dot_id(text: str) -> str:
    return text.replace("\\", "\\\\").replace('"', '\\"')


def escape_dot_label(text: str) -> str:
    for ch in ("\\", '"', "|", "{", "}", "<", ">"):
        text = text.replace(ch, "\\" + ch)
    return text


def escape_xml(text: str) -> str:
    return (
        text.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
        .replace("'", "&apos;")
    )


def to_json(graph: KnowledgeGraph) -> str:
    return json.dumps(graph.to_dict(), ensure_ascii=False, indent=2)


def to_dot(graph: KnowledgeGraph) -> str:
    lines = [
        "digraph BookmarkKnowledgeGraph {",
        "    rankdir=LR;",
        "    node [shape=box];",
        "",
    ]
    for node in graph.nodes:
        color, shape = NODE_STYLES[node.node_type]
        lines.append(
            f'    "{escape_dot_id(node.id)}" [label="{escape_dot_label(node.title)}", '
            f"fillcolor={color}, style=filled, shape={shape}];"
        )
    lines.append("")
    for edge in graph.edges:
        lines.append(
            f'    "{escape_dot_id(edge.source)}" -> "{escape_dot_id(edge.target)}" {EDGE_STYLES[edge.edge_type]};'
        )
    lines.append("}")
    return "\n".join(lines) + "\n"


def to_gexf(graph: KnowledgeGraph) -> str:
    out = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        '<gexf xmlns="http://www.gexf.net/1.2draft" version="1.2">',
        '    <graph mode="static" defaultedgetype="directed">',
        '        <attributes class="node">',
        '            <attribute id="0" title="node_type" type="string"/>',
        '            <attribute id="1" title="url" type="string"/>',
        '            <attribute id="2" title="domain" type="string"/>',
        '            <attribute id="3" title="folder" type="string"/>',
        "        </attributes>",
        "        <nodes>",
    ]
    for node in graph.nodes:
        out.append(f'            <node id="{escape_xml(node.id)}" label="{escape_xml(node.title)}">')
        out.append("                <attvalues>")
        out.append(f'                    <attvalue for="0" value="{node.node_type.value}"/>')
        for attr_id, value in (("1", node.url), ("2", node.domain), ("3", node.folder)):
            if value is not None:
                out.append(f'                    <attvalue for="{attr_id}" value="{escape_xml(value)}"/>')
        out.append("                </attvalues>")
        out.append("            </node>")
    out.append("        </nodes>")
    out.append("        <edges>")
    for i, edge in enumerate(graph.edges):
        out.append(
            f'            <edge id="{i}" source="{escape_xml(edge.source)}" target="{escape_xml(edge.target)}" '
            f'weight="{edge.weight}" label="{edge.edge_type.value}"/>'
        )
    out.append("        </edges>")
    out.append("    </graph>")
    out.append("</gexf>")
    return "\n".join(out)


def to_js_data(graph: KnowledgeGraph) -> str:
    return f"// Bookmark knowledge graph data\nwindow.graphData = {to_json(graph)};\n"


def _script_safe_json(graph: KnowledgeGraph) -> str:
    # A title containing "</script>" must not end the inline script early.
    return to_json(graph).replace("</", "<\\/")


def to_html(graph: KnowledgeGraph) -> str:
    return HTML_TEMPLATE.replace("__GRAPH_DATA__", _script_safe_json(graph))


def render(graph: KnowledgeGraph, fmt: str) -> str:
    fmt = (fmt or "").lower()
    if fmt == "json":
        return to_json(graph)
    if fmt == "dot":
        return to_dot(graph)
    if fmt == "gexf":
        return to_gexf(graph)
    if fmt == "html":
        return to_html(graph)
    raise ValueError(f"unknown graph format: {fmt!r} (expected one of {', '.join(FORMATS)})")


HTML_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width, initial-scale=1.0">
<title>Bookmark Knowledge Graph</title>
<style>
  * { margin: 0; padding: 0; box-sizing: border-box; }
  body { font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", Roboto, sans-serif;
         overflow: hidden; background: #1a1a2e; color: #e0e0e0; }
  #graph { width: 100vw; height: 100vh; }
  #controls { position: fixed; top: 16px; left: 16px; padding: 12px 16px; border-radius: 8px;
              font-size: 13px; background: rgba(30,30,60,0.9); border: 1px solid #333; }
  #controls label { display: block; cursor: pointer; }
  #tooltip { position: fixed; padding: 8px 12px; border-radius: 6px; font-size: 12px;
             pointer-events: none; display: none; max-width: 320px; background: rgba(0,0,0,0.85); }
  #stats { position: fixed; bottom: 16px; left: 16px; font-size: 11px; opacity: 0.7; }
</style>
</head>
<body>
<div id="controls">
  <label><input type="checkbox" data-type="bookmark" checked> Bookmarks</label>
  <label><input type="checkbox" data-type="domain" checked> Domains</label>
  <label><input type="checkbox" data-type="folder" checked> Folders</label>
  <label><input type="checkbox" data-type="tag" checked> Tags</label>
  <label><input type="checkbox" data-type="category" checked> Categories</label>
</div>
<div id="tooltip"></div>
<div id="stats"></div>
<svg id="graph"></svg>
<script src="https://d3js.org/d3.v7.min.js"></script>
<script>
const graphData = __GRAPH_DATA__;
const colorMap = { bookmark:'#4fc3f7', domain:'#81c784', folder:'#fff176', tag:'#ff8a65', category:'#ce93d8' };
const edgeColorMap = { belongstodomain:'#42a5f5', infolder:'#66bb6a', samedomain:'#78909c',
                       hastag:'#ffa726', incategory:'#ab47bc', similarcontent:'#ef5350' };
const radiusMap = { bookmark:5, domain:10, folder:8, tag:7, category:12 };
const visible = new Set(Object.keys(colorMap));
const width = window.innerWidth, height = window.innerHeight;
const svg = d3.select('#graph').attr('width', width).attr('height', height);
const g = svg.append('g');
svg.call(d3.zoom().scaleExtent([0.1, 8]).on('zoom', (e) => g.attr('transform', e.transform)));
const tooltip = document.getElementById('tooltip');
let simulation;

function render() {
  if (simulation) simulation.stop();
  g.selectAll('*').remove();
  const nodes = graphData.nodes.filter(n => visible.has(n.node_type)).map(n => Object.assign({}, n));
  const ids = new Set(nodes.map(n => n.id));
  const edges = graphData.edges.filter(e => ids.has(e.source) && ids.has(e.target)).map(e => Object.assign({}, e));
  const link = g.append('g').selectAll('line').data(edges).join('line')
    .attr('stroke', d => edgeColorMap[d.edge_type] || '#555')
    .attr('stroke-opacity', 0.4)
    .attr('stroke-width', d => Math.max(0.5, d.weight * 2));
  const node = g.append('g').selectAll('circle').data(nodes).join('circle')
    .attr('r', d => Math.max(radiusMap[d.node_type] || 5, Math.sqrt(d.size) * 3))
    .attr('fill', d => colorMap[d.node_type] || '#999')
    .on('mouseover', (e, d) => {
      tooltip.style.display = 'block';
      tooltip.style.left = (e.clientX + 12) + 'px';
      tooltip.style.top = (e.clientY + 12) + 'px';
      tooltip.textContent = d.title + (d.url ? ' - ' + d.url : '');
    })
    .on('mouseout', () => { tooltip.style.display = 'none'; })
    .on('click', (e, d) => { if (d.url) window.open(d.url, '_blank'); });
  const label = g.append('g').selectAll('text').data(nodes.filter(n => n.node_type !== 'bookmark')).join('text')
    .text(d => d.title.length > 20 ? d.title.slice(0, 20) + '...' : d.title)
    .attr('font-size', 9).attr('dx', 12).attr('dy', 3).attr('fill', '#ccc');
  simulation = d3.forceSimulation(nodes)
    .force('link', d3.forceLink(edges).id(d => d.id).distance(80))
    .force('charge', d3.forceManyBody().strength(-120))
    .force('center', d3.forceCenter(width / 2, height / 2))
    .on('tick', () => {
      link.attr('x1', d => d.source.x).attr('y1', d => d.source.y)
          .attr('x2', d => d.target.x).attr('y2', d => d.target.y);
      node.attr('cx', d => d.x).attr('cy', d => d.y);
      label.attr('x', d => d.x).attr('y', d => d.y);
    });
  document.getElementById('stats').textContent = nodes.length + ' nodes, ' + edges.length + ' edges';
}

document.querySelectorAll('#controls input').forEach(cb => cb.addEventListener('change', () => {
  if (cb.checked) visible.add(cb.dataset.type); else visible.delete(cb.dataset.type);
  render();
}));
render();
</script>
</body>
</html>
"""
