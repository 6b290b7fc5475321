# -*- coding: utf-8 -*-
"""Records read from browser exports and the knowledge-graph shapes built from them."""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Iterator, List, Optional


@dataclass
class Bookmark:
    id: str
    title: str = ""
    url: Optional[str] = None
    folder: Optional[str] = None
    date_added: Optional[datetime] = None
    children: Optional[List["Bookmark"]] = None


@dataclass
class HistoryEntry:
    url: str
    title: str = ""
    visit_count: int = 0
    last_visit: Optional[datetime] = None


class NodeType(Enum):
    BOOKMARK = "bookmark"
    DOMAIN = "domain"
    FOLDER = "folder"
    TAG = "tag"
    CATEGORY = "category"


class EdgeType(Enum):
    BELONGS_TO_DOMAIN = "belongstodomain"
    IN_FOLDER = "infolder"
    SAME_DOMAIN = "samedomain"
    HAS_TAG = "hastag"
    IN_CATEGORY = "incategory"
    SIMILAR_CONTENT = "similarcontent"


@dataclass
class GraphNode:
    id: str
    title: str
    node_type: NodeType
    url: Optional[str] = None
    domain: Optional[str] = None
    folder: Optional[str] = None
    size: int = 1

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "title": self.title,
            "node_type": self.node_type.value,
            "url": self.url,
            "domain": self.domain,
            "folder": self.folder,
            "size": self.size,
        }


@dataclass
class GraphEdge:
    source: str
    target: str
    edge_type: EdgeType
    weight: float = 1.0

    def to_dict(self) -> Dict:
        return {
            "source": self.source,
            "target": self.target,
            "edge_type": self.edge_type.value,
            "weight": self.weight,
        }


@dataclass
class GraphMetadata:
    total_nodes: int
    total_edges: int
    bookmark_count: int
    domain_count: int
    folder_count: int
    generated_at: datetime

    def to_dict(self) -> Dict:
        return {
            "total_nodes": self.total_nodes,
            "total_edges": self.total_edges,
            "bookmark_count": self.bookmark_count,
            "domain_count": self.domain_count,
            "folder_count": self.folder_count,
            "generated_at": format_timestamp(self.generated_at),
        }


@dataclass
class KnowledgeGraph:
    """Nodes are kept in insertion order; callers must not add the same id twice."""

    nodes: List[GraphNode] = field(default_factory=list)
    edges: List[GraphEdge] = field(default_factory=list)
    metadata: Optional[GraphMetadata] = None

    def node_ids(self) -> List[str]:
        return [n.id for n in self.nodes]

    def nodes_of_type(self, node_type: NodeType) -> List[GraphNode]:
        return [n for n in self.nodes if n.node_type is node_type]

    def edges_of_type(self, edge_type: EdgeType) -> List[GraphEdge]:
        return [e for e in self.edges if e.edge_type is edge_type]

    def to_dict(self) -> Dict:
        return {
            "nodes": [n.to_dict() for n in self.nodes],
            "edges": [e.to_dict() for e in self.edges],
            "metadata": self.metadata.to_dict() if self.metadata else None,
        }


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    text = value.isoformat()
    if text.endswith("+00:00"):
        text = text[: -len("+00:00")] + "Z"
    return text


def flatten_bookmarks(bookmarks: List[Bookmark], parent: Optional[str] = None) -> Iterator[Bookmark]:
    """Walk nested bookmark trees and yield the leaves.

    A node with a children list (even an empty one) is treated as a folder: its
    title extends the folder path handed down to its children, and it is not
    yielded itself. Leaves that already carry a folder keep it.
    """
    for bookmark in bookmarks:
        if bookmark.children is not None:
            name = bookmark.title
            path = f"{parent}/{name}" if parent and name else (name or parent)
            yield from flatten_bookmarks(bookmark.children, path)
            continue
        if bookmark.folder is None and parent:
            bookmark = Bookmark(
                id=bookmark.id,
                title=bookmark.title,
                url=bookmark.url,
                folder=parent,
                date_added=bookmark.date_added,
            )
        yield bookmark


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive timestamps as UTC so they compare with aware ones."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
