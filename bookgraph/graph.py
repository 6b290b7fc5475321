# -*- coding: utf-8 -*-
"""Build a knowledge graph from bookmarks and browsing history.

The builder works in three stages. The filter stage applies the date floor and
the detail-level caps. The ingest stage records, for every surviving item, its
domain, folder, tags and category, and creates one node per item unless only
aggregates were asked for. The finalize stage turns the recorded counts into
Domain/Folder/Tag/Category nodes (thresholds are applied here, never during
ingest) and synthesizes the edge classes that are switched on.

A builder accumulates state, so use a fresh one per graph.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional, Set, Tuple

from . import analyzer
from .models import (
    Bookmark,
    EdgeType,
    GraphEdge,
    GraphMetadata,
    GraphNode,
    HistoryEntry,
    KnowledgeGraph,
    NodeType,
    as_utc,
)

SAME_DOMAIN_WEIGHT = 0.5
HAS_TAG_WEIGHT = 0.8
IN_CATEGORY_WEIGHT = 0.7
UNKNOWN_DOMAIN = "other"


class DetailLevel(Enum):
    OVERVIEW = "overview"
    STANDARD = "standard"
    DETAILED = "detailed"


@dataclass
class GraphConfig:
    include_domain_edges: bool = True
    include_folder_edges: bool = True
    include_same_domain_edges: bool = False
    include_tag_edges: bool = False
    include_category_edges: bool = True
    include_similarity_edges: bool = False
    min_domain_threshold: int = 5
    min_tag_threshold: int = 3
    similarity_threshold: float = 0.3
    detail_level: DetailLevel = DetailLevel.STANDARD
    max_bookmarks_per_domain: Optional[int] = 10
    max_total_bookmarks: Optional[int] = 5000
    min_date: Optional[datetime] = None
    domain_only: bool = False


@dataclass
class IngestItem:
    id: str
    title: str
    url: Optional[str] = None
    folder: Optional[str] = None
    size: int = 1
    date: Optional[datetime] = None


def bookmark_items(bookmarks: Iterable[Bookmark]) -> List[IngestItem]:
    return [
        IngestItem(id=b.id, title=b.title, url=b.url, folder=b.folder, size=1, date=b.date_added)
        for b in bookmarks
    ]


def history_items(history: Iterable[HistoryEntry]) -> List[IngestItem]:
    return [
        IngestItem(
            id=f"hist_{i}",
            title=e.title,
            url=e.url,
            size=max(0, int(e.visit_count or 0)),
            date=e.last_visit,
        )
        for i, e in enumerate(history)
    ]


def unique_items(items: Iterable[IngestItem]) -> List[IngestItem]:
    """Keep the first item for every id; node ids must not repeat within a graph."""
    seen: Set[str] = set()
    kept: List[IngestItem] = []
    for item in items:
        if item.id in seen:
            continue
        seen.add(item.id)
        kept.append(item)
    return kept


def domain_node_id(domain: str) -> str:
    return f"domain_{domain}"


def folder_node_id(folder: str) -> str:
    # "_" only ever encodes "/".
    return "folder_" + folder.replace("%", "%25").replace("_", "%5F").replace("/", "_")


def tag_node_id(tag: str) -> str:
    return f"tag_{tag}"


def category_node_id(category: str) -> str:
    return f"cat_{category}"


class GraphBuilder:
    def __init__(self, config: Optional[GraphConfig] = None) -> None:
        self.config = config or GraphConfig()
        self.domain_counts: Dict[str, int] = {}
        self.folder_counts: Dict[str, int] = {}
        self.tag_counts: Dict[str, int] = {}
        self.category_counts: Dict[str, int] = {}
        self.domain_members: Dict[str, List[str]] = {}
        self.folder_members: Dict[str, List[str]] = {}
        self.tag_members: Dict[str, List[str]] = {}
        self.category_members: Dict[str, List[str]] = {}
        self.item_tags: Dict[str, Set[str]] = {}

    # --- Entry points ---

    def from_bookmarks(self, bookmarks: List[Bookmark]) -> KnowledgeGraph:
        return self._build(bookmark_items(bookmarks))

    def from_history(self, history: List[HistoryEntry]) -> KnowledgeGraph:
        return self._build(history_items(history))

    def from_both(self, bookmarks: List[Bookmark], history: List[HistoryEntry]) -> KnowledgeGraph:
        return self._build(bookmark_items(bookmarks) + history_items(history))

    def _build(self, items: List[IngestItem]) -> KnowledgeGraph:
        survivors = self.filter_items(unique_items(items))
        create_nodes = not self.config.domain_only and self.config.detail_level is not DetailLevel.OVERVIEW
        nodes = self.ingest(survivors, create_nodes)
        return self.finalize(nodes)

    # --- Filter stage ---

    def _is_recent(self, item: IngestItem) -> bool:
        if self.config.min_date is None:
            return True
        if item.date is None:
            return False
        return as_utc(item.date) >= as_utc(self.config.min_date)

    def filter_items(self, items: List[IngestItem]) -> List[IngestItem]:
        dated = [item for item in items if self._is_recent(item)]
        level = self.config.detail_level
        max_total = self.config.max_total_bookmarks

        if level is DetailLevel.OVERVIEW:
            # Items still feed the aggregates; they never become nodes.
            return dated
        if level is DetailLevel.DETAILED:
            return dated if max_total is None else dated[:max_total]

        max_per_domain = self.config.max_bookmarks_per_domain
        per_domain: Dict[str, int] = {}
        kept: List[IngestItem] = []
        for item in dated:
            if max_total is not None and len(kept) >= max_total:
                break
            domain = analyzer.extract_domain(item.url) or UNKNOWN_DOMAIN
            count = per_domain.get(domain, 0)
            if max_per_domain is not None and count >= max_per_domain:
                continue
            kept.append(item)
            per_domain[domain] = count + 1
        return kept

    # --- Ingest stage ---

    @staticmethod
    def _record(counts: Dict[str, int], members: Dict[str, List[str]], key: str, item_id: str) -> None:
        counts[key] = counts.get(key, 0) + 1
        members.setdefault(key, []).append(item_id)

    def ingest(self, items: List[IngestItem], create_nodes: bool) -> List[GraphNode]:
        nodes: List[GraphNode] = []
        for item in items:
            domain = analyzer.extract_domain(item.url)
            if domain:
                self._record(self.domain_counts, self.domain_members, domain, item.id)
            if item.folder:
                self._record(self.folder_counts, self.folder_members, item.folder, item.id)

            tags = analyzer.extract_tags(item.title, item.url)
            for tag in sorted(tags):
                self._record(self.tag_counts, self.tag_members, tag, item.id)
            self.item_tags[item.id] = tags

            category = analyzer.categorize(item.title, item.url, domain)
            self._record(self.category_counts, self.category_members, category, item.id)

            if create_nodes:
                nodes.append(
                    GraphNode(
                        id=item.id,
                        title=item.title,
                        node_type=NodeType.BOOKMARK,
                        url=item.url,
                        domain=domain,
                        folder=item.folder,
                        size=item.size,
                    )
                )
        return nodes

    # --- Finalize stage ---

    def finalize(self, nodes: List[GraphNode]) -> KnowledgeGraph:
        nodes = list(nodes)
        nodes.extend(self.domain_nodes())
        nodes.extend(self.folder_nodes())
        nodes.extend(self.tag_nodes())
        nodes.extend(self.category_nodes())

        present = {n.id for n in nodes}
        edges: List[GraphEdge] = []
        if self.config.include_domain_edges:
            edges.extend(self.domain_edges(present))
        if self.config.include_folder_edges:
            edges.extend(self.folder_edges(present))
        if self.config.include_same_domain_edges:
            edges.extend(self.same_domain_edges(present))
        if self.config.include_tag_edges:
            edges.extend(self.tag_edges(present))
        if self.config.include_category_edges:
            edges.extend(self.category_edges(present))
        # Full pairwise pass; keep it last.
        if self.config.include_similarity_edges:
            edges.extend(self.similarity_edges(present))

        metadata = GraphMetadata(
            total_nodes=len(nodes),
            total_edges=len(edges),
            bookmark_count=sum(1 for n in nodes if n.node_type is NodeType.BOOKMARK),
            domain_count=sum(1 for n in nodes if n.node_type is NodeType.DOMAIN),
            folder_count=sum(1 for n in nodes if n.node_type is NodeType.FOLDER),
            generated_at=datetime.now(timezone.utc),
        )
        return KnowledgeGraph(nodes=nodes, edges=edges, metadata=metadata)

    def _domain_kept(self, domain: str) -> bool:
        return self.domain_counts.get(domain, 0) >= self.config.min_domain_threshold

    def _tag_kept(self, tag: str) -> bool:
        return self.tag_counts.get(tag, 0) >= self.config.min_tag_threshold

    def domain_nodes(self) -> List[GraphNode]:
        return [
            GraphNode(
                id=domain_node_id(domain),
                title=domain,
                node_type=NodeType.DOMAIN,
                domain=domain,
                size=count,
            )
            for domain, count in self.domain_counts.items()
            if self._domain_kept(domain)
        ]

    def folder_nodes(self) -> List[GraphNode]:
        return [
            GraphNode(
                id=folder_node_id(folder),
                title=folder,
                node_type=NodeType.FOLDER,
                folder=folder,
                size=count,
            )
            for folder, count in self.folder_counts.items()
        ]

    def tag_nodes(self) -> List[GraphNode]:
        return [
            GraphNode(id=tag_node_id(tag), title=f"#{tag}", node_type=NodeType.TAG, size=count)
            for tag, count in self.tag_counts.items()
            if self._tag_kept(tag)
        ]

    def category_nodes(self) -> List[GraphNode]:
        return [
            GraphNode(id=category_node_id(category), title=category, node_type=NodeType.CATEGORY, size=count)
            for category, count in self.category_counts.items()
        ]

    @staticmethod
    def _membership_edges(
        members: Dict[str, List[str]],
        target_id: Callable[[str], str],
        edge_type: EdgeType,
        weight: float,
        present: Set[str],
        keep: Optional[Callable[[str], bool]] = None,
    ) -> List[GraphEdge]:
        edges: List[GraphEdge] = []
        for key, item_ids in members.items():
            if keep is not None and not keep(key):
                continue
            target = target_id(key)
            if target not in present:
                continue
            for item_id in item_ids:
                if item_id in present:
                    edges.append(GraphEdge(source=item_id, target=target, edge_type=edge_type, weight=weight))
        return edges

    def domain_edges(self, present: Set[str]) -> List[GraphEdge]:
        return self._membership_edges(
            self.domain_members, domain_node_id, EdgeType.BELONGS_TO_DOMAIN, 1.0, present, self._domain_kept
        )

    def folder_edges(self, present: Set[str]) -> List[GraphEdge]:
        return self._membership_edges(self.folder_members, folder_node_id, EdgeType.IN_FOLDER, 1.0, present)

    def tag_edges(self, present: Set[str]) -> List[GraphEdge]:
        return self._membership_edges(
            self.tag_members, tag_node_id, EdgeType.HAS_TAG, HAS_TAG_WEIGHT, present, self._tag_kept
        )

    def category_edges(self, present: Set[str]) -> List[GraphEdge]:
        return self._membership_edges(
            self.category_members, category_node_id, EdgeType.IN_CATEGORY, IN_CATEGORY_WEIGHT, present
        )

    def same_domain_edges(self, present: Set[str]) -> List[GraphEdge]:
        edges: List[GraphEdge] = []
        seen: Set[Tuple[str, str]] = set()
        for item_ids in self.domain_members.values():
            ids = [i for i in dict.fromkeys(item_ids) if i in present]
            for i in range(len(ids)):
                for j in range(i + 1, len(ids)):
                    pair = (ids[i], ids[j]) if ids[i] < ids[j] else (ids[j], ids[i])
                    if pair in seen:
                        continue
                    seen.add(pair)
                    edges.append(
                        GraphEdge(source=ids[i], target=ids[j], edge_type=EdgeType.SAME_DOMAIN, weight=SAME_DOMAIN_WEIGHT)
                    )
        return edges

    def similarity_edges(self, present: Set[str]) -> List[GraphEdge]:
        edges: List[GraphEdge] = []
        ids = [i for i in self.item_tags if i in present]
        threshold = self.config.similarity_threshold
        for i in range(len(ids)):
            tags_a = self.item_tags[ids[i]]
            for j in range(i + 1, len(ids)):
                score = analyzer.jaccard_similarity(tags_a, self.item_tags[ids[j]])
                if score >= threshold:
                    edges.append(
                        GraphEdge(source=ids[i], target=ids[j], edge_type=EdgeType.SIMILAR_CONTENT, weight=score)
                    )
        return edges


def build_graph(
    bookmarks: Optional[List[Bookmark]] = None,
    history: Optional[List[HistoryEntry]] = None,
    config: Optional[GraphConfig] = None,
) -> KnowledgeGraph:
    """One-shot helper that builds a graph with a fresh :class:`GraphBuilder`."""
    builder = GraphBuilder(config)
    if bookmarks is not None and history is not None:
        return builder.from_both(bookmarks, history)
    if history is not None:
        return builder.from_history(history)
    return builder.from_bookmarks(bookmarks or [])
