# -*- coding: utf-8 -*-
"""Deduplicate browser bookmarks and turn them into a knowledge graph."""
from .analyzer import categorize, extract_domain, extract_tags, jaccard_similarity
from .dedupe import (
    DeduplicationConfig,
    DeduplicationResult,
    MergeStrategy,
    PotentialDuplicate,
    deduplicate,
    find_potential_duplicates,
)
from .graph import DetailLevel, GraphBuilder, GraphConfig, build_graph
from .models import (
    Bookmark,
    EdgeType,
    GraphEdge,
    GraphMetadata,
    GraphNode,
    HistoryEntry,
    KnowledgeGraph,
    NodeType,
)
from .urls import NormalizationPolicy, UrlError, canonicalize

__version__ = "0.1.0"
