"""Process a raw bookmark export into a bookgraph knowledge graph."""

import json
import sys
sys.path.insert(0, '.')

from bookgraph.dedupe import deduplicate
from bookgraph.graph import DetailLevel, GraphBuilder, GraphConfig
from bookgraph.loaders import load_export

def main():
    path = sys.argv[1] if len(sys.argv) > 1 else "bookmarks.yaml"
    out = sys.argv[2] if len(sys.argv) > 2 else "bookmark_graph.json"

    bookmarks, history = load_export(path)
    print(f"Loaded {len(bookmarks)} bookmarks and {len(history)} history entries")

    result = deduplicate(bookmarks)
    print(f"Removed {result.duplicates_removed} duplicates")

    # Detailed graph with tag and similarity edges; aggregates need two members
    config = GraphConfig(
        detail_level=DetailLevel.DETAILED,
        include_tag_edges=True,
        include_similarity_edges=True,
        min_domain_threshold=2,
        min_tag_threshold=2,
        max_total_bookmarks=None,
    )
    graph = GraphBuilder(config).from_both(result.unique_bookmarks, history)

    with open(out, "w", encoding="utf-8") as f:
        json.dump(graph.to_dict(), f, ensure_ascii=False, indent=2)

    meta = graph.metadata
    print(f"\n[OK] Wrote {out}")
    print(f"     {meta.total_nodes} nodes, {meta.total_edges} edges, "
          f"{meta.domain_count} domains, {meta.folder_count} folders")

if __name__ == "__main__":
    main()
