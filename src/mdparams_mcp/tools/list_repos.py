"""Tool to list indexed sources."""

from typing import Optional

from ..storage.index_store import IndexStore


def list_repos(storage_path: Optional[str] = None) -> dict:
    """
    List indexed repositories and local sources with their header and item counts.

    Totals are summed over every source so a caller can tell at a glance how
    much checklist content is available before picking a file to query.
    """
    repos = IndexStore(storage_path).list_repos()

    return {
        "count": len(repos),
        "total_files": sum(r["file_count"] for r in repos),
        "total_headers": sum(r["header_count"] for r in repos),
        "total_items": sum(r["item_count"] for r in repos),
        "repos": repos,
    }
