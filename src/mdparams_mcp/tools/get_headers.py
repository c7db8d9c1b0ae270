"""Tool to list the headers of indexed Markdown files."""

from typing import Optional

from ..parser.markdown import DocumentIndex, ItemKind
from ..storage.index_store import IndexStore, SourceIndex


def _resolve_repo(store: IndexStore, repo: str) -> tuple[Optional[str], Optional[str], Optional[dict]]:
    """Parse repo identifier and return (owner, name, error_dict)."""
    if "/" in repo:
        owner, name = repo.split("/", 1)
    else:
        repos = store.list_repos()
        matching = [r for r in repos if r["repo"].endswith(f"/{repo}")]
        if not matching:
            return None, None, {"error": f"Repository not found: {repo}"}
        owner, name = matching[0]["repo"].split("/", 1)
    return owner, name, None


def _build_meta(index: SourceIndex) -> dict:
    """Build standard _meta envelope from an index."""
    return {
        "index_version": index.index_version,
        "indexed_at": index.indexed_at,
        "commit_hash": index.commit_hash,
    }


def _header_entries(document: DocumentIndex) -> list[dict]:
    entries = []
    for title, items in document.items():
        counts = {kind.value: 0 for kind in ItemKind}
        checked = 0
        for item in items.values():
            counts[item.kind.value] += 1
            if item.is_checkbox and item.checked:
                checked += 1
        entries.append({
            "title": title,
            "item_count": len(items),
            "counts": counts,
            "checked_count": checked,
        })
    return entries


def get_headers(
    repo: str,
    file_path: Optional[str] = None,
    storage_path: Optional[str] = None,
) -> dict:
    """
    List header titles with per-kind item counts.

    Args:
        repo: Repository identifier (owner/name or just name)
        file_path: Only list headers of this file
        storage_path: Custom storage path (defaults to ~/.mdparams-index)

    Returns:
        Dict mapping each file to its headers, in document order
    """
    store = IndexStore(storage_path)
    owner, name, err = _resolve_repo(store, repo)
    if err:
        return err

    index = store.load_index(owner, name)
    if not index:
        return {"error": f"Repository not indexed: {owner}/{name}"}

    if file_path is not None and file_path not in index.documents:
        return {"error": f"File not found in index: {file_path}"}

    files = [file_path] if file_path is not None else index.doc_files
    documents = []
    for path in files:
        document = index.get_document(path)
        if document is None:
            continue
        documents.append({
            "file": path,
            "headers": _header_entries(document),
        })

    return {
        "repo": index.repo,
        "file_count": len(documents),
        "documents": documents,
        "_meta": _build_meta(index),
    }
