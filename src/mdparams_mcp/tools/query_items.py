"""Tools to query the list items under a header."""

from typing import Optional

from ..parser.query import ItemQuery, run_query
from ..storage.index_store import IndexStore
from .get_headers import _build_meta, _resolve_repo


def _load_query(
    repo: str,
    file_path: str,
    storage_path: Optional[str],
) -> tuple[Optional[ItemQuery], Optional[dict], Optional[dict]]:
    """Resolve a stored file to (query, _meta, error_dict)."""
    store = IndexStore(storage_path)
    owner, name, err = _resolve_repo(store, repo)
    if err:
        return None, None, err

    index = store.load_index(owner, name)
    if not index:
        return None, None, {"error": f"Repository not indexed: {owner}/{name}"}

    if file_path not in index.doc_files:
        return None, None, {"error": f"File not found in index: {file_path}"}

    document = store.load_document(owner, name, file_path)
    if document is None:
        return None, None, {"error": f"File not found in index: {file_path}"}

    return ItemQuery(document), _build_meta(index), None


def get_items(
    repo: str,
    file_path: str,
    title: str,
    storage_path: Optional[str] = None,
) -> dict:
    """
    Get the full item records under a header.

    Args:
        repo: Repository identifier (owner/name or just name)
        file_path: Path of the Markdown file within the source
        title: Exact header title
        storage_path: Custom storage path (defaults to ~/.mdparams-index)

    Returns:
        Dict with the items (indent, marker, kind, checked, text) in document order
    """
    query, meta, err = _load_query(repo, file_path, storage_path)
    if err:
        return err

    items = query.index.items_of(title)
    return {
        "file": file_path,
        "title": title,
        "found": title in query.index,
        "item_count": len(items),
        "items": [item.to_dict() for item in items],
        "_meta": meta,
    }


def query_items(
    repo: str,
    file_path: str,
    title: str,
    query: str,
    storage_path: Optional[str] = None,
) -> dict:
    """
    Run one query operation (e.g. "checked_items") on a stored file.

    Unknown headers are not an error: list queries return an empty list and
    all_checked/none_checked return True.
    """
    item_query, meta, err = _load_query(repo, file_path, storage_path)
    if err:
        return err

    try:
        result = run_query(item_query, query, title)
    except ValueError as e:
        return {"error": str(e)}

    return {
        "file": file_path,
        "title": title,
        "query": query,
        "result": result,
        "_meta": meta,
    }


def query_markdown(content: str, title: str, query: str) -> dict:
    """Run one query operation on an inline Markdown string."""
    try:
        result = run_query(ItemQuery.from_markdown(content), query, title)
    except ValueError as e:
        return {"error": str(e)}

    return {
        "title": title,
        "query": query,
        "result": result,
    }
