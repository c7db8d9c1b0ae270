"""Index storage and retrieval."""

import json
import logging
import shutil
from dataclasses import dataclass, asdict, field
from datetime import datetime
from pathlib import Path
from typing import Optional

from ..parser.markdown import DocumentIndex, parse_markdown_to_index
from ..security import is_safe_relative_path, validate_path_traversal

logger = logging.getLogger(__name__)

# Increment this when the index schema changes in a backward-incompatible way.
# Old caches with a lower version will be discarded and re-indexed.
CURRENT_INDEX_VERSION = 1


@dataclass
class SourceIndex:
    """Parsed Markdown documents of one source (a repo or a local directory)."""
    repo: str
    owner: str
    name: str
    indexed_at: str
    doc_files: list[str]
    # file path -> {header title -> [item dicts]}
    documents: dict[str, dict[str, list[dict]]]
    index_version: int = CURRENT_INDEX_VERSION
    commit_hash: str = ""
    file_hashes: dict[str, str] = field(default_factory=dict)

    def get_document(self, file_path: str) -> Optional[DocumentIndex]:
        """Rebuild the DocumentIndex of one file, or None if not indexed."""
        data = self.documents.get(file_path)
        if data is None:
            return None
        return DocumentIndex.from_dict(data)

    def header_count(self) -> int:
        return sum(len(headers) for headers in self.documents.values())

    def item_count(self) -> int:
        return sum(
            len(items)
            for headers in self.documents.values()
            for items in headers.values()
        )


class IndexStore:
    """Manages storage and retrieval of source indexes."""

    def __init__(self, base_path: Optional[str] = None):
        if base_path:
            self.base_path = Path(base_path)
        else:
            self.base_path = Path.home() / ".mdparams-index"
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _repo_key(self, owner: str, name: str) -> str:
        return f"{owner}-{name}"

    def _index_path(self, owner: str, name: str) -> Path:
        return self.base_path / f"{self._repo_key(owner, name)}.json"

    def _content_dir(self, owner: str, name: str) -> Path:
        """Directory holding the cached raw Markdown of a source."""
        return self.base_path / self._repo_key(owner, name)

    def _content_path(self, owner: str, name: str, file_path: str) -> Optional[Path]:
        """Cached copy of a file, or None if the path would leave the content directory."""
        if not is_safe_relative_path(file_path):
            return None
        content_dir = self._content_dir(owner, name).resolve()
        target = (content_dir / file_path).resolve()
        if not validate_path_traversal(target, content_dir):
            return None
        return target

    def save_index(
        self,
        owner: str,
        name: str,
        doc_files: list[str],
        documents: dict[str, DocumentIndex],
        raw_files: dict[str, str],
        commit_hash: str = "",
        file_hashes: Optional[dict[str, str]] = None,
    ) -> SourceIndex:
        """
        Save a source index and the raw Markdown it was built from.

        Args:
            owner: Source owner ("local" for local directories)
            name: Source name
            doc_files: Markdown file paths, relative to the source root
            documents: Parsed index for each file
            raw_files: Dict mapping file paths to raw content
            commit_hash: Git commit SHA at time of indexing
            file_hashes: Dict mapping file paths to content hashes

        Returns:
            The saved SourceIndex

        Raises:
            ValueError: if a file path would be written outside the content directory
        """
        content_dir = self._content_dir(owner, name)
        content_dir.mkdir(parents=True, exist_ok=True)

        targets: dict[str, Path] = {}
        for file_path in list(raw_files) + list(documents):
            target = self._content_path(owner, name, file_path)
            if target is None:
                raise ValueError(f"Refusing to store file outside the index directory: {file_path}")
            targets[file_path] = target

        for file_path, content in raw_files.items():
            file_full_path = targets[file_path]
            file_full_path.parent.mkdir(parents=True, exist_ok=True)
            file_full_path.write_text(content, encoding="utf-8", newline='')

        index = SourceIndex(
            repo=f"{owner}/{name}",
            owner=owner,
            name=name,
            indexed_at=datetime.now(tz=None).isoformat(),
            doc_files=doc_files,
            documents={path: doc.to_dict() for path, doc in documents.items()},
            index_version=CURRENT_INDEX_VERSION,
            commit_hash=commit_hash,
            file_hashes=file_hashes or {},
        )

        with open(self._index_path(owner, name), "w", encoding="utf-8") as f:
            json.dump(asdict(index), f, indent=2)

        return index

    def load_index(self, owner: str, name: str) -> Optional[SourceIndex]:
        """Load a source index if it exists. Returns None for outdated indexes."""
        index_path = self._index_path(owner, name)
        if not index_path.exists():
            return None

        with open(index_path, "r", encoding="utf-8") as f:
            data = json.load(f)

        stored_version = data.get("index_version", 0)
        if stored_version < CURRENT_INDEX_VERSION:
            logger.debug("Discarding outdated index %s (version %s)", index_path, stored_version)
            return None

        data.setdefault("commit_hash", "")
        data.setdefault("file_hashes", {})

        return SourceIndex(**data)

    def get_raw_content(self, owner: str, name: str, file_path: str) -> Optional[str]:
        """Read the cached raw Markdown of one file."""
        content_path = self._content_path(owner, name, file_path)
        if content_path is None or not content_path.exists():
            return None
        try:
            return content_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError):
            return None

    def load_document(self, owner: str, name: str, file_path: str) -> Optional[DocumentIndex]:
        """
        Get the parsed index of one indexed file.

        Only files listed in the stored index are served. When the parsed
        document is missing, the cached raw Markdown is re-parsed.
        """
        index = self.load_index(owner, name)
        if index is None or file_path not in index.doc_files:
            return None

        document = index.get_document(file_path)
        if document is not None:
            return document

        content = self.get_raw_content(owner, name, file_path)
        if content is None:
            return None
        return parse_markdown_to_index(content)

    def list_repos(self) -> list[dict]:
        """List all indexed sources."""
        repos = []
        for index_file in self.base_path.glob("*.json"):
            try:
                with open(index_file, "r", encoding="utf-8") as f:
                    data = json.load(f)
                documents = data["documents"]
                repos.append({
                    "repo": data["repo"],
                    "indexed_at": data["indexed_at"],
                    "file_count": len(data["doc_files"]),
                    "header_count": sum(len(headers) for headers in documents.values()),
                    "item_count": sum(
                        len(items)
                        for headers in documents.values()
                        for items in headers.values()
                    ),
                    "index_version": data.get("index_version", 0),
                    "commit_hash": data.get("commit_hash", ""),
                })
            except (json.JSONDecodeError, KeyError, AttributeError):
                logger.debug("Skipping unreadable index file: %s", index_file)
                continue
        repos.sort(key=lambda r: r["repo"])
        return repos

    def delete_index(self, owner: str, name: str) -> bool:
        """Delete a source index and its cached content."""
        index_path = self._index_path(owner, name)
        content_dir = self._content_dir(owner, name)

        deleted = False
        if index_path.exists():
            index_path.unlink()
            deleted = True
        if content_dir.exists():
            shutil.rmtree(content_dir)
            deleted = True

        return deleted
