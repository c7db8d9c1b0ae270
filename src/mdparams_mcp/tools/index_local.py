"""Tool to index Markdown files from a local directory or file."""

import hashlib
import logging
import subprocess
from pathlib import Path
from typing import Optional

import pathspec

from ..parser.markdown import DocumentIndex, parse_markdown_to_index
from ..security import (
    is_markdown_file,
    is_sensitive_filename,
    reject_reason,
    validate_path_traversal,
)
from ..storage.index_store import IndexStore

logger = logging.getLogger(__name__)

# Directories to skip during crawling
SKIP_DIRS = {
    '.git',
    'node_modules',
    '__pycache__',
    '.venv',
    'venv',
    'env',
    'dist',
    'build',
    'target',
    '.idea',
    '.vscode',
    '.pytest_cache',
    '.mypy_cache',
    '.tox',
    'htmlcov',
    'vendor',
}


def is_hidden_path(path: Path) -> bool:
    """Check if any component of the path is hidden (starts with .)."""
    return any(part.startswith('.') for part in path.parts)


def _load_ignore_spec(base_path: Path, extra_patterns: Optional[list[str]]) -> Optional[pathspec.PathSpec]:
    """Combine .gitignore (if any) with extra gitignore-style patterns."""
    lines: list[str] = []
    gitignore_path = base_path / '.gitignore'
    if gitignore_path.exists():
        try:
            lines.extend(gitignore_path.read_text(encoding='utf-8').splitlines())
        except OSError:
            logger.debug("Could not read %s", gitignore_path)
    if extra_patterns:
        lines.extend(extra_patterns)
    if not lines:
        return None
    return pathspec.GitIgnoreSpec.from_lines(lines)


def _compute_file_hash(file_path: Path) -> str:
    """Compute SHA256 hash of a file's content."""
    h = hashlib.sha256()
    try:
        with open(file_path, 'rb') as f:
            for chunk in iter(lambda: f.read(8192), b''):
                h.update(chunk)
    except OSError:
        return ''
    return h.hexdigest()


def _get_local_commit_hash(base_path: Path) -> str:
    """Try to get git HEAD commit hash for a local directory."""
    try:
        result = subprocess.run(
            ['git', 'rev-parse', 'HEAD'],
            cwd=str(base_path),
            capture_output=True,
            text=True,
            timeout=5,
        )
        if result.returncode == 0:
            return result.stdout.strip()
    except (OSError, subprocess.TimeoutExpired):
        pass
    return ''


def discover_local_markdown_files(
    base_path: str,
    max_depth: int = 5,
    include_hidden: bool = False,
    follow_symlinks: bool = False,
    extra_ignore_patterns: Optional[list[str]] = None,
) -> list[str]:
    """
    Discover Markdown files under a local directory.

    Args:
        base_path: Root directory to start crawling from
        max_depth: Maximum directory depth to crawl
        include_hidden: Whether to include hidden directories (starting with .)
        follow_symlinks: Whether to follow symbolic links (default False for safety)
        extra_ignore_patterns: Additional gitignore-style patterns to exclude

    Returns:
        Sorted list of paths relative to base_path, using forward slashes
    """
    base = Path(base_path).resolve()
    if not base.exists():
        raise ValueError(f"Path does not exist: {base_path}")
    if not base.is_dir():
        raise ValueError(f"Path is not a directory: {base_path}")

    ignore_spec = _load_ignore_spec(base, extra_ignore_patterns)
    found: list[str] = []

    def is_ignored(rel_path: str) -> bool:
        return ignore_spec is not None and ignore_spec.match_file(rel_path)

    def crawl(current: Path, depth: int) -> None:
        if depth > max_depth:
            return
        try:
            entries = list(current.iterdir())
        except OSError:
            return

        for entry in entries:
            try:
                resolved = entry.resolve()
                if entry.is_symlink():
                    if not follow_symlinks:
                        logger.debug("Skipping symlink: %s", entry)
                        continue
                    if not validate_path_traversal(resolved, base):
                        logger.warning("Symlink escapes base directory, skipping: %s -> %s", entry, resolved)
                        continue

                rel_path = entry.relative_to(base).as_posix()

                if entry.is_dir():
                    if entry.name in SKIP_DIRS:
                        continue
                    if not include_hidden and is_hidden_path(Path(rel_path)):
                        continue
                    if is_ignored(rel_path + '/'):
                        logger.debug("Skipping gitignored directory: %s", rel_path)
                        continue
                    crawl(entry, depth + 1)
                elif entry.is_file() and is_markdown_file(entry.name):
                    if is_sensitive_filename(rel_path):
                        logger.info("Skipping sensitive file: %s", rel_path)
                        continue
                    if is_ignored(rel_path):
                        logger.debug("Skipping gitignored file: %s", rel_path)
                        continue
                    found.append(rel_path)
            except OSError:
                continue

    crawl(base, 0)
    found.sort()
    return found


def parse_local_repo_name(path: Path) -> str:
    """Use the directory name (or the file stem) as the source name."""
    return path.stem if path.is_file() else path.name


async def index_local(
    path: str,
    storage_path: Optional[str] = None,
    max_depth: int = 5,
    include_hidden: bool = False,
    follow_symlinks: bool = False,
    extra_ignore_patterns: Optional[list[str]] = None,
) -> dict:
    """
    Index the Markdown files of a local directory, or a single Markdown file.

    Args:
        path: Directory to crawl, or a .md/.markdown file
        storage_path: Custom storage path (defaults to ~/.mdparams-index)
        max_depth: Maximum directory depth to crawl
        include_hidden: Whether to include hidden directories
        follow_symlinks: Whether to follow symbolic links (default False)
        extra_ignore_patterns: Additional gitignore-style patterns to exclude

    Returns:
        Dict with indexing statistics
    """
    target = Path(path).resolve()

    if not target.exists():
        return {
            "success": False,
            "error": f"Path does not exist: {path}",
            "path": str(target),
        }

    if target.is_file():
        if not is_markdown_file(target.name):
            return {
                "success": False,
                "error": f"Not a Markdown file: {path}",
                "path": str(target),
            }
        base_path = target.parent
        doc_files = [target.name]
    else:
        base_path = target
        try:
            doc_files = discover_local_markdown_files(
                str(base_path),
                max_depth=max_depth,
                include_hidden=include_hidden,
                follow_symlinks=follow_symlinks,
                extra_ignore_patterns=extra_ignore_patterns,
            )
        except ValueError as e:
            return {"success": False, "error": str(e), "path": str(target)}

    if not doc_files:
        return {
            "success": False,
            "error": "No Markdown files found",
            "path": str(target),
            "searched_depth": max_depth,
        }

    owner = "local"
    repo_name = parse_local_repo_name(target)
    commit_hash = _get_local_commit_hash(base_path)

    documents: dict[str, DocumentIndex] = {}
    raw_files: dict[str, str] = {}
    file_hashes: dict[str, str] = {}
    skipped: list[str] = []

    for file_path in doc_files:
        full_path = base_path / file_path
        try:
            content = full_path.read_text(encoding='utf-8', errors='replace')
        except OSError as e:
            logger.warning("Could not read %s: %s", full_path, e)
            continue

        if reject_reason(file_path, content):
            skipped.append(file_path)
            continue

        raw_files[file_path] = content
        file_hashes[file_path] = _compute_file_hash(full_path)
        documents[file_path] = parse_markdown_to_index(content)

    if not documents:
        return {
            "success": False,
            "error": "No Markdown files could be indexed",
            "path": str(target),
            "skipped_files": skipped,
        }

    indexed_files = [f for f in doc_files if f in documents]
    store = IndexStore(storage_path)
    index = store.save_index(
        owner, repo_name, indexed_files, documents, raw_files,
        commit_hash=commit_hash,
        file_hashes=file_hashes,
    )
    logger.info("Indexed %d Markdown files from %s as %s", len(indexed_files), target, index.repo)

    result = {
        "success": True,
        "repo": index.repo,
        "path": str(target),
        "indexed_at": index.indexed_at,
        "file_count": len(indexed_files),
        "header_count": index.header_count(),
        "item_count": index.item_count(),
        "files": indexed_files,
        "commit_hash": commit_hash,
    }
    if skipped:
        result["skipped_files"] = skipped
    return result
