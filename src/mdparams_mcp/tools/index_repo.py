"""Tool to index Markdown files of a GitHub repository."""

import hashlib
import logging
import os
import re
from typing import Optional

import httpx

from ..parser.markdown import DocumentIndex, parse_markdown_to_index
from ..security import (
    is_markdown_file,
    is_safe_relative_path,
    is_sensitive_filename,
    reject_reason,
)
from ..storage.index_store import IndexStore

logger = logging.getLogger(__name__)

GITHUB_API = "https://api.github.com"
USER_AGENT = "mdparams-mcp"


def is_local_only() -> bool:
    return os.environ.get('MDPARAMS_LOCAL_ONLY', '').lower() in ('true', '1', 'yes')


def parse_github_url(url: str) -> tuple[str, str]:
    """Extract owner and repo name from GitHub URL."""
    patterns = [
        r"github\.com/([^/]+)/([^/]+)",  # https://github.com/owner/repo
        r"^([^/]+)/([^/]+)$",  # owner/repo
    ]

    for pattern in patterns:
        match = re.search(pattern, url.strip().rstrip('/'))
        if match:
            owner = match.group(1)
            repo = match.group(2)
            if repo.endswith('.git'):
                repo = repo[:-len('.git')]
            return owner, repo

    raise ValueError(f"Could not parse GitHub URL: {url}")


def _headers(accept: str, token: Optional[str]) -> dict[str, str]:
    headers = {"Accept": accept, "User-Agent": USER_AGENT}
    if token:
        headers["Authorization"] = f"token {token}"
    return headers


async def fetch_file_content(
    client: httpx.AsyncClient,
    owner: str,
    repo: str,
    path: str,
    token: Optional[str] = None,
) -> str:
    """Fetch raw content of a file from GitHub."""
    url = f"{GITHUB_API}/repos/{owner}/{repo}/contents/{path}"
    response = await client.get(url, headers=_headers("application/vnd.github.v3.raw", token))
    response.raise_for_status()
    return response.text


async def fetch_commit_sha(
    client: httpx.AsyncClient,
    owner: str,
    repo: str,
    token: Optional[str] = None,
) -> str:
    """Fetch the HEAD commit SHA; empty string if it cannot be determined."""
    url = f"{GITHUB_API}/repos/{owner}/{repo}/commits/HEAD"
    try:
        response = await client.get(url, headers=_headers("application/vnd.github.v3+json", token))
    except httpx.HTTPError as e:
        logger.debug("Could not fetch HEAD commit for %s/%s: %s", owner, repo, e)
        return ""
    if response.status_code != 200:
        return ""
    return response.json().get("sha", "")


async def discover_markdown_files(
    client: httpx.AsyncClient,
    owner: str,
    repo: str,
    token: Optional[str] = None,
) -> tuple[list[str], dict[str, str]]:
    """
    Discover Markdown files in the repository using the Git Trees API.

    Returns:
        Tuple of (file paths, dict mapping path to git blob SHA)
    """
    url = f"{GITHUB_API}/repos/{owner}/{repo}/git/trees/HEAD?recursive=1"
    response = await client.get(url, headers=_headers("application/vnd.github.v3+json", token))
    if response.status_code == 404:
        return [], {}
    response.raise_for_status()
    data = response.json()

    doc_files: list[str] = []
    blob_shas: dict[str, str] = {}
    for entry in data.get("tree", []):
        if entry.get("type") != "blob" or not is_markdown_file(entry["path"]):
            continue
        path = entry["path"]
        if not is_safe_relative_path(path):
            logger.warning("Skipping unsafe tree path: %s", path)
            continue
        if is_sensitive_filename(path):
            logger.info("Skipping sensitive file: %s", path)
            continue
        doc_files.append(path)
        blob_shas[path] = entry.get("sha", "")

    doc_files.sort()
    return doc_files, blob_shas


async def index_repo(
    url: str,
    file_path: Optional[str] = None,
    github_token: Optional[str] = None,
    storage_path: Optional[str] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> dict:
    """
    Index the Markdown files of a GitHub repository.

    Args:
        url: GitHub repository URL or owner/repo string
        file_path: Index only this file (e.g. "CHECKLIST.md") instead of the whole tree
        github_token: GitHub personal access token (for private repos)
        storage_path: Custom storage path (defaults to ~/.mdparams-index)
        transport: Optional httpx transport, used to stub the GitHub API

    Returns:
        Dict with indexing statistics
    """
    if is_local_only():
        return {
            "success": False,
            "error": "Remote indexing disabled in local-only mode. Set MDPARAMS_LOCAL_ONLY=false or unset to enable.",
        }

    owner, repo = parse_github_url(url)
    token = github_token or os.environ.get("GITHUB_TOKEN")

    documents: dict[str, DocumentIndex] = {}
    raw_files: dict[str, str] = {}
    file_hashes: dict[str, str] = {}
    skipped: list[str] = []

    if file_path:
        file_path = file_path.lstrip('/')
        if not is_safe_relative_path(file_path):
            return {"success": False, "error": f"Invalid file path: {file_path}"}
        if not is_markdown_file(file_path):
            return {"success": False, "error": f"Not a Markdown file: {file_path}"}
        if is_sensitive_filename(file_path):
            return {"success": False, "error": f"Refusing to index sensitive file: {file_path}"}

    async with httpx.AsyncClient(transport=transport, timeout=30.0) as client:
        if file_path:
            doc_files, blob_shas = [file_path], {}
        else:
            doc_files, blob_shas = await discover_markdown_files(client, owner, repo, token)

        if not doc_files:
            return {
                "success": False,
                "error": "No Markdown files found",
                "repo": f"{owner}/{repo}",
            }

        commit_hash = await fetch_commit_sha(client, owner, repo, token)

        for path in doc_files:
            try:
                content = await fetch_file_content(client, owner, repo, path, token)
            except httpx.HTTPError as e:
                logger.warning("Could not fetch %s from %s/%s: %s", path, owner, repo, e)
                skipped.append(path)
                continue

            if reject_reason(path, content):
                skipped.append(path)
                continue

            raw_files[path] = content
            file_hashes[path] = blob_shas.get(path) or hashlib.sha256(content.encode('utf-8')).hexdigest()
            documents[path] = parse_markdown_to_index(content)

    if not documents:
        return {
            "success": False,
            "error": "No Markdown files could be indexed",
            "repo": f"{owner}/{repo}",
            "skipped_files": skipped,
        }

    indexed_files = [f for f in doc_files if f in documents]
    store = IndexStore(storage_path)
    index = store.save_index(
        owner, repo, indexed_files, documents, raw_files,
        commit_hash=commit_hash,
        file_hashes=file_hashes,
    )
    logger.info("Indexed %d Markdown files from %s", len(indexed_files), index.repo)

    result = {
        "success": True,
        "repo": index.repo,
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
