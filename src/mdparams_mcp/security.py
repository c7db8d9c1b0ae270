"""Screening of Markdown sources before they are parsed and cached."""

import fnmatch
import logging
import re
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

# Markdown extensions picked up when crawling a directory or a repo tree
MARKDOWN_EXTENSIONS = ('.md', '.markdown')

# Names that are never read, whatever their extension
SKIP_FILES = {
    '.env',
    '.env.local',
    '.env.production',
    'credentials.json',
    'secrets.yaml',
    'secrets.yml',
    '.npmrc',
    '.pypirc',
    '.netrc',
}

SENSITIVE_PATTERNS = [
    '*.pem',
    '*.key',
    '*.p12',
    'id_rsa*',
    'id_ed25519*',
]

# Cached documents are written to disk in clear, so refuse ones holding tokens
SECRET_CONTENT_PATTERNS = [
    (re.compile(r'-----BEGIN.*PRIVATE KEY-----'), 'private key'),
    (re.compile(r'AKIA[0-9A-Z]{16}'), 'AWS access key'),
    (re.compile(r'ghp_[a-zA-Z0-9]{36}'), 'GitHub personal access token'),
    (re.compile(r'github_pat_[a-zA-Z0-9_]{22,}'), 'GitHub fine-grained token'),
    (re.compile(r'glpat-[a-zA-Z0-9\-_]{20,}'), 'GitLab personal access token'),
    (re.compile(r'xox[boaprs]-[a-zA-Z0-9\-]+'), 'Slack token'),
]


def is_markdown_file(filename: str) -> bool:
    return Path(filename).suffix.lower() in MARKDOWN_EXTENSIONS


def is_sensitive_filename(filename: str) -> bool:
    """Check a file name against the skip list and sensitive globs."""
    basename = Path(filename).name.lower()
    if basename in SKIP_FILES:
        return True
    return any(fnmatch.fnmatch(basename, pattern) for pattern in SENSITIVE_PATTERNS)


def scan_content_for_secrets(content: str) -> list[str]:
    """Return the kinds of secret found in content (empty when clean)."""
    return [
        description
        for pattern, description in SECRET_CONTENT_PATTERNS
        if pattern.search(content)
    ]


def reject_reason(file_path: str, content: str) -> Optional[str]:
    """
    Decide whether a fetched Markdown file must be left out of the index.

    Returns a short reason, or None if the file may be indexed.
    """
    if is_sensitive_filename(file_path):
        logger.info("Skipping sensitive file: %s", file_path)
        return "sensitive file name"
    detected = scan_content_for_secrets(content)
    if detected:
        logger.warning("Secret detected in %s: %s, skipping file", file_path, ', '.join(detected))
        return "secret detected: " + ', '.join(detected)
    return None


def is_safe_relative_path(file_path: str) -> bool:
    """Reject absolute paths and paths with `..` segments."""
    if not file_path or file_path.startswith(('/', '\\')):
        return False
    parts = file_path.replace('\\', '/').split('/')
    return '..' not in parts and not Path(file_path).is_absolute()


def validate_path_traversal(resolved_path: Path, base_path: Path) -> bool:
    """Check that a resolved path stays inside the base directory."""
    try:
        resolved_path.relative_to(base_path)
        return True
    except ValueError:
        return False
