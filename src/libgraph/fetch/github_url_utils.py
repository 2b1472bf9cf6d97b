"""GitHub URL helpers for remote library references.

Derives library names from repository URLs and turns repository URLs plus
an optional revision into archive download URLs, so a library can be
fetched without a git executable.
"""

import re
from typing import Optional
from urllib.parse import urlparse


class GitHubURLError(Exception):
    """Raised when a GitHub URL cannot be interpreted."""

    pass


def module_name_from_url(url: str) -> str:
    """Derive a library name from a repository URL.

    Examples:
        >>> module_name_from_url("https://github.com/owner/Hello.git")
        'Hello'
        >>> module_name_from_url("https://github.com/owner/Hello/")
        'Hello'
        >>> module_name_from_url("git@github.com:owner/Hello.git")
        'Hello'

    Raises:
        GitHubURLError: If no name can be derived.
    """
    trimmed = url.strip().rstrip("/")
    if trimmed.endswith(".git"):
        trimmed = trimmed[:-4]
    name = re.split(r"[/:]", trimmed)[-1] if trimmed else ""
    if not name or not re.match(r"^[\w.-]+$", name):
        raise GitHubURLError(f"Cannot derive a library name from URL: {url}")
    return name


def parse_github_repo(url: str) -> tuple[str, str]:
    """Return (owner, repo) for an https GitHub URL.

    Raises:
        GitHubURLError: If the URL is not a GitHub repository URL.
    """
    url = url.strip().rstrip("/")
    if url.endswith(".git"):
        url = url[:-4]

    parsed = urlparse(url)
    if parsed.netloc != "github.com":
        raise GitHubURLError(f"Not a GitHub URL: {url}")

    path_parts = [p for p in parsed.path.split("/") if p]
    if len(path_parts) < 2:
        raise GitHubURLError(f"Invalid GitHub URL format: {url}")
    return path_parts[0], path_parts[1]


def transform_github_url(url: str, ref: Optional[str] = None, is_tag: bool = False, prefer_zip: bool = True) -> str:
    """Build the archive download URL for a repository revision.

    Args:
        url: Repository URL (https://github.com/owner/repo[.git])
        ref: Branch, tag or commit; defaults to "main"
        is_tag: Treat ref as a tag (refs/tags) instead of a branch
        prefer_zip: Use .zip instead of .tar.gz

    Returns:
        Archive download URL

    Raises:
        GitHubURLError: If URL cannot be transformed

    Examples:
        >>> transform_github_url("https://github.com/owner/repo")
        'https://github.com/owner/repo/archive/refs/heads/main.zip'

        >>> transform_github_url("https://github.com/owner/repo.git", ref="v1.0.0", is_tag=True)
        'https://github.com/owner/repo/archive/refs/tags/v1.0.0.zip'

        >>> transform_github_url("https://github.com/owner/repo", ref="0123456789abcdef0123456789abcdef01234567")
        'https://github.com/owner/repo/archive/0123456789abcdef0123456789abcdef01234567.zip'
    """
    owner, repo = parse_github_repo(url)
    ext = "zip" if prefer_zip else "tar.gz"
    ref = ref or "main"

    if re.fullmatch(r"[0-9a-f]{40}", ref):
        return f"https://github.com/{owner}/{repo}/archive/{ref}.{ext}"
    kind = "tags" if is_tag else "heads"
    return f"https://github.com/{owner}/{repo}/archive/refs/{kind}/{ref}.{ext}"
