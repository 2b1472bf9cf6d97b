"""Remote library fetching.

Public API:
    RemoteReference: Repository address, revision and source directory of a library.
    GitFetcher: Shallow git clone transport.
    ArchiveFetcher: GitHub archive download transport (requests).
    add_remote_library: Fetch a library and register it.
"""

from .fetcher import (
    ArchiveFetcher,
    BaseFetcher,
    FetchedLibrary,
    FetchError,
    GitFetcher,
    RemoteReference,
    add_remote_library,
)
from .github_url_utils import GitHubURLError, module_name_from_url, transform_github_url

__all__ = [
    "ArchiveFetcher",
    "BaseFetcher",
    "FetchError",
    "FetchedLibrary",
    "GitFetcher",
    "GitHubURLError",
    "RemoteReference",
    "add_remote_library",
    "module_name_from_url",
    "transform_github_url",
]
