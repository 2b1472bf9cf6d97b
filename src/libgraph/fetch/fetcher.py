"""Fetch remote libraries into a local source tree.

Two transports are provided:
- GitFetcher: shallow git clone of a tag or branch
- ArchiveFetcher: GitHub archive download over HTTP (no git required)

Both reuse an existing checkout, return the library's source files, and
raise FetchError on failure. Failures are surfaced to the caller that
asked for the library; nothing here is swallowed.
"""

import logging
import shutil
import time
import zipfile
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

import requests

from ..registry.models import ArtifactLayout, LibraryUnit
from ..registry.registry import Registry
from ..subprocess_utils import safe_run
from .github_url_utils import GitHubURLError, module_name_from_url, transform_github_url

logger = logging.getLogger(__name__)

DEFAULT_REVISION = "main"
DEFAULT_SOURCE_PATTERN = "**/*.swift"

_MAX_DOWNLOAD_RETRIES = 3
_RETRY_BACKOFF_BASE = 1.0  # seconds; delays are 1s, 2s


class FetchError(Exception):
    """Raised when a remote library cannot be fetched."""

    pass


@dataclass(frozen=True)
class RemoteReference:
    """A library living in a remote repository.

    Attributes:
        url: Repository address
        name: Library name (derived from the URL when omitted)
        tag: Tag to check out
        branch: Branch to check out (used when no tag is given)
        source_dir: Directory inside the repository holding the sources
        dependencies: Libraries the remote library imports
    """

    url: str
    name: Optional[str] = None
    tag: Optional[str] = None
    branch: Optional[str] = None
    source_dir: str = "lib"
    dependencies: tuple[str, ...] = ()

    @property
    def module_name(self) -> str:
        return self.name or module_name_from_url(self.url)

    @property
    def revision(self) -> str:
        return self.tag or self.branch or DEFAULT_REVISION


@dataclass(frozen=True)
class FetchedLibrary:
    """Local checkout of a remote library.

    Attributes:
        name: Library name
        source_root: Canonical checkout directory
        sources: Source files found under the reference's source_dir
    """

    name: str
    source_root: Path
    sources: tuple[Path, ...]


class BaseFetcher(ABC):
    """Common checkout bookkeeping for the fetch transports.

    Args:
        cache_root: Directory under which checkouts are kept
        source_pattern: Glob matching source files below source_dir
    """

    def __init__(self, cache_root: Path, source_pattern: str = DEFAULT_SOURCE_PATTERN) -> None:
        self.cache_root = Path(cache_root)
        self.source_pattern = source_pattern

    def checkout_dir(self, ref: RemoteReference) -> Path:
        return self.cache_root / "external_libs" / ref.module_name

    def fetch(self, ref: RemoteReference) -> FetchedLibrary:
        """Make the library available locally and list its sources.

        Raises:
            FetchError: If the transport fails or no sources are found.
        """
        try:
            dest = self.checkout_dir(ref)
        except GitHubURLError as e:
            raise FetchError(str(e)) from e
        if dest.exists():
            logger.info("Library %s already exists at %s", ref.module_name, dest)
        else:
            dest.parent.mkdir(parents=True, exist_ok=True)
            logger.info("Fetching library %s from %s (%s)", ref.module_name, ref.url, ref.revision)
            self._download(ref, dest)

        source_dir = dest / ref.source_dir
        sources = tuple(sorted(p for p in source_dir.glob(self.source_pattern) if p.is_file()))
        if not sources:
            raise FetchError(f"No sources found in {source_dir}")

        return FetchedLibrary(name=ref.module_name, source_root=dest.resolve(), sources=sources)

    @abstractmethod
    def _download(self, ref: RemoteReference, dest: Path) -> None:
        """Populate dest with the repository contents at ref.revision."""


class GitFetcher(BaseFetcher):
    """Shallow-clones a single tag or branch with git."""

    def __init__(self, cache_root: Path, git_executable: str = "git", source_pattern: str = DEFAULT_SOURCE_PATTERN) -> None:
        super().__init__(cache_root, source_pattern)
        self.git_executable = git_executable

    def clone_command(self, ref: RemoteReference, dest: Path) -> list[str]:
        return [self.git_executable, "clone", "--depth", "1", "--branch", ref.revision, ref.url, str(dest)]

    def _download(self, ref: RemoteReference, dest: Path) -> None:
        cmd = self.clone_command(ref, dest)
        try:
            result = safe_run(cmd, capture_output=True, text=True)
        except FileNotFoundError as e:
            raise FetchError(f"git executable not found: {self.git_executable}") from e

        if result.returncode != 0:
            shutil.rmtree(dest, ignore_errors=True)
            detail = (result.stderr or "").strip()
            raise FetchError(f"Failed to fetch library {ref.module_name} from {ref.url}: {detail or f'exit code {result.returncode}'}")


class ArchiveFetcher(BaseFetcher):
    """Downloads and unpacks a GitHub archive of the requested revision."""

    def __init__(self, cache_root: Path, timeout: float = 30.0, source_pattern: str = DEFAULT_SOURCE_PATTERN) -> None:
        super().__init__(cache_root, source_pattern)
        self.timeout = timeout

    def archive_url(self, ref: RemoteReference) -> str:
        try:
            return transform_github_url(ref.url, ref=ref.revision, is_tag=ref.tag is not None)
        except GitHubURLError as e:
            raise FetchError(str(e)) from e

    def _download(self, ref: RemoteReference, dest: Path) -> None:
        url = self.archive_url(ref)
        archive_path = dest.parent / f"{ref.module_name}.zip"
        temp_file = Path(str(archive_path) + ".download")

        try:
            self._download_with_retries(url, temp_file)
            temp_file.replace(archive_path)
            _extract_archive(archive_path, dest)
        except (requests.RequestException, OSError, zipfile.BadZipFile) as e:
            shutil.rmtree(dest, ignore_errors=True)
            raise FetchError(f"Failed to fetch library {ref.module_name} from {url}: {e}") from e
        finally:
            _cleanup_file(temp_file)
            _cleanup_file(archive_path)

    def _download_with_retries(self, url: str, temp_file: Path) -> None:
        for attempt in range(_MAX_DOWNLOAD_RETRIES):
            if attempt > 0:
                time.sleep(_RETRY_BACKOFF_BASE * (2 ** (attempt - 1)))
            try:
                self._download_attempt(url, temp_file)
                return
            except requests.HTTPError:
                # 404 and friends will not go away on retry
                raise
            except (requests.ConnectionError, requests.Timeout) as e:
                logger.warning("Download attempt %d/%d failed for %s: %s", attempt + 1, _MAX_DOWNLOAD_RETRIES, url, e)
                _cleanup_file(temp_file)
                if attempt == _MAX_DOWNLOAD_RETRIES - 1:
                    raise

    def _download_attempt(self, url: str, temp_file: Path) -> None:
        response = requests.get(url, stream=True, timeout=self.timeout)
        response.raise_for_status()
        with open(temp_file, "wb") as f:
            for chunk in response.iter_content(chunk_size=8192):
                if chunk:
                    f.write(chunk)


def _extract_archive(archive_path: Path, dest: Path) -> None:
    """Extract a zip archive, unwrapping a single top-level directory."""
    staging = dest.parent / f"{dest.name}.extracting"
    shutil.rmtree(staging, ignore_errors=True)
    with zipfile.ZipFile(archive_path) as archive:
        archive.extractall(staging)

    entries = list(staging.iterdir())
    content = entries[0] if len(entries) == 1 and entries[0].is_dir() else staging
    shutil.move(str(content), str(dest))
    shutil.rmtree(staging, ignore_errors=True)


def _cleanup_file(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.debug("Could not remove %s: %s", path, e)


def add_remote_library(
    registry: Registry,
    fetcher: BaseFetcher,
    ref: RemoteReference,
    layout: ArtifactLayout,
    dependencies: Optional[Sequence[str]] = None,
) -> LibraryUnit:
    """Fetch a remote library and register it.

    Args:
        registry: Registry to register the library in
        fetcher: Transport used to obtain the sources
        ref: Remote reference to fetch
        layout: Artifact layout used to plan the library's outputs
        dependencies: Overrides ref.dependencies when given

    Returns:
        The registered LibraryUnit.

    Raises:
        FetchError: If fetching fails.
        DuplicateRegistrationError: If the name is taken by another source root.
    """
    fetched = fetcher.fetch(ref)
    deps = ref.dependencies if dependencies is None else tuple(dependencies)
    return registry.register(fetched.name, fetched.source_root, deps, artifacts=layout.for_unit(fetched.name))


__all__ = [
    "ArchiveFetcher",
    "BaseFetcher",
    "FetchError",
    "FetchedLibrary",
    "GitFetcher",
    "RemoteReference",
    "add_remote_library",
]
