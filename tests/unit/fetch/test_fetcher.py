"""Tests for remote library fetching.

git and HTTP are mocked; the tests check the commands issued, the
checkout layout and how failures surface.
"""

import io
import subprocess
import zipfile
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
import requests

from libgraph.fetch import ArchiveFetcher, BaseFetcher, FetchError, GitFetcher, RemoteReference, add_remote_library
from libgraph.registry import ArtifactLayout, Registry


def _fake_clone(files):
    """Return a safe_run replacement that writes files into the clone destination."""

    def _run(cmd, **kwargs):
        dest = Path(cmd[-1])
        for rel, content in files.items():
            path = dest / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content)
        return subprocess.CompletedProcess(cmd, 0, stdout="", stderr="")

    return _run


def _zip_bytes(files):
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        for rel, content in files.items():
            archive.writestr(rel, content)
    return buffer.getvalue()


def _response(content=b"", status_error=None):
    response = MagicMock()
    response.iter_content.return_value = [content]
    if status_error is not None:
        response.raise_for_status.side_effect = status_error
    return response


class TestRemoteReference:
    def test_name_from_url(self):
        assert RemoteReference("https://github.com/owner/Hello.git").module_name == "Hello"

    def test_explicit_name(self):
        assert RemoteReference("https://github.com/owner/repo", name="Greeting").module_name == "Greeting"

    def test_revision_precedence(self):
        assert RemoteReference("u").revision == "main"
        assert RemoteReference("u", branch="dev").revision == "dev"
        assert RemoteReference("u", tag="v1", branch="dev").revision == "v1"


class TestBaseFetcher:
    def test_is_abstract(self, tmp_path):
        with pytest.raises(TypeError):
            BaseFetcher(tmp_path)

    def test_subclass_supplies_download(self, tmp_path):
        class LocalFetcher(BaseFetcher):
            def _download(self, ref, dest):
                (dest / "lib").mkdir(parents=True)
                (dest / "lib" / "Local.swift").write_text("")

        fetched = LocalFetcher(tmp_path).fetch(RemoteReference("/srv/git/Local.git"))
        assert fetched.name == "Local"
        assert [p.name for p in fetched.sources] == ["Local.swift"]


class TestGitFetcher:
    """Shallow clone transport."""

    def test_clone_command(self, tmp_path):
        fetcher = GitFetcher(tmp_path)
        ref = RemoteReference("https://github.com/owner/Hello.git", tag="v1.0.0")
        dest = fetcher.checkout_dir(ref)
        assert dest == tmp_path / "external_libs" / "Hello"
        assert fetcher.clone_command(ref, dest) == [
            "git",
            "clone",
            "--depth",
            "1",
            "--branch",
            "v1.0.0",
            "https://github.com/owner/Hello.git",
            str(dest),
        ]

    def test_fetch_lists_sources(self, tmp_path):
        fetcher = GitFetcher(tmp_path)
        ref = RemoteReference("https://github.com/owner/Hello.git")
        files = {"lib/Hello.swift": "import Foundation\n", "lib/sub/Extra.swift": "", "README.md": ""}

        with patch("libgraph.fetch.fetcher.safe_run", side_effect=_fake_clone(files)) as mock_run:
            fetched = fetcher.fetch(ref)

        mock_run.assert_called_once()
        assert fetched.name == "Hello"
        assert fetched.source_root == (tmp_path / "external_libs" / "Hello").resolve()
        assert [p.name for p in fetched.sources] == ["Hello.swift", "Extra.swift"]

    def test_existing_checkout_reused(self, tmp_path):
        fetcher = GitFetcher(tmp_path)
        ref = RemoteReference("https://github.com/owner/Hello.git")
        existing = tmp_path / "external_libs" / "Hello" / "lib"
        existing.mkdir(parents=True)
        (existing / "Hello.swift").write_text("")

        with patch("libgraph.fetch.fetcher.safe_run") as mock_run:
            fetched = fetcher.fetch(ref)

        mock_run.assert_not_called()
        assert len(fetched.sources) == 1

    def test_clone_failure(self, tmp_path):
        fetcher = GitFetcher(tmp_path)
        ref = RemoteReference("https://github.com/owner/Hello.git", branch="nope")
        failed = subprocess.CompletedProcess([], 128, stdout="", stderr="fatal: Remote branch nope not found")

        with patch("libgraph.fetch.fetcher.safe_run", return_value=failed):
            with pytest.raises(FetchError, match="Remote branch nope not found"):
                fetcher.fetch(ref)

        assert not (tmp_path / "external_libs" / "Hello").exists()

    def test_git_missing(self, tmp_path):
        fetcher = GitFetcher(tmp_path, git_executable="no-such-git")
        with patch("libgraph.fetch.fetcher.safe_run", side_effect=FileNotFoundError()):
            with pytest.raises(FetchError, match="git executable not found"):
                fetcher.fetch(RemoteReference("https://github.com/owner/Hello.git"))

    def test_no_sources(self, tmp_path):
        fetcher = GitFetcher(tmp_path)
        with patch("libgraph.fetch.fetcher.safe_run", side_effect=_fake_clone({"README.md": ""})):
            with pytest.raises(FetchError, match="No sources found"):
                fetcher.fetch(RemoteReference("https://github.com/owner/Hello.git"))

    def test_bad_url(self, tmp_path):
        with pytest.raises(FetchError):
            GitFetcher(tmp_path).fetch(RemoteReference(""))


class TestArchiveFetcher:
    """HTTP archive transport."""

    def test_archive_url_for_tag(self, tmp_path):
        fetcher = ArchiveFetcher(tmp_path)
        ref = RemoteReference("https://github.com/owner/Hello.git", tag="v2.0.0")
        assert fetcher.archive_url(ref) == "https://github.com/owner/Hello/archive/refs/tags/v2.0.0.zip"

    def test_archive_url_not_github(self, tmp_path):
        with pytest.raises(FetchError):
            ArchiveFetcher(tmp_path).archive_url(RemoteReference("https://example.com/owner/Hello.git"))

    def test_download_and_unwrap(self, tmp_path):
        fetcher = ArchiveFetcher(tmp_path)
        ref = RemoteReference("https://github.com/owner/Hello.git")
        payload = _zip_bytes({"Hello-main/lib/Hello.swift": "public func hi() {}\n"})

        with patch("libgraph.fetch.fetcher.requests.get", return_value=_response(payload)) as mock_get:
            fetched = fetcher.fetch(ref)

        mock_get.assert_called_once_with("https://github.com/owner/Hello/archive/refs/heads/main.zip", stream=True, timeout=30.0)
        checkout = tmp_path / "external_libs" / "Hello"
        assert (checkout / "lib" / "Hello.swift").is_file()
        assert [p.name for p in fetched.sources] == ["Hello.swift"]
        assert not (tmp_path / "external_libs" / "Hello.zip").exists()
        assert not (tmp_path / "external_libs" / "Hello.extracting").exists()

    def test_http_error_not_retried(self, tmp_path):
        fetcher = ArchiveFetcher(tmp_path)
        error = requests.HTTPError("404 Client Error")

        with patch("libgraph.fetch.fetcher.requests.get", return_value=_response(status_error=error)) as mock_get:
            with pytest.raises(FetchError, match="404"):
                fetcher.fetch(RemoteReference("https://github.com/owner/Hello.git"))

        assert mock_get.call_count == 1

    def test_connection_error_retried(self, tmp_path):
        fetcher = ArchiveFetcher(tmp_path)
        payload = _zip_bytes({"Hello-main/lib/Hello.swift": ""})
        responses = [requests.ConnectionError("reset"), _response(payload)]

        with (
            patch("libgraph.fetch.fetcher.requests.get", side_effect=responses) as mock_get,
            patch("libgraph.fetch.fetcher.time.sleep") as mock_sleep,
        ):
            fetched = fetcher.fetch(RemoteReference("https://github.com/owner/Hello.git"))

        assert mock_get.call_count == 2
        mock_sleep.assert_called_once_with(1.0)
        assert fetched.name == "Hello"

    def test_connection_error_exhausts_retries(self, tmp_path):
        fetcher = ArchiveFetcher(tmp_path)

        with (
            patch("libgraph.fetch.fetcher.requests.get", side_effect=requests.ConnectionError("down")) as mock_get,
            patch("libgraph.fetch.fetcher.time.sleep"),
        ):
            with pytest.raises(FetchError, match="down"):
                fetcher.fetch(RemoteReference("https://github.com/owner/Hello.git"))

        assert mock_get.call_count == 3
        assert not (tmp_path / "external_libs" / "Hello").exists()

    def test_corrupt_archive(self, tmp_path):
        fetcher = ArchiveFetcher(tmp_path)
        with patch("libgraph.fetch.fetcher.requests.get", return_value=_response(b"not a zip")):
            with pytest.raises(FetchError):
                fetcher.fetch(RemoteReference("https://github.com/owner/Hello.git"))


class TestAddRemoteLibrary:
    def test_registers_fetched_library(self, tmp_path):
        registry = Registry()
        layout = ArtifactLayout(tmp_path / "build")
        fetcher = GitFetcher(tmp_path / "cache")
        ref = RemoteReference("https://github.com/owner/Hello.git", dependencies=("Utils",))

        with patch("libgraph.fetch.fetcher.safe_run", side_effect=_fake_clone({"lib/Hello.swift": ""})):
            unit = add_remote_library(registry, fetcher, ref, layout)

        assert registry.get("Hello") == unit
        assert unit.dependencies == ("Utils",)
        assert unit.artifacts == layout.for_unit("Hello")
        assert unit.source_root == (tmp_path / "cache" / "external_libs" / "Hello").resolve()

    def test_dependency_override(self, tmp_path):
        registry = Registry()
        fetcher = GitFetcher(tmp_path / "cache")
        ref = RemoteReference("https://github.com/owner/Hello.git", dependencies=("Utils",))

        with patch("libgraph.fetch.fetcher.safe_run", side_effect=_fake_clone({"lib/Hello.swift": ""})):
            unit = add_remote_library(registry, fetcher, ref, ArtifactLayout(tmp_path / "build"), dependencies=[])

        assert unit.dependencies == ()
