"""Tests for charfreq.fetcher."""

from __future__ import annotations

import shutil
import subprocess
import tarfile
import threading
from collections.abc import Iterator
from functools import partial
from http.server import SimpleHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path

import pytest

from charfreq.config import FetchConfig, Limits, Settings
from charfreq.errors import FetchError
from charfreq.fetcher import (
    ArchiveFetcher,
    DirectoryFetcher,
    GitFetcher,
    canonical_repository,
    make_fetcher,
)


class TestCanonicalRepository:
    def test_strips_git_suffix_and_slash(self) -> None:
        assert canonical_repository("https://host/org/proj.git") == "https://host/org/proj"
        assert canonical_repository(" https://host/org/proj/ ") == "https://host/org/proj"

    def test_local_directory_resolved(self, sample_repo: Path) -> None:
        assert canonical_repository(str(sample_repo / "pkg" / "..")) == str(sample_repo.resolve())


class TestDirectoryFetcher:
    def test_lists_files_skipping_git(self, sample_repo: Path) -> None:
        files = DirectoryFetcher().fetch(str(sample_repo))
        names = sorted(p.name for p in files)
        assert names == ["README.md", "logo.png", "main.go", "util.go"]

    def test_max_files(self, sample_repo: Path) -> None:
        files = DirectoryFetcher(Limits(max_files=2)).fetch(str(sample_repo))
        assert len(files) == 2

    def test_not_a_directory(self, tmp_path: Path) -> None:
        with pytest.raises(FetchError):
            DirectoryFetcher().fetch(str(tmp_path / "missing"))


class TestGitFetcher:
    def test_missing_git_binary(self) -> None:
        fetcher = GitFetcher(FetchConfig(git_binary="charfreq-no-such-git"))
        with fetcher, pytest.raises(FetchError, match="not found"):
            fetcher.fetch("https://example.invalid/repo.git")

    def test_close_removes_checkout(self) -> None:
        fetcher = GitFetcher(FetchConfig(git_binary="charfreq-no-such-git"))
        with pytest.raises(FetchError):
            fetcher.fetch("https://example.invalid/repo.git")
        workdir = Path(fetcher._tmp.name)
        assert workdir.exists()
        fetcher.close()
        assert not workdir.exists()


class _QuietHandler(SimpleHTTPRequestHandler):
    def log_message(self, format: str, *args: object) -> None:
        pass


@pytest.fixture()
def http_root(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[tuple[Path, str]]:
    """Serve a directory over HTTP on localhost; yields (directory, base URL)."""
    for var in ("HTTP_PROXY", "HTTPS_PROXY", "ALL_PROXY", "http_proxy", "https_proxy", "all_proxy"):
        monkeypatch.delenv(var, raising=False)
    root = tmp_path / "www"
    root.mkdir()
    server = ThreadingHTTPServer(("127.0.0.1", 0), partial(_QuietHandler, directory=str(root)))
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield root, f"http://127.0.0.1:{server.server_address[1]}"
    finally:
        server.shutdown()
        server.server_close()


class TestArchiveFetcher:
    def test_downloads_and_unpacks(self, http_root: tuple[Path, str], sample_repo: Path) -> None:
        root, base_url = http_root
        with tarfile.open(root / "snapshot.tar.gz", "w:gz") as tar:
            tar.add(sample_repo / "main.go", arcname="proj/main.go")
            tar.add(sample_repo / "pkg" / "util.go", arcname="proj/pkg/util.go")

        with ArchiveFetcher() as fetcher:
            files = fetcher.fetch(f"{base_url}/snapshot.tar.gz")
            assert sorted(p.name for p in files) == ["main.go", "util.go"]
            assert all(p.is_file() for p in files)
            workdir = Path(fetcher._tmp.name)
        assert not workdir.exists()

    def test_http_error(self, http_root: tuple[Path, str]) -> None:
        _, base_url = http_root
        with ArchiveFetcher() as fetcher, pytest.raises(FetchError, match="HTTP 404"):
            fetcher.fetch(f"{base_url}/missing.tar.gz")

    def test_not_an_archive(self, http_root: tuple[Path, str]) -> None:
        root, base_url = http_root
        (root / "junk.tar.gz").write_bytes(b"not a tarball")
        with ArchiveFetcher() as fetcher, pytest.raises(FetchError, match="Cannot unpack"):
            fetcher.fetch(f"{base_url}/junk.tar.gz")


@pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed")
class TestGitFetcherClone:
    @pytest.fixture()
    def origin(self, tmp_path: Path) -> Path:
        """A committed git repository with a tracked, an ignored and a nested file."""
        origin = tmp_path / "origin"
        (origin / "sub dir").mkdir(parents=True)
        (origin / "a.go").write_text("package a\n", encoding="utf-8")
        (origin / "sub dir" / "b.md").write_text("# b\n", encoding="utf-8")
        (origin / ".gitignore").write_text("*.log\n", encoding="utf-8")
        (origin / "build.log").write_text("noise\n", encoding="utf-8")
        git = [
            "git", "-C", str(origin),
            "-c", "user.name=t", "-c", "user.email=t@example.com", "-c", "commit.gpgsign=false",
        ]
        subprocess.run(["git", "init", "-q", str(origin)], check=True)
        subprocess.run([*git, "add", "."], check=True)
        subprocess.run([*git, "commit", "-q", "-m", "init"], check=True)
        return origin

    def test_clones_and_lists_tracked_files(self, origin: Path) -> None:
        with GitFetcher() as fetcher:
            files = fetcher.fetch(origin.as_uri())
            names = sorted(p.name for p in files)
            assert names == [".gitignore", "a.go", "b.md"]
            assert all(p.is_file() for p in files)

    def test_max_files(self, origin: Path) -> None:
        with GitFetcher(limits=Limits(max_files=1)) as fetcher:
            assert len(fetcher.fetch(origin.as_uri())) == 1

    def test_unknown_repository(self, tmp_path: Path) -> None:
        with GitFetcher() as fetcher, pytest.raises(FetchError, match="git clone failed"):
            fetcher.fetch((tmp_path / "nowhere").as_uri())


class TestMakeFetcher:
    def test_directory(self, sample_repo: Path) -> None:
        assert isinstance(make_fetcher(str(sample_repo)), DirectoryFetcher)

    def test_archive(self) -> None:
        assert isinstance(make_fetcher("https://host/proj/archive/main.tar.gz"), ArchiveFetcher)

    def test_git(self) -> None:
        fetcher = make_fetcher("https://host/org/proj.git", Settings())
        assert isinstance(fetcher, GitFetcher)
