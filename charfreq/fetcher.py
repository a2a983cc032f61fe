"""Source fetchers — turn a repository identifier into a local file list.

Three implementations share the ``SourceFetcher`` protocol:

* ``DirectoryFetcher`` walks an existing local directory.
* ``GitFetcher`` makes a shallow ``git clone`` into a temporary directory.
* ``ArchiveFetcher`` downloads a ``.tar.gz`` snapshot over HTTP and unpacks it.

Fetchers that create temporary files remove them in ``close()``; all of
them work as context managers.
"""

from __future__ import annotations

import subprocess
import tarfile
import tempfile
from pathlib import Path
from typing import Protocol

from charfreq.config import FetchConfig, Limits, Settings
from charfreq.errors import FetchError

_ARCHIVE_SUFFIXES = (".tar.gz", ".tgz")


class SourceFetcher(Protocol):
    """Structural type that all fetchers satisfy."""

    def fetch(self, repository: str) -> list[Path]: ...

    def close(self) -> None: ...


def canonical_repository(repository: str) -> str:
    """Return the stable key used to store statistics for *repository*.

    Local directories resolve to an absolute path. Remote locations lose
    trailing slashes and a trailing ``.git``.
    """
    repository = repository.strip()
    local = Path(repository).expanduser()
    if local.is_dir():
        return str(local.resolve())
    repository = repository.rstrip("/")
    if repository.endswith(".git"):
        repository = repository[: -len(".git")]
    return repository


class _TempDirFetcher:
    """Shared lifecycle for fetchers that work in a temporary directory."""

    def __init__(self) -> None:
        self._tmp: tempfile.TemporaryDirectory[str] | None = None

    def _workdir(self) -> Path:
        self.close()
        self._tmp = tempfile.TemporaryDirectory(prefix="charfreq-")
        return Path(self._tmp.name)

    def close(self) -> None:
        """Remove the temporary checkout, if any."""
        if self._tmp is not None:
            self._tmp.cleanup()
            self._tmp = None

    def __enter__(self):
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class DirectoryFetcher:
    """List files of a local directory tree, skipping ``.git``."""

    def __init__(self, limits: Limits = Limits()) -> None:
        self.limits = limits

    def fetch(self, repository: str) -> list[Path]:
        root = Path(repository).expanduser()
        if not root.is_dir():
            raise FetchError(f"Not a directory: {repository}")

        files: list[Path] = []
        for p in sorted(root.rglob("*")):
            if len(files) >= self.limits.max_files:
                break
            if ".git" in p.relative_to(root).parts or not p.is_file():
                continue
            files.append(p)
        return files

    def close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class GitFetcher(_TempDirFetcher):
    """Shallow-clone a git repository and list its tracked files."""

    def __init__(self, config: FetchConfig = FetchConfig(), limits: Limits = Limits()) -> None:
        super().__init__()
        self.config = config
        self.limits = limits

    def _git(self, *args: str, cwd: Path | None = None) -> bytes:
        try:
            proc = subprocess.run(
                [self.config.git_binary, *args],
                cwd=cwd,
                capture_output=True,
                check=True,
            )
        except FileNotFoundError as exc:
            raise FetchError(f"git executable not found: {self.config.git_binary}") from exc
        except subprocess.CalledProcessError as exc:
            stderr = exc.stderr.decode("utf-8", errors="replace").strip()
            raise FetchError(f"git {args[0]} failed: {stderr or exc}") from exc
        return proc.stdout

    def fetch(self, repository: str) -> list[Path]:
        checkout = self._workdir() / "repo"
        self._git("clone", "--depth", str(self.config.clone_depth), "--quiet", repository, str(checkout))
        listing = self._git("ls-files", "-z", cwd=checkout)

        files: list[Path] = []
        for name in listing.decode("utf-8", errors="surrogateescape").split("\0"):
            if not name:
                continue
            if len(files) >= self.limits.max_files:
                break
            files.append(checkout / name)
        return files


class ArchiveFetcher(_TempDirFetcher):
    """Download a ``.tar.gz`` snapshot and list the files inside it."""

    def __init__(self, limits: Limits = Limits(), timeout: float = 60) -> None:
        super().__init__()
        self.limits = limits
        self.timeout = timeout

    def fetch(self, repository: str) -> list[Path]:
        import httpx

        workdir = self._workdir()
        archive = workdir / "snapshot.tar.gz"
        try:
            with httpx.stream("GET", repository, follow_redirects=True, timeout=self.timeout) as resp:
                resp.raise_for_status()
                with archive.open("wb") as fh:
                    for chunk in resp.iter_bytes():
                        fh.write(chunk)
        except httpx.HTTPStatusError as exc:
            raise FetchError(f"Download failed with HTTP {exc.response.status_code}: {repository}") from exc
        except httpx.HTTPError as exc:
            raise FetchError(f"Cannot download {repository}: {exc}") from exc

        target = workdir / "repo"
        try:
            with tarfile.open(archive, "r:gz") as tar:
                tar.extractall(target, filter="data")
        except (tarfile.TarError, OSError) as exc:
            raise FetchError(f"Cannot unpack {repository}: {exc}") from exc

        return DirectoryFetcher(self.limits).fetch(str(target))


def make_fetcher(repository: str, settings: Settings = Settings()) -> SourceFetcher:
    """Pick the fetcher that understands *repository*."""
    if Path(repository).expanduser().is_dir():
        return DirectoryFetcher(settings.limits)
    if repository.startswith(("http://", "https://")) and repository.endswith(_ARCHIVE_SUFFIXES):
        return ArchiveFetcher(settings.limits)
    return GitFetcher(settings.fetch, settings.limits)
