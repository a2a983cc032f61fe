"""Request orchestration — cache lookup, scan on miss, audit logging."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Mapping
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path

from charfreq.aggregator import combine
from charfreq.audit import AuditEvent, write_audit
from charfreq.classifier import classify, normalize_mask
from charfreq.config import Settings
from charfreq.counter import count_file
from charfreq.errors import FetchError, FileReadError, StorageError
from charfreq.fetcher import SourceFetcher, canonical_repository, make_fetcher
from charfreq.store import StatStore


@dataclass
class ScanResult:
    """Outcome of a statistics request."""

    repository: str
    bucket: str
    aggregate: dict[str, int]
    from_cache: bool
    files_scanned: int = 0
    buckets: dict[str, int] = field(default_factory=dict)
    file_errors: list[FileReadError] = field(default_factory=list)


def open_store(settings: Settings) -> StatStore:
    """Open the database named by *settings*, creating its directory."""
    path = settings.database_path()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise StorageError(f"Cannot create database directory {path.parent}: {exc}") from exc
    return StatStore(path)


def partition(files: list[Path]) -> dict[str, list[Path]]:
    """Group text files by extension bucket; other files are dropped."""
    by_bucket: dict[str, list[Path]] = defaultdict(list)
    for path in files:
        is_text, bucket = classify(path)
        if is_text:
            by_bucket[bucket].append(path)
    return dict(by_bucket)


def scan_bucket(
    store: StatStore,
    repository: str,
    bucket: str,
    files: list[Path],
    settings: Settings,
) -> list[FileReadError]:
    """Count *files*, then replace the stored aggregate for *bucket*.

    Unreadable files are skipped and returned; a storage failure propagates.
    """
    counts: list[Mapping[str, int]] = []
    errors: list[FileReadError] = []
    for path in files:
        try:
            counts.append(count_file(path, settings.counting, settings.limits.max_file_mb))
        except FileReadError as exc:
            errors.append(exc)

    store.replace_bucket(repository, bucket, combine(counts))
    return errors


def scan(
    store: StatStore,
    fetcher: SourceFetcher,
    repository: str,
    key: str,
    settings: Settings,
) -> tuple[int, dict[str, int], list[FileReadError]]:
    """Fetch *repository* and store one aggregate per bucket under *key*.

    Returns:
        Number of files listed, file count per bucket, and per-file errors.
    """
    files = fetcher.fetch(repository)
    by_bucket = partition(files)
    errors: list[FileReadError] = []

    workers = settings.limits.workers
    if workers > 1 and len(by_bucket) > 1:
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = [
                pool.submit(scan_bucket, store, key, bucket, paths, settings)
                for bucket, paths in sorted(by_bucket.items())
            ]
            for future in futures:
                errors.extend(future.result())
    else:
        for bucket, paths in sorted(by_bucket.items()):
            errors.extend(scan_bucket(store, key, bucket, paths, settings))

    # Buckets with no files left in the new listing lose their old counts.
    for stale in sorted(set(store.buckets(key)) - set(by_bucket)):
        store.replace_bucket(key, stale, {})

    return len(files), {bucket: len(paths) for bucket, paths in sorted(by_bucket.items())}, errors


def collect(
    settings: Settings,
    repository: str,
    mask: str,
    *,
    refresh: bool = False,
    fetcher: SourceFetcher | None = None,
    store: StatStore | None = None,
) -> ScanResult:
    """Return statistics for *mask* in *repository*, scanning on a cache miss.

    Args:
        settings: Active settings.
        repository: Repository URL, archive URL or local directory.
        mask: File mask such as ``*.go``.
        refresh: Rescan even when cached statistics exist.
        fetcher: Fetcher to use instead of ``make_fetcher``.
        store: Store to use instead of the configured database.

    Raises:
        FetchError: If the repository cannot be fetched.
        StorageError: If the database fails; nothing partial is returned.
    """
    state_dir = settings.state_path()
    key = canonical_repository(repository)
    bucket = normalize_mask(mask)

    try:
        if store is None:
            store = open_store(settings)
        if not refresh:
            cached = store.lookup(key, bucket)
            if cached:
                write_audit(
                    state_dir,
                    AuditEvent(action="lookup", status="hit", repository=key, buckets=[bucket]),
                )
                return ScanResult(repository=key, bucket=bucket, aggregate=cached, from_cache=True)

        if fetcher is None:
            fetcher = make_fetcher(repository.strip(), settings)
        try:
            files_scanned, buckets, errors = scan(store, fetcher, repository.strip(), key, settings)
        finally:
            fetcher.close()

        aggregate = store.lookup(key, bucket)
    except (FetchError, StorageError) as exc:
        write_audit(
            state_dir,
            AuditEvent(
                action="scan",
                status="error",
                repository=key,
                detail=f"{type(exc).__name__}: {exc}",
                buckets=[bucket],
            ),
        )
        raise

    detail = f"{files_scanned} files listed, {len(buckets)} buckets stored"
    if errors:
        detail += "; unreadable: " + ", ".join(f"{e.path} ({e.reason})" for e in errors)
    write_audit(
        state_dir,
        AuditEvent(
            action="scan",
            status="ok",
            repository=key,
            detail=detail,
            buckets=list(buckets),
        ),
    )
    return ScanResult(
        repository=key,
        bucket=bucket,
        aggregate=aggregate,
        from_cache=False,
        files_scanned=files_scanned,
        buckets=buckets,
        file_errors=errors,
    )
