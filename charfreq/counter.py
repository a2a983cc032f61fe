"""Per-file character counting."""

from __future__ import annotations

from collections import Counter
from pathlib import Path

from charfreq.config import CountOptions
from charfreq.errors import FileReadError


def count_chars(content: bytes | str, options: CountOptions = CountOptions()) -> Counter[str]:
    """Count every code point in *content*.

    Args:
        content: Raw file bytes or already-decoded text.
        options: Case folding and encoding switches.

    Returns:
        A mapping from single-character strings to their counts.

    Raises:
        UnicodeDecodeError: If *content* is bytes that do not decode.
    """
    text = content.decode(options.encoding) if isinstance(content, bytes) else content
    if not options.case_sensitive:
        text = text.lower()
    return Counter(text)


def count_file(
    path: Path,
    options: CountOptions = CountOptions(),
    max_file_mb: int | None = None,
) -> Counter[str]:
    """Read *path* and count its characters.

    Raises:
        FileReadError: If the file is too large, unreadable or not valid text.
    """
    try:
        if max_file_mb is not None:
            size_mb = path.stat().st_size / (1024 * 1024)
            if size_mb > max_file_mb:
                raise FileReadError(path, f"larger than {max_file_mb} MB")
        data = path.read_bytes()
    except OSError as exc:
        raise FileReadError(path, exc.strerror or str(exc)) from exc

    try:
        return count_chars(data, options)
    except UnicodeDecodeError as exc:
        raise FileReadError(path, f"not valid {options.encoding}: {exc.reason}") from exc
    except LookupError as exc:
        raise FileReadError(path, str(exc)) from exc
