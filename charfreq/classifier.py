"""Text-file detection and extension buckets."""

from __future__ import annotations

from pathlib import Path

# Extensions whose content is counted.
TEXT_EXTENSIONS: frozenset[str] = frozenset(
    {
        # common text
        ".txt",
        ".md",
        ".rst",
        ".csv",
        ".log",
        ".json",
        ".xml",
        ".html",
        ".css",
        ".yaml",
        ".yml",
        ".toml",
        ".cfg",
        ".ini",
        # C family
        ".c",
        ".cpp",
        ".cxx",
        ".cc",
        ".h",
        ".hpp",
        ".cs",
        ".m",
        # JVM
        ".java",
        ".kt",
        ".kts",
        ".scala",
        ".clj",
        ".cljs",
        # scripting
        ".py",
        ".ipynb",
        ".rb",
        ".erb",
        ".php",
        ".phtml",
        ".pl",
        ".pm",
        ".lua",
        ".r",
        ".rmd",
        ".sh",
        ".bash",
        ".zsh",
        # web
        ".js",
        ".jsx",
        ".ts",
        ".tsx",
        ".coffee",
        ".dart",
        # compiled
        ".go",
        ".rs",
        ".swift",
        ".hs",
        ".ex",
        ".exs",
        ".pas",
        ".inc",
        ".fs",
        ".fsx",
        ".fsscript",
        ".asm",
        ".s",
        ".sql",
    }
)


def bucket_for(path: Path | str) -> str:
    """Return the extension bucket of *path*, e.g. ``*.go``."""
    return "*" + Path(path).suffix.lower()


def classify(path: Path | str) -> tuple[bool, str]:
    """Return ``(is_text, bucket)`` for *path*."""
    bucket = bucket_for(path)
    return bucket[1:] in TEXT_EXTENSIONS, bucket


def normalize_mask(mask: str) -> str:
    """Turn a user-supplied file mask into a bucket key.

    ``go``, ``.GO`` and ``*.go`` all map to ``*.go``.
    """
    mask = mask.strip().lower()
    if mask.startswith("*"):
        mask = mask[1:]
    if not mask.startswith("."):
        mask = "." + mask
    return "*" + mask
