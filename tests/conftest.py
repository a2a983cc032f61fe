"""Shared test fixtures for charfreq."""

from __future__ import annotations

from pathlib import Path

import pytest

from charfreq.config import Settings
from charfreq.store import StatStore


@pytest.fixture()
def sample_repo(tmp_path: Path) -> Path:
    """Create a small source tree with two text extensions and a binary."""
    root = tmp_path / "repo"
    (root / "pkg").mkdir(parents=True)
    (root / "main.go").write_text("package main\n", encoding="utf-8")
    (root / "pkg" / "util.go").write_text("var X = 1\n", encoding="utf-8")
    (root / "README.md").write_text("# Hi\n", encoding="utf-8")
    (root / "logo.png").write_bytes(b"\x89PNG\r\n\x1a\n" + b"\x00" * 16)
    (root / ".git").mkdir()
    (root / ".git" / "config.txt").write_text("ignored\n", encoding="utf-8")
    return root


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    """Settings whose database and audit log live under tmp_path."""
    return Settings(
        database=str(tmp_path / "state" / "charfreq.db"),
        state_dir=str(tmp_path / "state"),
    )


@pytest.fixture()
def store(tmp_path: Path) -> StatStore:
    """A fresh store backed by a file in tmp_path."""
    return StatStore(tmp_path / "stats.db")
