"""Settings — loads and validates charfreq.yaml with Pydantic."""

from __future__ import annotations

from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field


class CountOptions(BaseModel):
    """How file content is turned into characters."""

    model_config = ConfigDict(frozen=True)

    case_sensitive: bool = False
    encoding: str = "utf-8"


class IgnorePolicy(BaseModel):
    """Character classes left out of the ranked view.

    Whitespace is left out unless ``count_space`` is set.
    """

    model_config = ConfigDict(frozen=True)

    letters: bool = False
    digits: bool = False
    symbols: bool = False
    count_space: bool = False


class ReportOptions(BaseModel):
    """Options for the ranked frequency table."""

    model_config = ConfigDict(frozen=True)

    top_n: int = Field(default=50, ge=0)
    ignore: IgnorePolicy = IgnorePolicy()


class Limits(BaseModel):
    """Resource limits for a scan."""

    model_config = ConfigDict(frozen=True)

    max_file_mb: int = 5
    max_files: int = 20000
    workers: int = Field(default=1, ge=1)


class FetchConfig(BaseModel):
    """How remote repositories are cloned."""

    model_config = ConfigDict(frozen=True)

    git_binary: str = "git"
    clone_depth: int = Field(default=1, ge=1)


class Settings(BaseModel):
    """Top-level charfreq configuration."""

    model_config = ConfigDict(frozen=True)

    database: str = "charfreq.db"
    state_dir: str = ".charfreq"
    counting: CountOptions = CountOptions()
    report: ReportOptions = ReportOptions()
    limits: Limits = Limits()
    fetch: FetchConfig = FetchConfig()

    def database_path(self) -> Path:
        """Return the resolved database path."""
        return Path(self.database).resolve()

    def state_path(self) -> Path:
        """Return the resolved directory holding the audit log."""
        return Path(self.state_dir).resolve()


def load_settings(path: Path | str = "charfreq.yaml") -> Settings:
    """Load and validate a settings file.

    Args:
        path: Path to the YAML settings file.

    Returns:
        A validated Settings instance.

    Raises:
        FileNotFoundError: If the settings file does not exist.
        ValueError: If the settings file contains invalid configuration.
    """
    settings_path = Path(path)
    if not settings_path.exists():
        raise FileNotFoundError(f"Settings file not found: {settings_path}")

    text = settings_path.read_text(encoding="utf-8")
    data = yaml.safe_load(text)

    if data is None:
        raise ValueError(f"Settings file is empty: {settings_path}")
    if not isinstance(data, dict):
        raise ValueError(f"Settings file must contain a YAML mapping: {settings_path}")

    return Settings(**data)
