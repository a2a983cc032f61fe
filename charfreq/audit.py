"""Append-only JSONL audit log of lookups and scans."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from pathlib import Path

from charfreq.redaction import redact

AUDIT_FILE = "audit.jsonl"


@dataclass
class AuditEvent:
    """A single audit log entry."""

    action: str
    status: str
    repository: str = ""
    detail: str = ""
    buckets: list[str] = field(default_factory=list)


def write_audit(state_dir: Path | str, event: AuditEvent) -> Path:
    """Append an audit event to the log in *state_dir*.

    ``repository`` and ``detail`` are passed through ``redact()`` before
    writing. A UTC ISO-8601 timestamp is added automatically.

    Returns:
        Path to the audit log file.
    """
    audit_dir = Path(state_dir).resolve()
    audit_dir.mkdir(parents=True, exist_ok=True)
    audit_path = audit_dir / AUDIT_FILE

    record = asdict(event)
    record["repository"] = redact(record["repository"])
    record["detail"] = redact(record["detail"])
    record["timestamp"] = datetime.now(UTC).isoformat()

    with audit_path.open("a", encoding="utf-8") as fh:
        fh.write(json.dumps(record, ensure_ascii=False) + "\n")

    return audit_path


def read_audit(state_dir: Path | str, last_n: int = 20) -> list[dict]:
    """Read the most recent *last_n* entries, newest first."""
    audit_path = Path(state_dir).resolve() / AUDIT_FILE
    if not audit_path.exists():
        return []

    lines = audit_path.read_text(encoding="utf-8").strip().splitlines()
    entries = [json.loads(line) for line in lines if line.strip()]
    return list(reversed(entries[-last_n:]))
