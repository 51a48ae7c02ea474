"""Security audit log.

Append-only, newline-delimited JSON with one file per UTC day under
``<data_dir>/audit/``. This is the only record that places a pseudonym
or a content item next to a real account (identity resolutions, bans).
"""

from __future__ import annotations

import csv
import io
import json
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

# Action names
IDENTITY_RESOLVED = "identity.resolved"
CONTENT_AUTO_FLAGGED = "content.auto_flagged"
CONTENT_HIDDEN = "content.hidden"
CONTENT_UNHIDDEN = "content.unhidden"
CONTENT_UNFLAGGED = "content.unflagged"
CONTENT_NOTES = "content.notes_updated"
ACCOUNT_BANNED = "account.banned"
ACCOUNT_UNBANNED = "account.unbanned"
ACCOUNT_BAN_EXPIRED = "account.ban_expired"

_CSV_COLUMNS = ["id", "timestamp", "actor", "action", "target_type", "target_id", "success"]


@dataclass
class AuditEvent:
    """A single audit record."""

    id: str
    timestamp: str
    actor: str
    action: str
    target_type: str
    target_id: str
    details: dict[str, Any] = field(default_factory=dict)
    success: bool = True


class AuditLog:
    """File-backed security audit log."""

    def __init__(self, base_dir: Path) -> None:
        self._base_dir = Path(base_dir)
        self._base_dir.mkdir(parents=True, exist_ok=True)

    def _file_for(self, dt: datetime) -> Path:
        return self._base_dir / f"{dt.strftime('%Y-%m-%d')}.jsonl"

    def _read_all(self) -> list[AuditEvent]:
        events: list[AuditEvent] = []
        for path in sorted(self._base_dir.glob("*.jsonl")):
            for line in path.read_text(encoding="utf-8").splitlines():
                if line.strip():
                    events.append(AuditEvent(**json.loads(line)))
        return events

    def record(
        self,
        actor: str,
        action: str,
        target_type: str,
        target_id: str,
        details: Optional[dict[str, Any]] = None,
        success: bool = True,
    ) -> AuditEvent:
        """Append an event and return it."""
        now = datetime.now(timezone.utc)
        event = AuditEvent(
            id=uuid.uuid4().hex[:16],
            timestamp=now.isoformat(),
            actor=actor,
            action=action,
            target_type=target_type,
            target_id=target_id,
            details=details or {},
            success=success,
        )
        with self._file_for(now).open("a", encoding="utf-8") as fh:
            fh.write(json.dumps(asdict(event), default=str) + "\n")
        return event

    def query(
        self,
        *,
        actor: Optional[str] = None,
        action: Optional[str] = None,
        target_type: Optional[str] = None,
        since: Optional[str] = None,
        until: Optional[str] = None,
        limit: int = 200,
    ) -> list[AuditEvent]:
        """Return matching events, newest first."""
        events = self._read_all()
        if actor:
            events = [e for e in events if e.actor == actor]
        if action:
            events = [e for e in events if e.action == action]
        if target_type:
            events = [e for e in events if e.target_type == target_type]
        if since:
            events = [e for e in events if e.timestamp >= since]
        if until:
            events = [e for e in events if e.timestamp <= until]
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]

    def for_target(self, target_type: str, target_id: str) -> list[AuditEvent]:
        events = [
            e for e in self._read_all()
            if e.target_type == target_type and e.target_id == target_id
        ]
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events

    def export(self, fmt: str = "json", **filters: Any) -> str:
        """Export events as ``json`` or ``csv``."""
        filters.setdefault("limit", 10000)
        events = self.query(**filters)
        if fmt == "csv":
            buf = io.StringIO()
            writer = csv.writer(buf)
            writer.writerow(_CSV_COLUMNS)
            for e in events:
                writer.writerow([getattr(e, col) for col in _CSV_COLUMNS])
            return buf.getvalue()
        if fmt != "json":
            raise ValueError(f"Unsupported export format: {fmt}")
        return json.dumps([asdict(e) for e in events], indent=2)
