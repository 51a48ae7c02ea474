"""Account domain models: roles, ban status, accounts, and sessions."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def parse_utc(value: str) -> datetime:
    """Parse an ISO timestamp; naive values are taken as UTC."""
    dt = datetime.fromisoformat(value)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


class Role(str, Enum):
    """Role hierarchy: administrator > moderator > member."""

    member = "member"
    moderator = "moderator"
    administrator = "administrator"

    @property
    def level(self) -> int:
        """Return numeric level for comparison (higher = more privileges)."""
        return {
            Role.administrator: 30,
            Role.moderator: 20,
            Role.member: 10,
        }[self]


class BanState(str, Enum):
    """Account standing."""

    active = "active"
    temporary = "banned-temporary"
    permanent = "banned-permanent"


@dataclass
class BanStatus:
    """Current ban state of an account.

    ``permanent`` only means there is no scheduled expiry; an
    administrator can always lift it.
    """

    state: BanState = BanState.active
    expires_at: str = ""
    reason: str = ""
    banned_by: str = ""
    banned_at: str = ""

    def __post_init__(self) -> None:
        if isinstance(self.state, str):
            self.state = BanState(self.state)

    @property
    def is_banned(self) -> bool:
        return self.state is not BanState.active

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """True for a temporary ban whose expiry has passed."""
        if self.state is not BanState.temporary or not self.expires_at:
            return False
        now = now or datetime.now(timezone.utc)
        return parse_utc(self.expires_at) <= now

    def to_dict(self) -> dict:
        return {
            "state": self.state.value,
            "expires_at": self.expires_at,
            "reason": self.reason,
            "banned_by": self.banned_by,
            "banned_at": self.banned_at,
        }

    @classmethod
    def from_dict(cls, d: Optional[dict]) -> "BanStatus":
        if not d:
            return cls()
        return cls(
            state=d.get("state", BanState.active.value),
            expires_at=d.get("expires_at", ""),
            reason=d.get("reason", ""),
            banned_by=d.get("banned_by", ""),
            banned_at=d.get("banned_at", ""),
        )


@dataclass
class Account:
    """A registered community member.

    ``pseudonym`` is derived once and cached; it is empty until the
    account first publishes, votes, or reports.
    """

    id: str
    email: str
    display_name: str = ""
    role: Role = Role.member
    pseudonym: str = ""
    pseudonym_attempt: int = 0
    reported_count: int = 0
    ban: BanStatus = field(default_factory=BanStatus)
    created_at: str = ""
    version: int = 0

    def __post_init__(self) -> None:
        if not self.created_at:
            self.created_at = utcnow_iso()
        if isinstance(self.role, str):
            self.role = Role(self.role)

    @property
    def is_banned(self) -> bool:
        return self.ban.is_banned


@dataclass
class Session:
    """An authenticated transport session."""

    id: str
    account_id: str
    token: str
    created_at: str = ""
    expires_at: str = ""

    def __post_init__(self) -> None:
        if not self.created_at:
            self.created_at = utcnow_iso()
