"""
models.py - record definitions

Every record is a dataclass serialized to/from a plain dict so the tracker can
persist it as JSON (or as a worksheet row). Timestamps are ISO strings, dates
are ISO "YYYY-MM-DD" strings.

Users are identified by the opaque id handed out by the identity provider;
every other record carries an integer id assigned by the tracker.
"""

import datetime
from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, Optional

ROLE_OWNER = "owner"
ROLE_MEMBER = "member"

STATUS_PENDING = "pending"
STATUS_ACCEPTED = "accepted"
STATUS_BLOCKED = "blocked"


def now_iso() -> str:
    return datetime.datetime.now(datetime.timezone.utc).isoformat(timespec="seconds")


class _Record:
    """Mixin providing dict conversion for the dataclasses below."""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]):
        # ignore unknown keys so older/newer data files still load
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in d.items() if k in known})


@dataclass
class User(_Record):
    user_id: str
    email: str = ""
    name: str = "User"
    image_url: Optional[str] = None
    created_at: str = field(default_factory=now_iso)
    updated_at: str = field(default_factory=now_iso)


@dataclass
class Trip(_Record):
    id: int
    owner_id: str
    title: str
    allocated_budget: float = 0.0
    base_currency: str = "USD"
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    is_deleted: bool = False
    deleted_at: Optional[str] = None
    created_at: str = field(default_factory=now_iso)
    updated_at: str = field(default_factory=now_iso)


@dataclass
class Expense(_Record):
    """
    A single expense entry of a trip.

    Fields:
      - amount: total in `currency`
      - category: predefined category value or a trip custom category name
      - date / date_to: ISO dates; date_to only for hotel and flight entries
      - is_planned: budgeted but not yet spent
    """
    id: int
    trip_id: int
    user_id: str
    name: str
    amount: float
    currency: str
    category: str = "other"
    date: str = ""
    date_to: Optional[str] = None
    is_planned: bool = False
    created_at: str = field(default_factory=now_iso)
    updated_at: str = field(default_factory=now_iso)


@dataclass
class BudgetContributor(_Record):
    id: int
    trip_id: int
    user_id: str
    name: str
    amount: float = 0.0
    created_at: str = field(default_factory=now_iso)


@dataclass
class CustomCategory(_Record):
    id: int
    trip_id: int
    user_id: str
    name: str
    created_at: str = field(default_factory=now_iso)


@dataclass
class Activity(_Record):
    """An itinerary item on a given (1-based) day of the trip; time is "HH:MM"."""
    id: int
    trip_id: int
    user_id: str
    title: str
    day_index: int = 1
    description: Optional[str] = None
    time: Optional[str] = None
    notes: Optional[str] = None
    category: Optional[str] = None
    completed: bool = False
    remind_me: bool = False
    created_at: str = field(default_factory=now_iso)
    updated_at: str = field(default_factory=now_iso)


@dataclass
class Participant(_Record):
    id: int
    trip_id: int
    user_id: str
    role: str = ROLE_MEMBER
    status: str = STATUS_PENDING
    invited_by: Optional[str] = None
    created_at: str = field(default_factory=now_iso)


@dataclass
class Friendship(_Record):
    """user_id sent the request (or blocked), friend_id received it."""
    id: int
    user_id: str
    friend_id: str
    status: str = STATUS_PENDING
    created_at: str = field(default_factory=now_iso)
    updated_at: str = field(default_factory=now_iso)
