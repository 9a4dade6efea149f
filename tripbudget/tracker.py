"""
tracker.py - trip records, persistence and access checks

Responsibilities:
 - keep every collection (users, trips, expenses, contributors, custom
   categories, activities, participants, friendships) in memory
 - persist/load the whole state to Google Sheets (preferred) or a local JSON file
 - gate every read and write on the acting user: trip owners and accepted
   participants may read a trip; only owners manage the trip itself
 - provide the helper APIs consumed by the UI and by FriendDirectory
"""

import ast
import json
import math
import os
import shutil
import tempfile
from typing import Any, Dict, List, Optional, Tuple

from tripbudget import config
from tripbudget.budget import BudgetSnapshot, aggregate
from tripbudget.categories import merge_categories, uses_date_range
from tripbudget.config import get_logger
from tripbudget.currency import ExchangeRates, is_supported
from tripbudget.errors import AccessDenied, NotAuthenticated, PersistenceError, ValidationError
from tripbudget.itinerary import parse_date, parse_time, sort_activities
from tripbudget.models import (
    ROLE_MEMBER,
    ROLE_OWNER,
    STATUS_ACCEPTED,
    STATUS_PENDING,
    Activity,
    BudgetContributor,
    CustomCategory,
    Expense,
    Friendship,
    Participant,
    Trip,
    User,
    now_iso,
)

# Optional Google Sheets backend imports are lazy/optional
try:
    import gspread
    from google.oauth2.service_account import Credentials
except ImportError:
    gspread = None
    Credentials = None

logger = get_logger(__name__)

# collection name -> record class
COLLECTIONS = {
    "users": User,
    "trips": Trip,
    "expenses": Expense,
    "contributors": BudgetContributor,
    "categories": CustomCategory,
    "activities": Activity,
    "participants": Participant,
    "friendships": Friendship,
}
# collections with tracker-assigned integer ids
ID_COLLECTIONS = tuple(name for name in COLLECTIONS if name != "users")


class GoogleSheetsBackend:
    """
    Google Sheets persistence backend.

    Data layout:
      - one worksheet per collection, first row holds the field names and every
        cell holds a JSON encoded value
      - worksheet "meta": key/value rows with the id counters
    """

    META_SHEET_NAME = "meta"
    META_HEADERS = ["key", "value"]
    SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]

    def __init__(self):
        self.available = False
        self.reason = ""
        self.sheet_id = (os.getenv("GOOGLE_SHEET_ID") or "").strip()
        self._spreadsheet = None

        if not self.sheet_id:
            self.reason = "GOOGLE_SHEET_ID is not set"
            return
        if gspread is None or Credentials is None:
            self.reason = "Google Sheets dependencies are unavailable"
            return

        try:
            creds = self._build_credentials()
            client = gspread.authorize(creds)
            self._spreadsheet = client.open_by_key(self.sheet_id)
            self.available = True
        except Exception as exc:
            self.available = False
            self.reason = f"Google Sheets init failed ({exc.__class__.__name__})"
            logger.warning("Google Sheets backend unavailable: %s", self.reason)

    def _build_credentials(self):
        service_account_json = (os.getenv("GOOGLE_SERVICE_ACCOUNT_JSON") or "").strip()
        service_account_file = (os.getenv("GOOGLE_SERVICE_ACCOUNT_FILE") or "").strip()

        if service_account_json:
            try:
                info = json.loads(service_account_json)
            except ValueError:
                # tolerate Python-dict style strings often used by mistake in env vars
                info = ast.literal_eval(service_account_json)
            if not isinstance(info, dict):
                raise ValueError("GOOGLE_SERVICE_ACCOUNT_JSON must decode to an object")
            return Credentials.from_service_account_info(info, scopes=self.SCOPES)

        if service_account_file:
            return Credentials.from_service_account_file(service_account_file, scopes=self.SCOPES)

        # Fallback to application default credentials if available.
        import google.auth
        creds, _ = google.auth.default(scopes=self.SCOPES)
        return creds

    def _worksheet(self, title: str, cols: int):
        try:
            return self._spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            return self._spreadsheet.add_worksheet(title=title, rows=200, cols=max(4, cols))

    @staticmethod
    def _ensure_sheet_size(ws, min_rows: int, min_cols: int):
        new_rows = max(ws.row_count, min_rows)
        new_cols = max(ws.col_count, min_cols)
        if new_rows != ws.row_count or new_cols != ws.col_count:
            ws.resize(rows=new_rows, cols=new_cols)

    @staticmethod
    def _decode_cell(value: Any):
        text = str(value or "")
        if not text:
            return None
        try:
            return json.loads(text)
        except ValueError:
            return text

    def _write_rows(self, title: str, rows: List[List[str]]):
        ws = self._worksheet(title, len(rows[0]))
        self._ensure_sheet_size(ws, len(rows) + 10, len(rows[0]))
        ws.clear()
        # RAW keeps user content as plain values, never spreadsheet formulas
        ws.update(range_name="A1", values=rows, value_input_option="RAW")

    def save_state(self, data: Dict[str, Any]) -> bool:
        if not self.available:
            return False
        try:
            for name, record_cls in COLLECTIONS.items():
                headers = list(record_cls.__dataclass_fields__)
                rows = [headers]
                for record in data.get(name, []) or []:
                    rows.append([json.dumps(record.get(h), ensure_ascii=False) for h in headers])
                self._write_rows(name, rows)
            meta_rows = [self.META_HEADERS]
            for name, value in sorted((data.get("next_ids") or {}).items()):
                meta_rows.append([f"next_id:{name}", str(value)])
            self._write_rows(self.META_SHEET_NAME, meta_rows)
            return True
        except Exception:
            logger.exception("Failed to save tracker state to Google Sheets")
            return False

    def load_state(self) -> Dict[str, Any]:
        if not self.available:
            return {}
        try:
            data: Dict[str, Any] = {}
            for name, record_cls in COLLECTIONS.items():
                values = self._worksheet(name, len(record_cls.__dataclass_fields__)).get_all_values() or []
                records = []
                if values:
                    headers = [str(h).strip() for h in values[0]]
                    for row in values[1:]:
                        if not any(str(c).strip() for c in row):
                            continue
                        record = {}
                        for idx, header in enumerate(headers):
                            if header:
                                record[header] = self._decode_cell(row[idx] if idx < len(row) else "")
                        records.append(record)
                data[name] = records

            next_ids: Dict[str, int] = {}
            meta_values = self._worksheet(self.META_SHEET_NAME, 2).get_all_values() or []
            for row in meta_values[1:]:
                if len(row) < 2 or not str(row[0]).startswith("next_id:"):
                    continue
                try:
                    next_ids[str(row[0])[len("next_id:"):]] = int(float(row[1]))
                except ValueError:
                    continue
            data["next_ids"] = next_ids
            return data
        except Exception:
            logger.exception("Failed to load tracker state from Google Sheets")
            return {}


class TripTracker:
    """
    In-memory store of all trip records with whole-state persistence.

    Every public method takes the acting user id first. A missing id raises
    NotAuthenticated; records the user may not see raise AccessDenied, the
    same error as for ids that do not exist.
    """

    def __init__(self, data_file: Optional[str] = None, backend: Optional[GoogleSheetsBackend] = None):
        self.data_file = data_file or config.DATA_FILE
        self.users: Dict[str, User] = {}
        self.trips: List[Trip] = []
        self.expenses: List[Expense] = []
        self.contributors: List[BudgetContributor] = []
        self.categories: List[CustomCategory] = []
        self.activities: List[Activity] = []
        self.participants: List[Participant] = []
        self.friendships: List[Friendship] = []
        self._next_ids: Dict[str, int] = {name: 1 for name in ID_COLLECTIONS}
        self._gs_backend = backend if backend is not None else GoogleSheetsBackend()
        self.load()

    # -----------------------
    # Persistence
    # -----------------------
    def uses_google_sheets(self) -> bool:
        """True when the durable Google Sheets backend is active."""
        return bool(self._gs_backend and self._gs_backend.available)

    def storage_status(self) -> Tuple[str, str]:
        """Return current storage backend and a short diagnostic message for the UI."""
        if self.uses_google_sheets():
            return "google_sheets", "Persistent storage active (Google Sheets)."
        reason = getattr(self._gs_backend, "reason", "Google Sheets not configured")
        return "local_json", f"Using local file storage: {reason}."

    def _state(self) -> Dict[str, Any]:
        return {
            "next_ids": dict(self._next_ids),
            "users": [u.to_dict() for u in self.users.values()],
            "trips": [t.to_dict() for t in self.trips],
            "expenses": [e.to_dict() for e in self.expenses],
            "contributors": [c.to_dict() for c in self.contributors],
            "categories": [c.to_dict() for c in self.categories],
            "activities": [a.to_dict() for a in self.activities],
            "participants": [p.to_dict() for p in self.participants],
            "friendships": [f.to_dict() for f in self.friendships],
        }

    def save(self):
        """
        Persist tracker state to Google Sheets when available, otherwise to the
        JSON file (written atomically: temp file, fsync, move).
        """
        data = self._state()
        if self.uses_google_sheets():
            logger.info("Saving data to Google Sheets (trips=%d, expenses=%d)", len(self.trips), len(self.expenses))
            if self._gs_backend.save_state(data):
                return
            logger.warning("Google Sheets save failed, falling back to local JSON")

        target = os.path.abspath(self.data_file)
        dirn = os.path.dirname(target)
        logger.info("Saving data to %s (trips=%d, expenses=%d)", target, len(self.trips), len(self.expenses))
        try:
            os.makedirs(dirn, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(prefix="tmp_trips_", dir=dirn, text=True)
        except OSError as exc:
            logger.exception("Failed to create data file in %s", dirn)
            raise PersistenceError(f"could not write {target}") from exc
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            shutil.move(tmp_path, target)
        except OSError as exc:
            logger.exception("Failed to save data file")
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise PersistenceError(f"could not write {target}") from exc

    def load(self):
        """
        Load state from Google Sheets when configured, otherwise from the JSON file.
        Missing data leaves the tracker empty. Id counters always exceed the
        largest stored id.
        """
        data = None
        if self.uses_google_sheets():
            logger.info("Loading data from Google Sheets")
            data = self._gs_backend.load_state() or None
            if data is None:
                logger.warning("Google Sheets load failed, falling back to local JSON")
        if data is None:
            if not os.path.exists(self.data_file):
                return
            with open(self.data_file, "r", encoding="utf-8") as f:
                data = json.load(f)

        self.users = {}
        for d in data.get("users", []) or []:
            user = User.from_dict(d)
            self.users[user.user_id] = user
        self.trips = [Trip.from_dict(d) for d in data.get("trips", []) or []]
        self.expenses = [Expense.from_dict(d) for d in data.get("expenses", []) or []]
        self.contributors = [BudgetContributor.from_dict(d) for d in data.get("contributors", []) or []]
        self.categories = [CustomCategory.from_dict(d) for d in data.get("categories", []) or []]
        self.activities = [Activity.from_dict(d) for d in data.get("activities", []) or []]
        self.participants = [Participant.from_dict(d) for d in data.get("participants", []) or []]
        self.friendships = [Friendship.from_dict(d) for d in data.get("friendships", []) or []]

        stored = data.get("next_ids", {}) or {}
        for name in ID_COLLECTIONS:
            max_id = max((int(r.id) for r in getattr(self, name)), default=0)
            try:
                next_id = int(stored.get(name, max_id + 1))
            except (TypeError, ValueError):
                next_id = max_id + 1
            self._next_ids[name] = max(next_id, max_id + 1)

    def refresh_remote(self):
        # Refresh from remote before mutating to reduce stale-session overwrites.
        if self.uses_google_sheets():
            self.load()

    def take_id(self, collection: str) -> int:
        new_id = self._next_ids[collection]
        self._next_ids[collection] = new_id + 1
        return new_id

    # -----------------------
    # Access checks
    # -----------------------
    @staticmethod
    def require_user(user_id: Optional[str]) -> str:
        user_id = (user_id or "").strip()
        if not user_id:
            raise NotAuthenticated("Unauthenticated")
        return user_id

    def _find_trip(self, trip_id: int) -> Optional[Trip]:
        return next((t for t in self.trips if t.id == trip_id and not t.is_deleted), None)

    def is_member(self, user_id: str, trip_id: int) -> bool:
        return any(
            p.trip_id == trip_id and p.user_id == user_id and p.status == STATUS_ACCEPTED
            for p in self.participants
        )

    def _trip_for(self, user_id: Optional[str], trip_id: int, owner_only: bool = False) -> Trip:
        user_id = self.require_user(user_id)
        trip = self._find_trip(trip_id)
        if trip is None:
            raise AccessDenied("Trip not found or unauthorized")
        if trip.owner_id == user_id:
            return trip
        if not owner_only and self.is_member(user_id, trip_id):
            return trip
        raise AccessDenied("Trip not found or unauthorized")

    def _record_for(self, user_id: Optional[str], records: list, record_id: int, what: str):
        """Record the user authored, or any record of a trip the user owns."""
        user_id = self.require_user(user_id)
        record = next((r for r in records if r.id == record_id), None)
        if record is None:
            raise AccessDenied(f"{what} not found or unauthorized")
        trip = self._find_trip(record.trip_id)
        if trip is None:
            raise AccessDenied(f"{what} not found or unauthorized")
        if record.user_id == user_id and (trip.owner_id == user_id or self.is_member(user_id, trip.id)):
            return record
        if trip.owner_id == user_id:
            return record
        raise AccessDenied(f"{what} not found or unauthorized")

    # -----------------------
    # Users
    # -----------------------
    def ensure_user(self, user_id: Optional[str], email: str = "", name: str = "", image_url: Optional[str] = None) -> User:
        """Create the user on first sign-in; refresh profile fields afterwards."""
        user_id = self.require_user(user_id)
        self.refresh_remote()
        user = self.users.get(user_id)
        if user is None:
            user = User(user_id=user_id, email=email or "", name=name or "User", image_url=image_url)
            self.users[user_id] = user
            logger.info("Created user %s", user_id)
        else:
            changed = False
            for key, value in (("email", email), ("name", name), ("image_url", image_url)):
                if value and getattr(user, key) != value:
                    setattr(user, key, value)
                    changed = True
            if not changed:
                return user
            user.updated_at = now_iso()
        self.save()
        return user

    def get_user(self, user_id: str) -> Optional[User]:
        return self.users.get(user_id)

    # -----------------------
    # Trips
    # -----------------------
    @staticmethod
    def _check_currency(code: str) -> str:
        code = (code or "").strip().upper()
        if not is_supported(code):
            raise ValidationError(f"Unsupported currency: {code or '(empty)'}")
        return code

    @staticmethod
    def _check_budget(value) -> float:
        try:
            amount = float(value or 0)
        except (TypeError, ValueError):
            raise ValidationError("Allocated budget must be a number")
        if not math.isfinite(amount):
            raise ValidationError("Allocated budget must be a finite number")
        if amount < 0:
            raise ValidationError("Allocated budget cannot be negative")
        return round(amount, 2)

    @staticmethod
    def _check_dates(start: Optional[str], end: Optional[str]) -> Tuple[Optional[str], Optional[str]]:
        start_d, end_d = parse_date(start), parse_date(end)
        if (start and start_d is None) or (end and end_d is None):
            raise ValidationError("Trip dates must be ISO dates (YYYY-MM-DD)")
        if start_d and end_d and end_d < start_d:
            raise ValidationError("Trip end date is before its start date")
        return (start_d.isoformat() if start_d else None, end_d.isoformat() if end_d else None)

    def create_trip(self, user_id: Optional[str], title: str, base_currency: str = "USD",
                    allocated_budget: float = 0.0, start_date: Optional[str] = None,
                    end_date: Optional[str] = None) -> Trip:
        """Create a trip; the creator is recorded as its accepted owner participant."""
        user_id = self.require_user(user_id)
        title = (title or "").strip()
        if not title:
            raise ValidationError("Trip title is required")
        start_date, end_date = self._check_dates(start_date, end_date)
        allocated_budget = self._check_budget(allocated_budget)
        base_currency = self._check_currency(base_currency)
        self.refresh_remote()
        trip = Trip(
            id=self.take_id("trips"),
            owner_id=user_id,
            title=title,
            allocated_budget=allocated_budget,
            base_currency=base_currency,
            start_date=start_date,
            end_date=end_date,
        )
        self.trips.append(trip)
        self.participants.append(Participant(
            id=self.take_id("participants"), trip_id=trip.id, user_id=user_id,
            role=ROLE_OWNER, status=STATUS_ACCEPTED,
        ))
        self.save()
        logger.info("Created trip id=%s for user %s", trip.id, user_id)
        return trip

    def update_trip(self, user_id: Optional[str], trip_id: int, **kwargs) -> Trip:
        """
        Update trip fields (owner only). Supported kwargs:
        title, allocated_budget, base_currency, start_date, end_date.
        """
        self.refresh_remote()
        trip = self._trip_for(user_id, trip_id, owner_only=True)
        if "title" in kwargs:
            title = (kwargs["title"] or "").strip()
            if not title:
                raise ValidationError("Trip title is required")
            trip.title = title
        if "allocated_budget" in kwargs:
            trip.allocated_budget = self._check_budget(kwargs["allocated_budget"])
        if "base_currency" in kwargs:
            trip.base_currency = self._check_currency(kwargs["base_currency"])
        if "start_date" in kwargs or "end_date" in kwargs:
            trip.start_date, trip.end_date = self._check_dates(
                kwargs.get("start_date", trip.start_date), kwargs.get("end_date", trip.end_date),
            )
        trip.updated_at = now_iso()
        self.save()
        return trip

    def delete_trip(self, user_id: Optional[str], trip_id: int) -> Trip:
        """Soft delete: the trip is flagged and disappears from every listing."""
        self.refresh_remote()
        trip = self._trip_for(user_id, trip_id, owner_only=True)
        trip.is_deleted = True
        trip.deleted_at = trip.updated_at = now_iso()
        self.save()
        logger.info("Deleted trip id=%s", trip_id)
        return trip

    def get_trip(self, user_id: Optional[str], trip_id: int) -> Trip:
        return self._trip_for(user_id, trip_id)

    def list_trips(self, user_id: Optional[str]) -> List[Trip]:
        """Trips the user owns or has joined, newest first."""
        user_id = self.require_user(user_id)
        visible = [
            t for t in self.trips
            if not t.is_deleted and (t.owner_id == user_id or self.is_member(user_id, t.id))
        ]
        return sorted(visible, key=lambda t: (t.created_at, t.id), reverse=True)

    # -----------------------
    # Expenses
    # -----------------------
    def _check_expense(self, name: str, amount, currency: str, category: str,
                       date: str, date_to: Optional[str]) -> Dict[str, Any]:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Expense name is required")
        try:
            amount = float(amount)
        except (TypeError, ValueError):
            raise ValidationError("Amount must be a number")
        if not math.isfinite(amount):
            raise ValidationError("Amount must be a finite number")
        if amount < 0:
            raise ValidationError("Amount cannot be negative")
        category = (category or "other").strip() or "other"
        date_d = parse_date(date)
        if date_d is None:
            raise ValidationError("Expense date must be an ISO date (YYYY-MM-DD)")
        date_to_iso = None
        if date_to:
            if not uses_date_range(category):
                raise ValidationError("Only hotel and flight expenses can span several dates")
            date_to_d = parse_date(date_to)
            if date_to_d is None or date_to_d < date_d:
                raise ValidationError("End date must be an ISO date on or after the start date")
            date_to_iso = date_to_d.isoformat()
        return {
            "name": name,
            "amount": round(amount, 2),
            "currency": self._check_currency(currency),
            "category": category,
            "date": date_d.isoformat(),
            "date_to": date_to_iso,
        }

    def add_expense(self, user_id: Optional[str], trip_id: int, name: str, amount: float,
                    currency: str, category: str = "other", date: str = "",
                    date_to: Optional[str] = None, is_planned: bool = False) -> Expense:
        self.refresh_remote()
        self._trip_for(user_id, trip_id)
        fields = self._check_expense(name, amount, currency, category, date, date_to)
        exp = Expense(id=self.take_id("expenses"), trip_id=trip_id, user_id=user_id.strip(),
                      is_planned=bool(is_planned), **fields)
        self.expenses.append(exp)
        self.save()
        return exp

    def update_expense(self, user_id: Optional[str], expense_id: int, **kwargs) -> Expense:
        """
        Update an existing expense. Supported kwargs:
        name, amount, currency, category, date, date_to, is_planned.
        """
        self.refresh_remote()
        exp = self._record_for(user_id, self.expenses, expense_id, "Expense")
        merged = {
            key: kwargs.get(key, getattr(exp, key))
            for key in ("name", "amount", "currency", "category", "date", "date_to")
        }
        for key, value in self._check_expense(**merged).items():
            setattr(exp, key, value)
        if "is_planned" in kwargs:
            exp.is_planned = bool(kwargs["is_planned"])
        exp.updated_at = now_iso()
        self.save()
        return exp

    def delete_expense(self, user_id: Optional[str], expense_id: int) -> None:
        self.refresh_remote()
        exp = self._record_for(user_id, self.expenses, expense_id, "Expense")
        self.expenses.remove(exp)
        self.save()
        logger.info("Deleted expense id=%s (category=%s, amount=%s)", exp.id, exp.category, exp.amount)

    def list_expenses(self, user_id: Optional[str], trip_id: int, planned: Optional[bool] = None) -> List[Expense]:
        """Expenses of a trip, most recent date first; optionally only planned/actual."""
        self._trip_for(user_id, trip_id)
        out = [e for e in self.expenses if e.trip_id == trip_id]
        if planned is not None:
            out = [e for e in out if e.is_planned == planned]
        return sorted(out, key=lambda e: (e.date, e.id), reverse=True)

    def budget_snapshot(self, user_id: Optional[str], trip_id: int, rates: Optional[ExchangeRates]) -> BudgetSnapshot:
        """Aggregate the trip's expenses in the trip base currency."""
        trip = self._trip_for(user_id, trip_id)
        return aggregate(self.list_expenses(user_id, trip_id), trip.allocated_budget, rates, trip.base_currency)

    # -----------------------
    # Budget contributors
    # -----------------------
    def add_contributor(self, user_id: Optional[str], trip_id: int, name: str, amount: float) -> BudgetContributor:
        self.refresh_remote()
        self._trip_for(user_id, trip_id, owner_only=True)
        name = (name or "").strip()
        if not name:
            raise ValidationError("Contributor name is required")
        amount = self._check_budget(amount)
        contributor = BudgetContributor(
            id=self.take_id("contributors"), trip_id=trip_id, user_id=user_id.strip(),
            name=name, amount=amount,
        )
        self.contributors.append(contributor)
        self.save()
        return contributor

    def delete_contributor(self, user_id: Optional[str], contributor_id: int) -> None:
        self.refresh_remote()
        user_id = self.require_user(user_id)
        contributor = next((c for c in self.contributors if c.id == contributor_id), None)
        if contributor is None:
            raise AccessDenied("Contributor not found or unauthorized")
        self._trip_for(user_id, contributor.trip_id, owner_only=True)
        self.contributors.remove(contributor)
        self.save()

    def list_contributors(self, user_id: Optional[str], trip_id: int) -> List[BudgetContributor]:
        self._trip_for(user_id, trip_id)
        return [c for c in self.contributors if c.trip_id == trip_id]

    # -----------------------
    # Categories
    # -----------------------
    def add_custom_category(self, user_id: Optional[str], trip_id: int, name: str) -> Optional[CustomCategory]:
        """
        Add a custom category to a trip.
        Returns None when the name already exists (predefined or custom).
        """
        self.refresh_remote()
        self._trip_for(user_id, trip_id)
        name = (name or "").strip()
        if not name:
            raise ValidationError("Category name is required")
        existing = {c.lower() for c in self.list_categories(user_id, trip_id)}
        if name.lower() in existing:
            return None
        category = CustomCategory(id=self.take_id("categories"), trip_id=trip_id, user_id=user_id.strip(), name=name)
        self.categories.append(category)
        self.save()
        return category

    def list_categories(self, user_id: Optional[str], trip_id: int) -> List[str]:
        """Predefined category values followed by the trip's custom names."""
        self._trip_for(user_id, trip_id)
        return merge_categories([c.name for c in self.categories if c.trip_id == trip_id])

    # -----------------------
    # Activities
    # -----------------------
    def _check_activity(self, trip: Trip, title: str, day_index, time: Optional[str]) -> Dict[str, Any]:
        title = (title or "").strip()
        if not title:
            raise ValidationError("Activity title is required")
        try:
            day_index = int(day_index)
        except (TypeError, ValueError):
            raise ValidationError("Day must be a number")
        if day_index < 1:
            raise ValidationError("Days are counted from 1")
        start_d, end_d = parse_date(trip.start_date), parse_date(trip.end_date)
        if start_d and end_d and day_index > (end_d - start_d).days + 1:
            raise ValidationError("Day is after the end of the trip")
        if time and parse_time(time) is None:
            raise ValidationError("Time must be HH:MM")
        return {"title": title, "day_index": day_index, "time": parse_time(time).strftime("%H:%M") if time else None}

    def add_activity(self, user_id: Optional[str], trip_id: int, title: str, day_index: int,
                     time: Optional[str] = None, description: Optional[str] = None,
                     notes: Optional[str] = None, category: Optional[str] = None,
                     remind_me: bool = False) -> Activity:
        self.refresh_remote()
        trip = self._trip_for(user_id, trip_id)
        checked = self._check_activity(trip, title, day_index, time)
        activity = Activity(
            id=self.take_id("activities"), trip_id=trip_id, user_id=user_id.strip(),
            description=description, notes=notes, category=category, remind_me=bool(remind_me),
            **checked,
        )
        self.activities.append(activity)
        self.save()
        return activity

    def update_activity(self, user_id: Optional[str], activity_id: int, **kwargs) -> Activity:
        """
        Update an activity. Supported kwargs:
        title, description, time, day_index, notes, category, completed, remind_me.
        """
        self.refresh_remote()
        activity = self._record_for(user_id, self.activities, activity_id, "Activity")
        trip = self._find_trip(activity.trip_id)
        checked = self._check_activity(
            trip,
            kwargs.get("title", activity.title),
            kwargs.get("day_index", activity.day_index),
            kwargs.get("time", activity.time),
        )
        for key, value in checked.items():
            setattr(activity, key, value)
        for key in ("description", "notes", "category"):
            if key in kwargs:
                setattr(activity, key, kwargs[key])
        for key in ("completed", "remind_me"):
            if key in kwargs:
                setattr(activity, key, bool(kwargs[key]))
        activity.updated_at = now_iso()
        self.save()
        return activity

    def delete_activity(self, user_id: Optional[str], activity_id: int) -> None:
        self.refresh_remote()
        activity = self._record_for(user_id, self.activities, activity_id, "Activity")
        self.activities.remove(activity)
        self.save()

    def list_activities(self, user_id: Optional[str], trip_id: int, day_index: Optional[int] = None) -> List[Activity]:
        """Activities of a trip ordered by day then time (untimed last)."""
        self._trip_for(user_id, trip_id)
        out = [a for a in self.activities if a.trip_id == trip_id]
        if day_index is not None:
            out = [a for a in out if a.day_index == day_index]
        return sort_activities(out)

    # -----------------------
    # Participants
    # -----------------------
    def are_friends(self, a: str, b: str) -> bool:
        return any(
            f.status == STATUS_ACCEPTED and {f.user_id, f.friend_id} == {a, b}
            for f in self.friendships
        )

    def invite_participant(self, user_id: Optional[str], trip_id: int, friend_id: str) -> Participant:
        """Invite an accepted friend to a trip (owner only); the invite starts pending."""
        self.refresh_remote()
        trip = self._trip_for(user_id, trip_id, owner_only=True)
        friend_id = (friend_id or "").strip()
        if friend_id == trip.owner_id:
            raise ValidationError("The trip owner is already a participant")
        if not self.are_friends(trip.owner_id, friend_id):
            raise ValidationError("Only friends can be invited to a trip")
        if any(p.trip_id == trip_id and p.user_id == friend_id for p in self.participants):
            raise ValidationError("User is already invited to this trip")
        participant = Participant(
            id=self.take_id("participants"), trip_id=trip_id, user_id=friend_id,
            role=ROLE_MEMBER, status=STATUS_PENDING, invited_by=trip.owner_id,
        )
        self.participants.append(participant)
        self.save()
        logger.info("Invited %s to trip id=%s", friend_id, trip_id)
        return participant

    def respond_to_invite(self, user_id: Optional[str], trip_id: int, accept: bool) -> Optional[Participant]:
        """Accept (returns the participant) or decline (returns None) a pending invite."""
        user_id = self.require_user(user_id)
        self.refresh_remote()
        invite = next(
            (p for p in self.participants
             if p.trip_id == trip_id and p.user_id == user_id and p.status == STATUS_PENDING),
            None,
        )
        if invite is None or self._find_trip(trip_id) is None:
            raise AccessDenied("Invitation not found")
        if accept:
            invite.status = STATUS_ACCEPTED
        else:
            self.participants.remove(invite)
            invite = None
        self.save()
        return invite

    def remove_participant(self, user_id: Optional[str], trip_id: int, member_id: str) -> None:
        """Owner removes a member, or a member leaves the trip."""
        user_id = self.require_user(user_id)
        self.refresh_remote()
        trip = self._trip_for(user_id, trip_id, owner_only=(user_id != member_id))
        if member_id == trip.owner_id:
            raise ValidationError("The trip owner cannot be removed")
        participant = next((p for p in self.participants if p.trip_id == trip_id and p.user_id == member_id), None)
        if participant is None:
            raise AccessDenied("Participant not found")
        self.participants.remove(participant)
        self.save()

    def list_participants(self, user_id: Optional[str], trip_id: int) -> List[Dict[str, Any]]:
        """Participants of a trip enriched with the user's name and email."""
        self._trip_for(user_id, trip_id)
        out = []
        for p in self.participants:
            if p.trip_id != trip_id:
                continue
            user = self.users.get(p.user_id)
            row = p.to_dict()
            row["name"] = user.name if user else "Unknown"
            row["email"] = user.email if user else ""
            row["image_url"] = user.image_url if user else None
            out.append(row)
        return out

    def pending_invites(self, user_id: Optional[str]) -> List[Trip]:
        user_id = self.require_user(user_id)
        trip_ids = {p.trip_id for p in self.participants if p.user_id == user_id and p.status == STATUS_PENDING}
        return [t for t in self.trips if t.id in trip_ids and not t.is_deleted]
