"""
Admin dashboard aggregation.

Everything here is a pure function over already-loaded users, bookings and
premium teams (plain dicts as stored, snake_case keys). The admin routes load
the collections and hand them over; tests call these functions directly with a
fixed ``today``.
"""

import datetime as dt
import unicodedata
from typing import Dict, Iterable, List, Literal, Tuple

from schemas import CamelModel

BookingFilter = Literal["all", "today", "thisWeek", "pending", "confirmed"]
SortField = Literal["name", "email", "bookings"]
SortDirection = Literal["asc", "desc"]

WEEK = dt.timedelta(days=7)
MONTH = dt.timedelta(days=30)

CSV_HEADERS = ["ID", "User", "Ground", "Date", "Start Time", "End Time", "Price", "Status"]


class DashboardStats(CamelModel):
    total_users: int = 0
    active_users: int = 0
    total_bookings: int = 0
    pending_bookings: int = 0
    revenue_weekly: float = 0
    revenue_monthly: float = 0
    premium_teams: int = 0
    premium_players: int = 0


def _booking_date(booking: dict):
    value = booking.get("date")
    if not value:
        return None
    if isinstance(value, dt.date):
        return value
    try:
        return dt.date.fromisoformat(str(value)[:10])
    except ValueError:
        return None


def revenue_since(bookings: Iterable[dict], since: dt.date) -> float:
    total = 0.0
    for b in bookings:
        day = _booking_date(b)
        if day is None or b.get("status") == "cancelled":
            continue
        if day >= since:
            total += float(b.get("price") or 0)
    return total


def compute_stats(users: List[dict], bookings: List[dict], teams: List[dict], today: dt.date) -> DashboardStats:
    return DashboardStats(
        total_users=len(users),
        active_users=sum(1 for u in users if u.get("active", True)),
        total_bookings=len(bookings),
        pending_bookings=sum(1 for b in bookings if b.get("status") == "pending"),
        revenue_weekly=revenue_since(bookings, today - WEEK),
        revenue_monthly=revenue_since(bookings, today - MONTH),
        premium_teams=len(teams),
        premium_players=sum(len(t.get("players") or []) for t in teams),
    )


# ----------------------------------------------------------------------------
# Filtering & sorting
# ----------------------------------------------------------------------------
def booking_matches(booking: dict, kind: BookingFilter, today: dt.date) -> bool:
    if kind == "all":
        return True
    if kind in ("pending", "confirmed"):
        return booking.get("status") == kind
    # date filters never match a booking without a usable date
    day = _booking_date(booking)
    if day is None:
        return False
    if kind == "today":
        return day == today
    return today <= day <= today + WEEK


def filter_bookings(bookings: Iterable[dict], kind: BookingFilter, today: dt.date) -> List[dict]:
    return [b for b in bookings if booking_matches(b, kind, today)]


def search_users(users: Iterable[dict], term: str) -> List[dict]:
    term = (term or "").lower()
    if not term:
        return list(users)
    return [
        u for u in users
        if term in (u.get("name") or "").lower() or term in (u.get("email") or "").lower()
    ]


def booking_counts(bookings: Iterable[dict]) -> Dict[str, int]:
    counts: Dict[str, int] = {}
    for b in bookings:
        counts[b.get("user_id")] = counts.get(b.get("user_id"), 0) + 1
    return counts


def toggle_sort(current_field: SortField, current_direction: SortDirection, field: SortField) -> Tuple[SortField, SortDirection]:
    """Clicking the active column flips its direction; a new column starts ascending."""
    if field == current_field:
        return field, "desc" if current_direction == "asc" else "asc"
    return field, "asc"


def collation_key(value) -> str:
    """Case- and accent-insensitive sort key, so "Émile" sorts between "Adam" and "Zoe"."""
    decomposed = unicodedata.normalize("NFKD", str(value or ""))
    return "".join(c for c in decomposed if not unicodedata.combining(c)).casefold()


def sort_users(users: Iterable[dict], bookings: Iterable[dict], field: SortField, direction: SortDirection) -> List[dict]:
    reverse = direction == "desc"
    if field == "bookings":
        counts = booking_counts(bookings)
        return sorted(users, key=lambda u: counts.get(u.get("id"), 0), reverse=reverse)
    return sorted(users, key=lambda u: collation_key(u.get(field)), reverse=reverse)


# ----------------------------------------------------------------------------
# CSV export
# ----------------------------------------------------------------------------
def _format_price(price) -> str:
    price = float(price or 0)
    return str(int(price)) if price.is_integer() else str(price)


def _csv_field(value) -> str:
    # Only commas are escaped; embedded quotes pass through untouched.
    text = "" if value is None else str(value)
    return f'"{text}"' if "," in text else text


def bookings_to_csv(bookings: Iterable[dict]) -> str:
    lines = [",".join(CSV_HEADERS)]
    for b in bookings:
        row = [
            b.get("id"),
            b.get("user_name") or "Unknown User",
            b.get("ground_name"),
            b.get("date"),
            b.get("start_time"),
            b.get("end_time"),
            _format_price(b.get("price")),
            b.get("status"),
        ]
        lines.append(",".join(_csv_field(v) for v in row))
    return "\n".join(lines) + "\n"


def export_filename(today: dt.date) -> str:
    return f"bookings-export-{today.isoformat()}.csv"
