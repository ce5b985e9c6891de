import logging
import datetime as dt
from typing import List

from fastapi import APIRouter, Depends, Query, Response, status
from pymongo.errors import PyMongoError

from bookings import list_bookings
from database import get_db, serialize
from premium_teams import (
    CreateCoachPayload,
    CreateProgramPayload,
    create_coach,
    create_program,
    list_coaches,
    list_packages,
    list_programs,
)
from reports import (
    BookingFilter,
    DashboardStats,
    SortDirection,
    SortField,
    booking_counts,
    bookings_to_csv,
    compute_stats,
    export_filename,
    filter_bookings,
    search_users,
    sort_users,
)
from schemas import BookingOut, CamelModel, CoachOut, ProgramOut, UserOut
from security import Identity, get_current_identity, require_admin
from users import UserPatch, public_user, update_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


class AdminUserRow(UserOut):
    booking_count: int = 0


class UserStatusPayload(CamelModel):
    active: bool


def _safe_load(db, collection: str) -> List[dict]:
    """Dashboard reads degrade to an empty collection instead of failing the page."""
    try:
        return [serialize(doc) for doc in db[collection].find({})]
    except PyMongoError:
        logger.exception("Could not load %s for the admin dashboard", collection)
        return []


def _safe_bookings(db) -> List[dict]:
    try:
        return [b.model_dump() for b in list_bookings(db)]
    except PyMongoError:
        logger.exception("Could not load bookings for the admin dashboard")
        return []


# ----------------------------------------------------------------------------
# Dashboard
# ----------------------------------------------------------------------------
@router.get("/summary", response_model=DashboardStats)
def admin_summary(_admin: Identity = Depends(require_admin), db=Depends(get_db)):
    users = _safe_load(db, "user")
    bookings = _safe_load(db, "booking")
    teams = _safe_load(db, "premium_team")
    return compute_stats(users, bookings, teams, dt.date.today())


@router.get("/users", response_model=List[AdminUserRow])
def admin_users(
    search: str = "",
    sort: SortField = "name",
    direction: SortDirection = "asc",
    _admin: Identity = Depends(require_admin),
    db=Depends(get_db),
):
    users = _safe_load(db, "user")
    bookings = _safe_load(db, "booking")
    counts = booking_counts(bookings)
    rows = sort_users(search_users(users, search), bookings, sort, direction)
    return [
        AdminUserRow(**public_user(u).model_dump(), booking_count=counts.get(u["id"], 0))
        for u in rows
    ]


@router.patch("/users/{user_id}/status", response_model=UserOut)
def admin_user_status(
    user_id: str,
    payload: UserStatusPayload,
    admin: Identity = Depends(require_admin),
    db=Depends(get_db),
):
    user = update_user(db, user_id, UserPatch(active=payload.active), admin)
    logger.info("User %s set active=%s by %s", user_id, payload.active, admin.id)
    return user


@router.get("/bookings", response_model=List[BookingOut])
def admin_bookings(
    booking_filter: BookingFilter = Query("all", alias="filter"),
    _admin: Identity = Depends(require_admin),
    db=Depends(get_db),
):
    bookings = _safe_bookings(db)
    return filter_bookings(bookings, booking_filter, dt.date.today())


@router.get("/bookings/export")
def export_bookings(
    booking_filter: BookingFilter = Query("all", alias="filter"),
    _admin: Identity = Depends(require_admin),
    db=Depends(get_db),
):
    today = dt.date.today()
    bookings = filter_bookings(_safe_bookings(db), booking_filter, today)
    return Response(
        content=bookings_to_csv(bookings),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{export_filename(today)}"'},
    )


# ----------------------------------------------------------------------------
# Coaches & programs
# ----------------------------------------------------------------------------
@router.post("/coaches", response_model=CoachOut, status_code=status.HTTP_201_CREATED)
def admin_create_coach(payload: CreateCoachPayload, _admin: Identity = Depends(require_admin), db=Depends(get_db)):
    return create_coach(db, payload)


@router.get("/coaches", response_model=List[CoachOut])
def admin_list_coaches(_identity: Identity = Depends(get_current_identity), db=Depends(get_db)):
    return list_coaches(db)


@router.post("/programs", response_model=ProgramOut, status_code=status.HTTP_201_CREATED)
def admin_create_program(payload: CreateProgramPayload, _admin: Identity = Depends(require_admin), db=Depends(get_db)):
    return create_program(db, payload)


@router.get("/programs", response_model=List[ProgramOut])
def admin_list_programs(_identity: Identity = Depends(get_current_identity), db=Depends(get_db)):
    return list_programs(db)


@router.get("/programs/packages", response_model=List[str])
def admin_list_packages(_admin: Identity = Depends(require_admin), db=Depends(get_db)):
    return list_packages(db)
