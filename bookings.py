import logging
import datetime as dt
from typing import Iterable, List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

import config
from database import create_document, get_db, get_document, serialize, to_object_id, update_document
from errors import Forbidden, MissingFields, SlotConflict, UnknownBooking, UnknownUser, ValidationError
from schemas import Booking as BookingSchema, BookingOut, BookingStatus, CamelModel
from security import Identity, ensure_self_or_admin, get_current_identity, require_admin

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bookings", tags=["bookings"])

TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"
REQUIRED_FIELDS = ("ground_id", "ground_name", "date", "start_time", "end_time", "price")


# ----------------------------------------------------------------------------
# Payloads
# ----------------------------------------------------------------------------
class CreateBookingPayload(CamelModel):
    # All optional so that absent fields surface as MissingFields, not a schema error.
    ground_id: Optional[str] = None
    ground_name: Optional[str] = None
    date: Optional[dt.date] = None
    start_time: Optional[str] = Field(None, pattern=TIME_PATTERN)
    end_time: Optional[str] = Field(None, pattern=TIME_PATTERN)
    price: Optional[float] = None
    status: Optional[BookingStatus] = None
    payment_id: Optional[str] = None

    @field_validator("*", mode="before")
    @classmethod
    def blank_to_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value


class BookingPatch(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    user_id: Optional[str] = None
    ground_id: Optional[str] = Field(None, min_length=1)
    ground_name: Optional[str] = Field(None, min_length=1)
    date: Optional[dt.date] = None
    start_time: Optional[str] = Field(None, pattern=TIME_PATTERN)
    end_time: Optional[str] = Field(None, pattern=TIME_PATTERN)
    price: Optional[float] = Field(None, gt=0)
    status: Optional[BookingStatus] = None
    payment_id: Optional[str] = None


# ----------------------------------------------------------------------------
# Helpers
# ----------------------------------------------------------------------------
def _as_date(value) -> dt.date:
    if isinstance(value, dt.date):
        return value
    return dt.date.fromisoformat(str(value))


def can_cancel(booking: dict, today: dt.date) -> bool:
    """A booking may be cancelled by its owner only before its day."""
    if booking.get("status") == "cancelled":
        return False
    return _as_date(booking["date"]) > today


def overlaps(a_start, a_end, b_start, b_end):
    return not (a_end <= b_start or b_end <= a_start)


def find_conflict(db, ground_id: str, day: str, start_time: str, end_time: str, exclude_id: Optional[str] = None):
    existing = db["booking"].find({
        "ground_id": ground_id,
        "date": day,
        "status": {"$ne": "cancelled"},
    })
    for b in existing:
        if exclude_id and str(b["_id"]) == exclude_id:
            continue
        if overlaps(start_time, end_time, b.get("start_time"), b.get("end_time")):
            return serialize(b)
    return None


def user_names(db, user_ids: Iterable[str]) -> dict:
    oids = [oid for oid in (to_object_id(uid) for uid in set(user_ids)) if oid is not None]
    if not oids:
        return {}
    return {str(u["_id"]): u.get("name") for u in db["user"].find({"_id": {"$in": oids}})}


def enrich(bookings: List[dict], names: dict, today: dt.date) -> List[BookingOut]:
    enriched = []
    for b in bookings:
        name = names.get(b.get("user_id")) or b.get("user_name") or "Unknown User"
        enriched.append(BookingOut(**{**b, "user_name": name, "cancellable": can_cancel(b, today)}))
    return enriched


# ----------------------------------------------------------------------------
# Ledger
# ----------------------------------------------------------------------------
def create_booking(db, user_id: str, payload: CreateBookingPayload) -> BookingOut:
    missing = [to_camel(f) for f in REQUIRED_FIELDS if getattr(payload, f) is None]
    if missing:
        raise MissingFields(missing)
    if payload.price <= 0:
        raise ValidationError("price must be greater than zero")
    if payload.start_time >= payload.end_time:
        raise ValidationError("startTime must be before endTime")

    user = get_document(db, "user", user_id)
    if user is None:
        raise UnknownUser()

    day = payload.date.isoformat()
    if config.BOOKING_CONFLICT_POLICY == "reject":
        clash = find_conflict(db, payload.ground_id, day, payload.start_time, payload.end_time)
        if clash:
            logger.info(
                "Slot conflict on %s %s %s with booking %s",
                payload.ground_id, day, payload.start_time, clash["id"],
            )
            raise SlotConflict()

    booking = BookingSchema(
        user_id=user_id,
        user_name=user.get("name"),
        ground_id=payload.ground_id,
        ground_name=payload.ground_name,
        date=payload.date,
        start_time=payload.start_time,
        end_time=payload.end_time,
        price=payload.price,
        status=payload.status or "confirmed",
        payment_id=payload.payment_id,
    )
    doc = create_document(db, "booking", booking)
    logger.info("Booking %s created for user %s on %s %s", doc["id"], user_id, day, payload.start_time)
    return enrich([doc], {user_id: user.get("name")}, dt.date.today())[0]


def list_bookings(db, filter_dict: Optional[dict] = None) -> List[BookingOut]:
    docs = [serialize(b) for b in db["booking"].find(filter_dict or {})]
    return enrich(docs, user_names(db, (b["user_id"] for b in docs)), dt.date.today())


def list_bookings_by_user(db, user_id: str) -> List[BookingOut]:
    return list_bookings(db, {"user_id": user_id})


def update_booking(db, booking_id: str, patch: BookingPatch, identity: Identity, today: Optional[dt.date] = None) -> BookingOut:
    today = today or dt.date.today()
    booking = get_document(db, "booking", booking_id)
    if booking is None:
        raise UnknownBooking()

    changes = {k: v for k, v in patch.model_dump(mode="json", exclude_unset=True).items() if v is not None}
    if not identity.is_admin:
        if booking["user_id"] != identity.id:
            raise Forbidden("Not allowed to modify this booking")
        if set(changes) != {"status"} or changes["status"] != "cancelled":
            raise Forbidden("Only cancellation is allowed")
        if not can_cancel(booking, today):
            raise ValidationError("Only upcoming bookings can be cancelled")

    if "user_id" in changes:
        user = get_document(db, "user", changes["user_id"])
        if user is None:
            raise UnknownUser()
        changes["user_name"] = user.get("name")

    merged = {**booking, **changes}
    if merged["start_time"] >= merged["end_time"]:
        raise ValidationError("startTime must be before endTime")
    rescheduled = {"ground_id", "date", "start_time", "end_time"} & set(changes)
    if rescheduled and merged.get("status") != "cancelled" and config.BOOKING_CONFLICT_POLICY == "reject":
        if find_conflict(db, merged["ground_id"], str(merged["date"]), merged["start_time"], merged["end_time"], exclude_id=booking_id):
            raise SlotConflict()

    doc = booking
    if changes:
        doc = update_document(db, "booking", booking_id, changes)
        if doc is None:
            raise UnknownBooking()
    if changes.get("status") == "cancelled":
        logger.info("Booking %s cancelled by %s", booking_id, identity.id)
    return enrich([doc], user_names(db, [doc["user_id"]]), today)[0]


# ----------------------------------------------------------------------------
# Endpoints
# ----------------------------------------------------------------------------
@router.post("", response_model=BookingOut, status_code=status.HTTP_201_CREATED)
def create_booking_route(
    payload: CreateBookingPayload,
    identity: Identity = Depends(get_current_identity),
    db=Depends(get_db),
):
    # owner comes from the token, never from the body
    return create_booking(db, identity.id, payload)


@router.get("", response_model=List[BookingOut])
def list_bookings_route(_admin: Identity = Depends(require_admin), db=Depends(get_db)):
    return list_bookings(db)


@router.get("/user/{user_id}", response_model=List[BookingOut])
def list_user_bookings_route(
    user_id: str,
    identity: Identity = Depends(get_current_identity),
    db=Depends(get_db),
):
    ensure_self_or_admin(identity, user_id)
    return list_bookings_by_user(db, user_id)


@router.patch("/{booking_id}", response_model=BookingOut)
def update_booking_route(
    booking_id: str,
    payload: BookingPatch,
    identity: Identity = Depends(get_current_identity),
    db=Depends(get_db),
):
    return update_booking(db, booking_id, payload, identity)
