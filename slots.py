"""
Grounds and bookable time slots.

Slots are derived data: they are regenerated for every request from the
configured opening hours and are never stored. Generation knows nothing about
existing bookings; mark_booked is the separate step that flags taken slots.
"""

import logging
from datetime import date, timedelta
from typing import Iterable, List, Optional

from fastapi import APIRouter, Depends, Query

from bookings import overlaps
from config import (
    BOOKING_WINDOW_DAYS,
    SLOT_CLOSE_HOUR,
    SLOT_INTERVAL_HOURS,
    SLOT_OPEN_HOUR,
    SLOT_PRICE,
)
from database import get_db, get_optional_db
from schemas import BookingDay, CamelModel, TimeSlot

logger = logging.getLogger(__name__)

router = APIRouter(tags=["grounds"])


class Ground(CamelModel):
    id: str
    name: str
    description: str
    facilities: List[str] = []


GROUNDS = [
    Ground(
        id="ground1",
        name="Premium Stadium",
        description="Professional-grade stadium with full amenities and seating for spectators.",
        facilities=["Floodlights", "Changing Rooms", "Spectator Seating", "Parking"],
    ),
    Ground(
        id="ground2",
        name="Training Ground",
        description="Dedicated training pitch ideal for team practice and skill development.",
        facilities=["Training Equipment", "Floodlights", "Basic Changing Facilities"],
    ),
    Ground(
        id="ground3",
        name="Community Pitch",
        description="Local ground perfect for casual games and community events.",
        facilities=["Basic Amenities", "Parking", "Water Fountains"],
    ),
]


def _hour_label(hour: int) -> str:
    return f"{hour:02d}:00"


def generate_time_slots(open_hour: int, close_hour: int, interval: int, price: float) -> List[TimeSlot]:
    """Contiguous slots from open_hour up to close_hour.

    A trailing remainder shorter than the interval is dropped, never truncated.
    """
    if interval <= 0:
        raise ValueError("interval must be positive")
    slots = []
    current = open_hour
    while current + interval <= close_hour:
        end = current + interval
        slots.append(
            TimeSlot(
                id=f"slot-{current:02d}-{end:02d}",
                start_time=_hour_label(current),
                end_time=_hour_label(end),
                price=price,
            )
        )
        current = end
    return slots


def generate_booking_days(
    today: date,
    days: int = BOOKING_WINDOW_DAYS,
    open_hour: int = SLOT_OPEN_HOUR,
    close_hour: int = SLOT_CLOSE_HOUR,
    interval: int = SLOT_INTERVAL_HOURS,
    price: float = SLOT_PRICE,
) -> List[BookingDay]:
    booking_days = []
    for offset in range(days):
        day = today + timedelta(days=offset)
        booking_days.append(
            BookingDay(
                date=day,
                day_name=day.strftime("%A"),
                slots=generate_time_slots(open_hour, close_hour, interval, price),
            )
        )
    return booking_days


def mark_booked(booking_days: List[BookingDay], bookings: Iterable[dict]) -> List[BookingDay]:
    """Flag every slot whose range overlaps a non-cancelled booking on that day."""
    held = {}
    for b in bookings:
        if b.get("status") == "cancelled" or not b.get("start_time") or not b.get("end_time"):
            continue
        held.setdefault(str(b.get("date")), []).append((b["start_time"], b["end_time"]))
    for day in booking_days:
        ranges = held.get(day.date.isoformat(), [])
        for slot in day.slots:
            if any(overlaps(slot.start_time, slot.end_time, start, end) for start, end in ranges):
                slot.available = False
    return booking_days


# ----------------------------------------------------------------------------
# Endpoints
# ----------------------------------------------------------------------------
@router.get("/grounds", response_model=List[Ground])
def list_grounds():
    return GROUNDS


@router.get("/slots", response_model=List[BookingDay])
def list_slots(ground_id: Optional[str] = Query(None, alias="groundId"), db=Depends(get_optional_db)):
    booking_days = generate_booking_days(date.today())
    if ground_id:
        window = [d.date.isoformat() for d in booking_days]
        bookings = get_db(db)["booking"].find({"ground_id": ground_id, "date": {"$in": window}})
        mark_booked(booking_days, bookings)
    return booking_days
