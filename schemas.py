"""
Database Schemas for Gambo Stadium (ground booking & premium training)

Each Pydantic model represents a MongoDB collection.

- User -> user
- Booking -> booking
- PremiumTeam -> premium_team
- Coach -> coach
- Program -> program

On the wire every model speaks camelCase (groundId, startTime, ...); in Python
and in the database fields are snake_case.
"""

import datetime as dt
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel

Role = Literal["user", "admin"]
BookingStatus = Literal["pending", "confirmed", "cancelled"]
TeamStatus = Literal["active", "pending", "cancelled"]
Weekday = Literal["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ----------------------------------------------------------------------------
# Persisted collections
# ----------------------------------------------------------------------------
class User(CamelModel):
    name: str = Field(..., description="Full name")
    email: EmailStr = Field(..., description="Unique email address")
    password_hash: str = Field(..., description="BCrypt hashed password")
    role: Role = Field("user", description="user | admin")
    active: bool = Field(True, description="Whether user is active")
    phone: str = Field("", description="Contact phone")
    location: str = Field("", description="City/Area")


class Booking(CamelModel):
    user_id: str = Field(..., description="User ObjectId as string")
    user_name: Optional[str] = Field(None, description="Display name at booking time")
    ground_id: str = Field(..., description="Ground identifier, e.g. ground1")
    ground_name: str = Field(..., description="Ground display name")
    date: dt.date = Field(..., description="ISO date (YYYY-MM-DD)")
    start_time: str = Field(..., description="Start time (HH:MM)")
    end_time: str = Field(..., description="End time (HH:MM)")
    price: float = Field(..., gt=0, description="Slot price")
    status: BookingStatus = Field("confirmed", description="pending | confirmed | cancelled")
    payment_id: Optional[str] = None


class Player(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, coerce_numbers_to_str=True)

    name: str = Field(..., min_length=1)
    age: str = Field(..., min_length=1)


class PremiumTeam(CamelModel):
    user_id: str = Field(..., description="User ObjectId as string")
    coach: str = Field(..., description="Coach display name")
    coach_id: Optional[str] = Field(None, description="Coach ObjectId as string")
    package: str = Field(..., description="Training package name")
    start_date: dt.date
    end_date: dt.date
    training_days: List[Weekday] = Field(default_factory=list)
    players: List[Player] = Field(default_factory=list)
    status: TeamStatus = Field("active", description="active | pending | cancelled")


class Coach(CamelModel):
    name: str
    specialization: str = ""
    experience: str = ""
    availability: List[Weekday] = Field(default_factory=list)


class Program(CamelModel):
    package: str
    coach: str
    start_date: dt.date
    end_date: dt.date
    training_days: List[Weekday] = Field(default_factory=list)


# ----------------------------------------------------------------------------
# Public representations
# ----------------------------------------------------------------------------
class UserOut(CamelModel):
    id: str
    name: str
    email: EmailStr
    role: Role = "user"
    active: bool = True
    phone: str = ""
    location: str = ""
    created_at: Optional[dt.datetime] = None


class BookingOut(CamelModel):
    id: str
    user_id: str
    user_name: str = "Unknown User"
    ground_id: str
    ground_name: str
    date: dt.date
    start_time: str
    end_time: str
    price: float
    status: BookingStatus = "pending"
    payment_id: Optional[str] = None
    cancellable: bool = False
    created_at: Optional[dt.datetime] = None


class PremiumTeamOut(PremiumTeam):
    id: str
    # stored records without a status are active
    status: TeamStatus = "active"
    created_at: Optional[dt.datetime] = None


class CoachOut(Coach):
    id: str
    created_at: Optional[dt.datetime] = None


class ProgramOut(Program):
    id: str
    created_at: Optional[dt.datetime] = None


class TimeSlot(CamelModel):
    id: str
    start_time: str
    end_time: str
    price: float
    available: bool = True


class BookingDay(CamelModel):
    date: dt.date
    day_name: str
    slots: List[TimeSlot] = Field(default_factory=list)
