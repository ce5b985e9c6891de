import logging
import datetime as dt
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from database import create_document, get_db, get_document, get_documents, update_document
from errors import Forbidden, UnknownCoach, UnknownTeam, UnknownUser, ValidationError
from schemas import (
    CamelModel,
    Coach as CoachSchema,
    CoachOut,
    Player,
    PremiumTeam as PremiumTeamSchema,
    PremiumTeamOut,
    Program as ProgramSchema,
    ProgramOut,
    TeamStatus,
    Weekday,
)
from security import Identity, ensure_self_or_admin, get_current_identity, require_admin

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/premiumTeams", tags=["premium teams"])

MAX_TRAINING_DAYS = 3
MAX_PLAYERS = 6


def check_training_days(days):
    if days is None:
        return days
    if len(set(days)) != len(days):
        raise ValueError("training days must be distinct")
    if not 1 <= len(days) <= MAX_TRAINING_DAYS:
        raise ValueError(f"select between 1 and {MAX_TRAINING_DAYS} training days")
    return days


# ----------------------------------------------------------------------------
# Payloads
# ----------------------------------------------------------------------------
class PlayerIn(Player):
    @field_validator("name", "age")
    @classmethod
    def not_blank(cls, value: str):
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value


class CreateEnrollmentPayload(CamelModel):
    coach: Optional[str] = None
    coach_id: Optional[str] = None
    package: str = Field(..., min_length=1)
    start_date: dt.date
    end_date: dt.date
    training_days: List[Weekday]
    players: List[PlayerIn] = Field(..., min_length=1, max_length=MAX_PLAYERS)

    @field_validator("training_days")
    @classmethod
    def valid_training_days(cls, days):
        return check_training_days(days)

    @model_validator(mode="after")
    def check_enrollment(self):
        if not (self.coach and self.coach.strip()) and not self.coach_id:
            raise ValueError("coach or coachId is required")
        if self.start_date > self.end_date:
            raise ValueError("startDate must not be after endDate")
        return self


class EnrollmentPatch(CamelModel):
    # players are fixed after enrollment, hence not patchable
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    training_days: Optional[List[Weekday]] = None
    status: Optional[TeamStatus] = None
    coach: Optional[str] = Field(None, min_length=1)
    package: Optional[str] = Field(None, min_length=1)
    start_date: Optional[dt.date] = None
    end_date: Optional[dt.date] = None

    @field_validator("training_days")
    @classmethod
    def valid_training_days(cls, days):
        return check_training_days(days)


class CreateCoachPayload(CamelModel):
    name: str = Field(..., min_length=1)
    specialization: str = ""
    experience: str = ""
    availability: List[Weekday] = Field(default_factory=list)

    @field_validator("availability")
    @classmethod
    def distinct_days(cls, days):
        if len(set(days)) != len(days):
            raise ValueError("availability days must be distinct")
        return days


class CreateProgramPayload(CamelModel):
    package: str = Field(..., min_length=1)
    coach: str = Field(..., min_length=1)
    start_date: dt.date
    end_date: dt.date
    training_days: List[Weekday]

    @field_validator("training_days")
    @classmethod
    def valid_training_days(cls, days):
        return check_training_days(days)


# ----------------------------------------------------------------------------
# Enrollment ledger
# ----------------------------------------------------------------------------
def create_enrollment(db, user_id: str, payload: CreateEnrollmentPayload) -> PremiumTeamOut:
    if get_document(db, "user", user_id) is None:
        raise UnknownUser()

    coach_name = (payload.coach or "").strip()
    if payload.coach_id:
        coach = get_document(db, "coach", payload.coach_id)
        if coach is None:
            raise UnknownCoach()
        coach_name = coach["name"]

    team = PremiumTeamSchema(
        user_id=user_id,
        coach=coach_name,
        coach_id=payload.coach_id,
        package=payload.package,
        start_date=payload.start_date,
        end_date=payload.end_date,
        training_days=payload.training_days,
        players=payload.players,
        status="active",
    )
    doc = create_document(db, "premium_team", team)
    logger.info("Premium team %s enrolled by user %s (%d players)", doc["id"], user_id, len(payload.players))
    return PremiumTeamOut(**doc)


def list_enrollments(db, filter_dict: Optional[dict] = None) -> List[PremiumTeamOut]:
    return [PremiumTeamOut(**doc) for doc in get_documents(db, "premium_team", filter_dict)]


def list_enrollments_by_user(db, user_id: str) -> List[PremiumTeamOut]:
    return list_enrollments(db, {"user_id": user_id})


def _get_team(db, team_id: str, identity: Identity) -> dict:
    team = get_document(db, "premium_team", team_id)
    if team is None:
        raise UnknownTeam()
    ensure_self_or_admin(identity, team["user_id"])
    return team


def cancel_enrollment(db, team_id: str, identity: Identity) -> PremiumTeamOut:
    team = _get_team(db, team_id, identity)
    if team.get("status") == "cancelled":
        return PremiumTeamOut(**team)
    doc = update_document(db, "premium_team", team_id, {"status": "cancelled"})
    logger.info("Premium team %s cancelled by %s", team_id, identity.id)
    return PremiumTeamOut(**doc)


def update_enrollment(db, team_id: str, patch: EnrollmentPatch, identity: Identity) -> PremiumTeamOut:
    changes = {k: v for k, v in patch.model_dump(mode="json", exclude_unset=True).items() if v is not None}
    if not identity.is_admin:
        owner_fields = {"training_days", "status"}
        if set(changes) - owner_fields:
            raise Forbidden("Only training days and cancellation can be changed")
        if changes.get("status", "cancelled") != "cancelled":
            raise Forbidden("Only cancellation is allowed")

    if changes.get("status") == "cancelled" and set(changes) == {"status"}:
        return cancel_enrollment(db, team_id, identity)

    team = _get_team(db, team_id, identity)
    start_date = changes.get("start_date", str(team["start_date"]))
    end_date = changes.get("end_date", str(team["end_date"]))
    if start_date > end_date:
        raise ValidationError("startDate must not be after endDate")
    if not changes:
        return PremiumTeamOut(**team)
    doc = update_document(db, "premium_team", team_id, changes)
    if doc is None:
        raise UnknownTeam()
    return PremiumTeamOut(**doc)


# ----------------------------------------------------------------------------
# Coaches & programs (reference data)
# ----------------------------------------------------------------------------
def create_coach(db, payload: CreateCoachPayload) -> CoachOut:
    coach = CoachSchema(**payload.model_dump())
    return CoachOut(**create_document(db, "coach", coach))


def list_coaches(db) -> List[CoachOut]:
    return [CoachOut(**doc) for doc in get_documents(db, "coach")]


def create_program(db, payload: CreateProgramPayload) -> ProgramOut:
    program = ProgramSchema(**payload.model_dump())
    return ProgramOut(**create_document(db, "program", program))


def list_programs(db) -> List[ProgramOut]:
    return [ProgramOut(**doc) for doc in get_documents(db, "program")]


def list_packages(db) -> List[str]:
    """Distinct package names in enrollment order."""
    seen = []
    for team in get_documents(db, "premium_team"):
        if team.get("package") and team["package"] not in seen:
            seen.append(team["package"])
    return seen


# ----------------------------------------------------------------------------
# Endpoints
# ----------------------------------------------------------------------------
@router.post("", response_model=PremiumTeamOut, status_code=status.HTTP_201_CREATED)
def create_enrollment_route(
    payload: CreateEnrollmentPayload,
    identity: Identity = Depends(get_current_identity),
    db=Depends(get_db),
):
    return create_enrollment(db, identity.id, payload)


@router.get("", response_model=List[PremiumTeamOut])
def list_enrollments_route(_admin: Identity = Depends(require_admin), db=Depends(get_db)):
    return list_enrollments(db)


@router.get("/user/{user_id}", response_model=List[PremiumTeamOut])
def list_user_enrollments_route(
    user_id: str,
    identity: Identity = Depends(get_current_identity),
    db=Depends(get_db),
):
    ensure_self_or_admin(identity, user_id)
    return list_enrollments_by_user(db, user_id)


@router.patch("/{team_id}", response_model=PremiumTeamOut)
def update_enrollment_route(
    team_id: str,
    payload: EnrollmentPatch,
    identity: Identity = Depends(get_current_identity),
    db=Depends(get_db),
):
    return update_enrollment(db, team_id, payload, identity)


@router.post("/{team_id}/cancel", response_model=PremiumTeamOut)
def cancel_enrollment_route(
    team_id: str,
    identity: Identity = Depends(get_current_identity),
    db=Depends(get_db),
):
    return cancel_enrollment(db, team_id, identity)
