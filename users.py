import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel
from pymongo.errors import DuplicateKeyError

from database import create_document, get_db, get_document, get_documents, serialize, update_document
from errors import DuplicateEmail, Forbidden, InvalidCredentials, UnknownUser
from schemas import CamelModel, Role, User as UserSchema, UserOut
from security import (
    Identity,
    ensure_self_or_admin,
    get_current_identity,
    get_password_hash,
    require_admin,
    token_for_user,
    verify_password,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])

ADMIN_ONLY_FIELDS = {"role", "active"}


# ----------------------------------------------------------------------------
# Payloads
# ----------------------------------------------------------------------------
class SignupPayload(CamelModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=1)


class LoginPayload(CamelModel):
    email: EmailStr
    password: str


class UserPatch(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    name: Optional[str] = Field(None, min_length=1)
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    location: Optional[str] = None
    password: Optional[str] = Field(None, min_length=1)
    role: Optional[Role] = None
    active: Optional[bool] = None


class AuthResponse(CamelModel):
    token: str
    user: UserOut


# ----------------------------------------------------------------------------
# Ledger
# ----------------------------------------------------------------------------
def public_user(doc: dict) -> UserOut:
    return UserOut(**{k: v for k, v in doc.items() if k != "password_hash"})


def get_user_by_email(db, email: str):
    users = get_documents(db, "user", {"email": email}, limit=1)
    return users[0] if users else None


def get_user_by_id(db, user_id: str):
    return get_document(db, "user", user_id)


def signup(db, name: str, email: str, password: str, role: str = "user"):
    if get_user_by_email(db, email):
        logger.info("Signup rejected, email already registered: %s", email)
        raise DuplicateEmail()

    user = UserSchema(
        name=name,
        email=email,
        password_hash=get_password_hash(password),
        role=role,
        active=True,
    )
    try:
        doc = create_document(db, "user", user)
    except DuplicateKeyError:
        raise DuplicateEmail()
    logger.info("User %s signed up", doc["id"])
    return token_for_user(doc), public_user(doc)


def login(db, email: str, password: str):
    user = get_user_by_email(db, email)
    if not user or not verify_password(password, user.get("password_hash", "")):
        logger.info("Failed login for %s", email)
        raise InvalidCredentials()
    logger.info("User %s logged in", user["id"])
    return token_for_user(user), public_user(user)


def update_user(db, user_id: str, patch: UserPatch, identity: Identity) -> UserOut:
    ensure_self_or_admin(identity, user_id)
    changes = patch.model_dump(exclude_unset=True)
    if not identity.is_admin and ADMIN_ONLY_FIELDS & set(changes):
        raise Forbidden("Only administrators can change role or status")

    existing = get_user_by_id(db, user_id)
    if existing is None:
        raise UnknownUser()

    if "email" in changes and changes["email"] != existing["email"]:
        other = get_user_by_email(db, changes["email"])
        if other and other["id"] != user_id:
            raise DuplicateEmail()
    if "password" in changes:
        changes["password_hash"] = get_password_hash(changes.pop("password"))

    if not changes:
        return public_user(existing)
    try:
        doc = update_document(db, "user", user_id, changes)
    except DuplicateKeyError:
        raise DuplicateEmail()
    if doc is None:
        raise UnknownUser()
    return public_user(doc)


def list_users(db) -> List[dict]:
    return [serialize(doc) for doc in db["user"].find({})]


# ----------------------------------------------------------------------------
# Endpoints
# ----------------------------------------------------------------------------
@router.post("/signup", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def signup_route(payload: SignupPayload, db=Depends(get_db)):
    token, user = signup(db, payload.name, payload.email, payload.password)
    return AuthResponse(token=token, user=user)


@router.post("/login", response_model=AuthResponse)
def login_route(payload: LoginPayload, db=Depends(get_db)):
    token, user = login(db, payload.email, payload.password)
    return AuthResponse(token=token, user=user)


@router.get("/me", response_model=UserOut)
def me(identity: Identity = Depends(get_current_identity), db=Depends(get_db)):
    user = get_user_by_id(db, identity.id)
    if user is None:
        raise UnknownUser()
    return public_user(user)


@router.get("", response_model=List[UserOut])
def list_users_route(_admin: Identity = Depends(require_admin), db=Depends(get_db)):
    return [public_user(u) for u in list_users(db)]


@router.get("/email/{email}", response_model=UserOut)
def get_user_by_email_route(email: str, _admin: Identity = Depends(require_admin), db=Depends(get_db)):
    user = get_user_by_email(db, email)
    if user is None:
        raise UnknownUser()
    return public_user(user)


@router.patch("/{user_id}", response_model=UserOut)
def update_user_route(
    user_id: str,
    payload: UserPatch,
    identity: Identity = Depends(get_current_identity),
    db=Depends(get_db),
):
    return update_user(db, user_id, payload, identity)
