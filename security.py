import logging
from datetime import datetime, timedelta
from typing import Optional

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel

from config import SECRET_KEY, ALGORITHM, ACCESS_TOKEN_EXPIRE_MINUTES
from errors import Forbidden, InvalidToken, Unauthenticated

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="users/login", auto_error=False)


class Identity(BaseModel):
    """Decoded bearer token: who is calling and with which role."""

    id: str
    role: str = "user"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def verify_password(plain_password, hashed_password):
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password):
    return pwd_context.hash(password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None):
    to_encode = data.copy()
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)
    return encoded_jwt


def token_for_user(user: dict) -> str:
    return create_access_token({"id": str(user["id"]), "role": user.get("role", "user")})


def decode_token(token: str) -> Identity:
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError as exc:
        logger.info("Rejected token: %s", exc)
        raise InvalidToken()
    user_id = payload.get("id")
    if user_id is None:
        raise InvalidToken()
    return Identity(id=str(user_id), role=payload.get("role", "user"))


def get_current_identity(token: Optional[str] = Depends(oauth2_scheme)) -> Identity:
    if not token:
        raise Unauthenticated()
    return decode_token(token)


def require_admin(identity: Identity = Depends(get_current_identity)) -> Identity:
    if not identity.is_admin:
        raise Forbidden()
    return identity


def ensure_self_or_admin(identity: Identity, user_id: str):
    if identity.is_admin or identity.id == user_id:
        return
    raise Forbidden("Not allowed to access another user's records")
