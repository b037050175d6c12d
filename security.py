import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import structlog
from fastapi import Cookie, Depends, Header, HTTPException, status
from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel
from pymongo.errors import DuplicateKeyError

from config import settings
from database import get_db, oid

log = structlog.get_logger(__name__)

# pbkdf2_sha256 is salted and pure python, no native bcrypt backend needed
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

ACCESS_TOKEN = "access"
RESET_TOKEN = "reset"


class CurrentUser(BaseModel):
    id: str
    email: str
    name: str
    role: str
    token_id: str
    token_expires_at: datetime


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, hashed: str) -> bool:
    if not hashed:
        return False
    try:
        return pwd_context.verify(password, hashed)
    except (ValueError, TypeError):
        return False


def create_token(subject: str, email: str, token_type: str, expires_delta: timedelta) -> str:
    issued = datetime.now(timezone.utc)
    to_encode = {
        "sub": subject,
        "email": email,
        "type": token_type,
        "jti": uuid.uuid4().hex,
        "iat": int(issued.timestamp()),
        "exp": int((issued + expires_delta).timestamp()),
    }
    return jwt.encode(to_encode, settings.token_secret_key, algorithm=settings.jwt_algorithm)


def create_access_token(user_id: str, email: str) -> str:
    return create_token(user_id, email, ACCESS_TOKEN, timedelta(days=settings.token_ttl_days))


def create_reset_token(user_id: str, email: str) -> str:
    return create_token(user_id, email, RESET_TOKEN, timedelta(minutes=settings.reset_ttl_minutes))


def decode_token(token: str, token_type: str, status_code: int = status.HTTP_401_UNAUTHORIZED) -> dict:
    """Verify signature, expiry, type and revocation; any failure is a hard rejection."""
    try:
        payload = jwt.decode(token, settings.token_secret_key, algorithms=[settings.jwt_algorithm])
    except ExpiredSignatureError:
        raise HTTPException(status_code=status_code, detail="Token expired")
    except JWTError:
        raise HTTPException(status_code=status_code, detail="Invalid token")
    if payload.get("type") != token_type:
        raise HTTPException(status_code=status_code, detail="Invalid token type")
    if not payload.get("jti") or is_revoked(payload["jti"]):
        raise HTTPException(status_code=status_code, detail="Token has been revoked")
    return payload


def token_expiry(payload: dict) -> datetime:
    return datetime.fromtimestamp(payload["exp"], tz=timezone.utc)


# Revocation list; entries expire from the collection with the token itself

def revoke_token(jti: str, expires_at: datetime) -> None:
    try:
        get_db()["revokedtoken"].insert_one({"jti": jti, "expiresAt": expires_at, "createdAt": datetime.now(timezone.utc)})
    except DuplicateKeyError:
        pass


def is_revoked(jti: str) -> bool:
    return get_db()["revokedtoken"].find_one({"jti": jti}) is not None


def extract_token(authorization: Optional[str], cookie_token: Optional[str]) -> Optional[str]:
    # an explicit header beats whatever cookie the browser still carries
    if authorization and authorization.lower().startswith("bearer "):
        bearer = authorization.partition(" ")[2].strip()
        if bearer:
            return bearer
    return cookie_token or None


async def get_current_user(
    authorization: Optional[str] = Header(default=None),
    token: Optional[str] = Cookie(default=None),
) -> CurrentUser:
    raw = extract_token(authorization, token)
    if not raw:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User is not logged in")
    payload = decode_token(raw, ACCESS_TOKEN)
    try:
        user = get_db()["user"].find_one({"_id": oid(payload.get("sub"))})
    except HTTPException:
        user = None
    if not user:
        log.warning("auth_user_missing", sub=payload.get("sub"))
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
    return CurrentUser(
        id=str(user["_id"]),
        email=user["email"],
        name=full_name(user),
        role=user.get("role", "GENERAL"),
        token_id=payload["jti"],
        token_expires_at=token_expiry(payload),
    )


def require_roles(*allowed_roles: str):
    async def _dep(user: CurrentUser = Depends(get_current_user)):
        if user.role not in allowed_roles:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
        return user
    return _dep


def full_name(user: dict) -> str:
    return f"{user.get('fName', '')} {user.get('lName', '')}".strip()


PUBLIC_USER_FIELDS = ("proPic", "fName", "lName", "address", "dob", "gender", "email", "role", "status", "createdAt", "updatedAt")


def public_user(user: dict) -> dict:
    """Allow-list projection; the password hash never leaves the server."""
    out = {"_id": str(user["_id"])}
    for key in PUBLIC_USER_FIELDS:
        if key in user:
            out[key] = user[key]
    return out
