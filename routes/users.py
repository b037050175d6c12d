import csv
import io
import secrets
from datetime import datetime, timedelta
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, File, HTTPException, Response, UploadFile, status
from pydantic import AliasChoices, EmailStr, Field, ValidationError, field_validator
from pymongo.errors import DuplicateKeyError

from config import settings
from database import create_document, delete_document, get_db, get_document_or_404, update_document
from mailer import EmailNotConfigured, send_email
from responses import envelope, format_validation_errors
from schemas import CamelModel, Role, User
from security import (
    RESET_TOKEN,
    CurrentUser,
    create_access_token,
    create_reset_token,
    decode_token,
    full_name,
    get_current_user,
    hash_password,
    public_user,
    require_roles,
    revoke_token,
    token_expiry,
    verify_password,
)

log = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/user", tags=["users"])

COOKIE_NAME = "token"
PASSWORD_ALIASES = AliasChoices("pwd", "password")


# Request bodies
class SignUpRequest(CamelModel):
    pro_pic: Optional[str] = None
    f_name: str = Field(..., min_length=1, max_length=100)
    l_name: str = Field(..., min_length=1, max_length=100)
    address: str = Field(..., min_length=1, max_length=500)
    dob: datetime
    gender: str = Field(..., min_length=1, max_length=30)
    email: EmailStr
    pwd: str = Field(..., min_length=1, validation_alias=PASSWORD_ALIASES)


class UserCreateRequest(SignUpRequest):
    role: Role = "GENERAL"
    status: str = Field("Active", min_length=1)

    @field_validator("role", mode="before")
    @classmethod
    def _upper_role(cls, v):
        return v.strip().upper() if isinstance(v, str) else v


class UserUpdate(CamelModel):
    pro_pic: Optional[str] = None
    f_name: Optional[str] = Field(None, min_length=1, max_length=100)
    l_name: Optional[str] = Field(None, min_length=1, max_length=100)
    address: Optional[str] = Field(None, min_length=1, max_length=500)
    dob: Optional[datetime] = None
    gender: Optional[str] = Field(None, min_length=1, max_length=30)
    email: Optional[EmailStr] = None
    pwd: Optional[str] = Field(None, min_length=1, validation_alias=PASSWORD_ALIASES)
    role: Optional[Role] = None
    status: Optional[str] = Field(None, min_length=1)

    @field_validator("role", mode="before")
    @classmethod
    def _upper_role(cls, v):
        return v.strip().upper() if isinstance(v, str) else v


class SignInRequest(CamelModel):
    email: EmailStr
    pwd: str = Field(..., min_length=1, validation_alias=PASSWORD_ALIASES)


class ForgotPasswordRequest(CamelModel):
    email: EmailStr


class ResetPasswordRequest(CamelModel):
    token: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1, validation_alias=AliasChoices("password", "pwd"))


# Helpers
def get_user_by_email(email: str) -> Optional[dict]:
    return get_db()["user"].find_one({"email": email.lower()})


def _insert_user(payload: SignUpRequest, role: str, status_: str = "Active") -> dict:
    email = payload.email.lower()
    if get_user_by_email(email):
        raise HTTPException(status_code=400, detail="Email already registered")
    user = User(
        pro_pic=payload.pro_pic,
        f_name=payload.f_name,
        l_name=payload.l_name,
        address=payload.address,
        dob=payload.dob,
        gender=payload.gender,
        email=email,
        password_hash=hash_password(payload.pwd),
        role=role,
        status=status_,
    )
    try:
        return create_document("user", user)
    except DuplicateKeyError:
        raise HTTPException(status_code=400, detail="Email already registered")


def _self_or_admin(user_id: str, user: CurrentUser) -> None:
    if user.role != "ADMIN" and user.id != user_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")


# Auth routes
@router.post("/signup", status_code=status.HTTP_201_CREATED)
def signup(payload: SignUpRequest):
    # self-registration never grants ADMIN
    user = _insert_user(payload, role="GENERAL")
    log.info("user_signed_up", user_id=user["_id"])
    return envelope(public_user(user), message="User Created Successfully!")


@router.post("/signin")
def signin(payload: SignInRequest, response: Response):
    user = get_user_by_email(payload.email)
    if not user or not verify_password(payload.pwd, user.get("passwordHash", "")):
        log.info("signin_failed", email=payload.email)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid email or password")
    token = create_access_token(str(user["_id"]), user["email"])
    response.set_cookie(
        COOKIE_NAME,
        token,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
        max_age=int(timedelta(days=settings.token_ttl_days).total_seconds()),
    )
    log.info("signin_succeeded", user_id=str(user["_id"]))
    return envelope(
        {
            "token": token,
            "user": {
                "_id": str(user["_id"]),
                "email": user["email"],
                "name": full_name(user),
                "role": user.get("role", "GENERAL"),
            },
        },
        message="Login Successfully!",
    )


@router.post("/logout")
def logout(response: Response, user: CurrentUser = Depends(get_current_user)):
    revoke_token(user.token_id, user.token_expires_at)
    response.delete_cookie(COOKIE_NAME)
    return envelope(message="Logged out")


@router.get("/me")
def current_user(user: CurrentUser = Depends(get_current_user)):
    return envelope(public_user(get_document_or_404("user", user.id, "User")))


@router.post("/forgot-password")
def forgot_password(payload: ForgotPasswordRequest):
    user = get_user_by_email(payload.email)
    if user:
        token = create_reset_token(str(user["_id"]), user["email"])
        link = f"{settings.frontend_url.rstrip('/')}/reset-password/{token}"
        try:
            send_email(user["email"], "Password Reset Request", f"Click the following link to reset your password: {link}")
        except EmailNotConfigured:
            log.error("email_not_configured")
            raise HTTPException(status_code=500, detail="Email service not configured")
        except OSError as e:
            log.error("password_reset_email_failed", error=str(e))
            raise HTTPException(status_code=500, detail="Error sending reset link")
    # same answer for unknown addresses
    return envelope(message="If the account exists, a password reset link has been sent")


@router.post("/reset-password")
def reset_password(payload: ResetPasswordRequest):
    claims = decode_token(payload.token, RESET_TOKEN, status_code=status.HTTP_400_BAD_REQUEST)
    user = get_user_by_email(claims.get("email", ""))
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    update_document("user", str(user["_id"]), {"passwordHash": hash_password(payload.password)}, "User")
    revoke_token(claims["jti"], token_expiry(claims))
    log.info("password_reset", user_id=str(user["_id"]))
    return envelope(message="Password reset successfully")


# User administration
@router.post("/user-details/create", status_code=status.HTTP_201_CREATED)
def create_user(payload: UserCreateRequest, _: CurrentUser = Depends(require_roles("ADMIN"))):
    user = _insert_user(payload, role=payload.role, status_=payload.status)
    return envelope(public_user(user), message="User Created Successfully!")


@router.get("/users")
def list_users(_: CurrentUser = Depends(get_current_user)):
    users = get_db()["user"].find({}).sort("createdAt", -1)
    return envelope([public_user(u) for u in users])


@router.get("/user-details/{user_id}")
def get_user(user_id: str, _: CurrentUser = Depends(get_current_user)):
    return envelope(public_user(get_document_or_404("user", user_id, "User")))


@router.put("/user-details/{user_id}")
def update_user(user_id: str, payload: UserUpdate, user: CurrentUser = Depends(get_current_user)):
    _self_or_admin(user_id, user)
    update = {k: v for k, v in payload.model_dump(by_alias=True).items() if v is not None}
    if "role" in update and user.role != "ADMIN":
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only an admin can change roles")
    if "pwd" in update:
        update["passwordHash"] = hash_password(update.pop("pwd"))
    if "email" in update:
        update["email"] = update["email"].lower()
        other = get_user_by_email(update["email"])
        if other and str(other["_id"]) != user_id:
            raise HTTPException(status_code=400, detail="Email already registered")
    updated = update_document("user", user_id, update, "User")
    return envelope(public_user(updated), message="User updated successfully")


@router.delete("/user-details/{user_id}")
def delete_user(user_id: str, _: CurrentUser = Depends(require_roles("ADMIN"))):
    delete_document("user", user_id, "User")
    log.info("user_deleted", user_id=user_id)
    return envelope(message="User deleted successfully")


IMPORT_COLUMNS = ("fName", "lName", "email", "role", "gender", "address", "dob", "status", "pwd")


@router.post("/import")
def import_users(file: UploadFile = File(...), _: CurrentUser = Depends(require_roles("ADMIN"))):
    """Bulk-create users from a CSV export; bad rows are reported, not fatal."""
    try:
        text = file.file.read().decode("utf-8-sig")
    except UnicodeDecodeError:
        raise HTTPException(status_code=400, detail="CSV file must be UTF-8 encoded")
    reader = csv.DictReader(io.StringIO(text))
    missing = [c for c in IMPORT_COLUMNS[:-1] if c not in (reader.fieldnames or [])]
    if missing:
        raise HTTPException(status_code=400, detail=f"Missing CSV columns: {', '.join(missing)}")

    created, skipped = [], []
    for row_number, row in enumerate(reader, start=2):
        data = {k: (row.get(k) or "").strip() for k in IMPORT_COLUMNS if (row.get(k) or "").strip()}
        data.setdefault("pwd", secrets.token_urlsafe(12))
        try:
            payload = UserCreateRequest.model_validate(data)
            user = _insert_user(payload, role=payload.role, status_=payload.status)
        except ValidationError as e:
            skipped.append({"row": row_number, "reason": format_validation_errors(e.errors())})
            continue
        except HTTPException as e:
            skipped.append({"row": row_number, "reason": e.detail})
            continue
        created.append(user["_id"])
    log.info("users_imported", created=len(created), skipped=len(skipped))
    return envelope({"created": len(created), "ids": created, "skipped": skipped}, message="Import finished")
