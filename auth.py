import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from bson import ObjectId
from bson.errors import InvalidId
from fastapi import APIRouter, Depends, Header, HTTPException
from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext
from pymongo.database import Database

import settings
from database import get_db, now
from schemas import ChangePasswordRequest, LoginRequest

logger = logging.getLogger(__name__)

# pbkdf2_sha256 avoids the native bcrypt dependency
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

MIN_PASSWORD_LENGTH = 6

router = APIRouter()


@dataclass
class AdminIdentity:
    id: str
    username: str
    is_admin: bool


# =========
# Utilities
# =========

def hash_password(plain_password: str) -> str:
    return pwd_context.hash(plain_password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError):
        # unknown or corrupt hash format
        return False


def _require_secret() -> str:
    if not settings.JWT_SECRET:
        logger.error("JWT_SECRET is not configured")
        raise HTTPException(status_code=500, detail="Server configuration error")
    return settings.JWT_SECRET


def create_access_token(user: dict, issued_at: Optional[datetime] = None, expires_delta: Optional[timedelta] = None) -> str:
    secret = _require_secret()
    issued = issued_at or datetime.now(timezone.utc)
    expire = issued + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode = {
        "id": str(user["_id"]),
        "username": user["username"],
        "isAdmin": bool(user.get("isAdmin", False)),
        "iat": int(issued.timestamp()),
        "exp": int(expire.timestamp()),
    }
    return jwt.encode(to_encode, secret, algorithm=settings.JWT_ALGORITHM)


def get_current_admin(authorization: Optional[str] = Header(None)) -> AdminIdentity:
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=401, detail="Missing token")
    secret = _require_secret()
    token = authorization.split(" ", 1)[1].strip()
    try:
        payload = jwt.decode(token, secret, algorithms=[settings.JWT_ALGORITHM])
    except ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid token")
    if not payload.get("isAdmin"):
        raise HTTPException(status_code=403, detail="Forbidden")
    return AdminIdentity(
        id=str(payload.get("id", "")),
        username=payload.get("username", ""),
        is_admin=True,
    )


# ======
# Routes
# ======

@router.post("/api/auth/login")
def login(data: LoginRequest, db: Database = Depends(get_db)):
    if not data.username or not data.password:
        raise HTTPException(status_code=400, detail="Username and password are required")
    user = db["users"].find_one({"username": data.username})
    if user is None:
        # keep the response time independent of whether the user exists
        pwd_context.dummy_verify()
        raise HTTPException(status_code=401, detail="Invalid username or password")
    if not verify_password(data.password, user.get("password", "")):
        raise HTTPException(status_code=401, detail="Invalid username or password")
    token = create_access_token(user)
    logger.info("Admin login: %s", user["username"])
    return {
        "message": "Login successful",
        "token": token,
        "user": {
            "id": str(user["_id"]),
            "username": user["username"],
            "isAdmin": bool(user.get("isAdmin", False)),
        },
    }


@router.get("/api/admin/validate-token")
def validate_token(admin: AdminIdentity = Depends(get_current_admin)):
    return {"success": True, "user": {"username": admin.username, "isAdmin": admin.is_admin}}


@router.put("/api/admin/change-password")
def change_password(
    data: ChangePasswordRequest,
    admin: AdminIdentity = Depends(get_current_admin),
    db: Database = Depends(get_db),
):
    if not data.currentPassword or not data.newPassword:
        raise HTTPException(status_code=400, detail="Current and new password are required")
    if len(data.newPassword) < MIN_PASSWORD_LENGTH:
        raise HTTPException(status_code=400, detail=f"New password must be at least {MIN_PASSWORD_LENGTH} characters")
    try:
        user_id = ObjectId(admin.id)
    except (InvalidId, TypeError):
        raise HTTPException(status_code=404, detail="User not found")
    user = db["users"].find_one({"_id": user_id})
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    if not verify_password(data.currentPassword, user.get("password", "")):
        raise HTTPException(status_code=400, detail="Current password is incorrect")
    db["users"].update_one(
        {"_id": user_id},
        {"$set": {"password": hash_password(data.newPassword), "updatedAt": now()}},
    )
    logger.info("Password changed for %s", user["username"])
    return {"success": True, "message": "Password updated"}
