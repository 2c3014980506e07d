import uuid
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt
from passlib.context import CryptContext

from apartment_manager.core.config import settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

ACCESS = "access"
REFRESH = "refresh"


# ─── Password hashing ──────────────────────────────────
def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


# ─── JWT tokens ────────────────────────────────────────
def _encode(claims: dict, token_type: str, lifetime: timedelta) -> str:
    payload = {**claims, "type": token_type, "exp": datetime.now(timezone.utc) + lifetime}
    return jwt.encode(payload, settings.api_secret_key, algorithm=settings.algorithm)


def create_access_token(
    user_id: uuid.UUID | str, role: str, expires_delta: timedelta | None = None
) -> str:
    """Short-lived token; the role claim is informational, deps re-read the user."""
    lifetime = expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    return _encode({"sub": str(user_id), "role": role}, ACCESS, lifetime)


def create_refresh_token(user_id: uuid.UUID | str) -> str:
    # jti lets a single refresh token be revoked on rotation / logout
    return _encode(
        {"sub": str(user_id), "jti": uuid.uuid4().hex},
        REFRESH,
        timedelta(days=settings.refresh_token_expire_days),
    )


def decode_token(token: str, expected_type: str | None = None) -> dict | None:
    """Claims of a valid, unexpired token (of `expected_type` if given), else None."""
    try:
        payload = jwt.decode(token, settings.api_secret_key, algorithms=[settings.algorithm])
    except JWTError:
        return None
    if expected_type is not None and payload.get("type") != expected_type:
        return None
    return payload


def token_subject(payload: dict) -> uuid.UUID | None:
    try:
        return uuid.UUID(str(payload.get("sub")))
    except ValueError:
        return None


def seconds_until_expiry(payload: dict) -> int:
    return max(0, int(payload.get("exp", 0) - datetime.now(timezone.utc).timestamp()))
