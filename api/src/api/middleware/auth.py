"""Password hashing and JWT issuing for admin sessions and pending TOTP challenges."""
from __future__ import annotations
from datetime import datetime, timedelta, timezone
import bcrypt
from jose import JWTError, jwt
from verlux.config import get_settings

ADMIN_TOKEN_TYPE = "admin"
CHALLENGE_TOKEN_TYPE = "totp_challenge"


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()

def verify_password(password: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode(), hashed.encode())
    except ValueError:
        return False

def create_access_token(
    user_id: str,
    expires_delta: timedelta | None = None,
    token_type: str = ADMIN_TOKEN_TYPE,
) -> str:
    settings = get_settings()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.jwt_expire_minutes))
    payload = {
        "sub": user_id,
        "exp": expire,
        "type": token_type,
    }
    return jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)

def create_challenge_token(email: str, sealed_password: str) -> str:
    """Signed, short-lived carrier for the transient login challenge.

    ``sealed_password`` must already be encrypted; the JWT only signs it.
    """
    settings = get_settings()
    expire = datetime.now(timezone.utc) + timedelta(minutes=settings.totp_challenge_minutes)
    payload = {
        "sub": email,
        "pwd": sealed_password,
        "exp": expire,
        "type": CHALLENGE_TOKEN_TYPE,
    }
    return jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)

def decode_challenge_token(token: str) -> tuple[str, str] | None:
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None
    if payload.get("type") != CHALLENGE_TOKEN_TYPE:
        return None
    email = str(payload.get("sub", "")).strip()
    sealed = str(payload.get("pwd", "")).strip()
    if not email or not sealed:
        return None
    return email, sealed
