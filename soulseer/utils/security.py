"""
Password hashing (bcrypt) and locally issued JWTs (python-jose)

Access and refresh tokens share one signing key and are told apart by the
``scope`` claim.
"""
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import jwt, JWTError
import bcrypt

from soulseer.core.config import settings

ACCESS_SCOPE = "access"
REFRESH_SCOPE = "refresh"

BCRYPT_MAX_BYTES = 72


def _password_bytes(password: str) -> bytes:
    # bcrypt ignores everything past 72 bytes; drop a split multi-byte char
    raw = password.encode("utf-8")[:BCRYPT_MAX_BYTES]
    return raw.decode("utf-8", errors="ignore").encode("utf-8")


def get_password_hash(password: str) -> str:
    return bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(_password_bytes(plain), hashed.encode("utf-8"))
    except ValueError:
        # malformed hash in the database
        return False


def _encode(claims: Dict[str, Any], lifetime: timedelta) -> str:
    issued = datetime.now(timezone.utc)
    payload = {**claims, "iat": issued, "exp": issued + lifetime}
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def create_access_token(sub: str, role: str) -> str:
    return _encode({"sub": sub, "scope": ACCESS_SCOPE, "role": role},
                   timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))


def create_refresh_token(sub: str) -> str:
    return _encode({"sub": sub, "scope": REFRESH_SCOPE},
                   timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS))


def decode_token(token: str, scope: Optional[str] = None) -> Optional[Dict[str, Any]]:
    """
    Verified claims, or None when the signature, expiry or scope is wrong
    """
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        return None
    if scope is not None and payload.get("scope") != scope:
        return None
    return payload
