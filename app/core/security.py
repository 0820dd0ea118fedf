# app/core/security.py
import hashlib
import re
import secrets
import string
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

import bcrypt
import jwt

from app.core.config import settings

PASSWORD_CHARSET = string.ascii_letters + string.digits + "!@#$%^&*"
BASE36_ALPHABET = string.digits + string.ascii_lowercase


def get_password_hash(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        # Malformed hash stored for this account
        return False


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """Sign a JWT for an admin session"""
    to_encode = data.copy()
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire, "type": "access"})
    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> Dict[str, Any]:
    """Decode and verify a JWT. Raises jwt.PyJWTError on failure."""
    return jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])


def generate_password(length: int = 12) -> str:
    """Random bootstrap password for a freshly provisioned admin"""
    return "".join(secrets.choice(PASSWORD_CHARSET) for _ in range(length))


def generate_username(shop_name: str) -> str:
    """Sanitized shop name plus four base-36 characters, e.g. ``myshop_k3x9``"""
    base = re.sub(r"[^a-z0-9]", "", (shop_name or "").lower()) or "shop"
    suffix = "".join(secrets.choice(BASE36_ALPHABET) for _ in range(4))
    return f"{base}_{suffix}"


def get_client_ip(headers, client_host: Optional[str]) -> Optional[str]:
    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return headers.get("x-real-ip") or client_host


def generate_session_id(ip_address: Optional[str], user_agent: Optional[str]) -> str:
    """Pseudonymous guest identifier: sha256 of client IP and user agent"""
    session_string = f"{ip_address or 'unknown'}-{user_agent or 'unknown'}"
    return hashlib.sha256(session_string.encode()).hexdigest()
