from datetime import datetime, timedelta
from typing import Optional, Dict, Any
from jose import JWTError, jwt
import bcrypt

from feedback_app.core.config import settings
from feedback_app.core.exceptions import InvalidTokenError

BCRYPT_PREFIXES = ("$2a$", "$2b$", "$2y$")

DEFAULT_PASSWORDS = {
    "student": "student@123",
    "faculty": "faculty@123",
    "hod": "hod@123",
    "dean": "dean@123",
}


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify password"""
    # Bcrypt has a 72 byte limit - truncate password if necessary
    password_bytes = plain_password.encode('utf-8')[:72]
    try:
        return bcrypt.checkpw(password_bytes, hashed_password.encode('utf-8'))
    except ValueError:
        # Stored value is not a bcrypt hash
        return False


def get_password_hash(password: str) -> str:
    """Hash password with configurable rounds (BCRYPT_ROUNDS in .env)"""
    password_bytes = password.encode('utf-8')[:72]
    hashed = bcrypt.hashpw(password_bytes, bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS))
    return hashed.decode('utf-8')


def looks_hashed(value: str) -> bool:
    """True when the value is already a bcrypt hash"""
    return bool(value) and value.startswith(BCRYPT_PREFIXES) and len(value) == 60


def hash_if_plain(password: str) -> str:
    """Hash a password unless it is already a bcrypt hash"""
    return password if looks_hashed(password) else get_password_hash(password)


def default_password_for_role(role: str) -> str:
    """Initial password handed out to accounts created by an administrator"""
    role = getattr(role, "value", role)
    return DEFAULT_PASSWORDS.get(role, "default@123")


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT access token"""
    to_encode = data.copy()

    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode.update({"exp": expire, "type": "access"})
    encoded_jwt = jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)
    return encoded_jwt


def create_user_token(user) -> str:
    """Access token carrying the claims the frontend reads (sub, id, role)"""
    role = user.role.value if hasattr(user.role, "value") else str(user.role)
    return create_access_token({"sub": str(user.id), "id": str(user.id), "role": role})


def decode_token(token: str) -> Dict[str, Any]:
    """Decode JWT token"""
    try:
        payload = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        raise InvalidTokenError()

    if payload.get("type") != "access":
        raise InvalidTokenError("Invalid token type")
    return payload
