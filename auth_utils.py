from datetime import datetime, timedelta, timezone
from typing import Optional

from passlib.context import CryptContext
from jose import JWTError, jwt

from config import settings

# Password hashing context
pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")

DOCUMENT_TOKEN_SCOPE = "document"

def get_password_hash(password: str) -> str:
    """
    Hashes a password using the configured password context (argon2).
    """
    return pwd_context.hash(password)

def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verifies a plain password against a stored hash.
    """
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError):
        return False

# -------------------------
# JWT Utilities
# -------------------------
def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create JWT access token.
    """
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=15))
    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
    return encoded_jwt

def decode_access_token(token: str) -> Optional[str]:
    """
    Decode JWT access token and return the user's email (subject).
    """
    payload = decode_access_token_full(token)
    if payload is None or payload.get("scope") == DOCUMENT_TOKEN_SCOPE:
        return None
    return payload.get("sub")


def decode_access_token_full(token: str) -> Optional[dict]:
    """
    Decode JWT access token and return the full payload including expiration.
    Returns None if token is invalid or expired.
    """
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None


# -------------------------
# Signed document links
# -------------------------
def create_document_token(storage_path: str, expires_seconds: Optional[int] = None) -> str:
    """Sign a storage path into a short-lived token used by document links."""
    ttl = expires_seconds if expires_seconds is not None else settings.SIGNED_URL_EXPIRE_SECONDS
    return create_access_token(
        {"sub": storage_path, "scope": DOCUMENT_TOKEN_SCOPE},
        expires_delta=timedelta(seconds=ttl),
    )

def decode_document_token(token: str) -> Optional[str]:
    """Return the storage path a document token was issued for, or None when expired/invalid."""
    payload = decode_access_token_full(token)
    if payload is None or payload.get("scope") != DOCUMENT_TOKEN_SCOPE:
        return None
    return payload.get("sub")
