from datetime import timedelta
from typing import Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from storefront.utils.timestamps import utcnow

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return pwd_context.verify(password, password_hash)
    except (ValueError, TypeError):
        # unknown or malformed hash
        return False


def create_access_token(subject: str, secret: str, algorithm: str = "HS256",
                        expires_minutes: int = 60 * 24) -> str:
    to_encode = {"sub": str(subject), "exp": utcnow() + timedelta(minutes=expires_minutes)}
    return jwt.encode(to_encode, secret, algorithm=algorithm)


def decode_access_token(token: str, secret: str, algorithm: str = "HS256") -> Optional[str]:
    """Return the token subject if the signature and expiry check out, else None."""
    if not token:
        return None
    try:
        payload = jwt.decode(token, secret, algorithms=[algorithm])
    except JWTError:
        return None
    sub = payload.get("sub")
    return str(sub) if sub else None
