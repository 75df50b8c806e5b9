"""
Credentials and bearer tokens.

Passwords are bcrypt hashes (cost from BCRYPT_ROUNDS). Access tokens are
HS256 JWTs whose subject is the user id; the role claim is informational
only, authorization always reloads the account.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple, Union
import enum

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext

from vendorbid.core.config import settings

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.BCRYPT_ROUNDS,
)

# auto_error=False so a missing header is a 401 like any other bad token
bearer_scheme = HTTPBearer(auto_error=False)

TOKEN_TYPE = "access"


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_role_value(role: Union[str, enum.Enum]) -> str:
    """Plain string for a role stored either as text or as a UserRole."""
    if isinstance(role, enum.Enum):
        return role.value
    return str(role)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def verify_and_rehash(plain_password: str, hashed_password: str) -> Tuple[bool, Optional[str]]:
    """Check a password; also return a fresh hash when the stored one uses an old cost."""
    return pwd_context.verify_and_update(plain_password, hashed_password)


def create_access_token(
    user_id: int,
    email: str,
    role: Union[str, enum.Enum],
    expires_delta: Optional[timedelta] = None,
) -> str:
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    claims = {
        "sub": str(user_id),
        "email": email,
        "role": get_role_value(role),
        "type": TOKEN_TYPE,
        "iat": now,
        "exp": expire,
    }
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> dict:
    """Validated claims of an access token; 401 on anything unexpected."""
    try:
        claims = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        raise _unauthorized("Invalid or expired token")

    if claims.get("type") != TOKEN_TYPE or not str(claims.get("sub", "")).isdigit():
        raise _unauthorized("Invalid token payload")
    return claims


async def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> int:
    if credentials is None:
        raise _unauthorized("Authentication required")
    return int(decode_token(credentials.credentials)["sub"])
