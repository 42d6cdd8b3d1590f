from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional
import logging

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt

from . import config
from .errors import InvalidToken, MissingToken
from .models import User

logger = logging.getLogger(__name__)

# auto_error=False so a missing header reaches get_current_identity as None
# and can be reported as 401, distinct from the 403 for a bad token.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


@dataclass(frozen=True)
class Identity:
    user_id: int
    username: str


def issue_token(user: User, expires_delta: Optional[timedelta] = None) -> str:
    issued_at = datetime.now(timezone.utc)
    expire = issued_at + (expires_delta or timedelta(minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode = {
        "sub": str(user.id),
        "username": user.username,
        "iat": int(issued_at.timestamp()),
        "exp": int(expire.timestamp()),
    }
    return jwt.encode(to_encode, config.SECRET_KEY, algorithm=config.ALGORITHM)


def verify_token(token: str) -> Identity:
    """
    Decodes and checks a bearer token. Raises InvalidToken when the
    signature does not match, the token has expired or the payload is not
    the shape issue_token produces.
    """
    try:
        payload = jwt.decode(
            token,
            config.SECRET_KEY,
            algorithms=[config.ALGORITHM],
            options={"require_exp": True, "require_sub": True},
        )
    except JWTError as e:
        logger.info("Token verification failed: %s", e)
        raise InvalidToken("Invalid token")

    subject = payload.get("sub")
    username = payload.get("username")
    try:
        user_id = int(subject)
    except (TypeError, ValueError):
        raise InvalidToken("Invalid token")
    if not isinstance(username, str) or not username:
        raise InvalidToken("Invalid token")
    return Identity(user_id=user_id, username=username)


def get_current_identity(token: Optional[str] = Depends(oauth2_scheme)) -> Identity:
    if not token:
        raise MissingToken("Access token required")
    return verify_token(token)
