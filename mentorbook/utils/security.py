from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt
from passlib.context import CryptContext
from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from mentorbook import models
from mentorbook.config import settings
from mentorbook.database import get_db
from mentorbook.exceptions import AuthenticationError, AuthorizationError


# ==========================
# AUTH CONFIG
# ==========================

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/login", auto_error=False)

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto"
)


# ==========================
# PASSWORD UTILS
# ==========================

def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """
    Bcrypt max input length = 72 bytes
    Truncate safely to avoid crash
    """
    password_bytes = password.encode("utf-8")

    if len(password_bytes) > 72:
        password_bytes = password_bytes[:72]
        password = password_bytes.decode("utf-8", errors="ignore")

    return pwd_context.hash(password)


# ==========================
# JWT TOKEN
# ==========================

def create_access_token(data: dict, expires_delta: Optional[timedelta] = None):
    to_encode = data.copy()

    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(
            minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES
        )

    to_encode.update({"exp": expire})

    return jwt.encode(
        to_encode,
        settings.SECRET_KEY,
        algorithm=settings.ALGORITHM
    )


def decode_subject(token: str) -> Optional[str]:
    """Return the token's subject (user id as string), or None when invalid."""
    try:
        payload = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM]
        )
    except JWTError:
        return None
    subject = payload.get("sub")
    return str(subject) if subject is not None else None


# ==========================
# AUTH HELPERS
# ==========================

def authenticate_user(db: Session, email: str, password: str):
    user = db.query(models.User).filter(
        models.User.email == email
    ).first()

    if not user:
        return False

    if not verify_password(password, user.password_hash):
        return False

    return user


def current_user_id(token: Optional[str]) -> Optional[int]:
    """Resolve an opaque bearer token to a user id, or None."""
    if not token:
        return None
    subject = decode_subject(token)
    if subject is None or not subject.isdigit():
        return None
    return int(subject)


def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    db: Session = Depends(get_db)
) -> models.User:
    user_id = current_user_id(token)
    if user_id is None:
        raise AuthenticationError("Could not validate credentials").to_http_exception()

    user = db.query(models.User).filter(
        models.User.id == user_id,
        models.User.is_active.is_(True),
    ).first()

    if user is None:
        raise AuthenticationError("Could not validate credentials").to_http_exception()

    return user


def get_current_mentor(
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> models.Mentor:
    """Mentor profile of the caller, looked up per request."""
    mentor = db.query(models.Mentor).filter(
        models.Mentor.user_id == current_user.id
    ).first()
    if mentor is None:
        raise AuthorizationError("Not a mentor", code="not_a_mentor").to_http_exception()
    return mentor
