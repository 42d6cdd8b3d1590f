"""Credential store: account creation and password authentication."""
from typing import Optional
import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, or_, select

from .errors import DuplicateIdentity, InvalidCredentials, PersistenceError, ValidationError
from .models import User, utcnow
from .security import get_password_hash, verify_password

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


def create_user(db: Session, username: str, email: str, password: str) -> User:
    """
    Creates a user with a salted bcrypt hash of `password`.

    Uniqueness of username and email is left to the table constraints so
    that concurrent registrations cannot both succeed.
    """
    username = (username or "").strip()
    email = (email or "").strip()
    if not username or not email or not password:
        raise ValidationError("All fields are required")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

    db_user = User(
        username=username,
        email=email,
        password_hash=get_password_hash(password),
        created_at=utcnow(),
    )
    db.add(db_user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.info("Registration rejected, duplicate identity: %s", username)
        raise DuplicateIdentity("Username or email already exists")
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to create user %s", username)
        raise PersistenceError("Failed to create user")
    db.refresh(db_user)
    logger.info("User registered: %s with id %s", db_user.username, db_user.id)
    return db_user


def find_user_by_identity(db: Session, identity: str) -> Optional[User]:
    """Looks a user up by username or email."""
    if not identity:
        return None
    query = select(User).where(or_(User.username == identity, User.email == identity))
    return db.exec(query).first()


def authenticate(db: Session, username: str, password: str) -> User:
    username = (username or "").strip()
    if not username or not password:
        raise ValidationError("Username and password are required")

    user = find_user_by_identity(db, username)
    if not user or not verify_password(password, user.password_hash):
        logger.info("Failed login attempt for %s", username)
        raise InvalidCredentials("Invalid credentials")
    return user
