"""Register / login / profile / sign-out backed by the users table."""
from __future__ import annotations

import hashlib
import hmac
import logging
import secrets
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from runfeed.core.config import settings
from runfeed.errors import (
    AuthenticationError,
    DuplicateUserError,
    NotFoundError,
    PersistenceError,
)
from runfeed.models.auth_token import AuthToken
from runfeed.models.user import User

logger = logging.getLogger(__name__)

_SCHEME = "pbkdf2_sha256"


def hash_password(password: str, iterations: Optional[int] = None) -> str:
    iterations = iterations or settings.password_iterations
    salt = secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), iterations)
    return f"{_SCHEME}${iterations}${salt}${digest.hex()}"


def verify_password(password: str, stored: str) -> bool:
    try:
        scheme, iterations, salt, expected = stored.split("$")
    except ValueError:
        return False
    if scheme != _SCHEME:
        return False
    digest = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), int(iterations))
    return hmac.compare_digest(digest.hex(), expected)


def _normalize_email(email: str) -> str:
    return email.strip().lower()


def register(db: Session, email: str, password: str, username: str) -> User:
    email = _normalize_email(email)
    if db.query(User).filter(User.email == email).first():
        raise DuplicateUserError(f"email already registered: {email}")
    user = User(
        email=email,
        username=username.strip(),
        password_hash=hash_password(password),
        total_distance_km=0.0,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise DuplicateUserError(f"email already registered: {email}") from e
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Registering %s failed", email)
        raise PersistenceError("register failed") from e
    db.refresh(user)
    logger.info("Registered user %s", user.id)
    return user


def _issue_token(db: Session, user: User) -> str:
    token = secrets.token_urlsafe(settings.token_bytes)
    db.add(AuthToken(token=token, user_id=user.id))
    db.commit()
    return token


def login(db: Session, email: str, password: str) -> tuple[User, str]:
    """Return (user, bearer token) for valid credentials."""
    user = db.query(User).filter(User.email == _normalize_email(email)).first()
    if not user or not verify_password(password, user.password_hash):
        raise AuthenticationError("invalid email or password")
    return user, _issue_token(db, user)


def user_for_token(db: Session, token: str) -> User:
    row = db.query(AuthToken).filter(AuthToken.token == token).first()
    if not row:
        raise AuthenticationError("invalid or revoked token")
    user = db.query(User).filter(User.id == row.user_id).first()
    if not user:
        raise AuthenticationError("token owner no longer exists")
    return user


def fetch_profile(db: Session, user_id: str) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFoundError("User not found")
    return user


def update_profile(
    db: Session,
    user: User,
    username: str,
    bio: Optional[str],
    profile_image_base64: Optional[str] = None,
) -> User:
    user.username = username.strip()
    user.bio = bio
    # Avatar only changes when a new one was sent
    if profile_image_base64:
        user.profile_image_base64 = profile_image_base64
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Updating profile for %s failed", user.id)
        raise PersistenceError("profile update failed") from e
    db.refresh(user)
    return user


def sign_out(db: Session, token: str) -> None:
    db.query(AuthToken).filter(AuthToken.token == token).delete()
    db.commit()
