"""Auth service - registration and password login."""

import logging

from sqlalchemy.orm import Session

from crm.core.errors import Conflict, InvalidCredentials
from crm.core.security import hash_password, verify_password
from crm.db.models import User

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def get_user_by_email(db: Session, email: str) -> User | None:
    return db.query(User).filter(User.email == normalize_email(email)).first()


def register_user(db: Session, email: str, password: str) -> User:
    """
    Create a regular (non platform-admin) user.

    Raises:
        Conflict(USER_EXISTS): email already registered
    """
    if get_user_by_email(db, email) is not None:
        raise Conflict("A user with this email already exists", code="USER_EXISTS")

    user = User(
        email=normalize_email(email),
        password_hash=hash_password(password),
        is_platform_admin=False,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Registered user %s", user.id)
    return user


def authenticate(db: Session, email: str, password: str) -> User:
    """
    Check credentials.

    Unknown email and wrong password raise the same error.
    """
    user = get_user_by_email(db, email)
    if user is None or not verify_password(password, user.password_hash):
        raise InvalidCredentials()
    return user
