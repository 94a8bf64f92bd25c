"""Session service - opaque server-side sessions behind the session cookie."""

import logging
from datetime import datetime, timedelta
from uuid import UUID

from sqlalchemy import delete
from sqlalchemy.orm import Session

from crm.core.config import settings
from crm.core.errors import InvalidSession, SessionExpired, Unauthorized
from crm.core.security import generate_token
from crm.db.models import User, UserSession
from crm.db.types import utcnow

logger = logging.getLogger(__name__)


def create_session(db: Session, user_id: UUID) -> UserSession:
    """
    Create a session with a fixed lifetime of SESSION_DURATION_DAYS.

    Sessions are never extended; a new login creates a new row.
    """
    session = UserSession(
        user_id=user_id,
        token=generate_token(),
        expires_at=utcnow() + timedelta(days=settings.SESSION_DURATION_DAYS),
    )
    db.add(session)
    db.commit()
    db.refresh(session)
    return session


def resolve_session(db: Session, token: str | None) -> tuple[User, UserSession]:
    """
    Resolve a session token to its user.

    Raises:
        Unauthorized: no token
        InvalidSession: token does not match a session
        SessionExpired: session is past expiry; the row is deleted first, so
            presenting the same token again raises InvalidSession
    """
    if not token:
        raise Unauthorized()

    session = db.query(UserSession).filter(UserSession.token == token).first()
    if session is None:
        raise InvalidSession()

    if session.expires_at < utcnow():
        logger.info("Deleting expired session %s for user %s", session.id, session.user_id)
        db.delete(session)
        db.commit()
        raise SessionExpired()

    return session.user, session


def delete_session(db: Session, token: str | None) -> bool:
    """Delete the session for a token (logout). Returns True if a row was removed."""
    if not token:
        return False
    result = db.execute(delete(UserSession).where(UserSession.token == token))
    db.commit()
    return result.rowcount > 0


def purge_expired_sessions(db: Session, now: datetime | None = None) -> int:
    """Bulk-delete sessions past expiry. Returns the number removed."""
    cutoff = now or utcnow()
    result = db.execute(delete(UserSession).where(UserSession.expires_at < cutoff))
    db.commit()
    if result.rowcount:
        logger.info("Purged %d expired sessions", result.rowcount)
    return result.rowcount
