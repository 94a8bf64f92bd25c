"""Session resolution: missing, unknown, expired (deleted on first use), purge."""

from datetime import timedelta

import pytest

from crm.core.config import settings
from crm.core.errors import InvalidSession, SessionExpired, Unauthorized
from crm.db.models import UserSession
from crm.db.types import utcnow
from crm.services import session_service


def test_create_session_fixed_lifetime(db, make_user):
    user = make_user()
    before = utcnow()
    session = session_service.create_session(db, user.id)

    assert len(session.token) == settings.SESSION_TOKEN_BYTES * 2  # hex
    lifetime = session.expires_at - before
    assert timedelta(days=30) - timedelta(minutes=1) < lifetime <= timedelta(days=30, minutes=1)


def test_tokens_are_distinct(db, make_user):
    user = make_user()
    tokens = {session_service.create_session(db, user.id).token for _ in range(5)}
    assert len(tokens) == 5


def test_resolve_valid_session(db, make_user):
    user = make_user()
    session = session_service.create_session(db, user.id)

    resolved_user, resolved_session = session_service.resolve_session(db, session.token)
    assert resolved_user.id == user.id
    assert resolved_session.id == session.id


@pytest.mark.parametrize("token", [None, ""])
def test_missing_token(db, token):
    with pytest.raises(Unauthorized) as exc:
        session_service.resolve_session(db, token)
    assert exc.value.code == "UNAUTHORIZED"


def test_unknown_token(db):
    with pytest.raises(InvalidSession) as exc:
        session_service.resolve_session(db, "deadbeef")
    assert exc.value.code == "UNAUTHORIZED"


def test_expired_session_is_deleted_and_expiry_is_idempotent(db, make_user):
    user = make_user()
    session = session_service.create_session(db, user.id)
    session.expires_at = utcnow() - timedelta(minutes=1)
    db.commit()
    token = session.token

    with pytest.raises(SessionExpired) as exc:
        session_service.resolve_session(db, token)
    assert exc.value.code == "SESSION_EXPIRED"
    assert db.query(UserSession).filter(UserSession.token == token).first() is None

    # Second use: the row is gone
    with pytest.raises(InvalidSession):
        session_service.resolve_session(db, token)


def test_delete_session(db, make_user):
    user = make_user()
    session = session_service.create_session(db, user.id)

    assert session_service.delete_session(db, session.token) is True
    assert session_service.delete_session(db, session.token) is False
    assert session_service.delete_session(db, None) is False


def test_purge_expired_sessions(db, make_user):
    user = make_user()
    live = session_service.create_session(db, user.id)
    stale = session_service.create_session(db, user.id)
    stale.expires_at = utcnow() - timedelta(days=1)
    db.commit()
    live_id = live.id

    assert session_service.purge_expired_sessions(db) == 1
    remaining = [s.id for s in db.query(UserSession).all()]
    assert remaining == [live_id]
