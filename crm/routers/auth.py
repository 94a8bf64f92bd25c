"""Auth router - registration, login, logout and current user."""

from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.orm import Session

from crm.core.config import settings
from crm.core.deps import get_current_user, get_db, get_session_token, require_csrf_header
from crm.core.rate_limit import auth_limit, limiter
from crm.db.models import User
from crm.schemas.auth import CurrentUser, LoginRequest, RegisterRequest, UserRead
from crm.schemas.common import success
from crm.services import auth_service, session_service

router = APIRouter(prefix="/auth", tags=["auth"])


def _set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=token,
        max_age=settings.session_max_age_seconds,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
        path="/",
    )


@router.post("/register", status_code=201, dependencies=[Depends(require_csrf_header)])
def register(body: RegisterRequest, db: Session = Depends(get_db)):
    """Create an account. Does not log the user in."""
    user = auth_service.register_user(db, body.email, body.password)
    return success(user=UserRead.model_validate(user), message="User registered")


@router.post("/login", dependencies=[Depends(require_csrf_header)])
@limiter.limit(auth_limit)
def login(
    request: Request,
    response: Response,
    body: LoginRequest,
    db: Session = Depends(get_db),
):
    """Check credentials and issue a fresh 30-day session cookie."""
    user = auth_service.authenticate(db, body.email, body.password)
    session = session_service.create_session(db, user.id)
    _set_session_cookie(response, session.token)
    return success(user=UserRead.model_validate(user))


@router.post("/logout", dependencies=[Depends(require_csrf_header)])
def logout(request: Request, response: Response, db: Session = Depends(get_db)):
    """Delete the server-side session and clear the cookie. Safe without a session."""
    session_service.delete_session(db, get_session_token(request))
    response.delete_cookie(settings.SESSION_COOKIE_NAME, path="/")
    return success(message="Logged out")


@router.get("/me")
def me(current: CurrentUser = Depends(get_current_user), db: Session = Depends(get_db)):
    user = db.get(User, current.user_id)
    return success(user=UserRead.model_validate(user))
