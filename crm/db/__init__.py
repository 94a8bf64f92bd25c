"""Database package: models, session factory and schema bootstrap."""


def init_db() -> None:
    """Create all tables on the configured engine."""
    from crm.db import models  # noqa: F401 - registers tables on Base.metadata
    from crm.db.base import Base
    from crm.db.session import engine

    Base.metadata.create_all(bind=engine)
