"""Best-effort side effects: failures roll back their savepoint and never raise."""

from crm.core.side_effects import fire_and_forget
from crm.db.models import User, Workspace


def test_success_returns_value(db):
    result = fire_and_forget(db, "double", lambda x: x * 2, 21)
    assert result.ok
    assert result.value == 42
    assert result.error is None
    assert result.label == "double"


def test_failure_rolls_back_only_its_savepoint(db, caplog):
    db.add(Workspace(name="Primary", slug="primary"))
    db.flush()

    def write_then_fail():
        db.add(User(email="side@test.com", password_hash="x"))
        db.flush()
        raise RuntimeError("boom")

    result = fire_and_forget(db, "write-then-fail", write_then_fail)
    db.commit()

    assert result.ok is False
    assert isinstance(result.error, RuntimeError)
    assert db.query(User).filter(User.email == "side@test.com").first() is None
    assert db.query(Workspace).filter(Workspace.slug == "primary").one()
    assert "write-then-fail" in caplog.text
