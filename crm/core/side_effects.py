"""Best-effort side effects.

Audit writes, template automation and checklist auto-closure must never change
the outcome of the primary mutation. ``fire_and_forget`` runs such a step in its
own SAVEPOINT: on failure only that savepoint is rolled back, the error is
logged, and a ``SideEffectResult`` is returned instead of raising.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable

from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SideEffectResult:
    label: str
    ok: bool
    value: Any = None
    error: Exception | None = None


def fire_and_forget(
    db: Session,
    label: str,
    fn: Callable[..., Any],
    *args: Any,
    **kwargs: Any,
) -> SideEffectResult:
    """Run ``fn(*args, **kwargs)`` inside a savepoint; never raises."""
    try:
        with db.begin_nested():
            value = fn(*args, **kwargs)
    except Exception as exc:
        logger.exception("Side effect %s failed; primary operation unaffected", label)
        return SideEffectResult(label=label, ok=False, error=exc)
    return SideEffectResult(label=label, ok=True, value=value)
