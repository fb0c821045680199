"""Request-scoped "wide event" for canonical log lines.

One dict per request accumulates context (principal, report parameters,
quality outcomes, slow queries) and is emitted once as ``request.completed``
by ``RequestTimingMiddleware``. Outside a request every setter is a no-op,
so services can annotate freely from CLI commands and tests.

Usage:
    from core.wide_event import set_wide_event_fields

    set_wide_event_fields(workout_session_id=session.id, quality_flag=False)
    set_wide_event_nested("report", kind="usage", rows=12)
"""

from contextvars import ContextVar
from typing import Any

_wide_event: ContextVar[dict[str, Any] | None] = ContextVar(
    "wide_event", default=None
)


def init_wide_event(**fields: Any) -> dict[str, Any]:
    """Start a fresh wide event for the current async context."""
    event: dict[str, Any] = dict(fields)
    _wide_event.set(event)
    return event


def get_wide_event() -> dict[str, Any]:
    """Current wide event, or an empty (detached) dict outside a request."""
    event = _wide_event.get()
    return event if event is not None else {}


def set_wide_event_field(key: str, value: Any) -> None:
    event = _wide_event.get()
    if event is not None:
        event[key] = value


def set_wide_event_fields(**kwargs: Any) -> None:
    event = _wide_event.get()
    if event is not None:
        event.update(kwargs)


def set_wide_event_nested(category: str, **kwargs: Any) -> None:
    """Merge fields into a nested category.

    Example:
        set_wide_event_nested("user", id=7, role="ADMIN")
        # {"user": {"id": 7, "role": "ADMIN"}}
    """
    event = _wide_event.get()
    if event is None:
        return
    event.setdefault(category, {}).update(kwargs)


def clear_wide_event() -> None:
    _wide_event.set(None)
