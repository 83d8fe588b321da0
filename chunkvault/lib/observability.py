"""Observability facade wrapping Pydantic Logfire.

Adds spans around document store round trips and mirrors warnings about
truncated or incomplete payloads. Every call no-ops when logfire is not
installed (``pip install chunkvault[logfire]``) or not enabled.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from chunkvault.config import Settings

_logfire = None
_configured = False


def is_available() -> bool:
    return _logfire is not None and _configured


def configure(settings: Settings) -> bool:
    """Initialize logfire from the ``logfire`` settings block.

    Returns True when logfire was configured.
    """
    global _logfire, _configured

    if not settings.logfire.enabled:
        return False

    try:
        import logfire as lf
    except ImportError:
        return False

    kwargs: dict[str, Any] = {
        "service_name": settings.logfire.service_name,
        "send_to_logfire": "if-token-present",
    }
    if settings.logfire.environment:
        kwargs["environment"] = settings.logfire.environment
    if settings.logfire.sample_rate != 1.0:
        kwargs["trace_sample_rate"] = settings.logfire.sample_rate
    if settings.logfire.console:
        kwargs["console"] = lf.ConsoleOptions()

    lf.configure(**kwargs)
    _logfire = lf
    _configured = True
    return True


def instrument_app(app):
    """Wrap an ASGI app with logfire instrumentation when available."""
    if not is_available():
        return app
    return _logfire.instrument_asgi(app)


@contextmanager
def span(name: str, **attrs: Any):
    """Yield a logfire span, or None if unavailable."""
    if is_available():
        with _logfire.span(name, **attrs) as s:
            yield s
    else:
        yield None


def warning(msg: str, **kwargs: Any) -> None:
    if is_available():
        _logfire.warn(msg, **kwargs)


def exception(msg: str, **kwargs: Any) -> bool:
    """Record the active exception; returns False when logfire is unavailable."""
    if not is_available():
        return False
    _logfire.exception(msg, **kwargs)
    return True
