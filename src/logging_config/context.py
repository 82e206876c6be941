"""Log Context.

Context variables binding a request id and an editing-session id to every
log record emitted while they are set.
"""

import uuid
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any


_request_id_var: ContextVar[str] = ContextVar("request_id", default="")
_session_id_var: ContextVar[str] = ContextVar("session_id", default="")
_extra_context_var: ContextVar[dict] = ContextVar("extra_context", default={})


def generate_request_id() -> str:
    return str(uuid.uuid4())


def get_request_id() -> str:
    return _request_id_var.get()


def get_session_id() -> str:
    return _session_id_var.get()


def get_context_dict() -> dict[str, Any]:
    """Bound context values, omitting unset ones."""
    ctx = {}
    request_id = _request_id_var.get()
    if request_id:
        ctx["request_id"] = request_id
    session_id = _session_id_var.get()
    if session_id:
        ctx["session_id"] = session_id
    extra = _extra_context_var.get()
    if extra:
        ctx.update(extra)
    return ctx


@dataclass
class LogContext:
    """Context manager binding ids to log records.

    The previous values are restored on exit, so contexts nest.

    Example:
        with LogContext(session_id=aggregator.session_id):
            logger.info("expression validated")  # includes session_id
    """

    request_id: str = ""
    session_id: str = ""
    extra: dict[str, Any] = field(default_factory=dict)

    _tokens: list = field(default_factory=list, repr=False)

    def __enter__(self) -> "LogContext":
        self._tokens = [
            (_request_id_var, _request_id_var.set(self.request_id or _request_id_var.get())),
            (_session_id_var, _session_id_var.set(self.session_id or _session_id_var.get())),
            (_extra_context_var, _extra_context_var.set({**_extra_context_var.get(), **self.extra})),
        ]
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        for var, token in reversed(self._tokens):
            var.reset(token)
        self._tokens.clear()

    def bind(self, **kwargs: Any) -> None:
        """Add key-value pairs to the active context."""
        _extra_context_var.set({**_extra_context_var.get(), **kwargs})
        self.extra.update(kwargs)
