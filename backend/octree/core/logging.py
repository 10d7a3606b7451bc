"""
Contextual logging for the HTTP layer and the editor pipeline.

Every record emitted through these helpers carries the request's correlation id and, when the
request targets an editor session, that session's id.
"""

import uuid
from contextvars import ContextVar
from typing import Any, Optional

from fastapi import Request
from loguru import logger

correlation_id_var: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)
session_id_var: ContextVar[Optional[str]] = ContextVar("session_id", default=None)


def get_correlation_id() -> Optional[str]:
    return correlation_id_var.get()


def set_correlation_id(cid: Optional[str] = None) -> str:
    """Use the given correlation id, or mint a new one, for the current context."""
    cid = cid or str(uuid.uuid4())
    correlation_id_var.set(cid)
    return cid


def set_session_id(session_id: Optional[str]) -> None:
    session_id_var.set(session_id)


def context_logger(**extra: Any):
    """`logger` bound to the current correlation and session ids plus `extra`."""
    return logger.bind(
        correlation_id=correlation_id_var.get(),
        session_id=extra.pop("session_id", None) or session_id_var.get(),
        **extra,
    )


def log_request(request: Request) -> None:
    context_logger(
        method=request.method,
        path=request.url.path,
        client_ip=request.client.host if request.client else None,
    ).info(f"--> {request.method} {request.url.path}")


def log_response(request: Request, status_code: int, elapsed_ms: float) -> None:
    level = "ERROR" if status_code >= 500 else "WARNING" if status_code >= 400 else "INFO"
    context_logger(status_code=status_code, elapsed_ms=round(elapsed_ms, 2)).log(
        level, f"<-- {request.method} {request.url.path} {status_code} ({elapsed_ms:.1f}ms)"
    )


def log_error(error: Exception, **context: Any) -> None:
    """Log an exception with its traceback and whatever request context is known."""
    context_logger(error_type=type(error).__name__, **context).opt(exception=error).error(
        f"Unhandled {type(error).__name__}: {error}"
    )


def log_service_call(service: str, method: str, duration_ms: float, success: bool = True, **kwargs: Any) -> None:
    """Timing record for calls to the LLM providers and the LaTeX engine."""
    context_logger(service=service, method=method, duration_ms=round(duration_ms, 2), success=success, **kwargs).log(
        "INFO" if success else "WARNING",
        f"{service}.{method} {'ok' if success else 'failed'} in {duration_ms:.0f}ms",
    )
