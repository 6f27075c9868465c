"""Observability helpers for the evaluation workspace with Laminar integration.

When LMNR_PROJECT_API_KEY is set, uses Laminar for real tracing.
Otherwise, falls back to no-op spans for test environments.
"""

from __future__ import annotations

import contextlib
import logging
import os
from typing import Any, Callable, ContextManager, Iterator

from lmnr import Laminar

logger = logging.getLogger(__name__)

_LAMINAR_INITIALIZED = False

SpanFactory = Callable[..., ContextManager[dict[str, Any]]]


def _ensure_laminar_initialized() -> bool:
    """Initialize Laminar if API key is set and not already initialized.

    Returns:
        True if Laminar is ready to use, False otherwise.
    """
    global _LAMINAR_INITIALIZED

    if _LAMINAR_INITIALIZED:
        return True

    api_key = os.environ.get("LMNR_PROJECT_API_KEY")
    if not api_key:
        return False

    try:
        Laminar.initialize(project_api_key=api_key)
        _LAMINAR_INITIALIZED = True
        logger.info("Laminar tracing initialized")
        return True
    except Exception as exc:
        logger.warning("Failed to initialize Laminar: %s", exc)
        return False


def _record_error(span_data: dict[str, Any]) -> None:
    error = span_data.get("error")
    span = span_data.get("span")
    if error is None or span is None:
        return
    try:
        if isinstance(error, BaseException):
            span.record_exception(error)
        span.set_attribute("error.message", str(error))
    except Exception as exc:
        logger.debug("Failed to record span error: %s", exc)


@contextlib.contextmanager
def traced_span(
    name: str,
    *,
    input: dict[str, Any] | None = None,
    metadata: dict[str, Any] | None = None,
) -> Iterator[dict[str, Any]]:
    """Context manager for creating traced spans.

    The span is ended when the block exits, whether it returns or raises.
    Callers that handle a failure themselves can still mark the span as
    failed by setting ``span_data["error"]``; an exception escaping the
    block is recorded the same way before it propagates.
    Laminar failures while opening or ending the span are logged and never
    reach the caller.

    Args:
        name: Span name
        input: Optional input data to record on the span
        metadata: Optional metadata to record on the span

    Yields:
        A dict that can be used to record additional span data.
        In Laminar mode, ``span_data["span"]`` holds the live span.
    """
    span_data: dict[str, Any] = {
        "name": name,
        "input": input,
        "metadata": metadata,
        "error": None,
    }

    stack = contextlib.ExitStack()
    if _ensure_laminar_initialized():
        try:
            span = stack.enter_context(Laminar.start_as_current_span(name, input=input))
            span_data["span"] = span
            for key, value in (metadata or {}).items():
                span.set_attribute(key, value)
        except Exception as exc:
            logger.debug("Laminar span error: %s", exc)

    try:
        yield span_data
    except Exception as exc:
        span_data["error"] = exc
        raise
    finally:
        _record_error(span_data)
        try:
            stack.close()
        except Exception as exc:
            logger.debug("Failed to end Laminar span: %s", exc)


def is_tracing_enabled() -> bool:
    """Check if tracing is enabled and initialized."""
    return _ensure_laminar_initialized()


__all__ = [
    "SpanFactory",
    "traced_span",
    "is_tracing_enabled",
]
