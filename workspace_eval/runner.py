"""Runs a single attempt of an evaluation."""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from functools import partial
from typing import Any, Callable, Optional

from workspace_eval.models import Attempt, EvalStatus, EvaluationConfig, RunContext
from workspace_eval.observability import SpanFactory, traced_span
from workspace_eval.registry import EvalFunc, EvalReport

logger = logging.getLogger(__name__)


async def _call(func: Callable[..., Any], *args: Any) -> Any:
    """Await ``func`` if it is a coroutine function, else run it on the default executor."""
    if inspect.iscoroutinefunction(func):
        return await func(*args)
    result = await asyncio.get_running_loop().run_in_executor(None, partial(func, *args))
    if inspect.isawaitable(result):
        return await result
    return result


class AttemptRunner:
    """Executes one attempt of an evaluation function and captures its outcome.

    Failures raised by the evaluation function, its report rendering, or its
    success check are recorded on the returned ``Attempt`` instead of being
    raised, so one attempt can never take down its siblings.
    """

    def __init__(
        self,
        eval_fn: EvalFunc,
        config: EvaluationConfig,
        *,
        span_factory: SpanFactory = traced_span,
    ):
        self._eval_fn = eval_fn
        self._config = config
        self._span_factory = span_factory

    async def run(self, attempt: int) -> Attempt:
        """Run attempt number ``attempt`` (1-based).

        Args:
            attempt: Attempt index

        Returns:
            Attempt with the rendered report, success flag and any error
        """
        context = self._config.context_for(attempt)
        result = Attempt(index=attempt, status=EvalStatus.RUNNING)
        started = time.monotonic()

        with self._span_factory(
            f"attempt {attempt}",
            input={"model": context.model, "attempt": attempt},
        ) as span:
            try:
                error = await asyncio.wait_for(
                    self._evaluate(context, result),
                    timeout=context.timeout_seconds,
                )
            except asyncio.TimeoutError as exc:
                # _evaluate captures its own errors, so only the deadline lands here.
                result.status = EvalStatus.TIMED_OUT
                result.error = f"attempt {attempt} timed out after {context.timeout_seconds}s"
                span["error"] = exc
            else:
                if error is None:
                    result.status = EvalStatus.COMPLETED
                else:
                    result.status = EvalStatus.FAILED
                    result.error = str(error) or type(error).__name__
                    span["error"] = error

        result.duration_seconds = time.monotonic() - started
        if result.error:
            logger.warning(
                "Attempt %d for model %r failed: %s", attempt, context.model, result.error
            )
        return result

    async def _evaluate(self, context: RunContext, result: Attempt) -> Optional[Exception]:
        try:
            report: EvalReport = await _call(self._eval_fn, context)
            result.report = await _call(report.render)
            result.succeeded = bool(await _call(report.succeeded))
        except Exception as exc:
            return exc
        return None


__all__ = ["AttemptRunner"]
