"""Evaluation controller for fanning out attempts and models."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional, Sequence

from workspace_eval.models import (
    AggregateReport,
    Attempt,
    EvaluationConfig,
    ModelFanOutResult,
    ModelOutcome,
)
from workspace_eval.observability import SpanFactory, traced_span
from workspace_eval.registry import EvaluationRegistry
from workspace_eval.runner import AttemptRunner

logger = logging.getLogger(__name__)


KNOWN_MODELS: tuple[str, ...] = (
    "gpt-4o",
    "gemini-2.0-flash",
    "claude-3-5-sonnet-latest",
    "claude-3-7-sonnet-latest",
)


class EvaluationController:
    """Orchestrates concurrent evaluation attempts.

    Every attempt (or model) gets a pre-allocated result slot indexed by its
    position, so the assembled output follows attempt/model order no matter
    which unit finishes first.
    """

    def __init__(
        self,
        registry: EvaluationRegistry,
        *,
        known_models: Sequence[str] = KNOWN_MODELS,
        span_factory: SpanFactory = traced_span,
    ):
        self._registry = registry
        self._known_models = tuple(known_models)
        self._span_factory = span_factory

    @property
    def known_models(self) -> tuple[str, ...]:
        return self._known_models

    async def run_attempts(self, name: str, config: EvaluationConfig) -> AggregateReport:
        """Run ``config.attempts`` attempts of an evaluation concurrently.

        Args:
            name: Registered evaluation name
            config: Model, attempt count and system prompt for the run

        Returns:
            AggregateReport with attempts ordered by index

        Raises:
            UnknownEvaluationError: If ``name`` is not registered. Raised
                before any attempt starts.
        """
        eval_fn = self._registry.resolve(name)
        runner = AttemptRunner(eval_fn, config, span_factory=self._span_factory)

        slots: list[Optional[Attempt]] = [None] * config.attempts
        success_count = 0
        lock = asyncio.Lock()

        async def run_slot(position: int) -> None:
            nonlocal success_count
            attempt = await runner.run(position + 1)
            slots[position] = attempt
            if attempt.succeeded:
                async with lock:
                    success_count += 1

        logger.info(
            "Running %s for model %r with %d attempts", name, config.model, config.attempts
        )
        await asyncio.gather(*(run_slot(i) for i in range(config.attempts)))

        report = AggregateReport(
            model=config.model,
            attempts=[attempt for attempt in slots if attempt is not None],
            success_count=success_count,
        )
        logger.info(
            "Finished %s for model %r: %d/%d succeeded",
            name,
            config.model,
            report.success_count,
            report.total_attempts,
        )
        return report

    async def run_all_models(self, name: str, system_prompt: str = "") -> ModelFanOutResult:
        """Run a single attempt of an evaluation against every known model.

        Args:
            name: Registered evaluation name
            system_prompt: System prompt shared by every model's run

        Returns:
            ModelFanOutResult with one outcome per known model, in order
        """
        slots: list[Optional[ModelOutcome]] = [None] * len(self._known_models)

        async def run_model(position: int, model: str) -> None:
            with self._span_factory(f"model: {model}", input={"eval": name}) as span:
                try:
                    config = EvaluationConfig(model=model, attempts=1, system_prompt=system_prompt)
                    report = await self.run_attempts(name, config)
                except Exception as exc:
                    span["error"] = exc
                    logger.warning("Evaluation %s failed for model %r: %s", name, model, exc)
                    slots[position] = ModelOutcome(model=model, error=str(exc))
                else:
                    slots[position] = ModelOutcome(model=model, report=report)

        await asyncio.gather(
            *(run_model(i, model) for i, model in enumerate(self._known_models))
        )
        return ModelFanOutResult(outcomes=[outcome for outcome in slots if outcome is not None])


__all__ = [
    "EvaluationController",
    "KNOWN_MODELS",
]
