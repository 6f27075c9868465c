from __future__ import annotations

import asyncio
import contextlib
from typing import Any, Iterator

import pytest

from workspace_eval.controller import KNOWN_MODELS, EvaluationController
from workspace_eval.models import AggregateReport, EvalStatus, EvaluationConfig, RunContext
from workspace_eval.registry import EvaluationRegistry, UnknownEvaluationError


class _RecordingSpans:
    def __init__(self) -> None:
        self.opened: list[str] = []
        self.closed: list[dict[str, Any]] = []

    @contextlib.contextmanager
    def __call__(self, name: str, **kwargs: Any) -> Iterator[dict[str, Any]]:
        data: dict[str, Any] = {"name": name, "error": None}
        self.opened.append(name)
        try:
            yield data
        finally:
            self.closed.append(data)


class _StubReport:
    def __init__(
        self,
        context: RunContext,
        *,
        success: bool = True,
        delay: float = 0.0,
        render_error: Exception | None = None,
        finished: list[int] | None = None,
    ) -> None:
        self.context = context
        self.success = success
        self.delay = delay
        self.render_error = render_error
        self.finished = finished

    async def render(self) -> str:
        await asyncio.sleep(self.delay)
        if self.finished is not None:
            self.finished.append(self.context.attempt)
        if self.render_error is not None:
            raise self.render_error
        return f"{self.context.model} attempt {self.context.attempt}"

    async def succeeded(self) -> bool:
        return self.success


def _single_state(context: RunContext) -> _StubReport:
    return _StubReport(context)


@pytest.mark.asyncio
async def test_single_state_all_attempts_succeed() -> None:
    spans = _RecordingSpans()
    controller = EvaluationController(
        EvaluationRegistry({"SingleState": _single_state}), span_factory=spans
    )
    config = EvaluationConfig(model="gpt-4o", attempts=3, system_prompt="")

    report = await controller.run_attempts("SingleState", config)
    rendered = report.render()

    assert report.success_count == 3
    assert report.success_rate == 1.0
    assert rendered.count("## Attempt ") == 3
    assert "SUCCESS RATE: 3/3 (100%)" in rendered
    assert rendered.startswith("# Model: gpt-4o\n")
    assert sorted(spans.opened) == ["attempt 1", "attempt 2", "attempt 3"]
    assert len(spans.closed) == 3


@pytest.mark.asyncio
async def test_attempts_ordered_by_index_not_completion() -> None:
    finished: list[int] = []
    attempts = 5

    def eval_fn(context: RunContext) -> _StubReport:
        return _StubReport(
            context,
            delay=(attempts - context.attempt) * 0.05,
            finished=finished,
        )

    controller = EvaluationController(
        EvaluationRegistry({"Ordered": eval_fn}), span_factory=_RecordingSpans()
    )

    report = await controller.run_attempts(
        "Ordered", EvaluationConfig(model="gpt-4o", attempts=attempts)
    )

    assert finished == [5, 4, 3, 2, 1]
    assert [a.index for a in report.attempts] == [1, 2, 3, 4, 5]
    rendered = report.render()
    positions = [rendered.index(f"## Attempt {i}\n") for i in range(1, attempts + 1)]
    assert positions == sorted(positions)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "outcomes",
    [
        [False],
        [True],
        [False, False, False],
        [True, True, True, True],
        [True, False, True, False, False],
    ],
)
async def test_success_rate_counts_successful_attempts(outcomes: list[bool]) -> None:
    def eval_fn(context: RunContext) -> _StubReport:
        return _StubReport(context, success=outcomes[context.attempt - 1], delay=0.001)

    controller = EvaluationController(
        EvaluationRegistry({"Mixed": eval_fn}), span_factory=_RecordingSpans()
    )

    report = await controller.run_attempts(
        "Mixed", EvaluationConfig(model="gpt-4o", attempts=len(outcomes))
    )

    expected = sum(outcomes)
    assert report.success_count == expected
    assert report.success_rate == expected / len(outcomes)
    assert [a.succeeded for a in report.attempts] == outcomes
    assert f"SUCCESS RATE: {expected}/{len(outcomes)} " in report.render()


@pytest.mark.asyncio
async def test_unknown_evaluation_launches_nothing() -> None:
    calls: list[RunContext] = []
    spans = _RecordingSpans()

    def eval_fn(context: RunContext) -> _StubReport:
        calls.append(context)
        return _StubReport(context)

    controller = EvaluationController(
        EvaluationRegistry({"SingleState": eval_fn}), span_factory=spans
    )

    with pytest.raises(UnknownEvaluationError) as excinfo:
        await controller.run_attempts(
            "not-a-real-name", EvaluationConfig(model="gpt-4o", attempts=3)
        )

    assert "not-a-real-name" in str(excinfo.value)
    assert calls == []
    assert spans.opened == []


@pytest.mark.asyncio
async def test_render_failure_is_isolated_to_its_attempt() -> None:
    def eval_fn(context: RunContext) -> _StubReport:
        error = RuntimeError("render exploded") if context.attempt == 2 else None
        return _StubReport(context, render_error=error)

    controller = EvaluationController(
        EvaluationRegistry({"SingleState": eval_fn}), span_factory=_RecordingSpans()
    )

    report = await controller.run_attempts(
        "SingleState", EvaluationConfig(model="gpt-4o", attempts=3)
    )

    assert [a.status for a in report.attempts] == [
        EvalStatus.COMPLETED,
        EvalStatus.FAILED,
        EvalStatus.COMPLETED,
    ]
    assert report.attempts[1].error == "render exploded"
    assert report.attempts[1].section() == "## Attempt 2\n\nERROR: render exploded\n"
    assert report.attempts[0].error is None
    assert report.attempts[2].error is None
    assert "SUCCESS RATE: 2/3 (67%)" in report.render()


@pytest.mark.asyncio
async def test_run_all_models_covers_every_model_in_order() -> None:
    models = ["model-a", "model-b", "model-c"]
    prompts: list[str] = []
    finished: list[str] = []

    async def eval_fn(context: RunContext) -> _StubReport:
        prompts.append(context.system_prompt)
        await asyncio.sleep((len(models) - models.index(context.model)) * 0.05)
        finished.append(context.model)
        return _StubReport(context)

    spans = _RecordingSpans()
    controller = EvaluationController(
        EvaluationRegistry({"SingleState": eval_fn}),
        known_models=models,
        span_factory=spans,
    )

    result = await controller.run_all_models("SingleState", system_prompt="be careful")

    assert finished == ["model-c", "model-b", "model-a"]
    assert [o.model for o in result.outcomes] == models
    assert all(o.error is None for o in result.outcomes)
    assert all(o.report.total_attempts == 1 for o in result.outcomes)
    assert prompts == ["be careful"] * 3
    assert {f"model: {m}" for m in models} <= set(spans.opened)
    rendered = result.rendered()
    assert [r.splitlines()[0] for r in rendered] == [f"# Model: {m}" for m in models]


class _FlakyController(EvaluationController):
    async def run_attempts(self, name: str, config: EvaluationConfig) -> AggregateReport:
        if config.model == "model-b":
            raise RuntimeError("provider unavailable")
        return await super().run_attempts(name, config)


@pytest.mark.asyncio
async def test_run_all_models_isolates_model_failure() -> None:
    spans = _RecordingSpans()
    controller = _FlakyController(
        EvaluationRegistry({"SingleState": _single_state}),
        known_models=["model-a", "model-b", "model-c"],
        span_factory=spans,
    )

    result = await controller.run_all_models("SingleState")
    rendered = result.rendered()

    assert len(rendered) == 3
    assert rendered[1] == "ERROR: provider unavailable"
    assert "SUCCESS RATE: 1/1 (100%)" in rendered[0]
    assert "SUCCESS RATE: 1/1 (100%)" in rendered[2]
    model_spans = {s["name"]: s for s in spans.closed if s["name"].startswith("model: ")}
    assert isinstance(model_spans["model: model-b"]["error"], RuntimeError)
    assert model_spans["model: model-a"]["error"] is None


@pytest.mark.asyncio
async def test_run_all_models_reports_unknown_evaluation_per_model() -> None:
    controller = EvaluationController(
        EvaluationRegistry({"SingleState": _single_state}), span_factory=_RecordingSpans()
    )

    result = await controller.run_all_models("not-a-real-name")

    assert [o.model for o in result.outcomes] == list(KNOWN_MODELS)
    assert result.rendered() == ["ERROR: unknown evaluation: not-a-real-name"] * len(KNOWN_MODELS)
