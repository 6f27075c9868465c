"""Pydantic models for evaluation configs and run results."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class EvalStatus(str, Enum):
    """Status of an evaluation attempt."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


class RunContext(BaseModel):
    """Per-attempt context handed to an evaluation function."""

    model_config = ConfigDict(frozen=True)

    attempt: int = Field(..., ge=1, description="1-based attempt index")
    model: str = Field(default="", description="Model identifier")
    system_prompt: str = Field(default="", description="System prompt for the run")
    timeout_seconds: Optional[float] = Field(default=None, gt=0.0, description="Attempt deadline")


class EvaluationConfig(BaseModel):
    """Configuration for one evaluation run."""

    model_config = ConfigDict(frozen=True)

    model: str = Field(default="", description="Model identifier")
    attempts: int = Field(default=2, ge=1, description="Number of concurrent attempts")
    system_prompt: str = Field(default="", description="System prompt for every attempt")
    attempt_timeout_seconds: Optional[float] = Field(
        default=None,
        gt=0.0,
        description="Per-attempt deadline, unbounded when unset",
    )

    def with_system_prompt(self, prompt: str) -> "EvaluationConfig":
        """Return a copy of this config using ``prompt`` as the system prompt."""
        return self.model_copy(update={"system_prompt": prompt})

    def context_for(self, attempt: int) -> RunContext:
        return RunContext(
            attempt=attempt,
            model=self.model,
            system_prompt=self.system_prompt,
            timeout_seconds=self.attempt_timeout_seconds,
        )


class Attempt(BaseModel):
    """Result of a single evaluation attempt."""

    index: int = Field(..., ge=1, description="1-based attempt index")
    status: EvalStatus = Field(default=EvalStatus.PENDING, description="Attempt status")
    report: Optional[str] = Field(default=None, description="Rendered narrative text, unset until rendering returns")
    succeeded: bool = Field(default=False, description="Whether the evaluation succeeded")
    error: Optional[str] = Field(default=None, description="Error message, if any")
    duration_seconds: Optional[float] = Field(default=None, ge=0.0, description="Duration in seconds")

    def section(self) -> str:
        """Render this attempt as a report section."""
        lines = [f"## Attempt {self.index}", ""]
        if self.report is not None:
            lines.append(self.report)
        if self.error:
            lines.append(f"ERROR: {self.error}")
        return "\n".join(lines) + "\n"


class AggregateReport(BaseModel):
    """Ordered attempt results and success rate for one model."""

    model_config = ConfigDict(frozen=True)

    model: str = Field(..., description="Model identifier")
    attempts: list[Attempt] = Field(default_factory=list, description="Attempts ordered by index")
    success_count: int = Field(default=0, ge=0, description="Number of successful attempts")

    @property
    def total_attempts(self) -> int:
        return len(self.attempts)

    @property
    def success_rate(self) -> float:
        if not self.attempts:
            return 0.0
        return self.success_count / self.total_attempts

    def render(self) -> str:
        """Render the full markdown report."""
        parts = [
            f"# Model: {self.model}\n",
            "\n",
            "## All Attempts\n",
            "\n",
        ]
        parts.extend(attempt.section() for attempt in self.attempts)
        parts.extend(
            [
                "## Final Report\n",
                "\n",
                f"SUCCESS RATE: {self.success_count}/{self.total_attempts} "
                f"({self.success_rate * 100:.0f}%)\n",
            ]
        )
        return "".join(parts)


class ModelOutcome(BaseModel):
    """Outcome of evaluating a single model."""

    model: str = Field(..., description="Model identifier")
    report: Optional[AggregateReport] = Field(default=None, description="Report when the run finished")
    error: Optional[str] = Field(default=None, description="Error message when the run failed")

    def render(self) -> str:
        if self.report is None:
            return f"ERROR: {self.error}"
        return self.report.render()


class ModelFanOutResult(BaseModel):
    """Per-model outcomes in known-model order."""

    outcomes: list[ModelOutcome] = Field(default_factory=list, description="Outcomes per model")

    def rendered(self) -> list[str]:
        return [outcome.render() for outcome in self.outcomes]


__all__ = [
    "AggregateReport",
    "Attempt",
    "EvalStatus",
    "EvaluationConfig",
    "ModelFanOutResult",
    "ModelOutcome",
    "RunContext",
]
