"""Multi-attempt, multi-model evaluation workspace.

This module provides:
- registry: Immutable name -> evaluation function mapping
- runner: Single attempt execution with failure isolation
- controller: Concurrent attempt and model fan-out
- workspace: Public entry points bound to one configuration
- config: Settings and registry loading from YAML/JSON files
"""

from .controller import KNOWN_MODELS, EvaluationController
from .models import (
    AggregateReport,
    Attempt,
    EvalStatus,
    EvaluationConfig,
    ModelFanOutResult,
    ModelOutcome,
    RunContext,
)
from .registry import EvaluationError, EvaluationRegistry, UnknownEvaluationError
from .workspace import Workspace

__all__ = [
    "AggregateReport",
    "Attempt",
    "EvalStatus",
    "EvaluationConfig",
    "EvaluationController",
    "EvaluationError",
    "EvaluationRegistry",
    "KNOWN_MODELS",
    "ModelFanOutResult",
    "ModelOutcome",
    "RunContext",
    "UnknownEvaluationError",
    "Workspace",
]
