"""Public entry points for running evaluations."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional, Sequence, Union

from workspace_eval.config import build_registry, load_project_env, load_workspace_settings
from workspace_eval.controller import KNOWN_MODELS, EvaluationController
from workspace_eval.models import EvaluationConfig
from workspace_eval.observability import SpanFactory, traced_span
from workspace_eval.registry import EvaluationRegistry


class Workspace:
    """Evaluation workspace bound to one configuration.

    Workspaces are immutable: ``with_system_prompt`` returns a new workspace
    sharing the same registry and controller.
    """

    def __init__(
        self,
        config: Optional[EvaluationConfig] = None,
        *,
        registry: EvaluationRegistry,
        known_models: Sequence[str] = KNOWN_MODELS,
        span_factory: SpanFactory = traced_span,
        controller: Optional[EvaluationController] = None,
    ):
        self._config = config or EvaluationConfig()
        self._registry = registry
        self._controller = controller or EvaluationController(
            registry,
            known_models=known_models,
            span_factory=span_factory,
        )

    @classmethod
    def from_config_file(cls, path: Union[str, Path], **kwargs) -> "Workspace":
        """Build a workspace from a YAML or JSON settings file."""
        load_project_env()
        settings = load_workspace_settings(path)
        kwargs.setdefault("known_models", settings.known_models)
        return cls(settings.to_config(), registry=build_registry(settings), **kwargs)

    @property
    def config(self) -> EvaluationConfig:
        return self._config

    @property
    def system_prompt(self) -> str:
        return self._config.system_prompt

    def with_system_prompt(self, prompt: str) -> "Workspace":
        """Set the system prompt for future evaluations."""
        return Workspace(
            self._config.with_system_prompt(prompt),
            registry=self._registry,
            controller=self._controller,
        )

    async def backoff(self, seconds: float) -> "Workspace":
        """Sleep for the given number of seconds.

        Use this when a model provider is rate limiting.
        """
        await asyncio.sleep(seconds)
        return self

    def eval_names(self) -> list[str]:
        """The list of evaluations that can be run."""
        return list(self._registry.names)

    async def evaluate(self, name: str) -> str:
        """Run an evaluation and return its report.

        Raises:
            UnknownEvaluationError: If ``name`` is not registered.
        """
        report = await self._controller.run_attempts(name, self._config)
        return report.render()

    async def evaluate_all_models_once(self, name: str) -> list[str]:
        """Run an evaluation once against every known model in parallel."""
        result = await self._controller.run_all_models(name, self._config.system_prompt)
        return result.rendered()


__all__ = ["Workspace"]
