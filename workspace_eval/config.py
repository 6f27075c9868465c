"""Loading workspace settings and evaluation registries from files."""

from __future__ import annotations

import importlib
import json
from functools import lru_cache
from pathlib import Path
from typing import Any, Optional, Union

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field

from workspace_eval.controller import KNOWN_MODELS
from workspace_eval.models import EvaluationConfig
from workspace_eval.registry import EvalFunc, EvaluationRegistry


@lru_cache(maxsize=None)
def load_project_env(env_file: str = ".env") -> None:
    """Load a workspace `.env` file once per process, keeping existing variables."""
    env_path = Path(env_file)
    if env_path.exists():
        load_dotenv(env_path, override=False)


class ConfigError(ValueError):
    """Raised when workspace settings cannot be loaded."""


class WorkspaceSettings(BaseModel):
    """Settings file contents for an evaluation workspace."""

    model: str = Field(default="", description="Model identifier")
    attempts: int = Field(default=2, ge=1, description="Attempts per evaluation")
    system_prompt: str = Field(default="", description="System prompt")
    attempt_timeout_seconds: Optional[float] = Field(default=None, gt=0.0, description="Per-attempt deadline")
    known_models: list[str] = Field(
        default_factory=lambda: list(KNOWN_MODELS),
        description="Models used by the all-models fan-out",
    )
    evaluations: dict[str, str] = Field(
        default_factory=dict,
        description="Evaluation name to 'package.module:attribute' import path",
    )

    def to_config(self) -> EvaluationConfig:
        return EvaluationConfig(
            model=self.model,
            attempts=self.attempts,
            system_prompt=self.system_prompt,
            attempt_timeout_seconds=self.attempt_timeout_seconds,
        )


def load_workspace_settings(config_path: Union[str, Path]) -> WorkspaceSettings:
    """Load workspace settings from a YAML or JSON file.

    Args:
        config_path: Path to the settings file

    Returns:
        WorkspaceSettings parsed from the file

    Raises:
        ConfigError: If the file is missing or cannot be parsed
    """
    path = Path(config_path)
    if not path.exists():
        raise ConfigError(f"Config file not found: {config_path}")

    content = path.read_text()
    suffix = path.suffix.lower()

    try:
        if suffix in (".yaml", ".yml"):
            data = yaml.safe_load(content)
        elif suffix == ".json":
            data = json.loads(content)
        else:
            try:
                data = yaml.safe_load(content)
            except yaml.YAMLError:
                data = json.loads(content)
    except (yaml.YAMLError, json.JSONDecodeError) as exc:
        raise ConfigError(f"Invalid config file {config_path}: {exc}") from exc

    return WorkspaceSettings(**(data or {}))


def import_evaluation(target: str) -> EvalFunc:
    """Import an evaluation function from a ``package.module:attribute`` path."""
    module_name, sep, attr_path = target.partition(":")
    if not sep or not module_name or not attr_path:
        raise ConfigError(f"Invalid evaluation target {target!r}, expected 'module:attribute'")

    try:
        obj: Any = importlib.import_module(module_name)
        for attr in attr_path.split("."):
            obj = getattr(obj, attr)
    except (ImportError, AttributeError) as exc:
        raise ConfigError(f"Cannot import evaluation {target!r}: {exc}") from exc

    if not callable(obj):
        raise ConfigError(f"Evaluation {target!r} is not callable")
    return obj


def build_registry(settings: WorkspaceSettings) -> EvaluationRegistry:
    return EvaluationRegistry(
        {name: import_evaluation(target) for name, target in settings.evaluations.items()}
    )


__all__ = [
    "ConfigError",
    "WorkspaceSettings",
    "build_registry",
    "import_evaluation",
    "load_project_env",
    "load_workspace_settings",
]
