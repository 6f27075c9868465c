"""Evaluation registry and the evaluation-function contract."""

from __future__ import annotations

from functools import cached_property
from types import MappingProxyType
from typing import Awaitable, Callable, Iterator, Mapping, Protocol, Union

from workspace_eval.models import RunContext


class EvaluationError(Exception):
    """Base exception for evaluation errors."""


class UnknownEvaluationError(EvaluationError):
    """Requested evaluation is not registered."""

    def __init__(self, name: str):
        super().__init__(f"unknown evaluation: {name}")
        self.name = name


class EvalReport(Protocol):
    """Handle returned by an evaluation function.

    Either method may be a coroutine function or a plain blocking call.
    """

    def render(self) -> Union[str, Awaitable[str]]:
        ...

    def succeeded(self) -> Union[bool, Awaitable[bool]]:
        ...


EvalFunc = Callable[[RunContext], Union[EvalReport, Awaitable[EvalReport]]]


class EvaluationRegistry(Mapping[str, EvalFunc]):
    """Read-only mapping from evaluation name to evaluation function."""

    def __init__(self, evaluations: Mapping[str, EvalFunc]):
        self._evaluations = MappingProxyType(dict(evaluations))

    def __getitem__(self, name: str) -> EvalFunc:
        return self._evaluations[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._evaluations)

    def __len__(self) -> int:
        return len(self._evaluations)

    @cached_property
    def names(self) -> tuple[str, ...]:
        """Sorted evaluation names."""
        return tuple(sorted(self._evaluations))

    def resolve(self, name: str) -> EvalFunc:
        """Look up an evaluation function.

        Raises:
            UnknownEvaluationError: If no evaluation is registered under ``name``.
        """
        try:
            return self._evaluations[name]
        except KeyError:
            raise UnknownEvaluationError(name) from None


__all__ = [
    "EvalFunc",
    "EvalReport",
    "EvaluationError",
    "EvaluationRegistry",
    "UnknownEvaluationError",
]
