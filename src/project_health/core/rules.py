"""Declarative scoring rules: (condition, point delta, detail) evaluated in order."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Union

from project_health.schemas import CategoryScore

Condition = Callable[[Any], bool]
Detail = Union[str, Callable[[Any], str]]
Points = Union[int, Callable[[Any], int]]


def _render(detail: Detail, ctx: Any) -> str:
    return detail(ctx) if callable(detail) else detail


@dataclass(frozen=True)
class Rule:
    """When `when(ctx)` holds, add `points` and record `detail`.

    `points` may be a callable when the delta depends on the context.
    Zero-point rules record informational notes.
    """
    when: Condition
    points: Points
    detail: Detail


@dataclass(frozen=True)
class Cap:
    """Hard upper bound applied after all rules when `when(ctx)` holds."""
    when: Condition
    ceiling: int
    detail: Detail


@dataclass(frozen=True)
class CategoryRules:
    """A category algorithm as data: a start value, ordered rules, caps."""
    name: str
    max: int
    rules: list[Rule]
    caps: list[Cap] = field(default_factory=list)
    start: int = 0

    def evaluate(self, ctx: Any) -> CategoryScore:
        earned = self.start
        details: list[str] = []

        for rule in self.rules:
            if not rule.when(ctx):
                continue
            points = rule.points(ctx) if callable(rule.points) else rule.points
            # Clamp at every step so the category can never leave [0, max]
            earned = min(self.max, max(0, earned + points))
            details.append(_render(rule.detail, ctx))

        for cap in self.caps:
            if cap.when(ctx) and earned > cap.ceiling:
                earned = cap.ceiling
                details.append(_render(cap.detail, ctx))

        return CategoryScore(earned=earned, max=self.max, details=details)
