"""Corpus-wide prompt quality metrics."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from ctxsum.models import ContextualSummary

# (points, predicate) for prompt completeness, capped at 100
COMPLETENESS_RULES: list[tuple[int, Callable[[ContextualSummary], bool]]] = [
    (20, lambda s: bool(s.prompt.structure.header)),
    (20, lambda s: bool(s.prompt.structure.key_points)),
    (15, lambda s: bool(s.prompt.structure.dependencies)),
    (15, lambda s: bool(s.prompt.structure.exports)),
    (15, lambda s: bool(s.business_logic.operations)),
    (15, lambda s: s.technical_context is not None),
]

EFFICIENT_RATIO_RANGE = (0.3, 0.9)


@dataclass
class QualityMetrics:
    average_prompt_quality: float = 0.0
    contextual_relevance: float = 0.0
    information_density: float = 0.0
    token_efficiency: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "average_prompt_quality": self.average_prompt_quality,
            "contextual_relevance": self.contextual_relevance,
            "information_density": self.information_density,
            "token_efficiency": self.token_efficiency,
        }


def prompt_quality(summary: ContextualSummary) -> float:
    return min(100.0, float(sum(points for points, applies in COMPLETENESS_RULES if applies(summary))))


def relevance(summary: ContextualSummary) -> float:
    purpose = 100 if len(summary.purpose) > 10 else 50
    dependencies = 100 if summary.dependencies.external else 80
    complexity = 100 if summary.complexity != "low" else 90
    return (purpose + dependencies + complexity) / 3


def information_density(summary: ContextualSummary) -> float:
    """Facts per thousand approximate tokens."""
    facts = len(summary.key_features) + len(summary.dependencies.external) + len(summary.usage_patterns)
    tokens = summary.prompt.tokens.approximate
    return facts / tokens * 1000 if tokens > 0 else 0.0


def token_efficiency(summary: ContextualSummary) -> float:
    low, high = EFFICIENT_RATIO_RANGE
    return 100.0 if low < summary.prompt.tokens.compression_ratio < high else 70.0


def _mean(values: list[float]) -> float:
    return sum(values) / len(values)


def calculate_quality_metrics(summaries: list[ContextualSummary]) -> QualityMetrics:
    """Average each metric over the summaries; all zero when there are none."""
    if not summaries:
        return QualityMetrics()
    return QualityMetrics(
        average_prompt_quality=_mean([prompt_quality(s) for s in summaries]),
        contextual_relevance=_mean([relevance(s) for s in summaries]),
        information_density=_mean([information_density(s) for s in summaries]),
        token_efficiency=_mean([token_efficiency(s) for s in summaries]),
    )
