"""Weighted aggregate metric and result-report helpers."""
from __future__ import annotations

import math
from statistics import mean
from typing import Dict, List, Mapping, Optional, Sequence

from pydantic import BaseModel, Field

from agents.types import EvaluationResult
from services.coverage import CoverageScheduler


BANDS = (
    (4.5, "very high"),
    (3.5, "high"),
    (2.5, "standard"),
)
BAND_FLOOR = "needs improvement"
STRENGTH_MIN = 4.0
WEAKNESS_MAX = 2.0


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _round2(value: float) -> float:
    """Round a float to two decimal places with stable formatting."""
    return float(f"{value:.2f}")


def band_for(average: Optional[float]) -> Optional[str]:
    if average is None:
        return None
    for threshold, label in BANDS:
        if average >= threshold:
            return label
    return BAND_FLOOR


class DimensionScore(BaseModel):
    dimension_id: int
    name: str
    score: float
    weight: Optional[float] = None


class ScoreReport(BaseModel):
    aggregate: int
    average: Optional[float] = None
    band: Optional[str] = None
    strengths: List[str] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)
    per_dimension: List[DimensionScore] = Field(default_factory=list)


class ScoreAggregator:
    """Weighted aggregate over a fixed subset of dimensions.

    ``aggregate`` returns ``round((1 - sum(score * weight) / max_score) * 100)``.
    The sum covers only evaluated dimensions that carry a weight and the
    denominator stays ``max_score``; weights of unevaluated dimensions are not
    redistributed. A partially covered session therefore drifts toward 100,
    and an empty evaluation list yields exactly 100.
    """

    def __init__(self, weights: Mapping[int, float], *, max_score: float = 5.0) -> None:
        if max_score <= 0:
            raise ValueError("max_score must be positive")
        if any(weight < 0 for weight in weights.values()):
            raise ValueError("weights must be non-negative")
        self._weights: Dict[int, float] = dict(weights)
        self._max_score = float(max_score)

    @property
    def weights(self) -> Dict[int, float]:
        return dict(self._weights)

    @property
    def max_score(self) -> float:
        return self._max_score

    def aggregate(self, evaluations: Sequence[EvaluationResult]) -> int:
        weighted = 0.0
        for dimension_id, score in latest_scores(evaluations).items():
            weight = self._weights.get(dimension_id)
            if weight:
                weighted += score * weight
        return _round_half_up((1 - weighted / self._max_score) * 100)

    def report(self, evaluations: Sequence[EvaluationResult], scheduler: CoverageScheduler) -> ScoreReport:
        """Aggregate plus the per-dimension breakdown shown on the result page."""

        latest = latest_scores(evaluations)
        average = _round2(mean(latest.values())) if latest else None
        per_dimension = [
            DimensionScore(
                dimension_id=dimension_id,
                name=scheduler.name_for(dimension_id),
                score=score,
                weight=self._weights.get(dimension_id),
            )
            for dimension_id, score in latest.items()
        ]
        return ScoreReport(
            aggregate=self.aggregate(evaluations),
            average=average,
            band=band_for(average),
            strengths=[item.name for item in per_dimension if item.score >= STRENGTH_MIN],
            weaknesses=[item.name for item in per_dimension if item.score <= WEAKNESS_MAX],
            per_dimension=per_dimension,
        )


def latest_scores(evaluations: Sequence[EvaluationResult]) -> Dict[int, float]:
    """Map dimension id to its most recent score, in first-evaluated order."""

    scores: Dict[int, float] = {}
    for item in evaluations:
        scores[item.dimension_id] = float(item.score)
    return scores


__all__ = [
    "BANDS",
    "BAND_FLOOR",
    "DimensionScore",
    "ScoreAggregator",
    "ScoreReport",
    "band_for",
    "latest_scores",
]
