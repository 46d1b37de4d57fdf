import pytest

from agents.types import Dimension, EvaluationResult
from services.coverage import CoverageScheduler
from services.scoring import ScoreAggregator, band_for, latest_scores

GRIT_WEIGHTS = {2: 0.30, 5: 0.25, 8: 0.20, 12: 0.15, 4: 0.10}


def _ev(dimension_id, score, comment=""):
    return EvaluationResult(dimension_id=dimension_id, score=score, comment=comment)


def _all(score):
    return [_ev(dim, score) for dim in range(1, 13)]


def test_full_marks_give_zero_and_zero_marks_give_hundred():
    aggregator = ScoreAggregator(GRIT_WEIGHTS)
    assert aggregator.aggregate(_all(5)) == 0
    assert aggregator.aggregate(_all(0)) == 100


def test_empty_evaluations_give_hundred():
    assert ScoreAggregator(GRIT_WEIGHTS).aggregate([]) == 100


def test_unweighted_dimensions_do_not_move_the_aggregate():
    aggregator = ScoreAggregator(GRIT_WEIGHTS)
    assert aggregator.aggregate([_ev(1, 5), _ev(3, 5), _ev(6, 5)]) == 100


def test_partial_coverage_is_not_renormalized():
    # Only dimension 2 (weight 0.30) has been evaluated; missing weight counts as zero.
    assert ScoreAggregator(GRIT_WEIGHTS).aggregate([_ev(2, 5)]) == 70


def test_latest_score_per_dimension_wins():
    aggregator = ScoreAggregator(GRIT_WEIGHTS)
    evaluations = [_ev(2, 1), _ev(2, 5)]
    assert latest_scores(evaluations) == {2: 5.0}
    assert aggregator.aggregate(evaluations) == 70


def test_custom_max_score():
    aggregator = ScoreAggregator({1: 1.0}, max_score=10)
    assert aggregator.aggregate([_ev(1, 4)]) == 60


@pytest.mark.parametrize("weights, max_score", [({1: -0.1}, 5), ({1: 1.0}, 0)])
def test_rejects_invalid_configuration(weights, max_score):
    with pytest.raises(ValueError):
        ScoreAggregator(weights, max_score=max_score)


@pytest.mark.parametrize(
    "average, band",
    [(None, None), (5.0, "very high"), (4.5, "very high"), (3.9, "high"), (2.5, "standard"), (1.0, "needs improvement")],
)
def test_band_for(average, band):
    assert band_for(average) == band


def test_report_breakdown():
    scheduler = CoverageScheduler([Dimension(id=i, name=f"dim-{i}") for i in (2, 5, 8)])
    report = ScoreAggregator(GRIT_WEIGHTS).report([_ev(2, 5), _ev(5, 4), _ev(8, 2)], scheduler)
    assert report.average == 3.67
    assert report.band == "high"
    assert report.strengths == ["dim-2", "dim-5"]
    assert report.weaknesses == ["dim-8"]
    assert [item.weight for item in report.per_dimension] == [0.30, 0.25, 0.20]
    # 1 - (1.5 + 1.0 + 0.4) / 5 = 0.42
    assert report.aggregate == 42


def test_report_without_evaluations():
    scheduler = CoverageScheduler([Dimension(id=1, name="dim-1")])
    report = ScoreAggregator({}).report([], scheduler)
    assert report.aggregate == 100
    assert report.average is None
    assert report.band is None
    assert report.per_dimension == []
