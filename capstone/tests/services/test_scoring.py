import pytest

from capstone.models.enums import EvaluatorRole
from capstone.services.scoring import (
    compute_role_average,
    projected_final_score,
    weighted_final_score,
    weights_sum_to_one,
)


def _scores(*pairs):
    return [{"role": role, "score": score} for role, score in pairs]


def test_role_average():
    scores = _scores(("ADVISOR", 8.0), ("COMMITTEE", 7.0), ("COMMITTEE", 9.0))
    assert compute_role_average(scores, EvaluatorRole.ADVISOR) == 8.0
    assert compute_role_average(scores, EvaluatorRole.COMMITTEE) == 8.0


def test_role_average_none_when_no_scores():
    scores = _scores(("ADVISOR", 0.0))
    assert compute_role_average(scores, EvaluatorRole.COMMITTEE) is None
    # zero is data, not absence
    assert compute_role_average(scores, EvaluatorRole.ADVISOR) == 0.0


def test_projection_renormalizes_over_present_roles():
    assert projected_final_score(7.0, None, 0.4, 0.6) == pytest.approx(7.0)
    assert projected_final_score(None, 6.0, 0.4, 0.6) == pytest.approx(6.0)
    assert projected_final_score(8.0, 6.0, 0.4, 0.6) == pytest.approx(6.8)


def test_projection_without_scores_is_none():
    assert projected_final_score(None, None, 0.4, 0.6) is None


def test_projection_zero_weight_for_only_present_role():
    assert projected_final_score(7.0, None, 0.0, 1.0) is None


def test_weighted_final_uses_weights_verbatim():
    assert weighted_final_score(8.0, 8.0, 0.4, 0.6) == pytest.approx(8.0)
    assert weighted_final_score(7.0, None, 0.4, 0.6) == pytest.approx(2.8)


@pytest.mark.parametrize(
    "aw, cw, ok",
    [
        (0.4, 0.6, True),
        (0.5, 0.5, True),
        (0.4, 0.59, False),
        (0.4, 0.7, False),
        (0.0, 1.0, True),
    ],
)
def test_weights_sum_to_one(aw, cw, ok):
    assert weights_sum_to_one(aw, cw, 0.01) is ok
