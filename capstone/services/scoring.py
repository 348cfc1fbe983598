from __future__ import annotations

from typing import Any, Iterable, Optional

from capstone.models.enums import EvaluatorRole


def _role_of(record: Any) -> str:
    role = record["role"] if isinstance(record, dict) else record.role
    return role.value if isinstance(role, EvaluatorRole) else str(role)


def _score_of(record: Any) -> float:
    return float(record["score"] if isinstance(record, dict) else record.score)


def compute_role_average(scores: Iterable[Any], role: EvaluatorRole) -> Optional[float]:
    """
    Mean score over records of one role.
    None when the role has no records (distinct from an average of 0).
    """
    values = [_score_of(s) for s in scores if _role_of(s) == role.value]
    if not values:
        return None
    return sum(values) / len(values)


def projected_final_score(
    advisor_avg: Optional[float],
    committee_avg: Optional[float],
    advisor_weight: float,
    committee_weight: float,
) -> Optional[float]:
    """
    Σ(avg_i·w_i) / Σ(w_i) over the roles that have an average.
    Weights are renormalized over present roles, so a lone advisor score of 7
    projects to 7 regardless of the weights.
    """
    parts = [
        (avg, float(w))
        for avg, w in ((advisor_avg, advisor_weight), (committee_avg, committee_weight))
        if avg is not None
    ]
    if not parts:
        return None

    weight_total = sum(w for _, w in parts)
    if weight_total == 0:
        return None
    return sum(avg * w for avg, w in parts) / weight_total


def weighted_final_score(
    advisor_avg: Optional[float],
    committee_avg: Optional[float],
    advisor_weight: float,
    committee_weight: float,
) -> float:
    """
    Final = A·wA + C·wC with the weights used verbatim; a missing average counts as 0.
    """
    a = advisor_avg if advisor_avg is not None else 0.0
    c = committee_avg if committee_avg is not None else 0.0
    return a * float(advisor_weight) + c * float(committee_weight)


def weights_sum_to_one(advisor_weight: float, committee_weight: float, tolerance: float = 0.01) -> bool:
    return abs(float(advisor_weight) + float(committee_weight) - 1.0) <= tolerance
