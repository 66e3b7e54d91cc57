"""
Grade Aggregation Service

Trimmed-mean final grades. Uses Decimal for all numeric computation to avoid
float errors; every reported figure is rounded half-up to 2 decimals.

Rule by number of scores n:
- n == 0: no grade
- n <= 2: plain mean
- n >= 3: drop one lowest and one highest score, mean of the remaining n - 2
"""
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from peergrade.orm.evaluation import Evaluation, QUANTIZER_2DP
from peergrade.orm.jury_assignment import JuryAssignment

TRIM_THRESHOLD = 3


def round_half_up(value: Decimal) -> Decimal:
    return value.quantize(QUANTIZER_2DP, rounding=ROUND_HALF_UP)


def mean(values: List[Decimal]) -> Decimal:
    return sum(values, Decimal("0")) / Decimal(len(values))


def as_float(value: Optional[Decimal]) -> Optional[float]:
    return float(value) if value is not None else None


@dataclass
class FinalGrade:
    final_grade: Optional[Decimal]
    total_evaluations: int
    all_scores: List[Decimal] = field(default_factory=list)
    excluded_lowest: Optional[Decimal] = None
    excluded_highest: Optional[Decimal] = None

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "finalGrade": as_float(self.final_grade),
            "totalEvaluations": self.total_evaluations,
            "allScores": [float(s) for s in self.all_scores],
        }
        if self.excluded_lowest is not None:
            result["excludedLowest"] = float(self.excluded_lowest)
            result["excludedHighest"] = float(self.excluded_highest)
        return result


def compute_final_grade(scores: Iterable[Any]) -> FinalGrade:
    """
    Apply the trimmed-mean rule to a multiset of scores.

    Ties at either extreme lose exactly one element each, e.g.
    [5, 5, 5, 9] -> drop one 5 and the 9 -> mean(5, 5) = 5.00.
    """
    ordered = sorted(Decimal(str(s)) for s in scores)
    n = len(ordered)

    if n == 0:
        return FinalGrade(final_grade=None, total_evaluations=0)

    if n < TRIM_THRESHOLD:
        return FinalGrade(
            final_grade=round_half_up(mean(ordered)),
            total_evaluations=n,
            all_scores=ordered
        )

    middle = ordered[1:-1]
    return FinalGrade(
        final_grade=round_half_up(mean(middle)),
        total_evaluations=n,
        all_scores=ordered,
        excluded_lowest=ordered[0],
        excluded_highest=ordered[-1]
    )


async def fetch_scores(db: AsyncSession, deliverable_id: int) -> List[Decimal]:
    """
    Every evaluation score for the deliverable, whatever the assignment status.
    A single SELECT, so the result is one consistent snapshot.
    """
    result = await db.execute(
        select(Evaluation.score)
        .join(JuryAssignment, Evaluation.jury_assignment_id == JuryAssignment.id)
        .where(JuryAssignment.deliverable_id == deliverable_id)
    )
    return [Decimal(str(row[0])) for row in result.all()]


async def calculate_final_grade(db: AsyncSession, deliverable_id: int) -> FinalGrade:
    """Read-only; safe to call repeatedly and alongside submissions."""
    scores = await fetch_scores(db, deliverable_id)
    return compute_final_grade(scores)


def score_statistics(scores: List[Decimal]) -> Dict[str, Optional[float]]:
    """Average, min and max with the same rounding as the final grade."""
    if not scores:
        return {"averageScore": None, "minScore": None, "maxScore": None}
    return {
        "averageScore": as_float(round_half_up(mean(scores))),
        "minScore": as_float(round_half_up(min(scores))),
        "maxScore": as_float(round_half_up(max(scores))),
    }
