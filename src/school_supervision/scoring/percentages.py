"""
Report percentages and performance bands.

A report's score is ``100 * sum / (4 * count)`` over all of its criterion
scores; a report with no scored criteria scores 0. Scoring never raises:
anything that is not a recognizable report scores 0 as well.
"""

from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any, List, Mapping

from ..models import BaseReport, UnrecognizedReport
from ..models.reports import MAX_CRITERION_SCORE


class PerformanceBand(str, Enum):
    """Band of a criterion mean on the 0..4 scale."""
    EXCELLENT = "excellent"
    GOOD = "good"
    AVERAGE = "average"
    WEAK = "weak"
    DEFICIENT = "deficient"


class PercentageColor(str, Enum):
    """Display color of a teacher or item percentage."""
    RED = "red"
    ORANGE = "orange"
    BLUE = "blue"
    GREEN = "green"


def _is_score(value: Any) -> bool:
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        return False
    return 0 <= value <= MAX_CRITERION_SCORE


def _scores_from_mapping(report: Mapping[str, Any]) -> List[float]:
    kind = report.get("evaluationType", report.get("evaluation_type"))
    if kind in ("general", "special"):
        criteria = report.get("criteria")
    elif kind == "class_session":
        groups = report.get("criterionGroups", report.get("criterion_groups"))
        if not isinstance(groups, list):
            return []
        criteria = [
            c for g in groups if isinstance(g, Mapping)
            for c in (g.get("criteria") if isinstance(g.get("criteria"), list) else [])
        ]
    else:
        return []

    if not isinstance(criteria, list):
        return []
    return [c["score"] for c in criteria if isinstance(c, Mapping) and _is_score(c.get("score"))]


def criterion_scores(report: Any) -> List[float]:
    """All criterion scores of a report model or stored report mapping."""
    if isinstance(report, UnrecognizedReport):
        return []
    if isinstance(report, BaseReport):
        return [c.score for c in report.criterion_items()]
    if isinstance(report, Mapping):
        return _scores_from_mapping(report)
    return []


def score_of(report: Any) -> float:
    """Percentage score of a report in [0, 100]."""
    scores = criterion_scores(report)
    if not scores:
        return 0.0
    return 100.0 * sum(scores) / (MAX_CRITERION_SCORE * len(scores))


def round_half_up(value: float, digits: int = 1) -> float:
    """Round for display, halves away from zero (79.165 -> 79.17 at 2 digits)."""
    quantum = Decimal(1).scaleb(-digits)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def format_percentage(value: float, digits: int = 1) -> str:
    return f"{round_half_up(value, digits):.{digits}f}%"


def criterion_band(mean: float) -> PerformanceBand:
    """Band a 0..4 criterion mean."""
    if mean >= 3.6:
        return PerformanceBand.EXCELLENT
    elif mean >= 3.0:
        return PerformanceBand.GOOD
    elif mean >= 2.0:
        return PerformanceBand.AVERAGE
    elif mean >= 1.0:
        return PerformanceBand.WEAK
    else:
        return PerformanceBand.DEFICIENT


def percentage_color(percentage: float) -> PercentageColor:
    """Color a percentage: under 50 red, up to 75 orange, up to 89 blue, else green."""
    if percentage < 50:
        return PercentageColor.RED
    elif percentage <= 75:
        return PercentageColor.ORANGE
    elif percentage <= 89:
        return PercentageColor.BLUE
    else:
        return PercentageColor.GREEN
