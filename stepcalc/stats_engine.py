"""Descriptive statistics.

Variance is the population variance (divides by n, not n - 1).
"""

import math
import statistics
from dataclasses import dataclass
from typing import List, Sequence, Tuple

from .backend import format_number
from .errors import EvaluationError


@dataclass
class StatisticsSummary:
    """Summary statistics of a data set."""

    mean: float
    variance: float
    standard_deviation: float
    min: float
    max: float
    count: int
    median: float

    def to_dict(self) -> dict:
        return {
            "mean": self.mean,
            "variance": self.variance,
            "standardDeviation": self.standard_deviation,
            "min": self.min,
            "max": self.max,
            "count": self.count,
            "median": self.median,
        }


def validate_data(data: Sequence) -> List[float]:
    """Check that ``data`` is a non-empty sequence of finite numbers."""
    values = list(data)
    if not values:
        raise EvaluationError("Statistics need at least one value")
    for value in values:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise EvaluationError(f"Not a number: {value!r}")
        if not math.isfinite(value):
            raise EvaluationError(f"Not a finite number: {value}")
    return values


MAX_SHOWN_TERMS = 10


def mean_expression(values: Sequence[float], max_terms: int = MAX_SHOWN_TERMS) -> str:
    """Spell the mean out as a sum of terms over the count.

    Long sums keep the first terms and the last one, eliding the rest.
    """
    shown = [format_number(v) for v in values]
    if max_terms > 0 and len(shown) > max_terms:
        shown = shown[: max_terms - 1] + ["...", shown[-1]]
    terms = " + ".join(shown)
    return f"({terms}) / {len(values)}"


def summarize(data: Sequence[float]) -> Tuple[StatisticsSummary, List[str]]:
    """Compute summary statistics and the derivation trace.

    The trace spells the mean out as a sum. The value itself is an exact
    float sum, so data sets of any size work.

    Raises:
        EvaluationError: For empty or non-numeric data.
    """
    values = validate_data(data)
    n = len(values)

    expression = mean_expression(values)
    mean = math.fsum(values) / n
    variance = math.fsum((v - mean) ** 2 for v in values) / n
    std_dev = math.sqrt(variance)
    low, high = min(values), max(values)
    median = statistics.median(values)

    steps = [
        f"Count: {n}",
        f"Data: [{', '.join(format_number(v) for v in values)}]",
        f"Mean: {expression} = {format_number(mean)}",
        f"Variance: {format_number(variance)}",
        f"Standard deviation: √{format_number(variance)} = {format_number(std_dev)}",
        f"Min: {format_number(low)}, Max: {format_number(high)}",
        f"Median: {format_number(median)}",
    ]

    summary = StatisticsSummary(
        mean=mean,
        variance=variance,
        standard_deviation=std_dev,
        min=low,
        max=high,
        count=n,
        median=median,
    )
    return summary, steps
