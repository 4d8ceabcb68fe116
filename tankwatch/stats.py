"""
Small numeric routines shared by the predictors.

Population statistics over flat sequences; every function returns a neutral
value instead of raising on empty or degenerate input.
"""

import math
from dataclasses import dataclass
from typing import Sequence

import numpy as np


@dataclass(frozen=True)
class RegressionResult:
    slope: float
    intercept: float
    r_squared: float


def linear_regression(x: Sequence[float], y: Sequence[float]) -> RegressionResult:
    """
    Ordinary least squares fit of y = slope * x + intercept.

    Fewer than 2 points gives a flat zero line; identical x values give
    slope 0 through the mean of y, and identical y values an exact slope 0.
    """
    n = len(x)
    if n < 2 or n != len(y):
        return RegressionResult(slope=0.0, intercept=0.0, r_squared=0.0)

    xs = np.asarray(x, dtype=float)
    ys = np.asarray(y, dtype=float)

    if np.ptp(ys) == 0:
        return RegressionResult(slope=0.0, intercept=float(ys[0]), r_squared=0.0)

    sum_x = xs.sum()
    sum_y = ys.sum()
    denominator = n * float(np.dot(xs, xs)) - sum_x * sum_x
    if denominator == 0:
        return RegressionResult(slope=0.0, intercept=float(sum_y / n), r_squared=0.0)

    slope = (n * float(np.dot(xs, ys)) - sum_x * sum_y) / denominator
    intercept = (sum_y - slope * sum_x) / n

    ss_total = float(((ys - ys.mean()) ** 2).sum())
    ss_residual = float(((ys - (slope * xs + intercept)) ** 2).sum())
    r_squared = 0.0 if ss_total == 0 else 1 - ss_residual / ss_total

    return RegressionResult(
        slope=float(slope), intercept=float(intercept), r_squared=float(r_squared)
    )


def mean(values: Sequence[float]) -> float:
    """Arithmetic mean, 0 for an empty sequence."""
    if not values:
        return 0.0
    return math.fsum(values) / len(values)


def standard_deviation(values: Sequence[float]) -> float:
    """Population standard deviation, 0 for an empty sequence."""
    if not values:
        return 0.0
    return float(np.std(np.asarray(values, dtype=float)))


def z_score(value: float, mu: float, sigma: float) -> float:
    if sigma == 0:
        return 0.0
    return (value - mu) / sigma


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def round_half_up(value: float) -> int:
    """Nearest integer, halves rounded up (2.5 -> 3, -2.5 -> -2)."""
    return math.floor(value + 0.5)
