"""
hoeffpy.stats
=============

Streaming sufficient statistics.

:class:`NumericSummary` keeps the weighted count, sum and sum of squares of a
numeric variable and derives moments, a Gaussian density and a
less/equal/greater weight partition from them.  :class:`MinMax` tracks the
observed range of a predictor and turns it into evenly spaced candidate
thresholds.  Neither ever stores raw values.
"""

from __future__ import annotations

import math

import numpy as np

GAUSSIAN_NORM = math.sqrt(2.0 * math.pi)
_SQRT2 = math.sqrt(2.0)


def normal_cdf(z: float) -> float:
    """Standard normal cumulative distribution function."""
    return 0.5 * math.erfc(-z / _SQRT2)


def entropy(dist_vec: np.ndarray) -> float:
    tot = dist_vec.sum()
    if tot <= 0:
        return 0.0
    p = dist_vec / tot
    p = p[p > 0]
    return float(-np.sum(p * np.log2(p)))


class NumericSummary:
    """Weighted count, sum and sum of squares of a numeric series.

    Non-finite values and non-positive weights are ignored, so every derived
    quantity stays defined: an empty summary reports a zero mean, variance
    and density.
    """

    __slots__ = ("weight", "sum", "sum_squares")

    def __init__(self, weight: float = 0.0, sum: float = 0.0, sum_squares: float = 0.0):
        self.weight = float(weight)
        self.sum = float(sum)
        self.sum_squares = float(sum_squares)

    def __repr__(self) -> str:
        return f"NumericSummary(weight={self.weight:g}, mean={self.mean():g}, var={self.variance():g})"

    def __eq__(self, other) -> bool:
        if not isinstance(other, NumericSummary):
            return NotImplemented
        return (self.weight, self.sum, self.sum_squares) == (other.weight, other.sum, other.sum_squares)

    def append(self, value: float, weight: float = 1.0) -> None:
        value = float(value)
        if not math.isfinite(value) or not weight > 0:
            return
        wv = weight * value
        self.weight += weight
        self.sum += wv
        self.sum_squares += wv * value

    def merge(self, other: "NumericSummary") -> None:
        self.weight += other.weight
        self.sum += other.sum
        self.sum_squares += other.sum_squares

    def copy(self) -> "NumericSummary":
        return NumericSummary(self.weight, self.sum, self.sum_squares)

    @property
    def total_weight(self) -> float:
        return self.weight

    @property
    def is_empty(self) -> bool:
        return self.weight <= 0

    def mean(self) -> float:
        if self.weight != 0:
            return self.sum / self.weight
        return 0.0

    def variance(self) -> float:
        if self.weight > 0:
            mean = self.sum / self.weight
            return max(self.sum_squares / self.weight - mean * mean, 0.0)
        return 0.0

    def std_dev(self) -> float:
        return math.sqrt(self.variance())

    def sample_variance(self) -> float:
        if self.weight > 1:
            x = self.sum * self.sum / self.weight
            return max((self.sum_squares - x) / (self.weight - 1), 0.0)
        return 0.0

    def sample_std_dev(self) -> float:
        return math.sqrt(self.sample_variance())

    def prob_density(self, value: float) -> float:
        """Gaussian density at ``value`` using the sample standard deviation.

        A summary whose sample deviation is zero is treated as a spike at its
        mean: density 1 there and 0 anywhere else.
        """
        if self.weight > 0:
            mean = self.mean()
            sd = self.sample_std_dev()
            if sd > 0:
                diff = value - mean
                return math.exp(-(diff * diff) / (2.0 * sd * sd)) / (GAUSSIAN_NORM * sd)
            if value == mean:
                return 1.0
        return 0.0

    def estimate(self, value: float) -> tuple[float, float, float]:
        """Partition the observed weight into (< value, == value, > value).

        ``equal_to`` is the density at ``value`` scaled by the total weight,
        ``less_than`` the normal CDF mass below it minus ``equal_to``, and
        ``greater_than`` the (non-negative) remainder.

        Without spread the summary is a point mass at its mean, so all of
        its weight is ``less_than`` a value above the mean and
        ``greater_than`` a value below it.  This is the reverse of a
        ``value < mean`` test, which would place the mass on the wrong side
        of every threshold.
        """
        equal_to = self.prob_density(value) * self.weight
        less_than = 0.0
        mean = self.mean()
        sd = self.sample_std_dev()
        if sd > 0:
            less_than = normal_cdf((value - mean) / sd) * self.weight - equal_to
        elif value > mean:
            less_than = self.weight - equal_to
        greater_than = max(self.weight - equal_to - less_than, 0.0)
        return less_than, equal_to, greater_than


class MinMax:
    """Tracks the range of a numeric predictor."""

    __slots__ = ("min", "max")

    def __init__(self):
        self.min = math.inf
        self.max = -math.inf

    def update(self, value: float) -> None:
        if not math.isfinite(value):
            return
        if value < self.min:
            self.min = value
        if value > self.max:
            self.max = value

    def split_points(self, n: int) -> list[float]:
        """``n`` evenly spaced thresholds strictly inside the observed range."""
        if n <= 0 or not self.max > self.min:
            return []
        step = (self.max - self.min) / (n + 1)
        return [self.min + step * (i + 1) for i in range(n)]
