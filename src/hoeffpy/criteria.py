"""
hoeffpy.criteria
================

Split-quality criteria.  A criterion scores a candidate split (its *merit*)
from the statistics the node held before the split and the per-branch
statistics after it, and reports the *range* of that merit, which scales the
Hoeffding bound.

Classification criteria consume class-count vectors (``numpy`` arrays);
regression criteria consume :class:`~hoeffpy.stats.NumericSummary` objects.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from typing import Sequence

import numpy as np

from .stats import NumericSummary, entropy


class SplitCriterion(ABC):
    """Base class for the two supported criteria.

    Parameters
    ----------
    min_branch_frac : float
        Minimum fraction of the post-split weight a branch must hold to count
        as a real branch.  Observers skip candidates with a branch below it.
    """

    def __init__(self, min_branch_frac: float = 0.0):
        if not 0.0 <= min_branch_frac < 1.0:
            raise ValueError("min_branch_frac must lie in [0, 1)")
        self.min_branch_frac = float(min_branch_frac)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(min_branch_frac={self.min_branch_frac})"

    @abstractmethod
    def branch_weight(self, stats) -> float:
        """Total weight carried by one branch's statistics."""

    @abstractmethod
    def merit(self, pre_split, post_split: Sequence) -> float:
        """Quality of a split; ``-inf`` when it is not a valid split."""

    @abstractmethod
    def range(self, pre_split) -> float:
        """Upper bound on the merit for statistics like ``pre_split``."""

    def branch_fractions(self, post_split: Sequence) -> list[float]:
        weights = [self.branch_weight(s) for s in post_split]
        total = sum(weights)
        if total <= 0:
            return [0.0] * len(weights)
        return [w / total for w in weights]

    def admissible(self, post_split: Sequence) -> bool:
        """True when every branch is non-empty and at or above ``min_branch_frac``."""
        if len(post_split) < 2:
            return False
        return all(f > 0 and f >= self.min_branch_frac for f in self.branch_fractions(post_split))

    def _qualifying(self, post_split: Sequence) -> list[int]:
        return [i for i, f in enumerate(self.branch_fractions(post_split))
                if f > 0 and f >= self.min_branch_frac]


class InfoGainCriterion(SplitCriterion):
    """Information gain over weighted class distributions."""

    def __init__(self, min_branch_frac: float = 0.01):
        super().__init__(min_branch_frac)

    def branch_weight(self, stats: np.ndarray) -> float:
        return float(np.sum(stats))

    def merit(self, pre_split: np.ndarray, post_split: Sequence[np.ndarray]) -> float:
        keep = self._qualifying(post_split)
        if len(keep) < 2:
            return -math.inf
        total = sum(self.branch_weight(post_split[i]) for i in keep)
        post = sum(self.branch_weight(post_split[i]) * entropy(post_split[i]) for i in keep) / total
        return entropy(np.asarray(pre_split, dtype=float)) - post

    def range(self, pre_split: np.ndarray) -> float:
        return math.log2(max(len(pre_split), 2))


class VarianceReductionCriterion(SplitCriterion):
    """Reduction of the (population) target variance.

    The range is fixed at 1.0: the tree normalizes merits by the pre-split
    variance before comparing them against the bound.
    """

    def branch_weight(self, stats: NumericSummary) -> float:
        return stats.weight

    def merit(self, pre_split: NumericSummary, post_split: Sequence[NumericSummary]) -> float:
        keep = self._qualifying(post_split)
        if len(keep) < 2:
            return -math.inf
        total = sum(post_split[i].weight for i in keep)
        post = sum(post_split[i].weight * post_split[i].variance() for i in keep) / total
        return pre_split.variance() - post

    def range(self, pre_split: NumericSummary) -> float:
        return 1.0
