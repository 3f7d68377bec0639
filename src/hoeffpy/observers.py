"""
hoeffpy.observers
=================

Attribute observers: one per (leaf, predictor).  An observer consumes
``(target, predictor value, weight)`` triples and keeps just enough
statistics to answer two questions later on: how likely is a predictor value
given a target, and which split of this predictor would be best right now.

Four variants cover the closed set of cases:

=====================  ===========================  ===========================
                       nominal predictor            numeric predictor
=====================  ===========================  ===========================
classification         :class:`NominalClassObserver` :class:`GaussianClassObserver`
regression             :class:`NominalRegressionObserver` :class:`NumericRegressionObserver`
=====================  ===========================  ===========================

Memory estimates returned by ``heap_size()`` are an abstract cost model, not
an accounting of the interpreter's allocations; they only ever grow.
"""

from __future__ import annotations

import bisect
import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional

import numpy as np

from .conditions import NominalMultiwayCondition, NumericBinaryCondition, SplitCondition
from .criteria import SplitCriterion
from .schema import Attribute
from .stats import MinMax, NumericSummary

logger = logging.getLogger(__name__)

# abstract cost model, in bytes
_FLOAT = 8
_ENTRY = 16
_SUMMARY = 3 * _FLOAT
_MINMAX = 2 * _FLOAT
_BASE = 32


@dataclass
class Split:
    """A scored candidate split and the per-branch statistics it implies."""
    merit: float
    range: float
    condition: SplitCondition
    post_stats: list = field(default_factory=list)


def _clone(stats):
    return stats.copy()


def _absorb(dst, src) -> None:
    if isinstance(dst, NumericSummary):
        dst.merge(src)
    else:
        dst += src


def _nominal_split(criterion: SplitCriterion, predictor: Attribute, pre_split,
                   by_value: dict) -> Optional[Split]:
    """Multiway split with one branch per observed value.

    Values holding less than ``min_branch_frac`` of the weight are folded
    into the heaviest branch, which also becomes the default branch.
    """
    values = sorted(by_value)
    if len(values) < 2:
        return None
    stats = [by_value[v] for v in values]
    fracs = criterion.branch_fractions(stats)
    heaviest = max(range(len(values)), key=lambda i: criterion.branch_weight(stats[i]))

    kept, post = [], []
    default_branch = 0
    folded = _clone(stats[heaviest])
    for i, v in enumerate(values):
        if i == heaviest:
            default_branch = len(kept)
            kept.append(v)
            post.append(folded)
        elif fracs[i] >= criterion.min_branch_frac:
            kept.append(v)
            post.append(_clone(stats[i]))
        else:
            _absorb(folded, stats[i])

    if len(kept) < 2 or not criterion.admissible(post):
        return None
    merit = criterion.merit(pre_split, post)
    if merit == -math.inf:
        return None
    cond = NominalMultiwayCondition(predictor, kept, default_branch)
    return Split(merit, criterion.range(pre_split), cond, post)


def _binary_split(criterion: SplitCriterion, predictor: Attribute, pre_split,
                  threshold: float, lhs, rhs, best: Optional[Split]) -> Optional[Split]:
    """Score one threshold; return whichever of it and ``best`` wins.

    Ties keep ``best``, so the lowest threshold wins among equal merits.
    """
    post = [lhs, rhs]
    if not criterion.admissible(post):
        return best
    merit = criterion.merit(pre_split, post)
    if merit == -math.inf or (best is not None and not merit > best.merit):
        return best
    default_branch = 0 if criterion.branch_weight(lhs) >= criterion.branch_weight(rhs) else 1
    cond = NumericBinaryCondition(predictor, threshold, default_branch)
    return Split(merit, criterion.range(pre_split), cond, post)


class AttributeObserver(ABC):

    @abstractmethod
    def observe(self, target, value, weight: float) -> None: ...

    @abstractmethod
    def probability(self, target, value) -> float: ...

    @abstractmethod
    def best_split(self, criterion: SplitCriterion, predictor: Attribute, pre_split) -> Optional[Split]: ...

    @abstractmethod
    def heap_size(self) -> int: ...


# -----------------------------------------------------------------------------
# Classification
# -----------------------------------------------------------------------------
class NominalClassObserver(AttributeObserver):
    """Weighted class counts per nominal predictor value."""

    def __init__(self, n_classes: int):
        self.n_classes = int(n_classes)
        self.counts: dict[int, np.ndarray] = {}

    def observe(self, target: Optional[int], value: Optional[int], weight: float) -> None:
        if target is None or value is None or not weight > 0:
            return
        vec = self.counts.get(value)
        if vec is None:
            vec = self.counts[value] = np.zeros(self.n_classes, dtype=float)
        vec[target] += weight

    def probability(self, target: int, value: int) -> float:
        """Laplace-smoothed P(value | target) over the observed values."""
        n_values = len(self.counts)
        if n_values == 0:
            return 0.0
        class_total = sum(float(vec[target]) for vec in self.counts.values())
        vec = self.counts.get(value)
        count = float(vec[target]) if vec is not None else 0.0
        return (count + 1.0) / (class_total + n_values)

    def best_split(self, criterion, predictor, pre_split):
        return _nominal_split(criterion, predictor, pre_split, self.counts)

    def heap_size(self) -> int:
        return _BASE + len(self.counts) * (_ENTRY + self.n_classes * _FLOAT)


class GaussianClassObserver(AttributeObserver):
    """Per-class Gaussian approximation of a numeric predictor.

    Each class keeps a :class:`NumericSummary` and its own min/max; a shared
    :class:`MinMax` proposes ``n_split_points`` candidate thresholds.
    """

    def __init__(self, n_classes: int, n_split_points: int = 10):
        self.n_classes = int(n_classes)
        self.n_split_points = int(n_split_points)
        self.min_max = MinMax()
        self.summaries: dict[int, NumericSummary] = {}
        self.ranges: dict[int, MinMax] = {}

    def observe(self, target: Optional[int], value: float, weight: float) -> None:
        if target is None or not math.isfinite(value) or not weight > 0:
            return
        s = self.summaries.get(target)
        if s is None:
            s = self.summaries[target] = NumericSummary()
            self.ranges[target] = MinMax()
        s.append(value, weight)
        self.ranges[target].update(value)
        self.min_max.update(value)

    def probability(self, target: int, value: float) -> float:
        s = self.summaries.get(target)
        if s is None:
            return 0.0
        return s.prob_density(value)

    def partition(self, threshold: float) -> tuple[np.ndarray, np.ndarray]:
        """Estimated class weights on either side of ``threshold``."""
        lhs = np.zeros(self.n_classes, dtype=float)
        rhs = np.zeros(self.n_classes, dtype=float)
        for c in sorted(self.summaries):
            s, r = self.summaries[c], self.ranges[c]
            if threshold < r.min:
                rhs[c] += s.weight
            elif threshold >= r.max:
                lhs[c] += s.weight
            else:
                lt, eq, gt = s.estimate(threshold)
                lhs[c] += lt + eq
                rhs[c] += gt
        return lhs, rhs

    def best_split(self, criterion, predictor, pre_split):
        best = None
        for t in self.min_max.split_points(self.n_split_points):
            lhs, rhs = self.partition(t)
            best = _binary_split(criterion, predictor, pre_split, t, lhs, rhs, best)
        return best

    def heap_size(self) -> int:
        return _BASE + _MINMAX + len(self.summaries) * (_ENTRY + _SUMMARY + _MINMAX)


# -----------------------------------------------------------------------------
# Regression
# -----------------------------------------------------------------------------
class NominalRegressionObserver(AttributeObserver):
    """Target summary per nominal predictor value."""

    def __init__(self):
        self.summaries: dict[int, NumericSummary] = {}

    def observe(self, target: float, value: Optional[int], weight: float) -> None:
        if value is None or not math.isfinite(target) or not weight > 0:
            return
        s = self.summaries.get(value)
        if s is None:
            s = self.summaries[value] = NumericSummary()
        s.append(target, weight)

    def probability(self, target: float, value: int) -> float:
        s = self.summaries.get(value)
        if s is None:
            return 0.0
        return s.prob_density(target)

    def best_split(self, criterion, predictor, pre_split):
        return _nominal_split(criterion, predictor, pre_split, self.summaries)

    def heap_size(self) -> int:
        return _BASE + len(self.summaries) * (_ENTRY + _SUMMARY)


class NumericRegressionObserver(AttributeObserver):
    """Bounded sketch of target summaries keyed by predictor value.

    Identical predictor values share one entry.  When the number of entries
    exceeds ``max_entries`` the sorted entries are merged pairwise, each pair
    keyed by its weight-averaged predictor value.
    """

    def __init__(self, n_split_points: int = 10, max_entries: int = 500):
        if max_entries < 2:
            raise ValueError("max_entries must be at least 2")
        self.n_split_points = int(n_split_points)
        self.max_entries = int(max_entries)
        self.min_max = MinMax()
        self.entries: dict[float, NumericSummary] = {}
        self._peak = 0

    def observe(self, target: float, value: float, weight: float) -> None:
        if not math.isfinite(value) or not math.isfinite(target) or not weight > 0:
            return
        s = self.entries.get(value)
        if s is None:
            s = self.entries[value] = NumericSummary()
        s.append(target, weight)
        self.min_max.update(value)
        if len(self.entries) > self.max_entries:
            self._compact()
        self._peak = max(self._peak, len(self.entries))

    def _compact(self) -> None:
        keys = sorted(self.entries)
        merged: dict[float, NumericSummary] = {}
        for i in range(0, len(keys), 2):
            pair = keys[i:i + 2]
            total = NumericSummary()
            for k in pair:
                total.merge(self.entries[k])
            key = sum(k * self.entries[k].weight for k in pair) / total.weight
            if key in merged:
                merged[key].merge(total)
            else:
                merged[key] = total
        logger.debug("compacted numeric sketch from %d to %d entries", len(keys), len(merged))
        self.entries = merged

    def probability(self, target: float, value: float) -> float:
        """Density of ``target`` among entries in ``value``'s candidate interval."""
        if not self.entries or not math.isfinite(value):
            return 0.0
        points = self.min_max.split_points(self.n_split_points)
        i = bisect.bisect_left(points, value)
        lo = points[i - 1] if i > 0 else -math.inf
        hi = points[i] if i < len(points) else math.inf
        local = NumericSummary()
        for k, s in self.entries.items():
            if lo < k <= hi:
                local.merge(s)
        return local.prob_density(target)

    def best_split(self, criterion, predictor, pre_split):
        items = sorted(self.entries.items())
        total = NumericSummary()
        for _, s in items:
            total.merge(s)

        best = None
        left = NumericSummary()
        i = 0
        for t in self.min_max.split_points(self.n_split_points):
            while i < len(items) and items[i][0] <= t:
                left.merge(items[i][1])
                i += 1
            if i == len(items):
                break
            right = NumericSummary(total.weight - left.weight, total.sum - left.sum,
                                   total.sum_squares - left.sum_squares)
            best = _binary_split(criterion, predictor, pre_split, t, left.copy(), right, best)
        return best

    def heap_size(self) -> int:
        return _BASE + _MINMAX + self._peak * (_FLOAT + _ENTRY + _SUMMARY)


def new_observer(predictor: Attribute, n_classes: int | None = None, *,
                 n_split_points: int = 10, max_entries: int = 500) -> AttributeObserver:
    """Observer for ``predictor``; ``n_classes=None`` selects the regression family."""
    if n_classes is not None:
        if predictor.is_nominal:
            return NominalClassObserver(n_classes)
        return GaussianClassObserver(n_classes, n_split_points)
    if predictor.is_nominal:
        return NominalRegressionObserver()
    return NumericRegressionObserver(n_split_points, max_entries)
