"""
hoeffpy.tree
============

This module implements the Hoeffding tree growth engine: a decision tree
built incrementally from a one-pass stream.  Instances are routed to a leaf,
update that leaf's target statistics and attribute observers, and every
``grace_period`` instances the leaf compares its two best candidate splits.
When their merit gap exceeds the Hoeffding bound (or the bound shrinks below
the tie threshold) the leaf is replaced, in place, by a branch whose children
are seeded from the winning split's post-split statistics.

The same engine grows classification trees (nominal target, information
gain) and regression trees (numeric target, variance reduction); the target
attribute of the :class:`~hoeffpy.schema.Model` selects which.

Memory is bounded by an advisory budget: periodically the heap estimates of
all leaves are summed and, while over budget, the least promising active
leaves are demoted to inactive leaves that keep only their target
statistics.
"""

# -----------------------------------------------------------------------------

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Iterator, Optional

import numpy as np

from .conditions import SplitCondition
from .criteria import InfoGainCriterion, VarianceReductionCriterion
from .observers import AttributeObserver, Split, new_observer
from .schema import Model, SchemaError, weight_of
from .stats import NumericSummary

logger = logging.getLogger(__name__)

PROMISE_METRICS = ("error", "weight")
_LEAF_BASE = 64


def hoeffding_bound(range_: float, confidence: float, n: float) -> float:
    """Deviation ``sqrt(R² ln(1/δ) / 2n)`` of a mean of ``n`` observations."""
    if n <= 0:
        return math.inf
    return math.sqrt(range_ * range_ * math.log(1.0 / confidence) / (2.0 * n))


# -----------------------------------------------------------------------------
# Configuration
# -----------------------------------------------------------------------------
@dataclass
class TreeConfig:
    """Growth parameters of a :class:`HoeffdingTree`.

    Parameters
    ----------
    grace_period : int, default=200
        Instances a leaf must see between two split evaluations.
    split_confidence : float, default=1e-7
        Allowed probability δ of choosing the wrong split.
    tie_threshold : float, default=0.05
        When the Hoeffding bound falls below this value the best candidate
        is taken even if the runner-up is just as good.
    min_branch_frac : float or None, default=None
        Minimum weight fraction of every branch of a split.  ``None`` means
        0.01 for classification and 0.0 for regression.
    n_split_points : int, default=10
        Candidate thresholds proposed per numeric predictor.
    max_numeric_entries : int, default=500
        Bound on the regression sketch of a numeric predictor.
    memory_limit : int, default=33554432
        Budget, in estimated bytes, for all leaves.
    memory_estimate_period : int, default=1000
        Training calls between two budget checks.
    promise_metric : {"error", "weight"}, default="error"
        How active leaves are ranked before demotion.
    """
    grace_period: int = 200
    split_confidence: float = 1e-7
    tie_threshold: float = 0.05
    min_branch_frac: Optional[float] = None
    n_split_points: int = 10
    max_numeric_entries: int = 500
    memory_limit: int = 33554432
    memory_estimate_period: int = 1000
    promise_metric: str = "error"

    def __post_init__(self):
        if int(self.grace_period) < 1:
            raise ValueError("grace_period must be a positive integer")
        if not 0.0 < self.split_confidence < 1.0:
            raise ValueError("split_confidence must lie in (0, 1)")
        if self.tie_threshold < 0:
            raise ValueError("tie_threshold must be non-negative")
        if self.min_branch_frac is not None and not 0.0 <= self.min_branch_frac < 1.0:
            raise ValueError("min_branch_frac must lie in [0, 1)")
        if int(self.n_split_points) < 1:
            raise ValueError("n_split_points must be a positive integer")
        if int(self.max_numeric_entries) < 2:
            raise ValueError("max_numeric_entries must be at least 2")
        if int(self.memory_limit) < 0:
            raise ValueError("memory_limit must be non-negative")
        if int(self.memory_estimate_period) < 1:
            raise ValueError("memory_estimate_period must be a positive integer")
        if self.promise_metric not in PROMISE_METRICS:
            raise ValueError(f"promise_metric must be one of {PROMISE_METRICS}")


@dataclass(frozen=True)
class TreeInfo:
    """Point-in-time shape of a tree.  A lone root leaf has depth 1."""
    node_count: int
    active_leaf_count: int
    inactive_leaf_count: int
    max_depth: int


# -----------------------------------------------------------------------------
# Nodes
# -----------------------------------------------------------------------------
class Leaf:
    """Terminal node.

    ``stats`` holds the target statistics (a class-count vector or a
    :class:`NumericSummary`), seeded from the parent's winning split.
    ``weight_seen`` counts only the weight observed since the leaf was
    created.  Inactive leaves drop their observers for good.
    """

    is_leaf = True

    def __init__(self, stats, depth: int):
        self.stats = stats
        self.depth = depth
        self.active = True
        self.observers: Optional[dict[str, AttributeObserver]] = {}
        self.weight_seen = 0.0
        self.since_eval = 0

    def deactivate(self) -> None:
        self.active = False
        self.observers = None

    def heap_size(self) -> int:
        if not self.observers:
            return _LEAF_BASE
        return _LEAF_BASE + sum(obs.heap_size() for obs in self.observers.values())


class Branch:
    """Internal node: a split condition and its exclusively owned children."""

    is_leaf = False

    def __init__(self, condition: SplitCondition, children: list, stats, depth: int):
        self.condition = condition
        self.children = children
        self.stats = stats
        self.depth = depth


# -----------------------------------------------------------------------------
# Tree
# -----------------------------------------------------------------------------
class HoeffdingTree:
    """Incrementally grown decision tree.

    Parameters
    ----------
    model : Model
        Target and predictors.  A nominal target grows a classification tree
        and requires its classes to be declared up front.
    config : TreeConfig, optional
        Growth parameters; defaults apply when omitted.

    Notes
    -----
    The tree is not synchronized: ``train`` mutates leaves in place, so
    concurrent callers must serialize access themselves.
    """

    def __init__(self, model: Model, config: TreeConfig | None = None):
        self.model = model
        self.config = config if config is not None else TreeConfig()
        target = model.target()
        self.is_classification = model.is_classification
        frac = self.config.min_branch_frac
        if self.is_classification:
            self.n_classes = len(target.values)
            if self.n_classes < 1:
                raise ValueError(f"nominal target {target.name!r} declares no classes")
            self.criterion = InfoGainCriterion(0.01 if frac is None else frac)
        else:
            self.n_classes = None
            self.criterion = VarianceReductionCriterion(0.0 if frac is None else frac)
        self.root = Leaf(self._empty_stats(), depth=1)
        self.n_trained = 0

    def _empty_stats(self):
        if self.is_classification:
            return np.zeros(self.n_classes, dtype=float)
        return NumericSummary()

    # ------------------------------------------------------------------
    # Training
    # ------------------------------------------------------------------
    def train(self, instance) -> None:
        """Learn from one instance.

        Every attribute value is read before any state changes, so a
        :class:`~hoeffpy.schema.SchemaError` leaves the tree untouched.
        Non-positive weights and missing or non-finite targets are ignored.
        """
        weight = weight_of(instance)
        target = self.model.target().value(instance)
        values = {p.name: p.value(instance) for p in self.model.predictors()}
        if self.is_classification:
            if target is None:
                return
            if target >= self.n_classes:
                raise SchemaError(f"class index {target} outside the {self.n_classes} declared classes")
        elif not math.isfinite(target):
            return
        if not weight > 0:
            return

        leaf, parent, index = self._route(instance)
        self._learn(leaf, target, values, weight)
        if leaf.active:
            leaf.since_eval += 1
            if leaf.since_eval >= self.config.grace_period:
                leaf.since_eval = 0
                self._attempt_split(leaf, parent, index)

        self.n_trained += 1
        if self.n_trained % self.config.memory_estimate_period == 0:
            self.enforce_memory_limit()

    def _route(self, instance) -> tuple[Leaf, Optional[Branch], int]:
        node, parent, index = self.root, None, -1
        while not node.is_leaf:
            index = node.condition.branch(instance)
            parent, node = node, node.children[index]
        return node, parent, index

    def _learn(self, leaf: Leaf, target, values: dict, weight: float) -> None:
        if self.is_classification:
            leaf.stats[target] += weight
        else:
            leaf.stats.append(target, weight)
        leaf.weight_seen += weight
        if not leaf.active:
            return
        for p in self.model.predictors():
            obs = leaf.observers.get(p.name)
            if obs is None:
                obs = leaf.observers[p.name] = new_observer(
                    p, self.n_classes,
                    n_split_points=self.config.n_split_points,
                    max_entries=self.config.max_numeric_entries,
                )
            obs.observe(target, values[p.name], weight)

    def _is_pure(self, leaf: Leaf) -> bool:
        if self.is_classification:
            return np.count_nonzero(leaf.stats) < 2
        return leaf.stats.variance() <= 0

    def candidates(self, leaf: Leaf) -> list[Split]:
        """Best split per predictor, by merit, highest first.

        The sort is stable: among equal merits the predictor declared first
        wins.
        """
        found = []
        for p in self.model.predictors():
            obs = leaf.observers.get(p.name) if leaf.observers else None
            if obs is None:
                continue
            split = obs.best_split(self.criterion, p, leaf.stats)
            if split is not None:
                found.append(split)
        found.sort(key=lambda s: s.merit, reverse=True)
        return found

    def _attempt_split(self, leaf: Leaf, parent: Optional[Branch], index: int) -> None:
        if self._is_pure(leaf):
            return
        found = self.candidates(leaf)
        if not found:
            return
        # variance reduction is compared relative to the leaf's variance
        scale = 1.0 if self.is_classification else leaf.stats.variance()
        best = found[0]
        best_merit = best.merit / scale
        second_merit = found[1].merit / scale if len(found) > 1 else 0.0
        if not best_merit > 0:
            return
        bound = hoeffding_bound(best.range, self.config.split_confidence, leaf.weight_seen)
        if best_merit - second_merit > bound or bound < self.config.tie_threshold:
            self._split(leaf, parent, index, best)
            logger.debug("split leaf at depth %d on %r: merit=%.4f second=%.4f bound=%.4f",
                         leaf.depth, best.condition, best_merit, second_merit, bound)

    def _split(self, leaf: Leaf, parent: Optional[Branch], index: int, split: Split) -> None:
        children = [Leaf(stats, leaf.depth + 1) for stats in split.post_stats]
        branch = Branch(split.condition, children, leaf.stats, leaf.depth)
        if parent is None:
            self.root = branch
        else:
            parent.children[index] = branch

    # ------------------------------------------------------------------
    # Memory management
    # ------------------------------------------------------------------
    def promise(self, leaf: Leaf) -> float:
        """How much a leaf stands to gain from further growth."""
        if self.config.promise_metric == "weight":
            return leaf.weight_seen
        if self.is_classification:
            return float(leaf.stats.sum() - leaf.stats.max())
        return leaf.stats.weight * leaf.stats.variance()

    def enforce_memory_limit(self) -> int:
        """Demote the least promising active leaves until within budget.

        Returns the number of leaves demoted.
        """
        leaves = list(self.leaves())
        total = sum(leaf.heap_size() for leaf in leaves)
        limit = self.config.memory_limit
        if total <= limit:
            return 0
        active = sorted((leaf for leaf in leaves if leaf.active), key=self.promise)
        demoted = 0
        for leaf in active:
            if total <= limit:
                break
            before = leaf.heap_size()
            leaf.deactivate()
            total -= before - leaf.heap_size()
            demoted += 1
        if demoted:
            logger.info("leaf estimate over %d bytes: deactivated %d of %d active leaves",
                        limit, demoted, len(active))
        return demoted

    def heap_size(self) -> int:
        return sum(leaf.heap_size() for leaf in self.leaves())

    # ------------------------------------------------------------------
    # Prediction / inspection
    # ------------------------------------------------------------------
    def predict(self, instance):
        """Class distribution (classification) or leaf mean (regression)."""
        leaf, _, _ = self._route(instance)
        if self.is_classification:
            tot = leaf.stats.sum()
            if tot <= 0:
                return np.full(self.n_classes, 1.0 / self.n_classes)
            return leaf.stats / tot
        return leaf.stats.mean()

    def leaves(self) -> Iterator[Leaf]:
        """Leaves in depth-first, left-to-right order."""
        for _, leaf in self.paths():
            yield leaf

    def paths(self) -> Iterator[tuple[list, Leaf]]:
        """Yield ``([(branch, branch_index), ...], leaf)`` for every leaf."""
        stack = [(self.root, [])]
        while stack:
            node, path = stack.pop()
            if node.is_leaf:
                yield path, node
                continue
            for i in reversed(range(len(node.children))):
                stack.append((node.children[i], path + [(node, i)]))

    def info(self) -> TreeInfo:
        nodes = active = inactive = depth = 0
        stack = [self.root]
        while stack:
            node = stack.pop()
            nodes += 1
            depth = max(depth, node.depth)
            if node.is_leaf:
                if node.active:
                    active += 1
                else:
                    inactive += 1
            else:
                stack.extend(node.children)
        return TreeInfo(nodes, active, inactive, depth)
