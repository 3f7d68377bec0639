"""Hoeffding regression tree with a scikit-learn-style API.
Splits are chosen by variance reduction relative to the leaf's variance and
leaves predict the mean of the targets they have seen.
"""
from __future__ import annotations

from typing import List, Optional

import numpy as np
from sklearn.base import RegressorMixin

from .base import TARGET, BaseHoeffdingTree
from .schema import Attribute, AttributeKind
from .tree import Leaf


def _as_float_array(a) -> np.ndarray:
    return np.asarray(a, dtype=float)


class HoeffdingTreeRegressor(RegressorMixin, BaseHoeffdingTree):
    r"""
    HoeffdingTreeRegressor(grace_period=200, split_confidence=1e-7,
                           tie_threshold=0.05, min_branch_frac=0.0,
                           n_split_points=10, max_numeric_entries=500,
                           memory_limit=33554432, memory_estimate_period=1000,
                           promise_metric="error", feature_names=None,
                           categorical_features=None)

    An incrementally grown regression tree.

    **Core behavior**

    - **Split criterion**: weighted **variance reduction**, divided by the
      leaf's own target variance before it is compared against the Hoeffding
      bound. Numeric thresholds are taken at evenly spaced points of the
      observed range; categorical features split one branch per category.
    - **Numeric sketch**: each leaf keeps, per numeric feature, target
      summaries keyed by feature value, compacted pairwise once
      `max_numeric_entries` is exceeded.
    - **Missing values**: rows with a missing value on a split feature follow
      the branch that held the most weight when the split was made.
    - **Memory**: leaves beyond `memory_limit` (estimated bytes) are
      deactivated, least promising first, and then only update their mean.

    Parameters
    ----------
    grace_period : int, default=200
        Rows a leaf must see between two split evaluations.
    split_confidence : float, default=1e-7
        Probability of committing to the wrong split.
    tie_threshold : float, default=0.05
        Bound below which near-equal candidates are split on anyway.
    min_branch_frac : float, default=0.0
        Minimum weight fraction every branch of a split must hold.
    n_split_points : int, default=10
        Candidate thresholds evaluated per numeric feature.
    max_numeric_entries : int, default=500
        Size bound of the per-feature numeric sketch.
    memory_limit : int, default=33554432
        Budget in estimated bytes for all leaves.
    memory_estimate_period : int, default=1000
        Rows between two memory checks.
    promise_metric : {"error", "weight"}, default="error"
        Leaf ranking for deactivation; ``"error"`` is the leaf's weighted
        squared error around its mean.
    feature_names : sequence of str, optional
        Column names (used with `categorical_features` by name and in rules).
    categorical_features : sequence of int or str, optional
        Indices or names of categorical columns.

    Attributes
    ----------
    tree_ : HoeffdingTree
        The underlying tree.
    is_cat_ : list[bool]
        Categorical mask over the input features.
    """

    def __init__(self,
                 grace_period: int = 200,
                 split_confidence: float = 1e-7,
                 tie_threshold: float = 0.05,
                 min_branch_frac: float = 0.0,
                 n_split_points: int = 10,
                 max_numeric_entries: int = 500,
                 memory_limit: int = 33554432,
                 memory_estimate_period: int = 1000,
                 promise_metric: str = "error",
                 feature_names: Optional[List[str]] = None,
                 categorical_features: Optional[List[int | str]] = None):
        self.grace_period = grace_period
        self.split_confidence = split_confidence
        self.tie_threshold = tie_threshold
        self.min_branch_frac = min_branch_frac
        self.n_split_points = n_split_points
        self.max_numeric_entries = max_numeric_entries
        self.memory_limit = memory_limit
        self.memory_estimate_period = memory_estimate_period
        self.promise_metric = promise_metric
        self.feature_names = feature_names
        self.categorical_features = categorical_features

    # ----------------------------- Public API -----------------------------

    def fit(self, X, y, sample_weight: Optional[np.ndarray] = None):
        self._reset()
        return self.partial_fit(X, y, sample_weight=sample_weight)

    def partial_fit(self, X, y, sample_weight: Optional[np.ndarray] = None):
        X = self._check_input(X)
        y = _as_float_array(y)
        if y.shape[0] != X.shape[0]:
            raise ValueError("X and y must have the same number of rows")
        w = self._weights(y.shape[0], sample_weight)
        if getattr(self, "tree_", None) is None:
            self._start(X.shape[1], Attribute(TARGET, AttributeKind.NUMERIC))
        self._learn(X, y, w)
        return self

    def predict(self, X):
        self._check_fitted()
        X = self._check_input(X)
        out = np.empty(X.shape[0], dtype=float)
        for i, inst in enumerate(self._instances(X)):
            out[i] = self.tree_.predict(inst)
        return out

    def _describe_leaf(self, leaf: Leaf) -> str:
        s = leaf.stats
        return f"value={s.mean():.6g} (N={s.weight:.2f})"
