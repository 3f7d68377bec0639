# -*- coding: utf-8 -*-
"""
hoeffpy.classifier
==================

This module implements a Hoeffding tree classifier (VFDT) with a
scikit‑learn–like API.  The tree is grown from a stream: each call to
``partial_fit`` feeds rows one at a time to the underlying
:class:`~hoeffpy.tree.HoeffdingTree`, which never keeps the rows themselves.
Numeric predictors are summarised per class by Gaussian estimators and
categorical predictors by weighted counts; splits are chosen by information
gain once the Hoeffding bound says the best candidate is reliably better
than the runner-up.
"""

from __future__ import annotations

import numpy as np
from sklearn.base import ClassifierMixin

from .base import TARGET, BaseHoeffdingTree
from .schema import Attribute, AttributeKind
from .tree import Leaf


class HoeffdingTreeClassifier(ClassifierMixin, BaseHoeffdingTree):
    """
    Incremental decision tree classifier.

    Parameters
    ----------
    grace_period : int, default=200
        Number of rows a leaf must see between two split evaluations.
    split_confidence : float, default=1e-7
        Probability of committing to the wrong split.  Smaller values make
        the tree more conservative.
    tie_threshold : float, default=0.05
        When the Hoeffding bound drops below this value near-equal candidates
        are split on anyway.
    min_branch_frac : float, default=0.01
        Minimum weight fraction every branch of a split must hold.
    n_split_points : int, default=10
        Candidate thresholds evaluated per numeric feature.
    memory_limit : int, default=33554432
        Budget in estimated bytes for the leaves' statistics.  Beyond it the
        least promising leaves stop growing.
    memory_estimate_period : int, default=1000
        Rows between two memory checks.
    promise_metric : {"error", "weight"}, default="error"
        Ranking used to choose which leaves to deactivate.
    feature_names : list[str] or None, default=None
        Optional names for the input features, used in exported rules and to
        name categorical features.
    categorical_features : list[int|str] or None, default=None
        Indices or names of categorical input features.  All other features
        are treated as numeric.

    Attributes
    ----------
    classes_ : ndarray
        Class labels, fixed by the first call to ``fit``/``partial_fit``.
    tree_ : HoeffdingTree
        The underlying tree.
    """

    def __init__(
        self,
        *,
        grace_period: int = 200,
        split_confidence: float = 1e-7,
        tie_threshold: float = 0.05,
        min_branch_frac: float = 0.01,
        n_split_points: int = 10,
        memory_limit: int = 33554432,
        memory_estimate_period: int = 1000,
        promise_metric: str = "error",
        feature_names: list[str] | None = None,
        categorical_features: list[int | str] | None = None,
    ):
        self.grace_period = grace_period
        self.split_confidence = split_confidence
        self.tie_threshold = tie_threshold
        self.min_branch_frac = min_branch_frac
        self.n_split_points = n_split_points
        self.memory_limit = memory_limit
        self.memory_estimate_period = memory_estimate_period
        self.promise_metric = promise_metric
        self.feature_names = feature_names
        self.categorical_features = categorical_features

    def fit(self, X, y, sample_weight=None):
        """Reset the tree and learn from ``X``, ``y`` in row order."""
        self._reset()
        return self.partial_fit(X, y, sample_weight=sample_weight)

    def partial_fit(self, X, y, classes=None, sample_weight=None):
        """
        Continue learning from a batch of rows.

        Parameters
        ----------
        X : array-like of shape (n_samples, n_features)
            Input samples.  Missing values may be ``None`` or ``numpy.nan``.
        y : array-like of shape (n_samples,)
            Class labels.
        classes : array-like, optional
            All class labels of the stream.  Only read on the first call;
            defaults to the labels present in that first ``y``.
        sample_weight : array-like of shape (n_samples,), optional
            Per-row weights; rows with non-positive weight are ignored.

        Returns
        -------
        self
        """
        X = self._check_input(X)
        y = np.asarray(y)
        if len(y) != X.shape[0]:
            raise ValueError("X and y must have the same number of rows")
        w = self._weights(len(y), sample_weight)

        if getattr(self, "tree_", None) is None:
            self.classes_ = np.unique(y) if classes is None else np.asarray(classes)
            target = Attribute(TARGET, AttributeKind.NOMINAL, values=self.classes_.tolist())
            self._start(X.shape[1], target)

        unknown = set(np.unique(y).tolist()) - set(self.classes_.tolist())
        if unknown:
            raise ValueError(f"y contains labels not in classes_: {sorted(map(str, unknown))}")
        self._learn(X, y.tolist(), w)
        return self

    def predict_proba(self, X):
        """
        Predict class probabilities for the provided samples.

        Each row is routed to a leaf and the leaf's normalised class
        distribution is returned.  A leaf that has not seen any weight
        predicts the uniform distribution.

        Returns
        -------
        ndarray of shape (n_samples, n_classes)

        Raises
        ------
        ValueError
            If the estimator has not been fitted.
        """
        self._check_fitted()
        X = self._check_input(X)
        rows = [self.tree_.predict(inst) for inst in self._instances(X)]
        if not rows:
            return np.empty((0, len(self.classes_)), dtype=float)
        return np.vstack(rows)

    def predict(self, X):
        """Predict the most probable class of each row."""
        proba = self.predict_proba(X)
        return self.classes_[np.argmax(proba, axis=1)]

    def _describe_leaf(self, leaf: Leaf) -> str:
        dist = leaf.stats
        pred = self.classes_[int(np.argmax(dist))]
        return f"{pred} (N={float(dist.sum()):.2f})"
