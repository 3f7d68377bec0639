"""Shared scikit-learn plumbing for the streaming tree estimators.

The estimators act as the schema layer for array input: they declare one
:class:`~hoeffpy.schema.Attribute` per column, grow categorical vocabularies
while training and turn rows into :class:`~hoeffpy.schema.Instance` objects
for the core :class:`~hoeffpy.tree.HoeffdingTree`.
"""
from __future__ import annotations

from typing import Iterator, List

import numpy as np
from sklearn.base import BaseEstimator

from .schema import Attribute, AttributeKind, Instance, Model
from .tree import HoeffdingTree, Leaf, TreeConfig, TreeInfo

TARGET = "__target__"


def _isnan_scalar(v) -> bool:
    return (v is None) or (isinstance(v, float) and np.isnan(v))


class BaseHoeffdingTree(BaseEstimator):
    """Common fitting, conversion and rule export.

    Subclasses declare the constructor parameters and provide
    ``_describe_leaf``.
    """

    def _tree_config(self) -> TreeConfig:
        params = dict(
            grace_period=int(self.grace_period),
            split_confidence=float(self.split_confidence),
            tie_threshold=float(self.tie_threshold),
            min_branch_frac=None if self.min_branch_frac is None else float(self.min_branch_frac),
            n_split_points=int(self.n_split_points),
            memory_limit=int(self.memory_limit),
            memory_estimate_period=int(self.memory_estimate_period),
            promise_metric=str(self.promise_metric),
        )
        # only the regressor keeps a numeric sketch
        if hasattr(self, "max_numeric_entries"):
            params["max_numeric_entries"] = int(self.max_numeric_entries)
        return TreeConfig(**params)

    def _predictor_attributes(self, n_features: int) -> List[Attribute]:
        if self.feature_names is not None:
            if len(self.feature_names) != n_features:
                raise ValueError("feature_names length must match X.shape[1]")
            names = [str(n) for n in self.feature_names]
        else:
            names = [f"f{i}" for i in range(n_features)]

        cats = set()
        cf = self.categorical_features
        if cf is not None and len(cf):
            if isinstance(cf[0], str):
                name_to_idx = {n: i for i, n in enumerate(names)}
                try:
                    cats = {name_to_idx[c] for c in cf}
                except KeyError as exc:
                    raise ValueError(f"unknown categorical feature {exc.args[0]!r}") from None
            else:
                cats = {int(i) for i in cf}
        self.feature_names_ = names
        self.is_cat_ = [i in cats for i in range(n_features)]
        return [Attribute(n, AttributeKind.NOMINAL if self.is_cat_[i] else AttributeKind.NUMERIC)
                for i, n in enumerate(names)]

    def _start(self, n_features: int, target: Attribute) -> None:
        predictors = self._predictor_attributes(n_features)
        self.model_ = Model(target, *predictors)
        self.n_features_in_ = n_features
        self.tree_ = HoeffdingTree(self.model_, self._tree_config())

    def _check_input(self, X) -> np.ndarray:
        X = np.asarray(X, dtype=object)
        if X.ndim != 2:
            raise ValueError("X must be a 2-dimensional array")
        n_features = getattr(self, "n_features_in_", None)
        if n_features is not None and X.shape[1] != n_features:
            raise ValueError(f"X has {X.shape[1]} features, expected {n_features}")
        return X

    def _weights(self, n: int, sample_weight) -> np.ndarray:
        if sample_weight is None:
            return np.ones(n, dtype=float)
        w = np.asarray(sample_weight, dtype=float)
        if w.shape[0] != n:
            raise ValueError("sample_weight must have the same length as y")
        return w

    def _instances(self, X: np.ndarray, y=None, w=None, learn: bool = False) -> Iterator[Instance]:
        predictors = self.model_.predictors()
        for i, row in enumerate(X):
            inst = Instance(weight=1.0 if w is None else w[i])
            for attr, raw in zip(predictors, row):
                if attr.is_nominal and learn and not _isnan_scalar(raw):
                    attr.add_value(raw)
                inst[attr.name] = raw
            if y is not None:
                inst[TARGET] = y[i]
            yield inst

    def _learn(self, X: np.ndarray, y, w: np.ndarray) -> None:
        for inst in self._instances(X, y, w, learn=True):
            self.tree_.train(inst)

    def _check_fitted(self) -> None:
        if getattr(self, "tree_", None) is None:
            raise ValueError("Estimator not fitted. Call fit(...) first.")

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------
    def info(self) -> TreeInfo:
        """Snapshot of the tree's node counts and depth."""
        self._check_fitted()
        return self.tree_.info()

    def export_rules(self) -> List[str]:
        """
        Export every root-to-leaf path as a human-readable rule.

        Returns
        -------
        list[str]
            Strings of the form ``"<antecedent> => <prediction>"``.  The root
            alone yields ``"<root> => ..."``.

        Raises
        ------
        ValueError
            If the estimator has not been fitted.
        """
        self._check_fitted()
        rules: List[str] = []
        for path, leaf in self.tree_.paths():
            parts = [branch.condition.describe(i) for branch, i in path]
            body = " AND ".join(parts) if parts else "<root>"
            state = "" if leaf.active else " [inactive]"
            rules.append(f"{body} => {self._describe_leaf(leaf)}{state}")
        return rules

    def _describe_leaf(self, leaf: Leaf) -> str:  # pragma: no cover - abstract
        raise NotImplementedError

    def _reset(self) -> None:
        self.tree_ = None
        for attr in ("model_", "n_features_in_", "feature_names_", "is_cat_"):
            if hasattr(self, attr):
                delattr(self, attr)
