"""
hoeffpy.conditions
==================

Split conditions route an instance to one of a branch's children.  They are
created once, when a leaf splits, and never change afterwards.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from typing import Any, Mapping, Sequence

from .schema import Attribute


class SplitCondition(ABC):
    """Maps an instance to a branch index.

    ``default_branch`` receives instances whose predictor value is missing or
    was never seen at the node when it split.
    """

    def __init__(self, predictor: Attribute, default_branch: int = 0):
        self.predictor = predictor
        self.default_branch = int(default_branch)

    @property
    @abstractmethod
    def num_branches(self) -> int: ...

    @abstractmethod
    def branch(self, instance: Mapping[str, Any]) -> int: ...

    @abstractmethod
    def describe(self, branch: int) -> str:
        """Human-readable antecedent for ``branch``."""


class NominalMultiwayCondition(SplitCondition):
    """One branch per nominal value index listed in ``values``."""

    def __init__(self, predictor: Attribute, values: Sequence[int], default_branch: int = 0):
        super().__init__(predictor, default_branch)
        self.values = tuple(int(v) for v in values)
        self._branches = {v: i for i, v in enumerate(self.values)}
        if not 0 <= self.default_branch < len(self.values):
            raise ValueError("default_branch out of range")

    def __repr__(self) -> str:
        return f"NominalMultiwayCondition({self.predictor.name!r}, {self.values}, default={self.default_branch})"

    @property
    def num_branches(self) -> int:
        return len(self.values)

    def branch(self, instance: Mapping[str, Any]) -> int:
        v = self.predictor.value(instance)
        return self._branches.get(v, self.default_branch)

    def describe(self, branch: int) -> str:
        label = self.predictor.label(self.values[branch])
        if branch == self.default_branch:
            return f"{self.predictor.name} = {label} (or other)"
        return f"{self.predictor.name} = {label}"


class NumericBinaryCondition(SplitCondition):
    """Branch 0 for ``value <= threshold``, branch 1 otherwise."""

    def __init__(self, predictor: Attribute, threshold: float, default_branch: int = 0):
        super().__init__(predictor, default_branch)
        self.threshold = float(threshold)
        if self.default_branch not in (0, 1):
            raise ValueError("default_branch must be 0 or 1")

    def __repr__(self) -> str:
        return f"NumericBinaryCondition({self.predictor.name!r}, {self.threshold:.6g}, default={self.default_branch})"

    @property
    def num_branches(self) -> int:
        return 2

    def branch(self, instance: Mapping[str, Any]) -> int:
        v = self.predictor.value(instance)
        if math.isnan(v):
            return self.default_branch
        return 0 if v <= self.threshold else 1

    def describe(self, branch: int) -> str:
        op = "<=" if branch == 0 else ">"
        return f"{self.predictor.name} {op} {self.threshold:.6g}"
