"""
hoeffpy.schema
==============

The data-schema collaborator consumed by the tree engine.

Attributes are declared once per stream and are read through a narrow query
contract: the engine asks an :class:`Attribute` for the value an instance
carries and never mutates the schema itself.  Nominal values are encoded as
integer indices into the attribute's value list; numeric values are floats,
with ``nan`` standing in for a missing value.
"""

from __future__ import annotations

import math
from enum import Enum
from typing import Any, Iterable, Mapping


class SchemaError(ValueError):
    """Raised when an instance cannot be read through the declared schema."""


class AttributeKind(Enum):
    NOMINAL = "nominal"
    NUMERIC = "numeric"


def _is_missing(raw: Any) -> bool:
    return raw is None or (isinstance(raw, float) and math.isnan(raw))


class Attribute:
    """A named predictor or target.

    Parameters
    ----------
    name : str
        Key under which instances carry the attribute's value.
    kind : AttributeKind
        Nominal or numeric.
    values : iterable, optional
        Declared value domain of a nominal attribute.  The list may be
        extended later through :meth:`add_value`; numeric attributes ignore
        it.
    """

    def __init__(self, name: str, kind: AttributeKind = AttributeKind.NUMERIC,
                 values: Iterable[Any] | None = None):
        self.name = str(name)
        self.kind = AttributeKind(kind)
        self.values: list[Any] = []
        self._index: dict[Any, int] = {}
        if values is not None:
            for v in values:
                self.add_value(v)

    def __repr__(self) -> str:
        return f"Attribute({self.name!r}, {self.kind.value})"

    @property
    def is_nominal(self) -> bool:
        return self.kind is AttributeKind.NOMINAL

    @property
    def is_numeric(self) -> bool:
        return self.kind is AttributeKind.NUMERIC

    def add_value(self, raw: Any) -> int:
        """Register ``raw`` in the nominal domain and return its index."""
        idx = self._index.get(raw)
        if idx is None:
            idx = len(self.values)
            self.values.append(raw)
            self._index[raw] = idx
        return idx

    def value_of(self, raw: Any):
        """Encode a raw value: an index (or ``None``) for nominal attributes,
        a float (``nan`` when missing) for numeric ones."""
        if self.is_nominal:
            if _is_missing(raw):
                return None
            return self._index.get(raw)
        if raw is None:
            return math.nan
        try:
            return float(raw)
        except (TypeError, ValueError) as exc:
            raise SchemaError(f"attribute {self.name!r}: {raw!r} is not numeric") from exc

    def value(self, instance: Mapping[str, Any]):
        """Encoded value of this attribute in ``instance``."""
        return self.value_of(instance.get(self.name))

    def label(self, index: int) -> Any:
        """Raw value for a nominal index."""
        if 0 <= index < len(self.values):
            return self.values[index]
        return index


class Model:
    """A target attribute plus the predictors used to explain it."""

    def __init__(self, target: Attribute, *predictors: Attribute):
        if any(p.name == target.name for p in predictors):
            raise ValueError(f"target {target.name!r} cannot also be a predictor")
        self._target = target
        self._predictors: dict[str, Attribute] = {}
        for p in predictors:
            if p.name in self._predictors:
                raise ValueError(f"duplicate predictor {p.name!r}")
            self._predictors[p.name] = p

    def target(self) -> Attribute:
        return self._target

    def predictor(self, name: str) -> Attribute:
        try:
            return self._predictors[name]
        except KeyError:
            raise SchemaError(f"unknown predictor {name!r}") from None

    def predictors(self) -> list[Attribute]:
        return list(self._predictors.values())

    @property
    def is_classification(self) -> bool:
        return self._target.is_nominal


class Instance(dict):
    """Mapping of attribute name to raw value, carrying an instance weight."""

    def __init__(self, values: Mapping[str, Any] | Iterable = (), weight: float = 1.0, **kwargs):
        super().__init__(values, **kwargs)
        self.weight = float(weight)


def weight_of(instance: Mapping[str, Any]) -> float:
    """Instance weight, defaulting to 1.0 for plain mappings."""
    return float(getattr(instance, "weight", 1.0))
