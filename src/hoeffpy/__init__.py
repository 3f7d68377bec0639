# hoeffpy/__init__.py
"""
hoeffpy: incremental Hoeffding trees in pure Python (scikit-learn style).

Exports:
    - HoeffdingTreeClassifier
    - HoeffdingTreeRegressor
    - HoeffdingTree, TreeConfig, TreeInfo (streaming core)
    - Attribute, AttributeKind, Model, Instance, SchemaError (schema)
"""
import logging

from .schema import Attribute, AttributeKind, Instance, Model, SchemaError
from .tree import HoeffdingTree, TreeConfig, TreeInfo
from .classifier import HoeffdingTreeClassifier
from .regressor import HoeffdingTreeRegressor

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "HoeffdingTreeClassifier",
    "HoeffdingTreeRegressor",
    "HoeffdingTree",
    "TreeConfig",
    "TreeInfo",
    "Attribute",
    "AttributeKind",
    "Model",
    "Instance",
    "SchemaError",
]
__version__ = "0.1.0"
