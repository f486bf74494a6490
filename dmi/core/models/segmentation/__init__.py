# dmi/core/models/segmentation/__init__.py
"""Segmentation models package."""

from dmi.core.models.segmentation.rule import Predicate, Rule, is_missing
from dmi.core.models.segmentation.run_context import RunContext, attribute_kind
from dmi.core.models.segmentation.segment import Segment
from dmi.core.models.segmentation.tree import DecisionTree, TreeNode

__all__ = [
    "DecisionTree",
    "Predicate",
    "Rule",
    "RunContext",
    "Segment",
    "TreeNode",
    "attribute_kind",
    "is_missing",
]
