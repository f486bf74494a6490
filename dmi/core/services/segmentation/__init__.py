# dmi/core/services/segmentation/__init__.py
"""Segmentation services package."""

from dmi.core.services.segmentation.partitioner import (
    PartitionedDataset,
    partition_records,
)
from dmi.core.services.segmentation.rule_merger import (
    merge_small_rules,
    sort_by_specificity,
)
from dmi.core.services.segmentation.segment_assigner import assign, closest_segment
from dmi.core.services.segmentation.segment_builder import (
    AttributeSegmentation,
    SegmentBuilder,
)
from dmi.core.services.segmentation.segment_imputer import (
    ImputationCache,
    SegmentImputer,
)
from dmi.core.services.segmentation.tree_inducer import (
    CartTreeInducer,
    UniformDiscretizer,
)

__all__ = [
    "AttributeSegmentation",
    "CartTreeInducer",
    "ImputationCache",
    "PartitionedDataset",
    "SegmentBuilder",
    "SegmentImputer",
    "UniformDiscretizer",
    "assign",
    "closest_segment",
    "merge_small_rules",
    "partition_records",
    "sort_by_specificity",
]
