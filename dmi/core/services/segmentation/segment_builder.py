"""
Segment building for one target attribute.

For an attribute with missing values a decision tree is induced on the
complete records, its leaves are turned into rules, small rules are merged,
and every rule is materialised as a segment with a centroid.
"""

# Standard Library Imports
import math
from dataclasses import dataclass
from typing import Any, Hashable, List, Optional

# Third Party Imports
import numpy as np
import pandas as pd

# Internal Imports
from dmi.core.exceptions.data.imputation import ImputationError
from dmi.core.models.segmentation.rule import Rule
from dmi.core.models.segmentation.run_context import RunContext
from dmi.core.models.segmentation.segment import Segment
from dmi.core.services.segmentation.partitioner import PartitionedDataset
from dmi.core.services.segmentation.rule_merger import (
    merge_small_rules,
    sort_by_specificity,
)
from dmi.core.services.segmentation.tree_inducer import (
    CartTreeInducer,
    Discretizer,
    TreeInducer,
    UniformDiscretizer,
)
from dmi.utils.logging import get_logger

# Initialize logger
logger = get_logger(__name__)


def column_mode(column: pd.Series) -> Any:
    """Most frequent non-missing value of a column, NaN if there is none."""
    modes = column.mode(dropna=True)
    if modes.empty:
        return np.nan
    return modes.iloc[0]


@dataclass
class AttributeSegmentation:
    """Rules and segments built for one target attribute.

    Attributes:
        attribute: Target attribute
        rules: Rule list, most specific first
        segments: One segment per rule, in rule order
    """

    attribute: Hashable
    rules: List[Rule]
    segments: List[Segment]

    @property
    def centroids(self) -> List[pd.Series]:
        return [segment.centroid for segment in self.segments]


class SegmentBuilder:
    """Builds rule lists and segments for the attributes with missing values.

    Attributes:
        run: Context of the current imputation run
        tree_inducer: Collaborator inducing decision trees
        discretizer: Collaborator binning numeric targets
    """

    def __init__(
        self,
        run: RunContext,
        tree_inducer: Optional[TreeInducer] = None,
        discretizer: Optional[Discretizer] = None,
    ):
        self.run = run
        self.tree_inducer = tree_inducer or CartTreeInducer(random_state=run.random_state)
        self.discretizer = discretizer or UniformDiscretizer()

    def number_of_bins(self, attribute: Hashable) -> int:
        """Bins for a numeric target: ``max(min categories, floor(sqrt(range)))``."""
        span = self.run.value_range(attribute)
        by_range = int(math.floor(math.sqrt(span))) if np.isfinite(span) and span > 0 else 0
        return max(self.run.min_categories_for_discretization, by_range)

    def build_rules(self, complete: pd.DataFrame, attribute: Hashable) -> List[Rule]:
        """Induce a tree for ``attribute`` on the complete records and extract rules.

        Args:
            complete: Complete records
            attribute: Target attribute

        Returns:
            Rule list, most specific first
        """
        if complete.empty:
            return [Rule.universal(0)]

        universal = [Rule.universal(len(complete))]
        training = complete.copy()

        try:
            if self.run.is_numeric(attribute):
                training = self.discretizer.discretize(
                    training, attribute, self.number_of_bins(attribute)
                )

            if training[attribute].nunique(dropna=True) < 2:
                logger.debug(f"'{attribute}' has a single class, using the whole dataset")
                return universal

            tree = self.tree_inducer.induce(
                training,
                attribute,
                self.run.min_records_in_leaf,
                self.run.confidence_factor,
            )
        except (ImputationError, ValueError) as e:
            logger.warning(f"Tree induction failed for '{attribute}', using the whole dataset: {e}")
            return universal

        rules = tree.to_rules()
        logger.debug(f"Tree for '{attribute}' has {len(rules)} leaves")

        if not self.run.no_merge_no_emi:
            return merge_small_rules(rules, self.run.min_records_for_emi)
        return sort_by_specificity(rules)

    def centroid(self, data: pd.DataFrame) -> pd.Series:
        """Normalized mean of numeric attributes and mode of categorical ones."""
        values = {}
        for attribute in data.columns:
            column = data[attribute]
            if self.run.is_numeric(attribute):
                mean = pd.to_numeric(column, errors="coerce").mean()
                values[attribute] = (
                    np.nan if pd.isna(mean) else self.run.normalize(attribute, mean)
                )
            else:
                values[attribute] = column_mode(column)
        return pd.Series(values, dtype=object)

    def build_segments(self, source: pd.DataFrame, rules: List[Rule]) -> List[Segment]:
        """Materialise each rule as the records of ``source`` satisfying it."""
        segments = []
        for index, rule in enumerate(rules):
            members = source.loc[rule.mask(source)].copy()
            if members.empty:
                logger.warning(f"Rule '{rule}' selects no records")
            segments.append(
                Segment(index=index, rule=rule, data=members, centroid=self.centroid(members))
            )
        return segments

    def build(
        self, partition: PartitionedDataset, attribute: Hashable
    ) -> AttributeSegmentation:
        """Rules and segments for one attribute with missing values."""
        if self.run.no_complete:
            rules = [Rule.universal(len(partition.incomplete))]
            source = partition.incomplete
        else:
            rules = self.build_rules(partition.complete, attribute)
            source = partition.complete

        return AttributeSegmentation(
            attribute=attribute,
            rules=rules,
            segments=self.build_segments(source, rules),
        )
