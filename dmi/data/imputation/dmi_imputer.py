"""
Decision tree based Missing value Imputation (DMI).

This module provides a service that splits a dataset into horizontal segments
using one decision tree per attribute with missing values, so that the records
used to impute a value are more similar to each other than the dataset as a
whole. Categorical values are imputed with the segment mode and numeric values
with EM imputation inside the segment.

Reference:
    Rahman, M. G., and Islam, M. Z. (2013): Missing Value Imputation Using
    Decision Trees and Decision Forests by Splitting and Merging Records: Two
    Novel Techniques, Knowledge-Based Systems, Vol. 53, pp. 51 - 65.

Changes from the published algorithm:
    - Leaves too small to run EM are replaced by the node above them
      ("merging").
    - Records that no rule matches are assigned to the segment with the
      closest centroid.
    - When there are fewer complete records than numeric attributes, no
      merging takes place and numeric values are mean imputed.
"""

from typing import Optional, Dict, Hashable, List, Tuple
import pandas as pd
from dataclasses import dataclass
from dmi.core.exceptions.data.imputation import ConfigurationError, ImputationError
from dmi.core.models.segmentation.rule import Rule, is_missing
from dmi.core.models.segmentation.run_context import RunContext, attribute_kind
from dmi.core.services.segmentation.partitioner import partition_records
from dmi.core.services.segmentation.segment_assigner import assign, closest_segment
from dmi.core.services.segmentation.segment_builder import (
    AttributeSegmentation,
    SegmentBuilder,
)
from dmi.core.services.segmentation.segment_imputer import SegmentImputer
from dmi.core.services.segmentation.tree_inducer import Discretizer, TreeInducer
from dmi.data.imputation.base_imputer import BaseImputer, BaseImputerConfig
from dmi.utils.constants import (
    AttributeKind,
    DEFAULT_CONFIDENCE_FACTOR,
    DEFAULT_EMI_LOG_LIKELIHOOD_THRESHOLD,
    DEFAULT_EMI_NUM_ITERATIONS,
    DEFAULT_MIN_CATEGORIES_FOR_DISCRETIZATION,
    DEFAULT_MIN_RECORDS_FOR_EMI,
    DEFAULT_MIN_RECORDS_IN_LEAF,
    MIN_DISCRETIZATION_CATEGORIES,
    NumericMethod,
    StatsKeys,
)
from dmi.utils.logging import get_logger
from dmi.utils.performance import timed_execution

logger = get_logger(__name__)


@dataclass
class DMIConfig(BaseImputerConfig):
    """Configuration for DMI imputation.

    Attributes:
        min_categories_for_discretization: Minimum number of bins when a numeric
            target is discretized for tree induction (at least 2)
        min_records_in_leaf: Minimum number of records in a tree leaf. A negative
            value defaults to (number of numeric attributes + 2)
        confidence_factor: Pruning confidence factor for tree induction, in (0, 1)
        min_records_for_emi: Minimum support of a leaf for EM to run; smaller
            leaves are merged. A negative value defaults to
            (number of numeric attributes + 2)
        emi_num_iterations: Maximum number of EM iterations (negative means unbounded)
        emi_log_likelihood_threshold: Log-likelihood improvement below which EM stops
        random_state: Seed for tree induction
        exclude_columns: List of columns to exclude from imputation
        include_columns: List of columns to include in imputation
        preprocess_numeric: Whether to convert text columns such as "1,234" to
            float before imputation. Off by default, since it rewrites values
            that were not missing
        verbose: Whether to log progress messages
    """

    preprocess_numeric: bool = False
    min_categories_for_discretization: int = DEFAULT_MIN_CATEGORIES_FOR_DISCRETIZATION
    min_records_in_leaf: int = DEFAULT_MIN_RECORDS_IN_LEAF
    confidence_factor: float = DEFAULT_CONFIDENCE_FACTOR
    min_records_for_emi: int = DEFAULT_MIN_RECORDS_FOR_EMI
    emi_num_iterations: int = DEFAULT_EMI_NUM_ITERATIONS
    emi_log_likelihood_threshold: float = DEFAULT_EMI_LOG_LIKELIHOOD_THRESHOLD


class DMIService(BaseImputer):
    """Service class for performing DMI imputation."""

    def __init__(
        self,
        config: Optional[DMIConfig] = None,
        tree_inducer: Optional[TreeInducer] = None,
        discretizer: Optional[Discretizer] = None,
    ):
        """Initialize the DMI service.

        Args:
            config: Configuration for DMI imputation
            tree_inducer: Tree inducer to use instead of the CART default
            discretizer: Discretizer to use instead of equal-width binning

        Raises:
            ConfigurationError: If the configuration is invalid
        """
        super().__init__(config or DMIConfig())
        self.config: DMIConfig
        self._tree_inducer = tree_inducer
        self._discretizer = discretizer
        self._rules: Dict[Hashable, List[Rule]] = {}
        self._validate_config()

    def _validate_config(self) -> None:
        """Reject invalid settings before any record is touched.

        Raises:
            ConfigurationError: If a setting is out of range
        """
        if self.config.min_categories_for_discretization < MIN_DISCRETIZATION_CATEGORIES:
            raise ConfigurationError(
                "min_categories_for_discretization",
                f"must be >= {MIN_DISCRETIZATION_CATEGORIES}",
            )
        if not 0 < self.config.confidence_factor < 1:
            raise ConfigurationError("confidence_factor", "must be in (0, 1)")
        if self.config.emi_log_likelihood_threshold < 0:
            raise ConfigurationError("emi_log_likelihood_threshold", "must be >= 0")

    def _validate_input(self, data: pd.DataFrame) -> None:
        """Validate input data.

        Args:
            data: Input DataFrame to validate

        Raises:
            ImputationError: If a column to impute has no observed values
        """
        super()._validate_input(data)
        empty = [
            col
            for col in self._get_columns_for_imputation(data)
            if data[col].isna().all()
        ]
        if empty:
            raise ImputationError(f"Columns without observed values: {empty}")

    @timed_execution
    def _impute_dataframe(self, data: pd.DataFrame) -> pd.DataFrame:
        """Run the five DMI steps on ``data``.

        Args:
            data: DataFrame to impute, with a positional index

        Returns:
            Imputed DataFrame in the same row order
        """
        # Step 1: split into complete and incomplete records
        partition = partition_records(self._widen_numeric(data))
        if not partition.has_missing:
            self._rules = {}
            return data.copy()

        run = RunContext.create(partition.data, len(partition.complete), self.config)
        if run.no_complete:
            logger.warning("No complete records, every attribute uses the whole dataset")
        elif run.no_merge_no_emi:
            logger.warning(
                f"Only {len(partition.complete)} complete records for "
                f"{len(run.numeric_columns)} numeric attributes, EM is disabled"
            )

        # Step 2: rules and segments per attribute with missing values
        builder = SegmentBuilder(run, self._tree_inducer, self._discretizer)
        segmentations: Dict[Hashable, AttributeSegmentation] = {}
        for attribute in partition.missing_attributes:
            segmentations[attribute] = builder.build(partition, attribute)
            if self.config.verbose:
                logger.info(
                    f"'{attribute}': {len(segmentations[attribute].rules)} segments"
                )
        self._rules = {a: s.rules for a, s in segmentations.items()}

        imputer = SegmentImputer(run)
        imputed = partition.incomplete.copy()

        # Step 3: assign records, impute categorical values
        assignments, centroid_assignments = self._assign_records(
            partition.incomplete, segmentations, run
        )
        for (row_id, attribute), index in assignments.items():
            segment = segmentations[attribute].segments[index]
            if run.is_numeric(attribute):
                segment.add_record(row_id, partition.incomplete.loc[row_id])
            else:
                imputed.at[row_id, attribute] = imputer.impute_categorical(
                    row_id, segment, attribute
                )

        # Step 4: impute numeric values per segment
        for (row_id, attribute), index in assignments.items():
            if not run.is_numeric(attribute):
                continue
            segment = segmentations[attribute].segments[index]
            imputed.at[row_id, attribute] = imputer.impute_numeric(
                row_id, partition.incomplete.loc[row_id], attribute, segment
            )

        self._collect_run_statistics(run, partition, imputer, centroid_assignments)

        # Step 5: recombine in original order
        result = pd.concat([partition.complete, imputed]).sort_index()
        result.index = data.index
        return result.astype(self._restorable_dtypes(data))

    def _assign_records(
        self,
        incomplete: pd.DataFrame,
        segmentations: Dict[Hashable, AttributeSegmentation],
        run: RunContext,
    ) -> Tuple[Dict[Tuple[int, Hashable], int], int]:
        """Segment index for every missing (record, attribute) cell.

        Returns:
            Mapping of (row id, attribute) to segment index, in record order,
            and the number of cells assigned by the centroid fallback
        """
        assignments: Dict[Tuple[int, Hashable], int] = {}
        centroid_assignments = 0
        for row_id, record in incomplete.iterrows():
            for attribute, segmentation in segmentations.items():
                if not is_missing(record[attribute]):
                    continue
                index = assign(segmentation.rules, record)
                if index is None:
                    index = closest_segment(record, segmentation.centroids, run)
                    centroid_assignments += 1
                assignments[(row_id, attribute)] = index
        return assignments, centroid_assignments

    @staticmethod
    def _widen_numeric(data: pd.DataFrame) -> pd.DataFrame:
        """Cast numeric columns with missing values to float64."""
        widened = data.copy()
        for column in data.columns:
            if attribute_kind(data[column]) == AttributeKind.NUMERIC and data[column].isna().any():
                widened[column] = data[column].astype(float)
        return widened

    @staticmethod
    def _restorable_dtypes(source: pd.DataFrame) -> Dict:
        """Dtypes of ``source`` that the imputed result can be cast back to.

        Numeric columns that had missing values stay float64.
        """
        return {
            column: source[column].dtype
            for column in source.columns
            if not (
                attribute_kind(source[column]) == AttributeKind.NUMERIC
                and source[column].isna().any()
            )
        }

    def _collect_run_statistics(self, run, partition, imputer, centroid_assignments) -> None:
        methods = list(imputer.methods.values())
        self._imputation_stats.update(
            {
                StatsKeys.COMPLETE_RECORDS.value: len(partition.complete),
                StatsKeys.INCOMPLETE_RECORDS.value: len(partition.incomplete),
                StatsKeys.NO_COMPLETE.value: run.no_complete,
                StatsKeys.NO_MERGE_NO_EMI.value: run.no_merge_no_emi,
                StatsKeys.RULES_BY_COLUMN.value: {
                    attribute: [str(rule) for rule in rules]
                    for attribute, rules in self._rules.items()
                },
                StatsKeys.CENTROID_ASSIGNMENTS.value: centroid_assignments,
                StatsKeys.EM_SEGMENTS.value: methods.count(NumericMethod.EM),
                StatsKeys.MEAN_SEGMENTS.value: methods.count(NumericMethod.MEAN),
                StatsKeys.UNRESOLVED_VALUES.value: len(imputer.unresolved),
            }
        )

    def impute(self, data: pd.DataFrame) -> pd.DataFrame:
        """Perform DMI imputation on the input data.

        Args:
            data: Input DataFrame with missing values

        Returns:
            DataFrame with imputed values, same shape, index and row order

        Raises:
            ConfigurationError: If the configuration is invalid
            ImputationError: If imputation fails
        """
        self._validate_config()
        if not isinstance(data, pd.DataFrame):
            return super().impute(data)

        result = super().impute(data.reset_index(drop=True))
        result.index = data.index
        return result

    def get_rules(self) -> Dict[Hashable, List[Rule]]:
        """Rule lists of the last run, keyed by attribute.

        Returns:
            Dictionary of attribute to rules, most specific first
        """
        return dict(self._rules)
