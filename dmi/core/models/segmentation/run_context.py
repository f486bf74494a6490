"""Run-wide context shared by every stage of the DMI pipeline."""

# Standard Library Imports
from dataclasses import dataclass
from typing import Dict, Hashable, Optional, Tuple

# Third Party Imports
import numpy as np
import pandas as pd

# Internal Imports
from dmi.utils.constants import (
    AttributeKind,
    MIN_RECORDS_OFFSET,
    UNBOUNDED_ITERATIONS,
)


def attribute_kind(column: pd.Series) -> AttributeKind:
    """Classify a column as numeric or categorical.

    Boolean columns are treated as categorical.
    """
    if pd.api.types.is_bool_dtype(column):
        return AttributeKind.CATEGORICAL
    if pd.api.types.is_numeric_dtype(column):
        return AttributeKind.NUMERIC
    return AttributeKind.CATEGORICAL


@dataclass(frozen=True)
class RunContext:
    """Flags and derived values for a single imputation run.

    Attributes:
        kinds: Attribute kind per column, in schema order
        minimums: Global minimum of each numeric column
        maximums: Global maximum of each numeric column
        no_complete: True when the dataset has no complete records
        no_merge_no_emi: True when there are too few complete records for EM,
            in which case rules are never merged
        min_records_in_leaf: Resolved minimum leaf size for tree induction
        min_records_for_emi: Resolved support threshold for rule merging
        confidence_factor: Pruning confidence factor for tree induction
        min_categories_for_discretization: Lower bound on discretization bins
        emi_max_iterations: Resolved EM iteration cap
        emi_log_likelihood_threshold: EM convergence threshold
        random_state: Seed forwarded to the tree inducer
    """

    kinds: Dict[Hashable, AttributeKind]
    minimums: Dict[Hashable, float]
    maximums: Dict[Hashable, float]
    no_complete: bool
    no_merge_no_emi: bool
    min_records_in_leaf: int
    min_records_for_emi: int
    confidence_factor: float
    min_categories_for_discretization: int
    emi_max_iterations: int
    emi_log_likelihood_threshold: float
    random_state: Optional[int] = None

    @classmethod
    def create(
        cls,
        data: pd.DataFrame,
        n_complete: int,
        config,
    ) -> "RunContext":
        """Derive the run context from the dataset and a ``DMIConfig``."""
        kinds = {column: attribute_kind(data[column]) for column in data.columns}
        numeric = [c for c, kind in kinds.items() if kind == AttributeKind.NUMERIC]
        n_numeric = len(numeric)

        minimums = {c: float(data[c].min()) for c in numeric}
        maximums = {c: float(data[c].max()) for c in numeric}

        no_complete = n_complete == 0
        no_merge_no_emi = no_complete or n_complete < n_numeric

        min_leaf = config.min_records_in_leaf
        if min_leaf < 0:
            min_leaf = n_numeric + MIN_RECORDS_OFFSET
        min_emi = config.min_records_for_emi
        if min_emi < 0:
            min_emi = n_numeric + MIN_RECORDS_OFFSET
        iterations = config.emi_num_iterations
        if iterations < 0:
            iterations = UNBOUNDED_ITERATIONS

        return cls(
            kinds=kinds,
            minimums=minimums,
            maximums=maximums,
            no_complete=no_complete,
            no_merge_no_emi=no_merge_no_emi,
            min_records_in_leaf=min_leaf,
            min_records_for_emi=min_emi,
            confidence_factor=config.confidence_factor,
            min_categories_for_discretization=config.min_categories_for_discretization,
            emi_max_iterations=iterations,
            emi_log_likelihood_threshold=config.emi_log_likelihood_threshold,
            random_state=config.random_state,
        )

    @property
    def numeric_columns(self) -> Tuple[Hashable, ...]:
        return tuple(c for c, k in self.kinds.items() if k == AttributeKind.NUMERIC)

    @property
    def categorical_columns(self) -> Tuple[Hashable, ...]:
        return tuple(
            c for c, k in self.kinds.items() if k == AttributeKind.CATEGORICAL
        )

    def is_numeric(self, attribute: Hashable) -> bool:
        return self.kinds[attribute] == AttributeKind.NUMERIC

    def value_range(self, attribute: Hashable) -> float:
        return self.maximums[attribute] - self.minimums[attribute]

    def normalize(self, attribute: Hashable, value: float) -> float:
        """Min-max normalize ``value`` as ``(value - min) / (max - min)``.

        A constant column (max == min) normalizes to 0.
        """
        span = self.value_range(attribute)
        if not np.isfinite(span) or span == 0:
            return 0.0
        return (float(value) - self.minimums[attribute]) / span

    def denormalize(self, attribute: Hashable, value: float) -> float:
        span = self.value_range(attribute)
        if not np.isfinite(span) or span == 0:
            return self.minimums[attribute]
        return float(value) * span + self.minimums[attribute]
