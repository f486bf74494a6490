# dmi/utils/constants.py
"""
Constants for the application.

This module contains constants used throughout the application.
"""

# Standard Library Imports
import sys
from enum import Enum
from typing import Final

# Configuration defaults
DEFAULT_RANDOM_STATE: Final[int] = 137
DEFAULT_MIN_CATEGORIES_FOR_DISCRETIZATION: Final[int] = 2
DEFAULT_MIN_RECORDS_IN_LEAF: Final[int] = -1  # numeric attribute count + 2
DEFAULT_CONFIDENCE_FACTOR: Final[float] = 0.25
DEFAULT_MIN_RECORDS_FOR_EMI: Final[int] = -1  # numeric attribute count + 2
DEFAULT_EMI_NUM_ITERATIONS: Final[int] = -1  # unbounded
DEFAULT_EMI_LOG_LIKELIHOOD_THRESHOLD: Final[float] = 1e-4

# Derived thresholds
MIN_RECORDS_OFFSET: Final[int] = 2
MIN_DISCRETIZATION_CATEGORIES: Final[int] = 2
MIN_NUMERIC_ATTRIBUTES_FOR_EM: Final[int] = 3
UNBOUNDED_ITERATIONS: Final[int] = sys.maxsize

# Pruning: cost-complexity alpha reached at a confidence factor of 0
PRUNING_ALPHA_SCALE: Final[float] = 0.02
UNPRUNED_CONFIDENCE_FACTOR: Final[float] = 0.5

# Numerical stability for the EM covariance estimate
DEFAULT_EM_RIDGE: Final[float] = 1e-6


class AttributeKind(str, Enum):
    """Kinds of attributes handled by the imputer."""

    NUMERIC = "numeric"
    CATEGORICAL = "categorical"


class Comparator(str, Enum):
    """Comparators used in decision tree predicates."""

    LESS_EQUAL = "<="
    GREATER = ">"
    EQUAL = "=="
    NOT_EQUAL = "!="


class NumericMethod(str, Enum):
    """How the numeric values of a segment were imputed."""

    EM = "em"
    MEAN = "mean"


class StatsKeys(str, Enum):
    """Keys used in imputation statistics dictionaries."""

    TOTAL_MISSING = "total_missing_values"
    MISSING_BY_COLUMN = "missing_by_column"
    MISSING_PERCENTAGE = "missing_percentage"
    COMPLETE_RECORDS = "complete_records"
    INCOMPLETE_RECORDS = "incomplete_records"
    NO_COMPLETE = "no_complete"
    NO_MERGE_NO_EMI = "no_merge_no_emi"
    RULES_BY_COLUMN = "rules_by_column"
    CENTROID_ASSIGNMENTS = "centroid_assignments"
    EM_SEGMENTS = "em_segments"
    MEAN_SEGMENTS = "mean_segments"
    UNRESOLVED_VALUES = "unresolved_values"
