"""Assignment of records to segments."""

# Standard Library Imports
from typing import Optional, Sequence

# Third Party Imports
import numpy as np
import pandas as pd

# Internal Imports
from dmi.core.models.segmentation.rule import Rule, is_missing
from dmi.core.models.segmentation.run_context import RunContext
from dmi.utils.logging import get_logger

# Initialize logger
logger = get_logger(__name__)


def assign(rules: Sequence[Rule], record: pd.Series) -> Optional[int]:
    """Return the index of the first rule the record satisfies.

    Rules are tried in their stored order, most specific first.

    Args:
        rules: Rule list for one target attribute
        record: Record to assign

    Returns:
        Index of the matching rule, or None if no rule matches
    """
    for index, rule in enumerate(rules):
        if rule.matches(record):
            return index
    return None


def closest_segment(
    record: pd.Series, centroids: Sequence[pd.Series], run: RunContext
) -> int:
    """Index of the centroid nearest to the record's available values.

    Numeric attributes contribute the squared difference of normalized values,
    categorical attributes contribute 1 on mismatch. Ties go to the lowest
    index.
    """
    closest = -1
    closest_distance = np.inf

    for index, centroid in enumerate(centroids):
        distance = 0.0
        for attribute, value in record.items():
            if is_missing(value):
                continue
            centre = centroid.get(attribute, np.nan)
            if run.is_numeric(attribute):
                if is_missing(centre):
                    distance += 1.0
                    continue
                distance += (run.normalize(attribute, value) - centre) ** 2
            elif is_missing(centre) or value != centre:
                distance += 1.0

        if distance < closest_distance:
            closest_distance = distance
            closest = index

    return closest
