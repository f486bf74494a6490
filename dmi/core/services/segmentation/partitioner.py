"""Split a dataset into complete and incomplete records."""

# Standard Library Imports
from dataclasses import dataclass
from typing import Hashable, List

# Third Party Imports
import pandas as pd

# Internal Imports
from dmi.utils.logging import get_logger

# Initialize logger
logger = get_logger(__name__)


@dataclass(frozen=True)
class PartitionedDataset:
    """Complete and incomplete records of a dataset.

    Both frames keep the schema of the source and are indexed by row id, the
    position of the record in the source dataset.

    Attributes:
        data: Source dataset re-indexed by row id
        complete: Records without missing values
        incomplete: Records with at least one missing value
        missing_attributes: Columns with at least one missing value, in schema order
    """

    data: pd.DataFrame
    complete: pd.DataFrame
    incomplete: pd.DataFrame
    missing_attributes: List[Hashable]

    @property
    def has_missing(self) -> bool:
        return not self.incomplete.empty


def partition_records(data: pd.DataFrame) -> PartitionedDataset:
    """Partition ``data`` by whether each record has a missing value.

    The caller's index is replaced by a positional row id so that records can
    be addressed unambiguously through every later stage, even when the
    original index has duplicates or when records are equal by value.

    Args:
        data: Dataset to partition

    Returns:
        PartitionedDataset with disjoint complete / incomplete subsets
    """
    indexed = data.reset_index(drop=True)
    missing = indexed.isna()
    has_missing = missing.any(axis=1)

    complete = indexed.loc[~has_missing].copy()
    incomplete = indexed.loc[has_missing].copy()
    missing_attributes = [col for col in indexed.columns if missing[col].any()]

    logger.debug(
        f"Partitioned {len(indexed)} records into {len(complete)} complete "
        f"and {len(incomplete)} incomplete"
    )

    return PartitionedDataset(
        data=indexed,
        complete=complete,
        incomplete=incomplete,
        missing_attributes=missing_attributes,
    )
