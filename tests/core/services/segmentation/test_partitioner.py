"""Tests for splitting a dataset into complete and incomplete records."""

import numpy as np
import pandas as pd

from dmi.core.services.segmentation.partitioner import partition_records


def test_partition_is_disjoint_and_covers_all_records():
    df = pd.DataFrame(
        {"x": [1.0, np.nan, 3.0, 4.0], "c": ["a", "b", None, "a"]},
        index=["r", "r", "s", "t"],
    )
    partition = partition_records(df)

    assert list(partition.complete.index) == [0, 3]
    assert list(partition.incomplete.index) == [1, 2]
    assert partition.missing_attributes == ["x", "c"]
    assert partition.has_missing
    assert list(partition.data.index) == [0, 1, 2, 3]


def test_duplicate_records_keep_separate_row_ids():
    df = pd.DataFrame({"x": [np.nan, np.nan], "y": [1.0, 1.0]})
    partition = partition_records(df)

    assert list(partition.incomplete.index) == [0, 1]
    assert partition.complete.empty


def test_complete_dataset_has_nothing_missing():
    partition = partition_records(pd.DataFrame({"x": [1, 2], "y": ["a", "b"]}))

    assert not partition.has_missing
    assert partition.missing_attributes == []
    assert len(partition.complete) == 2
