"""Tests for per-segment imputation and the imputation cache."""

import numpy as np
import pandas as pd
import pytest

from dmi.core.exceptions.data.imputation import (
    ConvergenceError,
    ImputationError,
    SegmentLookupError,
)
from dmi.core.models.segmentation.rule import Rule
from dmi.core.models.segmentation.segment import Segment
from dmi.core.services.segmentation.segment_builder import SegmentBuilder
from dmi.core.services.segmentation.segment_imputer import (
    ImputationCache,
    SegmentImputer,
    mean_fill,
)
from dmi.utils.constants import NumericMethod


def make_segment(run, data, index=0):
    centroid = SegmentBuilder(run).centroid(data)
    return Segment(
        index=index, rule=Rule.universal(len(data)), data=data, centroid=centroid
    )


class TestImputationCache:
    def test_store_and_get(self):
        cache = ImputationCache()
        frame = pd.DataFrame({"x": [1.0]})
        cache.store("x", 0, frame)

        assert ("x", 0) in cache
        assert cache.get("x", 0) is frame
        assert cache.get("x", 1) is None
        assert len(cache) == 1

    def test_segment_is_stored_once(self):
        cache = ImputationCache()
        cache.store("x", 0, pd.DataFrame())
        with pytest.raises(ImputationError):
            cache.store("x", 0, pd.DataFrame())


def test_mean_fill():
    filled = mean_fill(pd.DataFrame({"x": [1.0, np.nan, 3.0]}))
    assert filled["x"].tolist() == [1.0, 2.0, 3.0]


class TestSegmentImputer:
    def test_categorical_value_is_segment_mode(self, make_run):
        data = pd.DataFrame({"x": [1.0, 2.0, 3.0], "c": ["a", "b", "b"]})
        run = make_run(data)
        imputer = SegmentImputer(run)

        assert imputer.impute_categorical(7, make_segment(run, data), "c") == "b"
        assert imputer.unresolved == []

    def test_mean_used_with_few_numeric_attributes(self, make_run):
        data = pd.DataFrame({"x": [1.0, np.nan, 3.0, 5.0], "y": [2.0, 2.0, 4.0, 4.0]})
        run = make_run(data, n_complete=3)
        imputer = SegmentImputer(run)
        segment = make_segment(run, data)

        value = imputer.impute_numeric(1, data.loc[1], "x", segment)

        assert value == pytest.approx(3.0)
        assert imputer.methods[("x", 0)] == NumericMethod.MEAN

    def test_em_used_with_enough_numeric_attributes(self, make_run, correlated_df):
        data = correlated_df.copy()
        data.loc[4, "b"] = np.nan
        run = make_run(data)
        imputer = SegmentImputer(run)
        segment = make_segment(run, data)

        value = imputer.impute_numeric(4, data.loc[4], "b", segment)

        assert imputer.methods[("b", 0)] == NumericMethod.EM
        assert value == pytest.approx(2 * data.loc[4, "a"], abs=0.5)

    def test_mean_used_when_em_is_disabled(self, make_run, correlated_df):
        data = correlated_df.copy()
        data.loc[4, "b"] = np.nan
        run = make_run(data, n_complete=2)
        imputer = SegmentImputer(run)

        imputer.impute_numeric(4, data.loc[4], "b", make_segment(run, data))

        assert run.no_merge_no_emi
        assert imputer.methods[("b", 0)] == NumericMethod.MEAN

    def test_mean_used_when_em_fails(self, make_run, correlated_df, monkeypatch):
        def fail(self, numeric):
            raise ConvergenceError("covariance is singular")

        monkeypatch.setattr(SegmentImputer, "_em_impute", fail)
        data = correlated_df.copy()
        data.loc[4, "b"] = np.nan
        run = make_run(data)
        imputer = SegmentImputer(run)

        value = imputer.impute_numeric(4, data.loc[4], "b", make_segment(run, data))

        assert imputer.methods[("b", 0)] == NumericMethod.MEAN
        assert value == pytest.approx(data["b"].mean())
        assert imputer.unresolved == []

    def test_segment_is_imputed_once(self, make_run):
        data = pd.DataFrame({"x": [1.0, np.nan, np.nan, 5.0], "y": [1.0, 2.0, 3.0, 4.0]})
        run = make_run(data)
        imputer = SegmentImputer(run)
        segment = make_segment(run, data)

        first = imputer.imputed_segment("x", segment)
        second = imputer.imputed_segment("x", segment)

        assert first is second
        assert len(imputer.cache) == 1

    def test_all_numeric_missing_uses_centroid(self, make_run):
        data = pd.DataFrame(
            {"x": [0.0, 10.0, np.nan], "y": [1.0, 3.0, np.nan], "c": ["a", "a", "b"]}
        )
        run = make_run(data)
        segment = make_segment(run, data.loc[[0, 1]])
        segment.add_record(2, data.loc[2])
        imputer = SegmentImputer(run)

        assert imputer.impute_numeric(2, data.loc[2], "x", segment) == pytest.approx(5.0)
        assert imputer.impute_numeric(2, data.loc[2], "y", segment) == pytest.approx(2.0)

    def test_unknown_row_is_reported(self, make_run):
        data = pd.DataFrame({"x": [1.0, 3.0], "y": [1.0, 2.0]})
        run = make_run(data)
        imputer = SegmentImputer(run)
        record = pd.Series({"x": np.nan, "y": 5.0})

        value = imputer.impute_numeric(9, record, "x", make_segment(run, data))

        assert np.isnan(value)
        assert imputer.unresolved == [(9, "x")]

    def test_lookup_raises_for_unknown_row(self):
        with pytest.raises(SegmentLookupError):
            SegmentImputer.lookup(pd.DataFrame({"x": [1.0]}), 5, "x")


class TestSegment:
    def test_add_record_is_idempotent(self, make_run):
        data = pd.DataFrame({"x": [1.0, 2.0], "c": ["a", "b"]})
        run = make_run(data)
        segment = make_segment(run, data)
        record = pd.Series({"x": np.nan, "c": "a"})

        segment.add_record(5, record)
        segment.add_record(5, record)

        assert len(segment) == 3
        assert segment.assigned == [5]
        assert segment.data["x"].dtype == float
