"""Tests for the DMI imputation service."""

import numpy as np
import pandas as pd
import pytest

from dmi.core.exceptions.data.imputation import (
    ConfigurationError,
    ImputationError,
    TreeInductionError,
)
from dmi.data.imputation.dmi_imputer import DMIConfig, DMIService
from dmi.utils.constants import StatsKeys


class FailingInducer:
    def induce(self, data, target, min_leaf_size, confidence_factor):
        raise TreeInductionError(target, "not today")


class TestConfiguration:
    @pytest.mark.parametrize(
        "overrides, parameter",
        [
            ({"min_categories_for_discretization": 1}, "min_categories_for_discretization"),
            ({"confidence_factor": 0.0}, "confidence_factor"),
            ({"confidence_factor": 1.0}, "confidence_factor"),
            ({"emi_log_likelihood_threshold": -1.0}, "emi_log_likelihood_threshold"),
        ],
    )
    def test_invalid_settings(self, overrides, parameter):
        with pytest.raises(ConfigurationError) as excinfo:
            DMIService(DMIConfig(**overrides))
        assert excinfo.value.parameter == parameter

    def test_config_is_checked_again_on_impute(self, census_df):
        service = DMIService()
        service.config.confidence_factor = 2.0
        with pytest.raises(ConfigurationError):
            service.impute(census_df)

    def test_configuration_error_is_an_imputation_error(self):
        assert issubclass(ConfigurationError, ImputationError)


class TestImpute:
    def test_census_example(self, census_df):
        service = DMIService(DMIConfig(min_records_for_emi=4))
        result = service.impute(census_df)

        assert result.shape == (110, 3)
        assert list(result.columns) == ["age", "income", "city"]
        assert not result.isna().any().any()

        complete = census_df["income"].notna()
        pd.testing.assert_frame_equal(result[complete], census_df[complete])

        rules = service.get_rules()["income"]
        assert rules
        for rule in rules:
            assert rule.is_universal or rule.support >= 4

        stats = service.get_imputation_statistics()
        assert stats[StatsKeys.TOTAL_MISSING.value] == 10
        assert stats[StatsKeys.COMPLETE_RECORDS.value] == 100
        assert stats[StatsKeys.INCOMPLETE_RECORDS.value] == 10
        assert not stats[StatsKeys.NO_COMPLETE.value]
        assert stats[StatsKeys.UNRESOLVED_VALUES.value] == 0
        assert len(stats[StatsKeys.RULES_BY_COLUMN.value]["income"]) == len(rules)

    def test_imputed_values_stay_in_range(self, census_df):
        result = DMIService().impute(census_df)
        missing = census_df["income"].isna()

        imputed = result.loc[missing, "income"]
        assert imputed.min() >= census_df["income"].min()
        assert imputed.max() <= census_df["income"].max()

    def test_index_is_preserved(self, census_df):
        data = census_df.copy()
        data.index = [f"row-{i}" for i in range(len(data))]

        result = DMIService().impute(data)

        assert list(result.index) == list(data.index)
        assert result.loc["row-0", "age"] == data.loc["row-0", "age"]

    def test_input_is_not_modified(self, census_df):
        before = census_df.copy()
        DMIService().impute(census_df)
        pd.testing.assert_frame_equal(census_df, before)

    def test_results_are_reproducible(self, census_df):
        first = DMIService().impute(census_df)
        second = DMIService().impute(census_df)
        pd.testing.assert_frame_equal(first, second)

    def test_categorical_values_come_from_the_data(self, census_df):
        data = census_df.copy()
        data.loc[[2, 30, 60], "city"] = None

        result = DMIService().impute(data)

        assert not result["city"].isna().any()
        assert set(result["city"]) <= {"Boston", "Chicago", "Denver"}

    def test_nothing_missing_returns_copy(self, correlated_df):
        service = DMIService()
        result = service.impute(correlated_df)

        pd.testing.assert_frame_equal(result, correlated_df)
        assert result is not correlated_df
        assert service.get_rules() == {}

    def test_no_complete_records(self):
        data = pd.DataFrame(
            {
                "a": [np.nan, 2.0, 3.0, 4.0],
                "b": [1.0, np.nan, 3.0, 5.0],
                "c": [1.0, 2.0, np.nan, 6.0],
                "city": ["x", "x", "y", None],
            }
        )
        service = DMIService()
        result = service.impute(data)

        assert not result.isna().any().any()
        assert result.loc[0, "a"] == pytest.approx(3.0)
        assert result.loc[1, "b"] == pytest.approx(3.0)
        assert result.loc[3, "city"] == "x"

        stats = service.get_imputation_statistics()
        assert stats[StatsKeys.NO_COMPLETE.value]
        assert stats[StatsKeys.NO_MERGE_NO_EMI.value]
        assert service.get_rules()["a"][0].is_universal

    def test_too_few_complete_records_disable_em(self):
        data = pd.DataFrame(
            {
                "a": [1.0, 2.0, np.nan, 4.0, 5.0],
                "b": [2.0, 4.0, 6.0, np.nan, 10.0],
                "c": [1.0, np.nan, 3.0, 4.0, np.nan],
            }
        )
        service = DMIService()
        result = service.impute(data)

        assert not result.isna().any().any()
        stats = service.get_imputation_statistics()
        assert stats[StatsKeys.COMPLETE_RECORDS.value] == 1
        assert stats[StatsKeys.NO_MERGE_NO_EMI.value]
        assert stats[StatsKeys.EM_SEGMENTS.value] == 0

    def test_em_runs_inside_segments(self, correlated_df):
        data = correlated_df.copy()
        data.loc[[5, 20, 45], "b"] = np.nan
        service = DMIService(DMIConfig(min_records_for_emi=10))

        result = service.impute(data)

        stats = service.get_imputation_statistics()
        assert stats[StatsKeys.EM_SEGMENTS.value] >= 1
        np.testing.assert_allclose(
            result.loc[[5, 20, 45], "b"], 2 * data.loc[[5, 20, 45], "a"], atol=1.0
        )

    def test_duplicate_records(self):
        data = pd.DataFrame(
            {
                "x": [1.0, 1.0, 2.0, 3.0, 4.0],
                "y": [np.nan, np.nan, 4.0, 6.0, 8.0],
            }
        )
        result = DMIService().impute(data)

        assert not result["y"].isna().any()
        assert result.loc[0, "y"] == result.loc[1, "y"]

    def test_excluded_columns_are_untouched(self, census_df):
        data = census_df.assign(note="keep")
        data.loc[[1, 2], "note"] = None
        service = DMIService(DMIConfig(exclude_columns=["note"]))

        result = service.impute(data)

        assert result["note"].isna().sum() == 2
        assert not result[["age", "income", "city"]].isna().any().any()

    def test_failed_tree_induction_uses_whole_dataset(self, census_df):
        service = DMIService(tree_inducer=FailingInducer())
        result = service.impute(census_df)

        assert not result.isna().any().any()
        assert [str(r) for r in service.get_rules()["income"]] == ["all (100)"]

    def test_integer_columns_keep_their_dtype(self, census_df):
        data = census_df.assign(age=census_df["age"].astype(int))
        result = DMIService().impute(data)
        assert result["age"].dtype == data["age"].dtype

    def test_rejects_non_dataframe(self):
        with pytest.raises(ImputationError):
            DMIService().impute([[1, 2], [3, None]])

    def test_rejects_empty_dataframe(self):
        with pytest.raises(ImputationError):
            DMIService().impute(pd.DataFrame())

    def test_unseen_category_uses_closest_centroid(self):
        city = np.repeat(["Boston", "Chicago", "Denver"], 30)
        income = np.repeat([10000.0, 50000.0, 90000.0], 30)
        data = pd.DataFrame({"city": city, "income": income})
        data.loc[len(data)] = ["Paris", np.nan]
        service = DMIService()

        result = service.impute(data)

        stats = service.get_imputation_statistics()
        assert stats[StatsKeys.CENTROID_ASSIGNMENTS.value] == 1
        assert stats[StatsKeys.UNRESOLVED_VALUES.value] == 0
        assert len(service.get_rules()["income"]) > 1
        imputed = result.loc[90, "income"]
        assert min(abs(imputed - c) for c in (10000.0, 50000.0, 90000.0)) < 1e-6
        assert result.loc[90, "city"] == "Paris"

    def test_text_values_are_not_rewritten(self, census_df):
        codes = pd.Series([f"{i:,}" for i in range(1000, 1110)], dtype=object)
        data = census_df.assign(code=codes)

        result = DMIService().impute(data)

        assert result["code"].tolist() == data["code"].tolist()

    def test_text_to_number_conversion_is_opt_in(self, census_df):
        assert DMIConfig().preprocess_numeric is False
        codes = pd.Series([f"{i:,}" for i in range(1000, 1110)], dtype=object)
        data = census_df.assign(code=codes)

        result = DMIService(DMIConfig(preprocess_numeric=True)).impute(data)

        assert result["code"].tolist() == [float(i) for i in range(1000, 1110)]

    def test_rejects_column_without_observed_values(self, census_df):
        data = census_df.assign(bonus=np.nan)
        with pytest.raises(ImputationError, match="without observed values"):
            DMIService().impute(data)

    def test_excluded_column_may_be_all_missing(self, census_df):
        data = census_df.assign(bonus=np.nan)
        result = DMIService(DMIConfig(exclude_columns=["bonus"])).impute(data)

        assert result["bonus"].isna().all()
        assert not result["income"].isna().any()
