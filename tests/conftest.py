"""Shared fixtures for the DMI test suite."""

import numpy as np
import pandas as pd
import pytest

from dmi.core.models.segmentation.run_context import RunContext
from dmi.data.imputation.dmi_imputer import DMIConfig


@pytest.fixture
def make_run():
    """Factory building a RunContext for a dataset and DMIConfig overrides."""

    def _make_run(data: pd.DataFrame, n_complete=None, **overrides) -> RunContext:
        if n_complete is None:
            n_complete = int((~data.isna().any(axis=1)).sum())
        return RunContext.create(data, n_complete, DMIConfig(**overrides))

    return _make_run


@pytest.fixture
def census_df():
    """110 records: age and income are numeric, city is categorical.

    Income grows with age and city depends on age, so trees on income have
    something to split on. Every 11th record misses its income.
    """
    rng = np.random.default_rng(7)
    n = 110
    age = rng.uniform(20, 70, n).round(0)
    income = age * 1000 + rng.normal(0, 2000, n)
    city = np.where(age < 35, "Boston", np.where(age < 55, "Chicago", "Denver"))

    df = pd.DataFrame({"age": age, "income": income, "city": city})
    df.loc[5::11, "income"] = np.nan
    return df


@pytest.fixture
def correlated_df():
    """Three strongly correlated numeric columns without missing values."""
    rng = np.random.default_rng(11)
    a = rng.normal(10, 3, 60)
    return pd.DataFrame(
        {
            "a": a,
            "b": 2 * a + rng.normal(0, 0.1, 60),
            "c": -a + rng.normal(0, 0.1, 60),
        }
    )
