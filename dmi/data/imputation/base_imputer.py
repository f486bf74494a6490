"""
Base imputation module for handling missing data.

This module provides a base class for imputation services with common
functionality: input validation, column selection, numeric preprocessing,
and missing-value statistics.
"""

from abc import ABC, abstractmethod
from typing import Optional, Dict, List, Tuple
import pandas as pd
from dataclasses import dataclass, field
from dmi.core.exceptions.data.imputation import ImputationError
from dmi.utils.constants import DEFAULT_RANDOM_STATE, StatsKeys
from dmi.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class BaseImputerConfig:
    """Base configuration for imputation services.

    Attributes:
        random_state: Seed for reproducibility
        exclude_columns: List of columns to exclude from imputation
        include_columns: List of columns to include in imputation (if None, include all non-excluded columns)
        preprocess_numeric: Whether to preprocess numeric columns (convert strings with commas to floats)
        verbose: Whether to log progress messages at INFO level
    """

    random_state: Optional[int] = DEFAULT_RANDOM_STATE
    exclude_columns: List[str] = field(default_factory=list)
    include_columns: Optional[List[str]] = None
    preprocess_numeric: bool = True
    verbose: bool = False


class BaseImputer(ABC):
    """Abstract base class for imputation services."""

    def __init__(self, config: Optional[BaseImputerConfig] = None):
        """Initialize the base imputer.

        Args:
            config: Configuration for imputation
        """
        self.config = config or BaseImputerConfig()
        self._missing_mask = None
        self._excluded_data = None
        self._imputation_stats = {}

    def _validate_input(self, data: pd.DataFrame) -> None:
        """Validate input data.

        Args:
            data: Input DataFrame to validate

        Raises:
            ImputationError: If input validation fails
        """
        if not isinstance(data, pd.DataFrame):
            raise ImputationError("Input must be a pandas DataFrame")
        if data.empty:
            raise ImputationError("Input DataFrame is empty")
        if data.columns.duplicated().any():
            duplicated = data.columns[data.columns.duplicated()].tolist()
            raise ImputationError(f"Duplicate column names in data: {duplicated}")

        # Validate excluded columns exist in the data
        invalid_excluded = [
            col for col in self.config.exclude_columns if col not in data.columns
        ]
        if invalid_excluded:
            raise ImputationError(
                f"Excluded columns not found in data: {invalid_excluded}"
            )

        # Validate included columns exist in the data
        if self.config.include_columns:
            invalid_included = [
                col for col in self.config.include_columns if col not in data.columns
            ]
            if invalid_included:
                raise ImputationError(
                    f"Included columns not found in data: {invalid_included}"
                )

        # Dates, durations and complex numbers have no numeric/categorical reading
        unsupported = [
            col
            for col in self._get_columns_for_imputation(data)
            if pd.api.types.is_datetime64_any_dtype(data[col])
            or pd.api.types.is_timedelta64_dtype(data[col])
            or pd.api.types.is_complex_dtype(data[col])
        ]
        if unsupported:
            raise ImputationError(f"Unsupported column types for: {unsupported}")

    def _preprocess_numeric_columns(self, data: pd.DataFrame) -> pd.DataFrame:
        """Preprocess numeric columns by removing commas and converting to float.

        Args:
            data: Input DataFrame

        Returns:
            DataFrame with preprocessed numeric columns
        """
        if not self.config.preprocess_numeric:
            return data

        df = data.copy()

        # Identify potential numeric columns that are currently objects
        object_cols = df.select_dtypes(include=["object"]).columns

        # Filter by excluded and included columns
        numeric_cols = [
            col
            for col in object_cols
            if col not in self.config.exclude_columns
            and (
                self.config.include_columns is None
                or col in self.config.include_columns
            )
        ]

        for col in numeric_cols:
            try:
                # Remove commas and convert to float
                df[col] = df[col].replace({",": ""}, regex=True).astype(float)
            except (ValueError, TypeError):
                # If conversion fails, leave the column as is
                continue

        return df

    def _create_missing_mask(self, data: pd.DataFrame) -> pd.DataFrame:
        """Create a mask of missing values.

        Args:
            data: Input DataFrame

        Returns:
            Boolean mask of missing values
        """
        return data.isna()

    def _get_columns_for_imputation(self, data: pd.DataFrame) -> List[str]:
        """Get the list of columns to be used for imputation.

        Args:
            data: Input DataFrame

        Returns:
            List of column names to impute
        """
        if self.config.include_columns:
            return [
                col
                for col in self.config.include_columns
                if col not in self.config.exclude_columns
            ]
        return [col for col in data.columns if col not in self.config.exclude_columns]

    def _separate_columns(
        self, data: pd.DataFrame
    ) -> Tuple[pd.DataFrame, pd.DataFrame]:
        """Separate columns based on configuration.

        Args:
            data: Input DataFrame

        Returns:
            Tuple of (data for imputation, excluded data)
        """
        imputation_cols = self._get_columns_for_imputation(data)

        excluded_cols = [col for col in data.columns if col not in imputation_cols]
        excluded_data = data[excluded_cols].copy() if excluded_cols else pd.DataFrame()

        imputation_data = data[imputation_cols].copy()

        return imputation_data, excluded_data

    @abstractmethod
    def _impute_dataframe(self, data: pd.DataFrame) -> pd.DataFrame:
        """Impute missing values in a single DataFrame.

        Implemented by derived classes with their imputation algorithm.

        Args:
            data: DataFrame to impute, restricted to the columns selected for
                imputation

        Returns:
            Imputed DataFrame with the same index and columns
        """
        pass

    def impute(self, data: pd.DataFrame) -> pd.DataFrame:
        """Impute missing values in the input data.

        Args:
            data: Input DataFrame with missing values

        Returns:
            DataFrame with imputed values

        Raises:
            ImputationError: If imputation fails
        """
        try:
            self._validate_input(data)

            self._imputation_stats = {}

            # Create a copy to avoid modifying the original data
            df_copy = data.copy()

            df_copy = self._preprocess_numeric_columns(df_copy)

            imputation_data, self._excluded_data = self._separate_columns(df_copy)

            # Create missing values mask for the data to be imputed
            self._missing_mask = self._create_missing_mask(imputation_data)

            self._collect_statistics(imputation_data)

            imputed_data = self._impute_dataframe(imputation_data)

            # Combine imputed data with excluded data
            result = imputed_data.copy()
            if not self._excluded_data.empty:
                excluded_data = self._excluded_data.loc[result.index]
                result = pd.concat([result, excluded_data], axis=1)

            # Restore original column order
            return result[data.columns]

        except ImputationError:
            raise
        except Exception as e:
            raise ImputationError(f"Imputation failed: {str(e)}") from e

    def _collect_statistics(self, data: pd.DataFrame) -> None:
        """Collect statistics about the imputation process.

        Args:
            data: DataFrame being imputed
        """
        if self._missing_mask is None:
            return

        total_missing = int(self._missing_mask.sum().sum())
        missing_by_col = self._missing_mask.sum().astype(int).to_dict()
        missing_pct = (
            self._missing_mask.sum() / len(self._missing_mask) * 100
        ).to_dict()

        self._imputation_stats = {
            StatsKeys.TOTAL_MISSING.value: total_missing,
            StatsKeys.MISSING_BY_COLUMN.value: missing_by_col,
            StatsKeys.MISSING_PERCENTAGE.value: missing_pct,
        }

        if self.config.verbose:
            logger.info(f"{total_missing} missing values across {len(data)} records")

    def get_imputation_statistics(self) -> Dict:
        """Get statistics about the imputation process.

        Returns:
            Dictionary containing imputation statistics
        """
        return self._imputation_stats
