"""
Per-segment imputation.

Categorical values are imputed with the segment mode. Numeric values are
imputed by running EM once per (attribute, segment) on the numeric part of the
segment, or by the segment mean when EM is not usable.
"""

# Standard Library Imports
from typing import Any, Dict, Hashable, List, Optional, Tuple

# Third Party Imports
import numpy as np
import pandas as pd

# Internal Imports
from dmi.core.exceptions.data.imputation import ImputationError, SegmentLookupError
from dmi.core.models.segmentation.rule import is_missing
from dmi.core.models.segmentation.run_context import RunContext
from dmi.core.models.segmentation.segment import Segment
from dmi.core.services.segmentation.segment_builder import column_mode
from dmi.data.imputation.em_imputer import EMConfig, EMImputerService
from dmi.utils.constants import MIN_NUMERIC_ATTRIBUTES_FOR_EM, NumericMethod
from dmi.utils.logging import get_logger

# Initialize logger
logger = get_logger(__name__)

CacheKey = Tuple[Hashable, int]


class ImputationCache:
    """Imputed numeric sub-datasets keyed by (target attribute, segment index).

    Not thread-safe: the pipeline is single-threaded. Parallel callers must
    serialise work per key so that each segment is still imputed once.
    """

    def __init__(self):
        self._imputed: Dict[CacheKey, pd.DataFrame] = {}

    def __contains__(self, key: CacheKey) -> bool:
        return key in self._imputed

    def __len__(self) -> int:
        return len(self._imputed)

    def get(self, attribute: Hashable, segment_index: int) -> Optional[pd.DataFrame]:
        return self._imputed.get((attribute, segment_index))

    def store(self, attribute: Hashable, segment_index: int, data: pd.DataFrame) -> None:
        key = (attribute, segment_index)
        if key in self._imputed:
            raise ImputationError(
                f"Segment {segment_index} already imputed for '{attribute}'"
            )
        self._imputed[key] = data


def mean_fill(data: pd.DataFrame) -> pd.DataFrame:
    """Replace missing values by the column mean."""
    return data.fillna(data.mean())


class SegmentImputer:
    """Imputes target attribute values of records assigned to segments.

    Attributes:
        run: Context of the current imputation run
        cache: Imputed numeric sub-datasets
        methods: Numeric method used per (attribute, segment)
        unresolved: (row id, attribute) pairs left without a value
    """

    def __init__(self, run: RunContext, cache: Optional[ImputationCache] = None):
        self.run = run
        self.cache = cache if cache is not None else ImputationCache()
        self.methods: Dict[CacheKey, NumericMethod] = {}
        self.unresolved: List[Tuple[int, Hashable]] = []

    def impute_categorical(self, row_id: int, segment: Segment, attribute: Hashable) -> Any:
        """Mode of ``attribute`` over the segment's current records."""
        value = column_mode(segment.data[attribute])
        if is_missing(value):
            self._report_unresolved(row_id, attribute, f"segment {segment.index} has no values")
        return value

    def use_em(self, numeric: pd.DataFrame) -> bool:
        return (
            not self.run.no_merge_no_emi
            and numeric.shape[1] >= MIN_NUMERIC_ATTRIBUTES_FOR_EM
        )

    def _em_impute(self, numeric: pd.DataFrame) -> pd.DataFrame:
        service = EMImputerService(
            EMConfig(
                max_iterations=self.run.emi_max_iterations,
                log_likelihood_threshold=self.run.emi_log_likelihood_threshold,
                preprocess_numeric=False,
            )
        )
        return service.impute(numeric)

    def imputed_segment(self, attribute: Hashable, segment: Segment) -> pd.DataFrame:
        """Numeric sub-dataset of the segment with missing values filled.

        Computed on first use for (attribute, segment) and cached afterwards.
        """
        cached = self.cache.get(attribute, segment.index)
        if cached is not None:
            return cached

        numeric = (
            segment.data[list(self.run.numeric_columns)]
            .apply(pd.to_numeric, errors="coerce")
            .astype(float)
        )
        method = NumericMethod.MEAN
        if self.use_em(numeric):
            try:
                imputed = mean_fill(self._em_impute(numeric))
                method = NumericMethod.EM
            except ImputationError as e:
                logger.warning(
                    f"EM failed on segment {segment.index} for '{attribute}', "
                    f"using mean imputation: {e}"
                )
                imputed = mean_fill(numeric)
        else:
            imputed = mean_fill(numeric)

        logger.debug(
            f"Imputed segment {segment.index} ({len(numeric)} records) for "
            f"'{attribute}' using {method.value}"
        )
        self.cache.store(attribute, segment.index, imputed)
        self.methods[(attribute, segment.index)] = method
        return imputed

    def impute_numeric(
        self, row_id: int, record: pd.Series, attribute: Hashable, segment: Segment
    ) -> float:
        """Imputed value of a numeric ``attribute`` for one record.

        Args:
            row_id: Row id of the record
            record: Original record, with its missing values
            attribute: Numeric target attribute
            segment: Segment the record was assigned to

        Returns:
            Imputed value, NaN if none could be determined
        """
        imputed = self.imputed_segment(attribute, segment)

        if all(is_missing(record[c]) for c in self.run.numeric_columns):
            centre = segment.centroid.get(attribute, np.nan)
            if is_missing(centre):
                self._report_unresolved(row_id, attribute, "segment centroid is undefined")
                return np.nan
            return self.run.denormalize(attribute, centre)

        try:
            value = self.lookup(imputed, row_id, attribute)
        except SegmentLookupError as e:
            self._report_unresolved(row_id, attribute, str(e))
            return np.nan

        if is_missing(value):
            self._report_unresolved(row_id, attribute, f"segment {segment.index} has no values")
            return np.nan
        return float(value)

    @staticmethod
    def lookup(imputed: pd.DataFrame, row_id: int, attribute: Hashable) -> Any:
        """Value of ``attribute`` for ``row_id`` in an imputed sub-dataset.

        Raises:
            SegmentLookupError: If the row is not part of the sub-dataset
        """
        if row_id not in imputed.index or attribute not in imputed.columns:
            raise SegmentLookupError(attribute, row_id)
        return imputed.at[row_id, attribute]

    def _report_unresolved(self, row_id: int, attribute: Hashable, reason: str) -> None:
        logger.warning(f"Could not impute '{attribute}' for row {row_id}: {reason}")
        self.unresolved.append((row_id, attribute))
