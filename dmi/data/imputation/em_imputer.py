"""
Expectation-Maximization (EM) imputation for numeric data.

This module provides a scikit-learn style estimator that fits a multivariate
normal distribution to data with missing values by Expectation-Maximization,
and a service wrapping it in the common imputer interface. Missing values are
replaced by their conditional expectation given the observed values of the
same record.
"""

from typing import Optional, Tuple
import numpy as np
import pandas as pd
from dataclasses import dataclass
from sklearn.base import BaseEstimator, TransformerMixin
from dmi.core.exceptions.data.imputation import ConvergenceError, ImputationError
from dmi.data.imputation.base_imputer import BaseImputer, BaseImputerConfig
from dmi.utils.constants import (
    DEFAULT_EM_RIDGE,
    DEFAULT_EMI_LOG_LIKELIHOOD_THRESHOLD,
    DEFAULT_EMI_NUM_ITERATIONS,
    UNBOUNDED_ITERATIONS,
)
from dmi.utils.logging import get_logger

logger = get_logger(__name__)

LOG_2PI = np.log(2.0 * np.pi)


class ExpectationMaximization(TransformerMixin, BaseEstimator):
    """Multivariate normal EM estimator with missing-value imputation.

    Parameters
    ----------
    max_iter : int
        Maximum number of EM iterations. Negative means unbounded.
    tol : float
        Stop when the observed-data log-likelihood improves by less than this.
    ridge : float
        Value added to the covariance diagonal to keep it invertible.
    """

    def __init__(
        self,
        max_iter: int = DEFAULT_EMI_NUM_ITERATIONS,
        tol: float = DEFAULT_EMI_LOG_LIKELIHOOD_THRESHOLD,
        ridge: float = DEFAULT_EM_RIDGE,
    ):
        self.max_iter = max_iter
        self.tol = tol
        self.ridge = ridge

    def fit(self, X, y=None):
        self.fit_transform(X)
        return self

    def transform(self, X):
        X = np.asarray(X, dtype=float)
        filled, _, _ = self._expectation(X, np.isnan(X), self.mean_, self.covariance_)
        return filled

    def fit_transform(self, X, y=None, **fit_params):
        X = np.asarray(X, dtype=float)
        if X.ndim != 2 or X.shape[0] == 0:
            raise ConvergenceError("EM needs a non-empty two-dimensional array")

        n_samples, n_features = X.shape
        missing = np.isnan(X)
        if missing.all(axis=0).any():
            raise ConvergenceError("EM cannot estimate a column with no observed values")

        max_iter = UNBOUNDED_ITERATIONS if self.max_iter < 0 else self.max_iter
        ridge = self.ridge * np.eye(n_features)

        mean = np.nanmean(X, axis=0)
        filled = np.where(missing, mean, X)
        covariance = self._covariance(filled, mean, np.zeros_like(ridge)) + ridge

        self.n_iter_ = 0
        log_likelihood = -np.inf
        if missing.any():
            for iteration in range(max_iter):
                filled, correction, current = self._expectation(
                    X, missing, mean, covariance
                )
                if not np.isfinite(current):
                    raise ConvergenceError(
                        f"Log-likelihood is not finite at iteration {iteration + 1}"
                    )

                mean = filled.mean(axis=0)
                covariance = self._covariance(filled, mean, correction) + ridge
                self.n_iter_ = iteration + 1

                improvement = current - log_likelihood
                log_likelihood = current
                if improvement < self.tol:
                    break

            filled, _, log_likelihood = self._expectation(X, missing, mean, covariance)

        self.mean_ = mean
        self.covariance_ = covariance
        self.log_likelihood_ = log_likelihood
        logger.debug(
            f"EM finished after {self.n_iter_} iterations "
            f"(log-likelihood {log_likelihood:.6f})"
        )
        return filled

    @staticmethod
    def _covariance(
        filled: np.ndarray, mean: np.ndarray, correction: np.ndarray
    ) -> np.ndarray:
        centered = filled - mean
        return (centered.T @ centered + correction) / filled.shape[0]

    @staticmethod
    def _expectation(
        X: np.ndarray, missing: np.ndarray, mean: np.ndarray, covariance: np.ndarray
    ) -> Tuple[np.ndarray, np.ndarray, float]:
        """E-step.

        Returns the conditionally expected data, the summed conditional
        covariance of the missing blocks, and the observed-data log-likelihood
        under the current parameters.
        """
        filled = X.copy()
        correction = np.zeros_like(covariance)
        log_likelihood = 0.0

        patterns, inverse = np.unique(missing, axis=0, return_inverse=True)
        inverse = np.asarray(inverse).reshape(-1)

        for k, pattern in enumerate(patterns):
            rows = np.flatnonzero(inverse == k)
            obs = ~pattern
            mis = pattern

            if not obs.any():
                filled[rows] = mean
                correction += len(rows) * covariance
                continue

            cov_oo = covariance[np.ix_(obs, obs)]
            sign, logdet = np.linalg.slogdet(cov_oo)
            if sign <= 0:
                raise ConvergenceError("Covariance of observed block is not positive definite")
            inv_oo = np.linalg.inv(cov_oo)

            deviation = X[np.ix_(rows, obs)] - mean[obs]
            mahalanobis = np.einsum("ij,jk,ik->i", deviation, inv_oo, deviation)
            log_likelihood += -0.5 * float(
                np.sum(obs.sum() * LOG_2PI + logdet + mahalanobis)
            )

            if not mis.any():
                continue

            cov_mo = covariance[np.ix_(mis, obs)]
            regression = cov_mo @ inv_oo
            filled[np.ix_(rows, mis)] = mean[mis] + deviation @ regression.T
            conditional = covariance[np.ix_(mis, mis)] - regression @ cov_mo.T
            correction[np.ix_(mis, mis)] += len(rows) * conditional

        return filled, correction, log_likelihood


@dataclass
class EMConfig(BaseImputerConfig):
    """Configuration for EM imputation.

    Attributes:
        max_iterations: Maximum number of EM iterations (negative means unbounded)
        log_likelihood_threshold: Minimum log-likelihood improvement to keep iterating
        ridge: Diagonal regularisation of the covariance estimate
        random_state: Unused by EM, kept for interface compatibility
        exclude_columns: List of columns to exclude from imputation
        include_columns: List of columns to include in imputation
        preprocess_numeric: Whether to preprocess numeric columns
        verbose: Whether to log progress messages
    """

    max_iterations: int = DEFAULT_EMI_NUM_ITERATIONS
    log_likelihood_threshold: float = DEFAULT_EMI_LOG_LIKELIHOOD_THRESHOLD
    ridge: float = DEFAULT_EM_RIDGE


class EMImputerService(BaseImputer):
    """Service class for performing EM imputation on numeric columns."""

    def __init__(self, config: Optional[EMConfig] = None):
        """Initialize the EM service.

        Args:
            config: Configuration for EM imputation
        """
        super().__init__(config or EMConfig())
        self.config: EMConfig
        self._estimator: Optional[ExpectationMaximization] = None

    def _create_estimator(self) -> ExpectationMaximization:
        """Create and configure the ExpectationMaximization instance.

        Returns:
            Configured ExpectationMaximization instance
        """
        return ExpectationMaximization(
            max_iter=self.config.max_iterations,
            tol=self.config.log_likelihood_threshold,
            ridge=self.config.ridge,
        )

    def _validate_input(self, data: pd.DataFrame) -> None:
        """Validate input data.

        Args:
            data: Input DataFrame to validate

        Raises:
            ImputationError: If a column to impute is not numeric
        """
        super()._validate_input(data)
        non_numeric = [
            col
            for col in self._get_columns_for_imputation(data)
            if not pd.api.types.is_numeric_dtype(data[col])
            or pd.api.types.is_bool_dtype(data[col])
        ]
        if non_numeric:
            raise ImputationError(
                f"EM imputation requires numeric columns, got: {non_numeric}"
            )

    def _impute_dataframe(self, data: pd.DataFrame) -> pd.DataFrame:
        self._estimator = self._create_estimator()
        imputed_values = self._estimator.fit_transform(data.to_numpy(dtype=float))
        return pd.DataFrame(imputed_values, columns=data.columns, index=data.index)

    def get_imputation_statistics(self) -> dict:
        """Get statistics about the imputation process, including EM diagnostics.

        Returns:
            Dictionary containing imputation statistics
        """
        stats = dict(self._imputation_stats)
        if self._estimator is not None and hasattr(self._estimator, "n_iter_"):
            stats["n_iterations"] = self._estimator.n_iter_
            stats["log_likelihood"] = self._estimator.log_likelihood_
        return stats
