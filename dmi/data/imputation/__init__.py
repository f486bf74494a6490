"""
Imputation module for handling missing data.

This module provides services for imputing missing data with decision tree
segmentation (DMI) and Expectation-Maximization (EM).
"""

from dmi.data.imputation.base_imputer import BaseImputer, BaseImputerConfig
from dmi.data.imputation.em_imputer import (
    EMConfig,
    EMImputerService,
    ExpectationMaximization,
)
from dmi.data.imputation.dmi_imputer import DMIConfig, DMIService

__all__ = [
    "BaseImputer",
    "BaseImputerConfig",
    "DMIService",
    "DMIConfig",
    "EMImputerService",
    "EMConfig",
    "ExpectationMaximization",
]
