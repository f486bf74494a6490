"""
dmi - Decision tree based missing value imputation.

Records are split into horizontal segments with one decision tree per
attribute with missing values; categorical values are imputed with the
segment mode and numeric values with EM imputation inside the segment.
"""

__version__ = "0.1.0"

# The imputation package wires the segmentation services together, so it is
# imported first to fix the import order of the submodules.
from dmi.data.imputation import (
    DMIConfig,
    DMIService,
    EMConfig,
    EMImputerService,
)
from dmi.core.exceptions.data.imputation import ConfigurationError, ImputationError

__all__ = [
    "__version__",
    "DMIConfig",
    "DMIService",
    "EMConfig",
    "EMImputerService",
    "ConfigurationError",
    "ImputationError",
]
