"""Exceptions for the imputation module."""


class ImputationError(Exception):
    """Base class for imputation-related exceptions."""

    pass


class ConfigurationError(ImputationError):
    """Raised when an imputer configuration is invalid."""

    def __init__(self, parameter: str, message: str):
        self.parameter = parameter
        super().__init__(f"Invalid value for '{parameter}': {message}")


class ConvergenceError(ImputationError):
    """Raised when the EM algorithm cannot produce finite estimates."""

    pass


class TreeInductionError(ImputationError):
    """Raised when a decision tree cannot be built for an attribute."""

    def __init__(self, attribute: str, reason: str):
        self.attribute = attribute
        super().__init__(f"Could not build a tree for '{attribute}': {reason}")


class SegmentLookupError(ImputationError):
    """Raised when an imputed value cannot be found for a record."""

    def __init__(self, attribute: str, row_id: int):
        self.attribute = attribute
        self.row_id = row_id
        super().__init__(
            f"No imputed value for attribute '{attribute}' in row {row_id}."
        )
