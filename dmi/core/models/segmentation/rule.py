"""Predicate and rule models describing decision tree leaves."""

# Standard Library Imports
from typing import Any, FrozenSet, Hashable, Tuple

# Third Party Imports
import numpy as np
import pandas as pd
from pydantic import BaseModel, ConfigDict, Field

# Internal Imports
from dmi.utils.constants import Comparator

NUMERIC_COMPARATORS = frozenset({Comparator.LESS_EQUAL, Comparator.GREATER})


def is_missing(value: Any) -> bool:
    """Return True for scalar missing markers (None, NaN, pd.NA, NaT)."""
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def as_split_value(value: Any) -> float:
    """Round a numeric value through float32, the precision trees are fitted in.

    scikit-learn trees compare float32 features with float64 thresholds, so
    records are routed the same way as the training records were counted.
    """
    return float(np.float32(value))


class Predicate(BaseModel):
    """A single branch condition on the path from a tree root to a leaf.

    Attributes:
        attribute: Column the condition tests
        comparator: One of ``<=``, ``>`` (numeric) or ``==``, ``!=`` (categorical)
        value: Threshold for numeric comparators, category otherwise
        domain: Categories seen by the tree for a categorical attribute
    """

    model_config = ConfigDict(frozen=True)

    attribute: Hashable = Field(description="Column tested by the predicate.")
    comparator: Comparator = Field(description="Comparison operator.")
    value: Any = Field(description="Threshold or category.")
    domain: FrozenSet[Any] = Field(
        default_factory=frozenset,
        description="Categories seen during tree induction.",
    )

    @property
    def is_numeric(self) -> bool:
        return self.comparator in NUMERIC_COMPARATORS

    @property
    def key(self) -> Tuple[Hashable, str, Any]:
        """Identity of the predicate, ignoring the training domain."""
        return (self.attribute, self.comparator.value, self.value)

    def evaluate(self, value: Any) -> bool:
        """Evaluate the predicate against a single attribute value.

        A missing value never satisfies a predicate, and a category outside the
        training domain satisfies neither ``==`` nor ``!=``.
        """
        if is_missing(value):
            return False

        if self.is_numeric:
            try:
                number = as_split_value(value)
            except (TypeError, ValueError):
                return False
            if self.comparator == Comparator.LESS_EQUAL:
                return number <= self.value
            return number > self.value

        if self.domain and value not in self.domain:
            return False
        if self.comparator == Comparator.EQUAL:
            return value == self.value
        return value != self.value

    def mask(self, data: pd.DataFrame) -> pd.Series:
        """Vectorised version of :meth:`evaluate` over a DataFrame."""
        column = data[self.attribute]
        present = column.notna()

        if self.is_numeric:
            numbers = (
                pd.to_numeric(column, errors="coerce").astype(np.float32).astype(float)
            )
            if self.comparator == Comparator.LESS_EQUAL:
                return present & (numbers <= self.value)
            return present & (numbers > self.value)

        known = column.isin(self.domain) if self.domain else present
        if self.comparator == Comparator.EQUAL:
            return present & known & (column == self.value)
        return present & known & (column != self.value)

    def __str__(self) -> str:
        return f"{self.attribute} {self.comparator.value} {self.value}"


class Rule(BaseModel):
    """Conjunction of predicates identifying one segment of the dataset.

    A rule without predicates is the universal rule: it matches every record
    and stands for the whole training set.

    Attributes:
        predicates: Branch conditions in root-to-leaf order
        support: Number of training records at the leaf
    """

    model_config = ConfigDict(frozen=True)

    predicates: Tuple[Predicate, ...] = Field(
        default=(), description="Branch conditions in root-to-leaf order."
    )
    support: int = Field(default=0, ge=0, description="Training records at the leaf.")

    @classmethod
    def universal(cls, support: int) -> "Rule":
        """Create the rule matching every record."""
        return cls(predicates=(), support=support)

    @property
    def is_universal(self) -> bool:
        return not self.predicates

    @property
    def depth(self) -> int:
        return len(self.predicates)

    @property
    def path(self) -> Tuple[Tuple[Hashable, str, Any], ...]:
        """Predicate identities, used to compare rules by their path only."""
        return tuple(predicate.key for predicate in self.predicates)

    def parent(self, support: int) -> "Rule":
        """Return the rule with the last predicate dropped."""
        return Rule(predicates=self.predicates[:-1], support=support)

    def starts_with(self, path: Tuple[Tuple[Hashable, str, Any], ...]) -> bool:
        return self.path[: len(path)] == path

    def matches(self, record: pd.Series) -> bool:
        """Check whether every predicate holds on the record's available values."""
        for predicate in self.predicates:
            if not predicate.evaluate(record.get(predicate.attribute, np.nan)):
                return False
        return True

    def mask(self, data: pd.DataFrame) -> pd.Series:
        """Boolean mask of the rows of ``data`` that satisfy the rule."""
        selected = pd.Series(True, index=data.index)
        for predicate in self.predicates:
            selected &= predicate.mask(data)
        return selected

    def __str__(self) -> str:
        if self.is_universal:
            return f"all ({self.support})"
        conditions = " ~ ".join(str(predicate) for predicate in self.predicates)
        return f"{conditions} ({self.support})"
