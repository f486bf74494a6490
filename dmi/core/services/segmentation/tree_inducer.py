"""
Tree induction and discretization collaborators.

The segment builder only relies on the :class:`TreeInducer` and
:class:`Discretizer` protocols; the default implementations are backed by
scikit-learn.
"""

# Standard Library Imports
from typing import Dict, Hashable, List, Optional, Protocol, Tuple, Any

# Third Party Imports
import numpy as np
import pandas as pd
from sklearn.preprocessing import KBinsDiscretizer
from sklearn.tree import DecisionTreeClassifier

# Internal Imports
from dmi.core.exceptions.data.imputation import TreeInductionError
from dmi.core.models.segmentation.rule import Predicate
from dmi.core.models.segmentation.run_context import attribute_kind
from dmi.core.models.segmentation.tree import DecisionTree, TreeNode
from dmi.utils.constants import (
    AttributeKind,
    Comparator,
    PRUNING_ALPHA_SCALE,
    UNPRUNED_CONFIDENCE_FACTOR,
)
from dmi.utils.logging import get_logger

# Initialize logger
logger = get_logger(__name__)

TREE_LEAF = -1


class TreeInducer(Protocol):
    """Builds a decision tree predicting ``target`` from the other columns."""

    def induce(
        self,
        data: pd.DataFrame,
        target: Hashable,
        min_leaf_size: int,
        confidence_factor: float,
    ) -> DecisionTree: ...


class Discretizer(Protocol):
    """Replaces a numeric column by ordinal bin categories."""

    def discretize(
        self, data: pd.DataFrame, attribute: Hashable, n_bins: int
    ) -> pd.DataFrame: ...


def confidence_to_ccp_alpha(confidence_factor: float) -> float:
    """Map a C4.5 style confidence factor to a cost-complexity pruning alpha.

    Lower confidence means more pruning; 0.5 and above disables pruning.
    """
    return max(0.0, UNPRUNED_CONFIDENCE_FACTOR - confidence_factor) * PRUNING_ALPHA_SCALE


class CartTreeInducer:
    """Tree inducer backed by scikit-learn's ``DecisionTreeClassifier``.

    Categorical features are one-hot encoded, so every categorical split is an
    equality test on one category; its negated branch becomes a ``!=``
    predicate carrying the categories seen during training.
    """

    def __init__(self, random_state: Optional[int] = None, criterion: str = "entropy"):
        self.random_state = random_state
        self.criterion = criterion

    def _encode(
        self, features: pd.DataFrame
    ) -> Tuple[np.ndarray, List[Tuple[Hashable, AttributeKind, Any, frozenset]]]:
        """Encode features as a float matrix and describe every encoded column."""
        blocks: List[np.ndarray] = []
        columns: List[Tuple[Hashable, AttributeKind, Any, frozenset]] = []

        for attribute in features.columns:
            column = features[attribute]
            if attribute_kind(column) == AttributeKind.NUMERIC:
                blocks.append(column.to_numpy(dtype=float).reshape(-1, 1))
                columns.append((attribute, AttributeKind.NUMERIC, None, frozenset()))
                continue

            categories = pd.unique(column.dropna())
            domain = frozenset(categories)
            for category in categories:
                blocks.append((column == category).to_numpy(dtype=float).reshape(-1, 1))
                columns.append((attribute, AttributeKind.CATEGORICAL, category, domain))

        if not blocks:
            return np.empty((len(features), 0)), columns
        return np.hstack(blocks), columns

    def induce(
        self,
        data: pd.DataFrame,
        target: Hashable,
        min_leaf_size: int,
        confidence_factor: float,
    ) -> DecisionTree:
        features = data.drop(columns=[target])
        X, columns = self._encode(features)
        if X.shape[1] == 0:
            raise TreeInductionError(target, "no attributes to split on")

        y = data[target].astype(str).to_numpy()
        classifier = DecisionTreeClassifier(
            criterion=self.criterion,
            min_samples_leaf=max(1, int(min_leaf_size)),
            ccp_alpha=confidence_to_ccp_alpha(confidence_factor),
            random_state=self.random_state,
        )
        try:
            classifier.fit(X, y)
        except ValueError as e:
            raise TreeInductionError(target, str(e)) from e

        return DecisionTree(target=target, root=self._walk(classifier, columns))

    def _walk(
        self,
        classifier: DecisionTreeClassifier,
        columns: List[Tuple[Hashable, AttributeKind, Any, frozenset]],
    ) -> TreeNode:
        """Convert the fitted tree structure into predicate nodes."""
        tree = classifier.tree_
        nodes: Dict[int, TreeNode] = {
            node_id: TreeNode(support=int(tree.n_node_samples[node_id]))
            for node_id in range(tree.node_count)
        }

        for node_id, node in nodes.items():
            left = tree.children_left[node_id]
            right = tree.children_right[node_id]
            if left == TREE_LEAF:
                continue

            attribute, kind, category, domain = columns[tree.feature[node_id]]
            if kind == AttributeKind.NUMERIC:
                threshold = float(tree.threshold[node_id])
                left_condition = Predicate(
                    attribute=attribute, comparator=Comparator.LESS_EQUAL, value=threshold
                )
                right_condition = Predicate(
                    attribute=attribute, comparator=Comparator.GREATER, value=threshold
                )
            else:
                # Indicator <= 0.5 means the record is not in ``category``
                left_condition = Predicate(
                    attribute=attribute,
                    comparator=Comparator.NOT_EQUAL,
                    value=category,
                    domain=domain,
                )
                right_condition = Predicate(
                    attribute=attribute,
                    comparator=Comparator.EQUAL,
                    value=category,
                    domain=domain,
                )

            node.branches = [
                (left_condition, nodes[left]),
                (right_condition, nodes[right]),
            ]

        return nodes[0]


class UniformDiscretizer:
    """Equal-width binning backed by scikit-learn's ``KBinsDiscretizer``."""

    def discretize(
        self, data: pd.DataFrame, attribute: Hashable, n_bins: int
    ) -> pd.DataFrame:
        discretizer = KBinsDiscretizer(
            n_bins=n_bins, encode="ordinal", strategy="uniform", subsample=None
        )
        binned = discretizer.fit_transform(data[[attribute]].to_numpy(dtype=float))
        result = data.copy()
        result[attribute] = [f"bin_{int(code)}" for code in binned[:, 0]]
        return result
