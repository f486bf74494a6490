"""Navigable decision tree returned by a tree inducer."""

# Standard Library Imports
from dataclasses import dataclass, field
from typing import Iterator, List, Tuple

# Internal Imports
from dmi.core.models.segmentation.rule import Predicate, Rule


@dataclass
class TreeNode:
    """A node of an induced tree.

    Attributes:
        support: Number of training records reaching the node
        branches: (condition, child) pairs; empty for a leaf
    """

    support: int
    branches: List[Tuple[Predicate, "TreeNode"]] = field(default_factory=list)

    @property
    def is_leaf(self) -> bool:
        return not self.branches


@dataclass
class DecisionTree:
    """Tree of typed predicate splits over one target attribute."""

    target: object
    root: TreeNode

    def leaves(self) -> Iterator[Tuple[Tuple[Predicate, ...], int]]:
        """Yield (predicate path, support) for every leaf, depth first."""
        stack: List[Tuple[TreeNode, Tuple[Predicate, ...]]] = [(self.root, ())]
        while stack:
            node, path = stack.pop()
            if node.is_leaf:
                yield path, node.support
                continue
            # Reversed so that branches are visited in their stored order
            for predicate, child in reversed(node.branches):
                stack.append((child, path + (predicate,)))

    @property
    def n_leaves(self) -> int:
        return sum(1 for _ in self.leaves())

    def to_rules(self) -> List[Rule]:
        """One rule per leaf; a single-leaf tree yields the universal rule."""
        leaves = list(self.leaves())
        if len(leaves) <= 1:
            return [Rule.universal(self.root.support)]
        return [Rule(predicates=path, support=support) for path, support in leaves]
