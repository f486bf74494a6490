"""
Merging of undersized decision tree leaves.

Leaves whose support is too small for EM imputation are replaced by the
node above them in the tree, repeatedly, until every surviving rule is large
enough or only the universal rule is left.
"""

# Standard Library Imports
from typing import List, Sequence

# Internal Imports
from dmi.core.models.segmentation.rule import Rule
from dmi.utils.logging import get_logger

# Initialize logger
logger = get_logger(__name__)


def sort_by_specificity(rules: Sequence[Rule]) -> List[Rule]:
    """Order rules from most to least specific; the universal rule comes last.

    The sort is stable, so rules of equal depth keep their relative order.
    """
    return sorted(rules, key=lambda rule: -rule.depth)


def deduplicate_rules(rules: Sequence[Rule]) -> List[Rule]:
    """Keep the first rule for every predicate path."""
    seen = set()
    unique: List[Rule] = []
    for rule in rules:
        if rule.path in seen:
            continue
        seen.add(rule.path)
        unique.append(rule)
    return unique


def _merge_pass(
    rules: Sequence[Rule],
    threshold: int,
    leaves: Sequence[Rule],
    total_support: int,
) -> List[Rule]:
    """Replace every undersized rule by its parent, building a new list.

    The support of a parent is the summed support of the leaves below it, so
    records of leaves merged in earlier passes are never counted twice.
    """
    merged: List[Rule] = []
    for rule in rules:
        if rule.is_universal or rule.support >= threshold:
            merged.append(rule)
            continue

        if rule.depth <= 1:
            merged.append(Rule.universal(total_support))
            continue

        prefix = rule.path[:-1]
        support = sum(leaf.support for leaf in leaves if leaf.starts_with(prefix))
        merged.append(rule.parent(support))

    return sort_by_specificity(deduplicate_rules(merged))


def merge_small_rules(rules: Sequence[Rule], threshold: int) -> List[Rule]:
    """Collapse rules with support below ``threshold`` into their parent rules.

    Args:
        rules: Rules extracted from one tree
        threshold: Minimum support a rule needs to survive

    Returns:
        Converged rule list, most specific first
    """
    current = sort_by_specificity(deduplicate_rules(rules))
    if not current:
        return current

    leaves = [rule for rule in current if not rule.is_universal]
    universal = [rule for rule in current if rule.is_universal]
    if universal:
        total_support = universal[0].support
    else:
        total_support = sum(rule.support for rule in leaves)

    passes = 0
    while any(
        not rule.is_universal and rule.support < threshold for rule in current
    ):
        current = _merge_pass(current, threshold, leaves, total_support)
        passes += 1

    if passes:
        logger.debug(
            f"Merged {len(rules)} rules into {len(current)} in {passes} passes "
            f"(threshold {threshold})"
        )
    return current
