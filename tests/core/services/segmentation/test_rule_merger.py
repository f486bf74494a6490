"""Tests for merging undersized rules into their parents."""

import pytest

from dmi.core.models.segmentation.rule import Predicate, Rule
from dmi.core.services.segmentation.rule_merger import (
    deduplicate_rules,
    merge_small_rules,
    sort_by_specificity,
)
from dmi.utils.constants import Comparator

X_LE = Predicate(attribute="x", comparator=Comparator.LESS_EQUAL, value=1.0)
X_GT = Predicate(attribute="x", comparator=Comparator.GREATER, value=1.0)
Y_LE = Predicate(attribute="y", comparator=Comparator.LESS_EQUAL, value=1.0)
Y_GT = Predicate(attribute="y", comparator=Comparator.GREATER, value=1.0)


@pytest.fixture
def leaves():
    return [
        Rule(predicates=(X_LE, Y_LE), support=2),
        Rule(predicates=(X_LE, Y_GT), support=3),
        Rule(predicates=(X_GT,), support=10),
    ]


def is_prefix_of_some(rule, rules):
    return any(original.starts_with(rule.path) for original in rules)


class TestSorting:
    def test_most_specific_first_and_stable(self, leaves):
        universal = Rule.universal(15)
        ordered = sort_by_specificity([universal, leaves[2], leaves[0], leaves[1]])
        assert ordered == [leaves[0], leaves[1], leaves[2], universal]

    def test_deduplicate_keeps_first(self):
        first = Rule(predicates=(X_LE,), support=5)
        second = Rule(predicates=(X_LE,), support=8)
        assert deduplicate_rules([first, second]) == [first]


class TestMergeSmallRules:
    def test_siblings_collapse_into_parent(self, leaves):
        merged = merge_small_rules(leaves, threshold=4)

        assert merged == [
            Rule(predicates=(X_LE,), support=5),
            Rule(predicates=(X_GT,), support=10),
        ]

    def test_depth_one_rule_becomes_universal(self, leaves):
        merged = merge_small_rules(leaves, threshold=6)

        assert merged == [Rule(predicates=(X_GT,), support=10), Rule.universal(15)]
        assert merged[-1].is_universal

    def test_everything_small_leaves_only_universal(self, leaves):
        assert merge_small_rules(leaves, threshold=100) == [Rule.universal(15)]

    def test_threshold_zero_only_sorts(self, leaves):
        assert merge_small_rules(leaves, threshold=0) == sort_by_specificity(leaves)

    def test_survivors_meet_threshold(self, leaves):
        for threshold in range(0, 20):
            for rule in merge_small_rules(leaves, threshold):
                assert rule.is_universal or rule.support >= threshold

    def test_merging_is_idempotent(self, leaves):
        for threshold in (0, 4, 6, 100):
            once = merge_small_rules(leaves, threshold)
            assert merge_small_rules(once, threshold) == once

    def test_depth_never_increases(self, leaves):
        for threshold in (4, 6, 11):
            for rule in merge_small_rules(leaves, threshold):
                assert is_prefix_of_some(rule, leaves)

    def test_universal_support_is_kept(self):
        rules = [Rule(predicates=(X_LE,), support=1), Rule.universal(40)]
        assert merge_small_rules(rules, threshold=5) == [Rule.universal(40)]

    def test_empty_rule_list(self):
        assert merge_small_rules([], threshold=5) == []
