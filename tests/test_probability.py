"""Tests for exact combat probabilities."""

import logging

import pytest

from dicy.engine.probability import (
    precompute_tables,
    probability_table,
    sum_distribution,
    win_probability,
)


def tie_probability(a, d, sides):
    attack = sum_distribution(a, sides)
    defense = sum_distribution(d, sides)
    ties = sum(attack[s] * defense[s] for s in range(min(len(attack), len(defense))))
    return ties / sides ** (a + d)


class TestSumDistribution:
    def test_two_six_sided_dice(self):
        counts = sum_distribution(2, 6)
        assert sum(counts) == 36
        assert counts[7] == 6
        assert counts[2] == 1
        assert counts[12] == 1
        assert counts[1] == 0

    def test_zero_dice(self):
        assert sum_distribution(0, 6) == (1,)


class TestWinProbability:
    def test_one_die_each(self):
        assert win_probability(1, 1) == pytest.approx(15 / 36)

    def test_two_against_one(self):
        assert win_probability(2, 1) == pytest.approx(181 / 216)

    def test_ties_go_to_defender(self):
        """Equal stacks of one-sided dice always tie, so the attacker never wins."""
        assert win_probability(3, 3, sides=1) == 0.0
        assert win_probability(4, 3, sides=1) == 1.0

    def test_degenerate_stacks(self):
        assert win_probability(0, 3) == 0.0
        assert win_probability(3, 0) == 1.0

    def test_invalid_sides(self):
        with pytest.raises(ValueError):
            win_probability(2, 2, sides=0)

    @pytest.mark.parametrize("a,d", [(1, 1), (3, 2), (2, 5), (8, 8)])
    def test_win_lose_tie_sum_to_one(self, a, d):
        total = win_probability(a, d) + win_probability(d, a) + tie_probability(a, d, 6)
        assert total == pytest.approx(1.0)

    def test_monotonic_in_attacker_dice(self):
        for d in range(1, 9):
            probs = [win_probability(a, d) for a in range(1, 9)]
            assert probs == sorted(probs)

    def test_other_die_types(self):
        # d2: attacker 1 beats defender 1 only on (2, 1)
        assert win_probability(1, 1, sides=2) == pytest.approx(0.25)


def test_probability_table_layout():
    table = probability_table(sides=6, max_dice=4)
    assert len(table) == 4
    assert all(len(row) == 4 for row in table)
    assert table[0][0] == pytest.approx(15 / 36)
    assert table[1][0] == pytest.approx(181 / 216)


def test_precompute_tables_logs(caplog):
    with caplog.at_level(logging.INFO, logger="dicy.engine.probability"):
        precompute_tables(max_sides=3, max_dice=4)
    assert "Probability tables computed" in caplog.text
