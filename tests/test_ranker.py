"""Ranker unit tests."""

import pytest
from conftest import canonical

from predrank.errors import RankingError
from predrank.ranking.ranker import select_top_k


def test_descending_and_truncated():
    markets = [canonical("a", 10), canonical("b", 300), canonical("c", 50), canonical("d", 200)]
    top = select_top_k(markets, 3)
    assert [m.market_id for m in top] == ["b", "d", "c"]
    vols = [m.volume_24h for m in top]
    assert vols == sorted(vols, reverse=True)


def test_length_is_min_of_k_and_input():
    markets = [canonical("a", 1), canonical("b", 2)]
    assert len(select_top_k(markets, 20)) == 2
    assert select_top_k([], 5) == []


def test_ties_keep_input_order():
    markets = [canonical("x", 100), canonical("y", 100), canonical("z", 100), canonical("w", 500)]
    assert [m.market_id for m in select_top_k(markets, 4)] == ["w", "x", "y", "z"]


def test_idempotent_on_sorted_input():
    markets = [canonical("a", 30), canonical("b", 20), canonical("c", 10)]
    once = select_top_k(markets, 3)
    assert select_top_k(once, 3) == once == markets


@pytest.mark.parametrize("k", [0, -1])
def test_non_positive_k_rejected(k):
    with pytest.raises(RankingError):
        select_top_k([canonical("a", 1)], k)
