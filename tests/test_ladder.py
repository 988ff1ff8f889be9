import pytest

from grnds_bot.services.ladder import (
    RANKS, RANKS_BY_NAME, PLACEMENT_CAP, LOWEST_RANK, HIGHEST_RANK, UNRANKED,
    round_half_up, normalize_rank_name, mmr_for_rank, rank_for_mmr,
    rank_value, rank_by_value, placement_mmr, rank_progression,
)


def test_table_is_contiguous_and_ordered():
    assert len(RANKS) == 16
    for prev, nxt in zip(RANKS, RANKS[1:]):
        assert nxt.value == prev.value + 1
        assert nxt.min_mmr == prev.max_mmr + 1
        assert prev.min_mmr <= prev.base_mmr <= prev.max_mmr
    assert RANKS[-1].max_mmr is None
    assert LOWEST_RANK == "GRNDS I"
    assert HIGHEST_RANK == "X"


def test_placement_cap_is_grnds_v_midpoint():
    assert PLACEMENT_CAP == 1350


@pytest.mark.parametrize("value,expected", [
    (10.5, 11), (-8.5, -8), (-8.8, -9), (10.49, 10), (0, 0), (-0.5, 0),
])
def test_round_half_up(value, expected):
    assert round_half_up(value) == expected


@pytest.mark.parametrize("mmr,expected", [
    (0, "GRNDS I"),
    (299, "GRNDS I"),
    (300, "GRNDS II"),
    (1350, "GRNDS V"),
    (1500, "BREAKPOINT I"),
    (2399, "BREAKPOINT V"),
    (2400, "CHALLENGER I"),
    (2800, "ABSOLUTE"),
    (3000, "X"),
    (99999, "X"),
])
def test_rank_for_mmr_boundaries(mmr, expected):
    assert rank_for_mmr(mmr) == expected


@pytest.mark.parametrize("bad", [-1, None, "abc", float("nan")])
def test_rank_for_mmr_is_total(bad):
    assert rank_for_mmr(bad) == LOWEST_RANK


def test_rank_for_mmr_sweep_is_total_and_monotonic():
    previous = 0
    for mmr in range(0, 10001):
        rank = rank_for_mmr(mmr)
        assert rank in RANKS_BY_NAME
        assert rank_value(rank) >= previous
        previous = rank_value(rank)
    assert rank_for_mmr(0) == LOWEST_RANK
    assert rank_for_mmr(10000) == HIGHEST_RANK


def test_normalize_rank_name():
    assert normalize_rank_name("  grnds   iii ") == "GRNDS III"
    assert normalize_rank_name("Challenger V") == "ABSOLUTE"
    assert normalize_rank_name("Diamond 2") is None
    assert normalize_rank_name(None) is None


def test_rank_value_and_inverse():
    assert rank_value("GRNDS I") == 1
    assert rank_value("x") == 16
    assert rank_value(UNRANKED) == 0
    assert rank_value("nada") == 0
    assert rank_by_value(5) == "GRNDS V"
    assert rank_by_value(0) == "GRNDS I"
    assert rank_by_value(99) == "X"


def test_mmr_for_rank_uses_midpoint():
    assert mmr_for_rank("BREAKPOINT II") == 1800
    assert mmr_for_rank("desconhecido") == 0


def test_placement_mmr_is_capped():
    assert placement_mmr("GRNDS III") == 750
    assert placement_mmr("CHALLENGER II") == PLACEMENT_CAP
    assert placement_mmr("X") == PLACEMENT_CAP


def test_rank_progression_middle_of_tier():
    prog = rank_progression(450)
    assert prog['rank'] == "GRNDS II"
    assert prog['next_rank'] == "GRNDS III"
    assert prog['mmr_needed'] == 150
    assert prog['progress'] == 50


def test_rank_progression_at_top():
    prog = rank_progression(3500)
    assert prog['rank'] == "X"
    assert prog['next_rank'] is None
    assert prog['progress'] == 100
    assert prog['mmr_needed'] == 0
