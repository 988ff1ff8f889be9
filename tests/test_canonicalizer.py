import pytest

from grnds_bot.services.canonicalizer import (
    _marvel_overall_stats,
    canonicalize_rank, extract_rank, find_value_by_keys, map_rank_string,
    normalize_rank_value, parse_manual_rank, parse_tier_value, requires_manual_rank,
)
from grnds_bot.services.ladder import LOWEST_RANK


# --- EXTRAÇÃO ---

def test_normalize_rank_value_shapes():
    assert normalize_rank_value("  Gold 2 ") == "Gold 2"
    assert normalize_rank_value(["", None, "Silver 1"]) == "Silver 1"
    assert normalize_rank_value({"name": "Diamond 3"}) == "Diamond 3"
    assert normalize_rank_value(True) is None
    assert normalize_rank_value(42) is None


def test_rejects_level_and_bare_division():
    assert normalize_rank_value("Level 35") is None
    assert normalize_rank_value("invalid rank") is None
    assert normalize_rank_value("II") is None
    assert normalize_rank_value("3") is None


def test_bfs_finds_nested_key():
    blob = {"data": {"stats": {"competitive_rank": "Silver 1"}}}
    assert find_value_by_keys(blob, ["competitive_rank"], 5) == "Silver 1"


def test_bfs_respects_depth_limit():
    blob = {"a": {"b": {"c": {"d": {"e": {"f": {"rank_name": "Gold 1"}}}}}}}
    assert find_value_by_keys(blob, ["rank_name"], 5) is None
    assert find_value_by_keys(blob, ["rank_name"], 6) == "Gold 1"


def test_extract_rank_prefers_direct_fields():
    blob = {"rank": "Celestial", "rank_history": [{"rank_name": "Gold 3"}]}
    assert extract_rank(blob, "marvel_rivals") == "Celestial"


def test_extract_rank_skips_level_and_uses_history():
    blob = {"rank": "Level 35", "rank_history": [{"rank_name": "Bronze 1"}, {"rank_name": "Gold 3"}]}
    assert extract_rank(blob, "marvel_rivals") == "Gold 3"


def test_extract_rank_from_player_info():
    blob = {"player": {"name": "tester", "rank_info": {"rank": "Platinum 1"}}}
    assert extract_rank(blob, "marvel_rivals") == "Platinum 1"


def test_extract_rank_valorant_v3_shape():
    blob = {"current": {"tier": {"id": 15, "name": "Gold 2"}, "elo": 1450}}
    assert extract_rank(blob, "valorant") == "Gold 2"


# --- MAPEAMENTO ---

def test_parse_tier_value_sources():
    assert parse_tier_value(2, "Gold") == 2
    assert parse_tier_value("III", "Gold") == 3
    assert parse_tier_value(None, "Grandmaster II") == 2
    assert parse_tier_value(None, "Celestial") == 0


@pytest.mark.parametrize("rank,sub,expected", [
    ("Grandmaster", 2, "BREAKPOINT IV"),
    ("Grand Master", 3, "BREAKPOINT V"),
    ("Celestial", 0, "CHALLENGER I"),
    ("Eternity", 3, "ABSOLUTE"),
    ("One Above All", 0, "X"),
    ("Platinum", 3, "GRNDS V"),
    ("Bronze", 1, "GRNDS I"),
])
def test_marvel_keywords(rank, sub, expected):
    assert map_rank_string(rank, sub, "marvel_rivals") == expected


@pytest.mark.parametrize("rank,sub,expected", [
    ("Gold", 2, "GRNDS III"),
    ("Iron", 1, "GRNDS I"),
    ("Diamond", 3, "GRNDS V"),
    ("Radiant", 0, "CHALLENGER IV"),
])
def test_valorant_keywords_follow_bridge_midpoints(rank, sub, expected):
    assert map_rank_string(rank, sub, "valorant") == expected


def test_ladder_names_pass_through():
    assert map_rank_string("breakpoint ii", 0, "marvel_rivals") == "BREAKPOINT II"


def test_unknown_and_unranked_map_to_lowest():
    assert map_rank_string("Mythic", 0, "marvel_rivals") == LOWEST_RANK
    assert map_rank_string("Unranked", 0, "valorant") == LOWEST_RANK
    assert map_rank_string("none", 0, "valorant") == LOWEST_RANK


def test_unknown_game_raises():
    with pytest.raises(ValueError):
        map_rank_string("Gold", 1, "league")
    with pytest.raises(ValueError):
        canonicalize_rank({"rank": "Gold"}, "league")


# --- PONTA A PONTA ---

def test_canonicalize_marvel_blob():
    result = canonicalize_rank({"rank": "Grandmaster II"}, "marvel_rivals")
    assert result.rank == "BREAKPOINT IV"
    assert result.tier_value == 9
    assert result.source_rank == "Grandmaster II"
    assert result.sub_tier == 2


def test_canonicalize_valorant_blob():
    blob = {"current": {"tier": {"id": 15, "name": "Gold 2"}, "elo": 1450}}
    result = canonicalize_rank(blob, "valorant")
    assert result.rank == "GRNDS III"
    assert result.sub_tier == 2


def test_canonicalize_without_rank_requires_manual():
    blob = {"name": "tester", "level": 30}
    assert canonicalize_rank(blob, "marvel_rivals") is None
    assert requires_manual_rank(blob, "marvel_rivals")


def test_parse_manual_rank():
    assert parse_manual_rank("Gold II", "valorant").rank == "GRNDS III"
    assert parse_manual_rank("grnds iv", "marvel_rivals").rank == "GRNDS IV"
    assert parse_manual_rank("Level 10", "valorant") is None
    assert parse_manual_rank("", "valorant") is None


@pytest.mark.parametrize("game", ["marvel_rivals", "valorant"])
def test_canonicalize_unknown_rank_falls_to_lowest(game):
    result = canonicalize_rank({"rank": "Unobtainium Supreme"}, game)
    assert result.rank == LOWEST_RANK
    assert result.tier_value == 1
    assert result.source_rank == "Unobtainium Supreme"


def test_overall_stats_tries_current_rank_after_rejected_rank():
    blob = {"overall_stats": {"rank": "Level 40", "current_rank": "Diamond 1"}}
    assert _marvel_overall_stats(blob) == "Diamond 1"
