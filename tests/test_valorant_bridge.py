from grnds_bot.services.ladder import PLACEMENT_CAP
from grnds_bot.services.reconciliation import PlayerRankState
from grnds_bot.services.valorant_bridge import (
    ValorantMMR, bridge_mmr, placement_bridge_mmr, plan_placement, plan_refresh, resolve_source, tier_range,
)


def test_tier_range_lookup():
    assert tier_range("gold  2") == (700, 800)
    assert tier_range("Mythic") == (0, 200)
    assert tier_range(None) == (0, 200)


def test_bridge_interpolates_and_clamps_elo():
    assert bridge_mmr("Gold 2", 2500) == 750
    assert bridge_mmr("Gold 2", 0) == 700
    assert bridge_mmr("Gold 2", 99999) == 800
    assert bridge_mmr("Gold 2", -10) == 700
    assert bridge_mmr("Gold 2", "abc") == 700
    assert bridge_mmr("Radiant", 5000) == 3000


def test_placement_bridge_is_capped():
    assert placement_bridge_mmr("Radiant", 5000) == PLACEMENT_CAP
    assert placement_bridge_mmr("Silver 1", 0) == 300


def test_valorant_mmr_flags():
    assert ValorantMMR(0, "Unrated", 0).is_unrated
    assert ValorantMMR(12, "Gold 1", 0, games_needed=2).in_placements
    assert not ValorantMMR(12, "Gold 1", 0).in_placements


def test_resolve_source_uses_history_during_placements():
    current = ValorantMMR(0, "Unrated", 0, games_needed=3)
    history = [ValorantMMR(0, "Unrated", 0), ValorantMMR(15, "Gold 2", 2500)]
    assert resolve_source(current, history).tier_name == "Gold 2"
    assert resolve_source(current, []) is None
    ranked = ValorantMMR(12, "Silver 3", 100)
    assert resolve_source(ranked, history) is ranked


def test_unrated_outside_placements_keeps_current_rank():
    history = [ValorantMMR(15, "Gold 2", 2500)]
    assert resolve_source(ValorantMMR(0, "Unrated", 0), history) is None
    assert resolve_source(None, history).tier_name == "Gold 2"


def test_placement_from_current_rank():
    state = plan_placement(PlayerRankState.unranked("valorant"), ValorantMMR(15, "Gold 2", 2500))
    assert state.mmr == 750
    assert state.rank == "GRNDS III"
    assert plan_placement(PlayerRankState.unranked("valorant"), None, []) is None


def test_refresh_boosts_when_tier_goes_up():
    state = PlayerRankState.from_mmr("valorant", 400)
    plan = plan_refresh(state, ValorantMMR(18, "Diamond 1", 0))
    assert plan.boosted and plan.changed
    assert plan.state.mmr == 1200
    assert plan.reason == "valorant_refresh_boost"


def test_refresh_is_capped():
    state = PlayerRankState.from_mmr("valorant", 1000)
    plan = plan_refresh(state, ValorantMMR(27, "Radiant", 5000))
    assert plan.state.mmr == PLACEMENT_CAP


def test_refresh_never_lowers():
    state = PlayerRankState.from_mmr("valorant", 1800)
    plan = plan_refresh(state, ValorantMMR(3, "Iron 1", 0))
    assert not plan.changed
    assert plan.state is state


def test_refresh_same_tier_does_nothing():
    state = PlayerRankState.from_mmr("valorant", 760)
    plan = plan_refresh(state, ValorantMMR(15, "Gold 2", 5000))
    assert not plan.boosted
    assert plan.state.mmr == 760


def test_refresh_unrated_keeps_state():
    state = PlayerRankState.from_mmr("valorant", 500)
    plan = plan_refresh(state, ValorantMMR(0, "Unrated", 0, games_needed=5), [])
    assert not plan.changed
    assert plan.valorant_rank == "Unrated (in placements)"
