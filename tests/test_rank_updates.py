import pytest

from grnds_bot.database import repositories
from grnds_bot.database.models import RankChangeReason
from grnds_bot.database.repositories import MatchRepository, PlayerRepository, RankHistoryRepository
from grnds_bot.services.ladder import PLACEMENT_CAP
from grnds_bot.services.rank_updates import RankChanged, RankUpdateService
from grnds_bot.services.reconciliation import PlayerRankState
from grnds_bot.services.valorant_bridge import ValorantMMR


async def _seed(discord_id, game, mmr):
    await PlayerRepository.get_or_create_player(discord_id, f"p{discord_id}")
    state = PlayerRankState.from_mmr(game, mmr)
    await PlayerRepository.save_rank_state(discord_id, state, state, RankChangeReason.ADMIN_ADJUSTMENT)


def test_rank_changed_direction():
    assert RankChanged(1, "valorant", "Unranked", "GRNDS I").promoted
    assert not RankChanged(1, "valorant", "BREAKPOINT I", "GRNDS V").promoted


# --- PARTIDAS ---

async def test_process_match_applies_deltas(db, notifier):
    await _seed(1, "valorant", 1190)
    for i in (2, 3, 4):
        await _seed(i, "valorant", 1000)

    match_id = await MatchRepository.create_match(1, "valorant", [{'id': 1}, {'id': 2}], [{'id': 3}, {'id': 4}])
    await MatchRepository.record_stats(match_id, 1, 10, 10, 2)
    await MatchRepository.record_stats(match_id, 3, 3, 10, 0)
    await MatchRepository.record_stats(match_id, 4, 20, 10, 0, mvp=True)

    service = RankUpdateService(notifier=notifier)
    outcome = await service.process_match(match_id, 'a')

    assert outcome.status == "SUCCESS"
    assert outcome.game == "valorant"
    deltas = {r['id']: r['delta'] for r in outcome.results}
    # 2 sem estatísticas: K/D 0 na vitória -> 15 * 0.9 = 13.5 -> 14
    assert deltas == {1: 15, 2: 14, 3: -9, 4: -5}

    promoted = await PlayerRepository.get_player_by_discord_id(1)
    assert promoted.valorant_mmr == 1205
    assert promoted.discord_rank == "GRNDS V"
    assert [(e.player_id, e.old_rank, e.new_rank) for e in notifier.events] == [(1, "GRNDS IV", "GRNDS V")]

    last = await MatchRepository.get_last_result(4)
    assert (last['mmr_before'], last['mmr_after'], last['points_earned']) == (1000, 995, -5)

    history = await RankHistoryRepository.get_history(1)
    assert history[0].reason == RankChangeReason.MATCH
    assert history[0].match_id == match_id


async def test_process_match_twice_or_bad_side(db):
    await _seed(1, "valorant", 1000)
    match_id = await MatchRepository.create_match(1, "valorant", [{'id': 1}], [])
    service = RankUpdateService()

    with pytest.raises(ValueError):
        await service.process_match(match_id, 'C')
    assert (await service.process_match(match_id, 'A')).status == "SUCCESS"
    assert (await service.process_match(match_id, 'A')).status == "ALREADY_FINISHED"
    assert (await service.process_match(404, 'A')).status == "NOT_FOUND"


async def test_failed_result_write_keeps_match_open(db, monkeypatch):
    await _seed(1, "valorant", 1000)
    await _seed(2, "valorant", 1000)
    match_id = await MatchRepository.create_match(1, "valorant", [{'id': 1}], [{'id': 2}])

    real_apply = repositories._apply_rank_state
    calls = []

    def flaky_apply(session, player, *args, **kwargs):
        calls.append(player.discord_id)
        if len(calls) == 2:
            raise RuntimeError("disco cheio")
        return real_apply(session, player, *args, **kwargs)

    monkeypatch.setattr(repositories, "_apply_rank_state", flaky_apply)
    service = RankUpdateService()

    with pytest.raises(RuntimeError):
        await service.process_match(match_id, 'A')

    # Nada foi gravado: nem o MMR do primeiro jogador nem o placar
    first = await PlayerRepository.get_player_by_discord_id(1)
    assert first.valorant_mmr == 1000
    assert (first.wins, first.losses) == (0, 0)
    assert await MatchRepository.get_match_details(match_id) is not None

    outcome = await service.process_match(match_id, 'A')
    assert outcome.status == "SUCCESS"

    winner = await PlayerRepository.get_player_by_discord_id(1)
    loser = await PlayerRepository.get_player_by_discord_id(2)
    assert (winner.valorant_mmr, winner.wins) == (1014, 1)
    assert (loser.valorant_mmr, loser.losses) == (991, 1)

    history = await RankHistoryRepository.get_history(2)
    assert [h.reason for h in history].count(RankChangeReason.MATCH) == 1
    assert (await MatchRepository.get_last_result(2))['points_earned'] == -9


async def test_process_cancelled_match(db):
    await _seed(1, "valorant", 1000)
    match_id = await MatchRepository.create_match(1, "valorant", [{'id': 1}], [])
    await MatchRepository.cancel_match(match_id)

    outcome = await RankUpdateService().process_match(match_id, 'A')
    assert outcome.status == "ALREADY_CANCELLED"
    player = await PlayerRepository.get_player_by_discord_id(1)
    assert player.valorant_mmr == 1000


async def test_unranked_player_starts_from_zero(db, notifier):
    await PlayerRepository.get_or_create_player(5, "p5")
    await PlayerRepository.get_or_create_player(6, "p6")
    match_id = await MatchRepository.create_match(1, "marvel_rivals", [{'id': 5}], [{'id': 6}])

    outcome = await RankUpdateService(notifier=notifier).process_match(match_id, 'A')

    results = {r['id']: r for r in outcome.results}
    assert results[5]['mmr_after'] == 14
    assert results[6]['mmr_after'] == 0
    player = await PlayerRepository.get_player_by_discord_id(6)
    assert player.marvel_rank == "GRNDS I"
    assert {e.new_rank for e in notifier.events} == {"GRNDS I"}


# --- VERIFICAÇÃO ---

async def test_verify_marvel_is_capped_and_never_lowers(db, notifier):
    await PlayerRepository.link_marvel(1, "p1", "999", "Tester")
    service = RankUpdateService(notifier=notifier)

    outcome = await service.verify_marvel(1, {"rank": "Grandmaster II"})
    assert outcome.status == "SUCCESS" and outcome.changed
    assert outcome.canonical.rank == "BREAKPOINT IV"
    assert outcome.state.mmr == PLACEMENT_CAP
    assert outcome.discord_state.rank == "GRNDS V"
    assert notifier.events[0].promoted

    again = await service.verify_marvel(1, {"rank": "Bronze 1"})
    assert not again.changed
    assert again.state.mmr == PLACEMENT_CAP
    assert len(notifier.events) == 1

    player = await PlayerRepository.get_player_by_discord_id(1)
    assert player.verified_at is not None


async def test_verify_marvel_without_rank(db):
    await PlayerRepository.link_marvel(1, "p1", "999", "Tester")
    service = RankUpdateService()

    outcome = await service.verify_marvel(1, {"name": "Tester", "level": 40})
    assert outcome.requires_manual_rank

    manual = await service.verify_marvel(1, {}, manual_rank="Gold 3")
    assert manual.state.rank == "GRNDS IV"
    history = await RankHistoryRepository.get_history(1)
    assert history[0].reason == RankChangeReason.MANUAL_VERIFICATION

    assert (await service.verify_marvel(404, {})).status == "NOT_FOUND"


async def test_set_manual_rank(db):
    await PlayerRepository.link_marvel(1, "p1", "999", "Tester")
    service = RankUpdateService()

    assert (await service.set_manual_rank(1, "marvel_rivals", "Level 3")).status == "INVALID_RANK"
    outcome = await service.set_manual_rank(1, "marvel_rivals", "grnds ii")
    assert outcome.state.mmr == 450


async def test_notifier_failure_does_not_undo_the_update(db, failing_notifier):
    await PlayerRepository.link_marvel(1, "p1", "999", "Tester")
    outcome = await RankUpdateService(notifier=failing_notifier).verify_marvel(1, {"rank": "Silver 1"})

    assert outcome.status == "SUCCESS"
    assert len(failing_notifier.events) == 1
    player = await PlayerRepository.get_player_by_discord_id(1)
    assert player.marvel_rank == "GRNDS II"


# --- VALORANT ---

async def test_valorant_placement_from_history(db):
    await PlayerRepository.link_valorant(1, "p1", {'name': "N", 'tag': "T", 'puuid': "abc"}, "na")
    service = RankUpdateService()

    in_placements = ValorantMMR(0, "Unrated", 0, games_needed=3)
    assert (await service.place_valorant(1, in_placements, [])).requires_manual_rank

    outcome = await service.place_valorant(1, in_placements, [ValorantMMR(15, "Gold 2", 2500)])
    assert outcome.state.mmr == 750


async def test_valorant_refresh_flow(db):
    await PlayerRepository.link_valorant(1, "p1", {'name': "N", 'tag': "T", 'puuid': "abc"}, "na")
    service = RankUpdateService()

    first = await service.refresh_valorant(1, ValorantMMR(15, "Gold 2", 2500))
    assert first.reason == "verification"
    assert first.changed and not first.boosted
    assert first.state.mmr == 750

    boost = await service.refresh_valorant(1, ValorantMMR(18, "Diamond 1", 0))
    assert boost.boosted
    assert boost.state.mmr == 1200

    capped = await service.refresh_valorant(1, ValorantMMR(27, "Radiant", 5000))
    assert not capped.changed
    assert capped.state.mmr == 1200

    history = await RankHistoryRepository.get_history(1)
    assert [h.reason for h in history] == [RankChangeReason.VALORANT_REFRESH_BOOST, RankChangeReason.VERIFICATION]
    assert await service.refresh_valorant(404, None) is None


# --- PREFERÊNCIAS / ADMIN ---

async def test_role_mode_switch(db, notifier):
    await PlayerRepository.get_or_create_player(7, "p7")
    service = RankUpdateService(notifier=notifier)
    await service.admin_set_mmr(7, "valorant", 300)
    await service.admin_set_mmr(7, "marvel_rivals", 1350)

    player = await PlayerRepository.get_player_by_discord_id(7)
    assert player.discord_rank == "GRNDS V"

    status, discord_state = await service.set_role_mode(7, "primary", "valorant")
    assert status == "SUCCESS"
    assert discord_state.rank == "GRNDS II"
    assert not notifier.events[-1].promoted

    player = await PlayerRepository.get_player_by_discord_id(7)
    assert (player.role_mode, player.primary_game, player.discord_rank) == ("primary", "valorant", "GRNDS II")

    with pytest.raises(ValueError):
        await service.set_role_mode(7, "lowest")
    assert await service.set_role_mode(404, "highest") == ("NOT_FOUND", None)


async def test_admin_peak_reset(db):
    await PlayerRepository.get_or_create_player(8, "p8")
    service = RankUpdateService()
    await service.admin_set_mmr(8, "valorant", 2000)
    status, state = await service.admin_set_mmr(8, "valorant", 1000)
    assert status == "SUCCESS"
    assert state.peak_mmr == 2000

    status, state = await service.admin_reset_peak(8, "valorant")
    assert state.peak_mmr == 1000
    assert (await service.admin_reset_peak(8, "marvel_rivals"))[0] == "NOT_RANKED"
    assert (await service.admin_set_mmr(404, "valorant", 10))[0] == "NOT_FOUND"


async def test_discord_peak_survives_switch_to_other_game(db):
    await PlayerRepository.get_or_create_player(9, "p9")
    await PlayerRepository.get_or_create_player(10, "p10")
    service = RankUpdateService()
    await service.admin_set_mmr(9, "marvel_rivals", 1500)
    await service.admin_set_mmr(9, "valorant", 1495)
    await service.admin_set_mmr(10, "marvel_rivals", 1500)

    player = await PlayerRepository.get_player_by_discord_id(9)
    assert (player.discord_rank, player.peak_mmr) == ("BREAKPOINT I", 1500)

    # Derrota no Marvel: o Valorant (1495) passa a ser o rank do Discord
    match_id = await MatchRepository.create_match(1, "marvel_rivals", [{'id': 10}], [{'id': 9}])
    await service.process_match(match_id, 'A')

    player = await PlayerRepository.get_player_by_discord_id(9)
    assert player.marvel_mmr < 1495
    assert (player.discord_rank, player.current_mmr) == ("GRNDS V", 1495)
    assert player.peak_mmr == 1500

    # Só o reset administrativo baixa o pico
    await service.admin_reset_peak(9, "valorant")
    player = await PlayerRepository.get_player_by_discord_id(9)
    assert player.peak_mmr == 1495
