"""
Orquestração das mudanças de rank.

Toda mudança de MMR passa por aqui: calcula o novo estado com as funções puras
(matchmaker, ponte do Valorant, canonicalizer), reconcilia o rank do Discord,
grava estado + histórico e, por último, avisa o notifier (cargos/mensagens).
O aviso é "best effort": se falhar, o MMR já gravado não é desfeito.
"""
import logging
from dataclasses import dataclass, field
from typing import Optional

from grnds_bot import config
from grnds_bot.database.models import MatchStatus, RankChangeReason
from grnds_bot.database.repositories import PlayerRepository, MatchRepository
from grnds_bot.services.canonicalizer import CanonicalResult, canonicalize_rank, parse_manual_rank
from grnds_bot.services.ladder import placement_mmr, rank_value
from grnds_bot.services.matchmaker import MatchMaker, MatchResult, PlayerMatchStats
from grnds_bot.services.reconciliation import PlayerRankState, reconcile
from grnds_bot.services.valorant_bridge import RefreshPlan, plan_placement, plan_refresh

logger = logging.getLogger("rank_updates")


@dataclass(frozen=True)
class RankChanged:
    player_id: int
    game: str           # jogo que originou a mudança
    old_rank: str       # rank do Discord antes
    new_rank: str       # rank do Discord depois

    @property
    def promoted(self) -> bool:
        return rank_value(self.new_rank) > rank_value(self.old_rank)


@dataclass
class VerificationOutcome:
    status: str                                  # SUCCESS, NOT_FOUND, MANUAL_RANK_REQUIRED, INVALID_RANK
    state: Optional[PlayerRankState] = None
    discord_state: Optional[PlayerRankState] = None
    canonical: Optional[CanonicalResult] = None
    changed: bool = False

    @property
    def requires_manual_rank(self) -> bool:
        return self.status == "MANUAL_RANK_REQUIRED"


@dataclass
class MatchProcessing:
    status: str
    game: Optional[str] = None
    results: list = field(default_factory=list)


class RankUpdateService:

    def __init__(self, player_repo=PlayerRepository, match_repo=MatchRepository, notifier=None):
        self.player_repo = player_repo
        self.match_repo = match_repo
        self.notifier = notifier

    # --- NÚCLEO ---
    def discord_state_for(self, player, new_state: PlayerRankState = None) -> Optional[PlayerRankState]:
        states = {game: self.player_repo.get_rank_state(player, game) for game in config.GAMES}
        if new_state is not None:
            states[new_state.game] = new_state
        return reconcile(
            player.role_mode or config.DEFAULT_ROLE_MODE,
            player.primary_game or config.DEFAULT_PRIMARY_GAME,
            states["valorant"],
            states["marvel_rivals"],
        )

    def _discord_change(self, player, new_state: PlayerRankState):
        """Rank do Discord resultante e o evento RankChanged (ou None se não mudou)."""
        discord_state = self.discord_state_for(player, new_state)
        event = None
        old_discord = player.discord_rank or "Unranked"
        if discord_state is not None and discord_state.rank != old_discord:
            event = RankChanged(player.discord_id, new_state.game, old_discord, discord_state.rank)
        return discord_state, event

    async def _commit(self, player, new_state: PlayerRankState, reason: RankChangeReason, match_id: int = None,
                      reset_peak: bool = False):
        """Grava o estado novo e devolve (rank do Discord, evento ou None)."""
        discord_state, event = self._discord_change(player, new_state)
        await self.player_repo.save_rank_state(player.discord_id, new_state, discord_state, reason,
                                               match_id=match_id, reset_peak=reset_peak)
        return discord_state, event

    async def _emit(self, events: list):
        if not self.notifier:
            return
        for event in events:
            if event is None:
                continue
            try:
                await self.notifier.notify(event)
            except Exception as e:
                logger.error(f"Falha ao notificar mudança de rank de {event.player_id}: {e}")

    # --- PARTIDAS ---
    async def process_match(self, match_id: int, winning_side: str) -> MatchProcessing:
        """
        Calcula o delta de cada jogador no jogo da partida e grava tudo de uma
        vez. Se a gravação falhar a partida continua aberta e o .resultado
        pode ser repetido.
        """
        winner = winning_side.upper()
        if winner not in ("A", "B"):
            raise ValueError(f"Time vencedor inválido: {winning_side}")

        details = await self.match_repo.get_match_details(match_id, active_only=False)
        if details is None:
            return MatchProcessing(status="NOT_FOUND")
        if details['status'] == MatchStatus.FINISHED.value:
            return MatchProcessing(status="ALREADY_FINISHED")
        if details['status'] == MatchStatus.CANCELLED.value:
            return MatchProcessing(status="ALREADY_CANCELLED")

        game = details['game']
        everyone = details['team_a'] + details['team_b']

        result = MatchResult(
            match_id=match_id,
            team_a=[p['id'] for p in details['team_a']],
            team_b=[p['id'] for p in details['team_b']],
            winner=winner,
            stats={p['id']: PlayerMatchStats(p['kills'], p['deaths'], p['assists'], p['mvp']) for p in everyone},
        )

        outcome = MatchProcessing(status="SUCCESS", game=game)
        updates = []
        events = []
        for p in everyone:
            player = p['player']
            stats = result.stats[p['id']]
            won = result.won(p['id'])

            state = self.player_repo.get_rank_state(player, game) or PlayerRankState.unranked(game)
            delta = MatchMaker.compute_delta(won, stats.kills, stats.deaths, stats.assists, stats.mvp, state.mmr)
            new_state = state.with_mmr(MatchMaker.apply_delta(state.mmr, delta))
            discord_state, event = self._discord_change(player, new_state)

            updates.append({
                'id': p['id'],
                'state': new_state,
                'discord_state': discord_state,
                'mmr_before': state.mmr,
                'points': delta,
            })
            events.append(event)
            outcome.results.append({
                'id': p['id'],
                'name': p['name'],
                'won': won,
                'delta': delta,
                'mmr_before': state.mmr,
                'mmr_after': new_state.mmr,
                'old_rank': state.rank,
                'new_rank': new_state.rank,
            })

        status = await self.match_repo.apply_result(match_id, winner, updates)
        if status != "SUCCESS":
            return MatchProcessing(status=status)

        for r in outcome.results:
            logger.info(f"Partida #{match_id}: {r['name']} {r['mmr_before']} -> {r['mmr_after']} ({r['delta']:+d})")

        await self._emit(events)
        return outcome

    # --- VERIFICAÇÃO / COLOCAÇÃO ---
    async def _place(self, player, game: str, new_state: PlayerRankState, reason: RankChangeReason,
                     canonical: CanonicalResult = None) -> VerificationOutcome:
        """
        Colocação inicial. Uma nova verificação nunca derruba um MMR já
        conquistado: se o estado atual for maior, ele é mantido.
        """
        current = self.player_repo.get_rank_state(player, game)
        if current is not None and current.mmr >= new_state.mmr:
            return VerificationOutcome("SUCCESS", current, self.discord_state_for(player), canonical, changed=False)

        discord_state, event = await self._commit(player, new_state, reason)
        await self._emit([event])
        return VerificationOutcome("SUCCESS", new_state, discord_state, canonical, changed=True)

    def _placement_state(self, player, game: str, canonical_rank: str) -> PlayerRankState:
        base = self.player_repo.get_rank_state(player, game) or PlayerRankState.unranked(game)
        return PlayerRankState(game=game, rank=base.rank, rank_value=base.rank_value, mmr=0,
                               peak_mmr=base.peak_mmr).with_mmr(placement_mmr(canonical_rank))

    async def verify_marvel(self, discord_id: int, stats, manual_rank: str = None) -> VerificationOutcome:
        game = "marvel_rivals"
        player = await self.player_repo.get_player_by_discord_id(discord_id)
        if not player:
            return VerificationOutcome("NOT_FOUND")

        if manual_rank:
            canonical = parse_manual_rank(manual_rank, game)
            if canonical is None:
                return VerificationOutcome("INVALID_RANK")
            reason = RankChangeReason.MANUAL_VERIFICATION
        else:
            canonical = canonicalize_rank(stats, game)
            if canonical is None:
                logger.info(f"Nenhum rank encontrado para {discord_id} no Marvel Rivals. Pedindo rank manual.")
                return VerificationOutcome("MANUAL_RANK_REQUIRED")
            reason = RankChangeReason.VERIFICATION

        new_state = self._placement_state(player, game, canonical.rank)
        return await self._place(player, game, new_state, reason, canonical)

    async def set_manual_rank(self, discord_id: int, game: str, text: str) -> VerificationOutcome:
        player = await self.player_repo.get_player_by_discord_id(discord_id)
        if not player:
            return VerificationOutcome("NOT_FOUND")

        canonical = parse_manual_rank(text, game)
        if canonical is None:
            return VerificationOutcome("INVALID_RANK")

        new_state = self._placement_state(player, game, canonical.rank)
        return await self._place(player, game, new_state, RankChangeReason.MANUAL_VERIFICATION, canonical)

    async def place_valorant(self, discord_id: int, current, history: list = None) -> VerificationOutcome:
        game = "valorant"
        player = await self.player_repo.get_player_by_discord_id(discord_id)
        if not player:
            return VerificationOutcome("NOT_FOUND")

        base = PlayerRankState.unranked(game)
        existing = self.player_repo.get_rank_state(player, game)
        if existing is not None:
            base = PlayerRankState(game, existing.rank, existing.rank_value, 0, existing.peak_mmr)

        new_state = plan_placement(base, current, history)
        if new_state is None:
            return VerificationOutcome("MANUAL_RANK_REQUIRED")
        return await self._place(player, game, new_state, RankChangeReason.VERIFICATION)

    async def refresh_valorant(self, discord_id: int, current, history: list = None):
        """
        Refresh periódico. Retorna o RefreshPlan (ou None se o jogador não existe).
        Histórico só é gravado quando rank/MMR mudam.
        """
        player = await self.player_repo.get_player_by_discord_id(discord_id)
        if not player:
            return None

        state = self.player_repo.get_rank_state(player, "valorant")
        if state is None:
            # Nunca foi colocado: a primeira vez respeita o teto de colocação
            outcome = await self.place_valorant(discord_id, current, history)
            if outcome.state is None:
                return plan_refresh(PlayerRankState.unranked("valorant"), current, history)
            label = current.tier_name if current is not None else "Unrated"
            return RefreshPlan(state=outcome.state, boosted=False, reason="verification",
                               valorant_rank=label, changed=outcome.changed)

        plan = plan_refresh(state, current, history)
        if plan.changed:
            _, event = await self._commit(player, plan.state, RankChangeReason.VALORANT_REFRESH_BOOST)
            logger.info(f"Boost de Valorant para {discord_id}: {state.rank} -> {plan.state.rank}")
            await self._emit([event])
        return plan

    # --- PREFERÊNCIAS ---
    async def set_role_mode(self, discord_id: int, mode: str, primary_game: str = None):
        if mode not in config.ROLE_MODES:
            raise ValueError(f"Modo desconhecido: {mode}")
        if primary_game is not None and primary_game not in config.GAMES:
            raise ValueError(f"Jogo desconhecido: {primary_game}")

        status = await self.player_repo.set_role_mode(discord_id, mode, primary_game)
        if status != "SUCCESS":
            return status, None

        player = await self.player_repo.get_player_by_discord_id(discord_id)
        discord_state = self.discord_state_for(player)
        if discord_state is None:
            return "SUCCESS", None

        await self.player_repo.set_discord_rank(discord_id, discord_state)
        old_discord = player.discord_rank or "Unranked"
        if discord_state.rank != old_discord:
            await self._emit([RankChanged(discord_id, discord_state.game, old_discord, discord_state.rank)])
        return "SUCCESS", discord_state

    # --- ADMIN ---
    async def admin_set_mmr(self, discord_id: int, game: str, mmr: int):
        player = await self.player_repo.get_player_by_discord_id(discord_id)
        if not player:
            return "NOT_FOUND", None

        state = self.player_repo.get_rank_state(player, game) or PlayerRankState.unranked(game)
        new_state = state.with_mmr(mmr)
        _, event = await self._commit(player, new_state, RankChangeReason.ADMIN_ADJUSTMENT)
        await self._emit([event])
        return "SUCCESS", new_state

    async def admin_reset_peak(self, discord_id: int, game: str):
        player = await self.player_repo.get_player_by_discord_id(discord_id)
        if not player:
            return "NOT_FOUND", None

        state = self.player_repo.get_rank_state(player, game)
        if state is None:
            return "NOT_RANKED", None

        new_state = state.reset_peak()
        await self._commit(player, new_state, RankChangeReason.ADMIN_ADJUSTMENT, reset_peak=True)
        return "SUCCESS", new_state
