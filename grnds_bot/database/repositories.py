from sqlalchemy import select, desc
from grnds_bot.database.models import (
    Player, Match, MatchPlayer, MatchStatus, TeamSide, GuildConfig, RankHistory, RankChangeReason, Game,
    GAME_COLUMN_PREFIX,
)
from grnds_bot.database.config import get_session
from grnds_bot.services.reconciliation import PlayerRankState
from datetime import datetime


def _apply_discord_state(player: Player, discord_state: PlayerRankState, reset_peak: bool = False):
    """O pico do Discord só desce via reset administrativo."""
    player.discord_rank = discord_state.rank
    player.discord_rank_value = discord_state.rank_value
    player.current_mmr = discord_state.mmr
    if reset_peak:
        player.peak_mmr = discord_state.peak_mmr
    else:
        player.peak_mmr = max(player.peak_mmr or 0, discord_state.peak_mmr)


def _apply_rank_state(session, player: Player, state: PlayerRankState, discord_state: PlayerRankState,
                      reason: RankChangeReason, match_id: int = None, record_history: bool = True,
                      reset_peak: bool = False):
    prefix = GAME_COLUMN_PREFIX[state.game]
    old_rank = getattr(player, f"{prefix}_rank")
    old_mmr = getattr(player, f"{prefix}_mmr") or 0

    setattr(player, f"{prefix}_rank", state.rank)
    setattr(player, f"{prefix}_rank_value", state.rank_value)
    setattr(player, f"{prefix}_mmr", state.mmr)
    setattr(player, f"{prefix}_peak_mmr", state.peak_mmr)

    if discord_state is not None:
        _apply_discord_state(player, discord_state, reset_peak)

    now = datetime.utcnow()
    player.updated_at = now
    if reason in (RankChangeReason.VERIFICATION, RankChangeReason.MANUAL_VERIFICATION):
        player.verified_at = now

    if record_history:
        session.add(RankHistory(
            player_id=player.discord_id,
            game=Game(state.game),
            old_rank=old_rank,
            new_rank=state.rank,
            old_mmr=old_mmr,
            new_mmr=state.mmr,
            reason=reason,
            match_id=match_id,
            created_at=now,
        ))

# --- REPOSITÓRIO DA GUILDA (CONFIGURAÇÕES) ---
class GuildRepository:
    @staticmethod
    async def set_tracking_channel(guild_id: int, channel_id: int):
        async with get_session() as session:
            stmt = select(GuildConfig).where(GuildConfig.guild_id == guild_id)
            result = await session.execute(stmt)
            config = result.scalar_one_or_none()

            if config:
                config.tracking_channel_id = channel_id
            else:
                config = GuildConfig(guild_id=guild_id, tracking_channel_id=channel_id)
                session.add(config)

    @staticmethod
    async def get_tracking_channel(guild_id: int):
        async with get_session() as session:
            stmt = select(GuildConfig).where(GuildConfig.guild_id == guild_id)
            result = await session.execute(stmt)
            config = result.scalar_one_or_none()
            return config.tracking_channel_id if config else None

# --- REPOSITÓRIO DE JOGADORES ---
class PlayerRepository:

    @staticmethod
    def get_rank_state(player: Player, game: str):
        """Snapshot do rank de um jogo (None se o jogador nunca foi ranqueado nele)."""
        prefix = GAME_COLUMN_PREFIX[game]
        rank = getattr(player, f"{prefix}_rank")
        if rank is None:
            return None
        return PlayerRankState(
            game=game,
            rank=rank,
            rank_value=getattr(player, f"{prefix}_rank_value") or 0,
            mmr=getattr(player, f"{prefix}_mmr") or 0,
            peak_mmr=getattr(player, f"{prefix}_peak_mmr") or 0,
        )

    @staticmethod
    async def get_player_by_discord_id(discord_id: int):
        async with get_session() as session:
            result = await session.execute(select(Player).where(Player.discord_id == discord_id))
            return result.scalar_one_or_none()

    @staticmethod
    async def get_players_by_ids(discord_ids: list):
        async with get_session() as session:
            result = await session.execute(select(Player).where(Player.discord_id.in_(discord_ids)))
            return result.scalars().all()

    @staticmethod
    async def get_or_create_player(discord_id: int, username: str = None):
        async with get_session() as session:
            result = await session.execute(select(Player).where(Player.discord_id == discord_id))
            player = result.scalar_one_or_none()

            if not player:
                player = Player(discord_id=discord_id, discord_username=username)
                session.add(player)
                await session.flush()
            elif username and player.discord_username != username:
                player.discord_username = username
            return player

    @staticmethod
    async def get_all_players_with_valorant():
        """Jogadores com conta Riot vinculada (refresh periódico)"""
        async with get_session() as session:
            stmt = select(Player).where(Player.riot_puuid.isnot(None))
            result = await session.execute(stmt)
            return result.scalars().all()

    @staticmethod
    async def link_valorant(discord_id: int, username: str, account: dict, region: str):
        async with get_session() as session:
            result = await session.execute(select(Player).where(Player.discord_id == discord_id))
            player = result.scalar_one_or_none()

            if not player:
                player = Player(discord_id=discord_id)
                session.add(player)

            player.discord_username = username
            player.riot_name = account.get('name')
            player.riot_tag = account.get('tag')
            player.riot_region = region
            player.riot_puuid = account.get('puuid')
            player.updated_at = datetime.utcnow()
            return player

    @staticmethod
    async def link_marvel(discord_id: int, username: str, uid: str, marvel_username: str):
        async with get_session() as session:
            result = await session.execute(select(Player).where(Player.discord_id == discord_id))
            player = result.scalar_one_or_none()

            if not player:
                player = Player(discord_id=discord_id)
                session.add(player)

            player.discord_username = username
            player.marvel_uid = uid
            player.marvel_username = marvel_username
            player.updated_at = datetime.utcnow()
            return player

    @staticmethod
    async def save_rank_state(discord_id: int, state: PlayerRankState, discord_state: PlayerRankState,
                              reason: RankChangeReason, match_id: int = None, record_history: bool = True,
                              reset_peak: bool = False):
        """
        Grava o rank do jogo, o rank reconciliado do Discord e a linha de
        histórico na mesma transação.
        """
        async with get_session() as session:
            result = await session.execute(select(Player).where(Player.discord_id == discord_id))
            player = result.scalar_one_or_none()
            if not player:
                return "NOT_FOUND"

            _apply_rank_state(session, player, state, discord_state, reason, match_id, record_history, reset_peak)
            return "SUCCESS"

    @staticmethod
    async def set_discord_rank(discord_id: int, discord_state: PlayerRankState):
        async with get_session() as session:
            result = await session.execute(select(Player).where(Player.discord_id == discord_id))
            player = result.scalar_one_or_none()
            if not player:
                return "NOT_FOUND"
            _apply_discord_state(player, discord_state)
            return "SUCCESS"

    @staticmethod
    async def set_role_mode(discord_id: int, mode: str, primary_game: str = None):
        async with get_session() as session:
            result = await session.execute(select(Player).where(Player.discord_id == discord_id))
            player = result.scalar_one_or_none()
            if not player:
                return "NOT_FOUND"
            player.role_mode = mode
            if primary_game:
                player.primary_game = primary_game
            return "SUCCESS"

    @staticmethod
    async def get_ranking(game: str = None, limit: int = None):
        """Ranking pelo MMR do jogo (ou pelo MMR do Discord quando game=None)"""
        async with get_session() as session:
            if game:
                prefix = GAME_COLUMN_PREFIX[game]
                mmr_col = getattr(Player, f"{prefix}_mmr")
                stmt = select(Player).where(getattr(Player, f"{prefix}_rank").isnot(None))
            else:
                mmr_col = Player.current_mmr
                stmt = select(Player).where(Player.discord_rank_value > 0)

            stmt = stmt.order_by(desc(mmr_col), desc(Player.wins), Player.losses)
            if limit: stmt = stmt.limit(limit)
            result = await session.execute(stmt)
            return result.scalars().all()

# --- REPOSITÓRIO DE PARTIDAS ---
class MatchRepository:

    @staticmethod
    async def create_match(guild_id: int, game: str, team_a: list, team_b: list, balance_mode: str = "auto"):
        """team_a/team_b: listas de dicts {'id': ..., 'is_captain': bool opcional}"""
        async with get_session() as session:
            new_match = Match(
                guild_id=guild_id,
                game=Game(game),
                balance_mode=balance_mode,
                status=MatchStatus.IN_PROGRESS,
                created_at=datetime.utcnow()
            )
            session.add(new_match)
            await session.flush()

            for side, team in ((TeamSide.A, team_a), (TeamSide.B, team_b)):
                for p in team:
                    session.add(MatchPlayer(
                        match_id=new_match.id,
                        player_id=p['id'],
                        side=side,
                        is_captain=bool(p.get('is_captain')),
                    ))

            return new_match.id

    @staticmethod
    async def record_stats(match_id: int, player_id: int, kills: int, deaths: int, assists: int, mvp: bool = False):
        async with get_session() as session:
            match = await session.get(Match, match_id)
            if not match: return "NOT_FOUND"
            if match.status != MatchStatus.IN_PROGRESS: return "NOT_ACTIVE"

            stmt = select(MatchPlayer).where(MatchPlayer.match_id == match_id, MatchPlayer.player_id == player_id)
            result = await session.execute(stmt)
            mp = result.scalar_one_or_none()
            if not mp: return "NOT_IN_MATCH"

            # Só pode haver um MVP por partida
            if mvp:
                others = await session.execute(
                    select(MatchPlayer).where(MatchPlayer.match_id == match_id, MatchPlayer.mvp.is_(True))
                )
                for other in others.scalars().all():
                    other.mvp = False

            mp.kills = max(0, kills)
            mp.deaths = max(0, deaths)
            mp.assists = max(0, assists)
            mp.mvp = mvp
            return "SUCCESS"

    @staticmethod
    async def get_match_details(match_id: int, active_only: bool = True):
        """
        Busca a partida pelo ID e retorna os jogadores de cada time com as
        estatísticas registradas. Com active_only, partidas encerradas dão None.
        """
        async with get_session() as session:
            match = await session.get(Match, match_id)

            if not match:
                return None
            if active_only and match.status != MatchStatus.IN_PROGRESS:
                return None

            stmt_players = select(MatchPlayer).where(MatchPlayer.match_id == match_id).order_by(MatchPlayer.id)
            result_players = await session.execute(stmt_players)
            match_players = result_players.scalars().all()

            player_ids = [mp.player_id for mp in match_players]
            stmt_players_data = select(Player).where(Player.discord_id.in_(player_ids))
            result_players_data = await session.execute(stmt_players_data)
            players_data = {p.discord_id: p for p in result_players_data.scalars().all()}

            team_a = []
            team_b = []
            for mp in match_players:
                player_obj = players_data.get(mp.player_id)
                if not player_obj:
                    continue
                player_data = {
                    'id': player_obj.discord_id,
                    'name': player_obj.display_name,
                    'player': player_obj,
                    'is_captain': mp.is_captain,
                    'kills': mp.kills or 0,
                    'deaths': mp.deaths or 0,
                    'assists': mp.assists or 0,
                    'mvp': bool(mp.mvp),
                    'mmr_before': mp.mmr_before,
                    'mmr_after': mp.mmr_after,
                    'points_earned': mp.points_earned,
                }
                if mp.side == TeamSide.A:
                    team_a.append(player_data)
                else:
                    team_b.append(player_data)

            return {
                'id': match.id,
                'game': match.game.value,
                'status': match.status.value,
                'winning_side': match.winning_side.value if match.winning_side else None,
                'balance_mode': match.balance_mode,
                'team_a': team_a,
                'team_b': team_b,
            }

    @staticmethod
    async def apply_result(match_id: int, winning_side: str, updates: list):
        """
        Fecha a partida numa única transação: status, vitórias/derrotas, rank
        de cada jogador, histórico e o resultado por jogador. Se qualquer
        escrita falhar nada é gravado e a partida continua em andamento.

        updates: dicts {'id', 'state', 'discord_state', 'mmr_before', 'points'}
        """
        side_enum = TeamSide.A if winning_side.upper() == 'A' else TeamSide.B
        by_player = {u['id']: u for u in updates}

        async with get_session() as session:
            match = await session.get(Match, match_id)

            if not match: return "NOT_FOUND"
            if match.status == MatchStatus.FINISHED: return "ALREADY_FINISHED"
            if match.status == MatchStatus.CANCELLED: return "ALREADY_CANCELLED"

            match.status = MatchStatus.FINISHED
            match.winning_side = side_enum
            match.finished_at = datetime.utcnow()

            stmt_players = select(MatchPlayer).where(MatchPlayer.match_id == match_id)
            result_players = await session.execute(stmt_players)
            match_players = result_players.scalars().all()

            for mp in match_players:
                player = await session.get(Player, mp.player_id)
                if not player:
                    continue

                # Processa vitórias e derrotas
                if mp.side == side_enum:
                    player.wins = (player.wins or 0) + 1
                else:
                    player.losses = (player.losses or 0) + 1

                update = by_player.get(mp.player_id)
                if update is None:
                    continue
                _apply_rank_state(session, player, update['state'], update['discord_state'],
                                  RankChangeReason.MATCH, match_id=match_id)
                mp.mmr_before = update['mmr_before']
                mp.mmr_after = update['state'].mmr
                mp.points_earned = update['points']

            return "SUCCESS"

    @staticmethod
    async def cancel_match(match_id: int):
        async with get_session() as session:
            match = await session.get(Match, match_id)

            if not match: return "NOT_FOUND"
            if match.status != MatchStatus.IN_PROGRESS: return "NOT_ACTIVE"

            match.status = MatchStatus.CANCELLED
            match.finished_at = datetime.utcnow()
            return "SUCCESS"

    @staticmethod
    async def get_last_result(player_id: int):
        """Última partida finalizada do jogador (para o .porque)"""
        async with get_session() as session:
            stmt = (
                select(MatchPlayer, Match)
                .join(Match, MatchPlayer.match_id == Match.id)
                .where(MatchPlayer.player_id == player_id, Match.status == MatchStatus.FINISHED)
                .order_by(desc(Match.finished_at), desc(Match.id))
                .limit(1)
            )
            result = await session.execute(stmt)
            row = result.first()
            if not row:
                return None
            mp, match = row
            return {
                'match_id': match.id,
                'game': match.game.value,
                'won': mp.side == match.winning_side,
                'kills': mp.kills or 0,
                'deaths': mp.deaths or 0,
                'assists': mp.assists or 0,
                'mvp': bool(mp.mvp),
                'mmr_before': mp.mmr_before,
                'mmr_after': mp.mmr_after,
                'points_earned': mp.points_earned,
            }

# --- REPOSITÓRIO DO HISTÓRICO DE RANK ---
class RankHistoryRepository:

    @staticmethod
    async def get_history(player_id: int, game: str = None, limit: int = 10):
        async with get_session() as session:
            stmt = select(RankHistory).where(RankHistory.player_id == player_id)
            if game:
                stmt = stmt.where(RankHistory.game == Game(game))
            stmt = stmt.order_by(desc(RankHistory.created_at), desc(RankHistory.id)).limit(limit)
            result = await session.execute(stmt)
            return result.scalars().all()
