from sqlalchemy import Column, Integer, String, BigInteger, Boolean, DateTime, ForeignKey, Enum as SAEnum
from sqlalchemy.orm import relationship
from datetime import datetime
import enum
from grnds_bot.database.config import Base

# --- ENUMS (Padronização) ---
class MatchStatus(enum.Enum):
    IN_PROGRESS = "live"    # Times sorteados, partida rolando
    FINISHED = "finished"   # Resultado registrado
    CANCELLED = "cancelled" # Cancelada por ADM

class TeamSide(enum.Enum):
    A = "A"
    B = "B"

class Game(enum.Enum):
    VALORANT = "valorant"
    MARVEL_RIVALS = "marvel_rivals"

class RankChangeReason(enum.Enum):
    MATCH = "match"
    VERIFICATION = "verification"
    MANUAL_VERIFICATION = "manual_verification"
    VALORANT_REFRESH = "valorant_refresh"
    VALORANT_REFRESH_BOOST = "valorant_refresh_boost"
    ADMIN_ADJUSTMENT = "admin_adjustment"

# Prefixo das colunas de rank de cada jogo na tabela players
GAME_COLUMN_PREFIX = {
    "valorant": "valorant",
    "marvel_rivals": "marvel",
}

# --- TABELAS ---

class GuildConfig(Base):
    """Configurações específicas de cada servidor Discord"""
    __tablename__ = "guild_configs"

    guild_id = Column(BigInteger, primary_key=True)
    match_channel_id = Column(BigInteger, nullable=True)  # Canal onde rolam os jogos
    ranking_channel_id = Column(BigInteger, nullable=True) # Canal de atualizações de ranking
    tracking_channel_id = Column(BigInteger, nullable=True) # Canal de avisos de promoção/rebaixamento

class Player(Base):
    """Dados do Jogador (Discord + contas vinculadas + rank por jogo)"""
    __tablename__ = "players"

    discord_id = Column(BigInteger, primary_key=True)
    discord_username = Column(String, nullable=True)

    # Valorant (Riot ID)
    riot_name = Column(String, nullable=True)
    riot_tag = Column(String, nullable=True)
    riot_region = Column(String, nullable=True)
    riot_puuid = Column(String, nullable=True)

    # Marvel Rivals
    marvel_uid = Column(String, nullable=True)
    marvel_username = Column(String, nullable=True)

    # --- RANK POR JOGO ---
    valorant_rank = Column(String, nullable=True)
    valorant_rank_value = Column(Integer, default=0)
    valorant_mmr = Column(Integer, default=0)
    valorant_peak_mmr = Column(Integer, default=0)

    marvel_rank = Column(String, nullable=True)
    marvel_rank_value = Column(Integer, default=0)
    marvel_mmr = Column(Integer, default=0)
    marvel_peak_mmr = Column(Integer, default=0)

    # --- RANK DO DISCORD (reconciliado) ---
    discord_rank = Column(String, default="Unranked")
    discord_rank_value = Column(Integer, default=0)
    current_mmr = Column(Integer, default=0)
    peak_mmr = Column(Integer, default=0)

    # Preferências
    role_mode = Column(String, default="highest")
    primary_game = Column(String, default="valorant")

    # Stats Internos (Liga Interna)
    wins = Column(Integer, default=0)
    losses = Column(Integer, default=0)

    verified_at = Column(DateTime, nullable=True)
    updated_at = Column(DateTime, default=datetime.utcnow)

    # Relacionamento reverso (Para saber partidas que jogou)
    matches = relationship("MatchPlayer", back_populates="player")

    @property
    def display_name(self) -> str:
        if self.discord_username:
            return self.discord_username
        if self.riot_name:
            return f"{self.riot_name}#{self.riot_tag}"
        return self.marvel_username or str(self.discord_id)

    def has_game(self, game: str) -> bool:
        prefix = GAME_COLUMN_PREFIX[game]
        return getattr(self, f"{prefix}_rank") is not None

class Match(Base):
    """A Partida (Lobby)"""
    __tablename__ = "matches"

    id = Column(Integer, primary_key=True, autoincrement=True) # O famoso Match ID
    guild_id = Column(BigInteger, nullable=False)
    game = Column(SAEnum(Game), default=Game.VALORANT)
    balance_mode = Column(String, default="auto")
    created_at = Column(DateTime, default=datetime.utcnow)
    finished_at = Column(DateTime, nullable=True)

    status = Column(SAEnum(MatchStatus), default=MatchStatus.IN_PROGRESS)
    winning_side = Column(SAEnum(TeamSide), nullable=True) # Quem ganhou?

    # Relacionamento
    players = relationship("MatchPlayer", back_populates="match", cascade="all, delete-orphan")

class MatchPlayer(Base):
    """Tabela Pivô: Quem jogou a partida X, em qual time, e como foi"""
    __tablename__ = "match_players"

    id = Column(Integer, primary_key=True, autoincrement=True)
    match_id = Column(Integer, ForeignKey("matches.id"))
    player_id = Column(BigInteger, ForeignKey("players.discord_id"))

    side = Column(SAEnum(TeamSide), nullable=True) # A ou B
    is_captain = Column(Boolean, default=False)

    # Estatísticas da partida (preenchidas pelo .kda)
    kills = Column(Integer, default=0)
    deaths = Column(Integer, default=0)
    assists = Column(Integer, default=0)
    mvp = Column(Boolean, default=False)

    # Preenchidos ao processar o resultado
    mmr_before = Column(Integer, nullable=True)
    mmr_after = Column(Integer, nullable=True)
    points_earned = Column(Integer, nullable=True)

    # Relacionamentos
    match = relationship("Match", back_populates="players")
    player = relationship("Player", back_populates="matches")

class RankHistory(Base):
    """Registro append-only de toda mudança de MMR/rank"""
    __tablename__ = "rank_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    player_id = Column(BigInteger, ForeignKey("players.discord_id"), index=True)
    game = Column(SAEnum(Game), nullable=False)
    old_rank = Column(String, nullable=True)
    new_rank = Column(String, nullable=True)
    old_mmr = Column(Integer, default=0)
    new_mmr = Column(Integer, default=0)
    reason = Column(SAEnum(RankChangeReason), nullable=False)
    match_id = Column(Integer, ForeignKey("matches.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
