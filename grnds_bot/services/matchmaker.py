import math
import random
import logging
from dataclasses import dataclass, field
from typing import Optional

from grnds_bot.services.ladder import round_half_up

logger = logging.getLogger("matchmaker")


@dataclass
class PlayerMatchStats:
    kills: int = 0
    deaths: int = 0
    assists: int = 0
    mvp: bool = False


@dataclass
class MatchResult:
    match_id: int
    team_a: list
    team_b: list
    winner: str  # 'A' ou 'B'
    stats: dict = field(default_factory=dict)  # player_id -> PlayerMatchStats

    def won(self, player_id) -> bool:
        if self.winner == 'A':
            return player_id in self.team_a
        return player_id in self.team_b


@dataclass
class Team:
    team_id: str
    players: list = field(default_factory=list)

    @property
    def average_rank(self) -> float:
        return MatchMaker.average_rank(self.players)


class MatchMaker:
    """
    Responsável pela inteligência de cálculo de MMR e Balanceamento.
    Lógica: pontos base por vitória/derrota, multiplicador por K/D, bônus de MVP
    e "sticky" (ganhos diminuem e perdas aumentam no topo da ladder).
    """

    WIN_POINTS = 15
    LOSS_POINTS = -8

    # (kd mínimo exclusivo, multiplicador), do maior para o menor
    WIN_KD_MULTIPLIERS = [(2.0, 1.3), (1.5, 1.2), (1.0, 1.1)]
    WIN_LOW_KD = (0.7, 0.9)
    LOSS_HIGH_KD = (1.5, 0.95)
    LOSS_LOW_KD = (0.5, 1.1)

    MVP_WIN_BONUS = 8
    MVP_LOSS_BONUS = 3

    # MMR antes da partida (exclusivo) -> multiplicador
    GAIN_DAMPING = [(2500, 0.7), (2000, 0.8), (1500, 0.9)]
    LOSS_AMPLIFICATION = [(2500, 1.2), (2000, 1.1)]

    TEAM_SLOTS = ['A', 'B', 'B', 'A']

    # --- DELTA DE MMR ---
    @staticmethod
    def kd_ratio(kills: int, deaths: int) -> float:
        return kills / deaths if deaths > 0 else float(kills)

    @staticmethod
    def performance_multiplier(won: bool, kd: float) -> float:
        if won:
            for threshold, mult in MatchMaker.WIN_KD_MULTIPLIERS:
                if kd > threshold:
                    return mult
            if kd < MatchMaker.WIN_LOW_KD[0]:
                return MatchMaker.WIN_LOW_KD[1]
            return 1.0

        if kd > MatchMaker.LOSS_HIGH_KD[0]:
            return MatchMaker.LOSS_HIGH_KD[1]
        if kd < MatchMaker.LOSS_LOW_KD[0]:
            return MatchMaker.LOSS_LOW_KD[1]
        return 1.0

    @staticmethod
    def sticky_multiplier(raw_points: int, current_mmr: int) -> float:
        if raw_points == 0:
            return 1.0
        table = MatchMaker.GAIN_DAMPING if raw_points > 0 else MatchMaker.LOSS_AMPLIFICATION
        for threshold, mult in table:
            if current_mmr > threshold:
                return mult
        return 1.0

    @staticmethod
    def compute_breakdown(won: bool, kills: int, deaths: int, assists: int, mvp: bool, current_mmr: int) -> dict:
        """
        Passo a passo do cálculo (usado pelo .porque).
        Qualquer entrada ruim cai nos pontos base, sem exceção.
        """
        base = MatchMaker.WIN_POINTS if won else MatchMaker.LOSS_POINTS
        fallback = {
            'base': base, 'kd': None, 'multiplier': 1.0, 'mvp_bonus': 0,
            'raw': base, 'sticky': 1.0, 'delta': base, 'fallback': True,
        }

        try:
            kills = int(kills or 0)
            deaths = int(deaths or 0)
            current_mmr = float(current_mmr or 0)
            if not math.isfinite(current_mmr):
                raise ValueError("MMR não finito")

            kd = MatchMaker.kd_ratio(kills, deaths)
            multiplier = MatchMaker.performance_multiplier(won, kd)
            mvp_bonus = 0
            if mvp:
                mvp_bonus = MatchMaker.MVP_WIN_BONUS if won else MatchMaker.MVP_LOSS_BONUS

            raw = round_half_up(base * multiplier) + mvp_bonus
            sticky = MatchMaker.sticky_multiplier(raw, current_mmr)
            delta = round_half_up(raw * sticky)
        except (TypeError, ValueError, ArithmeticError) as e:
            logger.warning(f"Falha no cálculo de MMR ({e}). Usando pontos base {base}.")
            return fallback

        return {
            'base': base, 'kd': kd, 'multiplier': multiplier, 'mvp_bonus': mvp_bonus,
            'raw': raw, 'sticky': sticky, 'delta': delta, 'fallback': False,
        }

    @staticmethod
    def compute_delta(won: bool, kills: int, deaths: int, assists: int = 0, mvp: bool = False,
                      current_mmr: int = 0) -> int:
        """Variação de MMR de um jogador numa partida (assists não entram na conta)."""
        return MatchMaker.compute_breakdown(won, kills, deaths, assists, mvp, current_mmr)['delta']

    @staticmethod
    def apply_delta(mmr: int, delta: int) -> int:
        return max(0, int(mmr) + int(delta))

    # --- BALANCEAMENTO DE TIMES ---
    @staticmethod
    def _player_rank_value(player) -> int:
        value = player.get('rank_value') if isinstance(player, dict) else getattr(player, 'rank_value', 0)
        return value or 0

    @staticmethod
    def balance_teams(players: list, mode: str = 'auto', rng: Optional[random.Random] = None):
        """
        Recebe a lista de jogadores (dicts com 'rank_value') e retorna (team_a, team_b).
        auto: ordena por rank (estável) e distribui no padrão A-B-B-A.
        captain: os dois melhores são capitães, o resto é sorteado alternando A/B.
        """
        if mode not in ('auto', 'captain'):
            raise ValueError(f"Modo de balanceamento desconhecido: {mode}")

        team_a = Team('A')
        team_b = Team('B')
        if not players:
            return team_a, team_b

        # sorted() é estável: empate mantém a ordem de entrada na fila
        ordered = sorted(players, key=MatchMaker._player_rank_value, reverse=True)

        if mode == 'auto':
            for i, p in enumerate(ordered):
                if MatchMaker.TEAM_SLOTS[i % 4] == 'A':
                    team_a.players.append(p)
                else:
                    team_b.players.append(p)
            return team_a, team_b

        rng = rng or random.Random()
        team_a.players.append(ordered[0])
        if len(ordered) > 1:
            team_b.players.append(ordered[1])

        rest = ordered[2:]
        rng.shuffle(rest)
        for i, p in enumerate(rest):
            (team_a if i % 2 == 0 else team_b).players.append(p)

        return team_a, team_b

    @staticmethod
    def average_rank(players: list) -> float:
        if not players:
            return 0
        total = sum(MatchMaker._player_rank_value(p) for p in players)
        return round(total / len(players), 2)
