"""
Estado de rank por jogo e reconciliação entre os dois jogos.

O "rank do Discord" de um jogador sai daqui: ou o jogo principal configurado
(modo primary), ou o maior dos dois (modo highest).
"""
from dataclasses import dataclass, replace
from typing import Optional

from grnds_bot.services.ladder import UNRANKED, rank_for_mmr, rank_value


@dataclass(frozen=True)
class PlayerRankState:
    """Snapshot imutável. As funções do core recebem um e devolvem outro."""
    game: str
    rank: str
    rank_value: int
    mmr: int
    peak_mmr: int

    def __post_init__(self):
        # mmr >= 0 e peak >= mmr sempre
        mmr = max(0, int(self.mmr or 0))
        object.__setattr__(self, 'mmr', mmr)
        object.__setattr__(self, 'peak_mmr', max(int(self.peak_mmr or 0), mmr))

    @classmethod
    def from_mmr(cls, game: str, mmr: int, peak_mmr: int = 0) -> "PlayerRankState":
        rank = rank_for_mmr(mmr)
        return cls(game=game, rank=rank, rank_value=rank_value(rank), mmr=mmr, peak_mmr=peak_mmr)

    @classmethod
    def unranked(cls, game: str) -> "PlayerRankState":
        return cls(game=game, rank=UNRANKED, rank_value=0, mmr=0, peak_mmr=0)

    @property
    def is_ranked(self) -> bool:
        return self.rank_value > 0

    def with_mmr(self, new_mmr: int) -> "PlayerRankState":
        """Novo MMR (clamp em 0), rank recalculado e pico = max(pico, novo)."""
        new_mmr = max(0, int(new_mmr))
        rank = rank_for_mmr(new_mmr)
        return replace(self, rank=rank, rank_value=rank_value(rank), mmr=new_mmr,
                       peak_mmr=max(self.peak_mmr, new_mmr))

    def reset_peak(self) -> "PlayerRankState":
        """Único caminho que diminui o pico (ação administrativa)."""
        return replace(self, peak_mmr=self.mmr)


def reconcile(mode: str, primary_game: str, state_a: Optional[PlayerRankState],
              state_b: Optional[PlayerRankState]) -> Optional[PlayerRankState]:
    """
    primary: devolve o estado do jogo principal sem olhar o outro.
    highest: maior rank_value; empate -> maior MMR; empate exato -> state_a.
    """
    if mode not in ("highest", "primary"):
        raise ValueError(f"Modo de reconciliação desconhecido: {mode}")

    if mode == "primary":
        for state in (state_a, state_b):
            if state is not None and state.game == primary_game:
                return state
        # Jogo principal sem vínculo: usa o que existir
        return state_a if state_a is not None else state_b

    if state_a is None:
        return state_b
    if state_b is None:
        return state_a

    if state_b.rank_value > state_a.rank_value:
        return state_b
    if state_b.rank_value == state_a.rank_value and state_b.mmr > state_a.mmr:
        return state_b
    return state_a
