"""
Ponte Valorant -> MMR interno.

Cada tier do Valorant ocupa uma faixa fixa [min, max] da ladder GRNDS e o ELO
do jogador (0-5000) é interpolado linearmente dentro dela.

Política única:
  - colocação inicial: valor da ponte limitado ao PLACEMENT_CAP
  - refresh periódico: mesmo valor com teto, aplicado só quando sobe o tier (boost)
Acima do teto o jogador só sobe jogando as partidas internas.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from grnds_bot.services.ladder import PLACEMENT_CAP, rank_for_mmr, rank_value, round_half_up

logger = logging.getLogger("valorant_bridge")

MAX_ELO = 5000
UNKNOWN_TIER_RANGE = (0, 200)

# Faixas da ladder inteira (sem compressão de colocação)
VALORANT_MMR_RANGES = {
    'Iron 1': (0, 50),
    'Iron 2': (50, 100),
    'Iron 3': (100, 150),
    'Bronze 1': (150, 200),
    'Bronze 2': (200, 250),
    'Bronze 3': (250, 300),
    'Silver 1': (300, 400),
    'Silver 2': (400, 500),
    'Silver 3': (500, 600),
    'Gold 1': (600, 700),
    'Gold 2': (700, 800),
    'Gold 3': (800, 900),
    'Platinum 1': (900, 1000),
    'Platinum 2': (1000, 1100),
    'Platinum 3': (1100, 1200),
    'Diamond 1': (1200, 1300),
    'Diamond 2': (1300, 1400),
    'Diamond 3': (1400, 1500),
    'Ascendant 1': (1500, 1650),
    'Ascendant 2': (1650, 1800),
    'Ascendant 3': (1800, 1950),
    'Immortal 1': (1950, 2100),
    'Immortal 2': (2100, 2300),
    'Immortal 3': (2300, 2500),
    'Radiant': (2500, 3000),
}

_RANGES_LOWER = {k.lower(): v for k, v in VALORANT_MMR_RANGES.items()}


def tier_range(external_tier: str) -> tuple:
    if not external_tier or not isinstance(external_tier, str):
        return UNKNOWN_TIER_RANGE
    key = " ".join(external_tier.split()).lower()
    return _RANGES_LOWER.get(key, UNKNOWN_TIER_RANGE)


def bridge_mmr(external_tier: str, external_elo) -> int:
    """Interpola o ELO (clamp 0-5000) dentro da faixa do tier."""
    low, high = tier_range(external_tier)
    try:
        elo = float(external_elo)
    except (TypeError, ValueError):
        elo = 0.0
    if elo != elo:  # NaN
        elo = 0.0
    elo = min(max(elo, 0.0), float(MAX_ELO))
    return low + round_half_up((high - low) * (elo / MAX_ELO))


def placement_bridge_mmr(external_tier: str, external_elo) -> int:
    """Colocação inicial: mesma ponte, mas com teto de colocação."""
    return min(bridge_mmr(external_tier, external_elo), PLACEMENT_CAP)


# --- DADOS DA API (formato mínimo) ---

@dataclass(frozen=True)
class ValorantMMR:
    tier_id: int
    tier_name: str
    elo: int
    games_needed: int = 0

    @property
    def is_unrated(self) -> bool:
        return self.tier_id <= 0 or not self.tier_name or 'unrated' in self.tier_name.lower()

    @property
    def in_placements(self) -> bool:
        return self.games_needed > 0


@dataclass(frozen=True)
class RefreshPlan:
    state: object           # PlayerRankState resultante
    boosted: bool
    reason: str
    valorant_rank: str
    changed: bool


def resolve_source(current: Optional[ValorantMMR], history: Optional[list]) -> Optional[ValorantMMR]:
    """
    Decide qual (tier, elo) usar como fonte.
    - Em placements: procura no histórico (mais recente primeiro) a primeira
      entrada com tier > 0.
    - Unrated fora de placements: None (mantém o rank atual, sem olhar o histórico).
    - Sem dados atuais (API falhou): também tenta o histórico.
    """
    if current is not None and not current.in_placements:
        return None if current.is_unrated else current

    for entry in history or []:
        if entry is not None and not entry.is_unrated:
            logger.info(f"Usando partida ranqueada do histórico: {entry.tier_name} ({entry.elo} ELO)")
            return entry

    return None


def plan_refresh(state, current: Optional[ValorantMMR], history: Optional[list] = None) -> RefreshPlan:
    """
    Refresh periódico: só aplica a ponte (com teto) se o tier resultante for
    estritamente maior que o atual. Nunca rebaixa.
    """
    source = resolve_source(current, history)

    if source is None:
        label = "Unrated (in placements)" if current is not None and current.in_placements else "Unrated"
        return RefreshPlan(state=state, boosted=False, reason="valorant_refresh", valorant_rank=label, changed=False)

    bridged = placement_bridge_mmr(source.tier_name, source.elo)
    bridged_rank = rank_for_mmr(bridged)

    if rank_value(bridged_rank) > state.rank_value:
        new_state = state.with_mmr(bridged)
        return RefreshPlan(state=new_state, boosted=True, reason="valorant_refresh_boost",
                           valorant_rank=source.tier_name, changed=True)

    return RefreshPlan(state=state, boosted=False, reason="valorant_refresh",
                       valorant_rank=source.tier_name, changed=False)


def plan_placement(state, current: Optional[ValorantMMR], history: Optional[list] = None) -> Optional[object]:
    """Colocação inicial via ponte com teto. None = sem dados, manter estado."""
    source = resolve_source(current, history)
    if source is None:
        return None
    mmr = placement_bridge_mmr(source.tier_name, source.elo)
    return state.with_mmr(mmr)
