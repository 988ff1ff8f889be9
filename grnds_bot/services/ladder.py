"""
Tabela canônica da ladder GRNDS (versão 2).

Existiam duas tabelas divergentes (15 tiers com topo em X e 16 tiers com
CHALLENGER V). A versão 2 unifica em 16 tiers contínuos, com ABSOLUTE
entre CHALLENGER IV e X. Nomes antigos passam por LEGACY_RANK_NAMES.
"""
import math
from typing import NamedTuple, Optional

LADDER_VERSION = 2


class CanonicalRank(NamedTuple):
    name: str
    value: int       # 1..16, cresce com a habilidade
    min_mmr: int
    max_mmr: Optional[int]  # None = faixa aberta (topo)
    base_mmr: int    # ponto médio usado na colocação


# --- TABELA ÚNICA (ordem crescente) ---
RANKS = [
    CanonicalRank("GRNDS I", 1, 0, 299, 150),
    CanonicalRank("GRNDS II", 2, 300, 599, 450),
    CanonicalRank("GRNDS III", 3, 600, 899, 750),
    CanonicalRank("GRNDS IV", 4, 900, 1199, 1050),
    CanonicalRank("GRNDS V", 5, 1200, 1499, 1350),
    CanonicalRank("BREAKPOINT I", 6, 1500, 1699, 1600),
    CanonicalRank("BREAKPOINT II", 7, 1700, 1899, 1800),
    CanonicalRank("BREAKPOINT III", 8, 1900, 2099, 2000),
    CanonicalRank("BREAKPOINT IV", 9, 2100, 2299, 2200),
    CanonicalRank("BREAKPOINT V", 10, 2300, 2399, 2350),
    CanonicalRank("CHALLENGER I", 11, 2400, 2499, 2450),
    CanonicalRank("CHALLENGER II", 12, 2500, 2599, 2550),
    CanonicalRank("CHALLENGER III", 13, 2600, 2699, 2650),
    CanonicalRank("CHALLENGER IV", 14, 2700, 2799, 2750),
    CanonicalRank("ABSOLUTE", 15, 2800, 2999, 2900),
    CanonicalRank("X", 16, 3000, None, 3000),
]

RANKS_BY_NAME = {r.name: r for r in RANKS}
RANKS_BY_VALUE = {r.value: r for r in RANKS}

LOWEST_RANK = RANKS[0].name
HIGHEST_RANK = RANKS[-1].name
UNRANKED = "Unranked"

# Nomes da tabela v1 que não existem mais
LEGACY_RANK_NAMES = {
    "CHALLENGER V": "ABSOLUTE",
}

# Teto de colocação inicial: ponto médio do 5º tier (GRNDS V)
PLACEMENT_CAP = RANKS[4].base_mmr


def round_half_up(value: float) -> int:
    """Arredonda .5 para cima (10.5 -> 11, -8.5 -> -8). Ruído de float é descartado antes."""
    return int(math.floor(round(value, 9) + 0.5))


def normalize_rank_name(rank: str) -> Optional[str]:
    """Devolve o nome canônico (maiúsculo, sem espaços extras) ou None se não existir."""
    if not rank or not isinstance(rank, str):
        return None
    name = " ".join(rank.upper().split())
    name = LEGACY_RANK_NAMES.get(name, name)
    return name if name in RANKS_BY_NAME else None


def mmr_for_rank(rank: str) -> int:
    """MMR base (ponto médio) do tier. Tier desconhecido retorna 0."""
    name = normalize_rank_name(rank)
    if not name:
        return 0
    return RANKS_BY_NAME[name].base_mmr


def rank_for_mmr(mmr) -> str:
    """Função total: qualquer entrada devolve um tier. Negativo/inválido cai no mais baixo."""
    try:
        value = float(mmr)
    except (TypeError, ValueError):
        return LOWEST_RANK
    if math.isnan(value) or value < 0:
        return LOWEST_RANK

    for r in reversed(RANKS):
        if value >= r.min_mmr:
            return r.name
    return LOWEST_RANK


def rank_value(rank: str) -> int:
    """Valor numérico (1..16) para ordenação. Desconhecido/Unranked = 0."""
    name = normalize_rank_name(rank)
    return RANKS_BY_NAME[name].value if name else 0


def rank_by_value(value: int) -> str:
    """Inverso de rank_value, com clamp no intervalo 1..16."""
    value = max(1, min(int(value), len(RANKS)))
    return RANKS_BY_VALUE[value].name


def placement_mmr(rank: str) -> int:
    """MMR de colocação inicial (vinculação de conta) limitado ao PLACEMENT_CAP."""
    return min(mmr_for_rank(rank), PLACEMENT_CAP)


def rank_progression(mmr: int) -> dict:
    """
    Progresso dentro do tier atual.
    Retorna rank, próximo rank, MMR necessário e porcentagem (0-100).
    """
    mmr = max(0, int(mmr or 0))
    current = RANKS_BY_NAME[rank_for_mmr(mmr)]

    if current.max_mmr is None:
        # Topo da ladder
        return {
            'rank': current.name,
            'mmr': mmr,
            'next_rank': None,
            'next_rank_mmr': current.min_mmr,
            'progress': 100,
            'mmr_needed': 0,
        }

    nxt = RANKS_BY_VALUE[current.value + 1]
    band = current.max_mmr - current.min_mmr
    progress = round_half_up((mmr - current.min_mmr) / band * 100) if band > 0 else 0

    return {
        'rank': current.name,
        'mmr': mmr,
        'next_rank': nxt.name,
        'next_rank_mmr': nxt.min_mmr,
        'progress': max(0, min(progress, 100)),
        'mmr_needed': nxt.min_mmr - mmr,
    }
