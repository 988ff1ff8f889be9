"""
Canonicalização de rank.

As APIs de estatísticas (Marvel Rivals v1/v2, HenrikDev para Valorant) mudam
o formato do JSON sem aviso. Aqui o blob é tratado como desconhecido:
  1. extração direta por uma lista de campos prioritários
  2. fallbacks específicos de cada jogo (rank_history, heroes_ranked, player...)
  3. busca em largura (BFS) limitada em profundidade
Depois o texto livre ("Diamond 2", "Celestial") vira um tier canônico da ladder.
"""
import re
import logging
from collections import deque
from typing import NamedTuple, Optional

from grnds_bot.services.ladder import LOWEST_RANK, normalize_rank_name, rank_for_mmr, rank_value
from grnds_bot.services.valorant_bridge import VALORANT_MMR_RANGES

logger = logging.getLogger("canonicalizer")

# Campos tentados na extração direta (ordem = prioridade)
RANK_FIELDS = ['rank', 'rank_name', 'tier_name', 'tier', 'division', 'title', 'current']
# Dentro de um objeto de rank aninhado o nome costuma vir em "name"
NESTED_RANK_FIELDS = ['name'] + RANK_FIELDS

BFS_RANK_KEYS = ['rank_name', 'current_rank', 'competitive_rank', 'ranked_rank', 'tier_name', 'rank_tier']
BFS_TIER_KEYS = ['tier', 'rank_tier', 'tier_value', 'division', 'rank_division']
BFS_RANK_DEPTH = 5
BFS_TIER_DEPTH = 4

# Falsos positivos conhecidos (nível da conta confundido com rank, etc.)
REJECTED_SUBSTRINGS = ('invalid', 'level')

SUBTIER_PATTERN = re.compile(r'\b(I{1,3}|[1-3])\b', re.IGNORECASE)
ROMAN = {'I': 1, 'II': 2, 'III': 3}
UNRANKED_WORDS = ('unranked', 'unrated')


class CanonicalResult(NamedTuple):
    rank: str            # tier canônico ("GRNDS III")
    tier_value: int      # 1..16
    source_rank: str     # texto original extraído
    sub_tier: int        # 0 = não informado


# --- MAPEAMENTO POR PALAVRA-CHAVE ---
# Do mais específico para o mais genérico. Cada chave -> [baixo, médio, alto]

MARVEL_KEYWORDS = [
    ('one above all', ['X', 'X', 'X']),
    ('eternity', ['CHALLENGER IV', 'CHALLENGER IV', 'ABSOLUTE']),
    ('celestial', ['CHALLENGER I', 'CHALLENGER II', 'CHALLENGER III']),
    ('grandmaster', ['BREAKPOINT III', 'BREAKPOINT IV', 'BREAKPOINT V']),
    ('grand master', ['BREAKPOINT III', 'BREAKPOINT IV', 'BREAKPOINT V']),
    ('diamond', ['GRNDS V', 'BREAKPOINT I', 'BREAKPOINT II']),
    ('plat', ['GRNDS IV', 'GRNDS IV', 'GRNDS V']),
    ('gold', ['GRNDS III', 'GRNDS III', 'GRNDS IV']),
    ('silver', ['GRNDS II', 'GRNDS II', 'GRNDS III']),
    ('bronze', ['GRNDS I', 'GRNDS I', 'GRNDS II']),
]


def _valorant_options(tier: str) -> list:
    """Opções do Valorant derivadas das faixas da ponte (ponto médio de cada divisão)."""
    options = []
    for division in (1, 2, 3):
        low, high = VALORANT_MMR_RANGES.get(f"{tier} {division}", VALORANT_MMR_RANGES.get(tier, (0, 0)))
        options.append(rank_for_mmr((low + high) // 2))
    return options


VALORANT_KEYWORDS = [
    ('radiant', _valorant_options('Radiant')),
    ('immortal', _valorant_options('Immortal')),
    ('ascendant', _valorant_options('Ascendant')),
    ('diamond', _valorant_options('Diamond')),
    ('plat', _valorant_options('Platinum')),
    ('gold', _valorant_options('Gold')),
    ('silver', _valorant_options('Silver')),
    ('bronze', _valorant_options('Bronze')),
    ('iron', _valorant_options('Iron')),
]

KEYWORDS_BY_GAME = {
    'marvel_rivals': MARVEL_KEYWORDS,
    'valorant': VALORANT_KEYWORDS,
}


# --- EXTRAÇÃO ---

def _is_acceptable(text: Optional[str]) -> bool:
    if not text:
        return False
    low = text.lower()
    if any(bad in low for bad in REJECTED_SUBSTRINGS):
        return False
    # Só a divisão ("II", "3") não é um rank
    if ROMAN.get(text.upper()) or text in ('1', '2', '3'):
        return False
    return True


def normalize_rank_value(value, depth: int = 0) -> Optional[str]:
    """
    Extrai uma string de rank de um valor qualquer.
    Strings são aparadas, listas devolvem o primeiro não-vazio e objetos são
    vasculhados pelos campos prioritários (um nível de aninhamento).
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        text = value.strip()
        return text if _is_acceptable(text) else None
    if isinstance(value, list):
        for entry in value:
            found = normalize_rank_value(entry, depth)
            if found:
                return found
        return None
    if isinstance(value, dict):
        if depth > 1:
            return None
        for key in NESTED_RANK_FIELDS:
            found = normalize_rank_value(value.get(key), depth + 1)
            if found:
                return found
    return None


def find_value_by_keys(obj, keys: list, max_depth: int):
    """BFS pelo grafo do JSON devolvendo o primeiro valor não-nulo de uma das chaves."""
    queue = deque([(obj, 0)])

    while queue:
        value, depth = queue.popleft()
        if isinstance(value, list):
            for entry in value:
                queue.append((entry, depth + 1))
            continue
        if not isinstance(value, dict):
            continue

        for key in keys:
            if value.get(key) is not None:
                return value[key]

        if depth >= max_depth:
            continue

        for nested in value.values():
            if isinstance(nested, list):
                for entry in nested:
                    queue.append((entry, depth + 1))
            elif isinstance(nested, dict):
                queue.append((nested, depth + 1))

    return None


def _extract_direct(stats: dict) -> Optional[str]:
    for key in RANK_FIELDS:
        found = normalize_rank_value(stats.get(key), depth=1)
        if found:
            return found
    return None


def _from_entry(entry) -> Optional[str]:
    if not isinstance(entry, dict):
        return None
    for key in ('rank_name', 'rank', 'tier_name', 'tier', 'name'):
        found = normalize_rank_value(entry.get(key), depth=1)
        if found:
            return found
    return None


def _marvel_rank_history(stats: dict) -> Optional[str]:
    history = stats.get('rank_history')
    if not isinstance(history, list) or not history:
        return None
    # Mais recente (último) primeiro, depois o primeiro registro
    found = _from_entry(history[-1])
    if not found and len(history) > 1:
        found = _from_entry(history[0])
    return found


def _marvel_heroes_ranked(stats: dict) -> Optional[str]:
    heroes = stats.get('heroes_ranked')
    if not isinstance(heroes, list):
        return None
    for hero in heroes:
        found = _from_entry(hero)
        if found:
            return found
    return None


def _marvel_player(stats: dict) -> Optional[str]:
    player = stats.get('player')
    if not isinstance(player, dict):
        return None
    found = normalize_rank_value(player.get('rank'), depth=1)
    if found:
        return found
    info = player.get('rank_info') or player.get('ranked_info') or player.get('competitive')
    if isinstance(info, dict):
        for key in ('rank', 'name', 'tier_name'):
            found = normalize_rank_value(info.get(key), depth=1)
            if found:
                return found
    return None


def _marvel_overall_stats(stats: dict) -> Optional[str]:
    overall = stats.get('overall_stats')
    if not isinstance(overall, dict):
        return None
    for key in ('rank', 'current_rank'):
        found = normalize_rank_value(overall.get(key), depth=1)
        if found:
            return found
    return None


def _valorant_current(stats: dict) -> Optional[str]:
    # v3: current.tier.name | v2: current_data.currenttierpatched | v1: currenttierpatched
    current = stats.get('current')
    if isinstance(current, dict) and isinstance(current.get('tier'), dict):
        found = normalize_rank_value(current['tier'].get('name'))
        if found:
            return found
    data = stats.get('current_data')
    if isinstance(data, dict):
        found = normalize_rank_value(data.get('currenttierpatched'))
        if found:
            return found
    return normalize_rank_value(stats.get('currenttierpatched'))


GAME_FALLBACKS = {
    'marvel_rivals': [_marvel_rank_history, _marvel_heroes_ranked, _marvel_player, _marvel_overall_stats],
    'valorant': [_valorant_current],
}


def extract_rank(raw, source_game: str) -> Optional[str]:
    """Texto de rank encontrado no blob, ou None se não houver nenhum."""
    if isinstance(raw, str):
        return normalize_rank_value(raw)
    if isinstance(raw, list):
        for entry in raw:
            found = extract_rank(entry, source_game)
            if found:
                return found
        return None
    if not isinstance(raw, dict):
        return None

    found = _extract_direct(raw)
    if found:
        return found

    for fallback in GAME_FALLBACKS.get(source_game, []):
        found = fallback(raw)
        if found:
            return found

    return normalize_rank_value(find_value_by_keys(raw, BFS_RANK_KEYS, BFS_RANK_DEPTH), depth=1)


def extract_tier(raw):
    if not isinstance(raw, (dict, list)):
        return None
    return find_value_by_keys(raw, BFS_TIER_KEYS, BFS_TIER_DEPTH)


def parse_tier_value(tier, rank: str) -> int:
    """Divisão 1/2/3 a partir do campo de tier ou do próprio texto do rank. 0 = desconhecida."""
    if isinstance(tier, int) and not isinstance(tier, bool):
        return tier
    if isinstance(tier, float) and tier == tier:
        return int(tier)
    if isinstance(tier, str):
        text = tier.strip().upper()
        if text in ROMAN:
            return ROMAN[text]
        if text.isdigit():
            return int(text)

    match = SUBTIER_PATTERN.search(rank or "")
    if match:
        text = match.group(1).upper()
        return ROMAN.get(text) or int(text)
    return 0


def map_tier_option(options: list, sub_tier: int) -> str:
    if not sub_tier or sub_tier < 1:
        return options[0]
    return options[min(sub_tier, len(options)) - 1]


def map_rank_string(rank: str, sub_tier: int, source_game: str) -> str:
    """
    Texto livre -> tier canônico. Nunca falha: string desconhecida vira o
    tier mais baixo (todo jogador com algum rank consegue ser colocado).
    """
    if source_game not in KEYWORDS_BY_GAME:
        raise ValueError(f"Jogo desconhecido: {source_game}")

    normalized = rank.lower().strip()

    # Já é um nome da ladder (entrada manual ou dado nosso)
    canonical = normalize_rank_name(rank)
    if canonical:
        return canonical

    if not normalized or normalized == 'none' or any(w in normalized for w in UNRANKED_WORDS):
        return LOWEST_RANK

    for keyword, options in KEYWORDS_BY_GAME[source_game]:
        if keyword in normalized:
            return map_tier_option(options, sub_tier)

    logger.warning(f"Rank desconhecido '{rank}' ({source_game}), usando {LOWEST_RANK}")
    return LOWEST_RANK


def canonicalize_rank(raw, source_game: str) -> Optional[CanonicalResult]:
    """
    Blob da API -> tier canônico.
    None significa que nenhum texto de rank foi encontrado: o chamador deve
    pedir o rank manualmente ao jogador.
    """
    if source_game not in KEYWORDS_BY_GAME:
        raise ValueError(f"Jogo desconhecido: {source_game}")

    rank = extract_rank(raw, source_game)
    if not rank:
        return None

    sub_tier = parse_tier_value(extract_tier(raw), rank)
    canonical = map_rank_string(rank, sub_tier, source_game)
    return CanonicalResult(rank=canonical, tier_value=rank_value(canonical), source_rank=rank, sub_tier=sub_tier)


def requires_manual_rank(raw, source_game: str) -> bool:
    return canonicalize_rank(raw, source_game) is None


def parse_manual_rank(text: str, source_game: str) -> Optional[CanonicalResult]:
    """Rank digitado pelo jogador (nome da ladder ou rank do jogo, ex: 'Gold II')."""
    rank = normalize_rank_value(text)
    if not rank:
        return None
    sub_tier = parse_tier_value(None, rank)
    canonical = map_rank_string(rank, sub_tier, source_game)
    return CanonicalResult(rank=canonical, tier_value=rank_value(canonical), source_rank=rank, sub_tier=sub_tier)
