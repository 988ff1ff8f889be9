import logging
from urllib.parse import quote

from grnds_bot import config
from grnds_bot.services.stats_api import StatsAPIClient
from grnds_bot.services.valorant_bridge import ValorantMMR

logger = logging.getLogger("valorant_api")


def parse_mmr(data: dict):
    """Resposta v3 (data.current.tier / elo / games_needed_for_rating) -> ValorantMMR."""
    if not isinstance(data, dict):
        return None
    current = data.get('current') or {}
    tier = current.get('tier') or {}
    return ValorantMMR(
        tier_id=int(tier.get('id') or 0),
        tier_name=tier.get('name') or 'Unrated',
        elo=int(current.get('elo') or 0),
        games_needed=int(current.get('games_needed_for_rating') or 0),
    )


def parse_history(data) -> list:
    """Resposta v2 de histórico -> lista de ValorantMMR (mais recente primeiro)."""
    if isinstance(data, dict):
        data = data.get('history')
    if not isinstance(data, list):
        return []

    entries = []
    for entry in data:
        if not isinstance(entry, dict):
            continue
        tier = entry.get('tier') or {}
        entries.append(ValorantMMR(
            tier_id=int(tier.get('id') or 0),
            tier_name=tier.get('name') or 'Unrated',
            elo=int(entry.get('elo') or 0),
        ))
    return entries


class ValorantAPI(StatsAPIClient):
    """Cliente da HenrikDev API (conta, MMR atual e histórico de MMR)."""

    name = "valorant"
    BASE_URL = "https://api.henrikdev.xyz/valorant"
    PLATFORM = "pc"

    def __init__(self, api_key: str = None, limiter=None, timeout: int = None):
        super().__init__(api_key or config.VALORANT_API_KEY, limiter, timeout)

    def _headers(self) -> dict:
        headers = super()._headers()
        if self.api_key:
            headers["Authorization"] = self.api_key
        return headers

    async def get_account(self, name: str, tag: str):
        """Riot ID -> {'puuid', 'region', 'name', 'tag', ...} ou None."""
        url = f"{self.BASE_URL}/v2/account/{quote(name.strip())}/{quote(tag.strip())}"
        data = await self._request(url)
        if not data:
            return None
        account = data.get('data') or data
        if not account.get('puuid'):
            logger.warning(f"Conta {name}#{tag} sem PUUID na resposta.")
            return None
        return account

    async def get_mmr(self, region: str, puuid: str):
        url = f"{self.BASE_URL}/v3/by-puuid/mmr/{region}/{self.PLATFORM}/{puuid}"
        data = await self._request(url)
        if not data:
            return None
        return parse_mmr(data.get('data'))

    async def get_mmr_history(self, region: str, puuid: str) -> list:
        url = f"{self.BASE_URL}/v2/by-puuid/mmr-history/{region}/{self.PLATFORM}/{puuid}"
        data = await self._request(url)
        if not data:
            return []
        return parse_history(data.get('data'))
