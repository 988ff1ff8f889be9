import logging
from urllib.parse import quote

from grnds_bot import config
from grnds_bot.services.stats_api import StatsAPIClient

logger = logging.getLogger("marvel_api")


class MarvelRivalsAPI(StatsAPIClient):
    """
    Cliente do marvelrivalsapi.com.
    O formato do JSON muda entre versões, então as estatísticas voltam cruas
    e quem extrai o rank é o canonicalizer.
    """

    name = "marvel_rivals"
    BASE_URL = "https://marvelrivalsapi.com/api"

    def __init__(self, api_key: str = None, limiter=None, timeout: int = None):
        super().__init__(api_key or config.MARVEL_RIVALS_API_KEY, limiter, timeout)

    def _headers(self) -> dict:
        headers = super()._headers()
        if self.api_key:
            headers["x-api-key"] = self.api_key
        return headers

    @staticmethod
    def _unwrap(data):
        if isinstance(data, dict) and 'data' in data:
            return data['data']
        return data

    async def find_player(self, username: str):
        """Nick -> {'uid', 'username'} ou None."""
        url = f"{self.BASE_URL}/v1/find-player/{quote(username.strip())}"
        data = self._unwrap(await self._request(url))
        if not isinstance(data, dict):
            return None
        uid = data.get('uid') or data.get('player_uid') or data.get('id')
        if not uid:
            return None
        return {'uid': str(uid), 'username': data.get('username') or data.get('name') or username}

    async def get_player_stats(self, query: str):
        """Tenta o endpoint v2 e cai para o v1 se não houver dados."""
        encoded = quote(str(query).strip())

        data = self._unwrap(await self._request(f"{self.BASE_URL}/v2/player/{encoded}"))
        if data:
            return data

        logger.info(f"v2 sem dados para {query}, tentando v1")
        return self._unwrap(await self._request(f"{self.BASE_URL}/v1/player/{encoded}")) or None
