import asyncio
import logging
import aiohttp

from grnds_bot import config
from grnds_bot.services.rate_limiter import SlidingWindowLimiter

logger = logging.getLogger("stats_api")


class StatsAPIClient:
    """
    Base dos clientes HTTP das APIs de estatísticas.
    Todo GET passa pelo limitador e devolve o JSON ou None.
    """

    name = "api"

    def __init__(self, api_key: str = None, limiter: SlidingWindowLimiter = None, timeout: int = None):
        self.api_key = api_key
        self.limiter = limiter or SlidingWindowLimiter(config.API_RATE_LIMIT, config.API_RATE_WINDOW)
        self.timeout = aiohttp.ClientTimeout(total=timeout or config.API_TIMEOUT)

    def _headers(self) -> dict:
        return {"User-Agent": "GRNDS-Bot/1.0", "Accept": "application/json"}

    async def _request(self, url: str, retry_on_429: bool = True):
        await self.limiter.acquire()
        logger.debug(f"[{self.name}] GET -> {url}")

        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.get(url, headers=self._headers()) as response:

                    if response.status == 200:
                        return await response.json(content_type=None)

                    elif response.status == 429 and retry_on_429:
                        retry_after = self._retry_after(response.headers.get("Retry-After"))
                        logger.warning(f"[{self.name}] 429 recebido. Nova tentativa em {retry_after}s")
                        await asyncio.sleep(retry_after)
                        return await self._request(url, retry_on_429=False)

                    elif response.status == 403:
                        logger.error(f"[{self.name}] ERRO 403: API Key inválida ou expirada.")
                        return None

                    elif response.status == 404:
                        return None

                    else:
                        logger.warning(f"[{self.name}] Erro {response.status}: {url}")
                        return None

        except asyncio.TimeoutError:
            logger.warning(f"[{self.name}] Timeout em {url}")
            return None
        except aiohttp.ClientError as e:
            logger.error(f"[{self.name}] Falha de conexão em {url}: {e}")
            return None

    @staticmethod
    def _retry_after(value) -> float:
        try:
            return max(float(value), 0.0)
        except (TypeError, ValueError):
            return 2.0
