import time
import asyncio
import logging
from collections import deque

logger = logging.getLogger("rate_limiter")


class SlidingWindowLimiter:
    """
    Janela deslizante: no máximo `max_requests` chamadas a cada `window` segundos.
    Uma instância por provedor, passada para o cliente da API que a usa.
    """

    BUFFER = 0.1

    def __init__(self, max_requests: int = 30, window: float = 60.0, clock=time.monotonic, sleep=asyncio.sleep):
        if max_requests < 1:
            raise ValueError("max_requests precisa ser >= 1")
        self.max_requests = max_requests
        self.window = float(window)
        self._clock = clock
        self._sleep = sleep
        self._timestamps = deque()
        self._lock = asyncio.Lock()

    def _prune(self, now: float):
        while self._timestamps and now - self._timestamps[0] >= self.window:
            self._timestamps.popleft()

    @property
    def in_window(self) -> int:
        self._prune(self._clock())
        return len(self._timestamps)

    async def acquire(self):
        """Registra uma requisição, esperando se a janela estiver cheia."""
        async with self._lock:
            while True:
                now = self._clock()
                self._prune(now)
                if len(self._timestamps) < self.max_requests:
                    self._timestamps.append(now)
                    return

                wait = self.window - (now - self._timestamps[0]) + self.BUFFER
                logger.warning(f"Limite de {self.max_requests} req/{self.window:.0f}s atingido. Aguardando {wait:.1f}s")
                await self._sleep(wait)
