import os
import tempfile

import pytest

# Banco isolado para os testes: precisa existir antes de importar grnds_bot
_DB_DIR = tempfile.mkdtemp(prefix="grnds_test_")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_DB_DIR, 'test.sqlite')}"

from grnds_bot.database.config import engine, reset_db  # noqa: E402
from grnds_bot.services.reconciliation import PlayerRankState  # noqa: E402


@pytest.fixture
async def db():
    await reset_db()
    yield
    # Conexões do pool ficam presas ao event loop do teste
    await engine.dispose()


class FakeNotifier:
    def __init__(self, fail=False):
        self.events = []
        self.fail = fail

    async def notify(self, event):
        self.events.append(event)
        if self.fail:
            raise RuntimeError("discord fora do ar")


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def ranked():
    """Atalho para montar um PlayerRankState a partir do MMR."""
    def _make(game, mmr, peak=0):
        return PlayerRankState.from_mmr(game, mmr, peak)
    return _make


@pytest.fixture
def failing_notifier():
    return FakeNotifier(fail=True)
