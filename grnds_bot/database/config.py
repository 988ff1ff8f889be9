import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import DeclarativeBase
from dotenv import load_dotenv

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./data/database.sqlite")


def _ensure_sqlite_dir(url: str):
    # O SQLite não cria a pasta do arquivo sozinho
    parsed = make_url(url)
    if parsed.get_backend_name() == "sqlite" and parsed.database and parsed.database != ":memory:":
        folder = os.path.dirname(parsed.database)
        if folder:
            os.makedirs(folder, exist_ok=True)


_ensure_sqlite_dir(DATABASE_URL)

engine = create_async_engine(
    DATABASE_URL,
    echo=False,
    future=True
)

async_session = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False
)

class Base(DeclarativeBase):
    pass

async def init_db():
    import grnds_bot.database.models  # noqa: F401 (registra as tabelas no metadata)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

async def reset_db():
    """Apaga e recria todas as tabelas (force_tables.py e testes)."""
    import grnds_bot.database.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

@asynccontextmanager
async def get_session() -> AsyncGenerator[AsyncSession, None]:
    async with async_session() as session:
        try:
            yield session
            # Persiste as alterações no banco de dados se não houver exceção.
            await session.commit()
        except Exception:
            # Desfaz as alterações se houver qualquer exceção.
            await session.rollback()
            raise
