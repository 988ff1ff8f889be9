import asyncio
import sys
from dotenv import load_dotenv

load_dotenv()

from grnds_bot.database.config import init_db, reset_db


async def force_create_tables(reset: bool = False):
    if reset:
        print("⚠️ Apagando e recriando TODAS as tabelas...")
        await reset_db()
        print("✅ Banco zerado. Todos os jogadores precisam verificar as contas de novo.")
        return

    print("🔄 Verificando esquema do banco de dados...")
    # create_all cria APENAS as tabelas que não existem, sem apagar dados.
    await init_db()
    print("✅ Tabelas sincronizadas com sucesso!")

if __name__ == "__main__":
    asyncio.run(force_create_tables(reset="--reset" in sys.argv))
