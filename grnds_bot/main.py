import discord
import os
import asyncio
import logging
import sys
from discord.ext import commands
from dotenv import load_dotenv

# Carregamento de variáveis de ambiente
load_dotenv()

# --- Configuração de Log ---
logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"),
                    format='%(levelname)s:%(name)s:%(message)s')
logger = logging.getLogger("main")
# --------------------------

from grnds_bot import config
from grnds_bot.services.rate_limiter import SlidingWindowLimiter
from grnds_bot.services.valorant_api import ValorantAPI
from grnds_bot.services.marvel_api import MarvelRivalsAPI
from grnds_bot.services.rank_updates import RankUpdateService

COGS_DIR = os.path.join(os.path.dirname(__file__), "cogs")

# Intents: conteúdo das mensagens (comandos com prefixo) e membros (troca de cargos)
intents = discord.Intents.default()
intents.message_content = True
intents.members = True

class RobustBot(commands.Bot):
    def __init__(self):
        super().__init__(
            command_prefix=config.COMMAND_PREFIX,
            intents=intents,
            help_command=None,
            application_id=config.APP_ID
        )
        # Um limitador por provedor, compartilhado pelos comandos e pelo loop de refresh
        self.valorant_api = ValorantAPI(
            limiter=SlidingWindowLimiter(config.API_RATE_LIMIT, config.API_RATE_WINDOW)
        )
        self.marvel_api = MarvelRivalsAPI(
            limiter=SlidingWindowLimiter(config.API_RATE_LIMIT, config.API_RATE_WINDOW)
        )
        # O notifier (cargos/avisos) é plugado pela cog de tracking
        self.rank_service = RankUpdateService()

    async def setup_hook(self):
        try:
            from grnds_bot.database.config import init_db
        except ImportError:
            logger.error("Falha ao importar init_db. Verifique o path de grnds_bot.database.config.")
            sys.exit(1)

        logger.info("--- Iniciando Setup ---")
        await init_db()
        logger.info("Banco de Dados conectado.")

        # Carregar Cogs
        for filename in sorted(os.listdir(COGS_DIR)):
            if filename.endswith(".py") and filename != "__init__.py":
                try:
                    await self.load_extension(f"grnds_bot.cogs.{filename[:-3]}")
                    logger.info(f"Cog carregada: {filename}")
                except Exception as e:
                    logger.error(f"FALHA ao carregar {filename}: {e}")

        logger.info("--- Setup Finalizado ---")

    async def on_ready(self):
        logger.info(f'Bot Online! Logado como: {self.user}')

    async def on_command_error(self, ctx, error):
        if isinstance(error, commands.CommandNotFound):
            return
        if isinstance(error, (commands.BadArgument, commands.MissingRequiredArgument)):
            await ctx.reply(f"❌ Argumento inválido. Confira o uso de `{ctx.prefix}{ctx.command}`.")
            return
        if isinstance(error, commands.MissingPermissions):
            await ctx.reply("⛔ Apenas Administradores.")
            return
        logger.error(f"Erro no comando {ctx.command}: {error}")
        await ctx.reply("❌ Ocorreu um erro inesperado. Tente novamente.")

async def main():
    bot = RobustBot()
    token = config.DISCORD_TOKEN

    if not token:
        logger.error("DISCORD_TOKEN não encontrado nas variáveis de ambiente (.env).")
        return

    async with bot:
        await bot.start(token)

def run():
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Bot encerrado via interrupção manual.")
    except Exception as e:
        logger.critical(f"Erro fatal no ciclo de vida do bot: {e}")

if __name__ == "__main__":
    run()
