import discord
from discord.ext import commands
import logging

from grnds_bot import config

logger = logging.getLogger("admin")

GAME_LABELS = {"valorant": "Valorant", "marvel_rivals": "Marvel Rivals"}


class Admin(commands.Cog):
    def __init__(self, bot):
        self.bot = bot

    @commands.command(name="ajustar_mmr")
    @commands.has_permissions(administrator=True)
    async def ajustar_mmr(self, ctx, membro: discord.Member, jogo: str, mmr: int):
        """Uso: .ajustar_mmr @membro <valorant|marvel> <mmr>"""
        try:
            game = config.parse_game(jogo)
        except ValueError:
            return await ctx.reply("❌ Jogo inválido. Use `valorant` ou `marvel`.")
        if mmr < 0:
            return await ctx.reply("❌ O MMR não pode ser negativo.")

        status, state = await self.bot.rank_service.admin_set_mmr(membro.id, game, mmr)
        if status == "NOT_FOUND":
            return await ctx.reply(f"❌ {membro.mention} não está registrado.")

        logger.info(f"{ctx.author} ajustou o MMR de {membro} em {game} para {mmr}.")
        await ctx.reply(f"🛠️ MMR de {membro.mention} em {GAME_LABELS[game]}: **{state.mmr}** ({state.rank}).")

    @commands.command(name="resetar_pico")
    @commands.has_permissions(administrator=True)
    async def resetar_pico(self, ctx, membro: discord.Member, jogo: str):
        """Uso: .resetar_pico @membro <valorant|marvel>"""
        try:
            game = config.parse_game(jogo)
        except ValueError:
            return await ctx.reply("❌ Jogo inválido. Use `valorant` ou `marvel`.")

        status, state = await self.bot.rank_service.admin_reset_peak(membro.id, game)
        if status == "NOT_FOUND":
            return await ctx.reply(f"❌ {membro.mention} não está registrado.")
        if status == "NOT_RANKED":
            return await ctx.reply(f"❌ {membro.mention} não tem rank em {GAME_LABELS[game]}.")

        logger.info(f"{ctx.author} resetou o pico de {membro} em {game}.")
        await ctx.reply(f"🛠️ Pico de {membro.mention} em {GAME_LABELS[game]} resetado para **{state.peak_mmr}**.")


async def setup(bot):
    await bot.add_cog(Admin(bot))
