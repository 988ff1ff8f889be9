import discord
import asyncio
import logging
import random
from discord.ext import commands, tasks

from grnds_bot import config
from grnds_bot.database.repositories import PlayerRepository, GuildRepository
from grnds_bot.services.ladder import RANKS_BY_NAME

logger = logging.getLogger("tracking")

GAME_LABELS = {"valorant": "Valorant", "marvel_rivals": "Marvel Rivals"}


class RoleNotifier:
    """
    Recebe os eventos RankChanged do RankUpdateService: troca o cargo de rank
    do membro (cargos com o mesmo nome dos ranks da ladder) e avisa no canal
    de tracking configurado na guilda.
    """

    promotions = [
        "🚀 **{user}** acabou de subir para **{rank}** ({game})! Ninguém segura!",
        "🎉 Parabéns **{user}**! Alcançou **{rank}** ({game}). O topo é o limite.",
        "🔥 **{user}** está smurfando? Subiu para **{rank}** ({game}).",
        "📈 **{user}** promoveu para **{rank}** ({game}). Respeita!",
        "👑 **{user}** atingiu **{rank}** ({game}). Jogou muito!"
    ]

    demotions = [
        "📉 **{user}** caiu para **{rank}** ({game}). F no chat.",
        "💀 **{user}** foi rebaixado para **{rank}** ({game}). A fila não perdoa.",
        "⚠️ **{user}** demoveu para **{rank}** ({game}). Hora de rever o replay.",
        "😭 **{user}** caiu para **{rank}** ({game}). Voltaremos mais fortes.",
        "📉 Alerta de queda! **{user}** agora é **{rank}** ({game})."
    ]

    def __init__(self, bot: commands.Bot):
        self.bot = bot

    def format_message(self, event, user: str) -> str:
        templates = self.promotions if event.promoted else self.demotions
        return random.choice(templates).format(user=user, rank=event.new_rank,
                                               game=GAME_LABELS.get(event.game, event.game))

    async def notify(self, event):
        for guild in self.bot.guilds:
            member = guild.get_member(event.player_id)
            if member is None:
                continue
            await self.swap_rank_role(guild, member, event.new_rank)

            channel_id = await GuildRepository.get_tracking_channel(guild.id)
            channel = self.bot.get_channel(channel_id) if channel_id else None
            if channel:
                await channel.send(self.format_message(event, member.display_name))

    async def swap_rank_role(self, guild: discord.Guild, member: discord.Member, new_rank: str):
        old_roles = [r for r in member.roles if r.name in RANKS_BY_NAME and r.name != new_rank]
        new_role = discord.utils.get(guild.roles, name=new_rank)

        try:
            if old_roles:
                await member.remove_roles(*old_roles, reason="Mudança de rank GRNDS")
            if new_role and new_role not in member.roles:
                await member.add_roles(new_role, reason="Mudança de rank GRNDS")
        except discord.Forbidden:
            logger.warning(f"Sem permissão para trocar cargos em {guild.name} ({member.display_name}).")
        except discord.HTTPException as e:
            logger.error(f"Erro ao trocar cargo de {member.display_name}: {e}")


class RankingTracking(commands.Cog):
    def __init__(self, bot: commands.Bot):
        self.bot = bot
        self.notifier = RoleNotifier(bot)
        # Toda mudança de rank (partida, verificação, refresh) passa a trocar cargos
        bot.rank_service.notifier = self.notifier

        self.check_ranks_loop.change_interval(minutes=config.RANK_REFRESH_MINUTES)
        # Inicia o loop automático ao carregar a Cog
        self.check_ranks_loop.start()

    def cog_unload(self):
        self.check_ranks_loop.cancel()
        if self.bot.rank_service.notifier is self.notifier:
            self.bot.rank_service.notifier = None

    async def refresh_player(self, player):
        """Busca o rank atual no Valorant e aplica o refresh (só sobe)."""
        api = self.bot.valorant_api
        region = player.riot_region or config.VALORANT_DEFAULT_REGION

        current = await api.get_mmr(region, player.riot_puuid)
        history = []
        if current is None or current.in_placements:
            history = await api.get_mmr_history(region, player.riot_puuid)

        return await self.bot.rank_service.refresh_valorant(player.discord_id, current, history)

    # --- LOOP AUTOMÁTICO ---
    @tasks.loop(minutes=30)
    async def check_ranks_loop(self):
        await self.bot.wait_until_ready()

        players = await PlayerRepository.get_all_players_with_valorant()
        logger.info(f"Refresh de Valorant: {len(players)} jogadores.")

        boosted = 0
        for p in players:
            try:
                plan = await self.refresh_player(p)
                if plan and plan.boosted:
                    boosted += 1
            except Exception as e:
                logger.error(f"Erro no refresh de {p.display_name}: {e}")
            # O limitador do cliente já segura a taxa; isso só evita rajadas
            await asyncio.sleep(0.5)

        logger.info(f"Refresh de Valorant finalizado. {boosted} jogadores subiram.")

    @check_ranks_loop.error
    async def check_ranks_loop_error(self, error):
        logger.error(f"Loop de refresh interrompido: {error}")

    # --- COMANDOS DE CONFIGURAÇÃO ---
    @commands.command(name="config_aviso")
    @commands.has_permissions(administrator=True)
    async def config_aviso(self, ctx, canal: discord.TextChannel = None):
        """Define o canal onde saem os avisos de promoção/rebaixamento."""
        target = canal or ctx.channel
        await GuildRepository.set_tracking_channel(ctx.guild.id, target.id)
        await ctx.reply(f"✅ Os avisos de rank serão enviados em {target.mention}.")

    @commands.command(name="forcar_check")
    @commands.has_permissions(administrator=True)
    async def forcar_check(self, ctx):
        """Roda o refresh de ranks do Valorant agora."""
        await ctx.reply("🔄 Forçando verificação de ranks...")
        if self.check_ranks_loop.is_running():
            self.check_ranks_loop.restart()
        else:
            self.check_ranks_loop.start()


async def setup(bot: commands.Bot):
    await bot.add_cog(RankingTracking(bot))
