import logging
import unicodedata
import discord
from discord.ext import commands

from grnds_bot import config
from grnds_bot.database.repositories import PlayerRepository
from grnds_bot.services.ladder import PLACEMENT_CAP, RANKS

logger = logging.getLogger("auth")

VALORANT_REGIONS = ("na", "eu", "ap", "kr", "latam", "br")


class Auth(commands.Cog):
    def __init__(self, bot: commands.Bot):
        self.bot = bot

    @property
    def rank_service(self):
        return self.bot.rank_service

    # Remove caracteres invisíveis (problema comum vindo de celular)
    @staticmethod
    def remove_invisible(text: str):
        if not text:
            return text
        return "".join(c for c in text if unicodedata.category(c) != "Cf")

    @staticmethod
    def parse_riot_id(args: str):
        """'Nome Com Espaço#TAG [região]' -> (nome, tag, região)"""
        cleaned = Auth.remove_invisible(args).strip()
        region = config.VALORANT_DEFAULT_REGION

        parts = cleaned.rsplit(" ", 1)
        if len(parts) == 2 and parts[1].lower() in VALORANT_REGIONS and "#" in parts[0]:
            cleaned, region = parts[0], parts[1].lower()

        if "#" not in cleaned:
            return None
        name, tag = cleaned.rsplit("#", 1)
        name, tag = name.strip(), tag.strip()
        if not name or not tag:
            return None
        return name, tag, region

    def placement_embed(self, title: str, outcome, source_label: str):
        embed = discord.Embed(title=title, color=0x00ff00)
        embed.add_field(name="Rank no jogo", value=source_label, inline=True)
        embed.add_field(name="Rank GRNDS", value=f"**{outcome.state.rank}** ({outcome.state.mmr} MMR)", inline=True)
        if outcome.discord_state:
            embed.add_field(name="Rank no Discord", value=outcome.discord_state.rank, inline=True)
        if not outcome.changed:
            embed.set_footer(text="Seu MMR atual já era maior e foi mantido.")
        else:
            embed.set_footer(text=f"Colocação inicial limitada a {PLACEMENT_CAP} MMR. Suba jogando as partidas!")
        return embed

    # --- VALORANT ---
    @commands.command(name="valorant")
    async def valorant(self, ctx, *, args: str = None):
        """
        Uso: .valorant Nome#TAG [região]
        Ex: .valorant Tenz#0505 na
        """
        parsed = self.parse_riot_id(args) if args else None
        if not parsed:
            return await ctx.reply("❌ Uso: `.valorant Nome#TAG [região]`")
        name, tag, region = parsed

        async with ctx.typing():
            account = await self.bot.valorant_api.get_account(name, tag)
            if not account:
                return await ctx.reply(f"❌ Conta **{name}#{tag}** não encontrada.")

            region = (account.get('region') or region).lower()
            puuid = account['puuid']
            current = await self.bot.valorant_api.get_mmr(region, puuid)

            history = []
            if current is None or current.in_placements:
                history = await self.bot.valorant_api.get_mmr_history(region, puuid)

            await PlayerRepository.link_valorant(ctx.author.id, ctx.author.display_name, account, region)
            outcome = await self.rank_service.place_valorant(ctx.author.id, current, history)

        if outcome.requires_manual_rank:
            return await ctx.reply(
                f"🔗 Conta **{name}#{tag}** vinculada, mas você ainda não tem rank no Valorant.\n"
                f"Informe seu rank com `.rank_manual valorant <rank>` (ex: `Gold 2`)."
            )

        label = current.tier_name if current and not current.is_unrated else "Histórico ranqueado"
        await ctx.reply(embed=self.placement_embed(f"✅ {name}#{tag} vinculado!", outcome, label))

    @commands.command(name="atualizar")
    async def atualizar(self, ctx):
        """Atualiza o rank do Valorant (só sobe, nunca rebaixa)."""
        player = await PlayerRepository.get_player_by_discord_id(ctx.author.id)
        if not player or not player.riot_puuid:
            return await ctx.reply("🛑 Vincule sua conta com `.valorant Nome#TAG` primeiro.")

        async with ctx.typing():
            region = player.riot_region or config.VALORANT_DEFAULT_REGION
            current = await self.bot.valorant_api.get_mmr(region, player.riot_puuid)
            history = []
            if current is None or current.in_placements:
                history = await self.bot.valorant_api.get_mmr_history(region, player.riot_puuid)
            plan = await self.rank_service.refresh_valorant(ctx.author.id, current, history)

        if plan is None:
            return await ctx.reply("❌ Jogador não encontrado.")
        if plan.boosted:
            await ctx.reply(f"🚀 Rank atualizado para **{plan.state.rank}** ({plan.state.mmr} MMR) com base no seu Valorant ({plan.valorant_rank}).")
        elif plan.changed:
            await ctx.reply(f"✅ Colocado em **{plan.state.rank}** ({plan.state.mmr} MMR).")
        else:
            await ctx.reply(f"ℹ️ Valorant: {plan.valorant_rank}. Seu rank continua **{plan.state.rank}** ({plan.state.mmr} MMR).")

    # --- MARVEL RIVALS ---
    @commands.command(name="marvel")
    async def marvel(self, ctx, *, query: str = None):
        """Uso: .marvel <UID ou nick>"""
        if not query:
            return await ctx.reply("❌ Uso: `.marvel <UID ou nick>`")
        query = self.remove_invisible(query).strip()

        async with ctx.typing():
            uid, username = query, query
            if not query.isdigit():
                found = await self.bot.marvel_api.find_player(query)
                if not found:
                    return await ctx.reply(f"❌ Jogador **{query}** não encontrado no Marvel Rivals.")
                uid, username = found['uid'], found['username']

            stats = await self.bot.marvel_api.get_player_stats(uid)
            if stats is None:
                return await ctx.reply("❌ Não foi possível buscar as estatísticas. Tente novamente mais tarde.")

            await PlayerRepository.link_marvel(ctx.author.id, ctx.author.display_name, uid, username)
            outcome = await self.rank_service.verify_marvel(ctx.author.id, stats)

        if outcome.requires_manual_rank:
            return await ctx.reply(
                f"🔗 Conta **{username}** vinculada, mas o rank não veio na API.\n"
                f"Informe seu rank com `.rank_manual marvel <rank>` (ex: `Diamond 2`)."
            )
        await ctx.reply(embed=self.placement_embed(f"✅ {username} vinculado!", outcome, outcome.canonical.source_rank))

    # --- RANK MANUAL ---
    @commands.command(name="rank_manual")
    async def rank_manual(self, ctx, jogo: str = None, *, rank: str = None):
        """Uso: .rank_manual <valorant|marvel> <rank>"""
        if not jogo or not rank:
            return await ctx.reply("❌ Uso: `.rank_manual <valorant|marvel> <rank>`")
        try:
            game = config.parse_game(jogo)
        except ValueError:
            return await ctx.reply("❌ Jogo inválido. Use `valorant` ou `marvel`.")

        player = await PlayerRepository.get_player_by_discord_id(ctx.author.id)
        linked = player and (player.riot_puuid if game == "valorant" else player.marvel_uid)
        if not linked:
            return await ctx.reply("🛑 Vincule a conta do jogo primeiro (`.valorant` ou `.marvel`).")

        outcome = await self.rank_service.set_manual_rank(ctx.author.id, game, rank)
        if outcome.status == "INVALID_RANK":
            names = ", ".join(r.name for r in RANKS)
            return await ctx.reply(f"❌ Rank inválido. Use o rank do jogo (ex: `Gold 2`) ou um destes: {names}")
        await ctx.reply(embed=self.placement_embed("✅ Rank registrado!", outcome, outcome.canonical.source_rank))

    # --- PREFERÊNCIA DE CARGO ---
    @commands.command(name="modo")
    async def modo(self, ctx, modo: str = None, jogo: str = None):
        """
        Uso: .modo highest | .modo primary <valorant|marvel>
        highest: cargo pelo maior rank entre os jogos.
        primary: cargo pelo jogo principal.
        """
        modo = (modo or "").lower()
        if modo not in config.ROLE_MODES:
            return await ctx.reply("❌ Uso: `.modo highest` ou `.modo primary <valorant|marvel>`")

        primary = None
        if jogo:
            try:
                primary = config.parse_game(jogo)
            except ValueError:
                return await ctx.reply("❌ Jogo inválido. Use `valorant` ou `marvel`.")

        status, discord_state = await self.rank_service.set_role_mode(ctx.author.id, modo, primary)
        if status == "NOT_FOUND":
            return await ctx.reply("🛑 Você ainda não está registrado.")

        msg = f"✅ Modo de cargo: **{modo}**"
        if primary:
            msg += f" (jogo principal: {primary})"
        if discord_state:
            msg += f"\nRank no Discord: **{discord_state.rank}** ({discord_state.mmr} MMR)"
        await ctx.reply(msg)


async def setup(bot: commands.Bot):
    await bot.add_cog(Auth(bot))
