import discord
from discord.ext import commands

from grnds_bot import config
from grnds_bot.database.repositories import PlayerRepository, RankHistoryRepository
from grnds_bot.services.ladder import rank_progression
from grnds_bot.utils.views import BaseInteractiveView

GAME_LABELS = {"valorant": "Valorant", "marvel_rivals": "Marvel Rivals", None: "Discord"}

REASON_LABELS = {
    "match": "Partida",
    "verification": "Verificação",
    "manual_verification": "Rank manual",
    "valorant_refresh": "Refresh Valorant",
    "valorant_refresh_boost": "Boost Valorant",
    "admin_adjustment": "Ajuste ADM",
}

TIER_COLORS = {
    'GRNDS': 0x95a5a6,
    'BREAKPOINT': 0x3498db,
    'CHALLENGER': 0x9b59b6,
    'ABSOLUTE': 0xe67e22,
    'X': 0xffd700,
}


def tier_color(rank: str) -> int:
    family = (rank or "").split(" ")[0].upper()
    return TIER_COLORS.get(family, 0x2b2d31)


def progress_bar(progress: int, size: int = 10) -> str:
    filled = max(0, min(size, round(progress / 100 * size)))
    return "▰" * filled + "▱" * (size - filled)


# --- VIEW DE PAGINAÇÃO ---
class RankingPaginationView(BaseInteractiveView):
    def __init__(self, players, game=None, per_page=10):
        super().__init__(timeout=120) # Botões expiram em 2 minutos
        self.players = players
        self.game = game
        self.per_page = per_page
        self.current_page = 0
        self.total_pages = max(1, (len(players) + per_page - 1) // per_page)
        self.update_buttons()

    def update_buttons(self):
        self.prev_button.disabled = (self.current_page == 0)
        self.next_button.disabled = (self.current_page == self.total_pages - 1)
        self.counter_button.label = f"{self.current_page + 1}/{self.total_pages}"

    def player_line(self, p):
        if self.game:
            state = PlayerRepository.get_rank_state(p, self.game)
            return state.rank, state.mmr
        return p.discord_rank, p.current_mmr

    def create_embed(self):
        start = self.current_page * self.per_page
        batch = self.players[start:start + self.per_page]

        embed = discord.Embed(title=f"🏆 Ranking GRNDS | {GAME_LABELS[self.game]}", color=0xffd700)
        embed.description = "Classificação por **MMR** > **Vitórias**."

        lines = []
        for i, p in enumerate(batch):
            pos = start + i + 1
            if pos == 1: icon = "🥇"
            elif pos == 2: icon = "🥈"
            elif pos == 3: icon = "🥉"
            else: icon = f"`{pos}.`"

            rank, mmr = self.player_line(p)
            total = (p.wins or 0) + (p.losses or 0)
            wr = (p.wins / total * 100) if total > 0 else 0
            lines.append(
                f"{icon} **{p.display_name}** [{rank}]\n"
                f"└ **{mmr}** MMR • `{p.wins or 0}V` - `{p.losses or 0}D` ({wr:.0f}%)"
            )

        embed.add_field(name="Jogadores", value="\n".join(lines) or "Nenhum jogador nesta página.", inline=False)
        return embed

    @discord.ui.button(label="◀️", style=discord.ButtonStyle.secondary)
    async def prev_button(self, interaction: discord.Interaction, button: discord.ui.Button):
        self.current_page -= 1
        self.update_buttons()
        await interaction.response.edit_message(embed=self.create_embed(), view=self)

    @discord.ui.button(label="1/1", style=discord.ButtonStyle.gray, disabled=True)
    async def counter_button(self, interaction: discord.Interaction, button: discord.ui.Button):
        pass

    @discord.ui.button(label="▶️", style=discord.ButtonStyle.secondary)
    async def next_button(self, interaction: discord.Interaction, button: discord.ui.Button):
        self.current_page += 1
        self.update_buttons()
        await interaction.response.edit_message(embed=self.create_embed(), view=self)


class Ranking(commands.Cog):
    def __init__(self, bot: commands.Bot):
        self.bot = bot

    @staticmethod
    def _parse_game_arg(jogo: str):
        return config.parse_game(jogo) if jogo else None

    @commands.command(name="ranking", aliases=["top", "leaderboard"])
    async def ranking(self, ctx, jogo: str = None):
        """Ranking paginado (geral ou de um jogo)."""
        try:
            game = self._parse_game_arg(jogo)
        except ValueError:
            return await ctx.reply("❌ Jogo inválido. Use `valorant` ou `marvel`.")

        players = await PlayerRepository.get_ranking(game=game)
        if not players:
            embed = discord.Embed(title="🏆 Ranking GRNDS", color=0x3498db)
            embed.description = "Ninguém foi ranqueado ainda."
            return await ctx.reply(embed=embed)

        view = RankingPaginationView(players, game=game, per_page=10)
        view.message = await ctx.reply(embed=view.create_embed(), view=view)

    @commands.command(name="perfil")
    async def perfil(self, ctx, jogador: discord.Member = None):
        """Cartão do jogador: rank por jogo, rank do Discord e progresso."""
        target = jogador or ctx.author
        player = await PlayerRepository.get_player_by_discord_id(target.id)
        if not player:
            return await ctx.reply(f"❌ {target.mention} não está registrado. Use `.valorant` ou `.marvel`.")

        embed = discord.Embed(title=f"📊 {target.display_name}", color=tier_color(player.discord_rank))
        embed.set_thumbnail(url=target.display_avatar.url)

        prog = rank_progression(player.current_mmr or 0)
        if player.discord_rank_value:
            next_line = f"Próximo: {prog['next_rank']} (faltam {prog['mmr_needed']})" if prog['next_rank'] else "Topo da ladder!"
            embed.add_field(
                name="Rank no Discord",
                value=f"**{player.discord_rank}** • {player.current_mmr} MMR (pico {player.peak_mmr})\n"
                      f"{progress_bar(prog['progress'])} {prog['progress']}%\n{next_line}",
                inline=False
            )
        else:
            embed.add_field(name="Rank no Discord", value="Unranked", inline=False)

        for game in config.GAMES:
            state = PlayerRepository.get_rank_state(player, game)
            if state is None:
                value = "Não vinculado"
            else:
                value = f"**{state.rank}**\n{state.mmr} MMR (pico {state.peak_mmr})"
            if game == "valorant" and player.riot_name:
                value += f"\n`{player.riot_name}#{player.riot_tag}`"
            if game == "marvel_rivals" and player.marvel_username:
                value += f"\n`{player.marvel_username}`"
            embed.add_field(name=GAME_LABELS[game], value=value, inline=True)

        total = (player.wins or 0) + (player.losses or 0)
        wr = (player.wins / total * 100) if total > 0 else 0
        embed.add_field(name="Liga Interna", value=f"`{player.wins or 0}V` - `{player.losses or 0}D` ({wr:.0f}%)", inline=False)
        embed.set_footer(text=f"Modo de cargo: {player.role_mode} • Jogo principal: {GAME_LABELS.get(player.primary_game, player.primary_game)}")
        await ctx.reply(embed=embed)

    @commands.command(name="historico")
    async def historico(self, ctx, jogador: discord.Member = None, jogo: str = None):
        """Últimas mudanças de rank/MMR."""
        target = jogador or ctx.author
        try:
            game = self._parse_game_arg(jogo)
        except ValueError:
            return await ctx.reply("❌ Jogo inválido. Use `valorant` ou `marvel`.")

        entries = await RankHistoryRepository.get_history(target.id, game=game, limit=10)
        if not entries:
            return await ctx.reply("Nenhuma mudança de rank registrada.")

        lines = []
        for e in entries:
            diff = (e.new_mmr or 0) - (e.old_mmr or 0)
            when = e.created_at.strftime("%d/%m %H:%M") if e.created_at else "?"
            rank_txt = f"{e.old_rank or 'Unranked'} → {e.new_rank}" if e.old_rank != e.new_rank else e.new_rank
            match_txt = f" #{e.match_id}" if e.match_id else ""
            lines.append(
                f"`{when}` {REASON_LABELS.get(e.reason.value, e.reason.value)}{match_txt} "
                f"({GAME_LABELS[e.game.value]}): {e.old_mmr} → {e.new_mmr} ({diff:+d}) • {rank_txt}"
            )

        embed = discord.Embed(title=f"📜 Histórico de {target.display_name}", description="\n".join(lines), color=0x3498db)
        await ctx.reply(embed=embed)


async def setup(bot: commands.Bot):
    await bot.add_cog(Ranking(bot))
