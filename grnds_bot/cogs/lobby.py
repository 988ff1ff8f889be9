import logging
import random
import discord
from discord.ext import commands

from grnds_bot import config
from grnds_bot.database.repositories import PlayerRepository, MatchRepository
from grnds_bot.services.matchmaker import MatchMaker
from grnds_bot.services.skill_gap import analyze_skill_gap
from grnds_bot.utils.views import BaseInteractiveView, AdminOnlyView, format_team

logger = logging.getLogger("lobby")

GAME_LABELS = {"valorant": "Valorant", "marvel_rivals": "Marvel Rivals"}


# --- VIEW 1: LOBBY ---
class LobbyView(BaseInteractiveView):
    def __init__(self, lobby_cog, disabled=False):
        # Sem timeout: dura a vida útil da mensagem principal
        super().__init__(timeout=None)
        self.lobby_cog = lobby_cog
        if disabled:
            self.clear_items()

    @discord.ui.button(label="Entrar", style=discord.ButtonStyle.success, emoji="⚔️", custom_id="lobby_join")
    async def join_button(self, interaction: discord.Interaction, button: discord.ui.Button):
        await self.lobby_cog.process_join(interaction)

    @discord.ui.button(label="Sair", style=discord.ButtonStyle.secondary, emoji="🏃", custom_id="lobby_leave")
    async def leave_button(self, interaction: discord.Interaction, button: discord.ui.Button):
        await self.lobby_cog.process_leave(interaction)

    @discord.ui.button(label="Resetar Fila (Admin)", style=discord.ButtonStyle.secondary, emoji="🗑️", custom_id="lobby_reset", row=1)
    async def reset_button(self, interaction: discord.Interaction, button: discord.ui.Button):
        if not interaction.user.guild_permissions.administrator:
            return await interaction.response.send_message("⛔ Apenas Administradores podem resetar a fila.", ephemeral=True)

        await self.lobby_cog.reset_lobby_state()
        await interaction.response.send_message("✅ Fila resetada. Lobby reaberto.", ephemeral=True)


# --- VIEW 2: MODO DE BALANCEAMENTO ---
class ModeSelectView(AdminOnlyView):
    def __init__(self, lobby_cog, players):
        super().__init__(timeout=900)
        self.lobby_cog = lobby_cog
        self.players = players

    async def _start(self, interaction: discord.Interaction, mode: str):
        await interaction.response.edit_message(view=None)
        self.stop()
        await self.lobby_cog.start_match(interaction.channel, interaction.guild.id, self.players, mode)

    @discord.ui.button(label="Auto-Balanceado", style=discord.ButtonStyle.primary, emoji="⚖️")
    async def auto_balance(self, interaction: discord.Interaction, button: discord.ui.Button):
        await self._start(interaction, "auto")

    @discord.ui.button(label="Capitães", style=discord.ButtonStyle.secondary, emoji="👑")
    async def captains(self, interaction: discord.Interaction, button: discord.ui.Button):
        await self._start(interaction, "captain")

    @discord.ui.button(label="Cancelar (Admin)", style=discord.ButtonStyle.secondary, emoji="✖️", row=2)
    async def cancel_setup(self, interaction: discord.Interaction, button: discord.ui.Button):
        await interaction.response.edit_message(content="❌ Setup cancelado e fila reaberta.", embed=None, view=None)
        self.stop()
        await self.lobby_cog.reset_lobby_state()


# --- LOBBY COG ---
class Lobby(commands.Cog):
    def __init__(self, bot: commands.Bot):
        self.bot = bot
        self.queue = []
        self.game = config.DEFAULT_PRIMARY_GAME
        self.lobby_message: discord.Message = None
        self.lobby_locked = False
        self.queue_limit = config.QUEUE_SIZE
        self.rng = random.Random()

    @property
    def rank_service(self):
        return self.bot.rank_service

    # --- ESTADO DA FILA ---
    @staticmethod
    def queue_entry(player, game: str, display_name: str = None):
        """Dados do jogador na fila, com o rank do jogo do lobby. None se não ranqueado nele."""
        state = PlayerRepository.get_rank_state(player, game)
        if state is None:
            return None
        return {
            'id': player.discord_id,
            'name': display_name or player.display_name,
            'rank': state.rank,
            'rank_value': state.rank_value,
            'mmr': state.mmr,
        }

    def get_queue_embed(self, locked=False):
        count = len(self.queue)
        game_label = GAME_LABELS[self.game]

        if locked:
            embed = discord.Embed(title=f"🔒 LOBBY FECHADO | {game_label}", description="Aguarde o Admin configurar a partida...", color=0x000000)
            return embed

        if count == 0:
            desc = "A fila está vazia."
        else:
            desc = "\n".join(f"`{i+1}.` **{p['name']}** [{p['rank']}] ({p['mmr']})" for i, p in enumerate(self.queue))

        embed = discord.Embed(title=f"🏆 Fila {game_label} ({count}/{self.queue_limit})", description=desc, color=0x3498db)
        embed.set_footer(text="Clique para entrar • Requer conta vinculada (.valorant / .marvel)")
        return embed

    async def update_lobby_message(self, interaction: discord.Interaction = None, locked=False):
        if locked:
            self.lobby_locked = True

        embed = self.get_queue_embed(locked=locked)
        view = LobbyView(self, disabled=locked)

        try:
            if interaction and not interaction.response.is_done():
                await interaction.response.edit_message(embed=embed, view=view)
            elif self.lobby_message:
                await self.lobby_message.edit(embed=embed, view=view)
        except discord.HTTPException as e:
            logger.warning(f"Falha ao atualizar a mensagem do lobby: {e}")

    async def reset_lobby_state(self):
        self.queue = []
        self.lobby_locked = False
        await self.update_lobby_message()

    async def process_join(self, interaction: discord.Interaction):
        if self.lobby_locked or len(self.queue) >= self.queue_limit:
            return await interaction.response.send_message("Fila cheia!", ephemeral=True)
        user = interaction.user
        if any(p['id'] == user.id for p in self.queue):
            return await interaction.response.send_message("Já está na fila.", ephemeral=True)

        player = await PlayerRepository.get_player_by_discord_id(user.id)
        entry = self.queue_entry(player, self.game, user.display_name) if player else None
        if not entry:
            return await interaction.response.send_message(
                f"🛑 Você não tem rank em {GAME_LABELS[self.game]}. Use `.valorant`, `.marvel` ou `.rank_manual` primeiro.",
                ephemeral=True
            )

        self.queue.append(entry)

        if len(self.queue) >= self.queue_limit:
            await self.update_lobby_message(interaction, locked=True)
            await self.prompt_game_mode(interaction.channel)
        else:
            await self.update_lobby_message(interaction)

    async def process_leave(self, interaction: discord.Interaction):
        user = interaction.user
        self.queue = [p for p in self.queue if p['id'] != user.id]
        await self.update_lobby_message(interaction)

    async def prompt_game_mode(self, channel):
        players_snapshot = self.queue.copy()

        embed = discord.Embed(title="⚡ Painel de Controle", description="O Lobby encheu! Escolha o modo:", color=0xffd700)
        embed.add_field(name="Jogadores", value=", ".join(f"**{p['name']}**" for p in players_snapshot), inline=False)

        gap = analyze_skill_gap(players_snapshot)
        if gap.has_warning:
            embed.add_field(name="Atenção", value=gap.message, inline=False)

        view = ModeSelectView(self, players_snapshot)
        view.message = await channel.send(content="||@here|| 🔔 **Lobby Pronto!**", embed=embed, view=view)

    async def start_match(self, channel, guild_id: int, players: list, mode: str):
        team_a, team_b = MatchMaker.balance_teams(players, mode=mode, rng=self.rng)

        if mode == "captain":
            if team_a.players: team_a.players[0] = {**team_a.players[0], 'is_captain': True}
            if team_b.players: team_b.players[0] = {**team_b.players[0], 'is_captain': True}

        match_id = await MatchRepository.create_match(guild_id, self.game, team_a.players, team_b.players, balance_mode=mode)
        logger.info(f"Partida #{match_id} criada ({self.game}, modo {mode}) com {len(players)} jogadores")

        title_mode = "Balanceada" if mode == "auto" else "Capitães"
        embed = discord.Embed(title=f"⚔️ PARTIDA #{match_id} ({title_mode})", color=0x2ecc71)
        embed.add_field(name=f"🅰️ Time A (média {team_a.average_rank})", value=format_team(team_a.players), inline=True)
        embed.add_field(name=f"🅱️ Time B (média {team_b.average_rank})", value=format_team(team_b.players), inline=True)
        embed.add_field(name="\u200b", value="\u200b", inline=False)
        embed.add_field(
            name="📢 Instruções",
            value=f"ID: **{match_id}**\n`.kda {match_id} @jogador K/D/A [mvp]`\n`.resultado {match_id} A/B`",
            inline=False
        )
        await channel.send(embed=embed)

        self.queue = []
        self.lobby_locked = False
        await self.update_lobby_message()
        return match_id

    # --- COMANDOS ---
    @commands.command(name="fila")
    async def fila(self, ctx, jogo: str = None):
        if self.lobby_locked:
            return await ctx.reply("⚠️ Um lobby já está sendo configurado. Aguarde ou cancele o atual.")

        if jogo:
            try:
                game = config.parse_game(jogo)
            except ValueError:
                return await ctx.reply("❌ Jogo inválido. Use `valorant` ou `marvel`.")
            if self.queue and game != self.game:
                return await ctx.reply(f"⚠️ Já existe uma fila de {GAME_LABELS[self.game]} aberta.")
            self.game = game

        if self.lobby_message:
            try: await self.lobby_message.delete()
            except discord.HTTPException: pass

        self.lobby_message = await ctx.send(embed=self.get_queue_embed(), view=LobbyView(self))

    @commands.command(name="sair")
    async def sair(self, ctx):
        before = len(self.queue)
        self.queue = [p for p in self.queue if p['id'] != ctx.author.id]
        if len(self.queue) == before:
            return await ctx.reply("Você não está na fila.")
        await self.update_lobby_message()
        await ctx.reply("🏃 Você saiu da fila.")

    @commands.command(name="status")
    async def status(self, ctx):
        embed = self.get_queue_embed(locked=self.lobby_locked)
        gap = analyze_skill_gap(self.queue)
        if gap.has_warning:
            embed.add_field(name="Atenção", value=gap.message, inline=False)
        await ctx.reply(embed=embed)

    @commands.command(name="forcar_times")
    @commands.has_permissions(administrator=True)
    async def forcar_times(self, ctx, modo: str = None):
        modo = (modo or config.DEFAULT_BALANCE_MODE).lower()
        if modo not in config.BALANCE_MODES:
            return await ctx.reply("❌ Modo inválido. Use `auto` ou `captain`.")
        if len(self.queue) < 2:
            return await ctx.reply("❌ São necessários pelo menos 2 jogadores na fila.")

        players = self.queue.copy()
        self.lobby_locked = True
        await self.start_match(ctx.channel, ctx.guild.id, players, modo)

    @commands.command(name="kda")
    @commands.has_permissions(administrator=True)
    async def kda(self, ctx, match_id: int = None, membro: discord.Member = None, placar: str = None, mvp: str = None):
        if not match_id or not membro or not placar:
            return await ctx.reply("❌ Uso: `.kda <ID> @jogador K/D/A [mvp]`")

        try:
            kills, deaths, assists = (int(x) for x in placar.split("/"))
        except ValueError:
            return await ctx.reply("❌ Placar inválido. Use o formato `K/D/A`, ex: `20/10/5`.")
        if min(kills, deaths, assists) < 0:
            return await ctx.reply("❌ Valores negativos não são permitidos.")

        is_mvp = (mvp or "").lower() == "mvp"
        status = await MatchRepository.record_stats(match_id, membro.id, kills, deaths, assists, is_mvp)

        if status == "SUCCESS":
            star = " ⭐ MVP" if is_mvp else ""
            await ctx.reply(f"📝 Partida #{match_id}: **{membro.display_name}** {kills}/{deaths}/{assists}{star}")
        elif status == "NOT_IN_MATCH": await ctx.reply(f"❌ {membro.display_name} não jogou a partida #{match_id}.")
        elif status == "NOT_ACTIVE": await ctx.reply(f"🔒 Partida #{match_id} já encerrada.")
        else: await ctx.reply("❌ Partida não encontrada.")

    @commands.command(name="resultado")
    @commands.has_permissions(administrator=True)
    async def resultado(self, ctx, match_id: int = None, winner: str = None):
        if not match_id or not winner: return await ctx.reply("❌ Uso: `.resultado <ID> <A/B>`")

        winner = winner.upper()
        if winner not in ['A', 'B']: return await ctx.reply("❌ Lado Inválido. Use A ou B.")

        try:
            outcome = await self.rank_service.process_match(match_id, winner)
        except Exception as e:
            logger.error(f"Erro ao processar a partida #{match_id}: {e}")
            return await ctx.reply("❌ Erro ao processar o resultado. Tente novamente.")

        if outcome.status == "SUCCESS":
            embed = discord.Embed(title=f"✅ Partida #{match_id} Finalizada!", description=f"Vencedor: **TIME {winner}**", color=0x2ecc71)
            lines = []
            for r in sorted(outcome.results, key=lambda x: x['delta'], reverse=True):
                arrow = "🔼" if r['delta'] > 0 else "🔽"
                rank_note = f" • {r['old_rank']} → **{r['new_rank']}**" if r['old_rank'] != r['new_rank'] else ""
                lines.append(f"{arrow} {r['name']}: {r['mmr_before']} → {r['mmr_after']} ({r['delta']:+d}){rank_note}")
            embed.add_field(name="MMR", value="\n".join(lines) or "Sem jogadores.", inline=False)
            embed.set_footer(text="Use .porque para ver o cálculo do seu MMR")
            await ctx.reply(embed=embed)
        elif outcome.status == "ALREADY_FINISHED": await ctx.reply(f"🔒 Partida #{match_id} já finalizada.")
        elif outcome.status == "ALREADY_CANCELLED": await ctx.reply(f"🚫 Partida #{match_id} foi anulada.")
        else: await ctx.reply(f"❌ Partida #{match_id} não encontrada.")

    @commands.command(name="cancelar")
    @commands.has_permissions(administrator=True)
    async def cancelar(self, ctx, match_id: int = None):
        if not match_id: return await ctx.reply("❌ Uso: `.cancelar <ID>`")

        status = await MatchRepository.cancel_match(match_id)
        if status == "SUCCESS": await ctx.reply(f"🚫 Partida **#{match_id}** ANULADA.")
        elif status == "NOT_ACTIVE": await ctx.reply("❌ Partida não ativa.")
        else: await ctx.reply("❌ Não encontrada.")

    @commands.command(name="porque")
    async def porque(self, ctx, membro: discord.Member = None):
        """Explica o cálculo de MMR da última partida."""
        target = membro or ctx.author
        last = await MatchRepository.get_last_result(target.id)
        if not last or last['mmr_before'] is None:
            return await ctx.reply("Nenhuma partida finalizada encontrada.")

        b = MatchMaker.compute_breakdown(last['won'], last['kills'], last['deaths'], last['assists'], last['mvp'], last['mmr_before'])

        embed = discord.Embed(title=f"🧮 Por que {last['points_earned']:+d}? | Partida #{last['match_id']}", color=0x9b59b6)
        embed.add_field(name="Resultado", value="Vitória (+15)" if last['won'] else "Derrota (-8)", inline=True)
        embed.add_field(name="K/D/A", value=f"{last['kills']}/{last['deaths']}/{last['assists']}", inline=True)
        if b['fallback']:
            embed.add_field(name="Cálculo", value=f"Dados inválidos, usados os pontos base ({b['base']:+d}).", inline=False)
        else:
            steps = [
                f"K/D {b['kd']:.2f} → multiplicador x{b['multiplier']}",
                f"Bônus MVP: {b['mvp_bonus']:+d}",
                f"Pontos brutos: {b['raw']:+d}",
                f"Ajuste por MMR ({last['mmr_before']}): x{b['sticky']}",
                f"**Total: {b['delta']:+d}**",
            ]
            embed.add_field(name="Cálculo", value="\n".join(steps), inline=False)
        embed.set_footer(text=f"{last['mmr_before']} → {last['mmr_after']} MMR")
        await ctx.reply(embed=embed)


async def setup(bot: commands.Bot):
    await bot.add_cog(Lobby(bot))
