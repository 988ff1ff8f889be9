import logging
import discord

logger = logging.getLogger("views")

class BaseInteractiveView(discord.ui.View):
    """
    Classe Base para Views interativas do bot.
    Responsável por garantir que o status 'Expirado' seja exibido
    ao invés de simplesmente remover os botões.
    """
    # O timeout padrão do Discord é 180s (3 minutos)
    def __init__(self, timeout=180):
        super().__init__(timeout=timeout)
        self.message = None # Mensagem que carrega a view (preenchida por quem envia)

    async def on_timeout(self):
        if self.message:
            self.clear_items()

            timeout_button = discord.ui.Button(
                label="Tempo Expirado / Interação Encerrada",
                style=discord.ButtonStyle.gray,
                emoji="⏰",
                disabled=True
            )
            self.add_item(timeout_button)

            try:
                await self.message.edit(view=self)
            except discord.NotFound:
                pass # Mensagem apagada
            except discord.HTTPException as e:
                logger.warning(f"Erro ao editar mensagem expirada: {e}")


class AdminOnlyView(BaseInteractiveView):
    """View cujos botões só respondem a administradores."""

    async def interaction_check(self, interaction: discord.Interaction) -> bool:
        if interaction.user.guild_permissions.administrator:
            return True
        await interaction.response.send_message("⛔ Apenas Administradores.", ephemeral=True)
        return False


def format_team(players: list) -> str:
    """Lista de jogadores para embed (nome, rank e MMR)."""
    if not players:
        return "Vazio"
    lines = []
    for p in players:
        crown = "👑 " if p.get('is_captain') else ""
        lines.append(f"• {crown}{p['name']} [{p.get('rank', '?')}] ({p.get('mmr', 0)})")
    return "\n".join(lines)
