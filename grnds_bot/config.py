import os
import logging
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger("config")

GAMES = ("valorant", "marvel_rivals")
ROLE_MODES = ("highest", "primary")
BALANCE_MODES = ("auto", "captain")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"{name}={raw!r} não é um inteiro. Usando padrão {default}.")
        return default


def _env_choice(name: str, default: str, choices: tuple) -> str:
    raw = (os.getenv(name) or default).strip().lower()
    if raw not in choices:
        logger.warning(f"{name}={raw!r} inválido (opções: {', '.join(choices)}). Usando padrão {default}.")
        return default
    return raw


# --- DISCORD ---
DISCORD_TOKEN = os.getenv("DISCORD_TOKEN")
APP_ID = os.getenv("APP_ID")
COMMAND_PREFIX = os.getenv("COMMAND_PREFIX", ".")

# --- APIS EXTERNAS ---
VALORANT_API_KEY = os.getenv("VALORANT_API_KEY")
VALORANT_DEFAULT_REGION = os.getenv("VALORANT_DEFAULT_REGION", "na").lower()
MARVEL_RIVALS_API_KEY = os.getenv("MARVEL_RIVALS_API_KEY")

# HenrikDev: 30 requisições por janela de 60s
API_RATE_LIMIT = _env_int("API_RATE_LIMIT", 30)
API_RATE_WINDOW = _env_int("API_RATE_WINDOW", 60)
API_TIMEOUT = _env_int("API_TIMEOUT", 10)

# --- LIGA INTERNA ---
QUEUE_SIZE = _env_int("QUEUE_SIZE", 10)
DEFAULT_BALANCE_MODE = _env_choice("DEFAULT_BALANCE_MODE", "auto", BALANCE_MODES)
DEFAULT_ROLE_MODE = _env_choice("DEFAULT_ROLE_MODE", "highest", ROLE_MODES)
DEFAULT_PRIMARY_GAME = _env_choice("DEFAULT_PRIMARY_GAME", "valorant", GAMES)
RANK_REFRESH_MINUTES = _env_int("RANK_REFRESH_MINUTES", 30)
SKILL_GAP_THRESHOLD = _env_int("SKILL_GAP_THRESHOLD", 1500)


def parse_game(value: str) -> str:
    """Aceita apelidos usados nos comandos (val, marvel, mr...) e devolve o id do jogo."""
    if not value:
        raise ValueError("Jogo não informado.")
    v = value.lower().strip()
    if v in ["valorant", "val", "vava"]:
        return "valorant"
    if v in ["marvel", "marvel_rivals", "rivals", "mr"]:
        return "marvel_rivals"
    raise ValueError(f"Jogo desconhecido: {value}")
