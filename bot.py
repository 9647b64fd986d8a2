import os
import asyncio
import re

import discord
from discord.ext import commands

from config.defaults import DEFAULT_AP_SLOT
from config.defaults import DEFAULT_DEDUP_CAPACITY
from config.defaults import DEFAULT_MAX_RETRIES
from config.defaults import DEFAULT_RETRY_BASE_SECONDS
from config.defaults import DEFAULT_SETUP_SWEEP_SECONDS
from config.defaults import DEFAULT_SETUP_TTL_SECONDS
from db.migrate import init_db
from db.migrate import list_applied_migrations_sync
from misc.runtime_wiring import wire_bot_runtime
from misc.signup_queue import SignupQueue
from relay.dispatch import RelayDispatcher
from relay.models import ChannelCategory
from relay.rendering import send_chunked
from relay.service import RelayService
from wizard.prompts import DEFAULT_PROMPTS_PATH
from wizard.prompts import load_setup_prompts
from wizard.service import SetupWizard
from wizard.sessions import SetupSessionStore

# =========================
# ENV
# =========================
DISCORD_TOKEN = os.getenv("DISCORD_TOKEN")

if not DISCORD_TOKEN:
    raise RuntimeError("Missing DISCORD_TOKEN env var")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        print(f"[CFG] {name}={raw!r} is not an integer; using default {default}")
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        print(f"[CFG] {name}={raw!r} is not a number; using default {default}")
        return default


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name, "").strip().lower()
    if not raw:
        return default
    return raw in ("1", "true", "yes", "on")


def parse_id_set(raw: str) -> set[int]:
    out: set[int] = set()
    for token in re.split(r"[,\s]+", raw or ""):
        if token.strip().isdigit():
            out.add(int(token))
    return out


AP_HOST = os.getenv("AP_HOST", "").strip()
AP_SLOT = os.getenv("AP_SLOT", DEFAULT_AP_SLOT).strip() or DEFAULT_AP_SLOT
AP_PASSWORD = os.getenv("AP_PASSWORD", "")
AP_USE_TLS = _env_bool("AP_USE_TLS", False)
AP_MAX_RETRIES = _env_int("AP_MAX_RETRIES", DEFAULT_MAX_RETRIES)
AP_RETRY_BASE_SECONDS = _env_float("AP_RETRY_BASE_SECONDS", DEFAULT_RETRY_BASE_SECONDS)
AP_DEDUP_CAPACITY = _env_int("AP_DEDUP_CAPACITY", DEFAULT_DEDUP_CAPACITY)
if AP_DEDUP_CAPACITY < 1:
    print(f"[CFG] AP_DEDUP_CAPACITY must be >= 1; using default {DEFAULT_DEDUP_CAPACITY}")
    AP_DEDUP_CAPACITY = DEFAULT_DEDUP_CAPACITY

ENV_CHANNEL_MAP: dict[ChannelCategory, int] = {}
for _category in ChannelCategory:
    _channel_id = _env_int(f"AP_{_category.name}_CHANNEL_ID", 0)
    if _channel_id > 0:
        ENV_CHANNEL_MAP[_category] = _channel_id

SETUP_TTL_SECONDS = _env_float("RELAY_SETUP_TTL_SECONDS", float(DEFAULT_SETUP_TTL_SECONDS))
SETUP_PROMPTS_PATH = os.getenv("RELAY_SETUP_PROMPTS_PATH", str(DEFAULT_PROMPTS_PATH))
OWNER_USER_IDS = parse_id_set(os.getenv("RELAY_OWNER_USER_IDS", ""))
DB_PATH = os.getenv("RELAY_DB_PATH", "relay.db")

print(
    f"[CFG] ap_host={AP_HOST or '(from setup)'} slot={AP_SLOT} tls={AP_USE_TLS} "
    f"retries={AP_MAX_RETRIES}x{AP_RETRY_BASE_SECONDS:g}s dedup={AP_DEDUP_CAPACITY} "
    f"env_channels={sorted(c.value for c in ENV_CHANNEL_MAP)} setup_ttl={SETUP_TTL_SECONDS:g}s "
    f"owners={len(OWNER_USER_IDS)}"
)

SETUP_PROMPTS, _prompts_warning = load_setup_prompts(SETUP_PROMPTS_PATH)
if _prompts_warning:
    print(f"[CFG] {_prompts_warning}")

# =========================
# SQLITE
# =========================
db_conn = init_db(DB_PATH)
print(f"[DB] Using DB_PATH={DB_PATH}")
db_lock = asyncio.Lock()

# =========================
# DISCORD BOT
# =========================
intents = discord.Intents.default()
intents.message_content = True
bot = commands.Bot(command_prefix="!", intents=intents)


def user_is_owner(user: discord.abc.User) -> bool:
    return int(getattr(user, "id", 0) or 0) in OWNER_USER_IDS


dispatcher = RelayDispatcher(bot.get_channel, ENV_CHANNEL_MAP)
relay = RelayService(
    dispatcher=dispatcher,
    db_conn=db_conn,
    db_lock=db_lock,
    slot=AP_SLOT,
    password=AP_PASSWORD or None,
    host=AP_HOST or None,
    use_tls=AP_USE_TLS,
    max_retries=AP_MAX_RETRIES,
    retry_base_seconds=AP_RETRY_BASE_SECONDS,
    dedup_capacity=AP_DEDUP_CAPACITY,
)
setup_sessions = SetupSessionStore(ttl_seconds=SETUP_TTL_SECONDS)
setup_wizard = SetupWizard(
    bot=bot,
    sessions=setup_sessions,
    prompts=SETUP_PROMPTS,
    db_conn=db_conn,
    db_lock=db_lock,
)

wire_bot_runtime(
    bot,
    db_lock=db_lock,
    db_conn=db_conn,
    relay=relay,
    wizard=setup_wizard,
    dispatcher=dispatcher,
    signup_queue=SignupQueue(),
    sessions=setup_sessions,
    sweep_interval_seconds=DEFAULT_SETUP_SWEEP_SECONDS,
    user_is_owner=user_is_owner,
    send_chunked=send_chunked,
    list_schema_migrations_sync=list_applied_migrations_sync,
    host_from_env=bool(AP_HOST),
)

bot.run(DISCORD_TOKEN)
