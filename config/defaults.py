from __future__ import annotations

# Archipelago connection
DEFAULT_AP_SLOT = "RelayBot"
DEFAULT_AP_TAGS = ("RelayBot", "TextOnly")
AP_CLIENT_VERSION = (0, 5, 1)

# Reconnect policy (linear: base * attempt)
DEFAULT_MAX_RETRIES = 5
DEFAULT_RETRY_BASE_SECONDS = 5.0

# Relay
DEFAULT_DEDUP_CAPACITY = 50
DISCORD_MAX_MESSAGE_LEN = 1900  # keep under 2000 hard limit
DISCORD_MAX_EMBED_DESCRIPTION = 4000  # embed hard limit is 4096

# Channel names created by the setup wizard, keyed by relay category
RELAY_CHANNEL_NAMES = {
    "chat": "ap-chat",
    "trade": "ap-trade",
    "hint": "ap-hints",
    "log": "ap-log",
}
DEFAULT_CATEGORY_NAME = "Archipelago"
AUTO_MOD_ROLE_NAME = "AP-Mod"
AUTO_PLAYER_ROLE_NAME = "AP-Player"

# Setup wizard
DEFAULT_SETUP_TTL_SECONDS = 900
DEFAULT_SETUP_SWEEP_SECONDS = 60
SETUP_EXPIRED_NOTICE = "This setup session has expired, please run `!setup` again."
