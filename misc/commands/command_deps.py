from __future__ import annotations

from dataclasses import dataclass
from typing import Any
from typing import Callable


def _default_false(*args, **kwargs) -> bool:
    return False


@dataclass(frozen=True)
class CommandDeps:
    # Core/shared
    db_lock: Any = None
    db_conn: Any = None
    send_chunked: Callable | None = None

    # Relay + setup
    relay: Any = None
    wizard: Any = None
    signup_queue: Any = None
    welcome_panel_factory: Callable | None = None

    # Store functions
    upsert_user_link_sync: Callable | None = None
    fetch_user_link_sync: Callable | None = None
    find_discord_ids_for_slot_sync: Callable | None = None
    delete_user_link_sync: Callable | None = None
    list_user_links_sync: Callable | None = None
    fetch_items_for_slot_sync: Callable | None = None
    fetch_recent_relay_messages_sync: Callable | None = None
    list_schema_migrations_sync: Callable | None = None


@dataclass(frozen=True)
class CommandGates:
    user_is_owner: Callable[[Any], bool] = _default_false
    user_is_relay_mod: Callable[[Any], bool] = _default_false
