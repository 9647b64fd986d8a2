from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable


@dataclass(frozen=True)
class RuntimeDeps:
    relay: Any
    wizard: Any
    dispatcher: Any


@dataclass(frozen=True)
class RuntimeBootDeps:
    load_guild_configs_func: Callable
    sweep_loop_func: Callable
    welcome_panel_factory: Callable | None = None
