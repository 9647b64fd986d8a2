from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from wizard.flow import SetupStep

DEFAULT_PROMPTS_PATH = Path(__file__).resolve().parent.parent / "config" / "setup_wizard.yml"


@dataclass(frozen=True, slots=True)
class StepPrompt:
    title: str
    description: str
    color: int = 0x5865F2


def default_prompts() -> dict[SetupStep, StepPrompt]:
    return {
        SetupStep.START: StepPrompt(
            "Archipelago Relay Setup",
            "This will create the relay channels and roles in one of your servers. Press **Start** to begin.",
        ),
        SetupStep.GUILD: StepPrompt("Step 1 - Server", "Choose a server to configure."),
        SetupStep.CATEGORY: StepPrompt("Step 2 - Category", "Choose a text category or create a new one."),
        SetupStep.ROLES: StepPrompt(
            "Step 3 - Roles",
            "Create fresh Moderator and Player roles, or pick roles that already exist in your server.",
            0x3498DB,
        ),
        SetupStep.MOD_ROLE: StepPrompt("Select Moderator Role", "Choose an existing role to serve as Moderator.", 0x3498DB),
        SetupStep.PLAYER_ROLE: StepPrompt("Select Player Role", "Choose an existing role to serve as Player.", 0x3498DB),
        SetupStep.AP_HOST: StepPrompt(
            "Step 4 - Game Server",
            "Reply in this DM with the game server address as `host:port`, or press **Skip** to keep the current one.",
        ),
        SetupStep.CONFIRM: StepPrompt("Step 5 - Confirm", "Review the choices below and press **Confirm** to apply them.", 0x57F287),
        SetupStep.DONE: StepPrompt("Setup Complete", "The relay channels are ready.", 0x57F287),
    }


def _parse_color(value: Any, fallback: int) -> int:
    if isinstance(value, int):
        return value
    text = str(value or "").strip().lstrip("#")
    if text.lower().startswith("0x"):
        text = text[2:]
    try:
        return int(text, 16)
    except ValueError:
        return fallback


def load_setup_prompts(path: str | Path | None) -> tuple[dict[SetupStep, StepPrompt], str | None]:
    """
    Returns (prompts, warning_message). warning_message is None on clean load.
    Steps missing from the file keep their built-in prompt.
    """
    defaults = default_prompts()
    if not path:
        return (defaults, "Setup prompts path missing; using built-in defaults.")

    p = Path(path)
    if not p.exists():
        return (defaults, f"Setup prompts file not found at {p}; using built-in defaults.")

    try:
        payload = yaml.safe_load(p.read_text(encoding="utf-8"))
    except Exception as exc:
        return (defaults, f"Failed to read setup prompts from {p}: {exc}; using built-in defaults.")

    steps = payload.get("steps") if isinstance(payload, dict) else None
    if not isinstance(steps, dict):
        return (defaults, f"Invalid setup prompts format in {p}; using built-in defaults.")

    prompts = dict(defaults)
    for key, raw in steps.items():
        try:
            step = SetupStep(str(key))
        except ValueError:
            continue
        if not isinstance(raw, dict):
            continue
        base = defaults[step]
        prompts[step] = StepPrompt(
            title=str(raw.get("title") or base.title).strip(),
            description=str(raw.get("description") or base.description).strip(),
            color=_parse_color(raw.get("color"), base.color),
        )
    return (prompts, None)
