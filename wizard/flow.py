from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any

from wizard.sessions import SetupSession


class SetupStep(str, Enum):
    START = "start"
    GUILD = "guild"
    CATEGORY = "category"
    ROLES = "roles"
    MOD_ROLE = "mod_role"
    PLAYER_ROLE = "player_role"
    AP_HOST = "ap_host"
    CONFIRM = "confirm"
    DONE = "done"


class OutcomeStatus(str, Enum):
    ADVANCED = "advanced"
    INVALID = "invalid"
    STALE = "stale"
    DONE = "done"
    CANCELLED = "cancelled"


ACTION_START = "setup_start"
ACTION_SELECT_GUILD = "setup_select_guild"
ACTION_SELECT_CATEGORY = "setup_select_category"
ACTION_CREATE_CATEGORY = "setup_create_category"
ACTION_ROLES_EXISTING = "setup_roles_existing"
ACTION_ROLES_AUTOCREATE = "setup_roles_autocreate"
ACTION_SELECT_MOD = "setup_select_mod"
ACTION_SELECT_PLAYER = "setup_select_player"
ACTION_AP_HOST = "setup_ap_host"
ACTION_SKIP_HOST = "setup_skip_host"
ACTION_CONFIRM = "setup_confirm_config"
ACTION_CANCEL = "setup_cancel"

HOST_RE = re.compile(r"^(?:wss?://)?(?P<host>[A-Za-z0-9.-]+):(?P<port>\d{1,5})$")


@dataclass(frozen=True, slots=True)
class Transition:
    next_step: SetupStep
    choice_key: str | None = None
    # "id" = snowflake from a select, "host" = host:port text, "const" = store const_value
    value_kind: str | None = None
    const_value: Any = None


TRANSITIONS: dict[tuple[SetupStep, str], Transition] = {
    (SetupStep.START, ACTION_START): Transition(SetupStep.GUILD),
    (SetupStep.GUILD, ACTION_SELECT_GUILD): Transition(SetupStep.CATEGORY, "guild_id", "id"),
    (SetupStep.CATEGORY, ACTION_SELECT_CATEGORY): Transition(SetupStep.ROLES, "category_id", "id"),
    (SetupStep.CATEGORY, ACTION_CREATE_CATEGORY): Transition(SetupStep.ROLES, "create_category", "const", True),
    (SetupStep.ROLES, ACTION_ROLES_EXISTING): Transition(SetupStep.MOD_ROLE, "roles_mode", "const", "existing"),
    (SetupStep.ROLES, ACTION_ROLES_AUTOCREATE): Transition(SetupStep.AP_HOST, "roles_mode", "const", "autocreate"),
    (SetupStep.MOD_ROLE, ACTION_SELECT_MOD): Transition(SetupStep.PLAYER_ROLE, "mod_role_id", "id"),
    (SetupStep.PLAYER_ROLE, ACTION_SELECT_PLAYER): Transition(SetupStep.AP_HOST, "player_role_id", "id"),
    (SetupStep.AP_HOST, ACTION_AP_HOST): Transition(SetupStep.CONFIRM, "ap_host", "host"),
    (SetupStep.AP_HOST, ACTION_SKIP_HOST): Transition(SetupStep.CONFIRM, "ap_host", "const", None),
    (SetupStep.CONFIRM, ACTION_CONFIRM): Transition(SetupStep.DONE),
}


@dataclass(frozen=True, slots=True)
class StepOutcome:
    status: OutcomeStatus
    step: SetupStep | None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.status in (OutcomeStatus.ADVANCED, OutcomeStatus.DONE)


def actions_for_step(step: SetupStep) -> list[str]:
    return [action for (s, action) in TRANSITIONS if s == step]


def parse_snowflake(value: Any) -> int | None:
    text = str(value if value is not None else "").strip()
    if not text.isdigit():
        return None
    parsed = int(text)
    return parsed if parsed > 0 else None


def parse_host(value: Any) -> str | None:
    text = str(value or "").strip()
    m = HOST_RE.match(text)
    if not m:
        return None
    port = int(m.group("port"))
    if not 1 <= port <= 65535:
        return None
    return text


class SetupFlow:
    """Finite-state setup dialogue driven by ``TRANSITIONS``.

    ``advance`` never raises: an action that does not belong to the session's
    current step is reported as ``stale`` and a rejected value as ``invalid``.
    """

    def advance(self, session: SetupSession | None, action: str, value: Any = None) -> StepOutcome:
        if session is None:
            return StepOutcome(OutcomeStatus.STALE, None, "no active setup session")

        try:
            current = SetupStep(session.step)
        except ValueError:
            return StepOutcome(OutcomeStatus.STALE, None, f"unknown step {session.step!r}")

        if action == ACTION_CANCEL:
            return StepOutcome(OutcomeStatus.CANCELLED, current, "setup cancelled")

        transition = TRANSITIONS.get((current, action))
        if transition is None:
            return StepOutcome(OutcomeStatus.STALE, current, f"action {action!r} not valid at step {current.value}")

        if transition.choice_key is not None:
            if transition.value_kind == "id":
                parsed = parse_snowflake(value)
                if parsed is None:
                    return StepOutcome(OutcomeStatus.INVALID, current, "please pick one of the listed options")
                if transition.choice_key == "player_role_id" and parsed == session.choices.get("mod_role_id"):
                    return StepOutcome(OutcomeStatus.INVALID, current, "the player role must differ from the moderator role")
                session.choices[transition.choice_key] = parsed
            elif transition.value_kind == "host":
                parsed_host = parse_host(value)
                if parsed_host is None:
                    return StepOutcome(OutcomeStatus.INVALID, current, "expected `host:port`, e.g. `archipelago.gg:38281`")
                session.choices[transition.choice_key] = parsed_host
            else:
                session.choices[transition.choice_key] = transition.const_value

        session.step = transition.next_step.value
        if transition.next_step == SetupStep.DONE:
            return StepOutcome(OutcomeStatus.DONE, transition.next_step, "setup complete")
        return StepOutcome(OutcomeStatus.ADVANCED, transition.next_step)
