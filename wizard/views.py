from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

import discord

from wizard.flow import ACTION_CANCEL
from wizard.flow import ACTION_CONFIRM
from wizard.flow import ACTION_CREATE_CATEGORY
from wizard.flow import ACTION_ROLES_AUTOCREATE
from wizard.flow import ACTION_ROLES_EXISTING
from wizard.flow import ACTION_SELECT_CATEGORY
from wizard.flow import ACTION_SELECT_GUILD
from wizard.flow import ACTION_SELECT_MOD
from wizard.flow import ACTION_SELECT_PLAYER
from wizard.flow import ACTION_SKIP_HOST
from wizard.flow import ACTION_START
from wizard.flow import SetupStep

if TYPE_CHECKING:
    from wizard.service import SetupWizard

SELECT_STEPS: dict[SetupStep, tuple[str, str]] = {
    SetupStep.GUILD: (ACTION_SELECT_GUILD, "Select your server"),
    SetupStep.CATEGORY: (ACTION_SELECT_CATEGORY, "Choose a category"),
    SetupStep.MOD_ROLE: (ACTION_SELECT_MOD, "Select a moderator role"),
    SetupStep.PLAYER_ROLE: (ACTION_SELECT_PLAYER, "Select a player role"),
}

BUTTON_STEPS: dict[SetupStep, list[tuple[str, str, discord.ButtonStyle]]] = {
    SetupStep.START: [("Start", ACTION_START, discord.ButtonStyle.primary)],
    SetupStep.CATEGORY: [("Create New Category", ACTION_CREATE_CATEGORY, discord.ButtonStyle.secondary)],
    SetupStep.ROLES: [
        ("Create new", ACTION_ROLES_AUTOCREATE, discord.ButtonStyle.primary),
        ("Use existing", ACTION_ROLES_EXISTING, discord.ButtonStyle.secondary),
    ],
    SetupStep.AP_HOST: [("Skip", ACTION_SKIP_HOST, discord.ButtonStyle.secondary)],
    SetupStep.CONFIRM: [("Confirm", ACTION_CONFIRM, discord.ButtonStyle.success)],
}


class SetupStepView(discord.ui.View):
    """Buttons and selects for one wizard step; every callback goes back to the wizard."""

    def __init__(
        self,
        wizard: SetupWizard,
        user_id: int,
        step: SetupStep,
        *,
        options: Sequence[tuple[str, str, str]] = (),
        timeout: float | None = None,
    ):
        super().__init__(timeout=timeout)
        self.wizard = wizard
        self.user_id = int(user_id)
        self.step = step

        if step in SELECT_STEPS:
            action, placeholder = SELECT_STEPS[step]
            select_options = [
                discord.SelectOption(label=label[:100], value=value, description=(desc[:100] or None))
                for label, value, desc in options
            ] or [discord.SelectOption(label="None found", value="none")]
            select = discord.ui.Select(
                custom_id=action,
                placeholder=placeholder,
                options=select_options,
                min_values=1,
                max_values=1,
            )
            select.callback = self._select_callback(select, action)
            self.add_item(select)

        for label, action, style in BUTTON_STEPS.get(step, []):
            button = discord.ui.Button(label=label, style=style, custom_id=action)
            button.callback = self._button_callback(action)
            self.add_item(button)

        cancel = discord.ui.Button(label="Cancel", style=discord.ButtonStyle.danger, custom_id=ACTION_CANCEL)
        cancel.callback = self._button_callback(ACTION_CANCEL)
        self.add_item(cancel)

    def _button_callback(self, action: str):
        async def callback(interaction: discord.Interaction):
            await self.wizard.handle_component(interaction, action, [])

        return callback

    def _select_callback(self, select: discord.ui.Select, action: str):
        async def callback(interaction: discord.Interaction):
            await self.wizard.handle_component(interaction, action, list(select.values))

        return callback

    async def interaction_check(self, interaction: discord.Interaction) -> bool:
        if interaction.user.id != self.user_id:
            await interaction.response.send_message("This setup belongs to someone else.", ephemeral=True)
            return False
        return True

    async def on_timeout(self) -> None:
        self.wizard.expire(self.user_id, step=self.step)
