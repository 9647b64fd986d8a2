from __future__ import annotations

import asyncio
import sqlite3
from typing import Any, Awaitable, Callable

import discord

from config.defaults import AUTO_MOD_ROLE_NAME
from config.defaults import AUTO_PLAYER_ROLE_NAME
from config.defaults import DEFAULT_CATEGORY_NAME
from config.defaults import RELAY_CHANNEL_NAMES
from config.defaults import SETUP_EXPIRED_NOTICE
from guilds.store import fetch_guild_config_sync
from guilds.store import upsert_guild_config_sync
from wizard.flow import ACTION_AP_HOST
from wizard.flow import OutcomeStatus
from wizard.flow import SetupFlow
from wizard.flow import SetupStep
from wizard.prompts import StepPrompt
from wizard.sessions import SetupSession
from wizard.sessions import SetupSessionStore
from wizard.views import SetupStepView

MAX_SELECT_OPTIONS = 25

ConfiguredCallback = Callable[[int, dict[str, Any]], Awaitable[None]]


class SetupWizard:
    """Discord side of the setup dialogue: DMs, component callbacks, finalize."""

    def __init__(
        self,
        *,
        bot: discord.Client,
        sessions: SetupSessionStore,
        prompts: dict[SetupStep, StepPrompt],
        db_conn: sqlite3.Connection,
        db_lock: asyncio.Lock,
        on_configured: ConfiguredCallback | None = None,
        flow: SetupFlow | None = None,
    ) -> None:
        self.bot = bot
        self.sessions = sessions
        self.prompts = prompts
        self.db_conn = db_conn
        self.db_lock = db_lock
        self.on_configured = on_configured
        self.flow = flow or SetupFlow()

    # ---- rendering ----

    def _step_options(self, session: SetupSession, step: SetupStep) -> list[tuple[str, str, str]]:
        if step == SetupStep.GUILD:
            owned = [g for g in self.bot.guilds if g.owner_id == session.user_id]
            return [(g.name, str(g.id), f"ID: {g.id}") for g in owned][:MAX_SELECT_OPTIONS]

        guild = self.bot.get_guild(int(session.choices.get("guild_id") or 0))
        if guild is None:
            return []
        if step == SetupStep.CATEGORY:
            return [(c.name, str(c.id), "") for c in guild.categories][:MAX_SELECT_OPTIONS]
        if step in (SetupStep.MOD_ROLE, SetupStep.PLAYER_ROLE):
            excluded = session.choices.get("mod_role_id") if step == SetupStep.PLAYER_ROLE else None
            roles = [
                r for r in guild.roles
                if not r.is_default() and not r.managed and r.id != excluded
            ]
            return [(r.name, str(r.id), "") for r in roles][:MAX_SELECT_OPTIONS]
        return []

    def _summary_lines(self, session: SetupSession) -> list[str]:
        c = session.choices
        guild = self.bot.get_guild(int(c.get("guild_id") or 0))
        lines = [f"**Server:** {guild.name if guild else c.get('guild_id')}"]
        if c.get("create_category"):
            lines.append(f"**Category:** create `{DEFAULT_CATEGORY_NAME}`")
        else:
            lines.append(f"**Category:** <#{c.get('category_id')}>")
        if c.get("roles_mode") == "autocreate":
            lines.append(f"**Roles:** create `{AUTO_MOD_ROLE_NAME}` and `{AUTO_PLAYER_ROLE_NAME}`")
        else:
            lines.append(f"**Roles:** <@&{c.get('mod_role_id')}> / <@&{c.get('player_role_id')}>")
        lines.append(f"**Game server:** {c.get('ap_host') or 'unchanged'}")
        lines.append("**Channels:** " + ", ".join(f"#{name}" for name in RELAY_CHANNEL_NAMES.values()))
        return lines

    def render(self, session: SetupSession) -> tuple[discord.Embed, SetupStepView | None]:
        step = SetupStep(session.step)
        prompt = self.prompts[step]
        description = prompt.description
        if step == SetupStep.CONFIRM:
            description = description + "\n\n" + "\n".join(self._summary_lines(session))
        embed = discord.Embed(title=prompt.title, description=description, colour=discord.Colour(prompt.color))
        if step == SetupStep.DONE:
            return embed, None
        view = SetupStepView(
            self,
            session.user_id,
            step,
            options=self._step_options(session, step),
            timeout=self.sessions.ttl_seconds or None,
        )
        return embed, view

    # ---- entry points ----

    async def start(self, user: discord.abc.User) -> bool:
        try:
            dm = user.dm_channel or await user.create_dm()
            session = self.sessions.create(user.id, SetupStep.START.value, dm_channel=dm)
            embed, view = self.render(session)
            session.prompt_message = await dm.send(embed=embed, view=view)
        except discord.HTTPException as e:
            self.sessions.delete(user.id)
            print(f"[Setup] could not DM user={user.id}: {e}")
            return False
        print(f"[Setup] session started user={user.id}")
        return True

    def cancel(self, user_id: int) -> bool:
        removed = self.sessions.delete(user_id)
        if removed:
            print(f"[Setup] session cancelled user={user_id}")
        return removed

    def expire(self, user_id: int, *, step: SetupStep | None = None) -> None:
        session = self.sessions.get(user_id)
        if session is None:
            return
        # A view left behind by an earlier step must not end the current one.
        if step is not None and session.step != step.value:
            return
        if self.sessions.delete(user_id):
            print(f"[Setup] session timed out user={user_id}")

    async def _reply_expired(self, interaction: discord.Interaction) -> None:
        self.sessions.delete(interaction.user.id)
        if interaction.response.is_done():
            await interaction.followup.send(SETUP_EXPIRED_NOTICE, ephemeral=True)
        else:
            await interaction.response.send_message(SETUP_EXPIRED_NOTICE, ephemeral=True)

    async def handle_component(self, interaction: discord.Interaction, action: str, values: list[str] | None = None) -> None:
        try:
            await self._handle_component(interaction, action, values or [])
        except Exception as e:
            print(f"[Setup] component {action} failed user={interaction.user.id}: {e}")
            self.sessions.delete(interaction.user.id)
            try:
                if interaction.response.is_done():
                    await interaction.followup.send("Setup failed, please run `!setup` again.", ephemeral=True)
                else:
                    await interaction.response.send_message("Setup failed, please run `!setup` again.", ephemeral=True)
            except discord.HTTPException as send_err:
                print(f"[Setup] could not report failure: {send_err}")

    async def _handle_component(self, interaction: discord.Interaction, action: str, values: list[str]) -> None:
        user_id = interaction.user.id
        session = self.sessions.get(user_id)
        outcome = self.flow.advance(session, action, values[0] if values else None)

        if outcome.status == OutcomeStatus.STALE:
            print(f"[Setup] stale interaction user={user_id} action={action}: {outcome.message}")
            await self._reply_expired(interaction)
            return
        if outcome.status == OutcomeStatus.CANCELLED:
            self.cancel(user_id)
            await interaction.response.edit_message(content="Setup cancelled.", embed=None, view=None)
            return
        if outcome.status == OutcomeStatus.INVALID:
            self.sessions.touch(user_id)
            await interaction.response.send_message(outcome.message, ephemeral=True)
            return

        if session is None:
            return
        if outcome.status == OutcomeStatus.DONE:
            await interaction.response.defer()
            config = await self.finalize(session)
            self.sessions.delete(user_id)
            embed, _view = self.render(session)
            await interaction.edit_original_response(embed=embed, view=None)
            await interaction.followup.send(self._format_result(config), ephemeral=False)
            return

        self.sessions.set(user_id, session)
        session.prompt_message = getattr(interaction, "message", None) or session.prompt_message
        embed, view = self.render(session)
        await interaction.response.edit_message(embed=embed, view=view)

    async def handle_message(self, message: discord.Message) -> bool:
        """Free-text replies for steps that take typed input. Returns True if consumed."""
        if message.guild is not None or message.author.bot:
            return False
        session = self.sessions.get(message.author.id)
        if session is None or session.step != SetupStep.AP_HOST.value:
            return False

        outcome = self.flow.advance(session, ACTION_AP_HOST, message.content)
        try:
            if outcome.status == OutcomeStatus.INVALID:
                self.sessions.touch(message.author.id)
                await message.channel.send(outcome.message)
                return True
            self.sessions.set(message.author.id, session)
            embed, view = self.render(session)
            await self._retire_prompt(session)
            session.prompt_message = await message.channel.send(embed=embed, view=view)
        except discord.HTTPException as e:
            print(f"[Setup] DM reply failed user={message.author.id}: {e}")
        return True

    async def _retire_prompt(self, session: SetupSession) -> None:
        previous = session.prompt_message
        session.prompt_message = None
        if previous is None:
            return
        try:
            await previous.edit(view=None)
        except discord.HTTPException as e:
            print(f"[Setup] could not clear old prompt user={session.user_id}: {e}")

    # ---- finalize ----

    def _format_result(self, config: dict[str, Any]) -> str:
        lines = ["Relay configured:"]
        for category, name in RELAY_CHANNEL_NAMES.items():
            channel_id = config.get(f"{category}_channel_id")
            lines.append(f"- {category}: <#{channel_id}>" if channel_id else f"- {category}: ({name} missing)")
        return "\n".join(lines)

    async def _resolve_category(self, guild: discord.Guild, choices: dict[str, Any]) -> discord.CategoryChannel:
        if not choices.get("create_category"):
            existing = guild.get_channel(int(choices.get("category_id") or 0))
            if isinstance(existing, discord.CategoryChannel):
                return existing
        for category in guild.categories:
            if category.name == DEFAULT_CATEGORY_NAME:
                return category
        return await guild.create_category(DEFAULT_CATEGORY_NAME, reason="Archipelago relay setup")

    async def _resolve_roles(self, guild: discord.Guild, choices: dict[str, Any]) -> tuple[int | None, int | None]:
        if choices.get("roles_mode") != "autocreate":
            return choices.get("mod_role_id"), choices.get("player_role_id")
        ids = []
        for name in (AUTO_MOD_ROLE_NAME, AUTO_PLAYER_ROLE_NAME):
            role = discord.utils.get(guild.roles, name=name)
            if role is None:
                role = await guild.create_role(name=name, reason="Archipelago relay setup")
            ids.append(role.id)
        return ids[0], ids[1]

    async def finalize(self, session: SetupSession) -> dict[str, Any]:
        choices = session.choices
        guild = self.bot.get_guild(int(choices.get("guild_id") or 0))
        if guild is None:
            raise RuntimeError(f"guild {choices.get('guild_id')} is not available to the bot")

        category = await self._resolve_category(guild, choices)
        mod_role_id, player_role_id = await self._resolve_roles(guild, choices)

        ap_host = choices.get("ap_host")
        if not ap_host:
            async with self.db_lock:
                previous = await asyncio.to_thread(fetch_guild_config_sync, self.db_conn, guild.id)
            ap_host = (previous or {}).get("ap_host")

        config: dict[str, Any] = {
            "category_id": category.id,
            "mod_role_id": mod_role_id,
            "player_role_id": player_role_id,
            "ap_host": ap_host,
            "configured_by": session.user_id,
        }
        for key, name in RELAY_CHANNEL_NAMES.items():
            channel = discord.utils.get(category.text_channels, name=name)
            if channel is None:
                channel = await guild.create_text_channel(name, category=category, reason="Archipelago relay setup")
            config[f"{key}_channel_id"] = channel.id

        async with self.db_lock:
            saved = await asyncio.to_thread(upsert_guild_config_sync, self.db_conn, guild.id, config)
        print(f"[Setup] guild={guild.id} configured by user={session.user_id}")
        if self.on_configured is not None:
            await self.on_configured(guild.id, saved)
        return saved
