"""Discord gateway adapter for the Playing Cards bot.

Translates Discord events into handler calls and implements the
Messenger interface on top of discord.py.
"""

import logging
from typing import Optional

import discord

from config import config
from guild import ServerRegistry
from handlers import CommandContext, ReactionEvent, default_game_factory, dispatch, handle_reaction
from logging_config import guild_id_var, user_id_var
from messenger import DeliveryError, Messenger

logger = logging.getLogger(__name__)


class DiscordMessenger(Messenger):
    """Messenger backed by a discord.py client."""

    def __init__(self, client: discord.Client) -> None:
        self.client = client

    async def _channel(self, channel_id: int) -> discord.abc.Messageable:
        channel = self.client.get_channel(channel_id)
        if channel is None:
            try:
                channel = await self.client.fetch_channel(channel_id)
            except discord.HTTPException as e:
                raise DeliveryError(f"Channel {channel_id} unavailable: {e}") from e
        return channel

    async def send_text(self, channel_id: int, text: str) -> int:
        channel = await self._channel(channel_id)
        try:
            message = await channel.send(text)
        except discord.HTTPException as e:
            raise DeliveryError(str(e)) from e
        return message.id

    async def send_card(
        self,
        channel_id: int,
        title: str,
        footer: str,
        color: int,
        image_url: Optional[str] = None,
        description: Optional[str] = None,
    ) -> int:
        embed = discord.Embed(title=title, description=description, color=color)
        embed.set_footer(text=footer)
        if image_url:
            embed.set_image(url=image_url)

        channel = await self._channel(channel_id)
        try:
            message = await channel.send(embed=embed)
        except discord.HTTPException as e:
            raise DeliveryError(str(e)) from e
        return message.id

    async def add_reaction(self, channel_id: int, message_id: int, emoji: str) -> None:
        channel = await self._channel(channel_id)
        try:
            await channel.get_partial_message(message_id).add_reaction(emoji)
        except discord.HTTPException as e:
            raise DeliveryError(str(e)) from e

    async def mention(self, guild_id: int, user_id: int) -> Optional[str]:
        guild = self.client.get_guild(guild_id)
        if guild is None:
            return None
        member = guild.get_member(user_id)
        if member is None:
            try:
                member = await guild.fetch_member(user_id)
            except discord.HTTPException as e:
                logger.debug(f"Could not resolve member {user_id} in guild {guild_id}: {e}")
                return None
        return member.mention


class PlayingCardsBot(discord.Client):
    """
    Discord client that routes prefix commands and reactions to the handlers.

    Attributes:
        registry: Guild state store shared with the HTTP app.
        messenger: Messenger used by handlers and game loops.
        prefix: Command prefix, e.g. "$pcb ".
    """

    def __init__(self, registry: ServerRegistry, prefix: Optional[str] = None, host_url: Optional[str] = None) -> None:
        intents = discord.Intents.default()
        intents.message_content = True
        intents.guild_messages = True
        intents.guild_reactions = True
        super().__init__(intents=intents)

        self.registry = registry
        self.messenger = DiscordMessenger(self)
        self.prefix = prefix or config.COMMAND_PREFIX
        self.host_url = host_url or config.HOST_URL

    async def on_ready(self) -> None:
        logger.info(f"Logged in as {self.user} ({len(self.guilds)} guild(s))")

    async def on_message(self, message: discord.Message) -> None:
        # Ignore our own messages and direct messages
        if message.guild is None or (self.user and message.author.id == self.user.id):
            return
        if not message.content.startswith(self.prefix):
            return

        guild_id_var.set(message.guild.id)
        user_id_var.set(message.author.id)
        ctx = CommandContext(
            messenger=self.messenger,
            registry=self.registry,
            guild_id=message.guild.id,
            channel_id=message.channel.id,
            author_id=message.author.id,
            prefix=self.prefix,
        )
        try:
            await dispatch(
                message.content,
                ctx,
                host_url=self.host_url,
                game_factory=default_game_factory,
            )
        except Exception:
            logger.exception(f"Command failed: {message.content!r}")

    async def on_raw_reaction_add(self, payload: discord.RawReactionActionEvent) -> None:
        if payload.guild_id is None:
            return

        guild_id_var.set(payload.guild_id)
        user_id_var.set(payload.user_id)
        event = ReactionEvent(
            guild_id=payload.guild_id,
            channel_id=payload.channel_id,
            message_id=payload.message_id,
            user_id=payload.user_id,
            emoji=str(payload.emoji),
        )
        await handle_reaction(event, self.registry, self.user.id if self.user else None)
