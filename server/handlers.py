"""Command and reaction handlers for the Playing Cards bot.

Each command handler corresponds to a single prefix command. Handlers are
dispatched via the COMMANDS dict; every handler delivers its reply through
the context's Messenger and returns the user-facing status it reported.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from card_images import CardStyle, get_card_url
from config import config
from constants import (
    CARDS_RESET,
    CARDS_SHUFFLED,
    DRAW_COLOR,
    GAME_STOPPED,
    HIGH_EMOJI,
    HIGH_OR_LOW_TITLE,
    INFO_TEXT,
    JOIN_EMOJI,
    LOW_EMOJI,
    NO_CARDS_LEFT,
    NO_CHANGE,
    NO_GAME_RUNNING,
    START_FAILED,
    game_in_progress_warning,
)
from game import Guess
from guild import ServerRegistry, ServerState
from high_or_low import HighOrLowGame
from messenger import DeliveryError, Messenger

logger = logging.getLogger(__name__)

GameFactory = Callable[[ServerState, Messenger], HighOrLowGame]

TRUE_WORDS = ("on", "true", "yes", "1", "enable", "enabled")
FALSE_WORDS = ("off", "false", "no", "0", "disable", "disabled")


@dataclass
class CommandContext:
    """State tracked per incoming command message."""

    messenger: Messenger
    registry: ServerRegistry
    guild_id: int
    channel_id: int
    author_id: int
    prefix: str = "$pcb "

    @property
    def state(self) -> ServerState:
        return self.registry.get(self.guild_id)

    async def reply(self, text: str) -> str:
        """Send text to the command's channel and return it."""
        try:
            await self.messenger.send_text(self.channel_id, text)
        except DeliveryError as e:
            logger.warning(f"Reply to guild {self.guild_id} not delivered: {e}")
        return text


@dataclass
class ReactionEvent:
    """A reaction-add event as reported by the messaging layer."""

    guild_id: int
    channel_id: int
    message_id: int
    user_id: int
    emoji: str


def default_game_factory(state: ServerState, messenger: Messenger) -> HighOrLowGame:
    return HighOrLowGame(state, messenger)


# ---------------------------------------------------------------------------
# Informational commands
# ---------------------------------------------------------------------------

async def handle_info(args: str, ctx: CommandContext, **kw) -> str:
    return await ctx.reply(INFO_TEXT)


async def handle_help(args: str, ctx: CommandContext, **kw) -> str:
    p = ctx.prefix
    lines = [
        f"`{p}draw` - draw the top card",
        f"`{p}shuffle` - shuffle the remaining cards",
        f"`{p}reset_cards` - put every card back in the deck",
        f"`{p}jokers on|off` - include or remove the two jokers",
        f"`{p}style <{'|'.join(s.value for s in CardStyle)}>` - change the card art",
        f"`{p}high_or_low` - start a game of High or Low",
        f"`{p}quitgame` - stop the current game",
        f"`{p}info` - about this bot",
    ]
    return await ctx.reply("\n".join(lines))


# ---------------------------------------------------------------------------
# Deck commands
# ---------------------------------------------------------------------------

async def handle_draw(args: str, ctx: CommandContext, *, host_url: Optional[str] = None, **kw) -> str:
    state = ctx.state
    async with state.lock:
        if state.game_running():
            return await ctx.reply(game_in_progress_warning(ctx.prefix))

        card = state.deck.draw()
        if card is None:
            return await ctx.reply(NO_CARDS_LEFT)

        title = str(card)
        try:
            await ctx.messenger.send_card(
                ctx.channel_id,
                title=title,
                footer=f"{state.deck.size()} cards remaining.",
                color=DRAW_COLOR,
                image_url=get_card_url(card, state.card_style, host_url or config.HOST_URL),
            )
        except DeliveryError as e:
            logger.warning(f"Drawn card not delivered to guild {ctx.guild_id}: {e}")
        return title


async def handle_shuffle(args: str, ctx: CommandContext, **kw) -> str:
    state = ctx.state
    async with state.lock:
        if state.game_running():
            return await ctx.reply(game_in_progress_warning(ctx.prefix))
        state.deck.shuffle()
    return await ctx.reply(CARDS_SHUFFLED)


async def handle_reset_cards(args: str, ctx: CommandContext, **kw) -> str:
    state = ctx.state
    async with state.lock:
        if state.game_running():
            return await ctx.reply(game_in_progress_warning(ctx.prefix))
        state.reset_deck()
    return await ctx.reply(CARDS_RESET)


# ---------------------------------------------------------------------------
# Settings commands
# ---------------------------------------------------------------------------

async def handle_jokers(args: str, ctx: CommandContext, **kw) -> str:
    value = args.strip().lower()
    if value in TRUE_WORDS:
        include = True
    elif value in FALSE_WORDS:
        include = False
    else:
        return await ctx.reply(f"{NO_CHANGE} Use `{ctx.prefix}jokers on` or `{ctx.prefix}jokers off`.")

    state = ctx.state
    async with state.lock:
        if state.game_running():
            return await ctx.reply(game_in_progress_warning(ctx.prefix))
        word = "enabled" if include else "disabled"
        if state.include_jokers == include:
            return await ctx.reply(f"Jokers are already {word}. {NO_CHANGE}")
        state.include_jokers = include
        state.reset_deck()
    logger.info(f"Jokers {word} for guild {ctx.guild_id}")
    return await ctx.reply(f"Jokers {word}. {CARDS_RESET}")


async def handle_style(args: str, ctx: CommandContext, **kw) -> str:
    style = CardStyle.from_name(args)
    if style is None:
        available = ", ".join(s.value for s in CardStyle)
        return await ctx.reply(f"{NO_CHANGE} Available styles: {available}.")

    state = ctx.state
    async with state.lock:
        state.card_style = style
    return await ctx.reply(f"Card style set to {style.value}.")


# ---------------------------------------------------------------------------
# Game lifecycle commands
# ---------------------------------------------------------------------------

async def handle_high_or_low(args: str, ctx: CommandContext, *, game_factory: GameFactory = default_game_factory, **kw) -> str:
    state = ctx.state
    if state.game_running():
        return await ctx.reply(game_in_progress_warning(ctx.prefix))

    game = game_factory(state, ctx.messenger)
    if await game.start(ctx.channel_id):
        return HIGH_OR_LOW_TITLE

    # Another start won the race for the lock
    if state.game_running():
        return await ctx.reply(game_in_progress_warning(ctx.prefix))
    return await ctx.reply(START_FAILED)


async def handle_quit_game(args: str, ctx: CommandContext, **kw) -> str:
    state = ctx.state
    async with state.lock:
        if not state.game_running():
            return await ctx.reply(NO_GAME_RUNNING)
        state.session.cancel()
        state.reset_session()
    logger.info(f"Game stopped by {ctx.author_id} in guild {ctx.guild_id}")
    return await ctx.reply(GAME_STOPPED)


# ---------------------------------------------------------------------------
# Reaction ingestion
# ---------------------------------------------------------------------------

async def handle_reaction(event: ReactionEvent, registry: ServerRegistry, bot_user_id: Optional[int]) -> bool:
    """
    Record a join or a guess from a reaction on the current game message.

    Args:
        event: The reaction-add event.
        registry: Guild state store.
        bot_user_id: The bot's own user id; its reactions are ignored.

    Returns:
        True if the reaction changed the session.
    """
    if event.user_id == bot_user_id or event.guild_id not in registry:
        return False

    state = registry.get(event.guild_id)
    async with state.lock:
        session = state.session
        if not session.is_active:
            return False
        if session.channel_id != event.channel_id or session.last_message_id != event.message_id:
            return False

        if event.emoji == JOIN_EMOJI:
            added = session.add_player(event.user_id)
            if added:
                logger.debug(f"Player {event.user_id} joined High or Low in guild {event.guild_id}")
            return added

        if event.emoji == HIGH_EMOJI:
            return session.record_guess(event.user_id, Guess.HIGH)
        if event.emoji == LOW_EMOJI:
            return session.record_guess(event.user_id, Guess.LOW)
        return False


# ---------------------------------------------------------------------------
# Command dispatch table
# ---------------------------------------------------------------------------

COMMANDS = {
    "info": handle_info,
    "help": handle_help,
    "draw": handle_draw,
    "shuffle": handle_shuffle,
    "reset_cards": handle_reset_cards,
    "jokers": handle_jokers,
    "style": handle_style,
    "high_or_low": handle_high_or_low,
    "quitgame": handle_quit_game,
}


async def dispatch(content: str, ctx: CommandContext, **deps) -> Optional[str]:
    """
    Run the command in a message, if it is one.

    Args:
        content: Raw message text.
        ctx: Command context.
        **deps: Shared dependencies passed to every handler.

    Returns:
        The handler's status text, or None if the message is not a known command.
    """
    if not content.startswith(ctx.prefix):
        return None
    name, _, args = content[len(ctx.prefix):].strip().partition(" ")
    handler = COMMANDS.get(name)
    if handler is None:
        return None
    logger.debug(f"Command {name!r} in guild {ctx.guild_id}", extra={"command": name})
    return await handler(args, ctx, **deps)
