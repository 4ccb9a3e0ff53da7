"""
Test suite for command handlers and reaction ingestion.

Tests handler flows and validation using a mock Messenger.

Run with: pytest test_handlers.py -v
"""

from typing import Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

from card_images import CardStyle
from constants import (
    CARDS_RESET,
    CARDS_SHUFFLED,
    GAME_STOPPED,
    HIGH_EMOJI,
    INFO_TEXT,
    JOIN_EMOJI,
    LOW_EMOJI,
    NO_CARDS_LEFT,
    NO_CHANGE,
    NO_GAME_RUNNING,
    START_FAILED,
    game_in_progress_warning,
)
from game import Guess, PlayerState
from guild import ServerRegistry
from handlers import (
    COMMANDS,
    CommandContext,
    ReactionEvent,
    dispatch,
    handle_draw,
    handle_high_or_low,
    handle_jokers,
    handle_quit_game,
    handle_reaction,
    handle_reset_cards,
    handle_shuffle,
    handle_style,
)
from messenger import DeliveryError, Messenger

GUILD = 1
CHANNEL = 10
BOT_ID = 999
PROMPT_ID = 555


# =============================================================================
# Mock helpers
# =============================================================================

class MockMessenger(Messenger):
    """Mock Messenger that collects sent messages."""

    def __init__(self, fail: bool = False):
        self.messages: list[dict] = []
        self.fail = fail

    async def send_text(self, channel_id, text):
        if self.fail:
            raise DeliveryError("Missing Access")
        self.messages.append({"kind": "text", "text": text})
        return len(self.messages)

    async def send_card(self, channel_id, title, footer, color, image_url=None, description=None):
        if self.fail:
            raise DeliveryError("Missing Access")
        self.messages.append({"kind": "card", "title": title, "footer": footer, "image_url": image_url})
        return len(self.messages)

    async def add_reaction(self, channel_id, message_id, emoji):
        pass

    async def mention(self, guild_id, user_id):
        return f"<@{user_id}>"

    def last_message(self) -> dict:
        return self.messages[-1] if self.messages else {}


def make_ctx(registry: Optional[ServerRegistry] = None, messenger: Optional[Messenger] = None) -> CommandContext:
    """Create a CommandContext with sensible defaults."""
    return CommandContext(
        messenger=messenger or MockMessenger(),
        registry=registry or ServerRegistry(),
        guild_id=GUILD,
        channel_id=CHANNEL,
        author_id=42,
    )


def running_game(ctx: CommandContext, pre_phase: bool = False):
    """Put the context's guild into a running High or Low session."""
    session = ctx.state.session
    session.begin(CHANNEL)
    if pre_phase:
        session.last_message_id = PROMPT_ID
    else:
        session.open_round(PROMPT_ID)
    return session


def reaction(user_id: int, emoji: str, message_id: int = PROMPT_ID, channel_id: int = CHANNEL) -> ReactionEvent:
    return ReactionEvent(
        guild_id=GUILD,
        channel_id=channel_id,
        message_id=message_id,
        user_id=user_id,
        emoji=emoji,
    )


# =============================================================================
# Deck commands
# =============================================================================

class TestHandleDraw:

    @pytest.mark.asyncio
    async def test_draw_sends_card(self):
        ctx = make_ctx()
        status = await handle_draw("", ctx, host_url="http://cards.test")

        assert status == "King of Spades"
        sent = ctx.messenger.last_message()
        assert sent["kind"] == "card"
        assert sent["footer"] == "51 cards remaining."
        assert sent["image_url"] == "http://cards.test/card_images/kenney_cards_large/card_spades_K.png"
        assert ctx.state.deck.size() == 51

    @pytest.mark.asyncio
    async def test_draw_uses_guild_style(self):
        ctx = make_ctx()
        ctx.state.card_style = CardStyle.CLASSIC
        await handle_draw("", ctx, host_url="http://cards.test")
        assert ctx.messenger.last_message()["image_url"].endswith("/classic/king_of_spades.png")

    @pytest.mark.asyncio
    async def test_draw_empty_deck(self):
        ctx = make_ctx()
        ctx.state.deck.cards.clear()

        status = await handle_draw("", ctx)

        assert status == NO_CARDS_LEFT
        assert ctx.messenger.last_message()["text"] == NO_CARDS_LEFT

    @pytest.mark.asyncio
    async def test_draw_blocked_during_game(self):
        ctx = make_ctx()
        running_game(ctx)
        status = await handle_draw("", ctx)
        assert status == game_in_progress_warning(ctx.prefix)
        assert ctx.state.deck.size() == 52

    @pytest.mark.asyncio
    async def test_draw_delivery_failure_not_raised(self):
        ctx = make_ctx(messenger=MockMessenger(fail=True))
        status = await handle_draw("", ctx)
        assert status == "King of Spades"


class TestHandleShuffleAndReset:

    @pytest.mark.asyncio
    async def test_shuffle(self):
        ctx = make_ctx()
        before = sorted(ctx.state.deck.cards, key=lambda c: (c.suit.value, c.rank))
        status = await handle_shuffle("", ctx)

        assert status == CARDS_SHUFFLED
        after = sorted(ctx.state.deck.cards, key=lambda c: (c.suit.value, c.rank))
        assert before == after

    @pytest.mark.asyncio
    async def test_shuffle_blocked_during_game(self):
        ctx = make_ctx()
        running_game(ctx)
        assert await handle_shuffle("", ctx) == game_in_progress_warning(ctx.prefix)

    @pytest.mark.asyncio
    async def test_reset_replaces_deck(self):
        ctx = make_ctx()
        old_deck = ctx.state.deck
        old_deck.draw()

        status = await handle_reset_cards("", ctx)

        assert status == CARDS_RESET
        assert ctx.state.deck is not old_deck
        assert ctx.state.deck.size() == 52


# =============================================================================
# Settings commands
# =============================================================================

class TestHandleJokers:

    @pytest.mark.asyncio
    async def test_enable_jokers(self):
        ctx = make_ctx()
        status = await handle_jokers("on", ctx)

        assert status.startswith("Jokers enabled.")
        assert ctx.state.include_jokers
        assert ctx.state.deck.size() == 54

    @pytest.mark.asyncio
    async def test_disable_jokers(self):
        ctx = make_ctx(registry=ServerRegistry(default_include_jokers=True))
        await handle_jokers("off", ctx)
        assert not ctx.state.include_jokers
        assert ctx.state.deck.size() == 52

    @pytest.mark.asyncio
    async def test_same_setting_no_change(self):
        ctx = make_ctx()
        deck = ctx.state.deck
        status = await handle_jokers("off", ctx)
        assert NO_CHANGE in status
        assert ctx.state.deck is deck

    @pytest.mark.asyncio
    async def test_bad_argument_no_change(self):
        ctx = make_ctx()
        status = await handle_jokers("maybe", ctx)
        assert status.startswith(NO_CHANGE)
        assert not ctx.state.include_jokers


class TestHandleStyle:

    @pytest.mark.asyncio
    async def test_set_style(self):
        ctx = make_ctx()
        status = await handle_style("Classic", ctx)
        assert status == "Card style set to classic."
        assert ctx.state.card_style == CardStyle.CLASSIC

    @pytest.mark.asyncio
    async def test_unknown_style_no_change(self):
        ctx = make_ctx()
        status = await handle_style("watercolor", ctx)
        assert status.startswith(NO_CHANGE)
        assert ctx.state.card_style == CardStyle.KENNEY

    @pytest.mark.asyncio
    async def test_style_allowed_during_game(self):
        ctx = make_ctx()
        running_game(ctx)
        await handle_style("classic", ctx)
        assert ctx.state.card_style == CardStyle.CLASSIC


# =============================================================================
# Game lifecycle commands
# =============================================================================

class TestHandleHighOrLow:

    @pytest.mark.asyncio
    async def test_starts_game(self):
        ctx = make_ctx()
        game = MagicMock()
        game.start = AsyncMock(return_value=True)

        status = await handle_high_or_low("", ctx, game_factory=lambda state, messenger: game)

        assert status == "High or Low"
        game.start.assert_awaited_once_with(CHANNEL)

    @pytest.mark.asyncio
    async def test_rejected_when_running(self):
        ctx = make_ctx()
        running_game(ctx)
        factory = MagicMock()

        status = await handle_high_or_low("", ctx, game_factory=factory)

        assert status == game_in_progress_warning(ctx.prefix)
        factory.assert_not_called()

    @pytest.mark.asyncio
    async def test_start_failure_reported(self):
        ctx = make_ctx()
        game = MagicMock()
        game.start = AsyncMock(return_value=False)

        status = await handle_high_or_low("", ctx, game_factory=lambda state, messenger: game)

        assert status == START_FAILED


class TestHandleQuitGame:

    @pytest.mark.asyncio
    async def test_quit_without_game(self):
        ctx = make_ctx()
        assert await handle_quit_game("", ctx) == NO_GAME_RUNNING

    @pytest.mark.asyncio
    async def test_quit_cancels_session(self):
        ctx = make_ctx()
        session = running_game(ctx)
        session.players[7] = PlayerState()

        status = await handle_quit_game("", ctx)

        assert status == GAME_STOPPED
        assert session.is_cancelled
        assert ctx.state.session is not session
        assert not ctx.state.game_running()
        assert ctx.state.session.players == {}


# =============================================================================
# Dispatch
# =============================================================================

class TestDispatch:

    @pytest.mark.asyncio
    async def test_dispatch_info(self):
        ctx = make_ctx()
        assert await dispatch("$pcb info", ctx) == INFO_TEXT

    @pytest.mark.asyncio
    async def test_dispatch_with_argument(self):
        ctx = make_ctx()
        await dispatch("$pcb jokers on", ctx)
        assert ctx.state.include_jokers

    @pytest.mark.asyncio
    async def test_ignores_other_messages(self):
        ctx = make_ctx()
        assert await dispatch("hello there", ctx) is None
        assert await dispatch("$pcb dance", ctx) is None
        assert ctx.messenger.messages == []

    @pytest.mark.asyncio
    async def test_help_lists_every_command(self):
        ctx = make_ctx()
        text = await dispatch("$pcb help", ctx)
        for name in COMMANDS:
            if name != "help":
                assert f"$pcb {name}" in text


# =============================================================================
# Reaction ingestion
# =============================================================================

class TestHandleReaction:

    @pytest.mark.asyncio
    async def test_join_during_pre_phase(self):
        ctx = make_ctx()
        session = running_game(ctx, pre_phase=True)

        assert await handle_reaction(reaction(7, JOIN_EMOJI), ctx.registry, BOT_ID)
        assert session.players[7] == PlayerState(choice=Guess.NONE, active=True)

    @pytest.mark.asyncio
    async def test_second_join_ignored(self):
        ctx = make_ctx()
        session = running_game(ctx, pre_phase=True)
        await handle_reaction(reaction(7, JOIN_EMOJI), ctx.registry, BOT_ID)

        assert not await handle_reaction(reaction(7, JOIN_EMOJI), ctx.registry, BOT_ID)
        assert len(session.players) == 1

    @pytest.mark.asyncio
    async def test_join_after_window_ignored(self):
        ctx = make_ctx()
        session = running_game(ctx, pre_phase=False)
        assert not await handle_reaction(reaction(7, JOIN_EMOJI), ctx.registry, BOT_ID)
        assert session.players == {}

    @pytest.mark.asyncio
    async def test_up_then_down_keeps_first(self):
        ctx = make_ctx()
        session = running_game(ctx)
        session.players[7] = PlayerState()

        assert await handle_reaction(reaction(7, HIGH_EMOJI), ctx.registry, BOT_ID)
        assert not await handle_reaction(reaction(7, LOW_EMOJI), ctx.registry, BOT_ID)
        assert session.players[7].choice == Guess.HIGH

    @pytest.mark.asyncio
    async def test_guess_from_unknown_player_ignored(self):
        ctx = make_ctx()
        session = running_game(ctx)
        assert not await handle_reaction(reaction(8, LOW_EMOJI), ctx.registry, BOT_ID)
        assert session.players == {}

    @pytest.mark.asyncio
    async def test_guess_from_eliminated_player_ignored(self):
        ctx = make_ctx()
        session = running_game(ctx)
        session.players[7] = PlayerState(active=False)
        assert not await handle_reaction(reaction(7, LOW_EMOJI), ctx.registry, BOT_ID)
        assert session.players[7].choice == Guess.NONE

    @pytest.mark.asyncio
    async def test_wrong_message_ignored(self):
        ctx = make_ctx()
        session = running_game(ctx)
        session.players[7] = PlayerState()
        assert not await handle_reaction(reaction(7, HIGH_EMOJI, message_id=1), ctx.registry, BOT_ID)
        assert session.players[7].choice == Guess.NONE

    @pytest.mark.asyncio
    async def test_wrong_channel_ignored(self):
        ctx = make_ctx()
        session = running_game(ctx, pre_phase=True)
        assert not await handle_reaction(reaction(7, JOIN_EMOJI, channel_id=11), ctx.registry, BOT_ID)
        assert session.players == {}

    @pytest.mark.asyncio
    async def test_bot_reactions_ignored(self):
        ctx = make_ctx()
        session = running_game(ctx, pre_phase=True)
        assert not await handle_reaction(reaction(BOT_ID, JOIN_EMOJI), ctx.registry, BOT_ID)
        assert session.players == {}

    @pytest.mark.asyncio
    async def test_other_emoji_ignored(self):
        ctx = make_ctx()
        session = running_game(ctx)
        session.players[7] = PlayerState()
        assert not await handle_reaction(reaction(7, "\U0001f600"), ctx.registry, BOT_ID)
        assert session.players[7].choice == Guess.NONE

    @pytest.mark.asyncio
    async def test_no_game_running(self):
        registry = ServerRegistry()
        registry.get(GUILD)
        assert not await handle_reaction(reaction(7, JOIN_EMOJI), registry, BOT_ID)

    @pytest.mark.asyncio
    async def test_unknown_guild_not_created(self):
        registry = ServerRegistry()
        assert not await handle_reaction(reaction(7, JOIN_EMOJI), registry, BOT_ID)
        assert GUILD not in registry
