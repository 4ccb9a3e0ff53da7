"""
The High or Low game loop.

One HighOrLowGame drives one session from the join window to the final
announcement. The loop runs as its own asyncio task and is paced by
the two timed waits (join window, guess window). Every state change is
made while holding the guild's lock; the waits happen outside it so that
reactions are recorded while the loop sleeps. Round results and the final
announcement are sent after the lock is released.

Stopping a game is cooperative: the quit command cancels the session and
installs a fresh one, and the loop notices at its next checkpoint (after
the join window, before each round prompt, after each guess window).
"""

import asyncio
from typing import Awaitable, Callable, Optional

from card_images import get_card_url
from config import config
from constants import (
    GAME_COLOR,
    HIGH_EMOJI,
    HIGH_OR_LOW_DESCRIPTION,
    HIGH_OR_LOW_TITLE,
    JOIN_EMOJI,
    LOOP_FAILED,
    LOW_EMOJI,
    NO_CARDS_LEFT,
    NO_PLAYERS_ELIMINATED,
    NOBODY_JOINED,
    PLAYERS_RESTORED,
    TIE_ROUND,
)
from game import Card, Deck, GamePhase, GameSession, Guess, RoundResult, shuffled_deck
from guild import ServerState
from logging_config import get_logger
from messenger import DeliveryError, Messenger

logger = get_logger(__name__)

SleepFunc = Callable[[float], Awaitable[None]]


class HighOrLowGame:
    """
    Runs a single High or Low session for a guild.

    Usage:
        game = HighOrLowGame(state, messenger)
        if await game.start(channel_id):
            ...  # the loop is now running in state.game_task
    """

    def __init__(
        self,
        state: ServerState,
        messenger: Messenger,
        *,
        join_window: Optional[float] = None,
        guess_window: Optional[float] = None,
        host_url: Optional[str] = None,
        deck_factory: Callable[[], Deck] = shuffled_deck,
        sleep: SleepFunc = asyncio.sleep,
    ) -> None:
        """
        Args:
            state: The guild's ServerState.
            messenger: Outbound messaging collaborator.
            join_window: Seconds players have to join (default from config).
            guess_window: Seconds players have to guess each round (default from config).
            host_url: Base URL for card images (default from config).
            deck_factory: Builds the game's deck; the default is a shuffled 52-card deck.
            sleep: Coroutine used for the timed waits.
        """
        self.state = state
        self.messenger = messenger
        self.join_window = config.JOIN_WINDOW_SECONDS if join_window is None else join_window
        self.guess_window = config.GUESS_WINDOW_SECONDS if guess_window is None else guess_window
        self.host_url = host_url or config.HOST_URL
        self.deck_factory = deck_factory
        self.sleep = sleep
        self.session: Optional[GameSession] = None
        self.channel_id: Optional[int] = None
        self.log = logger.with_context(guild_id=state.id)

    # -------------------------------------------------------------------------
    # Start
    # -------------------------------------------------------------------------

    async def start(self, channel_id: int) -> bool:
        """
        Open the join window and spawn the game loop task.

        Must not be called while holding the guild lock. The caller is
        expected to have checked that no game is running; this is checked
        again under the lock.

        Returns:
            True if the game started, False if a game was already running
            or the join announcement could not be delivered.
        """
        async with self.state.lock:
            if self.state.game_running():
                return False

            self.channel_id = channel_id
            self.session = self.state.session
            self.state.deck = self.deck_factory()
            self.session.begin(channel_id)
            self.log = self.log.with_context(channel_id=channel_id)

            try:
                message_id = await self.messenger.send_card(
                    channel_id,
                    title=HIGH_OR_LOW_TITLE,
                    description=HIGH_OR_LOW_DESCRIPTION,
                    footer=f"Game starting in {self.join_window:g} seconds...",
                    color=GAME_COLOR,
                )
                self.session.last_message_id = message_id
                await self.messenger.add_reaction(channel_id, message_id, JOIN_EMOJI)
            except DeliveryError as e:
                self.log.warning(f"Could not announce High or Low: {e}")
                self.state.reset_session()
                return False

            self.state.game_task = asyncio.create_task(self.run())
            self.log.info("High or Low started, waiting for players")
            return True

    # -------------------------------------------------------------------------
    # Loop
    # -------------------------------------------------------------------------

    def is_current(self) -> bool:
        """True while this loop's session is still the guild's live session."""
        return (
            self.session is not None
            and self.session is self.state.session
            and not self.session.is_cancelled
        )

    async def run(self) -> None:
        """Task entry point. Never raises except for task cancellation."""
        try:
            await self._run()
        except asyncio.CancelledError:
            self.log.info("Game loop cancelled")
            raise
        except Exception:
            self.log.exception("Game loop crashed")
            async with self.state.lock:
                if self.is_current():
                    self._finish()

    async def _run(self) -> None:
        session = self.session

        await self.sleep(self.join_window)

        async with self.state.lock:
            if not self.is_current():
                self.log.info("Game stopped during the join window")
                return
            session.pre_phase = False
            nobody_joined = not session.players
            if nobody_joined:
                self._finish()
            else:
                card = self.state.deck.draw()
                self.log.info(f"High or Low begins with {len(session.players)} player(s)")

        if nobody_joined:
            await self._say(NOBODY_JOINED)
            self.log.info("Nobody joined, game over")
            return

        while True:
            # The prompt is sent under the lock so that reactions on it wait
            # until it is the voting message.
            async with self.state.lock:
                if not self.is_current():
                    return
                try:
                    await self._send_prompt(card)
                    delivered = True
                except DeliveryError as e:
                    self.log.warning(f"Round prompt not delivered, stopping game: {e}")
                    self._finish()
                    delivered = False

            if not delivered:
                await self._say(LOOP_FAILED)
                return

            await self.sleep(self.guess_window)

            async with self.state.lock:
                if not self.is_current():
                    self.log.info("Game stopped during the guess window")
                    return

                session.close_round()
                previous = card
                drawn = self.state.deck.draw()
                result = None
                if drawn is not None:
                    card = drawn
                    result = session.resolve_round(previous, card)
                out_of_cards = drawn is None or (session.active_count() > 0 and self.state.deck.size() == 0)
                game_over = out_of_cards or session.active_count() == 0

            if result is not None:
                await self._announce_round(result)
            if out_of_cards:
                await self._say(NO_CARDS_LEFT)
            if game_over:
                break

        async with self.state.lock:
            if not self.is_current():
                return
            session.phase = GamePhase.ENDED
            remaining = self.state.deck.size()
            winners = session.active_players()
            self._finish()

        await self._announce_winners(card, remaining, winners, session.rounds_completed)
        self.log.info(f"High or Low finished after {session.rounds_completed} round(s)")

    def _finish(self) -> None:
        """Reset the guild to idle. Caller holds the lock."""
        self.state.reset_session()
        self.state.game_task = None

    # -------------------------------------------------------------------------
    # Messages
    # -------------------------------------------------------------------------

    async def _say(self, text: str) -> None:
        """Send text to the game channel; failures are logged, not raised."""
        try:
            await self.messenger.send_text(self.channel_id, text)
        except DeliveryError as e:
            self.log.warning(f"Could not deliver message: {e}")

    async def _send_prompt(self, card: Card) -> None:
        """Show the current card with the up/down reactions and make it the voting message."""
        message_id = await self.messenger.send_card(
            self.channel_id,
            title=str(card),
            footer=f"{self.state.deck.size()} cards remaining.",
            color=GAME_COLOR,
            image_url=get_card_url(card, self.state.card_style, self.host_url),
        )
        self.session.open_round(message_id)
        await self.messenger.add_reaction(self.channel_id, message_id, HIGH_EMOJI)
        await self.messenger.add_reaction(self.channel_id, message_id, LOW_EMOJI)

    async def _mentions(self, user_ids: list[int]) -> str:
        mentions = []
        for user_id in user_ids:
            mention = await self.messenger.mention(self.state.id, user_id)
            if mention:
                mentions.append(mention)
        return " ".join(mentions)

    async def _announce_round(self, result: RoundResult) -> None:
        if result.is_tie:
            await self._say(TIE_ROUND)
            return

        direction = "higher" if result.correct == Guess.HIGH else "lower"
        text = f"{result.card}. The next card was {direction}!\n"
        if result.eliminated:
            text += "Players eliminated this round: " + await self._mentions(result.eliminated)
            if result.reverted:
                text += "\n" + PLAYERS_RESTORED
        else:
            text += NO_PLAYERS_ELIMINATED
        await self._say(text)

    async def _announce_winners(self, card: Card, remaining: int, winners: list[int], rounds: int) -> None:
        try:
            await self.messenger.send_card(
                self.channel_id,
                title=f"Last card drawn: {card}",
                footer=f"{remaining} cards remained.",
                color=GAME_COLOR,
                image_url=get_card_url(card, self.state.card_style, self.host_url),
            )
        except DeliveryError as e:
            self.log.warning(f"Could not show the last card: {e}")

        round_word = "round" if rounds == 1 else "rounds"
        mentions = await self._mentions(winners)
        await self._say(
            f"Game end! Congrats to the following players who lasted the most rounds! "
            f"({rounds} {round_word})\n{mentions}"
        )
