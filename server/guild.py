"""
Per-guild state for the Playing Cards bot.

This module holds everything the bot remembers about a Discord server
(guild) for the lifetime of the process. Nothing is persisted.

A ServerState contains:
    - The guild's deck of cards
    - The current GameSession (kind NONE when no game is running)
    - Settings: card art style and whether jokers are included
    - An asyncio.Lock serializing every read-modify-write of the above
    - The asyncio.Task running the guild's game loop, if any
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Optional

from card_images import CardStyle
from game import Deck, GameSession, new_deck

logger = logging.getLogger(__name__)


@dataclass
class ServerState:
    """
    Everything the bot tracks for one guild.

    Attributes:
        id: Discord guild id.
        deck: The guild's deck, replaced wholesale on reset.
        session: Current High or Low session.
        card_style: Art style used for card images.
        include_jokers: Whether fresh decks contain the two jokers.
        lock: asyncio.Lock for serializing state mutations to prevent race conditions.
        game_task: Task running the current game loop.
    """

    id: int
    deck: Deck = field(default_factory=new_deck)
    session: GameSession = field(default_factory=GameSession)
    card_style: CardStyle = CardStyle.KENNEY
    include_jokers: bool = False
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    game_task: Optional[asyncio.Task] = None

    def game_running(self) -> bool:
        return self.session.is_active

    def reset_deck(self) -> None:
        """Replace the deck with a fresh, unshuffled one honoring the joker setting."""
        self.deck = new_deck(self.include_jokers)

    def reset_session(self) -> GameSession:
        """
        Install a fresh idle session and a fresh deck.

        Returns:
            The new session.
        """
        self.session = GameSession()
        self.reset_deck()
        return self.session


class ServerRegistry:
    """
    Lookup from guild id to ServerState.

    Entries are created on first access and never removed. One registry
    is created at startup and closed at shutdown.
    """

    def __init__(
        self,
        default_style: CardStyle = CardStyle.KENNEY,
        default_include_jokers: bool = False,
    ) -> None:
        self.servers: dict[int, ServerState] = {}
        self.default_style = default_style
        self.default_include_jokers = default_include_jokers

    def get(self, guild_id: int) -> ServerState:
        """
        Get the state for a guild, creating it on first access.

        Args:
            guild_id: Discord guild id.

        Returns:
            The guild's ServerState.
        """
        state = self.servers.get(guild_id)
        if state is None:
            state = ServerState(
                id=guild_id,
                deck=new_deck(self.default_include_jokers),
                card_style=self.default_style,
                include_jokers=self.default_include_jokers,
            )
            self.servers[guild_id] = state
            logger.debug(f"Created state for guild {guild_id}")
        return state

    def __contains__(self, guild_id: int) -> bool:
        return guild_id in self.servers

    def __len__(self) -> int:
        return len(self.servers)

    def stats(self) -> dict:
        """Counts used by the /metrics endpoint."""
        running = [s for s in self.servers.values() if s.game_running()]
        return {
            "guilds": len(self.servers),
            "games_in_progress": len(running),
            "players_in_games": sum(len(s.session.players) for s in running),
        }

    async def close(self) -> None:
        """Cancel every running game loop. Called at shutdown."""
        tasks = [s.game_task for s in self.servers.values() if s.game_task and not s.game_task.done()]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.info(f"Cancelled {len(tasks)} running game(s)")
