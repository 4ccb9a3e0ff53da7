"""
Messaging collaborator used by the game loop and command handlers.

The game logic never talks to Discord directly. It goes through a
Messenger, which the Discord adapter in bot.py implements and tests
replace with an in-memory mock.
"""

from abc import ABC, abstractmethod
from typing import Optional


class DeliveryError(Exception):
    """Raised when a message or reaction could not be delivered to the platform."""


class Messenger(ABC):
    """
    Outbound messaging interface.

    All send methods raise DeliveryError when the platform rejects the
    request or the channel cannot be reached.
    """

    @abstractmethod
    async def send_text(self, channel_id: int, text: str) -> int:
        """
        Send a plain text message.

        Returns:
            The id of the created message.
        """

    @abstractmethod
    async def send_card(
        self,
        channel_id: int,
        title: str,
        footer: str,
        color: int,
        image_url: Optional[str] = None,
        description: Optional[str] = None,
    ) -> int:
        """
        Send a rich message (embed) with an optional card image and footer text.

        Returns:
            The id of the created message.
        """

    @abstractmethod
    async def add_reaction(self, channel_id: int, message_id: int, emoji: str) -> None:
        """Add a reaction to a message."""

    @abstractmethod
    async def mention(self, guild_id: int, user_id: int) -> Optional[str]:
        """
        Resolve a guild member to a mention string.

        Returns:
            The mention, or None if the member cannot be resolved.
        """
